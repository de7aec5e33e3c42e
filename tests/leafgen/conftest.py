from __future__ import annotations

import math

import numpy as np
import pytest

from leafgen import GrowthNode, LeafParameters, Skeleton, grow
from leafgen.leaf_parameters import constant_curve


@pytest.fixture()
def rng() -> np.random.Generator:
    return np.random.Generator(np.random.PCG64(0))


@pytest.fixture()
def single_step_params() -> LeafParameters:
    """
    One iteration with both lateral veins:
        root -> left, forward, right
    Lateral offset 0.6 at +/-30 degrees, forward offset 0.75.
    """
    return LeafParameters(
        main_axis_distance=0.75,
        secondary_axis_distance_base=0.6,
        secondary_axis_angle=math.pi / 6,
        iteration_count=1,
        max_side_depth=10,
        always_secondary=True,
        secondary_axis_distance_curve=constant_curve,
    )


@pytest.fixture()
def leaf_params() -> LeafParameters:
    """Small but fully branched leaf."""
    return LeafParameters(
        main_axis_distance=0.7,
        secondary_axis_distance_base=0.6,
        secondary_axis_angle=math.pi / 5,
        scale=0.95,
        iteration_count=5,
        scale_multiplier=0.95,
        main_axis_distance_multiplier=0.95,
        angle_multiplier=1.05,
        max_side_depth=2,
        always_secondary=False,
    )


@pytest.fixture()
def leaf_skeleton(leaf_params: LeafParameters) -> Skeleton:
    return grow(leaf_params)


@pytest.fixture()
def hand_skeleton() -> Skeleton:
    """
    Hand-built two-level skeleton:
        0 -> (1 left, 2 forward, 3 right)
        2 -> (4 left, 5 forward, 6 right)
    Nodes 1 and 3 and node 2's children are tips.
    """

    def child(depth: int, side: int, xyz, parent: int) -> GrowthNode:
        return GrowthNode(
            depth=depth,
            side_depth=side,
            position=np.array(xyz, dtype=float),
            parent=parent,
        )

    nodes = [
        GrowthNode(depth=0, side_depth=0, left=1, forward=2, right=3),
        child(1, 1, [0.5, 0.0, -0.5], 0),
        GrowthNode(
            depth=1,
            side_depth=0,
            position=np.array([1.0, 0.0, 0.0]),
            parent=0,
            left=4,
            forward=5,
            right=6,
        ),
        child(1, 1, [0.5, 0.0, 0.5], 0),
        child(2, 1, [0.4, 0.0, -0.4], 2),
        child(2, 0, [0.8, 0.0, 0.0], 2),
        child(2, 1, [0.4, 0.0, 0.4], 2),
    ]
    return Skeleton(nodes)
