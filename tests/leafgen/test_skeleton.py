"""Unit tests for GrowthNode, Skeleton and SkeletonGrower.

This test suite verifies:
- Depth and side-depth bookkeeping along every root path
- Dense, one-time index assignment and the layering views
- The curl and side-depth guards of the branch rule
- Reproducible growth from a seeded generator
"""
from __future__ import annotations

import math

import numpy as np
import pytest
from numpy.testing import assert_allclose

from leafgen import (
    InvalidParameterError,
    LeafParameters,
    Skeleton,
    SkeletonGrower,
    grow,
)
from leafgen.skeleton import CURL_LIMIT, GrowthNode, rotation_y


def _lateral_steps(skeleton: Skeleton, i: int) -> int:
    steps = 0
    for node_id in skeleton.path_to_root(i)[:-1]:
        parent = skeleton[skeleton[node_id].parent]
        if node_id in (parent.left, parent.right):
            steps += 1
    return steps


def test_rotation_y_turns_x_towards_minus_z():
    v = rotation_y(math.pi / 2) @ np.array([1.0, 0.0, 0.0])
    assert_allclose(v, [0.0, 0.0, -1.0], atol=1e-12)


def test_single_iteration_produces_root_and_three_children(single_step_params):
    """
    Test the one-step scenario.

    It verifies that:
    - There are exactly 4 nodes in left, forward, right order after the root
    - All children sit at depth 1; only lateral ones have side depth 1
    - The edge layer holds every node, root included
    """
    sk = grow(single_step_params)

    assert len(sk) == 4
    root = sk.root
    assert (root.left, root.forward, root.right) == (1, 2, 3)
    assert [n.depth for n in sk] == [0, 1, 1, 1]
    assert [n.side_depth for n in sk] == [0, 1, 0, 1]
    assert sk.edge_layer == frozenset({0, 1, 2, 3})
    assert sk.depth_layers == [[0], [1, 2, 3]]
    assert sk.side_depth_layers == [[0, 2], [1, 3]]


def test_single_iteration_positions(single_step_params):
    sk = grow(single_step_params)
    pos = sk.world_positions
    c, s = math.cos(math.pi / 6), math.sin(math.pi / 6)

    assert_allclose(pos[0], [0.0, 0.0, 0.0])
    assert_allclose(pos[1], [0.6 * c, 0.0, -0.6 * s], atol=1e-12)
    assert_allclose(pos[2], [0.75, 0.0, 0.0], atol=1e-12)
    assert_allclose(pos[3], [0.6 * c, 0.0, 0.6 * s], atol=1e-12)

    assert sk[1].rotation_y == pytest.approx(math.pi / 6)
    assert sk[3].rotation_y == pytest.approx(-math.pi / 6)
    assert sk[1].scale == pytest.approx(0.95 * 0.8)
    assert sk[2].scale == pytest.approx(0.95)


def test_depth_and_side_depth_follow_paths(leaf_skeleton):
    for node in leaf_skeleton:
        path = leaf_skeleton.path_to_root(node.index)
        assert node.depth == len(path) - 1
        assert node.side_depth == _lateral_steps(leaf_skeleton, node.index)


def test_indices_are_dense_and_match_order(leaf_skeleton):
    n = len(leaf_skeleton)
    assert sorted(node.index for node in leaf_skeleton) == list(range(n))
    for i, node in enumerate(leaf_skeleton):
        assert node.index == i


def test_parents_precede_children(leaf_skeleton):
    for node in leaf_skeleton:
        for c in node.children:
            assert leaf_skeleton[c].parent == node.index
            assert c > node.index


def test_layers_partition_nodes(leaf_skeleton):
    by_depth = [i for layer in leaf_skeleton.depth_layers for i in layer]
    by_side = [i for layer in leaf_skeleton.side_depth_layers for i in layer]
    assert sorted(by_depth) == list(range(len(leaf_skeleton)))
    assert sorted(by_side) == list(range(len(leaf_skeleton)))
    for d, layer in enumerate(leaf_skeleton.depth_layers):
        assert layer == sorted(layer)
        assert all(leaf_skeleton[i].depth == d for i in layer)
    for d, layer in enumerate(leaf_skeleton.side_depth_layers):
        assert all(leaf_skeleton[i].side_depth == d for i in layer)


def test_edge_layer_holds_tips_and_root(leaf_skeleton):
    edges = leaf_skeleton.edge_layer
    assert 0 in edges
    for node in leaf_skeleton:
        full = None not in (node.left, node.forward, node.right)
        # the root is boundary even with all three children
        if full and node.index != 0:
            assert node.index not in edges
        if not node.has_children:
            assert node.index in edges


def test_edge_layer_keeps_fully_branched_root(leaf_skeleton):
    root = leaf_skeleton.root
    assert None not in (root.left, root.forward, root.right)
    assert 0 in leaf_skeleton.edge_layer
    for i in leaf_skeleton.edge_layer - {0}:
        node = leaf_skeleton[i]
        assert None in (node.left, node.forward, node.right)


def test_side_depth_zero_grows_only_main_vein():
    params = LeafParameters(iteration_count=3, max_side_depth=0)
    sk = grow(params)

    assert len(sk) == 4
    assert all(node.side_depth == 0 for node in sk)
    assert all(node.left is None and node.right is None for node in sk)
    assert [n.depth for n in sk] == [0, 1, 2, 3]


def test_side_depth_never_exceeds_cap(leaf_params):
    for cap in (0, 1, 2, 3):
        leaf_params.max_side_depth = cap
        sk = grow(leaf_params)
        assert max(n.side_depth for n in sk) <= cap
        if cap > 0:
            assert max(n.side_depth for n in sk) == cap


def test_lateral_veins_follow_curl_direction(leaf_skeleton):
    for node in leaf_skeleton:
        if not node.has_children:
            continue
        total = leaf_skeleton.cumulative_rotation(node.index)
        if total > 0:
            assert node.right is None
        if total < 0:
            assert node.left is None


def test_curl_guard_stops_tightly_curled_lineages():
    params = LeafParameters(
        secondary_axis_angle=2.0,
        angle_multiplier=1.0,
        iteration_count=4,
        max_side_depth=10,
        always_secondary=True,
    )
    sk = grow(params)

    curled = [
        n.index for n in sk if abs(sk.cumulative_rotation(n.index)) > CURL_LIMIT
    ]
    assert curled, "expected at least one lineage past the curl limit"
    for i in curled:
        assert not sk[i].has_children


def test_zero_iterations_gives_single_root():
    sk = grow(LeafParameters(iteration_count=0))
    assert len(sk) == 1
    assert sk.edge_layer == frozenset({0})
    assert sk.depth_layers == [[0]]
    assert_allclose(sk.world_positions, [[0.0, 0.0, 0.0]])


def test_grower_does_not_mutate_params(leaf_params):
    before = (
        leaf_params.scale,
        leaf_params.main_axis_distance,
        leaf_params.secondary_axis_angle,
    )
    grow(leaf_params)
    after = (
        leaf_params.scale,
        leaf_params.main_axis_distance,
        leaf_params.secondary_axis_angle,
    )
    assert before == after


def test_grow_is_deterministic_for_a_seed():
    a = grow(rng=np.random.Generator(np.random.PCG64(7)))
    b = grow(rng=np.random.Generator(np.random.PCG64(7)))

    assert len(a) == len(b)
    np.testing.assert_array_equal(a.world_positions, b.world_positions)
    np.testing.assert_array_equal(a.parent_indices, b.parent_indices)
    for na, nb in zip(a, b):
        assert (na.index, na.depth, na.side_depth) == (nb.index, nb.depth, nb.side_depth)
        assert na.rotation_y == nb.rotation_y
        assert na.scale == nb.scale
        np.testing.assert_array_equal(na.position, nb.position)


def test_grow_rejects_invalid_parameters():
    with pytest.raises(InvalidParameterError):
        grow(LeafParameters(iteration_count=-1))
    with pytest.raises(InvalidParameterError):
        grow(LeafParameters(max_side_depth=-1))


def test_grower_requires_parameters_instance():
    with pytest.raises(TypeError):
        SkeletonGrower({"iteration_count": 2})  # type: ignore[arg-type]


def test_skeleton_refuses_reindexing(leaf_skeleton):
    with pytest.raises(RuntimeError):
        Skeleton(leaf_skeleton.nodes)


def test_skeleton_requires_nodes():
    with pytest.raises(ValueError):
        Skeleton([])


def test_world_positions_compose_parent_scale(hand_skeleton):
    pos = hand_skeleton.world_positions
    assert_allclose(pos[5], [1.8, 0.0, 0.0])
    assert_allclose(pos[4], [1.4, 0.0, -0.4])

    # scaling the forward node scales its children's offsets
    nodes = [
        GrowthNode(depth=0, side_depth=0, forward=1),
        GrowthNode(
            depth=1,
            side_depth=0,
            position=np.array([1.0, 0.0, 0.0]),
            scale=0.5,
            parent=0,
            forward=2,
        ),
        GrowthNode(
            depth=2, side_depth=0, position=np.array([1.0, 0.0, 0.0]), parent=1
        ),
    ]
    sk = Skeleton(nodes)
    assert_allclose(sk.world_positions[2], [1.5, 0.0, 0.0])
    assert sk.parent_indices.tolist() == [-1, 0, 1]
