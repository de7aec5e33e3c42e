"""Module defining the LeafParameters class for configuring leaf skeleton growth.

This module provides the LeafParameters dataclass, which holds all settings
for growing a leaf vein skeleton, together with the catalog of
secondary-axis distance curves and a randomized sampler.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Callable, List, Sequence

import numpy as np

from .errors import InvalidParameterError

_LOGGER = logging.getLogger(__name__)

DistanceCurve = Callable[[float], float]


def parabolic_curve(x: float) -> float:
    """Zero at both ends, widest in the middle of the leaf."""
    return x * (1.0 - x)


def steep_decay_curve(x: float) -> float:
    return 0.2**x


def gentle_decay_curve(x: float) -> float:
    return 0.5**x


def harmonic_curve(x: float) -> float:
    return 1.0 / (1.0 + x)


def constant_curve(x: float) -> float:
    return 1.0


# Curves `sample()` picks from.
SECONDARY_AXIS_CURVES: Sequence[DistanceCurve] = (
    parabolic_curve,
    steep_decay_curve,
    gentle_decay_curve,
    harmonic_curve,
)

# Extra progress values checked on top of the ones growth actually uses.
_CURVE_SAMPLES = 11


@dataclass
class LeafParameters:
    """Holds settings for growing a leaf vein skeleton.

    Leaves grow along +X (the main vein). Secondary veins leave each node at
    +/- `secondary_axis_angle` around Y, so the leaf blade lies in the X/Z
    plane.

    Attributes:
        main_axis_distance (float): Offset of each forward child along +X.
        secondary_axis_distance_base (float): Base offset of lateral children;
            multiplied by `secondary_axis_distance_curve(progress)`.
        secondary_axis_angle (float): Lateral branch angle in radians.
        scale (float): Uniform scale of forward children.
        secondary_scale (float): Extra scale factor applied to lateral children.
        iteration_count (int): Number of branching generations.
        scale_multiplier (float): Per-iteration factor applied to `scale`.
        main_axis_distance_multiplier (float): Per-iteration factor applied to
            `main_axis_distance`.
        angle_multiplier (float): Per-iteration factor applied to
            `secondary_axis_angle`.
        max_side_depth (int): Maximum number of lateral branchings on any path.
        always_secondary (bool): Grow both lateral children regardless of the
            accumulated curl of the lineage.
        secondary_axis_distance_curve (Callable[[float], float]): Maps growth
            progress in [0, 1] to a multiplier for the lateral offset.

    Notes:
        - Multipliers below 1 taper the leaf towards its tip.
        - The grower never mutates the instance it is given.
    """

    main_axis_distance: float = 0.75
    secondary_axis_distance_base: float = 0.6
    secondary_axis_angle: float = math.pi / 6
    scale: float = 0.95
    secondary_scale: float = 0.8
    iteration_count: int = 4
    scale_multiplier: float = 0.95
    main_axis_distance_multiplier: float = 0.95
    angle_multiplier: float = 1.0
    max_side_depth: int = 2
    always_secondary: bool = False
    secondary_axis_distance_curve: DistanceCurve = field(default=gentle_decay_curve)

    def progress_values(self) -> List[float]:
        """Return the growth progress `i / iteration_count` of each iteration."""
        n = int(self.iteration_count)
        return [i / n for i in range(n)]

    def validate(self) -> None:
        """Reject parameters that growth cannot honor.

        Raises:
            InvalidParameterError: If `iteration_count` or `max_side_depth` is
                negative, or the distance curve is not callable, raises, or
                returns a non-finite value somewhere on [0, 1].
        """
        if self.iteration_count < 0:
            _LOGGER.error("validate: iteration_count=%r < 0", self.iteration_count)
            raise InvalidParameterError(
                f"iteration_count must be >= 0; got {self.iteration_count!r}"
            )
        if self.max_side_depth < 0:
            _LOGGER.error("validate: max_side_depth=%r < 0", self.max_side_depth)
            raise InvalidParameterError(
                f"max_side_depth must be >= 0; got {self.max_side_depth!r}"
            )

        curve = self.secondary_axis_distance_curve
        if not callable(curve):
            raise InvalidParameterError(
                "secondary_axis_distance_curve must be callable; "
                f"got {type(curve).__name__}"
            )

        xs = sorted(
            set(self.progress_values())
            | set(np.linspace(0.0, 1.0, _CURVE_SAMPLES).tolist())
        )
        for x in xs:
            try:
                y = float(curve(x))
            except Exception as exc:
                _LOGGER.error("validate: distance curve failed at x=%.6g: %r", x, exc)
                raise InvalidParameterError(
                    f"secondary_axis_distance_curve is undefined at {x:.6g}"
                ) from exc
            if not math.isfinite(y):
                _LOGGER.error("validate: distance curve returned %r at x=%.6g", y, x)
                raise InvalidParameterError(
                    f"secondary_axis_distance_curve is not finite at {x:.6g} ({y!r})"
                )

    @classmethod
    def sample(cls, rng: np.random.Generator) -> LeafParameters:
        """Draw a randomized parameter set.

        Args:
            rng: Generator all draws are taken from.

        Returns:
            A new `LeafParameters`.
        """
        curve_id = int(rng.integers(len(SECONDARY_AXIS_CURVES)))
        params = cls(
            main_axis_distance=float(rng.uniform(0.5, 1.0)),
            secondary_axis_distance_base=float(rng.uniform(0.4, 0.8)),
            secondary_axis_angle=float(rng.uniform(math.pi / 12, math.pi / 3)),
            scale=float(rng.uniform(0.9, 1.0)),
            secondary_scale=0.8,
            iteration_count=int(rng.integers(2, 6, endpoint=True)),
            scale_multiplier=float(rng.uniform(0.9, 1.0)),
            main_axis_distance_multiplier=math.sqrt(float(rng.uniform(0.8, 1.0))),
            angle_multiplier=float(rng.uniform(0.8, 1.0 / 0.8)),
            max_side_depth=int(rng.integers(1, 4, endpoint=True)),
            always_secondary=False,
            secondary_axis_distance_curve=SECONDARY_AXIS_CURVES[curve_id],
        )
        _LOGGER.debug(
            "sample: iterations=%d max_side_depth=%d curve=%s",
            params.iteration_count,
            params.max_side_depth,
            params.secondary_axis_distance_curve.__name__,
        )
        return params
