"""2D Delaunay triangulation of skeleton nodes and triangle filters.

Nodes are projected onto the leaf's X/Z plane (X is the main vein, Z the
lateral direction) and triangulated with SciPy's Qhull wrapper. Candidate
triangles can then be passed through an ordered list of predicates; a
triangle survives only if every predicate returns True.
"""

from __future__ import annotations

import logging
import math
from typing import Callable, List, Sequence, Tuple

import numpy as np
from numpy.typing import NDArray
from scipy.spatial import Delaunay, QhullError

from .errors import DegenerateTriangulationError
from .skeleton import Skeleton

_LOGGER = logging.getLogger(__name__)

# Smallest interior angle a boundary triangle may have.
THIN_TRIANGLE_ANGLE = math.radians(2.0)

TriangleFilter = Callable[[Skeleton, int, int, int], bool]


def delaunay_triangles(points: NDArray[np.float64]) -> NDArray[np.int64]:
    """Triangulate 3D points by their X/Z coordinates.

    Args:
        points: Array of shape (N, 3).

    Returns:
        Triangle vertex indices, shape (F, 3).

    Raises:
        DegenerateTriangulationError: If there are fewer than three distinct
            points, all points are collinear, or Qhull fails.
    """
    pts = np.asarray(points, dtype=float)
    if pts.ndim != 2 or pts.shape[1] != 3:
        raise ValueError(f"points must be (N, 3); got shape {pts.shape}")
    xz = pts[:, [0, 2]]

    distinct = np.unique(xz, axis=0)
    if distinct.shape[0] < 3:
        raise DegenerateTriangulationError(
            f"need at least 3 distinct points; got {distinct.shape[0]}"
        )
    if np.linalg.matrix_rank(distinct - distinct[0]) < 2:
        raise DegenerateTriangulationError("all points are collinear")

    try:
        tri = Delaunay(xz)
    except QhullError as exc:
        raise DegenerateTriangulationError(f"Qhull failed: {exc}") from exc

    simplices = np.asarray(tri.simplices, dtype=np.int64)
    _LOGGER.debug(
        "delaunay_triangles: points=%d triangles=%d", pts.shape[0], simplices.shape[0]
    )
    return simplices


def triangle_angles(
    a: NDArray[np.float64], b: NDArray[np.float64], c: NDArray[np.float64]
) -> Tuple[float, float, float]:
    """Return the interior angles (radians) at `a`, `b` and `c`.

    A corner whose adjacent edge has zero length gets angle 0.
    """

    def corner(p: NDArray[np.float64], q: NDArray[np.float64], r: NDArray[np.float64]) -> float:
        u = q - p
        v = r - p
        denom = float(np.linalg.norm(u) * np.linalg.norm(v))
        if denom == 0.0:
            return 0.0
        cos = float(np.dot(u, v)) / denom
        return math.acos(min(1.0, max(-1.0, cos)))

    return corner(a, b, c), corner(b, a, c), corner(c, b, a)


# -----------------------------------------------------------------------------
# Filters: return True to keep the triangle
# -----------------------------------------------------------------------------
def no_edge_layer(skeleton: Skeleton, a: int, b: int, c: int) -> bool:
    """Drop triangles whose three vertices all lie in the edge layer."""
    edges = skeleton.edge_layer
    return not (a in edges and b in edges and c in edges)


def no_edge_layer_and_siblings(skeleton: Skeleton, a: int, b: int, c: int) -> bool:
    """Drop all-edge-layer triangles unless two of the vertices are siblings."""
    if no_edge_layer(skeleton, a, b, c):
        return True
    parents = skeleton.parent_indices
    pa, pb, pc = parents[a], parents[b], parents[c]
    return pa == pb or pb == pc or pa == pc


def no_thin_triangles(skeleton: Skeleton, a: int, b: int, c: int) -> bool:
    """Drop all-edge-layer triangles with an interior angle under 2 degrees."""
    if no_edge_layer(skeleton, a, b, c):
        return True
    pos = skeleton.world_positions
    return min(triangle_angles(pos[a], pos[b], pos[c])) > THIN_TRIANGLE_ANGLE


# Order matters: the sibling test runs before the sliver test.
COMPLEX_EDGE_FILTERS: Tuple[TriangleFilter, ...] = (
    no_edge_layer_and_siblings,
    no_thin_triangles,
)


def filter_triangles(
    skeleton: Skeleton,
    triangles: NDArray[np.int64],
    filters: Sequence[TriangleFilter] = (),
) -> List[Tuple[int, int, int]]:
    """Keep the triangles that pass every filter, evaluated in order."""
    kept: List[Tuple[int, int, int]] = []
    for row in np.asarray(triangles, dtype=np.int64):
        a, b, c = (int(v) for v in row)
        if all(f(skeleton, a, b, c) for f in filters):
            kept.append((a, b, c))
    _LOGGER.debug(
        "filter_triangles: kept %d of %d (filters=%s)",
        len(kept),
        len(triangles),
        [f.__name__ for f in filters],
    )
    return kept
