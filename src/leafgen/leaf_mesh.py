"""Module defining the LeafMesh class and the skeleton-to-mesh assembler.

This module provides:
  - FaceMode: the three face-generation strategies.
  - LeafMesh: vertices, faces, normals, normalization scale and skin binding.
  - MeshAssembler / assemble: build a LeafMesh from a grown Skeleton.
  - choose_mode / generate_leaf: randomized end-to-end generation.

Every vertex is bound to the skeleton node with the same index, so posing
the skeleton poses the mesh.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

import meshio
import numpy as np
from numpy.typing import NDArray

from .config import default_rng
from .errors import DegenerateBoundsError, DegenerateTriangulationError
from .leaf_parameters import LeafParameters
from .skeleton import Skeleton, grow
from .triangulation import COMPLEX_EDGE_FILTERS, delaunay_triangles, filter_triangles

_LOGGER = logging.getLogger(__name__)

# Bone influences per vertex in the skin arrays.
INFLUENCES = 4

Face = Tuple[int, int, int]


class FaceMode(str, enum.Enum):
    """Face-generation strategy."""

    COMPOUND = "compound"
    ENTIRE = "entire"
    COMPLEX_EDGE = "complex_edge"


# -----------------------------------------------------------------------------
# Face strategies
# -----------------------------------------------------------------------------
def compound_faces(skeleton: Skeleton) -> List[Face]:
    """Fan faces from each node's own children, then cousin quads.

    First pass, for every node with a forward child:
      1. forward, left, self
      2. self, left, parent
      3. forward, self, right
      4. self, parent, right
    Second pass, over the depth layers: close the quad between a lateral
    child and the matching lateral child of the forward child.
    """
    faces: List[Face] = []
    nodes = skeleton.nodes
    for me, node in enumerate(nodes):
        fwd = node.forward
        if fwd is None:
            continue
        if node.left is not None:
            faces.append((fwd, node.left, me))
            if node.parent is not None:
                faces.append((me, node.left, node.parent))
        if node.right is not None:
            faces.append((fwd, me, node.right))
            if node.parent is not None:
                faces.append((me, node.parent, node.right))

    for layer in skeleton.depth_layers:
        for me in layer:
            node = nodes[me]
            fwd = node.forward
            if fwd is None:
                continue
            forward_node = nodes[fwd]
            if node.left is not None and forward_node.left is not None:
                faces.append((forward_node.left, node.left, fwd))
            if node.right is not None and forward_node.right is not None:
                faces.append((forward_node.right, fwd, node.right))
    return faces


def entire_faces(skeleton: Skeleton) -> List[Face]:
    """Keep every Delaunay triangle of the projected skeleton."""
    return filter_triangles(skeleton, delaunay_triangles(skeleton.world_positions))


def complex_edge_faces(skeleton: Skeleton) -> List[Face]:
    """Delaunay triangles with boundary noise filtered out."""
    return filter_triangles(
        skeleton,
        delaunay_triangles(skeleton.world_positions),
        COMPLEX_EDGE_FILTERS,
    )


FACE_STRATEGIES: Dict[FaceMode, Callable[[Skeleton], List[Face]]] = {
    FaceMode.COMPOUND: compound_faces,
    FaceMode.ENTIRE: entire_faces,
    FaceMode.COMPLEX_EDGE: complex_edge_faces,
}


# -----------------------------------------------------------------------------
# Geometry helpers
# -----------------------------------------------------------------------------
def bounding_box(
    vertices: NDArray[Any],
) -> Tuple[NDArray[np.float64], NDArray[np.float64]]:
    """Return the axis-aligned (min, max) corners of `vertices`."""
    v = np.asarray(vertices, dtype=float)
    if v.ndim != 2 or v.shape[0] == 0:
        raise ValueError(f"vertices must be a non-empty (N, 3) array; got {v.shape}")
    return v.min(axis=0), v.max(axis=0)


def normalization_scale(vertices: NDArray[Any]) -> float:
    """Return the factor that maps the X extent of `vertices` to length 1.

    Raises:
        DegenerateBoundsError: If the X extent is zero.
    """
    lo, hi = bounding_box(vertices)
    width = float(hi[0] - lo[0])
    if not width > 0.0:
        _LOGGER.error("normalization_scale: zero-width bounding box (%g)", width)
        raise DegenerateBoundsError(
            f"bounding box X width is {width!r}; cannot normalize"
        )
    return 1.0 / width


def face_normals(vertices: NDArray[Any], faces: NDArray[Any]) -> NDArray[np.float64]:
    """Unit normal per face; degenerate faces get a zero normal."""
    v = np.asarray(vertices, dtype=float)
    f = np.asarray(faces, dtype=np.int64).reshape(-1, 3)
    if f.shape[0] == 0:
        return np.zeros((0, 3), dtype=float)

    a, b, c = v[f[:, 0]], v[f[:, 1]], v[f[:, 2]]
    n = np.cross(b - a, c - a)
    nn = np.linalg.norm(n, axis=1)
    safe = np.where(nn > 1e-12, nn, 1.0)
    n_unit = n / safe[:, None]
    deg_mask = nn <= 1e-12
    if np.any(deg_mask):
        n_unit[deg_mask] = 0.0
        _LOGGER.warning(
            "face_normals: %d degenerate face(s) with ~zero area; normals set to 0.",
            int(np.count_nonzero(deg_mask)),
        )
    return n_unit


def vertex_normals(
    n_vertices: int, faces: NDArray[Any], normals: NDArray[Any]
) -> NDArray[np.float64]:
    """Average the normals of each vertex's incident faces, then normalize.

    Vertices without faces keep a zero normal.
    """
    acc = np.zeros((n_vertices, 3), dtype=float)
    f = np.asarray(faces, dtype=np.int64).reshape(-1, 3)
    for k in range(3):
        np.add.at(acc, f[:, k], normals)
    nn = np.linalg.norm(acc, axis=1)
    safe = np.where(nn > 1e-12, nn, 1.0)
    out = acc / safe[:, None]
    out[nn <= 1e-12] = 0.0
    return out


# -----------------------------------------------------------------------------
# Mesh
# -----------------------------------------------------------------------------
@dataclass(eq=False)
class LeafMesh:
    """Triangulated, skinned leaf surface.

    Attributes:
        vertices (NDArray[np.float64]): Vertex positions, shape (N, 3).
        faces (NDArray[np.int64]): Triangle indices, shape (F, 3).
        face_normals (NDArray[np.float64]): Unit face normals, shape (F, 3).
        vertex_normals (NDArray[np.float64]): Vertex normals, shape (N, 3).
        bbox_min (NDArray[np.float64]): Lower bounding-box corner.
        bbox_max (NDArray[np.float64]): Upper bounding-box corner.
        x_scale (float): Uniform scale normalizing the X extent to 1.
        skin_indices (NDArray[np.int64]): Bone indices, shape (N, 4).
        skin_weights (NDArray[np.float64]): Bone weights, shape (N, 4).
        mode (FaceMode): Strategy the faces were built with.
    """

    vertices: NDArray[np.float64]
    faces: NDArray[np.int64]
    face_normals: NDArray[np.float64]
    vertex_normals: NDArray[np.float64]
    bbox_min: NDArray[np.float64]
    bbox_max: NDArray[np.float64]
    x_scale: float
    skin_indices: NDArray[np.int64]
    skin_weights: NDArray[np.float64]
    mode: FaceMode

    @property
    def n_vertices(self) -> int:
        return int(self.vertices.shape[0])

    @property
    def n_faces(self) -> int:
        return int(self.faces.shape[0])

    def normalized_vertices(self) -> NDArray[np.float64]:
        """Return the vertices multiplied by `x_scale`."""
        return self.vertices * self.x_scale

    def save(self, filename: str) -> None:
        """Write the mesh with meshio; the format follows the file extension.

        Raises:
            ValueError: If the mesh has no faces.
        """
        if self.n_faces == 0:
            _LOGGER.error("save: mesh has no faces (vertices=%d).", self.n_vertices)
            raise ValueError("Cannot save: mesh has no faces.")
        try:
            m = meshio.Mesh(
                points=self.vertices,
                cells=[("triangle", self.faces)],
                point_data={
                    "normals": self.vertex_normals,
                    "bone": self.skin_indices[:, 0],
                },
            )
            m.write(filename)
            _LOGGER.info(
                "save: wrote '%s' (vertices=%d, faces=%d).",
                filename,
                self.n_vertices,
                self.n_faces,
            )
        except Exception:
            _LOGGER.exception("save: failed to write '%s'.", filename)
            raise


class MeshAssembler:
    """Build a LeafMesh from a grown skeleton.

    Attributes:
        skeleton (Skeleton): Source skeleton; read only.
    """

    def __init__(self, skeleton: Skeleton) -> None:
        if not isinstance(skeleton, Skeleton):
            raise TypeError("The skeleton must be an instance of Skeleton")
        self.skeleton = skeleton

    def vertices(self) -> NDArray[np.float64]:
        """World positions of all nodes in index order."""
        return np.array(self.skeleton.world_positions, dtype=float)

    def faces(self, mode: FaceMode) -> NDArray[np.int64]:
        """Run the face strategy for `mode`.

        Triangulation failures are logged and yield an empty face array.
        """
        strategy = FACE_STRATEGIES[mode]
        try:
            faces = strategy(self.skeleton)
        except DegenerateTriangulationError as exc:
            _LOGGER.warning(
                "faces: %s triangulation failed (%s); emitting no faces.",
                mode.value,
                exc,
            )
            faces = []
        return np.asarray(faces, dtype=np.int64).reshape(-1, 3)

    def skin(self) -> Tuple[NDArray[np.int64], NDArray[np.float64]]:
        """One bone per vertex: vertex i follows node i with weight 1."""
        n = len(self.skeleton)
        indices = np.zeros((n, INFLUENCES), dtype=np.int64)
        indices[:, 0] = np.arange(n)
        weights = np.zeros((n, INFLUENCES), dtype=float)
        weights[:, 0] = 1.0
        return indices, weights

    def assemble(self, mode: Union[FaceMode, str]) -> LeafMesh:
        """Build the mesh for `mode`.

        Raises:
            ValueError: If `mode` is not a known face mode.
            DegenerateBoundsError: If the vertices have zero X extent.
        """
        mode = FaceMode(mode)
        verts = self.vertices()
        faces = self.faces(mode)

        fn = face_normals(verts, faces)
        vn = vertex_normals(verts.shape[0], faces, fn)
        lo, hi = bounding_box(verts)
        x_scale = normalization_scale(verts)
        skin_indices, skin_weights = self.skin()

        _LOGGER.info(
            "Assembled leaf mesh: mode=%s vertices=%d faces=%d x_scale=%.6g",
            mode.value,
            verts.shape[0],
            faces.shape[0],
            x_scale,
        )
        return LeafMesh(
            vertices=verts,
            faces=faces,
            face_normals=fn,
            vertex_normals=vn,
            bbox_min=lo,
            bbox_max=hi,
            x_scale=x_scale,
            skin_indices=skin_indices,
            skin_weights=skin_weights,
            mode=mode,
        )


def assemble(skeleton: Skeleton, mode: Union[FaceMode, str]) -> LeafMesh:
    """Build a LeafMesh from `skeleton` with the given face mode."""
    return MeshAssembler(skeleton).assemble(mode)


def choose_mode(rng: np.random.Generator) -> FaceMode:
    """Draw a face mode: compound one third of the time, else entire or complex edge."""
    if rng.random() < 0.33:
        return FaceMode.COMPOUND
    return FaceMode.ENTIRE if rng.random() < 0.5 else FaceMode.COMPLEX_EDGE


def generate_leaf(
    rng: Optional[np.random.Generator] = None,
    mode: Optional[Union[FaceMode, str]] = None,
    params: Optional[LeafParameters] = None,
) -> Tuple[Skeleton, LeafMesh]:
    """Sample parameters, grow a skeleton, pick a mode and assemble the mesh.

    Args:
        rng: Generator for every random draw; a configured default when None.
        mode: Face mode; drawn from `rng` when None.
        params: Growth parameters; sampled from `rng` when None.

    Returns:
        The skeleton and its mesh.
    """
    rng = rng if rng is not None else default_rng()
    skeleton = grow(params, rng)
    chosen = FaceMode(mode) if mode is not None else choose_mode(rng)
    return skeleton, assemble(skeleton, chosen)
