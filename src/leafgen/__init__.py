"""The leafgen package grows leaf vein skeletons and skins them with triangle meshes.

This package offers:
  - Recursive vein growth from randomized or explicit parameters.
  - Three face-generation strategies (compound fans, Delaunay, filtered Delaunay).
  - Normals, X-extent normalization and one-bone-per-vertex skin binding.

Submodules:
  - config: Logging level and default random generator configuration.
  - errors: Exception types.
  - leaf_parameters: Parameter container and distance-curve catalog.
  - skeleton: GrowthNode, Skeleton and SkeletonGrower.
  - triangulation: X/Z Delaunay triangulation and triangle filters.
  - leaf_mesh: LeafMesh, MeshAssembler and end-to-end generation.

Classes:
  GrowthNode, Skeleton, SkeletonGrower, LeafParameters, LeafMesh,
  MeshAssembler, FaceMode
"""

from .config import (
    config,
    configure,
    use,
    seed,
    default_rng,
    set_log_level,
)

from leafgen.errors import (
    LeafGenError,
    InvalidParameterError,
    DegenerateTriangulationError,
    DegenerateBoundsError,
)
from leafgen.leaf_parameters import LeafParameters, SECONDARY_AXIS_CURVES
from leafgen.skeleton import GrowthNode, Skeleton, SkeletonGrower, grow
from leafgen.leaf_mesh import (
    FaceMode,
    LeafMesh,
    MeshAssembler,
    assemble,
    choose_mode,
    generate_leaf,
)

__all__ = [
    # Core classes
    "GrowthNode",
    "Skeleton",
    "SkeletonGrower",
    "LeafParameters",
    "LeafMesh",
    "MeshAssembler",
    "FaceMode",
    # Operations
    "grow",
    "assemble",
    "choose_mode",
    "generate_leaf",
    "SECONDARY_AXIS_CURVES",
    # Errors
    "LeafGenError",
    "InvalidParameterError",
    "DegenerateTriangulationError",
    "DegenerateBoundsError",
    # Configuration
    "config",
    "configure",
    "use",
    "seed",
    "default_rng",
    "set_log_level",
]
