"""Exception types raised by leafgen.

All errors derive from `LeafGenError` and from `ValueError`, so callers that
already guard against bad values keep working.
"""


class LeafGenError(Exception):
    """Base class for leafgen errors."""


class InvalidParameterError(LeafGenError, ValueError):
    """Growth parameters were rejected before any node was created."""


class DegenerateTriangulationError(LeafGenError, ValueError):
    """The 2D Delaunay triangulation could not be built.

    Raised for fewer than three distinct points or collinear input. The
    assembler recovers from it by emitting a vertex-only mesh.
    """


class DegenerateBoundsError(LeafGenError, ValueError):
    """The mesh bounding box has zero width along X.

    No finite normalization scale exists; the caller decides whether to
    regrow or accept an unnormalized mesh.
    """
