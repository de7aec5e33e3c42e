"""Module defining the leaf vein skeleton and its growth.

This module implements:
  - GrowthNode: one vein node with a transform relative to its parent.
  - Skeleton: the flattened node arena plus its layering indices.
  - SkeletonGrower: iterative branching growth from a single root.

Nodes live in a list and refer to each other by index, so parent walks are
O(depth) and there are no reference cycles. Leaves grow along +X; lateral
veins rotate about Y, which keeps the blade in the X/Z plane.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from functools import cached_property
from typing import Any, FrozenSet, Iterator, List, Optional, Sequence

import numpy as np
from numpy.typing import NDArray

from .config import default_rng
from .leaf_parameters import LeafParameters

_LOGGER = logging.getLogger(__name__)

# Lineages curled further than this stop growing.
CURL_LIMIT = 3.0 * math.pi / 2.0


def rotation_y(angle: float) -> NDArray[np.float64]:
    """Return the 3x3 rotation matrix about +Y by `angle` radians."""
    c, s = math.cos(angle), math.sin(angle)
    return np.array(
        [[c, 0.0, s], [0.0, 1.0, 0.0], [-s, 0.0, c]],
        dtype=float,
    )


@dataclass(eq=False)
class GrowthNode:
    """One node of the vein skeleton.

    Attributes:
        depth (int): Number of branching steps from the root.
        side_depth (int): Number of lateral branchings from the root.
        position (NDArray[np.float64]): Offset from the parent, in the
            parent's frame.
        rotation_y (float): Rotation about Y relative to the parent (radians).
        scale (float): Uniform scale relative to the parent.
        parent (Optional[int]): Index of the parent node; None for the root.
        forward (Optional[int]): Index of the main-vein continuation.
        left (Optional[int]): Index of the +angle lateral vein.
        right (Optional[int]): Index of the -angle lateral vein.
        index (Optional[int]): Vertex/bone index, assigned once by `Skeleton`.
    """

    depth: int
    side_depth: int
    position: NDArray[np.float64] = field(default_factory=lambda: np.zeros(3))
    rotation_y: float = 0.0
    scale: float = 1.0
    parent: Optional[int] = None
    forward: Optional[int] = None
    left: Optional[int] = None
    right: Optional[int] = None
    index: Optional[int] = None

    @property
    def children(self) -> List[int]:
        """Return the existing child indices in left, forward, right order."""
        return [c for c in (self.left, self.forward, self.right) if c is not None]

    @property
    def has_children(self) -> bool:
        return (
            self.left is not None or self.forward is not None or self.right is not None
        )

    def local_matrix(self) -> NDArray[np.float64]:
        """Return the 4x4 transform T * R_y * S relative to the parent."""
        m = np.eye(4, dtype=float)
        m[:3, :3] = rotation_y(self.rotation_y) * self.scale
        m[:3, 3] = self.position
        return m

    def __repr__(self) -> str:
        """Return a short string representation of the node."""
        return (
            f"GrowthNode(index={self.index}, depth={self.depth}, "
            f"side_depth={self.side_depth}, parent={self.parent})"
        )


def cumulative_rotation(nodes: Sequence[GrowthNode], node_id: int) -> float:
    """Sum `rotation_y` over `node_id` and all of its ancestors."""
    total = 0.0
    current: Optional[int] = node_id
    while current is not None:
        node = nodes[current]
        total += node.rotation_y
        current = node.parent
    return total


class Skeleton:
    """Flattened leaf skeleton with derived layering indices.

    The node list is taken in creation order; each node's `index` is set to
    its position here exactly once. After construction the skeleton is
    read-only.

    Attributes:
        nodes (List[GrowthNode]): All nodes, root first.
        parameters (Optional[LeafParameters]): Parameters the skeleton grew from.
        depth_layers (List[List[int]]): Node indices grouped by depth.
        side_depth_layers (List[List[int]]): Node indices grouped by side depth.
        edge_layer (FrozenSet[int]): Childless nodes plus the root.
    """

    def __init__(
        self,
        nodes: Sequence[GrowthNode],
        parameters: Optional[LeafParameters] = None,
    ) -> None:
        """Flatten `nodes`, assign indices and build the layer views.

        Raises:
            ValueError: If `nodes` is empty.
            RuntimeError: If a node already carries an index.
        """
        if not nodes:
            raise ValueError("Skeleton needs at least a root node.")
        self.nodes: List[GrowthNode] = list(nodes)
        self.parameters = parameters

        for i, node in enumerate(self.nodes):
            if node.index is not None:
                _LOGGER.error("Skeleton: node %d already indexed as %d", i, node.index)
                raise RuntimeError(f"Node {i} was already assigned index {node.index}")
            node.index = i

        self.depth_layers: List[List[int]] = []
        self.side_depth_layers: List[List[int]] = []
        for node in self.nodes:
            self._layer(self.depth_layers, node.depth).append(node.index)
            self._layer(self.side_depth_layers, node.side_depth).append(node.index)

        edges = {n.index for n in self.nodes if not n.has_children}
        edges.add(0)  # the root is always treated as boundary
        self.edge_layer: FrozenSet[int] = frozenset(edges)

        _LOGGER.debug(
            "Skeleton: nodes=%d depth_layers=%d side_depth_layers=%d edges=%d",
            len(self.nodes),
            len(self.depth_layers),
            len(self.side_depth_layers),
            len(self.edge_layer),
        )

    @staticmethod
    def _layer(layers: List[List[int]], k: int) -> List[int]:
        while len(layers) <= k:
            layers.append([])
        return layers[k]

    def __len__(self) -> int:
        return len(self.nodes)

    def __iter__(self) -> Iterator[GrowthNode]:
        return iter(self.nodes)

    def __getitem__(self, i: int) -> GrowthNode:
        return self.nodes[i]

    @property
    def root(self) -> GrowthNode:
        return self.nodes[0]

    def cumulative_rotation(self, i: int) -> float:
        """Return the summed Y rotation from node `i` up to the root."""
        return cumulative_rotation(self.nodes, i)

    def path_to_root(self, i: int) -> List[int]:
        """Return node indices from `i` up to and including the root."""
        path = []
        current: Optional[int] = i
        while current is not None:
            path.append(current)
            current = self.nodes[current].parent
        return path

    def is_edge(self, i: int) -> bool:
        return i in self.edge_layer

    @cached_property
    def parent_indices(self) -> NDArray[np.int64]:
        """Parent index per node, -1 for the root."""
        return np.array(
            [-1 if n.parent is None else n.parent for n in self.nodes], dtype=np.int64
        )

    @cached_property
    def world_matrices(self) -> NDArray[np.float64]:
        """World transforms, shape (N, 4, 4).

        Parents always precede their children in the node list, so one pass
        in index order composes every chain.
        """
        mats = np.empty((len(self.nodes), 4, 4), dtype=float)
        for i, node in enumerate(self.nodes):
            local = node.local_matrix()
            mats[i] = local if node.parent is None else mats[node.parent] @ local
        return mats

    @cached_property
    def world_positions(self) -> NDArray[np.float64]:
        """World-space node positions, shape (N, 3), in index order."""
        positions = self.world_matrices[:, :3, 3].copy()
        positions.setflags(write=False)
        return positions

    def __repr__(self) -> str:
        """Return a string representation of the skeleton."""
        return (
            f"Skeleton(nodes={len(self.nodes)}, depth={len(self.depth_layers) - 1}, "
            f"edges={len(self.edge_layer)})"
        )


class SkeletonGrower:
    """Grow a leaf vein skeleton from a single root.

    Each iteration lets every node on the growth frontier add a forward
    child and up to two lateral children. Step lengths, scale and branch
    angle then decay geometrically, which tapers the leaf.

    Attributes:
        params (LeafParameters): Validated growth parameters.
    """

    def __init__(self, params: LeafParameters) -> None:
        """Validate and store the growth parameters.

        Raises:
            TypeError: If `params` is not a LeafParameters instance.
            InvalidParameterError: If the parameters are rejected.
        """
        if not isinstance(params, LeafParameters):
            raise TypeError("The parameters must be an instance of LeafParameters")
        params.validate()
        self.params = params

    @staticmethod
    def _add_node(
        nodes: List[GrowthNode],
        parent_id: int,
        side_step: int,
        position: NDArray[Any],
        rotation: float,
        scale: float,
    ) -> int:
        """Append a child of `parent_id` to `nodes` and return its index."""
        parent = nodes[parent_id]
        nodes.append(
            GrowthNode(
                depth=parent.depth + 1,
                side_depth=parent.side_depth + side_step,
                position=np.asarray(position, dtype=float),
                rotation_y=rotation,
                scale=scale,
                parent=parent_id,
            )
        )
        return len(nodes) - 1

    def _add_children(
        self,
        nodes: List[GrowthNode],
        node_id: int,
        main_dist: float,
        secondary_dist: float,
        angle: float,
        scale: float,
    ) -> List[int]:
        """Apply the branch rule to `node_id`; return the new child indices."""
        node = nodes[node_id]
        max_side_depth = self.params.max_side_depth

        total_rotation = cumulative_rotation(nodes, node_id)
        if abs(total_rotation) > CURL_LIMIT:
            _LOGGER.debug(
                "node %d: curl %.4f exceeds limit; left as tip", node_id, total_rotation
            )
            return []

        always = self.params.always_secondary
        side_scale = scale * self.params.secondary_scale
        # side depth cap: lateral children sit one level deeper than this node
        lateral = node.side_depth < max_side_depth
        offset = np.array([secondary_dist, 0.0, 0.0], dtype=float)
        children: List[int] = []

        if lateral and (total_rotation >= 0 or always):
            node.left = self._add_node(
                nodes, node_id, 1, rotation_y(angle) @ offset, angle, side_scale
            )
            children.append(node.left)

        node.forward = self._add_node(
            nodes, node_id, 0, np.array([main_dist, 0.0, 0.0]), 0.0, scale
        )
        children.append(node.forward)

        if lateral and (total_rotation <= 0 or always):
            node.right = self._add_node(
                nodes, node_id, 1, rotation_y(-angle) @ offset, -angle, side_scale
            )
            children.append(node.right)

        return children

    def grow(self) -> Skeleton:
        """Run all iterations and return the flattened skeleton."""
        p = self.params
        main_dist = float(p.main_axis_distance)
        angle = float(p.secondary_axis_angle)
        scale = float(p.scale)

        nodes: List[GrowthNode] = [GrowthNode(depth=0, side_depth=0)]
        frontier: List[int] = [0]

        for i, progress in enumerate(p.progress_values()):
            secondary_dist = p.secondary_axis_distance_base * float(
                p.secondary_axis_distance_curve(progress)
            )
            new_frontier: List[int] = []
            for node_id in frontier:
                new_frontier.extend(
                    self._add_children(
                        nodes, node_id, main_dist, secondary_dist, angle, scale
                    )
                )
            frontier = new_frontier
            _LOGGER.debug(
                "Iteration %d: progress=%.3f secondary=%.4f new=%d total=%d",
                i,
                progress,
                secondary_dist,
                len(new_frontier),
                len(nodes),
            )

            scale *= p.scale_multiplier
            main_dist *= p.main_axis_distance_multiplier
            angle *= p.angle_multiplier

        skeleton = Skeleton(nodes, parameters=p)
        _LOGGER.info(
            "Grew skeleton: iterations=%d nodes=%d edges=%d",
            p.iteration_count,
            len(skeleton),
            len(skeleton.edge_layer),
        )
        return skeleton


def grow(
    params: Optional[LeafParameters] = None,
    rng: Optional[np.random.Generator] = None,
) -> Skeleton:
    """Grow a leaf skeleton.

    Args:
        params: Growth parameters. When None, a parameter set is sampled
            from `rng`.
        rng: Generator for sampling; a configured default is used when None.

    Returns:
        The grown `Skeleton`.

    Raises:
        InvalidParameterError: If `params` is rejected before growth starts.
    """
    if params is None:
        params = LeafParameters.sample(rng if rng is not None else default_rng())
    return SkeletonGrower(params).grow()
