"""
Scene Graph Abstraction
=======================

The only shape a model loader has to produce for the comparison core:
a hierarchy of nodes, each with a world transform and optionally a vertex
buffer. Any object implementing ``GeometryNode`` works; ``SceneNode`` is the
concrete implementation used by the loader and the tests.
"""

from typing import Iterator, List, Optional, Protocol, Sequence

import numpy as np
from .types import AlignmentResult, Point3, PointSetLike, as_point_array


class GeometryNode(Protocol):
    """Node of a hierarchical geometric scene."""

    def children(self) -> Sequence['GeometryNode']:
        ...

    def world_transform(self) -> np.ndarray:
        ...

    def vertex_positions(self) -> Optional[np.ndarray]:
        ...


class SceneNode:
    """
    Transform node with an optional local-space vertex buffer.

    The local transform is composed from position, Euler XYZ rotation (radians)
    and a uniform scale, applied as T @ R @ S.
    """

    def __init__(self,
                 name: str = "",
                 vertices: Optional[PointSetLike] = None,
                 position: Sequence[float] = (0.0, 0.0, 0.0),
                 rotation: Sequence[float] = (0.0, 0.0, 0.0),
                 scale: float = 1.0,
                 children: Optional[Sequence['SceneNode']] = None):
        self.name = name
        # Vertex buffers may legitimately carry non-finite values; extraction filters them
        self.vertices = None if vertices is None else np.array(vertices, dtype=np.float64).reshape(-1, 3)
        self.position = np.asarray(position, dtype=np.float64).copy()
        self.rotation = np.asarray(rotation, dtype=np.float64).copy()
        self.scale = float(scale)
        self.parent: Optional['SceneNode'] = None
        self._children: List['SceneNode'] = []

        for child in children or ():
            self.add(child)

    def __repr__(self):
        n_vertices = 0 if self.vertices is None else len(self.vertices)
        return f"SceneNode(name={self.name!r}, vertices={n_vertices}, children={len(self._children)})"

    def add(self, child: 'SceneNode') -> 'SceneNode':
        """Attach a child node and return it."""
        if child.parent is not None:
            child.parent._children.remove(child)
        child.parent = self
        self._children.append(child)
        return child

    def children(self) -> Sequence['SceneNode']:
        return tuple(self._children)

    def local_transform(self) -> AlignmentResult:
        # Not validated: non-finite transforms surface as dropped vertices during extraction
        return AlignmentResult(
            translation=Point3(*(float(v) for v in self.position)),
            scale=self.scale,
            rotation=Point3(*(float(a) for a in self.rotation)),
        )

    def local_matrix(self) -> np.ndarray:
        return self.local_transform().to_matrix()

    def world_transform(self) -> np.ndarray:
        """Accumulated 4x4 transform from this node up to the root."""
        matrix = self.local_matrix()
        node = self.parent
        while node is not None:
            matrix = node.local_matrix() @ matrix
            node = node.parent
        return matrix

    def vertex_positions(self) -> Optional[np.ndarray]:
        return self.vertices

    def apply_alignment(self, result: AlignmentResult) -> None:
        """
        Compose an alignment onto this node's local transform.

        Alignments are solved in world space, so this is exact for root nodes
        (and for children of identity-transform parents).
        """
        combined = self.local_transform().then(result)
        self.position = np.asarray(combined.translation, dtype=np.float64)
        self.rotation = np.asarray(combined.rotation, dtype=np.float64)
        self.scale = combined.scale


def iter_nodes(root: GeometryNode) -> Iterator[GeometryNode]:
    """Depth-first pre-order traversal, children in declaration order."""
    stack = [root]
    while stack:
        node = stack.pop()
        yield node
        stack.extend(reversed(list(node.children())))


def point_cloud_node(points: PointSetLike, name: str = "points") -> SceneNode:
    """Wrap an already world-space point set as a single identity-transform node."""
    return SceneNode(name=name, vertices=as_point_array(points))
