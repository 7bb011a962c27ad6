"""
Hierarchy builder.

Assembles scanner boundaries into a containment tree. The tree is an arena:
nodes live in one list and refer to their parent and children by integer id,
so nothing holds an owning reference to anything but the arena itself.
"""

from __future__ import annotations

from typing import Iterator, List, NamedTuple, Optional, Sequence, Tuple

from .errors import MalformedNestingError
from .types import Boundary


class ChunkNode(NamedTuple):
    """A node of the containment tree."""

    id: int
    boundary: Boundary
    parent: Optional[int]
    children: Tuple[int, ...]


class ChunkTree:
    """Arena of ``ChunkNode`` values plus the ids of the top-level nodes."""

    __slots__ = ("nodes", "roots")

    def __init__(self, nodes: Sequence[ChunkNode], roots: Sequence[int]):
        self.nodes: Tuple[ChunkNode, ...] = tuple(nodes)
        self.roots: Tuple[int, ...] = tuple(roots)

    def __len__(self) -> int:
        return len(self.nodes)

    def __getitem__(self, node_id: int) -> ChunkNode:
        return self.nodes[node_id]

    def children_of(self, node_id: Optional[int]) -> Tuple[int, ...]:
        """Child ids of a node; ``None`` addresses the file root."""
        if node_id is None:
            return self.roots
        return self.nodes[node_id].children

    def ancestors(self, node_id: int) -> List[int]:
        """Ids from the outermost ancestor down to the node's parent."""
        chain: List[int] = []
        parent = self.nodes[node_id].parent
        while parent is not None:
            chain.append(parent)
            parent = self.nodes[parent].parent
        chain.reverse()
        return chain

    def preorder(self) -> Iterator[ChunkNode]:
        """Nodes in source order, parents before children."""
        stack = list(reversed(self.roots))
        while stack:
            node = self.nodes[stack.pop()]
            yield node
            stack.extend(reversed(node.children))

    def depth(self) -> int:
        deepest = 0
        for node in self.nodes:
            deepest = max(deepest, len(self.ancestors(node.id)) + 1)
        return deepest


def build_tree(boundaries: Sequence[Boundary]) -> ChunkTree:
    """
    Build the containment tree for one file's boundaries.

    Boundaries are sorted by ``(start, -end)`` so that for a shared start the
    outer range is inserted first. Each boundary becomes a child of the
    innermost still-open boundary containing it.

    Raises:
        MalformedNestingError: if any two boundaries partially overlap
    """
    ordered = sorted(boundaries, key=lambda b: (b.start, -b.end))

    parents: List[Optional[int]] = []
    children: List[List[int]] = []
    roots: List[int] = []
    open_stack: List[int] = []

    for node_id, boundary in enumerate(ordered):
        while open_stack and ordered[open_stack[-1]].end <= boundary.start:
            open_stack.pop()

        parent: Optional[int] = None
        if open_stack:
            enclosing = ordered[open_stack[-1]]
            if not enclosing.contains(boundary):
                raise MalformedNestingError(
                    (enclosing.start, enclosing.end), (boundary.start, boundary.end)
                )
            parent = open_stack[-1]
            children[parent].append(node_id)
        else:
            roots.append(node_id)

        parents.append(parent)
        children.append([])
        open_stack.append(node_id)

    nodes = [
        ChunkNode(node_id, boundary, parents[node_id], tuple(children[node_id]))
        for node_id, boundary in enumerate(ordered)
    ]
    return ChunkTree(nodes, roots)
