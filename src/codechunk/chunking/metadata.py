"""
Metadata extraction: scope paths, signatures and comment association.

The tree shape is left untouched. Leading comments that directly precede
a sibling are recorded as ``consumed`` so the balancer folds them into that
sibling's chunk instead of emitting them on their own.
"""

from __future__ import annotations

from typing import Dict, FrozenSet, List, NamedTuple, Optional, Tuple

from .hierarchy import ChunkTree
from .tokens import TokenStream
from .types import TRAILING_COMMENT, Boundary, DeclaredKind, TokenKind

DEFAULT_ANONYMOUS_PLACEHOLDER = "(anonymous)"


class NodeMetadata(NamedTuple):
    scope_path: Tuple[str, ...]
    signature: str
    leading_comment: Optional[str]
    # Start of the node's chunk once a leading comment has been folded in
    extent_start: int
    trailing_comment: Optional[str]


class TreeMetadata(NamedTuple):
    nodes: Tuple[NodeMetadata, ...]
    consumed: FrozenSet[int]

    def __getitem__(self, node_id: int) -> NodeMetadata:
        return self.nodes[node_id]


def _normalize(text: str) -> str:
    return " ".join(text.split())


def _trailing_comment_token(boundary: Boundary, stream: TokenStream):
    if TRAILING_COMMENT not in boundary.modifiers:
        return None
    index = stream.index_after(boundary.end) - 1
    if index < 0:
        return None
    token = stream[index]
    return token if token.kind == TokenKind.COMMENT else None


def signature_for(boundary: Boundary, stream: TokenStream) -> str:
    """Whitespace-normalized declaration header of a boundary."""
    if boundary.kind == DeclaredKind.COMMENT:
        return ""
    if boundary.body_start is not None:
        end = boundary.body_start
    else:
        end = boundary.end
        trailing = _trailing_comment_token(boundary, stream)
        if trailing is not None:
            end = trailing.start
    return _normalize(stream.text(boundary.start, end))


def _is_adjacent(stream: TokenStream, end: int, start: int) -> bool:
    gap = stream.text(end, start)
    return not gap.strip() and gap.count("\n") < 2


def extract_metadata(
    tree: ChunkTree,
    stream: TokenStream,
    anonymous_placeholder: str = DEFAULT_ANONYMOUS_PLACEHOLDER,
) -> TreeMetadata:
    """
    Annotate every node of ``tree``.

    Args:
        tree: Containment tree for one file
        stream: The token stream the tree's boundaries refer to
        anonymous_placeholder: Scope path segment for unnamed constructs

    Returns:
        TreeMetadata indexed by node id
    """
    paths: Dict[int, Tuple[str, ...]] = {}
    leading: Dict[int, Tuple[int, str]] = {}
    consumed: List[int] = []

    for parent_id in [None] + [node.id for node in tree.nodes]:
        siblings = tree.children_of(parent_id)
        for current, following in zip(siblings, siblings[1:]):
            comment = tree[current].boundary
            target = tree[following].boundary
            if comment.kind != DeclaredKind.COMMENT or target.kind == DeclaredKind.COMMENT:
                continue
            if _is_adjacent(stream, comment.end, target.start):
                leading[following] = (comment.start, stream.text(comment.start, comment.end))
                consumed.append(current)

    for node in tree.preorder():
        base = paths[node.parent] if node.parent is not None else ()
        name = node.boundary.name
        if name is None:
            paths[node.id] = base
        elif not name:
            paths[node.id] = base + (anonymous_placeholder,)
        else:
            # Out-of-line definitions (`Registry::size`) contribute every qualifier
            paths[node.id] = base + tuple(name.split("::"))

    result: List[NodeMetadata] = []
    for node in tree.nodes:
        boundary = node.boundary
        extent_start, comment_text = leading.get(node.id, (boundary.start, None))
        trailing = _trailing_comment_token(boundary, stream)
        result.append(
            NodeMetadata(
                scope_path=paths[node.id],
                signature=signature_for(boundary, stream),
                leading_comment=comment_text,
                extent_start=extent_start,
                trailing_comment=trailing.text if trailing is not None else None,
            )
        )

    return TreeMetadata(tuple(result), frozenset(consumed))
