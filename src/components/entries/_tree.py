"""
Tree Position Manager - nested-set ordering per section.

Each Structure section owns one synthetic root node (entry_id=None, depth 0).
Top-level entries are children of that root (depth 1).

Key behaviors:
- append_child inserts a new node as the last child of a parent
- move_as_last / move_as_first / move_after relocate a whole subtree,
  keeping the relative order of its descendants
- Moves open a gap at the target key, shift the subtree into it, then
  close the gap left behind; all three steps run inside the caller's
  unit of work so they commit or roll back together
- Cross-section moves and moves into a node's own subtree are rejected
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from src.core.entities import StructureNode
from src.core.ports.db import StructureRepoPort

from .models import InvalidMoveError, RootMissingError

logger = logging.getLogger(__name__)


class TreePositionManager:
    def __init__(self, repo: StructureRepoPort) -> None:
        self._repo = repo

    # --- Lookups ---

    def root_for(self, section_id: int) -> StructureNode:
        root = self._repo.get_root(section_id)
        if root is None:
            raise RootMissingError(section_id)
        return root

    def node_for(self, entry_id: int) -> StructureNode | None:
        return self._repo.get_by_entry(entry_id)

    def parent_of(self, node: StructureNode) -> StructureNode | None:
        return self._repo.parent_of(node)

    def ancestors(self, node: StructureNode, max_delta: int | None = None) -> list[StructureNode]:
        """Nodes whose interval strictly contains node's, root excluded, outermost first."""
        min_depth = node.depth - max_delta if max_delta is not None else None
        nodes = self._repo.list_between(node.section_id, ancestors_of=node, min_depth=min_depth)
        return [n for n in nodes if not n.is_root]

    def descendants(self, node: StructureNode, max_delta: int | None = None) -> list[StructureNode]:
        """Nodes inside node's interval, in tree order."""
        max_depth = node.depth + max_delta if max_delta is not None else None
        return self._repo.list_between(node.section_id, descendants_of=node, max_depth=max_depth)

    # --- Mutations ---

    def append_child(self, node: StructureNode, parent: StructureNode) -> StructureNode:
        if node.id is not None:
            raise InvalidMoveError("node is already part of a tree")
        if node.section_id != parent.section_id:
            raise InvalidMoveError("parent belongs to a different section")

        parent = self._refresh(parent)
        key = parent.rgt
        self._repo.shift(parent.section_id, key, 2)
        inserted = self._repo.insert(
            node.model_copy(update={"lft": key, "rgt": key + 1, "depth": parent.depth + 1})
        )
        logger.debug(
            "appended entry %s under node %s at [%s, %s]",
            inserted.entry_id,
            parent.id,
            inserted.lft,
            inserted.rgt,
        )
        return inserted

    def move_as_last(self, node: StructureNode, parent: StructureNode) -> StructureNode:
        parent = self._refresh(parent)
        return self._move(node, parent, parent.rgt, 1)

    def move_as_first(self, node: StructureNode, parent: StructureNode) -> StructureNode:
        parent = self._refresh(parent)
        return self._move(node, parent, parent.lft + 1, 1)

    def move_after(self, node: StructureNode, sibling: StructureNode) -> StructureNode:
        if sibling.is_root:
            raise InvalidMoveError("nothing can be placed beside the section root")
        sibling = self._refresh(sibling)
        return self._move(node, sibling, sibling.rgt + 1, 0)

    def _move(
        self, node: StructureNode, target: StructureNode, key: int, level_up: int
    ) -> StructureNode:
        if node.section_id != target.section_id:
            raise InvalidMoveError("entries belong to different sections")
        if node.is_root:
            raise InvalidMoveError("the section root cannot be moved")

        node = self._refresh(node)
        if node.id == target.id or node.contains(target):
            raise InvalidMoveError("an entry cannot be moved inside itself")

        section_id = node.section_id
        left, right = node.lft, node.rgt
        size = right - left + 1
        depth_delta = target.depth + level_up - node.depth

        self._repo.shift(section_id, key, size)
        if left >= key:
            left += size
            right += size

        self._repo.shift_subtree(section_id, left, right, key - left, depth_delta)
        self._repo.shift(section_id, right + 1, -size)

        moved = self._refresh(node)
        logger.debug(
            "moved entry %s to [%s, %s] depth %s", moved.entry_id, moved.lft, moved.rgt, moved.depth
        )
        return moved

    def _refresh(self, node: StructureNode) -> StructureNode:
        if node.is_root:
            current = self._repo.get_root(node.section_id)
        else:
            assert node.entry_id is not None
            current = self._repo.get_by_entry(node.entry_id)
        if current is None:
            raise InvalidMoveError(f"node {node.id} is not part of the tree")
        return current


def verify_nested_set(nodes: Iterable[StructureNode]) -> list[str]:
    """
    Check one section's nodes for nested-set consistency.

    Returns a list of problems (empty when the tree is sound): bounds must be
    exactly 1..2N, every interval must nest inside its parent's, and depth
    must equal the number of enclosing intervals.
    """
    ordered = sorted(nodes, key=lambda n: n.lft)
    problems: list[str] = []

    bounds = sorted([n.lft for n in ordered] + [n.rgt for n in ordered])
    if bounds != list(range(1, 2 * len(ordered) + 1)):
        problems.append("bounds are not a contiguous 1..2N sequence")

    stack: list[StructureNode] = []
    for node in ordered:
        if node.lft >= node.rgt:
            problems.append(f"node {node.id}: lft {node.lft} >= rgt {node.rgt}")
        while stack and stack[-1].rgt < node.lft:
            stack.pop()
        if stack:
            parent = stack[-1]
            if not parent.contains(node):
                problems.append(f"node {node.id} overlaps node {parent.id}")
            if node.depth != parent.depth + 1:
                problems.append(
                    f"node {node.id}: depth {node.depth}, expected {parent.depth + 1}"
                )
        elif node.depth != 0:
            problems.append(f"node {node.id}: top-level node has depth {node.depth}")
        stack.append(node)

    return problems
