"""
Nested-set tree manager over an in-memory structure repository.
"""

from __future__ import annotations

import random

import pytest

from src.components.entries import InvalidMoveError, RootMissingError, TreePositionManager
from src.components.entries._tree import verify_nested_set
from src.core.entities import StructureNode


class MemoryStructureRepo:
    """In-memory StructureRepoPort."""

    def __init__(self) -> None:
        self.nodes: dict[int, StructureNode] = {}
        self._next_id = 1

    def create_root(self, section_id: int) -> StructureNode:
        return self.insert(StructureNode(section_id=section_id, lft=1, rgt=2, depth=0))

    def get_by_entry(self, entry_id: int) -> StructureNode | None:
        for node in self.nodes.values():
            if node.entry_id == entry_id:
                return node.model_copy()
        return None

    def get_root(self, section_id: int) -> StructureNode | None:
        for node in self.nodes.values():
            if node.section_id == section_id and node.entry_id is None:
                return node.model_copy()
        return None

    def insert(self, node: StructureNode) -> StructureNode:
        stored = node.model_copy(update={"id": self._next_id})
        self.nodes[self._next_id] = stored
        self._next_id += 1
        return stored.model_copy()

    def shift(self, section_id: int, first: int, delta: int) -> None:
        for node in self._section(section_id):
            if node.lft >= first:
                node.lft += delta
            if node.rgt >= first:
                node.rgt += delta

    def shift_subtree(
        self, section_id: int, lft: int, rgt: int, delta: int, depth_delta: int
    ) -> None:
        for node in self._section(section_id):
            if node.lft >= lft and node.rgt <= rgt:
                node.lft += delta
                node.rgt += delta
                node.depth += depth_delta

    def list_between(
        self,
        section_id: int,
        *,
        ancestors_of: StructureNode | None = None,
        descendants_of: StructureNode | None = None,
        min_depth: int | None = None,
        max_depth: int | None = None,
    ) -> list[StructureNode]:
        found = []
        for node in self._section(section_id):
            if ancestors_of and not node.contains(ancestors_of):
                continue
            if descendants_of and not descendants_of.contains(node):
                continue
            if min_depth is not None and node.depth < min_depth:
                continue
            if max_depth is not None and node.depth > max_depth:
                continue
            found.append(node.model_copy())
        return sorted(found, key=lambda n: n.lft)

    def parent_of(self, node: StructureNode) -> StructureNode | None:
        enclosing = self.list_between(node.section_id, ancestors_of=node)
        return enclosing[-1] if enclosing else None

    def _section(self, section_id: int) -> list[StructureNode]:
        return [n for n in self.nodes.values() if n.section_id == section_id]


@pytest.fixture
def repo() -> MemoryStructureRepo:
    repo = MemoryStructureRepo()
    repo.create_root(1)
    repo.create_root(2)
    return repo


@pytest.fixture
def tree(repo: MemoryStructureRepo) -> TreePositionManager:
    return TreePositionManager(repo)


def _add(tree: TreePositionManager, entry_id: int, parent: StructureNode) -> StructureNode:
    return tree.append_child(StructureNode(section_id=parent.section_id, entry_id=entry_id), parent)


def _order(tree: TreePositionManager, section_id: int = 1) -> list[int | None]:
    root = tree.root_for(section_id)
    return [n.entry_id for n in tree.descendants(root)]


def _node(tree: TreePositionManager, entry_id: int) -> StructureNode:
    node = tree.node_for(entry_id)
    assert node is not None
    return node


class TestAppend:
    def test_append_to_empty_root(self, tree: TreePositionManager) -> None:
        node = _add(tree, 10, tree.root_for(1))
        assert (node.lft, node.rgt, node.depth) == (2, 3, 1)
        root = tree.root_for(1)
        assert (root.lft, root.rgt) == (1, 4)

    def test_children_append_in_order(self, tree: TreePositionManager) -> None:
        root = tree.root_for(1)
        _add(tree, 10, root)
        _add(tree, 11, root)
        _add(tree, 12, _node(tree, 10))
        assert _order(tree) == [10, 12, 11]
        assert _node(tree, 12).depth == 2

    def test_append_with_stale_parent_refreshes(
        self, tree: TreePositionManager, repo: MemoryStructureRepo
    ) -> None:
        """The parent's bounds are re-read before the gap is opened."""
        stale_root = tree.root_for(1)
        _add(tree, 10, stale_root)
        _add(tree, 11, stale_root)
        assert _order(tree) == [10, 11]
        assert verify_nested_set(repo.list_between(1)) == []

    def test_rejects_existing_node(self, tree: TreePositionManager) -> None:
        node = _add(tree, 10, tree.root_for(1))
        with pytest.raises(InvalidMoveError):
            tree.append_child(node, tree.root_for(1))

    def test_rejects_cross_section_parent(self, tree: TreePositionManager) -> None:
        with pytest.raises(InvalidMoveError):
            tree.append_child(StructureNode(section_id=1, entry_id=10), tree.root_for(2))

    def test_missing_root(self, tree: TreePositionManager) -> None:
        with pytest.raises(RootMissingError):
            tree.root_for(99)


class TestMoves:
    @pytest.fixture
    def populated(self, tree: TreePositionManager) -> TreePositionManager:
        # 1
        #   2
        #     3
        # 4
        # 5
        root = tree.root_for(1)
        _add(tree, 1, root)
        _add(tree, 2, _node(tree, 1))
        _add(tree, 3, _node(tree, 2))
        _add(tree, 4, root)
        _add(tree, 5, root)
        return tree

    def test_move_as_last_carries_subtree(self, populated: TreePositionManager) -> None:
        moved = populated.move_as_last(_node(populated, 2), _node(populated, 5))
        assert moved.depth == 2
        assert _order(populated) == [1, 4, 5, 2, 3]
        assert _node(populated, 3).depth == 3

    def test_move_as_first(self, populated: TreePositionManager) -> None:
        populated.move_as_first(_node(populated, 5), populated.root_for(1))
        assert _order(populated) == [5, 1, 2, 3, 4]

    def test_move_to_top_level(self, populated: TreePositionManager) -> None:
        moved = populated.move_as_last(_node(populated, 3), populated.root_for(1))
        assert moved.depth == 1
        assert _order(populated) == [1, 2, 4, 5, 3]

    def test_move_after_sibling(self, populated: TreePositionManager) -> None:
        moved = populated.move_after(_node(populated, 1), _node(populated, 4))
        assert moved.depth == 1
        assert _order(populated) == [4, 1, 2, 3, 5]

    def test_move_after_nested_node_changes_level(self, populated: TreePositionManager) -> None:
        moved = populated.move_after(_node(populated, 5), _node(populated, 2))
        assert moved.depth == 2
        parent = populated.parent_of(moved)
        assert parent is not None and parent.entry_id == 1

    def test_move_into_own_subtree_rejected(self, populated: TreePositionManager) -> None:
        with pytest.raises(InvalidMoveError):
            populated.move_as_last(_node(populated, 1), _node(populated, 3))

    def test_move_under_self_rejected(self, populated: TreePositionManager) -> None:
        with pytest.raises(InvalidMoveError):
            populated.move_as_last(_node(populated, 1), _node(populated, 1))

    def test_cannot_be_sibling_of_root(self, populated: TreePositionManager) -> None:
        with pytest.raises(InvalidMoveError):
            populated.move_after(_node(populated, 1), populated.root_for(1))

    def test_cross_section_rejected(self, populated: TreePositionManager) -> None:
        with pytest.raises(InvalidMoveError):
            populated.move_as_last(_node(populated, 1), populated.root_for(2))

    def test_moving_root_rejected(self, populated: TreePositionManager) -> None:
        with pytest.raises(InvalidMoveError):
            populated.move_as_last(populated.root_for(1), _node(populated, 4))


class TestQueries:
    @pytest.fixture
    def chain(self, tree: TreePositionManager) -> TreePositionManager:
        parent = tree.root_for(1)
        for entry_id in range(1, 6):
            parent = _add(tree, entry_id, parent)
        return tree

    def test_ancestors_outermost_first(self, chain: TreePositionManager) -> None:
        ancestors = chain.ancestors(_node(chain, 4))
        assert [n.entry_id for n in ancestors] == [1, 2, 3]

    def test_ancestors_max_delta(self, chain: TreePositionManager) -> None:
        ancestors = chain.ancestors(_node(chain, 4), max_delta=2)
        assert [n.entry_id for n in ancestors] == [2, 3]

    def test_top_level_has_no_ancestors(self, chain: TreePositionManager) -> None:
        assert chain.ancestors(_node(chain, 1)) == []

    def test_descendants_tree_order(self, chain: TreePositionManager) -> None:
        assert [n.entry_id for n in chain.descendants(_node(chain, 2))] == [3, 4, 5]

    def test_descendants_max_delta(self, chain: TreePositionManager) -> None:
        assert [n.entry_id for n in chain.descendants(_node(chain, 2), max_delta=1)] == [3]

    def test_leaf_has_no_descendants(self, chain: TreePositionManager) -> None:
        assert chain.descendants(_node(chain, 5)) == []


class TestVerifyNestedSet:
    def test_detects_overlap(self) -> None:
        nodes = [
            StructureNode(id=1, section_id=1, lft=1, rgt=6, depth=0),
            StructureNode(id=2, section_id=1, entry_id=1, lft=2, rgt=4, depth=1),
            StructureNode(id=3, section_id=1, entry_id=2, lft=3, rgt=5, depth=2),
        ]
        assert verify_nested_set(nodes)

    def test_detects_bad_depth(self) -> None:
        nodes = [
            StructureNode(id=1, section_id=1, lft=1, rgt=4, depth=0),
            StructureNode(id=2, section_id=1, entry_id=1, lft=2, rgt=3, depth=2),
        ]
        assert verify_nested_set(nodes) == ["node 2: depth 2, expected 1"]

    def test_random_moves_keep_tree_sound(
        self, tree: TreePositionManager, repo: MemoryStructureRepo
    ) -> None:
        rng = random.Random(1234)
        root = tree.root_for(1)
        for entry_id in range(1, 16):
            existing = [root] + [_node(tree, i) for i in range(1, entry_id)]
            _add(tree, entry_id, rng.choice(existing))

        for _ in range(200):
            node = _node(tree, rng.randint(1, 15))
            target_id = rng.randint(0, 15)
            target = tree.root_for(1) if target_id == 0 else _node(tree, target_id)
            op = rng.choice(["last", "first", "after"])
            try:
                if op == "last":
                    tree.move_as_last(node, target)
                elif op == "first":
                    tree.move_as_first(node, target)
                else:
                    tree.move_after(node, target)
            except InvalidMoveError:
                continue

            problems = verify_nested_set(repo.list_between(1))
            assert problems == []

        assert sorted(e for e in _order(tree) if e is not None) == list(range(1, 16))
