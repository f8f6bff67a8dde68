"""
Editor session - the mutable document model and its commands.

One Editor owns one document for one editing session. Commands mutate the
tree in place and keep the selection pointing at a text leaf. Events are
processed one at a time, in arrival order; nothing here is thread-safe.

Key behaviors:
- insert_text goes through on_insert_text handlers (autoformat) first
- key_down goes through on_key_down handlers in registry order; the first
  handler that returns True wins, otherwise Enter/Backspace defaults apply
- Void elements never receive text
- Elements created by commands get a fresh numeric id
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any, Protocol

from src.core.services.plugins import PluginRegistry
from src.domain.document import (
    Document,
    ElementNode,
    Node,
    Path,
    TextNode,
    get_children,
    get_node,
    is_empty,
    iter_nodes,
    new_document,
    node_string,
    normalize_nodes,
)
from src.domain.hotkeys import KeyEvent, is_hotkey

logger = logging.getLogger(__name__)

PARAGRAPH = "p"
LIST_TYPES = frozenset(["ul", "ol"])
LIST_ITEM = "li"
CODE_BLOCK = "code_block"
CODE_LINE = "code_line"
LINK = "a"


@dataclass(frozen=True, order=True)
class Point:
    """Offset inside the text leaf at path."""

    path: Path
    offset: int


@dataclass(frozen=True)
class Selection:
    anchor: Point
    focus: Point

    @classmethod
    def collapsed(cls, point: Point) -> Selection:
        return cls(anchor=point, focus=point)

    @property
    def is_collapsed(self) -> bool:
        return self.anchor == self.focus

    @property
    def start(self) -> Point:
        return min(self.anchor, self.focus)

    @property
    def end(self) -> Point:
        return max(self.anchor, self.focus)


class EditorUI(Protocol):
    """User-facing callbacks some commands need."""

    def prompt(self, message: str) -> str | None:
        """Ask the user for a value; None when cancelled."""
        ...

    def alert(self, message: str) -> None:
        """Show a message."""
        ...


def _copy_leaf(leaf: TextNode, text: str) -> TextNode:
    return TextNode(text=text, marks=leaf.marks, attributes=dict(leaf.attributes))


def _split_children(
    children: list[Node],
    rel_path: Path,
    offset: int,
) -> tuple[list[Node], list[Node]]:
    """Split a child list at the point rel_path/offset, copying ancestors."""
    index = rel_path[0]
    child = children[index]
    if isinstance(child, TextNode):
        left: Node = _copy_leaf(child, child.text[:offset])
        right: Node = _copy_leaf(child, child.text[offset:])
    else:
        left_children, right_children = _split_children(child.children, rel_path[1:], offset)
        attributes = {k: v for k, v in child.attributes.items() if k != "id"}
        left = ElementNode(child.type, left_children, dict(child.attributes))
        right = ElementNode(child.type, right_children, attributes)
    return [*children[:index], left], [right, *children[index + 1 :]]


class Editor:
    """Mutable document model plus selection for one editing session."""

    def __init__(
        self,
        registry: PluginRegistry,
        document: Document | None = None,
        *,
        selection: Selection | None = None,
        ui: EditorUI | None = None,
        is_post: bool = False,
    ) -> None:
        self.registry = registry
        self.document: Document = document if document is not None else new_document()
        if not self.document:
            self.document.extend(new_document())
        normalize_nodes(self.document, registry.void_types)  # type: ignore[arg-type]
        self.ui = ui
        self.is_post = is_post
        self._next_id = self._max_id() + 1
        self.selection: Selection | None = selection or Selection.collapsed(self.start_point())

    # --- Ids ---

    def _max_id(self) -> int:
        ids = [
            node.attributes["id"]
            for node, _ in iter_nodes(self.document)
            if isinstance(node, ElementNode)
            and isinstance(node.attributes.get("id"), int)
            and not isinstance(node.attributes.get("id"), bool)
        ]
        return max(ids, default=0)

    def new_id(self) -> int:
        value = self._next_id
        self._next_id += 1
        return value

    def create_element(
        self,
        type_: str,
        children: list[Node] | None = None,
        **attributes: Any,
    ) -> ElementNode:
        """New element with a fresh id."""
        return ElementNode(
            type=type_,
            children=children if children else [TextNode("")],
            attributes={"id": self.new_id(), **attributes},
        )

    # --- Queries ---

    def node(self, path: Path) -> Node:
        return get_node(self.document, path)

    def path_of(self, target: Node) -> Path | None:
        """Path of a node by identity."""
        for node, path in iter_nodes(self.document):
            if node is target:
                return path
        return None

    def first_leaf_path(self, path: Path) -> Path:
        node = self.node(path)
        while isinstance(node, ElementNode):
            path = (*path, 0)
            node = node.children[0]
        return path

    def last_leaf_path(self, path: Path) -> Path:
        node = self.node(path)
        while isinstance(node, ElementNode):
            path = (*path, len(node.children) - 1)
            node = node.children[-1]
        return path

    def start_point(self, path: Path = (0,)) -> Point:
        return Point(self.first_leaf_path(path), 0)

    def end_point(self, path: Path) -> Point:
        leaf_path = self.last_leaf_path(path)
        leaf = self.node(leaf_path)
        assert isinstance(leaf, TextNode)
        return Point(leaf_path, len(leaf.text))

    def leaf_paths(self, path: Path) -> list[Path]:
        """Text leaf paths inside the node at path, in order."""
        node = self.node(path)
        if isinstance(node, TextNode):
            return [path]
        return [(*path, *rel) for n, rel in iter_nodes(node.children) if isinstance(n, TextNode)]

    def current_leaf(self) -> tuple[TextNode, Path]:
        if self.selection is None:
            raise ValueError("Editor has no selection")
        path = self.selection.focus.path
        leaf = self.node(path)
        if not isinstance(leaf, TextNode):
            raise ValueError(f"Selection does not point at a text leaf: {path}")
        return leaf, path

    def ancestors(self, path: Path) -> list[tuple[ElementNode, Path]]:
        """Element ancestors of path, lowest first."""
        found = []
        for depth in range(len(path) - 1, 0, -1):
            node = self.node(path[:depth])
            assert isinstance(node, ElementNode)
            found.append((node, path[:depth]))
        return found

    def above(
        self,
        match: Callable[[ElementNode], bool],
        path: Path | None = None,
    ) -> tuple[ElementNode, Path] | None:
        """Lowest element ancestor of the cursor (or path) satisfying match."""
        if path is None:
            _, path = self.current_leaf()
        for node, node_path in self.ancestors(path):
            if match(node):
                return node, node_path
        return None

    def block_above(self, path: Path | None = None) -> tuple[ElementNode, Path]:
        """Lowest non-inline element containing the cursor."""
        inline_types = self.registry.inline_types
        found = self.above(lambda n: n.type not in inline_types, path)
        assert found is not None, "text leaf outside any block"
        return found

    def in_void(self, path: Path | None = None) -> bool:
        void_types = self.registry.void_types
        return self.above(lambda n: n.type in void_types, path) is not None

    def block_offset(self) -> tuple[int, int]:
        """(characters before cursor, total characters) in the current block."""
        leaf, leaf_path = self.current_leaf()
        _, block_path = self.block_above()
        before = 0
        total = 0
        for path in self.leaf_paths(block_path):
            text_len = len(self.node(path).text)  # type: ignore[union-attr]
            if path < leaf_path:
                before += text_len
            total += text_len
        assert self.selection is not None
        return before + self.selection.focus.offset, total

    def text_before_cursor_in_block(self) -> str:
        leaf, leaf_path = self.current_leaf()
        _, block_path = self.block_above()
        parts = []
        for path in self.leaf_paths(block_path):
            if path == leaf_path:
                assert self.selection is not None
                parts.append(leaf.text[: self.selection.focus.offset])
                break
            parts.append(self.node(path).text)  # type: ignore[union-attr]
        return "".join(parts)

    def is_selection_at_block_start(self) -> bool:
        if self.selection is None or not self.selection.is_collapsed:
            return False
        return self.block_offset()[0] == 0

    def is_selection_at_block_end(self) -> bool:
        if self.selection is None or not self.selection.is_collapsed:
            return False
        before, total = self.block_offset()
        return before == total

    def is_block_above_empty(self) -> bool:
        block, _ = self.block_above()
        return is_empty(block, self.registry.void_types)

    # --- Selection ---

    def select(self, point: Point) -> None:
        self.selection = Selection.collapsed(point)

    def select_range(self, anchor: Point, focus: Point) -> None:
        self.selection = Selection(anchor=anchor, focus=focus)

    # --- Text commands ---

    def insert_text(self, text: str) -> None:
        """Type text at the cursor, giving insert-text handlers the first say."""
        if self.selection is None or not text:
            return
        if not self.selection.is_collapsed:
            self.delete_selection()
        for handler in self.registry.insert_text_handlers():
            if handler(self, text):
                return
        self.apply_insert_text(text)

    def apply_insert_text(self, text: str) -> None:
        """Insert text at the cursor with no handler involvement."""
        leaf, path = self.current_leaf()
        if self.in_void(path):
            logger.debug("Ignoring text inserted into void element at %s", path)
            return
        assert self.selection is not None
        offset = self.selection.focus.offset
        leaf.text = leaf.text[:offset] + text + leaf.text[offset:]
        self.select(Point(path, offset + len(text)))

    def insert_soft_break(self) -> None:
        """Newline inside the block; inside a code block, a new code line."""
        if self.above(lambda n: n.type == CODE_LINE) is not None:
            self.insert_break()
            return
        self.apply_insert_text("\n")

    def delete_text_before_cursor(self, count: int) -> None:
        """Delete count characters before the cursor inside the current leaf."""
        leaf, path = self.current_leaf()
        assert self.selection is not None
        offset = self.selection.focus.offset
        start = max(0, offset - count)
        leaf.text = leaf.text[:start] + leaf.text[offset:]
        self.select(Point(path, start))

    def delete_backward(self) -> None:
        """Backspace."""
        if self.selection is None:
            return
        if not self.selection.is_collapsed:
            self.delete_selection()
            return

        leaf, path = self.current_leaf()
        offset = self.selection.focus.offset
        if offset > 0:
            self.delete_text_before_cursor(1)
            return

        _, block_path = self.block_above()
        leaves = self.leaf_paths(block_path)
        earlier = [p for p in leaves if p < path and self.node(p).text]  # type: ignore[union-attr]
        if earlier:
            previous_path = earlier[-1]
            previous = self.node(previous_path)
            assert isinstance(previous, TextNode)
            previous.text = previous.text[:-1]
            self.select(Point(previous_path, len(previous.text)))
            return

        self._merge_block_backward(block_path)

    def _merge_block_backward(self, block_path: Path) -> None:
        index = block_path[-1]
        siblings = get_children(self.document, block_path[:-1])  # type: ignore[arg-type]
        block = siblings[index]
        assert isinstance(block, ElementNode)

        if index == 0:
            if block.type == LIST_ITEM:
                self.unwrap_list()
            return

        previous = siblings[index - 1]
        assert isinstance(previous, ElementNode)
        previous_path = (*block_path[:-1], index - 1)

        if previous.type in self.registry.void_types:
            del siblings[index - 1]
            self.select(self.start_point((*block_path[:-1], index - 1)))
            return

        # Descend to the last block inside previous (e.g. last list item)
        target_path = previous_path
        target = previous
        while any(
            isinstance(c, ElementNode) and c.type not in self.registry.inline_types
            for c in target.children
        ):
            last = target.children[-1]
            assert isinstance(last, ElementNode)
            target_path = (*target_path, len(target.children) - 1)
            target = last

        join_point = self.end_point(target_path)
        leaf_index = join_point.path[len(target_path)]
        target.children.extend(block.children)
        del siblings[index]
        self._normalize_keeping_cursor(target, target_path, leaf_index, join_point.offset)

    def _normalize_keeping_cursor(
        self,
        block: ElementNode,
        block_path: Path,
        leaf_index: int,
        offset: int,
    ) -> None:
        absolute = offset + sum(
            len(node_string(c)) for c in block.children[:leaf_index]
        )
        normalize_nodes(block.children, self.registry.void_types)
        self._select_block_offset(block_path, absolute)

    def _select_block_offset(self, block_path: Path, absolute: int) -> None:
        remaining = absolute
        leaves = self.leaf_paths(block_path)
        for path in leaves:
            length = len(self.node(path).text)  # type: ignore[union-attr]
            if remaining <= length:
                self.select(Point(path, remaining))
                return
            remaining -= length
        self.select(self.end_point(block_path))

    def delete_selection(self) -> None:
        """Delete an expanded selection and collapse to its start."""
        if self.selection is None or self.selection.is_collapsed:
            return
        start, end = self.selection.start, self.selection.end
        start_leaf = self.node(start.path)
        end_leaf = self.node(end.path)
        assert isinstance(start_leaf, TextNode) and isinstance(end_leaf, TextNode)

        if start.path == end.path:
            start_leaf.text = start_leaf.text[: start.offset] + start_leaf.text[end.offset :]
            self.select(start)
            return

        for node, path in iter_nodes(self.document):
            if isinstance(node, TextNode) and start.path < path < end.path:
                node.text = ""
        start_leaf.text = start_leaf.text[: start.offset]
        end_leaf.text = end_leaf.text[end.offset :]

        start_block, start_block_path = self.block_above(start.path)
        end_block, end_block_path = self.block_above(end.path)
        if start_block is not end_block:
            start_block.children.extend(end_block.children)
            end_parent = get_children(self.document, end_block_path[:-1])  # type: ignore[arg-type]
            end_parent.remove(end_block)
            # top-level blocks strictly inside the range are fully selected
            start_top, end_top = start_block_path[0], end_block_path[0]
            if end_top - start_top > 1:
                del self.document[start_top + 1 : end_top]
            if end_top > start_top and len(end_block_path) > 1 and not end_parent:
                # container (list, quote) emptied by the merge
                del self.document[start_top + 1]

        self.select(start)

    # --- Block commands ---

    def set_block_type(self, type_: str, **attributes: Any) -> None:
        block, _ = self.block_above()
        block.type = type_
        block.attributes.update(attributes)

    def insert_break(self) -> None:
        """Hard break: split the current block at the cursor."""
        if self.selection is None:
            return
        if not self.selection.is_collapsed:
            self.delete_selection()
        leaf, leaf_path = self.current_leaf()
        block, block_path = self.block_above()
        if block.type in self.registry.void_types:
            self.insert_node(self.create_element(PARAGRAPH))
            return

        assert self.selection is not None
        rel_path = leaf_path[len(block_path) :]
        left, right = _split_children(block.children, rel_path, self.selection.focus.offset)
        block.children = left
        attributes = {k: v for k, v in block.attributes.items() if k != "id"}
        new_block = ElementNode(block.type, right, {"id": self.new_id(), **attributes})
        normalize_nodes(block.children, self.registry.void_types)
        normalize_nodes(new_block.children, self.registry.void_types)

        siblings = get_children(self.document, block_path[:-1])  # type: ignore[arg-type]
        siblings.insert(block_path[-1] + 1, new_block)
        self.select(self.start_point((*block_path[:-1], block_path[-1] + 1)))

    def exit_break(self, *, before: bool = False) -> None:
        """Insert an empty paragraph before/after the current top-level block."""
        if self.selection is None:
            return
        _, leaf_path = self.current_leaf()
        top = leaf_path[0]
        paragraph = self.create_element(PARAGRAPH)
        if before:
            self.document.insert(top, paragraph)
            assert self.selection is not None
            focus = self.selection.focus
            self.select(Point((top + 1, *focus.path[1:]), focus.offset))
        else:
            self.document.insert(top + 1, paragraph)
            self.select(self.start_point((top + 1,)))

    def insert_node(self, node: ElementNode, *, select: bool = True) -> Path:
        """
        Insert a block element at the cursor.

        Replaces the current block when it is empty, otherwise goes after it.
        """
        if "id" not in node.attributes:
            node.attributes["id"] = self.new_id()
        normalize_nodes([node], self.registry.void_types)
        block, block_path = self.block_above()
        siblings = get_children(self.document, block_path[:-1])  # type: ignore[arg-type]
        index = block_path[-1]

        replace = (
            is_empty(block, self.registry.void_types)
            and block.type not in self.registry.void_types
            and block.type == PARAGRAPH
        )
        if replace:
            siblings[index] = node
            path = block_path
        else:
            siblings.insert(index + 1, node)
            path = (*block_path[:-1], index + 1)

        if select:
            self.select(self.start_point(path))
        return path

    def insert_fragment(self, nodes: Sequence[ElementNode]) -> None:
        """Paste block nodes at the cursor."""
        if not nodes:
            return
        last_path: Path | None = None
        for node in nodes:
            last_path = self.insert_node(node, select=True)
        if last_path is not None:
            self.select(self.end_point(last_path))

    # --- Lists ---

    def list_item_above(self) -> tuple[ElementNode, Path] | None:
        found = self.above(lambda n: n.type == LIST_ITEM)
        if found is None:
            return None
        _, li_path = found
        if len(li_path) < 2:
            return None
        parent = self.node(li_path[:-1])
        if not isinstance(parent, ElementNode) or parent.type not in LIST_TYPES:
            return None
        return found

    def unwrap_list(self) -> None:
        """Lift the list item at the cursor out of its list as a paragraph."""
        found = self.list_item_above()
        if found is None:
            return
        item, item_path = found
        assert self.selection is not None
        focus = self.selection.focus
        rel = focus.path[len(item_path) :]

        list_path = item_path[:-1]
        list_node = self.node(list_path)
        assert isinstance(list_node, ElementNode)
        siblings = get_children(self.document, list_path[:-1])  # type: ignore[arg-type]
        list_index = list_path[-1]
        item_index = item_path[-1]

        before = list_node.children[:item_index]
        after = list_node.children[item_index + 1 :]
        item.type = PARAGRAPH

        replacement: list[Node] = []
        if before:
            list_node.children = before
            replacement.append(list_node)
        replacement.append(item)
        if after:
            replacement.append(
                ElementNode(list_node.type, after, {"id": self.new_id()})
            )
        siblings[list_index : list_index + 1] = replacement

        new_index = list_index + (1 if before else 0)
        self.select(Point((*list_path[:-1], new_index, *rel), focus.offset))

    def toggle_list(self, list_type: str) -> None:
        """Wrap the current block in a list, or unwrap/retag an existing one."""
        found = self.list_item_above()
        if found is not None:
            _, item_path = found
            list_node = self.node(item_path[:-1])
            assert isinstance(list_node, ElementNode)
            if list_node.type == list_type:
                self.unwrap_list()
            else:
                list_node.type = list_type
            return

        block, block_path = self.block_above()
        assert self.selection is not None
        focus = self.selection.focus
        rel = focus.path[len(block_path) :]
        item = ElementNode(LIST_ITEM, block.children, block.attributes)
        wrapper = ElementNode(list_type, [item], {"id": self.new_id()})
        siblings = get_children(self.document, block_path[:-1])  # type: ignore[arg-type]
        siblings[block_path[-1]] = wrapper
        self.select(Point((*block_path, 0, *rel), focus.offset))

    # --- Code blocks ---

    def insert_code_block(self) -> None:
        """Turn the current block into a code block with one code line."""
        block, block_path = self.block_above()
        if self.above(lambda n: n.type == CODE_BLOCK) is not None:
            return
        assert self.selection is not None
        focus = self.selection.focus
        rel = focus.path[len(block_path) :]
        text = node_string(block)
        line = ElementNode(CODE_LINE, [TextNode(text)], {"id": self.new_id()})
        code_block = ElementNode(CODE_BLOCK, [line], dict(block.attributes))
        siblings = get_children(self.document, block_path[:-1])  # type: ignore[arg-type]
        siblings[block_path[-1]] = code_block
        offset = len(self.text_before_leaf(block, rel)) + focus.offset
        self.select(Point((*block_path, 0, 0), min(offset, len(text))))

    @staticmethod
    def text_before_leaf(block: ElementNode, rel: Path) -> str:
        parts = []
        for node, path in iter_nodes(block.children):
            if isinstance(node, TextNode):
                if path == rel:
                    break
                parts.append(node.text)
        return "".join(parts)

    # --- Marks and inline elements ---

    def add_mark_to_range(self, leaf_path: Path, start: int, end: int, mark: str) -> Path:
        """
        Add mark to leaf text [start, end), splitting the leaf.

        The leaf is replaced by before/marked/after leaves (after may be
        empty); returns the path of the marked leaf.
        """
        leaf = self.node(leaf_path)
        assert isinstance(leaf, TextNode)
        siblings = get_children(self.document, leaf_path[:-1])  # type: ignore[arg-type]
        index = leaf_path[-1]

        marked = TextNode(leaf.text[start:end], leaf.marks | {mark}, dict(leaf.attributes))
        after = _copy_leaf(leaf, leaf.text[end:])
        replacement: list[Node] = [marked, after]
        if start > 0:
            replacement.insert(0, _copy_leaf(leaf, leaf.text[:start]))
        siblings[index : index + 1] = replacement
        return (*leaf_path[:-1], index + (1 if start > 0 else 0))

    def wrap_link(self, url: str) -> bool:
        """Wrap a selection inside one leaf in a link element."""
        if self.selection is None or self.selection.is_collapsed:
            return False
        start, end = self.selection.start, self.selection.end
        if start.path != end.path or self.above(lambda n: n.type == LINK, start.path):
            return False
        leaf = self.node(start.path)
        assert isinstance(leaf, TextNode)
        siblings = get_children(self.document, start.path[:-1])  # type: ignore[arg-type]
        index = start.path[-1]

        link = ElementNode(
            LINK,
            [_copy_leaf(leaf, leaf.text[start.offset : end.offset])],
            {"id": self.new_id(), "url": url},
        )
        after = _copy_leaf(leaf, leaf.text[end.offset :])
        siblings[index : index + 1] = [_copy_leaf(leaf, leaf.text[: start.offset]), link, after]
        self.select(Point((*start.path[:-1], index + 2), 0))
        return True

    def unwrap_link(self) -> bool:
        found = self.above(lambda n: n.type == LINK)
        if found is None:
            return False
        link, link_path = found
        assert self.selection is not None
        focus = self.selection.focus
        rel = focus.path[len(link_path) :]
        siblings = get_children(self.document, link_path[:-1])  # type: ignore[arg-type]
        index = link_path[-1]
        siblings[index : index + 1] = link.children
        self.select(Point((*link_path[:-1], index + rel[0], *rel[1:]), focus.offset))
        return True

    # --- Events ---

    def key_down(self, event: KeyEvent) -> bool:
        """
        Dispatch a key press.

        Returns True when a handler or a default action consumed it.
        """
        if self.selection is None:
            return False
        for handler in self.registry.key_down_handlers():
            if handler(self, event):
                return True
        if is_hotkey("enter", event):
            self.insert_break()
            return True
        if is_hotkey("backspace", event):
            self.delete_backward()
            return True
        return False

    def press(self, hotkey: str) -> bool:
        """Convenience: dispatch the key event hotkey describes."""
        return self.key_down(KeyEvent.from_hotkey(hotkey))

    def type_text(self, text: str) -> None:
        """Type text one character at a time, as a user would."""
        for char in text:
            self.insert_text(char)
