"""
Tests for the document model and its persisted JSON shape.
"""

from __future__ import annotations

import pytest

from src.domain.document import (
    ElementNode,
    TextNode,
    document_from_json,
    document_to_json,
    find_image_urls,
    get_node,
    is_empty,
    iter_nodes,
    new_document,
    node_string,
    normalize_nodes,
)
from src.domain.errors import DocumentTooDeepError, InvalidDocumentError


class TestDocumentFromJson:
    """Loading persisted documents."""

    def test_true_valued_text_keys_are_marks(self) -> None:
        """Text keys set to true become marks; other keys stay attributes."""
        doc = document_from_json([{"type": "p", "children": [{"text": "hi", "bold": True, "lang": "en"}]}])

        leaf = doc[0].children[0]
        assert isinstance(leaf, TextNode)
        assert leaf.marks == frozenset({"bold"})
        assert leaf.attributes == {"lang": "en"}

    def test_false_mark_is_kept_as_attribute(self) -> None:
        """Only exactly-true values count as marks."""
        doc = document_from_json([{"type": "p", "children": [{"text": "x", "italic": False}]}])

        leaf = doc[0].children[0]
        assert isinstance(leaf, TextNode)
        assert leaf.marks == frozenset()
        assert leaf.attributes == {"italic": False}

    def test_element_attributes_are_preserved(self) -> None:
        """Unknown element keys survive as attributes."""
        doc = document_from_json('[{"type": "img", "id": 3, "url": "/a.png", "children": [{"text": ""}]}]')

        assert doc[0].type == "img"
        assert doc[0].attributes == {"id": 3, "url": "/a.png"}

    def test_missing_children_get_empty_text(self) -> None:
        """An element without children gets one empty leaf."""
        doc = document_from_json([{"type": "p"}])
        assert doc[0].children == [TextNode("")]

    def test_top_level_text_rejected(self) -> None:
        """Top-level nodes must be elements."""
        with pytest.raises(InvalidDocumentError) as exc_info:
            document_from_json([{"text": "loose"}])
        assert exc_info.value.path == "$[0]"

    def test_invalid_json_rejected(self) -> None:
        with pytest.raises(InvalidDocumentError):
            document_from_json("[{")

    def test_non_list_rejected(self) -> None:
        with pytest.raises(InvalidDocumentError):
            document_from_json({"type": "p"})  # type: ignore[arg-type]

    def test_nested_error_path(self) -> None:
        """Errors point at the offending node."""
        with pytest.raises(InvalidDocumentError) as exc_info:
            document_from_json([{"type": "p", "children": [{"text": 5}]}])
        assert exc_info.value.path == "$[0].children[0]"

    def test_max_depth(self) -> None:
        data = [{"type": "ul", "children": [{"type": "li", "children": [{"text": "x"}]}]}]
        assert document_from_json(data, max_depth=3)[0].type == "ul"

        with pytest.raises(DocumentTooDeepError) as exc_info:
            document_from_json(data, max_depth=2)
        assert exc_info.value.code == "too_deep"
        assert exc_info.value.path == "$[0].children[0].children[0]"


class TestDocumentToJson:
    """Writing documents back."""

    def test_round_trip_keeps_shape(self) -> None:
        """Persisted JSON round-trips unchanged."""
        data = [
            {
                "type": "ul",
                "id": 1,
                "children": [
                    {"type": "li", "id": 2, "children": [{"text": "a", "bold": True}]},
                ],
            }
        ]
        assert document_to_json(document_from_json(data)) == data

    def test_new_document(self) -> None:
        """A new post starts with one empty paragraph."""
        assert document_to_json(new_document()) == [{"type": "p", "id": 0, "children": [{"text": ""}]}]


class TestTraversal:
    """Walking and querying trees."""

    @pytest.fixture
    def doc(self) -> list[ElementNode]:
        return [
            ElementNode("p", [TextNode("one "), TextNode("two", frozenset({"bold"}))]),
            ElementNode("img", [TextNode("")], {"url": "/x.png"}),
            ElementNode("ul", [ElementNode("li", [TextNode("item")])]),
        ]

    def test_iter_nodes_depth_first(self, doc: list[ElementNode]) -> None:
        """Paths come out depth-first, left to right."""
        paths = [path for _, path in iter_nodes(doc)]
        assert paths == [(0,), (0, 0), (0, 1), (1,), (1, 0), (2,), (2, 0), (2, 0, 0)]

    def test_get_node(self, doc: list[ElementNode]) -> None:
        leaf = get_node(doc, (2, 0, 0))
        assert isinstance(leaf, TextNode)
        assert leaf.text == "item"

    def test_get_node_bad_path(self, doc: list[ElementNode]) -> None:
        with pytest.raises(IndexError):
            get_node(doc, (0, 0, 0))

    def test_node_string(self, doc: list[ElementNode]) -> None:
        assert node_string(doc[0]) == "one two"

    def test_is_empty_treats_voids_as_content(self, doc: list[ElementNode]) -> None:
        """A void element is never empty."""
        assert is_empty(ElementNode("p", [TextNode("")]))
        assert not is_empty(doc[1], void_types={"img"})

    def test_find_image_urls(self, doc: list[ElementNode]) -> None:
        assert find_image_urls(doc) == ["/x.png"]


class TestNormalize:
    """Tree normalization."""

    def test_merges_adjacent_leaves_with_same_marks(self) -> None:
        nodes = [TextNode("a"), TextNode("b"), TextNode("c", frozenset({"bold"}))]
        normalize_nodes(nodes)  # type: ignore[arg-type]
        assert nodes == [TextNode("ab"), TextNode("c", frozenset({"bold"}))]

    def test_void_children_reset(self) -> None:
        """Void elements end up with exactly one empty text child."""
        nodes = [ElementNode("img", [TextNode("stray"), TextNode("text")])]
        normalize_nodes(nodes, void_types={"img"})  # type: ignore[arg-type]
        assert nodes[0].children == [TextNode("")]  # type: ignore[union-attr]

    def test_empty_element_gets_leaf(self) -> None:
        nodes = [ElementNode("p", [])]
        normalize_nodes(nodes)  # type: ignore[arg-type]
        assert nodes[0].children == [TextNode("")]  # type: ignore[union-attr]
