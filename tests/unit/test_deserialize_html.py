"""
Tests for HTML and Markdown deserialization.
"""

from __future__ import annotations

import pytest

from src.core.services.deserialize_html import (
    HtmlDeserializer,
    insert_html,
    insert_markdown,
    markdown_to_nodes,
)
from src.core.services.editor import Editor
from src.core.services.plugins import PluginRegistry
from src.core.services.serialize_html import serialize_html_from_nodes
from src.core.services.validation import validate_document
from src.domain.document import ElementNode, TextNode, document_from_json, document_to_json


@pytest.fixture
def deserializer(registry: PluginRegistry) -> HtmlDeserializer:
    found = registry.deserializer()
    assert isinstance(found, HtmlDeserializer)
    return found


def _json(deserializer: HtmlDeserializer, html: str) -> list[dict]:
    return document_to_json(deserializer.deserialize(html))


class TestRoundTrip:
    """Serialized documents come back unchanged (ids are not carried in HTML)."""

    @pytest.mark.parametrize(
        "doc",
        [
            [{"type": "p", "children": [{"text": "Hello "}, {"text": "world", "bold": True}]}],
            [{"type": "h2", "children": [{"text": "Title"}]}],
            [{"type": "p", "children": [{"text": "t", "bold": True, "italic": True}]}],
            [{"type": "blockquote", "children": [{"text": "quoted"}]}],
            [
                {
                    "type": "ul",
                    "children": [
                        {"type": "li", "children": [{"text": "one"}]},
                        {"type": "li", "children": [{"text": "two"}]},
                    ],
                }
            ],
            [
                {
                    "type": "code_block",
                    "children": [
                        {"type": "code_line", "children": [{"text": "a = 1"}]},
                        {"type": "code_line", "children": [{"text": "<b>"}]},
                    ],
                }
            ],
            [
                {
                    "type": "p",
                    "children": [
                        {"text": "see "},
                        {"type": "a", "url": "https://example.com", "children": [{"text": "site"}]},
                    ],
                }
            ],
            [{"type": "img", "url": "/i.png", "caption": "cat", "children": [{"text": ""}]}],
            [
                {
                    "type": "table",
                    "children": [
                        {"type": "tr", "children": [{"type": "td", "children": [{"text": "c"}]}]}
                    ],
                }
            ],
            [{"type": "tweet", "tweetId": "42", "children": [{"text": ""}]}],
            [{"type": "action_item", "checked": True, "children": [{"text": "todo"}]}],
            [{"type": "media_embed", "url": "https://video.example/1", "children": [{"text": ""}]}],
            [{"type": "cta", "children": [{"text": ""}]}],
        ],
    )
    def test_round_trip(
        self,
        registry: PluginRegistry,
        deserializer: HtmlDeserializer,
        doc: list[dict],
    ) -> None:
        html = serialize_html_from_nodes(document_from_json(doc), registry)
        assert _json(deserializer, html) == doc

    def test_failed_upload_placeholder(
        self,
        registry: PluginRegistry,
        deserializer: HtmlDeserializer,
    ) -> None:
        """A failed loading placeholder keeps its error message."""
        doc = [{"type": "loading", "failed": True, "error": "Too <big>", "children": [{"text": ""}]}]
        html = serialize_html_from_nodes(document_from_json(doc), registry)
        assert _json(deserializer, html) == doc


class TestShaping:
    """Pasted HTML is coerced into a valid document."""

    def test_stray_inline_content_wrapped(self, deserializer: HtmlDeserializer) -> None:
        assert _json(deserializer, "hello <b>there</b>") == [
            {"type": "p", "children": [{"text": "hello "}, {"text": "there", "bold": True}]}
        ]

    def test_unknown_tags_keep_content(self, deserializer: HtmlDeserializer) -> None:
        html = "<section><p>a</p><article><span>b</span></article></section>"
        assert _json(deserializer, html) == [
            {"type": "p", "children": [{"text": "a"}]},
            {"type": "p", "children": [{"text": "b"}]},
        ]

    def test_line_breaks(self, deserializer: HtmlDeserializer) -> None:
        assert _json(deserializer, "<p>a<br>b</p>") == [{"type": "p", "children": [{"text": "a\nb"}]}]

    def test_comments_and_blank_text_dropped(self, deserializer: HtmlDeserializer) -> None:
        html = "<!-- note --><p>a</p>\n\n<p>b</p>"
        assert [block["type"] for block in _json(deserializer, html)] == ["p", "p"]

    def test_image_inside_paragraph_is_hoisted(self, deserializer: HtmlDeserializer) -> None:
        """A void inside a text block splits it."""
        html = '<p>before<img src="/x.png">after</p>'
        assert _json(deserializer, html) == [
            {"type": "p", "children": [{"text": "before"}]},
            {"type": "img", "url": "/x.png", "children": [{"text": ""}]},
            {"type": "p", "children": [{"text": "after"}]},
        ]

    def test_list_item_paragraphs_flattened(self, deserializer: HtmlDeserializer) -> None:
        html = "<ol><li><p>one</p></li></ol>"
        assert _json(deserializer, html) == [
            {"type": "ol", "children": [{"type": "li", "children": [{"text": "one"}]}]}
        ]

    def test_orphan_list_item_gets_a_list(self, deserializer: HtmlDeserializer, registry: PluginRegistry) -> None:
        document = deserializer.deserialize("<li>a</li>")
        assert document_to_json(document) == [
            {"type": "ul", "children": [{"type": "li", "children": [{"text": "a"}]}]}
        ]
        assert validate_document(document, registry) == []

    def test_orphan_cells_get_row_and_table(self, deserializer: HtmlDeserializer, registry: PluginRegistry) -> None:
        """Runs are wrapped separately; a cell needs both a row and a table."""
        document = deserializer.deserialize("<li>one</li><td>c</td><td>d</td>")
        assert document_to_json(document) == [
            {"type": "ul", "children": [{"type": "li", "children": [{"text": "one"}]}]},
            {
                "type": "table",
                "children": [
                    {
                        "type": "tr",
                        "children": [
                            {"type": "td", "children": [{"text": "c"}]},
                            {"type": "td", "children": [{"text": "d"}]},
                        ],
                    }
                ],
            },
        ]
        assert validate_document(document, registry) == []

    def test_cells_directly_in_table_get_a_row(self, deserializer: HtmlDeserializer) -> None:
        assert _json(deserializer, "<table><td>x</td></table>") == [
            {
                "type": "table",
                "children": [{"type": "tr", "children": [{"type": "td", "children": [{"text": "x"}]}]}],
            }
        ]

    def test_unsafe_link_loses_url(self, deserializer: HtmlDeserializer) -> None:
        html = '<p><a href="javascript:alert(1)">x</a></p>'
        link = _json(deserializer, html)[0]["children"][0]
        assert link["type"] == "a"
        assert "url" not in link

    def test_mark_aliases(self, deserializer: HtmlDeserializer) -> None:
        html = "<p><i>a</i><del>b</del></p>"
        assert _json(deserializer, html) == [
            {"type": "p", "children": [{"text": "a", "italic": True}, {"text": "b", "strikethrough": True}]}
        ]

    def test_plain_div_is_not_an_embed(self, deserializer: HtmlDeserializer) -> None:
        """Class-qualified rules only match their class."""
        assert _json(deserializer, "<div>text</div>") == [{"type": "p", "children": [{"text": "text"}]}]

    def test_callable_returns_nodes(self, deserializer: HtmlDeserializer) -> None:
        nodes = deserializer("<h1>T</h1>")
        assert nodes == [ElementNode("h1", [TextNode("T")])]


class TestMarkdown:
    def test_heading_and_paragraph(self, deserializer: HtmlDeserializer) -> None:
        doc = document_to_json(markdown_to_nodes("# Title\n\nSome **bold** text", deserializer))
        assert doc == [
            {"type": "h1", "children": [{"text": "Title"}]},
            {
                "type": "p",
                "children": [{"text": "Some "}, {"text": "bold", "bold": True}, {"text": " text"}],
            },
        ]

    def test_list(self, deserializer: HtmlDeserializer) -> None:
        doc = document_to_json(markdown_to_nodes("- a\n- b\n", deserializer))
        assert doc == [
            {
                "type": "ul",
                "children": [
                    {"type": "li", "children": [{"text": "a"}]},
                    {"type": "li", "children": [{"text": "b"}]},
                ],
            }
        ]

    def test_fenced_code_has_no_trailing_empty_line(self, deserializer: HtmlDeserializer) -> None:
        doc = document_to_json(markdown_to_nodes("```\nx = 1\ny\n```\n", deserializer))
        assert doc == [
            {
                "type": "code_block",
                "children": [
                    {"type": "code_line", "children": [{"text": "x = 1"}]},
                    {"type": "code_line", "children": [{"text": "y"}]},
                ],
            }
        ]

    def test_strikethrough_enabled(self, deserializer: HtmlDeserializer) -> None:
        doc = document_to_json(markdown_to_nodes("~~gone~~", deserializer))
        assert doc == [{"type": "p", "children": [{"text": "gone", "strikethrough": True}]}]


class TestPaste:
    def test_insert_html_replaces_empty_paragraph(self, editor: Editor) -> None:
        insert_html(editor, "<p>Hello</p><h2>Next</h2>")
        assert document_to_json(editor.document) == [
            {"type": "p", "id": 1, "children": [{"text": "Hello"}]},
            {"type": "h2", "id": 2, "children": [{"text": "Next"}]},
        ]
        assert editor.selection is not None
        assert editor.selection.focus.path == (1, 0)
        assert editor.selection.focus.offset == 4

    def test_insert_markdown(self, editor: Editor) -> None:
        insert_markdown(editor, "## Sub")
        assert document_to_json(editor.document) == [{"type": "h2", "id": 1, "children": [{"text": "Sub"}]}]

    def test_pasted_list_item_stays_in_a_list(self, editor: Editor) -> None:
        insert_html(editor, "<li>x</li>")
        editor.press("enter")

        document = document_to_json(editor.document)
        assert [block["type"] for block in document] == ["ul"]
        assert [item["type"] for item in document[0]["children"]] == ["li", "li"]
