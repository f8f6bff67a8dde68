"""
Tests for the document component entry points.
"""

from __future__ import annotations

import pytest

from src.components.document import (
    DeserializeDocumentInput,
    DeserializeOutput,
    SerializeDocumentInput,
    SerializeOutput,
    ValidateDocumentInput,
    ValidateOutput,
    run,
    run_deserialize,
    run_serialize,
    run_validate,
)
from src.core.services.plugins import PluginRegistry
from src.rules.models import EditorRules, LimitsRules


def _nested(depth: int) -> dict:
    node: dict = {"text": "x"}
    for _ in range(depth):
        node = {"type": "blockquote", "children": [node]}
    return node


@pytest.fixture
def simple_doc() -> list[dict]:
    return [
        {"type": "h1", "children": [{"text": "Main Title"}]},
        {
            "type": "p",
            "children": [{"text": "This is "}, {"text": "bold", "bold": True}, {"text": " text."}],
        },
    ]


class TestRunSerialize:
    def test_renders_html_and_text(self, simple_doc: list[dict]) -> None:
        result = run_serialize(SerializeDocumentInput(document=simple_doc))
        assert result.success
        assert result.html == (
            '<h1 class="slate-h1">Main Title</h1>'
            '<p class="slate-p">This is <strong>bold</strong> text.</p>'
        )
        assert result.plain_text == "Main Title\nThis is bold text."
        assert result.word_count == 6
        assert result.errors == []

    def test_unsafe_url_stripped_and_reported(self, registry: PluginRegistry) -> None:
        doc = [
            {
                "type": "p",
                "children": [{"type": "a", "url": "javascript:alert(1)", "children": [{"text": "click"}]}],
            }
        ]
        result = run_serialize(SerializeDocumentInput(document=doc), registry=registry)
        assert result.success
        assert result.html == '<p class="slate-p"><a class="slate-a" rel="noopener noreferrer">click</a></p>'
        assert [e.code for e in result.errors] == ["stripped_url"]

    def test_invalid_document(self) -> None:
        result = run_serialize(SerializeDocumentInput(document=[{"text": "loose"}]))
        assert not result.success
        assert result.html == ""
        assert result.errors[0].code == "invalid_document"
        assert result.errors[0].path == "$[0]"

    def test_deeply_nested_document_refused(self) -> None:
        """Parsing stops at the depth limit instead of recursing through the whole tree."""
        result = run_serialize(SerializeDocumentInput(document=[_nested(1200)]))
        assert not result.success
        assert result.html == ""
        assert result.errors[0].code == "too_deep"
        assert result.errors[0].path == "$[0]" + ".children[0]" * 12

    def test_oversized_document_refused(self, simple_doc: list[dict]) -> None:
        rules = EditorRules(limits=LimitsRules(max_json_bytes=10))
        result = run_serialize(SerializeDocumentInput(document=simple_doc), rules=rules)
        assert not result.success
        assert result.errors[0].code == "document_too_large"

    def test_rules_decide_forbidden_protocols(self, rules: EditorRules) -> None:
        doc = [{"type": "img", "url": "vbscript:x", "children": [{"text": ""}]}]
        result = run_serialize(SerializeDocumentInput(document=doc), rules=rules)
        assert result.html == '<img class="slate-img"/>'


class TestRunValidate:
    def test_valid(self, simple_doc: list[dict]) -> None:
        result = run_validate(ValidateDocumentInput(document=simple_doc))
        assert result.is_valid
        assert result.errors == []

    def test_invalid_structure(self) -> None:
        result = run_validate(ValidateDocumentInput(document=[{"type": "li", "children": [{"text": "x"}]}]))
        assert not result.is_valid
        assert result.errors[0].code == "misplaced_node"

    def test_deeply_nested(self) -> None:
        result = run_validate(ValidateDocumentInput(document=[_nested(1200)]))
        assert not result.is_valid
        assert [e.code for e in result.errors] == ["too_deep"]

    def test_unparseable(self) -> None:
        result = run_validate(ValidateDocumentInput(document=[{"nothing": 1}]))
        assert not result.is_valid
        assert result.errors[0].code == "invalid_document"


class TestRunDeserialize:
    def test_html(self) -> None:
        result = run_deserialize(DeserializeDocumentInput(content="<p>Hi <em>there</em></p>"))
        assert result.document == [
            {"type": "p", "children": [{"text": "Hi "}, {"text": "there", "italic": True}]}
        ]

    def test_markdown(self) -> None:
        result = run_deserialize(DeserializeDocumentInput(content="> quoted", source_format="markdown"))
        assert result.document == [{"type": "blockquote", "children": [{"text": "quoted"}]}]


class TestRun:
    def test_dispatch(self, simple_doc: list[dict]) -> None:
        assert isinstance(run(SerializeDocumentInput(document=simple_doc)), SerializeOutput)
        assert isinstance(run(ValidateDocumentInput(document=simple_doc)), ValidateOutput)
        assert isinstance(run(DeserializeDocumentInput(content="<p>x</p>")), DeserializeOutput)

    def test_unknown_input(self) -> None:
        with pytest.raises(ValueError):
            run("not an input")  # type: ignore[arg-type]
