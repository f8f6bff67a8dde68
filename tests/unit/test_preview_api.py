"""
Tests for the preview API.
"""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from src.api.deps import get_settings
from src.api.main import app


@pytest.fixture
def client(rules_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[TestClient]:
    """Test client running the app lifespan against the project rules file."""
    monkeypatch.setenv("EDITOR_RULES_PATH", str(rules_path))
    get_settings.cache_clear()
    with TestClient(app) as client:
        yield client
    get_settings.cache_clear()


@pytest.fixture
def simple_doc() -> list[dict]:
    return [{"type": "p", "children": [{"text": "Hello, "}, {"text": "world", "bold": True}]}]


class TestHealth:
    def test_health(self, client: TestClient) -> None:
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok", "service": "api"}


class TestPreview:
    def test_preview(self, client: TestClient, simple_doc: list[dict]) -> None:
        response = client.post("/api/preview", json={"document": simple_doc})
        assert response.status_code == 200

        data = response.json()
        assert data["html"] == '<p class="slate-p">Hello, <strong>world</strong></p>'
        assert data["plain_text"] == "Hello, world"
        assert data["word_count"] == 2
        assert data["warnings"] == []

    def test_rules_file_protocols_apply(self, client: TestClient) -> None:
        doc = [
            {
                "type": "p",
                "children": [{"type": "a", "url": "vbscript:msgbox(1)", "children": [{"text": "x"}]}],
            }
        ]
        response = client.post("/api/preview", json={"document": doc})
        assert response.status_code == 200
        data = response.json()
        assert "vbscript" not in data["html"]
        assert data["warnings"][0]["code"] == "stripped_url"
        assert data["warnings"][0]["path"] == "$[0].children[0].url"

    def test_invalid_document(self, client: TestClient) -> None:
        response = client.post("/api/preview", json={"document": [{"text": "loose"}]})
        assert response.status_code == 422
        assert "top-level nodes must be elements" in response.json()["detail"]

    def test_too_deep_document(self, client: TestClient) -> None:
        node: dict = {"text": "x"}
        for _ in range(20):
            node = {"type": "blockquote", "children": [node]}
        response = client.post("/api/preview", json={"document": [node]})
        assert response.status_code == 422
        assert "nesting deeper than 12" in response.json()["detail"]

    def test_missing_document(self, client: TestClient) -> None:
        response = client.post("/api/preview", json={})
        assert response.status_code == 422


class TestValidate:
    def test_valid(self, client: TestClient, simple_doc: list[dict]) -> None:
        response = client.post("/api/preview/validate", json={"document": simple_doc})
        assert response.status_code == 200
        assert response.json() == {"is_valid": True, "errors": []}

    def test_errors_listed(self, client: TestClient) -> None:
        doc = [{"type": "widget", "children": [{"text": "x", "glow": True}]}]
        response = client.post("/api/preview/validate", json={"document": doc})
        data = response.json()
        assert data["is_valid"] is False
        assert [e["code"] for e in data["errors"]] == ["unknown_node_type", "unknown_mark_type"]


class TestDeserialize:
    def test_html(self, client: TestClient) -> None:
        response = client.post("/api/preview/deserialize", json={"content": "<h2>Title</h2>"})
        assert response.status_code == 200
        assert response.json() == {"document": [{"type": "h2", "children": [{"text": "Title"}]}]}

    def test_markdown(self, client: TestClient) -> None:
        response = client.post(
            "/api/preview/deserialize",
            json={"content": "1. first\n2. second\n", "source_format": "markdown"},
        )
        document = response.json()["document"]
        assert document[0]["type"] == "ol"
        assert [item["children"][0]["text"] for item in document[0]["children"]] == ["first", "second"]

    def test_unknown_format(self, client: TestClient) -> None:
        response = client.post("/api/preview/deserialize", json={"content": "x", "source_format": "rtf"})
        assert response.status_code == 422
