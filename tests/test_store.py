"""Tests for the template store."""

import pytest

from receiptable.models.template import parse_and_validate
from receiptable.store import TemplateStore


def _template(template_id: str, name: str = ""):
    return parse_and_validate({"id": template_id, "name": name})


class TestTemplateStore:
    """Tests for TemplateStore."""

    @pytest.fixture
    def store(self):
        return TemplateStore()

    def test_empty(self, store):
        assert len(store) == 0
        assert store.active() is None
        assert store.active_id is None
        assert store.get("x") is None

    def test_put_sets_active(self, store):
        store.put(_template("a"))
        store.put(_template("b"))
        assert store.active_id == "b"
        assert store.active().id == "b"
        assert "a" in store
        assert len(store) == 2

    def test_put_replaces(self, store):
        first = store.put(_template("a", "First"))
        second = store.put(_template("a", "Second"))
        assert len(store) == 1
        assert store.get("a").template.name == "Second"
        assert second.cached_at >= first.cached_at

    def test_entries_sorted(self, store):
        for template_id in ("c", "a", "b"):
            store.put(_template(template_id))
        assert [e.template.id for e in store.entries()] == ["a", "b", "c"]

    def test_activate(self, store):
        store.put(_template("a"))
        store.put(_template("b"))
        assert store.activate("a").id == "a"
        assert store.active_id == "a"
        assert store.activate("missing") is None
        assert store.active_id == "a"

    def test_remove(self, store):
        store.put(_template("a"))
        assert store.remove("a") is True
        assert store.remove("a") is False
        assert store.active() is None

    def test_clear(self, store):
        store.put(_template("a"))
        store.put(_template("b"))
        assert store.clear() == 2
        assert len(store) == 0
        assert store.active_id is None
