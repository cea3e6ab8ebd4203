"""Tests for the document store adapter.

This module tests:
- FileDocumentStore CRUD, dotted updates, merge writes and queries
- Path validation
- FirestoreDocumentStore error translation (mocked client)
- Backend selection from settings
"""
from __future__ import annotations

from unittest.mock import MagicMock

import pytest
from google.api_core import exceptions as google_exceptions

from taskly.config import Settings
from taskly.documents import (
    TASKS,
    FileDocumentStore,
    FirestoreDocumentStore,
    get_document_store,
    shared_todos,
)
from taskly.errors import DocumentNotFound, RemoteCallFailure, ValidationError


# =============================================================================
# File Storage Tests
# =============================================================================

class TestFileDocumentStore:
    """Tests for the JSON file backend."""

    def test_add_then_get(self, store):
        """Should assign an id and return the stored data."""
        doc_id = store.add(TASKS, {"title": "Buy milk"})

        assert doc_id
        assert store.get(TASKS, doc_id) == {"title": "Buy milk"}

    def test_get_missing_returns_none(self, store):
        assert store.get(TASKS, "missing") is None

    def test_add_stores_a_copy(self, store):
        """Later changes to the caller's dict should not leak into the store."""
        data = {"todoData": {"completed": False}}
        doc_id = store.add(shared_todos("u1"), data)
        data["todoData"]["completed"] = True

        assert store.get(shared_todos("u1"), doc_id)["todoData"]["completed"] is False

    def test_nested_collections_are_separate(self, store):
        store.add(shared_todos("u1"), {"todoId": "t1"})
        store.add(shared_todos("u2"), {"todoId": "t2"})

        assert [d.data["todoId"] for d in store.stream(shared_todos("u1"))] == ["t1"]
        assert [d.data["todoId"] for d in store.stream(shared_todos("u2"))] == ["t2"]

    def test_update_dotted_key_sets_nested_field(self, store):
        """Dotted keys should write inside the nested map, not a literal key."""
        path = shared_todos("u1")
        doc_id = store.add(path, {"permission": "view", "todoData": {"title": "T", "completed": False}})

        store.update(path, doc_id, {"todoData.completed": True})

        data = store.get(path, doc_id)
        assert data["todoData"] == {"title": "T", "completed": True}
        assert "todoData.completed" not in data

    def test_update_missing_raises(self, store):
        with pytest.raises(DocumentNotFound):
            store.update(TASKS, "missing", {"completed": True})

    def test_set_merge_keeps_other_fields(self, store):
        store.set(("users",), "u1", {"email": "a@example.com", "extra": {"a": 1}})
        store.set(("users",), "u1", {"displayName": "A", "extra": {"b": 2}}, merge=True)

        assert store.get(("users",), "u1") == {
            "email": "a@example.com",
            "displayName": "A",
            "extra": {"a": 1, "b": 2},
        }

    def test_set_without_merge_replaces(self, store):
        store.set(("users",), "u1", {"email": "a@example.com"})
        store.set(("users",), "u1", {"displayName": "A"})

        assert store.get(("users",), "u1") == {"displayName": "A"}

    def test_delete_is_idempotent(self, store):
        doc_id = store.add(TASKS, {"title": "T"})

        store.delete(TASKS, doc_id)
        store.delete(TASKS, doc_id)

        assert store.get(TASKS, doc_id) is None

    def test_query_equality_and_limit(self, store):
        for _ in range(3):
            store.add(TASKS, {"userId": "u1"})
        store.add(TASKS, {"userId": "u2"})

        assert len(store.query(TASKS, "userId", "u1")) == 3
        assert len(store.query(TASKS, "userId", "u1", limit=1)) == 1
        assert store.query(TASKS, "userId", "nobody") == []

    def test_stream_missing_collection_is_empty(self, store):
        assert store.stream(shared_todos("nobody")) == []

    def test_stream_skips_unreadable_documents(self, store, tmp_path):
        store.add(TASKS, {"title": "ok"})
        (tmp_path / "store" / "todos" / "broken.json").write_text("{not json", encoding="utf-8")

        docs = store.stream(TASKS)

        assert [d.data["title"] for d in docs] == ["ok"]

    def test_get_unreadable_document_raises_remote_failure(self, store, tmp_path):
        directory = tmp_path / "store" / "todos"
        directory.mkdir(parents=True)
        (directory / "broken.json").write_text("{not json", encoding="utf-8")

        with pytest.raises(RemoteCallFailure):
            store.get(TASKS, "broken")


class TestPathValidation:

    @pytest.mark.parametrize("path", [(), ("users", "u1"), ("users", "", "shared_todos")])
    def test_invalid_collection_paths(self, store, path):
        with pytest.raises(ValidationError):
            store.stream(path)

    @pytest.mark.parametrize("doc_id", ["", "..", "a/b"])
    def test_invalid_document_ids(self, store, doc_id):
        with pytest.raises(ValidationError):
            store.get(TASKS, doc_id)


# =============================================================================
# Firestore Storage Tests
# =============================================================================

class TestFirestoreDocumentStore:
    """Error translation against a mocked firebase-admin client."""

    def test_nested_path_builds_collection_chain(self):
        client = MagicMock()
        store = FirestoreDocumentStore(client)

        store.delete(shared_todos("u1"), "s1")

        client.collection.assert_called_once_with("users")
        client.collection.return_value.document.assert_called_once_with("u1")
        user_doc = client.collection.return_value.document.return_value
        user_doc.collection.assert_called_once_with("shared_todos")
        user_doc.collection.return_value.document.return_value.delete.assert_called_once()

    def test_update_missing_document_raises_not_found(self):
        client = MagicMock()
        doc_ref = client.collection.return_value.document.return_value
        doc_ref.update.side_effect = google_exceptions.NotFound("gone")

        with pytest.raises(DocumentNotFound):
            FirestoreDocumentStore(client).update(TASKS, "t1", {"completed": True})

    def test_api_error_becomes_remote_failure(self):
        client = MagicMock()
        client.collection.return_value.add.side_effect = google_exceptions.ServiceUnavailable("down")

        with pytest.raises(RemoteCallFailure):
            FirestoreDocumentStore(client).add(TASKS, {"title": "T"})

    def test_get_returns_none_for_missing_snapshot(self):
        client = MagicMock()
        snapshot = client.collection.return_value.document.return_value.get.return_value
        snapshot.exists = False

        assert FirestoreDocumentStore(client).get(TASKS, "t1") is None

    def test_query_uses_equality_filter_and_limit(self):
        client = MagicMock()
        query = client.collection.return_value.where.return_value
        snap = MagicMock(id="t1")
        snap.to_dict.return_value = {"userId": "u1"}
        query.limit.return_value.stream.return_value = [snap]

        docs = FirestoreDocumentStore(client).query(TASKS, "userId", "u1", limit=1)

        client.collection.return_value.where.assert_called_once_with("userId", "==", "u1")
        query.limit.assert_called_once_with(1)
        assert docs[0].id == "t1"
        assert docs[0].data == {"userId": "u1"}


def test_get_document_store_file_mode(tmp_path):
    settings = Settings(force_file_store=True, store_dir=tmp_path)

    backend = get_document_store(settings)

    assert isinstance(backend, FileDocumentStore)
    assert backend.root == tmp_path
