"""Document store adapter - Firestore with a local file backend.

Every Taskly service talks to the database through the narrow
``DocumentStore`` interface below, so the Firestore client is injected
instead of read from a module global.

Firestore Structure:
    todos/{task_id}
    users/{user_id}
    users/{user_id}/invited_todos/{invitation_id}
    users/{user_id}/shared_todos/{shared_id}
    userProfiles/{email}

File Storage (dev mode):
    {store_dir}/{collection}/{doc_id}/{sub_collection}/{doc_id}.json

Environment Variables:
    TASKLY_STORE_FORCE_FILE: Set to "1" to use local file storage (dev mode)
    TASKLY_STORE_DIR: Directory for file-based storage (default: taskly_store/)
"""
from __future__ import annotations

import copy
import json
import logging
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol, Tuple

from google.api_core import exceptions as google_exceptions

from .config import Settings
from .errors import DocumentNotFound, RemoteCallFailure, ValidationError

logger = logging.getLogger(__name__)

CollectionPath = Tuple[str, ...]

TASKS = ("todos",)
USERS = ("users",)
USER_PROFILES = ("userProfiles",)


def invited_todos(user_id: str) -> CollectionPath:
    return ("users", user_id, "invited_todos")


def shared_todos(user_id: str) -> CollectionPath:
    return ("users", user_id, "shared_todos")


@dataclass(slots=True)
class Document:
    """A document snapshot: store-assigned id plus its field data."""

    id: str
    data: Dict[str, Any]


class DocumentStore(Protocol):
    """Collection-of-documents interface with nested per-user sub-collections."""

    def add(self, path: CollectionPath, data: Dict[str, Any]) -> str: ...

    def get(self, path: CollectionPath, doc_id: str) -> Optional[Dict[str, Any]]: ...

    def set(
        self,
        path: CollectionPath,
        doc_id: str,
        data: Dict[str, Any],
        *,
        merge: bool = False,
    ) -> None: ...

    def update(self, path: CollectionPath, doc_id: str, fields: Dict[str, Any]) -> None: ...

    def delete(self, path: CollectionPath, doc_id: str) -> None: ...

    def query(
        self,
        path: CollectionPath,
        field: str,
        value: Any,
        *,
        limit: Optional[int] = None,
    ) -> List[Document]: ...

    def stream(self, path: CollectionPath) -> List[Document]: ...


def _validate_path(path: CollectionPath) -> None:
    """Collection paths alternate collection/document segments and end on a collection."""
    if not path or len(path) % 2 == 0:
        raise ValidationError(f"Invalid collection path: {'/'.join(path)}")
    for segment in path:
        _validate_segment(segment)


def _validate_segment(segment: str) -> None:
    if not segment or "/" in segment or segment in (".", ".."):
        raise ValidationError(f"Invalid path segment: {segment!r}")


def _get_field(data: Dict[str, Any], dotted: str) -> Any:
    current: Any = data
    for part in dotted.split("."):
        if not isinstance(current, dict):
            return None
        current = current.get(part)
    return current


def _set_field(data: Dict[str, Any], dotted: str, value: Any) -> None:
    """Set a possibly nested field the way Firestore interprets dotted update keys."""
    parts = dotted.split(".")
    target = data
    for part in parts[:-1]:
        child = target.get(part)
        if not isinstance(child, dict):
            child = {}
            target[part] = child
        target = child
    target[parts[-1]] = value


def _deep_merge(base: Dict[str, Any], incoming: Dict[str, Any]) -> Dict[str, Any]:
    merged = dict(base)
    for key, value in incoming.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


# =============================================================================
# Firestore Storage
# =============================================================================

class FirestoreDocumentStore:
    """DocumentStore backed by a firebase-admin Firestore client."""

    def __init__(self, client) -> None:
        self._client = client

    def _collection(self, path: CollectionPath):
        _validate_path(path)
        ref = self._client.collection(path[0])
        for index in range(1, len(path), 2):
            ref = ref.document(path[index]).collection(path[index + 1])
        return ref

    def add(self, path: CollectionPath, data: Dict[str, Any]) -> str:
        try:
            _, doc_ref = self._collection(path).add(data)
        except google_exceptions.GoogleAPIError as exc:
            raise RemoteCallFailure(f"Firestore add failed on {'/'.join(path)}: {exc}") from exc
        return doc_ref.id

    def get(self, path: CollectionPath, doc_id: str) -> Optional[Dict[str, Any]]:
        _validate_segment(doc_id)
        try:
            snapshot = self._collection(path).document(doc_id).get()
        except google_exceptions.GoogleAPIError as exc:
            raise RemoteCallFailure(f"Firestore read failed on {'/'.join(path)}/{doc_id}: {exc}") from exc
        if snapshot.exists:
            return snapshot.to_dict()
        return None

    def set(
        self,
        path: CollectionPath,
        doc_id: str,
        data: Dict[str, Any],
        *,
        merge: bool = False,
    ) -> None:
        _validate_segment(doc_id)
        try:
            self._collection(path).document(doc_id).set(data, merge=merge)
        except google_exceptions.GoogleAPIError as exc:
            raise RemoteCallFailure(f"Firestore write failed on {'/'.join(path)}/{doc_id}: {exc}") from exc

    def update(self, path: CollectionPath, doc_id: str, fields: Dict[str, Any]) -> None:
        _validate_segment(doc_id)
        try:
            self._collection(path).document(doc_id).update(fields)
        except google_exceptions.NotFound as exc:
            raise DocumentNotFound(f"No document {'/'.join(path)}/{doc_id}") from exc
        except google_exceptions.GoogleAPIError as exc:
            raise RemoteCallFailure(f"Firestore update failed on {'/'.join(path)}/{doc_id}: {exc}") from exc

    def delete(self, path: CollectionPath, doc_id: str) -> None:
        _validate_segment(doc_id)
        try:
            self._collection(path).document(doc_id).delete()
        except google_exceptions.GoogleAPIError as exc:
            raise RemoteCallFailure(f"Firestore delete failed on {'/'.join(path)}/{doc_id}: {exc}") from exc

    def query(
        self,
        path: CollectionPath,
        field: str,
        value: Any,
        *,
        limit: Optional[int] = None,
    ) -> List[Document]:
        query = self._collection(path).where(field, "==", value)
        if limit is not None:
            query = query.limit(limit)
        try:
            return [Document(id=snap.id, data=snap.to_dict()) for snap in query.stream()]
        except google_exceptions.GoogleAPIError as exc:
            raise RemoteCallFailure(f"Firestore query failed on {'/'.join(path)}: {exc}") from exc

    def stream(self, path: CollectionPath) -> List[Document]:
        try:
            return [Document(id=snap.id, data=snap.to_dict()) for snap in self._collection(path).stream()]
        except google_exceptions.GoogleAPIError as exc:
            raise RemoteCallFailure(f"Firestore list failed on {'/'.join(path)}: {exc}") from exc


# =============================================================================
# File Storage (Fallback)
# =============================================================================

class FileDocumentStore:
    """DocumentStore writing one JSON file per document under a root directory."""

    def __init__(self, root: Path) -> None:
        self.root = Path(root)

    def _dir(self, path: CollectionPath) -> Path:
        _validate_path(path)
        return self.root.joinpath(*path)

    def _file(self, path: CollectionPath, doc_id: str) -> Path:
        _validate_segment(doc_id)
        return self._dir(path) / f"{doc_id}.json"

    def _read(self, file_path: Path) -> Optional[Dict[str, Any]]:
        if not file_path.exists():
            return None
        try:
            with file_path.open("r", encoding="utf-8") as f:
                return json.load(f)
        except (OSError, json.JSONDecodeError) as exc:
            raise RemoteCallFailure(f"Failed to read {file_path}: {exc}") from exc

    def _write(self, file_path: Path, data: Dict[str, Any]) -> None:
        try:
            file_path.parent.mkdir(parents=True, exist_ok=True)
            with file_path.open("w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
        except OSError as exc:
            raise RemoteCallFailure(f"Failed to write {file_path}: {exc}") from exc

    def add(self, path: CollectionPath, data: Dict[str, Any]) -> str:
        doc_id = uuid.uuid4().hex[:20]
        self._write(self._file(path, doc_id), copy.deepcopy(data))
        return doc_id

    def get(self, path: CollectionPath, doc_id: str) -> Optional[Dict[str, Any]]:
        return self._read(self._file(path, doc_id))

    def set(
        self,
        path: CollectionPath,
        doc_id: str,
        data: Dict[str, Any],
        *,
        merge: bool = False,
    ) -> None:
        file_path = self._file(path, doc_id)
        payload = copy.deepcopy(data)
        if merge:
            payload = _deep_merge(self._read(file_path) or {}, payload)
        self._write(file_path, payload)

    def update(self, path: CollectionPath, doc_id: str, fields: Dict[str, Any]) -> None:
        file_path = self._file(path, doc_id)
        current = self._read(file_path)
        if current is None:
            raise DocumentNotFound(f"No document {'/'.join(path)}/{doc_id}")
        for key, value in fields.items():
            _set_field(current, key, copy.deepcopy(value))
        self._write(file_path, current)

    def delete(self, path: CollectionPath, doc_id: str) -> None:
        file_path = self._file(path, doc_id)
        try:
            file_path.unlink(missing_ok=True)
        except OSError as exc:
            raise RemoteCallFailure(f"Failed to delete {file_path}: {exc}") from exc

    def query(
        self,
        path: CollectionPath,
        field: str,
        value: Any,
        *,
        limit: Optional[int] = None,
    ) -> List[Document]:
        matches = [doc for doc in self.stream(path) if _get_field(doc.data, field) == value]
        if limit is not None:
            return matches[:limit]
        return matches

    def stream(self, path: CollectionPath) -> List[Document]:
        directory = self._dir(path)
        if not directory.exists():
            return []

        documents = []
        for file_path in sorted(directory.glob("*.json")):
            try:
                with file_path.open("r", encoding="utf-8") as f:
                    documents.append(Document(id=file_path.stem, data=json.load(f)))
            except (OSError, json.JSONDecodeError) as exc:
                logger.warning("[DocumentStore] Skipping unreadable document %s: %s", file_path, exc)
                continue
        return documents


def get_document_store(settings: Settings) -> DocumentStore:
    """Return the configured document store backend."""
    if settings.force_file_store:
        logger.info("[DocumentStore] Using file storage at %s", settings.store_dir)
        return FileDocumentStore(settings.store_dir)

    from .firestore import get_firestore_client

    return FirestoreDocumentStore(get_firestore_client())
