"""
Document store abstraction with in-memory, SQL, Firestore and JSON-file backends.

Documents are schemaless JSON-compatible dicts grouped into named collections.
Identifiers are assigned by the store on ``add`` and never reused.
"""

from __future__ import annotations

import copy
import json
import logging
import os
import threading
import time
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Protocol

from google.cloud.firestore_v1 import Query
from google.cloud.firestore_v1.base_query import FieldFilter
from sqlalchemy import JSON, Column, Float, String, create_engine, func, select
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from taskboard.events import ChangeFeed
from taskboard.schemas import epoch_seconds

logger = logging.getLogger(__name__)


@dataclass
class Document:
    id: str
    data: dict

    def as_dict(self) -> dict:
        return {**self.data, "id": self.id}


class DocumentStore(Protocol):
    """Interface the collection services need from a document database."""

    changes: ChangeFeed

    def add(self, collection: str, data: dict) -> str:
        ...

    def get(self, collection: str, doc_id: str) -> Optional[dict]:
        ...

    def list(
        self,
        collection: str,
        *,
        order_by: Optional[str] = None,
        descending: bool = False,
    ) -> List[Document]:
        ...

    def query(self, collection: str, field: str, value: Any) -> List[Document]:
        ...

    def update(self, collection: str, doc_id: str, fields: dict) -> bool:
        ...

    def delete(self, collection: str, doc_id: str) -> bool:
        ...

    def count(self, collection: str) -> int:
        ...


def _new_id() -> str:
    return uuid.uuid4().hex


def _ordered(
    docs: Iterable[Document], order_by: Optional[str], descending: bool
) -> List[Document]:
    docs = list(docs)
    if not order_by:
        return docs
    present = [d for d in docs if d.data.get(order_by) is not None]
    missing = [d for d in docs if d.data.get(order_by) is None]
    # Timestamps may be stored as floats, datetimes or ISO strings.
    present.sort(key=lambda d: epoch_seconds(d.data[order_by]), reverse=descending)
    return present + missing


class InMemoryDocumentStore:
    """Simple in-memory document store for development and tests."""

    def __init__(self):
        self.collections: Dict[str, Dict[str, dict]] = {}
        self.changes = ChangeFeed()
        self._lock = threading.Lock()

    def reset(self) -> None:
        """Clear all stored data (useful in tests)."""
        with self._lock:
            self.collections.clear()

    def add(self, collection: str, data: dict) -> str:
        doc_id = _new_id()
        with self._lock:
            self.collections.setdefault(collection, {})[doc_id] = copy.deepcopy(data)
        self.changes.publish(collection)
        return doc_id

    def get(self, collection: str, doc_id: str) -> Optional[dict]:
        with self._lock:
            data = self.collections.get(collection, {}).get(doc_id)
            return copy.deepcopy(data) if data is not None else None

    def list(
        self,
        collection: str,
        *,
        order_by: Optional[str] = None,
        descending: bool = False,
    ) -> List[Document]:
        with self._lock:
            docs = [
                Document(doc_id, copy.deepcopy(data))
                for doc_id, data in self.collections.get(collection, {}).items()
            ]
        return _ordered(docs, order_by, descending)

    def query(self, collection: str, field: str, value: Any) -> List[Document]:
        return [
            doc
            for doc in self.list(collection)
            if field in doc.data and doc.data[field] == value
        ]

    def update(self, collection: str, doc_id: str, fields: dict) -> bool:
        with self._lock:
            data = self.collections.get(collection, {}).get(doc_id)
            if data is None:
                return False
            data.update(copy.deepcopy(fields))
        self.changes.publish(collection)
        return True

    def delete(self, collection: str, doc_id: str) -> bool:
        with self._lock:
            removed = self.collections.get(collection, {}).pop(doc_id, None)
        if removed is None:
            return False
        self.changes.publish(collection)
        return True

    def count(self, collection: str) -> int:
        with self._lock:
            return len(self.collections.get(collection, {}))


class SqlDocumentStore:
    """
    SQLAlchemy-backed implementation. Accepts any SQLAlchemy URL (e.g., Postgres or SQLite for tests).
    """

    def __init__(self, database_url: str):
        if not database_url:
            raise ValueError("DATABASE_URL is required for SqlDocumentStore")
        self.engine = create_engine(
            database_url,
            future=True,
            pool_pre_ping=True,
            pool_recycle=1800,
        )
        self.Session = sessionmaker(
            bind=self.engine, class_=Session, expire_on_commit=False, future=True
        )
        Base.metadata.create_all(self.engine)
        self.changes = ChangeFeed()

    def add(self, collection: str, data: dict) -> str:
        doc_id = _new_id()
        with self.Session() as session:
            session.add(
                DocumentRow(
                    collection=collection,
                    doc_id=doc_id,
                    data=data,
                    inserted_at=time.time(),
                )
            )
            session.commit()
        self.changes.publish(collection)
        return doc_id

    def get(self, collection: str, doc_id: str) -> Optional[dict]:
        with self.Session() as session:
            row = session.get(DocumentRow, (collection, doc_id))
            return dict(row.data) if row else None

    def list(
        self,
        collection: str,
        *,
        order_by: Optional[str] = None,
        descending: bool = False,
    ) -> List[Document]:
        with self.Session() as session:
            stmt = (
                select(DocumentRow)
                .where(DocumentRow.collection == collection)
                .order_by(DocumentRow.inserted_at.asc())
            )
            rows = session.execute(stmt).scalars().all()
            docs = [Document(row.doc_id, dict(row.data)) for row in rows]
        # JSON ordering differs per dialect, so sort on the loaded payloads.
        return _ordered(docs, order_by, descending)

    def query(self, collection: str, field: str, value: Any) -> List[Document]:
        return [
            doc
            for doc in self.list(collection)
            if field in doc.data and doc.data[field] == value
        ]

    def update(self, collection: str, doc_id: str, fields: dict) -> bool:
        with self.Session() as session:
            row = session.get(DocumentRow, (collection, doc_id))
            if not row:
                return False
            # Reassign so the JSON column is flagged dirty.
            row.data = {**row.data, **fields}
            session.commit()
        self.changes.publish(collection)
        return True

    def delete(self, collection: str, doc_id: str) -> bool:
        with self.Session() as session:
            row = session.get(DocumentRow, (collection, doc_id))
            if not row:
                return False
            session.delete(row)
            session.commit()
        self.changes.publish(collection)
        return True

    def count(self, collection: str) -> int:
        with self.Session() as session:
            stmt = (
                select(func.count())
                .select_from(DocumentRow)
                .where(DocumentRow.collection == collection)
            )
            return session.execute(stmt).scalar_one()


@dataclass
class _CollectionWatch:
    watch: Any = None
    primed: bool = False


class FirestoreDocumentStore:
    """
    Cloud Firestore implementation via firebase_admin.

    Firestore's own ``update`` fails and ``delete`` silently succeeds on a
    missing document, so both check existence first.

    While a collection has listeners it is watched with ``on_snapshot``, so
    writes made by other clients reach subscribers too. Once the watch has
    delivered its first snapshot, local writes are left to it instead of
    being published twice.
    """

    def __init__(
        self,
        client: Any = None,
        *,
        project_id: Optional[str] = None,
        credentials_path: Optional[str] = None,
    ):
        self.client = client or _init_firestore_client(project_id, credentials_path)
        self.changes = ChangeFeed(
            on_first_listener=self._start_watch, on_last_listener=self._stop_watch
        )
        self._watches: Dict[str, _CollectionWatch] = {}
        self._watch_lock = threading.Lock()

    def _start_watch(self, collection: str) -> None:
        state = _CollectionWatch()
        with self._watch_lock:
            if collection in self._watches:
                return
            self._watches[collection] = state

        def _on_snapshot(_docs, _changes, _read_time) -> None:
            # The first callback is the current state, not a change.
            with self._watch_lock:
                if self._watches.get(collection) is not state:
                    return
                primed, state.primed = state.primed, True
            if primed:
                self.changes.publish(collection)

        try:
            watch = self.client.collection(collection).on_snapshot(_on_snapshot)
        except Exception:
            with self._watch_lock:
                self._watches.pop(collection, None)
            raise
        with self._watch_lock:
            stopped = self._watches.get(collection) is not state
            state.watch = watch
        if stopped:
            watch.unsubscribe()
            return
        logger.info("Watching Firestore collection %s", collection)

    def _stop_watch(self, collection: str) -> None:
        with self._watch_lock:
            state = self._watches.pop(collection, None)
        if state is not None and state.watch is not None:
            state.watch.unsubscribe()
            logger.info("Stopped watching Firestore collection %s", collection)

    def _publish_local(self, collection: str) -> None:
        with self._watch_lock:
            state = self._watches.get(collection)
            watched = state is not None and state.primed
        if not watched:
            self.changes.publish(collection)

    def add(self, collection: str, data: dict) -> str:
        _, doc_ref = self.client.collection(collection).add(data)
        self._publish_local(collection)
        return doc_ref.id

    def get(self, collection: str, doc_id: str) -> Optional[dict]:
        snapshot = self.client.collection(collection).document(doc_id).get()
        if not snapshot.exists:
            return None
        return snapshot.to_dict()

    def list(
        self,
        collection: str,
        *,
        order_by: Optional[str] = None,
        descending: bool = False,
    ) -> List[Document]:
        query = self.client.collection(collection)
        if order_by:
            direction = Query.DESCENDING if descending else Query.ASCENDING
            query = query.order_by(order_by, direction=direction)
        return [Document(snap.id, snap.to_dict()) for snap in query.stream()]

    def query(self, collection: str, field: str, value: Any) -> List[Document]:
        query = self.client.collection(collection).where(
            filter=FieldFilter(field, "==", value)
        )
        return [Document(snap.id, snap.to_dict()) for snap in query.stream()]

    def update(self, collection: str, doc_id: str, fields: dict) -> bool:
        doc_ref = self.client.collection(collection).document(doc_id)
        if not doc_ref.get().exists:
            return False
        doc_ref.update(fields)
        self._publish_local(collection)
        return True

    def delete(self, collection: str, doc_id: str) -> bool:
        doc_ref = self.client.collection(collection).document(doc_id)
        if not doc_ref.get().exists:
            return False
        doc_ref.delete()
        self._publish_local(collection)
        return True

    def count(self, collection: str) -> int:
        results = self.client.collection(collection).count().get()
        return int(results[0][0].value)


def _init_firestore_client(
    project_id: Optional[str], credentials_path: Optional[str]
) -> Any:
    import firebase_admin
    from firebase_admin import credentials, firestore

    try:
        firebase_admin.get_app()
    except ValueError:
        cred = (
            credentials.Certificate(credentials_path)
            if credentials_path
            else credentials.ApplicationDefault()
        )
        options = {"projectId": project_id} if project_id else None
        firebase_admin.initialize_app(cred, options)
        logger.info(
            "Firebase initialized project=%s credentials=%s",
            project_id,
            credentials_path or "application-default",
        )
    return firestore.client()


class JsonFileDocumentStore:
    """
    Local fallback store: one JSON file whose top-level keys are collection
    names, each holding an array of documents (``{"id": ..., **fields}``).
    """

    def __init__(self, path: str | os.PathLike):
        self.path = Path(path)
        self.changes = ChangeFeed()
        self._lock = threading.Lock()

    def _load(self) -> Dict[str, List[dict]]:
        if not self.path.exists():
            return {}
        text = self.path.read_text(encoding="utf-8")
        return json.loads(text) if text.strip() else {}

    def _save(self, payload: Dict[str, List[dict]]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp_path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
        os.replace(tmp_path, self.path)

    @staticmethod
    def _to_document(entry: dict) -> Document:
        data = dict(entry)
        doc_id = data.pop("id")
        return Document(doc_id, data)

    def add(self, collection: str, data: dict) -> str:
        doc_id = _new_id()
        with self._lock:
            payload = self._load()
            payload.setdefault(collection, []).append({**data, "id": doc_id})
            self._save(payload)
        self.changes.publish(collection)
        return doc_id

    def get(self, collection: str, doc_id: str) -> Optional[dict]:
        with self._lock:
            entries = self._load().get(collection, [])
        for entry in entries:
            if entry.get("id") == doc_id:
                return self._to_document(entry).data
        return None

    def list(
        self,
        collection: str,
        *,
        order_by: Optional[str] = None,
        descending: bool = False,
    ) -> List[Document]:
        with self._lock:
            entries = self._load().get(collection, [])
        return _ordered(
            (self._to_document(entry) for entry in entries), order_by, descending
        )

    def query(self, collection: str, field: str, value: Any) -> List[Document]:
        return [
            doc
            for doc in self.list(collection)
            if field in doc.data and doc.data[field] == value
        ]

    def update(self, collection: str, doc_id: str, fields: dict) -> bool:
        with self._lock:
            payload = self._load()
            for entry in payload.get(collection, []):
                if entry.get("id") == doc_id:
                    entry.update(fields)
                    entry["id"] = doc_id
                    break
            else:
                return False
            self._save(payload)
        self.changes.publish(collection)
        return True

    def delete(self, collection: str, doc_id: str) -> bool:
        with self._lock:
            payload = self._load()
            entries = payload.get(collection, [])
            remaining = [entry for entry in entries if entry.get("id") != doc_id]
            if len(remaining) == len(entries):
                return False
            payload[collection] = remaining
            self._save(payload)
        self.changes.publish(collection)
        return True

    def count(self, collection: str) -> int:
        with self._lock:
            return len(self._load().get(collection, []))


Base = declarative_base()


class DocumentRow(Base):
    __tablename__ = "documents"

    collection = Column(String, primary_key=True)
    doc_id = Column(String, primary_key=True)
    data = Column(JSON, nullable=False)
    inserted_at = Column(Float, nullable=False, index=True)
