# doughmain/core/documents.py
"""
Hierarchical document store on top of the `documents` table.

The API mirrors what a hosted document database client offers:

    store = DocumentStore(session_factory)
    items = store.collection("users").document(uid).collection("plaid_items")
    await items.document(item_id).set({...})
    for snap in await items.get():
        snap.to_dict()

    batch = store.batch()
    batch.set(ref, data, merge=True)
    await batch.commit()

Every public coroutine runs in its own database transaction; a WriteBatch
commits all of its writes in a single one.
"""

import copy
import logging
import secrets
import string
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from doughmain.core import models
from doughmain.core.errors import NotFoundError

logger = logging.getLogger(__name__)

_AUTO_ID_ALPHABET = string.ascii_letters + string.digits
_AUTO_ID_LENGTH = 20


class _ServerTimestamp:
    def __repr__(self) -> str:
        return "SERVER_TIMESTAMP"

    # writes deep-copy their payload; the sentinel must survive that
    def __copy__(self) -> "_ServerTimestamp":
        return self

    def __deepcopy__(self, memo: Dict[int, Any]) -> "_ServerTimestamp":
        return self


# Replaced by the write time (UTC, ISO-8601) when the document is stored
SERVER_TIMESTAMP = _ServerTimestamp()


def _auto_id() -> str:
    return "".join(secrets.choice(_AUTO_ID_ALPHABET) for _ in range(_AUTO_ID_LENGTH))


def _split_path(path: str) -> List[str]:
    segments = path.strip("/").split("/")
    if any(not seg for seg in segments):
        raise ValueError(f"Invalid document path: {path!r}")
    return segments


def _resolve_sentinels(data: Any, now: str) -> Any:
    if isinstance(data, _ServerTimestamp):
        return now
    if isinstance(data, dict):
        return {k: _resolve_sentinels(v, now) for k, v in data.items()}
    if isinstance(data, list):
        return [_resolve_sentinels(v, now) for v in data]
    return data


def _deep_merge(base: Dict[str, Any], changes: Dict[str, Any]) -> Dict[str, Any]:
    merged = dict(base)
    for key, value in changes.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


class DocumentSnapshot:
    def __init__(
        self,
        reference: "DocumentReference",
        data: Optional[Dict[str, Any]],
    ):
        self.reference = reference
        self._data = data

    @property
    def id(self) -> str:
        return self.reference.id

    @property
    def exists(self) -> bool:
        return self._data is not None

    def to_dict(self) -> Optional[Dict[str, Any]]:
        return copy.deepcopy(self._data)

    def get(self, field: str, default: Any = None) -> Any:
        if self._data is None:
            return default
        return self._data.get(field, default)


class DocumentReference:
    def __init__(self, store: "DocumentStore", path: str):
        segments = _split_path(path)
        if len(segments) % 2:
            raise ValueError(f"Document path needs an even number of segments: {path!r}")
        self._store = store
        self.path = "/".join(segments)

    def __repr__(self) -> str:
        return f"DocumentReference({self.path!r})"

    def __eq__(self, other: object) -> bool:
        return isinstance(other, DocumentReference) and other.path == self.path

    def __hash__(self) -> int:
        return hash(self.path)

    @property
    def id(self) -> str:
        return self.path.rsplit("/", 1)[1]

    @property
    def parent(self) -> "CollectionReference":
        return CollectionReference(self._store, self.path.rsplit("/", 1)[0])

    def collection(self, name: str) -> "CollectionReference":
        return CollectionReference(self._store, f"{self.path}/{name}")

    async def get(self) -> DocumentSnapshot:
        async with self._store.session() as session:
            row = await session.get(models.Document, self.path)
            data = copy.deepcopy(row.data) if row is not None else None
        return DocumentSnapshot(self, data)

    async def set(self, data: Dict[str, Any], merge: bool = False) -> None:
        async with self._store.session() as session, session.begin():
            await self._store._apply_set(session, self, data, merge)

    async def update(self, data: Dict[str, Any]) -> None:
        async with self._store.session() as session, session.begin():
            await self._store._apply_update(session, self, data)

    async def delete(self) -> None:
        async with self._store.session() as session, session.begin():
            await self._store._apply_delete(session, self)


class CollectionReference:
    def __init__(self, store: "DocumentStore", path: str):
        segments = _split_path(path)
        if len(segments) % 2 == 0:
            raise ValueError(f"Collection path needs an odd number of segments: {path!r}")
        self._store = store
        self.path = "/".join(segments)

    def __repr__(self) -> str:
        return f"CollectionReference({self.path!r})"

    @property
    def id(self) -> str:
        return self.path.rsplit("/", 1)[-1]

    @property
    def parent(self) -> Optional[DocumentReference]:
        if "/" not in self.path:
            return None
        return DocumentReference(self._store, self.path.rsplit("/", 1)[0])

    def document(self, doc_id: Optional[str] = None) -> DocumentReference:
        return DocumentReference(self._store, f"{self.path}/{doc_id or _auto_id()}")

    async def add(self, data: Dict[str, Any]) -> DocumentReference:
        ref = self.document()
        await ref.set(data)
        return ref

    async def get(self) -> List[DocumentSnapshot]:
        query = (
            select(models.Document)
            .where(models.Document.collection_path == self.path)
            .order_by(models.Document.doc_id)
        )
        async with self._store.session() as session:
            result = await session.execute(query)
            rows = result.scalars().all()
            return [
                DocumentSnapshot(self.document(row.doc_id), copy.deepcopy(row.data))
                for row in rows
            ]

    async def count(self) -> int:
        query = select(func.count()).where(models.Document.collection_path == self.path)
        async with self._store.session() as session:
            result = await session.execute(query)
            return int(result.scalar_one())

    async def list_documents(self) -> List[DocumentReference]:
        """
        Every child id that holds a document or has documents below it.

        A user who only has sub-collections (accounts, transactions) and no
        document of their own is still listed.
        """
        prefix = f"{self.path}/"
        own_docs = select(models.Document.doc_id).where(
            models.Document.collection_path == self.path
        )
        # one row per sub-collection, not per descendant document
        sub_collections = (
            select(models.Document.collection_path)
            .where(models.Document.collection_path.startswith(prefix, autoescape=True))
            .distinct()
        )
        async with self._store.session() as session:
            ids = set((await session.execute(own_docs)).scalars().all())
            collection_paths = (await session.execute(sub_collections)).scalars().all()
        # LIKE is case-insensitive on some backends
        ids.update(
            p[len(prefix):].split("/", 1)[0]
            for p in collection_paths
            if p.startswith(prefix)
        )
        return [self.document(doc_id) for doc_id in sorted(ids)]


class WriteBatch:
    def __init__(self, store: "DocumentStore"):
        self._store = store
        self._writes: List[Tuple[str, DocumentReference, Optional[Dict[str, Any]], bool]] = []

    def __len__(self) -> int:
        return len(self._writes)

    def set(self, ref: DocumentReference, data: Dict[str, Any], merge: bool = False) -> "WriteBatch":
        self._writes.append(("set", ref, data, merge))
        return self

    def update(self, ref: DocumentReference, data: Dict[str, Any]) -> "WriteBatch":
        self._writes.append(("update", ref, data, False))
        return self

    def delete(self, ref: DocumentReference) -> "WriteBatch":
        self._writes.append(("delete", ref, None, False))
        return self

    async def commit(self) -> None:
        if not self._writes:
            return
        async with self._store.session() as session, session.begin():
            for op, ref, data, merge in self._writes:
                if op == "set":
                    await self._store._apply_set(session, ref, data, merge)
                elif op == "update":
                    await self._store._apply_update(session, ref, data)
                else:
                    await self._store._apply_delete(session, ref)
        logger.debug("Committed batch of %d writes", len(self._writes))
        self._writes = []


class DocumentStore:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    def session(self) -> AsyncSession:
        return self._session_factory()

    def collection(self, path: str) -> CollectionReference:
        return CollectionReference(self, path)

    def document(self, path: str) -> DocumentReference:
        return DocumentReference(self, path)

    def batch(self) -> WriteBatch:
        return WriteBatch(self)

    # --- write primitives, always called inside an open transaction ---

    @staticmethod
    def _now() -> str:
        return datetime.now(timezone.utc).isoformat()

    async def _apply_set(
        self,
        session: AsyncSession,
        ref: DocumentReference,
        data: Dict[str, Any],
        merge: bool,
    ) -> None:
        data = _resolve_sentinels(copy.deepcopy(data), self._now())
        row = await session.get(models.Document, ref.path)
        if row is None:
            session.add(
                models.Document(
                    path=ref.path,
                    collection_path=ref.parent.path,
                    doc_id=ref.id,
                    data=data,
                )
            )
            # later writes in the same batch must see this row
            await session.flush()
            return
        row.data = _deep_merge(copy.deepcopy(row.data), data) if merge else data

    async def _apply_update(
        self,
        session: AsyncSession,
        ref: DocumentReference,
        data: Dict[str, Any],
    ) -> None:
        row = await session.get(models.Document, ref.path)
        if row is None:
            raise NotFoundError(f"No document to update: {ref.path}")
        changes = _resolve_sentinels(copy.deepcopy(data), self._now())
        merged = copy.deepcopy(row.data)
        merged.update(changes)
        row.data = merged

    async def _apply_delete(self, session: AsyncSession, ref: DocumentReference) -> None:
        row = await session.get(models.Document, ref.path)
        if row is not None:
            await session.delete(row)
            await session.flush()
