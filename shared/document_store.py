# shared/document_store.py
from contextlib import asynccontextmanager
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Type, TypeVar
import uuid

from fastapi import Depends
from pydantic import BaseModel, ValidationError
from sqlalchemy import JSON, Column, DateTime, Index, String, and_, delete
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from shared.db import Base, get_db
from shared.errors import MalformedDocument, NotFound
from shared.schemas import CamelModel

ModelT = TypeVar("ModelT", bound=BaseModel)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Document(Base):
    __tablename__ = "documents"

    collection = Column(String(64), primary_key=True)
    id = Column(String(64), primary_key=True)
    data = Column(JSON().with_variant(JSONB(), "postgresql"), nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)

    __table_args__ = (
        Index("idx_documents_collection_created", "collection", "created_at"),
    )


class DocumentModel(CamelModel):
    """Stored documents keep the portal's camelCase keys."""

    id: Optional[str] = None


def _plain(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return value


def _field(name: str, value: Any):
    element = Document.data[name]
    if isinstance(value, bool):
        return element.as_boolean()
    if isinstance(value, int):
        return element.as_integer()
    if isinstance(value, float):
        return element.as_float()
    return element.as_string()


def _as_dict(row: Document) -> Dict[str, Any]:
    doc = dict(row.data)
    doc["id"] = row.id
    return doc


def decode(model: Type[ModelT], collection: str, doc: Dict[str, Any]) -> ModelT:
    """Validate a raw document into its model, failing fast on bad shape."""
    try:
        return model.model_validate(doc)
    except ValidationError as exc:
        raise MalformedDocument(collection, str(doc.get("id")), str(exc)) from exc


def encode(model: BaseModel) -> Dict[str, Any]:
    return model.model_dump(mode="json", by_alias=True, exclude={"id"})


class DocumentStore:
    """
    Collection-of-documents access over the `documents` table.

    Every write commits on its own (last writer wins per document) unless it
    runs inside `atomic()`, which defers the commit to the outermost block and
    rolls everything back on error.
    """

    def __init__(self, db: AsyncSession):
        self.db = db
        self._depth = 0

    async def _commit(self):
        if self._depth == 0:
            await self.db.commit()

    @asynccontextmanager
    async def atomic(self):
        self._depth += 1
        try:
            yield self
        except Exception:
            self._depth -= 1
            if self._depth == 0:
                await self.db.rollback()
            raise
        self._depth -= 1
        if self._depth == 0:
            await self.db.commit()

    async def _row(self, collection: str, doc_id: str) -> Optional[Document]:
        return await self.db.get(Document, (collection, doc_id))

    # --- READS ---
    async def get(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        row = await self._row(collection, doc_id)
        return _as_dict(row) if row else None

    async def find(
        self,
        collection: str,
        where: Optional[Dict[str, Any]] = None,
        between: Optional[Tuple[str, Any, Any]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
    ) -> List[Dict[str, Any]]:
        """
        Equality filters on top-level fields, plus an optional half-open range
        `(field, lower, upper)` meaning lower <= field < upper. Without
        `order_by` documents come back in insertion order.
        """
        conditions = [Document.collection == collection]
        for name, value in (where or {}).items():
            value = _plain(value)
            conditions.append(_field(name, value) == value)
        if between:
            name, lower, upper = between
            lower, upper = _plain(lower), _plain(upper)
            column = _field(name, lower if lower is not None else upper)
            if lower is not None:
                conditions.append(column >= lower)
            if upper is not None:
                conditions.append(column < upper)

        query = select(Document).where(and_(*conditions))
        if order_by:
            key = Document.data[order_by].as_string()
            query = query.order_by(key.desc() if descending else key.asc())
        query = query.order_by(Document.created_at, Document.id)

        result = await self.db.execute(query)
        return [_as_dict(row) for row in result.scalars().all()]

    # --- WRITES ---
    def _new(self, collection: str, doc_id: str, data: Dict[str, Any]) -> Document:
        row = Document(collection=collection, id=doc_id, data=dict(data))
        self.db.add(row)
        return row

    async def add(self, collection: str, data: Dict[str, Any]) -> str:
        doc_id = str(uuid.uuid4())
        self._new(collection, doc_id, data)
        await self._commit()
        return doc_id

    async def set(self, collection: str, doc_id: str, data: Dict[str, Any]) -> None:
        """Create or fully overwrite a document under a caller-chosen id."""
        row = await self._row(collection, doc_id)
        if row:
            row.data = dict(data)
        else:
            self._new(collection, doc_id, data)
        await self._commit()

    async def update(self, collection: str, doc_id: str, fields: Dict[str, Any]) -> None:
        row = await self._row(collection, doc_id)
        if not row:
            raise NotFound(f"{collection} document {doc_id} not found")
        row.data = {**row.data, **fields}
        await self._commit()

    async def delete(self, collection: str, doc_id: str) -> bool:
        row = await self._row(collection, doc_id)
        if not row:
            return False
        await self.db.delete(row)
        await self._commit()
        return True

    async def delete_where(self, collection: str, where: Dict[str, Any]) -> int:
        conditions = [Document.collection == collection]
        for name, value in where.items():
            value = _plain(value)
            conditions.append(_field(name, value) == value)
        result = await self.db.execute(delete(Document).where(and_(*conditions)))
        await self._commit()
        return result.rowcount or 0

    async def replace_children(
        self,
        collection: str,
        parent_field: str,
        parent_id: str,
        children: List[Dict[str, Any]],
    ) -> List[str]:
        """
        Replace every document whose `parent_field` equals `parent_id` with
        `children`. Old children are deleted before the new ones are written.
        """
        async with self.atomic():
            await self.delete_where(collection, {parent_field: parent_id})
            ids = []
            for child in children:
                doc_id = str(uuid.uuid4())
                self._new(collection, doc_id, {**child, parent_field: parent_id})
                ids.append(doc_id)
            await self.db.flush()
        return ids


async def get_store(db: AsyncSession = Depends(get_db)) -> DocumentStore:
    return DocumentStore(db)
