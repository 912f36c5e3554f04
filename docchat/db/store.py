"""Document storage.

Stores hold at most one document per id and list documents newest first.
Saving a new document whose name is already taken by another document
appends the current time to its name so the two stay distinguishable.
The store also remembers which document was processed last, so a restarted
session can reopen it.
"""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import replace
from datetime import datetime
from typing import Any

import asyncpg
import structlog

from docchat.core.exceptions import StorageError
from docchat.db.models import Document

logger = structlog.get_logger(__name__)

LAST_PROCESSED_KEY = "last_processed_document_id"


def _dedup_suffix() -> str:
    return datetime.now().strftime("%H-%M-%S")


class DocumentStore(ABC):
    @abstractmethod
    async def get_by_id(self, document_id: str) -> Document | None: ...

    @abstractmethod
    async def get_all(self) -> list[Document]:
        """All documents, newest first."""
        ...

    @abstractmethod
    async def _put(self, document: Document) -> None: ...

    @abstractmethod
    async def _remove(self, document_id: str) -> None: ...

    @abstractmethod
    async def _remove_all(self) -> None: ...

    @abstractmethod
    async def save_last_processed_id(self, document_id: str | None) -> None: ...

    @abstractmethod
    async def get_last_processed_id(self) -> str | None: ...

    async def save(self, document: Document) -> Document:
        """Insert or update *document*; returns the stored version."""
        existing = await self.get_by_id(document.id)
        if existing is not None:
            await self._put(document)
            logger.info("document_updated", document_id=document.id)
            return document

        taken = {doc.name for doc in await self.get_all() if doc.id != document.id}
        if document.name in taken:
            new_name = f"{document.name} ({_dedup_suffix()})"
            logger.info("document_renamed", document_id=document.id, name=new_name)
            document = replace(document, name=new_name)

        await self._put(document)
        logger.info("document_saved", document_id=document.id, chunks=len(document.chunks))
        return document

    async def delete(self, document_id: str) -> None:
        existing = await self.get_by_id(document_id)
        if existing is None:
            logger.warning("document_delete_missing", document_id=document_id)
            return

        await self._remove(document_id)
        logger.info("document_deleted", document_id=document_id, name=existing.name)

        if await self.get_last_processed_id() == document_id:
            await self.save_last_processed_id(None)

    async def clear(self) -> None:
        await self._remove_all()
        await self.save_last_processed_id(None)
        logger.info("documents_cleared")


class InMemoryDocumentStore(DocumentStore):
    def __init__(self) -> None:
        self._documents: dict[str, Document] = {}
        self._last_processed_id: str | None = None

    async def get_by_id(self, document_id: str) -> Document | None:
        return self._documents.get(document_id)

    async def get_all(self) -> list[Document]:
        return sorted(self._documents.values(), key=lambda doc: doc.created_at, reverse=True)

    async def _put(self, document: Document) -> None:
        self._documents[document.id] = document

    async def _remove(self, document_id: str) -> None:
        self._documents.pop(document_id, None)

    async def _remove_all(self) -> None:
        self._documents.clear()

    async def save_last_processed_id(self, document_id: str | None) -> None:
        self._last_processed_id = document_id

    async def get_last_processed_id(self) -> str | None:
        return self._last_processed_id


def row_to_document(row: Mapping[str, Any]) -> Document:
    chunks = row["chunks"]
    if isinstance(chunks, str):
        chunks = json.loads(chunks)
    return Document(
        id=row["id"],
        name=row["name"],
        content=row["content"],
        extension=row["extension"],
        chunks=list(chunks),
        summary=row["summary"],
        source=row["source"],
        created_at=row["created_at"],
    )


class PostgresDocumentStore(DocumentStore):
    def __init__(self, pool_factory: Callable[[], Awaitable[asyncpg.Pool]]) -> None:
        self._pool_factory = pool_factory

    async def _execute(self, query: str, *args: Any) -> None:
        try:
            pool = await self._pool_factory()
            async with pool.acquire() as conn:
                await conn.execute(query, *args)
        except StorageError:
            raise
        except Exception as exc:
            logger.error("document_store_failed", error=str(exc))
            raise StorageError(str(exc)) from exc

    async def _fetch(self, query: str, *args: Any) -> list[asyncpg.Record]:
        try:
            pool = await self._pool_factory()
            async with pool.acquire() as conn:
                return await conn.fetch(query, *args)
        except StorageError:
            raise
        except Exception as exc:
            logger.error("document_store_failed", error=str(exc))
            raise StorageError(str(exc)) from exc

    async def get_by_id(self, document_id: str) -> Document | None:
        rows = await self._fetch("SELECT * FROM documents WHERE id = $1", document_id)
        return row_to_document(rows[0]) if rows else None

    async def get_all(self) -> list[Document]:
        rows = await self._fetch("SELECT * FROM documents ORDER BY created_at DESC")
        return [row_to_document(row) for row in rows]

    async def _put(self, document: Document) -> None:
        await self._execute(
            """
            INSERT INTO documents (id, name, content, extension, chunks, summary, source, created_at)
            VALUES ($1, $2, $3, $4, $5::jsonb, $6, $7, $8)
            ON CONFLICT (id) DO UPDATE SET
                name = EXCLUDED.name,
                content = EXCLUDED.content,
                extension = EXCLUDED.extension,
                chunks = EXCLUDED.chunks,
                summary = EXCLUDED.summary,
                source = EXCLUDED.source;
            """,
            document.id,
            document.name,
            document.content,
            document.extension,
            json.dumps(document.chunks, ensure_ascii=False),
            document.summary,
            document.source,
            document.created_at,
        )

    async def _remove(self, document_id: str) -> None:
        await self._execute("DELETE FROM documents WHERE id = $1", document_id)

    async def _remove_all(self) -> None:
        await self._execute("DELETE FROM documents")

    async def save_last_processed_id(self, document_id: str | None) -> None:
        if document_id is None:
            await self._execute("DELETE FROM app_state WHERE key = $1", LAST_PROCESSED_KEY)
            return
        await self._execute(
            """
            INSERT INTO app_state (key, value) VALUES ($1, $2)
            ON CONFLICT (key) DO UPDATE SET value = EXCLUDED.value;
            """,
            LAST_PROCESSED_KEY,
            document_id,
        )

    async def get_last_processed_id(self) -> str | None:
        rows = await self._fetch("SELECT value FROM app_state WHERE key = $1", LAST_PROCESSED_KEY)
        return rows[0]["value"] if rows else None
