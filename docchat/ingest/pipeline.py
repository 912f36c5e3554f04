from __future__ import annotations

from urllib.parse import urlparse

import httpx
import structlog

from docchat.core.config import Settings, get_settings
from docchat.core.exceptions import UnsupportedInputError
from docchat.db.models import Document
from docchat.db.store import DocumentStore
from docchat.ingest.extract import extract_file_content, fetch_url_content, file_extension
from docchat.rag.chunking import chunk_document

logger = structlog.get_logger(__name__)


def build_document(
    name: str,
    content: str,
    extension: str,
    chunk_size: int,
    source: str | None = None,
) -> Document:
    if not content or not content.strip():
        raise UnsupportedInputError("Content could not be extracted from the document.")
    return Document(
        name=name,
        content=content,
        extension=extension,
        chunks=chunk_document(content, chunk_size),
        source=source,
    )


async def _store(document: Document, store: DocumentStore) -> Document:
    document = await store.save(document)
    await store.save_last_processed_id(document.id)
    logger.info(
        "document_ingested",
        document_id=document.id,
        name=document.name,
        extension=document.extension,
        chunks=len(document.chunks),
    )
    return document


async def ingest_file(
    filename: str,
    data: bytes,
    store: DocumentStore,
    settings: Settings | None = None,
) -> Document:
    """Extract, chunk and store an uploaded file."""
    settings = settings or get_settings()
    content = extract_file_content(filename, data)
    document = build_document(filename, content, file_extension(filename), settings.chunk_size)
    return await _store(document, store)


def _url_display_name(url: str) -> str:
    path = urlparse(url).path.rstrip("/")
    return path.rsplit("/", 1)[-1] if path else ""


async def ingest_url(
    url: str,
    store: DocumentStore,
    name: str = "",
    settings: Settings | None = None,
    http_client: httpx.AsyncClient | None = None,
) -> Document:
    """Fetch, chunk and store a web page."""
    settings = settings or get_settings()
    page = await fetch_url_content(url, http_client=http_client, timeout=settings.request_timeout)
    if not page.content.strip():
        raise UnsupportedInputError("Content could not be extracted from the URL.")

    display_name = name or page.title or _url_display_name(page.url) or "Web Page"
    document = build_document(
        display_name,
        page.content,
        "html",
        settings.chunk_size,
        source=page.url,
    )
    return await _store(document, store)
