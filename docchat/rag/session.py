from __future__ import annotations

import asyncio
import inspect

import structlog

from docchat.core.exceptions import (
    DocumentNotBoundError,
    DocumentNotFoundError,
    GenerationError,
    GenerationInProgressError,
    ModelNotReadyError,
)
from docchat.db.models import Document, Message
from docchat.db.store import DocumentStore
from docchat.llm.base import DeltaCallback, GenerationBackend

logger = structlog.get_logger(__name__)

ERROR_REPLY = "Sorry, an error occurred. Please try again."


class ChatSession:
    """A conversation about one document, as seen by the user.

    Keeps the visible message log next to the backend that answers. The log
    starts over whenever another document is opened.
    """

    def __init__(self, backend: GenerationBackend, store: DocumentStore) -> None:
        self._backend = backend
        self._store = store
        self._messages: list[Message] = []
        self._warm_up: asyncio.Task | None = None

    @property
    def backend(self) -> GenerationBackend:
        return self._backend

    @property
    def store(self) -> DocumentStore:
        return self._store

    @property
    def document(self) -> Document | None:
        return self._backend.document

    @property
    def messages(self) -> list[Message]:
        return list(self._messages)

    def set_document(self, document: Document) -> None:
        self._backend.set_document(document)
        self._messages.clear()

    async def open_document(self, document_id: str) -> Document:
        document = await self._store.get_by_id(document_id)
        if document is None:
            raise DocumentNotFoundError(document_id)
        self.set_document(document)
        await self._store.save_last_processed_id(document.id)
        return document

    async def open_last_document(self) -> Document | None:
        document_id = await self._store.get_last_processed_id()
        if document_id is None:
            return None
        document = await self._store.get_by_id(document_id)
        if document is not None:
            self.set_document(document)
        return document

    def forget_document(self, document_id: str) -> None:
        """Drop the binding if *document_id* is the active document."""
        current = self._backend.document
        if current is not None and current.id == document_id:
            self._backend.clear_document()
            self._messages.clear()

    async def replace_backend(self, backend: GenerationBackend) -> None:
        """Switch to *backend*, keeping the open document but not the conversation."""
        document = self._backend.document
        await self._stop_warm_up()
        await self._backend.dispose()
        self._backend = backend
        self._messages.clear()
        if document is not None:
            backend.set_document(document)
        logger.info("backend_replaced", provider=backend.provider)

    def start_warm_up(self) -> asyncio.Task | None:
        """Start preparing the backend in the background; None if already prepared."""
        if self._backend.is_model_loaded():
            return None
        if self._warm_up is None or self._warm_up.done():
            self._warm_up = asyncio.create_task(self._run_warm_up(self._backend))
        return self._warm_up

    async def _run_warm_up(self, backend: GenerationBackend) -> None:
        def on_progress(progress: int) -> None:
            logger.info("model_load_progress", provider=backend.provider, progress=progress)

        try:
            await backend.initialize(on_progress=on_progress)
        except ModelNotReadyError as exc:
            logger.warning("model_warm_up_failed", provider=backend.provider, error=exc.message)

    async def _stop_warm_up(self) -> None:
        task, self._warm_up = self._warm_up, None
        if task is not None and not task.done():
            task.cancel()
            await asyncio.wait([task])

    async def close(self) -> None:
        """Stop any warm-up and release the backend."""
        await self._stop_warm_up()
        await self._backend.dispose()

    def check_ready(self) -> None:
        """Raise the error a question would fail with right now, if any."""
        if self._backend.document is None:
            raise DocumentNotBoundError()
        self._backend.ensure_ready()
        if self._backend.is_generating:
            raise GenerationInProgressError()

    async def send_message(
        self, content: str, on_delta: DeltaCallback | None = None
    ) -> Message | None:
        """
        Ask a question and stream the answer into a new assistant message.

        Blank input is ignored. When generation fails the assistant message
        gets a fixed apology instead of the partial answer. A cancelled
        exchange is removed from the log.
        """
        if not content.strip():
            return None
        self.check_ready()

        question = Message(role="user", content=content)
        answer = Message(role="assistant", content="")
        self._messages.extend([question, answer])
        conversation = self._messages[:-1]

        async def collect(delta: str) -> None:
            answer.content += delta
            if on_delta is not None:
                result = on_delta(delta)
                if inspect.isawaitable(result):
                    await result

        try:
            await self._backend.generate_response(conversation, collect)
        except GenerationError as exc:
            logger.error("chat_message_failed", error=exc.message, partial_chars=len(answer.content))
            answer.content = ERROR_REPLY
        except asyncio.CancelledError:
            self._messages = [m for m in self._messages if m is not question and m is not answer]
            logger.info("chat_message_cancelled", partial_chars=len(answer.content))
            raise

        return answer

    async def summarize(self, refresh: bool = False) -> str:
        document = self._backend.document
        if document is not None and document.summary and not refresh:
            return document.summary

        summary = await self._backend.summarize_document()
        document = self._backend.document
        if document is not None:
            document.summary = summary
            await self._store.save(document)
        return summary

    async def key_topics(self) -> list[str]:
        return await self._backend.extract_key_topics()
