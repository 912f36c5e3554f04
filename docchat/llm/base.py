from __future__ import annotations

import inspect
from abc import ABC, abstractmethod
from collections.abc import AsyncGenerator, Awaitable, Callable, Sequence
from typing import Union

import structlog

from docchat.core.config import Settings, get_settings
from docchat.core.exceptions import DocumentNotBoundError, GenerationInProgressError
from docchat.db.models import Document, Message
from docchat.rag.context import (
    build_chat_messages,
    build_summary_messages,
    build_topics_messages,
    parse_topics,
)
from docchat.rag.history import ConversationHistory
from docchat.rag.keywords import get_stopwords

logger = structlog.get_logger(__name__)

DeltaCallback = Callable[[str], Union[Awaitable[None], None]]
ProgressCallback = Callable[[int], None]
ErrorCallback = Callable[[str], None]
ConversationEntry = Union[Message, dict[str, str]]

SUMMARY_TEMPERATURE = 0.3
TOPICS_TEMPERATURE = 0.2


def _entry_content(entry: ConversationEntry) -> str:
    if isinstance(entry, Message):
        return entry.content
    return entry["content"]


class GenerationBackend(ABC):
    """
    A language model bound to one document at a time.

    Retrieval, prompt assembly and history bookkeeping live here and are
    shared by every backend; subclasses only supply the raw ``generate``
    and ``generate_stream`` primitives (and, if needed, a readiness check).
    """

    provider: str = "base"
    summary_content_limit: int = 12000
    topics_content_limit: int = 10000

    def __init__(self, settings: Settings | None = None) -> None:
        self._settings = settings or get_settings()
        self._temperature = self._settings.temperature
        self._stopwords = get_stopwords(self._settings.stopword_language)
        self._history = ConversationHistory(self._settings.max_history_entries)
        self._document: Document | None = None
        self._in_flight = False

    @property
    def document(self) -> Document | None:
        return self._document

    @property
    def history(self) -> ConversationHistory:
        return self._history

    @property
    def is_generating(self) -> bool:
        return self._in_flight

    def set_document(self, document: Document) -> None:
        self._document = document
        self._history.clear()
        logger.info("document_bound", provider=self.provider, document_id=document.id)

    def clear_document(self) -> None:
        self._document = None
        self._history.clear()

    def is_model_loaded(self) -> bool:
        return True

    async def initialize(
        self,
        on_progress: ProgressCallback | None = None,
        on_error: ErrorCallback | None = None,
    ) -> None:
        """Prepare the backend for requests; nothing to load by default."""

    def ensure_ready(self) -> None:
        """Raise if the backend cannot serve requests yet."""

    def _require_document(self) -> Document:
        self.ensure_ready()
        if self._document is None:
            raise DocumentNotBoundError()
        return self._document

    @abstractmethod
    async def generate(self, messages: list[dict[str, str]], temperature: float) -> str:
        """Generate a complete response from the given messages."""
        ...

    @abstractmethod
    def generate_stream(
        self, messages: list[dict[str, str]], temperature: float
    ) -> AsyncGenerator[str, None]:
        """Yield response deltas as they arrive."""
        ...

    async def generate_response(
        self,
        conversation: Sequence[ConversationEntry],
        on_delta: DeltaCallback | None = None,
    ) -> str:
        """
        Answer the last message of *conversation* about the bound document.

        Each delta is handed to *on_delta* as soon as it arrives; the full
        text is returned once the stream ends and only then recorded in the
        history. A failed or cancelled call leaves the history untouched.
        """
        document = self._require_document()
        if self._in_flight:
            raise GenerationInProgressError()
        if not conversation:
            raise ValueError("conversation must contain the user's question")

        query = _entry_content(conversation[-1])
        messages = build_chat_messages(
            document,
            self._history,
            query,
            max_chunks=self._settings.max_relevant_chunks,
            history_window=self._settings.history_window,
            stopwords=self._stopwords,
        )

        self._in_flight = True
        parts: list[str] = []
        try:
            async for delta in self.generate_stream(messages, self._temperature):
                if not delta:
                    continue
                parts.append(delta)
                if on_delta is not None:
                    result = on_delta(delta)
                    if inspect.isawaitable(result):
                        await result
        finally:
            self._in_flight = False

        response = "".join(parts)
        self._history.add_exchange(query, response)
        logger.info(
            "response_generated",
            provider=self.provider,
            document_id=document.id,
            deltas=len(parts),
            chars=len(response),
        )
        return response

    async def summarize_document(self) -> str:
        document = self._require_document()
        messages = build_summary_messages(document, self.summary_content_limit)
        summary = await self.generate(messages, SUMMARY_TEMPERATURE)
        logger.info("document_summarized", provider=self.provider, document_id=document.id)
        return summary

    async def extract_key_topics(self) -> list[str]:
        document = self._require_document()
        messages = build_topics_messages(document, self.topics_content_limit)
        topics = parse_topics(await self.generate(messages, TOPICS_TEMPERATURE))
        logger.info(
            "key_topics_extracted",
            provider=self.provider,
            document_id=document.id,
            topics=len(topics),
        )
        return topics

    async def dispose(self) -> None:
        self._history.clear()
