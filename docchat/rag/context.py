from __future__ import annotations

import re
from collections.abc import Iterable

import structlog

from docchat.db.models import Document
from docchat.rag.history import ConversationHistory
from docchat.rag.prompts import (
    ELISION_MARKER,
    FALLBACK_SYSTEM_PROMPT,
    SUMMARY_SYSTEM_PROMPT,
    SUMMARY_TEMPLATE,
    SYSTEM_PROMPT,
    TOPICS_SYSTEM_PROMPT,
    TOPICS_TEMPLATE,
    USER_TEMPLATE,
)
from docchat.rag.ranking import rank_chunks

logger = structlog.get_logger(__name__)

_LIST_MARKER = re.compile(r"^-\s*")


def create_system_prompt(document: Document | None) -> str:
    if document is None:
        return FALLBACK_SYSTEM_PROMPT
    return SYSTEM_PROMPT.format(document_name=document.name)


def build_context(
    document: Document,
    query: str,
    max_chunks: int = 3,
    stopwords: Iterable[str] | None = None,
) -> str:
    """Join the chunks most relevant to *query* into one context block."""
    relevant = rank_chunks(document.chunks, query, max_chunks, stopwords)
    return "\n\n".join(relevant)


def build_chat_messages(
    document: Document,
    history: ConversationHistory,
    query: str,
    *,
    max_chunks: int = 3,
    history_window: int = 6,
    stopwords: Iterable[str] | None = None,
) -> list[dict[str, str]]:
    """
    Assemble the message array for one question about *document*.

    Order: system prompt, up to *history_window* recent history entries,
    then the user message carrying the retrieved context and the question.
    """
    context = build_context(document, query, max_chunks, stopwords)
    messages: list[dict[str, str]] = [
        {"role": "system", "content": create_system_prompt(document)},
    ]
    messages.extend(history.recent(history_window))
    messages.append(
        {"role": "user", "content": USER_TEMPLATE.format(context=context, question=query)}
    )

    logger.info(
        "chat_prompt_assembled",
        document_id=document.id,
        history_entries=len(messages) - 2,
        context_chars=len(context),
    )
    return messages


def truncate_head_tail(text: str, limit: int) -> str:
    """Keep the start and the end of *text* when it is longer than *limit*."""
    if len(text) <= limit:
        return text
    half = limit // 2
    return text[:half] + ELISION_MARKER + text[len(text) - half :]


def truncate_head(text: str, limit: int) -> str:
    return text[:limit]


def build_summary_messages(document: Document, limit: int) -> list[dict[str, str]]:
    content = truncate_head_tail(document.content, limit)
    return [
        {"role": "system", "content": SUMMARY_SYSTEM_PROMPT},
        {
            "role": "user",
            "content": SUMMARY_TEMPLATE.format(document_name=document.name, content=content),
        },
    ]


def build_topics_messages(document: Document, limit: int) -> list[dict[str, str]]:
    content = truncate_head(document.content, limit)
    return [
        {"role": "system", "content": TOPICS_SYSTEM_PROMPT},
        {
            "role": "user",
            "content": TOPICS_TEMPLATE.format(document_name=document.name, content=content),
        },
    ]


def parse_topics(text: str) -> list[str]:
    """Turn a one-topic-per-line model answer into a list of topics."""
    topics: list[str] = []
    for line in text.split("\n"):
        topic = _LIST_MARKER.sub("", line.strip())
        if topic:
            topics.append(topic)
    return topics
