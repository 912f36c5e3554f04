from __future__ import annotations

from collections.abc import Iterable, Sequence

import structlog

from docchat.rag.keywords import extract_keywords

logger = structlog.get_logger(__name__)


def score_chunk(chunk: str, keywords: Iterable[str]) -> int:
    """Count the keywords present in *chunk*; repeats of one keyword count once."""
    haystack = chunk.lower()
    return sum(1 for keyword in keywords if keyword.lower() in haystack)


def rank_chunks(
    chunks: Sequence[str],
    query: str,
    max_chunks: int = 3,
    stopwords: Iterable[str] | None = None,
) -> list[str]:
    """
    Pick the chunks most relevant to *query*.

    Chunks are ordered by keyword score, highest first; equal scores keep
    their position in the document. Without any keywords in the query the
    leading chunks are returned unchanged.
    """
    if not chunks:
        return []

    keywords = extract_keywords(query, stopwords)
    if not keywords:
        logger.debug("ranking_fallback_no_keywords", chunks=len(chunks))
        return list(chunks[:max_chunks])

    scored = [
        (score_chunk(chunk, keywords), index, chunk)
        for index, chunk in enumerate(chunks)
    ]
    scored.sort(key=lambda item: (-item[0], item[1]))

    logger.debug(
        "chunks_ranked",
        keywords=keywords,
        top_scores=[score for score, _, _ in scored[:max_chunks]],
    )
    return [chunk for _, _, chunk in scored[:max_chunks]]
