from __future__ import annotations

import re

_PARAGRAPH_BREAK = re.compile(r"\n\s*\n")
_WHITESPACE = re.compile(r"\s+")

DEFAULT_CHUNK_SIZE = 1000


def chunk_document(content: str, chunk_size: int = DEFAULT_CHUNK_SIZE) -> list[str]:
    """
    Split document text into retrieval chunks of at most *chunk_size* characters.

    Paragraphs (blank-line separated) are packed together while they fit.
    A paragraph that is longer than *chunk_size* on its own is packed word by
    word instead, so the only chunk that can exceed the limit is one holding a
    single oversized word.
    """
    if chunk_size <= 0:
        raise ValueError("chunk_size must be a positive integer")

    if len(content) < chunk_size:
        return [content]

    chunks: list[str] = []
    current = ""

    for paragraph in _PARAGRAPH_BREAK.split(content):
        if not paragraph.strip():
            continue

        if len(paragraph) > chunk_size:
            for word in _WHITESPACE.split(paragraph):
                if not word:
                    continue
                if len(current + " " + word) <= chunk_size:
                    current = f"{current} {word}" if current else word
                else:
                    if current:
                        chunks.append(current)
                    current = word
        elif len(current + "\n\n" + paragraph) <= chunk_size:
            current = f"{current}\n\n{paragraph}" if current else paragraph
        else:
            if current:
                chunks.append(current)
            current = paragraph

    if current:
        chunks.append(current)

    return chunks
