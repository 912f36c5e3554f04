from __future__ import annotations

from collections import deque
from collections.abc import Iterator


class ConversationHistory:
    """Rolling record of recent question/answer pairs used as prompt context.

    Entries are ``{"role", "content"}`` dicts. Once more than ``max_entries``
    are stored the oldest are dropped first.
    """

    def __init__(self, max_entries: int = 10) -> None:
        if max_entries < 2:
            raise ValueError("max_entries must hold at least one exchange")
        self._entries: deque[dict[str, str]] = deque(maxlen=max_entries)

    @property
    def max_entries(self) -> int:
        return self._entries.maxlen or 0

    def add_exchange(self, question: str, answer: str) -> None:
        self._entries.append({"role": "user", "content": question})
        self._entries.append({"role": "assistant", "content": answer})

    def recent(self, count: int) -> list[dict[str, str]]:
        """The last *count* entries in chronological order."""
        if count <= 0:
            return []
        return [dict(entry) for entry in list(self._entries)[-count:]]

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[dict[str, str]]:
        return iter([dict(entry) for entry in self._entries])
