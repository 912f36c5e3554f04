from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Literal
from uuid import uuid4

Role = Literal["user", "assistant", "system"]


def _new_id() -> str:
    return uuid4().hex


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Document:
    name: str
    content: str
    extension: str
    chunks: list[str]
    id: str = field(default_factory=_new_id)
    created_at: datetime = field(default_factory=_utcnow)
    source: str | None = None
    summary: str | None = None

    @property
    def display_source(self) -> str:
        """Origin URL for imported pages, file name otherwise."""
        return self.source or self.name


@dataclass
class Message:
    role: Role
    content: str
    id: str = field(default_factory=_new_id)
    created_at: datetime = field(default_factory=_utcnow)

    def as_chat_message(self) -> dict[str, str]:
        return {"role": self.role, "content": self.content}
