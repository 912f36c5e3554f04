"""Shared fixtures: isolated settings and a scripted local engine."""
from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Sequence

import pytest

from docchat.core.config import Settings
from docchat.db.models import Document
from docchat.llm.local import LocalBackend
from docchat.rag.chunking import chunk_document


class FakeEngine:
    """Local engine that replays canned output and records every call."""

    def __init__(self, deltas: Sequence[str] = ("Hel", "lo, ", "world"), reply: str = "reply") -> None:
        self.deltas = list(deltas)
        self.reply = reply
        self.calls: list[tuple[list[dict[str, str]], float]] = []
        self.closed = False
        self.fail_stream = False
        # When set, every delta after the first waits for it.
        self.gate: asyncio.Event | None = None

    async def generate(self, messages: list[dict[str, str]], temperature: float) -> str:
        self.calls.append((messages, temperature))
        return self.reply

    async def generate_stream(
        self, messages: list[dict[str, str]], temperature: float
    ) -> AsyncIterator[str]:
        self.calls.append((messages, temperature))
        for index, delta in enumerate(self.deltas):
            if index and self.gate is not None:
                await self.gate.wait()
            yield delta
        if self.fail_stream:
            raise RuntimeError("engine crashed")

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        _env_file=None,
        llm_provider="local",
        openai_api_key="sk-test",
        openai_base_url="http://llm.test/v1",
        settings_path=str(tmp_path / "api_settings.json"),
        database_url=None,
    )


@pytest.fixture
def engine() -> FakeEngine:
    return FakeEngine()


@pytest.fixture
def local_backend(settings: Settings, engine: FakeEngine) -> LocalBackend:
    async def loader(model_id, report):
        report(40)
        return engine

    return LocalBackend(settings, engine_loader=loader)


@pytest.fixture
def document() -> Document:
    content = (
        "Apples grow in orchards across the northern valley.\n\n"
        "Bananas need a tropical climate and plenty of rain.\n\n"
        "Cherries blossom in spring and are harvested in early summer."
    )
    return Document(
        name="fruit.txt",
        content=content,
        extension="txt",
        chunks=chunk_document(content, 80),
    )
