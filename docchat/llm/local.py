from __future__ import annotations

import asyncio
from collections.abc import AsyncGenerator, AsyncIterator, Awaitable, Callable
from enum import Enum
from functools import partial
from typing import Protocol

import structlog

from docchat.core.config import Settings
from docchat.core.exceptions import GenerationError, ModelNotReadyError
from docchat.llm.base import ErrorCallback, GenerationBackend, ProgressCallback

logger = structlog.get_logger(__name__)


class LocalEngine(Protocol):
    """In-process chat model with an OpenAI-style message interface."""

    async def generate(self, messages: list[dict[str, str]], temperature: float) -> str: ...

    def generate_stream(
        self, messages: list[dict[str, str]], temperature: float
    ) -> AsyncIterator[str]: ...


EngineLoader = Callable[[str, ProgressCallback], Awaitable[LocalEngine]]


class ModelState(str, Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    READY = "ready"
    FAILED = "failed"


class LocalBackend(GenerationBackend):
    """Backend running the model inside this process.

    The model must be loaded with :meth:`initialize` before any request;
    loading reports integer percentages that never go backwards.
    """

    provider = "local"
    summary_content_limit = 8000
    topics_content_limit = 6000

    def __init__(
        self,
        settings: Settings | None = None,
        engine_loader: EngineLoader | None = None,
    ) -> None:
        super().__init__(settings)
        self._model_id = self._settings.local_model
        if engine_loader is None:
            from docchat.llm.transformers_engine import load_transformers_engine

            engine_loader = partial(
                load_transformers_engine,
                max_new_tokens=self._settings.local_max_new_tokens,
                stream_timeout=self._settings.request_timeout,
            )
        self._engine_loader = engine_loader
        self._engine: LocalEngine | None = None
        self._state = ModelState.UNINITIALIZED
        self._error: str | None = None
        self._loading: asyncio.Future[None] | None = None

    @property
    def state(self) -> ModelState:
        return self._state

    @property
    def error(self) -> str | None:
        return self._error

    @property
    def model_id(self) -> str:
        return self._model_id

    def is_model_loaded(self) -> bool:
        return self._state is ModelState.READY

    async def initialize(
        self,
        on_progress: ProgressCallback | None = None,
        on_error: ErrorCallback | None = None,
    ) -> None:
        """Load the model; a no-op once ready.

        Concurrent callers share one load, and a caller that gives up waiting
        does not abort it for the others.
        """
        if self._state is ModelState.READY:
            return
        if self._loading is None:
            self._loading = asyncio.ensure_future(self._load(on_progress, on_error))
        await asyncio.shield(self._loading)

    async def _load(
        self,
        on_progress: ProgressCallback | None,
        on_error: ErrorCallback | None,
    ) -> None:
        task = asyncio.current_task()
        self._state = ModelState.INITIALIZING
        self._error = None
        last_reported = -1

        def report(progress: int) -> None:
            nonlocal last_reported
            value = max(0, min(100, int(progress)))
            if value <= last_reported:
                return
            last_reported = value
            if on_progress is not None:
                on_progress(value)

        logger.info("model_load_started", model=self._model_id)
        report(0)
        try:
            engine = await self._engine_loader(self._model_id, report)
        except asyncio.CancelledError:
            if self._loading is task:
                self._loading = None
            if self._loading is None:
                self._state = ModelState.UNINITIALIZED
            logger.info("model_load_cancelled", model=self._model_id)
            raise
        except Exception as exc:
            self._state = ModelState.FAILED
            self._error = str(exc) or type(exc).__name__
            if self._loading is task:
                self._loading = None
            logger.error("model_load_failed", model=self._model_id, error=self._error)
            if on_error is not None:
                on_error(self._error)
            raise ModelNotReadyError(f"Failed to load model: {self._error}") from exc

        if self._loading is not task:
            # Disposed while the loader was finishing.
            await _close_engine(engine)
            logger.info("model_load_discarded", model=self._model_id)
            raise asyncio.CancelledError()

        self._engine = engine
        self._state = ModelState.READY
        report(100)
        logger.info("model_load_completed", model=self._model_id)

    def _require_engine(self) -> LocalEngine:
        engine = self._engine
        if self._state is not ModelState.READY or engine is None:
            raise ModelNotReadyError()
        return engine

    def ensure_ready(self) -> None:
        self._require_engine()

    async def generate(self, messages: list[dict[str, str]], temperature: float) -> str:
        engine = self._require_engine()
        try:
            content = await engine.generate(messages, temperature)
        except Exception as exc:
            logger.error("llm_generation_failed", provider=self.provider, error=str(exc))
            raise GenerationError() from exc
        logger.info("llm_generation_completed", provider=self.provider)
        return content

    async def generate_stream(
        self, messages: list[dict[str, str]], temperature: float
    ) -> AsyncGenerator[str, None]:
        engine = self._require_engine()
        try:
            async for delta in engine.generate_stream(messages, temperature):
                yield delta
        except Exception as exc:
            logger.error("llm_stream_failed", provider=self.provider, error=str(exc))
            raise GenerationError() from exc

    async def dispose(self) -> None:
        """Release the model, stopping a load that is still running."""
        await super().dispose()
        loading, self._loading = self._loading, None
        if loading is not None and not loading.done():
            loading.cancel()
            await asyncio.wait([loading])
        engine, self._engine = self._engine, None
        await _close_engine(engine)
        self._state = ModelState.UNINITIALIZED
        self._error = None
        logger.info("model_disposed", model=self._model_id)


async def _close_engine(engine: LocalEngine | None) -> None:
    close = getattr(engine, "close", None)
    if close is not None:
        await close()
