from __future__ import annotations

from collections.abc import AsyncGenerator

import httpx
import structlog
from openai import AsyncOpenAI

from docchat.core.config import Settings
from docchat.core.exceptions import TransportError
from docchat.llm.base import GenerationBackend
from docchat.llm.streaming import iter_deltas

logger = structlog.get_logger(__name__)


class OpenAIBackend(GenerationBackend):
    provider = "openai"
    summary_content_limit = 12000
    topics_content_limit = 10000

    def __init__(
        self,
        settings: Settings | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        super().__init__(settings)
        self._client = AsyncOpenAI(
            api_key=self._settings.openai_api_key,
            base_url=self._settings.openai_base_url,
            timeout=self._settings.request_timeout,
            max_retries=0,
            http_client=http_client,
        )
        self._model = self._settings.openai_model

    @property
    def model(self) -> str:
        return self._model

    async def generate(self, messages: list[dict[str, str]], temperature: float) -> str:
        try:
            response = await self._client.chat.completions.create(
                model=self._model,
                messages=messages,
                temperature=temperature,
            )
        except Exception as exc:
            logger.error("llm_generation_failed", provider=self.provider, error=str(exc))
            raise TransportError() from exc

        if not response.choices or response.choices[0].message.content is None:
            logger.error("llm_response_missing_content", provider=self.provider)
            raise TransportError()

        logger.info(
            "llm_generation_completed",
            provider=self.provider,
            tokens=response.usage.total_tokens if response.usage else None,
        )
        return response.choices[0].message.content

    async def generate_stream(
        self, messages: list[dict[str, str]], temperature: float
    ) -> AsyncGenerator[str, None]:
        # Raw lines are decoded here so one malformed event is skipped
        # instead of aborting the whole stream.
        try:
            async with self._client.chat.completions.with_streaming_response.create(
                model=self._model,
                messages=messages,
                temperature=temperature,
                stream=True,
            ) as response:
                async for delta in iter_deltas(response.iter_lines()):
                    yield delta
        except Exception as exc:
            logger.error("llm_stream_failed", provider=self.provider, error=str(exc))
            raise TransportError() from exc

    async def dispose(self) -> None:
        await super().dispose()
        await self._client.close()
