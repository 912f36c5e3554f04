"""In-process chat engine backed by Hugging Face ``transformers``.

Requires the optional ``local`` extra (``torch`` and ``transformers``).
Blocking model calls run in worker threads so the event loop stays free
while tokens are produced.
"""

from __future__ import annotations

import asyncio
import threading
from collections.abc import AsyncGenerator, Callable
from typing import Any, Optional

import structlog

from docchat.core.exceptions import ModelNotReadyError

try:  # pragma: no cover - optional heavy dependencies
    import torch
    from transformers import AutoModelForCausalLM, AutoTokenizer, TextIteratorStreamer
except ImportError as import_error:  # pragma: no cover - optional heavy deps
    AutoModelForCausalLM = None
    AutoTokenizer = None
    TextIteratorStreamer = None
    torch = None  # type: ignore[assignment]
    _IMPORT_ERROR: Optional[Exception] = import_error
else:  # pragma: no cover - executed when heavy deps installed
    _IMPORT_ERROR = None

logger = structlog.get_logger(__name__)

_STREAM_END = object()


def _resolve_device() -> str:
    return "cuda" if torch is not None and torch.cuda.is_available() else "cpu"


class TransformersEngine:
    def __init__(
        self,
        model: Any,
        tokenizer: Any,
        *,
        device: str,
        max_new_tokens: int = 1024,
        stream_timeout: float | None = 60.0,
    ) -> None:
        self._model = model
        self._tokenizer = tokenizer
        self._device = device
        self._max_new_tokens = max_new_tokens
        self._stream_timeout = stream_timeout

    @property
    def device(self) -> str:
        return self._device

    def _encode(self, messages: list[dict[str, str]]) -> Any:
        inputs = self._tokenizer.apply_chat_template(
            messages,
            add_generation_prompt=True,
            return_tensors="pt",
            return_dict=True,
        )
        return inputs.to(self._device)

    def _generation_kwargs(self, temperature: float) -> dict[str, Any]:
        do_sample = temperature > 0.0
        kwargs: dict[str, Any] = {
            "max_new_tokens": self._max_new_tokens,
            "do_sample": do_sample,
            "pad_token_id": self._tokenizer.pad_token_id,
            "eos_token_id": self._tokenizer.eos_token_id,
        }
        if do_sample:
            kwargs["temperature"] = float(temperature)
        return kwargs

    def _generate_sync(self, messages: list[dict[str, str]], temperature: float) -> str:
        inputs = self._encode(messages)
        output_ids = self._model.generate(**inputs, **self._generation_kwargs(temperature))
        generated = output_ids[0, inputs["input_ids"].shape[1] :]
        return self._tokenizer.decode(generated, skip_special_tokens=True).strip()

    async def generate(self, messages: list[dict[str, str]], temperature: float) -> str:
        return await asyncio.to_thread(self._generate_sync, messages, temperature)

    async def generate_stream(
        self, messages: list[dict[str, str]], temperature: float
    ) -> AsyncGenerator[str, None]:
        inputs = self._encode(messages)
        streamer = TextIteratorStreamer(
            self._tokenizer,
            skip_prompt=True,
            skip_special_tokens=True,
            timeout=self._stream_timeout,
        )
        errors: list[Exception] = []

        def run() -> None:
            try:
                self._model.generate(
                    **inputs, **self._generation_kwargs(temperature), streamer=streamer
                )
            except Exception as exc:
                errors.append(exc)
                streamer.end()

        worker = threading.Thread(target=run, name="docchat-generate", daemon=True)
        worker.start()

        pieces = iter(streamer)
        while True:
            text = await asyncio.to_thread(next, pieces, _STREAM_END)
            if text is _STREAM_END:
                break
            if text:
                yield text

        await asyncio.to_thread(worker.join)
        if errors:
            raise errors[0]

    async def close(self) -> None:
        self._model = None
        self._tokenizer = None
        if torch is not None and torch.cuda.is_available():
            torch.cuda.empty_cache()


async def load_transformers_engine(
    model_id: str,
    on_progress: Callable[[int], None],
    *,
    max_new_tokens: int = 1024,
    stream_timeout: float | None = 60.0,
) -> TransformersEngine:
    """Load tokenizer and weights for *model_id*, reporting coarse progress."""
    if AutoModelForCausalLM is None or AutoTokenizer is None or torch is None:
        raise ModelNotReadyError(
            "PyTorch/Transformers are not available; install the 'local' extra"
        ) from _IMPORT_ERROR

    device = _resolve_device()
    torch_dtype: object = "auto" if device == "cuda" else torch.float32
    logger.info("transformers_load_started", model=model_id, device=device)

    on_progress(5)
    tokenizer = await asyncio.to_thread(AutoTokenizer.from_pretrained, model_id)
    if tokenizer.pad_token_id is None and tokenizer.eos_token_id is not None:
        tokenizer.pad_token_id = tokenizer.eos_token_id
    on_progress(20)

    model = await asyncio.to_thread(
        AutoModelForCausalLM.from_pretrained,
        model_id,
        torch_dtype=torch_dtype,
        low_cpu_mem_usage=True,
    )
    on_progress(90)
    model = await asyncio.to_thread(model.to, device)
    model.eval()
    on_progress(99)

    logger.info("transformers_load_completed", model=model_id, device=device)
    return TransformersEngine(
        model,
        tokenizer,
        device=device,
        max_new_tokens=max_new_tokens,
        stream_timeout=stream_timeout,
    )
