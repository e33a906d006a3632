"""
Call one provider under a deadline.

The deadline only stops *waiting*: the provider call is not cancelled and may
still finish later, in which case its result is dropped.
"""

from __future__ import annotations

import asyncio
import json
import math
import time
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from ai_providers.types import ChatCompletionProvider

from .errors import CallError, InferenceTimeout
from .models import LogFn, null_log
from .prompt import InferenceRequest

DEFAULT_TIMEOUT_S = 90


def deadline_ms(seconds: Any, default: int = DEFAULT_TIMEOUT_S) -> int:
    """Operator timeout in seconds -> whole milliseconds, never below 1s."""
    try:
        value = float(seconds)
    except (TypeError, ValueError):
        value = float(default)
    if not math.isfinite(value):
        value = float(default)
    return max(1, int(value)) * 1000


@dataclass(frozen=True)
class Completion:
    provider_id: str
    parsed: Any
    elapsed_s: float


def _extract_content(data: Any) -> str:
    try:
        content = data["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError) as e:
        raise CallError(f"response missing choices[0].message.content: {str(data)[:400]}") from e
    if not content:
        raise CallError("Empty response from LLM")
    if not isinstance(content, str):
        raise CallError(f"LLM content is not a string: {type(content).__name__}")
    return content


class InferenceInvoker:
    def __init__(self, providers: Mapping[str, ChatCompletionProvider], *, log: Optional[LogFn] = None):
        self._providers = providers
        self._log = log or null_log

    def _discard_late_result(self, task: "asyncio.Future[Any]") -> None:
        if task.cancelled():
            return
        exc = task.exception()
        self._log(f"Late LLM result discarded (error={exc!r})", level="DEBUG")

    async def invoke(self, provider_id: str, request: InferenceRequest, deadline_ms: int) -> Completion:
        provider = self._providers.get(provider_id)
        if provider is None:
            raise CallError(f"unknown LLM provider id: {provider_id!r}")

        capabilities = getattr(provider, "capabilities", None)
        if request.images and capabilities is not None and not capabilities.supports_vision:
            raise CallError(f"LLM provider {provider_id!r} does not accept images")
        json_schema = capabilities.supports_json_schema if capabilities is not None else True

        started = time.monotonic()
        task = asyncio.ensure_future(provider.get_chat_completion(request.to_payload(json_schema=json_schema)))
        done, _ = await asyncio.wait({task}, timeout=deadline_ms / 1000)
        if task not in done:
            task.add_done_callback(self._discard_late_result)
            raise InferenceTimeout(f"LLM request timed out after {deadline_ms}ms")

        try:
            data = task.result()
        except Exception as e:
            raise CallError(f"LLM provider {provider_id!r} failed: {e!r}") from e

        content = _extract_content(data)
        try:
            parsed = json.loads(content)
        except ValueError as e:
            raise CallError(f"LLM content is not valid JSON: {content[:400]!r}") from e

        return Completion(provider_id=provider_id, parsed=parsed, elapsed_s=time.monotonic() - started)
