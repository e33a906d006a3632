from __future__ import annotations

import json
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional

import aiohttp

from ai_providers.types import (
    ChatCompletionError,
    ChatCompletionProvider,
    ChatProviderCapabilities,
    ChatProviderName,
)


@dataclass(frozen=True)
class OpenAIChatConfig:
    api_key: str
    base_url: str = "https://api.openai.com"
    model: str = "gpt-4o-mini"
    # Transport-level cap only; the notifier applies its own (shorter) deadline.
    timeout_s: float = 120.0
    max_output_tokens: int = 300
    user: Optional[str] = None


def _safe_json(obj: Any) -> bytes:
    return json.dumps(obj, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


class OpenAIChatProvider(ChatCompletionProvider):
    name = ChatProviderName.OPENAI
    capabilities = ChatProviderCapabilities(
        supports_vision=True,
        supports_json_schema=True,
        notes="Uses OpenAI Chat Completions (/v1/chat/completions) with image_url parts.",
    )

    def __init__(self, config: OpenAIChatConfig):
        self._config = config

    @property
    def endpoint(self) -> str:
        return f"{self._config.base_url.rstrip('/')}/v1/chat/completions"

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self._config.api_key:
            headers["Authorization"] = f"Bearer {self._config.api_key}"
        return headers

    def _body(self, request: Dict[str, Any]) -> dict[str, Any]:
        body: dict[str, Any] = dict(request)
        body.setdefault("model", self._config.model)
        body.setdefault("max_completion_tokens", int(self._config.max_output_tokens))
        if self._config.user:
            body.setdefault("user", self._config.user)
        return body

    async def get_chat_completion(self, request: Dict[str, Any]) -> Dict[str, Any]:
        if not request.get("messages"):
            raise ChatCompletionError("messages are required")

        url = self.endpoint
        timeout = aiohttp.ClientTimeout(total=float(self._config.timeout_s))
        started = time.time()
        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.post(url, data=_safe_json(self._body(request)), headers=self._headers()) as resp:
                    text = await resp.text()
                    if resp.status >= 400:
                        raise ChatCompletionError(
                            f"{self.name.value} http error: {resp.status} {resp.reason}; {text[:400]}"
                        )
        except ChatCompletionError:
            raise
        except Exception as e:
            raise ChatCompletionError(f"{self.name.value} request failed: {e!r}") from e

        try:
            payload = json.loads(text)
        except ValueError as e:
            raise ChatCompletionError(f"{self.name.value} returned non-JSON body: {text[:400]!r}") from e
        if not isinstance(payload, dict):
            raise ChatCompletionError(f"{self.name.value} returned unexpected body: {payload!r}")

        payload.setdefault(
            "_meta",
            {
                "provider": self.name.value,
                "endpoint": url,
                "model": self._config.model,
                "elapsed_s": round(time.time() - started, 3),
            },
        )
        return payload
