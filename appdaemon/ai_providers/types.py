from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Protocol


class ChatCompletionError(RuntimeError):
    pass


class ChatProviderName(str, Enum):
    OPENAI = "openai"
    OLLAMA = "ollama"

    @classmethod
    def parse(cls, value: Any) -> "ChatProviderName":
        s = str(value or "").strip().lower()
        if s in {"openai", "openai_compatible"}:
            return cls.OPENAI
        if s in {"ollama"}:
            return cls.OLLAMA
        raise ValueError(f"Unsupported chat provider: {value!r}")


@dataclass(frozen=True)
class ChatProviderCapabilities:
    supports_vision: bool
    # response_format={"type": "json_schema", ...}
    supports_json_schema: bool = True

    notes: str = ""


class ChatCompletionProvider(Protocol):
    name: ChatProviderName
    capabilities: ChatProviderCapabilities

    async def get_chat_completion(self, request: Dict[str, Any]) -> Dict[str, Any]:
        """
        Send a Chat Completions request (messages + response_format) and return
        the decoded response body. Callers read `choices[0].message.content`.
        """
        raise NotImplementedError
