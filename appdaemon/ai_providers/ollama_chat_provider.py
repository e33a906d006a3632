from __future__ import annotations

from typing import Optional

from ai_providers.openai_chat_provider import OpenAIChatConfig, OpenAIChatProvider
from ai_providers.types import ChatProviderCapabilities, ChatProviderName


class OllamaChatProvider(OpenAIChatProvider):
    """
    Ollama exposes an OpenAI-compatible `/v1/chat/completions` endpoint, so this
    reuses the OpenAI request path without an API key.

    Vision needs a multimodal model (e.g. llava, qwen2.5vl); json_schema output
    is honored by recent Ollama releases.
    """

    name = ChatProviderName.OLLAMA
    capabilities = ChatProviderCapabilities(
        supports_vision=True,
        supports_json_schema=True,
        notes="Uses Ollama's OpenAI-compatible endpoint; pick a vision model.",
    )

    def __init__(
        self,
        *,
        base_url: str = "http://localhost:11434",
        model: str = "llava",
        timeout_s: float = 120.0,
        max_output_tokens: int = 300,
        api_key: Optional[str] = None,
        json_schema: bool = True,
    ):
        super().__init__(
            OpenAIChatConfig(
                api_key=str(api_key or ""),
                base_url=base_url,
                model=model,
                timeout_s=timeout_s,
                max_output_tokens=max_output_tokens,
            )
        )
        if not json_schema:
            self.capabilities = ChatProviderCapabilities(
                supports_vision=True,
                supports_json_schema=False,
                notes="Ollama without structured output; shape is requested in the prompt only.",
            )
