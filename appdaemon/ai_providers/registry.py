from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from ai_providers.ollama_chat_provider import OllamaChatProvider
from ai_providers.openai_chat_provider import OpenAIChatConfig, OpenAIChatProvider
from ai_providers.types import ChatCompletionProvider, ChatProviderName


@dataclass(frozen=True)
class ChatProviderConfig:
    provider: ChatProviderName

    # Shared-ish config knobs (not all providers will use these)
    api_key: Optional[str] = None
    base_url: Optional[str] = None
    model: Optional[str] = None
    timeout_s: Optional[float] = None
    max_output_tokens: Optional[int] = None
    user: Optional[str] = None
    # Ollama only: send response_format=json_schema (newer releases honor it).
    json_schema: Optional[bool] = None


def build_chat_provider(cfg: ChatProviderConfig) -> ChatCompletionProvider:
    if cfg.provider == ChatProviderName.OPENAI:
        return OpenAIChatProvider(
            OpenAIChatConfig(
                api_key=str(cfg.api_key or ""),
                base_url=str(cfg.base_url or "https://api.openai.com"),
                model=str(cfg.model or "gpt-4o-mini"),
                timeout_s=float(cfg.timeout_s or 120.0),
                max_output_tokens=int(cfg.max_output_tokens or 300),
                user=cfg.user,
            )
        )

    if cfg.provider == ChatProviderName.OLLAMA:
        return OllamaChatProvider(
            base_url=str(cfg.base_url or "http://localhost:11434"),
            model=str(cfg.model or "llava"),
            timeout_s=float(cfg.timeout_s or 120.0),
            max_output_tokens=int(cfg.max_output_tokens or 300),
            api_key=cfg.api_key,
            json_schema=cfg.json_schema is not False,
        )

    raise ValueError(f"Unsupported provider: {cfg.provider}")


def _optional_bool(value: Any) -> Optional[bool]:
    if value is None:
        return None
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on"}
    return bool(value)


def chat_provider_config_from_dict(raw: dict[str, Any]) -> ChatProviderConfig:
    """
    Parse one entry of the app's `providers:` mapping.
    """
    provider = ChatProviderName.parse(raw.get("provider", "openai"))
    timeout_raw = raw.get("timeout_s")
    timeout_s = float(timeout_raw) if timeout_raw is not None else None
    max_tokens_raw = raw.get("max_output_tokens")
    max_output_tokens = int(max_tokens_raw) if max_tokens_raw is not None else None
    return ChatProviderConfig(
        provider=provider,
        api_key=raw.get("api_key"),
        base_url=raw.get("base_url"),
        model=raw.get("model"),
        timeout_s=timeout_s,
        max_output_tokens=max_output_tokens,
        user=raw.get("user"),
        json_schema=_optional_bool(raw.get("json_schema")),
    )


def chat_providers_from_appdaemon_args(args: dict[str, Any]) -> dict[str, ChatCompletionProvider]:
    """
    Build every provider declared under `providers:` keyed by its id. The ids are
    what `chat_completions:` lists (in rotation order).
    """
    raw_providers = args.get("providers") or {}
    if not isinstance(raw_providers, dict):
        raise ValueError("providers must be a mapping of provider id -> provider config")
    out: dict[str, ChatCompletionProvider] = {}
    for provider_id, raw in raw_providers.items():
        cfg = chat_provider_config_from_dict(raw if isinstance(raw, dict) else {})
        out[str(provider_id)] = build_chat_provider(cfg)
    return out
