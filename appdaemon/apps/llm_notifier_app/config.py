from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

from .image_codec import DEFAULT_QUALITY
from .invoker import DEFAULT_TIMEOUT_S, deadline_ms
from .models import LogFn, null_log
from .prompt import DEFAULT_USER_PROMPT
from .snapshots import SNAPSHOT_MODES

DEFAULTS: dict[str, Any] = {
    "enabled": True,
    # cropped | full | both
    "snapshot_mode": "cropped",
    # Seconds to wait for the LLM before sending the original notification.
    "llm_timeout_s": DEFAULT_TIMEOUT_S,
    # Provider ids (keys of `providers:`), used in round-robin order.
    "chat_completions": [],
    "user_prompt": DEFAULT_USER_PROMPT,
    "include_original_message": True,
    "event_name": "llm_notifier/send_notification",
    # Home Assistant base URL + long-lived token for camera_proxy / local media.
    "ha_url": "http://homeassistant.local:8123",
    "media_timeout_s": 10,
    # source_id -> {base_url: http://frigate:5000}
    "detectors": {},
    "image_quality": DEFAULT_QUALITY,
    "log_llm_events": False,
}


def _as_bool(value: Any, default: bool = False) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on"}
    return bool(value)


def _safe_float(value: Any, default: float = 0.0) -> float:
    try:
        return float(value)
    except Exception:
        return default


def _as_list(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value] if value.strip() else []
    return [str(v) for v in value if str(v).strip()]


@dataclass(frozen=True)
class NotifierSettings:
    notify_service: str
    enabled: bool = True
    snapshot_mode: str = "cropped"
    llm_timeout_s: int = DEFAULT_TIMEOUT_S
    chat_completions: tuple[str, ...] = ()
    user_prompt: str = DEFAULT_USER_PROMPT
    include_original_message: bool = True
    event_name: str = "llm_notifier/send_notification"
    ha_url: str = "http://homeassistant.local:8123"
    ha_token: Optional[str] = None
    media_timeout_s: float = 10.0
    detectors: dict[str, dict[str, Any]] = field(default_factory=dict)
    image_quality: int = DEFAULT_QUALITY
    log_llm_events: bool = False


def settings_from_appdaemon_args(args: dict[str, Any], log: Optional[LogFn] = None) -> NotifierSettings:
    """
    Parse the LlmNotifier app args (apps.yaml). Only `notify_service` is required.
    """
    log = log or null_log
    notify_service = str(args.get("notify_service") or "").strip()
    if not notify_service:
        raise ValueError("notify_service is required (e.g. notify.mobile_app_my_phone)")

    snapshot_mode = str(args.get("snapshot_mode", DEFAULTS["snapshot_mode"]) or "").strip().lower()
    if snapshot_mode not in SNAPSHOT_MODES:
        log(f"Unknown snapshot_mode={snapshot_mode!r}; using 'cropped'", level="WARNING")
        snapshot_mode = "cropped"

    quality = int(_safe_float(args.get("image_quality", DEFAULTS["image_quality"]), default=float(DEFAULT_QUALITY)))

    detectors = args.get("detectors") or {}
    if not isinstance(detectors, dict):
        raise ValueError("detectors must be a mapping of source_id -> {base_url: ...}")

    return NotifierSettings(
        notify_service=notify_service,
        enabled=_as_bool(args.get("enabled"), default=DEFAULTS["enabled"]),
        snapshot_mode=snapshot_mode,
        llm_timeout_s=deadline_ms(args.get("llm_timeout_s", DEFAULTS["llm_timeout_s"])) // 1000,
        chat_completions=tuple(_as_list(args.get("chat_completions", DEFAULTS["chat_completions"]))),
        user_prompt=str(args.get("user_prompt") or DEFAULTS["user_prompt"]),
        include_original_message=_as_bool(
            args.get("include_original_message"), default=DEFAULTS["include_original_message"]
        ),
        event_name=str(args.get("event_name") or DEFAULTS["event_name"]),
        ha_url=str(args.get("ha_url") or DEFAULTS["ha_url"]).rstrip("/"),
        ha_token=args.get("ha_token"),
        media_timeout_s=_safe_float(args.get("media_timeout_s", DEFAULTS["media_timeout_s"]), default=10.0),
        detectors={str(k): (v if isinstance(v, dict) else {}) for k, v in detectors.items()},
        image_quality=max(0, min(100, quality)),
        log_llm_events=_as_bool(args.get("log_llm_events"), default=DEFAULTS["log_llm_events"]),
    )
