"""
LlmNotifier AppDaemon app entrypoint.

Sits in front of a Home Assistant notify service:
- receives notification requests (HA event, or `send_notification()` from other apps)
- rewrites title/subtitle/body with a vision LLM looking at the attached snapshot
- keeps names from "Maybe: <name>" in the original text
- forwards exactly one notification, the original one if anything goes wrong

Event payload (event_name, default `llm_notifier/send_notification`):

    title: "Front Door"
    subtitle: "Maybe: Richard"
    body: "Person detected"
    media: camera.front_door | /api/frigate/notifications/<id>/snapshot.jpg | https://...
    icon: optional, forwarded as-is
    recorded_event: {event_id: ..., data: {detection_id: ..., source_id: front_door}}
    data: {source_id: front_door}
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Optional

import hassapi as hass

from .config import NotifierSettings, settings_from_appdaemon_args
from .dispatcher import NotificationDispatcher, NotificationEnhancer
from .ha import HaMediaResolver, HaNotifyService, coerce_media, detectors_from_config
from .invoker import InferenceInvoker
from .models import NotificationStats
from .pool import ProviderPool
from .snapshots import SnapshotAssembler

try:
    from ai_providers.registry import chat_providers_from_appdaemon_args
except Exception:  # pragma: no cover
    import sys

    # AppDaemon often only adds `appdaemon/apps` to sys.path. Our shared libraries
    # live at `appdaemon/ai_providers`, so add the AppDaemon root directory.
    sys.path.append(str(Path(__file__).resolve().parents[2]))
    from ai_providers.registry import chat_providers_from_appdaemon_args  # type: ignore

_OPTION_KEYS = ("subtitle", "body", "recorded_event", "data", "push_data")


class LlmNotifier(hass.Hass):
    async def initialize(self) -> None:
        self.settings: NotifierSettings = settings_from_appdaemon_args(self.args, log=self.log)
        self.providers = chat_providers_from_appdaemon_args(self.args)

        unknown = [p for p in self.settings.chat_completions if p not in self.providers]
        if unknown:
            self.log(f"LlmNotifier: chat_completions reference unknown providers {unknown}", level="WARNING")
        if not self.settings.chat_completions:
            self.log("LlmNotifier: no LLM providers selected; notifications pass through unchanged", level="WARNING")

        self.pool = ProviderPool(self.settings.chat_completions)
        self.stats = NotificationStats()

        assembler = SnapshotAssembler(
            HaMediaResolver(self.settings.ha_url, self.settings.ha_token, timeout_s=self.settings.media_timeout_s),
            detectors_from_config(self.settings.detectors, timeout_s=self.settings.media_timeout_s),
            log=self.log,
            quality=self.settings.image_quality,
        )
        invoker = InferenceInvoker(self.providers, log=self.log)
        enhancer = NotificationEnhancer(
            self._current_settings, assembler, self.pool, invoker, stats=self.stats, log=self.log
        )
        self.dispatcher = NotificationDispatcher(
            HaNotifyService(self, self.settings.notify_service),
            enhancer,
            self._current_settings,
            stats=self.stats,
            log=self.log,
        )

        await self.listen_event(self._on_send_notification_event, self.settings.event_name)
        self.log(
            f"LlmNotifier: listening for {self.settings.event_name!r} -> {self.settings.notify_service} "
            f"(mode={self.settings.snapshot_mode} providers={list(self.settings.chat_completions)} "
            f"timeout={self.settings.llm_timeout_s}s enabled={self.settings.enabled})",
            level="INFO",
        )

    def _current_settings(self) -> NotifierSettings:
        return self.settings

    async def send_notification(
        self,
        title: str,
        options: Optional[dict[str, Any]] = None,
        media: Any = None,
        icon: Any = None,
    ) -> Any:
        """Entry point for other apps (`self.get_app("llm_notifier").send_notification(...)`)."""
        return await self.dispatcher.send_notification(title, options, coerce_media(media), icon)

    async def _on_send_notification_event(self, event_name: str, data: dict[str, Any], kwargs: dict[str, Any]) -> None:
        if not isinstance(data, dict):
            return
        options = {k: data[k] for k in _OPTION_KEYS if data.get(k) is not None}
        await self.send_notification(str(data.get("title") or ""), options, data.get("media"), data.get("icon"))

    async def terminate(self) -> None:
        self.log(f"LlmNotifier: terminating - {self.stats.summary()}", level="INFO")
