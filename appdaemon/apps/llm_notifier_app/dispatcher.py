"""
Notification enhancement: snapshot -> prompt -> provider -> validated fields.

NotificationEnhancer runs the pipeline and raises on any failure.
NotificationDispatcher is the only place failures are caught; it always
forwards exactly one notification downstream, enhanced or original.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Callable, Mapping, Optional, Protocol, Union

from .config import NotifierSettings
from .invoker import InferenceInvoker, deadline_ms
from .models import InferenceResponse, LogFn, NotificationEvent, NotificationStats, null_log
from .pool import ProviderPool
from .prompt import build_metadata, build_request
from .snapshots import SnapshotAssembler
from .validation import over_budget_fields, validate_response

SettingsSource = Union[NotifierSettings, Callable[[], NotifierSettings]]


class Notifier(Protocol):
    async def send_notification(
        self,
        title: str,
        options: Optional[dict[str, Any]] = None,
        media: Any = None,
        icon: Any = None,
    ) -> Any:
        ...


def _resolve(settings: SettingsSource) -> NotifierSettings:
    return settings() if callable(settings) else settings


class NotificationEnhancer:
    def __init__(
        self,
        settings: SettingsSource,
        assembler: SnapshotAssembler,
        pool: ProviderPool,
        invoker: InferenceInvoker,
        *,
        stats: Optional[NotificationStats] = None,
        log: Optional[LogFn] = None,
    ):
        self._settings = settings
        self._assembler = assembler
        self._pool = pool
        self._invoker = invoker
        self._stats = stats
        self._log = log or null_log

    async def enhance(self, event: NotificationEvent) -> Optional[InferenceResponse]:
        """
        Return validated replacement fields, or None when there is no usable
        image (the notification goes out unchanged). Raises on any failure.
        """
        settings = _resolve(self._settings)
        selection = await self._assembler.assemble(settings.snapshot_mode, event)
        if selection.is_empty:
            self._log("No usable snapshot. Forwarding original notification.", level="WARNING")
            return None

        metadata = build_metadata(event, settings.include_original_message)
        request = build_request(settings.user_prompt, selection.images, metadata)

        provider_id = self._pool.select()
        timeout = deadline_ms(settings.llm_timeout_s)
        self._log(f"Calling LLM provider={provider_id} images={len(selection.images)} (timeout {timeout}ms)...", level="DEBUG")
        completion = await self._invoker.invoke(provider_id, request, timeout)
        if settings.log_llm_events:
            self._log(f"LLM response: {completion.parsed!r}", level="INFO")

        response = validate_response(completion.parsed)
        over = over_budget_fields(response)
        if over:
            self._log(f"LLM response over length budget ({', '.join(over)}); sending as-is", level="DEBUG")

        self._log(
            f"LLM notification processed - Mode: {settings.snapshot_mode}, "
            f"Cropped: {selection.cropped_kb if selection.cropped_kb is not None else 'N/A'}KB, "
            f"Provider: {provider_id}, Inference: {round(completion.elapsed_s)}s"
            + (f", {self._stats.summary()}" if self._stats is not None else ""),
            level="INFO",
        )
        return response


class NotificationDispatcher:
    def __init__(
        self,
        notifier: Notifier,
        enhancer: NotificationEnhancer,
        settings: SettingsSource,
        *,
        stats: Optional[NotificationStats] = None,
        log: Optional[LogFn] = None,
    ):
        self._notifier = notifier
        self._enhancer = enhancer
        self._settings = settings
        self.stats = stats or NotificationStats()
        self._log = log or null_log

    async def send_notification(
        self,
        title: str,
        options: Optional[Mapping[str, Any]] = None,
        media: Any = None,
        icon: Any = None,
    ) -> Any:
        settings = _resolve(self._settings)
        timestamp = datetime.now(timezone.utc).isoformat()

        if not media or not settings.enabled:
            self.stats.record(with_snapshot=False)
            self._log(f"[{timestamp}] Notification without snapshot - {self.stats.summary()}", level="INFO")
            return await self._notifier.send_notification(title, options, media, icon)

        self.stats.record(with_snapshot=True)

        outgoing: Optional[tuple[str, dict[str, Any]]] = None
        try:
            event = NotificationEvent.from_call(title, options, media, icon)
            self._log(
                f"[{timestamp}] Notification with snapshot: title={event.title!r} subtitle={event.subtitle!r} "
                f"body={event.body!r} - {self.stats.summary()}",
                level="DEBUG",
            )
            response = await self._enhancer.enhance(event)
            if response is not None:
                outgoing = event.with_fields(response)
        except Exception as e:
            self._log(f"LLM enhancement failed, using original notification: {e!r}", level="WARNING")

        if outgoing is None:
            return await self._notifier.send_notification(title, options, media, icon)

        new_title, new_options = outgoing
        return await self._notifier.send_notification(new_title, new_options, media, icon)
