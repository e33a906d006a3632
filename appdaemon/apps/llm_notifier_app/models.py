from __future__ import annotations

import base64
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping, Optional

# Same call shape as AppDaemon's self.log(msg, level="INFO")
LogFn = Callable[..., None]


def null_log(msg: str, level: str = "INFO") -> None:
    return None


def _as_dict(value: Any) -> dict[str, Any]:
    if isinstance(value, dict):
        return value
    if isinstance(value, Mapping):
        return dict(value)
    return {}


@dataclass(frozen=True)
class ImageAsset:
    data: bytes
    role: str  # "cropped" | "full"
    # None when the header could not be read; the bytes are still sent.
    width: Optional[int] = None
    height: Optional[int] = None

    @property
    def byte_size(self) -> int:
        return len(self.data)

    @property
    def size_kb(self) -> int:
        return round(self.byte_size / 1024)

    def data_url(self) -> str:
        b64 = base64.b64encode(self.data).decode("ascii")
        return f"data:image/jpeg;base64,{b64}"


@dataclass(frozen=True)
class SnapshotSelection:
    # Order is the order images appear in the request.
    images: tuple[str, ...] = ()
    cropped_kb: Optional[int] = None

    @property
    def is_empty(self) -> bool:
        return not self.images


@dataclass(frozen=True)
class InferenceResponse:
    title: str
    subtitle: str
    body: str


@dataclass(frozen=True)
class NotificationEvent:
    """
    Inbound notification as received from the host. `options` is a shallow
    copy and nested values are never mutated; the outgoing notification is
    always a new dict.
    """

    title: str
    options: dict[str, Any] = field(default_factory=dict)
    media: Any = None
    icon: Any = None

    @classmethod
    def from_call(
        cls,
        title: str,
        options: Optional[Mapping[str, Any]] = None,
        media: Any = None,
        icon: Any = None,
    ) -> "NotificationEvent":
        return cls(title=title, options=dict(_as_dict(options)), media=media, icon=icon)

    @property
    def subtitle(self) -> Optional[str]:
        return self.options.get("subtitle")

    @property
    def body(self) -> Optional[str]:
        return self.options.get("body")

    @property
    def recorded_event(self) -> dict[str, Any]:
        return _as_dict(self.options.get("recorded_event"))

    @property
    def event_id(self) -> Optional[str]:
        return self.recorded_event.get("event_id")

    @property
    def detection_id(self) -> Optional[str]:
        data = _as_dict(self.recorded_event.get("data"))
        if data.get("detection_id"):
            return data["detection_id"]
        detections = data.get("detections")
        if isinstance(detections, list) and detections:
            return _as_dict(detections[0]).get("id")
        return None

    @property
    def source_id(self) -> Optional[str]:
        data = _as_dict(self.recorded_event.get("data"))
        return (
            data.get("source_id")
            or _as_dict(self.options.get("data")).get("source_id")
            or (getattr(self.media, "source_id", None) if not isinstance(self.media, str) else None)
        )

    def with_fields(self, response: InferenceResponse) -> tuple[str, dict[str, Any]]:
        """Return (title, options) for the outgoing notification."""
        options = dict(self.options)
        options["subtitle"] = response.subtitle
        options["body"] = response.body
        return response.title, options


class NotificationStats:
    """Process-wide counters. Observational only."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.total = 0
        self.with_snapshot = 0
        self.without_snapshot = 0

    def record(self, *, with_snapshot: bool) -> None:
        with self._lock:
            self.total += 1
            if with_snapshot:
                self.with_snapshot += 1
            else:
                self.without_snapshot += 1

    def summary(self) -> str:
        return f"Total: {self.total} (With: {self.with_snapshot}, Without: {self.without_snapshot})"
