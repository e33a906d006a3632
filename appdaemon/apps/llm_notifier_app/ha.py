"""
Home Assistant side of the notifier: media handles, the Frigate detector that
serves full frames for a detection, and the downstream `notify.*` service.

Media handles (`HaMedia`) are paths Home Assistant serves over HTTP, e.g.
`/api/camera_proxy/camera.front_door` or `/api/frigate/notifications/<id>/snapshot.jpg`.
Plain http(s) and data: URLs are not wrapped; they go to the LLM verbatim.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional

import aiohttp


class MediaFetchError(RuntimeError):
    pass


_URL_PREFIXES = ("http://", "https://", "data:")
_HA_PATH_PREFIXES = ("/api/", "/local/", "/media/")


@dataclass(frozen=True)
class HaMedia:
    web_path: str
    source_id: Optional[str] = None


def coerce_media(value: Any) -> Any:
    """
    Normalize a `media`/`icon` value from an event payload.

    - http(s)/data URLs -> str (used as-is)
    - camera entity ids -> HaMedia(/api/camera_proxy/<entity>)
    - HA-served paths -> HaMedia(path)
    - {"path"|"entity_id": ..., "source_id": ...} -> HaMedia
    """
    if value is None or value == "":
        return None
    if isinstance(value, HaMedia):
        return value
    if isinstance(value, dict):
        source_id = value.get("source_id")
        if value.get("entity_id"):
            return HaMedia(f"/api/camera_proxy/{value['entity_id']}", source_id=source_id)
        if value.get("path"):
            return HaMedia(str(value["path"]), source_id=source_id)
        return None
    s = str(value).strip()
    if s.startswith(_URL_PREFIXES):
        return s
    if s.startswith("camera."):
        return HaMedia(f"/api/camera_proxy/{s}")
    if s.startswith(_HA_PATH_PREFIXES):
        return HaMedia(s)
    return s


def media_reference(value: Any) -> Optional[str]:
    """What the downstream notify service gets as `data.image` / `data.icon_url`."""
    if value is None:
        return None
    if isinstance(value, HaMedia):
        return value.web_path
    return str(value)


async def _http_get_bytes(url: str, *, headers: Optional[dict[str, str]] = None, timeout_s: float = 10.0) -> bytes:
    timeout = aiohttp.ClientTimeout(total=float(timeout_s))
    try:
        async with aiohttp.ClientSession(timeout=timeout) as session:
            async with session.get(url, headers=headers or {}) as resp:
                if resp.status >= 400:
                    raise MediaFetchError(f"GET {url} -> {resp.status} {resp.reason}")
                data = await resp.read()
    except MediaFetchError:
        raise
    except Exception as e:
        raise MediaFetchError(f"GET {url} failed: {e!r}") from e
    if not data:
        raise MediaFetchError(f"GET {url} returned an empty body")
    return data


class HaMediaResolver:
    def __init__(self, ha_url: str, token: Optional[str] = None, *, timeout_s: float = 10.0):
        self._ha_url = ha_url.rstrip("/")
        self._token = token
        self._timeout_s = timeout_s

    def _headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self._token}"} if self._token else {}

    async def to_jpeg(self, media: Any) -> bytes:
        # URL strings never get here; the assembler passes them to the LLM as-is.
        if not isinstance(media, HaMedia):
            raise MediaFetchError(f"cannot resolve media {media!r}")
        return await _http_get_bytes(
            f"{self._ha_url}{media.web_path}", headers=self._headers(), timeout_s=self._timeout_s
        )


class FrigateDetector:
    """
    Full, uncropped frame of an existing Frigate detection event.
    """

    def __init__(self, base_url: str, *, timeout_s: float = 10.0):
        self._base_url = base_url.rstrip("/")
        self._timeout_s = timeout_s

    async def get_detection_input(self, detection_id: str, event_id: Optional[str] = None) -> bytes:
        # Frigate keys snapshots by its event id, which is our detection id.
        url = f"{self._base_url}/api/events/{detection_id}/snapshot.jpg?crop=0&bbox=0"
        return await _http_get_bytes(url, timeout_s=self._timeout_s)


def detectors_from_config(raw: Mapping[str, Any], *, timeout_s: float = 10.0) -> dict[str, FrigateDetector]:
    out: dict[str, FrigateDetector] = {}
    for source_id, cfg in (raw or {}).items():
        base_url = str((cfg or {}).get("base_url") or "").strip()
        if base_url:
            out[str(source_id)] = FrigateDetector(base_url, timeout_s=timeout_s)
    return out


class HaNotifyService:
    """Downstream notifier: one Home Assistant notify service call per notification."""

    def __init__(self, app: Any, service: str):
        self._app = app
        # notify.mobile_app_xxx -> notify/mobile_app_xxx
        self.service = service.replace(".", "/", 1) if "." in service else f"notify/{service}"

    async def send_notification(
        self,
        title: str,
        options: Optional[dict[str, Any]] = None,
        media: Any = None,
        icon: Any = None,
    ) -> Any:
        options = options or {}
        data: dict[str, Any] = dict(options.get("push_data") or {})
        if options.get("subtitle"):
            data["subtitle"] = options["subtitle"]
        image = media_reference(media)
        if image:
            data["image"] = image
        icon_url = media_reference(icon)
        if icon_url:
            data["icon_url"] = icon_url

        message = options.get("body") or title
        self._app.log(f"Sending notification: {title!r} to {self.service}", level="INFO")
        if data:
            return await self._app.call_service(self.service, title=title, message=message, data=data)
        return await self._app.call_service(self.service, title=title, message=message)
