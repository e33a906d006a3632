"""
Pick the image(s) that go into the LLM request for one notification.

- cropped: the media attached to the notification (usually a subject crop)
- full: the uncropped frame of the *same* detection, fetched from the detector
  that produced it (never a fresh live snapshot), downscaled locally
"""

from __future__ import annotations

import asyncio
from typing import Any, Mapping, Optional, Protocol

from .errors import DecodeError, ResizeError
from .image_codec import DEFAULT_QUALITY, probe_dimensions, resize_nearest, scaled_height, select_target_width
from .models import ImageAsset, LogFn, NotificationEvent, SnapshotSelection, null_log

SNAPSHOT_MODES = ("cropped", "full", "both")


class MediaResolver(Protocol):
    async def to_jpeg(self, media: Any) -> bytes:
        ...


class Detector(Protocol):
    async def get_detection_input(self, detection_id: str, event_id: Optional[str] = None) -> bytes:
        ...


def build_image_list(mode: str, full: Optional[str], cropped: Optional[str]) -> list[str]:
    images: list[str] = []
    if mode == "both":
        if full:
            images.append(full)
        if cropped:
            images.append(cropped)
    elif mode == "full":
        if full:
            images.append(full)
        elif cropped:
            images.append(cropped)
    elif cropped:
        images.append(cropped)
    return images


class SnapshotAssembler:
    def __init__(
        self,
        media_resolver: MediaResolver,
        detectors: Optional[Mapping[str, Any]] = None,
        *,
        log: Optional[LogFn] = None,
        quality: int = DEFAULT_QUALITY,
    ):
        self._media_resolver = media_resolver
        self._detectors = detectors or {}
        self._log = log or null_log
        self._quality = quality

    async def assemble(self, mode: str, event: NotificationEvent) -> SnapshotSelection:
        cropped_ref: Optional[str] = None
        cropped_kb: Optional[int] = None
        if isinstance(event.media, str):
            cropped_ref = event.media or None
        elif event.media is not None:
            cropped = await self._load_cropped(event.media)
            cropped_ref = cropped.data_url()
            cropped_kb = cropped.size_kb

        full_ref: Optional[str] = None
        if mode != "cropped":
            try:
                full = await self._fetch_full(event)
                if full is not None:
                    full_ref = full.data_url()
            except Exception as e:
                self._log(f"Full-frame (event) retrieval/rescale failed: {e!r}", level="WARNING")

        images = build_image_list(mode, full_ref, cropped_ref)
        return SnapshotSelection(images=tuple(images), cropped_kb=cropped_kb)

    async def _load_cropped(self, media: Any) -> ImageAsset:
        data = await self._media_resolver.to_jpeg(media)
        try:
            width, height = await asyncio.to_thread(probe_dimensions, data)
        except DecodeError:
            width = height = None
        return ImageAsset(data=data, role="cropped", width=width, height=height)

    async def _fetch_full(self, event: NotificationEvent) -> Optional[ImageAsset]:
        detection_id = event.detection_id
        source_id = event.source_id
        if not detection_id or not source_id:
            self._log(
                f"Full frame skipped: detection_id={detection_id!r} source_id={source_id!r}",
                level="DEBUG",
            )
            return None

        detector = self._detectors.get(str(source_id))
        get_input = getattr(detector, "get_detection_input", None)
        if get_input is None:
            self._log(f"Full frame skipped: no detector for source_id={source_id!r}", level="DEBUG")
            return None

        raw = await get_input(detection_id, event.event_id)
        # Decode, resample and encode are CPU-bound; keep them off the event loop.
        return await asyncio.to_thread(self._downscale, raw)

    def _downscale(self, raw: bytes) -> ImageAsset:
        try:
            sw, sh = probe_dimensions(raw)
            tw = select_target_width(sw)
            resized = resize_nearest(raw, tw, self._quality)
        except (DecodeError, ResizeError) as e:
            self._log(f"Full-frame local resize failed; using original full frame: {e!r}", level="WARNING")
            return ImageAsset(data=raw, role="full")

        dh = scaled_height(sw, sh, tw) if tw < sw else sh
        asset = ImageAsset(data=resized, role="full", width=tw, height=dh)
        self._log(
            f"Full frame resized {sw}x{sh} {round(len(raw) / 1024)}KB -> {tw}x{dh} {asset.size_kb}KB",
            level="INFO",
        )
        return asset
