"""
JPEG decode / nearest-neighbour downscale for full-frame snapshots.

All functions here are pure.
"""

from __future__ import annotations

import io
from dataclasses import dataclass

from PIL import Image

from .errors import DecodeError, ResizeError

DEFAULT_QUALITY = 60

# (source width strictly above, target width). Narrower than 800px: no resize.
WIDTH_LADDER: tuple[tuple[int, int], ...] = (
    (3000, 640),
    (1500, 512),
    (800, 384),
)


@dataclass(frozen=True)
class DecodedImage:
    pixels: bytes  # RGBA, row-major
    width: int
    height: int


def decode(data: bytes) -> DecodedImage:
    try:
        with Image.open(io.BytesIO(data)) as img:
            rgba = img.convert("RGBA")
    except Exception as e:
        raise DecodeError(f"failed to decode image ({len(data or b'')} bytes): {e!r}") from e
    width, height = rgba.size
    if not width or not height:
        raise DecodeError(f"image has no pixels: {width}x{height}")
    return DecodedImage(pixels=rgba.tobytes(), width=width, height=height)


def probe_dimensions(data: bytes) -> tuple[int, int]:
    """Read (width, height) from the image header without decoding pixels."""
    try:
        with Image.open(io.BytesIO(data)) as img:
            width, height = img.size
    except Exception as e:
        raise DecodeError(f"failed to read image header: {e!r}") from e
    if not width or not height:
        raise DecodeError(f"image has no pixels: {width}x{height}")
    return width, height


def select_target_width(source_width: int) -> int:
    for threshold, target in WIDTH_LADDER:
        if source_width > threshold:
            return target
    return source_width


def scaled_height(source_width: int, source_height: int, target_width: int) -> int:
    # round-half-up of sh * tw / sw, in integers
    return max(1, (2 * source_height * target_width + source_width) // (2 * source_width))


def sample_nearest(pixels: bytes, sw: int, sh: int, dw: int, dh: int) -> bytes:
    """
    Nearest-neighbour resample of an RGBA buffer. Each destination pixel takes
    source (floor(x * sw / dw), floor(y * sh / dh)); alpha is forced opaque.
    """
    x_offsets = [((x * sw) // dw) * 4 for x in range(dw)]
    row_stride = sw * 4
    out = bytearray(dw * dh * 4)
    di = 0
    for y in range(dh):
        row = ((y * sh) // dh) * row_stride
        for sx in x_offsets:
            si = row + sx
            out[di : di + 3] = pixels[si : si + 3]
            out[di + 3] = 255
            di += 4
    return bytes(out)


def encode_jpeg(pixels: bytes, width: int, height: int, quality: int = DEFAULT_QUALITY) -> bytes:
    quality = max(0, min(100, int(quality)))
    try:
        img = Image.frombytes("RGBA", (width, height), pixels).convert("RGB")
        buf = io.BytesIO()
        img.save(buf, format="JPEG", quality=quality)
    except Exception as e:
        raise ResizeError(f"failed to encode {width}x{height} JPEG: {e!r}") from e
    return buf.getvalue()


def resize_nearest(data: bytes, target_width: int, quality: int = DEFAULT_QUALITY) -> bytes:
    """
    Downscale `data` to `target_width` and re-encode as JPEG.

    Returns `data` unchanged when it cannot be decoded or when `target_width`
    is not smaller than the source width (never upscales).
    """
    try:
        src = decode(data)
    except DecodeError:
        return data
    dw = int(target_width)
    if dw <= 0 or dw >= src.width:
        return data
    dh = scaled_height(src.width, src.height, dw)
    pixels = sample_nearest(src.pixels, src.width, src.height, dw, dh)
    return encode_jpeg(pixels, dw, dh, quality)
