"""Bitmap codec backed by Pillow.

Pixel buffers are ``numpy`` arrays of shape ``(height, width, 4)`` and dtype
``uint8`` (RGBA8).
"""

from __future__ import annotations

import io
from typing import Dict, Optional, Protocol

import numpy as np
from PIL import Image, ImageOps, UnidentifiedImageError

from .errors import DecodeError, EncodeError

# MIME type -> Pillow format name
MIME_FORMATS: Dict[str, str] = {
    "image/jpeg": "JPEG",
    "image/png": "PNG",
    "image/webp": "WEBP",
    "image/gif": "GIF",
    "image/bmp": "BMP",
    "image/tiff": "TIFF",
}

_LOSSY = {"JPEG", "WEBP"}
_NO_ALPHA = {"JPEG", "BMP"}


class BitmapCodec(Protocol):
    async def decode(self, data: bytes) -> np.ndarray:
        ...

    async def encode(self, pixels: np.ndarray, mime_type: str, quality: Optional[int] = None) -> bytes:
        ...


class PillowCodec:
    """Decode/encode through Pillow.

    Parameters
    ----------
    auto_orient:
        When ``True`` the decoder applies embedded EXIF orientation itself, the
        way some hosts do. The default leaves stored pixels untouched.
    """

    def __init__(self, auto_orient: bool = False):
        self.auto_orient = auto_orient

    async def decode(self, data: bytes) -> np.ndarray:
        try:
            with Image.open(io.BytesIO(data)) as pil:
                pil.seek(0)
                if self.auto_orient:
                    pil = ImageOps.exif_transpose(pil)
                rgba = pil.convert("RGBA")
        except (UnidentifiedImageError, Image.DecompressionBombError, OSError, SyntaxError, ValueError) as e:
            raise DecodeError(f"cannot decode image: {e}") from e
        return np.array(rgba, dtype=np.uint8)

    async def encode(self, pixels: np.ndarray, mime_type: str, quality: Optional[int] = None) -> bytes:
        fmt = MIME_FORMATS.get(mime_type)
        if fmt is None:
            raise EncodeError(f"unsupported output type: {mime_type}")
        if quality is not None:
            try:
                quality = int(quality)
            except (TypeError, ValueError) as e:
                raise EncodeError(f"quality is not a number: {quality!r}") from e
            if not 1 <= quality <= 100:
                raise EncodeError(f"quality out of range: {quality}")

        pil = Image.fromarray(np.ascontiguousarray(pixels, dtype=np.uint8), "RGBA")
        if fmt in _NO_ALPHA:
            pil = pil.convert("RGB")
        opts = {}
        if fmt in _LOSSY and quality is not None:
            opts["quality"] = quality

        buf = io.BytesIO()
        try:
            pil.save(buf, fmt, **opts)
        except (OSError, ValueError, KeyError) as e:
            raise EncodeError(f"cannot encode {mime_type}: {e}") from e
        return buf.getvalue()
