"""EXIF orientation correction.

Orientation codes follow the EXIF enumeration: 1 normal, 2 mirror
horizontal, 3 rotate 180, 4 mirror vertical, 5 mirror horizontal + rotate
270, 6 rotate 90, 7 mirror horizontal + rotate 90, 8 rotate 270. Codes 5-8
swap width and height.
"""

from __future__ import annotations

import asyncio
import enum
import io
import logging
import math
import numbers
from functools import lru_cache
from typing import TYPE_CHECKING, Optional, Tuple

import numpy as np
from PIL import Image as PILImage

from .codec import BitmapCodec
from .errors import DecodeError
from .image import DecodedImage, EncodedImage, Image, to_decoded

if TYPE_CHECKING:  # pragma: no cover
    from .context import ProcessingContext

logger = logging.getLogger(__name__)

ORIENTATION_TAG = 0x0112
SAMPLE_THRESHOLD = 200


class OrientationState(enum.Enum):
    UNKNOWN = "unknown"
    HONORED = "honored"
    NOT_HONORED = "not-honored"


@lru_cache(maxsize=1)
def reference_sample() -> bytes:
    """JPEG tagged with orientation 6 whose first pixel is white only if rotated.

    Stored layout is a 2x2 grid of 8x8 blocks, bottom-left white and the rest
    black. Rotating 90 degrees clockwise moves the white block to the top-left.
    """
    arr = np.zeros((16, 16, 3), dtype=np.uint8)
    arr[8:, :8] = 255
    exif = PILImage.Exif()
    exif[ORIENTATION_TAG] = 6
    buf = io.BytesIO()
    PILImage.fromarray(arr, "RGB").save(buf, "JPEG", quality=95, subsampling=0, exif=exif)
    return buf.getvalue()


class OrientationDetector:
    """Find out once whether the codec already applies embedded orientation.

    Concurrent callers of :meth:`detect` share a single in-flight check and
    the outcome is kept for the lifetime of the detector.
    """

    def __init__(self, codec: BitmapCodec):
        self.codec = codec
        self.state = OrientationState.UNKNOWN
        self.checks = 0
        self._pending: Optional[asyncio.Future] = None

    async def detect(self) -> bool:
        if self.state is OrientationState.UNKNOWN:
            if self._pending is None or self._pending.done():
                self._pending = asyncio.ensure_future(self._check())
            # a cancelled caller must not cancel the check other callers wait on
            await asyncio.shield(self._pending)
        return self.state is OrientationState.HONORED

    async def _check(self) -> OrientationState:
        self.checks += 1
        # decode directly through the codec, never through correction
        try:
            pixels = await self.codec.decode(reference_sample())
        except DecodeError as e:
            logger.warning("orientation sample failed to decode, assuming not honored: %s", e)
            state = OrientationState.NOT_HONORED
        else:
            first = pixels[0, 0, :3]
            honored = bool(np.all(first > SAMPLE_THRESHOLD))
            state = OrientationState.HONORED if honored else OrientationState.NOT_HONORED
        self.state = state
        logger.info("host orientation: %s", state.value)
        return state


def orientation_matrix(code: int, width: int, height: int) -> Tuple[float, ...]:
    """Affine ``(a, b, c, d, e, f)`` for ``code`` on a ``width`` x ``height`` target.

    Maps ``x' = a*x + c*y + e`` and ``y' = b*x + d*y + f``.
    """
    x = 0 if code <= 4 else 1
    y = 1 - x
    xs = -1.0 if ((code & 3) >> 1) != 0 else 1.0
    ys = -1.0 if (((code - 1) & 3) >> 1) != 0 else 1.0
    mat = [0.0] * 6
    mat[2 * x] = xs
    mat[2 * y + 1] = ys
    mat[4] = -width * min(0.0, xs)
    mat[5] = -height * min(0.0, ys)
    return tuple(mat)


def apply_orientation(pixels: np.ndarray, code: int) -> np.ndarray:
    """Redraw ``pixels`` so the image displays upright for ``code``.

    Unknown codes (and 0) produce a plain copy.
    """
    if not 1 <= code <= 8:
        return np.array(pixels, copy=True)
    h, w = pixels.shape[:2]
    dw, dh = (h, w) if code > 4 else (w, h)
    a, b, c, d, e, f = orientation_matrix(code, dw, dh)

    yy, xx = np.mgrid[0:h, 0:w]
    cx = xx + 0.5
    cy = yy + 0.5
    dx = np.floor(a * cx + c * cy + e).astype(np.intp)
    dy = np.floor(b * cx + d * cy + f).astype(np.intp)

    out = np.empty((dh, dw) + pixels.shape[2:], dtype=pixels.dtype)
    out[dy, dx] = pixels
    return out


def _orientation_code(meta) -> int:
    value = meta.get("Orientation") if meta else None
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        return 0
    if not math.isfinite(float(value)):
        return 0
    code = int(value)
    return code if 1 <= code <= 8 else 0


async def correct_orientation(image: Image, context: "ProcessingContext") -> Image:
    """Return ``image`` redrawn upright, or unchanged when nothing applies."""
    if not isinstance(image, EncodedImage):
        return image
    code = _orientation_code(await context.exif_reader.read(image.data))
    if code == 0:
        logger.debug("no orientation for %s", image.name)
        return image
    if await context.detector.detect():
        return image
    decoded = await to_decoded(image, context.codec)
    logger.debug("correcting orientation %d for %s", code, image.name)
    return DecodedImage(apply_orientation(decoded.pixels, code), name=image.name)
