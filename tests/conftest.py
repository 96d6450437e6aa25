"""
Shared fixtures: synthetic images and instrumented collaborators.
"""

import asyncio
import io
import struct
import zlib

import numpy as np
import pytest
from PIL import Image

from uploadprep.codec import PillowCodec
from uploadprep.context import ProcessingContext
from uploadprep.orientation import ORIENTATION_TAG
from uploadprep.resources import TempFileRegistrar


def encode_pil(arr, fmt="PNG", orientation=None, **opts):
    """Encode an RGB/RGBA array with Pillow, optionally tagging EXIF orientation."""
    pil = Image.fromarray(np.asarray(arr, dtype=np.uint8))
    if orientation is not None:
        exif = Image.Exif()
        exif[ORIENTATION_TAG] = orientation
        opts["exif"] = exif
    buf = io.BytesIO()
    pil.save(buf, fmt, **opts)
    return buf.getvalue()


def png_declaring_size(width, height):
    """Minimal PNG whose header claims ``width`` x ``height`` RGBA pixels."""

    def chunk(kind, body):
        return struct.pack(">I", len(body)) + kind + body + struct.pack(">I", zlib.crc32(kind + body) & 0xFFFFFFFF)

    ihdr = struct.pack(">IIBBBBB", width, height, 8, 6, 0, 0, 0)
    return (
        b"\x89PNG\r\n\x1a\n"
        + chunk(b"IHDR", ihdr)
        + chunk(b"IDAT", zlib.compress(b"\x00" * 16))
        + chunk(b"IEND", b"")
    )


def gradient(width, height, channels=4):
    """Deterministic image where every pixel differs from its neighbours."""
    yy, xx = np.mgrid[0:height, 0:width]
    arr = np.zeros((height, width, channels), dtype=np.uint8)
    arr[..., 0] = (xx * 37) % 256
    arr[..., 1] = (yy * 53) % 256
    arr[..., 2] = (xx * 11 + yy * 7) % 256
    if channels == 4:
        arr[..., 3] = 255
    return arr


class CountingCodec(PillowCodec):
    """Pillow codec that records how often it was used."""

    def __init__(self, auto_orient=False, delay=0.0):
        super().__init__(auto_orient=auto_orient)
        self.decodes = 0
        self.encodes = 0
        self.delay = delay

    async def decode(self, data):
        self.decodes += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        return await super().decode(data)

    async def encode(self, pixels, mime_type, quality=None):
        self.encodes += 1
        return await super().encode(pixels, mime_type, quality)


class StaticExifReader:
    def __init__(self, tags=None):
        self.tags = dict(tags or {})
        self.reads = 0

    async def read(self, data):
        self.reads += 1
        return dict(self.tags)


@pytest.fixture
def registrar(tmp_path):
    return TempFileRegistrar(directory=str(tmp_path))


@pytest.fixture
def codec():
    return CountingCodec()


@pytest.fixture
def context(codec, registrar):
    """Isolated context so detection state never leaks between tests."""
    return ProcessingContext(codec=codec, registrar=registrar)


def run(coro):
    return asyncio.run(coro)
