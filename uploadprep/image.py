"""Dual image representation: encoded bytes or decoded RGBA pixels.

``Image`` is a closed union of :class:`EncodedImage` and :class:`DecodedImage`.
Conversions between the two go through :func:`to_decoded` and
:func:`to_encoded`, which dispatch on the variant and call the bitmap codec.
Every conversion returns a new value; inputs are never modified.
"""

from __future__ import annotations

import mimetypes
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Union

import numpy as np

from .codec import BitmapCodec
from .resources import ResourceRegistrar, default_registrar


@dataclass(eq=False)
class EncodedImage:
    data: bytes
    mime_type: str
    name: Optional[str] = None
    _handle: Optional[str] = field(default=None, init=False, repr=False)
    _registrar: Optional[ResourceRegistrar] = field(default=None, init=False, repr=False)

    @classmethod
    def from_path(cls, path, mime_type: Optional[str] = None) -> "EncodedImage":
        p = Path(path)
        mt = mime_type or mimetypes.guess_type(p.name)[0] or "application/octet-stream"
        return cls(p.read_bytes(), mt, name=p.name)

    def display_handle(self, registrar: Optional[ResourceRegistrar] = None) -> str:
        """Return the display handle, creating it on first use."""
        if self._handle is None:
            reg = registrar or default_registrar()
            self._handle = reg.create(self.data, self.mime_type)
            self._registrar = reg
        return self._handle

    def release_display_handle(self) -> None:
        if self._handle is None:
            return
        handle, reg = self._handle, self._registrar
        self._handle = None
        self._registrar = None
        reg.release(handle)

    @property
    def has_display_handle(self) -> bool:
        return self._handle is not None


@dataclass(eq=False)
class DecodedImage:
    pixels: np.ndarray
    name: Optional[str] = None

    def __post_init__(self):
        arr = np.asarray(self.pixels)
        if arr.ndim != 3 or arr.shape[2] != 4 or arr.dtype != np.uint8:
            raise ValueError(f"expected HxWx4 uint8 pixels, got {arr.shape} {arr.dtype}")
        view = arr.view()
        view.flags.writeable = False
        self.pixels = view

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])


Image = Union[EncodedImage, DecodedImage]


async def to_decoded(image: Image, codec: BitmapCodec) -> DecodedImage:
    if isinstance(image, DecodedImage):
        return image
    if isinstance(image, EncodedImage):
        return DecodedImage(await codec.decode(image.data), name=image.name)
    raise TypeError(f"not an image: {type(image).__name__}")


async def to_encoded(
    image: Image, mime_type: str, codec: BitmapCodec, quality: Optional[int] = None
) -> EncodedImage:
    """Encode ``image`` as ``mime_type``.

    An encoded image already of that type is returned as is. Other encoded
    images are decoded first, there is no direct transcoding.
    """
    if mime_type != "image/jpeg":
        quality = None
    if isinstance(image, EncodedImage):
        if image.mime_type == mime_type:
            return image
        image = await to_decoded(image, codec)
    if isinstance(image, DecodedImage):
        data = await codec.encode(image.pixels, mime_type, quality)
        return EncodedImage(data, mime_type, name=image.name)
    raise TypeError(f"not an image: {type(image).__name__}")
