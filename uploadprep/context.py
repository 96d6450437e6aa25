"""Collaborators shared by the pipeline stages."""

from __future__ import annotations

from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any, Dict, Optional, Protocol

from .codec import BitmapCodec, PillowCodec
from .exif import PillowExifReader
from .orientation import OrientationDetector
from .resources import ResourceRegistrar, default_registrar


class ExifReader(Protocol):
    async def read(self, data: bytes) -> Dict[str, Any]:
        ...


@dataclass
class ProcessingContext:
    """Codec, metadata reader, orientation detector and handle registrar.

    Attributes
    ----------
    codec:
        Decodes bytes into RGBA8 pixel arrays and encodes them back.
    exif_reader:
        Returns a tag name -> value mapping, empty when there is no metadata.
    detector:
        Remembers whether ``codec`` already applies embedded orientation.
        Built from ``codec`` when not given.
    registrar:
        Creates and releases display handles.
    """

    codec: BitmapCodec = field(default_factory=PillowCodec)
    exif_reader: ExifReader = field(default_factory=PillowExifReader)
    detector: Optional[OrientationDetector] = None
    registrar: ResourceRegistrar = field(default_factory=default_registrar)

    def __post_init__(self):
        if self.detector is None:
            self.detector = OrientationDetector(self.codec)

    @staticmethod
    def default() -> "ProcessingContext":
        return _default_context()


@lru_cache(maxsize=1)
def _default_context() -> ProcessingContext:
    return ProcessingContext()
