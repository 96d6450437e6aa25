"""Temporary display handles for encoded image bytes."""

from __future__ import annotations

import mimetypes
import os
import tempfile
from functools import lru_cache
from pathlib import Path
from typing import Optional, Protocol, Set


class ResourceRegistrar(Protocol):
    def create(self, data: bytes, mime_type: str) -> str:
        ...

    def release(self, handle: str) -> None:
        ...


class TempFileRegistrar:
    """Expose bytes as a temporary file; the file path is the handle."""

    def __init__(self, directory: Optional[str] = None, prefix: str = "uploadprep-"):
        self.directory = directory
        self.prefix = prefix
        self._live: Set[str] = set()

    def create(self, data: bytes, mime_type: str) -> str:
        suffix = mimetypes.guess_extension(mime_type) or ".bin"
        fd, path = tempfile.mkstemp(suffix=suffix, prefix=self.prefix, dir=self.directory)
        with os.fdopen(fd, "wb") as f:
            f.write(data)
        self._live.add(path)
        return path

    def release(self, handle: str) -> None:
        if handle not in self._live:
            return
        self._live.discard(handle)
        try:
            Path(handle).unlink()
        except OSError:
            pass

    @property
    def live_handles(self) -> Set[str]:
        return set(self._live)


@lru_cache(maxsize=None)
def default_registrar() -> TempFileRegistrar:
    return TempFileRegistrar()
