"""Public convenience API for running the pipeline."""

from __future__ import annotations

import asyncio
from typing import Optional

from .config import PipelineConfig
from .context import ProcessingContext
from .image import EncodedImage, Image
from .pipeline import ImagePipeline

__all__ = ["preprocess_bytes", "preprocess_file", "preprocess_file_sync"]


async def preprocess_bytes(
    data: bytes,
    mime_type: str,
    *,
    name: Optional[str] = None,
    config: Optional[PipelineConfig] = None,
    context: Optional[ProcessingContext] = None,
) -> Image:
    """Preprocess raw encoded bytes."""
    return await ImagePipeline(config, context).process(EncodedImage(data, mime_type, name=name))


async def preprocess_file(
    path: str,
    *,
    config: Optional[PipelineConfig] = None,
    context: Optional[ProcessingContext] = None,
) -> Image:
    """Preprocess an image file; its file name becomes the image name."""
    return await ImagePipeline(config, context).process(EncodedImage.from_path(path))


def preprocess_file_sync(path: str, *, config: Optional[PipelineConfig] = None) -> Image:
    return asyncio.run(preprocess_file(path, config=config))
