"""Ordered preprocessing stages: orientation, resize, format conversion."""

from __future__ import annotations

import logging
import math
from typing import List, Optional, Tuple

from .config import PipelineConfig
from .context import ProcessingContext
from .image import DecodedImage, EncodedImage, Image, to_decoded, to_encoded
from .metrics import StageMetrics, measure
from .orientation import correct_orientation
from .scaler import YieldTimer, box_scale, native_scale

logger = logging.getLogger(__name__)


def compute_scale(width: int, height: int, cfg: PipelineConfig) -> float:
    """Largest uniform factor <= 1 that satisfies every configured limit."""
    scale = 1.0
    if cfg.max_width is not None and width > cfg.max_width:
        scale = min(scale, cfg.max_width / width)
    if cfg.max_height is not None and height > cfg.max_height:
        scale = min(scale, cfg.max_height / height)
    if cfg.max_pixels is not None and width * height > cfg.max_pixels:
        scale = min(scale, math.sqrt(cfg.max_pixels / (width * height)))
    return scale


async def resize_if_needed(image: Image, cfg: PipelineConfig, context: ProcessingContext) -> Image:
    if not cfg.has_size_limits:
        return image
    decoded = await to_decoded(image, context.codec)
    w, h = decoded.width, decoded.height
    scale = compute_scale(w, h, cfg)
    if abs(scale - 1.0) < cfg.scale_epsilon:
        return image

    tw = max(1, round(w * scale))
    th = max(1, round(h * scale))
    logger.debug("resizing %s from %dx%d to %dx%d", image.name, w, h, tw, th)
    if cfg.use_area_average_scaler:
        timer = YieldTimer() if cfg.enable_yielding else None
        pixels = await box_scale(decoded.pixels, tw, th, yield_timer=timer)
    else:
        pixels = native_scale(decoded.pixels, tw, th)
    return DecodedImage(pixels, name=image.name)


async def convert_if_needed(image: Image, cfg: PipelineConfig, context: ProcessingContext) -> Image:
    target = cfg.target
    if target.disabled:
        return image
    if isinstance(image, EncodedImage):
        if not target.force or image.mime_type == target.mime_type:
            return image
    return await to_encoded(image, target.mime_type, context.codec, quality=target.quality)


class ImagePipeline:
    """Run an image through orientation correction, resize and conversion.

    Stages run strictly one after the other and never reorder; each one may
    hand back its input untouched.
    """

    def __init__(self, config: Optional[PipelineConfig] = None, context: Optional[ProcessingContext] = None):
        self.config = config or PipelineConfig()
        self.context = context or ProcessingContext.default()

    async def process(self, image: Image) -> Image:
        result, _ = await self.process_with_metrics(image)
        return result

    async def process_with_metrics(self, image: Image) -> Tuple[Image, List[StageMetrics]]:
        cfg, ctx = self.config, self.context
        metrics: List[StageMetrics] = []

        if cfg.apply_orientation:
            image, m = await measure(lambda: correct_orientation(image, ctx), "orientation")
            metrics.append(m)
        image, m = await measure(lambda: resize_if_needed(image, cfg, ctx), "resize")
        metrics.append(m)
        image, m = await measure(lambda: convert_if_needed(image, cfg, ctx), "convert")
        metrics.append(m)
        return image, metrics
