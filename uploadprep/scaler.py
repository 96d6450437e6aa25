"""Area-averaging (box filter) resize and the native OpenCV alternative."""

from __future__ import annotations

import asyncio
from typing import List, Optional, Tuple

import cv2
import numpy as np

from .metrics import Stopwatch


class YieldTimer:
    """Suspend the running coroutine once a time budget has been used up.

    ``checkpoint()`` is called at least once per source row. When more than
    ``budget_ms`` passed since the last suspension it sleeps ``pause_ms`` so
    other tasks on the loop get to run.
    """

    def __init__(self, budget_ms: float = 10.0, pause_ms: float = 5.0):
        self.budget_ms = budget_ms
        self.pause_ms = pause_ms
        self.yields = 0
        self._watch: Optional[Stopwatch] = None

    async def checkpoint(self) -> None:
        if self._watch is None:
            self._watch = Stopwatch()
            return
        if self._watch.elapsed_ms() > self.budget_ms:
            await asyncio.sleep(self.pause_ms / 1000.0)
            self.yields += 1
            self._watch.reset()


def _spans(src: int, dst: int) -> Tuple[np.ndarray, np.ndarray]:
    """Group source indices by the target index they are averaged into.

    Runs a Bresenham-style divider: every source step adds ``dst`` to a
    counter and each time the counter reaches ``src`` the current target
    index is complete. A source index that completes several targets at once
    (upscaling) feeds each of them.

    Returns ``(order, starts)`` where ``order[starts[t]:starts[t + 1]]`` are
    the source indices of target ``t``; ``len(starts) == dst``.
    """
    order: List[int] = []
    starts: List[int] = []
    pending: List[int] = []
    counter = 0
    for s in range(src):
        pending.append(s)
        counter += dst
        if counter >= src:
            while counter >= src:
                counter -= src
                starts.append(len(order))
                order.extend(pending)
            pending = []
    return np.asarray(order, dtype=np.intp), np.asarray(starts, dtype=np.intp)


async def box_scale(
    pixels: np.ndarray,
    width: int,
    height: int,
    yield_timer: Optional[YieldTimer] = None,
) -> np.ndarray:
    """Resize RGBA8 ``pixels`` to ``width`` x ``height`` by area averaging.

    Each target pixel is the unweighted integer mean of the source pixels
    mapped into it. Sums are kept in ``uint64`` per target column and flushed
    into the output whenever the vertical divider rolls over.
    """
    if width < 1 or height < 1:
        raise ValueError(f"invalid target size {width}x{height}")
    sh, sw = pixels.shape[:2]
    if sw == width and sh == height:
        return np.array(pixels, copy=True)

    order, starts = _spans(sw, width)
    col_counts = np.diff(np.append(starts, len(order))).astype(np.uint64)

    out = np.empty((height, width, 4), dtype=np.uint8)
    acc = np.zeros((width, 4), dtype=np.uint64)
    rows = 0
    tyc = 0
    ty = 0
    for sy in range(sh):
        if yield_timer is not None:
            await yield_timer.checkpoint()
        line = pixels[sy, order].astype(np.uint64)
        acc += np.add.reduceat(line, starts, axis=0)
        rows += 1
        tyc += height
        if tyc >= sh:
            avg = (acc // (col_counts * rows)[:, None]).astype(np.uint8)
            while tyc >= sh:
                tyc -= sh
                out[ty] = avg
                ty += 1
            acc[:] = 0
            rows = 0
    return out


def native_scale(pixels: np.ndarray, width: int, height: int) -> np.ndarray:
    """Resize with OpenCV; faster but not an exact box average."""
    if width < 1 or height < 1:
        raise ValueError(f"invalid target size {width}x{height}")
    sh, sw = pixels.shape[:2]
    if sw == width and sh == height:
        return np.array(pixels, copy=True)
    shrinking = width <= sw and height <= sh
    interp = cv2.INTER_AREA if shrinking else cv2.INTER_LINEAR
    return cv2.resize(np.ascontiguousarray(pixels), (width, height), interpolation=interp)
