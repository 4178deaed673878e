"""
Crop an image to the smallest rectangle holding every non-transparent pixel.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from functools import reduce
from typing import List, Optional, Tuple

import numpy as np

from .raster import BoundingBox, RasterImage

__all__ = ["find_bounding_box", "trim"]

logger = logging.getLogger(__name__)


def _scan_rows(alpha: np.ndarray, row_offset: int) -> Optional[BoundingBox]:
    visible = alpha > 0
    rows = np.flatnonzero(visible.any(axis=1))
    if rows.size == 0:
        return None
    cols = np.flatnonzero(visible.any(axis=0))
    return BoundingBox(
        int(cols[0]),
        int(rows[0]) + row_offset,
        int(cols[-1]),
        int(rows[-1]) + row_offset,
    )


def _merge(left: Optional[BoundingBox], right: Optional[BoundingBox]) -> Optional[BoundingBox]:
    if left is None:
        return right
    return left.union(right)


def _row_ranges(height: int, parts: int) -> List[Tuple[int, int]]:
    parts = max(1, min(parts, height))
    edges = np.linspace(0, height, parts + 1, dtype=np.int64)
    return [(int(start), int(stop)) for start, stop in zip(edges[:-1], edges[1:]) if stop > start]


def find_bounding_box(image: RasterImage, workers: int = 1) -> Optional[BoundingBox]:
    """
    Return the inclusive box around pixels with alpha > 0, or None if there are none.

    With ``workers > 1`` row ranges are scanned concurrently and the partial
    boxes merged; the union is order independent so the result matches the
    sequential scan.
    """
    alpha = image.alpha
    ranges = _row_ranges(image.height, workers)

    if len(ranges) == 1:
        return _scan_rows(alpha, 0)

    with ThreadPoolExecutor(max_workers=len(ranges)) as pool:
        partials = list(
            pool.map(lambda span: _scan_rows(alpha[span[0] : span[1]], span[0]), ranges)
        )
    return reduce(_merge, partials, None)


def trim(image: RasterImage, workers: int = 1) -> RasterImage:
    box = find_bounding_box(image, workers=workers)
    if box is None:
        logger.debug("No visible pixels in %r; nothing to trim", image)
        return image

    if box == BoundingBox.full(image.width, image.height):
        logger.debug("%r is already tight", image)
        return image.copy()

    logger.debug("Trimming %r to %s", image, box)
    return image.crop(box)
