from __future__ import annotations

import logging

import numpy as np

from .errors import CompositeError
from .raster import ALPHA, Mask, RasterImage

__all__ = ["composite"]

logger = logging.getLogger(__name__)


def composite(image: RasterImage, mask: Mask) -> RasterImage:
    """
    Blend ``image`` over a fully transparent background using ``mask``.

    Output alpha is ``mask * input alpha``. Colour channels are copied
    unchanged (straight alpha) except where the output is fully transparent,
    where they are cleared to zero.
    """
    if mask.size != image.size:
        raise CompositeError(
            f"Mask is {mask.width}x{mask.height} but image is {image.width}x{image.height}; "
            "resample the mask before compositing."
        )

    try:
        pixels = image.pixels.copy()
    except MemoryError as exc:
        raise CompositeError(f"Could not allocate a {image.width}x{image.height} output buffer.") from exc

    alpha = np.rint(mask.values * image.pixels[:, :, ALPHA].astype(np.float32))
    alpha = np.clip(alpha, 0, 255).astype(np.uint8)
    pixels[:, :, ALPHA] = alpha
    pixels[alpha == 0] = 0

    logger.debug(
        "Composited %dx%d image, %d of %d pixels visible",
        image.width,
        image.height,
        int(np.count_nonzero(alpha)),
        alpha.size,
    )
    return RasterImage(pixels)
