from __future__ import annotations

import logging
from io import BytesIO
from pathlib import Path
from typing import Union

from PIL import Image, UnidentifiedImageError

from .errors import DecodeError, EncodeError, WriteError
from .raster import RasterImage

__all__ = ["decode_image", "encode_png", "save_image"]

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def decode_image(path: PathLike) -> RasterImage:
    """
    Decode the first frame of ``path`` into a straight-alpha RGBA image.
    """
    path = Path(path)
    try:
        with Image.open(path) as img:
            img.seek(0)
            img.load()
            raster = RasterImage.from_pil(img)
    except FileNotFoundError as exc:
        raise DecodeError(f"Image file {path} does not exist.") from exc
    except UnidentifiedImageError as exc:
        raise DecodeError(f"{path} is not a supported image format.") from exc
    except Image.DecompressionBombError as exc:
        raise DecodeError(f"{path} is too large to decode safely: {exc}") from exc
    except (OSError, ValueError) as exc:
        raise DecodeError(f"Could not read image {path}: {exc}") from exc

    logger.debug("Decoded %s as %dx%d RGBA", path, raster.width, raster.height)
    return raster


def encode_png(image: RasterImage) -> bytes:
    buffer = BytesIO()
    try:
        image.to_pil().save(buffer, format="PNG")
    except (OSError, ValueError) as exc:
        raise EncodeError(f"Could not encode {image!r} as PNG: {exc}") from exc
    return buffer.getvalue()


def save_image(image: RasterImage, path: PathLike) -> Path:
    path = Path(path).expanduser()
    payload = encode_png(image)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(payload)
    except OSError as exc:
        raise WriteError(f"Could not write {path}: {exc}") from exc
    logger.info("Saved %dx%d PNG to %s", image.width, image.height, path)
    return path
