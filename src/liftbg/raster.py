"""
Pixel buffer primitives shared by every pipeline stage.

All images are 8-bit RGBA with straight (non-premultiplied) alpha, stored as a
C-contiguous ``(height, width, 4)`` uint8 array. Masks are single channel
float32 arrays in ``[0, 1]``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Tuple

import numpy as np
import torch
import torch.nn.functional as F
from PIL import Image

__all__ = ["BoundingBox", "Mask", "RasterImage", "CHANNELS"]

CHANNELS = 4
ALPHA = 3


@dataclass(frozen=True)
class BoundingBox:
    """
    Inclusive pixel rectangle.
    """

    min_x: int
    min_y: int
    max_x: int
    max_y: int

    def __post_init__(self) -> None:
        if self.min_x > self.max_x or self.min_y > self.max_y:
            raise ValueError(f"Degenerate bounding box {self}.")
        if self.min_x < 0 or self.min_y < 0:
            raise ValueError(f"Bounding box {self} has negative coordinates.")

    @classmethod
    def full(cls, width: int, height: int) -> BoundingBox:
        return cls(0, 0, width - 1, height - 1)

    @property
    def width(self) -> int:
        return self.max_x - self.min_x + 1

    @property
    def height(self) -> int:
        return self.max_y - self.min_y + 1

    def union(self, other: Optional[BoundingBox]) -> BoundingBox:
        if other is None:
            return self
        return BoundingBox(
            min(self.min_x, other.min_x),
            min(self.min_y, other.min_y),
            max(self.max_x, other.max_x),
            max(self.max_y, other.max_y),
        )

    def fits(self, width: int, height: int) -> bool:
        return self.max_x < width and self.max_y < height

    def as_tuple(self) -> Tuple[int, int, int, int]:
        return (self.min_x, self.min_y, self.max_x, self.max_y)


@dataclass(eq=False)
class RasterImage:
    pixels: np.ndarray

    def __post_init__(self) -> None:
        pixels = self.pixels
        if not isinstance(pixels, np.ndarray):
            raise ValueError("RasterImage pixels must be a numpy array.")
        if pixels.dtype != np.uint8:
            raise ValueError(f"RasterImage expects uint8 pixels, got {pixels.dtype}.")
        if pixels.ndim != 3 or pixels.shape[2] != CHANNELS:
            raise ValueError(f"RasterImage expects (H, W, 4) pixels, got {pixels.shape}.")
        if pixels.shape[0] == 0 or pixels.shape[1] == 0:
            raise ValueError("RasterImage must have at least one pixel.")
        if not pixels.flags["C_CONTIGUOUS"]:
            raise ValueError("RasterImage pixels must be C-contiguous.")

    @classmethod
    def blank(cls, width: int, height: int) -> RasterImage:
        return cls(np.zeros((height, width, CHANNELS), dtype=np.uint8))

    @classmethod
    def from_buffer(cls, width: int, height: int, data: bytes) -> RasterImage:
        expected = width * height * CHANNELS
        if len(data) != expected:
            raise ValueError(
                f"Buffer holds {len(data)} bytes, expected {expected} for {width}x{height} RGBA."
            )
        pixels = np.frombuffer(data, dtype=np.uint8).reshape(height, width, CHANNELS).copy()
        return cls(pixels)

    @classmethod
    def from_pil(cls, image: Image.Image) -> RasterImage:
        if image.mode == "I" or image.mode.startswith("I;16"):
            # 16-bit grayscale: keep the high byte, convert() would clip to white.
            wide = np.clip(np.asarray(image).astype(np.int64), 0, 65535)
            image = Image.fromarray((wide >> 8).astype(np.uint8))
        # Pillow un-premultiplies "RGBa" and expands palette transparency here.
        if image.mode != "RGBA":
            image = image.convert("RGBA")
        return cls(np.array(image, dtype=np.uint8))

    def to_pil(self) -> Image.Image:
        return Image.fromarray(self.pixels)

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])

    @property
    def size(self) -> Tuple[int, int]:
        return self.width, self.height

    @property
    def alpha(self) -> np.ndarray:
        view = self.pixels[:, :, ALPHA]
        view.flags.writeable = False
        return view

    @property
    def nbytes(self) -> int:
        return int(self.pixels.nbytes)

    def tobytes(self) -> bytes:
        return self.pixels.tobytes()

    def pixel(self, x: int, y: int) -> Tuple[int, int, int, int]:
        r, g, b, a = self.pixels[y, x]
        return int(r), int(g), int(b), int(a)

    def set_pixel(self, x: int, y: int, rgba: Sequence[int]) -> None:
        self.pixels[y, x] = rgba

    def copy(self) -> RasterImage:
        return RasterImage(self.pixels.copy())

    def crop(self, box: BoundingBox) -> RasterImage:
        if not box.fits(self.width, self.height):
            raise ValueError(f"{box} lies outside a {self.width}x{self.height} image.")
        region = self.pixels[box.min_y : box.max_y + 1, box.min_x : box.max_x + 1]
        return RasterImage(np.ascontiguousarray(region).copy())

    def shares_memory(self, other: RasterImage) -> bool:
        return bool(np.shares_memory(self.pixels, other.pixels))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RasterImage):
            return NotImplemented
        return np.array_equal(self.pixels, other.pixels)

    def __repr__(self) -> str:
        return f"RasterImage({self.width}x{self.height})"


@dataclass(eq=False)
class Mask:
    """
    Foreground coverage in ``[0, 1]``. May be coarser than the image it masks.
    """

    values: np.ndarray

    def __post_init__(self) -> None:
        values = np.asarray(self.values, dtype=np.float32)
        if values.ndim != 2 or values.size == 0:
            raise ValueError(f"Mask expects a non-empty 2D array, got shape {values.shape}.")
        values = np.nan_to_num(values, nan=0.0, posinf=1.0, neginf=0.0)
        self.values = np.ascontiguousarray(np.clip(values, 0.0, 1.0))

    @classmethod
    def from_uint8(cls, values: np.ndarray) -> Mask:
        return cls(np.asarray(values, dtype=np.float32) / 255.0)

    @classmethod
    def union(cls, masks: Iterable[Mask]) -> Mask:
        masks = list(masks)
        if not masks:
            raise ValueError("Cannot merge an empty set of masks.")
        height, width = masks[0].values.shape
        aligned: List[np.ndarray] = [
            mask.values if mask.size == (width, height) else mask.resample(width, height).values
            for mask in masks
        ]
        return cls(np.maximum.reduce(aligned))

    @property
    def width(self) -> int:
        return int(self.values.shape[1])

    @property
    def height(self) -> int:
        return int(self.values.shape[0])

    @property
    def size(self) -> Tuple[int, int]:
        return self.width, self.height

    def peak(self) -> float:
        return float(self.values.max())

    def resample(self, width: int, height: int) -> Mask:
        if width <= 0 or height <= 0:
            raise ValueError(f"Cannot resample a mask to {width}x{height}.")
        if (width, height) == self.size:
            return Mask(self.values.copy())

        tensor = torch.from_numpy(self.values.copy()).unsqueeze(0).unsqueeze(0)
        resized = F.interpolate(
            tensor,
            size=(height, width),
            mode="bilinear",
            align_corners=False,
        )[0, 0]
        resized = torch.nan_to_num(resized, nan=0.0, posinf=1.0, neginf=0.0).clamp(0, 1)
        return Mask(resized.numpy())

    def to_uint8(self) -> np.ndarray:
        return np.round(self.values * 255.0).astype(np.uint8)
