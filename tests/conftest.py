from __future__ import annotations

import threading
from pathlib import Path
from typing import List, Optional

import numpy as np
import pytest

from liftbg.algorithms.base import SegmentationModel
from liftbg.raster import Mask, RasterImage


class StaticSegmentation(SegmentationModel):
    """Returns pre-baked instance masks instead of running a detector."""

    MODEL_NAME = "static"

    def __init__(
        self,
        instances: Optional[List[Mask]] = None,
        error: Optional[Exception] = None,
        gate: Optional[threading.Event] = None,
    ) -> None:
        self.instances = instances or []
        self.error = error
        self.gate = gate
        self.seen: List[RasterImage] = []

    def predict_instances(self, image: RasterImage) -> List[Mask]:
        self.seen.append(image)
        if self.gate is not None:
            self.gate.wait(timeout=5)
        if self.error is not None:
            raise self.error
        return list(self.instances)


class CountingResource:
    def __init__(self, path: Path, needs_release: bool = True) -> None:
        self.path = path
        self.needs_release = needs_release
        self.starts = 0
        self.stops = 0

    def start_access(self) -> bool:
        self.starts += 1
        return self.needs_release

    def stop_access(self) -> None:
        self.stops += 1


def make_square_image(size: int = 100, start: int = 30, stop: int = 70) -> RasterImage:
    pixels = np.full((size, size, 4), 255, dtype=np.uint8)
    pixels[start : stop + 1, start : stop + 1] = (200, 40, 10, 255)
    return RasterImage(pixels)


def make_square_mask(size: int = 100, start: int = 30, stop: int = 70) -> Mask:
    values = np.zeros((size, size), dtype=np.float32)
    values[start : stop + 1, start : stop + 1] = 1.0
    return Mask(values)


@pytest.fixture
def square_image() -> RasterImage:
    return make_square_image()


@pytest.fixture
def square_mask() -> Mask:
    return make_square_mask()


@pytest.fixture
def square_png(tmp_path: Path, square_image: RasterImage) -> Path:
    path = tmp_path / "square.png"
    square_image.to_pil().save(path)
    return path

