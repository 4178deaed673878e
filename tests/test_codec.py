from __future__ import annotations

from pathlib import Path

import numpy as np
import pytest
from PIL import Image

from liftbg.codec import decode_image, encode_png, save_image
from liftbg.errors import DecodeError, WriteError
from liftbg.raster import RasterImage


def test_png_round_trip_is_lossless(tmp_path: Path) -> None:
    rng = np.random.default_rng(3)
    image = RasterImage(rng.integers(0, 256, size=(17, 23, 4), dtype=np.uint8))

    path = save_image(image, tmp_path / "nested" / "out.png")

    assert decode_image(path) == image


def test_encode_png_produces_png_bytes() -> None:
    payload = encode_png(RasterImage.blank(3, 3))

    assert payload.startswith(b"\x89PNG\r\n\x1a\n")


def test_decode_missing_file(tmp_path: Path) -> None:
    with pytest.raises(DecodeError):
        decode_image(tmp_path / "missing.png")


def test_decode_garbage(tmp_path: Path) -> None:
    path = tmp_path / "garbage.png"
    path.write_bytes(b"definitely not an image")

    with pytest.raises(DecodeError):
        decode_image(path)


def test_decode_jpeg_is_opaque(tmp_path: Path) -> None:
    path = tmp_path / "photo.jpg"
    Image.new("RGB", (8, 5), (120, 60, 30)).save(path)

    image = decode_image(path)

    assert image.size == (8, 5)
    assert image.pixels[:, :, 3].min() == 255


def test_write_error_when_parent_is_a_file(tmp_path: Path) -> None:
    blocker = tmp_path / "blocker"
    blocker.write_text("x")

    with pytest.raises(WriteError):
        save_image(RasterImage.blank(2, 2), blocker / "out.png")


def test_sixteen_bit_grayscale_keeps_its_tone(tmp_path: Path) -> None:
    path = tmp_path / "deep.png"
    Image.fromarray(np.full((4, 4), 30000, dtype=np.uint16)).save(path)

    image = decode_image(path)

    assert image.size == (4, 4)
    assert image.pixel(2, 1) == (117, 117, 117, 255)


def test_oversized_image_is_a_decode_error(tmp_path: Path, monkeypatch) -> None:
    path = tmp_path / "huge.png"
    Image.new("RGB", (8, 8)).save(path)
    monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 10)

    with pytest.raises(DecodeError):
        decode_image(path)
