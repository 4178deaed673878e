from __future__ import annotations

from pathlib import Path

import numpy as np
import pytest

from conftest import CountingResource, StaticSegmentation, make_square_mask
from liftbg.codec import decode_image
from liftbg.errors import DecodeError, SegmentationError
from liftbg.pipeline import MODEL_REGISTRY, BackgroundRemover, RemoverConfig
from liftbg.raster import Mask


def test_end_to_end_square(square_png: Path, square_mask) -> None:
    remover = BackgroundRemover(model=StaticSegmentation([square_mask]))

    result = remover.run(square_png)

    assert result.processed.size == (41, 41)
    assert result.processed.pixels[:, :, 3].min() == 255
    assert result.original == decode_image(square_png)


def test_silhouette_pixels_only_survive(square_png: Path) -> None:
    values = np.zeros((100, 100), dtype=np.float32)
    values[40:61, 20:81] = 1.0
    values[30:40, 45:56] = 1.0
    remover = BackgroundRemover(model=StaticSegmentation([Mask(values)]))

    result = remover.run(square_png)

    assert result.processed.size == (61, 31)
    silhouette = values[30:61, 20:81] > 0
    alpha = result.processed.pixels[:, :, 3]
    assert not alpha[~silhouette].any()
    assert alpha[silhouette].min() == 255
    assert result.processed.width <= result.original.width
    assert result.processed.height <= result.original.height


def test_result_images_are_independent(square_png: Path, square_mask) -> None:
    result = BackgroundRemover(model=StaticSegmentation([square_mask])).run(square_png)
    before = result.original.copy()

    result.processed.pixels[...] = 0

    assert result.original == before
    assert not result.original.shares_memory(result.processed)


def test_access_released_once_on_success(tmp_path: Path, square_png: Path, square_mask) -> None:
    resource = CountingResource(square_png)

    BackgroundRemover(model=StaticSegmentation([square_mask])).run(resource)

    assert (resource.starts, resource.stops) == (1, 1)


def test_access_released_once_on_decode_failure(tmp_path: Path, square_mask) -> None:
    resource = CountingResource(tmp_path / "missing.png")

    with pytest.raises(DecodeError):
        BackgroundRemover(model=StaticSegmentation([square_mask])).run(resource)

    assert (resource.starts, resource.stops) == (1, 1)


def test_access_released_once_on_segmentation_failure(square_png: Path) -> None:
    resource = CountingResource(square_png)

    with pytest.raises(SegmentationError):
        BackgroundRemover(model=StaticSegmentation([])).run(resource)

    assert (resource.starts, resource.stops) == (1, 1)


def test_access_not_released_when_not_granted(square_png: Path, square_mask) -> None:
    resource = CountingResource(square_png, needs_release=False)

    BackgroundRemover(model=StaticSegmentation([square_mask])).run(resource)

    assert (resource.starts, resource.stops) == (1, 0)


def test_config_rejects_unknown_model() -> None:
    with pytest.raises(ValueError):
        RemoverConfig(model_name="nope")


def test_config_clamps_workers_and_reads_home(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.setenv("LIFTBG_HOME", str(tmp_path))

    config = RemoverConfig(trim_workers=0)

    assert config.trim_workers == 1
    assert config.weights_dir == tmp_path
    assert config.onnx_providers() == ["CPUExecutionProvider"]


def test_model_is_built_lazily_from_registry(monkeypatch, tmp_path: Path) -> None:
    built = []

    class Recorder(StaticSegmentation):
        def __init__(self, weights_root, device, use_tensorrt, instance_threshold):
            super().__init__([])
            built.append((weights_root, device, use_tensorrt, instance_threshold))

    monkeypatch.setitem(MODEL_REGISTRY, "isnet", Recorder)
    remover = BackgroundRemover(RemoverConfig(weights_dir=tmp_path, instance_threshold=0.3))

    assert built == []
    assert isinstance(remover.model, Recorder)
    assert built == [(tmp_path, "cpu", False, 0.3)]


def test_model_is_loaded_before_source_access(monkeypatch, tmp_path: Path, square_png: Path) -> None:
    resource = CountingResource(square_png)
    starts_at_load = []

    class Recorder(StaticSegmentation):
        def __init__(self, weights_root, device, use_tensorrt, instance_threshold):
            super().__init__([make_square_mask()])
            starts_at_load.append(resource.starts)

    monkeypatch.setitem(MODEL_REGISTRY, "isnet", Recorder)

    BackgroundRemover(RemoverConfig(weights_dir=tmp_path)).run(resource)

    assert starts_at_load == [0]
    assert (resource.starts, resource.stops) == (1, 1)


def test_model_load_failure_never_touches_source(monkeypatch, tmp_path: Path, square_png: Path) -> None:
    resource = CountingResource(square_png)

    class Unloadable(StaticSegmentation):
        def __init__(self, weights_root, device, use_tensorrt, instance_threshold):
            raise OSError("weights missing")

    monkeypatch.setitem(MODEL_REGISTRY, "isnet", Unloadable)

    with pytest.raises(SegmentationError):
        BackgroundRemover(RemoverConfig(weights_dir=tmp_path)).run(resource)

    assert resource.starts == 0
