from __future__ import annotations

import logging
import os
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Union

from .access import ScopedResource, as_resource, scoped_access
from .algorithms.base import SegmentationModel
from .algorithms.isnet import ISNetSegmentation
from .algorithms.onnx_base import ONNXSegmentationModel, build_providers
from .algorithms.rmbg import RMBG14Segmentation
from .algorithms.u2net import (
    U2NETSegmentation,
    U2NETPSegmentation,
    U2NETHumanSegmentation,
)
from .codec import decode_image
from .compositor import composite
from .errors import SegmentationError
from .raster import RasterImage
from .trimmer import trim

logger = logging.getLogger(__name__)


MODEL_REGISTRY: Dict[str, type[ONNXSegmentationModel]] = {
    "u2net": U2NETSegmentation,
    "u2netp": U2NETPSegmentation,
    "u2net-human": U2NETHumanSegmentation,
    "isnet": ISNetSegmentation,
    "rmbg14": RMBG14Segmentation,
}


def default_weights_dir() -> Path:
    return Path(os.environ.get("LIFTBG_HOME", "~/.cache/liftbg")).expanduser()


@dataclass
class RemoverConfig:
    model_name: str = "isnet"
    weights_dir: Path = field(default_factory=default_weights_dir)
    device: str = "cpu"
    use_tensorrt: bool = False
    instance_threshold: float = 0.5
    trim_workers: int = 1

    def __post_init__(self) -> None:
        if self.model_name not in MODEL_REGISTRY:
            raise ValueError(f"Unknown model '{self.model_name}'. Choices: {list(MODEL_REGISTRY)}")
        if not 0.0 <= self.instance_threshold <= 1.0:
            raise ValueError("instance_threshold must lie in [0, 1].")
        self.weights_dir = Path(self.weights_dir).expanduser()
        self.trim_workers = max(1, int(self.trim_workers))

    def onnx_providers(self) -> List[str]:
        return [name for name, _ in build_providers(self.device, tensorrt=self.use_tensorrt)]


@dataclass(eq=False)
class ProcessingResult:
    original: RasterImage
    processed: RasterImage
    elapsed: float = 0.0


class BackgroundRemover:
    """
    Synchronous pipeline: scoped access, decode, segment, composite, trim.
    """

    def __init__(
        self,
        config: Optional[RemoverConfig] = None,
        model: Optional[SegmentationModel] = None,
    ) -> None:
        self.config = config or RemoverConfig()
        self._model = model

    @property
    def model(self) -> SegmentationModel:
        # Weights are fetched on first use so constructing a remover stays cheap.
        if self._model is None:
            name = self.config.model_name
            try:
                self._model = MODEL_REGISTRY[name](
                    self.config.weights_dir,
                    device=self.config.device,
                    use_tensorrt=self.config.use_tensorrt,
                    instance_threshold=self.config.instance_threshold,
                )
            except Exception as exc:
                raise SegmentationError(f"Could not load segmentation model {name}: {exc}") from exc
        return self._model

    def remove_background(self, image: RasterImage) -> RasterImage:
        return self._lift(self.model, image)

    def _lift(self, model: SegmentationModel, image: RasterImage) -> RasterImage:
        mask = model.segment(image.copy())
        composed = composite(image, mask)
        return trim(composed, workers=self.config.trim_workers)

    def run(self, source: Union[str, Path, ScopedResource]) -> ProcessingResult:
        resource = as_resource(source)
        start = time.perf_counter()
        # Weight downloads happen before the source is acquired.
        model = self.model
        with scoped_access(resource) as path:
            original = decode_image(path)
            processed = self._lift(model, original)

        elapsed = time.perf_counter() - start
        logger.info(
            "Processed %s: %dx%d -> %dx%d in %.3fs",
            resource.path,
            original.width,
            original.height,
            processed.width,
            processed.height,
            elapsed,
        )
        return ProcessingResult(
            original=original.copy(),
            processed=processed.copy(),
            elapsed=elapsed,
        )
