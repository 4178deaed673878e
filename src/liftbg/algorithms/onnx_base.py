from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, ClassVar, Dict, List, Optional, Sequence, Tuple

import numpy as np
import onnxruntime as ort
import torch
from torchvision import transforms

from ..errors import SegmentationError
from ..raster import Mask, RasterImage
from ..utils.downloads import download_file, sha256_file
from .base import SegmentationModel

logger = logging.getLogger(__name__)

Provider = Tuple[str, Dict[str, Any]]


def build_providers(device: str, *, tensorrt: bool = False) -> List[Provider]:
    """
    Translate a ``cpu`` / ``cuda:N`` device string into onnxruntime providers.
    """
    parsed = torch.device(device)
    cpu: Provider = ("CPUExecutionProvider", {})
    if parsed.type == "cpu":
        return [cpu]
    if parsed.type != "cuda":
        raise ValueError(f"Unsupported device '{device}'. Use 'cpu' or 'cuda:N'.")

    device_id = parsed.index if parsed.index is not None else 0
    cuda_options = {
        "device_id": device_id,
        "arena_extend_strategy": "kNextPowerOfTwo",
        "cudnn_conv_use_max_workspace": "1",
        "do_copy_in_default_stream": "1",
    }
    providers: List[Provider] = [("CUDAExecutionProvider", cuda_options), cpu]

    if tensorrt:
        trt_options = {
            "device_id": device_id,
            "trt_fp16_enable": "True",
            "trt_max_workspace_size": str(1 << 30),
        }
        providers.insert(0, ("TensorrtExecutionProvider", trt_options))

    return providers


class ONNXSegmentationModel(SegmentationModel):
    """
    Salient-object segmentation backed by an ONNXRuntime session.

    Each output channel whose peak probability reaches ``instance_threshold``
    counts as one detected foreground instance.
    """

    WEIGHTS_URL: ClassVar[Optional[str]] = None
    WEIGHTS_SHA256: ClassVar[Optional[str]] = None
    WEIGHTS_EXTENSION: ClassVar[str] = ".onnx"
    INPUT_SIZE: ClassVar[int] = 1024
    NORMALIZE_MEAN: ClassVar[Tuple[float, float, float]] = (0.5, 0.5, 0.5)
    NORMALIZE_STD: ClassVar[Tuple[float, float, float]] = (1.0, 1.0, 1.0)
    OUTPUT_SIGMOID: ClassVar[bool] = False
    STRETCH_OUTPUT: ClassVar[bool] = True

    def __init__(
        self,
        weights_root: Path,
        device: str = "cpu",
        use_tensorrt: bool = False,
        instance_threshold: float = 0.5,
        session: Optional[Any] = None,
    ) -> None:
        self.device = device
        self.use_tensorrt = use_tensorrt
        self.instance_threshold = instance_threshold
        self.session = session if session is not None else self._load(Path(weights_root))
        self.input_name: str = self.session.get_inputs()[0].name
        self.output_name: str = self.session.get_outputs()[0].name
        self.transform = transforms.Compose(
            [
                transforms.Resize(
                    (self.INPUT_SIZE, self.INPUT_SIZE),
                    interpolation=transforms.InterpolationMode.BILINEAR,
                ),
                transforms.ToTensor(),
                transforms.Normalize(mean=self.NORMALIZE_MEAN, std=self.NORMALIZE_STD),
            ]
        )

    @classmethod
    def weights_path(cls, root: Path) -> Path:
        return root / f"{cls.MODEL_NAME}{cls.WEIGHTS_EXTENSION}"

    @classmethod
    def ensure_weights(cls, root: Path) -> Path:
        path = cls.weights_path(root)
        if path.exists() and path.stat().st_size > 0:
            if not cls.WEIGHTS_SHA256 or sha256_file(path) == cls.WEIGHTS_SHA256.lower():
                return path
            logger.warning("Cached weights %s failed checksum; downloading again.", path)

        if not cls.WEIGHTS_URL:
            raise RuntimeError(f"No download source available for model '{cls.MODEL_NAME}'.")

        logger.info("Fetching %s weights into %s", cls.MODEL_NAME, root)
        return download_file(cls.WEIGHTS_URL, path, cls.WEIGHTS_SHA256)

    def _create_session(self, onnx_path: Path, providers: Sequence[Provider]) -> ort.InferenceSession:
        session_options = ort.SessionOptions()
        session_options.graph_optimization_level = ort.GraphOptimizationLevel.ORT_ENABLE_ALL
        return ort.InferenceSession(
            onnx_path.as_posix(),
            sess_options=session_options,
            providers=[name for name, _ in providers],
            provider_options=[options for _, options in providers],
        )

    def _load(self, root: Path) -> ort.InferenceSession:
        onnx_path = self.ensure_weights(root)
        providers = build_providers(self.device, tensorrt=self.use_tensorrt)

        try:
            session = self._create_session(onnx_path, providers)
        except Exception:
            if not self.use_tensorrt:
                raise
            logger.warning("TensorRT provider failed to initialize; retrying without TensorRT.")
            session = self._create_session(
                onnx_path, build_providers(self.device, tensorrt=False)
            )

        active = session.get_providers()
        if torch.device(self.device).type == "cuda" and "CUDAExecutionProvider" not in active:
            logger.warning(
                "onnxruntime did not initialize the CUDAExecutionProvider; running %s on CPU. "
                "Install `onnxruntime-gpu` to use the GPU.",
                self.MODEL_NAME,
            )
        if self.use_tensorrt and "TensorrtExecutionProvider" not in active:
            logger.warning(
                "TensorRT Execution Provider requested but not available; falling back to CUDA."
            )
        logger.info("Loaded %s with providers %s", self.MODEL_NAME, active)
        return session

    def preprocess(self, image: RasterImage) -> np.ndarray:
        rgb = image.to_pil().convert("RGB")
        tensor = self.transform(rgb).unsqueeze(0)
        return tensor.numpy().astype(np.float32)

    def _channels(self, raw: np.ndarray) -> torch.Tensor:
        prediction = torch.from_numpy(np.asarray(raw, dtype=np.float32))
        if prediction.ndim == 4:
            prediction = prediction[0]
        elif prediction.ndim == 2:
            prediction = prediction.unsqueeze(0)
        elif prediction.ndim != 3:
            raise SegmentationError(
                f"{self.MODEL_NAME} returned an output of unexpected shape {tuple(prediction.shape)}."
            )
        if self.OUTPUT_SIGMOID:
            prediction = torch.sigmoid(prediction)
        return torch.nan_to_num(prediction, nan=0.0, posinf=1.0, neginf=0.0)

    def predict_instances(self, image: RasterImage) -> List[Mask]:
        inputs = {self.input_name: self.preprocess(image)}
        raw = self.session.run([self.output_name], inputs)[0]

        instances: List[Mask] = []
        for channel in self._channels(raw):
            peak = float(channel.max())
            if peak < self.instance_threshold:
                continue
            if self.STRETCH_OUTPUT:
                low = float(channel.min())
                if peak > low:
                    channel = (channel - low) / (peak - low)
            instances.append(Mask(channel.numpy()))

        logger.debug(
            "%s: %d instance(s) above threshold %.2f",
            self.MODEL_NAME,
            len(instances),
            self.instance_threshold,
        )
        return instances
