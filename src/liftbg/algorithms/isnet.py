from __future__ import annotations

from .onnx_base import ONNXSegmentationModel

__all__ = ["ISNetSegmentation"]


class ISNetSegmentation(ONNXSegmentationModel):
    MODEL_NAME = "isnet-general-use"
    WEIGHTS_URL = (
        "https://github.com/danielgatis/rembg/releases/download/v0.0.0/"
        "isnet-general-use.onnx"
    )
    INPUT_SIZE = 1024
    NORMALIZE_MEAN = (0.5, 0.5, 0.5)
    NORMALIZE_STD = (1.0, 1.0, 1.0)
