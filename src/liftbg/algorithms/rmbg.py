from __future__ import annotations

from .onnx_base import ONNXSegmentationModel

__all__ = ["RMBG14Segmentation"]


class RMBG14Segmentation(ONNXSegmentationModel):
    MODEL_NAME = "rmbg-1.4"
    WEIGHTS_URL = "https://huggingface.co/briaai/RMBG-1.4/resolve/main/onnx/model.onnx"
    INPUT_SIZE = 1024
    NORMALIZE_MEAN = (0.5, 0.5, 0.5)
    NORMALIZE_STD = (1.0, 1.0, 1.0)
