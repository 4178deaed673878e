from __future__ import annotations

from .onnx_base import ONNXSegmentationModel

__all__ = [
    "U2NETSegmentation",
    "U2NETPSegmentation",
    "U2NETHumanSegmentation",
]

_RELEASES = "https://github.com/danielgatis/rembg/releases/download/v0.0.0/"


class U2NETSegmentation(ONNXSegmentationModel):
    MODEL_NAME = "u2net"
    WEIGHTS_URL = _RELEASES + "u2net.onnx"
    INPUT_SIZE = 320
    NORMALIZE_MEAN = (0.485, 0.456, 0.406)
    NORMALIZE_STD = (0.229, 0.224, 0.225)


class U2NETPSegmentation(U2NETSegmentation):
    MODEL_NAME = "u2netp"
    WEIGHTS_URL = _RELEASES + "u2netp.onnx"


class U2NETHumanSegmentation(U2NETSegmentation):
    MODEL_NAME = "u2net_human_seg"
    WEIGHTS_URL = _RELEASES + "u2net_human_seg.onnx"
