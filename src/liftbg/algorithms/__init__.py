from .base import SegmentationModel
from .isnet import ISNetSegmentation
from .onnx_base import ONNXSegmentationModel, build_providers
from .rmbg import RMBG14Segmentation
from .u2net import (
    U2NETSegmentation,
    U2NETPSegmentation,
    U2NETHumanSegmentation,
)

__all__ = [
    "SegmentationModel",
    "ONNXSegmentationModel",
    "build_providers",
    "U2NETSegmentation",
    "U2NETPSegmentation",
    "U2NETHumanSegmentation",
    "ISNetSegmentation",
    "RMBG14Segmentation",
]
