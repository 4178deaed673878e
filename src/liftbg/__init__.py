"""
Background removal with automatic crop to the subject.

A segmentation model masks the foreground, the mask is blended against a
transparent background, and the result is trimmed to its visible pixels.
"""

from .errors import (
    CompositeError,
    DecodeError,
    EncodeError,
    LiftError,
    ProcessorBusyError,
    SegmentationError,
    TrimError,
    WriteError,
)
from .orchestrator import Failed, Finished, Idle, ImageProcessor, Processing
from .pipeline import BackgroundRemover, ProcessingResult, RemoverConfig
from .raster import BoundingBox, Mask, RasterImage

__all__ = [
    "BackgroundRemover",
    "BoundingBox",
    "CompositeError",
    "DecodeError",
    "EncodeError",
    "Failed",
    "Finished",
    "Idle",
    "ImageProcessor",
    "LiftError",
    "Mask",
    "Processing",
    "ProcessingResult",
    "ProcessorBusyError",
    "RasterImage",
    "RemoverConfig",
    "SegmentationError",
    "TrimError",
    "WriteError",
]
