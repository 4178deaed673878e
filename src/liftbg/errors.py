from __future__ import annotations

__all__ = [
    "LiftError",
    "DecodeError",
    "SegmentationError",
    "CompositeError",
    "TrimError",
    "EncodeError",
    "WriteError",
    "ProcessorBusyError",
]


class LiftError(Exception):
    """
    Base class for every error raised by the background removal pipeline.
    """


class DecodeError(LiftError):
    """The source could not be read or is not a supported raster format."""


class SegmentationError(LiftError):
    """No foreground subject was detected, or the detector itself failed."""


class CompositeError(LiftError):
    """Image and mask could not be blended (size mismatch, allocation failure)."""


class TrimError(LiftError):
    """Reserved. Trimming a fully transparent image is not an error."""


class EncodeError(LiftError):
    pass


class WriteError(LiftError):
    pass


class ProcessorBusyError(LiftError):
    pass
