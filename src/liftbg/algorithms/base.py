from __future__ import annotations

import abc
import logging
from typing import ClassVar, List

from ..errors import SegmentationError
from ..raster import Mask, RasterImage

logger = logging.getLogger(__name__)


class SegmentationModel(abc.ABC):
    """
    Abstract base class for foreground segmentation backends.

    Subclasses only have to report the instance masks they detect, at whatever
    resolution the detector works in. ``segment`` merges and resamples them.
    """

    MODEL_NAME: ClassVar[str] = "abstract"

    @abc.abstractmethod
    def predict_instances(self, image: RasterImage) -> List[Mask]:
        ...

    def segment(self, image: RasterImage) -> Mask:
        try:
            instances = self.predict_instances(image)
        except SegmentationError:
            raise
        except Exception as exc:
            raise SegmentationError(
                f"{self.MODEL_NAME} failed while segmenting {image!r}: {exc}"
            ) from exc

        if not instances:
            raise SegmentationError("No foreground subject detected in the image.")

        merged = Mask.union(instances)
        logger.debug(
            "%s found %d instance(s) at %dx%d; resampling to %dx%d",
            self.MODEL_NAME,
            len(instances),
            merged.width,
            merged.height,
            image.width,
            image.height,
        )
        return merged.resample(image.width, image.height)
