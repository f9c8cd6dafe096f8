import logging
from pathlib import Path
from typing import Optional, Protocol

import cv2
import numpy as np

from .errors import ReadabilityRequired
from .extraction import SUPPORTED_DEPTHS, to_bgra

logger = logging.getLogger(__name__)


class AtlasSource(Protocol):
    """Anything that can hand out atlas pixels once it has been made readable"""

    def ensure_readable(self) -> bool:
        ...

    @property
    def pixels(self) -> np.ndarray:
        ...


class ArrayAtlas:
    def __init__(self, image: Optional[np.ndarray]):
        self._image = image

    def ensure_readable(self) -> bool:
        return (
            self._image is not None
            and self._image.size > 0
            and self._image.dtype in SUPPORTED_DEPTHS
        )

    @property
    def pixels(self) -> np.ndarray:
        if not self.ensure_readable():
            raise ReadabilityRequired("Atlas array is empty or has an unsupported depth")
        return to_bgra(self._image)


class FileAtlas:
    """Atlas backed by an image file, decoded on first use"""

    def __init__(self, path: str):
        self.path = Path(path)
        self._image = None

    def ensure_readable(self) -> bool:
        if self._image is not None:
            return True
        if not self.path.exists():
            logger.error(f"Atlas image not found: {self.path}")
            return False

        image = cv2.imread(str(self.path), cv2.IMREAD_UNCHANGED)
        if image is None:
            logger.error(f"Failed to decode atlas image: {self.path}")
            return False

        try:
            self._image = to_bgra(image)
        except ValueError as e:
            logger.error(f"Cannot sample atlas image {self.path}: {e}")
            return False
        logger.debug(f"Loaded atlas {self.path} with shape {image.shape}")
        return True

    @property
    def pixels(self) -> np.ndarray:
        if not self.ensure_readable():
            raise ReadabilityRequired(f"Atlas is not readable: {self.path}")
        return self._image

    @property
    def height(self) -> int:
        return self.pixels.shape[0]
