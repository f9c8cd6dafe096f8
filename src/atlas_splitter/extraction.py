import logging
from typing import Callable, Dict, List, Mapping, Optional, Tuple

import cv2
import numpy as np

from .errors import OutOfBounds, SpriteExportError
from .geometry import Rect
from .metadata import SpriteRect

logger = logging.getLogger(__name__)


SUPPORTED_DEPTHS = (np.uint8, np.uint16)


def to_bgra(image: np.ndarray) -> np.ndarray:
    """Normalize a decoded image to 4-channel BGRA, keeping its 8 or 16-bit depth"""
    if image.dtype not in SUPPORTED_DEPTHS:
        raise ValueError(f"Unsupported image depth: {image.dtype}")
    if len(image.shape) == 2:  # Grayscale
        return cv2.cvtColor(image, cv2.COLOR_GRAY2BGRA)
    if image.shape[2] == 4:
        return image
    if image.shape[2] == 3:  # BGR
        return cv2.cvtColor(image, cv2.COLOR_BGR2BGRA)
    raise ValueError(f"Unsupported image format with {image.shape[2]} channels")


def extract(atlas: np.ndarray, rect: Rect, name: str = "") -> np.ndarray:
    """Crop rect out of the atlas as a standalone buffer indexed from (0, 0).

    Output pixel (x, y) equals atlas pixel (rect.x + x, rect.y + y). The
    result is a copy, so later writes never reach the atlas.
    """
    atlas_h, atlas_w = atlas.shape[:2]
    if rect.x < 0 or rect.y < 0 or rect.x_max > atlas_w or rect.y_max > atlas_h:
        raise OutOfBounds(name, rect, (atlas_w, atlas_h))

    return atlas[rect.y:rect.y_max, rect.x:rect.x_max].copy()


def extract_all(
    atlas: np.ndarray,
    sprites: Mapping[str, SpriteRect],
    advance: Optional[Callable[[], None]] = None,
) -> Tuple[Dict[str, np.ndarray], List[Tuple[str, SpriteExportError]]]:
    buffers = {}
    failures = []
    for name, sprite in sprites.items():
        try:
            buffers[name] = extract(atlas, sprite.rect, name)
        except OutOfBounds as e:
            logger.error(str(e))
            failures.append((name, e))
        if advance:
            advance()
    return buffers, failures
