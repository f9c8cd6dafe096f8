import logging
from pathlib import Path, PurePosixPath

import cv2
import numpy as np

from .errors import InvalidDimensions, InvalidSpriteName, SpriteExportError

logger = logging.getLogger(__name__)

FORMATS = ("png", "webp")
IMAGE_SUFFIXES = (".png", ".webp", ".jpg", ".jpeg", ".bmp", ".tga", ".gif")


class AtlasExporter:
    def __init__(self, output_dir: str, format: str = "png", create_dirs: bool = True):
        if format not in FORMATS:
            raise ValueError(f"Unsupported output format: {format}")
        self.output_dir = Path(output_dir)
        self.format = format
        self.create_dirs = create_dirs
        self._dir_ready = False

    def create_output_directory(self) -> Path:
        if self._dir_ready:
            return self.output_dir
        try:
            self.output_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.error(f"Failed to create directory {self.output_dir}: {e}")
            raise
        self._dir_ready = True
        return self.output_dir

    def path_for(self, name: str) -> Path:
        """Output path for a sprite name.

        Names may contain folders (TexturePacker "walk/01.png"), which stay
        below the output directory; an image extension on the name is dropped.
        """
        relative = PurePosixPath(name.replace("\\", "/"))
        if (not relative.parts or relative.is_absolute()
                or any(part in (".", "..") for part in relative.parts)):
            raise InvalidSpriteName(name)

        if relative.suffix.lower() in IMAGE_SUFFIXES:
            relative = relative.with_suffix("")
        return self.output_dir.joinpath(*relative.parts).with_name(f"{relative.name}.{self.format}")

    def export(self, name: str, pixels: np.ndarray) -> Path:
        """Encode one buffer and write it, replacing any file of the same name"""
        if pixels.size == 0 or pixels.shape[0] == 0 or pixels.shape[1] == 0:
            raise InvalidDimensions(
                f"Sprite '{name}' has zero-area output {pixels.shape[1]}x{pixels.shape[0]}"
            )

        path = self.path_for(name)
        if self.create_dirs:
            self.create_output_directory()
            if path.parent != self.output_dir:
                path.parent.mkdir(parents=True, exist_ok=True)

        if self.format == "png":
            params = [cv2.IMWRITE_PNG_COMPRESSION, 9]
        else:
            # WebP above 100 quality is lossless and keeps alpha exact
            params = [cv2.IMWRITE_WEBP_QUALITY, 101]
            if pixels.dtype == np.uint16:
                # WebP only stores 8 bits per channel
                pixels = (pixels >> 8).astype(np.uint8)

        try:
            written = cv2.imwrite(str(path), pixels, params)
        except cv2.error as e:
            raise SpriteExportError(f"Failed to encode {path}: {e}") from e
        if not written:
            raise SpriteExportError(f"Failed to write {path}")
        logger.debug(f"Wrote {path}")
        return path
