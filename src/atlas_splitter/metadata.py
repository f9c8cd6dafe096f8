import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Tuple

import numpy as np

from .errors import DuplicateSpriteName, InvalidDimensions, MetadataError
from .geometry import Rect

logger = logging.getLogger(__name__)

DUPLICATE_POLICIES = ("error", "overwrite", "rename")
ORIGINS = ("top-left", "bottom-left")


@dataclass(frozen=True)
class SpriteRect:
    name: str
    x: int
    y: int
    width: int
    height: int

    def __post_init__(self):
        if self.width < 0 or self.height < 0:
            raise InvalidDimensions(
                f"Sprite '{self.name}' has negative size {self.width}x{self.height}"
            )

    @property
    def rect(self) -> Rect:
        return Rect(self.x, self.y, self.width, self.height)


def build_sprite_table(
    sprites: Iterable[SpriteRect],
    duplicate_policy: str = "error",
) -> Dict[str, SpriteRect]:
    """Key sprites by name, keeping insertion order.

    With "overwrite" a repeated name replaces the earlier rect but keeps the
    earlier position; with "rename" the repeat gets a numeric suffix.
    """
    if duplicate_policy not in DUPLICATE_POLICIES:
        raise ValueError(f"Unknown duplicate policy: {duplicate_policy}")

    table: Dict[str, SpriteRect] = {}
    for sprite in sprites:
        if sprite.name not in table:
            table[sprite.name] = sprite
            continue

        if duplicate_policy == "error":
            raise DuplicateSpriteName(sprite.name)
        if duplicate_policy == "overwrite":
            logger.warning(f"Sprite '{sprite.name}' defined twice, keeping the later rect")
            table[sprite.name] = sprite
        else:
            suffix = 1
            while f"{sprite.name}_{suffix}" in table:
                suffix += 1
            new_name = f"{sprite.name}_{suffix}"
            logger.warning(f"Sprite '{sprite.name}' defined twice, renamed to '{new_name}'")
            table[new_name] = SpriteRect(new_name, sprite.x, sprite.y, sprite.width, sprite.height)
    return table


def _flip_origin(sprite: SpriteRect, atlas_height: int) -> SpriteRect:
    return SpriteRect(
        sprite.name,
        sprite.x,
        atlas_height - sprite.y - sprite.height,
        sprite.width,
        sprite.height,
    )


def _parse_entries(data) -> List[SpriteRect]:
    if isinstance(data, dict) and "frames" in data:
        frames = data["frames"]
        if isinstance(frames, dict):
            items = list(frames.items())
        else:
            items = [(entry["filename"], entry) for entry in frames]
        return [
            SpriteRect(
                str(name),
                int(entry["frame"]["x"]),
                int(entry["frame"]["y"]),
                int(entry["frame"]["w"]),
                int(entry["frame"]["h"]),
            )
            for name, entry in items
        ]

    if isinstance(data, dict):
        data = data.get("sprites", [])
    return [
        SpriteRect(
            str(entry["name"]),
            int(entry["x"]),
            int(entry["y"]),
            int(entry["width"]),
            int(entry["height"]),
        )
        for entry in data
    ]


def load_manifest(
    path: str,
    atlas_height: int,
    origin: str = "top-left",
    duplicate_policy: str = "error",
) -> Dict[str, SpriteRect]:
    """Load sprite rects from a JSON manifest.

    Accepts {"sprites": [...]}, a bare list of sprite objects, or a
    TexturePacker-style "frames" hash/array.
    """
    manifest_path = Path(path)
    if not manifest_path.exists():
        raise MetadataError(f"Sprite manifest not found: {path}")

    try:
        with open(manifest_path) as f:
            data = json.load(f)
        sprites = _parse_entries(data)
    except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
        raise MetadataError(f"Malformed sprite manifest {path}: {e}") from e

    if origin == "bottom-left":
        sprites = [_flip_origin(s, atlas_height) for s in sprites]
    elif origin != "top-left":
        raise ValueError(f"Unknown origin: {origin}")

    logger.debug(f"Loaded {len(sprites)} sprite rects from {path}")
    return build_sprite_table(sprites, duplicate_policy)


def grid_rects(
    image: np.ndarray,
    grid_size: Tuple[int, int],
    prefix: str = "sprite",
) -> Dict[str, SpriteRect]:
    """Slice the atlas into grid cells, skipping cells with no visible pixels"""
    height, width = image.shape[:2]
    grid_w, grid_h = grid_size

    sprites = {}
    for y in range(0, height - grid_h + 1, grid_h):
        for x in range(0, width - grid_w + 1, grid_w):
            cell = image[y:y+grid_h, x:x+grid_w]
            if len(image.shape) > 2 and image.shape[2] == 4:  # BGRA
                visible = np.any(cell[:, :, 3] > 0)
            else:
                visible = np.any(cell > 0)
            if visible:
                name = f"{prefix}_{len(sprites)}"
                sprites[name] = SpriteRect(name, x, y, grid_w, grid_h)
    return sprites
