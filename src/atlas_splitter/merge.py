"""Grouping of overlapping sprites into single output images.

Sprites are visited in insertion order. Each sprite that has not already been
absorbed leads a group; every other unabsorbed sprite whose rect overlaps the
leader's is absorbed as a follower and never exported on its own. Grouping
only looks at rects, so a sprite whose pixels could not be extracted still
shapes the groups it belongs to.

Overlap zones are blended 50/50 into the group buffer, after which the
leader's own pixels are copied over its full rect. Since every overlap zone
lies inside the leader's rect the blend never survives into the output: the
leader's pixels always win.
"""
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Set

import cv2
import numpy as np

from .errors import NoSpritesFound
from .geometry import Rect, intersect, to_local
from .metadata import SpriteRect

logger = logging.getLogger(__name__)

STRATEGIES = ("single-hop", "connected")


@dataclass
class MergeContext:
    """Per-run state; a fresh context means a fresh run"""
    consumed: Set[str] = field(default_factory=set)

    def consume(self, name: str):
        self.consumed.add(name)

    def is_consumed(self, name: str) -> bool:
        return name in self.consumed


@dataclass
class MergeGroup:
    leader: str
    rect: Rect
    followers: List[str] = field(default_factory=list)
    # Leader-local rects that get blended before the leader copy
    blended: List[Rect] = field(default_factory=list)
    pixels: Optional[np.ndarray] = None

    @property
    def names(self) -> List[str]:
        return [self.leader] + self.followers


def blend(a: np.ndarray, b: np.ndarray) -> np.ndarray:
    """50/50 linear blend of two equally sized buffers, rounded per channel"""
    return cv2.addWeighted(a, 0.5, b, 0.5, 0)


def _absorb(group: MergeGroup, follower: SpriteRect, context: MergeContext):
    overlap = intersect(group.rect, follower.rect)
    if overlap is not None:
        group.blended.append(to_local(overlap, group.rect))
    group.followers.append(follower.name)
    context.consume(follower.name)


def _single_hop_groups(sprites: Mapping[str, SpriteRect],
                       context: MergeContext) -> List[MergeGroup]:
    groups = []
    for name1, sprite1 in sprites.items():
        if context.is_consumed(name1):
            continue

        group = MergeGroup(leader=name1, rect=sprite1.rect)
        for name2, sprite2 in sprites.items():
            if name2 == name1 or context.is_consumed(name2):
                continue
            if intersect(sprite1.rect, sprite2.rect) is not None:
                _absorb(group, sprite2, context)
        groups.append(group)
    return groups


def _find(parent: Dict[str, str], name: str) -> str:
    while parent[name] != name:
        parent[name] = parent[parent[name]]
        name = parent[name]
    return name


def _connected_groups(sprites: Mapping[str, SpriteRect],
                      context: MergeContext) -> List[MergeGroup]:
    names = list(sprites)
    order = {name: i for i, name in enumerate(names)}
    parent = {name: name for name in names}
    for i, name1 in enumerate(names):
        for name2 in names[i + 1:]:
            if intersect(sprites[name1].rect, sprites[name2].rect) is not None:
                root1, root2 = _find(parent, name1), _find(parent, name2)
                if root1 != root2:
                    # The earlier sprite stays root so it leads the component
                    if order[root1] < order[root2]:
                        parent[root2] = root1
                    else:
                        parent[root1] = root2

    groups = []
    for name1 in names:
        if context.is_consumed(name1):
            continue

        group = MergeGroup(leader=name1, rect=sprites[name1].rect)
        for name2 in names:
            if name2 == name1 or context.is_consumed(name2):
                continue
            if _find(parent, name2) == _find(parent, name1):
                _absorb(group, sprites[name2], context)
        groups.append(group)
    return groups


def group_sprites(
    sprites: Mapping[str, SpriteRect],
    strategy: str = "single-hop",
    context: Optional[MergeContext] = None,
) -> List[MergeGroup]:
    """Partition sprites into overlap groups using their rects alone.

    "single-hop" only absorbs sprites that directly overlap the leader;
    "connected" absorbs whole connected components of the overlap graph.
    """
    if not sprites:
        raise NoSpritesFound("No sprites found to merge")
    if strategy not in STRATEGIES:
        raise ValueError(f"Unknown merge strategy: {strategy}")

    if context is None:
        context = MergeContext()

    if strategy == "connected":
        groups = _connected_groups(sprites, context)
    else:
        groups = _single_hop_groups(sprites, context)

    logger.info(f"Grouped {len(sprites)} sprites into {len(groups)} groups ({strategy})")
    return groups


def render_group(group: MergeGroup,
                 sprites: Mapping[str, SpriteRect],
                 buffers: Mapping[str, np.ndarray]) -> np.ndarray:
    """Fill the group's output buffer from the extracted pixels of its members"""
    leader_pixels = buffers[group.leader]
    # Unset pixels are transparent black, in the atlas's own bit depth
    pixels = np.zeros((group.rect.height, group.rect.width, 4), dtype=leader_pixels.dtype)

    for name in group.followers:
        follower = sprites[name]
        overlap = intersect(group.rect, follower.rect)
        if overlap is None:
            continue
        dst = to_local(overlap, group.rect)
        src = to_local(overlap, follower.rect)
        pixels[dst.y:dst.y_max, dst.x:dst.x_max] = blend(
            leader_pixels[dst.y:dst.y_max, dst.x:dst.x_max],
            buffers[name][src.y:src.y_max, src.x:src.x_max],
        )

    pixels[:group.rect.height, :group.rect.width] = leader_pixels
    if group.followers:
        logger.debug(
            f"Group '{group.leader}' absorbed {', '.join(group.followers)} "
            f"({len(group.blended)} blended zones overwritten by leader)"
        )
    group.pixels = pixels
    return pixels


def merge_sprites(
    sprites: Mapping[str, SpriteRect],
    buffers: Mapping[str, np.ndarray],
    strategy: str = "single-hop",
    context: Optional[MergeContext] = None,
) -> List[MergeGroup]:
    """Group sprites and render every group; every sprite needs a buffer"""
    groups = group_sprites(sprites, strategy, context)
    for group in groups:
        render_group(group, sprites, buffers)
    return groups
