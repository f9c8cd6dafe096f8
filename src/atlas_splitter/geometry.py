from dataclasses import dataclass
from typing import Optional, Tuple

from .errors import InvalidDimensions


@dataclass(frozen=True)
class Rect:
    x: int
    y: int
    width: int
    height: int

    def __post_init__(self):
        if self.width < 0 or self.height < 0:
            raise InvalidDimensions(
                f"Negative rectangle size: {self.width}x{self.height}"
            )

    @property
    def x_max(self) -> int:
        return self.x + self.width

    @property
    def y_max(self) -> int:
        return self.y + self.height

    @property
    def area(self) -> int:
        return self.width * self.height

    @classmethod
    def from_min_max(cls, x: int, y: int, x_max: int, y_max: int) -> "Rect":
        return cls(x, y, x_max - x, y_max - y)

    def as_tuple(self) -> Tuple[int, int, int, int]:
        return (self.x, self.y, self.width, self.height)


def intersect(a: Rect, b: Rect) -> Optional[Rect]:
    """Return the overlapping rectangle of a and b, or None when they only touch or are apart"""
    x = max(a.x, b.x)
    y = max(a.y, b.y)
    x_max = min(a.x_max, b.x_max)
    y_max = min(a.y_max, b.y_max)
    if x_max > x and y_max > y:
        return Rect.from_min_max(x, y, x_max, y_max)
    return None


def overlaps(a: Rect, b: Rect) -> bool:
    return intersect(a, b) is not None


def to_local(rect: Rect, origin: Rect) -> Rect:
    """Translate an atlas-space rectangle into the frame of origin"""
    return Rect(rect.x - origin.x, rect.y - origin.y, rect.width, rect.height)
