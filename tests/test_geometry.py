import pytest

from atlas_splitter.errors import InvalidDimensions
from atlas_splitter.geometry import Rect, intersect, overlaps, to_local


@pytest.mark.parametrize(
    "a, b, expected",
    [
        # one-pixel corner overlap
        (Rect(0, 0, 2, 2), Rect(1, 1, 2, 2), Rect(1, 1, 1, 1)),
        # b fully inside a
        (Rect(0, 0, 10, 10), Rect(2, 3, 4, 5), Rect(2, 3, 4, 5)),
        # partial overlap along x only
        (Rect(0, 0, 4, 4), Rect(2, 0, 4, 4), Rect(2, 0, 2, 4)),
        # touching edges do not overlap
        (Rect(0, 0, 2, 2), Rect(2, 0, 2, 2), None),
        (Rect(0, 0, 2, 2), Rect(0, 2, 2, 2), None),
        # apart
        (Rect(0, 0, 2, 2), Rect(5, 5, 1, 1), None),
        # zero-area rects never overlap
        (Rect(0, 0, 4, 4), Rect(1, 1, 0, 2), None),
    ],
)
def test_intersect(a: Rect, b: Rect, expected) -> None:
    assert intersect(a, b) == expected
    assert intersect(b, a) == expected
    assert overlaps(a, b) == (expected is not None)


def test_rect_bounds() -> None:
    rect = Rect(3, 4, 5, 6)
    assert (rect.x_max, rect.y_max, rect.area) == (8, 10, 30)
    assert Rect.from_min_max(3, 4, 8, 10) == rect


def test_to_local() -> None:
    overlap = Rect(5, 6, 2, 2)
    assert to_local(overlap, Rect(4, 4, 10, 10)) == Rect(1, 2, 2, 2)
    assert to_local(overlap, Rect(5, 6, 2, 2)) == Rect(0, 0, 2, 2)


@pytest.mark.parametrize("width, height", [(-1, 2), (2, -1)])
def test_negative_size_rejected(width: int, height: int) -> None:
    with pytest.raises(InvalidDimensions):
        Rect(0, 0, width, height)
