"""Positional data types shared by the geometry and extraction layers.

Boxes live in page coordinate space: origin at the top-left corner with
``top`` growing downwards.
"""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class BoundingBox:
    """Axis-aligned rectangle on a single page."""

    page: int | None
    left: float
    top: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.left + self.width

    @property
    def bottom(self) -> float:
        return self.top + self.height

    @property
    def center_y(self) -> float:
        return self.top + self.height / 2


@dataclass(frozen=True)
class GlyphRun:
    """A contiguous span of rendered characters sharing one transform.

    ``transform`` is the PDF text matrix ``(a, b, c, d, e, f)``: scale-x,
    skew-y, skew-x, scale-y, translate-x, translate-y, with the origin at
    the bottom-left of the page.
    """

    text: str
    transform: tuple[float, ...] | None
    width: float


@dataclass
class PageContent:
    """Glyph runs for one page plus the viewport used to place them."""

    page_number: int
    viewport_height: float
    runs: list[GlyphRun] = field(default_factory=list)
    scale: float = 1.0


@dataclass(frozen=True)
class LineSegmentGeometry:
    """Maps the half-open range ``[char_start, char_end)`` of a line to a box."""

    char_start: int
    char_end: int
    box: BoundingBox


@dataclass
class LineGeometry:
    """Reconstructed line text with the boxes of its glyph runs."""

    line_index: int
    text: str
    page_number: int | None = None
    segments: list[LineSegmentGeometry] = field(default_factory=list)
    bounds: BoundingBox | None = None


@dataclass
class ExtractedTextContent:
    """Full document text, its lines, and index-aligned line geometry."""

    text: str
    lines: list[str]
    geometry: list[LineGeometry]


def union_boxes(a: BoundingBox, b: BoundingBox) -> BoundingBox:
    """Return the smallest box enclosing both ``a`` and ``b``.

    The result keeps the page of ``a``.
    """
    left = min(a.left, b.left)
    top = min(a.top, b.top)
    right = max(a.right, b.right)
    bottom = max(a.bottom, b.bottom)
    return BoundingBox(a.page, left, top, right - left, bottom - top)


def union_all(boxes: list[BoundingBox]) -> BoundingBox | None:
    """Fold ``union_boxes`` over a list; ``None`` when the list is empty."""
    if not boxes:
        return None
    merged = boxes[0]
    for box in boxes[1:]:
        merged = union_boxes(merged, box)
    return merged


def boxes_intersect(a: BoundingBox, b: BoundingBox) -> bool:
    """True when the rectangles overlap with non-zero area on both axes."""
    return (
        a.left < b.right and a.right > b.left and a.top < b.bottom and a.bottom > b.top
    )
