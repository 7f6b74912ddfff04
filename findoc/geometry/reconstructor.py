"""Line reconstruction from positioned glyph runs.

Places every glyph run on its page, groups runs whose vertical centres
agree into lines, and records which character range of each line came
from which box so later stages can report where a value was found.
"""

import math
import re
from dataclasses import dataclass, field

from findoc.utils.logger import get_logger
from findoc.utils.text import chunk_lines, normalise_whitespace

from .models import (
    BoundingBox,
    ExtractedTextContent,
    GlyphRun,
    LineGeometry,
    LineSegmentGeometry,
    PageContent,
    union_all,
)

logger = get_logger(__name__)

_WHITESPACE_OR_CONTROL = re.compile(r"[\s\x00-\x1f\x7f]+")


@dataclass
class _PlacedRun:
    text: str
    box: BoundingBox


@dataclass
class _RunGroup:
    runs: list[_PlacedRun] = field(default_factory=list)
    center_total: float = 0.0

    @property
    def center(self) -> float:
        return self.center_total / len(self.runs)

    def add(self, placed: _PlacedRun) -> None:
        self.runs.append(placed)
        self.center_total += placed.box.center_y


def compose_transform(
    m1: tuple[float, ...], m2: tuple[float, ...]
) -> tuple[float, float, float, float, float, float]:
    """Multiply two affine text matrices, applying ``m2`` first."""
    return (
        m1[0] * m2[0] + m1[2] * m2[1],
        m1[1] * m2[0] + m1[3] * m2[1],
        m1[0] * m2[2] + m1[2] * m2[3],
        m1[1] * m2[2] + m1[3] * m2[3],
        m1[0] * m2[4] + m1[2] * m2[5] + m1[4],
        m1[1] * m2[4] + m1[3] * m2[5] + m1[5],
    )


def _valid_transform(transform) -> bool:
    if transform is None or len(transform) != 6:
        return False
    return all(
        isinstance(v, int | float) and not isinstance(v, bool) and math.isfinite(v)
        for v in transform
    )


def clean_run_text(text: str) -> str:
    """Collapse whitespace and control characters into single spaces."""
    return _WHITESPACE_OR_CONTROL.sub(" ", text)


class GeometryReconstructor:
    """Rebuilds ordered text lines and their geometry from page glyph runs.

    Args:
        line_tolerance: Maximum distance between a run's vertical centre
            and a line's running average centre for the run to join it.
    """

    def __init__(self, line_tolerance: float = 4.0) -> None:
        self.line_tolerance = line_tolerance

    def reconstruct(self, pages: list[PageContent]) -> ExtractedTextContent:
        """Reconstruct lines for every page, numbering lines globally.

        Args:
            pages: Page contents; processed in ascending page number.

        Returns:
            Joined text, lines, and index-aligned line geometry.
        """
        lines: list[str] = []
        geometry: list[LineGeometry] = []

        for page in sorted(pages, key=lambda p: p.page_number):
            placed = [p for p in (self._place_run(run, page) for run in page.runs) if p]
            groups = self._group_runs(placed)
            for group in sorted(groups, key=lambda g: g.center):
                line = self._build_line(group, len(geometry), page.page_number)
                if line is None:
                    continue
                lines.append(line.text)
                geometry.append(line)

        logger.info(
            "Reconstructed %d lines from %d pages", len(lines), len(pages)
        )
        return ExtractedTextContent(
            text="\n".join(lines), lines=lines, geometry=geometry
        )

    def _place_run(self, run: GlyphRun, page: PageContent) -> _PlacedRun | None:
        """Compute a run's box in page space, or ``None`` if it is unusable."""
        if not run.text or not run.text.strip():
            return None
        if not _valid_transform(run.transform):
            logger.debug("Skipping glyph run with malformed transform: %r", run.text)
            return None
        if not isinstance(run.width, int | float) or not math.isfinite(run.width):
            logger.debug("Skipping glyph run with invalid width: %r", run.text)
            return None

        viewport = (page.scale, 0.0, 0.0, page.scale, 0.0, 0.0)
        tx = compose_transform(viewport, tuple(run.transform))
        font_height = math.hypot(tx[1], tx[3])
        box = BoundingBox(
            page=page.page_number,
            left=tx[4],
            top=page.viewport_height - tx[5] - font_height,
            width=page.scale * run.width,
            height=font_height,
        )
        return _PlacedRun(text=run.text, box=box)

    def _group_runs(self, placed: list[_PlacedRun]) -> list[_RunGroup]:
        groups: list[_RunGroup] = []
        for run in placed:
            center = run.box.center_y
            target = next(
                (g for g in groups if abs(g.center - center) <= self.line_tolerance),
                None,
            )
            if target is None:
                target = _RunGroup()
                groups.append(target)
            target.add(run)
        return groups

    def _build_line(
        self, group: _RunGroup, line_index: int, page_number: int
    ) -> LineGeometry | None:
        """Join a group's runs left to right and trim the result.

        Args:
            group: Runs sharing a vertical centre.
            line_index: Global index to assign to the line.
            page_number: Page the runs came from.

        Returns:
            The line geometry, or ``None`` when the group holds no text.
        """
        raw = ""
        spans: list[tuple[int, int, BoundingBox]] = []
        for run in sorted(group.runs, key=lambda r: r.box.left):
            text = clean_run_text(run.text)
            if raw and not raw.endswith(" ") and not text.startswith(" "):
                raw += " "
            elif raw.endswith(" ") and text.startswith(" "):
                text = text[1:]
            spans.append((len(raw), len(raw) + len(text), run.box))
            raw += text

        start = len(raw) - len(raw.lstrip())
        end = len(raw.rstrip())
        if end <= start:
            return None

        segments: list[LineSegmentGeometry] = []
        for seg_start, seg_end, box in spans:
            if seg_end <= start or seg_start >= end:
                continue
            clipped_start = max(seg_start, start) - start
            clipped_end = min(seg_end, end) - start
            if clipped_end > clipped_start:
                segments.append(LineSegmentGeometry(clipped_start, clipped_end, box))

        return LineGeometry(
            line_index=line_index,
            text=raw[start:end],
            page_number=page_number,
            segments=segments,
            bounds=union_all([s.box for s in segments]),
        )


def content_from_text(text: str) -> ExtractedTextContent:
    """Build degenerate content for sources without positional data.

    Each line gets a geometry entry with no segments and no bounds, so
    geometric rules report that nothing was located.
    """
    lines = chunk_lines(normalise_whitespace(text))
    return content_from_lines(lines)


def content_from_lines(lines: list[str]) -> ExtractedTextContent:
    geometry = [LineGeometry(line_index=i, text=line) for i, line in enumerate(lines)]
    return ExtractedTextContent(
        text="\n".join(lines), lines=list(lines), geometry=geometry
    )
