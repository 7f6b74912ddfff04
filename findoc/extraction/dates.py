"""Date candidate extraction and role resolution.

Scans each line for numeric, textual and free-form dates, scores every
occurrence by the anchor phrases found on the same line, and picks the
strongest candidate for the pay date and the pay period boundaries.
Results are normalised to ``MM/YYYY``.
"""

import re
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import StrEnum
from typing import Protocol

import dateparser
from dateparser.search import search_dates

from findoc.utils.config import DateConfig
from findoc.utils.logger import get_logger
from findoc.utils.text import chunk_lines, clamp

logger = get_logger(__name__)


class AnchorTag(StrEnum):
    """Semantic role hinted at by a phrase on the same line as a date."""

    PAY_DATE = "payDate"
    PERIOD_START = "periodStart"
    PERIOD_END = "periodEnd"
    PERIOD = "period"
    GENERIC = "generic"


# (tag, weight, pattern); a line may match several entries.
ANCHORS: tuple[tuple[AnchorTag, float, re.Pattern], ...] = (
    (AnchorTag.PAY_DATE, 0.45, re.compile(r"pay\s*(date|day)", re.IGNORECASE)),
    (AnchorTag.PAY_DATE, 0.4, re.compile(r"payment\s*date", re.IGNORECASE)),
    (
        AnchorTag.PERIOD_START,
        0.35,
        re.compile(r"(period|pay)\s*start", re.IGNORECASE),
    ),
    (
        AnchorTag.PERIOD_END,
        0.35,
        re.compile(r"(period|pay)\s*(end|ending)", re.IGNORECASE),
    ),
    (AnchorTag.PERIOD, 0.25, re.compile(r"pay\s*period", re.IGNORECASE)),
    (AnchorTag.PERIOD, 0.25, re.compile(r"period\s*covered", re.IGNORECASE)),
    (AnchorTag.GENERIC, 0.1, re.compile(r"date[:\s]", re.IGNORECASE)),
    (
        AnchorTag.GENERIC,
        0.1,
        re.compile(r"(period|statement)\s*:?", re.IGNORECASE),
    ),
)

MONTHS: dict[str, int] = {
    "january": 1,
    "february": 2,
    "march": 3,
    "april": 4,
    "may": 5,
    "june": 6,
    "july": 7,
    "august": 8,
    "september": 9,
    "october": 10,
    "november": 11,
    "december": 12,
    "jan": 1,
    "feb": 2,
    "mar": 3,
    "apr": 4,
    "jun": 6,
    "jul": 7,
    "aug": 8,
    "sep": 9,
    "sept": 9,
    "oct": 10,
    "nov": 11,
    "dec": 12,
}

YEAR_FIRST = re.compile(r"(?<!\d)(\d{4})[/-](\d{1,2})[/-](\d{1,2})(?!\d)")
DAY_FIRST = re.compile(r"(?<!\d)(\d{1,2})[/-](\d{1,2})[/-](\d{2,4})(?!\d)")
TEXTUAL = re.compile(
    r"(\b(?:" + "|".join(MONTHS) + r")\b)"
    r"[\s-]*(?:(\d{1,2})(?!\d))?,?[\s-]*(\d{2,4})(?!\d)",
    re.IGNORECASE,
)


class DateResolver(Protocol):
    """Natural-language date capability."""

    def resolve(self, text: str, prefer_future: bool = True) -> datetime | None:
        """Resolve a whole string to a date, or ``None``."""

    def search(
        self, text: str, prefer_future: bool = True
    ) -> list[tuple[str, datetime]]:
        """Find every date expression in free text."""


class DateparserResolver:
    """Resolver backed by the ``dateparser`` library.

    Args:
        date_order: Field order for ambiguous numeric dates.
        languages: Languages to try when parsing month names.
    """

    def __init__(
        self, date_order: str = "DMY", languages: list[str] | None = None
    ) -> None:
        self.date_order = date_order
        self.languages = languages or ["en"]

    def _settings(self, prefer_future: bool) -> dict:
        return {
            "PREFER_DATES_FROM": "future" if prefer_future else "past",
            "DATE_ORDER": self.date_order,
            "RETURN_AS_TIMEZONE_AWARE": False,
        }

    def resolve(self, text: str, prefer_future: bool = True) -> datetime | None:
        if not text or not text.strip():
            return None
        return dateparser.parse(
            text.strip(),
            languages=self.languages,
            settings=self._settings(prefer_future),
        )

    def search(
        self, text: str, prefer_future: bool = True
    ) -> list[tuple[str, datetime]]:
        found = search_dates(
            text, languages=self.languages, settings=self._settings(prefer_future)
        )
        return list(found or [])


@dataclass
class DateCandidate:
    """One date occurrence with its line, anchor tags and score."""

    normalized: str
    raw: str
    date: date
    line_index: int
    tags: frozenset[AnchorTag]
    confidence: float
    source: str


@dataclass
class DateExtractionResult:
    """Resolved dates for each semantic role."""

    pay_date: str | None = None
    period_start: str | None = None
    period_end: str | None = None
    anchors: list[str] = field(default_factory=list)
    confidence: float = 0.0


def format_month_year(value: date) -> str:
    return f"{value.month:02d}/{value.year}"


def infer_year(raw: str, today: date | None = None) -> int:
    """Expand a two-digit year into the current century."""
    year = int(raw)
    if year < 100:
        today = today or date.today()
        return (today.year // 100) * 100 + year
    return year


def detect_anchors(line: str) -> frozenset[AnchorTag]:
    return frozenset(tag for tag, _, pattern in ANCHORS if pattern.search(line))


def score_anchors(tags: frozenset[AnchorTag]) -> float:
    """Sum the weight of every anchor table entry whose tag is present."""
    return sum(weight for tag, weight, _ in ANCHORS if tag in tags)


class DateCandidateExtractor:
    """Finds and ranks date candidates in document text.

    Args:
        config: Scoring and resolver settings.
        resolver: Natural-language date capability. Defaults to a
            ``dateparser`` resolver built from ``config``.
    """

    def __init__(
        self, config: DateConfig | None = None, resolver: DateResolver | None = None
    ) -> None:
        self.config = config or DateConfig()
        self.resolver = resolver or DateparserResolver(
            self.config.date_order, self.config.languages
        )
        self._base_confidence = {
            "regex": self.config.regex_confidence,
            "chrono": self.config.natural_confidence,
        }

    def extract(self, text: str) -> DateExtractionResult:
        """Resolve pay date and period boundaries from text.

        Args:
            text: Full document text; split into lines internally.

        Returns:
            Dates per role, the anchor tags that backed them, and the
            highest confidence among the selected candidates.
        """
        candidates = self.collect_candidates(chunk_lines(text))

        pay = (
            _pick(candidates, AnchorTag.PAY_DATE)
            or _pick(candidates, AnchorTag.PERIOD)
            or _pick(candidates, None)
        )
        start = _pick(candidates, AnchorTag.PERIOD_START) or _pick(
            candidates, AnchorTag.PERIOD
        )
        end = _pick(candidates, AnchorTag.PERIOD_END) or _pick(
            candidates, AnchorTag.PERIOD
        )

        selected = [c for c in (pay, start, end) if c is not None]
        anchors: list[str] = []
        for candidate in selected:
            for tag in sorted(candidate.tags):
                if tag.value not in anchors:
                    anchors.append(tag.value)

        result = DateExtractionResult(
            pay_date=pay.normalized if pay else None,
            period_start=start.normalized if start else None,
            period_end=end.normalized if end else None,
            anchors=anchors,
            confidence=max((c.confidence for c in selected), default=0.0),
        )
        logger.info(
            "Date extraction kept %d candidates (pay=%s, start=%s, end=%s)",
            len(candidates),
            result.pay_date,
            result.period_start,
            result.period_end,
        )
        return result

    def collect_candidates(self, lines: list[str]) -> list[DateCandidate]:
        """Generate and deduplicate candidates for every line.

        Candidates sharing normalised value, line and anchor count are
        collapsed to the most confident one.
        """
        unique: dict[tuple[str, int, int], DateCandidate] = {}
        for index, line in enumerate(lines):
            tags = detect_anchors(line)
            found = self._collect_regex(line, index, tags)
            found.extend(self._collect_natural(line, index, tags))
            for candidate in found:
                key = (
                    candidate.normalized,
                    candidate.line_index,
                    len(candidate.tags),
                )
                current = unique.get(key)
                if current is None or current.confidence < candidate.confidence:
                    unique[key] = candidate
        return list(unique.values())

    def _build(
        self,
        raw: str,
        line_index: int,
        month: int | None,
        day: int | None,
        year: int | None,
        tags: frozenset[AnchorTag],
        source: str,
    ) -> DateCandidate | None:
        if not month or not year:
            return None
        safe_day = day if day and day > 0 else 1
        try:
            value = date(year, month, safe_day)
        except ValueError:
            return None
        return DateCandidate(
            normalized=format_month_year(value),
            raw=raw,
            date=value,
            line_index=line_index,
            tags=tags,
            confidence=clamp(
                self._base_confidence[source] + score_anchors(tags), 0.0, 1.0
            ),
            source=source,
        )

    def _collect_regex(
        self, line: str, line_index: int, tags: frozenset[AnchorTag]
    ) -> list[DateCandidate]:
        parts: list[tuple[str, int | None, int | None, int]] = []

        for match in YEAR_FIRST.finditer(line):
            year, month, day = (int(g) for g in match.groups())
            parts.append((match.group(0), month, day, year))

        for match in DAY_FIRST.finditer(line):
            day, month = int(match.group(1)), int(match.group(2))
            parts.append((match.group(0), month, day, infer_year(match.group(3))))

        for match in TEXTUAL.finditer(line):
            month = MONTHS.get(match.group(1).lower())
            day = int(match.group(2)) if match.group(2) else 1
            parts.append((match.group(0), month, day, infer_year(match.group(3))))

        candidates = []
        for raw, month, day, year in parts:
            candidate = self._build(raw, line_index, month, day, year, tags, "regex")
            if candidate:
                candidates.append(candidate)
        return candidates

    def _collect_natural(
        self, line: str, line_index: int, tags: frozenset[AnchorTag]
    ) -> list[DateCandidate]:
        if not tags:
            return []
        results = []
        for raw, parsed in self.resolver.search(line, self.config.prefer_future):
            candidate = self._build(
                raw, line_index, parsed.month, parsed.day, parsed.year, tags, "chrono"
            )
            if candidate:
                results.append(candidate)
        return results


def _pick(
    candidates: list[DateCandidate], tag: AnchorTag | None
) -> DateCandidate | None:
    """Highest-confidence candidate carrying ``tag``; earlier lines win ties."""
    pool = [c for c in candidates if tag is None or tag in c.tags]
    if not pool:
        return None
    return min(pool, key=lambda c: (-c.confidence, c.line_index))
