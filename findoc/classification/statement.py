"""Bank statement heuristics and transaction row clustering.

Finds lines that look like transactions (a date and a money amount on
the same line), groups them by their token shape so repeating table
rows cluster together, and summarises balances and cash flow.
"""

import re
from dataclasses import dataclass, field
from datetime import date

from findoc.extraction.dates import MONTHS, infer_year
from findoc.extraction.money import MONEY_PATTERN, parse_money
from findoc.utils.config import ClassificationConfig
from findoc.utils.logger import get_logger

logger = get_logger(__name__)

_MONTH_ABBR = r"(Jan|Feb|Mar|Apr|May|Jun|Jul|Aug|Sep|Oct|Nov|Dec)"

DAY_MONTH_NAME = re.compile(
    r"\b(\d{1,2})\s+" + _MONTH_ABBR + r"[a-z]*\.?,?\s+(\d{2,4})\b", re.IGNORECASE
)
ISO_DATE = re.compile(r"\b(\d{4})-(\d{2})-(\d{2})\b")
NUMERIC_DATE = re.compile(r"\b(\d{1,2})[/.](\d{1,2})[/.](\d{2,4})\b")
DATE_PATTERNS = (DAY_MONTH_NAME, ISO_DATE, NUMERIC_DATE)

_SHAPE = re.compile(r"[A-Za-z0-9]+")
_TOKEN = re.compile(r"\S+")

FIELD_CANDIDATE_PATTERNS: dict[str, list[re.Pattern]] = {
    "bank_name": [re.compile(r"statement", re.IGNORECASE)],
    "account_number": [
        re.compile(r"sort\s*code", re.IGNORECASE),
        re.compile(r"account\s*number", re.IGNORECASE),
        re.compile(r"iban", re.IGNORECASE),
    ],
    "account_type": [re.compile(r"current|checking|savings", re.IGNORECASE)],
    "account_holder": [re.compile(r"account holder|name|customer", re.IGNORECASE)],
}


@dataclass
class ColumnHint:
    """Character span ``[start, end)`` a column occupies in sampled rows."""

    key: str
    start: int
    end: int


@dataclass
class RowCluster:
    """Transaction lines sharing one token-shape signature."""

    id: str
    first_line_index: int
    sample_lines: list[str]
    average_spacing: float
    column_hints: list[ColumnHint]
    line_count: int
    line_indexes: list[int] = field(default_factory=list)


@dataclass
class StatementSummary:
    """Statement-level figures and row clusters for reconciliation."""

    opening_balance: float | None = None
    closing_balance: float | None = None
    inflows: float = 0.0
    outflows: float = 0.0
    period_start: str | None = None
    period_end: str | None = None
    transaction_lines: list[int] = field(default_factory=list)
    clusters: list[RowCluster] = field(default_factory=list)
    field_candidates: dict[str, list[str]] = field(default_factory=dict)


def find_date(line: str) -> re.Match | None:
    """Earliest date match on a line across all recognised formats."""
    matches = [m for pattern in DATE_PATTERNS if (m := pattern.search(line))]
    if not matches:
        return None
    return min(matches, key=lambda m: m.start())


def date_to_iso(match: re.Match) -> str | None:
    """Convert a date match to ``YYYY-MM-DD``; ``None`` if not a real date."""
    if match.re is ISO_DATE:
        year, month, day = (int(g) for g in match.groups())
    elif match.re is DAY_MONTH_NAME:
        day = int(match.group(1))
        month = MONTHS[match.group(2).lower()]
        year = infer_year(match.group(3))
    else:
        day, month = int(match.group(1)), int(match.group(2))
        year = infer_year(match.group(3))
    try:
        return date(year, month, day).isoformat()
    except ValueError:
        return None


def is_transaction_line(line: str) -> bool:
    """True when a line holds a date and, outside it, a money amount."""
    found = find_date(line)
    if found is None:
        return False
    blanked = line[: found.start()] + " " * len(found.group(0)) + line[found.end() :]
    return MONEY_PATTERN.search(blanked) is not None


def row_signature(line: str) -> str:
    """Token count plus the shape of each token, e.g. ``3|x/x/x x x.x``."""
    tokens = line.split()
    return f"{len(tokens)}|" + " ".join(_SHAPE.sub("x", token) for token in tokens)


def last_money_value(line: str) -> float | None:
    matches = list(MONEY_PATTERN.finditer(line))
    if not matches:
        return None
    return parse_money(matches[-1].group(0))


def column_spans(line: str) -> dict[str, tuple[int, int]]:
    """Date, description and amount spans for one transaction row."""
    spans: dict[str, tuple[int, int]] = {}
    first = _TOKEN.search(line)
    if first is None:
        return spans

    date_end = first.start()
    date_match = find_date(line)
    if date_match is not None and date_match.start() == first.start():
        spans["date"] = date_match.span()
        date_end = date_match.end()

    amounts = [m for m in MONEY_PATTERN.finditer(line) if m.start() >= date_end]
    amount_start = len(line)
    if amounts:
        spans["amount"] = amounts[-1].span()
        amount_start = amounts[-1].start()

    middle = line[date_end:amount_start]
    if middle.strip():
        start = date_end + len(middle) - len(middle.lstrip())
        end = date_end + len(middle.rstrip())
        spans["description"] = (start, end)
    return spans


class StatementClassifier:
    """Clusters transaction rows and summarises a bank statement.

    Args:
        config: Number of sample rows used to derive column hints.
    """

    def __init__(self, config: ClassificationConfig | None = None) -> None:
        self.config = config or ClassificationConfig()

    def classify(self, lines: list[str]) -> StatementSummary:
        """Summarise a statement's lines.

        Args:
            lines: Document lines in reading order; indexes in the result
                refer to this list.

        Returns:
            Balances, cash flow, transaction period, row clusters and
            candidate lines for account details.
        """
        summary = StatementSummary(
            field_candidates={key: [] for key in FIELD_CANDIDATE_PATTERNS}
        )
        iso_dates: list[str] = []

        for index, line in enumerate(lines):
            text = line.strip()
            if not text:
                continue
            for key, patterns in FIELD_CANDIDATE_PATTERNS.items():
                if any(p.search(text) for p in patterns):
                    summary.field_candidates[key].append(text)

            if summary.opening_balance is None and re.search(
                r"opening\s+balance", text, re.IGNORECASE
            ):
                summary.opening_balance = last_money_value(text)
            if summary.closing_balance is None and re.search(
                r"closing\s+balance", text, re.IGNORECASE
            ):
                summary.closing_balance = last_money_value(text)

            if not is_transaction_line(text):
                continue
            summary.transaction_lines.append(index)
            iso = date_to_iso(find_date(text))
            if iso:
                iso_dates.append(iso)
            amount = last_money_value(text)
            if amount is None:
                continue
            if amount >= 0:
                summary.inflows += amount
            else:
                summary.outflows += -amount

        summary.inflows = round(summary.inflows, 2)
        summary.outflows = round(summary.outflows, 2)
        if iso_dates:
            iso_dates.sort()
            summary.period_start = iso_dates[0]
            summary.period_end = iso_dates[-1]

        summary.clusters = self.cluster_rows(lines, summary.transaction_lines)
        logger.info(
            "Statement classified: %d transaction lines in %d clusters",
            len(summary.transaction_lines),
            len(summary.clusters),
        )
        return summary

    def cluster_rows(
        self, lines: list[str], line_indexes: list[int] | None = None
    ) -> list[RowCluster]:
        """Group transaction lines by token-shape signature.

        Args:
            lines: Document lines.
            line_indexes: Lines to cluster. Defaults to every line that
                holds both a date and a money amount.

        Returns:
            Clusters ordered by the line where each first appears.
        """
        if line_indexes is None:
            line_indexes = [
                i for i, line in enumerate(lines) if is_transaction_line(line.strip())
            ]

        grouped: dict[str, list[int]] = {}
        for index in line_indexes:
            grouped.setdefault(row_signature(lines[index].strip()), []).append(index)

        clusters = []
        for number, members in enumerate(grouped.values(), start=1):
            limit = self.config.cluster_sample_rows
            samples = [lines[i].strip() for i in members[:limit]]
            gaps = [b - a for a, b in zip(members, members[1:])]
            clusters.append(
                RowCluster(
                    id=f"cluster-{number}",
                    first_line_index=members[0],
                    sample_lines=samples,
                    average_spacing=sum(gaps) / len(gaps) if gaps else 0.0,
                    column_hints=self.column_hints(samples),
                    line_count=len(members),
                    line_indexes=members,
                )
            )
        return clusters

    @staticmethod
    def column_hints(samples: list[str]) -> list[ColumnHint]:
        """Widest span seen for each column across sample rows."""
        merged: dict[str, list[int]] = {}
        for line in samples:
            for key, (start, end) in column_spans(line).items():
                if key in merged:
                    merged[key][0] = min(merged[key][0], start)
                    merged[key][1] = max(merged[key][1], end)
                else:
                    merged[key] = [start, end]
        order = ("date", "description", "amount")
        return [ColumnHint(key, *merged[key]) for key in order if key in merged]
