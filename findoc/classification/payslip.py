"""Payslip line bucketing.

Walks payslip lines top to bottom and sorts every line carrying money
values into earnings, deductions, totals, and their year-to-date
counterparts.
"""

import re
from dataclasses import dataclass, field

from findoc.extraction.dates import DateCandidateExtractor
from findoc.extraction.money import LINE_VALUE_TOKEN, collect_line_values
from findoc.utils.config import ClassificationConfig
from findoc.utils.logger import get_logger

logger = get_logger(__name__)

_YTD_SECTION = re.compile(r"year\s*to\s*date|ytd")
_CURRENT_SECTION = re.compile(r"this\s*period|current\s*period")
_EMPLOYER_LABEL = re.compile(r"employer[:\s]*", re.IGNORECASE)


@dataclass
class PayslipMetrics:
    """Bucketed payslip amounts keyed by normalised line label."""

    pay_date: str | None = None
    period_start: str | None = None
    period_end: str | None = None
    employer: str | None = None
    totals: dict[str, float] = field(default_factory=dict)
    totals_ytd: dict[str, float] = field(default_factory=dict)
    earnings: dict[str, float] = field(default_factory=dict)
    deductions: dict[str, float] = field(default_factory=dict)
    ytd_earnings: dict[str, float] = field(default_factory=dict)
    ytd_deductions: dict[str, float] = field(default_factory=dict)


def normalise_label(line: str) -> str:
    """Lowercase a line and reduce it to space-separated alphanumeric words."""
    return re.sub(r"[^a-z0-9]+", " ", line.lower()).strip()


def field_label(line: str) -> str:
    """Field key for a line: its words with the money tokens removed."""
    words = normalise_label(LINE_VALUE_TOKEN.sub(" ", line))
    return "_".join(words.split()) or "line"


class PayslipClassifier:
    """Sorts payslip lines into earnings, deductions and totals.

    A line mentioning "year to date" or "YTD" opens a YTD section and a
    line mentioning "this period" or "current period" closes it. Net and
    gross pay lines feed the totals: the first value is the current period
    and the last one, when there are several, the year to date.

    Args:
        config: Deduction keywords used to tell deductions from earnings.
        date_extractor: Resolves the pay date and pay period.
    """

    def __init__(
        self,
        config: ClassificationConfig | None = None,
        date_extractor: DateCandidateExtractor | None = None,
    ) -> None:
        self.config = config or ClassificationConfig()
        self.date_extractor = date_extractor or DateCandidateExtractor()
        self._deduction = re.compile(
            r"\b(?:"
            + "|".join(re.escape(k.lower()) for k in self.config.deduction_keywords)
            + r")\b"
        )

    def is_deduction(self, label: str) -> bool:
        return bool(self._deduction.search(label))

    def classify(self, lines: list[str]) -> PayslipMetrics:
        """Bucket payslip lines.

        Args:
            lines: Document lines in reading order.

        Returns:
            Period dates, employer name and the bucketed amounts.
        """
        lines = [line.strip() for line in lines if line.strip()]
        dates = self.date_extractor.extract("\n".join(lines))
        metrics = PayslipMetrics(
            pay_date=dates.pay_date,
            period_start=dates.period_start,
            period_end=dates.period_end,
        )

        in_ytd = False
        for line in lines:
            label = normalise_label(line)
            if _YTD_SECTION.search(label):
                in_ytd = True
            if _CURRENT_SECTION.search(label):
                in_ytd = False

            if "employer" in label and metrics.employer is None:
                employer = _EMPLOYER_LABEL.sub("", line, count=1).strip()
                metrics.employer = employer or None

            values = collect_line_values(line)
            if "net pay" in label:
                self._record_total(metrics, "net", values)
                continue
            if "gross" in label and "year" not in label:
                self._record_total(metrics, "gross", values)
                continue
            if not values:
                continue

            key = field_label(line)
            deduction = self.is_deduction(label)
            current = metrics.deductions if deduction else metrics.earnings
            ytd = metrics.ytd_deductions if deduction else metrics.ytd_earnings

            current[key] = values[0]
            if len(values) >= 2:
                ytd[key] = values[-1]
            elif in_ytd:
                ytd[key] = values[0]

        logger.info(
            "Payslip classified: %d earnings, %d deductions, totals=%s",
            len(metrics.earnings),
            len(metrics.deductions),
            sorted(metrics.totals),
        )
        return metrics

    @staticmethod
    def _record_total(metrics: PayslipMetrics, key: str, values: list[float]) -> None:
        if not values:
            return
        metrics.totals[key] = values[0]
        if len(values) > 1:
            metrics.totals_ytd[key] = values[-1]
