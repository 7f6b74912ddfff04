"""Rule-driven transaction rows for bank statements.

A template names the first row, the stride between rows, and how to cut
each row into date, description and amount columns.
"""

import sys
from dataclasses import dataclass, field

from findoc.utils.logger import get_logger
from findoc.utils.text import normalise_whitespace

from .dates import DateResolver
from .money import parse_money
from .rules import (
    StatementColumn,
    StatementRules,
    StatementTemplate,
    compile_pattern,
)

logger = get_logger(__name__)


@dataclass
class StatementTransaction:
    """A transaction row read through a statement template."""

    date: str
    description: str
    amount: float


@dataclass
class TemplateResult:
    transactions: list[StatementTransaction] = field(default_factory=list)
    issues: list[str] = field(default_factory=list)


def clamp_range(
    line: str, start: int | None, end: int | None
) -> tuple[int, int]:
    length = len(line)
    safe_start = max(0, min(start, length)) if start is not None else 0
    safe_end = max(safe_start, min(end, length)) if end is not None else length
    return safe_start, safe_end


def extract_column_value(
    line: str, column: StatementColumn
) -> tuple[str | None, str | None]:
    """Cut one column out of a row.

    Returns:
        ``(value, issue)``; exactly one of them is set.
    """
    start, end = clamp_range(line, column.start, column.end)
    segment = line[start:end].strip() or line.strip()
    if not segment:
        return None, f"No text available for {column.key}"
    if column.regex:
        match = compile_pattern(column.regex).regex.search(segment)
        if not match:
            return None, f"Regex {column.regex} did not match for {column.key}"
        captured = match.group(1) if match.re.groups else None
        raw = (captured if captured is not None else match.group(0)).strip()
        if not raw:
            return None, f"Matched {column.regex} but extracted empty value"
        return raw, None
    return segment, None


class StatementTemplateReader:
    """Reads transaction rows described by statement templates.

    Args:
        resolver: Natural-language date capability used for the date column.
        prefer_future: Bias ambiguous dates forward.
    """

    def __init__(self, resolver: DateResolver, prefer_future: bool = True) -> None:
        self.resolver = resolver
        self.prefer_future = prefer_future

    def apply(self, lines: list[str], rules: StatementRules | None) -> TemplateResult:
        """Apply every template and prefix issues with the template name."""
        result = TemplateResult()
        if not rules or not rules.templates:
            return result
        for template in rules.templates:
            single = self.apply_template(lines, template)
            name = template.label or template.id or "template"
            result.transactions.extend(single.transactions)
            result.issues.extend(f"{name}: {issue}" for issue in single.issues)
        logger.info(
            "Statement templates produced %d transactions", len(result.transactions)
        )
        return result

    def apply_template(
        self, lines: list[str], template: StatementTemplate
    ) -> TemplateResult:
        """Read rows for one template.

        Reading stops at the end of the document, after ``max_rows`` rows,
        at a blank line once a row has been read, or at a line matching
        ``stop_regex``. A failing row aborts the template while no row has
        been read yet and is skipped afterwards.
        """
        result = TemplateResult()
        stride = template.line_stride or 1
        limit = template.max_rows or sys.maxsize
        stop = None
        if template.stop_regex:
            stop = compile_pattern(template.stop_regex).regex

        step = 0
        while step < limit:
            line_index = template.start_line + step * stride
            step += 1
            if line_index >= len(lines):
                break
            line = lines[line_index]
            if not line.strip():
                if not result.transactions:
                    continue
                break
            if stop is not None and stop.search(line):
                break

            issue = self._read_row(line, template, result)
            if issue:
                result.issues.append(f"Line {line_index + 1}: {issue}")
                if not result.transactions:
                    break
        return result

    def _read_row(
        self, line: str, template: StatementTemplate, result: TemplateResult
    ) -> str | None:
        extracted: dict[str, str | None] = {}
        for column in template.columns:
            value, issue = extract_column_value(line, column)
            if issue:
                return issue
            if column.key != "ignore":
                extracted[column.key] = value

        parsed_date = self._parse_date(extracted.get("date"))
        if parsed_date is None:
            return "Unable to parse date"
        amount = parse_money(extracted.get("amount"))
        if amount is None:
            return "Unable to parse amount"

        description = normalise_whitespace(extracted.get("description") or "")
        result.transactions.append(
            StatementTransaction(
                date=parsed_date,
                description=description or "Transaction",
                amount=amount,
            )
        )
        return None

    def _parse_date(self, raw: str | None) -> str | None:
        if not raw:
            return None
        parsed = self.resolver.resolve(raw, self.prefer_future)
        if parsed is None:
            return None
        return parsed.date().isoformat()
