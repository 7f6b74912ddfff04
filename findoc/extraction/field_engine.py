"""Rule-driven field extraction with positional provenance.

Applies user-declared rules (anchor plus regex, line offset, or page
rectangle) over reconstructed lines, overlays them on keyword
heuristics for payslips and statements, and records where every value
was read from.
"""

import re
from dataclasses import dataclass, field

from findoc.geometry.models import (
    BoundingBox,
    ExtractedTextContent,
    LineGeometry,
    boxes_intersect,
)
from findoc.utils.config import ExtractionConfig
from findoc.utils.logger import get_logger
from findoc.utils.text import chunk_lines, dedupe, normalise_whitespace

from .dates import DateparserResolver, DateResolver, format_month_year
from .money import find_numeric_tokens, parse_money
from .rules import (
    AnchorRegexRule,
    BoxRule,
    ExpectedType,
    LineOffsetRule,
    UserRules,
    compile_pattern,
    parse_user_rules,
    validate_rules,
)
from .statement_templates import StatementTemplateReader, StatementTransaction

logger = get_logger(__name__)

_YTD = re.compile(r"\bYTD\b", re.IGNORECASE)

PAYSLIP_HEURISTICS: dict[str, list[str]] = {
    "grossPay": [r"gross", r"total\s+earnings"],
    "netPay": [r"net\s+pay", r"take\s*home"],
    "totalDeductions": [r"total\s+deductions", r"deductions\s+total"],
}

STATEMENT_HEURISTICS: dict[str, list[str]] = {
    "closingBalance": [r"closing\s+balance"],
    "openingBalance": [r"opening\s+balance"],
}


@dataclass
class FieldPosition:
    """Where a value sits: line, character range and glyph boxes."""

    line_index: int
    char_start: int
    char_end: int
    page_number: int | None = None
    boxes: list[BoundingBox] | None = None


@dataclass
class ExtractedFieldValue:
    """A field value from a rule or a heuristic.

    ``detail`` explains a failure and is only set when ``value`` is ``None``.
    """

    field: str
    source: str
    value: float | str | None
    detail: str | None = None
    positions: list[FieldPosition] | None = None


@dataclass
class FieldExtractionResult:
    """All field values plus rule failures and statement template rows."""

    values: dict[str, ExtractedFieldValue] = field(default_factory=dict)
    issues: list[str] = field(default_factory=list)
    used_rule_fields: list[str] = field(default_factory=list)
    statement_transactions: list[StatementTransaction] = field(default_factory=list)
    statement_issues: list[str] = field(default_factory=list)


class _LineIndex:
    """Lookup over a document's lines and their geometry."""

    def __init__(self, content: ExtractedTextContent) -> None:
        self.lines = content.lines
        self.geometry_list = content.geometry
        self.geometry: dict[int, LineGeometry] = {
            g.line_index: g for g in content.geometry
        }

    def find_line(self, anchor: str) -> int:
        """Index of the first line matching ``anchor``, or -1."""
        pattern = compile_pattern(anchor).regex
        for index, line in enumerate(self.lines):
            if pattern.search(line):
                return index
        return -1

    def position(self, line_index: int, char_start: int, length: int) -> FieldPosition:
        char_end = max(char_start + length, char_start)
        line = self.geometry.get(line_index)
        if line is None:
            return FieldPosition(line_index, char_start, char_end)
        boxes = [
            s.box
            for s in line.segments
            if s.char_end > char_start and s.char_start < char_end
        ]
        return FieldPosition(
            line_index=line_index,
            char_start=char_start,
            char_end=char_end,
            page_number=line.page_number,
            boxes=boxes or None,
        )


class FieldRuleEngine:
    """Extracts named fields from reconstructed document lines.

    Args:
        config: Extraction settings (anchor suggestion list and cap).
        resolver: Natural-language date capability for ``date`` fields and
            statement template dates.
        prefer_future: Bias ambiguous dates forward.
    """

    def __init__(
        self,
        config: ExtractionConfig | None = None,
        resolver: DateResolver | None = None,
        prefer_future: bool = True,
    ) -> None:
        self.config = config or ExtractionConfig()
        self.resolver = resolver or DateparserResolver()
        self.prefer_future = prefer_future
        self.template_reader = StatementTemplateReader(self.resolver, prefer_future)

    def extract(
        self,
        content: ExtractedTextContent,
        doc_type: str,
        rules: UserRules | dict | str | None = None,
    ) -> FieldExtractionResult:
        """Run heuristics and user rules over a document.

        Args:
            content: Reconstructed lines and geometry.
            doc_type: Document type hint, e.g. ``"payslip"``.
            rules: Validated rules, a decoded payload, or JSON text.
                Invalid payloads are ignored as a whole.

        Returns:
            Field values keyed by name; rule values replace heuristic ones.
        """
        index = _LineIndex(content)
        user_rules = self._coerce_rules(rules)

        result = FieldExtractionResult()
        result.values.update(self.heuristic_values(index, doc_type))

        field_rules = user_rules.fields if user_rules else None
        for name, rule in (field_rules or {}).items():
            applied = self.apply_rule(name, rule, index)
            result.values[name] = applied
            if applied.detail:
                result.issues.append(applied.detail)
            else:
                result.used_rule_fields.append(name)

        if "statement" in doc_type.lower():
            statement = self.template_reader.apply(
                index.lines, user_rules.statement if user_rules else None
            )
            result.statement_transactions = statement.transactions
            result.statement_issues = statement.issues

        logger.info(
            "Field extraction produced %d values (%d from rules, %d issues)",
            len(result.values),
            len(result.used_rule_fields),
            len(result.issues),
        )
        return result

    def _coerce_rules(self, rules: UserRules | dict | str | None) -> UserRules | None:
        if rules is None or isinstance(rules, UserRules):
            return rules
        if isinstance(rules, str):
            return parse_user_rules(rules)
        return validate_rules(rules)

    def apply_rule(
        self,
        name: str,
        rule: AnchorRegexRule | LineOffsetRule | BoxRule,
        index: _LineIndex,
    ) -> ExtractedFieldValue:
        """Apply a single rule; failures come back as a ``detail``."""
        match rule:
            case AnchorRegexRule():
                return self._apply_anchor_regex(name, rule, index)
            case LineOffsetRule():
                return self._apply_line_offset(name, rule, index)
            case BoxRule():
                return self._apply_box(name, rule, index)
            case _:
                return _failure(name, f"Unknown strategy for {name}")

    def _apply_anchor_regex(
        self, name: str, rule: AnchorRegexRule, index: _LineIndex
    ) -> ExtractedFieldValue:
        line_index = index.find_line(rule.anchor)
        if line_index == -1:
            return _failure(name, f'Anchor "{rule.anchor}" not found for {name}')

        line = index.lines[line_index]
        match = compile_pattern(rule.regex).regex.search(line)
        if not match:
            return _failure(name, f"Regex {rule.regex} did not match for {name}")

        if match.re.groups and match.group(1):
            captured, char_start = match.group(1), match.start(1)
        else:
            captured, char_start = match.group(0), match.start()

        value, issue = self.enforce_type(name, rule.expected_type, captured)
        if issue:
            return _failure(name, issue)
        return ExtractedFieldValue(
            field=name,
            source="rule",
            value=value,
            positions=[index.position(line_index, char_start, len(captured))],
        )

    def _apply_line_offset(
        self, name: str, rule: LineOffsetRule, index: _LineIndex
    ) -> ExtractedFieldValue:
        line_index = index.find_line(rule.anchor)
        if line_index == -1:
            return _failure(name, f'Anchor "{rule.anchor}" not found for {name}')

        target = line_index + rule.line_offset
        if target < 0 or target >= len(index.lines):
            return _failure(name, f"Offset {rule.line_offset} out of bounds for {name}")

        raw = index.lines[target]
        value, issue = self.enforce_type(name, rule.expected_type, raw)
        if issue:
            return _failure(name, issue)
        return ExtractedFieldValue(
            field=name,
            source="rule",
            value=value,
            positions=[index.position(target, 0, len(raw))],
        )

    def _apply_box(
        self, name: str, rule: BoxRule, index: _LineIndex
    ) -> ExtractedFieldValue:
        collected = collect_text_from_box(index, rule)
        if collected is None:
            return _failure(name, f"No text located for box rule on {name}")

        raw, positions = collected
        value, issue = self.enforce_type(name, rule.expected_type, raw)
        if issue:
            return _failure(name, issue)
        return ExtractedFieldValue(
            field=name, source="rule", value=value, positions=positions or None
        )

    def enforce_type(
        self, name: str, expected: ExpectedType, raw: str | None
    ) -> tuple[float | str | None, str | None]:
        """Coerce a raw string to the rule's expected type.

        Returns:
            ``(value, issue)``; ``issue`` is set when coercion failed.
        """
        if not raw or not raw.strip():
            return None, f"Empty value extracted for {name}"
        if expected == "number":
            number = parse_money(raw)
            if number is None:
                return None, f"Expected number, got {raw}"
            return number, None
        if expected == "date":
            parsed = self.resolver.resolve(raw, self.prefer_future)
            if parsed is None:
                return None, f"Expected date, got {raw}"
            return format_month_year(parsed), None
        return normalise_whitespace(raw), None

    def heuristic_values(
        self, index: _LineIndex, doc_type: str
    ) -> dict[str, ExtractedFieldValue]:
        """Keyword heuristics for payslip and statement totals."""
        groups: dict[str, list[str]] = {}
        upper = doc_type.upper()
        if "PAYSLIP" in upper:
            groups.update(PAYSLIP_HEURISTICS)
        if "STATEMENT" in upper:
            groups.update(STATEMENT_HEURISTICS)

        values: dict[str, ExtractedFieldValue] = {}
        for name, keywords in groups.items():
            located = locate_number_by_keywords(index.lines, keywords)
            if located is None:
                continue
            value, line_index, start, end = located
            values[name] = ExtractedFieldValue(
                field=name,
                source="heuristic",
                value=value,
                positions=[index.position(line_index, start, end - start)],
            )
        return values

    def suggest_anchors(self, text: str) -> list[str]:
        """Suggest anchor labels for rule authoring.

        Seeds the list with common payslip and statement labels, then adds
        the text before the first colon of each line when it is longer
        than three characters.
        """
        labels = [
            line.split(":")[0].strip() for line in chunk_lines(text) if ":" in line
        ]
        labels = [label for label in labels if len(label) > 3]
        limit = self.config.anchor_suggestion_limit
        return dedupe(list(self.config.common_anchors) + labels)[:limit]


def locate_number_by_keywords(
    lines: list[str], keywords: list[str]
) -> tuple[float, int, int, int] | None:
    """Find the last numeric token on the first line matching a keyword.

    Lines mentioning YTD are skipped while any other line matches; they
    are only used when every matching line carries a YTD marker.

    Args:
        lines: Document lines.
        keywords: Regex alternatives, matched case-insensitively.

    Returns:
        ``(value, line_index, char_start, char_end)`` or ``None``.
    """
    keyword = re.compile("|".join(keywords), re.IGNORECASE)
    ytd_lines: list[int] = []
    for line_index, line in enumerate(lines):
        if not keyword.search(line):
            continue
        if _YTD.search(line):
            ytd_lines.append(line_index)
            continue
        tokens = find_numeric_tokens(line)
        if tokens:
            return (tokens[-1][0], line_index, tokens[-1][1], tokens[-1][2])

    for line_index in ytd_lines:
        tokens = find_numeric_tokens(lines[line_index])
        if tokens:
            return (tokens[-1][0], line_index, tokens[-1][1], tokens[-1][2])
    return None


def collect_text_from_box(
    index: _LineIndex, rule: BoxRule
) -> tuple[str, list[FieldPosition]] | None:
    """Gather the text of every segment intersecting a rule's rectangle.

    Touching or overlapping character ranges on a line are merged;
    fragments on one line are joined by spaces and lines by newlines in
    ascending line order.

    Returns:
        ``(raw_text, positions)``, or ``None`` when nothing intersects.
    """
    area = BoundingBox(rule.page, rule.left, rule.top, rule.width, rule.height)
    per_line: list[tuple[LineGeometry, list[list[int]]]] = []

    for line in sorted(index.geometry_list, key=lambda g: g.line_index):
        if rule.page is not None and line.page_number != rule.page:
            continue
        if line.bounds is None or not boxes_intersect(line.bounds, area):
            continue
        relevant = sorted(
            (s for s in line.segments if boxes_intersect(s.box, area)),
            key=lambda s: s.char_start,
        )
        merged: list[list[int]] = []
        for segment in relevant:
            if merged and segment.char_start <= merged[-1][1]:
                merged[-1][1] = max(merged[-1][1], segment.char_end)
            else:
                merged.append([segment.char_start, segment.char_end])
        if merged:
            per_line.append((line, merged))

    raw_lines: list[str] = []
    positions: list[FieldPosition] = []
    for line, ranges in per_line:
        fragments = []
        for start, end in ranges:
            fragment = line.text[start:end]
            if not fragment.strip():
                continue
            fragments.append(fragment)
            positions.append(index.position(line.line_index, start, end - start))
        if fragments:
            raw_lines.append(" ".join(fragments))

    raw = "\n".join(raw_lines).strip()
    if not raw:
        return None
    return raw, positions


def _failure(name: str, detail: str) -> ExtractedFieldValue:
    return ExtractedFieldValue(field=name, source="rule", value=None, detail=detail)
