"""User-authored extraction rule schema.

Rules arrive as JSON. Field rules are a tagged union on ``strategy``
(``anchor+regex``, ``line-offset`` or ``box``); statement templates
describe repeating transaction rows. Payloads that fail validation are
treated as if no rules had been supplied.
"""

import json
import re
from dataclasses import dataclass
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from findoc.utils.logger import get_logger

logger = get_logger(__name__)

ExpectedType = Literal["number", "string", "date"]


class _RuleModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class _FieldRuleBase(_RuleModel):
    expected_type: ExpectedType = Field(alias="expectedType")
    label: str | None = None


class AnchorRegexRule(_FieldRuleBase):
    """Find the first line matching ``anchor`` and apply ``regex`` to it."""

    strategy: Literal["anchor+regex"]
    anchor: str = Field(min_length=1)
    regex: str = Field(min_length=1)


class LineOffsetRule(_FieldRuleBase):
    """Read the whole line ``line_offset`` lines away from the anchor line."""

    strategy: Literal["line-offset"]
    anchor: str = Field(min_length=1)
    line_offset: int = Field(alias="lineOffset")


class BoxRule(_FieldRuleBase):
    """Collect the text whose glyph boxes intersect a page rectangle."""

    strategy: Literal["box"]
    top: float
    left: float
    width: float
    height: float
    page: int | None = None


FieldRule = Annotated[
    AnchorRegexRule | LineOffsetRule | BoxRule, Field(discriminator="strategy")
]
FieldRuleSet = dict[str, FieldRule]


class StatementColumn(_RuleModel):
    key: Literal["date", "description", "amount", "ignore"] = "description"
    regex: str | None = None
    start: int | None = Field(default=None, ge=0)
    end: int | None = Field(default=None, ge=0)


class StatementTemplate(_RuleModel):
    """A block of transaction rows starting at a fixed line."""

    id: str | None = None
    label: str | None = None
    start_line: int = Field(alias="startLine", ge=0)
    line_stride: int | None = Field(default=None, alias="lineStride", ge=1)
    max_rows: int | None = Field(default=None, alias="maxRows", ge=1)
    stop_regex: str | None = Field(default=None, alias="stopRegex")
    columns: list[StatementColumn] = Field(min_length=1)


class StatementRules(_RuleModel):
    templates: list[StatementTemplate] = Field(min_length=1)


class CompositeRules(_RuleModel):
    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    fields: FieldRuleSet | None = None
    statement: StatementRules | None = None


_field_rule_set = TypeAdapter(FieldRuleSet)


@dataclass
class UserRules:
    """Validated rules, split by purpose."""

    fields: dict[str, AnchorRegexRule | LineOffsetRule | BoxRule] | None = None
    statement: StatementRules | None = None


@dataclass
class CompiledPattern:
    """A compiled matcher and, if the literal fallback was used, why."""

    regex: re.Pattern
    error: str | None = None

    @property
    def is_literal(self) -> bool:
        return self.error is not None


def compile_pattern(pattern: str) -> CompiledPattern:
    """Compile a user pattern case-insensitively.

    A pattern that does not compile is escaped and matched literally.

    Args:
        pattern: Regular expression supplied by a rule author.

    Returns:
        The matcher, with ``error`` set when the literal fallback applied.
    """
    try:
        return CompiledPattern(re.compile(pattern, re.IGNORECASE))
    except re.error as exc:
        logger.warning("Pattern %r is invalid (%s), matching literally", pattern, exc)
        return CompiledPattern(re.compile(re.escape(pattern), re.IGNORECASE), str(exc))


def validate_rules(raw: object) -> UserRules | None:
    """Validate a decoded rule payload.

    Accepts ``{"fields": ..., "statement": ...}`` or a bare mapping of
    field name to rule.

    Args:
        raw: Decoded JSON payload.

    Returns:
        Validated rules, or ``None`` when the payload is empty or invalid.
    """
    if not raw:
        return None
    try:
        composite = CompositeRules.model_validate(raw)
        return UserRules(fields=composite.fields, statement=composite.statement)
    except ValidationError as composite_error:
        try:
            return UserRules(fields=_field_rule_set.validate_python(raw))
        except ValidationError:
            logger.warning(
                "Ignoring invalid user rules: %d schema errors",
                composite_error.error_count(),
            )
            return None


def parse_user_rules(raw: str | None) -> UserRules | None:
    """Decode and validate a JSON rule document."""
    if not raw:
        return None
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        logger.warning("Unable to parse user rules JSON: %s", exc)
        return None
    return validate_rules(payload)
