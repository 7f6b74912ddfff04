"""Currency-formatted number parsing.

Handles currency symbols, thousands separators, parenthesised and
minus-prefixed negatives, and the ``CR``/``DR`` suffixes used on bank
statements.
"""

import re

CURRENCY_SYMBOLS = re.compile(r"[£$€]")
# Suffixes may follow the digits directly, as in "4.50DR".
_CREDIT = re.compile(r"(?<![A-Za-z])CR\b", re.IGNORECASE)
_DEBIT = re.compile(r"(?<![A-Za-z])DR\b", re.IGNORECASE)
_NUMBER = re.compile(r"\d+(?:\.\d+)?|\.\d+")

# A loose numeric token as it appears in running text: "£1,200.00", "(45.10)".
NUMERIC_TOKEN = re.compile(r"-?[£$€]?[\d,.()]+")
# Tokens used for payslip line values, sign and symbol in any order.
LINE_VALUE_TOKEN = re.compile(r"[-£$€()0-9.,]+")
# An amount with cents; never starts or ends inside a longer number.
MONEY_PATTERN = re.compile(
    r"(?<![\d.,])(?:[£$€]\s*)?-?\(?(?:\d{1,3}(?:,\d{3})+|\d+)\.\d{2}(?!\d|[.,]\d)\)?"
    r"(?:\s*(?:CR|DR)\b)?",
    re.IGNORECASE,
)


def parse_money(raw: str | float | int | None) -> float | None:
    """Parse a money token into a signed float.

    Args:
        raw: Token such as ``"£(1,234.56)"``, ``"1234.56 CR"`` or ``"-12"``.
            Numbers are returned unchanged.

    Returns:
        The signed value, or ``None`` if nothing numeric remains after
        cleaning.
    """
    if isinstance(raw, bool):
        return None
    if isinstance(raw, int | float):
        return float(raw)
    if not isinstance(raw, str):
        return None

    trimmed = CURRENCY_SYMBOLS.sub("", raw).strip()
    if not trimmed:
        return None

    negative = (
        (trimmed.startswith("(") and trimmed.endswith(")"))
        or trimmed.startswith("-")
        or bool(_DEBIT.search(trimmed))
    )
    if _CREDIT.search(trimmed):
        negative = False

    cleaned = re.sub(r"CR|DR", "", trimmed, flags=re.IGNORECASE)
    cleaned = re.sub(r"[()\-,\s]", "", cleaned)
    match = _NUMBER.match(cleaned)
    if not match:
        return None

    value = float(match.group(0))
    return -value if negative else value


def find_numeric_tokens(line: str) -> list[tuple[float, int, int]]:
    """Return ``(value, start, end)`` for each parseable numeric token."""
    tokens: list[tuple[float, int, int]] = []
    for match in NUMERIC_TOKEN.finditer(line):
        value = parse_money(match.group(0))
        if value is not None:
            tokens.append((value, match.start(), match.end()))
    return tokens


def collect_line_values(line: str) -> list[float]:
    """Parse every money-like token on a payslip line, left to right."""
    values = []
    for match in LINE_VALUE_TOKEN.finditer(line):
        value = parse_money(match.group(0))
        if value is not None:
            values.append(value)
    return values
