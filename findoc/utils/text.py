"""Whitespace and line helpers shared by every extraction stage."""

import re

_HORIZONTAL_SPACE = re.compile(r"[\t ]+")
_BLANK_RUNS = re.compile(r"\n{2,}")


def normalise_whitespace(value: str) -> str:
    """Collapse runs of spaces and blank lines, keeping single newlines."""
    value = value.replace("\r", "\n").replace("\u00a0", " ")
    value = _HORIZONTAL_SPACE.sub(" ", value)
    return _BLANK_RUNS.sub("\n", value).strip()


def chunk_lines(text: str) -> list[str]:
    """Split text into trimmed, non-empty lines."""
    return [line.strip() for line in re.split(r"\n+", text) if line.strip()]


def dedupe(values: list[str]) -> list[str]:
    """Drop repeated values while keeping first-seen order."""
    return list(dict.fromkeys(values))


def clamp(value: float, low: float, high: float) -> float:
    """Limit ``value`` to the closed range ``[low, high]``."""
    return min(max(value, low), high)
