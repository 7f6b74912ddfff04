"""Shared test fixtures for the extraction engine test suite."""

from datetime import datetime
from pathlib import Path

import pytest

from findoc.geometry.models import GlyphRun, PageContent


class StubResolver:
    """Deterministic stand-in for the natural-language date resolver."""

    def __init__(
        self,
        known: dict[str, datetime] | None = None,
        found: dict[str, list[tuple[str, datetime]]] | None = None,
    ) -> None:
        self.known = known or {}
        self.found = found or {}
        self.calls: list[tuple[str, bool]] = []

    def resolve(self, text: str, prefer_future: bool = True) -> datetime | None:
        self.calls.append((text, prefer_future))
        return self.known.get(text.strip())

    def search(
        self, text: str, prefer_future: bool = True
    ) -> list[tuple[str, datetime]]:
        return list(self.found.get(text, []))


@pytest.fixture
def make_resolver():
    """Factory for stub date resolvers."""
    return StubResolver


@pytest.fixture
def stub_resolver() -> StubResolver:
    """A resolver that recognises nothing."""
    return StubResolver()


def glyph_run(
    text: str, x: float, y: float, width: float, size: float = 10.0
) -> GlyphRun:
    """Glyph run at baseline ``(x, y)`` in bottom-left page space."""
    return GlyphRun(text=text, transform=(size, 0.0, 0.0, size, x, y), width=width)


@pytest.fixture
def payslip_page() -> PageContent:
    """A two-column payslip page, 800 units tall."""
    return PageContent(
        page_number=1,
        viewport_height=800.0,
        runs=[
            glyph_run("Net Pay", 50.0, 600.0, 40.0),
            glyph_run("£2,500.00", 200.0, 601.0, 50.0),
            glyph_run("Gross Pay", 50.0, 700.0, 45.0),
            glyph_run("£3,000.00", 200.0, 699.0, 50.0),
            glyph_run("ACME PAYROLL", 50.0, 760.0, 80.0),
        ],
    )


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def config_dir(project_root: Path) -> Path:
    """Return the configs directory path."""
    return project_root / "configs"
