"""Tests for money token parsing."""

import pytest

from findoc.extraction.money import (
    MONEY_PATTERN,
    collect_line_values,
    find_numeric_tokens,
    parse_money,
)


class TestParseMoney:
    """Tests for the parse_money function."""

    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("£1,234.56", 1234.56),
            ("$ 99.99", 99.99),
            ("€0.50", 0.5),
            ("(1,234.56)", -1234.56),
            ("£(45.10)", -45.1),
            ("-12", -12.0),
            ("-£12.00", -12.0),
            ("1,234.56 DR", -1234.56),
            ("1,234.56 CR", 1234.56),
            ("1234.56DR", -1234.56),
            ("4.50cr", 4.5),
            ("(20.00) CR", 20.0),
            (".75", 0.75),
            ("2500", 2500.0),
        ],
    )
    def test_parses_currency_tokens(self, raw: str, expected: float) -> None:
        assert parse_money(raw) == pytest.approx(expected)

    @pytest.mark.parametrize("raw", ["", "   ", "abc", "£", "--", "()", None, True])
    def test_non_numeric_returns_none(self, raw: object) -> None:
        assert parse_money(raw) is None

    def test_numbers_pass_through(self) -> None:
        assert parse_money(12) == 12.0
        assert parse_money(-3.5) == -3.5

    def test_sign_and_value_agree_for_formatted_negatives(self) -> None:
        for value in (0.01, 12.5, 1234.56, 98765.43):
            formatted = f"{value:,.2f}"
            assert parse_money(f"({formatted})") == pytest.approx(-value)
            assert parse_money(f"-{formatted}") == pytest.approx(-value)
            assert parse_money(f"£{formatted}") == pytest.approx(value)


class TestTokenScanning:
    """Tests for scanning lines for numeric tokens."""

    def test_find_numeric_tokens_reports_offsets(self) -> None:
        line = "Gross £3,000.00 YTD £15,000.00"
        tokens = find_numeric_tokens(line)
        assert [t[0] for t in tokens] == [3000.0, 15000.0]
        value, start, end = tokens[-1]
        assert line[start:end] == "£15,000.00"

    def test_collect_line_values(self) -> None:
        assert collect_line_values("Income Tax 250.00 (1,000.00)") == [250.0, -1000.0]

    def test_collect_line_values_ignores_punctuation(self) -> None:
        assert collect_line_values("Basic pay - hours.") == []

    def test_money_pattern_requires_cents(self) -> None:
        assert MONEY_PATTERN.search("Coffee shop 4.50 DR").group(0) == "4.50 DR"
        assert MONEY_PATTERN.search("Reference 12345") is None

    @pytest.mark.parametrize(
        "line, expected",
        [
            ("Closing balance 1234.56", "1234.56"),
            ("01/03/2024 Rent -1250.00", "-1250.00"),
            ("Transfer £12,500.00 CR", "£12,500.00 CR"),
            ("Coffee shop 4.50DR", "4.50DR"),
            ("Refund (1500.00)", "(1500.00)"),
        ],
    )
    def test_money_pattern_takes_whole_amount(self, line: str, expected: str) -> None:
        assert MONEY_PATTERN.search(line).group(0) == expected

    def test_money_pattern_ignores_dotted_dates(self) -> None:
        assert MONEY_PATTERN.search("Paid 12.03.2024") is None
