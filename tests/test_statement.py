"""Tests for bank statement heuristics and row clustering."""

import pytest

from findoc.classification.statement import (
    ColumnHint,
    StatementClassifier,
    date_to_iso,
    find_date,
    is_transaction_line,
    row_signature,
)
from findoc.utils.config import ClassificationConfig

STATEMENT_LINES = [
    "Bank Statement - Current Account",
    "Sort code 12-34-56 Account number 12345678",
    "Opening balance £1,000.00",
    "01/03/2024 Coffee -4.50",
    "02/03/2024 Bakery -3.20",
    "05 Mar 2024 Salary 2,000.00",
    "Closing balance £2,992.30",
]


class TestDateHelpers:
    """Tests for date detection on statement lines."""

    @pytest.mark.parametrize(
        "line, expected",
        [
            ("Paid 2024-03-14 card", "2024-03-14"),
            ("14 March 2024 Rent", "2024-03-14"),
            ("14/03/2024 Rent", "2024-03-14"),
            ("14.03.24 Rent", "2024-03-14"),
        ],
    )
    def test_date_to_iso(self, line: str, expected: str) -> None:
        assert date_to_iso(find_date(line)) == expected

    def test_impossible_date(self) -> None:
        assert date_to_iso(find_date("31/02/2024 Rent 1.00")) is None

    def test_earliest_match_wins(self) -> None:
        assert find_date("2024-03-01 ref 05/03/2024").group(0) == "2024-03-01"

    def test_no_date(self) -> None:
        assert find_date("Opening balance 1,000.00") is None


class TestTransactionLines:
    """Tests for transaction line detection and row signatures."""

    def test_date_and_amount(self) -> None:
        assert is_transaction_line("01/03/2024 Coffee -4.50")

    def test_date_is_not_an_amount(self) -> None:
        assert not is_transaction_line("12.03.2024 Reference 12345678")

    def test_amount_without_date(self) -> None:
        assert not is_transaction_line("Opening balance £1,000.00")

    def test_row_signature(self) -> None:
        assert row_signature("01/03/2024 Coffee -4.50") == "3|x/x/x x -x.x"
        assert row_signature("02/03/2024 Bakery -3.20") == "3|x/x/x x -x.x"
        assert row_signature("05 Mar 2024 Salary 2,000.00") == "5|x x x x x,x.x"


class TestStatementClassifier:
    """Tests for the StatementClassifier class."""

    def setup_method(self) -> None:
        self.classifier = StatementClassifier()

    def test_balances(self) -> None:
        summary = self.classifier.classify(STATEMENT_LINES)
        assert summary.opening_balance == 1000.0
        assert summary.closing_balance == 2992.30

    def test_cash_flow(self) -> None:
        summary = self.classifier.classify(STATEMENT_LINES)
        assert summary.inflows == 2000.0
        assert summary.outflows == 7.7

    def test_period_and_transaction_lines(self) -> None:
        summary = self.classifier.classify(STATEMENT_LINES)
        assert summary.transaction_lines == [3, 4, 5]
        assert summary.period_start == "2024-03-01"
        assert summary.period_end == "2024-03-05"

    def test_field_candidates(self) -> None:
        summary = self.classifier.classify(STATEMENT_LINES)
        assert summary.field_candidates["bank_name"] == [STATEMENT_LINES[0]]
        assert summary.field_candidates["account_type"] == [STATEMENT_LINES[0]]
        assert summary.field_candidates["account_number"] == [STATEMENT_LINES[1]]
        assert summary.field_candidates["account_holder"] == []

    def test_matching_rows_form_one_cluster(self) -> None:
        clusters = self.classifier.classify(STATEMENT_LINES).clusters
        assert [c.id for c in clusters] == ["cluster-1", "cluster-2"]

        rows = clusters[0]
        assert rows.line_count == 2
        assert rows.first_line_index == 3
        assert rows.line_indexes == [3, 4]
        assert rows.average_spacing == 1.0
        assert rows.sample_lines == STATEMENT_LINES[3:5]

        single = clusters[1]
        assert single.line_count == 1
        assert single.average_spacing == 0.0

    def test_column_hints(self) -> None:
        clusters = self.classifier.classify(STATEMENT_LINES).clusters
        assert clusters[0].column_hints == [
            ColumnHint("date", 0, 10),
            ColumnHint("description", 11, 17),
            ColumnHint("amount", 18, 23),
        ]

    def test_column_hints_take_widest_span(self) -> None:
        hints = StatementClassifier.column_hints(
            ["01/03/2024 Tea -4.50", "02/03/2024 Groceries -13.20"]
        )
        assert hints[1] == ColumnHint("description", 11, 20)
        assert hints[2] == ColumnHint("amount", 15, 27)

    def test_sample_rows_limited(self) -> None:
        classifier = StatementClassifier(ClassificationConfig(cluster_sample_rows=1))
        lines = [
            "01/03/2024 Tea -4.50",
            "02/03/2024 Pie -3.20",
            "03/03/2024 Jam -1.00",
        ]
        clusters = classifier.cluster_rows(lines)
        assert len(clusters) == 1
        assert clusters[0].sample_lines == lines[:1]
        assert clusters[0].line_count == 3

    def test_cluster_rows_with_gaps(self) -> None:
        lines = [
            "01/03/2024 Tea -4.50",
            "Card payment",
            "02/03/2024 Pie -3.20",
            "Card payment",
            "03/03/2024 Jam -1.00",
        ]
        clusters = self.classifier.cluster_rows(lines)
        assert clusters[0].line_indexes == [0, 2, 4]
        assert clusters[0].average_spacing == 2.0

    def test_no_transactions(self) -> None:
        summary = self.classifier.classify(["Opening balance 10.00", ""])
        assert summary.transaction_lines == []
        assert summary.clusters == []
        assert summary.period_start is None
        assert summary.inflows == 0.0

    def test_amounts_without_thousands_separator(self) -> None:
        summary = self.classifier.classify(
            [
                "Opening balance 1500.00",
                "01/03/2024 Rent -1250.00",
                "02/03/2024 Salary 2100.00",
                "Closing balance 2350.00",
            ]
        )
        assert summary.opening_balance == 1500.0
        assert summary.closing_balance == 2350.0
        assert summary.inflows == 2100.0
        assert summary.outflows == 1250.0

    def test_amount_column_covers_whole_number(self) -> None:
        hints = StatementClassifier.column_hints(["01/03/2024 Rent -1250.00"])
        assert hints[-1] == ColumnHint("amount", 16, 24)

    def test_debit_suffix_is_outflow(self) -> None:
        summary = self.classifier.classify(["01/03/2024 Coffee shop 4.50DR"])
        assert summary.transaction_lines == [0]
        assert (summary.inflows, summary.outflows) == (0.0, 4.5)
