"""Tests for payslip line bucketing."""

import pytest

from findoc.classification.payslip import (
    PayslipClassifier,
    field_label,
    normalise_label,
)
from findoc.extraction.dates import DateCandidateExtractor
from findoc.utils.config import ClassificationConfig

PAYSLIP_LINES = [
    "Employer: ACME Ltd",
    "Pay Date: 31/03/2024",
    "This period",
    "Basic salary 2,000.00 6,000.00",
    "Income tax (400.00) (1,200.00)",
    "Gross pay 2,000.00 6,000.00",
    "Net pay 1,600.00 4,800.00",
    "Year to date",
    "Pension 100.00",
]


class TestLabels:
    """Tests for line label normalisation."""

    def test_normalise_label(self) -> None:
        assert normalise_label("  Income-Tax (PAYE): ") == "income tax paye"

    def test_field_label_drops_values(self) -> None:
        assert field_label("Basic salary £2,000.00 6,000.00") == "basic_salary"

    def test_field_label_fallback(self) -> None:
        assert field_label("1,000.00") == "line"


class TestPayslipClassifier:
    """Tests for the PayslipClassifier class."""

    @pytest.fixture(autouse=True)
    def _classifier(self, stub_resolver) -> None:
        extractor = DateCandidateExtractor(resolver=stub_resolver)
        self.classifier = PayslipClassifier(date_extractor=extractor)

    def test_totals(self) -> None:
        metrics = self.classifier.classify(PAYSLIP_LINES)
        assert metrics.totals == {"gross": 2000.0, "net": 1600.0}
        assert metrics.totals_ytd == {"gross": 6000.0, "net": 4800.0}

    def test_earnings_and_deductions(self) -> None:
        metrics = self.classifier.classify(PAYSLIP_LINES)
        assert metrics.earnings["basic_salary"] == 2000.0
        assert metrics.ytd_earnings["basic_salary"] == 6000.0
        assert metrics.deductions == {"income_tax": -400.0}
        assert metrics.ytd_deductions == {"income_tax": -1200.0}

    def test_single_value_in_ytd_section(self) -> None:
        metrics = self.classifier.classify(PAYSLIP_LINES)
        assert metrics.earnings["pension"] == 100.0
        assert metrics.ytd_earnings["pension"] == 100.0

    def test_single_value_in_current_section(self) -> None:
        metrics = self.classifier.classify(["YTD", "This period", "Bonus 250.00"])
        assert metrics.earnings == {"bonus": 250.0}
        assert metrics.ytd_earnings == {}

    def test_employer_and_dates(self) -> None:
        metrics = self.classifier.classify(PAYSLIP_LINES)
        assert metrics.employer == "ACME Ltd"
        assert metrics.pay_date == "03/2024"

    def test_first_employer_wins(self) -> None:
        metrics = self.classifier.classify(
            ["Employer: ACME Ltd", "Employer reference 123/AB"]
        )
        assert metrics.employer == "ACME Ltd"

    def test_gross_year_to_date_is_not_a_total(self) -> None:
        metrics = self.classifier.classify(["Gross year to date 6,000.00"])
        assert "gross" not in metrics.totals
        assert metrics.ytd_earnings == {"gross_year_to_date": 6000.0}

    def test_total_without_values_is_skipped(self) -> None:
        metrics = self.classifier.classify(["Net pay", "Gross pay"])
        assert metrics.totals == {}

    @pytest.mark.parametrize(
        "label, expected",
        [
            ("income tax", True),
            ("ni contribution", True),
            ("student loan", True),
            ("taxable benefit", False),
            ("commission", False),
        ],
    )
    def test_deduction_keywords_match_whole_words(
        self, label: str, expected: bool
    ) -> None:
        assert self.classifier.is_deduction(label) is expected

    def test_custom_keywords(self, stub_resolver) -> None:
        classifier = PayslipClassifier(
            ClassificationConfig(deduction_keywords=["union"]),
            DateCandidateExtractor(resolver=stub_resolver),
        )
        metrics = classifier.classify(["Union dues 12.00", "Income tax 300.00"])
        assert metrics.deductions == {"union_dues": 12.0}
        assert metrics.earnings == {"income_tax": 300.0}

    def test_blank_lines_ignored(self) -> None:
        metrics = self.classifier.classify(["", "   ", "Bonus 10.00"])
        assert metrics.earnings == {"bonus": 10.0}
