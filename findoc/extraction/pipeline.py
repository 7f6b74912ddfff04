"""Per-document orchestration of the extraction stages.

Runs date extraction, field rules and the classifier matching the
document type hint over one reconstructed document.
"""

from dataclasses import dataclass, field

from findoc.classification.payslip import PayslipClassifier, PayslipMetrics
from findoc.classification.statement import StatementClassifier, StatementSummary
from findoc.geometry.models import ExtractedTextContent
from findoc.utils.config import AppConfig
from findoc.utils.logger import get_logger

from .dates import (
    DateCandidateExtractor,
    DateExtractionResult,
    DateparserResolver,
    DateResolver,
)
from .field_engine import FieldExtractionResult, FieldRuleEngine
from .rules import UserRules

logger = get_logger(__name__)


@dataclass
class DocumentExtraction:
    """Combined output of every stage for one document."""

    doc_type: str
    line_count: int
    dates: DateExtractionResult
    fields: FieldExtractionResult
    payslip: PayslipMetrics | None = None
    statement: StatementSummary | None = None
    warnings: list[str] = field(default_factory=list)

    def field_values(self) -> dict[str, float | str | None]:
        """Flat ``field -> value`` mapping of the extracted fields."""
        return {name: value.value for name, value in self.fields.values.items()}


class DocumentExtractor:
    """Extracts dates, fields and classifier output from documents.

    Args:
        config: Application configuration. Defaults are used when omitted.
        resolver: Natural-language date capability shared by every stage.
    """

    def __init__(
        self, config: AppConfig | None = None, resolver: DateResolver | None = None
    ) -> None:
        self.config = config or AppConfig()
        dates = self.config.dates
        self.resolver = resolver or DateparserResolver(
            dates.date_order, dates.languages
        )
        self.date_extractor = DateCandidateExtractor(dates, self.resolver)
        self.field_engine = FieldRuleEngine(
            self.config.extraction, self.resolver, dates.prefer_future
        )
        self.payslip_classifier = PayslipClassifier(
            self.config.classification, self.date_extractor
        )
        self.statement_classifier = StatementClassifier(self.config.classification)

    def extract(
        self,
        content: ExtractedTextContent,
        doc_type: str = "payslip",
        rules: UserRules | dict | str | None = None,
    ) -> DocumentExtraction:
        """Run every stage over one document.

        Args:
            content: Reconstructed lines and geometry.
            doc_type: Type hint; ``payslip`` and ``statement`` select the
                matching classifier and heuristics.
            rules: Optional user rules (validated, decoded or JSON text).

        Returns:
            The combined extraction.
        """
        dates = self.date_extractor.extract(content.text)
        fields = self.field_engine.extract(content, doc_type, rules)

        result = DocumentExtraction(
            doc_type=doc_type,
            line_count=len(content.lines),
            dates=dates,
            fields=fields,
            warnings=list(fields.issues) + list(fields.statement_issues),
        )

        kind = doc_type.lower()
        if "payslip" in kind:
            result.payslip = self.payslip_classifier.classify(content.lines)
        if "statement" in kind:
            result.statement = self.statement_classifier.classify(content.lines)

        if not content.lines:
            result.warnings.append("Document contains no text lines")
        logger.info(
            "Extracted %s document: %d lines, %d fields, %d warnings",
            doc_type,
            result.line_count,
            len(fields.values),
            len(result.warnings),
        )
        return result
