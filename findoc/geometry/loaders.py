"""Input adapters that turn source files into extracted text content.

Text and CSV sources carry no positions and produce degenerate geometry.
Glyph-run JSON and PDF text layers go through the geometry
reconstructor. No character recognition happens here.
"""

import csv
import io
import json
from pathlib import Path

import pdfplumber

from findoc.utils.logger import get_logger

from .models import ExtractedTextContent, GlyphRun, PageContent
from .reconstructor import GeometryReconstructor, content_from_text

logger = get_logger(__name__)

SUPPORTED_SUFFIXES = (".txt", ".csv", ".json", ".pdf")


def load_text(text: str) -> ExtractedTextContent:
    """Load plain text."""
    return content_from_text(text)


def load_csv(text: str) -> ExtractedTextContent:
    """Load CSV content, one line per row with cells joined by spaces."""
    rows = []
    for row in csv.reader(io.StringIO(text)):
        joined = " ".join(cell.strip() for cell in row if cell.strip())
        if joined:
            rows.append(joined)
    return content_from_text("\n".join(rows))


def pages_from_json(data: dict) -> list[PageContent]:
    """Parse a glyph-run document into page contents.

    The expected shape is ``{"pages": [{"pageNumber", "viewportHeight",
    "scale", "items": [{"str", "transform", "width"}]}]}``. Items with a
    missing transform are kept so the reconstructor can skip them. Pages
    whose number, height or scale is not numeric are skipped.

    Args:
        data: Decoded JSON document.

    Returns:
        Page contents in document order.
    """
    pages: list[PageContent] = []
    for position, page in enumerate(data.get("pages", []), 1):
        runs = []
        for item in page.get("items") or []:
            transform = item.get("transform")
            runs.append(
                GlyphRun(
                    text=str(item.get("str", "")),
                    transform=tuple(transform) if isinstance(transform, list) else None,
                    width=item.get("width", 0.0),
                )
            )
        try:
            pages.append(
                PageContent(
                    page_number=int(page.get("pageNumber") or position),
                    viewport_height=float(page.get("viewportHeight") or 0.0),
                    runs=runs,
                    scale=float(page.get("scale") or 1.0),
                )
            )
        except (TypeError, ValueError) as exc:
            logger.warning("Skipping malformed page %d: %s", position, exc)
    return pages


def load_glyph_json(
    text: str, reconstructor: GeometryReconstructor | None = None
) -> ExtractedTextContent:
    """Load a glyph-run JSON document and reconstruct its lines."""
    reconstructor = reconstructor or GeometryReconstructor()
    return reconstructor.reconstruct(pages_from_json(json.loads(text)))


def pages_from_pdf(pdf_path: Path) -> list[PageContent]:
    """Read a PDF text layer with pdfplumber, one glyph run per word.

    Args:
        pdf_path: Path to the PDF file.

    Returns:
        Page contents with word-level glyph runs.

    Raises:
        FileNotFoundError: If the file does not exist.
    """
    if not pdf_path.exists():
        raise FileNotFoundError(f"PDF file not found: {pdf_path}")

    pages: list[PageContent] = []
    with pdfplumber.open(pdf_path) as pdf:
        for number, page in enumerate(pdf.pages, 1):
            height = float(page.height)
            runs = []
            for word in page.extract_words(keep_blank_chars=False, use_text_flow=False):
                size = float(word["bottom"]) - float(word["top"])
                baseline = height - float(word["bottom"])
                runs.append(
                    GlyphRun(
                        text=word["text"],
                        transform=(size, 0.0, 0.0, size, float(word["x0"]), baseline),
                        width=float(word["x1"]) - float(word["x0"]),
                    )
                )
            pages.append(
                PageContent(page_number=number, viewport_height=height, runs=runs)
            )
    logger.info("Read %d pages from %s", len(pages), pdf_path)
    return pages


def load_document(
    path: Path, reconstructor: GeometryReconstructor | None = None
) -> ExtractedTextContent:
    """Load any supported document by file suffix.

    Args:
        path: Source file.
        reconstructor: Reconstructor for positional sources.

    Returns:
        Extracted text content.

    Raises:
        ValueError: If the suffix is not supported.
    """
    suffix = path.suffix.lower()
    reconstructor = reconstructor or GeometryReconstructor()
    if suffix == ".pdf":
        return reconstructor.reconstruct(pages_from_pdf(path))
    if suffix not in SUPPORTED_SUFFIXES:
        raise ValueError(f"Unsupported document type: {path.suffix}")

    text = path.read_text(encoding="utf-8")
    if suffix == ".json":
        return load_glyph_json(text, reconstructor)
    if suffix == ".csv":
        return load_csv(text)
    return load_text(text)
