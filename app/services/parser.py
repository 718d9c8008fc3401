# =============================================================================
# PDF Parser — Docling
# =============================================================================
#
# Turns the FK benefits PDF into an ordered list of structural elements
# (headings, paragraphs, tables) annotated with page numbers and the
# heading they sit under. The chunker consumes this.
#
# Benefit documents lean heavily on tables (amounts, income ceilings,
# percentages per benefit), so table structure extraction is on and tables
# are exported as markdown, which LLMs read reliably.
#
# Docling is imported lazily: loading its models takes seconds and the
# API process only needs it when a worker or script actually parses.
# =============================================================================

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from app.config import settings

logger = logging.getLogger(__name__)


@dataclass
class ParsedElement:
    """One paragraph, heading or table from the PDF."""

    text: str  # markdown for tables
    page_number: int  # 1-indexed, 0 when docling has no provenance
    element_type: str  # "text", "table", or "heading"
    section_title: str | None = None
    level: int = 0


@dataclass
class ParsedDocument:
    elements: list[ParsedElement] = field(default_factory=list)
    page_count: int = 0
    filename: str = ""


_converter = None


def _get_converter():
    """Lazily initialize and cache the Docling DocumentConverter."""
    global _converter
    if _converter is None:
        from docling.datamodel.base_models import InputFormat
        from docling.datamodel.pipeline_options import PdfPipelineOptions
        from docling.document_converter import DocumentConverter, PdfFormatOption

        logger.info("Initializing Docling DocumentConverter (first use)...")

        pipeline_options = PdfPipelineOptions()
        pipeline_options.do_table_structure = True
        # FK publishes born-digital PDFs; OCR only slows parsing down
        pipeline_options.do_ocr = False

        _converter = DocumentConverter(
            format_options={
                InputFormat.PDF: PdfFormatOption(pipeline_options=pipeline_options),
            }
        )
    return _converter


def parse_pdf(file_path: str, display_name: str | None = None) -> ParsedDocument:
    """
    Parse a PDF into elements in reading order.

    Args:
        file_path: Path to the PDF on disk.
        display_name: Name recorded on the result (defaults to the file name;
            uploads are stored under a generated name).

    Raises:
        FileNotFoundError: If the file does not exist.
        RuntimeError: If Docling fails to convert the document.
    """
    from docling_core.types.doc.labels import DocItemLabel

    path = Path(file_path)
    if not path.exists():
        raise FileNotFoundError(f"PDF not found: {file_path}")

    name = display_name or path.name or settings.default_source_name
    logger.info("Parsing PDF: %s", name)

    try:
        result = _get_converter().convert(str(path))
    except Exception as exc:
        raise RuntimeError(f"Docling failed to parse '{name}': {exc}") from exc

    text_labels = (
        DocItemLabel.TEXT,
        DocItemLabel.LIST_ITEM,
        DocItemLabel.CAPTION,
        DocItemLabel.FOOTNOTE,
    )

    elements: list[ParsedElement] = []
    current_section: str | None = None
    pages: set[int] = set()

    for item, level in result.document.iterate_items():
        page_no = item.prov[0].page_no if getattr(item, "prov", None) else 0
        pages.add(page_no)
        label = getattr(item, "label", None)

        if label in (DocItemLabel.SECTION_HEADER, DocItemLabel.TITLE):
            text = getattr(item, "text", "").strip()
            if not text:
                continue
            current_section = text
            element_type = "heading"
        elif label == DocItemLabel.TABLE:
            text = _table_to_markdown(item)
            if not text:
                continue
            element_type = "table"
        elif label in text_labels:
            text = getattr(item, "text", "").strip()
            if not text:
                continue
            element_type = "text"
        else:
            continue

        elements.append(ParsedElement(
            text=text,
            page_number=page_no,
            element_type=element_type,
            section_title=current_section,
            level=level,
        ))

    page_count = max(pages - {0}, default=0)

    logger.info(
        "Parsed '%s': %d elements (%d tables), %d pages",
        name,
        len(elements),
        sum(1 for e in elements if e.element_type == "table"),
        page_count,
    )
    return ParsedDocument(elements=elements, page_count=page_count, filename=name)


def _table_to_markdown(table_item: object) -> str:
    """Docling table → markdown via pandas, else its plain text."""
    if hasattr(table_item, "export_to_dataframe"):
        try:
            return table_item.export_to_dataframe().to_markdown(index=False)
        except Exception as exc:
            logger.warning("Table export to DataFrame failed: %s", exc)
    text = getattr(table_item, "text", "")
    return text.strip() if text else ""
