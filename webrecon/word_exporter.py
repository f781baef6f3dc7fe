"""
Structured Word Document Exporter
=================================
Renders an AggregateReport (plus crawl stats) as a DOCX document.

Sections:
- Cover page with run summary table
- Data sources (providers, API endpoints, keyword contexts)
- Markets (identified markets and matches)
- Methodology (links and data table summaries)
- Domain-specific findings
- Recommendations
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from .models import AggregateReport

logger = logging.getLogger(__name__)

_LINK_COLOR = (0x25, 0x63, 0xEB)
_MUTED_COLOR = (0x64, 0x74, 0x8B)


def export_docx(
    report: AggregateReport,
    filepath: str,
    *,
    stats: Optional[Dict[str, Any]] = None,
    max_detail_rows: int = 50,
) -> str:
    """
    Export an AggregateReport to a Word document.

    Args:
        report: Aggregated findings of one crawl
        filepath: Output .docx path
        stats: Optional crawl stats shown on the cover page
        max_detail_rows: Max rows per detail table

    Returns:
        Absolute path to the created file
    """
    from docx import Document
    from docx.shared import Pt
    from docx.enum.text import WD_ALIGN_PARAGRAPH
    from docx.enum.table import WD_TABLE_ALIGNMENT

    output_path = Path(filepath)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    doc = Document()

    # ── Configure base styles ──────────────────────────────────────
    style = doc.styles["Normal"]
    style.font.name = "Calibri"
    style.font.size = Pt(10)
    style.paragraph_format.space_after = Pt(4)

    # ── Cover Page ─────────────────────────────────────────────────
    title = doc.add_heading(f"{report.platform} Reconnaissance Report", level=0)
    title.alignment = WD_ALIGN_PARAGRAPH.CENTER

    stats = stats or {}
    summary_items = [
        ("Platform", report.platform),
        ("URL", report.url),
        ("Analysis Date", report.analysis_date),
        ("Authenticated", "Yes" if report.authenticated else "No"),
        ("Data Source Records", str(report.data_sources_total)),
        ("API Endpoints", str(len(report.api_endpoints))),
        ("Market Records", str(report.markets_total)),
        ("Pages Visited", str(stats.get("pages_visited", "N/A"))),
        ("Pages Failed", str(stats.get("pages_failed", 0))),
        ("Elapsed Time", f"{stats.get('elapsed_time', 0)}s"),
        ("Stop Reason", str(stats.get("stop_reason", "N/A"))),
    ]

    summary_table = doc.add_table(rows=len(summary_items), cols=2)
    summary_table.alignment = WD_TABLE_ALIGNMENT.CENTER
    for i, (label, value) in enumerate(summary_items):
        row = summary_table.rows[i]
        _cell_text(row.cells[0], label, bold=True, size=Pt(10))
        _cell_text(row.cells[1], value, size=Pt(10))

    doc.add_page_break()

    _render_data_sources(doc, report, max_detail_rows)
    _render_markets(doc, report, max_detail_rows)
    _render_methodology(doc, report, max_detail_rows)
    _render_domain_findings(doc, report)

    doc.add_heading("Recommendations", level=1)
    for rec in report.recommendations:
        doc.add_paragraph(rec, style="List Bullet")

    # ── Save ───────────────────────────────────────────────────────
    doc.save(str(output_path))
    logger.info(f"Exported DOCX to {output_path.absolute()}")
    return str(output_path.absolute())


# ---------------------------------------------------------------------------
# Section rendering
# ---------------------------------------------------------------------------

def _render_data_sources(doc, report: AggregateReport, max_rows: int) -> None:
    doc.add_heading("Data Sources", level=1)
    _render_bullets(doc, "Identified providers", report.providers)

    if report.api_endpoints:
        doc.add_heading("API Endpoints", level=2)
        _render_table(
            doc,
            ["Endpoint", "Status", "Page"],
            [[e.get("url", ""), str(e.get("status", "")), e.get("pageUrl", "")]
             for e in report.api_endpoints],
            max_rows,
        )

    if report.data_source_details:
        doc.add_heading("Details", level=2)
        rows = []
        for d in report.data_source_details:
            kind = d.get("type", "keyword")
            value = (d.get("context") or d.get("endpoint")
                     or d.get("imageSrc") or d.get("message") or "")
            rows.append([kind, d.get("source", ""), value, d.get("url", "")])
        _render_table(doc, ["Type", "Source", "Evidence", "Page"], rows, max_rows)


def _render_markets(doc, report: AggregateReport, max_rows: int) -> None:
    doc.add_heading("Markets", level=1)
    _render_bullets(doc, "Identified markets", report.markets)

    if report.market_details:
        rows = [[m.get("market", ""), m.get("element", ""), m.get("text", ""), m.get("url", "")]
                for m in report.market_details]
        _render_table(doc, ["Market", "Element", "Text", "Page"], rows, max_rows)


def _render_methodology(doc, report: AggregateReport, max_rows: int) -> None:
    from docx.shared import Pt, RGBColor

    doc.add_heading("Methodology", level=1)

    if report.methodology_links:
        doc.add_heading("Links", level=2)
        for link in report.methodology_links[:max_rows]:
            p = doc.add_paragraph(style="List Bullet")
            p.add_run(f"{link.get('text', '')}: ").bold = True
            url_run = p.add_run(link.get("url", ""))
            url_run.font.color.rgb = RGBColor(*_LINK_COLOR)
            url_run.font.size = Pt(9)

    if report.data_tables:
        doc.add_heading("Data Tables", level=2)
        rows = [[str(t.get("index", "")), ", ".join(t.get("headers", [])),
                 str(t.get("rowCount", 0)), t.get("url", "")]
                for t in report.data_tables]
        _render_table(doc, ["#", "Headers", "Rows", "Page"], rows, max_rows)

    if not report.methodology_links and not report.data_tables:
        _render_muted(doc, "No methodology links or data tables found.")


def _render_domain_findings(doc, report: AggregateReport) -> None:
    doc.add_heading("Domain Content", level=1)
    if report.has_shrimp_content:
        _render_bullets(doc, "Keywords found in context", report.shrimp_keywords_found)
    else:
        _render_muted(doc, "No domain keywords found in extracted contexts.")

    doc.add_heading("Summary", level=2)
    _render_bullets(doc, "Data types", report.data_types)
    p = doc.add_paragraph()
    p.add_run("Update frequency: ").bold = True
    p.add_run(report.update_frequency)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _render_bullets(doc, label: str, values: Sequence[str]) -> None:
    p = doc.add_paragraph()
    p.add_run(f"{label}: ").bold = True
    if not values:
        p.add_run("none")
        return
    for value in values:
        doc.add_paragraph(value, style="List Bullet")


def _render_muted(doc, text: str) -> None:
    from docx.shared import Pt, RGBColor

    p = doc.add_paragraph()
    run = p.add_run(text)
    run.font.italic = True
    run.font.size = Pt(9)
    run.font.color.rgb = RGBColor(*_MUTED_COLOR)


def _render_table(doc, headers: List[str], rows: List[List[str]], max_rows: int) -> None:
    """Render rows as a Word table with a bold header row."""
    from docx.shared import Pt
    from docx.enum.table import WD_TABLE_ALIGNMENT

    shown = rows[:max_rows]
    table = doc.add_table(rows=1 + len(shown), cols=len(headers))
    table.alignment = WD_TABLE_ALIGNMENT.LEFT
    table.style = "Table Grid"

    for i, header in enumerate(headers):
        _cell_text(table.rows[0].cells[i], header, bold=True, size=Pt(9))

    for row_idx, row_data in enumerate(shown):
        for col_idx, cell_text in enumerate(row_data[:len(headers)]):
            _cell_text(table.rows[row_idx + 1].cells[col_idx], cell_text[:300], size=Pt(9))

    if len(rows) > max_rows:
        _render_muted(doc, f"[... {len(rows) - max_rows} more rows truncated ...]")

    doc.add_paragraph()  # spacing after table


def _cell_text(cell, text: str, bold: bool = False, size=None) -> None:
    """Set cell text with formatting."""
    cell.text = text
    for paragraph in cell.paragraphs:
        for run in paragraph.runs:
            run.bold = bold
            if size:
                run.font.size = size
