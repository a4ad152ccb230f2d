"""
Printable PDF listing of a user's commitments, built with reportlab.

Provides ``PdfExporter``, a stateful builder that lays out the batch
header, a summary band, the commitments table and a signature line, then
returns the document bytes for streaming via ``StreamingResponse``.

Usage example::

    exporter = PdfExporter(title="Commitments 2026", header_fields=labels)
    exporter.add_header()
    exporter.add_summary({"Records": 12, "Total amount": 15400.0})
    exporter.add_table(headers, rows)
    exporter.add_signature("Marko Markovic")
    file_bytes = exporter.build()

Design notes
------------
- A4 landscape: the commitments table is wide.
- Each page carries a footer with page number and generation timestamp.
- Cell text goes through ``Paragraph``, so it is XML-escaped first.
"""

from __future__ import annotations

import io
from datetime import datetime, timezone
from typing import Any, Sequence
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER, TA_LEFT, TA_RIGHT
from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.styles import ParagraphStyle
from reportlab.lib.units import cm, mm
from reportlab.platypus import (
    HRFlowable,
    Paragraph,
    SimpleDocTemplate,
    Spacer,
    Table,
    TableStyle,
)

from commitments.config import get_settings
from commitments.schemas.records import Header, Record
from commitments.services.sequence_service import display_number

_HEX_PRIMARY = "#3b82f6"
_HEX_DARK = "#1E3A5F"
_HEX_LIGHT_GREY = "#F3F4F6"
_HEX_MID_GREY = "#E5E7EB"
_HEX_TEXT = "#111827"
_HEX_WHITE = "#FFFFFF"
_HEX_DANGER = "#ef4444"

_HEADER_LABELS: dict[str, str] = {
    "cumulative_reason_code": "Reason code",
    "budget_year": "Budget year",
    "budget_user_id": "Budget user",
    "currency_code": "Currency",
    "treasury": "Treasury",
}

_TABLE_HEADERS: tuple[str, ...] = (
    "No.",
    "Recipient",
    "Place",
    "Account",
    "Invoice",
    "Invoice date",
    "Due date",
    "Program",
    "Econ. class.",
    "Amount",
    "Urgent",
)

# Column widths in cm; sum fits A4 landscape minus margins
_TABLE_WIDTHS: tuple[float, ...] = (1.2, 4.6, 2.6, 3.2, 2.6, 2.2, 2.2, 1.8, 2.0, 2.4, 1.4)


def _color(hex_color: str) -> Any:
    return colors.HexColor(hex_color)


class PdfExporter:
    """Stateful PDF builder for the commitments listing.

    Args:
        title: Document title shown in the header band.
        header_fields: Ordered ``{label: value}`` pairs printed under the title.
    """

    def __init__(self, title: str, header_fields: dict[str, str] | None = None) -> None:
        self._title = title
        self._header_fields = header_fields or {}
        self._app_name = get_settings().APP_NAME

        self._buffer = io.BytesIO()
        self._doc = SimpleDocTemplate(
            self._buffer,
            pagesize=landscape(A4),
            rightMargin=1.5 * cm,
            leftMargin=1.5 * cm,
            topMargin=2 * cm,
            bottomMargin=2 * cm,
            title=title,
            author=self._app_name,
        )

        self._story: list[Any] = []
        self._gen_ts = datetime.now(timezone.utc).strftime("%d.%m.%Y %H:%M UTC")
        self._styles = self._build_styles()

    # -----------------------------------------------------------------------
    # Style factory
    # -----------------------------------------------------------------------

    def _build_styles(self) -> dict[str, ParagraphStyle]:
        def style(name: str, font: str, size: int, color: str, align: int, **extra: Any) -> ParagraphStyle:
            return ParagraphStyle(
                name,
                fontName=font,
                fontSize=size,
                textColor=_color(color),
                alignment=align,
                **extra,
            )

        return {
            "title": style("title", "Helvetica-Bold", 16, _HEX_WHITE, TA_CENTER),
            "subtitle": style("subtitle", "Helvetica", 9, _HEX_WHITE, TA_CENTER),
            "field_key": style("field_key", "Helvetica-Bold", 8, _HEX_DARK, TA_RIGHT),
            "field_value": style("field_value", "Helvetica", 8, _HEX_TEXT, TA_LEFT),
            "kpi_label": style("kpi_label", "Helvetica-Bold", 8, _HEX_DARK, TA_CENTER),
            "kpi_value": style("kpi_value", "Helvetica-Bold", 12, _HEX_PRIMARY, TA_CENTER),
            "section_heading": style(
                "section_heading", "Helvetica-Bold", 11, _HEX_DARK, TA_LEFT, spaceBefore=8, spaceAfter=4
            ),
            "table_header": style("table_header", "Helvetica-Bold", 7, _HEX_WHITE, TA_CENTER),
            "table_cell": style("table_cell", "Helvetica", 7, _HEX_TEXT, TA_LEFT),
            "table_cell_right": style("table_cell_right", "Helvetica", 7, _HEX_TEXT, TA_RIGHT),
            "urgent": style("urgent", "Helvetica-Bold", 7, _HEX_DANGER, TA_CENTER),
            "signature": style("signature", "Helvetica", 9, _HEX_TEXT, TA_RIGHT),
        }

    # -----------------------------------------------------------------------
    # Page template (footer)
    # -----------------------------------------------------------------------

    def _on_page(self, canvas: Any, doc: Any) -> None:
        canvas.saveState()
        footer_text = f"{self._app_name}  |  Generated: {self._gen_ts}  |  Page {doc.page}"
        canvas.setFont("Helvetica", 7)
        canvas.setFillColor(_color(_HEX_MID_GREY))
        canvas.drawCentredString(self._doc.pagesize[0] / 2, 1.2 * cm, footer_text)
        canvas.restoreState()

    def _para(self, text: Any, style: str) -> Paragraph:
        return Paragraph(escape("" if text is None else str(text)), self._styles[style])

    # -----------------------------------------------------------------------
    # Public builder methods
    # -----------------------------------------------------------------------

    def add_header(self) -> "PdfExporter":
        """Add the title band and the batch header fields."""
        page_width = self._doc.width
        band = Table(
            [
                [self._para(self._title, "title")],
                [self._para(f"Generated: {self._gen_ts}", "subtitle")],
            ],
            colWidths=[page_width],
        )
        band.setStyle(
            TableStyle([
                ("BACKGROUND", (0, 0), (0, 0), _color(_HEX_PRIMARY)),
                ("BACKGROUND", (0, 1), (0, 1), _color(_HEX_DARK)),
                ("TOPPADDING", (0, 0), (-1, -1), 8),
                ("BOTTOMPADDING", (0, 0), (-1, -1), 8),
                ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
            ])
        )
        self._story.append(band)
        self._story.append(Spacer(1, 4 * mm))

        if self._header_fields:
            rows = [
                [self._para(f"{k}:", "field_key"), self._para(v, "field_value")]
                for k, v in self._header_fields.items()
            ]
            fields = Table(rows, colWidths=[3.5 * cm, page_width - 3.5 * cm])
            fields.setStyle(
                TableStyle([
                    ("BACKGROUND", (0, 0), (-1, -1), _color(_HEX_LIGHT_GREY)),
                    ("GRID", (0, 0), (-1, -1), 0.25, _color(_HEX_MID_GREY)),
                    ("TOPPADDING", (0, 0), (-1, -1), 3),
                    ("BOTTOMPADDING", (0, 0), (-1, -1), 3),
                ])
            )
            self._story.append(fields)
            self._story.append(Spacer(1, 6 * mm))
        return self

    def add_summary(self, kpis: dict[str, Any]) -> "PdfExporter":
        """Add a one-row band of labelled totals; floats print with 2 decimals."""
        if not kpis:
            return self
        labels = [self._para(label, "kpi_label") for label in kpis]
        values = [
            self._para(f"{v:,.2f}" if isinstance(v, float) else v, "kpi_value")
            for v in kpis.values()
        ]
        col_width = self._doc.width / len(kpis)
        band = Table([labels, values], colWidths=[col_width] * len(kpis))
        band.setStyle(
            TableStyle([
                ("BACKGROUND", (0, 0), (-1, 0), _color("#EFF6FF")),
                ("BACKGROUND", (0, 1), (-1, 1), _color("#DBEAFE")),
                ("BOX", (0, 0), (-1, -1), 0.5, _color(_HEX_PRIMARY)),
                ("INNERGRID", (0, 0), (-1, -1), 0.25, _color(_HEX_MID_GREY)),
                ("TOPPADDING", (0, 0), (-1, -1), 5),
                ("BOTTOMPADDING", (0, 0), (-1, -1), 5),
            ])
        )
        self._story.append(band)
        self._story.append(Spacer(1, 6 * mm))
        return self

    def add_table(
        self,
        headers: Sequence[str],
        rows: Sequence[Sequence[Any]],
        col_widths: Sequence[float] | None = None,
        numeric_cols: set[int] | None = None,
        flag_cols: set[int] | None = None,
        section_title: str = "Commitments",
    ) -> "PdfExporter":
        """Add the data table.

        Args:
            headers: Column header strings.
            rows: Data rows matching *headers* in length.
            col_widths: Column widths in cm; evenly distributed when omitted.
            numeric_cols: Right-aligned columns; floats print with 2 decimals.
            flag_cols: Columns printed in the highlighted "urgent" style.
            section_title: Heading above the table.
        """
        numeric_cols = numeric_cols or set()
        flag_cols = flag_cols or set()
        self._story.append(self._para(section_title, "section_heading"))
        self._story.append(HRFlowable(width="100%", thickness=1, color=_color(_HEX_PRIMARY)))
        self._story.append(Spacer(1, 3 * mm))

        if col_widths is not None:
            widths = [w * cm for w in col_widths]
        else:
            widths = [self._doc.width / len(headers)] * len(headers)

        data: list[list[Any]] = [[self._para(h, "table_header") for h in headers]]
        for row in rows:
            cells = []
            for ci, value in enumerate(row):
                if ci in flag_cols:
                    cells.append(self._para(value, "urgent"))
                elif ci in numeric_cols:
                    text = f"{value:,.2f}" if isinstance(value, float) else value
                    cells.append(self._para(text, "table_cell_right"))
                else:
                    cells.append(self._para(value, "table_cell"))
            data.append(cells)

        table = Table(data, colWidths=widths, repeatRows=1)
        style_cmds: list[tuple[Any, ...]] = [
            ("BACKGROUND", (0, 0), (-1, 0), _color(_HEX_DARK)),
            ("GRID", (0, 0), (-1, -1), 0.25, _color(_HEX_MID_GREY)),
            ("TOPPADDING", (0, 0), (-1, -1), 3),
            ("BOTTOMPADDING", (0, 0), (-1, -1), 3),
            ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
        ]
        for ri in range(2, len(data), 2):
            style_cmds.append(("BACKGROUND", (0, ri), (-1, ri), _color(_HEX_LIGHT_GREY)))
        table.setStyle(TableStyle(style_cmds))
        self._story.append(table)
        self._story.append(Spacer(1, 4 * mm))
        return self

    def add_signature(self, display_name: str) -> "PdfExporter":
        """Add the signature line; nothing is added for a blank name."""
        if display_name.strip():
            self._story.append(Spacer(1, 12 * mm))
            self._story.append(self._para("_" * 40, "signature"))
            self._story.append(self._para(display_name.strip(), "signature"))
        return self

    def build(self) -> bytes:
        """Render the document and return its bytes. Do not reuse the instance."""
        self._doc.build(
            self._story,
            onFirstPage=self._on_page,
            onLaterPages=self._on_page,
        )
        self._buffer.seek(0)
        return self._buffer.read()


def build_commitments_pdf(header: Header, records: list[Record], display_name: str = "") -> bytes:
    """Render the full commitments listing for one user."""
    exporter = PdfExporter(
        title=f"Commitments {header.budget_year}".strip(),
        header_fields={label: getattr(header, name) for name, label in _HEADER_LABELS.items()},
    )
    exporter.add_header()
    exporter.add_summary(
        {
            "Records": len(records),
            "Urgent": sum(1 for r in records if r.item.urgent_payment),
            f"Total amount ({header.currency_code or '-'})": float(sum(r.item.amount for r in records)),
        }
    )
    rows = [
        [
            display_number(record, index),
            record.recipient,
            record.recipient_place,
            record.account_number,
            record.invoice_number,
            record.invoice_date,
            record.due_date,
            record.item.program_code,
            record.item.economic_classification_code,
            float(record.item.amount),
            "URGENT" if record.item.urgent_payment else "",
        ]
        for index, record in enumerate(records)
    ]
    exporter.add_table(
        _TABLE_HEADERS,
        rows,
        col_widths=_TABLE_WIDTHS,
        numeric_cols={9},
        flag_cols={10},
    )
    exporter.add_signature(display_name)
    return exporter.build()
