"""
Property Report - PDF Export

Generates property_report.pdf from the filtered property collection.
Uses ReportLab for deterministic PDF generation.

Output Structure:
1. Title and generation timestamp
2. Property Details table (25 fixed-width columns)
3. Confidential footer on every page

The 25 columns need 395mm, so the report is laid out on A3 landscape.
"""

from datetime import datetime
from io import BytesIO
from typing import List, Optional, Sequence

from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER, TA_LEFT
from reportlab.lib.pagesizes import A3, landscape
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.pdfgen import canvas
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle
from xml.sax.saxutils import escape

from core.models import PropertyDetails
from utils.formatting import format_timestamp

from .columns import PROPERTY_REPORT_COLUMNS, Column, header_row, project_rows


REPORT_TITLE = "Property Report"
GENERATED_BY = "Generated by xAI Property Management"
PDF_FOOTER = "xAI Property Management - Confidential Report"


# =============================================================================
# Color Palette
# =============================================================================

class Palette:
    """Print-friendly palette; header rows use the report accent."""
    BLACK = colors.Color(0.1, 0.1, 0.1)
    CHARCOAL = colors.Color(0.2, 0.2, 0.22)
    GRAY = colors.Color(0.5, 0.5, 0.5)
    LIGHT_GRAY = colors.Color(0.85, 0.85, 0.85)
    PALE_GRAY = colors.Color(0.95, 0.95, 0.95)
    WHITE = colors.white

    ACCENT = colors.HexColor("#FF6384")
    COMMISSION_ACCENT = colors.HexColor("#3B82F6")


# =============================================================================
# Style Configuration
# =============================================================================

def get_report_styles():
    """Paragraph styles shared by the property and commission PDFs."""
    styles = getSampleStyleSheet()

    styles.add(ParagraphStyle(
        name='ReportTitle',
        parent=styles['Normal'],
        fontSize=20,
        leading=24,
        textColor=Palette.CHARCOAL,
        alignment=TA_LEFT,
        fontName='Helvetica-Bold',
        spaceAfter=4*mm,
    ))

    styles.add(ParagraphStyle(
        name='ReportMeta',
        parent=styles['Normal'],
        fontSize=10,
        leading=13,
        textColor=Palette.GRAY,
        alignment=TA_LEFT,
        fontName='Helvetica',
    ))

    styles.add(ParagraphStyle(
        name='TableHeader',
        parent=styles['Normal'],
        fontSize=6.5,
        leading=8,
        textColor=Palette.WHITE,
        fontName='Helvetica-Bold',
    ))

    styles.add(ParagraphStyle(
        name='TableCell',
        parent=styles['Normal'],
        fontSize=6.5,
        leading=8,
        textColor=Palette.BLACK,
        fontName='Helvetica',
    ))

    styles.add(ParagraphStyle(
        name='Footer',
        parent=styles['Normal'],
        fontSize=8,
        leading=10,
        textColor=Palette.GRAY,
        alignment=TA_CENTER,
        fontName='Helvetica',
    ))

    return styles


def build_table(
    columns: Sequence[Column],
    properties: Sequence[PropertyDetails],
    styles,
    accent: colors.Color = Palette.ACCENT,
) -> Table:
    """Header plus one row per property; cells wrap within the fixed widths."""
    header = [Paragraph(escape(h), styles['TableHeader']) for h in header_row(columns)]
    body = [
        [Paragraph(escape(cell), styles['TableCell']) for cell in row]
        for row in project_rows(columns, properties)
    ]
    table = Table([header, *body], colWidths=[c.width_mm * mm for c in columns], repeatRows=1)
    table.setStyle(TableStyle([
        ('BACKGROUND', (0, 0), (-1, 0), accent),
        ('VALIGN', (0, 0), (-1, -1), 'TOP'),
        ('GRID', (0, 0), (-1, -1), 0.5, Palette.LIGHT_GRAY),
        ('TOPPADDING', (0, 0), (-1, -1), 1.5*mm),
        ('BOTTOMPADDING', (0, 0), (-1, -1), 1.5*mm),
        ('LEFTPADDING', (0, 0), (-1, -1), 1*mm),
        ('RIGHTPADDING', (0, 0), (-1, -1), 1*mm),
        ('ROWBACKGROUNDS', (0, 1), (-1, -1), [Palette.WHITE, Palette.PALE_GRAY]),
    ]))
    return table


class PdfExporter:
    """
    Generates property_report.pdf.

    Usage:
        content = PdfExporter().render(properties)
    """

    label = "PDF"
    filename = "property_report.pdf"
    media_type = "application/pdf"

    PAGE_SIZE = landscape(A3)
    PAGE_WIDTH, PAGE_HEIGHT = PAGE_SIZE
    MARGIN_LEFT = 12*mm
    MARGIN_RIGHT = 12*mm
    MARGIN_TOP = 15*mm
    MARGIN_BOTTOM = 18*mm

    def __init__(self, columns: Sequence[Column] = PROPERTY_REPORT_COLUMNS):
        self.columns = tuple(columns)
        self.styles = get_report_styles()

    def render(self, properties: Sequence[PropertyDetails], generated_at: Optional[datetime] = None) -> bytes:
        """Build the PDF and return its bytes."""
        generated_at = generated_at or datetime.now()
        buffer = BytesIO()
        doc = SimpleDocTemplate(
            buffer,
            pagesize=self.PAGE_SIZE,
            leftMargin=self.MARGIN_LEFT,
            rightMargin=self.MARGIN_RIGHT,
            topMargin=self.MARGIN_TOP,
            bottomMargin=self.MARGIN_BOTTOM,
            title=REPORT_TITLE,
            author="xAI Property Management",
        )

        story: List = [
            Paragraph(REPORT_TITLE, self.styles['ReportTitle']),
            Paragraph(f"Generated on: {format_timestamp(generated_at)}", self.styles['ReportMeta']),
            Paragraph(GENERATED_BY, self.styles['ReportMeta']),
            Spacer(1, 8*mm),
            build_table(self.columns, properties, self.styles),
        ]

        doc.build(story, onFirstPage=self._draw_footer, onLaterPages=self._draw_footer)
        return buffer.getvalue()

    def _draw_footer(self, canvas_obj: canvas.Canvas, doc):
        """Confidential notice centred, page number right."""
        canvas_obj.saveState()
        canvas_obj.setFont('Helvetica', 8)
        canvas_obj.setFillColor(Palette.GRAY)
        canvas_obj.drawCentredString(self.PAGE_WIDTH / 2, 10*mm, PDF_FOOTER)
        canvas_obj.drawRightString(self.PAGE_WIDTH - self.MARGIN_RIGHT, 10*mm, f"{doc.page}")
        canvas_obj.restoreState()
