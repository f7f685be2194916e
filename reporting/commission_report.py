"""
Admin Commission Report - CSV and PDF Export

Both files open with the top-earning agency and agent, followed by one
row per property with its effective commission rate.
"""

from datetime import datetime
from io import BytesIO
from typing import List, Optional, Sequence

from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.units import mm
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer
from xml.sax.saxutils import escape

from core.commission import RateOverrides, by_agency, by_agent, commission_totals, top_earner
from core.models import PropertyDetails
from utils.formatting import format_currency

from .columns import admin_commission_columns, header_row, project_rows
from .csv_exporter import write_rows
from .pdf_exporter import Palette, build_table, get_report_styles


REPORT_TITLE = "Admin Commission Report"


def _generated_on(generated_at: datetime) -> str:
    return "Generated on: " + generated_at.strftime("%d/%m/%Y, %H:%M:%S")


class _CommissionReport:
    def __init__(self, overrides: Optional[RateOverrides] = None):
        self.overrides = dict(overrides or {})
        self.columns = admin_commission_columns(self.overrides)

    def summary(self, properties: Sequence[PropertyDetails]) -> List[tuple[str, str]]:
        agency = top_earner(commission_totals(properties, by_agency, self.overrides))
        agent = top_earner(commission_totals(properties, by_agent, self.overrides))
        return [
            ("Top Agency", f"{agency.name} ({format_currency(agency.total)})"),
            ("Top Agent", f"{agent.name} ({format_currency(agent.total)})"),
        ]


class CommissionCsvExporter(_CommissionReport):
    label = "Commission CSV"
    filename = "admin_commission_report.csv"
    media_type = "text/csv"

    def render(self, properties: Sequence[PropertyDetails], generated_at: Optional[datetime] = None) -> bytes:
        generated_at = generated_at or datetime.now()
        rows: List[List[str]] = [[REPORT_TITLE, _generated_on(generated_at)]]
        rows.extend([label, value] for label, value in self.summary(properties))
        rows.append([])
        rows.append(header_row(self.columns))
        rows.extend(project_rows(self.columns, properties))
        return write_rows(rows)


class CommissionPdfExporter(_CommissionReport):
    label = "Commission PDF"
    filename = "commission_report.pdf"
    media_type = "application/pdf"

    PAGE_SIZE = landscape(A4)

    def __init__(self, overrides: Optional[RateOverrides] = None):
        super().__init__(overrides)
        self.styles = get_report_styles()

    def render(self, properties: Sequence[PropertyDetails], generated_at: Optional[datetime] = None) -> bytes:
        generated_at = generated_at or datetime.now()
        buffer = BytesIO()
        doc = SimpleDocTemplate(
            buffer,
            pagesize=self.PAGE_SIZE,
            leftMargin=12*mm,
            rightMargin=12*mm,
            topMargin=15*mm,
            bottomMargin=15*mm,
            title=REPORT_TITLE,
        )
        story: List = [
            Paragraph(REPORT_TITLE, self.styles['ReportTitle']),
            Paragraph(_generated_on(generated_at), self.styles['ReportMeta']),
        ]
        for label, value in self.summary(properties):
            story.append(Paragraph(escape(f"{label}: {value}"), self.styles['ReportMeta']))
        story.append(Spacer(1, 6*mm))
        story.append(build_table(self.columns, properties, self.styles, accent=Palette.COMMISSION_ACCENT))
        doc.build(story)
        return buffer.getvalue()


class CommissionReportExporter:
    """Both commission exports for one set of overrides."""

    def __init__(self, overrides: Optional[RateOverrides] = None):
        self.csv = CommissionCsvExporter(overrides)
        self.pdf = CommissionPdfExporter(overrides)

    def for_format(self, fmt: str):
        if fmt == "csv":
            return self.csv
        if fmt == "pdf":
            return self.pdf
        raise ValueError(f"Unsupported commission export format: {fmt}")
