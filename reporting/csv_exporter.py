"""
Property Report - CSV Export

Layout (one cell per line unless noted):
    Property Report
    Generated on: <timestamp>
    Generated by xAI Property Management
    <blank>
    Property Details
    <25 column headers>
    <one row per property>
"""

import csv
import io
from datetime import datetime
from typing import Iterable, List, Optional, Sequence

from core.models import PropertyDetails
from utils.formatting import format_timestamp

from .columns import PROPERTY_REPORT_COLUMNS, Column, header_row, project_rows


REPORT_TITLE = "Property Report"
GENERATED_BY = "Generated by xAI Property Management"
SECTION_TITLE = "Property Details"


def write_rows(rows: Iterable[List[str]]) -> bytes:
    """Serialise rows as UTF-8 CSV with a BOM so spreadsheet apps detect the encoding."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerows(rows)
    return buffer.getvalue().encode("utf-8-sig")


class CsvExporter:
    label = "CSV"
    filename = "property_report.csv"
    media_type = "text/csv"

    def __init__(self, columns: Sequence[Column] = PROPERTY_REPORT_COLUMNS):
        self.columns = tuple(columns)

    def rows(self, properties: Sequence[PropertyDetails], generated_at: Optional[datetime] = None) -> List[List[str]]:
        generated_at = generated_at or datetime.now()
        return [
            [REPORT_TITLE],
            [f"Generated on: {format_timestamp(generated_at)}"],
            [GENERATED_BY],
            [],
            [SECTION_TITLE],
            header_row(self.columns),
            *project_rows(self.columns, properties),
        ]

    def render(self, properties: Sequence[PropertyDetails], generated_at: Optional[datetime] = None) -> bytes:
        return write_rows(self.rows(properties, generated_at))
