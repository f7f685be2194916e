"""
Reporting module for the agency reports service.

Turns the filtered property collection and its metrics into chart series
and export files.

Usage:
    from reporting import PdfExporter, run_export

    result = run_export(PdfExporter(), properties, "reports")
    if isinstance(result, ExportSuccess):
        print(f"Report generated: {result.path}")

Exporters:
    PdfExporter      -> property_report.pdf
    CsvExporter      -> property_report.csv
    HtmlExporter     -> property_report.html
    CommissionReportExporter -> admin_commission_report.csv / commission_report.pdf
"""

from .columns import (
    ADMIN_COMMISSION_COLUMNS,
    PROPERTY_REPORT_COLUMNS,
    Column,
    admin_commission_columns,
    header_row,
    project_rows,
)
from .export import ExportFailure, ExportResult, ExportSuccess, run_export
from .pdf_exporter import PdfExporter
from .csv_exporter import CsvExporter
from .html_exporter import HtmlExporter
from .commission_report import (
    CommissionCsvExporter,
    CommissionPdfExporter,
    CommissionReportExporter,
)
from .charts import (
    ChartData,
    Dataset,
    build_all_series,
    build_average_price_series,
    build_commission_series,
    build_comparison_series,
    build_heatmap_series,
    build_price_trend_series,
)

PROPERTY_EXPORTERS = {
    "pdf": PdfExporter,
    "csv": CsvExporter,
    "html": HtmlExporter,
}

__all__ = [
    # Columns
    "ADMIN_COMMISSION_COLUMNS",
    "PROPERTY_REPORT_COLUMNS",
    "Column",
    "admin_commission_columns",
    "header_row",
    "project_rows",
    # Export
    "ExportFailure",
    "ExportResult",
    "ExportSuccess",
    "run_export",
    "PdfExporter",
    "CsvExporter",
    "HtmlExporter",
    "PROPERTY_EXPORTERS",
    "CommissionCsvExporter",
    "CommissionPdfExporter",
    "CommissionReportExporter",
    # Charts
    "ChartData",
    "Dataset",
    "build_all_series",
    "build_average_price_series",
    "build_commission_series",
    "build_comparison_series",
    "build_heatmap_series",
    "build_price_trend_series",
]
