"""
Tests for the report exporters.

Verifies:
- CSV/HTML/PDF exports share one column projection
- Empty collections produce header-only files
- Export failures become an error notice, not an exception
- Commission exports lead with the top agency and agent
"""

import csv
import io
from datetime import datetime
from pathlib import Path
import sys

import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from core.models import PropertyDetails
from core.notifications import NoticeLevel, Notifier
from reporting.html_exporter import HTML_FOOTER
from reporting.pdf_exporter import PDF_FOOTER
from reporting import (
    PROPERTY_EXPORTERS,
    PROPERTY_REPORT_COLUMNS,
    CommissionReportExporter,
    CsvExporter,
    ExportFailure,
    ExportSuccess,
    HtmlExporter,
    PdfExporter,
    run_export,
)


GENERATED_AT = datetime(2026, 10, 18, 15, 4, 5)


def _read_csv(content: bytes):
    assert content.startswith(b"\xef\xbb\xbf")
    return list(csv.reader(io.StringIO(content.decode("utf-8-sig"))))


class TestColumns:

    def test_twenty_five_columns(self):
        assert len(PROPERTY_REPORT_COLUMNS) == 25
        assert PROPERTY_REPORT_COLUMNS[0].header == "Street Number"
        assert PROPERTY_REPORT_COLUMNS[-1].header == "Features"


class TestCsvExporter:

    def test_layout(self, sample_properties):
        rows = _read_csv(CsvExporter().render(sample_properties, generated_at=GENERATED_AT))
        assert rows[0] == ["Property Report"]
        assert rows[1] == ["Generated on: October 18th 2026, 3:04:05 pm"]
        assert rows[2] == ["Generated by xAI Property Management"]
        assert rows[3] == []
        assert rows[4] == ["Property Details"]
        assert len(rows[5]) == 25
        assert len(rows) == 6 + len(sample_properties)

    def test_row_cells(self, sample_properties):
        rows = _read_csv(CsvExporter().render(sample_properties, generated_at=GENERATED_AT))
        first = dict(zip(rows[5], rows[6]))
        assert first["Street Number"] == "12"
        assert first["Suburb"] == "Moggill QLD (4070)"
        assert first["Postcode"] == "N/A"
        assert first["Price"] == "$700,000"
        assert first["Sold Price"] == "N/A"
        assert first["Commission (%)"] == "2.5%"
        assert first["Commission Earned"] == "$17,500"
        assert first["Listed Date"] == "10/01/2026"
        assert first["Sold Date"] == "N/A"
        assert first["Features"] == "N/A"

    def test_zero_values(self, sample_properties):
        rows = _read_csv(CsvExporter().render(sample_properties, generated_at=GENERATED_AT))
        last = dict(zip(rows[5], rows[-1]))
        assert last["Price"] == "$0"
        assert last["Sold Price"] == "N/A"
        assert last["Commission (%)"] == "2%"
        assert last["Suburb"] == "Unknown"

    def test_empty_is_header_only(self):
        rows = _read_csv(CsvExporter().render([], generated_at=GENERATED_AT))
        assert len(rows) == 6
        assert rows[-1][0] == "Street Number"


class TestHtmlExporter:

    def test_document(self, sample_properties):
        html = HtmlExporter().render(sample_properties, generated_at=GENERATED_AT).decode("utf-8")
        assert "<h1>Property Report</h1>" in html
        assert "Generated on: October 18th 2026, 3:04:05 pm" in html
        assert html.count("<th>") == 25
        assert "Moggill QLD (4070)" in html
        assert "xAI Property Management - Confidential Report" in html

    def test_free_text_is_escaped(self):
        prop = PropertyDetails(id="x", agent_name="<b>Eve</b>")
        html = HtmlExporter().render([prop]).decode("utf-8")
        assert "&lt;b&gt;Eve&lt;/b&gt;" in html
        assert "<b>Eve</b>" not in html


class TestPdfExporter:

    def test_renders_pdf(self, sample_properties):
        content = PdfExporter().render(sample_properties, generated_at=GENERATED_AT)
        assert content.startswith(b"%PDF")

    def test_empty_collection(self):
        assert PdfExporter().render([]).startswith(b"%PDF")

    def test_footer_matches_html(self):
        assert PDF_FOOTER == HTML_FOOTER == "xAI Property Management - Confidential Report"


class TestRunExport:

    @pytest.mark.parametrize("fmt", ["pdf", "csv", "html"])
    def test_writes_file(self, sample_properties, tmp_path, fmt):
        notifier = Notifier()
        exporter = PROPERTY_EXPORTERS[fmt]()
        result = run_export(exporter, sample_properties, tmp_path / "out", notifier=notifier)
        assert isinstance(result, ExportSuccess)
        assert result.path == tmp_path / "out" / f"property_report.{fmt}"
        assert result.path.exists()
        assert result.rows == 10
        assert notifier.drain()[0].level == NoticeLevel.SUCCESS

    def test_failure_is_a_notice(self, sample_properties, tmp_path):
        class Broken:
            label = "PDF"
            filename = "property_report.pdf"
            media_type = "application/pdf"

            def render(self, properties, generated_at=None):
                raise RuntimeError("font missing")

        notifier = Notifier()
        result = run_export(Broken(), sample_properties, tmp_path, notifier=notifier)
        assert isinstance(result, ExportFailure)
        assert result.message == "font missing"
        assert not (tmp_path / "property_report.pdf").exists()
        notice = notifier.drain()[0]
        assert notice.level == NoticeLevel.ERROR
        assert notice.message == "Failed to export PDF"


class TestCommissionReport:

    def test_csv_summary_and_rows(self, sample_properties):
        exporter = CommissionReportExporter().for_format("csv")
        rows = _read_csv(exporter.render(sample_properties, generated_at=GENERATED_AT))
        assert rows[0] == ["Admin Commission Report", "Generated on: 18/10/2026, 15:04:05"]
        assert rows[1] == ["Top Agency", "harcourt success ($63,750)"]
        assert rows[2] == ["Top Agent", "Alice Smith ($63,750)"]
        assert rows[3] == []
        assert rows[4] == ["Property ID", "Address", "Agency", "Agent", "Commission Rate", "Price", "Status"]
        assert rows[5] == ["1", "12 Main St, Moggill", "harcourt success", "Alice Smith", "2.5%", "$700,000", "Unknown"]
        assert len(rows) == 5 + len(sample_properties)

    def test_overrides_change_rates_and_summary(self, sample_properties):
        exporter = CommissionReportExporter({"3": 10}).for_format("csv")
        rows = _read_csv(exporter.render(sample_properties, generated_at=GENERATED_AT))
        assert rows[1] == ["Top Agency", "ray white ($109,000)"]
        row = next(r for r in rows[5:] if r[0] == "3")
        assert row[4] == "10%"

    def test_empty_summary(self):
        rows = _read_csv(CommissionReportExporter().for_format("csv").render([], generated_at=GENERATED_AT))
        assert rows[1] == ["Top Agency", "None ($0)"]
        assert len(rows) == 5

    def test_pdf(self, sample_properties):
        exporter = CommissionReportExporter().for_format("pdf")
        assert exporter.filename == "commission_report.pdf"
        assert exporter.render(sample_properties).startswith(b"%PDF")

    def test_unknown_format(self):
        with pytest.raises(ValueError):
            CommissionReportExporter().for_format("xlsx")
