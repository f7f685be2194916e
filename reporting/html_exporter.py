"""
Property Report - HTML Export

Standalone styled document rendered with Jinja2. Autoescaping is on, so
free-text fields (agent names, features) cannot inject markup.
"""

from datetime import datetime
from pathlib import Path
from typing import Optional, Sequence

from jinja2 import Environment, FileSystemLoader, select_autoescape

from core.models import PropertyDetails
from utils.formatting import format_timestamp

from .columns import PROPERTY_REPORT_COLUMNS, Column, header_row, project_rows


TEMPLATES_DIR = Path(__file__).parent / "templates"
TEMPLATE_NAME = "property_report.html"

HTML_FOOTER = "xAI Property Management - Confidential Report"


def get_environment() -> Environment:
    return Environment(
        loader=FileSystemLoader(TEMPLATES_DIR),
        autoescape=select_autoescape(["html"]),
    )


class HtmlExporter:
    label = "HTML"
    filename = "property_report.html"
    media_type = "text/html"

    def __init__(self, columns: Sequence[Column] = PROPERTY_REPORT_COLUMNS):
        self.columns = tuple(columns)
        self.template = get_environment().get_template(TEMPLATE_NAME)

    def render(self, properties: Sequence[PropertyDetails], generated_at: Optional[datetime] = None) -> bytes:
        generated_at = generated_at or datetime.now()
        html = self.template.render(
            title="Property Report",
            generated_on=format_timestamp(generated_at),
            generated_by="Generated by xAI Property Management",
            section_title="Property Details",
            headers=header_row(self.columns),
            rows=project_rows(self.columns, properties),
            footer=HTML_FOOTER,
        )
        return html.encode("utf-8")
