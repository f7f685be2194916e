"""
Export results and the shared export runner.

Exporters render bytes; run_export() writes them to disk and turns any
failure into an ExportFailure plus an error notice, so a broken export
never disturbs the report state.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Iterable, Optional, Protocol, Sequence, Union

from core.models import PropertyDetails
from core.notifications import Notifier


logger = logging.getLogger(__name__)


# =============================================================================
# Export Result Types
# =============================================================================


@dataclass
class ExportSuccess:
    """Returned when the file was written."""
    path: Path
    rows: int
    media_type: str


@dataclass
class ExportFailure:
    """Returned when rendering or writing failed."""
    filename: str
    message: str


ExportResult = Union[ExportSuccess, ExportFailure]


class Exporter(Protocol):
    label: str
    filename: str
    media_type: str

    def render(self, properties: Sequence[PropertyDetails], generated_at: Optional[datetime] = None) -> bytes: ...


def run_export(
    exporter: Exporter,
    properties: Iterable[PropertyDetails],
    destination: Union[str, Path],
    notifier: Optional[Notifier] = None,
    generated_at: Optional[datetime] = None,
) -> ExportResult:
    """
    Render and write one export file.

    Args:
        exporter: PDF, CSV, HTML or commission exporter.
        properties: Rows to export; an empty collection gives a header-only file.
        destination: Directory the file is written into.
        notifier: Receives a success or error notice.
        generated_at: Timestamp printed in the file (defaults to now).

    Returns:
        ExportSuccess with the written path, or ExportFailure.
    """
    notifier = notifier or Notifier()
    try:
        rows = list(properties)
        content = exporter.render(rows, generated_at=generated_at)
        directory = Path(destination)
        directory.mkdir(parents=True, exist_ok=True)
        path = directory / exporter.filename
        path.write_bytes(content)
    except Exception as e:
        logger.exception("%s export error", exporter.label)
        notifier.error(f"Failed to export {exporter.label}")
        return ExportFailure(filename=exporter.filename, message=str(e))

    logger.info("Exported %d rows to %s", len(rows), path)
    notifier.success(f"{exporter.label} exported successfully")
    return ExportSuccess(path=path, rows=len(rows), media_type=exporter.media_type)
