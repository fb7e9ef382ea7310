from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

from sast_viewer.domain.errors import UnsupportedFormatError
from sast_viewer.domain.models import ProcessedResult, ReportFormat, ReportSummary, UnifiedReport
from sast_viewer.parsers.base import create_summary
from sast_viewer.parsers.registry import ParserRegistry, build_parser_registry

logger = logging.getLogger(__name__)

_registry = build_parser_registry()


class ReportService:
    """
    Orchestrates: sniff the report format → run that parser → unified report.
    """

    def __init__(self, registry: ParserRegistry | None = None):
        self.parsers = registry or _registry

    def detect_format(self, data: Any) -> ReportFormat | None:
        handler = self.parsers.detect(data)
        return handler.format if handler else None

    def detect_and_parse(self, data: Any) -> UnifiedReport:
        handler = self.parsers.detect(data)
        if handler is None:
            logger.info("Rejected report: no known format matched")
            raise UnsupportedFormatError()

        parsed = handler.parse(data)
        summary = parsed.summary
        summary.format = handler.format
        summary.timestamp = datetime.now(timezone.utc).isoformat()

        logger.info(
            "Parsed %s report: %d findings in %d files",
            handler.display_name,
            summary.total_findings,
            summary.files_affected,
            extra={"report_format": handler.format},
        )
        return UnifiedReport(format=handler.format, results=parsed.results, summary=summary, raw_data=data)

    def get_format_display_name(self, fmt: str) -> str:
        handler = self.parsers.by_format(fmt)
        return handler.display_name if handler else "Unknown"

    def supported_formats(self) -> list[dict[str, str]]:
        return [{"format": h.format, "display_name": h.display_name} for h in self.parsers.handlers]


_default_service = ReportService()


def detect_format(data: Any) -> ReportFormat | None:
    return _default_service.detect_format(data)


def detect_and_parse(data: Any) -> UnifiedReport:
    """Detect the report format of already-decoded JSON and parse it.

    Raises ``UnsupportedFormatError`` (naming SARIF, Semgrep and GitLab SAST)
    when no format matches.
    """
    return _default_service.detect_and_parse(data)


def get_format_display_name(fmt: str) -> str:
    return _default_service.get_format_display_name(fmt)


def build_summary(
    results: list[ProcessedResult],
    fmt: ReportFormat,
    tool_name: str = "Unknown Tool",
    tool_version: str | None = None,
) -> ReportSummary:
    """Re-derive a summary for an arbitrary (e.g. filtered) result list."""
    return create_summary(results, tool_name, tool_version, fmt)
