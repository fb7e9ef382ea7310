"""Error taxonomy for report ingestion."""

from __future__ import annotations

SUPPORTED_FORMATS_HINT = "Please provide a valid SARIF, Semgrep, or GitLab SAST JSON file."


class ReportParseError(ValueError):
    """A report matched a format but is missing structure the parser needs."""


class UnsupportedFormatError(ReportParseError):
    """None of the known report formats matched the payload."""

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or f"Unsupported format. {SUPPORTED_FORMATS_HINT}")


class ReportValidationError(ValueError):
    """An uploaded file was rejected before JSON decoding."""
