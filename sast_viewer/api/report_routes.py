from __future__ import annotations

import json
import logging
from typing import Any

from fastapi import APIRouter, File, HTTPException, Query, UploadFile
from pydantic import BaseModel, Field

from sast_viewer.core.config import settings
from sast_viewer.core.security import format_file_size, safe_display_name, validate_report_upload
from sast_viewer.domain.errors import ReportParseError, ReportValidationError
from sast_viewer.domain.models import SEVERITY_LEVELS, UnifiedReport
from sast_viewer.domain.schemas import DeduplicationOptions
from sast_viewer.parsers.severity import calculate_severity_percentages, filter_by_severity
from sast_viewer.services.dedup_service import deduplicate_findings, get_group_locations, get_group_summary
from sast_viewer.services.report_service import ReportService, build_summary

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["reports"])

_report_service = ReportService()


# ── Response schemas ──────────────────────────────────────────────
class FormatInfo(BaseModel):
    format: str
    display_name: str


class ParseResponse(BaseModel):
    """A parsed report in the unified finding model."""

    filename: str
    format: str
    summary: dict[str, Any] = Field(..., description="Severity counts, file count and tool metadata.")
    severity_percentages: dict[str, int]
    findings: list[dict[str, Any]] = Field(..., description="Unified findings.")


class DeduplicateResponse(BaseModel):
    """Findings grouped into near-duplicate clusters, most severe first."""

    filename: str
    format: str
    summary: dict[str, Any]
    total_groups: int
    groups: list[dict[str, Any]]


# ── Helpers ───────────────────────────────────────────────────────
async def _read_report(upload: UploadFile) -> tuple[str, UnifiedReport]:
    name = safe_display_name(upload.filename or "")
    content = await upload.read()

    try:
        validate_report_upload(name, len(content))
    except ReportValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    try:
        data = json.loads(content.decode("utf-8-sig"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise HTTPException(
            status_code=400,
            detail=f"Failed to parse file. Please ensure it's a valid SARIF, Semgrep, or GitLab SAST JSON file. ({e})",
        )

    try:
        report = _report_service.detect_and_parse(data)
    except ReportParseError as e:
        raise HTTPException(status_code=400, detail=str(e))

    logger.info("Processed upload %s (%s)", name, format_file_size(len(content)), extra={"report_format": report.format})
    return name, report


# ── Endpoints ─────────────────────────────────────────────────────
@router.get(
    "/formats",
    response_model=list[FormatInfo],
    summary="List supported report formats",
)
def list_formats() -> list[dict[str, str]]:
    """Return the report formats that can be uploaded, in detection order."""
    return _report_service.supported_formats()


@router.post(
    "/reports/parse",
    response_model=ParseResponse,
    summary="Parse a scan report",
    response_description="Unified findings with summary counts",
)
async def parse_report(
    report: UploadFile = File(..., description="SARIF, Semgrep or GitLab SAST JSON file."),
    severity: list[str] | None = Query(None, description="Only return findings of these severities."),
) -> dict[str, Any]:
    """Upload a `.json` or `.sarif` scan report and return it normalized.

    The format is detected from the document structure, so the file name
    does not need to say which scanner produced it.
    """
    name, parsed = await _read_report(report)

    findings = parsed.results
    summary = parsed.summary
    if severity:
        unknown = [s for s in severity if s not in SEVERITY_LEVELS]
        if unknown:
            raise HTTPException(status_code=400, detail=f"Unknown severity: {', '.join(unknown)}")
        findings = filter_by_severity(findings, severity)
        summary = build_summary(findings, parsed.format, summary.tool_name, summary.tool_version)
        summary.timestamp = parsed.summary.timestamp

    return {
        "filename": name,
        "format": parsed.format,
        "summary": summary.to_dict(),
        "severity_percentages": calculate_severity_percentages(summary.severity_counts, summary.total_findings),
        "findings": [f.to_dict() for f in findings],
    }


@router.post(
    "/reports/deduplicate",
    response_model=DeduplicateResponse,
    summary="Group duplicate findings",
    response_description="Duplicate groups sorted by severity and occurrences",
)
async def deduplicate_report(
    report: UploadFile = File(..., description="SARIF, Semgrep or GitLab SAST JSON file."),
    group_by_rule_id: bool = Query(True),
    group_by_similar_message: bool = Query(True),
    similarity_threshold: float = Query(settings.DEDUP_SIMILARITY_THRESHOLD, ge=0.0, le=1.0),
) -> dict[str, Any]:
    """Upload a scan report and return its findings folded into duplicate groups."""
    name, parsed = await _read_report(report)

    opts = DeduplicationOptions(
        group_by_rule_id=group_by_rule_id,
        group_by_similar_message=group_by_similar_message,
        similarity_threshold=similarity_threshold,
    )
    groups = deduplicate_findings(parsed.results, opts)

    return {
        "filename": name,
        "format": parsed.format,
        "summary": parsed.summary.to_dict(),
        "total_groups": len(groups),
        "groups": [
            {**g.to_dict(), "summary": get_group_summary(g), "locations": get_group_locations(g)}
            for g in groups
        ],
    }
