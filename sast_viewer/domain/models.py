from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Literal

Severity = Literal["critical", "high", "medium", "low", "info"]
ReportFormat = Literal["sarif", "semgrep", "gitlab-sast"]

# Ordered most to least severe; the index is the sort rank.
SEVERITY_LEVELS: tuple[Severity, ...] = ("critical", "high", "medium", "low", "info")
REPORT_FORMATS: tuple[ReportFormat, ...] = ("sarif", "semgrep", "gitlab-sast")

UNKNOWN_RULE = "unknown-rule"
UNKNOWN_FILE = "unknown-file"


@dataclass(frozen=True)
class ProcessedResult:
    id: str
    rule_id: str
    rule_name: str
    message: str
    severity: Severity
    level: str
    file: str
    start_line: int | None = None
    end_line: int | None = None
    start_column: int | None = None
    end_column: int | None = None
    snippet: str | None = None
    description: str | None = None
    tags: list[str] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.severity not in SEVERITY_LEVELS:
            raise ValueError(f"Invalid severity {self.severity!r}")

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class ReportSummary:
    total_findings: int
    critical_count: int
    high_count: int
    medium_count: int
    low_count: int
    info_count: int
    files_affected: int
    tool_name: str
    format: ReportFormat
    tool_version: str | None = None
    timestamp: str | None = None
    severity_counts: dict[str, int] = field(default_factory=dict)

    def __post_init__(self) -> None:
        # The keyed map is always derived from the flat counts so both agree.
        self.severity_counts = {
            "critical": self.critical_count,
            "high": self.high_count,
            "medium": self.medium_count,
            "low": self.low_count,
            "info": self.info_count,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ReportSummary:
        """Rebuild a summary from its serialized form.

        ``severity_counts`` is optional in the input: older payloads only
        carry the flat ``*_count`` fields, and the map is re-derived from them.
        """
        counts = data.get("severity_counts") or {}

        def _count(level: str) -> int:
            flat = data.get(f"{level}_count")
            if flat is None:
                flat = counts.get(level, 0)
            return int(flat)

        return cls(
            total_findings=int(data.get("total_findings", 0)),
            critical_count=_count("critical"),
            high_count=_count("high"),
            medium_count=_count("medium"),
            low_count=_count("low"),
            info_count=_count("info"),
            files_affected=int(data.get("files_affected", 0)),
            tool_name=data.get("tool_name") or "Unknown Tool",
            format=data["format"],
            tool_version=data.get("tool_version"),
            timestamp=data.get("timestamp"),
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class UnifiedReport:
    format: ReportFormat
    results: list[ProcessedResult]
    summary: ReportSummary
    raw_data: Any = None

    def to_dict(self, include_raw: bool = False) -> dict[str, Any]:
        d: dict[str, Any] = {
            "format": self.format,
            "results": [r.to_dict() for r in self.results],
            "summary": self.summary.to_dict(),
        }
        if include_raw:
            d["raw_data"] = self.raw_data
        return d


@dataclass
class LineRange:
    file: str
    start_line: int | None = None
    end_line: int | None = None


@dataclass
class DuplicateGroup:
    id: str
    representative_result: ProcessedResult
    duplicates: list[ProcessedResult] = field(default_factory=list)
    occurrences: int = 1
    affected_files: list[str] = field(default_factory=list)
    line_ranges: list[LineRange] = field(default_factory=list)

    @property
    def severity(self) -> Severity:
        return self.representative_result.severity

    def all_results(self) -> list[ProcessedResult]:
        return [self.representative_result, *self.duplicates]

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
