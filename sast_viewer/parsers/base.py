from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable

from sast_viewer.domain.models import ProcessedResult, ReportFormat, ReportSummary


@dataclass
class ParsedReport:
    results: list[ProcessedResult]
    summary: ReportSummary


def create_summary(
    results: list[ProcessedResult],
    tool_name: str,
    tool_version: str | None,
    fmt: ReportFormat,
) -> ReportSummary:
    counts = {"critical": 0, "high": 0, "medium": 0, "low": 0, "info": 0}
    files: set[str] = set()
    for r in results:
        counts[r.severity] += 1
        files.add(r.file)

    return ReportSummary(
        total_findings=len(results),
        critical_count=counts["critical"],
        high_count=counts["high"],
        medium_count=counts["medium"],
        low_count=counts["low"],
        info_count=counts["info"],
        files_affected=len(files),
        tool_name=tool_name,
        tool_version=tool_version,
        format=fmt,
    )


def dig(obj: Any, *keys: str) -> Any:
    """Walk nested dicts, returning None as soon as a level is missing."""
    cur = obj
    for k in keys:
        if not isinstance(cur, dict):
            return None
        cur = cur.get(k)
    return cur


def as_str(value: Any) -> str | None:
    if value is None or value == "":
        return None
    return value if isinstance(value, str) else str(value)


def as_int(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return None


def as_list(value: Any) -> list[Any]:
    """A bare string is a single item, never a sequence of characters."""
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


def merge_tags(*sources: Any) -> list[str]:
    """Flatten tag sources (strings or lists) into an ordered, de-duplicated list."""
    seen: dict[str, None] = {}
    for src in sources:
        for tag in as_list(src):
            if tag is None or tag == "":
                continue
            seen.setdefault(str(tag), None)
    return list(seen)


def join_description(parts: Iterable[str | None], sep: str = "\n") -> str | None:
    text = sep.join(p for p in parts if p)
    return text or None
