"""Severity normalization shared by all report parsers.

Every scanner speaks its own severity dialect (SARIF levels, CVSS-like
``security-severity`` scores, Semgrep ERROR/WARNING/INFO, GitLab's
Critical..Unknown). Everything funnels into the five levels of
``SEVERITY_LEVELS``; unknown input degrades to ``info`` rather than failing.
"""

from __future__ import annotations

from typing import Any, Iterable, TypeVar

from sast_viewer.domain.models import SEVERITY_LEVELS, Severity

# Inclusive lower bounds, checked from the top.
SECURITY_SEVERITY_THRESHOLDS: tuple[tuple[float, Severity], ...] = (
    (9.0, "critical"),
    (7.0, "high"),
    (4.0, "medium"),
    (1.0, "low"),
)

_SYNONYMS: dict[str, Severity] = {
    "critical": "critical",
    "blocker": "critical",
    "high": "high",
    "major": "high",
    "error": "high",
    "medium": "medium",
    "moderate": "medium",
    "warning": "medium",
    "low": "low",
    "minor": "low",
}

_DISPLAY_NAMES: dict[str, str] = {
    "critical": "Critical",
    "high": "High",
    "medium": "Medium",
    "low": "Low",
    "info": "Info",
}

T = TypeVar("T")


def normalize_severity(raw: str | None) -> Severity:
    """Map a free-form severity string onto the five-level scale."""
    if not raw:
        return "info"
    return _SYNONYMS.get(str(raw).strip().lower(), "info")


def map_security_severity_score(score: float) -> Severity:
    """Map a CVSS-style 0-10 score; boundary values belong to the higher band."""
    for lower_bound, level in SECURITY_SEVERITY_THRESHOLDS:
        if score >= lower_bound:
            return level
    return "info"


def parse_security_severity(value: Any) -> float | None:
    """Read a ``security-severity`` property as a float.

    Scanners emit it as a string ("7.5") or a number. Missing, empty and
    unparseable values return None so callers move on to the next signal.
    """
    if value is None or value == "" or isinstance(value, bool):
        return None
    try:
        score = float(value)
    except (TypeError, ValueError):
        return None
    if score != score:  # NaN
        return None
    return score


def severity_rank(severity: str) -> int:
    try:
        return SEVERITY_LEVELS.index(severity)  # type: ignore[arg-type]
    except ValueError:
        return len(SEVERITY_LEVELS)


def compare_severity(a: str, b: str) -> int:
    return severity_rank(a) - severity_rank(b)


def get_severity_display_name(severity: str) -> str:
    return _DISPLAY_NAMES.get(severity, "Unknown")


def calculate_severity_percentages(counts: dict[str, int], total: int) -> dict[str, int]:
    if total == 0:
        return {level: 0 for level in SEVERITY_LEVELS}
    # round-half-up, as shown in report headers
    return {level: int((counts.get(level, 0) or 0) * 100 / total + 0.5) for level in SEVERITY_LEVELS}


def filter_by_severity(findings: Iterable[T], allowed: Iterable[str]) -> list[T]:
    allowed_set = set(allowed)
    if not allowed_set:
        return list(findings)
    return [f for f in findings if getattr(f, "severity") in allowed_set]


def group_by_severity(findings: Iterable[T]) -> dict[str, list[T]]:
    grouped: dict[str, list[T]] = {level: [] for level in SEVERITY_LEVELS}
    for f in findings:
        grouped.setdefault(getattr(f, "severity"), []).append(f)
    return grouped
