from __future__ import annotations

import re
from typing import Any

from sast_viewer.domain.errors import ReportParseError
from sast_viewer.domain.models import UNKNOWN_FILE, UNKNOWN_RULE, ProcessedResult, Severity
from .base import ParsedReport, as_int, as_list, as_str, create_summary, dig, merge_tags
from .severity import map_security_severity_score, normalize_severity, parse_security_severity

FORMAT = "semgrep"
TOOL_NAME = "Semgrep"

# Semgrep 1.107.0 switched results to start/end position objects.
NEW_FORMAT_MIN_VERSION = (1, 107)


def detect(data: Any) -> bool:
    if not isinstance(data, dict):
        return False
    results = data.get("results")
    if not isinstance(results, list):
        return False

    if results:
        first = results[0]
        if not isinstance(first, dict):
            return False
        legacy_position = "line" in first and "column" in first
        new_position = _has_position_objects(first)
        has_severity = bool(first.get("severity") or dig(first, "extra", "severity"))
        return bool(first.get("check_id") and first.get("path")) and (legacy_position or new_position) and has_severity

    # An empty run has nothing per-result to fingerprint.
    return isinstance(data.get("errors"), list) and (data.get("paths") is not None or "skipped_rules" in data)


def parse(data: dict[str, Any]) -> ParsedReport:
    results_raw = data.get("results") if isinstance(data, dict) else None
    if not isinstance(results_raw, list):
        raise ReportParseError("Semgrep output has no 'results' array")

    results = [_process_result(r, str(i)) for i, r in enumerate(results_raw) if isinstance(r, dict)]

    version = as_str(data.get("version"))
    label = "new format" if is_new_semgrep_format(data) else "legacy format"
    tool_name = f"{TOOL_NAME} v{version} ({label})" if version else f"{TOOL_NAME} ({label})"

    return ParsedReport(results=results, summary=create_summary(results, tool_name, version, FORMAT))


def is_new_semgrep_format(data: dict[str, Any]) -> bool:
    """Classify the output shape. Only the summary's tool label depends on it."""
    results = data.get("results") or []
    if any(_has_position_objects(r) for r in results if isinstance(r, dict)):
        return True

    if "skipped_rules" in data:
        return True

    version = as_str(data.get("version"))
    if version:
        parts = [_leading_int(chunk) for chunk in version.split(".")]
        if len(parts) >= 3:
            major, minor = parts[0], parts[1]
            if major > NEW_FORMAT_MIN_VERSION[0] or (
                major == NEW_FORMAT_MIN_VERSION[0] and minor >= NEW_FORMAT_MIN_VERSION[1]
            ):
                return True

    return False


def _leading_int(chunk: str) -> int:
    m = re.match(r"\s*(\d+)", chunk)
    return int(m.group(1)) if m else 0


def _has_position_objects(result: dict[str, Any]) -> bool:
    start, end = result.get("start"), result.get("end")
    return isinstance(start, dict) and isinstance(end, dict) and "line" in start and "col" in start


def _process_result(result: dict[str, Any], rid: str) -> ProcessedResult:
    extra = result.get("extra") if isinstance(result.get("extra"), dict) else {}
    metadata = extract_metadata(result)
    start_line, end_line, start_col, end_col = extract_positions(result)

    rule_id = as_str(result.get("check_id")) or UNKNOWN_RULE
    message = as_str(result.get("message")) or as_str(extra.get("message")) or "No message provided"
    level = as_str(result.get("severity")) or as_str(extra.get("severity")) or "INFO"

    passthrough = {k: v for k, v in extra.items() if k != "metadata"}
    return ProcessedResult(
        id=rid,
        rule_id=rule_id,
        rule_name=rule_id.split(".")[-1] or rule_id,
        message=message,
        severity=determine_severity(result, metadata),
        level=level.lower(),
        file=as_str(result.get("path")) or UNKNOWN_FILE,
        start_line=start_line,
        end_line=end_line,
        start_column=start_col,
        end_column=end_col,
        snippet=as_str(extra.get("lines")),
        description=build_description(result, metadata, message),
        tags=extract_tags(metadata),
        metadata={
            **metadata,
            **passthrough,
            "fingerprint": extra.get("fingerprint"),
            "engine_kind": extra.get("engine_kind"),
            "validation_state": extra.get("validation_state"),
            "fix": extra.get("fix"),
        },
    )


def extract_positions(result: dict[str, Any]) -> tuple[int | None, int | None, int | None, int | None]:
    start, end = result.get("start"), result.get("end")
    if isinstance(start, dict) and isinstance(end, dict):
        return as_int(start.get("line")), as_int(end.get("line")), as_int(start.get("col")), as_int(end.get("col"))

    line = as_int(result.get("line"))
    end_line = as_int(result.get("end_line")) or line
    return line, end_line, as_int(result.get("column")), as_int(result.get("end_column"))


def extract_metadata(result: dict[str, Any]) -> dict[str, Any]:
    """Legacy output keeps metadata beside ``extra``; newer output nests it.

    When both exist the nested ``extra.metadata`` wins key by key.
    """
    direct = result.get("metadata") if isinstance(result.get("metadata"), dict) else {}
    nested = dig(result, "extra", "metadata")
    return {**direct, **(nested if isinstance(nested, dict) else {})}


def determine_severity(result: dict[str, Any], metadata: dict[str, Any]) -> Severity:
    score = parse_security_severity(metadata.get("security-severity"))
    if score is not None:
        return map_security_severity_score(score)

    impact = (as_str(metadata.get("impact")) or "").upper()
    likelihood = (as_str(metadata.get("likelihood")) or "").upper()
    if impact and likelihood:
        return map_impact_likelihood(impact, likelihood)

    confidence = (as_str(metadata.get("confidence")) or "").upper()
    if confidence:
        return map_confidence(confidence)

    extra_severity = as_str(dig(result, "extra", "severity"))
    if extra_severity:
        return normalize_severity(extra_severity)

    direct = as_str(result.get("severity"))
    if direct:
        return normalize_severity(direct)

    return "info"


def map_impact_likelihood(impact: str, likelihood: str) -> Severity:
    # Check order matters: HIGH dominates MEDIUM, which dominates LOW.
    impact, likelihood = impact.upper(), likelihood.upper()
    if impact == "HIGH" and likelihood == "HIGH":
        return "critical"
    if impact == "HIGH" or likelihood == "HIGH":
        return "high"
    if impact == "MEDIUM" or likelihood == "MEDIUM":
        return "medium"
    if impact == "LOW" or likelihood == "LOW":
        return "low"
    return "info"


def map_confidence(confidence: str) -> Severity:
    return {"HIGH": "high", "MEDIUM": "medium", "LOW": "low"}.get(confidence.upper(), "info")


def extract_tags(metadata: dict[str, Any]) -> list[str]:
    tags: list[Any] = []
    tags += as_list(metadata.get("category"))
    tags += as_list(metadata.get("subcategory"))
    tags += as_list(metadata.get("technology"))
    tags += as_list(metadata.get("vulnerability_class"))
    # cwe/owasp show up both as lists and as a single string
    tags += as_list(metadata.get("cwe"))
    tags += as_list(metadata.get("owasp"))

    if metadata.get("cwe2021_top25") or metadata.get("cwe2021-top25"):
        tags.append("cwe2021-top25")
    if metadata.get("cwe2022_top25") or metadata.get("cwe2022-top25"):
        tags.append("cwe2022-top25")

    confidence = as_str(metadata.get("confidence"))
    if confidence:
        tags.append(f"confidence:{confidence.lower()}")

    bandit_code = as_str(metadata.get("bandit-code"))
    if bandit_code:
        tags.append(f"bandit:{bandit_code}")

    return merge_tags(tags)


def build_description(result: dict[str, Any], metadata: dict[str, Any], message: str) -> str:
    parts: list[str] = [message]

    meta_desc = as_str(metadata.get("description"))
    if meta_desc and meta_desc != message:
        parts.append(f"\n{meta_desc}")

    fix = as_str(dig(result, "extra", "fix"))
    if fix:
        parts.append("\n\nSuggested fix:")
        parts.append(f"```\n{fix}\n```")

    asvs = metadata.get("asvs")
    if isinstance(asvs, dict) and asvs:
        parts.append("\n\nASVS Reference:")
        if asvs.get("control_id"):
            parts.append(f"- Control: {asvs['control_id']}")
        if asvs.get("section"):
            parts.append(f"- Section: {asvs['section']}")
        if asvs.get("control_url"):
            parts.append(f"- URL: {asvs['control_url']}")

    references = [r for r in as_list(metadata.get("references")) if r]
    if references:
        parts.append("\n\nReferences:")
        parts.extend(f"- {ref}" for ref in references)

    rule_source = as_str(metadata.get("source_rule_url")) or as_str(metadata.get("source-rule-url"))
    if rule_source:
        parts.append(f"\n\nRule source: {rule_source}")

    rule_url = as_str(dig(metadata, "semgrep.dev", "rule", "url"))
    if rule_url:
        parts.append(f"\n\nSemgrep rule: {rule_url}")

    shortlink = as_str(metadata.get("shortlink"))
    if shortlink:
        parts.append(f"\n\nShort link: {shortlink}")

    return "\n".join(parts)
