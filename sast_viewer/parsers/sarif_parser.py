from __future__ import annotations

import logging
from typing import Any

from sast_viewer.domain.errors import ReportParseError
from sast_viewer.domain.models import UNKNOWN_FILE, UNKNOWN_RULE, ProcessedResult, Severity
from .base import ParsedReport, as_int, as_str, create_summary, dig, merge_tags
from .severity import map_security_severity_score, normalize_severity, parse_security_severity

logger = logging.getLogger(__name__)

FORMAT = "sarif"


def detect(data: Any) -> bool:
    if not isinstance(data, dict):
        return False
    version = data.get("version")
    runs = data.get("runs")
    if not (isinstance(version, str) and version and isinstance(runs, list)):
        return False
    # every run must look like a SARIF run, otherwise fall through
    return all(
        isinstance(run, dict)
        and isinstance(dig(run, "tool", "driver"), dict)
        and isinstance(run.get("results"), list)
        for run in runs
    )


def parse(data: dict[str, Any]) -> ParsedReport:
    runs = data.get("runs") if isinstance(data, dict) else None
    if not isinstance(runs, list):
        raise ReportParseError("SARIF log has no 'runs' array")

    results: list[ProcessedResult] = []
    tool_name = "Unknown Tool"
    tool_version: str | None = None

    for run_index, run in enumerate(runs):
        driver = dig(run, "tool", "driver")
        if not isinstance(driver, dict):
            raise ReportParseError(f"SARIF run {run_index} has no tool.driver")

        # The last run decides the summary's tool attribution.
        tool_name = as_str(driver.get("name")) or "Unknown Tool"
        tool_version = as_str(driver.get("version"))

        run_results = run.get("results")
        for result_index, result in enumerate(run_results if isinstance(run_results, list) else []):
            if not isinstance(result, dict):
                continue
            results.append(_process_result(result, run, f"{run_index}-{result_index}"))

    return ParsedReport(results=results, summary=create_summary(results, tool_name, tool_version, FORMAT))


def _process_result(result: dict[str, Any], run: dict[str, Any], rid: str) -> ProcessedResult:
    rule_id = as_str(result.get("ruleId")) or UNKNOWN_RULE
    rule = find_rule(rule_id, run) or {}

    locations = result.get("locations")
    if not isinstance(locations, list):
        locations = []
    if len(locations) > 1:
        logger.debug("Result %s has %d locations; only the first is used", rid, len(locations))
    physical = dig(locations[0], "physicalLocation") if locations else None
    region = dig(physical, "region")
    if not isinstance(region, dict):
        region = {}

    message = as_str(dig(result, "message", "text")) or "No message provided"

    metadata: dict[str, Any] = {}
    for key in ("fingerprints", "partialFingerprints"):
        if result.get(key):
            metadata[key] = result[key]
    help_uri = as_str(rule.get("helpUri"))
    if help_uri:
        metadata["helpUri"] = help_uri

    return ProcessedResult(
        id=rid,
        rule_id=rule_id,
        rule_name=as_str(rule.get("name")) or as_str(dig(rule, "shortDescription", "text")) or rule_id,
        message=message,
        severity=determine_severity(result, rule),
        level=(as_str(result.get("level")) or "info").lower(),
        file=as_str(dig(physical, "artifactLocation", "uri")) or UNKNOWN_FILE,
        start_line=as_int(region.get("startLine")),
        end_line=as_int(region.get("endLine")),
        start_column=as_int(region.get("startColumn")),
        end_column=as_int(region.get("endColumn")),
        snippet=as_str(dig(region, "snippet", "text")),
        description=as_str(dig(rule, "fullDescription", "text")) or as_str(dig(rule, "help", "text")),
        tags=merge_tags(dig(rule, "properties", "tags")),
        metadata=metadata,
    )


def find_rule(rule_id: str, run: dict[str, Any]) -> dict[str, Any] | None:
    """Look the rule up in ``run.rules`` first, then ``run.tool.driver.rules``."""
    for rules in (run.get("rules"), dig(run, "tool", "driver", "rules")):
        if not isinstance(rules, list):
            continue
        for rule in rules:
            if isinstance(rule, dict) and rule.get("id") == rule_id:
                return rule
    return None


def determine_severity(result: dict[str, Any], rule: dict[str, Any]) -> Severity:
    score = parse_security_severity(dig(result, "properties", "security-severity"))
    if score is not None:
        return map_security_severity_score(score)

    score = parse_security_severity(dig(rule, "properties", "security-severity"))
    if score is not None:
        return map_security_severity_score(score)

    return normalize_severity(as_str(result.get("level")) or "info")
