from __future__ import annotations

import re
from typing import Any

from sast_viewer.domain.errors import ReportParseError
from sast_viewer.domain.models import UNKNOWN_FILE, UNKNOWN_RULE, ProcessedResult, Severity
from .base import ParsedReport, as_int, as_str, create_summary, dig, join_description, merge_tags

FORMAT = "gitlab-sast"
TOOL_NAME = "GitLab SAST"

_SEMGREP_ID = re.compile(r"semgrep_id:([^:]+)")

# Scanner-native identifier types whose display name is used as a tag.
_NAMED_IDENTIFIER_TYPES = {
    "bandit_test_id",
    "eslint_rule_id",
    "flawfinder_func_name",
    "gosec_rule_id",
    "phpcs_security_audit_source",
}


def detect(data: Any) -> bool:
    if not isinstance(data, dict):
        return False
    version = data.get("version")
    vulns = data.get("vulnerabilities")
    if not (isinstance(version, str) and version and isinstance(vulns, list)):
        return False

    if vulns:
        first = vulns[0]
        return (
            isinstance(first, dict)
            and bool(first.get("id") and first.get("category"))
            and isinstance(first.get("scanner"), dict)
            and isinstance(first.get("location"), dict)
            and isinstance(first.get("identifiers"), list)
        )
    return isinstance(data.get("scan"), dict)


def parse(data: dict[str, Any]) -> ParsedReport:
    vulns = data.get("vulnerabilities") if isinstance(data, dict) else None
    if not isinstance(vulns, list):
        raise ReportParseError("GitLab SAST report has no 'vulnerabilities' array")

    tool_name = TOOL_NAME
    tool_version = as_str(data.get("version"))
    scanner = dig(data, "scan", "scanner")
    if isinstance(scanner, dict) and scanner:
        tool_name = f"{as_str(scanner.get('name')) or 'Unknown'} (GitLab)"
        tool_version = as_str(scanner.get("version")) or tool_version

    results = [_process_vulnerability(v, str(i)) for i, v in enumerate(vulns) if isinstance(v, dict)]
    return ParsedReport(results=results, summary=create_summary(results, tool_name, tool_version, FORMAT))


def _process_vulnerability(vuln: dict[str, Any], rid: str) -> ProcessedResult:
    location = vuln.get("location") if isinstance(vuln.get("location"), dict) else {}
    raw_severity = as_str(vuln.get("severity")) or "Unknown"
    rule_id = extract_rule_id(vuln)
    name = as_str(vuln.get("name")) or rule_id

    return ProcessedResult(
        id=rid,
        rule_id=rule_id,
        rule_name=name,
        message=as_str(vuln.get("message")) or name,
        severity=map_severity(raw_severity),
        level=raw_severity.lower(),
        file=as_str(location.get("file")) or UNKNOWN_FILE,
        start_line=as_int(location.get("start_line")),
        end_line=as_int(location.get("end_line")),
        start_column=as_int(location.get("start_column")),
        end_column=as_int(location.get("end_column")),
        snippet=as_str(vuln.get("raw_source_code_extract")),
        description=build_description(vuln),
        tags=extract_tags(vuln),
        metadata={
            "confidence": vuln.get("confidence"),
            "scanner": vuln.get("scanner"),
            "identifiers": vuln.get("identifiers"),
            "links": vuln.get("links"),
            "evidence": vuln.get("evidence"),
            "flags": vuln.get("flags"),
        },
    )


def map_severity(severity: str) -> Severity:
    # GitLab's vocabulary already matches ours; anything else is info.
    s = (severity or "").lower()
    if s in ("critical", "high", "medium", "low"):
        return s  # type: ignore[return-value]
    return "info"


def _identifiers(vuln: dict[str, Any]) -> list[dict[str, Any]]:
    return [i for i in vuln.get("identifiers") or [] if isinstance(i, dict)]


def extract_rule_id(vuln: dict[str, Any]) -> str:
    cve = as_str(vuln.get("cve"))
    if cve:
        m = _SEMGREP_ID.search(cve)
        return m.group(1) if m else cve

    identifiers = _identifiers(vuln)
    for ident in identifiers:
        if ident.get("type") == "semgrep_id" and as_str(ident.get("value")):
            return as_str(ident["value"])  # type: ignore[return-value]

    for ident in identifiers:
        kind = as_str(ident.get("type")) or ""
        if ("rule" in kind or "check" in kind or "id" in kind) and as_str(ident.get("value")):
            return as_str(ident["value"])  # type: ignore[return-value]

    return as_str(vuln.get("id")) or UNKNOWN_RULE


def extract_tags(vuln: dict[str, Any]) -> list[str]:
    tags: list[Any] = [vuln.get("category")]

    scanner_id = as_str(dig(vuln, "scanner", "id"))
    if scanner_id:
        tags.append(f"scanner:{scanner_id}")

    confidence = as_str(vuln.get("confidence"))
    if confidence and confidence != "Unknown":
        tags.append(f"confidence:{confidence.lower()}")

    for ident in _identifiers(vuln):
        kind = ident.get("type")
        if kind == "cwe":
            if as_str(ident.get("value")):
                tags.append(f"CWE-{ident['value']}")
        elif kind == "owasp":
            tags.append(ident.get("value"))
        elif kind in _NAMED_IDENTIFIER_TYPES:
            tags.append(ident.get("name"))

    for flag in vuln.get("flags") or []:
        if isinstance(flag, dict) and flag.get("type"):
            tags.append(f"flag:{flag['type']}")

    return merge_tags(tags)


def build_description(vuln: dict[str, Any]) -> str | None:
    parts: list[str | None] = [as_str(vuln.get("description"))]

    solution = as_str(vuln.get("solution"))
    if solution:
        parts += ["\n\nSolution:", solution]

    evidence = as_str(dig(vuln, "evidence", "summary"))
    if evidence:
        parts += ["\n\nEvidence:", evidence]

    links = [link for link in vuln.get("links") or [] if isinstance(link, dict) and link.get("url")]
    if links:
        parts.append("\n\nReferences:")
        for link in links:
            if link.get("name"):
                parts.append(f"- [{link['name']}]({link['url']})")
            else:
                parts.append(f"- {link['url']}")

    with_urls = [i for i in _identifiers(vuln) if i.get("url")]
    if with_urls:
        if not links:
            parts.append("\n\nReferences:")
        parts.extend(f"- [{i.get('name') or i.get('value')}]({i['url']})" for i in with_urls)

    return join_description(parts)
