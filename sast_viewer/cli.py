#!/usr/bin/env python3
"""Summarize or de-duplicate a SARIF, Semgrep or GitLab SAST report.

Usage:
    sast-viewer summary -i scan.sarif
    sast-viewer severity-counts -i semgrep_output.json
    sast-viewer dedup -i gl-sast-report.json --threshold 0.9
"""

from __future__ import annotations

import argparse
import json
import sys
import time
from pathlib import Path
from typing import Any

from sast_viewer.core.config import settings
from sast_viewer.core.logging import setup_logging
from sast_viewer.core.security import validate_report_upload
from sast_viewer.domain.errors import ReportParseError, ReportValidationError
from sast_viewer.domain.models import ReportSummary, UnifiedReport
from sast_viewer.domain.schemas import DeduplicationOptions
from sast_viewer.services.dedup_service import deduplicate_findings, get_group_locations, get_group_summary
from sast_viewer.services.report_service import detect_and_parse


class CliError(Exception):
    pass


def load_report(path: str) -> UnifiedReport:
    p = Path(path)
    if not p.is_file():
        raise CliError(f"Failed to read input file: {path}")

    try:
        validate_report_upload(p.name, p.stat().st_size)
    except ReportValidationError as e:
        raise CliError(str(e))

    try:
        data = json.loads(p.read_text(encoding="utf-8-sig"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise CliError(f"Failed to parse JSON. The file doesn't appear to be valid JSON. ({e})")

    try:
        return detect_and_parse(data)
    except ReportParseError as e:
        raise CliError(f"Failed to parse report: {e}")


def format_tool_info(tool_name: str, tool_version: str | None = None, fmt: str | None = None) -> str:
    info = tool_name
    if tool_version:
        info += f" v{tool_version}"
    if fmt:
        info += f" ({fmt.upper()})"
    return info


def severity_counts(summary: ReportSummary) -> dict[str, int]:
    return {
        "critical": summary.critical_count,
        "high": summary.high_count,
        "medium": summary.medium_count,
        "low": summary.low_count,
        "info": summary.info_count,
    }


def cmd_summary(args: argparse.Namespace) -> dict[str, Any]:
    s = load_report(args.input).summary
    return {
        "timestamp": int(time.time()),
        "tool": format_tool_info(s.tool_name, s.tool_version, s.format),
        "total_findings": s.total_findings,
        "files_affected": s.files_affected,
        "severity": severity_counts(s),
    }


def cmd_severity_counts(args: argparse.Namespace) -> dict[str, int]:
    return severity_counts(load_report(args.input).summary)


def cmd_dedup(args: argparse.Namespace) -> dict[str, Any]:
    report = load_report(args.input)
    opts = DeduplicationOptions(
        group_by_rule_id=not args.no_rule_id,
        group_by_similar_message=not args.no_similar_message,
        similarity_threshold=args.threshold,
    )
    groups = deduplicate_findings(report.results, opts)
    return {
        "format": report.format,
        "total_findings": report.summary.total_findings,
        "total_groups": len(groups),
        "groups": [
            {
                "id": g.id,
                "rule_id": g.representative_result.rule_id,
                "severity": g.severity,
                "message": g.representative_result.message,
                "occurrences": g.occurrences,
                "summary": get_group_summary(g),
                "locations": get_group_locations(g),
            }
            for g in groups
        ],
    }


def _threshold(value: str) -> float:
    t = float(value)
    if not 0.0 <= t <= 1.0:
        raise argparse.ArgumentTypeError("threshold must be between 0 and 1")
    return t


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="sast-viewer",
        description="Summarize SARIF v2.1.0, Semgrep JSON or GitLab SAST JSON reports.",
    )
    sub = ap.add_subparsers(dest="command", required=True)

    p = sub.add_parser("summary", help="tool, totals and severity breakdown as JSON")
    p.add_argument("-i", "--input", required=True)
    p.set_defaults(func=cmd_summary)

    p = sub.add_parser("severity-counts", help="only the five severity counts")
    p.add_argument("-i", "--input", required=True)
    p.set_defaults(func=cmd_severity_counts)

    p = sub.add_parser("dedup", help="group near-duplicate findings")
    p.add_argument("-i", "--input", required=True)
    p.add_argument("--threshold", type=_threshold, default=settings.DEDUP_SIMILARITY_THRESHOLD)
    p.add_argument("--no-rule-id", action="store_true", help="do not key groups on rule id + severity")
    p.add_argument("--no-similar-message", action="store_true", help="exact normalized-message grouping only")
    p.set_defaults(func=cmd_dedup)

    return ap


def main(argv: list[str] | None = None) -> int:
    setup_logging(stream=sys.stderr)
    args = build_parser().parse_args(argv)

    try:
        output = args.func(args)
    except CliError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(json.dumps(output, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
