"""Group near-identical findings so repeated issues show up once.

Findings are bucketed by an exact key (rule id + severity, optionally plus the
normalized message) and, when enabled, folded into an existing group whose
representative message is similar enough (Jaccard index over tokens).

Matching is first-match, not best-match: the first group clearing the
threshold wins. Cost is O(n * g) for g groups in a rule/severity bucket,
so O(n^2) in the worst case where every message is distinct.
"""

from __future__ import annotations

import logging
import re
import time
import uuid
from typing import Iterable

from sast_viewer.domain.models import DuplicateGroup, LineRange, ProcessedResult
from sast_viewer.domain.schemas import DeduplicationOptions
from sast_viewer.parsers.severity import severity_rank

logger = logging.getLogger(__name__)

_FILE_PATH = re.compile(r"[/\\][\w\-./\\]+\.\w+")
_LINE_NUMBER = re.compile(r"line\s*\d+", re.IGNORECASE)
_LINE_COL = re.compile(r":\d+:\d+")
_DOUBLE_QUOTED = re.compile(r'"[^"]*"')
_SINGLE_QUOTED = re.compile(r"'[^']*'")
_NUMBER = re.compile(r"\b\d+\b")
_WHITESPACE = re.compile(r"\s+")

MIN_TOKEN_LENGTH = 3


def normalize_message(message: str) -> str:
    """Strip the variable parts (paths, positions, literals) of a message."""
    s = message.lower()
    s = _FILE_PATH.sub("FILE_PATH", s)
    s = _LINE_NUMBER.sub("LINE_NUMBER", s)
    s = _LINE_COL.sub(":LINE:COL", s)
    s = _DOUBLE_QUOTED.sub("QUOTED_STRING", s)
    s = _SINGLE_QUOTED.sub("QUOTED_STRING", s)
    s = _NUMBER.sub("NUMBER", s)
    return _WHITESPACE.sub(" ", s).strip()


def tokenize(normalized: str) -> list[str]:
    return [t for t in normalized.split() if len(t) >= MIN_TOKEN_LENGTH]


def calculate_similarity(message1: str, message2: str) -> float:
    n1, n2 = normalize_message(message1), normalize_message(message2)
    if n1 == n2:
        return 1.0

    t1, t2 = set(tokenize(n1)), set(tokenize(n2))
    if not t1 or not t2:
        return 0.0
    return len(t1 & t2) / len(t1 | t2)


def get_group_key(result: ProcessedResult, opts: DeduplicationOptions) -> str:
    parts: list[str] = []
    if opts.group_by_rule_id:
        parts += [result.rule_id, result.severity]
    if not opts.group_by_similar_message:
        parts.append(normalize_message(result.message))
    return ":".join(parts)


def _find_similar_group(
    result: ProcessedResult,
    groups: Iterable[DuplicateGroup],
    threshold: float,
) -> DuplicateGroup | None:
    for group in groups:
        rep = group.representative_result
        if rep.rule_id != result.rule_id or rep.severity != result.severity:
            continue
        if calculate_similarity(result.message, rep.message) >= threshold:
            return group
    return None


def _generate_group_id() -> str:
    return f"group-{int(time.time() * 1000)}-{uuid.uuid4().hex[:9]}"


def deduplicate_findings(
    results: list[ProcessedResult],
    options: DeduplicationOptions | None = None,
) -> list[DuplicateGroup]:
    opts = options or DeduplicationOptions()
    groups: dict[str, DuplicateGroup] = {}

    for result in results:
        key = get_group_key(result, opts)
        group = groups.get(key)

        if group is None and opts.group_by_similar_message:
            group = _find_similar_group(result, groups.values(), opts.similarity_threshold)

        line_range = LineRange(file=result.file, start_line=result.start_line, end_line=result.end_line)
        if group is not None:
            group.duplicates.append(result)
            group.occurrences += 1
            if result.file not in group.affected_files:
                group.affected_files.append(result.file)
            group.line_ranges.append(line_range)
        else:
            groups[key] = DuplicateGroup(
                id=_generate_group_id(),
                representative_result=result,
                affected_files=[result.file],
                line_ranges=[line_range],
            )

    # most severe first, then most duplicated; sorted() is stable
    ordered = sorted(groups.values(), key=lambda g: (severity_rank(g.severity), -g.occurrences))

    logger.info("Deduplicated %d findings into %d groups", len(results), len(ordered))
    return ordered


def get_group_summary(group: DuplicateGroup) -> str:
    files = len(group.affected_files)
    n = group.occurrences
    if files == 1:
        return f"Found {n} time{'s' if n > 1 else ''} in {group.affected_files[0]}"
    return f"Found {n} times across {files} files"


def get_group_locations(group: DuplicateGroup) -> list[str]:
    by_file: dict[str, list[int]] = {}
    for r in group.line_ranges:
        lines = by_file.setdefault(r.file, [])
        if r.start_line:
            lines.append(r.start_line)

    out: list[str] = []
    for file, lines in by_file.items():
        uniq = sorted(set(lines))
        if not uniq:
            out.append(file)
        elif len(uniq) == 1:
            out.append(f"{file}:{uniq[0]}")
        else:
            out.append(f"{file}: lines {', '.join(str(n) for n in uniq)}")
    return out
