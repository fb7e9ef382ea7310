from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable

from sast_viewer.domain.models import ReportFormat
from . import gitlab_sast_parser, sarif_parser, semgrep_parser
from .base import ParsedReport


@dataclass(frozen=True)
class FormatHandler:
    format: ReportFormat
    display_name: str
    detect: Callable[[Any], bool]
    parse: Callable[[dict], ParsedReport]


@dataclass
class ParserRegistry:
    handlers: list[FormatHandler]

    def detect(self, data: Any) -> FormatHandler | None:
        # first match wins; order is significant
        for h in self.handlers:
            if h.detect(data):
                return h
        return None

    def by_format(self, fmt: str) -> FormatHandler | None:
        for h in self.handlers:
            if h.format == fmt:
                return h
        return None


def build_parser_registry() -> ParserRegistry:
    return ParserRegistry(
        [
            FormatHandler("sarif", "SARIF", sarif_parser.detect, sarif_parser.parse),
            FormatHandler("semgrep", "Semgrep", semgrep_parser.detect, semgrep_parser.parse),
            FormatHandler("gitlab-sast", "GitLab SAST", gitlab_sast_parser.detect, gitlab_sast_parser.parse),
        ]
    )
