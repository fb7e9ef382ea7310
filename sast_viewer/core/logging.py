"""JSON line logging for the API and the CLI.

Each record becomes one JSON object:

    ts             UTC ISO-8601 time of the record
    level, logger  standard record fields
    msg            the formatted message
    report_format  "sarif" / "semgrep" / "gitlab-sast", when the caller
                   passes it via ``extra={"report_format": ...}``
    exc            formatted traceback, only for ``logger.exception``

The API logs to stdout. The CLI logs to stderr so its JSON result on stdout
can be piped straight into ``jq``.
"""

from __future__ import annotations

import json
import logging
import os
import sys
from datetime import datetime, timezone
from typing import TextIO


# Libraries whose INFO chatter would drown out report events.
QUIET_LOGGERS = ("uvicorn.access", "httpcore", "httpx", "multipart")


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: dict = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }

        report_format = getattr(record, "report_format", None)
        if report_format is not None:
            payload["report_format"] = report_format

        if record.exc_info and record.exc_info[0] is not None:
            payload["exc"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=str)


def setup_logging(stream: TextIO | None = None) -> None:
    """Route every logger through a single JSON handler.

    Level comes from ``LOG_LEVEL`` (unknown names fall back to INFO). Any
    handlers already on the root logger, uvicorn's included, are replaced.
    """
    level = getattr(logging, os.getenv("LOG_LEVEL", "INFO").upper(), logging.INFO)

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(JSONFormatter())

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
