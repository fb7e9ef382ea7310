from __future__ import annotations

from pathlib import PurePath

from sast_viewer.core.config import settings
from sast_viewer.domain.errors import ReportValidationError


def has_valid_extension(filename: str) -> bool:
    name = (filename or "").lower()
    return any(name.endswith(ext) for ext in settings.ALLOWED_EXTENSIONS)


def validate_report_upload(filename: str, size: int) -> None:
    """Reject uploads by extension and size before any JSON decoding."""
    if not has_valid_extension(filename):
        raise ReportValidationError("Please upload a JSON or SARIF file")
    if size > settings.max_upload_bytes:
        raise ReportValidationError(f"File size exceeds {settings.MAX_UPLOAD_MB}MB limit")


def safe_display_name(filename: str) -> str:
    # never echo client-supplied directories back
    return PurePath((filename or "").replace("\\", "/")).name


def is_json_content(content: str) -> bool:
    s = (content or "").strip()
    if not s:
        return False
    return s[0] in "{[" and s[-1] in "}]"


def format_file_size(size: int) -> str:
    if size == 0:
        return "0 Bytes"
    units = ["Bytes", "KB", "MB", "GB"]
    value = float(size)
    i = 0
    while value >= 1024 and i < len(units) - 1:
        value /= 1024
        i += 1
    return f"{round(value, 2):g} {units[i]}"
