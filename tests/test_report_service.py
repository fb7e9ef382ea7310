import pytest

from sast_viewer.domain.errors import UnsupportedFormatError
from sast_viewer.domain.models import SEVERITY_LEVELS, ProcessedResult
from sast_viewer.services.report_service import (
    ReportService,
    build_summary,
    detect_and_parse,
    detect_format,
    get_format_display_name,
)

MINIMAL_SARIF = {
    "version": "2.1.0",
    "runs": [
        {
            "tool": {"driver": {"name": "Tool"}},
            "results": [{"ruleId": "r", "message": {"text": "m"}}],
        }
    ],
}
MINIMAL_SEMGREP_NEW = {
    "version": "1.110.0",
    "results": [
        {
            "check_id": "a.b",
            "path": "x.py",
            "start": {"line": 1, "col": 1},
            "end": {"line": 1, "col": 2},
            "extra": {"message": "m", "severity": "INFO"},
        }
    ],
    "errors": [],
}
MINIMAL_SEMGREP_LEGACY = {
    "results": [{"check_id": "a.b", "path": "x.py", "line": 1, "column": 1, "severity": "INFO"}],
    "errors": [],
}
MINIMAL_SEMGREP_EMPTY = {"results": [], "errors": [], "paths": {"scanned": []}}
MINIMAL_GITLAB = {
    "version": "15.0.0",
    "vulnerabilities": [
        {"id": "1", "category": "sast", "scanner": {"id": "s"}, "location": {"file": "a"}, "identifiers": []},
        {"id": "2", "category": "sast", "scanner": {"id": "s"}, "location": {"file": "b"}, "identifiers": []},
    ],
}
MINIMAL_GITLAB_EMPTY = {"version": "15.0.0", "vulnerabilities": [], "scan": {"type": "sast"}}


@pytest.mark.parametrize(
    "data, fmt, total",
    [
        (MINIMAL_SARIF, "sarif", 1),
        (MINIMAL_SEMGREP_NEW, "semgrep", 1),
        (MINIMAL_SEMGREP_LEGACY, "semgrep", 1),
        (MINIMAL_SEMGREP_EMPTY, "semgrep", 0),
        (MINIMAL_GITLAB, "gitlab-sast", 2),
        (MINIMAL_GITLAB_EMPTY, "gitlab-sast", 0),
    ],
)
def test_detects_and_parses_each_format(data, fmt, total):
    assert detect_format(data) == fmt

    report = detect_and_parse(data)
    assert report.format == fmt
    assert report.summary.format == fmt
    assert report.summary.total_findings == total
    assert len(report.results) == total
    assert report.summary.timestamp is not None


@pytest.mark.parametrize("data", [{"foo": "bar"}, [], None, {"version": "2.1.0"}, {"results": []}])
def test_unrecognized_input_is_rejected(data):
    assert detect_format(data) is None
    with pytest.raises(UnsupportedFormatError) as exc:
        detect_and_parse(data)
    msg = str(exc.value)
    assert "SARIF" in msg and "Semgrep" in msg and "GitLab SAST" in msg


def test_sarif_checked_before_semgrep():
    # a document carrying both shapes resolves to the first registered format
    data = {**MINIMAL_SARIF, "results": MINIMAL_SEMGREP_NEW["results"], "errors": []}
    assert detect_format(data) == "sarif"


def test_severity_counts_sum_to_total(sarif_log, semgrep_new, gitlab_report):
    for data in (sarif_log, semgrep_new, gitlab_report):
        s = detect_and_parse(data).summary
        flat = s.critical_count + s.high_count + s.medium_count + s.low_count + s.info_count
        assert flat == s.total_findings
        assert sum(s.severity_counts.values()) == s.total_findings


def test_every_result_has_a_closed_severity(sarif_log, semgrep_new, semgrep_legacy, gitlab_report):
    for data in (sarif_log, semgrep_new, semgrep_legacy, gitlab_report):
        for r in detect_and_parse(data).results:
            assert r.severity in SEVERITY_LEVELS


def test_raw_data_kept_but_not_serialized_by_default(semgrep_new):
    report = detect_and_parse(semgrep_new)
    assert report.raw_data is semgrep_new
    assert "raw_data" not in report.to_dict()
    assert report.to_dict(include_raw=True)["raw_data"] is semgrep_new


def test_display_names():
    assert get_format_display_name("sarif") == "SARIF"
    assert get_format_display_name("semgrep") == "Semgrep"
    assert get_format_display_name("gitlab-sast") == "GitLab SAST"
    assert get_format_display_name("xml") == "Unknown"


def test_supported_formats_in_detection_order():
    assert [f["format"] for f in ReportService().supported_formats()] == ["sarif", "semgrep", "gitlab-sast"]


def _finding(severity, file):
    return ProcessedResult(id="x", rule_id="r", rule_name="r", message="m", severity=severity, level=severity, file=file)


def test_build_summary_rederives_counts():
    results = [_finding("high", "a.py"), _finding("high", "b.py"), _finding("low", "a.py")]
    s = build_summary(results, "semgrep")
    assert s.total_findings == 3
    assert s.high_count == 2
    assert s.low_count == 1
    assert s.files_affected == 2
    assert s.tool_name == "Unknown Tool"
    assert s.severity_counts["high"] == 2


@pytest.mark.parametrize(
    "data, fmt",
    [
        ({"version": "15.0.0", "vulnerabilities": [], "scan": {}}, "gitlab-sast"),
        ({"results": [], "errors": [], "paths": {}}, "semgrep"),
        (
            {
                "version": "15.0.0",
                "vulnerabilities": [
                    {"id": "1", "category": "sast", "scanner": {}, "location": {}, "identifiers": []}
                ],
            },
            "gitlab-sast",
        ),
        ({"version": "2.1.0", "runs": [{"tool": {"driver": {}}, "results": []}]}, "sarif"),
    ],
)
def test_empty_objects_count_as_present(data, fmt):
    assert detect_format(data) == fmt
    assert detect_and_parse(data).format == fmt


def test_malformed_sarif_region_does_not_escape(sarif_log):
    sarif_log["runs"][0]["results"][0]["locations"][0]["physicalLocation"]["region"] = [1]
    report = detect_and_parse(sarif_log)
    assert report.results[0].file == "src/db.js"
    assert report.results[0].start_line is None
