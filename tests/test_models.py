import pytest

from sast_viewer.domain.models import DuplicateGroup, LineRange, ProcessedResult, ReportSummary


def _result(**kw):
    base = dict(id="1", rule_id="r", rule_name="r", message="m", severity="low", level="note", file="a.py")
    base.update(kw)
    return ProcessedResult(**base)


def test_invalid_severity_rejected():
    with pytest.raises(ValueError):
        _result(severity="warning")


def test_summary_map_derived_from_flat_counts():
    s = ReportSummary(
        total_findings=3,
        critical_count=1,
        high_count=0,
        medium_count=2,
        low_count=0,
        info_count=0,
        files_affected=1,
        tool_name="T",
        format="sarif",
    )
    assert s.severity_counts == {"critical": 1, "high": 0, "medium": 2, "low": 0, "info": 0}


def test_summary_from_dict_without_severity_map():
    s = ReportSummary.from_dict(
        {
            "total_findings": 2,
            "critical_count": 0,
            "high_count": 1,
            "medium_count": 0,
            "low_count": 1,
            "info_count": 0,
            "files_affected": 2,
            "tool_name": "Semgrep",
            "format": "semgrep",
        }
    )
    assert s.severity_counts["high"] == 1
    assert s.severity_counts["low"] == 1
    assert sum(s.severity_counts.values()) == s.total_findings


def test_summary_from_dict_with_only_severity_map():
    s = ReportSummary.from_dict(
        {"total_findings": 1, "severity_counts": {"critical": 1}, "format": "gitlab-sast"}
    )
    assert s.critical_count == 1
    assert s.info_count == 0
    assert s.tool_name == "Unknown Tool"


def test_summary_round_trips_through_dict():
    s = ReportSummary(1, 0, 1, 0, 0, 0, 1, "CodeQL", "sarif", tool_version="2.15.0")
    assert ReportSummary.from_dict(s.to_dict()) == s


def test_duplicate_group_helpers():
    rep, dup = _result(id="1"), _result(id="2", file="b.py")
    g = DuplicateGroup(
        id="group-1",
        representative_result=rep,
        duplicates=[dup],
        occurrences=2,
        affected_files=["a.py", "b.py"],
        line_ranges=[LineRange("a.py", 1, 1), LineRange("b.py")],
    )
    assert g.severity == "low"
    assert g.all_results() == [rep, dup]
    d = g.to_dict()
    assert d["representative_result"]["id"] == "1"
    assert d["line_ranges"][1] == {"file": "b.py", "start_line": None, "end_line": None}
