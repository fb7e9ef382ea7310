import copy
import json

import pytest
from fastapi.testclient import TestClient

from sast_viewer.main import app

_SARIF_LOG = {
    "version": "2.1.0",
    "$schema": "https://raw.githubusercontent.com/oasis-tcs/sarif-spec/master/Schemata/sarif-schema-2.1.0.json",
    "runs": [
        {
            "tool": {
                "driver": {
                    "name": "CodeQL",
                    "version": "2.15.0",
                    "rules": [
                        {
                            "id": "js/sql-injection",
                            "name": "SqlInjection",
                            "shortDescription": {"text": "Database query built from user-controlled sources"},
                            "fullDescription": {"text": "Building a query from user input is vulnerable."},
                            "properties": {"tags": ["security", "external/cwe/cwe-089"], "security-severity": "8.8"},
                        },
                        {
                            "id": "js/unused-local-variable",
                            "shortDescription": {"text": "Unused variable"},
                            "help": {"text": "Remove the variable."},
                        },
                    ],
                }
            },
            "results": [
                {
                    "ruleId": "js/sql-injection",
                    "level": "error",
                    "message": {"text": "This query depends on a user-provided value."},
                    "locations": [
                        {
                            "physicalLocation": {
                                "artifactLocation": {"uri": "src/db.js"},
                                "region": {
                                    "startLine": 12,
                                    "endLine": 14,
                                    "startColumn": 5,
                                    "endColumn": 30,
                                    "snippet": {"text": "db.query(sql)"},
                                },
                            }
                        }
                    ],
                },
                {
                    "ruleId": "js/unused-local-variable",
                    "level": "note",
                    "message": {"text": "Unused variable foo."},
                    "locations": [
                        {
                            "physicalLocation": {
                                "artifactLocation": {"uri": "src/app.js"},
                                "region": {"startLine": 3},
                            }
                        }
                    ],
                },
            ],
        }
    ],
}

_SEMGREP_NEW = {
    "version": "1.107.0",
    "results": [
        {
            "check_id": "python.lang.security.insecure-hash-algorithms.insecure-hash-algorithm-sha1",
            "path": "lib/crypto.py",
            "start": {"line": 47, "col": 16, "offset": 1278},
            "end": {"line": 47, "col": 52, "offset": 1314},
            "extra": {
                "message": "Detected SHA1 hash algorithm which is considered insecure.",
                "metadata": {
                    "category": "security",
                    "cwe": ["CWE-327: Use of a Broken or Risky Cryptographic Algorithm"],
                    "owasp": ["A03:2017 - Sensitive Data Exposure", "A02:2021 - Cryptographic Failures"],
                    "technology": ["python"],
                    "subcategory": ["vuln"],
                    "likelihood": "LOW",
                    "impact": "MEDIUM",
                    "confidence": "MEDIUM",
                },
                "severity": "WARNING",
                "fingerprint": "requires login",
                "lines": "hashlib.sha1(fields_as_str.encode())",
                "validation_state": "NO_VALIDATOR",
                "engine_kind": "OSS",
            },
        }
    ],
    "errors": [],
    "paths": {"scanned": ["lib/crypto.py"]},
    "skipped_rules": [],
}

_SEMGREP_LEGACY = {
    "version": "0.100.0",
    "results": [
        {
            "check_id": "javascript.lang.security.detect-eval-with-expression.detect-eval-with-expression",
            "path": "src/utils/dangerous.js",
            "line": 10,
            "column": 5,
            "end_line": 10,
            "end_column": 20,
            "message": "Detected eval with dynamic expression",
            "severity": "ERROR",
            "metadata": {
                "category": "security",
                "technology": ["javascript"],
                "confidence": "HIGH",
                "impact": "HIGH",
                "likelihood": "MEDIUM",
            },
            "extra": {"lines": "eval(userInput)"},
        }
    ],
    "errors": [],
    "paths": {"scanned": ["src/utils/dangerous.js"]},
}

_GITLAB_SAST = {
    "version": "15.0.7",
    "vulnerabilities": [
        {
            "id": "a1b2c3",
            "category": "sast",
            "name": "Improper Neutralization of Special Elements used in an SQL Command",
            "message": "SQL injection via string formatting",
            "description": "User input flows into a raw SQL query.",
            "cve": "semgrep_id:bandit.B608:12:12",
            "severity": "High",
            "confidence": "Medium",
            "scanner": {"id": "semgrep", "name": "Semgrep"},
            "location": {"file": "app/views.py", "start_line": 12, "end_line": 12},
            "identifiers": [
                {"type": "semgrep_id", "name": "bandit.B608", "value": "bandit.B608"},
                {
                    "type": "cwe",
                    "name": "CWE-89",
                    "value": "89",
                    "url": "https://cwe.mitre.org/data/definitions/89.html",
                },
                {"type": "owasp", "name": "A03:2021 - Injection", "value": "A03:2021"},
                {"type": "bandit_test_id", "name": "Bandit Test ID B608", "value": "B608"},
            ],
            "solution": "Use parameterized queries.",
        }
    ],
    "scan": {
        "scanner": {"id": "semgrep", "name": "Semgrep", "version": "1.110.0", "vendor": {"name": "GitLab"}},
        "type": "sast",
        "status": "success",
    },
}


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def sarif_log() -> dict:
    return copy.deepcopy(_SARIF_LOG)


@pytest.fixture
def semgrep_new() -> dict:
    return copy.deepcopy(_SEMGREP_NEW)


@pytest.fixture
def semgrep_legacy() -> dict:
    return copy.deepcopy(_SEMGREP_LEGACY)


@pytest.fixture
def gitlab_report() -> dict:
    return copy.deepcopy(_GITLAB_SAST)


@pytest.fixture
def write_report(tmp_path):
    """Write a report dict to disk and return its path as a string."""

    def _write(data: dict, name: str = "report.json") -> str:
        p = tmp_path / name
        p.write_text(json.dumps(data), encoding="utf-8")
        return str(p)

    return _write
