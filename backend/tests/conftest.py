"""
Shared test fixtures and configuration.

Environment variables are set BEFORE any vulnboard imports to prevent
accidental connections to real databases or caches.
"""

import os
import sys

# Ensure the backend package is importable
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

# Override settings before any code imports the settings singleton
os.environ["MONGODB_URL"] = "mongodb://localhost:27017"
os.environ["DATABASE_NAME"] = "test_vulnboard"
os.environ["KNOWLEDGE_DATABASE_NAME"] = "test_knowledge"
os.environ["REDIS_URL"] = "redis://localhost:6399/0"

import pytest  # noqa: E402

from tests.mocks.findings import make_finding, make_severity, make_weakness  # noqa: E402


@pytest.fixture
def critical_cve_finding():
    """CVE finding matched by both feeds, severity 9.8."""
    return make_finding(
        "CVE-2021-23337",
        dependency="lodash",
        version="4.17.20",
        severity=make_severity(9.8, confidentiality="HIGH", integrity="HIGH", availability="HIGH"),
        weaknesses=[make_weakness("CWE-94", owasp="1347")],
        nvd=True,
        osv=True,
    )


@pytest.fixture
def medium_ghsa_finding():
    """GHSA finding matched by OSV only, severity 5.3."""
    return make_finding(
        "GHSA-35jh-r3h4-6jhm",
        dependency="lodash",
        version="4.17.20",
        severity=make_severity(5.3, confidentiality="LOW", integrity="NONE", availability="NONE"),
        weaknesses=[make_weakness("CWE-1321", owasp="1354")],
        osv=True,
    )


@pytest.fixture
def unscored_finding():
    """Finding without severity or weakness data."""
    return make_finding("GHSA-xxxx-yyyy-zzzz", dependency="@scope/pkg", version="1.0.0", severity=None, osv=True)
