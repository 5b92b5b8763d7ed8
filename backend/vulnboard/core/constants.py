"""
Shared Constants

Centralized constants used across the application to ensure consistency.
"""

from typing import Dict, List

# Analyzer plugin names (current name first, legacy name second)
VULN_PLUGIN_NAMES: List[str] = ["vuln-finder", "js-vuln-finder"]
LICENSE_PLUGIN_NAMES: List[str] = ["license-finder", "js-license"]
SBOM_PLUGIN_NAMES: List[str] = ["js-sbom", "sbom-builder"]

# Preferred CVSS metric source when a feed carries several entries
NVD_PREFERRED_SOURCE = "nvd@nist.gov"

OSV_VULN_URL = "https://osv.dev/vulnerability/{osv_id}"
NVD_VULN_URL = "https://nvd.nist.gov/vuln/detail/{nvd_id}"

# Synthetic advisory ids emitted for framework-level findings
FRAMEWORK_PREFIX = "framework-"

# Severity classifier edges (lower bound inclusive)
SEVERITY_CRITICAL_MIN: float = 7.0
SEVERITY_HIGH_MIN: float = 4.0
SEVERITY_MEDIUM_MIN: float = 2.0
SEVERITY_LOW_MIN: float = 1.0

# OWASP Top 10 2021 category ids as referenced by CWE weakness data
OWASP_TOP_10_2021_IDS: Dict[str, str] = {
    "a1": "1345",
    "a2": "1346",
    "a3": "1347",
    "a4": "1348",
    "a5": "1349",
    "a6": "1352",
    "a7": "1353",
    "a8": "1354",
    "a9": "1355",
    "a10": "1356",
}

OWASP_TOP_10_2021: Dict[str, Dict[str, str]] = {
    "1345": {
        "name": "A01:2021 - Broken Access Control",
        "description": "Access control enforces policy such that users cannot act outside of their intended permissions.",
    },
    "1346": {
        "name": "A02:2021 - Cryptographic Failures",
        "description": "Failures related to cryptography which often lead to exposure of sensitive data.",
    },
    "1347": {
        "name": "A03:2021 - Injection",
        "description": "User-supplied data is not validated, filtered, or sanitized by the application.",
    },
    "1348": {
        "name": "A04:2021 - Insecure Design",
        "description": "Risks related to design and architectural flaws.",
    },
    "1349": {
        "name": "A05:2021 - Security Misconfiguration",
        "description": "Missing appropriate security hardening or improperly configured permissions.",
    },
    "1352": {
        "name": "A06:2021 - Vulnerable and Outdated Components",
        "description": "Components that are vulnerable, unsupported, or out of date.",
    },
    "1353": {
        "name": "A07:2021 - Identification and Authentication Failures",
        "description": "Confirmation of the user's identity, authentication, and session management is insufficient.",
    },
    "1354": {
        "name": "A08:2021 - Software and Data Integrity Failures",
        "description": "Code and infrastructure that does not protect against integrity violations.",
    },
    "1355": {
        "name": "A09:2021 - Security Logging and Monitoring Failures",
        "description": "Insufficient logging and monitoring to detect and respond to active breaches.",
    },
    "1356": {
        "name": "A10:2021 - Server-Side Request Forgery",
        "description": "A web application fetches a remote resource without validating the user-supplied URL.",
    },
}

# Filter names understood by the vulnerability list
OWASP_FILTERS: List[str] = [f"owasp_top_10_2021_{key}" for key in OWASP_TOP_10_2021_IDS]
OWASP_UNCATEGORIZED_FILTER = "owasp_uncategorized"
SEVERITY_FILTERS: List[str] = [
    "severity_critical",
    "severity_high",
    "severity_medium",
    "severity_low",
    "severity_none",
]
IMPACT_FILTERS: List[str] = [
    "availability_impact",
    "confidentiality_impact",
    "integrity_impact",
]
MATCHING_FILTERS: List[str] = [
    "hide_correct_matching",
    "hide_incorrect_matching",
    "hide_possibly_incorrect_matching",
]
POSSIBLE_FILTERS: List[str] = (
    OWASP_FILTERS
    + [OWASP_UNCATEGORIZED_FILTER]
    + SEVERITY_FILTERS
    + IMPACT_FILTERS
    + MATCHING_FILTERS
)

# Continuous value of discrete CIA impact levels (CVSS 2 and CVSS 3 vocabularies)
CIA_IMPACT_VALUES: Dict[str, float] = {
    "COMPLETE": 1.0,
    "PARTIAL": 0.5,
    "HIGH": 1.0,
    "LOW": 0.5,
}
