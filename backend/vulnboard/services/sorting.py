"""
Merged Vulnerability Sorting

Each sort key has its own comparator. The direction handling differs per key
and is kept as clients currently rely on it:

- ``severity``, ``exploitability``, ``dep_version``, ``cve`` and ``weakness``:
  ``DESC`` puts larger values first.
- ``owasp_top_10``: ``DESC`` puts smaller category ids first, uncategorized last.
- ``weakness``: records without a weakness id come first under ``DESC``.
- any other allowed key: ``DESC`` puts smaller values first.
"""

from functools import cmp_to_key
from typing import Any, Callable, List, Optional

from vulnboard.models.vulnerability import MergedVulnerability
from vulnboard.services.versions import to_version

ALLOWED_SORT_BY = [
    "cve",
    "dep_name",
    "dep_version",
    "file_path",
    "severity",
    "weakness",
    "exploitability",
    "owasp_top_10",
]
DEFAULT_SORT = "severity"
DEFAULT_SORT_DIRECTION = "DESC"

Comparator = Callable[[MergedVulnerability, MergedVulnerability], int]


def _cmp(a: Any, b: Any, desc: bool, larger_first_when_desc: bool) -> int:
    if a > b:
        return -1 if desc == larger_first_when_desc else 1
    if a < b:
        return 1 if desc == larger_first_when_desc else -1
    return 0


def _severity(vuln: MergedVulnerability) -> float:
    return vuln.severity.severity if vuln.severity is not None else 0.0


def _exploitability(vuln: MergedVulnerability) -> float:
    return vuln.severity.exploitability if vuln.severity is not None else 0.0


def _first_owasp_id(vuln: MergedVulnerability) -> Optional[int]:
    if not vuln.weaknesses or not vuln.weaknesses[0].owasp_top10_id:
        return None
    value = vuln.weaknesses[0].owasp_top10_id
    return int(value) if value.isdigit() else None


def _first_cwe(vuln: MergedVulnerability) -> Optional[str]:
    if not vuln.weaknesses or not vuln.weaknesses[0].weakness_id:
        return None
    return vuln.weaknesses[0].weakness_id


def _primitive(value: Any) -> Any:
    if isinstance(value, bool) or not isinstance(value, (str, int, float)):
        return ""
    return value


def _comparator(sort_by: str, desc: bool) -> Comparator:
    if sort_by == "severity":
        return lambda a, b: _cmp(_severity(a), _severity(b), desc, True)

    if sort_by == "exploitability":
        return lambda a, b: _cmp(_exploitability(a), _exploitability(b), desc, True)

    if sort_by == "dep_version":

        def by_version(a: MergedVulnerability, b: MergedVulnerability) -> int:
            version_a = to_version(a.affected[0].affected_version if a.affected else None)
            version_b = to_version(b.affected[0].affected_version if b.affected else None)
            return _cmp(version_a, version_b, desc, True)

        return by_version

    if sort_by == "cve":
        return lambda a, b: _cmp(a.vulnerability or "", b.vulnerability or "", desc, True)

    if sort_by == "owasp_top_10":

        def by_owasp(a: MergedVulnerability, b: MergedVulnerability) -> int:
            owasp_a, owasp_b = _first_owasp_id(a), _first_owasp_id(b)
            if owasp_a is None and owasp_b is None:
                return 0
            if owasp_a is None:
                return 1 if desc else -1
            if owasp_b is None:
                return -1 if desc else 1
            return _cmp(owasp_a, owasp_b, desc, False)

        return by_owasp

    if sort_by == "weakness":

        def by_weakness(a: MergedVulnerability, b: MergedVulnerability) -> int:
            cwe_a, cwe_b = _first_cwe(a), _first_cwe(b)
            if cwe_a is None and cwe_b is None:
                return 0
            if cwe_a is None:
                return -1 if desc else 1
            if cwe_b is None:
                return 1 if desc else -1
            number_a = a.weaknesses[0].cwe_number
            number_b = b.weaknesses[0].cwe_number
            if number_a is None or number_b is None:
                return 0
            return _cmp(number_a, number_b, desc, True)

        return by_weakness

    def by_field(a: MergedVulnerability, b: MergedVulnerability) -> int:
        value_a = _primitive(getattr(a, sort_by, None))
        value_b = _primitive(getattr(b, sort_by, None))
        if type(value_a) is not type(value_b) and not (
            isinstance(value_a, (int, float)) and isinstance(value_b, (int, float))
        ):
            value_a, value_b = str(value_a), str(value_b)
        return _cmp(value_a, value_b, desc, False)

    return by_field


def sort_merged(
    vulnerabilities: List[MergedVulnerability],
    sort_by: Optional[str],
    sort_direction: Optional[str],
) -> List[MergedVulnerability]:
    """Return a stably sorted copy; unknown keys sort by severity, unknown directions by DESC."""
    key = sort_by if sort_by in ALLOWED_SORT_BY else DEFAULT_SORT
    direction = sort_direction if sort_direction in ("ASC", "DESC") else DEFAULT_SORT_DIRECTION
    return sorted(vulnerabilities, key=cmp_to_key(_comparator(key, direction == "DESC")))
