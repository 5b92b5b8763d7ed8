"""
CVSS Scoring

Parses CVSS v2, v3.0 and v3.1 vector strings with the ``cvss`` library and
returns the base score, both subscores, and every base metric expanded to its
long-form value (``AV:N`` -> ``NETWORK``).

Also implements the feed-level selection rules: which metric entry to trust
when a feed lists several for the same schema version, and the fallback from
a report's primary source to its secondary source.
"""

import logging
from decimal import ROUND_CEILING, ROUND_HALF_UP, Decimal
from typing import Dict, List, Optional

from cvss import CVSS2, CVSS3
from cvss.exceptions import CVSSError

from vulnboard.core.constants import NVD_PREFERRED_SOURCE
from vulnboard.core.exceptions import VectorParseError
from vulnboard.core.metrics import cvss_parse_errors_total
from vulnboard.models.cvss import CVSS2Result, CVSS3Result, CVSS31Result, SeverityInfo
from vulnboard.models.finding import SeverityType
from vulnboard.models.knowledge import NVDItem, NVDMetric, OSVItem

logger = logging.getLogger(__name__)

CVSS30_PREFIX = "CVSS:3.0/"
CVSS31_PREFIX = "CVSS:3.1/"

CVSS2_LONG_FORMS: Dict[str, Dict[str, str]] = {
    "AV": {"L": "LOCAL", "A": "ADJACENT_NETWORK", "N": "NETWORK"},
    "AC": {"H": "HIGH", "M": "MEDIUM", "L": "LOW"},
    "Au": {"M": "MULTIPLE", "S": "SINGLE", "N": "NONE"},
    "C": {"N": "NONE", "P": "PARTIAL", "C": "COMPLETE"},
    "I": {"N": "NONE", "P": "PARTIAL", "C": "COMPLETE"},
    "A": {"N": "NONE", "P": "PARTIAL", "C": "COMPLETE"},
}

CVSS3_LONG_FORMS: Dict[str, Dict[str, str]] = {
    "AV": {"N": "NETWORK", "A": "ADJACENT_NETWORK", "L": "LOCAL", "P": "PHYSICAL"},
    "AC": {"L": "LOW", "H": "HIGH"},
    "PR": {"N": "NONE", "L": "LOW", "H": "HIGH"},
    "UI": {"N": "NONE", "R": "REQUIRED"},
    "S": {"U": "UNCHANGED", "C": "CHANGED"},
    "C": {"H": "HIGH", "L": "LOW", "N": "NONE"},
    "I": {"H": "HIGH", "L": "LOW", "N": "NONE"},
    "A": {"H": "HIGH", "L": "LOW", "N": "NONE"},
}

# CVSS v2 base equation weights, needed for the subscores the library does not expose
CVSS2_WEIGHTS: Dict[str, Dict[str, Decimal]] = {
    "AV": {"L": Decimal("0.395"), "A": Decimal("0.646"), "N": Decimal("1.0")},
    "AC": {"H": Decimal("0.35"), "M": Decimal("0.61"), "L": Decimal("0.71")},
    "Au": {"M": Decimal("0.45"), "S": Decimal("0.56"), "N": Decimal("0.704")},
    "CIA": {"N": Decimal("0"), "P": Decimal("0.275"), "C": Decimal("0.660")},
}


def _round_1(value: Decimal) -> float:
    return float(value.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


def _round_up_1(value: Decimal) -> float:
    """CVSS v3 Roundup: smallest one-decimal number >= value."""
    if value <= 0:
        return 0.0
    return float(value.quantize(Decimal("0.1"), rounding=ROUND_CEILING))


def _expand(metrics: Dict[str, str], table: Dict[str, Dict[str, str]], key: str) -> str:
    letter = metrics.get(key, "")
    return table.get(key, {}).get(letter, letter)


def compute_cvss2(vector: str) -> CVSS2Result:
    """
    Score a CVSS v2 vector such as ``AV:N/AC:L/Au:N/C:P/I:P/A:P``.

    Raises:
        VectorParseError: If the vector is empty or not valid CVSS v2
    """
    cleaned = (vector or "").strip().strip("()")
    if not cleaned:
        raise VectorParseError(vector, "empty vector")
    try:
        parsed = CVSS2(cleaned)
    except CVSSError as e:
        raise VectorParseError(vector, str(e)) from e

    metrics = parsed.metrics
    conf = CVSS2_WEIGHTS["CIA"][metrics["C"]]
    integ = CVSS2_WEIGHTS["CIA"][metrics["I"]]
    avail = CVSS2_WEIGHTS["CIA"][metrics["A"]]
    impact = Decimal("10.41") * (1 - (1 - conf) * (1 - integ) * (1 - avail))
    exploitability = (
        Decimal("20")
        * CVSS2_WEIGHTS["AV"][metrics["AV"]]
        * CVSS2_WEIGHTS["AC"][metrics["AC"]]
        * CVSS2_WEIGHTS["Au"][metrics["Au"]]
    )

    return CVSS2Result(
        base_score=float(parsed.base_score),
        exploitability_score=_round_1(exploitability),
        impact_score=_round_1(impact),
        access_vector=_expand(metrics, CVSS2_LONG_FORMS, "AV"),
        access_complexity=_expand(metrics, CVSS2_LONG_FORMS, "AC"),
        authentication=_expand(metrics, CVSS2_LONG_FORMS, "Au"),
        confidentiality_impact=_expand(metrics, CVSS2_LONG_FORMS, "C"),
        integrity_impact=_expand(metrics, CVSS2_LONG_FORMS, "I"),
        availability_impact=_expand(metrics, CVSS2_LONG_FORMS, "A"),
    )


def _compute_v3(vector: str, prefix: str) -> Dict[str, object]:
    cleaned = (vector or "").strip()
    if not cleaned:
        raise VectorParseError(vector, "empty vector")
    if not cleaned.startswith("CVSS:"):
        cleaned = prefix + cleaned
    try:
        parsed = CVSS3(cleaned)
    except CVSSError as e:
        raise VectorParseError(vector, str(e)) from e

    metrics = parsed.metrics
    return {
        "base_score": float(parsed.base_score),
        "exploitability_score": _round_up_1(Decimal(parsed.esc)),
        "impact_score": _round_up_1(Decimal(parsed.isc)),
        "attack_vector": _expand(metrics, CVSS3_LONG_FORMS, "AV"),
        "attack_complexity": _expand(metrics, CVSS3_LONG_FORMS, "AC"),
        "privileges_required": _expand(metrics, CVSS3_LONG_FORMS, "PR"),
        "user_interaction": _expand(metrics, CVSS3_LONG_FORMS, "UI"),
        "scope": _expand(metrics, CVSS3_LONG_FORMS, "S"),
        "confidentiality_impact": _expand(metrics, CVSS3_LONG_FORMS, "C"),
        "integrity_impact": _expand(metrics, CVSS3_LONG_FORMS, "I"),
        "availability_impact": _expand(metrics, CVSS3_LONG_FORMS, "A"),
    }


def compute_cvss3(vector: str) -> CVSS3Result:
    """Score a CVSS v3.0 vector. Vectors without a ``CVSS:`` prefix are read as 3.0."""
    return CVSS3Result(**_compute_v3(vector, CVSS30_PREFIX))


def compute_cvss31(vector: str) -> CVSS31Result:
    """Score a CVSS v3.1 vector. Vectors without a ``CVSS:`` prefix are read as 3.1."""
    return CVSS31Result(**_compute_v3(vector, CVSS31_PREFIX))


def select_metric(entries: List[NVDMetric]) -> Optional[NVDMetric]:
    """
    Pick the metric entry to score for one schema version.

    The NVD-authored entry wins; a lone entry is used whatever its source;
    several entries without an NVD-authored one yield nothing.
    """
    for entry in entries:
        if entry.source == NVD_PREFERRED_SOURCE:
            return entry
    if len(entries) == 1:
        return entries[0]
    return None


def _safe_cvss2(vector: str, advisory_id: str) -> Optional[CVSS2Result]:
    try:
        return compute_cvss2(vector)
    except VectorParseError as e:
        cvss_parse_errors_total.labels(version="2").inc()
        logger.warning(f"Omitting CVSS v2 for {advisory_id}: {e.message}")
        return None


def _safe_cvss3(vector: str, advisory_id: str) -> Optional[CVSS3Result]:
    try:
        return compute_cvss3(vector)
    except VectorParseError as e:
        cvss_parse_errors_total.labels(version="3.0").inc()
        logger.warning(f"Omitting CVSS v3.0 for {advisory_id}: {e.message}")
        return None


def _safe_cvss31(vector: str, advisory_id: str) -> Optional[CVSS31Result]:
    try:
        return compute_cvss31(vector)
    except VectorParseError as e:
        cvss_parse_errors_total.labels(version="3.1").inc()
        logger.warning(f"Omitting CVSS v3.1 for {advisory_id}: {e.message}")
        return None


def cvss_from_nvd(nvd_item: Optional[NVDItem]) -> SeverityInfo:
    """Score the NVD record's v2, v3.0 and v3.1 metrics independently."""
    info = SeverityInfo()
    if nvd_item is None:
        return info

    metrics = nvd_item.metrics

    v2_entry = select_metric(metrics.cvssMetricV2)
    if v2_entry is not None:
        info.cvss_2 = _safe_cvss2(v2_entry.cvssData.vectorString, nvd_item.nvd_id)
        if info.cvss_2 is not None:
            info.cvss_2.user_interaction_required = v2_entry.userInteractionRequired

    v30_entry = select_metric(metrics.cvssMetricV30)
    if v30_entry is not None:
        info.cvss_3 = _safe_cvss3(v30_entry.cvssData.vectorString, nvd_item.nvd_id)

    v31_entry = select_metric(metrics.cvssMetricV31)
    if v31_entry is not None:
        info.cvss_31 = _safe_cvss31(v31_entry.cvssData.vectorString, nvd_item.nvd_id)

    return info


def cvss_from_osv(osv_item: Optional[OSVItem]) -> SeverityInfo:
    """
    Score the OSV record's ``severity[]`` entries.

    ``CVSS_V3`` entries carrying a ``CVSS:3.1/`` vector are scored as v3.1.
    The first entry of each schema version wins.
    """
    info = SeverityInfo()
    if osv_item is None:
        return info

    for entry in osv_item.severity:
        if entry.type == SeverityType.CVSS_V2.value:
            if info.cvss_2 is None:
                info.cvss_2 = _safe_cvss2(entry.score, osv_item.osv_id)
        elif entry.type == SeverityType.CVSS_V3.value:
            if entry.score.startswith(CVSS31_PREFIX):
                if info.cvss_31 is None:
                    info.cvss_31 = _safe_cvss31(entry.score, osv_item.osv_id)
            elif info.cvss_3 is None:
                info.cvss_3 = _safe_cvss3(entry.score, osv_item.osv_id)
        else:
            logger.debug(f"Ignoring unsupported OSV severity type {entry.type} for {osv_item.osv_id}")

    return info


def severities_with_fallback(primary: SeverityInfo, secondary: SeverityInfo) -> SeverityInfo:
    """Use the primary source's scores unless it produced none at all."""
    if primary.is_empty():
        return secondary
    return primary
