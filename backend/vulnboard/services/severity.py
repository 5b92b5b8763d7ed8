"""
Severity Classification

Single classifier for CVSS-style scores used by filtering, statistics, and
dashboards: none [0,1), low [1,2), medium [2,4), high [4,7), critical [7,inf).
"""

import math
from typing import Optional

from vulnboard.core.constants import (
    CIA_IMPACT_VALUES,
    SEVERITY_CRITICAL_MIN,
    SEVERITY_HIGH_MIN,
    SEVERITY_LOW_MIN,
    SEVERITY_MEDIUM_MIN,
)
from vulnboard.models.finding import SeverityScore

CRITICAL = "critical"
HIGH = "high"
MEDIUM = "medium"
LOW = "low"
NONE = "none"


def severity_value(severity: Optional[SeverityScore]) -> float:
    """Numeric score of a possibly-missing severity (missing counts as 0)."""
    if severity is None:
        return 0.0
    value = severity.severity
    if value is None or math.isnan(value):
        return 0.0
    return value


def classify_severity(score: Optional[float]) -> str:
    """Map a score to its severity bucket name."""
    if score is None or math.isnan(score):
        return NONE
    if score >= SEVERITY_CRITICAL_MIN:
        return CRITICAL
    if score >= SEVERITY_HIGH_MIN:
        return HIGH
    if score >= SEVERITY_MEDIUM_MIN:
        return MEDIUM
    if score >= SEVERITY_LOW_MIN:
        return LOW
    return NONE


def is_critical(score: float) -> bool:
    return classify_severity(score) == CRITICAL


def is_high(score: float) -> bool:
    return classify_severity(score) == HIGH


def is_medium(score: float) -> bool:
    return classify_severity(score) == MEDIUM


def is_low(score: float) -> bool:
    return classify_severity(score) == LOW


def is_none(score: float) -> bool:
    return classify_severity(score) == NONE


def cia_continuous_value(impact: Optional[str]) -> float:
    """HIGH/COMPLETE -> 1.0, LOW/PARTIAL -> 0.5, anything else -> 0.0."""
    if not impact:
        return 0.0
    return CIA_IMPACT_VALUES.get(impact.upper(), 0.0)
