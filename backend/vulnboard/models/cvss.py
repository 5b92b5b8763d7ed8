from typing import Optional

from pydantic import BaseModel


class CVSS2Result(BaseModel):
    base_score: float
    exploitability_score: float
    impact_score: float
    access_vector: str
    access_complexity: str
    authentication: str
    confidentiality_impact: str
    integrity_impact: str
    availability_impact: str
    user_interaction_required: Optional[bool] = None


class CVSS3Result(BaseModel):
    """Shared shape of CVSS v3.0 and v3.1 results."""

    base_score: float
    exploitability_score: float
    impact_score: float
    attack_vector: str
    attack_complexity: str
    privileges_required: str
    user_interaction: str
    scope: str
    confidentiality_impact: str
    integrity_impact: str
    availability_impact: str


class CVSS31Result(CVSS3Result):
    pass


class SeverityInfo(BaseModel):
    cvss_2: Optional[CVSS2Result] = None
    cvss_3: Optional[CVSS3Result] = None
    cvss_31: Optional[CVSS31Result] = None

    def is_empty(self) -> bool:
        return self.cvss_2 is None and self.cvss_3 is None and self.cvss_31 is None
