from typing import Dict, List

from pydantic import BaseModel, Field

from vulnboard.models.vulnerability import MergedVulnerability


class VulnerabilityPage(BaseModel):
    """One page of merged vulnerabilities plus the counts the list view needs."""

    data: List[MergedVulnerability] = Field(default_factory=list)
    page: int = 0
    entries_per_page: int = 0
    total_entries: int = Field(0, description="Merged records before filtering")
    total_pages: int = 0
    entry_count: int = Field(0, description="Records on this page")
    matching_count: int = Field(0, description="Records after filtering")
    filter_count: Dict[str, int] = Field(default_factory=dict)
