"""
Analysis Result Repository

Access to analyzer plugin outputs: vulnerability findings, license
histograms and SBOM statistics.
"""

import logging
from typing import List, Optional

from pydantic import ValidationError

from vulnboard.core.constants import LICENSE_PLUGIN_NAMES, VULN_PLUGIN_NAMES
from vulnboard.core.exceptions import PluginFailed, PluginResultNotAvailable, UnknownWorkspace
from vulnboard.models.analysis import AnalysisResult
from vulnboard.models.finding import Finding
from vulnboard.repositories.base import BaseRepository

logger = logging.getLogger(__name__)

STATUS_FAILURE = "failure"


def detect_ecosystem(package_name: str) -> str:
    """Guess the ecosystem from the package naming pattern: ``vendor/pkg`` is packagist, the rest npm."""
    if "/" in package_name and not package_name.startswith("@"):
        return "packagist"
    return "npm"


class AnalysisResultRepository(BaseRepository[AnalysisResult]):
    """Repository for analysis result database operations."""

    collection_name = "analysis_results"
    model_class = AnalysisResult

    async def find_plugin_result(self, analysis_id: str, plugin_names: List[str]) -> Optional[AnalysisResult]:
        """First result found for ``plugin_names``, tried in order."""
        for plugin in plugin_names:
            doc = await self.find_one_raw({"analysis_id": analysis_id, "plugin": plugin})
            if doc is not None:
                return self._to_model(doc)
        return None

    async def get_vulnerability_output(self, analysis_id: str) -> AnalysisResult:
        """
        The vulnerability analyzer's result, falling back to the legacy plugin name.

        Raises:
            PluginResultNotAvailable: If neither plugin produced a result
            PluginFailed: If the analyzer reported a failure
        """
        result = await self.find_plugin_result(analysis_id, VULN_PLUGIN_NAMES)
        if result is None:
            raise PluginResultNotAvailable()
        if result.analysis_info.status == STATUS_FAILURE:
            raise PluginFailed()
        return result

    async def get_findings(
        self,
        analysis_id: str,
        workspace: str,
        ecosystem_filter: Optional[str] = None,
    ) -> List[Finding]:
        """
        Findings of one workspace, optionally limited to one ecosystem.

        Raises:
            UnknownWorkspace: If the result has no such workspace
        """
        output = await self.get_vulnerability_output(analysis_id)
        workspaces = output.workspaces
        if workspace not in workspaces:
            raise UnknownWorkspace()

        findings: List[Finding] = []
        for raw in (workspaces[workspace] or {}).get("Vulnerabilities") or []:
            try:
                finding = Finding.model_validate(raw)
            except ValidationError as e:
                logger.warning(f"Skipping malformed finding in analysis {analysis_id}: {e}")
                continue
            if ecosystem_filter and detect_ecosystem(finding.affected_dependency) != ecosystem_filter:
                continue
            findings.append(finding)
        return findings

    async def find_by_analysis_ids(self, analysis_ids: List[str], plugin_names: List[str]) -> List[AnalysisResult]:
        if not analysis_ids:
            return []
        return await self.find_many(
            {"analysis_id": {"$in": analysis_ids}, "plugin": {"$in": plugin_names}},
            limit=len(analysis_ids) * len(plugin_names),
        )

    async def get_license_results(self, analysis_ids: List[str]) -> List[AnalysisResult]:
        return await self.find_by_analysis_ids(analysis_ids, LICENSE_PLUGIN_NAMES)
