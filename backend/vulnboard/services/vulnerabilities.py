"""
Vulnerability Service

Workflows behind the vulnerability endpoints of one analysis: the merged,
filtered and paginated vulnerability list, workspace statistics, analyzer
status, and the per-vulnerability detail report.
"""

import asyncio
import logging
from typing import List, Optional, Tuple

from vulnboard.core.config import settings
from vulnboard.core.constants import VULN_PLUGIN_NAMES
from vulnboard.core.exceptions import (
    MissingAnchorItem,
    PluginResultNotAvailable,
    UnknownWorkspace,
    VulnerabilityNotFound,
)
from vulnboard.models.finding import Finding
from vulnboard.models.knowledge import NVDItem, OSVItem
from vulnboard.models.report import VulnerabilityDetailsReport
from vulnboard.models.stats import AnalysisStats, AnalysisStatus
from vulnboard.models.vulnerability import MergedVulnerability
from vulnboard.repositories.analyses import AnalysisRepository
from vulnboard.repositories.analysis_results import AnalysisResultRepository
from vulnboard.repositories.knowledge import KnowledgeRepository
from vulnboard.schemas.vulnerability import VulnerabilityPage
from vulnboard.services.filtering import filter_merged, parse_active_filters
from vulnboard.services.merge import (
    apply_blacklist,
    build_description,
    enrich_weaknesses,
    extract_policy_ids,
    flag_source_disagreement,
    is_cve,
    is_ghsa,
    merge_findings,
    resolve_blacklist,
)
from vulnboard.services.report_generator import generate_nvd_report, generate_osv_report
from vulnboard.services.sorting import sort_merged
from vulnboard.services.stats import compute_analysis_stats

logger = logging.getLogger(__name__)

DEFAULT_PACKAGE_MANAGER = "NPM"


def clamp_pagination(page: Optional[int], entries_per_page: Optional[int]) -> Tuple[int, int]:
    """Page clamped to >= 0; page size defaulted when absent or non-positive, capped at the maximum."""
    if not entries_per_page or entries_per_page <= 0:
        entries_per_page = settings.PAGINATION_DEFAULT_ENTRIES_PER_PAGE
    entries_per_page = min(entries_per_page, settings.PAGINATION_MAX_ENTRIES_PER_PAGE)
    page = max(page or 0, 0)
    return page, entries_per_page


class VulnerabilityService:
    def __init__(
        self,
        analyses: AnalysisRepository,
        results: AnalysisResultRepository,
        knowledge: KnowledgeRepository,
    ):
        self.analyses = analyses
        self.results = results
        self.knowledge = knowledge

    async def load_advisories(self, advisory_id: str) -> Tuple[Optional[OSVItem], Optional[NVDItem]]:
        """OSV and NVD records of an advisory: CVEs resolve both, GHSAs only OSV."""
        if is_cve(advisory_id):
            osv_item, nvd_item = await asyncio.gather(
                self.knowledge.get_osv_by_cve(advisory_id),
                self.knowledge.get_nvd(advisory_id),
            )
            return osv_item, nvd_item
        if is_ghsa(advisory_id):
            return await self.knowledge.get_osv(advisory_id), None
        return None, None

    async def _enrich_page(self, page: List[MergedVulnerability]) -> None:
        semaphore = asyncio.Semaphore(settings.ENRICHMENT_CONCURRENCY)

        async def enrich(vuln: MergedVulnerability) -> None:
            async with semaphore:
                osv_item, nvd_item = await self.load_advisories(vuln.vulnerability)
                vuln.description = build_description(osv_item, nvd_item)
                flag_source_disagreement(vuln, osv_item, nvd_item)
                await enrich_weaknesses(vuln, self.knowledge)

        await asyncio.gather(*(enrich(vuln) for vuln in page))

    async def list_vulnerabilities(
        self,
        analysis_id: str,
        workspace: str,
        page: Optional[int] = 0,
        entries_per_page: Optional[int] = None,
        sort_by: Optional[str] = None,
        sort_direction: Optional[str] = None,
        active_filters: Optional[str] = None,
        search_key: Optional[str] = None,
        ecosystem_filter: Optional[str] = None,
        show_blacklisted: bool = True,
    ) -> VulnerabilityPage:
        """
        Merged vulnerabilities of one workspace, one page at a time.

        Findings are merged per advisory, annotated with policy blacklists,
        filtered, sorted and paginated. Only the returned page is enriched
        with descriptions and CWE data.

        Raises:
            AnalysisNotFound: If the analysis does not exist
            PluginResultNotAvailable: If the analysis has no vulnerability result
            PluginFailed: If the vulnerability analyzer failed
            UnknownWorkspace: If the workspace is not part of the result
        """
        page, entries_per_page = clamp_pagination(page, entries_per_page)

        analysis = await self.analyses.get_analysis(analysis_id)
        findings = await self.results.get_findings(analysis_id, workspace, ecosystem_filter)
        merged = await merge_findings(findings, self.knowledge)
        total_entries = len(merged)

        policy_ids = extract_policy_ids(analysis.config)
        if policy_ids:
            blacklist = await resolve_blacklist(analysis.organization_id, policy_ids, self.knowledge)
            apply_blacklist(merged, blacklist)
        if not show_blacklisted:
            merged = [vuln for vuln in merged if not vuln.is_blacklisted]

        filtered, filter_count = filter_merged(merged, search_key, parse_active_filters(active_filters))
        ordered = sort_merged(filtered, sort_by, sort_direction)

        start = page * entries_per_page
        page_data = ordered[start : start + entries_per_page]
        await self._enrich_page(page_data)

        logger.debug(
            f"Analysis {analysis_id}/{workspace}: {total_entries} merged, "
            f"{len(filtered)} matching, page {page} has {len(page_data)}"
        )
        return VulnerabilityPage(
            data=page_data,
            page=page,
            entries_per_page=entries_per_page,
            total_entries=total_entries,
            total_pages=(len(filtered) + entries_per_page - 1) // entries_per_page,
            entry_count=len(page_data),
            matching_count=len(filtered),
            filter_count=filter_count,
        )

    async def get_stats(
        self,
        analysis_id: str,
        workspace: str,
        ecosystem_filter: Optional[str] = None,
        previous_analysis_id: Optional[str] = None,
    ) -> AnalysisStats:
        """
        Statistics of one workspace, with differences against a previous analysis when given.

        A previous analysis without a usable result counts as having no findings.
        """
        findings = await self.results.get_findings(analysis_id, workspace, ecosystem_filter)

        previous: List[Finding] = []
        if previous_analysis_id:
            try:
                previous = await self.results.get_findings(previous_analysis_id, workspace, ecosystem_filter)
            except (PluginResultNotAvailable, UnknownWorkspace) as e:
                logger.warning(f"Previous analysis {previous_analysis_id} has no comparable findings: {e}")

        return compute_analysis_stats(findings, previous)

    async def get_status(self, analysis_id: str) -> AnalysisStatus:
        """Analyzer timing; error lists are only reported when private errors were recorded."""
        output = await self.results.find_plugin_result(analysis_id, VULN_PLUGIN_NAMES)
        if output is None:
            raise PluginResultNotAvailable()

        info = output.analysis_info
        status = AnalysisStatus(stage_start=info.analysis_start_time, stage_end=info.analysis_end_time)
        if info.private_errors:
            status.public_errors = info.public_errors
            status.private_errors = info.private_errors
        return status

    async def get_report(
        self,
        analysis_id: str,
        workspace: str,
        vulnerability_id: str,
        dependency: Optional[str] = None,
    ) -> VulnerabilityDetailsReport:
        """
        Detail report of one vulnerability, anchored on OSV when available, else NVD.

        Raises:
            VulnerabilityNotFound: If no finding matches the id (and dependency)
            MissingAnchorItem: If neither feed knows the advisory
        """
        output = await self.results.get_vulnerability_output(analysis_id)
        findings = await self.results.get_findings(analysis_id, workspace)

        finding = next(
            (
                f
                for f in findings
                if f.vulnerability_id == vulnerability_id
                and (dependency is None or f.affected_dependency == dependency)
            ),
            None,
        )
        if finding is None:
            raise VulnerabilityNotFound(f"Vulnerability {vulnerability_id} not found in workspace {workspace}")

        (osv_item, nvd_item), third_party, metadata = await asyncio.gather(
            self.load_advisories(vulnerability_id),
            self.knowledge.get_third_party_advisory(vulnerability_id),
            self.knowledge.lookup_package_metadata(finding.affected_dependency),
        )
        package_manager = getattr(output.analysis_info, "package_manager", None) or DEFAULT_PACKAGE_MANAGER

        if osv_item is not None:
            generate = generate_osv_report
        elif nvd_item is not None:
            generate = generate_nvd_report
        else:
            raise MissingAnchorItem("OSV or NVD")

        return await generate(
            finding,
            package_manager,
            self.knowledge,
            dependency_metadata=metadata,
            osv_item=osv_item,
            nvd_item=nvd_item,
            third_party=third_party,
        )
