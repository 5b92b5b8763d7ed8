"""
Domain Exceptions

Errors raised by the aggregation and scoring core. Enrichment lookups never
raise these; they degrade to empty values instead.
"""

from typing import Optional


class VulnboardError(Exception):
    """Base class for all domain errors."""

    error_code = "vulnboard_error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or (self.__doc__ or self.error_code).strip()
        super().__init__(self.message)


class VectorParseError(VulnboardError):
    """The CVSS vector string could not be parsed."""

    error_code = "vector_parse_error"

    def __init__(self, vector: str, reason: str = ""):
        detail = f"Malformed CVSS vector '{vector}'"
        if reason:
            detail = f"{detail}: {reason}"
        super().__init__(detail)
        self.vector = vector


class MissingAnchorItem(VulnboardError):
    """The report generator was called without its anchor advisory item."""

    error_code = "missing_anchor_item"

    def __init__(self, anchor: str):
        super().__init__(f"Cannot generate report without an {anchor} advisory item")
        self.anchor = anchor


class UnknownWorkspace(VulnboardError):
    """The requested workspace does not exist in the analysis result."""

    error_code = "unknown_workspace"


class PluginResultNotAvailable(VulnboardError):
    """The analysis has no result for the requested plugin."""

    error_code = "plugin_result_not_available"


class PluginFailed(VulnboardError):
    """The plugin that produced the result reported a failure."""

    error_code = "plugin_failed"


class AnalysisNotFound(VulnboardError):
    """The requested analysis does not exist."""

    error_code = "analysis_not_found"


class VulnerabilityNotFound(VulnboardError):
    """No finding of the workspace matches the requested vulnerability."""

    error_code = "vulnerability_not_found"
