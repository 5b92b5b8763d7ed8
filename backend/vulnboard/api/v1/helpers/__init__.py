"""
API v1 Helper Functions

Shared helper functions extracted from endpoint modules for better
code organization and reusability.
"""

from vulnboard.api.v1.helpers.dashboard import (
    DASHBOARD_PLUGIN_NAMES,
    load_analysis_records,
    parse_project_ids,
    resolve_window,
)
from vulnboard.api.v1.helpers.responses import RESP_404, RESP_404_409, RESP_409

__all__ = [
    "DASHBOARD_PLUGIN_NAMES",
    "load_analysis_records",
    "parse_project_ids",
    "resolve_window",
    "RESP_404",
    "RESP_404_409",
    "RESP_409",
]
