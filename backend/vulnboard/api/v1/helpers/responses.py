"""
Shared OpenAPI response definitions for FastAPI route decorators.

Usage:
    from vulnboard.api.v1.helpers.responses import RESP_404_409

    @router.get("/analyses/{analysis_id}/vulnerabilities", responses={**RESP_404_409})
    async def list_vulnerabilities(...): ...
"""

RESP_404 = {404: {"description": "Analysis, workspace, result or advisory not found"}}
RESP_409 = {409: {"description": "The vulnerability analyzer reported a failure"}}

RESP_404_409 = {**RESP_404, **RESP_409}
