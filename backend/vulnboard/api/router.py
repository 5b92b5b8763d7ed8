"""
APIRouter that serializes responses by field name.

Stored documents use aliases (``_id``, the analyzer's PascalCase finding keys)
while the API speaks snake_case field names, so every route renders its
response model with ``response_model_by_alias=False``.
"""

from typing import Any

from fastapi import APIRouter
from fastapi.routing import APIRoute


class APIRouteByFieldName(APIRoute):
    """APIRoute that always renders field names instead of aliases."""

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        kwargs["response_model_by_alias"] = False
        super().__init__(*args, **kwargs)


class CustomAPIRouter(APIRouter):
    """
    Router whose routes default to :class:`APIRouteByFieldName`.

    Usage:
        router = CustomAPIRouter()

        @router.get("/analyses/{analysis_id}/vulnerabilities/stats")
        async def get_stats(analysis_id: str) -> AnalysisStats:
            ...
    """

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        kwargs.setdefault("route_class", APIRouteByFieldName)
        super().__init__(*args, **kwargs)
