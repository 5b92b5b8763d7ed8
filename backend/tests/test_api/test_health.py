"""Tests for liveness and readiness probes."""

import asyncio
import json
from unittest.mock import AsyncMock, MagicMock, patch

MODULE = "vulnboard.api.health"


class TestReadiness:
    def test_ready_with_degraded_cache(self):
        from vulnboard.api.health import readiness

        client = MagicMock()
        client.admin.command = AsyncMock(return_value={"ok": 1})
        with patch(f"{MODULE}.db") as mock_db, patch(
            f"{MODULE}.cache_service.health_check", new_callable=AsyncMock
        ) as mock_health:
            mock_db.client = client
            mock_health.return_value = {"status": "unhealthy"}
            result = asyncio.run(readiness())

        assert result["status"] == "ready"
        assert result["components"] == {"database": "connected", "cache": "unavailable (degraded mode)"}

    def test_not_ready_without_client(self):
        from vulnboard.api.health import readiness

        with patch(f"{MODULE}.db") as mock_db, patch(
            f"{MODULE}.cache_service.health_check", new_callable=AsyncMock
        ) as mock_health:
            mock_db.client = None
            mock_health.return_value = {"status": "healthy"}
            response = asyncio.run(readiness())

        assert response.status_code == 503
        assert json.loads(response.body)["components"]["database"] == "client_not_initialized"


class TestLiveness:
    def test_alive(self):
        from vulnboard.api.health import liveness

        assert asyncio.run(liveness()) == {"status": "alive"}
