"""
Unit tests for health checks
Tests store health reporting and the Prometheus depth gauges
"""

import pytest
from prometheus_client import REGISTRY

from tests.fakes import seed
from vehicle_data_receiver.models.failed_event import QuarantineReason
from vehicle_data_receiver.observability import health
from vehicle_data_receiver.observability.metrics import set_store_depth


class TestHealthChecks:
    """Test failed event store health reporting"""

    @pytest.mark.asyncio
    async def test_healthy_store_reports_depth(self, store):
        await store.connect()
        await seed(store, "speed", timestamp=100)
        quarantined_id = await seed(store, "speed", timestamp=200)
        await store.quarantine(quarantined_id, QuarantineReason.DECODE_ERROR, 300)

        is_healthy, latency_ms, depth = await health.check_store_health(store)

        assert is_healthy
        assert latency_ms >= 0
        assert depth == {"pending": 1, "quarantined": 1}

    @pytest.mark.asyncio
    async def test_disconnected_store_is_unhealthy(self, store):
        is_healthy, _, depth = await health.check_store_health(store)

        assert not is_healthy
        assert depth == {}

    @pytest.mark.asyncio
    async def test_update_health_status(self, store):
        await store.connect()

        await health.update_health_status(store)
        status = health.get_health_status()

        assert status["status"] == "healthy"
        assert status["dependencies"]["failed_event_store"]["status"] == "up"
        assert status["dependencies"]["failed_event_store"]["pending"] == 0

    def test_health_status_without_checks_is_unhealthy(self):
        status = health.HealthStatus()

        assert status.get_overall_status() == "unhealthy"

    def test_set_store_depth(self):
        set_store_depth(pending=5, quarantined=2)

        assert REGISTRY.get_sample_value("vdr_pending_failed_events") == 5
        assert REGISTRY.get_sample_value("vdr_quarantined_failed_events") == 2
