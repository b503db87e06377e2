"""
Pytest Fixtures and Test Configuration
Provides the in-memory store, a fixed clock and sample events for unit tests
"""

import pytest

from tests.fakes import FixedClock, InMemoryFailedEventStore, make_event
from vehicle_data_receiver.handlers.registry import HandlerRegistry
from vehicle_data_receiver.models.telemetry_event import TelemetryEvent


@pytest.fixture
def store() -> InMemoryFailedEventStore:
    return InMemoryFailedEventStore()


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(now=2000)


@pytest.fixture
def registry() -> HandlerRegistry:
    return HandlerRegistry()


@pytest.fixture
def sample_event() -> TelemetryEvent:
    return make_event()
