"""
Pytest configuration and shared fixtures.

Key fixtures:
- make_gateway: factory for a thread-safe fake SMS gateway
- clock: manually advanced monotonic clock for rate limiter tests
- sample_envelope_data: a valid wire envelope

No gateway credentials or network access are required.
"""

import itertools
import sys
import threading
from pathlib import Path

import pytest

# Add src to path for imports
src_path = Path(__file__).parent.parent / 'src'
sys.path.insert(0, str(src_path))

from sms_dispatch.config import get_settings


class FakeGateway:
    """In-memory gateway recording every send; selected recipients fail."""

    def __init__(self, failures: dict[str, Exception] | None = None):
        self.failures = failures or {}
        self.calls: list[tuple[str, str]] = []
        self.closed = False
        self._lock = threading.Lock()
        self._ids = itertools.count(1)

    def send(self, recipient: str, body: str) -> str:
        with self._lock:
            self.calls.append((recipient, body))
            message_id = f'msg-{next(self._ids):04d}'
        if recipient in self.failures:
            raise self.failures[recipient]
        return message_id

    def close(self) -> None:
        self.closed = True

    @property
    def recipients(self) -> list[str]:
        return [recipient for recipient, _ in self.calls]


class ManualClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture(autouse=True)
def _isolated_settings():
    """Settings are cached process-wide; reset around every test."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def make_gateway():
    """Factory: make_gateway(failures={'+1555': GatewayError('nope')})."""
    return FakeGateway


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def sample_envelope_data() -> dict:
    """Wire envelope as produced by the email extractor."""
    return {'to': ['+15148887777', '+15148887779'], 'body': 'SMS Message.'}


@pytest.fixture
def gateway_env() -> dict[str, str]:
    """Environment for a fully configured HTTP gateway."""
    return {
        'GATEWAY_BASE_URL': 'https://sms.example.test',
        'GATEWAY_API_KEY': 'gw-test-key',
    }
