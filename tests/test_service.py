"""
Tests for DispatchService: parse, dispatch, aggregate and route.

Tests cover:
- Routing: malformed payloads to failure (no gateway call), everything else to success
- Attributes and classification carried on the ProcessOutcome
- Concurrent envelopes sharing one rate limiter
- Construction from settings and resource release

Run with: pytest tests/test_service.py -v
"""

import time
from collections import Counter

import pytest

from sms_dispatch.config import FailurePolicy, Settings
from sms_dispatch.engine.rate_limiter import FixedWindowRateLimiter
from sms_dispatch.errors import ConfigurationError, GatewayRejectedError
from sms_dispatch.models.results import Classification
from sms_dispatch.service import ERROR_ATTRIBUTE, DispatchService, Route


class WindowRecordingLimiter(FixedWindowRateLimiter):
    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.grants: list[float] = []

    def _issue(self) -> None:
        super()._issue()
        self.grants.append(self._window_start)


# =============================================================================
# Routing
# =============================================================================


class TestProcessRouting:
    def test_all_succeeded_routes_to_success(self, make_gateway, sample_envelope_data):
        gateway = make_gateway()
        service = DispatchService(gateway)

        result = service.process(sample_envelope_data)

        assert result.route == Route.SUCCESS
        assert result.outcome.classification is Classification.ALL_SUCCEEDED
        assert result.attributes['status.+15148887777'] == 'msg-0001'
        assert result.attributes['status.+15148887779'] == 'msg-0002'
        assert len(gateway.calls) == 2

    def test_partial_failure_routes_to_success(self, make_gateway):
        gateway = make_gateway(failures={'+1A': GatewayRejectedError('Invalid parameter: PhoneNumber')})

        result = DispatchService(gateway).process({'to': ['+1A', '+1B'], 'body': 'hi'})

        assert result.route == Route.SUCCESS
        assert result.outcome.classification is Classification.PARTIAL_FAILURE
        assert result.attributes['status.+1A'] == 'Invalid parameter: PhoneNumber'

    def test_all_failed_still_routes_to_success(self, make_gateway):
        error = GatewayRejectedError('opted out')
        gateway = make_gateway(failures={'+1A': error, '+1B': error})

        result = DispatchService(gateway).process({'to': ['+1A', '+1B'], 'body': 'hi'})

        assert result.route == Route.SUCCESS
        assert result.outcome.classification is Classification.ALL_FAILED

    @pytest.mark.parametrize(
        'raw',
        [
            {'to': '+1A', 'body': 'hi'},
            {'to': [], 'body': 'hi'},
            {'to': ['+1A']},
            {'to': ['count.success', '+1B'], 'body': 'hi'},
            'not json object',
        ],
    )
    def test_malformed_routes_to_failure_without_sending(self, make_gateway, raw):
        gateway = make_gateway()

        result = DispatchService(gateway).process(raw)

        assert result.route == Route.FAILURE
        assert result.outcome is None
        assert ERROR_ATTRIBUTE in result.attributes
        assert gateway.calls == []

    def test_stage_timings_recorded(self, make_gateway, sample_envelope_data):
        result = DispatchService(make_gateway()).process(sample_envelope_data, trace_id='t-1')

        assert set(result.stage_timings) == {'parse', 'dispatch', 'aggregate'}
        assert result.processing_time_ms is not None

    def test_to_dict_includes_outcome(self, make_gateway, sample_envelope_data):
        data = DispatchService(make_gateway()).process(sample_envelope_data).to_dict()

        assert data['route'] == 'success'
        assert data['classification'] == 'all_succeeded'
        assert data['attributes']['status.count.success'] == '2'
        assert len(data['per_recipient']) == 2

    def test_fail_fast_policy(self, make_gateway):
        gateway = make_gateway(failures={'+1A': GatewayRejectedError('rejected')})
        service = DispatchService(gateway, failure_policy=FailurePolicy.FAIL_FAST)

        result = service.process({'to': ['+1A', '+1B'], 'body': 'hi'})

        assert result.outcome.classification is Classification.ALL_FAILED
        assert gateway.recipients == ['+1A']


# =============================================================================
# Concurrency
# =============================================================================


class TestProcessMany:
    def test_results_in_input_order(self, make_gateway):
        payloads = [{'to': [f'+1{i}'], 'body': f'msg {i}'} for i in range(10)]

        results = DispatchService(make_gateway(), max_workers=4).process_many(payloads)

        assert [r.envelope.body for r in results] == [p['body'] for p in payloads]

    def test_empty_batch(self, make_gateway):
        assert DispatchService(make_gateway()).process_many([]) == []

    def test_envelopes_share_one_limiter(self, make_gateway):
        limiter = WindowRecordingLimiter(limit_for_period=3, refresh_period=0.1, acquire_timeout=2.0)
        gateway = make_gateway()
        service = DispatchService(gateway, rate_limiter=limiter, max_workers=5)
        payloads = [
            {'to': [f'+1{e}{r}' for r in range(3)], 'body': 'hi'} for e in range(5)
        ]

        t0 = time.monotonic()
        results = service.process_many(payloads)
        elapsed = time.monotonic() - t0

        assert all(r.outcome.classification is Classification.ALL_SUCCEEDED for r in results)
        assert len(gateway.calls) == 15
        assert max(Counter(limiter.grants).values()) <= 3
        assert elapsed >= 0.35

    def test_unthrottled_when_limiter_disabled(self, make_gateway):
        gateway = make_gateway()
        service = DispatchService(gateway, rate_limiter=None)
        payloads = [{'to': [f'+1{e}{r}' for r in range(20)], 'body': 'hi'} for e in range(3)]

        service.process_many(payloads)

        assert len(gateway.calls) == 60


# =============================================================================
# Construction
# =============================================================================


class TestFromSettings:
    def test_builds_limiter_and_policy(self, make_gateway):
        settings = Settings(
            LIMIT_FOR_PERIOD=5,
            REFRESH_PERIOD_MS=1000,
            FAILURE_POLICY='fail_fast',
            MAX_WORKERS=2,
        )

        service = DispatchService.from_settings(settings, gateway=make_gateway())

        assert service.rate_limiter.limit_for_period == 5
        assert service.dispatcher.failure_policy is FailurePolicy.FAIL_FAST
        assert service.max_workers == 2

    def test_disabled_limiter(self, make_gateway):
        settings = Settings(RATE_LIMITING_ENABLED=False)
        service = DispatchService.from_settings(settings, gateway=make_gateway())
        assert service.rate_limiter is None

    def test_missing_gateway_settings_fail_fast(self):
        settings = Settings(GATEWAY_BASE_URL='', GATEWAY_API_KEY='')
        with pytest.raises(ConfigurationError):
            DispatchService.from_settings(settings)

    def test_builds_http_gateway(self, gateway_env):
        service = DispatchService.from_settings(Settings(**gateway_env))
        assert service.gateway.max_attempts == 3
        service.close()

    def test_close_releases_gateway(self, make_gateway):
        gateway = make_gateway()
        DispatchService(gateway).close()
        assert gateway.closed is True
