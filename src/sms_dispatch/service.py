"""
Host-facing dispatch service.

Provides end-to-end processing of inbound payloads:
1. Parse and validate the envelope
2. Dispatch to every recipient through the shared rate limiter
3. Aggregate results into a classification and attribute set
4. Decide the route (success / failure) for the host

Many envelopes may be processed concurrently; all workers share the one
rate limiter and gateway client held by the service.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .clients.gateway import GatewayClient
from .clients.http_gateway import HttpGatewayClient
from .config import FailurePolicy, Settings, get_settings
from .engine.aggregator import aggregate
from .engine.dispatcher import EnvelopeDispatcher
from .engine.parser import parse_envelope
from .engine.rate_limiter import RateLimiter, build_rate_limiter
from .errors import MalformedEnvelopeError
from .logging import DispatchTimer, get_logger, logging_context
from .models.envelope import Envelope
from .models.results import AggregateOutcome

logger = get_logger(__name__)

ERROR_ATTRIBUTE = 'status.error'


class Route(str, Enum):
    """Where the host should send the inbound unit of work."""

    SUCCESS = 'success'
    FAILURE = 'failure'


@dataclass
class ProcessOutcome:
    """Result of processing one inbound payload."""

    route: Route
    envelope: Envelope | None = None
    outcome: AggregateOutcome | None = None
    error: str | None = None

    # Timing
    processing_time_ms: int | None = None
    stage_timings: dict[str, float] = field(default_factory=dict)

    @property
    def attributes(self) -> dict[str, str]:
        """Attributes to write alongside the unchanged original payload."""
        if self.outcome is not None:
            return dict(self.outcome.attributes)
        if self.error is not None:
            return {ERROR_ATTRIBUTE: self.error}
        return {}

    def to_dict(self) -> dict[str, Any]:
        """Serialize for logging / API responses."""
        data: dict[str, Any] = {
            'route': self.route.value,
            'error': self.error,
            'attributes': self.attributes,
            'processing_time_ms': self.processing_time_ms,
            'stage_timings': self.stage_timings,
        }
        if self.outcome is not None:
            data.update(self.outcome.to_dict())
        return data


class DispatchService:
    """
    Parses, dispatches and aggregates envelopes for a host.

    Usage:
        service = DispatchService.from_settings()
        outcome = service.process({"to": ["+15148887777"], "body": "hi"})
        outcomes = service.process_many(payloads)
    """

    def __init__(
        self,
        gateway: GatewayClient,
        rate_limiter: RateLimiter | None = None,
        failure_policy: FailurePolicy = FailurePolicy.CONTINUE,
        acquire_timeout: float | None = None,
        max_workers: int = 8,
    ):
        """
        Args:
            gateway: Shared gateway client (safe for concurrent use)
            rate_limiter: Process-wide limiter; None disables throttling
            failure_policy: Per-recipient failure handling
            acquire_timeout: Per-recipient permit wait in seconds
            max_workers: Thread count for ``process_many``
        """
        self.gateway = gateway
        self.rate_limiter = rate_limiter
        self.max_workers = max_workers
        self.dispatcher = EnvelopeDispatcher(
            gateway=gateway,
            rate_limiter=rate_limiter,
            acquire_timeout=acquire_timeout,
            failure_policy=failure_policy,
        )

    @classmethod
    def from_settings(
        cls,
        settings: Settings | None = None,
        gateway: GatewayClient | None = None,
    ) -> DispatchService:
        """
        Build the service from configuration.

        Args:
            settings: Settings to use (defaults to the cached environment settings)
            gateway: Pre-built gateway; an HttpGatewayClient is built when omitted

        Raises:
            ConfigurationError: If limiter or gateway settings are invalid
        """
        settings = settings or get_settings()
        rate_limiter = build_rate_limiter(settings)
        if gateway is None:
            gateway = HttpGatewayClient.from_settings(settings)
        return cls(
            gateway=gateway,
            rate_limiter=rate_limiter,
            failure_policy=settings.FAILURE_POLICY,
            acquire_timeout=settings.acquire_timeout_seconds,
            max_workers=settings.MAX_WORKERS,
        )

    def dispatch_envelope(self, envelope: Envelope) -> AggregateOutcome:
        """Dispatch an already-validated envelope and aggregate its results."""
        return aggregate(self.dispatcher.dispatch(envelope))

    def process(self, raw: Any, trace_id: str | None = None) -> ProcessOutcome:
        """
        Process one inbound payload end to end.

        Malformed payloads are routed to failure without any gateway call.
        Everything else is routed to success with the full attribute set,
        whatever the classification.

        Args:
            raw: Decoded wire envelope (``{"to": [...], "body": "..."}``)
            trace_id: Optional correlation id for logs

        Returns:
            ProcessOutcome; never raises for per-recipient failures
        """
        timer = DispatchTimer()
        envelope_id = raw.get('id') if isinstance(raw, dict) else None

        with logging_context(
            trace_id=trace_id,
            envelope_id=str(envelope_id) if envelope_id is not None else None,
        ):
            try:
                with timer.stage('parse'):
                    envelope = parse_envelope(raw)
            except MalformedEnvelopeError as e:
                logger.warning('service.malformed_envelope', error=str(e))
                return ProcessOutcome(
                    route=Route.FAILURE,
                    error=e.message,
                    processing_time_ms=int(timer.total_ms),
                    stage_timings=timer.stages.copy(),
                )

            with timer.stage('dispatch'):
                results = self.dispatcher.dispatch(envelope)
            with timer.stage('aggregate'):
                outcome = aggregate(results)

            logger.info(
                'service.processed',
                classification=outcome.classification.value,
                succeeded=outcome.success_count,
                failed=outcome.failure_count,
                **timer.summary(),
            )
            return ProcessOutcome(
                route=Route.SUCCESS,
                envelope=envelope,
                outcome=outcome,
                processing_time_ms=int(timer.total_ms),
                stage_timings=timer.stages.copy(),
            )

    def process_many(self, raws: list[Any]) -> list[ProcessOutcome]:
        """
        Process several payloads concurrently.

        Recipients within one envelope stay sequential; only envelopes run
        in parallel, all funnelled through the shared rate limiter.

        Returns:
            One ProcessOutcome per payload, in input order
        """
        if not raws:
            return []
        workers = min(self.max_workers, len(raws))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix='sms-dispatch') as pool:
            return list(pool.map(self.process, raws))

    def close(self) -> None:
        """Release the gateway client if it holds resources."""
        close = getattr(self.gateway, 'close', None)
        if callable(close):
            close()
