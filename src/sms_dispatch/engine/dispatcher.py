"""
Per-envelope fan-out to the SMS gateway.

Recipients are processed one at a time, in envelope order. Each attempt
first asks the shared rate limiter for a permit, then calls the gateway.
Every per-recipient error is converted into a DispatchResult; nothing
raised by the limiter or the gateway escapes ``dispatch``.
"""

from ..clients.gateway import GatewayClient
from ..config import FailurePolicy
from ..errors import (
    GatewayError,
    RateLimitTimeoutError,
    SmsDispatchError,
    classify_gateway_error,
)
from ..logging import get_logger
from ..models.envelope import Envelope
from ..models.results import DispatchResult
from .rate_limiter import RateLimiter

logger = get_logger(__name__)

RATE_LIMIT_TIMEOUT_REASON = 'rate limit timeout'
SKIPPED_REASON = 'skipped after earlier failure'


class EnvelopeDispatcher:
    """
    Sends one envelope's body to each of its recipients.

    The gateway and rate limiter are injected so that one pooled gateway
    client and one process-wide limiter can be shared by every worker.

    Usage:
        dispatcher = EnvelopeDispatcher(gateway, rate_limiter=limiter)
        results = dispatcher.dispatch(envelope)
    """

    def __init__(
        self,
        gateway: GatewayClient,
        rate_limiter: RateLimiter | None = None,
        acquire_timeout: float | None = None,
        failure_policy: FailurePolicy = FailurePolicy.CONTINUE,
    ):
        """
        Args:
            gateway: Client used for every send
            rate_limiter: Shared limiter; None dispatches unthrottled
            acquire_timeout: Per-recipient permit wait in seconds
                (None uses the limiter's own default)
            failure_policy: CONTINUE attempts every recipient; FAIL_FAST
                skips the remaining recipients after the first failure
        """
        self.gateway = gateway
        self.rate_limiter = rate_limiter
        self.acquire_timeout = acquire_timeout
        self.failure_policy = failure_policy

    def dispatch(self, envelope: Envelope) -> list[DispatchResult]:
        """
        Attempt delivery to every recipient of the envelope.

        Args:
            envelope: Validated envelope

        Returns:
            Exactly one DispatchResult per recipient, in recipient order
        """
        log = logger.bind(
            recipient_count=len(envelope.recipients),
            body_length=len(envelope.body),
            throttled=self.rate_limiter is not None,
        )
        log.info('dispatcher.started')

        results: list[DispatchResult] = []
        halted = False

        for recipient in envelope.recipients:
            if halted:
                results.append(
                    DispatchResult.failure(recipient, SKIPPED_REASON, error_type='Skipped')
                )
                continue

            result = self._dispatch_one(recipient, envelope.body)
            results.append(result)

            if not result.succeeded:
                log.warning(
                    'dispatcher.recipient_failed',
                    recipient=recipient,
                    reason=result.detail,
                )
                if self.failure_policy is FailurePolicy.FAIL_FAST:
                    halted = True

        succeeded = sum(1 for r in results if r.succeeded)
        log.info(
            'dispatcher.complete',
            succeeded=succeeded,
            failed=len(results) - succeeded,
            halted=halted,
        )
        return results

    def _dispatch_one(self, recipient: str, body: str) -> DispatchResult:
        if self.rate_limiter is not None:
            try:
                granted = self.rate_limiter.acquire(self.acquire_timeout)
            except Exception as exc:  # noqa: BLE001
                logger.warning(
                    'dispatcher.limiter_error',
                    recipient=recipient,
                    error_type=type(exc).__name__,
                )
                return DispatchResult.failure(
                    recipient,
                    _failure_reason(exc),
                    type(exc).__name__,
                )
            if not granted:
                return DispatchResult.failure(
                    recipient,
                    RATE_LIMIT_TIMEOUT_REASON,
                    RateLimitTimeoutError.__name__,
                )

        try:
            gateway_id = self.gateway.send(recipient, body)
        except Exception as exc:  # noqa: BLE001
            return DispatchResult.failure(
                recipient,
                _failure_reason(exc),
                classify_gateway_error(exc).__name__,
            )

        if not gateway_id:
            return DispatchResult.failure(
                recipient, 'gateway returned no message id', GatewayError.__name__
            )

        logger.debug('dispatcher.recipient_sent', recipient=recipient, gateway_id=gateway_id)
        return DispatchResult.success(recipient, str(gateway_id))


def _failure_reason(exc: Exception) -> str:
    reason = exc.message if isinstance(exc, SmsDispatchError) else str(exc)
    return reason or type(exc).__name__


def dispatch(
    envelope: Envelope,
    rate_limiter: RateLimiter | None,
    gateway: GatewayClient,
    acquire_timeout: float | None = None,
) -> list[DispatchResult]:
    """Functional form of ``EnvelopeDispatcher.dispatch`` with the default policy."""
    return EnvelopeDispatcher(
        gateway=gateway,
        rate_limiter=rate_limiter,
        acquire_timeout=acquire_timeout,
    ).dispatch(envelope)
