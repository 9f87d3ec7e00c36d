"""
Custom exceptions and error handling for the SMS dispatch engine.

Provides:
- Typed exception hierarchy for parse, configuration and delivery failures
- Error context preservation for debugging
- Wrapping of arbitrary gateway exceptions into the GatewayError family
"""

from typing import Any


class SmsDispatchError(Exception):
    """Base exception for all SMS dispatch errors."""

    def __init__(self, message: str, context: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        if self.context:
            return f"{self.message} | context={self.context}"
        return self.message


# =============================================================================
# Envelope / Configuration Errors
# =============================================================================


class MalformedEnvelopeError(SmsDispatchError):
    """Inbound envelope failed validation; nothing was dispatched."""

    pass


class ConfigurationError(SmsDispatchError):
    """Engine configuration is invalid; no dispatch may start."""

    pass


# =============================================================================
# Per-recipient Delivery Errors
# =============================================================================


class DeliveryError(SmsDispatchError):
    """Base class for failures scoped to a single recipient."""

    pass


class RateLimitTimeoutError(DeliveryError):
    """No permit was granted before the acquire timeout elapsed."""

    pass


class GatewayError(DeliveryError):
    """The external gateway failed to accept a message."""

    pass


class GatewayConnectionError(GatewayError):
    """Transport failure talking to the gateway (network, timeout)."""

    pass


class GatewayRejectedError(GatewayError):
    """The gateway answered but refused the message."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        context: dict[str, Any] | None = None,
    ):
        super().__init__(message, context=context)
        self.status_code = status_code


# =============================================================================
# Error Handling Utilities
# =============================================================================


def classify_gateway_error(exc: Exception) -> type[GatewayError]:
    """
    Pick the GatewayError subclass matching an arbitrary gateway exception.

    Already-typed errors keep their own class.
    """
    if isinstance(exc, GatewayError):
        return type(exc)

    error_str = str(exc).lower()
    if isinstance(exc, (ConnectionError, TimeoutError)) or 'timed out' in error_str or 'connect' in error_str:
        return GatewayConnectionError
    if 'invalid' in error_str or 'rejected' in error_str or 'opted out' in error_str:
        return GatewayRejectedError
    return GatewayError


_WRAPPED_PREFIXES: dict[type[GatewayError], str] = {
    GatewayConnectionError: 'Gateway connection failed',
    GatewayRejectedError: 'Gateway rejected message',
    GatewayError: 'Gateway error',
}


def wrap_gateway_error(exc: Exception, context: dict[str, Any] | None = None) -> GatewayError:
    """
    Wrap a gateway exception in our typed error hierarchy.

    Args:
        exc: The original exception
        context: Additional context for debugging

    Returns:
        Typed GatewayError subclass (the original is returned if already typed)
    """
    if isinstance(exc, GatewayError):
        return exc

    ctx = context or {}
    ctx['original_error'] = str(exc)
    ctx['error_type'] = type(exc).__name__

    error_cls = classify_gateway_error(exc)
    return error_cls(f"{_WRAPPED_PREFIXES[error_cls]}: {exc}", context=ctx)
