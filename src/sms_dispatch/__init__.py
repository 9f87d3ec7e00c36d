"""
SMS Dispatch

Batch notification dispatch engine: fans one message out to every recipient
of an envelope through a shared, rate-limited SMS gateway and classifies
the envelope by its per-recipient outcomes.
"""

__version__ = '0.1.0'

# Re-export key classes for convenience
from .clients import GatewayClient, HttpGatewayClient
from .config import FailurePolicy, Settings, get_settings
from .engine import (
    EnvelopeDispatcher,
    FixedWindowRateLimiter,
    RateLimiter,
    aggregate,
    build_rate_limiter,
    dispatch,
    parse_envelope,
    parse_envelope_json,
)
from .errors import (
    ConfigurationError,
    GatewayError,
    MalformedEnvelopeError,
    RateLimitTimeoutError,
    SmsDispatchError,
)
from .logging import DispatchTimer, configure_logging, get_logger, logging_context
from .models import (
    AggregateOutcome,
    Classification,
    DispatchFailure,
    DispatchResult,
    DispatchSuccess,
    Envelope,
)
from .service import DispatchService, ProcessOutcome, Route

__all__ = [
    # Version
    '__version__',
    # Service
    'DispatchService',
    'ProcessOutcome',
    'Route',
    # Engine
    'EnvelopeDispatcher',
    'FixedWindowRateLimiter',
    'RateLimiter',
    'aggregate',
    'build_rate_limiter',
    'dispatch',
    'parse_envelope',
    'parse_envelope_json',
    # Models
    'Envelope',
    'AggregateOutcome',
    'Classification',
    'DispatchFailure',
    'DispatchResult',
    'DispatchSuccess',
    # Clients
    'GatewayClient',
    'HttpGatewayClient',
    # Config
    'FailurePolicy',
    'Settings',
    'get_settings',
    # Logging
    'configure_logging',
    'get_logger',
    'logging_context',
    'DispatchTimer',
    # Errors
    'SmsDispatchError',
    'MalformedEnvelopeError',
    'ConfigurationError',
    'RateLimitTimeoutError',
    'GatewayError',
]
