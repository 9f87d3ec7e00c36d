"""
Dispatch engine: envelope parsing, admission control, fan-out and aggregation.
"""

from .aggregator import aggregate, classify
from .dispatcher import EnvelopeDispatcher, dispatch
from .parser import parse_envelope, parse_envelope_json
from .rate_limiter import (
    FixedWindowRateLimiter,
    RateLimiter,
    RateLimiterSnapshot,
    build_rate_limiter,
)

__all__ = [
    # Parsing
    'parse_envelope',
    'parse_envelope_json',
    # Admission control
    'RateLimiter',
    'FixedWindowRateLimiter',
    'RateLimiterSnapshot',
    'build_rate_limiter',
    # Dispatch
    'EnvelopeDispatcher',
    'dispatch',
    # Aggregation
    'aggregate',
    'classify',
]
