"""
Data models for the SMS dispatch engine.
"""

from .envelope import Envelope
from .results import (
    AggregateOutcome,
    Classification,
    DispatchFailure,
    DispatchOutcome,
    DispatchResult,
    DispatchSuccess,
)

__all__ = [
    'Envelope',
    'AggregateOutcome',
    'Classification',
    'DispatchFailure',
    'DispatchOutcome',
    'DispatchResult',
    'DispatchSuccess',
]
