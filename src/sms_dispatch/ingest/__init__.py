"""
Inbound adapters that turn foreign message formats into envelope wire dicts.
"""

from .email import extract_envelope_from_email

__all__ = [
    'extract_envelope_from_email',
]
