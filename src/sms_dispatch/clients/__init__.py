"""
External service clients for the SMS dispatch engine.
"""

from .gateway import GatewayClient
from .http_gateway import HttpGatewayClient

__all__ = [
    'GatewayClient',
    'HttpGatewayClient',
]
