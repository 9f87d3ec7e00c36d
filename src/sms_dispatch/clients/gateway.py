"""Gateway collaborator contract."""

from typing import Protocol, runtime_checkable


@runtime_checkable
class GatewayClient(Protocol):
    """
    Capability to deliver one message to one recipient.

    Implementations must be safe to call from several worker threads at
    once and should raise a GatewayError (or any exception carrying a
    readable message) when the message is not accepted.
    """

    def send(self, recipient: str, body: str) -> str:
        """Deliver ``body`` to ``recipient`` and return the gateway message id."""
        ...
