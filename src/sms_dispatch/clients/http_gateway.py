"""
HTTP client for the SMS gateway.

Handles:
- One pooled httpx.Client shared by every dispatch worker
- Bearer authentication and optional sender id
- Retry of transport failures, throttling and 5xx with exponential backoff
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import httpx
from tenacity import (
    Retrying,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from ..errors import (
    ConfigurationError,
    GatewayConnectionError,
    GatewayError,
    GatewayRejectedError,
)
from ..logging import get_logger

if TYPE_CHECKING:
    from ..config import Settings

logger = get_logger(__name__)


def _is_retryable(exc: BaseException) -> bool:
    if isinstance(exc, GatewayConnectionError):
        return True
    if isinstance(exc, GatewayRejectedError) and exc.status_code is not None:
        return exc.status_code == 429 or exc.status_code >= 500
    return False


class HttpGatewayClient:
    """
    Sends SMS messages through a JSON-over-HTTP gateway.

    Request:  POST {base_url}/messages  {"to": ..., "body": ..., "from": ...}
    Response: {"id": "..."} (``message_id`` is accepted as well)
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        sender_id: str | None = None,
        timeout: float = 10.0,
        max_attempts: int = 3,
        backoff_multiplier: float = 0.5,
        transport: httpx.BaseTransport | None = None,
    ):
        """
        Initialize the gateway client.

        Args:
            base_url: Gateway root URL
            api_key: Bearer token
            sender_id: Optional originator shown to recipients
            timeout: Per-request timeout in seconds
            max_attempts: Total attempts per message (1 disables retries)
            backoff_multiplier: Exponential backoff multiplier in seconds
            transport: Optional httpx transport (tests use httpx.MockTransport)
        """
        if not base_url:
            raise ConfigurationError('Gateway base URL is required')
        if not api_key:
            raise ConfigurationError('Gateway API key is required')
        if max_attempts < 1:
            raise ConfigurationError(
                'max_attempts must be at least 1',
                context={'max_attempts': max_attempts},
            )

        self.sender_id = sender_id
        self.max_attempts = max_attempts
        self.backoff_multiplier = backoff_multiplier
        self._client = httpx.Client(
            base_url=base_url.rstrip('/'),
            timeout=timeout,
            headers={
                'Authorization': f'Bearer {api_key}',
                'Content-Type': 'application/json',
            },
            transport=transport,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> HttpGatewayClient:
        missing = settings.missing_gateway_settings()
        if missing:
            raise ConfigurationError(
                'Gateway configuration is incomplete',
                context={'missing': missing},
            )
        return cls(
            base_url=settings.GATEWAY_BASE_URL,
            api_key=settings.GATEWAY_API_KEY,
            sender_id=settings.GATEWAY_SENDER_ID,
            timeout=settings.GATEWAY_TIMEOUT_SECONDS,
            max_attempts=settings.GATEWAY_MAX_ATTEMPTS,
        )

    def send(self, recipient: str, body: str) -> str:
        """
        Deliver one message, retrying transient failures.

        Returns:
            Gateway message id

        Raises:
            GatewayRejectedError: Gateway refused the message (4xx, or 5xx after retries)
            GatewayConnectionError: Network failure or timeout after retries
            GatewayError: Response could not be interpreted
        """
        payload: dict[str, Any] = {'to': recipient, 'body': body}
        if self.sender_id:
            payload['from'] = self.sender_id

        retrying = Retrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(multiplier=self.backoff_multiplier, max=10),
            retry=retry_if_exception(_is_retryable),
            reraise=True,
        )
        for attempt in retrying:
            with attempt:
                attempt_number = attempt.retry_state.attempt_number
                if attempt_number > 1:
                    logger.info('gateway.retrying', recipient=recipient, attempt=attempt_number)
                return self._post_message(payload)

        raise GatewayError('Gateway retry loop exited without a result')

    def _post_message(self, payload: dict[str, Any]) -> str:
        recipient = payload['to']
        try:
            response = self._client.post('/messages', json=payload)
        except (httpx.TimeoutException, httpx.TransportError) as e:
            raise GatewayConnectionError(
                f'{type(e).__name__}: {e}',
                context={'recipient': recipient},
            ) from e

        if response.is_error:
            raise GatewayRejectedError(
                f'HTTP {response.status_code}: {_error_detail(response)}',
                status_code=response.status_code,
                context={'recipient': recipient},
            )

        try:
            data = response.json()
        except ValueError as e:
            raise GatewayError(
                'Gateway returned a non-JSON response',
                context={'recipient': recipient, 'status_code': response.status_code},
            ) from e

        message_id = (data.get('id') or data.get('message_id')) if isinstance(data, dict) else None
        if not message_id:
            raise GatewayError(
                'Gateway response missing message id',
                context={'recipient': recipient},
            )
        return str(message_id)

    def close(self) -> None:
        """Close the pooled HTTP connection."""
        self._client.close()

    def __enter__(self) -> HttpGatewayClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


def _error_detail(response: httpx.Response) -> str:
    """Best-effort human-readable reason from an error response."""
    try:
        data = response.json()
    except ValueError:
        return response.text[:200] or response.reason_phrase
    if isinstance(data, dict):
        for key in ('error', 'message', 'detail'):
            value = data.get(key)
            if isinstance(value, str) and value:
                return value
    return response.reason_phrase
