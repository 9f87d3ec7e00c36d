"""
Tests for the errors module.
"""

import pytest

from sms_dispatch.errors import (
    ConfigurationError,
    DeliveryError,
    GatewayConnectionError,
    GatewayError,
    GatewayRejectedError,
    MalformedEnvelopeError,
    RateLimitTimeoutError,
    SmsDispatchError,
    classify_gateway_error,
    wrap_gateway_error,
)


class TestErrorHierarchy:
    """Test error class hierarchy."""

    def test_base_error_with_context(self):
        """Test that base error captures context."""
        error = SmsDispatchError(
            "Something went wrong",
            context={"recipient": "+1A", "attempt": 2},
        )

        assert error.message == "Something went wrong"
        assert error.context == {"recipient": "+1A", "attempt": 2}
        assert str(error) == "Something went wrong | context={'recipient': '+1A', 'attempt': 2}"

    def test_base_error_without_context(self):
        """Test error without context."""
        error = SmsDispatchError("Simple error")

        assert error.context == {}
        assert str(error) == "Simple error"

    def test_envelope_and_configuration_errors(self):
        """Envelope and configuration errors are not delivery errors."""
        assert isinstance(MalformedEnvelopeError("bad"), SmsDispatchError)
        assert isinstance(ConfigurationError("bad"), SmsDispatchError)
        assert not isinstance(MalformedEnvelopeError("bad"), DeliveryError)

    def test_delivery_error_inheritance(self):
        """Test per-recipient error hierarchy."""
        assert isinstance(RateLimitTimeoutError("timeout"), DeliveryError)
        assert isinstance(GatewayError("gateway"), DeliveryError)
        assert isinstance(GatewayConnectionError("down"), GatewayError)
        assert isinstance(GatewayRejectedError("no"), GatewayError)

    def test_rejected_error_keeps_status_code(self):
        """Test that HTTP status survives on rejected errors."""
        error = GatewayRejectedError("HTTP 429: slow down", status_code=429)

        assert error.status_code == 429
        assert error.message == "HTTP 429: slow down"


class TestErrorWrapping:
    """Test gateway error wrapping."""

    def test_typed_error_returned_unchanged(self):
        """Already-typed gateway errors pass through."""
        original = GatewayRejectedError("HTTP 400: bad number", status_code=400)
        assert wrap_gateway_error(original) is original

    @pytest.mark.parametrize(
        "original",
        [
            ConnectionError("reset by peer"),
            TimeoutError("read"),
            Exception("Request timed out"),
            Exception("Could not connect to host"),
        ],
    )
    def test_wrap_connection_errors(self, original):
        """Transport failures map to GatewayConnectionError."""
        assert isinstance(wrap_gateway_error(original), GatewayConnectionError)

    @pytest.mark.parametrize(
        "message",
        ["Invalid parameter: PhoneNumber", "Message rejected", "Recipient opted out"],
    )
    def test_wrap_rejections(self, message):
        """Refusals map to GatewayRejectedError."""
        wrapped = wrap_gateway_error(Exception(message))

        assert isinstance(wrapped, GatewayRejectedError)
        assert wrapped.status_code is None

    def test_wrap_generic(self):
        """Unknown failures map to GatewayError with context."""
        wrapped = wrap_gateway_error(RuntimeError("boom"), context={"recipient": "+1A"})

        assert type(wrapped) is GatewayError
        assert wrapped.message == "Gateway error: boom"
        assert wrapped.context["recipient"] == "+1A"
        assert wrapped.context["error_type"] == "RuntimeError"
        assert wrapped.context["original_error"] == "boom"


class TestErrorClassification:
    """Test gateway error classification without wrapping."""

    def test_typed_error_keeps_its_class(self):
        """Typed gateway errors report their own class."""
        assert classify_gateway_error(GatewayRejectedError("no", status_code=400)) is GatewayRejectedError

    @pytest.mark.parametrize(
        "original, expected",
        [
            (ConnectionError("reset by peer"), GatewayConnectionError),
            (Exception("Recipient opted out"), GatewayRejectedError),
            (RuntimeError("boom"), GatewayError),
        ],
    )
    def test_matches_wrapping(self, original, expected):
        """Classification agrees with the class wrap_gateway_error builds."""
        assert classify_gateway_error(original) is expected
        assert type(wrap_gateway_error(original)) is expected
