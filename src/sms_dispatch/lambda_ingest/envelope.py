"""Decode SQS message bodies into raw envelope payloads."""

import json
from typing import Any

from sms_dispatch.errors import MalformedEnvelopeError


def parse_sqs_record_body(body: str) -> Any:
    """
    Extract the wire envelope from an SQS message body.

    Two body formats are accepted:
    - the envelope itself: {"to": [...], "body": "..."}
    - an EventBridge event whose `detail` is the envelope:
      {"version": "0", "detail-type": "...", "source": "...", "detail": {...}}

    Returns the decoded envelope payload (not yet validated).
    """
    try:
        event = json.loads(body)
    except json.JSONDecodeError as e:
        raise MalformedEnvelopeError(f"Invalid JSON in SQS body: {e}") from e

    if isinstance(event, dict) and "detail-type" in event:
        if "detail" not in event:
            raise MalformedEnvelopeError(
                "Missing 'detail' key in EventBridge event",
                context={"keys": list(event.keys())},
            )
        return event["detail"]

    return event
