"""Validate untyped inbound payloads into an Envelope."""

import json
from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError

from ..errors import MalformedEnvelopeError
from ..models.envelope import RESERVED_RECIPIENTS, Envelope


def parse_envelope(raw: Any) -> Envelope:
    """
    Validate the wire shape ``{"to": [...], "body": "..."}`` into an Envelope.

    ``to`` must be a native array of non-blank strings. A bare string
    (including a JSON-encoded array inside a string) is rejected rather
    than coerced.

    Raises:
        MalformedEnvelopeError: If any field is missing or has the wrong shape
    """
    if not isinstance(raw, Mapping):
        raise MalformedEnvelopeError(
            'Envelope must be a JSON object',
            context={'received_type': type(raw).__name__},
        )

    if 'to' not in raw or raw['to'] is None:
        raise MalformedEnvelopeError(
            "Envelope is missing 'to'",
            context={'keys': sorted(str(k) for k in raw.keys())},
        )
    to = raw['to']
    if isinstance(to, (str, bytes)) or not isinstance(to, (list, tuple)):
        raise MalformedEnvelopeError(
            "'to' must be an array of strings",
            context={'received_type': type(to).__name__},
        )
    if not to:
        raise MalformedEnvelopeError("'to' must contain at least one recipient")
    for index, recipient in enumerate(to):
        if not isinstance(recipient, str):
            raise MalformedEnvelopeError(
                "'to' must be an array of strings",
                context={'index': index, 'received_type': type(recipient).__name__},
            )
        if not recipient.strip():
            raise MalformedEnvelopeError(
                "'to' contains a blank recipient",
                context={'index': index},
            )
        if recipient.strip() in RESERVED_RECIPIENTS:
            raise MalformedEnvelopeError(
                "'to' contains a reserved recipient",
                context={'index': index, 'recipient': recipient.strip()},
            )

    body = raw.get('body')
    if body is None:
        raise MalformedEnvelopeError("Envelope is missing 'body'")
    if not isinstance(body, str):
        raise MalformedEnvelopeError(
            "'body' must be a string",
            context={'received_type': type(body).__name__},
        )
    if not body.strip():
        raise MalformedEnvelopeError("'body' is blank")

    envelope_id = raw.get('id')
    try:
        return Envelope(
            recipients=tuple(to),
            body=body,
            envelope_id=str(envelope_id) if envelope_id is not None else None,
        )
    except ValidationError as e:
        raise MalformedEnvelopeError(
            f'Envelope failed validation: {e.errors()[0]["msg"]}',
            context={'error_count': e.error_count()},
        ) from e


def parse_envelope_json(payload: str | bytes) -> Envelope:
    """
    Decode a JSON document and validate it as an envelope.

    Raises:
        MalformedEnvelopeError: On invalid JSON or an invalid envelope
    """
    try:
        raw = json.loads(payload)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise MalformedEnvelopeError(f'Invalid JSON in envelope: {e}') from e
    return parse_envelope(raw)
