"""
Convert an inbound email into the envelope wire shape.

Email-to-SMS convention: each ``To:`` address carries the phone number in
its local part, e.g. ``+15551234567@sms.example.com``. The SMS body is the
concatenation of the message's inline ``text/plain`` parts; HTML
alternatives and attachments are ignored.

A ``text/plain`` part marked ``Content-Disposition: attachment`` counts as
an attachment and is left out of the SMS body, so a forwarded ``notes.txt``
is never texted to recipients.
"""

from email import policy
from email.message import EmailMessage
from email.parser import BytesParser
from email.utils import getaddresses
from typing import Any

from ..errors import MalformedEnvelopeError
from ..logging import get_logger

logger = get_logger(__name__)


def extract_recipients(message: EmailMessage) -> list[str]:
    """Local parts of every ``To:`` address, in header order."""
    recipients = []
    for _name, address in getaddresses(message.get_all('To', [])):
        local_part = address.split('@', 1)[0].strip()
        if local_part:
            recipients.append(local_part)
    return recipients


def extract_text_body(message: EmailMessage) -> str:
    """Concatenate the ``text/plain`` parts, recursing into nested multiparts."""
    if not message.is_multipart():
        if message.get_content_type() == 'text/plain':
            return message.get_content()
        return ''

    chunks = []
    for part in message.walk():
        if part.is_multipart() or part.is_attachment():
            continue
        if part.get_content_type() == 'text/plain':
            chunks.append(part.get_content())
    return ''.join(chunks)


def extract_envelope_from_email(raw: bytes | str) -> dict[str, Any]:
    """
    Parse an RFC 5322 message into ``{"to": [...], "body": "..."}``.

    The result is not validated here; pass it to ``parse_envelope``.

    Raises:
        MalformedEnvelopeError: If the message body cannot be decoded
    """
    if isinstance(raw, str):
        raw = raw.encode('utf-8')

    message = BytesParser(policy=policy.default).parsebytes(raw)
    try:
        recipients = extract_recipients(message)
        body = extract_text_body(message)
    except (LookupError, UnicodeDecodeError, ValueError) as e:
        raise MalformedEnvelopeError(
            f'Email could not be decoded: {e}',
            context={'error_type': type(e).__name__},
        ) from e

    logger.info(
        'email.extracted',
        recipient_count=len(recipients),
        body_length=len(body),
    )
    return {'to': recipients, 'body': body}
