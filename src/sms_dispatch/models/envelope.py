"""
Envelope model: the validated unit of work handed to the dispatcher.

Wire shape (JSON):
    {"to": ["+15148887777", "+15148887779"], "body": "SMS Message."}
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator

# status.<recipient> for these would overwrite the aggregate count attributes
RESERVED_RECIPIENTS = frozenset({'count.success', 'count.failure'})


class Envelope(BaseModel):
    """
    Recipients plus a message body, immutable once constructed.

    Recipients keep their input order; that order defines the order of
    dispatch results and of emitted attributes.
    """

    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            'examples': [
                {
                    'recipients': ['+15148887777', '+15148887779'],
                    'body': 'SMS Message.',
                }
            ]
        },
    )

    recipients: tuple[str, ...] = Field(
        ..., min_length=1, description='Ordered recipient identifiers (E.164-like phone numbers)'
    )
    body: str = Field(..., description='Message body sent unchanged to every recipient')
    envelope_id: str | None = Field(
        default=None, description='Caller-supplied identifier used for log correlation (optional)'
    )

    @field_validator('recipients')
    @classmethod
    def _recipients_not_blank(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        stripped = tuple(r.strip() for r in value)
        for index, recipient in enumerate(stripped):
            if not recipient:
                raise ValueError(f'recipient at index {index} is blank')
            if recipient in RESERVED_RECIPIENTS:
                raise ValueError(f'recipient at index {index} is reserved: {recipient}')
        return stripped

    @field_validator('body')
    @classmethod
    def _body_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError('body is blank')
        return value

    def to_wire(self) -> dict[str, object]:
        """Render back into the inbound wire shape."""
        return {'to': list(self.recipients), 'body': self.body}
