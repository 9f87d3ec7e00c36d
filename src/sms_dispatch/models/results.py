"""
Per-recipient dispatch results and the envelope-level aggregate.

Outcomes are a tagged union discriminated on ``kind`` so that
classification code can match exhaustively on success vs. failure.
"""

from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field


class DispatchSuccess(BaseModel):
    """The gateway accepted the message."""

    model_config = ConfigDict(frozen=True)

    kind: Literal['success'] = 'success'
    gateway_id: str


class DispatchFailure(BaseModel):
    """The message was not accepted for this recipient."""

    model_config = ConfigDict(frozen=True)

    kind: Literal['failure'] = 'failure'
    reason: str
    error_type: str | None = None


DispatchOutcome = Annotated[
    Union[DispatchSuccess, DispatchFailure],
    Field(discriminator='kind'),
]


class DispatchResult(BaseModel):
    """Outcome of the single delivery attempt for one recipient."""

    model_config = ConfigDict(frozen=True)

    recipient: str
    outcome: DispatchOutcome

    @classmethod
    def success(cls, recipient: str, gateway_id: str) -> 'DispatchResult':
        return cls(recipient=recipient, outcome=DispatchSuccess(gateway_id=gateway_id))

    @classmethod
    def failure(
        cls,
        recipient: str,
        reason: str,
        error_type: str | None = None,
    ) -> 'DispatchResult':
        return cls(
            recipient=recipient,
            outcome=DispatchFailure(reason=reason, error_type=error_type),
        )

    @property
    def succeeded(self) -> bool:
        return isinstance(self.outcome, DispatchSuccess)

    @property
    def detail(self) -> str:
        """Gateway id on success, failure reason otherwise."""
        if isinstance(self.outcome, DispatchSuccess):
            return self.outcome.gateway_id
        return self.outcome.reason


class Classification(str, Enum):
    """Envelope-level disposition derived from per-recipient results."""

    ALL_SUCCEEDED = 'all_succeeded'
    PARTIAL_FAILURE = 'partial_failure'
    ALL_FAILED = 'all_failed'


class AggregateOutcome(BaseModel):
    """
    Classified envelope result plus a flat attribute mapping.

    Attributes:
        per_recipient: One result per recipient, in envelope order
        classification: AllSucceeded / PartialFailure / AllFailed
        attributes: ``status.<recipient>`` plus success/failure counts
    """

    model_config = ConfigDict(frozen=True)

    per_recipient: tuple[DispatchResult, ...]
    classification: Classification
    attributes: dict[str, str]

    @property
    def success_count(self) -> int:
        return sum(1 for r in self.per_recipient if r.succeeded)

    @property
    def failure_count(self) -> int:
        return len(self.per_recipient) - self.success_count

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            'classification': self.classification.value,
            'success_count': self.success_count,
            'failure_count': self.failure_count,
            'per_recipient': [r.model_dump() for r in self.per_recipient],
            'attributes': dict(self.attributes),
        }
