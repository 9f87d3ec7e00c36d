"""
Fold per-recipient results into an envelope classification and attributes.

Attribute layout written alongside the unchanged message:
    status.<recipient>     gateway id on success, failure reason otherwise
    status.count.success   number of successful recipients
    status.count.failure   number of failed recipients
"""

from collections.abc import Sequence

from ..models.results import AggregateOutcome, Classification, DispatchResult

STATUS_PREFIX = 'status.'
SUCCESS_COUNT_KEY = 'status.count.success'
FAILURE_COUNT_KEY = 'status.count.failure'


def classify(results: Sequence[DispatchResult]) -> Classification:
    """All successes, all failures, or a mix."""
    if not results:
        raise ValueError('cannot classify an empty result sequence')

    succeeded = sum(1 for r in results if r.succeeded)
    if succeeded == len(results):
        return Classification.ALL_SUCCEEDED
    if succeeded == 0:
        return Classification.ALL_FAILED
    return Classification.PARTIAL_FAILURE


def build_attributes(results: Sequence[DispatchResult]) -> dict[str, str]:
    """
    Raises:
        ValueError: If a recipient's status key would overwrite a count key
    """
    # A recipient listed twice keeps the detail of its last attempt
    attributes: dict[str, str] = {}
    succeeded = 0
    for result in results:
        key = f'{STATUS_PREFIX}{result.recipient}'
        if key in (SUCCESS_COUNT_KEY, FAILURE_COUNT_KEY):
            raise ValueError(f'recipient {result.recipient!r} collides with a count attribute')
        attributes[key] = result.detail
        if result.succeeded:
            succeeded += 1

    attributes[SUCCESS_COUNT_KEY] = str(succeeded)
    attributes[FAILURE_COUNT_KEY] = str(len(results) - succeeded)
    return attributes


def aggregate(results: Sequence[DispatchResult]) -> AggregateOutcome:
    """
    Derive the AggregateOutcome for one envelope.

    Pure function: ``results`` is not mutated and the same input always
    yields an equal outcome.

    Raises:
        ValueError: If ``results`` is empty or a recipient collides with a count key
    """
    return AggregateOutcome(
        per_recipient=tuple(results),
        classification=classify(results),
        attributes=build_attributes(results),
    )
