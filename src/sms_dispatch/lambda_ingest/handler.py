"""Lambda entry point: SQS → parse envelope → dispatch to every recipient.

Uses AWS Lambda Powertools for structured logging, tracing, and batch processing.
A malformed record is reported back to SQS as a batch item failure; envelopes
with per-recipient delivery failures are still acknowledged (no retries here).
"""

from aws_lambda_powertools import Logger, Tracer
from aws_lambda_powertools.utilities.batch import (
    BatchProcessor,
    EventType,
    process_partial_response,
)
from aws_lambda_powertools.utilities.data_classes.sqs_event import SQSRecord

from sms_dispatch.errors import MalformedEnvelopeError
from sms_dispatch.service import DispatchService, Route

from .envelope import parse_sqs_record_body

# Module-level singletons survive across warm Lambda invocations
processor = BatchProcessor(event_type=EventType.SQS, raise_on_entire_batch_failure=False)
logger = Logger(service="sms-dispatch-ingest", log_uncaught_exceptions=True)
tracer = Tracer(service="sms-dispatch-ingest")

_service: DispatchService | None = None


def _get_service() -> DispatchService:
    """Lazy-init the shared service (one rate limiter per Lambda container)."""
    global _service
    if _service is None:
        _service = DispatchService.from_settings()
    return _service


@tracer.capture_method
def process_record(record: SQSRecord) -> None:
    """Process a single SQS record containing one envelope."""
    service = _get_service()

    envelope_json = parse_sqs_record_body(record.body)
    outcome = service.process(envelope_json, trace_id=record.message_id)

    if outcome.route is Route.FAILURE:
        logger.error(
            "record.malformed",
            extra={"error": outcome.error, "message_id": record.message_id},
        )
        raise MalformedEnvelopeError(
            f"Envelope rejected: {outcome.error}",
            context={"message_id": record.message_id},
        )

    logger.info(
        "record.dispatched",
        extra={
            "message_id": record.message_id,
            "classification": outcome.outcome.classification.value,
            "attributes": outcome.attributes,
        },
    )


@logger.inject_lambda_context(log_event=False)
@tracer.capture_lambda_handler
def lambda_handler(event: dict, context) -> dict:
    """Lambda entry point: processes the SQS batch with partial failure reporting."""
    return process_partial_response(
        event=event,
        record_handler=process_record,
        processor=processor,
        context=context,
    )
