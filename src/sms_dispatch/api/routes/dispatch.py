"""POST /dispatch: validate envelopes and fan them out to the gateway."""

from typing import Any

import structlog
from fastapi import APIRouter, Body, Depends, HTTPException, Request
from fastapi.concurrency import run_in_threadpool

from sms_dispatch.errors import MalformedEnvelopeError
from sms_dispatch.ingest.email import extract_envelope_from_email
from sms_dispatch.service import DispatchService, ProcessOutcome, Route

from ..auth import verify_worker_token

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/dispatch")


def _respond(outcome: ProcessOutcome) -> dict[str, Any]:
    if outcome.route is Route.FAILURE:
        raise HTTPException(status_code=422, detail=outcome.error)
    return outcome.to_dict()


@router.post("")
async def dispatch_envelope(
    request: Request,
    envelope_data: Any = Body(...),
    _auth: None = Depends(verify_worker_token),
):
    """Dispatch one wire envelope; 422 when it is malformed."""
    service: DispatchService = request.app.state.service
    trace_id = request.headers.get("X-Trace-Id")

    outcome = await run_in_threadpool(service.process, envelope_data, trace_id)
    logger.info(
        "dispatch.request_complete",
        route=outcome.route.value,
        processing_time_ms=outcome.processing_time_ms,
    )
    return _respond(outcome)


@router.post("/batch")
async def dispatch_batch(
    request: Request,
    envelopes: list[Any] = Body(...),
    _auth: None = Depends(verify_worker_token),
):
    """Dispatch several envelopes concurrently; each reports its own route."""
    service: DispatchService = request.app.state.service

    outcomes = await run_in_threadpool(service.process_many, envelopes)
    return {"results": [outcome.to_dict() for outcome in outcomes]}


@router.post("/email")
async def dispatch_email(
    request: Request,
    _auth: None = Depends(verify_worker_token),
):
    """Dispatch a raw RFC 5322 email (phone numbers in the To: local parts)."""
    service: DispatchService = request.app.state.service
    raw = await request.body()

    try:
        envelope_data = extract_envelope_from_email(raw)
    except MalformedEnvelopeError as e:
        raise HTTPException(status_code=422, detail=e.message)

    outcome = await run_in_threadpool(
        service.process, envelope_data, request.headers.get("X-Trace-Id")
    )
    return _respond(outcome)
