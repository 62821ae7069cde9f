import asyncio
import logging
from typing import Any, Dict, List, Union

from fastapi import Body, FastAPI, HTTPException
from pydantic import ValidationError

from .config import LoggingSettings, configure_logging
from .dispatcher import Dispatcher
from .ingest_client import IngestClientInitializer
from .models import (
    SUBSCRIPTION_VALIDATION,
    DispatchStatus,
    DispatchSummary,
    Notification,
)

configure_logging(LoggingSettings().log_level)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Timed Ingest",
    version="0.1.0",
    description="Queues newly created storage objects for ingestion into Azure Data Explorer.",
)

initializer = IngestClientInitializer()
dispatcher = Dispatcher(initializer)


@app.get("/health")
async def health() -> dict:
    return {"status": "ok"}


@app.get("/ingest/status")
async def ingest_status() -> dict:
    return {
        "client": initializer.state.value,
        "counts": {status.value: count for status, count in dispatcher.counts.items()},
        "last_outcome": dispatcher.last_outcome,
    }


@app.post("/api/events")
async def handle_events(
    payload: Union[List[Dict[str, Any]], Dict[str, Any]] = Body(...),
) -> dict:
    events = payload if isinstance(payload, list) else [payload]

    for event in events:
        if event.get("eventType") == SUBSCRIPTION_VALIDATION:
            if len(events) > 1:
                logger.warning(
                    "Dropped %d events delivered with a subscription validation", len(events) - 1
                )
            code = Notification.event_data(event).get("validationCode")
            return {"validationResponse": code}

    try:
        notifications = [Notification.from_event(event) for event in events]
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    outcomes = await asyncio.gather(*(dispatcher.dispatch(n) for n in notifications))
    summary = DispatchSummary(
        received=len(outcomes),
        submitted=sum(o.status is DispatchStatus.SUBMITTED for o in outcomes),
        skipped=sum(o.status is DispatchStatus.SKIPPED for o in outcomes),
        failed=sum(o.status is DispatchStatus.FAILED for o in outcomes),
        outcomes=list(outcomes),
    )
    if summary.failed:
        # A non-2xx answer makes Event Grid redeliver the batch.
        raise HTTPException(status_code=500, detail=summary.model_dump(mode="json"))
    return {"status": "completed", "result": summary}
