from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from case_chat.logger import GLOBAL_LOGGER as log
from case_chat.src.document_ingestion.index_poller import IndexJobStatus, JobState
from orchestrator.orchestrator_manager import Services, get_services

router = APIRouter()

STATUS_CODES = {
    JobState.SUCCEEDED: 200,
    JobState.RESET: 200,
    JobState.IDLE: 200,
    JobState.TIMED_OUT: 408,
    JobState.TRANSIENT_FAILURE: 500,
    JobState.POLL_ERROR: 500,
}


def _positive_int(raw: Optional[str], default: int) -> int:
    """Parse a query value, falling back to the default when it is missing or unusable."""
    try:
        value = int(raw)
    except (TypeError, ValueError):
        return default
    return value if value > 0 else default


def _describe(result: IndexJobStatus, timeout_seconds: int) -> str:
    if result.status == JobState.SUCCEEDED:
        return "Indexer execution completed successfully!"
    if result.status == JobState.RESET:
        return "Indexer is in Reset state. It may not have started processing yet or has been reset."
    if result.status == JobState.TRANSIENT_FAILURE:
        return f"Indexer encountered an error: {result.error_message or 'Unknown error occurred'}"
    if result.status == JobState.TIMED_OUT:
        return (
            f"Indexer operation timed out after {timeout_seconds} seconds. "
            "Processing may still be in progress."
        )
    if result.status == JobState.POLL_ERROR:
        return f"Failed to get indexer status: {result.error_message}"
    return "Indexer has no recorded execution. Polling completed without final resolution."


def status_payload(result: IndexJobStatus, timeout_seconds: int) -> dict:
    payload = {
        "status": result.status.value,
        "message": _describe(result, timeout_seconds),
        "isComplete": result.is_complete,
        "elapsedTime": round(result.elapsed_seconds, 3),
    }
    if result.items_processed is not None:
        payload["itemsProcessed"] = result.items_processed
    if result.items_failed is not None:
        payload["itemsFailed"] = result.items_failed
    return payload


@router.get("/indexer/status")
async def indexer_status(
    timeoutSeconds: Optional[str] = None,
    pollIntervalSeconds: Optional[str] = None,
    services: Services = Depends(get_services),
):
    poller_cfg = services.config.poller
    timeout = _positive_int(timeoutSeconds, poller_cfg.timeout_seconds)
    interval = _positive_int(pollIntervalSeconds, poller_cfg.poll_interval_seconds)

    result = await services.poller.poll(services.config.indexer.name, timeout, interval)
    log.info(
        "Indexer status resolved | status=%s | elapsed=%.2fs", result.status.value, result.elapsed_seconds
    )
    return JSONResponse(status_payload(result, timeout), status_code=STATUS_CODES[result.status])


@router.post("/indexer/reset")
async def reset_indexer(services: Services = Depends(get_services)):
    execution = await services.indexer.reset()
    return {"status": execution.status.value, "message": "Indexer has been reset."}
