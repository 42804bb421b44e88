import asyncio
import time
from enum import Enum
from typing import Awaitable, Callable, Optional

from pydantic import BaseModel, ConfigDict

from case_chat.exception.custom_exception import ConfigurationError, JobStatusQueryError
from case_chat.logger import GLOBAL_LOGGER as log
from case_chat.src.interfaces import JobStatusSource


class JobState(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    TRANSIENT_FAILURE = "transient-failure"
    RESET = "reset"
    # produced by the poller itself, never by a status source
    TIMED_OUT = "timed-out"
    POLL_ERROR = "poll-error"
    IDLE = "idle"


IN_PROGRESS_STATES = {JobState.PENDING, JobState.RUNNING}
REPORTED_TERMINAL_STATES = {JobState.SUCCEEDED, JobState.TRANSIENT_FAILURE, JobState.RESET}


class IndexerExecution(BaseModel):
    """Raw snapshot of an indexing run as reported by a JobStatusSource."""

    model_config = ConfigDict(frozen=True)

    status: JobState
    items_processed: int = 0
    items_failed: int = 0
    error_message: Optional[str] = None


class IndexJobStatus(BaseModel):
    """Outcome of one polling session: the latest snapshot plus elapsed time."""

    model_config = ConfigDict(frozen=True)

    status: JobState
    elapsed_seconds: float
    items_processed: Optional[int] = None
    items_failed: Optional[int] = None
    error_message: Optional[str] = None

    @property
    def is_complete(self) -> bool:
        """True when the job itself reached a terminal state it reported."""
        return self.status in REPORTED_TERMINAL_STATES


class IndexJobPoller:
    """
    Polls an external indexing job until it finishes, fails, or the time budget runs out.

    Three failure modes stay distinct for the caller:
      - the job reported an error      -> status TRANSIENT_FAILURE
      - the poller gave up             -> status TIMED_OUT (no item counts)
      - the status query itself failed -> status POLL_ERROR (not retried)

    The timeout check happens before each query, so a terminal status fetched
    at or before the boundary wins over the timeout.
    """

    def __init__(
        self,
        source: JobStatusSource,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.source = source
        self._clock = clock
        self._sleep = sleep

    async def poll(
        self, job_id: str, timeout_seconds: float, poll_interval_seconds: float
    ) -> IndexJobStatus:
        if timeout_seconds <= 0 or poll_interval_seconds <= 0:
            raise ConfigurationError(
                f"Polling requires positive timeout and interval "
                f"(timeout={timeout_seconds}, interval={poll_interval_seconds})"
            )

        start = self._clock()
        log.info(
            "Starting to poll indexer | job_id=%s | timeout=%ss | interval=%ss",
            job_id,
            timeout_seconds,
            poll_interval_seconds,
        )

        while True:
            elapsed = self._clock() - start
            if elapsed > timeout_seconds:
                log.warning(
                    "Indexer polling timed out | job_id=%s | elapsed=%.2fs", job_id, elapsed
                )
                return IndexJobStatus(status=JobState.TIMED_OUT, elapsed_seconds=elapsed)

            try:
                execution = await self.source.get_status(job_id)
            except JobStatusQueryError as e:
                log.error("Failed to get indexer status | job_id=%s | error=%s", job_id, str(e))
                return IndexJobStatus(
                    status=JobState.POLL_ERROR,
                    elapsed_seconds=self._clock() - start,
                    error_message=str(e),
                )

            if execution is None:
                log.info("No indexer execution recorded | job_id=%s", job_id)
                return IndexJobStatus(
                    status=JobState.IDLE, elapsed_seconds=self._clock() - start
                )

            log.info("Current execution status | job_id=%s | status=%s", job_id, execution.status.value)

            if execution.status in IN_PROGRESS_STATES:
                await self._sleep(poll_interval_seconds)
                continue

            if execution.status not in REPORTED_TERMINAL_STATES:
                log.error(
                    "Status source reported a non-job state | job_id=%s | status=%s",
                    job_id,
                    execution.status.value,
                )
                return IndexJobStatus(
                    status=JobState.POLL_ERROR,
                    elapsed_seconds=self._clock() - start,
                    error_message=f"Unexpected job state: {execution.status.value}",
                )

            if execution.status == JobState.TRANSIENT_FAILURE:
                log.error(
                    "Indexer execution failed | job_id=%s | error=%s",
                    job_id,
                    execution.error_message,
                )

            return IndexJobStatus(
                status=execution.status,
                elapsed_seconds=self._clock() - start,
                items_processed=execution.items_processed,
                items_failed=execution.items_failed,
                error_message=execution.error_message,
            )
