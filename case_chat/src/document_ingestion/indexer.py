import asyncio
from enum import Enum
from typing import Any, Dict, List, Optional, Protocol

from pydantic import BaseModel, ConfigDict

from case_chat.exception.custom_exception import JobStatusQueryError
from case_chat.logger import GLOBAL_LOGGER as log
from case_chat.src.document_ingestion.index_poller import IndexerExecution, JobState
from case_chat.src.interfaces import BlobStore
from case_chat.utils.thread_pool import run_sync


class TriggerStatus(str, Enum):
    ACCEPTED = "accepted"
    # busy or rate limited; the caller may log it and move on
    THROTTLED = "throttled"
    FAILED = "failed"


class TriggerOutcome(BaseModel):
    """Fire-and-forget result of asking the indexer to run."""

    model_config = ConfigDict(frozen=True)

    status: TriggerStatus
    message: str = ""


class ChunkIndex(Protocol):
    def add_texts(self, texts: List[str], metadatas: List[Dict[str, Any]]) -> int: ...

    def reset(self) -> None: ...


class LocalIndexer:
    """
    In-process indexing job over the chunk container.

    `trigger` starts a background run that reads every stored chunk object
    and adds it to the vector index. A trigger that arrives while a run is in
    flight is throttled, and the run makes one more pass when it finishes so
    chunks written after its listing are not missed. The latest snapshot is
    served through `get_status`, which makes this the JobStatusSource the
    poller watches.
    """

    def __init__(self, name: str, chunk_store: BlobStore, index: ChunkIndex):
        self.name = name
        self.chunk_store = chunk_store
        self.index = index
        self._last: Optional[IndexerExecution] = None
        self._task: Optional[asyncio.Task] = None
        self._rerun_requested = False

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def trigger(self) -> TriggerOutcome:
        if self.is_running:
            self._rerun_requested = True
            log.warning("Indexer already running, trigger throttled | indexer=%s", self.name)
            return TriggerOutcome(
                status=TriggerStatus.THROTTLED, message=f"Indexer {self.name} is already running"
            )

        self._last = IndexerExecution(status=JobState.RUNNING)
        self._task = asyncio.create_task(self._run())
        log.info("Indexer run started | indexer=%s", self.name)
        return TriggerOutcome(status=TriggerStatus.ACCEPTED, message=f"Indexer {self.name} started")

    async def wait(self) -> None:
        """Block until the current run (if any) finishes."""
        if self._task is not None:
            await asyncio.shield(self._task)

    async def _run(self) -> None:
        while True:
            self._rerun_requested = False
            await self._run_pass()
            if not self._rerun_requested or self._last.status != JobState.SUCCEEDED:
                return
            log.info("Indexer re-running for chunks stored mid-run | indexer=%s", self.name)

    async def _run_pass(self) -> None:
        processed = failed = 0
        self._last = IndexerExecution(status=JobState.RUNNING)
        try:
            names = await self.chunk_store.list_names()
            texts: List[str] = []
            metadatas: List[Dict[str, Any]] = []

            for name in names:
                data = await self.chunk_store.read(name)
                if data is None:
                    # removed between listing and reading
                    failed += 1
                    continue
                try:
                    texts.append(data.decode("utf-8"))
                except UnicodeDecodeError:
                    log.warning("Skipping undecodable chunk | name=%s", name)
                    failed += 1
                    continue
                metadatas.append({"source": name})
                processed += 1
                self._last = IndexerExecution(
                    status=JobState.RUNNING, items_processed=processed, items_failed=failed
                )

            added = await run_sync(self.index.add_texts, texts, metadatas)
            self._last = IndexerExecution(
                status=JobState.SUCCEEDED, items_processed=processed, items_failed=failed
            )
            log.info(
                "Indexer run completed | indexer=%s | processed=%d | failed=%d | added=%d",
                self.name,
                processed,
                failed,
                added,
            )
        except Exception as e:
            # background task: the failure is reported through the status snapshot
            log.error("Indexer run failed | indexer=%s | error=%s", self.name, str(e))
            self._last = IndexerExecution(
                status=JobState.TRANSIENT_FAILURE,
                items_processed=processed,
                items_failed=failed,
                error_message=str(e) or type(e).__name__,
            )

    async def get_status(self, job_id: str) -> Optional[IndexerExecution]:
        if job_id != self.name:
            raise JobStatusQueryError(f"Unknown indexer: {job_id}")
        return self._last

    async def reset(self) -> IndexerExecution:
        if self.is_running:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                log.info("In-flight indexer run cancelled for reset | indexer=%s", self.name)
        await run_sync(self.index.reset)
        self._rerun_requested = False
        self._last = IndexerExecution(status=JobState.RESET)
        log.info("Indexer reset | indexer=%s", self.name)
        return self._last
