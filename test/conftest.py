import fnmatch
from typing import Dict, List, Optional, Sequence

import pytest

from case_chat.exception.custom_exception import BlobStoreError
from case_chat.src.document_chat.history import ChatMessage, SessionHistoryStore
from case_chat.src.document_ingestion.index_poller import IndexerExecution, JobState
from case_chat.src.document_ingestion.indexer import TriggerOutcome, TriggerStatus

SYSTEM_PROMPT = "You are the test assistant."


class FakeRetriever:
    def __init__(self, fragments: Sequence[str] = (), error: Optional[Exception] = None):
        self.fragments = list(fragments)
        self.error = error
        self.queries: List[str] = []

    async def retrieve(self, query: str) -> List[str]:
        self.queries.append(query)
        if self.error:
            raise self.error
        return list(self.fragments)


class FakeCompleter:
    def __init__(self, answer: str = "The answer.", error: Optional[Exception] = None):
        self.answer = answer
        self.error = error
        self.prompts: List[Sequence[ChatMessage]] = []

    async def complete(self, messages: Sequence[ChatMessage]) -> str:
        self.prompts.append(list(messages))
        if self.error:
            raise self.error
        return self.answer


class MemoryBlobStore:
    """Dict-backed blob container with switchable failures."""

    def __init__(self, container: str = "memory"):
        self.container = container
        self.objects: Dict[str, bytes] = {}
        self.fail_reads = False
        self.fail_writes = False
        self.writes = 0

    async def read(self, name: str) -> Optional[bytes]:
        if self.fail_reads:
            raise BlobStoreError(f"read failed: {name}")
        return self.objects.get(name)

    async def write(self, name: str, data: bytes, overwrite: bool = True) -> None:
        if self.fail_writes:
            raise BlobStoreError(f"write failed: {name}")
        if not overwrite and name in self.objects:
            raise BlobStoreError(f"Blob {self.container}/{name} already exists")
        self.objects[name] = bytes(data)
        self.writes += 1

    async def exists(self, name: str) -> bool:
        return name in self.objects

    async def list_names(self, prefix: str = "") -> List[str]:
        return sorted(n for n in self.objects if n.startswith(prefix))


class ScriptedStatusSource:
    """Replays a list of snapshots; an Exception entry is raised instead."""

    def __init__(self, script):
        self.script = list(script)
        self.calls = 0

    async def get_status(self, job_id: str) -> Optional[IndexerExecution]:
        item = self.script[min(self.calls, len(self.script) - 1)]
        self.calls += 1
        if isinstance(item, Exception):
            raise item
        return item


class FakeClock:
    """Monotonic clock that only moves when the fake sleep is awaited."""

    def __init__(self):
        self.now = 0.0
        self.sleeps: List[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class FakeExtractor:
    def __init__(self, texts: Optional[Dict[str, str]] = None, default: str = ""):
        self.texts = texts or {}
        self.default = default
        self.calls: List[str] = []

    async def extract(self, data: bytes, filename: str) -> str:
        self.calls.append(filename)
        return self.texts.get(filename, self.default)


class FakeTrigger:
    def __init__(self, status: TriggerStatus = TriggerStatus.ACCEPTED, message: str = ""):
        self.outcome = TriggerOutcome(status=status, message=message)
        self.calls = 0

    async def trigger(self) -> TriggerOutcome:
        self.calls += 1
        return self.outcome


class FakeRedis:
    """The subset of redis.Redis used by RedisBlobStore."""

    def __init__(self):
        self.data: Dict[bytes, bytes] = {}

    @staticmethod
    def _key(key) -> bytes:
        return key.encode("utf-8") if isinstance(key, str) else key

    def get(self, key):
        return self.data.get(self._key(key))

    def set(self, key, value, nx=False):
        key = self._key(key)
        if nx and key in self.data:
            return None
        self.data[key] = value
        return True

    def exists(self, key):
        return int(self._key(key) in self.data)

    def scan_iter(self, match=None):
        for key in list(self.data):
            if match is None or fnmatch.fnmatchcase(key.decode("utf-8"), match):
                yield key


def running(processed: int = 0) -> IndexerExecution:
    return IndexerExecution(status=JobState.RUNNING, items_processed=processed)


@pytest.fixture
def history_blobs() -> MemoryBlobStore:
    return MemoryBlobStore("chathistory")


@pytest.fixture
def history_store(history_blobs) -> SessionHistoryStore:
    return SessionHistoryStore(history_blobs, SYSTEM_PROMPT)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()
