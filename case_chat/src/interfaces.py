"""
Capabilities the core depends on.

Concrete vendor clients live behind these protocols and are injected at
construction time; nothing in the core imports a search, storage or model SDK
directly.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, List, Optional, Protocol, Sequence

if TYPE_CHECKING:
    from case_chat.src.document_chat.history import ChatMessage
    from case_chat.src.document_ingestion.index_poller import IndexerExecution
    from case_chat.src.document_ingestion.indexer import TriggerOutcome


class Retriever(Protocol):
    async def retrieve(self, query: str) -> List[str]:
        """Return the top-K text fragments for `query`, most relevant first."""
        ...


class Completer(Protocol):
    async def complete(self, messages: Sequence["ChatMessage"]) -> str:
        """Produce an answer from an ordered message sequence."""
        ...


class BlobStore(Protocol):
    """One named container of opaque objects."""

    async def read(self, name: str) -> Optional[bytes]:
        """Return the object's bytes, or None when it does not exist."""
        ...

    async def write(self, name: str, data: bytes, overwrite: bool = True) -> None: ...

    async def exists(self, name: str) -> bool: ...

    async def list_names(self, prefix: str = "") -> List[str]: ...


class JobStatusSource(Protocol):
    async def get_status(self, job_id: str) -> Optional["IndexerExecution"]:
        """
        Latest execution snapshot of `job_id`, or None if it never ran.
        Raises JobStatusQueryError when the status itself cannot be fetched.
        """
        ...


class IndexerTrigger(Protocol):
    async def trigger(self) -> "TriggerOutcome":
        """Best-effort start of an indexing run; never raises for rate limiting."""
        ...


class TextExtractor(Protocol):
    async def extract(self, data: bytes, filename: str) -> str: ...
