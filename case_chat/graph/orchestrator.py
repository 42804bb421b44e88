import asyncio
from contextlib import nullcontext
from typing import Awaitable, Callable, Optional, TypeVar

from pydantic import BaseModel, ConfigDict

from case_chat.exception.custom_exception import DeadlineExceededError
from case_chat.graph.builder import build_graph
from case_chat.graph.session_locks import SessionLockRegistry
from case_chat.logger import GLOBAL_LOGGER as log
from case_chat.src.document_chat.context import ContextAssembler
from case_chat.src.document_chat.history import SessionHistory, SessionHistoryStore
from case_chat.src.interfaces import Completer, Retriever

T = TypeVar("T")


class ChatTurn(BaseModel):
    model_config = ConfigDict(frozen=True)

    session_id: str
    answer: str
    rendered: str
    history: SessionHistory


class ConversationOrchestrator:
    """
    Runs one request/response cycle:
      retrieve -> load history -> assemble -> complete -> save history

    If retrieval, loading or completion fails the cycle aborts before the
    save, so the failed turn leaves no trace in the persisted history and a
    retry re-sends the same user query.

    Without `session_locks`, concurrent cycles on one session race: both load
    the same record and the later save wins. With them, cycles on the same
    session are serialized within this process.
    """

    def __init__(
        self,
        retriever: Retriever,
        completer: Completer,
        history_store: SessionHistoryStore,
        assembler: Optional[ContextAssembler] = None,
        renderer: Optional[Callable[[str], str]] = None,
        session_locks: Optional[SessionLockRegistry] = None,
    ):
        self.retriever = retriever
        self.completer = completer
        self.history_store = history_store
        self.assembler = assembler or ContextAssembler()
        self.renderer = renderer
        self.session_locks = session_locks

        # compile the graph once at initialization
        self.graph = build_graph()
        log.info(
            "ConversationOrchestrator initialized | serialize_sessions=%s",
            session_locks is not None,
        )

    async def bounded(self, awaitable: Awaitable[T], deadline: Optional[float]) -> T:
        """Await a collaborator call within whatever is left of the deadline."""
        if deadline is None:
            return await awaitable

        remaining = deadline - asyncio.get_running_loop().time()
        if remaining <= 0:
            if asyncio.iscoroutine(awaitable):
                awaitable.close()
            raise DeadlineExceededError("Request deadline exceeded")
        try:
            return await asyncio.wait_for(awaitable, timeout=remaining)
        except asyncio.TimeoutError as e:
            raise DeadlineExceededError("Request deadline exceeded", e) from e

    async def respond(
        self, session_id: str, query: str, timeout_seconds: Optional[float] = None
    ) -> ChatTurn:
        deadline = (
            asyncio.get_running_loop().time() + timeout_seconds
            if timeout_seconds is not None
            else None
        )
        lock = self.session_locks.get_lock(session_id) if self.session_locks else nullcontext()

        log.info("Chat request received | session_id=%s", session_id)
        async with lock:
            result = await self.graph.ainvoke(
                {
                    "session_id": session_id,
                    "query": query,
                    "orchestrator": self,
                    "deadline": deadline,
                    "steps": [],
                }
            )

        answer = result["answer"]
        log.info("Chat completed | session_id=%s | steps=%s", session_id, result["steps"])
        return ChatTurn(
            session_id=session_id,
            answer=answer,
            rendered=self.renderer(answer) if self.renderer else answer,
            history=result["updated_history"],
        )
