import asyncio

import pytest

from case_chat.exception.custom_exception import (
    BlobStoreError,
    CompletionError,
    DeadlineExceededError,
    RetrievalError,
)
from case_chat.graph import nodes
from case_chat.graph.orchestrator import ConversationOrchestrator
from case_chat.graph.session_locks import SessionLockRegistry
from case_chat.src.document_chat.history import Role, SessionHistoryStore
from case_chat.storage.blob_store import LocalBlobStore
from case_chat.utils.rendering import render_html
from conftest import SYSTEM_PROMPT, FakeCompleter, FakeRetriever


def _orchestrator(history_store, retriever=None, completer=None, **kwargs):
    return ConversationOrchestrator(
        retriever=retriever or FakeRetriever(["Case 2023-CV-001 was filed..."]),
        completer=completer or FakeCompleter("The case number is **2023-CV-001**."),
        history_store=history_store,
        **kwargs,
    )


@pytest.mark.asyncio
async def test_first_turn_on_empty_session(history_store):
    completer = FakeCompleter("The case number is 2023-CV-001.")
    orch = _orchestrator(history_store, completer=completer)

    turn = await orch.respond("s1", "What is the case number?")

    assert turn.answer == "The case number is 2023-CV-001."
    assert [m.text for m in completer.prompts[0]] == [
        SYSTEM_PROMPT,
        "Context: Case 2023-CV-001 was filed...",
        "User Question: What is the case number?",
    ]
    persisted = await history_store.load("s1")
    assert [(m.role, m.text) for m in persisted.messages] == [
        (Role.SYSTEM, SYSTEM_PROMPT),
        (Role.USER, "What is the case number?"),
        (Role.ASSISTANT, "The case number is 2023-CV-001."),
    ]
    assert turn.history == persisted


@pytest.mark.asyncio
async def test_second_turn_sees_prior_history(history_store):
    completer = FakeCompleter("answer")
    orch = _orchestrator(history_store, retriever=FakeRetriever([]), completer=completer)

    await orch.respond("s1", "first question")
    await orch.respond("s1", "second question")

    assert [m.text for m in completer.prompts[1]] == [
        SYSTEM_PROMPT,
        "User query: first question",
        "Bot response: answer",
        "User Question: second question",
    ]
    persisted = await history_store.load("s1")
    assert len(persisted.messages) == 5


@pytest.mark.asyncio
async def test_answer_is_rendered_but_persisted_raw(history_store):
    orch = _orchestrator(history_store, renderer=render_html)

    turn = await orch.respond("s1", "What is the case number?")

    assert "<strong>2023-CV-001</strong>" in turn.rendered
    persisted = await history_store.load("s1")
    assert persisted.messages[-1].text == "The case number is **2023-CV-001**."


@pytest.mark.asyncio
async def test_completion_failure_leaves_history_untouched(history_store, history_blobs):
    orch = _orchestrator(history_store, completer=FakeCompleter(error=CompletionError("model down")))

    with pytest.raises(CompletionError):
        await orch.respond("s1", "What is the case number?")

    assert history_blobs.writes == 0
    assert await history_store.exists("s1") is False


@pytest.mark.asyncio
async def test_retrieval_failure_aborts_before_completion(history_store):
    completer = FakeCompleter()
    orch = _orchestrator(
        history_store, retriever=FakeRetriever(error=RetrievalError("search down")), completer=completer
    )

    with pytest.raises(RetrievalError):
        await orch.respond("s1", "q")

    assert completer.prompts == []


@pytest.mark.asyncio
async def test_save_failure_is_surfaced(history_store, history_blobs):
    history_blobs.fail_writes = True
    orch = _orchestrator(history_store)

    with pytest.raises(BlobStoreError):
        await orch.respond("s1", "q")


@pytest.mark.asyncio
async def test_deadline_bounds_collaborator_calls(history_store, history_blobs):
    class SlowCompleter(FakeCompleter):
        async def complete(self, messages):
            await asyncio.sleep(5)
            return "too late"

    orch = _orchestrator(history_store, completer=SlowCompleter())

    with pytest.raises(DeadlineExceededError):
        await orch.respond("s1", "q", timeout_seconds=0.05)

    assert history_blobs.writes == 0


@pytest.mark.asyncio
async def test_session_lock_serializes_same_session_turns(history_store):
    class GatedCompleter(FakeCompleter):
        def __init__(self):
            super().__init__("ok")
            self.active = 0
            self.max_active = 0

        async def complete(self, messages):
            self.active += 1
            self.max_active = max(self.max_active, self.active)
            await asyncio.sleep(0.01)
            self.active -= 1
            return self.answer

    completer = GatedCompleter()
    orch = _orchestrator(
        history_store, retriever=FakeRetriever([]), completer=completer, session_locks=SessionLockRegistry()
    )

    await asyncio.gather(orch.respond("s1", "one"), orch.respond("s1", "two"))

    assert completer.max_active == 1
    persisted = await history_store.load("s1")
    # no lost update: both turns are in the record
    assert [m.text for m in persisted.turns if m.role == Role.USER] in (["one", "two"], ["two", "one"])


def test_session_lock_registry_reuses_locks():
    registry = SessionLockRegistry(maxsize=10, ttl=60)

    assert registry.get_lock("a") is registry.get_lock("a")
    assert registry.get_lock("a") is not registry.get_lock("b")


@pytest.mark.asyncio
async def test_unserialized_same_session_turns_both_answer_and_last_save_wins(tmp_path):
    class OverlappingCompleter(FakeCompleter):
        """Holds each completion until both cycles have loaded their history."""

        def __init__(self):
            super().__init__("ok")
            self.waiting = 0
            self.both_in = asyncio.Event()

        async def complete(self, messages):
            self.waiting += 1
            if self.waiting == 2:
                self.both_in.set()
            await self.both_in.wait()
            return f"answer to {messages[-1].text}"

    history_store = SessionHistoryStore(LocalBlobStore(tmp_path, "chathistory"), SYSTEM_PROMPT)
    orch = _orchestrator(history_store, retriever=FakeRetriever([]), completer=OverlappingCompleter())

    one, two = await asyncio.gather(orch.respond("s1", "one"), orch.respond("s1", "two"))

    assert one.answer == "answer to User Question: one"
    assert two.answer == "answer to User Question: two"
    persisted = await history_store.load("s1")
    # both cycles started from an empty record, so only the later save survives
    assert persisted in (one.history, two.history)
    assert [m.text for m in persisted.turns if m.role == Role.USER] in (["one"], ["two"])


def test_session_lock_survives_cache_eviction_while_referenced():
    registry = SessionLockRegistry(maxsize=1, ttl=60)

    held = registry.get_lock("a")
    registry.get_lock("b")  # pushes "a" out of the cache

    assert "a" not in registry.cache
    assert registry.get_lock("a") is held


def test_node_module_is_documented():
    assert nodes.__doc__ is not None
    assert nodes.__doc__.strip().startswith("One node per step of a chat cycle.")
