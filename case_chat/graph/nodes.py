"""
One node per step of a chat cycle. Each returns a partial state update;
the graph runs them strictly in sequence and an exception in any node
aborts the cycle before the history is saved.
"""

from case_chat.exception.custom_exception import BlobStoreError
from case_chat.logger import GLOBAL_LOGGER as log
from case_chat.src.document_chat.history import Role


# Appends the current step into existing steps in the state
def _append_step(state, step):
    steps = state.get("steps", [])
    return steps + [step]


async def retrieve_node(state):
    orchestrator = state["orchestrator"]
    fragments = await orchestrator.bounded(
        orchestrator.retriever.retrieve(state["query"]), state.get("deadline")
    )
    log.info("Retrieve node | session_id=%s | fragments=%d", state["session_id"], len(fragments))
    return {"fragments": fragments, "steps": _append_step(state, "retrieve")}


async def load_history_node(state):
    orchestrator = state["orchestrator"]
    history = await orchestrator.bounded(
        orchestrator.history_store.load(state["session_id"]), state.get("deadline")
    )
    return {"history": history, "steps": _append_step(state, "load_history")}


async def assemble_node(state):
    orchestrator = state["orchestrator"]
    assembled = orchestrator.assembler.assemble(
        state["history"], state["fragments"], state["query"]
    )
    log.info(
        "Assemble node | session_id=%s | prompt_messages=%d",
        state["session_id"],
        len(assembled.prompt),
    )
    return {
        "prompt": assembled.prompt,
        "updated_history": assembled.updated_history,
        "steps": _append_step(state, "assemble"),
    }


async def complete_node(state):
    orchestrator = state["orchestrator"]
    answer = await orchestrator.bounded(
        orchestrator.completer.complete(state["prompt"]), state.get("deadline")
    )
    return {
        "answer": answer,
        "updated_history": state["updated_history"].append(Role.ASSISTANT, answer),
        "steps": _append_step(state, "complete"),
    }


async def save_history_node(state):
    orchestrator = state["orchestrator"]
    saved = await orchestrator.bounded(
        orchestrator.history_store.save(state["session_id"], state["updated_history"]),
        state.get("deadline"),
    )
    if not saved:
        raise BlobStoreError(f"Failed to save chat history for session {state['session_id']}")
    return {"steps": _append_step(state, "save_history")}
