from typing import Sequence, Tuple

from pydantic import BaseModel, ConfigDict

from case_chat.prompts.prompt_library import PROMPT_REGISTRY
from case_chat.src.document_chat.history import ChatMessage, Role, SessionHistory


class AssembledContext(BaseModel):
    model_config = ConfigDict(frozen=True)

    prompt: Tuple[ChatMessage, ...]
    updated_history: SessionHistory


class ContextAssembler:
    """
    Builds the prompt sequence for one request.

    Order is fixed: system message, prior turns in their original order,
    one contextual message per retrieved fragment (in retrieval order), then
    the new query. Fragments only ever go into the prompt; the persisted
    history gains just the user query.
    """

    def __init__(
        self,
        prior_user_prefix: str = PROMPT_REGISTRY["prior_user"],
        prior_assistant_prefix: str = PROMPT_REGISTRY["prior_assistant"],
        fragment_prefix: str = PROMPT_REGISTRY["fragment"],
        query_prefix: str = PROMPT_REGISTRY["query"],
    ):
        self._prefixes = {
            Role.USER: prior_user_prefix,
            Role.ASSISTANT: prior_assistant_prefix,
        }
        self.fragment_prefix = fragment_prefix
        self.query_prefix = query_prefix

    def assemble(
        self, history: SessionHistory, fragments: Sequence[str], user_query: str
    ) -> AssembledContext:
        prompt = [history.system_message]

        prompt.extend(
            ChatMessage(role=m.role, text=self._prefixes[m.role] + m.text) for m in history.turns
        )

        # fragments are sent as assistant-side context, never re-ranked
        prompt.extend(
            ChatMessage(role=Role.ASSISTANT, text=self.fragment_prefix + fragment)
            for fragment in fragments
        )

        prompt.append(ChatMessage(role=Role.USER, text=self.query_prefix + user_query))

        return AssembledContext(
            prompt=tuple(prompt),
            updated_history=history.append(Role.USER, user_query),
        )
