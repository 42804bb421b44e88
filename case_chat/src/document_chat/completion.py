from typing import List, Sequence

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage
from langchain_core.output_parsers import StrOutputParser

from case_chat.exception.custom_exception import CompletionError
from case_chat.logger import GLOBAL_LOGGER as log
from case_chat.prompts.prompt_library import DEFAULT_FALLBACK_ANSWER
from case_chat.src.document_chat.history import ChatMessage, Role
from case_chat.utils.thread_pool import run_sync

_LC_MESSAGE = {
    Role.SYSTEM: SystemMessage,
    Role.USER: HumanMessage,
    Role.ASSISTANT: AIMessage,
}


def to_langchain_messages(messages: Sequence[ChatMessage]) -> List[BaseMessage]:
    return [_LC_MESSAGE[m.role](content=m.text) for m in messages]


class LangChainCompleter:
    """Sends an ordered message sequence to a LangChain chat model."""

    def __init__(self, llm: BaseChatModel, fallback_answer: str = DEFAULT_FALLBACK_ANSWER):
        self.chain = llm | StrOutputParser()
        self.fallback_answer = fallback_answer

    async def complete(self, messages: Sequence[ChatMessage]) -> str:
        try:
            answer = await run_sync(self.chain.invoke, to_langchain_messages(messages))
        except Exception as e:
            log.error("Completion failed | error=%s", str(e))
            raise CompletionError("Completion failed", e) from e

        if not answer or not answer.strip():
            log.warning("Empty completion, using fallback answer")
            return self.fallback_answer
        return answer
