from typing import Any, List, Optional, Tuple, TypedDict

from case_chat.src.document_chat.history import ChatMessage, SessionHistory


class ChatState(TypedDict, total=False):
    session_id: str
    query: str
    orchestrator: Any
    deadline: Optional[float]
    fragments: List[str]
    history: SessionHistory
    prompt: Tuple[ChatMessage, ...]
    updated_history: SessionHistory
    answer: str
    steps: List[str]
