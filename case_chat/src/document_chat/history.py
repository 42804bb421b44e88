import json
from enum import Enum
from typing import Any, List, Literal, Tuple

from pydantic import BaseModel, ConfigDict, TypeAdapter, model_validator

from case_chat.exception.custom_exception import BlobStoreError
from case_chat.logger import GLOBAL_LOGGER as log
from case_chat.src.interfaces import BlobStore


class Role(str, Enum):
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


# Wire names used in the persisted session record
_PERSISTED_ROLE = {Role.SYSTEM: "SYSTEM", Role.USER: "USER", Role.ASSISTANT: "BOT"}
_ROLE_FROM_PERSISTED = {v: k for k, v in _PERSISTED_ROLE.items()}
# Older records stored the role as the enum ordinal USER=0, SYSTEM=1, BOT=2
_LEGACY_ORDINALS = ["USER", "SYSTEM", "BOT"]


class ChatMessage(BaseModel):
    model_config = ConfigDict(frozen=True)

    role: Role
    text: str


class SessionHistory(BaseModel):
    """
    Append-only conversation log of one session.

    Always starts with exactly one system message; `append` returns a new
    history and never accepts another system message.
    """

    model_config = ConfigDict(frozen=True)

    messages: Tuple[ChatMessage, ...]

    @model_validator(mode="after")
    def _single_leading_system(self):
        if not self.messages or self.messages[0].role != Role.SYSTEM:
            raise ValueError("history must start with a system message")
        if any(m.role == Role.SYSTEM for m in self.messages[1:]):
            raise ValueError("history must contain exactly one system message")
        return self

    @classmethod
    def fresh(cls, system_prompt: str) -> "SessionHistory":
        return cls(messages=(ChatMessage(role=Role.SYSTEM, text=system_prompt),))

    @property
    def system_message(self) -> ChatMessage:
        return self.messages[0]

    @property
    def turns(self) -> Tuple[ChatMessage, ...]:
        """All non-system messages, oldest first."""
        return self.messages[1:]

    def append(self, role: Role, text: str) -> "SessionHistory":
        if role == Role.SYSTEM:
            raise ValueError("system message is set at creation and cannot be appended")
        return SessionHistory(messages=self.messages + (ChatMessage(role=role, text=text),))


class HistoryRecord(BaseModel):
    role: Literal["SYSTEM", "USER", "BOT"]
    message: str


_RECORDS = TypeAdapter(List[HistoryRecord])


def serialize_history(history: SessionHistory) -> bytes:
    records = [
        {"role": _PERSISTED_ROLE[m.role], "message": m.text} for m in history.messages
    ]
    return json.dumps(records, ensure_ascii=False).encode("utf-8")


def _normalize_record(item: Any) -> dict:
    if not isinstance(item, dict):
        raise ValueError(f"history entry is not an object: {item!r}")
    # property names are matched case-insensitively
    lowered = {str(k).lower(): v for k, v in item.items()}
    role = lowered.get("role")
    if isinstance(role, int) and not isinstance(role, bool) and 0 <= role < len(_LEGACY_ORDINALS):
        role = _LEGACY_ORDINALS[role]
    elif isinstance(role, str):
        role = role.upper()
    return {"role": role, "message": lowered.get("message")}


def parse_history(raw: bytes, system_prompt: str) -> SessionHistory:
    """
    Decode a persisted record.

    Accepts the array form `[{"role", "message"}, ...]` and the older
    `{"Messages": [...]}` object form. A missing leading system message is
    replaced by `system_prompt`; extra system entries are dropped.
    Raises ValueError for anything that cannot be decoded.
    """
    data = json.loads(raw.decode("utf-8"))

    if isinstance(data, dict):
        lowered = {str(k).lower(): v for k, v in data.items()}
        data = lowered.get("messages")
    if not isinstance(data, list):
        raise ValueError("history record is not a list of messages")

    records = _RECORDS.validate_python([_normalize_record(item) for item in data])
    messages = [
        ChatMessage(role=_ROLE_FROM_PERSISTED[r.role], text=r.message) for r in records
    ]

    if messages and messages[0].role == Role.SYSTEM:
        head, rest = messages[0], messages[1:]
    else:
        head, rest = ChatMessage(role=Role.SYSTEM, text=system_prompt), messages

    dropped = sum(1 for m in rest if m.role == Role.SYSTEM)
    if dropped:
        log.warning("Dropped duplicate system messages from history | count=%d", dropped)

    return SessionHistory(messages=(head, *[m for m in rest if m.role != Role.SYSTEM]))


class SessionHistoryStore:
    """
    Loads and saves one history record per session in a blob container.

    Saves overwrite the whole record (last writer wins). There is no version
    token: two concurrent cycles on the same session can interleave and one
    update can be lost unless the caller serializes them.
    """

    def __init__(self, blob_store: BlobStore, system_prompt: str, extension: str = ".json"):
        self.blob_store = blob_store
        self.system_prompt = system_prompt
        self.extension = extension

    def blob_name(self, session_id: str) -> str:
        return f"{session_id}{self.extension}"

    def new_history(self) -> SessionHistory:
        return SessionHistory.fresh(self.system_prompt)

    async def exists(self, session_id: str) -> bool:
        return await self.blob_store.exists(self.blob_name(session_id))

    async def load(self, session_id: str) -> SessionHistory:
        raw = await self.blob_store.read(self.blob_name(session_id))

        if raw is None:
            log.info("No previous chat history found, starting fresh | session_id=%s", session_id)
            return self.new_history()

        try:
            history = parse_history(raw, self.system_prompt)
        except ValueError as e:
            log.warning(
                "Failed to parse chat history, starting fresh | session_id=%s | error=%s",
                session_id,
                str(e),
            )
            return self.new_history()

        log.info(
            "Loaded chat history | session_id=%s | messages=%d", session_id, len(history.messages)
        )
        return history

    async def save(self, session_id: str, history: SessionHistory) -> bool:
        try:
            await self.blob_store.write(
                self.blob_name(session_id), serialize_history(history), overwrite=True
            )
        except BlobStoreError as e:
            log.error("Failed to save chat history | session_id=%s | error=%s", session_id, str(e))
            return False

        log.info("Chat history saved | session_id=%s | messages=%d", session_id, len(history.messages))
        return True
