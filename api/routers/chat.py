import json
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import HTMLResponse, PlainTextResponse
from pydantic import BaseModel, ConfigDict, Field

from case_chat.logger import GLOBAL_LOGGER as log
from case_chat.src.document_ingestion.data_ingestion import (
    generate_session_id,
    is_valid_session_id,
)
from orchestrator.orchestrator_manager import Services, get_services

router = APIRouter()


class ChatRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    session_id: Optional[str] = Field(None, alias="sessionId")
    message: str


def parse_chat_request(body: bytes) -> ChatRequest:
    """
    Decode `{"sessionId": ..., "message": ...}` (property names are matched
    case-insensitively). Anything else is treated as a raw message with no
    session, so older clients posting plain text keep working.
    """
    text = body.decode("utf-8", errors="replace")
    try:
        data = json.loads(text)
        if not isinstance(data, dict):
            raise ValueError("chat request is not a JSON object")
        lowered = {str(k).lower(): v for k, v in data.items()}
        return ChatRequest(
            session_id=lowered.get("sessionid", lowered.get("session_id")),
            message=lowered.get("message"),
        )
    except ValueError as e:
        log.warning(
            "Failed to parse chat request, using the raw body as the message | error=%s", str(e)
        )
        return ChatRequest(session_id=None, message=text)


def _resolve_session_id(raw: Optional[str]) -> str:
    session_id = (raw or "").strip()
    if session_id and is_valid_session_id(session_id):
        return session_id

    new_id = generate_session_id()
    if session_id:
        log.warning("Unusable session id replaced | given=%r | session_id=%s", session_id, new_id)
    return new_id


@router.post("/chat")
async def chat(request: Request, services: Services = Depends(get_services)):
    """
    Main chat endpoint.

    Pipeline (one graph run):
      1. Retrieve fragments for the message
      2. Load the session history (fresh if missing or unreadable)
      3. Assemble system + history + fragments + question
      4. Call the model
      5. Save history with the question and the raw answer
    """
    req = parse_chat_request(await request.body())

    query = req.message.strip()
    if not query:
        raise HTTPException(400, "Message is required.")

    session_id = _resolve_session_id(req.session_id)
    turn = await services.conversation.respond(
        session_id, query, timeout_seconds=services.config.chat.request_timeout_seconds
    )

    headers = {"X-Session-Id": turn.session_id}
    if services.config.chat.render_html:
        return HTMLResponse(turn.rendered, headers=headers)
    return PlainTextResponse(turn.answer, headers=headers)
