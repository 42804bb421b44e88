from fastapi import APIRouter

from case_chat.logger import GLOBAL_LOGGER as log
from case_chat.src.document_ingestion.data_ingestion import generate_session_id

router = APIRouter()


@router.post("/sessions")
async def create_session():
    """
    Hand out a new session id. No record is written until the first chat
    turn on it is saved.
    """
    session_id = generate_session_id()
    log.info("Created new session | session_id=%s", session_id)
    return {"session_id": session_id}
