from fastapi import APIRouter, Depends, HTTPException

from case_chat.src.document_ingestion.data_ingestion import is_valid_session_id
from orchestrator.orchestrator_manager import Services, get_services

router = APIRouter()


@router.get("/messages/{session_id}")
async def get_messages(session_id: str, services: Services = Depends(get_services)):
    store = services.history_store

    if not is_valid_session_id(session_id) or not await store.exists(session_id):
        raise HTTPException(404, "Session not found")

    history = await store.load(session_id)
    return [{"role": m.role.value, "content": m.text} for m in history.messages]
