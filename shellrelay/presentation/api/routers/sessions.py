"""
Session management REST endpoints.
"""

import logging
from typing import Any, Dict, List

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field

from ....core.exceptions import SessionNotFoundError
from ....core.services.session_manager import SessionManager
from ..dependencies import get_session_manager

logger = logging.getLogger(__name__)

router = APIRouter()


class ResizeRequest(BaseModel):
    """Terminal resize request model."""
    columns: int = Field(..., ge=1, le=10000, description="Terminal width in columns")
    rows: int = Field(..., ge=1, le=10000, description="Terminal height in rows")


@router.get("")
async def list_sessions(
    manager: SessionManager = Depends(get_session_manager)
) -> List[Dict[str, Any]]:
    """List active sessions with their diagnostic counters."""
    return await manager.list_sessions()


@router.get("/{session_id}")
async def get_session(
    session_id: str,
    manager: SessionManager = Depends(get_session_manager)
) -> Dict[str, Any]:
    for session in await manager.list_sessions():
        if session["session_id"] == session_id:
            return session
    raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Session not found: {session_id}")


@router.post("/{session_id}/resize", status_code=status.HTTP_202_ACCEPTED)
async def resize_session(
    session_id: str,
    request: ResizeRequest,
    manager: SessionManager = Depends(get_session_manager)
) -> Dict[str, Any]:
    try:
        await manager.resize(session_id, request.columns, request.rows)
    except SessionNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return {"session_id": session_id, "status": "queued"}


@router.delete("/{session_id}")
async def disconnect_session(
    session_id: str,
    manager: SessionManager = Depends(get_session_manager)
) -> Dict[str, Any]:
    try:
        await manager.disconnect(session_id)
    except SessionNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

    logger.info(f"Session {session_id} disconnected via API")
    return {"session_id": session_id, "status": "disconnecting"}
