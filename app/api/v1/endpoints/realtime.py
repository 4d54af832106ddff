"""
WebSocket endpoint delivering ``import:*`` events to the authenticated user.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect, status

from app.core.exceptions import AuthenticationError
from app.core.security import decode_access_token

router = APIRouter()
logger = logging.getLogger("ledgerflow.realtime")


def _extract_token(websocket: WebSocket, token: Optional[str]) -> Optional[str]:
    if token:
        return token
    authorization = websocket.headers.get("authorization", "")
    scheme, _, credentials = authorization.partition(" ")
    if scheme.lower() == "bearer" and credentials:
        return credentials
    return None


@router.websocket("/ws")
async def events_socket(websocket: WebSocket, token: Optional[str] = Query(None)):
    """
    Join the caller's ``user:<id>`` room and keep the socket open.

    Messages are ``{"event": "import:progress", "data": {...}}``. Anything the
    client sends is ignored.
    """
    raw_token = _extract_token(websocket, token)
    if not raw_token:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason="Missing token")
        return

    try:
        user_id = decode_access_token(raw_token)
    except AuthenticationError as e:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason=e.message)
        return

    hub = websocket.app.state.services.hub
    await websocket.accept()
    await hub.connect(websocket, user_id)
    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        pass
    finally:
        await hub.disconnect(websocket, user_id)
