"""WebSocket endpoint for realtime notifications."""
import json
import logging

from fastapi import APIRouter, HTTPException, WebSocket, WebSocketDisconnect, Query, status

from taskmanager.middleware.auth import decode_access_token

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Realtime"])


@router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket, token: str = Query(...)):
    """Authenticate with ``?token=<jwt>`` and receive this user's notification events."""
    try:
        current_user = decode_access_token(websocket.app.state.settings, token)
    except HTTPException:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    manager = websocket.app.state.services.realtime
    await manager.connect(websocket, current_user.user_id)
    try:
        while True:
            data = await websocket.receive_text()
            try:
                message = json.loads(data)
            except json.JSONDecodeError:
                logger.warning(f"Invalid JSON received from user {current_user.user_id}")
                continue
            if not isinstance(message, dict):
                logger.warning(f"Ignoring non-object message from user {current_user.user_id}")
                continue
            if message.get("type") == "ping":
                await websocket.send_text(json.dumps({"type": "pong"}))
    except WebSocketDisconnect:
        logger.info(f"WebSocket disconnected for user {current_user.user_id}")
    finally:
        manager.disconnect(websocket, current_user.user_id)
