"""WebSocket push channel delivering row changes to subscribed views."""
from __future__ import annotations

import json
import logging

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect, status

from ..config import get_settings
from ..database import create_session
from ..errors import ValidationError
from ..services import build_scope, realtime_hub, resolve_token

router = APIRouter(prefix="/realtime", tags=["realtime"])
logger = logging.getLogger(__name__)


@router.websocket("/{table}")
async def realtime_channel(
    websocket: WebSocket,
    table: str,
    token: str = Query("", alias="token"),
) -> None:
    """Subscribe to ``table`` changes; query parameters other than ``token`` are row filters."""

    # Released before accept(); an open socket must not hold a pooled connection.
    with create_session() as db:
        session = resolve_token(db, token or websocket.cookies.get(get_settings().session_cookie_name))
    if session.user_id is None:
        logger.info("Rejected realtime subscription to %s: missing or invalid token", table)
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    params = {key: value for key, value in websocket.query_params.items() if key != "token"}
    try:
        scope = build_scope(table, session.user_id, params)
    except ValidationError as exc:
        logger.info("Rejected realtime subscription to %s: %s", table, exc.detail)
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()
    await realtime_hub.connect(websocket, scope)
    try:
        while True:
            try:
                raw = await websocket.receive_text()
            except WebSocketDisconnect:
                break
            if raw.strip().lower() == "ping":
                await websocket.send_text(json.dumps({"type": "pong"}))
    finally:
        await realtime_hub.disconnect(websocket)


__all__ = ["router"]
