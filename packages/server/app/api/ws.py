"""
WebSocket push channel endpoint.

- WS /ws?username= — One connection per client session

Inbound frame types:
- ping → pong
- identify {username} → scope notification pushes to that user
- joinChat {chatId} → join the chat room, mark its messages viewed,
  push chatUpdate(newViewer) to the room
- leaveChat {chatId} → leave the chat room

Outbound frames are ``{"event": <name>, "data": <payload>}``.
"""

from __future__ import annotations

import json
from typing import Optional

import structlog
from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect

from app.core.database import get_session_factory
from app.core.delivery import ConnectionInfo, ConnectionManager, get_manager
from app.core.errors import ServiceError, parse_id
from app.services.chats import enrich_chat, mark_chat_viewed
from notifyhub_shared.schemas.common import ChatUpdateType

router = APIRouter()
log = structlog.get_logger()


async def _send_error(websocket: WebSocket, code: str, message: str) -> None:
    await websocket.send_text(json.dumps({
        "type": "error",
        "code": code,
        "message": message,
    }))


async def _join_chat(
    frame: dict,
    conn_info: ConnectionInfo,
    push: ConnectionManager,
    session_factory,
) -> None:
    websocket = conn_info.websocket
    chat_id = parse_id(frame.get("chatId"))
    room = str(chat_id)
    push.join_room(conn_info, room)

    if conn_info.username:
        async with session_factory() as session:
            chat = await mark_chat_viewed(session, chat_id, conn_info.username)
            read = await enrich_chat(session, chat)
        await push.chat_updated(read, ChatUpdateType.NEW_VIEWER, room=room)

    await websocket.send_text(json.dumps({"type": "joined", "chatId": room}))


@router.websocket("/ws")
async def websocket_endpoint(
    websocket: WebSocket,
    username: Optional[str] = Query(None),
    push: ConnectionManager = Depends(get_manager),
    session_factory=Depends(get_session_factory),
):
    conn_info = await push.connect(websocket, username or None)
    if conn_info is None:
        await websocket.close(code=4029, reason="connection_limit_exceeded")
        return

    try:
        while True:
            data = await websocket.receive_text()
            try:
                frame = json.loads(data)
            except json.JSONDecodeError:
                await _send_error(websocket, "INVALID_JSON", "Could not parse message as JSON.")
                continue
            if not isinstance(frame, dict):
                await _send_error(websocket, "INVALID_FRAME", "Frames must be JSON objects.")
                continue

            frame_type = frame.get("type")

            if frame_type == "ping":
                await websocket.send_text(json.dumps({"type": "pong"}))
                continue

            if frame_type == "identify":
                name = frame.get("username")
                if not name:
                    await _send_error(websocket, "INVALID_FRAME", "username is required.")
                    continue
                push.identify(conn_info, name)
                await websocket.send_text(json.dumps({"type": "identified", "username": name}))
                continue

            if frame_type == "joinChat":
                try:
                    await _join_chat(frame, conn_info, push, session_factory)
                except ServiceError as exc:
                    await _send_error(websocket, "JOIN_FAILED", exc.message)
                continue

            if frame_type == "leaveChat":
                chat_id = frame.get("chatId")
                if chat_id:
                    push.leave_room(conn_info, str(chat_id))
                await websocket.send_text(json.dumps({"type": "left", "chatId": chat_id}))
                continue

            await _send_error(websocket, "UNKNOWN_TYPE", f"Unknown frame type: {frame_type}")

    except WebSocketDisconnect:
        pass
    finally:
        await push.disconnect(conn_info)
