"""WebSocket endpoint for live updates.

Clients connect to /api/v1/ws?token=<jwt> and receive every event published
on their user topic (admins also get the admin topic), e.g.:
  - credits.balance_changed
  - bid.submitted / bid.status_changed
  - message.created
  - verification.updated

Send {"action": "subscribe", "conversation_id": "..."} to follow one
conversation as well.
"""

from __future__ import annotations

import json
import uuid

from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from renolink.api.deps import get_session_factory, user_from_token
from renolink.common.enums import UserRole
from renolink.common.events import ADMIN_TOPIC, Subscription, bus, conversation_topic, user_topic
from renolink.common.exceptions import RenoLinkException
from renolink.common.logging import get_logger
from renolink.core.messaging.service import MessagingService
from renolink.db.models.user import User

logger = get_logger("api.ws")

router = APIRouter(tags=["WebSocket"])

messaging = MessagingService()


async def _authenticate_ws(token: str, sessions: async_sessionmaker[AsyncSession]) -> User | None:
    if not token:
        return None
    async with sessions() as db:
        user = await user_from_token(token, db)
    if user is None or not user.is_active:
        return None
    return user


async def _can_follow(user: User, conversation_id: str, sessions: async_sessionmaker[AsyncSession]) -> bool:
    try:
        cid = uuid.UUID(conversation_id)
    except ValueError:
        return False
    async with sessions() as db:
        try:
            await messaging.get_conversation(db, cid, user)
        except RenoLinkException:
            return False
    return True


@router.websocket("/ws")
async def live_updates(
    websocket: WebSocket,
    token: str = Query(""),
    sessions: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
):
    user = await _authenticate_ws(token, sessions)
    if not user:
        await websocket.close(code=4001, reason="Authentication failed")
        return

    await websocket.accept()

    async def forward(message: dict) -> None:
        await websocket.send_json(message)

    subscriptions: list[Subscription] = [bus.subscribe(user_topic(user.id), forward)]
    if user.role == UserRole.ADMIN.value:
        subscriptions.append(bus.subscribe(ADMIN_TOPIC, forward))
    logger.info("WS connected: user=%s (%d subscriptions)", user.id, len(subscriptions))

    await websocket.send_json({
        "event": "connected",
        "data": {"user_id": str(user.id), "topics": [s.topic for s in subscriptions]},
    })

    try:
        while True:
            raw = await websocket.receive_text()
            try:
                msg = json.loads(raw)
            except json.JSONDecodeError:
                await websocket.send_json({"event": "error", "data": {"message": "Invalid JSON"}})
                continue

            action = msg.get("action")

            if action == "ping":
                await websocket.send_json({"event": "pong", "data": {}})

            elif action == "subscribe":
                conversation_id = str(msg.get("conversation_id", ""))
                topic = conversation_topic(conversation_id)
                if any(s.topic == topic for s in subscriptions):
                    await websocket.send_json({"event": "subscribed", "data": {"topic": topic}})
                elif await _can_follow(user, conversation_id, sessions):
                    subscriptions.append(bus.subscribe(topic, forward))
                    await websocket.send_json({"event": "subscribed", "data": {"topic": topic}})
                else:
                    await websocket.send_json({
                        "event": "error",
                        "data": {"message": "Conversation not found"},
                    })

            else:
                await websocket.send_json({
                    "event": "error",
                    "data": {"message": f"Unknown action: {action}"},
                })

    except WebSocketDisconnect:
        pass
    finally:
        for sub in subscriptions:
            sub.cancel()
        logger.info("WS disconnected: user=%s", user.id)
