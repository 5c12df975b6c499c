"""Live-канал уведомлений: WebSocket на пользователя"""
from fastapi import APIRouter, WebSocket, WebSocketDisconnect, Query, status
from typing import Any, Dict, List
import json
import logging
import uuid

from app.core.db import SessionLocal
from app.domains.identity.services import IdentityService

logger = logging.getLogger(__name__)

router = APIRouter()


class ConnectionManager:
    """Активные соединения по пользователям; реализует ChannelPublisher"""

    def __init__(self):
        # {user_id: [websocket, ...]}
        self.active_connections: Dict[uuid.UUID, List[WebSocket]] = {}

    async def connect(self, websocket: WebSocket, user_id: uuid.UUID):
        await websocket.accept()
        self.active_connections.setdefault(user_id, []).append(websocket)
        logger.info(f"User {user_id} connected to notifications ({len(self.active_connections[user_id])} socket(s))")

    def disconnect(self, websocket: WebSocket, user_id: uuid.UUID):
        sockets = self.active_connections.get(user_id)
        if not sockets:
            return

        if websocket in sockets:
            sockets.remove(websocket)
        if not sockets:
            del self.active_connections[user_id]

        logger.info(f"User {user_id} disconnected from notifications")

    async def publish(self, user_id: uuid.UUID, event: Dict[str, Any]) -> None:
        """Рассылка события всем сокетам пользователя; сломанные сокеты удаляются"""
        sockets = list(self.active_connections.get(user_id, []))
        if not sockets:
            return

        message_json = json.dumps(event, default=str)
        broken: List[WebSocket] = []

        for websocket in sockets:
            try:
                await websocket.send_text(message_json)
            except Exception as e:
                logger.warning(f"Dropping notification socket of user {user_id}: {e}")
                broken.append(websocket)

        for websocket in broken:
            self.disconnect(websocket, user_id)


@router.websocket("/ws/notifications")
async def notifications_endpoint(websocket: WebSocket, token: str = Query("")):
    """Подписка на уведомления; токен проверяется до принятия соединения"""
    async with SessionLocal() as session:
        user = await IdentityService(session).get_current_user_from_token(token) if token else None

    if not user or not user.can_sign_in:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    manager: ConnectionManager = websocket.app.state.connection_manager
    await manager.connect(websocket, user.uuid)

    try:
        while True:
            # Входящие сообщения клиента игнорируются, кроме ping
            data = await websocket.receive_text()
            if data == "ping":
                await websocket.send_text(json.dumps({"type": "pong"}))
    except WebSocketDisconnect:
        pass
    finally:
        manager.disconnect(websocket, user.uuid)
