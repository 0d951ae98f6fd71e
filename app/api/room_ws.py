"""
app.api.room_ws
~~~~~~~~~~~~~~~

WebSocket 房间推送接口 —— 连接桥。

提供 ``/ws/rooms/{room_id}`` 端点，观众通过 room_id 订阅指定房间的实时变化。
连接只推送不接收指令；身份来自会话 Cookie，每条推送前重新解析。

消息协议（JSON）:
  - ``{"event": "SUBSCRIBED", "event_data": null, "state": {...}}`` —— 订阅后的初始快照
  - ``{"event": "<事件类型>", "event_data": {...}, "state": {...}}`` —— 房间事件
  - 房间不存在时以 1003 关闭，reason 为 ``{"reason": "ROOM_NOT_FOUND"}``
  - 服务端取消订阅（推送失败、服务关闭）时以 1011 关闭
"""
from __future__ import annotations

import asyncio
import json
import uuid

from fastapi import APIRouter, WebSocket

from app.core.config import settings
from app.core.exceptions import RoomNotFound
from app.core.logging import get_logger, request_id_ctx_var
from app.schemas.room_events import RoomUpdate
from app.services.room_system import RoomSystem

logger = get_logger(__name__)

router: APIRouter = APIRouter()

UNSUPPORTED_DATA: int = 1003
INTERNAL_ERROR: int = 1011


async def _read_until_disconnect(websocket: WebSocket) -> None:
    """连接只推送；客户端发来的消息一律忽略，直到断开。"""
    while True:
        message = await websocket.receive()
        if message["type"] == "websocket.disconnect":
            return


@router.websocket("/ws/rooms/{room_id}")
async def room_updates_endpoint(websocket: WebSocket, room_id: str) -> None:
    """WebSocket 房间推送端点。

    Args:
        websocket: FastAPI WebSocket 连接对象。
        room_id: 房间唯一标识。
    """
    ws_req_id = f"ws-{uuid.uuid4().hex[:8]}"
    token = request_id_ctx_var.set(ws_req_id)

    try:
        system: RoomSystem = websocket.app.state.room_system
        session_id = websocket.cookies.get(settings.SESSION_COOKIE_NAME)
        await websocket.accept()

        async def deliver(update: RoomUpdate) -> None:
            await websocket.send_json(update.model_dump(mode="json"))

        try:
            subscription = await system.subscribe(room_id, deliver, session_id)
        except RoomNotFound as e:
            logger.info("订阅的房间不存在 | room=%s", room_id)
            await websocket.close(code=UNSUPPORTED_DATA, reason=json.dumps(e.to_json()))
            return

        logger.info("观众进入房间 | room=%s | 在线: %d", room_id, subscription.room.online_count)
        reader = asyncio.create_task(_read_until_disconnect(websocket))
        closed_waiter = asyncio.create_task(subscription.wait_closed())
        try:
            await asyncio.wait({reader, closed_waiter}, return_when=asyncio.FIRST_COMPLETED)
            if reader.done():
                reader.result()
            else:
                # 服务端取消了订阅（推送失败或关闭），不再保留静默连接
                logger.info("订阅已被服务端取消，关闭连接 | room=%s", room_id)
                try:
                    await websocket.close(code=INTERNAL_ERROR)
                except (RuntimeError, OSError) as e:
                    logger.info("连接已不可用 | room=%s | error=%s", room_id, e)
        finally:
            for task in (reader, closed_waiter):
                task.cancel()
            await asyncio.gather(reader, closed_waiter, return_exceptions=True)
            system.unsubscribe(subscription)
            logger.info("观众退出房间 | room=%s | 在线: %d", room_id, subscription.room.online_count)

    finally:
        request_id_ctx_var.reset(token)
