"""
app.api.deps
~~~~~~~~~~~~

FastAPI 依赖：从 ``app.state`` 取出进程级服务对象，以及会话 Cookie 的签发。
"""
from __future__ import annotations

import uuid

from fastapi import Request, Response

from app.core.config import settings
from app.services.identity import SeatDirectory
from app.services.room_system import RoomSystem


def get_room_system(request: Request) -> RoomSystem:
    return request.app.state.room_system


def get_seat_directory(request: Request) -> SeatDirectory:
    return request.app.state.seat_directory


def get_session_id(request: Request, response: Response) -> str:
    """读取会话 ID；没有时签发一个新的会话 Cookie。"""
    session_id = request.cookies.get(settings.SESSION_COOKIE_NAME)
    if not session_id:
        session_id = uuid.uuid4().hex
        response.set_cookie(
            settings.SESSION_COOKIE_NAME,
            session_id,
            httponly=True,
            # prod 环境前端跨站调用，需要 SameSite=None + Secure
            samesite="none" if settings.is_prod else "lax",
            secure=settings.is_prod,
        )
    return session_id
