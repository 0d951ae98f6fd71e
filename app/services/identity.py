"""
app.services.identity
~~~~~~~~~~~~~~~~~~~~~

记录每个会话在每个房间里绑定的座位。

会话 ID 来自 Cookie。``resolve`` 是注入给房间系统的纯查找函数，
每次推送前都会被重新调用，因此调试房间中途切换身份会立即体现在下一条推送里。
"""
from __future__ import annotations

from collections import defaultdict
from typing import Any

from app.core.logging import get_logger

logger = get_logger(__name__)


class SeatDirectory:
    """会话 → {房间 → 座位序号} 的内存映射。"""

    def __init__(self) -> None:
        self._bindings: dict[str, dict[str, int]] = defaultdict(dict)

    def resolve(self, room_id: str, session_id: Any) -> int | None:
        """查找会话在房间中的座位；无会话或未绑定时返回 ``None``。"""
        if not session_id:
            return None
        seats = self._bindings.get(session_id)
        if seats is None:
            return None
        return seats.get(room_id)

    def assign(self, session_id: str, room_id: str, seat_index: int) -> None:
        self._bindings[session_id][room_id] = seat_index
        logger.debug("座位已绑定 | session=%s | room=%s | seat=%d", session_id[:8], room_id, seat_index)

    def release_seat(self, room_id: str, seat_index: int) -> None:
        """座位被移除后调整绑定：解除该座位的绑定，序号更大的绑定依次减一。"""
        for seats in self._bindings.values():
            bound = seats.get(room_id)
            if bound is None or bound < seat_index:
                continue
            if bound == seat_index:
                del seats[room_id]
            else:
                seats[room_id] = bound - 1

    def forget_room(self, room_id: str) -> None:
        """移除所有会话在该房间的绑定（房间被回收时调用）。"""
        for seats in self._bindings.values():
            seats.pop(room_id, None)
        empty = [session_id for session_id, seats in self._bindings.items() if not seats]
        for session_id in empty:
            del self._bindings[session_id]
