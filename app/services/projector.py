"""
app.services.projector
~~~~~~~~~~~~~~~~~~~~~~

根据房间状态和观察者身份渲染视图。

- 未入座的观察者：公开视图。
- 已入座的玩家：公开视图 + 本座位的私有信息 + 可执行动作。

视图是纯读取操作，不修改房间状态。
"""
from __future__ import annotations

from typing import Any

from app.core.exceptions import InvalidArgument
from app.services.registry import RoomRegistry
from app.services.room import Room


class StateProjector:
    """视图渲染器。

    ``public_view`` / ``private_view`` 按房间 ID 查找（供请求处理层使用），
    ``render_*`` 直接作用于房间实体（供广播器在持有快照时使用）。
    """

    def __init__(self, registry: RoomRegistry) -> None:
        self._registry = registry

    def public_view(self, room_id: str) -> dict[str, Any]:
        """公开视图。

        Raises:
            RoomNotFound: 房间不存在。
        """
        return self.render_public(self._registry.get(room_id))

    def private_view(self, room_id: str, seat_index: int) -> dict[str, Any]:
        """指定座位的私有视图。

        Raises:
            RoomNotFound: 房间不存在。
            InvalidArgument: 座位序号为负；或房间已开始且座位序号越界。
        """
        return self.render_private(self._registry.get(room_id), seat_index)

    def view_for(self, room: Room, seat_index: int | None) -> dict[str, Any]:
        """按身份选择视图：无座位为公开视图，有座位为私有视图。"""
        if seat_index is None:
            return self.render_public(room)
        return self.render_private(room, seat_index)

    @staticmethod
    def render_public(room: Room) -> dict[str, Any]:
        if room.engine is None:
            return {
                "started": False,
                "seats": [seat.model_dump() for seat in room.seats],
            }
        return {
            "started": True,
            "is_debug": room.is_debug,
            **room.engine.public_projection(),
        }

    @classmethod
    def render_private(cls, room: Room, seat_index: int) -> dict[str, Any]:
        if seat_index < 0:
            raise InvalidArgument(detail=f"seat {seat_index}")

        view = cls.render_public(room)
        if room.engine is None:
            # 开始前允许预览尚未存在的座位
            view["current_seat"] = {"seat_index": seat_index}
            return view

        if seat_index >= room.seat_count:
            raise InvalidArgument(detail=f"seat {seat_index} of {room.seat_count}")
        view["current_seat"] = room.engine.private_projection(seat_index)
        view["available_actions"] = room.engine.legal_actions(seat_index)
        return view
