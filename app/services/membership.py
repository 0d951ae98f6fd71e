"""
app.services.membership
~~~~~~~~~~~~~~~~~~~~~~~

座位管理 —— 在房间开始前添加/移除座位。

座位序号是位置序号而不是稳定标识：移除 1 号座位后，原 2 号座位变为 1 号。
"""
from __future__ import annotations

from collections.abc import Awaitable, Callable

from app.core.exceptions import InvalidArgument, RoomAlreadyStarted, RoomFull
from app.core.logging import get_logger
from app.schemas.room_events import SeatAdded, SeatRemoved
from app.services.broadcaster import RoomBroadcaster
from app.services.registry import RoomRegistry
from app.services.room import MAX_SEATS

logger = get_logger(__name__)

# 在广播之前执行，用于让调用方先保存身份绑定
PreCommitHook = Callable[[int], Awaitable[None]]


class MembershipManager:
    """座位管理器。"""

    def __init__(self, registry: RoomRegistry, broadcaster: RoomBroadcaster) -> None:
        self._registry = registry
        self._broadcaster = broadcaster

    async def add_seat(
        self,
        room_id: str,
        display_name: str,
        pre_commit: PreCommitHook | None = None,
    ) -> int:
        """添加一个座位并返回其序号。

        ``pre_commit(seat_index)`` 在广播 ``SEAT_ADDED`` 之前完成，保证所有收到
        新座位通知的订阅者都能解析到新玩家的身份。钩子失败时回滚该座位，不广播。

        Raises:
            RoomNotFound: 房间不存在。
            RoomAlreadyStarted: 房间已开始。
            RoomFull: 已有 4 个座位。
        """
        room = self._registry.get(room_id)
        async with room.lock:
            if room.is_running:
                raise RoomAlreadyStarted(detail=f"room {room_id}")
            if room.seat_count >= MAX_SEATS:
                raise RoomFull(detail=f"room {room_id}")

            room.seat_names.append(display_name)
            seat_index = room.seat_count - 1
            if pre_commit is not None:
                try:
                    await pre_commit(seat_index)
                except BaseException:
                    room.seat_names.pop()
                    raise

            logger.info(
                "玩家已入座 | room=%s | seat=%d | name=%s", room_id, seat_index, display_name,
            )
            self._broadcaster.emit(
                room, SeatAdded(seat_index=seat_index, display_name=display_name),
            )
            return seat_index

    async def remove_seat(
        self,
        room_id: str,
        seat_index: int,
        pre_commit: PreCommitHook | None = None,
    ) -> None:
        """移除一个座位，后续座位序号依次前移。

        ``pre_commit(seat_index)`` 在广播 ``SEAT_REMOVED`` 之前执行，
        用于调整身份绑定以匹配新的座位编号。钩子失败时座位原样放回，不广播。

        Raises:
            RoomNotFound: 房间不存在。
            RoomAlreadyStarted: 房间已开始。
            InvalidArgument: 座位序号越界。
        """
        room = self._registry.get(room_id)
        async with room.lock:
            if room.is_running:
                raise RoomAlreadyStarted(detail=f"room {room_id}")
            if not 0 <= seat_index < room.seat_count:
                raise InvalidArgument(detail=f"seat {seat_index} of {room.seat_count}")

            display_name = room.seat_names.pop(seat_index)
            if pre_commit is not None:
                try:
                    await pre_commit(seat_index)
                except BaseException:
                    room.seat_names.insert(seat_index, display_name)
                    raise

            logger.info(
                "玩家已离座 | room=%s | seat=%d | name=%s", room_id, seat_index, display_name,
            )
            self._broadcaster.emit(
                room, SeatRemoved(seat_index=seat_index, display_name=display_name),
            )
