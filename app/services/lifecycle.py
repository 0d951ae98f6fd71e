"""
app.services.lifecycle
~~~~~~~~~~~~~~~~~~~~~~

房间生命周期 —— forming → running 的唯一一次转换。

开始时构造规则引擎，并把引擎的动作完成回调接到本房间的广播器上。
回调是构造时交给引擎的一个闭包，引擎不持有对房间系统的其他引用。
"""
from __future__ import annotations

from typing import Any

from app.core.exceptions import NotEnoughPlayers, RoomAlreadyStarted, UnknownReason
from app.core.logging import get_logger
from app.engine.base import ActionCompletedHandler, EngineFactory
from app.schemas.room_events import ActionCompleted, RoomStarted, SeatInfo
from app.services.broadcaster import RoomBroadcaster
from app.services.registry import RoomRegistry
from app.services.room import VALID_START_SEAT_COUNTS, Room

logger = get_logger(__name__)


class LifecycleController:
    """生命周期控制器。

    Attributes:
        engine_factory: 规则引擎构造器 ``(seat_names, auto_collect) -> RulesEngine``。
    """

    def __init__(
        self,
        registry: RoomRegistry,
        broadcaster: RoomBroadcaster,
        engine_factory: EngineFactory,
    ) -> None:
        self._registry = registry
        self._broadcaster = broadcaster
        self.engine_factory = engine_factory

    async def start(self, room_id: str, auto_collect: bool | None = None) -> None:
        """开始游戏。

        Args:
            room_id: 房间 ID。
            auto_collect: 资源是否自动入账；``None`` 时沿用房间的调试标记。

        Raises:
            RoomNotFound: 房间不存在。
            RoomAlreadyStarted: 房间已开始（并发开始时只有第一个成功）。
            NotEnoughPlayers: 座位数不是 3 或 4。
            UnknownReason: 引擎构造失败。
        """
        room = self._registry.get(room_id)
        async with room.lock:
            if room.is_running:
                raise RoomAlreadyStarted(detail=f"room {room_id}")
            if room.seat_count not in VALID_START_SEAT_COUNTS:
                raise NotEnoughPlayers(detail=f"{room.seat_count} seats")

            effective_auto_collect = room.is_debug if auto_collect is None else auto_collect
            try:
                engine = self.engine_factory(list(room.seat_names), effective_auto_collect)
            except Exception as e:
                logger.error("规则引擎构造失败 | room=%s | error=%s", room_id, e, exc_info=True)
                raise UnknownReason(detail="engine construction failed") from e

            engine.on_action_completed(self._completion_handler(room))
            room.engine = engine

            logger.info(
                "游戏已开始 | room=%s | seats=%d | auto_collect=%s",
                room_id, room.seat_count, effective_auto_collect,
            )
            self._broadcaster.emit(room, RoomStarted())

    def _completion_handler(self, room: Room) -> ActionCompletedHandler:
        broadcaster = self._broadcaster

        def on_action_completed(action: str, acting_seat: int, arguments: Any) -> None:
            # 引擎此时已经修改了状态，座位越界也照常广播，显示名留空
            if 0 <= acting_seat < room.seat_count:
                display_name = room.seat_names[acting_seat]
            else:
                logger.warning(
                    "引擎报告的行动座位越界 | room=%s | seat=%d | seats=%d | action=%s",
                    room.room_id, acting_seat, room.seat_count, action,
                )
                display_name = ""
            broadcaster.emit(
                room,
                ActionCompleted(
                    action=action,
                    acting_seat=SeatInfo(seat_index=acting_seat, display_name=display_name),
                    arguments=arguments,
                ),
            )

        return on_action_completed
