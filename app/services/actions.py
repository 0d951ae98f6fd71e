"""
app.services.actions
~~~~~~~~~~~~~~~~~~~~

动作网关 —— 把已入座玩家的动作转发给规则引擎，并把引擎异常翻译为房间错误。

成功时无需额外处理：开始时注册的完成回调会负责广播 ``ACTION_COMPLETED``。
失败不重试，直接同步返回给调用方；单次失败不会破坏房间状态。
"""
from __future__ import annotations

from typing import Any

from app.core.exceptions import RoomNotStarted, RulesViolation, UnknownReason
from app.core.logging import get_logger
from app.engine.base import RuleViolation
from app.services.registry import RoomRegistry

logger = get_logger(__name__)


class ActionGateway:
    """动作网关。"""

    def __init__(self, registry: RoomRegistry) -> None:
        self._registry = registry

    async def execute_action(
        self,
        room_id: str,
        seat_index: int,
        action: str,
        arguments: Any = None,
    ) -> None:
        """以 ``seat_index`` 的身份执行动作。

        Raises:
            RoomNotFound: 房间不存在。
            RoomNotStarted: 房间尚未开始。
            RulesViolation: 引擎拒绝了动作，reason 为引擎原因码。
            UnknownReason: 引擎抛出了无法归类的异常。
        """
        room = self._registry.get(room_id)
        async with room.lock:
            if room.engine is None:
                raise RoomNotStarted(detail=f"room {room_id}")
            try:
                room.engine.execute_action(seat_index, action, arguments)
            except RuleViolation as e:
                logger.info(
                    "动作被拒绝 | room=%s | seat=%d | action=%s | reason=%s",
                    room_id, seat_index, action, e.reason,
                )
                raise RulesViolation(e.reason) from e
            except Exception as e:
                logger.error(
                    "动作执行异常 | room=%s | seat=%d | action=%s | error=%s",
                    room_id, seat_index, action, e, exc_info=True,
                )
                raise UnknownReason(detail=f"action {action}") from e
            room.touch()

        logger.info("动作已执行 | room=%s | seat=%d | action=%s", room_id, seat_index, action)
