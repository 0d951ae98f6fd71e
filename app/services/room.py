"""
app.services.room
~~~~~~~~~~~~~~~~~

单个游戏房间的状态容器。

每个 ``Room`` 拥有自己的座位表、（开始后的）规则引擎实例、订阅者表和一把房间锁，
房间之间互不干扰。``Room`` 本身只维护数据，不包含业务逻辑。
"""
from __future__ import annotations

import asyncio
import time
from typing import TYPE_CHECKING

from app.engine.base import RulesEngine
from app.schemas.room_events import SeatInfo

if TYPE_CHECKING:
    from app.services.broadcaster import Subscription

MAX_SEATS: int = 4
VALID_START_SEAT_COUNTS: frozenset[int] = frozenset({3, 4})


class Room:
    """一个游戏房间。

    生命周期：创建时为 forming（无引擎），开始后为 running（持有引擎，永不更换）。

    Attributes:
        room_id: 房间唯一标识，创建后不变。
        is_debug: 是否为调试房间（允许中途切换身份），创建后不变。
        seat_names: 按座位序号排列的玩家显示名，仅 forming 阶段可变。
        engine: 规则引擎实例，开始前为 ``None``。
        subscribers: 订阅 ID → 订阅对象。
        next_subscription_id: 房间内单调递增的订阅 ID 计数器。
        lock: 房间锁，串行化本房间的所有变更操作。
        last_activity: 最近一次活动的单调时钟时间。
    """

    def __init__(self, room_id: str, is_debug: bool = False) -> None:
        self.room_id = room_id
        self.is_debug = is_debug
        self.seat_names: list[str] = []
        self.engine: RulesEngine | None = None
        self.subscribers: dict[int, Subscription] = {}
        self.next_subscription_id: int = 0
        self.lock = asyncio.Lock()
        self.last_activity: float = time.monotonic()

    @property
    def is_running(self) -> bool:
        """是否已经开始（持有规则引擎）。"""
        return self.engine is not None

    @property
    def seat_count(self) -> int:
        return len(self.seat_names)

    @property
    def seats(self) -> list[SeatInfo]:
        return [
            SeatInfo(seat_index=index, display_name=name)
            for index, name in enumerate(self.seat_names)
        ]

    @property
    def online_count(self) -> int:
        """当前在线订阅者数。"""
        return len(self.subscribers)

    def touch(self) -> None:
        """刷新最近活动时间。"""
        self.last_activity = time.monotonic()

    def allocate_subscription_id(self) -> int:
        subscription_id = self.next_subscription_id
        self.next_subscription_id += 1
        return subscription_id
