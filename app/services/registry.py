"""
app.services.registry
~~~~~~~~~~~~~~~~~~~~~

进程内唯一持有所有 ``Room`` 实体的注册表。

注册表只在创建时插入、在回收时删除，其余时间只读。所有操作都是同步的，
中间没有 ``await``，因此在单个事件循环上天然原子，不需要全局锁；
每个房间自己的状态由房间锁保护。
"""
from __future__ import annotations

import time
from collections.abc import Callable

from app.core.exceptions import RoomNotFound
from app.core.logging import get_logger
from app.services.naming import generate_room_slug
from app.services.room import Room

logger = get_logger(__name__)


class RoomRegistry:
    """房间注册表。

    Attributes:
        slug_factory: 房间 ID 候选生成函数。
    """

    def __init__(self, slug_factory: Callable[[], str] = generate_room_slug) -> None:
        self.slug_factory = slug_factory
        self._rooms: dict[str, Room] = {}
        # 已回收的房间 ID，进程生命周期内不再分配
        self._retired: set[str] = set()

    def create(self, is_debug: bool = False) -> str:
        """创建一个空房间（forming 状态）并返回其 ID。

        反复生成候选 ID，直到与所有现存及已回收的房间都不冲突。
        """
        room_id = self.slug_factory()
        while room_id in self._rooms or room_id in self._retired:
            logger.warning("房间 ID 冲突，重新生成 | candidate=%s", room_id)
            room_id = self.slug_factory()

        self._rooms[room_id] = Room(room_id, is_debug=is_debug)
        logger.info("房间已创建 | room_id=%s | debug=%s", room_id, is_debug)
        return room_id

    def exists(self, room_id: str) -> bool:
        return room_id in self._rooms

    def is_debug(self, room_id: str) -> bool:
        """房间是否为调试房间；未知房间返回 ``False``。"""
        room = self._rooms.get(room_id)
        return room is not None and room.is_debug

    def get(self, room_id: str) -> Room:
        """获取房间实体。

        Raises:
            RoomNotFound: 房间不存在。
        """
        room = self._rooms.get(room_id)
        if room is None:
            raise RoomNotFound(room_id)
        return room

    def __len__(self) -> int:
        return len(self._rooms)

    def rooms(self) -> list[Room]:
        """当前所有存活房间的快照。"""
        return list(self._rooms.values())

    def evict_idle(self, max_idle_seconds: float, now: float | None = None) -> list[str]:
        """回收闲置房间。

        没有在线订阅者、且最近活动早于 ``max_idle_seconds`` 之前的房间会被移除，
        其 ID 进入已回收集合。

        Returns:
            被回收的房间 ID 列表。
        """
        now = time.monotonic() if now is None else now
        evicted = [
            room_id
            for room_id, room in self._rooms.items()
            if not room.subscribers
            and not room.lock.locked()
            and now - room.last_activity > max_idle_seconds
        ]
        for room_id in evicted:
            del self._rooms[room_id]
            self._retired.add(room_id)
        if evicted:
            logger.info("闲置房间已回收 | count=%d | remaining=%d", len(evicted), len(self._rooms))
        return evicted
