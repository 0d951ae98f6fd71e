"""
app.services.room_system
~~~~~~~~~~~~~~~~~~~~~~~~

房间系统 —— 进程级服务对象，组合注册表、座位管理、生命周期、动作网关、
视图渲染和广播器，是请求处理层与 WebSocket 连接桥唯一依赖的入口。

在 FastAPI lifespan 中构造一次并挂载到 ``app.state.room_system``，
通过依赖注入获取，不使用模块级单例。
"""
from __future__ import annotations

from collections.abc import Callable
from typing import Any

from app.core.exceptions import InvalidArgument, RoomIsNotDebug
from app.core.logging import get_logger
from app.engine.base import EngineFactory
from app.services.actions import ActionGateway
from app.services.broadcaster import (
    DeliveryCallback,
    RoomBroadcaster,
    SeatResolver,
    Subscription,
)
from app.services.lifecycle import LifecycleController
from app.services.membership import MembershipManager, PreCommitHook
from app.services.naming import generate_room_slug
from app.services.projector import StateProjector
from app.services.registry import RoomRegistry
from app.services.room import MAX_SEATS

logger = get_logger(__name__)

DEBUG_SEAT_NAMES: tuple[str, ...] = tuple(f"Player {i + 1}" for i in range(MAX_SEATS))


class RoomSystem:
    """房间系统（进程级服务对象）。

    - ``create_room`` / ``create_debug_room``   → 创建房间
    - ``add_seat`` / ``remove_seat``            → 开始前的座位管理
    - ``start``                                 → 开始游戏
    - ``execute_action``                        → 转发动作给规则引擎
    - ``public_view`` / ``private_view``        → 视图
    - ``subscribe`` / ``unsubscribe``           → 长连接推送

    Attributes:
        registry: 房间注册表。
        projector: 视图渲染器。
        broadcaster: 事件广播器。
        membership: 座位管理器。
        lifecycle: 生命周期控制器。
        actions: 动作网关。
    """

    def __init__(
        self,
        engine_factory: EngineFactory,
        resolve_seat: SeatResolver,
        slug_factory: Callable[[], str] = generate_room_slug,
    ) -> None:
        self.registry = RoomRegistry(slug_factory=slug_factory)
        self.projector = StateProjector(self.registry)
        self.broadcaster = RoomBroadcaster(self.registry, self.projector, resolve_seat)
        self.membership = MembershipManager(self.registry, self.broadcaster)
        self.lifecycle = LifecycleController(self.registry, self.broadcaster, engine_factory)
        self.actions = ActionGateway(self.registry)

    # ── 注册表 ────────────────────────────────────────────────────────

    def create_room(self, is_debug: bool = False) -> str:
        return self.registry.create(is_debug=is_debug)

    async def create_debug_room(self) -> str:
        """创建一个坐满 4 人并已开始的调试房间。"""
        room_id = self.registry.create(is_debug=True)
        for name in DEBUG_SEAT_NAMES:
            await self.membership.add_seat(room_id, name)
        await self.lifecycle.start(room_id)
        return room_id

    def room_exists(self, room_id: str) -> bool:
        return self.registry.exists(room_id)

    def is_debug(self, room_id: str) -> bool:
        return self.registry.is_debug(room_id)

    def evict_idle_rooms(self, max_idle_seconds: float) -> list[str]:
        return self.registry.evict_idle(max_idle_seconds)

    # ── 变更操作 ──────────────────────────────────────────────────────

    async def add_seat(
        self, room_id: str, display_name: str, pre_commit: PreCommitHook | None = None,
    ) -> int:
        return await self.membership.add_seat(room_id, display_name, pre_commit)

    async def remove_seat(
        self, room_id: str, seat_index: int, pre_commit: PreCommitHook | None = None,
    ) -> None:
        await self.membership.remove_seat(room_id, seat_index, pre_commit)

    async def start(self, room_id: str, auto_collect: bool | None = None) -> None:
        await self.lifecycle.start(room_id, auto_collect)

    async def execute_action(
        self, room_id: str, seat_index: int, action: str, arguments: Any = None,
    ) -> None:
        await self.actions.execute_action(room_id, seat_index, action, arguments)

    def validate_seat_switch(self, room_id: str, seat_index: int) -> None:
        """校验调试房间的身份切换。

        Raises:
            RoomIsNotDebug: 房间不存在或不是调试房间。
            InvalidArgument: 座位序号不在当前座位范围内。
        """
        if not self.registry.is_debug(room_id):
            raise RoomIsNotDebug(detail=f"room {room_id}")
        room = self.registry.get(room_id)
        if not 0 <= seat_index < room.seat_count:
            raise InvalidArgument(detail=f"seat {seat_index} of {room.seat_count}")

    # ── 视图 ──────────────────────────────────────────────────────────

    def public_view(self, room_id: str) -> dict[str, Any]:
        return self.projector.public_view(room_id)

    def private_view(self, room_id: str, seat_index: int) -> dict[str, Any]:
        return self.projector.private_view(room_id, seat_index)

    def view_for_context(self, room_id: str, context: Any) -> dict[str, Any]:
        """按连接上下文解析身份并返回对应视图。"""
        return self.broadcaster.view_for_context(self.registry.get(room_id), context)

    # ── 订阅 ──────────────────────────────────────────────────────────

    async def subscribe(
        self, room_id: str, deliver: DeliveryCallback, context: Any = None,
    ) -> Subscription:
        return await self.broadcaster.subscribe(room_id, deliver, context)

    def unsubscribe(self, subscription: Subscription) -> None:
        self.broadcaster.unsubscribe(subscription)

    async def close(self) -> int:
        """取消所有房间的全部订阅并等待推送协程退出，返回关闭的订阅数。"""
        closed = 0
        for room in self.registry.rooms():
            for subscription in list(room.subscribers.values()):
                await subscription.close()
                closed += 1
        return closed
