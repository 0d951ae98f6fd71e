"""
app.services.broadcaster
~~~~~~~~~~~~~~~~~~~~~~~~

房间事件广播器 —— 维护每个房间的订阅者，并把事件扇出给所有订阅者。

每个订阅者收到的不是同一份负载：广播时对每个订阅者重新解析身份、
重新计算视图。每个订阅持有独立的队列和推送协程:

  - ``emit`` 只负责入队，不等待任何传输写入（慢连接不会拖慢动作执行）；
  - 推送协程按入队顺序逐条写出，保证同一房间内每个订阅者看到的事件顺序一致；
  - 某个订阅者推送失败只会移除它自己，不影响其他订阅者。
"""
from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from contextlib import suppress
from typing import Any

from app.core.exceptions import InvalidArgument
from app.core.logging import get_logger
from app.schemas.room_events import RoomEvent, RoomEventKind, RoomUpdate
from app.services.projector import StateProjector
from app.services.registry import RoomRegistry
from app.services.room import Room

logger = get_logger(__name__)

# (room_id, connection_context) -> seat_index | None
SeatResolver = Callable[[str, Any], "int | None"]
DeliveryCallback = Callable[[RoomUpdate], Awaitable[None]]


class Subscription:
    """一个订阅：房间 + 订阅 ID + 推送回调 + 身份解析上下文。

    身份上下文不是座位快照，每次推送前都会重新解析。

    Attributes:
        room: 所属房间。
        subscription_id: 房间内唯一的订阅 ID。
        context: 身份解析上下文（例如会话 ID）。
        closed: 是否已取消订阅。
    """

    def __init__(
        self,
        room: Room,
        subscription_id: int,
        deliver: DeliveryCallback,
        context: Any = None,
    ) -> None:
        self.room = room
        self.subscription_id = subscription_id
        self.context = context
        self.closed = False
        self._deliver = deliver
        self._queue: asyncio.Queue[RoomUpdate] = asyncio.Queue()
        self._task: asyncio.Task[None] | None = None
        self._closed_event = asyncio.Event()

    @property
    def room_id(self) -> str:
        return self.room.room_id

    def start(self) -> None:
        """启动推送协程。"""
        self._task = asyncio.create_task(
            self._run(), name=f"room-{self.room_id}-subscription-{self.subscription_id}",
        )

    def push(self, update: RoomUpdate) -> None:
        """入队一条待推送消息，不等待传输。"""
        if not self.closed:
            self._queue.put_nowait(update)

    async def drain(self) -> None:
        """等待当前已入队的消息全部处理完毕。"""
        await self._queue.join()

    async def wait_closed(self) -> None:
        """等待订阅被取消（包括推送失败导致的自动取消）。"""
        await self._closed_event.wait()

    async def close(self) -> None:
        """取消订阅，并等待推送协程真正退出。"""
        self.unsubscribe()
        task = self._task
        if task is not None and task is not asyncio.current_task():
            with suppress(asyncio.CancelledError):
                await task

    def unsubscribe(self) -> None:
        """取消订阅（幂等）。

        返回后不会再有任何推送到达此订阅的回调；可以在推送过程中、
        甚至在回调内部调用。
        """
        if self.closed:
            return
        self.closed = True
        self._closed_event.set()
        if self.room.subscribers.get(self.subscription_id) is self:
            del self.room.subscribers[self.subscription_id]
        self.room.touch()

        while not self._queue.empty():
            self._queue.get_nowait()
            self._queue.task_done()

        task = self._task
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()
        logger.info(
            "订阅已取消 | room=%s | subscription=%d | online=%d",
            self.room_id, self.subscription_id, self.room.online_count,
        )

    async def _run(self) -> None:
        while not self.closed:
            update = await self._queue.get()
            try:
                if self.closed:
                    return
                await self._deliver(update)
            except Exception as e:
                # 传输失败不重试，走订阅者自己的移除流程
                logger.warning(
                    "推送失败，移除订阅 | room=%s | subscription=%d | error=%s",
                    self.room_id, self.subscription_id, e,
                )
                self.unsubscribe()
            finally:
                self._queue.task_done()


class RoomBroadcaster:
    """房间事件广播器。

    订阅者表保存在各自的 ``Room`` 上；广播器只负责订阅、退订与扇出。

    Attributes:
        registry: 房间注册表。
        projector: 视图渲染器。
        resolve_seat: 身份解析函数 ``(room_id, context) -> seat_index | None``。
    """

    def __init__(
        self,
        registry: RoomRegistry,
        projector: StateProjector,
        resolve_seat: SeatResolver,
    ) -> None:
        self.registry = registry
        self.projector = projector
        self.resolve_seat = resolve_seat

    async def subscribe(
        self,
        room_id: str,
        deliver: DeliveryCallback,
        context: Any = None,
    ) -> Subscription:
        """订阅房间事件。

        订阅后第一条推送一定是 ``SUBSCRIBED`` 初始快照，之后才是广播的事件。

        Raises:
            RoomNotFound: 房间不存在。
        """
        room = self.registry.get(room_id)
        async with room.lock:
            snapshot = RoomUpdate(
                event=RoomEventKind.SUBSCRIBED,
                state=self.view_for_context(room, context),
            )
            subscription = Subscription(
                room, room.allocate_subscription_id(), deliver, context,
            )
            room.subscribers[subscription.subscription_id] = subscription
            room.touch()
            subscription.push(snapshot)
            subscription.start()

        logger.info(
            "订阅已建立 | room=%s | subscription=%d | online=%d",
            room_id, subscription.subscription_id, room.online_count,
        )
        return subscription

    @staticmethod
    def unsubscribe(subscription: Subscription) -> None:
        subscription.unsubscribe()

    def emit(self, room: Room, event: RoomEvent) -> None:
        """向房间内所有订阅者广播事件（仅入队，不等待推送完成）。

        应在持有房间锁时调用，保证事件顺序与变更顺序一致。
        """
        room.touch()
        payload = event.payload()
        # 先拷贝一份订阅者快照，遍历期间的订阅/退订不会影响本次广播
        for subscription in list(room.subscribers.values()):
            if subscription.closed:
                continue
            try:
                state = self.view_for_context(room, subscription.context)
            except Exception as e:
                logger.warning(
                    "视图计算失败，跳过该订阅者 | room=%s | subscription=%d | event=%s | error=%s",
                    room.room_id, subscription.subscription_id, event.kind.value, e,
                    exc_info=True,
                )
                continue
            subscription.push(
                RoomUpdate(event=event.kind, event_data=payload, state=state),
            )
        logger.debug(
            "事件已广播 | room=%s | event=%s | subscribers=%d",
            room.room_id, event.kind.value, room.online_count,
        )

    def view_for_context(self, room: Room, context: Any) -> dict[str, Any]:
        """按上下文当前解析到的身份渲染视图。"""
        seat_index = self.resolve_seat(room.room_id, context)
        try:
            return self.projector.view_for(room, seat_index)
        except InvalidArgument:
            # 身份已不对应任何座位时退回公开视图
            return self.projector.render_public(room)
