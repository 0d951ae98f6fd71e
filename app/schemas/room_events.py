"""
app.schemas.room_events
~~~~~~~~~~~~~~~~~~~~~~~

房间事件与推送消息模型。

事件是不可变的值，只在产生的那一刻广播给当时在线的订阅者，不排队、不持久化、不回放。
每个订阅者收到的 ``RoomUpdate`` 都带有按其当前身份重新计算的视图。
"""
from __future__ import annotations

from enum import Enum
from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict, Field


class RoomEventKind(str, Enum):
    SUBSCRIBED = "SUBSCRIBED"
    SEAT_ADDED = "SEAT_ADDED"
    SEAT_REMOVED = "SEAT_REMOVED"
    ROOM_STARTED = "ROOM_STARTED"
    ACTION_COMPLETED = "ACTION_COMPLETED"


class SeatInfo(BaseModel):
    """座位的位置序号与显示名。"""

    model_config = ConfigDict(frozen=True)

    seat_index: int = Field(..., description="座位序号（按加入顺序，移除后会重新编号）")
    display_name: str = Field(..., description="玩家显示名")


class RoomEvent(BaseModel):
    """所有房间事件的基类。"""

    model_config = ConfigDict(frozen=True)

    kind: ClassVar[RoomEventKind]

    def payload(self) -> dict[str, Any]:
        return self.model_dump(mode="json")


class SeatAdded(RoomEvent):
    kind = RoomEventKind.SEAT_ADDED

    seat_index: int
    display_name: str


class SeatRemoved(RoomEvent):
    """``seat_index`` 为移除前的序号。"""

    kind = RoomEventKind.SEAT_REMOVED

    seat_index: int
    display_name: str


class RoomStarted(RoomEvent):
    kind = RoomEventKind.ROOM_STARTED


class ActionCompleted(RoomEvent):
    kind = RoomEventKind.ACTION_COMPLETED

    action: str
    acting_seat: SeatInfo
    arguments: Any = None


class RoomUpdate(BaseModel):
    """推送给单个订阅者的消息。

    Attributes:
        event: 事件类型；订阅时的初始快照为 ``SUBSCRIBED``。
        event_data: 事件负载，快照时为 ``None``。
        state: 按订阅者当前身份计算的视图。
    """

    model_config = ConfigDict(frozen=True)

    event: RoomEventKind
    event_data: dict[str, Any] | None = None
    state: dict[str, Any]
