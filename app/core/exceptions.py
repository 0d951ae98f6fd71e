"""
app.core.exceptions
~~~~~~~~~~~~~~~~~~~

自定义异常类别 —— 房间系统的错误分类。

集中管理所有业务异常，API 层通过统一的异常处理器转换为
``ApiResponse.fail()``。每个异常携带稳定的 ``reason`` 字符串（客户端据此判断），
以及对应的 HTTP 状态码。
"""
from __future__ import annotations


class GameRoomError(Exception):
    """所有房间业务异常的基类。"""

    reason: str = "UNKNOWN_REASON"
    http_status: int = 400

    def __init__(self, reason: str | None = None, detail: str | None = None) -> None:
        if reason is not None:
            self.reason = reason
        self.detail = detail
        super().__init__(f"Game room error: {self.reason}" + (f" ({detail})" if detail else ""))

    def to_json(self) -> dict[str, str]:
        return {"reason": self.reason}


# ============ 房间相关异常 ============

class RoomNotFound(GameRoomError):
    """房间不存在"""

    reason = "ROOM_NOT_FOUND"
    http_status = 404

    def __init__(self, room_id: str) -> None:
        self.room_id = room_id
        super().__init__(detail=f"room {room_id}")


class RoomNotStarted(GameRoomError):
    """房间尚未开始（没有规则引擎实例）"""

    reason = "ROOM_NOT_STARTED"


class RoomAlreadyStarted(GameRoomError):
    """房间已经开始，不再接受座位变更或重复开始"""

    reason = "ROOM_ALREADY_STARTED"


class RoomIsNotDebug(GameRoomError):
    """仅调试房间允许的操作（切换座位）作用在了普通房间上"""

    reason = "ROOM_IS_NOT_DEBUG"
    http_status = 401


# ============ 座位相关异常 ============

class NotEnoughPlayers(GameRoomError):
    """开始游戏时座位数不是 3 或 4"""

    reason = "NOT_ENOUGH_PLAYERS"


class RoomFull(GameRoomError):
    """房间已满（4 个座位）"""

    reason = "ROOM_FULL"


class NotAPlayer(GameRoomError):
    """调用方在该房间没有座位"""

    reason = "NOT_A_PLAYER"
    http_status = 401


class InvalidArgument(GameRoomError):
    """位置参数不合法（例如座位序号越界）"""

    reason = "INVALID_ARGUMENT"
    http_status = 422


# ============ 规则引擎相关异常 ============

class RulesViolation(GameRoomError):
    """规则引擎拒绝了动作，reason 为引擎给出的原因码（原样透传）"""

    def __init__(self, engine_reason: str) -> None:
        super().__init__(reason=engine_reason)


class UnknownReason(GameRoomError):
    """无法归类的失败（例如引擎抛出了意料之外的异常）"""

    reason = "UNKNOWN_REASON"
    http_status = 500
