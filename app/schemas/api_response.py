"""
app.schemas.api_response
~~~~~~~~~~~~~~~~~~~~~~~~

全局统一应答体，所有 REST 接口复用此结构返回一致的 JSON 格式。

独立于 ``core/`` 包，遵循 FastAPI 社区惯例：
schemas/ 存放请求/响应的 Pydantic 模型。
"""
from __future__ import annotations

from typing import Any, Generic, TypeVar

from pydantic import BaseModel, Field

from app.core.exceptions import GameRoomError

T = TypeVar("T")


class ApiResponse(BaseModel, Generic[T]):
    """统一 JSON 应答体。

    .. code-block:: json

        {"code": 200, "data": {...}, "msg": "success"}

    失败时 ``msg`` 为错误原因码，``data`` 为 ``{"reason": ...}``。

    Attributes:
        code: 业务状态码，与 HTTP 状态码一致。
        data: 实际业务数据。
        msg: 人类可读的状态消息。
    """

    code: int = Field(default=200, description="业务状态码")
    data: T = Field(..., description="业务数据")
    msg: str = Field(default="success", description="状态消息")

    @classmethod
    def ok(cls, data: T, msg: str = "success", code: int = 200) -> ApiResponse[T]:
        """快捷构造成功响应。"""
        return cls(code=code, data=data, msg=msg)

    @classmethod
    def fail(cls, msg: str = "error", code: int = 500, data: Any = None) -> ApiResponse[Any]:
        """快捷构造失败响应。"""
        return cls(code=code, data=data, msg=msg)

    @classmethod
    def from_error(cls, exc: GameRoomError) -> ApiResponse[Any]:
        """把房间业务异常转换为失败响应。"""
        return cls(code=exc.http_status, data=exc.to_json(), msg=exc.reason)
