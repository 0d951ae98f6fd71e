"""
app.schemas.rooms
~~~~~~~~~~~~~~~~~

房间 REST 接口的请求/响应模型。
"""
from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class CreateRoomData(BaseModel):
    """新建房间的响应数据。"""

    room_id: str = Field(..., description="房间唯一标识（单词 slug）")


class AddSeatRequest(BaseModel):
    """入座请求体。"""

    name: str = Field(..., min_length=1, max_length=40, description="玩家显示名")


class StartRoomRequest(BaseModel):
    """开始游戏请求体。"""

    auto_collect: bool | None = Field(
        default=None,
        description="资源是否自动入账；不传时沿用房间的调试标记",
    )


class ActionRequest(BaseModel):
    """执行动作请求体。"""

    action: str = Field(..., min_length=1, description="动作名称")
    args: Any = Field(default=None, description="动作参数，结构由规则引擎定义")


class SwitchSeatRequest(BaseModel):
    """调试房间切换当前身份的请求体。"""

    seat_index: int = Field(..., description="要切换到的座位序号")
