"""
app.engine.base
~~~~~~~~~~~~~~~

规则引擎边界 —— 房间系统只通过这里定义的协议使用规则引擎。

引擎负责回合合法性、资源与胜负判定；房间系统只负责转发动作、渲染视图、
以及在动作完成后广播事件。
"""
from __future__ import annotations

from collections.abc import Callable
from typing import Any, Protocol

# (action, acting_seat, arguments)
ActionCompletedHandler = Callable[[str, int, Any], None]


class RuleViolation(Exception):
    """引擎拒绝动作时抛出，``reason`` 是引擎自定义的原因码。"""

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(f"Rule violation: {reason}")


class RulesEngine(Protocol):
    """一局游戏的规则引擎实例。"""

    def execute_action(self, seat: int, action: str, arguments: Any) -> None:
        """执行动作；违规时抛出 ``RuleViolation``。"""
        ...

    def public_projection(self) -> dict[str, Any]:
        ...

    def private_projection(self, seat: int) -> dict[str, Any]:
        ...

    def legal_actions(self, seat: int) -> list[str]:
        ...

    def on_action_completed(self, handler: ActionCompletedHandler) -> None:
        """注册动作完成回调，每次动作成功应用后同步调用一次。"""
        ...


# (ordered display names, auto_collect) -> engine
EngineFactory = Callable[[list[str], bool], RulesEngine]
