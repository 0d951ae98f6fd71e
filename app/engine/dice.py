"""
app.engine.dice
~~~~~~~~~~~~~~~

内置的参考规则引擎 —— 一个 3~4 人的掷骰资源竞赛。

规则:
  - 轮到的玩家先 ``ROLL_DICE``：点数和为 7 时无人获得资源，
    否则掷骰者获得 2 份资源、其余玩家各 1 份。
  - 开启 ``auto_collect`` 时资源直接入账，否则先进入待领取，需要 ``COLLECT``。
  - 掷骰后可以 ``BUY_POINT``（每分 4 份资源，参数 ``{"amount": n}``）或 ``END_TURN``。
  - 先拿到 5 分的玩家获胜，游戏结束。

资源数量只在私有视图中可见；分数、资源总数等在公开视图中可见。
"""
from __future__ import annotations

import random
from enum import Enum
from typing import Any

from app.engine.base import ActionCompletedHandler, RuleViolation

POINT_COST: int = 4
POINTS_TO_WIN: int = 5
ROLLER_YIELD: int = 2
OTHER_YIELD: int = 1
BARREN_ROLL: int = 7


class DiceAction(str, Enum):
    ROLL_DICE = "ROLL_DICE"
    COLLECT = "COLLECT"
    BUY_POINT = "BUY_POINT"
    END_TURN = "END_TURN"


class Phase(str, Enum):
    ROLL = "ROLL"
    MAIN = "MAIN"
    FINISHED = "FINISHED"


class SeatState:
    """单个玩家的局内状态。"""

    def __init__(self, seat_index: int, name: str) -> None:
        self.seat_index = seat_index
        self.name = name
        self.resources: int = 0
        self.pending: int = 0
        self.points: int = 0

    def to_public_dict(self) -> dict[str, Any]:
        return {
            "seat_index": self.seat_index,
            "display_name": self.name,
            "points": self.points,
            "resource_count": self.resources,
        }

    def to_private_dict(self) -> dict[str, Any]:
        return {
            "seat_index": self.seat_index,
            "display_name": self.name,
            "points": self.points,
            "resources": self.resources,
            "pending_resources": self.pending,
        }


class DiceEngine:
    """掷骰资源竞赛的规则引擎，实现 ``RulesEngine`` 协议。"""

    def __init__(
        self,
        seat_names: list[str],
        auto_collect: bool = False,
        rng: random.Random | None = None,
    ) -> None:
        if not 3 <= len(seat_names) <= 4:
            raise ValueError(f"DiceEngine needs 3 or 4 players, got {len(seat_names)}")
        self.seats = [SeatState(i, name) for i, name in enumerate(seat_names)]
        self.auto_collect = auto_collect
        self.rng = rng or random.Random()
        self.turn: int = 1
        self.current_seat: int = 0
        self.phase: Phase = Phase.ROLL
        self.last_roll: list[int] | None = None
        self.winner: int | None = None
        self._handlers: list[ActionCompletedHandler] = []

    # ── RulesEngine 协议 ──────────────────────────────────────────────

    def on_action_completed(self, handler: ActionCompletedHandler) -> None:
        self._handlers.append(handler)

    def execute_action(self, seat: int, action: str, arguments: Any) -> None:
        player = self._player(seat)
        try:
            kind = DiceAction(action)
        except ValueError:
            raise RuleViolation("UNKNOWN_ACTION") from None
        if self.phase is Phase.FINISHED:
            raise RuleViolation("GAME_FINISHED")

        if kind is DiceAction.COLLECT:
            self._collect(player)
        else:
            if seat != self.current_seat:
                raise RuleViolation("NOT_YOUR_TURN")
            if kind is DiceAction.ROLL_DICE:
                self._roll(player)
            elif kind is DiceAction.BUY_POINT:
                self._buy_points(player, arguments)
            else:
                self._end_turn()

        for handler in list(self._handlers):
            handler(kind.value, seat, arguments)

    def public_projection(self) -> dict[str, Any]:
        return {
            "turn": self.turn,
            "phase": self.phase.value,
            "active_seat": self.current_seat,
            "last_roll": list(self.last_roll) if self.last_roll else None,
            "winner": self.winner,
            "auto_collect": self.auto_collect,
            "players": [p.to_public_dict() for p in self.seats],
        }

    def private_projection(self, seat: int) -> dict[str, Any]:
        return self._player(seat).to_private_dict()

    def legal_actions(self, seat: int) -> list[str]:
        player = self._player(seat)
        if self.phase is Phase.FINISHED:
            return []
        actions: list[str] = []
        if player.pending > 0:
            actions.append(DiceAction.COLLECT.value)
        if seat == self.current_seat:
            if self.phase is Phase.ROLL:
                actions.append(DiceAction.ROLL_DICE.value)
            else:
                if player.resources >= POINT_COST:
                    actions.append(DiceAction.BUY_POINT.value)
                actions.append(DiceAction.END_TURN.value)
        return actions

    # ── 动作实现 ──────────────────────────────────────────────────────

    def _player(self, seat: int) -> SeatState:
        if not isinstance(seat, int) or not 0 <= seat < len(self.seats):
            raise RuleViolation("INVALID_PLAYER")
        return self.seats[seat]

    def _roll(self, player: SeatState) -> None:
        if self.phase is not Phase.ROLL:
            raise RuleViolation("INVALID_PHASE")
        dice = [self.rng.randint(1, 6), self.rng.randint(1, 6)]
        self.last_roll = dice
        if sum(dice) != BARREN_ROLL:
            for other in self.seats:
                gain = ROLLER_YIELD if other is player else OTHER_YIELD
                if self.auto_collect:
                    other.resources += gain
                else:
                    other.pending += gain
        self.phase = Phase.MAIN

    def _collect(self, player: SeatState) -> None:
        if player.pending <= 0:
            raise RuleViolation("NOTHING_TO_COLLECT")
        player.resources += player.pending
        player.pending = 0

    def _buy_points(self, player: SeatState, arguments: Any) -> None:
        if self.phase is not Phase.MAIN:
            raise RuleViolation("INVALID_PHASE")
        amount = _parse_amount(arguments)
        cost = amount * POINT_COST
        if player.resources < cost:
            raise RuleViolation("INSUFFICIENT_RESOURCES")
        player.resources -= cost
        player.points += amount
        if player.points >= POINTS_TO_WIN:
            self.winner = player.seat_index
            self.phase = Phase.FINISHED

    def _end_turn(self) -> None:
        if self.phase is not Phase.MAIN:
            raise RuleViolation("INVALID_PHASE")
        self.current_seat = (self.current_seat + 1) % len(self.seats)
        self.turn += 1
        self.phase = Phase.ROLL


def _parse_amount(arguments: Any) -> int:
    if arguments is None:
        return 1
    if not isinstance(arguments, dict):
        raise RuleViolation("INVALID_ARGUMENTS")
    amount = arguments.get("amount", 1)
    # bool 是 int 的子类，需要单独排除
    if isinstance(amount, bool) or not isinstance(amount, int) or amount < 1:
        raise RuleViolation("INVALID_ARGUMENTS")
    return amount
