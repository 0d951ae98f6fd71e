"""
tests.conftest
~~~~~~~~~~~~~~

共享 pytest fixtures —— 假规则引擎工厂、座位目录与房间系统，
使单元测试不依赖内置引擎的随机性。
"""
from __future__ import annotations

import os
from collections.abc import AsyncIterator, Callable

import pytest
import pytest_asyncio

# ── 在所有测试导入前设置环境变量 ─────────────────────────────────────
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("ROOM_IDLE_TTL_SECONDS", "0")

from app.services.identity import SeatDirectory  # noqa: E402
from app.services.room_system import RoomSystem  # noqa: E402
from tests.fakes import FakeEngine  # noqa: E402


@pytest.fixture()
def engines() -> list[FakeEngine]:
    """所有由 ``engine_factory`` 构造出的引擎实例。"""
    return []


@pytest.fixture()
def engine_factory(engines: list[FakeEngine]) -> Callable[[list[str], bool], FakeEngine]:
    def factory(seat_names: list[str], auto_collect: bool) -> FakeEngine:
        engine = FakeEngine(seat_names, auto_collect)
        engines.append(engine)
        return engine

    return factory


@pytest.fixture()
def directory() -> SeatDirectory:
    return SeatDirectory()


@pytest_asyncio.fixture()
async def system(
    engine_factory: Callable[[list[str], bool], FakeEngine], directory: SeatDirectory,
) -> AsyncIterator[RoomSystem]:
    """测试结束时关闭所有订阅，不留下未结束的推送协程。"""
    room_system = RoomSystem(engine_factory=engine_factory, resolve_seat=directory.resolve)
    yield room_system
    await room_system.close()
