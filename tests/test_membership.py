"""
tests.test_membership
~~~~~~~~~~~~~~~~~~~~~

座位管理（入座、离座、重新编号、提交前钩子）的单元测试。
"""
from __future__ import annotations

import pytest

from app.core.exceptions import InvalidArgument, RoomAlreadyStarted, RoomFull, RoomNotFound
from app.services.room_system import RoomSystem
from tests.fakes import Recorder, seat_players


class TestAddSeat:
    @pytest.mark.asyncio
    async def test_seats_are_numbered_in_join_order(self, system: RoomSystem) -> None:
        room_id = system.create_room()
        assert await seat_players(system, room_id, "Alice", "Bob", "Carol") == [0, 1, 2]

        view = system.public_view(room_id)
        assert view["started"] is False
        assert view["seats"] == [
            {"seat_index": 0, "display_name": "Alice"},
            {"seat_index": 1, "display_name": "Bob"},
            {"seat_index": 2, "display_name": "Carol"},
        ]

    @pytest.mark.asyncio
    async def test_fifth_seat_is_rejected(self, system: RoomSystem) -> None:
        room_id = system.create_room()
        await seat_players(system, room_id, "A", "B", "C", "D")

        with pytest.raises(RoomFull):
            await system.add_seat(room_id, "E")
        assert len(system.public_view(room_id)["seats"]) == 4

    @pytest.mark.asyncio
    @pytest.mark.parametrize("seat_count", [3, 4])
    async def test_started_room_rejects_new_seats(self, system: RoomSystem, seat_count: int) -> None:
        room_id = system.create_room()
        await seat_players(system, room_id, *[f"P{i}" for i in range(seat_count)])
        await system.start(room_id)

        with pytest.raises(RoomAlreadyStarted):
            await system.add_seat(room_id, "Late")

    @pytest.mark.asyncio
    async def test_unknown_room(self, system: RoomSystem) -> None:
        with pytest.raises(RoomNotFound):
            await system.add_seat("no-such-room", "Alice")

    @pytest.mark.asyncio
    async def test_pre_commit_runs_before_broadcast(self, system: RoomSystem) -> None:
        """提交前钩子执行时，订阅者还没有收到 SEAT_ADDED。"""
        room_id = system.create_room()
        recorder = Recorder()
        subscription = await system.subscribe(room_id, recorder)
        await subscription.drain()

        seen_by_hook: list[tuple[int, list[str]]] = []

        async def hook(seat_index: int) -> None:
            await subscription.drain()
            seen_by_hook.append((seat_index, list(recorder.events)))

        seat_index = await system.add_seat(room_id, "Alice", hook)
        await subscription.drain()

        assert seen_by_hook == [(0, ["SUBSCRIBED"])]
        assert seat_index == 0
        assert recorder.events == ["SUBSCRIBED", "SEAT_ADDED"]

    @pytest.mark.asyncio
    async def test_failed_pre_commit_rolls_seat_back(self, system: RoomSystem) -> None:
        room_id = system.create_room()
        recorder = Recorder()
        subscription = await system.subscribe(room_id, recorder)

        async def failing_hook(seat_index: int) -> None:
            raise RuntimeError("store unavailable")

        with pytest.raises(RuntimeError):
            await system.add_seat(room_id, "Alice", failing_hook)
        await subscription.drain()

        assert system.public_view(room_id)["seats"] == []
        assert recorder.events == ["SUBSCRIBED"]
        assert await system.add_seat(room_id, "Bob") == 0


class TestRemoveSeat:
    @pytest.mark.asyncio
    async def test_later_seats_are_renumbered(self, system: RoomSystem) -> None:
        room_id = system.create_room()
        await seat_players(system, room_id, "Alice", "Bob", "Carol")

        await system.remove_seat(room_id, 0)

        assert system.public_view(room_id)["seats"] == [
            {"seat_index": 0, "display_name": "Bob"},
            {"seat_index": 1, "display_name": "Carol"},
        ]

    @pytest.mark.asyncio
    async def test_removed_event_carries_old_index(self, system: RoomSystem) -> None:
        room_id = system.create_room()
        await seat_players(system, room_id, "Alice", "Bob", "Carol")
        recorder = Recorder()
        subscription = await system.subscribe(room_id, recorder)

        await system.remove_seat(room_id, 1)
        await subscription.drain()

        assert recorder.last.event_data == {"seat_index": 1, "display_name": "Bob"}
        assert [seat["display_name"] for seat in recorder.last.state["seats"]] == ["Alice", "Carol"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("seat_index", [-1, 3, 10])
    async def test_out_of_range_seat(self, system: RoomSystem, seat_index: int) -> None:
        room_id = system.create_room()
        await seat_players(system, room_id, "Alice", "Bob", "Carol")

        with pytest.raises(InvalidArgument):
            await system.remove_seat(room_id, seat_index)
        assert len(system.public_view(room_id)["seats"]) == 3

    @pytest.mark.asyncio
    async def test_started_room_rejects_removal(self, system: RoomSystem) -> None:
        room_id = system.create_room()
        await seat_players(system, room_id, "Alice", "Bob", "Carol")
        await system.start(room_id)

        with pytest.raises(RoomAlreadyStarted):
            await system.remove_seat(room_id, 0)

    @pytest.mark.asyncio
    async def test_pre_commit_receives_removed_index(self, system: RoomSystem) -> None:
        room_id = system.create_room()
        await seat_players(system, room_id, "Alice", "Bob", "Carol")
        released: list[int] = []

        async def hook(seat_index: int) -> None:
            released.append(seat_index)

        await system.remove_seat(room_id, 2, hook)
        assert released == [2]

    @pytest.mark.asyncio
    async def test_failed_pre_commit_restores_seat(self, system: RoomSystem) -> None:
        room_id = system.create_room()
        await seat_players(system, room_id, "Alice", "Bob", "Carol")
        recorder = Recorder()
        subscription = await system.subscribe(room_id, recorder)

        async def failing_hook(seat_index: int) -> None:
            raise RuntimeError("store unavailable")

        with pytest.raises(RuntimeError):
            await system.remove_seat(room_id, 1, failing_hook)
        await subscription.drain()

        assert [seat["display_name"] for seat in system.public_view(room_id)["seats"]] == [
            "Alice", "Bob", "Carol",
        ]
        assert recorder.events == ["SUBSCRIBED"]

        await system.remove_seat(room_id, 1)
        await subscription.drain()
        assert recorder.last.event_data == {"seat_index": 1, "display_name": "Bob"}
