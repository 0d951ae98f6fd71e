"""
tests.test_api
~~~~~~~~~~~~~~

REST 接口与 WebSocket 推送的集成测试（使用 FastAPI TestClient 与内置掷骰引擎）。

每个玩家通过固定的会话 Cookie 区分身份，同一个 TestClient 模拟多个浏览器。
"""
from __future__ import annotations

import json
from collections.abc import Iterator

import pytest
from fastapi import WebSocketDisconnect
from fastapi.testclient import TestClient

from app.core.config import settings
from app.main import app


@pytest.fixture()
def client() -> Iterator[TestClient]:
    with TestClient(app) as test_client:
        yield test_client


def as_player(session_id: str) -> dict[str, str]:
    return {"cookie": f"{settings.SESSION_COOKIE_NAME}={session_id}"}


def create_room(client: TestClient) -> str:
    response = client.post("/api/rooms")
    assert response.status_code == 201
    return response.json()["data"]["room_id"]


def join(client: TestClient, room_id: str, session_id: str, name: str) -> dict:
    response = client.post(
        f"/api/rooms/{room_id}/seats", json={"name": name}, headers=as_player(session_id),
    )
    assert response.status_code == 200, response.text
    return response.json()["data"]


def act(client: TestClient, room_id: str, session_id: str, action: str, args: object = None):
    return client.post(
        f"/api/rooms/{room_id}/actions",
        json={"action": action, "args": args},
        headers=as_player(session_id),
    )


# ── 系统 ──────────────────────────────────────────────────────────────

def test_health(client: TestClient) -> None:
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"
    assert response.headers["X-Request-ID"].startswith("req-")


# ── 房间与座位 ────────────────────────────────────────────────────────

class TestRooms:
    def test_create_room(self, client: TestClient) -> None:
        response = client.post("/api/rooms")

        body = response.json()
        assert response.status_code == 201
        assert body["code"] == 201
        assert len(body["data"]["room_id"].split("-")) == 3

    def test_unknown_room(self, client: TestClient) -> None:
        response = client.get("/api/rooms/no-such-room")

        assert response.status_code == 404
        assert response.json() == {
            "code": 404,
            "data": {"reason": "ROOM_NOT_FOUND"},
            "msg": "ROOM_NOT_FOUND",
        }

    def test_session_cookie_is_issued_once(self, client: TestClient) -> None:
        room_id = create_room(client)

        first = client.get(f"/api/rooms/{room_id}")
        assert settings.SESSION_COOKIE_NAME in first.cookies

        second = client.get(f"/api/rooms/{room_id}", headers=as_player("known-session"))
        assert settings.SESSION_COOKIE_NAME not in second.cookies

    def test_seat_binding_and_views(self, client: TestClient) -> None:
        room_id = create_room(client)

        assert join(client, room_id, "alice", "Alice")["current_seat"] == {"seat_index": 0}
        assert join(client, room_id, "bob", "Bob")["current_seat"] == {"seat_index": 1}

        spectator = client.get(f"/api/rooms/{room_id}", headers=as_player("spectator")).json()["data"]
        assert spectator == {
            "started": False,
            "seats": [
                {"seat_index": 0, "display_name": "Alice"},
                {"seat_index": 1, "display_name": "Bob"},
            ],
        }

    def test_remove_seat_renumbers_sessions(self, client: TestClient) -> None:
        room_id = create_room(client)
        for session_id, name in [("alice", "Alice"), ("bob", "Bob"), ("carol", "Carol")]:
            join(client, room_id, session_id, name)

        response = client.delete(f"/api/rooms/{room_id}/seats/0", headers=as_player("alice"))
        assert response.status_code == 200
        assert "current_seat" not in response.json()["data"]

        bob_view = client.get(f"/api/rooms/{room_id}", headers=as_player("bob")).json()["data"]
        assert bob_view["current_seat"] == {"seat_index": 0}
        assert [seat["display_name"] for seat in bob_view["seats"]] == ["Bob", "Carol"]

    def test_remove_missing_seat(self, client: TestClient) -> None:
        room_id = create_room(client)
        response = client.delete(f"/api/rooms/{room_id}/seats/0")

        assert response.status_code == 422
        assert response.json()["data"] == {"reason": "INVALID_ARGUMENT"}

    def test_room_full(self, client: TestClient) -> None:
        room_id = create_room(client)
        for i in range(4):
            join(client, room_id, f"player-{i}", f"P{i}")

        response = client.post(
            f"/api/rooms/{room_id}/seats", json={"name": "Late"}, headers=as_player("late"),
        )
        assert response.status_code == 400
        assert response.json()["data"] == {"reason": "ROOM_FULL"}

    def test_blank_name_is_rejected(self, client: TestClient) -> None:
        room_id = create_room(client)
        response = client.post(f"/api/rooms/{room_id}/seats", json={"name": ""})
        assert response.status_code == 422


# ── 游戏流程 ──────────────────────────────────────────────────────────

class TestGameFlow:
    def test_not_enough_players(self, client: TestClient) -> None:
        room_id = create_room(client)
        join(client, room_id, "alice", "Alice")
        join(client, room_id, "bob", "Bob")

        response = client.post(f"/api/rooms/{room_id}/start")
        assert response.status_code == 400
        assert response.json()["data"] == {"reason": "NOT_ENOUGH_PLAYERS"}

    def test_action_before_start(self, client: TestClient) -> None:
        room_id = create_room(client)
        join(client, room_id, "alice", "Alice")

        response = act(client, room_id, "alice", "ROLL_DICE")
        assert response.status_code == 400
        assert response.json()["data"] == {"reason": "ROOM_NOT_STARTED"}

    def test_play_a_turn(self, client: TestClient) -> None:
        room_id = create_room(client)
        for session_id, name in [("alice", "Alice"), ("bob", "Bob"), ("carol", "Carol")]:
            join(client, room_id, session_id, name)

        started = client.post(f"/api/rooms/{room_id}/start", headers=as_player("alice"))
        assert started.status_code == 200
        assert started.json()["data"]["started"] is True
        assert started.json()["data"]["available_actions"] == ["ROLL_DICE"]

        again = client.post(f"/api/rooms/{room_id}/start", headers=as_player("bob"))
        assert again.json()["data"] == {"reason": "ROOM_ALREADY_STARTED"}

        out_of_turn = act(client, room_id, "bob", "ROLL_DICE")
        assert out_of_turn.status_code == 400
        assert out_of_turn.json()["data"] == {"reason": "NOT_YOUR_TURN"}

        rolled = act(client, room_id, "alice", "ROLL_DICE")
        assert rolled.status_code == 200
        assert rolled.json()["data"]["phase"] == "MAIN"
        assert rolled.json()["data"]["current_seat"]["seat_index"] == 0

        ended = act(client, room_id, "alice", "END_TURN")
        assert ended.json()["data"]["active_seat"] == 1
        bob_view = client.get(f"/api/rooms/{room_id}", headers=as_player("bob")).json()["data"]
        assert "ROLL_DICE" in bob_view["available_actions"]

    def test_spectator_cannot_act(self, client: TestClient) -> None:
        room_id = create_room(client)
        for session_id, name in [("alice", "Alice"), ("bob", "Bob"), ("carol", "Carol")]:
            join(client, room_id, session_id, name)
        client.post(f"/api/rooms/{room_id}/start")

        response = act(client, room_id, "spectator", "ROLL_DICE")
        assert response.status_code == 401
        assert response.json()["data"] == {"reason": "NOT_A_PLAYER"}

    def test_action_in_unknown_room(self, client: TestClient) -> None:
        response = act(client, "no-such-room", "alice", "ROLL_DICE")
        assert response.status_code == 404


# ── 调试房间 ──────────────────────────────────────────────────────────

class TestDebugRooms:
    def test_switch_active_seat(self, client: TestClient) -> None:
        response = client.post("/api/debug-rooms")
        assert response.status_code == 201
        room_id = response.json()["data"]["room_id"]

        switched = client.post(
            f"/api/rooms/{room_id}/active-seat", json={"seat_index": 2}, headers=as_player("dev"),
        )
        assert switched.status_code == 200
        view = switched.json()["data"]
        assert view["is_debug"] is True
        assert view["auto_collect"] is True
        assert view["current_seat"]["display_name"] == "Player 3"

        assert act(client, room_id, "dev", "ROLL_DICE").json()["data"] == {"reason": "NOT_YOUR_TURN"}

        client.post(f"/api/rooms/{room_id}/active-seat", json={"seat_index": 0}, headers=as_player("dev"))
        assert act(client, room_id, "dev", "ROLL_DICE").status_code == 200

    def test_switch_in_normal_room(self, client: TestClient) -> None:
        room_id = create_room(client)
        join(client, room_id, "alice", "Alice")

        response = client.post(
            f"/api/rooms/{room_id}/active-seat", json={"seat_index": 0}, headers=as_player("alice"),
        )
        assert response.status_code == 401
        assert response.json()["data"] == {"reason": "ROOM_IS_NOT_DEBUG"}

    def test_switch_out_of_range(self, client: TestClient) -> None:
        room_id = client.post("/api/debug-rooms").json()["data"]["room_id"]

        response = client.post(f"/api/rooms/{room_id}/active-seat", json={"seat_index": 4})
        assert response.status_code == 422
        assert response.json()["data"] == {"reason": "INVALID_ARGUMENT"}


# ── WebSocket 推送 ────────────────────────────────────────────────────

class TestRoomUpdates:
    def test_updates_follow_room_changes(self, client: TestClient) -> None:
        room_id = create_room(client)
        join(client, room_id, "alice", "Alice")

        with client.websocket_connect(f"/ws/rooms/{room_id}", headers=as_player("alice")) as ws:
            snapshot = ws.receive_json()
            assert snapshot["event"] == "SUBSCRIBED"
            assert snapshot["event_data"] is None
            assert snapshot["state"]["current_seat"] == {"seat_index": 0}

            join(client, room_id, "bob", "Bob")
            join(client, room_id, "carol", "Carol")
            added = [ws.receive_json() for _ in range(2)]
            assert [message["event"] for message in added] == ["SEAT_ADDED", "SEAT_ADDED"]
            assert [message["event_data"]["display_name"] for message in added] == ["Bob", "Carol"]

            client.post(f"/api/rooms/{room_id}/start", headers=as_player("carol"))
            started = ws.receive_json()
            assert started["event"] == "ROOM_STARTED"
            assert started["state"]["available_actions"] == ["ROLL_DICE"]

            assert act(client, room_id, "bob", "ROLL_DICE").status_code == 400
            assert act(client, room_id, "alice", "ROLL_DICE").status_code == 200
            completed = ws.receive_json()
            assert completed["event"] == "ACTION_COMPLETED"
            assert completed["event_data"] == {
                "action": "ROLL_DICE",
                "acting_seat": {"seat_index": 0, "display_name": "Alice"},
                "arguments": None,
            }
            assert completed["state"]["phase"] == "MAIN"
            assert completed["state"]["current_seat"]["display_name"] == "Alice"

    def test_spectator_gets_public_view(self, client: TestClient) -> None:
        room_id = create_room(client)

        with client.websocket_connect(f"/ws/rooms/{room_id}") as ws:
            assert ws.receive_json()["state"] == {"started": False, "seats": []}
            join(client, room_id, "alice", "Alice")
            update = ws.receive_json()
            assert update["state"]["seats"] == [{"seat_index": 0, "display_name": "Alice"}]
            assert "current_seat" not in update["state"]

    def test_server_side_unsubscribe_closes_connection(self, client: TestClient) -> None:
        """订阅被服务端取消后，连接以 1011 关闭，而不是保持静默。"""
        room_id = create_room(client)
        system = app.state.room_system

        with client.websocket_connect(f"/ws/rooms/{room_id}") as ws:
            ws.receive_json()
            assert client.portal is not None
            assert client.portal.call(system.close) == 1

            with pytest.raises(WebSocketDisconnect) as exc_info:
                ws.receive_json()

        assert exc_info.value.code == 1011

    def test_unknown_room_closes_connection(self, client: TestClient) -> None:
        with pytest.raises(WebSocketDisconnect) as exc_info:
            with client.websocket_connect("/ws/rooms/no-such-room") as ws:
                ws.receive_json()

        assert exc_info.value.code == 1003
        assert json.loads(exc_info.value.reason) == {"reason": "ROOM_NOT_FOUND"}
