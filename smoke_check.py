import asyncio
import json

import httpx
from websockets.asyncio.client import connect

BASE_URL = 'http://127.0.0.1:7123'
WS_URL = 'ws://127.0.0.1:7123'
COOKIE_NAME = 'ROOMSESSION'

PLAYERS = [('alice', 'Alice'), ('bob', 'Bob'), ('carol', 'Carol')]


def cookie_header(session_id):
    return {'Cookie': f'{COOKIE_NAME}={session_id}'}


async def check_game_flow(client):
    print("="*50)
    print(" 验证房间流程 + WebSocket 推送 ")
    print("="*50)

    resp = await client.post('/api/rooms')
    room_id = resp.json()['data']['room_id']
    print(f"创建房间: {resp.status_code} room_id={room_id}")

    await client.post(f'/api/rooms/{room_id}/seats', json={'name': 'Alice'}, headers=cookie_header('alice'))

    uri = f'{WS_URL}/ws/rooms/{room_id}'
    async with connect(uri, additional_headers=cookie_header('alice')) as websocket:
        snapshot = json.loads(await websocket.recv())
        print(f" <- {snapshot['event']} current_seat={snapshot['state'].get('current_seat')}")

        for session_id, name in PLAYERS[1:]:
            resp = await client.post(
                f'/api/rooms/{room_id}/seats', json={'name': name}, headers=cookie_header(session_id),
            )
            print(f" -> {name} 入座: {resp.status_code}")

        resp = await client.post(f'/api/rooms/{room_id}/start', headers=cookie_header('alice'))
        print(f" -> 开始游戏: {resp.status_code}")

        resp = await client.post(
            f'/api/rooms/{room_id}/actions', json={'action': 'ROLL_DICE'}, headers=cookie_header('bob'),
        )
        print(f" -> Bob 抢先掷骰: {resp.status_code} {resp.json()['data']}")

        resp = await client.post(
            f'/api/rooms/{room_id}/actions', json={'action': 'ROLL_DICE'}, headers=cookie_header('alice'),
        )
        print(f" -> Alice 掷骰: {resp.status_code}")

        events = []
        for _ in range(4):
            try:
                message = json.loads(await asyncio.wait_for(websocket.recv(), timeout=2.0))
            except asyncio.TimeoutError:
                break
            events.append(message['event'])
            print(f" <- {message['event']} available_actions={message['state'].get('available_actions')}")

    expected = ['SEAT_ADDED', 'SEAT_ADDED', 'ROOM_STARTED', 'ACTION_COMPLETED']
    if events == expected:
        print("✅ 成功: 推送顺序与房间变更一致。")
    else:
        print(f"❌ 失败: 期望 {expected}，实际 {events}")


async def check_unknown_room():
    print("\n" + "="*50)
    print(" 验证订阅不存在的房间 (期望: 1003 关闭)")
    print("="*50)

    try:
        async with connect(f'{WS_URL}/ws/rooms/no-such-room') as websocket:
            await asyncio.wait_for(websocket.recv(), timeout=2.0)
    except Exception as e:
        close = getattr(e, 'rcvd', None)
        if close is not None and close.code == 1003:
            print(f"✅ 成功: 连接以 1003 关闭，reason={close.reason}")
        else:
            print(f"❌ 失败: {e!r}")


async def check_rest_rate_limit(client):
    print("\n" + "="*50)
    print(" 验证 REST API 限流 (期望: 20/second) ")
    print("="*50)

    statuses = []
    for _ in range(25):
        resp = await client.get('/api/rooms/no-such-room')
        statuses.append(resp.status_code)
    print(f"状态码返回: {statuses}")

    if 429 in statuses:
        print("✅ 成功: 触发了 HTTP 429 Too Many Requests 限流！")
    else:
        print("❌ 失败: 没有触发 429 限流（RATE_LIMIT_ENABLED 是否关闭？）")


async def main():
    print("🟢 开始执行冒烟检查...\n")
    print(f"要求: 在运行本脚本前，请确保主程序服务已经在 {BASE_URL} 运行。\n")

    async with httpx.AsyncClient(base_url=BASE_URL) as client:
        await check_game_flow(client)
        await check_unknown_room()
        await check_rest_rate_limit(client)

    print("\n🏁 检查结束。")

if __name__ == '__main__':
    asyncio.run(main())
