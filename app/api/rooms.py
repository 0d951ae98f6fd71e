"""
app.api.rooms
~~~~~~~~~~~~~

房间 REST 接口 —— 创建房间、入座/离座、开始游戏、执行动作、查看状态。

路由前缀 ``/api``。调用方的身份通过会话 Cookie 解析为本房间的座位。

端点:
  - ``POST   /rooms``                            → 创建房间
  - ``POST   /debug-rooms``                      → 创建已开始的 4 人调试房间
  - ``GET    /rooms/{room_id}``                  → 房间状态（有座位时为私有视图）
  - ``POST   /rooms/{room_id}/seats``            → 入座（绑定当前会话）
  - ``DELETE /rooms/{room_id}/seats/{seat}``     → 移除座位
  - ``POST   /rooms/{room_id}/start``            → 开始游戏
  - ``POST   /rooms/{room_id}/actions``          → 以当前座位执行动作
  - ``POST   /rooms/{room_id}/active-seat``      → 调试房间切换当前身份
"""
from typing import Any

from fastapi import APIRouter, Depends, Request, status

from app.api.deps import get_room_system, get_seat_directory, get_session_id
from app.core.config import settings
from app.core.exceptions import NotAPlayer, RoomNotFound
from app.core.rate_limit import limiter
from app.schemas.api_response import ApiResponse
from app.schemas.rooms import (
    ActionRequest,
    AddSeatRequest,
    CreateRoomData,
    StartRoomRequest,
    SwitchSeatRequest,
)
from app.services.identity import SeatDirectory
from app.services.room_system import RoomSystem

router: APIRouter = APIRouter()


# ── 房间创建 ──────────────────────────────────────────────────────────

@router.post(
    "/rooms",
    status_code=status.HTTP_201_CREATED,
    summary="创建房间",
    response_model=ApiResponse[CreateRoomData],
)
@limiter.limit(settings.API_RATE_LIMIT)
async def create_room(request: Request, system: RoomSystem = Depends(get_room_system)):
    """创建一个空房间（等待玩家入座）。"""
    room_id = system.create_room()
    return ApiResponse.ok(data=CreateRoomData(room_id=room_id), code=status.HTTP_201_CREATED)


@router.post(
    "/debug-rooms",
    status_code=status.HTTP_201_CREATED,
    summary="创建调试房间",
    response_model=ApiResponse[CreateRoomData],
)
@limiter.limit(settings.API_RATE_LIMIT)
async def create_debug_room(request: Request, system: RoomSystem = Depends(get_room_system)):
    """创建一个坐满 4 人并已开始的调试房间，可通过 ``active-seat`` 切换身份。"""
    room_id = await system.create_debug_room()
    return ApiResponse.ok(data=CreateRoomData(room_id=room_id), code=status.HTTP_201_CREATED)


# ── 房间状态 ──────────────────────────────────────────────────────────

@router.get("/rooms/{room_id}", summary="获取房间状态", response_model=ApiResponse[dict[str, Any]])
@limiter.limit(settings.API_RATE_LIMIT)
async def room_state(
    request: Request,
    room_id: str,
    session_id: str = Depends(get_session_id),
    system: RoomSystem = Depends(get_room_system),
):
    """返回房间状态：当前会话有座位时为私有视图，否则为公开视图。"""
    return ApiResponse.ok(data=system.view_for_context(room_id, session_id))


# ── 座位管理 ──────────────────────────────────────────────────────────

@router.post("/rooms/{room_id}/seats", summary="入座", response_model=ApiResponse[dict[str, Any]])
@limiter.limit(settings.API_RATE_LIMIT)
async def add_seat(
    request: Request,
    room_id: str,
    seat_request: AddSeatRequest,
    session_id: str = Depends(get_session_id),
    system: RoomSystem = Depends(get_room_system),
    directory: SeatDirectory = Depends(get_seat_directory),
):
    """以 ``name`` 入座，并把新座位绑定到当前会话。

    绑定在广播 ``SEAT_ADDED`` 之前完成，当前会话的长连接收到的第一条
    入座通知就已经是自己的私有视图。
    """

    async def bind_seat(seat_index: int) -> None:
        directory.assign(session_id, room_id, seat_index)

    seat_index = await system.add_seat(room_id, seat_request.name, bind_seat)
    return ApiResponse.ok(data=system.private_view(room_id, seat_index))


@router.delete(
    "/rooms/{room_id}/seats/{seat_index}",
    summary="移除座位",
    response_model=ApiResponse[dict[str, Any]],
)
@limiter.limit(settings.API_RATE_LIMIT)
async def remove_seat(
    request: Request,
    room_id: str,
    seat_index: int,
    session_id: str = Depends(get_session_id),
    system: RoomSystem = Depends(get_room_system),
    directory: SeatDirectory = Depends(get_seat_directory),
):
    """移除座位；之后的座位序号依次前移，会话绑定同步调整。"""

    async def release_seat(removed_index: int) -> None:
        directory.release_seat(room_id, removed_index)

    await system.remove_seat(room_id, seat_index, release_seat)
    return ApiResponse.ok(data=system.view_for_context(room_id, session_id))


# ── 游戏流程 ──────────────────────────────────────────────────────────

@router.post("/rooms/{room_id}/start", summary="开始游戏", response_model=ApiResponse[dict[str, Any]])
@limiter.limit(settings.API_RATE_LIMIT)
async def start_room(
    request: Request,
    room_id: str,
    start_request: StartRoomRequest | None = None,
    session_id: str = Depends(get_session_id),
    system: RoomSystem = Depends(get_room_system),
):
    """开始游戏（需要 3 或 4 个座位）。"""
    auto_collect = start_request.auto_collect if start_request is not None else None
    await system.start(room_id, auto_collect=auto_collect)
    return ApiResponse.ok(data=system.view_for_context(room_id, session_id))


@router.post("/rooms/{room_id}/actions", summary="执行动作", response_model=ApiResponse[dict[str, Any]])
@limiter.limit(settings.API_RATE_LIMIT)
async def execute_action(
    request: Request,
    room_id: str,
    action_request: ActionRequest,
    session_id: str = Depends(get_session_id),
    system: RoomSystem = Depends(get_room_system),
    directory: SeatDirectory = Depends(get_seat_directory),
):
    """以当前会话绑定的座位执行动作。

    其他观众通过长连接收到 ``ACTION_COMPLETED``，本接口返回执行后的私有视图。
    """
    if not system.room_exists(room_id):
        raise RoomNotFound(room_id)
    seat_index = directory.resolve(room_id, session_id)
    if seat_index is None:
        raise NotAPlayer(detail=f"room {room_id}")

    await system.execute_action(room_id, seat_index, action_request.action, action_request.args)
    return ApiResponse.ok(data=system.view_for_context(room_id, session_id))


@router.post(
    "/rooms/{room_id}/active-seat",
    summary="切换当前身份（仅调试房间）",
    response_model=ApiResponse[dict[str, Any]],
)
@limiter.limit(settings.API_RATE_LIMIT)
async def switch_active_seat(
    request: Request,
    room_id: str,
    switch_request: SwitchSeatRequest,
    session_id: str = Depends(get_session_id),
    system: RoomSystem = Depends(get_room_system),
    directory: SeatDirectory = Depends(get_seat_directory),
):
    """把当前会话改绑到另一个座位，长连接从下一条推送起使用新身份。"""
    system.validate_seat_switch(room_id, switch_request.seat_index)
    directory.assign(session_id, room_id, switch_request.seat_index)
    return ApiResponse.ok(data=system.private_view(room_id, switch_request.seat_index))
