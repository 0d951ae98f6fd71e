"""
app.main
~~~~~~~~

FastAPI 应用入口 —— 注册路由、挂载中间件、定义生命周期。
"""
from __future__ import annotations

import asyncio
import uuid
from collections.abc import AsyncGenerator, Awaitable, Callable
from contextlib import asynccontextmanager, suppress
from typing import Any

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ImportString, TypeAdapter
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from app.api import room_ws, rooms
from app.core.config import settings
from app.core.exceptions import GameRoomError
from app.core.logging import get_logger, request_id_ctx_var, setup_logging
from app.core.rate_limit import limiter
from app.engine.base import EngineFactory
from app.schemas.api_response import ApiResponse
from app.services.identity import SeatDirectory
from app.services.room_system import RoomSystem

# 初始化日志系统（必须在其他模块之前）
setup_logging()
logger = get_logger(__name__)


def load_engine_factory(path: str) -> EngineFactory:
    """按导入路径加载规则引擎构造器，例如 ``app.engine.dice.DiceEngine``。"""
    return TypeAdapter(ImportString).validate_python(path)


async def sweep_idle_rooms(system: RoomSystem, directory: SeatDirectory) -> None:
    """周期性回收闲置房间，并清理对应的座位绑定。"""
    while True:
        await asyncio.sleep(settings.ROOM_SWEEP_INTERVAL_SECONDS)
        for room_id in system.evict_idle_rooms(settings.ROOM_IDLE_TTL_SECONDS):
            directory.forget_room(room_id)


# ── 生命周期 ──────────────────────────────────────────────────────────

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """应用生命周期钩子，仅在 worker 启动/关闭时各执行一次。"""
    # ── 启动 ──
    directory = SeatDirectory()
    system = RoomSystem(
        engine_factory=load_engine_factory(settings.ENGINE_FACTORY),
        resolve_seat=directory.resolve,
    )
    app.state.seat_directory = directory
    app.state.room_system = system

    sweeper: asyncio.Task[None] | None = None
    if settings.room_eviction_enabled:
        sweeper = asyncio.create_task(sweep_idle_rooms(system, directory), name="room-sweeper")

    logger.info(
        "🚀 应用已启动 | env=%s | debug=%s | log_level=%s | engine=%s",
        settings.ENVIRONMENT,
        settings.debug,
        settings.effective_log_level,
        settings.ENGINE_FACTORY,
    )
    yield
    # ── 关闭 ──
    if sweeper is not None:
        sweeper.cancel()
        with suppress(asyncio.CancelledError):
            await sweeper
    closed = await system.close()
    logger.info("👋 应用已关闭 | rooms=%d | subscriptions=%d", len(system.registry), closed)


# ── 应用实例 ──────────────────────────────────────────────────────────

app: FastAPI = FastAPI(
    title=settings.PROJECT_NAME,
    description="多人游戏房间后端：房间注册、座位管理、规则引擎转发与实时推送",
    version=settings.VERSION,
    debug=settings.debug,
    lifespan=lifespan,
)

# slowapi 从 app.state.limiter 读取限流器
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# 会话 Cookie 跨域需要 allow_credentials；prod 不放开任何来源
app.add_middleware(
    CORSMiddleware,
    allow_origin_regex=".*" if settings.allow_cors_all_origins else None,
    allow_origins=[],
    allow_credentials=True,
    allow_methods=["GET", "POST", "DELETE"],
    allow_headers=["*"],
)


@app.middleware("http")
async def request_id_middleware(
    request: Request, call_next: Callable[[Request], Awaitable[Response]],
) -> Response:
    """为每个 HTTP 请求分配 request_id，写入日志上下文与响应头。"""
    req_id = request.headers.get("X-Request-ID") or f"req-{uuid.uuid4().hex[:8]}"
    token = request_id_ctx_var.set(req_id)
    try:
        response = await call_next(request)
    finally:
        request_id_ctx_var.reset(token)
    response.headers["X-Request-ID"] = req_id
    return response


app.include_router(rooms.router, prefix="/api", tags=["Rooms"])
app.include_router(room_ws.router, tags=["WebSocket Updates"])


# ── 异常处理 ──────────────────────────────────────────────────────────

@app.exception_handler(GameRoomError)
async def game_room_error_handler(request: Request, exc: GameRoomError) -> JSONResponse:
    """房间业务异常 → 对应 HTTP 状态码 + ``{"reason": ...}``。"""
    logger.info("请求失败 | %s %s | reason=%s", request.method, request.url.path, exc.reason)
    return JSONResponse(
        status_code=exc.http_status,
        content=ApiResponse.from_error(exc).model_dump(),
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """兜底：未预期的异常统一返回 500，prod 不暴露异常内容。"""
    logger.error("未处理的异常 | %s %s | error=%s", request.method, request.url.path, exc, exc_info=True)
    msg = "服务器内部错误" if settings.is_prod else f"{type(exc).__name__}: {exc}"
    return JSONResponse(
        status_code=500,
        content=ApiResponse.fail(msg=msg, code=500).model_dump(),
    )


@app.get("/health", tags=["System"])
async def health_check(request: Request) -> dict[str, Any]:
    """存活检查，附带当前房间数。"""
    system: RoomSystem = request.app.state.room_system
    return {
        "status": "ok",
        "environment": settings.ENVIRONMENT,
        "version": settings.VERSION,
        "rooms": len(system.registry),
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.reload,
        log_level=settings.effective_log_level.lower(),
    )
