"""
app.core.config
~~~~~~~~~~~~~~~

房间服务的配置项，由 pydantic-settings 读取。

取值来源（前者覆盖后者）：进程环境变量、``.env.<ENVIRONMENT>``、``.env``、字段默认值。
"""
from __future__ import annotations

import os
from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

Environment = Literal["dev", "test", "prod"]

# 必须在类定义前确定，决定读取哪个环境专属 .env 文件
_ACTIVE_ENV: str = os.getenv("ENVIRONMENT", "dev")

# 未显式设置 LOG_LEVEL 时各环境的默认日志级别
_ENV_LOG_LEVELS: dict[str, str] = {"dev": "INFO", "test": "DEBUG", "prod": "WARNING"}


class Settings(BaseSettings):
    """房间服务配置。"""

    # ── 应用 ──────────────────────────────────────────────────────────
    PROJECT_NAME: str = Field(default="Game Rooms Backend", description="服务名称（OpenAPI 标题）")
    VERSION: str = Field(default="0.1.0", description="服务版本")
    ENVIRONMENT: Environment = Field(default="dev", description="部署环境")

    # ── 监听 ──────────────────────────────────────────────────────────
    HOST: str = Field(default="0.0.0.0", description="uvicorn 绑定地址")
    PORT: int = Field(default=7123, description="uvicorn 绑定端口")
    LOG_LEVEL: str | None = Field(default=None, description="日志级别；留空时按环境推断")

    # ── 会话 / 身份 ───────────────────────────────────────────────────
    SESSION_COOKIE_NAME: str = Field(
        default="ROOMSESSION",
        description="保存会话 ID 的 Cookie 名称（座位绑定以会话为键）",
    )

    # ── 规则引擎 ──────────────────────────────────────────────────────
    ENGINE_FACTORY: str = Field(
        default="app.engine.dice.DiceEngine",
        description="规则引擎构造器的导入路径，签名 (seat_names, auto_collect) -> RulesEngine",
    )

    # ── 限流 ──────────────────────────────────────────────────────────
    RATE_LIMIT_ENABLED: bool = Field(default=True, description="是否开启 HTTP 接口限流")
    API_RATE_LIMIT: str = Field(default="20/second", description="单个接口的限流规则")

    # ── 房间回收 ──────────────────────────────────────────────────────
    ROOM_IDLE_TTL_SECONDS: float = Field(
        default=6 * 60 * 60,
        ge=0,
        description="无订阅者的房间闲置多久后被回收（秒），0 表示永不回收",
    )
    ROOM_SWEEP_INTERVAL_SECONDS: float = Field(
        default=60.0,
        gt=0,
        description="闲置房间扫描间隔（秒）",
    )

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ACTIVE_ENV}", ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @property
    def is_prod(self) -> bool:
        return self.ENVIRONMENT == "prod"

    @property
    def is_test(self) -> bool:
        return self.ENVIRONMENT == "test"

    @property
    def is_dev(self) -> bool:
        return self.ENVIRONMENT == "dev"

    @property
    def debug(self) -> bool:
        """FastAPI debug 模式，只在 dev 打开。"""
        return self.is_dev

    @property
    def reload(self) -> bool:
        """uvicorn 热重载，只在 dev 打开。"""
        return self.is_dev

    @property
    def effective_log_level(self) -> str:
        """实际使用的日志级别：显式配置的 ``LOG_LEVEL`` 优先，否则 dev=INFO、test=DEBUG、prod=WARNING。"""
        if self.LOG_LEVEL:
            return self.LOG_LEVEL.upper()
        return _ENV_LOG_LEVELS.get(self.ENVIRONMENT, "INFO")

    @property
    def allow_cors_all_origins(self) -> bool:
        """prod 以外的环境放开 CORS，便于本地前端联调。"""
        return not self.is_prod

    @property
    def room_eviction_enabled(self) -> bool:
        return self.ROOM_IDLE_TTL_SECONDS > 0


@lru_cache
def get_settings() -> Settings:
    """进程内唯一的 Settings 实例。"""
    return Settings()


settings: Settings = get_settings()
