"""
app.core.rate_limit
~~~~~~~~~~~~~~~~~~~

REST 接口的限流配置。

基于客户端 IP 地址进行限流，每个接口独立计数。
WebSocket 连接只推送不接收指令，因此不做限流。
"""
from __future__ import annotations

from slowapi import Limiter
from slowapi.util import get_remote_address

from app.core.config import settings

# --------- HTTP 接口限流器 ---------
limiter = Limiter(
    key_func=get_remote_address,
    storage_uri="memory://",
    enabled=settings.RATE_LIMIT_ENABLED,
)
