"""网络工具 — HTTP 客户端协议 + URL 安全校验

通过 HttpClient 协议抽象 HTTP GET，方便测试替换（无需 patch urllib）。
所有请求都带有超时；失败统一抛 ConnectionError，由调用方翻译为
RegistryError / ArchiveError。核心层不做重试。
"""

from __future__ import annotations

import logging
import urllib.error
import urllib.request
from typing import Protocol
from urllib.parse import urlparse

from pcomposer import __version__
from pcomposer.core.exceptions import ValidationError

logger = logging.getLogger(__name__)

_ALLOWED_SCHEMES = frozenset(("http", "https"))

DEFAULT_TIMEOUT = 30


def validate_url_scheme(url: str, *, context: str = "") -> None:
    """校验 URL 仅使用 http/https，防止 file:// 等非预期协议访问

    Raises:
        ValidationError: URL scheme 不在白名单内
    """
    parsed = urlparse(url)
    if parsed.scheme not in _ALLOWED_SCHEMES:
        label = f" ({context})" if context else ""
        raise ValidationError(
            f"不允许的 URL 协议 '{parsed.scheme}'{label}，"
            f"仅支持 http/https: {url}"
        )


# =========================================================================
# HTTP 客户端协议
# =========================================================================

class HttpClient(Protocol):
    """HTTP 客户端协议 — 只需要带超时的 GET"""

    def get(
        self,
        url: str,
        *,
        accept: str = "application/json",
        timeout: int | None = None,
    ) -> bytes:
        """返回响应体字节；非 2xx 或网络失败抛 ConnectionError"""
        ...


class UrllibClient:
    """基于 urllib 的默认实现"""

    def __init__(self, timeout: int = DEFAULT_TIMEOUT) -> None:
        self.timeout = timeout

    def get(
        self,
        url: str,
        *,
        accept: str = "application/json",
        timeout: int | None = None,
    ) -> bytes:
        req = urllib.request.Request(
            url,
            headers={
                "User-Agent": f"PComposer/{__version__}",
                "Accept": accept,
            },
            method="GET",
        )
        try:
            with urllib.request.urlopen(  # nosec B310
                req, timeout=timeout or self.timeout,
            ) as resp:
                return resp.read()
        except (urllib.error.HTTPError, urllib.error.URLError, OSError) as e:
            raise ConnectionError(f"请求失败: {url} - {e}") from e


# =========================================================================
# 全局默认客户端（可替换）
# =========================================================================

_default_client: HttpClient = UrllibClient()


def get_http_client() -> HttpClient:
    """获取全局默认 HTTP 客户端"""
    return _default_client


def set_http_client(client: HttpClient) -> None:
    """替换全局默认 HTTP 客户端（用于测试或代理场景）"""
    global _default_client  # noqa: PLW0603
    _default_client = client
