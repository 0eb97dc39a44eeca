"""远程注册表客户端

职责:
- 按包名获取全部版本的元数据: GET <registry_url>/<name>.json
- 提供版本列表、dist 下载地址、每个版本声明的 require

兼容两种响应结构:
  {"package": {"versions": {"1.0.0": {...}}}}   (Packagist)
  {"versions": {"1.0.0": {...}}}

同一客户端实例内每个包名只请求一次；失败不重试，统一抛 RegistryError。
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any

from pcomposer.core.exceptions import RegistryError, ValidationError
from pcomposer.utils.net import HttpClient, get_http_client, validate_url_scheme

logger = logging.getLogger(__name__)

DEFAULT_REGISTRY_URL = "https://packagist.org/packages"

_NAME_RE = re.compile(
    r"^[a-z0-9]([_.-]?[a-z0-9]+)*/[a-z0-9](([_.]|-{1,2})?[a-z0-9]+)*$"
)


def validate_package_name(name: str) -> None:
    if not _NAME_RE.match(name):
        raise ValidationError(f"无效的包名 '{name}'，应为 vendor/package 格式")


class RegistryClient:
    """远程注册表客户端"""

    def __init__(
        self,
        base_url: str = DEFAULT_REGISTRY_URL,
        *,
        timeout: int = 30,
        http_client: HttpClient | None = None,
    ) -> None:
        validate_url_scheme(base_url, context="registry_url")
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.http = http_client or get_http_client()
        self._cache: dict[str, dict[str, dict[str, Any]]] = {}

    def package_url(self, name: str) -> str:
        return f"{self.base_url}/{name}.json"

    def get_package_metadata(self, name: str) -> dict[str, dict[str, Any]]:
        """返回 {version: version_metadata}，结果按包名缓存"""
        if name in self._cache:
            return self._cache[name]

        validate_package_name(name)
        url = self.package_url(name)
        logger.info("查询注册表: %s", url)
        try:
            body = self.http.get(url, timeout=self.timeout)
        except ConnectionError as e:
            raise RegistryError(f"获取包信息失败 {name}: {e}") from e

        try:
            data = json.loads(body)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise RegistryError(f"注册表响应不是合法 JSON {name}: {e}") from e

        versions = self._extract_versions(data)
        if versions is None:
            raise RegistryError(f"注册表响应缺少 versions 字段: {name}")

        self._cache[name] = versions
        return versions

    @staticmethod
    def _extract_versions(data: Any) -> dict[str, dict[str, Any]] | None:
        if not isinstance(data, dict):
            return None
        package = data.get("package")
        versions = package.get("versions") if isinstance(package, dict) else None
        if versions is None:
            versions = data.get("versions")
        if not isinstance(versions, dict):
            return None
        return {
            str(ver): (meta if isinstance(meta, dict) else {})
            for ver, meta in versions.items()
        }

    def get_versions(self, name: str) -> list[str]:
        return list(self.get_package_metadata(name))

    def _version_meta(self, name: str, version: str) -> dict[str, Any]:
        versions = self.get_package_metadata(name)
        if version not in versions:
            raise RegistryError(f"注册表中不存在版本 {name}@{version}")
        return versions[version]

    def get_dist(self, name: str, version: str) -> dict[str, Any]:
        dist = self._version_meta(name, version).get("dist")
        if not isinstance(dist, dict) or not dist.get("url"):
            raise RegistryError(f"无法获取下载地址: {name}@{version}")
        return dist

    def get_dist_url(self, name: str, version: str) -> str:
        return str(self.get_dist(name, version)["url"])

    def get_requirements(self, name: str, version: str) -> dict[str, str]:
        require = self._version_meta(name, version).get("require") or {}
        if not isinstance(require, dict):
            return {}
        return {str(k): str(v) for k, v in require.items()}
