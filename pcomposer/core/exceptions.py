"""统一异常体系

所有业务异常继承 PComposerError，替代散落的 ValueError / RuntimeError。
CLI 层据此输出 "[code] message" 并以非零状态退出，核心层不做任何自动重试。
"""

from __future__ import annotations


class PComposerError(Exception):
    """框架基础异常"""

    code: str = "UNKNOWN"

    def __init__(self, message: str) -> None:
        super().__init__(message)


class ConfigError(PComposerError):
    """配置文件缺失或内容无效"""

    code = "CONFIG_ERROR"


class ValidationError(PComposerError):
    """输入数据校验失败"""

    code = "VALIDATION_ERROR"

    def __init__(self, message: str, details: list[str] | None = None) -> None:
        super().__init__(message)
        self.details = details or []


class ManifestMissingError(PComposerError):
    """项目根目录下没有清单文件"""

    code = "MANIFEST_MISSING"


class CorruptManifestError(PComposerError):
    """清单文件 JSON 格式错误"""

    code = "CORRUPT_MANIFEST"


class CorruptLockFileError(PComposerError):
    """锁文件 JSON 格式错误（绝不静默重置）"""

    code = "CORRUPT_LOCKFILE"


class RegistryError(PComposerError):
    """远程注册表元数据获取或解析失败"""

    code = "REGISTRY_ERROR"


class ArchiveError(PComposerError):
    """制品下载、校验或解压失败"""

    code = "ARCHIVE_ERROR"


class NoCompatibleVersionError(PComposerError):
    """版本约束无法匹配任何可用版本"""

    code = "NO_COMPATIBLE_VERSION"


class PackageNotFoundError(PComposerError):
    """全局存储中没有该包的记录"""

    code = "PACKAGE_NOT_FOUND"


class PackagePathMissingError(PComposerError):
    """存储记录存在，但包目录已从磁盘上消失"""

    code = "PACKAGE_PATH_MISSING"


class StoreIOError(PComposerError):
    """全局存储读写失败（权限不足、磁盘已满等）"""

    code = "STORE_IO_ERROR"


class LinkCreationError(PComposerError):
    """符号链接创建失败"""

    code = "LINK_CREATION_ERROR"
