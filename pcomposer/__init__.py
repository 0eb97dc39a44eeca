"""pcomposer - 基于全局存储的 PHP 依赖包管理器"""

__version__ = "1.0.0"
