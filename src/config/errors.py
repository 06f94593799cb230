"""
配置异常定义

所有配置相关的异常都继承自 ConfigError，调用方可按需捕获：
- LoadError: 配置源读取失败（文件缺失、格式错误等）
- ValidationError: 配置校验失败，汇总全部违规信息
- NotLoadedError: 尚未加载任何配置
"""

from typing import List, Optional


class ConfigError(Exception):
    """配置异常基类"""


class LoadError(ConfigError):
    """配置加载失败"""


class SourceUnavailableError(LoadError):
    """配置源不可用（文件不存在或无法读取）"""

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.path = path


class MalformedValueError(LoadError):
    """配置内容无法解析或类型绑定失败"""

    def __init__(self, message: str, key: Optional[str] = None):
        super().__init__(message)
        self.key = key


class ValidationError(ConfigError):
    """配置校验失败，errors 中包含所有违反的规则"""

    def __init__(self, errors: List[str]):
        self.errors = list(errors)
        super().__init__(f"configuration validation failed: {'; '.join(self.errors)}")


class NotLoadedError(ConfigError):
    """尚未加载配置"""

    def __init__(self, message: str = "no configuration loaded"):
        super().__init__(message)


class ConnectionCheckError(ConfigError):
    """连通性检查失败"""


class InvalidPortError(ConfigError, ValueError):
    """端口号非法"""
