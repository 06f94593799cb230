"""
配置管理模块

提供服务配置的加载、校验、热重载和变更通知功能。
"""

from .errors import (
    ConfigError,
    ConnectionCheckError,
    InvalidPortError,
    LoadError,
    MalformedValueError,
    NotLoadedError,
    SourceUnavailableError,
    ValidationError,
)
from .loader import ConfigLoader
from .manager import ConfigManager, ConfigWatcher
from .models import (
    AppConfig,
    Config,
    DatabaseConfig,
    DatabaseConfigType,
    DatabaseEndpoint,
    EmailConfig,
    JWTConfig,
    LoadStrategy,
    LogConfig,
    RedisConfig,
    ServerConfig,
)
from .validator import ConfigValidator

__all__ = [
    'ConfigManager', 'ConfigWatcher', 'ConfigLoader', 'ConfigValidator',
    'Config', 'ServerConfig', 'DatabaseConfig', 'DatabaseEndpoint', 'RedisConfig',
    'LogConfig', 'JWTConfig', 'EmailConfig', 'AppConfig',
    'LoadStrategy', 'DatabaseConfigType',
    'ConfigError', 'LoadError', 'SourceUnavailableError', 'MalformedValueError',
    'ValidationError', 'NotLoadedError', 'ConnectionCheckError', 'InvalidPortError',
]
