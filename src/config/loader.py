"""
配置加载器

根据加载策略从环境变量或 YAML 配置文件构造完整的配置记录：
- ENVIRONMENT: 读取环境变量，缺失或格式错误的值回退到默认值，永不失败
- FILE: 读取 CONFIG_PATH 指定的配置文件（默认 config.yaml），失败时抛出 LoadError
- HYBRID: 优先读取配置文件，任何失败都静默回退到环境变量
"""

import math
import os
from dataclasses import fields
from datetime import timedelta
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml
from loguru import logger

from .env import (
    get_bool_env,
    get_duration_env,
    get_env,
    get_int_env,
    parse_bool,
    parse_duration,
    parse_int,
)
from .errors import MalformedValueError, SourceUnavailableError
from .models import (
    AppConfig,
    Config,
    DatabaseConfig,
    EmailConfig,
    JWTConfig,
    LoadStrategy,
    LogConfig,
    RedisConfig,
    ServerConfig,
    field_key,
    parse_strategy,
)


CONFIG_PATH_ENV = "CONFIG_PATH"
DEFAULT_CONFIG_FILE = "config.yaml"


class ConfigLoader:
    """配置加载器"""

    def __init__(self, environ: Optional[Mapping[str, str]] = None,
                 config_path: Optional[str] = None):
        """
        初始化配置加载器

        Args:
            environ: 环境变量映射，默认使用 os.environ
            config_path: 固定的配置文件路径，设置后忽略 CONFIG_PATH
        """
        self.environ = os.environ if environ is None else environ
        self.config_path = config_path

    def resolve_config_path(self) -> Path:
        """确定配置文件路径"""
        if self.config_path:
            return Path(self.config_path)
        return Path(self._env(CONFIG_PATH_ENV, DEFAULT_CONFIG_FILE))

    def load(self, strategy: Any) -> Config:
        """
        按策略加载配置

        Args:
            strategy: LoadStrategy 或其字符串值；无法识别时按 ENVIRONMENT 处理

        Returns:
            完整的配置记录

        Raises:
            LoadError: FILE 策略下配置文件缺失或格式错误
        """
        resolved = parse_strategy(strategy)

        if resolved is LoadStrategy.FILE:
            return self.load_from_file(self.resolve_config_path())

        if resolved is LoadStrategy.HYBRID:
            config_path = self.resolve_config_path()
            try:
                return self.load_from_file(config_path)
            except Exception as e:
                # 任何失败都回退到环境变量
                logger.warning(f"配置文件加载失败，回退到环境变量: {e}")
            return self.load_from_environment()

        if resolved is None:
            logger.debug(f"未知的加载策略 {strategy!r}，使用环境变量")
        return self.load_from_environment()

    def load_from_file(self, config_path) -> Config:
        """
        从 YAML 配置文件加载配置

        Raises:
            SourceUnavailableError: 文件不存在或无法读取
            MalformedValueError: YAML 格式错误或字段类型不匹配
        """
        path = Path(config_path)
        if not path.is_file():
            raise SourceUnavailableError(f"配置文件不存在: {path}", path=str(path))

        try:
            with open(path, 'r', encoding='utf-8') as f:
                raw = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise MalformedValueError(f"配置文件解析失败: {path} - {e}") from e
        except (OSError, UnicodeDecodeError) as e:
            raise SourceUnavailableError(f"无法读取配置文件: {path} - {e}", path=str(path)) from e

        if raw is None:
            raw = {}
        if not isinstance(raw, dict):
            raise MalformedValueError(f"配置文件顶层必须是映射: {path}")

        config = Config(
            server=_bind_section(ServerConfig, raw, 'server', self.environ),
            database=_bind_section(DatabaseConfig, raw, 'database', self.environ),
            redis=_bind_section(RedisConfig, raw, 'redis', self.environ),
            log=_bind_section(LogConfig, raw, 'log', self.environ),
            jwt=_bind_section(JWTConfig, raw, 'jwt', self.environ),
            email=_bind_section(EmailConfig, raw, 'email', self.environ),
            app=_bind_section(AppConfig, raw, 'app', self.environ),
        )
        logger.info(f"配置文件加载成功: {path}")
        return config

    def load_from_environment(self) -> Config:
        """从环境变量加载配置，所有缺失项使用默认值"""
        config = Config(
            server=ServerConfig(
                port=self._env("SERVER_PORT", "8080"),
                host=self._env("SERVER_HOST", "0.0.0.0"),
                read_timeout=self._duration("SERVER_READ_TIMEOUT", timedelta(seconds=30)),
                write_timeout=self._duration("SERVER_WRITE_TIMEOUT", timedelta(seconds=30)),
                idle_timeout=self._duration("SERVER_IDLE_TIMEOUT", timedelta(seconds=60)),
            ),
            database=DatabaseConfig(
                write_host=self._env("DB_WRITE_HOST", ""),
                write_port=self._env("DB_WRITE_PORT", ""),
                write_user=self._env("DB_WRITE_USER", ""),
                write_password=self._env("DB_WRITE_PASSWORD", ""),
                write_dbname=self._env("DB_WRITE_NAME", ""),
                read_host=self._env("DB_READ_HOST", ""),
                read_port=self._env("DB_READ_PORT", ""),
                read_user=self._env("DB_READ_USER", ""),
                read_password=self._env("DB_READ_PASSWORD", ""),
                read_dbname=self._env("DB_READ_NAME", ""),
                host=self._env("DB_HOST", "localhost"),
                port=self._env("DB_PORT", "5432"),
                user=self._env("DB_USER", "postgres"),
                password=self._env("DB_PASSWORD", ""),
                dbname=self._env("DB_NAME", "app"),
                sslmode=self._env("DB_SSL_MODE", "disable"),
                max_conns=self._int("DB_MAX_CONNS", 10),
                type=self._env("DB_TYPE", "postgres"),
                environment=self._env("DB_ENVIRONMENT", ""),
                config_type=self._env("DATABASE_CONFIG_TYPE", "legacy"),
            ),
            redis=RedisConfig(
                host=self._env("REDIS_HOST", "localhost"),
                port=self._env("REDIS_PORT", "6379"),
                password=self._env("REDIS_PASSWORD", ""),
                db=self._int("REDIS_DB", 0),
            ),
            log=LogConfig(
                level=self._env("LOG_LEVEL", "info"),
                format=self._env("LOG_FORMAT", "json"),
                output_path=self._env("LOG_OUTPUT_PATH", ""),
            ),
            jwt=JWTConfig(
                secret=self._env("JWT_SECRET", "your-secret-key"),
                expiration=self._duration("JWT_EXPIRATION", timedelta(hours=24)),
                issuer=self._env("JWT_ISSUER", "app"),
            ),
            email=EmailConfig(
                host=self._env("EMAIL_HOST", ""),
                port=self._int("EMAIL_PORT", 587),
                username=self._env("EMAIL_USERNAME", ""),
                password=self._env("EMAIL_PASSWORD", ""),
                from_address=self._env("EMAIL_FROM", ""),
            ),
            app=AppConfig(
                name=self._env("APP_NAME", "app"),
                environment=self._env("APP_ENVIRONMENT", "development"),
                version=self._env("APP_VERSION", "1.0.0"),
                debug=self._bool("APP_DEBUG", False),
            ),
        )
        logger.info("环境变量配置加载成功")
        return config

    def _env(self, key: str, default: str) -> str:
        return get_env(key, default, self.environ)

    def _int(self, key: str, default: int) -> int:
        return get_int_env(key, default, self.environ)

    def _bool(self, key: str, default: bool) -> bool:
        return get_bool_env(key, default, self.environ)

    def _duration(self, key: str, default: timedelta) -> timedelta:
        return get_duration_env(key, default, self.environ)


def _bind_section(section_cls, raw: Dict[str, Any], name: str,
                  environ: Mapping[str, str]):
    """
    将配置文件中的一个分区绑定到对应的数据类

    文件中出现的键可以被同名环境变量覆盖，例如 SERVER_PORT 覆盖 server.port。
    文件中没有的键不读取环境变量。
    """
    data = raw.get(name)
    if data is None:
        return section_cls()
    if not isinstance(data, dict):
        raise MalformedValueError(f"配置分区 {name} 必须是映射", key=name)

    values = {}
    for f in fields(section_cls):
        key = field_key(f)
        if key not in data:
            continue
        full_key = f"{name}.{key}"
        env_key = f"{name}_{key}".upper()

        env_value = environ.get(env_key)
        if env_value:
            try:
                values[f.name] = _coerce(env_value, f.type)
            except (TypeError, ValueError) as e:
                raise MalformedValueError(
                    f"环境变量 {env_key} 无法覆盖配置项 {full_key}: {e}", key=full_key
                ) from e
            continue

        if data[key] is None:
            continue
        try:
            values[f.name] = _coerce(data[key], f.type)
        except (TypeError, ValueError) as e:
            raise MalformedValueError(f"配置项 {full_key} 类型错误: {e}", key=full_key) from e
    return section_cls(**values)


def _coerce(value: Any, target: type) -> Any:
    """宽松类型转换，与配置文件的常见写法兼容"""
    if target is str:
        if isinstance(value, (dict, list)):
            raise TypeError(f"expected a scalar, got {type(value).__name__}")
        if isinstance(value, bool):
            return "true" if value else "false"
        return str(value)

    if target is int:
        if isinstance(value, bool):
            raise TypeError("expected an integer, got a boolean")
        if isinstance(value, int):
            return value
        if isinstance(value, float) and value.is_integer():
            return int(value)
        if isinstance(value, str):
            return parse_int(value)
        raise TypeError(f"expected an integer, got {type(value).__name__}")

    if target is bool:
        if isinstance(value, bool):
            return value
        if isinstance(value, (str, int)):
            return parse_bool(str(value))
        raise TypeError(f"expected a boolean, got {type(value).__name__}")

    if target is timedelta:
        if isinstance(value, bool):
            raise TypeError("expected a duration, got a boolean")
        if isinstance(value, (int, float)):
            # 纯数字按秒计算（不是纳秒）
            try:
                if isinstance(value, float) and not math.isfinite(value):
                    raise ValueError(f"duration must be finite, got {value}")
                return timedelta(seconds=value)
            except OverflowError:
                raise ValueError(f"duration out of range: {value}") from None
        if isinstance(value, str):
            return parse_duration(value)
        raise TypeError(f"expected a duration, got {type(value).__name__}")

    raise TypeError(f"unsupported field type: {target!r}")
