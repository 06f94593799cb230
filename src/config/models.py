"""
配置数据模型

定义服务配置的各个分区（Server、Database、Redis、Log、JWT、Email、App）。
所有分区都是不可变的数据类，每个字段都有零值默认值，
因此未加载配置时可以直接返回零值分区。
"""

from dataclasses import dataclass, field, fields
from datetime import timedelta
from enum import Enum
from typing import Any, Dict, Optional

from .env import format_duration


MASKED_VALUE = "******"


class LoadStrategy(Enum):
    """配置加载策略枚举"""
    ENVIRONMENT = "environment"
    FILE = "file"
    HYBRID = "hybrid"


class DatabaseConfigType(Enum):
    """数据库配置模式枚举"""
    LEGACY = "legacy"
    READ_WRITE = "read_write"
    AUTO_DETECT = "auto_detect"


@dataclass(frozen=True)
class ServerConfig:
    """服务器配置"""
    port: str = ""
    host: str = ""
    read_timeout: timedelta = timedelta(0)
    write_timeout: timedelta = timedelta(0)
    idle_timeout: timedelta = timedelta(0)


@dataclass(frozen=True)
class DatabaseEndpoint:
    """单个数据库连接端点"""
    host: str = ""
    port: str = ""
    user: str = ""
    password: str = ""
    dbname: str = ""


@dataclass(frozen=True)
class DatabaseConfig:
    """
    数据库配置

    同时保存两套连接参数：
    - 读写分离模式 (config_type=read_write)：write_* / read_* 字段
    - 传统单端点模式 (config_type=legacy)：host/port/user/password/dbname
    config_type 决定其余代码应当依赖哪一套字段。
    """
    # 读写分离配置
    write_host: str = ""
    write_port: str = ""
    write_user: str = ""
    write_password: str = ""
    write_dbname: str = ""

    read_host: str = ""
    read_port: str = ""
    read_user: str = ""
    read_password: str = ""
    read_dbname: str = ""

    # 传统配置
    host: str = ""
    port: str = ""
    user: str = ""
    password: str = ""
    dbname: str = ""

    sslmode: str = ""
    max_conns: int = 0
    type: str = ""
    environment: str = ""
    config_type: str = ""

    def resolve_config_type(self) -> DatabaseConfigType:
        """返回实际生效的数据库配置模式"""
        try:
            config_type = DatabaseConfigType(self.config_type.strip().lower())
        except ValueError:
            return DatabaseConfigType.LEGACY

        if config_type is DatabaseConfigType.AUTO_DETECT:
            if self.write_host:
                return DatabaseConfigType.READ_WRITE
            return DatabaseConfigType.LEGACY
        return config_type

    def legacy_endpoint(self) -> DatabaseEndpoint:
        return DatabaseEndpoint(
            host=self.host,
            port=self.port,
            user=self.user,
            password=self.password,
            dbname=self.dbname,
        )

    def write_endpoint(self) -> DatabaseEndpoint:
        """写库端点；传统模式下即为唯一端点"""
        if self.resolve_config_type() is DatabaseConfigType.LEGACY:
            return self.legacy_endpoint()
        return DatabaseEndpoint(
            host=self.write_host,
            port=self.write_port,
            user=self.write_user,
            password=self.write_password,
            dbname=self.write_dbname,
        )

    def read_endpoint(self) -> DatabaseEndpoint:
        """读库端点；未配置读库时回退到写库"""
        if self.resolve_config_type() is DatabaseConfigType.LEGACY:
            return self.legacy_endpoint()
        if not self.read_host:
            return self.write_endpoint()
        return DatabaseEndpoint(
            host=self.read_host,
            port=self.read_port,
            user=self.read_user,
            password=self.read_password,
            dbname=self.read_dbname,
        )


@dataclass(frozen=True)
class RedisConfig:
    """Redis 配置"""
    host: str = ""
    port: str = ""
    password: str = ""
    db: int = 0


@dataclass(frozen=True)
class LogConfig:
    """日志配置"""
    level: str = ""
    format: str = ""
    output_path: str = ""


@dataclass(frozen=True)
class JWTConfig:
    """JWT 配置"""
    secret: str = ""
    expiration: timedelta = timedelta(0)
    issuer: str = ""


@dataclass(frozen=True)
class EmailConfig:
    """邮件配置"""
    host: str = ""
    port: int = 0
    username: str = ""
    password: str = ""
    from_address: str = field(default="", metadata={"key": "from"})


@dataclass(frozen=True)
class AppConfig:
    """应用配置"""
    name: str = ""
    environment: str = ""
    version: str = ""
    debug: bool = False


# 需要脱敏的字段：(分区, 字段名)
_SECRET_FIELDS = {
    ("database", "password"),
    ("database", "write_password"),
    ("database", "read_password"),
    ("redis", "password"),
    ("jwt", "secret"),
    ("email", "password"),
}


def field_key(f) -> str:
    """数据类字段对应的配置键名"""
    return f.metadata.get("key", f.name)


@dataclass(frozen=True)
class Config:
    """完整配置记录，由加载器一次性构造，之后不再修改"""
    server: ServerConfig = field(default_factory=ServerConfig)
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    redis: RedisConfig = field(default_factory=RedisConfig)
    log: LogConfig = field(default_factory=LogConfig)
    jwt: JWTConfig = field(default_factory=JWTConfig)
    email: EmailConfig = field(default_factory=EmailConfig)
    app: AppConfig = field(default_factory=AppConfig)

    def to_dict(self, mask_secrets: bool = False) -> Dict[str, Dict[str, Any]]:
        """
        转换为与配置文件结构一致的嵌套字典

        Args:
            mask_secrets: 是否对密码、密钥等敏感字段脱敏
        """
        result: Dict[str, Dict[str, Any]] = {}
        for section_field in fields(self):
            section = getattr(self, section_field.name)
            values: Dict[str, Any] = {}
            for f in fields(section):
                value = getattr(section, f.name)
                if isinstance(value, timedelta):
                    value = format_duration(value)
                if mask_secrets and value and (section_field.name, f.name) in _SECRET_FIELDS:
                    value = MASKED_VALUE
                values[field_key(f)] = value
            result[section_field.name] = values
        return result


def parse_strategy(strategy: Any) -> Optional[LoadStrategy]:
    """将字符串或枚举转换为 LoadStrategy，无法识别时返回 None"""
    if isinstance(strategy, LoadStrategy):
        return strategy
    if isinstance(strategy, str):
        try:
            return LoadStrategy(strategy.strip().lower())
        except ValueError:
            return None
    return None
