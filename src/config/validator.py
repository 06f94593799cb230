"""
配置校验器

对完整配置记录执行所有分区的校验规则，收集全部违规信息后统一报告，
不会因为某一条规则失败而跳过其余规则。

另外提供两个独立的诊断工具（不参与 validate）：
- validate_connection: TCP 连通性探测
- validate_port: 端口范围检查
"""

import re
import socket
from typing import List

from loguru import logger

from .errors import ConnectionCheckError, InvalidPortError, ValidationError
from .models import (
    AppConfig,
    Config,
    DatabaseConfig,
    EmailConfig,
    JWTConfig,
    LogConfig,
    RedisConfig,
    ServerConfig,
)


VALID_SSL_MODES = ["disable", "require", "verify-ca", "verify-full"]
VALID_LOG_LEVELS = ["debug", "info", "warn", "warning", "error", "fatal", "panic"]
VALID_LOG_FORMATS = ["json", "text", "console"]
VALID_ENVIRONMENTS = ["development", "staging", "production", "test"]

MIN_JWT_SECRET_LENGTH = 32
MAX_REDIS_DB = 15
DEFAULT_CONNECT_TIMEOUT = 5.0


_STRICT_INT_PATTERN = re.compile(r"[+-]?[0-9]+")


def _is_int(value: str) -> bool:
    # 不允许首尾空白，" 8080" 不是合法整数
    return _STRICT_INT_PATTERN.fullmatch(str(value)) is not None


class ConfigValidator:
    """配置校验器（无状态，可在多线程间共享）"""

    def validate(self, config: Config) -> None:
        """
        校验完整配置

        Args:
            config: 配置记录

        Raises:
            ValidationError: 存在任意违规项，errors 按规则顺序列出全部违规信息
        """
        errors = self.collect_errors(config)
        if errors:
            raise ValidationError(errors)

    def collect_errors(self, config: Config) -> List[str]:
        """返回所有违规信息，配置有效时为空列表"""
        errors: List[str] = []
        self._validate_server(config.server, errors)
        self._validate_database(config.database, errors)
        self._validate_redis(config.redis, errors)
        self._validate_log(config.log, errors)
        self._validate_jwt(config.jwt, errors)
        self._validate_email(config.email, errors)
        self._validate_app(config.app, errors)
        return errors

    def _validate_server(self, config: ServerConfig, errors: List[str]) -> None:
        if not config.port:
            errors.append("server port is required")
        elif not _is_int(config.port):
            errors.append("server port must be a valid integer")

        if not config.host:
            errors.append("server host is required")

        if config.read_timeout.total_seconds() <= 0:
            errors.append("server read timeout must be positive")
        if config.write_timeout.total_seconds() <= 0:
            errors.append("server write timeout must be positive")
        if config.idle_timeout.total_seconds() <= 0:
            errors.append("server idle timeout must be positive")

    def _validate_database(self, config: DatabaseConfig, errors: List[str]) -> None:
        if not config.host:
            errors.append("database host is required")

        if not config.port:
            errors.append("database port is required")
        elif not _is_int(config.port):
            errors.append("database port must be a valid integer")

        if not config.user:
            errors.append("database user is required")

        if not config.dbname:
            errors.append("database name is required")

        if config.max_conns <= 0:
            errors.append("database max connections must be positive")

        if config.sslmode not in VALID_SSL_MODES:
            errors.append(f"database SSL mode must be one of: {', '.join(VALID_SSL_MODES)}")

    def _validate_redis(self, config: RedisConfig, errors: List[str]) -> None:
        if not config.host:
            errors.append("redis host is required")

        if not config.port:
            errors.append("redis port is required")
        elif not _is_int(config.port):
            errors.append("redis port must be a valid integer")

        if config.db < 0 or config.db > MAX_REDIS_DB:
            errors.append(f"redis database number must be between 0 and {MAX_REDIS_DB}")

    def _validate_log(self, config: LogConfig, errors: List[str]) -> None:
        if config.level.lower() not in VALID_LOG_LEVELS:
            errors.append(f"log level must be one of: {', '.join(VALID_LOG_LEVELS)}")

        if config.format.lower() not in VALID_LOG_FORMATS:
            errors.append(f"log format must be one of: {', '.join(VALID_LOG_FORMATS)}")

    def _validate_jwt(self, config: JWTConfig, errors: List[str]) -> None:
        if not config.secret:
            errors.append("JWT secret is required")
        elif len(config.secret) < MIN_JWT_SECRET_LENGTH:
            errors.append(f"JWT secret must be at least {MIN_JWT_SECRET_LENGTH} characters long")

        if config.expiration.total_seconds() <= 0:
            errors.append("JWT expiration must be positive")

        if not config.issuer:
            errors.append("JWT issuer is required")

    def _validate_email(self, config: EmailConfig, errors: List[str]) -> None:
        # 未配置邮件服务器时跳过
        if not config.host:
            return

        if config.port <= 0 or config.port > 65535:
            errors.append("email port must be between 1 and 65535")

        if not config.username:
            errors.append("email username is required when email host is provided")

        if not config.from_address:
            errors.append("email from address is required when email host is provided")

    def _validate_app(self, config: AppConfig, errors: List[str]) -> None:
        if not config.name:
            errors.append("application name is required")

        if config.environment.lower() not in VALID_ENVIRONMENTS:
            errors.append(f"application environment must be one of: {', '.join(VALID_ENVIRONMENTS)}")

        if not config.version:
            errors.append("application version is required")

    def validate_connection(self, host: str, port: str,
                            timeout: float = DEFAULT_CONNECT_TIMEOUT) -> None:
        """
        检查 host:port 是否可以建立 TCP 连接

        Raises:
            ConnectionCheckError: 无法在超时时间内建立连接
        """
        address = f"[{host}]:{port}" if ":" in host else f"{host}:{port}"
        try:
            conn = socket.create_connection((host, int(port)), timeout=timeout)
        except (OSError, ValueError) as e:
            logger.warning(f"连通性检查失败: {address} - {e}")
            raise ConnectionCheckError(f"cannot connect to {address}: {e}") from e
        conn.close()
        logger.debug(f"连通性检查通过: {address}")

    def validate_port(self, port: str) -> None:
        """
        检查端口号是否为 1-65535 之间的整数

        Raises:
            InvalidPortError: 端口号非法
        """
        if not _is_int(port):
            raise InvalidPortError(f"invalid port number: {port}")

        port_num = int(port)
        if port_num < 1 or port_num > 65535:
            raise InvalidPortError("port number must be between 1 and 65535")
