"""
服务配置管理器

负责配置的加载、校验、发布和变更通知：
- 通过 ConfigLoader 按策略读取配置，通过 ConfigValidator 统一校验
- 校验通过后原子替换当前配置，失败时保留原有配置不变
- 读操作共享读锁，写操作（替换配置、增删监听器）独占写锁
- 配置被替换后异步通知所有监听器，单个监听器阻塞或异常不影响其他监听器
"""

import threading
from typing import Any, Callable, Dict, List, Optional, Protocol, Union

from loguru import logger

from .errors import LoadError, NotLoadedError, ValidationError
from .loader import ConfigLoader
from .models import (
    AppConfig,
    Config,
    DatabaseConfig,
    DatabaseEndpoint,
    EmailConfig,
    JWTConfig,
    LoadStrategy,
    LogConfig,
    RedisConfig,
    ServerConfig,
)
from .rwlock import ReadWriteLock
from .validator import ConfigValidator


class ConfigWatcher(Protocol):
    """配置变更监听器接口"""

    def on_config_changed(self, old_config: Config, new_config: Config) -> None:
        ...


Watcher = Union[ConfigWatcher, Callable[[Config, Config], None]]


def _join_host_port(host: str, port: str) -> str:
    if ":" in host:
        return f"[{host}]:{port}"
    return f"{host}:{port}"


def _format_dsn(endpoint: DatabaseEndpoint, sslmode: str) -> str:
    return (f"host={endpoint.host} port={endpoint.port} user={endpoint.user} "
            f"password={endpoint.password} dbname={endpoint.dbname} sslmode={sslmode}")


class ConfigManager:
    """服务配置管理器"""

    def __init__(self, loader: Optional[ConfigLoader] = None,
                 validator: Optional[ConfigValidator] = None):
        """
        初始化配置管理器

        Args:
            loader: 配置加载器，默认读取进程环境变量
            validator: 配置校验器
        """
        self.loader = loader or ConfigLoader()
        self.validator = validator or ConfigValidator()

        self._config: Optional[Config] = None
        self._watchers: List[Watcher] = []
        self._lock = ReadWriteLock()

    def load(self, strategy: Union[LoadStrategy, str] = LoadStrategy.ENVIRONMENT) -> None:
        """
        按策略加载并校验配置

        加载和校验都在锁外完成，只有替换配置引用时才持有写锁。
        任一步骤失败时当前配置保持不变。

        Args:
            strategy: 加载策略

        Raises:
            LoadError: 配置源读取失败
            ValidationError: 配置校验失败
        """
        try:
            config = self.loader.load(strategy)
        except LoadError as e:
            logger.error(f"配置加载失败: {e}")
            raise

        try:
            self.validator.validate(config)
        except ValidationError as e:
            logger.error(f"配置校验失败: {e}")
            raise

        with self._lock.write_locked():
            old_config = self._config
            self._config = config
            watchers = list(self._watchers)

        logger.info(f"配置已更新: {config.app.name} ({config.app.environment})")

        # 首次加载不触发通知
        if old_config is not None:
            self._notify_watchers(watchers, old_config, config)

    def reload(self) -> None:
        """
        重新加载配置

        当前环境为 production 时从配置文件加载，否则从环境变量加载。
        """
        with self._lock.read_locked():
            config = self._config

        strategy = LoadStrategy.ENVIRONMENT
        if config is not None and config.app.environment == "production":
            strategy = LoadStrategy.FILE

        logger.info(f"重新加载配置 (策略: {strategy.value})...")
        self.load(strategy)

    def is_loaded(self) -> bool:
        """是否已成功加载过配置"""
        with self._lock.read_locked():
            return self._config is not None

    def validate_current(self) -> None:
        """
        校验当前配置

        Raises:
            NotLoadedError: 尚未加载配置
            ValidationError: 当前配置不满足校验规则
        """
        with self._lock.read_locked():
            config = self._config

        if config is None:
            raise NotLoadedError()

        self.validator.validate(config)

    # ------------------------------------------------------------------
    # 配置读取
    # ------------------------------------------------------------------

    def get_config(self) -> Optional[Config]:
        """获取当前完整配置，未加载时返回 None"""
        with self._lock.read_locked():
            return self._config

    def _snapshot(self) -> Config:
        """当前配置快照，未加载时返回零值配置"""
        with self._lock.read_locked():
            config = self._config
        return config if config is not None else Config()

    def get_server_config(self) -> ServerConfig:
        return self._snapshot().server

    def get_database_config(self) -> DatabaseConfig:
        return self._snapshot().database

    def get_redis_config(self) -> RedisConfig:
        return self._snapshot().redis

    def get_log_config(self) -> LogConfig:
        return self._snapshot().log

    def get_jwt_config(self) -> JWTConfig:
        return self._snapshot().jwt

    def get_email_config(self) -> EmailConfig:
        return self._snapshot().email

    def get_app_config(self) -> AppConfig:
        return self._snapshot().app

    # ------------------------------------------------------------------
    # 监听器
    # ------------------------------------------------------------------

    def add_watcher(self, watcher: Watcher) -> None:
        """注册配置变更监听器"""
        with self._lock.write_locked():
            self._watchers.append(watcher)

    def remove_watcher(self, watcher: Watcher) -> bool:
        """
        移除配置变更监听器（按对象身份匹配，只移除第一个）

        Returns:
            是否找到并移除
        """
        with self._lock.write_locked():
            for i, w in enumerate(self._watchers):
                if w is watcher:
                    del self._watchers[i]
                    return True
        return False

    def _notify_watchers(self, watchers: List[Watcher],
                         old_config: Config, new_config: Config) -> None:
        """为每个监听器启动独立线程，不等待其完成"""
        for watcher in watchers:
            thread = threading.Thread(
                target=self._run_watcher,
                args=(watcher, old_config, new_config),
                daemon=True,
            )
            thread.start()

    @staticmethod
    def _run_watcher(watcher: Watcher, old_config: Config, new_config: Config) -> None:
        try:
            if hasattr(watcher, "on_config_changed"):
                watcher.on_config_changed(old_config, new_config)
            else:
                watcher(old_config, new_config)
        except Exception:
            logger.exception(f"配置变更监听器执行失败: {watcher!r}")

    # ------------------------------------------------------------------
    # 派生信息
    # ------------------------------------------------------------------

    def get_database_dsn(self) -> str:
        """传统模式数据库连接串"""
        database = self.get_database_config()
        return _format_dsn(database.legacy_endpoint(), database.sslmode)

    def get_write_database_dsn(self) -> str:
        """写库连接串（按实际生效的数据库模式）"""
        database = self.get_database_config()
        return _format_dsn(database.write_endpoint(), database.sslmode)

    def get_read_database_dsn(self) -> str:
        """读库连接串（按实际生效的数据库模式）"""
        database = self.get_database_config()
        return _format_dsn(database.read_endpoint(), database.sslmode)

    def get_redis_addr(self) -> str:
        redis = self.get_redis_config()
        return _join_host_port(redis.host, redis.port)

    def get_server_addr(self) -> str:
        server = self.get_server_config()
        return _join_host_port(server.host, server.port)

    def is_development(self) -> bool:
        return self.get_app_config().environment == "development"

    def is_production(self) -> bool:
        return self.get_app_config().environment == "production"

    def is_debug(self) -> bool:
        return self.get_app_config().debug

    def get_config_summary(self) -> Dict[str, Any]:
        """获取配置摘要信息（敏感字段已脱敏）"""
        config = self.get_config()
        if config is None:
            return {'loaded': False, 'watchers': self._watcher_count()}

        database = config.database
        return {
            'loaded': True,
            'watchers': self._watcher_count(),
            'app': {
                'name': config.app.name,
                'version': config.app.version,
                'environment': config.app.environment,
                'debug': config.app.debug
            },
            'server': {
                'address': _join_host_port(config.server.host, config.server.port)
            },
            'database': {
                'mode': database.resolve_config_type().value,
                'write': _join_host_port(database.write_endpoint().host, database.write_endpoint().port),
                'read': _join_host_port(database.read_endpoint().host, database.read_endpoint().port),
                'sslmode': database.sslmode
            },
            'redis': {
                'address': _join_host_port(config.redis.host, config.redis.port),
                'db': config.redis.db
            },
            'email_enabled': bool(config.email.host),
            'config': config.to_dict(mask_secrets=True)
        }

    def _watcher_count(self) -> int:
        with self._lock.read_locked():
            return len(self._watchers)

    def __str__(self) -> str:
        """返回配置管理器的字符串表示"""
        summary = self.get_config_summary()
        if not summary['loaded']:
            return f"ConfigManager(loaded=False, watchers={summary['watchers']})"
        return (f"ConfigManager("
                f"app={summary['app']['name']}, "
                f"environment={summary['app']['environment']}, "
                f"database={summary['database']['mode']}, "
                f"watchers={summary['watchers']})")

    def __repr__(self) -> str:
        """返回配置管理器的详细表示"""
        return self.__str__()
