"""
Config manager example runner

Run with:
    python -m src.config.runner

Set CONFIG_PATH to point at a YAML file to exercise the hybrid strategy;
otherwise configuration is read from the process environment.
"""

from __future__ import annotations

import os
import sys

from loguru import logger

from .errors import ConfigError, ValidationError
from .log_setup import configure_logging
from .manager import ConfigManager
from .models import Config, LoadStrategy


class LoggingWatcher:
    """Logs the fields that changed between two configuration records."""

    def on_config_changed(self, old_config: Config, new_config: Config) -> None:
        old, new = old_config.to_dict(mask_secrets=True), new_config.to_dict(mask_secrets=True)
        for section, values in new.items():
            for key, value in values.items():
                if old[section][key] != value:
                    logger.info(f"Config changed: {section}.{key} {old[section][key]!r} -> {value!r}")


def main():
    # 1) Load configuration (file first, environment as fallback)
    manager = ConfigManager()
    manager.add_watcher(LoggingWatcher())

    try:
        manager.load(LoadStrategy.HYBRID)
    except ValidationError as e:
        for message in e.errors:
            logger.error(f"  - {message}")
        sys.exit(1)
    except ConfigError as e:
        logger.error(f"Failed to load configuration: {e}")
        sys.exit(1)

    # 2) Apply logging settings from the loaded configuration
    configure_logging(manager.get_log_config())
    logger.info(f"Loaded configuration: {manager}")

    # 3) Helper accessors
    logger.info(f"Server address: {manager.get_server_addr()}")
    logger.info(f"Redis address: {manager.get_redis_addr()}")
    logger.info(f"Database write DSN host: {manager.get_database_config().write_endpoint().host}")
    logger.info(f"Development={manager.is_development()} Production={manager.is_production()} "
                f"Debug={manager.is_debug()}")

    # 4) Reload with a changed server port to trigger the watcher
    os.environ["SERVER_PORT"] = str(int(manager.get_server_config().port or "8080") + 1)
    try:
        manager.reload()
    except ConfigError as e:
        logger.warning(f"Reload failed, keeping previous configuration: {e}")

    logger.info(f"Server address after reload: {manager.get_server_addr()}")


if __name__ == "__main__":
    main()
