"""
日志配置

根据 LogConfig 配置 loguru 的输出目标。库本身不主动调用，由应用在加载配置后调用。
"""

import sys
from pathlib import Path
from typing import Dict

from loguru import logger

from .models import LogConfig


# 配置中的级别名 -> loguru 级别名
_LEVEL_ALIASES: Dict[str, str] = {
    "debug": "DEBUG",
    "info": "INFO",
    "warn": "WARNING",
    "warning": "WARNING",
    "error": "ERROR",
    "fatal": "CRITICAL",
    "panic": "CRITICAL",
}

_TEXT_FORMAT = (
    "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | "
    "{name}:{function}:{line} - {message}"
)

_CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
    "<level>{message}</level>"
)


def resolve_level(level: str) -> str:
    """将配置中的日志级别转换为 loguru 级别，未知级别按 INFO 处理"""
    return _LEVEL_ALIASES.get(level.strip().lower(), "INFO")


def configure_logging(log_config: LogConfig) -> None:
    """
    按日志配置重新设置 loguru 输出

    - format=json: 结构化 JSON 输出
    - format=console: 彩色控制台输出
    - format=text: 纯文本输出
    - output_path 非空时额外写入文件（按 10 MB 轮转）
    """
    level = resolve_level(log_config.level)
    fmt = log_config.format.strip().lower()
    serialize = fmt == "json"
    pattern = _CONSOLE_FORMAT if fmt == "console" else _TEXT_FORMAT

    logger.remove()
    logger.add(sys.stderr, level=level, format=pattern,
               serialize=serialize, colorize=fmt == "console")

    if log_config.output_path:
        Path(log_config.output_path).parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_config.output_path,
            level=level,
            format=_TEXT_FORMAT,
            serialize=serialize,
            rotation="10 MB",
            retention="30 days",
            encoding="utf-8"
        )

    logger.debug(f"日志配置完成: level={level}, format={fmt or 'text'}")
