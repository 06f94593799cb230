"""
环境变量读取工具

提供带默认值的环境变量读取函数，以及整数、布尔值、时长的解析函数。
环境变量被视为“尽力而为”的覆盖项：值缺失、为空或格式错误时一律回退到默认值。
"""

import os
import re
from datetime import timedelta
from typing import Mapping, Optional

from loguru import logger


_INT_PATTERN = re.compile(r"^[+-]?\d+$")

_TRUE_VALUES = ("true", "1", "yes", "on")
_FALSE_VALUES = ("false", "0", "no", "off")

# 单位 -> 纳秒
_DURATION_UNITS = {
    "ns": 1,
    "us": 1_000,
    "µs": 1_000,
    "μs": 1_000,
    "ms": 1_000_000,
    "s": 1_000_000_000,
    "m": 60 * 1_000_000_000,
    "h": 3600 * 1_000_000_000,
}

_DURATION_PART = re.compile(r"(\d+\.?\d*|\.\d+)(ns|us|µs|μs|ms|s|m|h)")


def parse_int(text: str) -> int:
    """解析十进制整数，允许正负号"""
    value = str(text).strip()
    if not _INT_PATTERN.match(value):
        raise ValueError(f"invalid integer value: {text}")
    return int(value)


def parse_bool(text: str) -> bool:
    """解析布尔值 (true/1/yes/on, false/0/no/off)"""
    value = str(text).strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ValueError(f"invalid boolean value: {text}")


def parse_duration(text: str) -> timedelta:
    """
    解析时长字符串

    支持 "300ms"、"1.5h"、"2h45m" 这类写法，单位为 ns/us/µs/ms/s/m/h。
    单独的 "0" 表示零时长。

    Args:
        text: 时长字符串

    Returns:
        对应的 timedelta

    Raises:
        ValueError: 格式错误
    """
    value = str(text).strip()
    original = value

    sign = 1
    if value[:1] in ("+", "-"):
        if value[0] == "-":
            sign = -1
        value = value[1:]

    if value == "0":
        return timedelta(0)
    if not value:
        raise ValueError(f"invalid duration: {original!r}")

    total_ns = 0.0
    pos = 0
    while pos < len(value):
        match = _DURATION_PART.match(value, pos)
        if not match:
            raise ValueError(f"invalid duration: {original!r}")
        number, unit = match.groups()
        total_ns += float(number) * _DURATION_UNITS[unit]
        pos = match.end()

    try:
        return timedelta(microseconds=sign * total_ns / 1000)
    except OverflowError:
        raise ValueError(f"duration out of range: {original!r}") from None


def format_duration(duration: timedelta) -> str:
    """将 timedelta 格式化为时长字符串，例如 30s、1m30s、24h0m0s"""
    total_us = round(duration.total_seconds() * 1_000_000)
    if total_us == 0:
        return "0s"

    sign = "-" if total_us < 0 else ""
    total_us = abs(total_us)

    if total_us < 1_000:
        return f"{sign}{total_us}µs"
    if total_us < 1_000_000:
        return f"{sign}{_trim_fraction(total_us, 1_000)}ms"

    hours, rest = divmod(total_us, 3600 * 1_000_000)
    minutes, rest = divmod(rest, 60 * 1_000_000)
    seconds = _trim_fraction(rest, 1_000_000)

    if hours:
        return f"{sign}{hours}h{minutes}m{seconds}s"
    if minutes:
        return f"{sign}{minutes}m{seconds}s"
    return f"{sign}{seconds}s"


def _trim_fraction(value: int, scale: int) -> str:
    whole, frac = divmod(value, scale)
    if not frac:
        return str(whole)
    digits = len(str(scale)) - 1
    return f"{whole}.{str(frac).zfill(digits).rstrip('0')}"


def get_env(key: str, default: str, environ: Optional[Mapping[str, str]] = None) -> str:
    """读取字符串环境变量，未设置或为空时返回默认值"""
    env = os.environ if environ is None else environ
    value = env.get(key)
    if value:
        return value
    return default


def get_int_env(key: str, default: int, environ: Optional[Mapping[str, str]] = None) -> int:
    """读取整数环境变量，格式错误时静默回退到默认值"""
    value = get_env(key, "", environ)
    if value:
        try:
            return parse_int(value)
        except ValueError:
            logger.debug(f"环境变量 {key}={value!r} 不是有效整数，使用默认值 {default}")
    return default


def get_bool_env(key: str, default: bool, environ: Optional[Mapping[str, str]] = None) -> bool:
    """读取布尔环境变量，格式错误时静默回退到默认值"""
    value = get_env(key, "", environ)
    if value:
        try:
            return parse_bool(value)
        except ValueError:
            logger.debug(f"环境变量 {key}={value!r} 不是有效布尔值，使用默认值 {default}")
    return default


def get_duration_env(key: str, default: timedelta,
                     environ: Optional[Mapping[str, str]] = None) -> timedelta:
    """读取时长环境变量，格式错误时静默回退到默认值"""
    value = get_env(key, "", environ)
    if value:
        try:
            return parse_duration(value)
        except ValueError:
            logger.debug(f"环境变量 {key}={value!r} 不是有效时长，使用默认值 {default}")
    return default
