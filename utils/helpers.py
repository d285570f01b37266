"""共通ヘルパー関数"""

import re
from datetime import date, datetime, time
from itertools import islice
from typing import Iterable, Iterator, TypeVar

import yaml

T = TypeVar("T")

_TIME_RE = re.compile(r"^([01]?\d|2[0-3]):([0-5]\d)$")


def load_config(config_path: str = "config.yaml") -> dict:
    """config.yamlを読み込む"""
    with open(config_path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f)


def is_valid_time_str(time_str: str | None) -> bool:
    """'9:00' / '09:00' 形式かどうか"""
    return bool(time_str and _TIME_RE.match(time_str.strip()))


def parse_time_str(time_str: str) -> time:
    """'HH:MM' 形式の文字列を time に変換。例: '9:05' -> time(9, 5)

    Raises:
        ValueError: 形式が不正な場合
    """
    m = _TIME_RE.match(time_str.strip()) if time_str else None
    if not m:
        raise ValueError(f"Invalid time string: {time_str!r} (HH:MM形式)")
    return time(int(m.group(1)), int(m.group(2)))


def time_to_minutes(time_str: str) -> int:
    """'HH:MM' を0時からの経過分に変換。例: '10:30' -> 630"""
    t = parse_time_str(time_str)
    return t.hour * 60 + t.minute


def minutes_to_time_str(minutes: int) -> str:
    """経過分を 'HH:MM' に変換。例: 630 -> '10:30'"""
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def combine_date_time(service_date: date | str, time_str: str) -> datetime:
    """サービス日と 'HH:MM' からdatetimeを作る。

    Args:
        service_date: date または 'YYYY-MM-DD'
        time_str: 'HH:MM'
    """
    if isinstance(service_date, str):
        service_date = date.fromisoformat(service_date)
    return datetime.combine(service_date, parse_time_str(time_str))


def chunked(items: Iterable[T], size: int) -> Iterator[list[T]]:
    """itemsをsize件ずつのリストに分割する（最後は端数）。"""
    if size <= 0:
        raise ValueError(f"batch size must be positive: {size}")
    it = iter(items)
    while True:
        batch = list(islice(it, size))
        if not batch:
            return
        yield batch
