"""記録作成日時・印刷日時の生成

過去分のサービス提供記録を作成する際、実際の運用に近い作成日時・印刷日時を
確率的に割り当てる。乱数源は random.Random を引数で受け取る（テストではseed固定）。

記録作成日時の確率分布（r = 0〜100の一様乱数）:
  r ≤ 15        サービス終了10分前〜1分前                  (15%)
  15 < r ≤ 65   サービス開始3分前〜終了3分後                (50%)
  65 < r ≤ 95   サービス終了3分後〜15分後                  (30%)
  r > 95        サービス終了ちょうど1時間後                  (5%)

印刷日時: サービス日の1〜7日後、営業時間内（9:00〜18:00）
"""

import random
from datetime import date, datetime, timedelta

from utils.helpers import minutes_to_time_str, time_to_minutes

BAND_BEFORE_END = "before_end"
BAND_AROUND_SERVICE = "around_service"
BAND_AFTER_END = "after_end"
BAND_LATE = "late"

# (上限r, 帯)  r ≤ 上限 で該当
RECORD_TIME_BANDS = [
    (15, BAND_BEFORE_END),
    (65, BAND_AROUND_SERVICE),
    (95, BAND_AFTER_END),
]

BUSINESS_START_HOUR = 9
BUSINESS_HOURS = 9  # 9時台〜17時台


def _rng(rng: random.Random | None) -> random.Random:
    return rng if rng is not None else random.Random()


def _random_between(start: datetime, end: datetime, rng: random.Random) -> datetime:
    return start + (end - start) * rng.random()


def pick_record_time_band(rng: random.Random | None = None) -> str:
    """記録作成日時の帯を抽選する。"""
    r = _rng(rng).random() * 100
    for upper, band in RECORD_TIME_BANDS:
        if r <= upper:
            return band
    return BAND_LATE


def generate_record_time(
    service_start: datetime,
    service_end: datetime,
    rng: random.Random | None = None,
) -> datetime:
    """サービス提供記録の作成日時を生成する。

    Args:
        service_start: サービス開始日時
        service_end: サービス終了日時
        rng: 乱数源（省略時は新規のrandom.Random）

    Returns:
        記録作成日時
    """
    rng = _rng(rng)
    band = pick_record_time_band(rng)

    if band == BAND_BEFORE_END:
        return _random_between(
            service_end - timedelta(minutes=10), service_end - timedelta(minutes=1), rng
        )
    if band == BAND_AROUND_SERVICE:
        return _random_between(
            service_start - timedelta(minutes=3), service_end + timedelta(minutes=3), rng
        )
    if band == BAND_AFTER_END:
        return _random_between(
            service_end + timedelta(minutes=3), service_end + timedelta(minutes=15), rng
        )
    return service_end + timedelta(hours=1)


def generate_print_time(
    service_date: date | datetime,
    rng: random.Random | None = None,
) -> datetime:
    """印刷日時を生成する（週1回まとめて印刷する運用を想定）。

    サービス日の1〜7日後、9:00:00〜17:59:59 の範囲。
    """
    rng = _rng(rng)
    if isinstance(service_date, datetime):
        service_date = service_date.date()

    days = rng.randrange(1, 8)
    hour = BUSINESS_START_HOUR + rng.randrange(BUSINESS_HOURS)
    minute = rng.randrange(60)
    second = rng.randrange(60)

    print_date = service_date + timedelta(days=days)
    return datetime(print_date.year, print_date.month, print_date.day, hour, minute, second)


def generate_random_times(
    base_start_time: str,
    count: int,
    rng: random.Random | None = None,
) -> list[tuple[str, str]]:
    """基準開始時刻の前後30分でばらつかせた (開始, 終了) を count 件生成する。

    サービス時間は30〜120分。時刻は当日内（00:00〜23:59）に収める。
    """
    rng = _rng(rng)
    base = time_to_minutes(base_start_time)
    last_minute = 23 * 60 + 59
    times = []
    for _ in range(count):
        start = min(max(base + rng.randint(-30, 30), 0), last_minute)
        end = min(start + rng.randint(30, 120), last_minute)
        times.append((minutes_to_time_str(start), minutes_to_time_str(end)))
    return times
