"""メモリ上の記録ストア

RecordStore の実装。CLIの単発実行とテストで使う（プロセス終了で消える）。
"""

import copy
import logging
from datetime import date, datetime
from itertools import count

from store.base import (
    ROSTER_KINDS,
    NameResolutionPattern,
    ServicePattern,
    StoreError,
    VisitRecord,
)

logger = logging.getLogger(__name__)

# 担当職員は空欄可
_VISIT_FIELDS = ("user_name", "service_date", "start_time", "end_time")


class InMemoryRecordStore:
    """利用者/職員マスタ・名前パターン・訪問記録・サービスパターンを保持する。"""

    def __init__(
        self,
        user_names: list[str] | None = None,
        staff_names: list[str] | None = None,
    ):
        self._rosters: dict[str, list[str]] = {
            "user": list(user_names or []),
            "staff": list(staff_names or []),
        }
        self._patterns: dict[str, NameResolutionPattern] = {}
        self._visits: dict[str, VisitRecord] = {}
        self._service_patterns: dict[str, ServicePattern] = {}
        self.service_records: list[dict] = []
        self._ids = count(1)

    def _next_id(self, prefix: str) -> str:
        return f"{prefix}-{next(self._ids)}"

    # --- マスタ ---

    def get_existing_names(self, kind: str) -> list[str]:
        if kind not in ROSTER_KINDS:
            raise ValueError(f"Unknown roster kind: {kind!r} (user/staff)")
        return list(self._rosters[kind])

    def add_name(self, kind: str, name: str) -> None:
        if kind not in ROSTER_KINDS:
            raise ValueError(f"Unknown roster kind: {kind!r} (user/staff)")
        self._rosters[kind].append(name)

    # --- 名前解決パターン ---

    def get_patterns(self) -> list[NameResolutionPattern]:
        return [copy.copy(p) for p in self._patterns.values()]

    def save_pattern(self, pattern: NameResolutionPattern) -> str:
        stored = copy.copy(pattern)
        if stored.id is None:
            stored.id = self._next_id("name-pattern")
        self._patterns[stored.id] = stored
        return stored.id

    def increment_usage(self, pattern_id: str) -> None:
        pattern = self._patterns.get(pattern_id)
        if pattern is None:
            raise StoreError(f"名前パターンが見つかりません: {pattern_id}")
        pattern.usage_count += 1
        pattern.last_used = datetime.now()

    # --- 訪問記録 ---

    def list_visits(
        self,
        user_name: str | None = None,
        start_time: str | None = None,
        date_from: date | None = None,
        date_to: date | None = None,
        unlinked_only: bool = False,
    ) -> list[VisitRecord]:
        """条件に合う訪問記録をサービス日の新しい順で返す。"""
        visits = []
        for v in self._visits.values():
            if user_name is not None and v.user_name != user_name:
                continue
            if start_time is not None and v.start_time != start_time:
                continue
            if date_from is not None and v.service_date < date_from:
                continue
            if date_to is not None and v.service_date > date_to:
                continue
            if unlinked_only and v.is_pattern_assigned:
                continue
            visits.append(copy.copy(v))
        visits.sort(key=lambda v: v.service_date, reverse=True)
        return visits

    def insert_visits(self, rows: list[dict]) -> list[str]:
        """訪問記録を一括登録し、採番したIDを返す。

        1件でも必須項目が欠けていれば何も登録せずStoreErrorを送出する。
        """
        for row in rows:
            missing = [f for f in _VISIT_FIELDS if row.get(f) in (None, "")]
            if missing:
                raise StoreError(f"必須項目がありません: {missing} ({row.get('user_name')})")

        ids = []
        for row in rows:
            visit_id = self._next_id("visit")
            self._visits[visit_id] = VisitRecord(
                id=visit_id,
                user_name=row["user_name"],
                staff_name=row.get("staff_name") or "",
                service_date=row["service_date"],
                start_time=row["start_time"],
                end_time=row["end_time"],
                service_content=row.get("service_content") or "",
                duration_minutes=row.get("duration_minutes"),
                pattern_id=row.get("pattern_id"),
            )
            ids.append(visit_id)
        return ids

    def link_pattern(self, visit_ids: list[str], pattern_id: str) -> None:
        for visit_id in self._existing_visits(visit_ids):
            self._visits[visit_id].pattern_id = pattern_id

    def unlink_pattern(self, visit_ids: list[str]) -> None:
        for visit_id in self._existing_visits(visit_ids):
            self._visits[visit_id].pattern_id = None

    def _existing_visits(self, visit_ids: list[str]) -> list[str]:
        unknown = [v for v in visit_ids if v not in self._visits]
        if unknown:
            raise StoreError(f"訪問記録が見つかりません: {unknown}")
        return list(visit_ids)

    # --- サービスパターン・記録 ---

    def save_service_pattern(
        self, pattern_name: str, pattern_details: dict, description: str = ""
    ) -> str:
        pattern_id = self._next_id("service-pattern")
        self._service_patterns[pattern_id] = ServicePattern(
            id=pattern_id,
            pattern_name=pattern_name,
            pattern_details=copy.deepcopy(pattern_details),
            description=description,
        )
        logger.info("サービスパターン作成: %s (%s)", pattern_name, pattern_id)
        return pattern_id

    def get_service_pattern(self, pattern_id: str) -> ServicePattern | None:
        return self._service_patterns.get(pattern_id)

    def insert_service_records(self, records: list[dict]) -> int:
        self.service_records.extend(copy.deepcopy(records))
        return len(records)
