"""記録ストアのインターフェース

永続化層（ホスト型RDB）は外部コンポーネント。名寄せ・グループ化のコードは
RecordStore プロトコル経由でのみアクセスし、自身ではI/Oを持たない。

テーブル対応:
  users_master / staff_master     → get_existing_names
  name_resolution_patterns        → get_patterns / save_pattern / increment_usage
  csv_service_records             → list_visits / insert_visits / link_pattern / unlink_pattern
  service_patterns                → save_service_pattern / get_service_pattern
  service_records                 → insert_service_records
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Protocol

ROSTER_KINDS = ("user", "staff")


class StoreError(Exception):
    """記録ストアの読み書きに失敗した"""


@dataclass
class VisitRecord:
    """取込済みのサービス提供記録（csv_service_records の1行）"""
    id: str
    user_name: str
    staff_name: str
    service_date: date
    start_time: str               # 'HH:MM'
    end_time: str                 # 'HH:MM'
    service_content: str = ""
    duration_minutes: int | None = None
    pattern_id: str | None = None

    @property
    def is_pattern_assigned(self) -> bool:
        return self.pattern_id is not None


@dataclass
class NameResolutionPattern:
    """学習済みの名前解決パターン（表記ブレ → 正式名）"""
    original_pattern: str
    resolved_name: str
    confidence: float = 0.9
    usage_count: int = 1
    last_used: datetime | None = None
    is_active: bool = True
    source: str = "auto_learned"  # manual / auto_learned / imported
    id: str | None = None


@dataclass
class ServicePattern:
    """サービスパターン（記録作成時に適用するケア内容のひな形）"""
    id: str
    pattern_name: str
    pattern_details: dict = field(default_factory=dict)
    description: str = ""


class RecordStore(Protocol):
    def get_existing_names(self, kind: str) -> list[str]: ...

    def get_patterns(self) -> list[NameResolutionPattern]: ...

    def save_pattern(self, pattern: NameResolutionPattern) -> str: ...

    def increment_usage(self, pattern_id: str) -> None: ...

    def list_visits(
        self,
        user_name: str | None = None,
        start_time: str | None = None,
        date_from: date | None = None,
        date_to: date | None = None,
        unlinked_only: bool = False,
    ) -> list[VisitRecord]: ...

    def insert_visits(self, rows: list[dict]) -> list[str]: ...

    def link_pattern(self, visit_ids: list[str], pattern_id: str) -> None: ...

    def unlink_pattern(self, visit_ids: list[str]) -> None: ...

    def save_service_pattern(
        self, pattern_name: str, pattern_details: dict, description: str = ""
    ) -> str: ...

    def get_service_pattern(self, pattern_id: str) -> ServicePattern | None: ...

    def insert_service_records(self, records: list[dict]) -> int: ...
