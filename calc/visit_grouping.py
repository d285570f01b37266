"""訪問記録のグループ化・パターン候補生成

取込済みの訪問記録を「利用者 × 開始時刻」でまとめ、繰り返し発生している
訪問をパターン化の候補として提示する。

グループ化キーは (利用者名, 開始時刻) のタプル。
文字列連結（"A1" + "0:00" と "A" + "10:00" が同じになる）は使わない。

主サービス種別:
  各記録のサービス内容を下記の順にキーワード照合し、最初に該当した種別を
  その記録の種別とする。グループ内で最も件数の多い種別を採用し、同数なら
  宣言順が先の種別を優先する。
"""

import logging
from collections import Counter
from dataclasses import dataclass, field

from store.base import VisitRecord
from utils.helpers import time_to_minutes

logger = logging.getLogger(__name__)

OTHER_SERVICE = "その他"

# (種別, キーワード)。宣言順が照合順・同数時の優先順
SERVICE_CATEGORIES = [
    ("食事介助", ("食事", "食べ")),
    ("入浴介助", ("入浴", "お風呂")),
    ("排泄介助", ("トイレ", "排泄")),
    ("清拭", ("清拭",)),
    ("服薬介助", ("服薬", "薬")),
    ("掃除", ("掃除", "清掃")),
    ("洗濯", ("洗濯",)),
    ("調理", ("調理", "料理")),
]

_CATEGORY_ORDER = {name: i for i, (name, _) in enumerate(SERVICE_CATEGORIES)}
_CATEGORY_ORDER[OTHER_SERVICE] = len(SERVICE_CATEGORIES)

SAMPLE_SIZE = 5


@dataclass
class GroupedVisits:
    """同じ利用者・同じ開始時刻の訪問記録のまとまり（保存しない派生データ）"""
    user_name: str
    start_time: str
    records: list[VisitRecord] = field(default_factory=list)
    main_service_type: str = OTHER_SERVICE

    @property
    def key(self) -> tuple[str, str]:
        return (self.user_name, self.start_time)

    @property
    def count(self) -> int:
        return len(self.records)

    @property
    def suggested_pattern_name(self) -> str:
        return f"{self.user_name}_{self.start_time}_{self.main_service_type}"

    @property
    def is_pattern_created(self) -> bool:
        return any(r.pattern_id is not None for r in self.records)

    @property
    def pattern_id(self) -> str | None:
        """最初に見つかった紐付け済みパターンID"""
        for r in self.records:
            if r.pattern_id is not None:
                return r.pattern_id
        return None

    @property
    def sample_records(self) -> list[VisitRecord]:
        """画面表示用の先頭5件"""
        return self.records[:SAMPLE_SIZE]

    @property
    def record_ids(self) -> list[str]:
        return [r.id for r in self.records]


@dataclass
class GroupingStatistics:
    total_groups: int = 0
    groups_with_patterns: int = 0
    groups_without_patterns: int = 0
    total_records: int = 0


@dataclass
class UnlinkedAnalysis:
    """パターン未紐付けの訪問記録の内訳"""
    total_unlinked: int = 0
    by_hour: dict[int, int] = field(default_factory=dict)
    by_user: dict[str, int] = field(default_factory=dict)
    by_service_type: dict[str, int] = field(default_factory=dict)

    @property
    def suggest_new_patterns(self) -> bool:
        return self.total_unlinked > SAMPLE_SIZE and bool(self.by_service_type)


def classify_service_content(content: str | None) -> str:
    """サービス内容の自由記述から種別を1つ判定する。例: '昼食の食事介助' -> '食事介助'"""
    text = (content or "").lower()
    for name, keywords in SERVICE_CATEGORIES:
        if any(k in text for k in keywords):
            return name
    return OTHER_SERVICE


def extract_main_service_type(records: list[VisitRecord]) -> str:
    """グループ内で最も多いサービス種別（同数なら宣言順が先）"""
    if not records:
        return OTHER_SERVICE
    counts = Counter(classify_service_content(r.service_content) for r in records)
    return min(counts, key=lambda name: (-counts[name], _CATEGORY_ORDER[name]))


def group_visits(records: list[VisitRecord]) -> list[GroupedVisits]:
    """訪問記録を (利用者名, 開始時刻) でグループ化する。

    Args:
        records: 訪問記録（順序はグループ内の並びとして保持される）

    Returns:
        GroupedVisitsのリスト（件数の多い順、同数なら初出順）
    """
    grouped: dict[tuple[str, str], list[VisitRecord]] = {}
    for r in records:
        grouped.setdefault((r.user_name, r.start_time), []).append(r)

    groups = [
        GroupedVisits(
            user_name=user_name,
            start_time=start_time,
            records=members,
            main_service_type=extract_main_service_type(members),
        )
        for (user_name, start_time), members in grouped.items()
    ]
    groups.sort(key=lambda g: g.count, reverse=True)

    logger.info("訪問記録 %d件 → %dグループ", len(records), len(groups))
    return groups


def summarize_groups(groups: list[GroupedVisits]) -> GroupingStatistics:
    with_patterns = sum(1 for g in groups if g.is_pattern_created)
    return GroupingStatistics(
        total_groups=len(groups),
        groups_with_patterns=with_patterns,
        groups_without_patterns=len(groups) - with_patterns,
        total_records=sum(g.count for g in groups),
    )


def analyze_unlinked(records: list[VisitRecord]) -> UnlinkedAnalysis:
    """パターン未紐付けの記録を 開始時 / 利用者 / サービス種別 ごとに集計する。"""
    unlinked = [r for r in records if not r.is_pattern_assigned]

    by_hour = Counter(time_to_minutes(r.start_time) // 60 for r in unlinked)
    by_user = Counter(r.user_name for r in unlinked)
    by_service = Counter(classify_service_content(r.service_content) for r in unlinked)

    return UnlinkedAnalysis(
        total_unlinked=len(unlinked),
        by_hour=dict(sorted(by_hour.items())),
        by_user=dict(by_user),
        by_service_type=dict(by_service),
    )
