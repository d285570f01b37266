"""パターン作成・紐付け

グループ化した訪問記録からサービスパターンを作成して紐付ける。
一括紐付けは1件ずつ処理し、失敗した記録はエラーとして集計して残りを継続する。
"""

import logging
import random
from dataclasses import dataclass, field

from calc.pattern_details import build_pattern_details
from calc.record_time import generate_print_time, generate_record_time
from calc.visit_grouping import GroupedVisits
from store.base import RecordStore, StoreError
from utils.helpers import combine_date_time

logger = logging.getLogger(__name__)

OPERATIONS = ("assign", "unassign", "reassign")


@dataclass
class LinkError:
    record_id: str
    message: str


@dataclass
class BulkOperationResult:
    total_processed: int = 0
    successful: int = 0
    failed: int = 0
    errors: list[LinkError] = field(default_factory=list)


def create_pattern_for_group(
    store: RecordStore,
    group: GroupedVisits,
    description: str = "",
) -> str:
    """グループの推奨パターン名でサービスパターンを作成し、全記録に紐付ける。

    Returns:
        作成したパターンID
    """
    details = build_pattern_details(group.records)
    pattern_id = store.save_service_pattern(
        group.suggested_pattern_name, details, description
    )
    store.link_pattern(group.record_ids, pattern_id)
    for r in group.records:
        r.pattern_id = pattern_id
    logger.info(
        "パターン紐付け: %s → %d件", group.suggested_pattern_name, group.count
    )
    return pattern_id


def bulk_link(
    store: RecordStore,
    operation: str,
    record_ids: list[str],
    pattern_id: str | None = None,
) -> BulkOperationResult:
    """複数の訪問記録のパターン紐付けを一括変更する。

    Args:
        store: 記録ストア
        operation: assign（紐付け） / unassign（解除） / reassign（解除して紐付け）
        record_ids: 対象の訪問記録ID
        pattern_id: assign/reassign時の紐付け先

    Returns:
        BulkOperationResult（失敗は例外ではなくerrorsに記録）

    Raises:
        ValueError: 未知の操作の場合
    """
    if operation not in OPERATIONS:
        raise ValueError(f"Unknown operation: {operation!r} ({'/'.join(OPERATIONS)})")

    result = BulkOperationResult(total_processed=len(record_ids))

    if operation != "unassign":
        message = None
        if not pattern_id:
            message = "パターンIDが指定されていません"
        elif store.get_service_pattern(pattern_id) is None:
            message = f"パターンが見つかりません: {pattern_id}"
        if message:
            result.failed = len(record_ids)
            result.errors = [LinkError(rid, message) for rid in record_ids]
            return result

    for record_id in record_ids:
        try:
            if operation in ("unassign", "reassign"):
                store.unlink_pattern([record_id])
            if operation in ("assign", "reassign"):
                store.link_pattern([record_id], pattern_id)
        except StoreError as e:
            result.failed += 1
            result.errors.append(LinkError(record_id, str(e)))
            continue
        result.successful += 1

    if result.errors:
        logger.warning(
            "【要確認】一括%s: %d件中%d件失敗", operation, result.total_processed, result.failed
        )
    return result


def build_service_records(
    group: GroupedVisits,
    pattern_id: str,
    pattern_details: dict,
    rng: random.Random | None = None,
) -> list[dict]:
    """パターンを適用したサービス提供記録を訪問記録ごとに作る。

    作成日時・印刷日時は generate_record_time / generate_print_time で割り当てる。
    """
    rng = rng if rng is not None else random.Random()
    records = []
    for v in group.records:
        service_start = combine_date_time(v.service_date, v.start_time)
        service_end = combine_date_time(v.service_date, v.end_time)
        created_at = generate_record_time(service_start, service_end, rng)
        records.append({
            "csv_record_id": v.id,
            "pattern_id": pattern_id,
            "user_name": v.user_name,
            "staff_name": v.staff_name,
            "service_date": v.service_date,
            "start_time": v.start_time,
            "end_time": v.end_time,
            "duration_minutes": v.duration_minutes or 60,
            "service_content": v.service_content,
            "service_details": pattern_details,
            "created_at": created_at,
            "updated_at": created_at,
            "printed_at": generate_print_time(v.service_date, rng),
        })
    return records
