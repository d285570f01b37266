"""CSV取込ジョブ

訪問記録CSVの行を検証 → 名寄せ → バッチ登録する。

処理の流れ:
  1. 利用者・職員マスタと学習済み名前パターンをジョブ開始時に1回だけ取得
  2. batch_size 行ずつ、行の検証と利用者名・職員名の解決を順に行う
  3. バッチ単位で記録ストアへ登録（ロールバックなし）
     登録に失敗したバッチはエラーとして記録し、次のバッチへ進む
  4. バッチ完了ごとに進捗スナップショットを yield する
  5. 全バッチ完了後、信頼度highの解決結果から名前パターンを学習して保存

ジョブは ImportJobRegistry が保持する。レジストリは取込を起動する側が所有する。
"""

import logging
import math
from dataclasses import dataclass, field, replace
from datetime import datetime
from itertools import count
from typing import Iterator, Mapping

from calc.name_resolution import (
    NameResolutionResult,
    ResolutionSettings,
    learn_patterns,
    resolve_name,
)
from readers.visit_reader import (
    DEFAULT_COLUMNS,
    RowValidationError,
    ServiceVisitRow,
    check_duplicate,
    parse_visit_row,
)
from store.base import RecordStore, StoreError
from utils.helpers import chunked

logger = logging.getLogger(__name__)

JOB_STATUSES = ("pending", "processing", "completed", "failed")


@dataclass(frozen=True)
class ImportSettings:
    batch_size: int = 100
    learn_patterns: bool = True
    resolution: ResolutionSettings = field(default_factory=ResolutionSettings)
    columns: Mapping[str, str] = field(default_factory=lambda: dict(DEFAULT_COLUMNS))

    @classmethod
    def from_config(cls, config: dict) -> "ImportSettings":
        conf = config.get("import", {}) or {}
        columns = dict(DEFAULT_COLUMNS)
        columns.update(config.get("csv_columns", {}) or {})
        return cls(
            batch_size=conf.get("batch_size", 100),
            learn_patterns=conf.get("learn_patterns", True),
            resolution=ResolutionSettings.from_config(config),
            columns=columns,
        )


@dataclass(frozen=True)
class ImportFailure:
    """取込中に発生したエラー（ジョブは止めない）"""
    type: str                     # validation_error / database_error
    message: str
    row_number: int | None = None
    batch_number: int | None = None


@dataclass(frozen=True)
class ImportProgress:
    total_rows: int = 0
    processed_rows: int = 0
    successful_rows: int = 0
    failed_rows: int = 0
    current_batch: int = 0
    total_batches: int = 0
    error_count: int = 0

    @property
    def percent(self) -> float:
        if self.total_rows == 0:
            return 100.0
        return self.processed_rows / self.total_rows * 100


@dataclass
class ResolvedVisitRow:
    """名寄せ済みの1行"""
    row: ServiceVisitRow
    user_resolution: NameResolutionResult
    staff_resolution: NameResolutionResult | None = None

    @property
    def user_name(self) -> str:
        return self.user_resolution.resolved_name or self.row.user_name

    @property
    def staff_name(self) -> str:
        if self.staff_resolution is None:
            return self.row.staff_name
        return self.staff_resolution.resolved_name or self.row.staff_name

    def to_store_row(self) -> dict:
        return {
            "user_name": self.user_name,
            "staff_name": self.staff_name,
            "service_date": self.row.service_date,
            "start_time": self.row.start_time,
            "end_time": self.row.end_time,
            "duration_minutes": self.row.duration_minutes,
            "service_content": self.row.service_content,
        }


@dataclass
class ImportJobResult:
    total_rows: int = 0
    processed_rows: int = 0
    successful_rows: int = 0
    failed_rows: int = 0
    new_patterns_learned: int = 0
    errors: list[ImportFailure] = field(default_factory=list)
    resolutions: list[NameResolutionResult] = field(default_factory=list)
    inserted_ids: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.failed_rows == 0

    @property
    def resolved_names(self) -> int:
        return sum(1 for r in self.resolutions if r.is_resolved)

    @property
    def unresolved_names(self) -> int:
        return sum(1 for r in self.resolutions if not r.is_resolved)

    @property
    def manual_review_required(self) -> list[NameResolutionResult]:
        return [r for r in self.resolutions if r.requires_manual_review]


@dataclass
class ImportJob:
    id: str
    file_name: str
    status: str = "pending"
    progress: ImportProgress = field(default_factory=ImportProgress)
    result: ImportJobResult | None = None
    created_at: datetime = field(default_factory=datetime.now)
    started_at: datetime | None = None
    completed_at: datetime | None = None


class ImportJobRegistry:
    """取込ジョブをIDで保持する。"""

    def __init__(self):
        self._jobs: dict[str, ImportJob] = {}
        self._seq = count(1)

    def create(self, file_name: str) -> ImportJob:
        job = ImportJob(id=f"job-{next(self._seq)}", file_name=file_name)
        self._jobs[job.id] = job
        return job

    def get(self, job_id: str) -> ImportJob | None:
        return self._jobs.get(job_id)

    def list_jobs(self, status: str | None = None) -> list[ImportJob]:
        return [j for j in self._jobs.values() if status is None or j.status == status]


def _resolve(
    name: str,
    roster: list[str],
    patterns,
    settings: ResolutionSettings,
    store: RecordStore,
) -> NameResolutionResult:
    resolution = resolve_name(name, roster, patterns, settings)
    if resolution.pattern_id is not None:
        try:
            store.increment_usage(resolution.pattern_id)
        except StoreError as e:
            logger.warning("名前パターンの使用回数を更新できませんでした (%s): %s",
                           resolution.pattern_id, e)
    return resolution


def iter_import(
    job: ImportJob,
    raw_rows: list[Mapping],
    store: RecordStore,
    settings: ImportSettings = ImportSettings(),
) -> Iterator[ImportProgress]:
    """取込を実行し、バッチごとに進捗スナップショットを返すジェネレータ。

    完了後は job.result に ImportJobResult が入り、job.status は completed になる。
    StoreError 以外の例外やジェネレータの途中破棄では、それまでの結果を job.result に
    残して job.status を failed にする。

    Args:
        job: ImportJobRegistry.create() で作ったジョブ（pending）
        raw_rows: CSVの行（列名→値）。ヘッダーの次を2行目として行番号を振る
        store: 記録ストア
        settings: 取込設定

    Raises:
        ValueError: ジョブがpendingでない場合
        StoreError: マスタ・パターンの取得に失敗した場合（job.statusはfailed）
    """
    if job.status != "pending":
        raise ValueError(f"ジョブ {job.id} は既に{job.status}です")

    job.status = "processing"
    job.started_at = datetime.now()

    try:
        users = store.get_existing_names("user")
        staff = store.get_existing_names("staff")
        patterns = store.get_patterns()
    except StoreError:
        job.status = "failed"
        job.completed_at = datetime.now()
        logger.exception("ジョブ %s: マスタ取得に失敗しました", job.id)
        raise

    total_rows = len(raw_rows)
    total_batches = math.ceil(total_rows / settings.batch_size)
    result = ImportJobResult(total_rows=total_rows)
    progress = ImportProgress(total_rows=total_rows, total_batches=total_batches)
    job.progress = progress
    seen = set()
    # 登録に成功したバッチの解決結果のみ学習に使う
    learnable: list[NameResolutionResult] = []

    try:
        numbered = ((i + 2, raw) for i, raw in enumerate(raw_rows))
        for batch_number, batch in enumerate(chunked(numbered, settings.batch_size), start=1):
            resolved_rows: list[ResolvedVisitRow] = []
            batch_resolutions: list[NameResolutionResult] = []

            for row_number, raw in batch:
                try:
                    row = parse_visit_row(raw, row_number, settings.columns)
                    check_duplicate(row, seen)
                except RowValidationError as e:
                    result.errors.append(ImportFailure(
                        type="validation_error", message=str(e),
                        row_number=row_number, batch_number=batch_number,
                    ))
                    result.failed_rows += 1
                    continue

                user_res = _resolve(row.user_name, users, patterns, settings.resolution, store)
                staff_res = None
                if row.staff_name:
                    staff_res = _resolve(row.staff_name, staff, patterns, settings.resolution, store)
                batch_resolutions.append(user_res)
                if staff_res is not None:
                    batch_resolutions.append(staff_res)
                resolved_rows.append(ResolvedVisitRow(row, user_res, staff_res))

            result.resolutions.extend(batch_resolutions)
            if resolved_rows:
                try:
                    ids = store.insert_visits([r.to_store_row() for r in resolved_rows])
                except StoreError as e:
                    logger.warning(
                        "【要確認】バッチ %d/%d の登録に失敗しました（%d件）: %s",
                        batch_number, total_batches, len(resolved_rows), e,
                    )
                    result.errors.append(ImportFailure(
                        type="database_error", message=str(e), batch_number=batch_number,
                    ))
                    result.failed_rows += len(resolved_rows)
                else:
                    result.inserted_ids.extend(ids)
                    result.successful_rows += len(ids)
                    learnable.extend(batch_resolutions)

            result.processed_rows += len(batch)
            progress = replace(
                progress,
                processed_rows=result.processed_rows,
                successful_rows=result.successful_rows,
                failed_rows=result.failed_rows,
                current_batch=batch_number,
                error_count=len(result.errors),
            )
            job.progress = progress
            logger.info(
                "ジョブ %s: バッチ %d/%d 完了 (成功%d件, 失敗%d件)",
                job.id, batch_number, total_batches, result.successful_rows, result.failed_rows,
            )
            yield progress

        if settings.learn_patterns:
            for pattern in learn_patterns(learnable, patterns):
                try:
                    store.save_pattern(pattern)
                except StoreError as e:
                    logger.warning("名前パターンを保存できませんでした (%s): %s",
                                   pattern.original_pattern, e)
                    continue
                result.new_patterns_learned += 1

        job.status = "completed"
    finally:
        # 例外・途中破棄時
        if job.status == "processing":
            job.status = "failed"
            logger.warning(
                "【要確認】ジョブ %s が途中で終了しました（%d/%d行処理済み）",
                job.id, result.processed_rows, total_rows,
            )
        job.result = result
        job.completed_at = datetime.now()


def run_import(
    job: ImportJob,
    raw_rows: list[Mapping],
    store: RecordStore,
    settings: ImportSettings = ImportSettings(),
) -> ImportJobResult:
    """取込を最後まで実行して結果を返す（進捗が不要な場合）。"""
    for _ in iter_import(job, raw_rows, store, settings):
        pass
    return job.result
