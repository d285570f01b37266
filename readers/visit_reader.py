"""訪問記録CSVの読取・行検証

外部の予定管理システムが出力したCSVを読み取り、1行ずつ ServiceVisitRow に変換する。
必須項目の欠落・形式不正は黙って既定値で埋めず、RowValidationError として行ごとに返す。

CSV列（列名はconfig.yamlの csv_columns で変更可能）:
  利用者名 / 担当職員 / サービス日(YYYY-MM-DD) / 開始時間(HH:MM) / 終了時間(HH:MM)
  実施時間(分) / サービス内容 / サービス種別 / 利用者コード / 職員コード / 利用者名カナ

文字コードは設定値で指定する（自動判定はしない）。
"""

import csv
import logging
import re
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Mapping

from utils.helpers import is_valid_time_str, minutes_to_time_str, time_to_minutes

logger = logging.getLogger(__name__)

DEFAULT_COLUMNS = {
    "user_name": "利用者名",
    "staff_name": "担当職員",
    "service_date": "サービス日",
    "start_time": "開始時間",
    "end_time": "終了時間",
    "duration_minutes": "実施時間",
    "service_content": "サービス内容",
    "service_type": "サービス種別",
    "user_code": "利用者コード",
    "staff_code": "職員コード",
    "user_name_kana": "利用者名カナ",
}

MAX_NAME_LENGTH = 50
MAX_CONTENT_LENGTH = 200
MAX_DURATION_MINUTES = 24 * 60
DURATION_TOLERANCE_MINUTES = 5

_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


class RowValidationError(ValueError):
    """CSVの1行が検証に通らなかった"""

    def __init__(self, row_number: int, errors: list[str]):
        self.row_number = row_number
        self.errors = errors
        super().__init__(f"行 {row_number}: {', '.join(errors)}")


@dataclass(frozen=True)
class ServiceVisitRow:
    """検証済みのCSV1行"""
    row_number: int
    user_name: str
    staff_name: str
    service_date: date
    start_time: str
    end_time: str
    duration_minutes: int
    service_content: str = ""
    service_type: str = ""
    user_code: str = ""
    staff_code: str = ""
    user_name_kana: str = ""

    @property
    def duplicate_key(self) -> tuple:
        return (self.user_name, self.service_date, self.start_time, self.end_time)


def _cell(raw: Mapping, columns: Mapping[str, str], field_name: str) -> str:
    value = raw.get(columns.get(field_name, field_name))
    if value is None:
        return ""
    return str(value).strip()


def _parse_date(value: str, errors: list[str]) -> date | None:
    if not value:
        errors.append("サービス日が必要です")
        return None
    if not _DATE_RE.match(value):
        errors.append("サービス日の形式が正しくありません（YYYY-MM-DD形式で入力してください）")
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        errors.append("サービス日が無効な日付です")
        return None


def _parse_duration(value: str, errors: list[str]) -> int | None:
    if not value:
        errors.append("実施時間が必要です（正の数値で入力してください）")
        return None
    try:
        minutes = int(float(value))
    except ValueError:
        errors.append(f"実施時間が数値ではありません: '{value}'")
        return None
    if minutes <= 0:
        errors.append("実施時間が必要です（正の数値で入力してください）")
        return None
    if minutes > MAX_DURATION_MINUTES:
        errors.append("実施時間が24時間を超えています")
        return None
    return minutes


def parse_visit_row(
    raw: Mapping,
    row_number: int,
    columns: Mapping[str, str] = DEFAULT_COLUMNS,
) -> ServiceVisitRow:
    """CSVの1行（列名→値）を検証して ServiceVisitRow に変換する。

    Args:
        raw: csv.DictReaderの1行
        row_number: CSV上の行番号（ヘッダーが1行目、データは2行目から）
        columns: フィールド名→CSV列名

    Returns:
        ServiceVisitRow

    Raises:
        RowValidationError: 検証エラーが1つでもある場合（全エラーをまとめて保持）
    """
    errors: list[str] = []

    user_name = _cell(raw, columns, "user_name")
    staff_name = _cell(raw, columns, "staff_name")
    start_time = _cell(raw, columns, "start_time")
    end_time = _cell(raw, columns, "end_time")
    content = _cell(raw, columns, "service_content")

    if not user_name:
        errors.append("利用者名が必要です")
    elif len(user_name) > MAX_NAME_LENGTH:
        errors.append(f"利用者名が長すぎます（{MAX_NAME_LENGTH}文字以内で入力してください）")

    if len(staff_name) > MAX_NAME_LENGTH:
        errors.append(f"担当職員名が長すぎます（{MAX_NAME_LENGTH}文字以内で入力してください）")

    if len(content) > MAX_CONTENT_LENGTH:
        errors.append(f"サービス内容が長すぎます（{MAX_CONTENT_LENGTH}文字以内で入力してください）")

    service_date = _parse_date(_cell(raw, columns, "service_date"), errors)

    times_ok = True
    for label, value in (("開始時間", start_time), ("終了時間", end_time)):
        if not value:
            errors.append(f"{label}が必要です")
            times_ok = False
        elif not is_valid_time_str(value):
            errors.append(f"{label}の形式が正しくありません（HH:MM形式で入力してください）")
            times_ok = False

    duration = _parse_duration(_cell(raw, columns, "duration_minutes"), errors)

    if times_ok:
        start_min = time_to_minutes(start_time)
        end_min = time_to_minutes(end_time)
        if start_min >= end_min:
            errors.append("終了時間は開始時間より後である必要があります")
        elif duration is not None and abs(duration - (end_min - start_min)) > DURATION_TOLERANCE_MINUTES:
            errors.append(
                f"実施時間（{duration}分）と開始・終了時間から計算される時間"
                f"（{end_min - start_min}分）が一致しません"
            )

    if errors:
        raise RowValidationError(row_number, errors)

    if not staff_name:
        logger.warning("行 %d: 担当職員が空です", row_number)
    if not _cell(raw, columns, "user_code"):
        logger.warning("行 %d: 利用者コードが空です", row_number)
    if not content:
        logger.warning("行 %d: サービス内容が空です", row_number)

    return ServiceVisitRow(
        row_number=row_number,
        user_name=user_name,
        staff_name=staff_name,
        service_date=service_date,
        # '9:00' と '09:00' を同じ開始時刻として扱う
        start_time=minutes_to_time_str(time_to_minutes(start_time)),
        end_time=minutes_to_time_str(time_to_minutes(end_time)),
        duration_minutes=duration,
        service_content=content,
        service_type=_cell(raw, columns, "service_type"),
        user_code=_cell(raw, columns, "user_code"),
        staff_code=_cell(raw, columns, "staff_code"),
        user_name_kana=_cell(raw, columns, "user_name_kana"),
    )


def check_duplicate(row: ServiceVisitRow, seen: set) -> None:
    """同じ利用者・日付・開始/終了時刻の行が既にあれば RowValidationError。

    重複でなければ row のキーを seen に追加する。
    """
    if row.duplicate_key in seen:
        raise RowValidationError(row.row_number, ["同じ利用者・日付・時間の重複データです"])
    seen.add(row.duplicate_key)


def validate_visit_rows(
    raw_rows: list[Mapping],
    columns: Mapping[str, str] = DEFAULT_COLUMNS,
) -> tuple[list[ServiceVisitRow], list[RowValidationError]]:
    """全行を検証し、(有効行, エラー) を返す。

    同じ利用者・日付・開始/終了時刻の2件目以降は重複エラーにする。
    """
    valid = []
    errors = []
    seen = set()

    for index, raw in enumerate(raw_rows):
        row_number = index + 2
        try:
            row = parse_visit_row(raw, row_number, columns)
            check_duplicate(row, seen)
        except RowValidationError as e:
            errors.append(e)
            continue
        valid.append(row)

    return valid, errors


def read_visit_csv(filepath: str | Path, encoding: str = "utf-8-sig") -> list[dict]:
    """訪問記録CSVを読み取り、ヘッダー名→値の辞書のリストを返す。

    空行はスキップする。検証は parse_visit_row / validate_visit_rows で行う。
    """
    with open(filepath, "r", encoding=encoding, newline="") as f:
        reader = csv.DictReader(f)
        return [
            row for row in reader
            if any((v or "").strip() for v in row.values() if isinstance(v, str))
        ]
