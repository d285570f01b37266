"""読取モジュールのテスト

訪問記録CSVの行検証と、利用者・職員名簿Excelの読取を確認する。
"""

import logging
import sys
from datetime import date
from pathlib import Path

import openpyxl
import pytest

PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from readers.visit_reader import (
    DEFAULT_COLUMNS,
    RowValidationError,
    check_duplicate,
    parse_visit_row,
    read_visit_csv,
    validate_visit_rows,
)
from readers.roster_reader import read_roster_file
from conftest import make_csv_row


def _errors(raw, row_number=2):
    with pytest.raises(RowValidationError) as exc_info:
        parse_visit_row(raw, row_number)
    return exc_info.value


# ============================================================
# 訪問記録CSV 行検証
# ============================================================

class TestParseVisitRow:
    def test_valid_row(self):
        row = parse_visit_row(make_csv_row(), 2)
        assert row.row_number == 2
        assert row.user_name == "田中太郎"
        assert row.staff_name == "山田花子"
        assert row.service_date == date(2026, 1, 5)
        assert row.start_time == "09:00"
        assert row.end_time == "10:00"
        assert row.duration_minutes == 60
        assert row.service_content == "食事介助"
        assert row.user_name_kana == "タナカタロウ"

    def test_values_are_stripped(self):
        row = parse_visit_row(make_csv_row(user_name=" 田中太郎 ", start_time=" 09:00"), 2)
        assert row.user_name == "田中太郎"
        assert row.start_time == "09:00"

    def test_missing_user_name(self):
        error = _errors(make_csv_row(user_name=""))
        assert "利用者名が必要です" in error.errors
        assert str(error).startswith("行 2:")

    def test_all_errors_collected(self):
        error = _errors(make_csv_row(service_date="2026/01/05", start_time="11:00"), row_number=7)
        assert error.row_number == 7
        assert len(error.errors) == 2
        assert any("YYYY-MM-DD" in e for e in error.errors)
        assert "終了時間は開始時間より後である必要があります" in error.errors

    def test_invalid_calendar_date(self):
        error = _errors(make_csv_row(service_date="2026-02-30"))
        assert error.errors == ["サービス日が無効な日付です"]

    def test_invalid_time(self):
        error = _errors(make_csv_row(end_time="25:00"))
        assert any("終了時間の形式" in e for e in error.errors)

    @pytest.mark.parametrize("duration", ["", "0", "-10", "1441", "abc"])
    def test_invalid_duration(self, duration):
        _errors(make_csv_row(duration_minutes=duration))

    def test_duration_tolerance(self):
        """開始・終了から計算した時間との差は5分まで許容"""
        assert parse_visit_row(make_csv_row(duration_minutes="65"), 2).duration_minutes == 65
        error = _errors(make_csv_row(duration_minutes="90"))
        assert any("一致しません" in e for e in error.errors)

    def test_length_limits(self):
        error = _errors(make_csv_row(
            user_name="あ" * 51, staff_name="い" * 51, service_content="う" * 201,
        ))
        assert len(error.errors) == 3

    def test_optional_fields_only_warn(self, caplog):
        with caplog.at_level(logging.WARNING, logger="readers.visit_reader"):
            row = parse_visit_row(
                make_csv_row(staff_name="", user_code="", service_content=""), 4
            )
        assert row.staff_name == ""
        assert "行 4: 担当職員が空です" in caplog.text
        assert "行 4: 利用者コードが空です" in caplog.text
        assert "行 4: サービス内容が空です" in caplog.text

    def test_custom_columns(self):
        columns = dict(DEFAULT_COLUMNS, user_name="氏名")
        raw = make_csv_row()
        raw["氏名"] = raw.pop(DEFAULT_COLUMNS["user_name"])
        assert parse_visit_row(raw, 2, columns).user_name == "田中太郎"


class TestValidateVisitRows:
    def test_duplicates(self):
        rows = [make_csv_row(), make_csv_row(start_time="09:00"), make_csv_row(service_date="2026-01-12")]
        valid, errors = validate_visit_rows(rows)
        assert len(valid) == 2
        assert len(errors) == 1
        assert errors[0].row_number == 3
        assert "重複" in errors[0].errors[0]

    def test_check_duplicate(self):
        """1件目はキーを記録、同じキーの2件目は行番号付きのエラー"""
        seen = set()
        first = parse_visit_row(make_csv_row(), 2)
        check_duplicate(first, seen)
        assert first.duplicate_key in seen

        second = parse_visit_row(make_csv_row(start_time="09:00"), 5)
        with pytest.raises(RowValidationError) as exc_info:
            check_duplicate(second, seen)
        assert exc_info.value.row_number == 5
        assert len(seen) == 1

    def test_row_numbers_count_header(self):
        rows = [make_csv_row(), make_csv_row(user_name="")]
        valid, errors = validate_visit_rows(rows)
        assert [r.row_number for r in valid] == [2]
        assert errors[0].row_number == 3


class TestReadVisitCsv:
    HEADER = "利用者名,担当職員,サービス日,開始時間,終了時間,実施時間,サービス内容\n"

    def test_bom_and_blank_rows(self, tmp_path):
        path = tmp_path / "visits.csv"
        path.write_text(
            self.HEADER
            + "田中太郎,山田花子,2026-01-05,9:00,10:00,60,食事介助\n"
            + ",,,,,,\n"
            + "佐藤花子,高橋次郎,2026-01-06,14:00,14:30,30,掃除\n",
            encoding="utf-8-sig",
        )
        rows = read_visit_csv(path)
        assert len(rows) == 2
        assert rows[0]["利用者名"] == "田中太郎"
        assert rows[1]["サービス内容"] == "掃除"

    def test_configured_encoding(self, tmp_path):
        path = tmp_path / "visits_sjis.csv"
        path.write_text(
            self.HEADER + "田中太郎,山田花子,2026-01-05,9:00,10:00,60,入浴\n",
            encoding="cp932",
        )
        rows = read_visit_csv(path, encoding="cp932")
        assert rows[0]["サービス内容"] == "入浴"


# ============================================================
# 利用者・職員名簿
# ============================================================

def _write_roster(path, users, staff, sheets=("利用者", "職員")):
    wb = openpyxl.Workbook()
    wb.remove(wb.active)
    for title, names in zip(sheets, (users, staff)):
        ws = wb.create_sheet(title)
        ws.cell(row=1, column=1, value="氏名")
        for i, name in enumerate(names, start=2):
            ws.cell(row=i, column=1, value=name)
    wb.save(str(path))
    return path


class TestRosterReader:
    def test_read(self, tmp_path):
        path = _write_roster(
            tmp_path / "roster.xlsx",
            ["田中太郎", None, " 佐藤花子 ", "田中太郎"],
            ["山田花子"],
        )
        rosters = read_roster_file(path)
        assert rosters["user"] == ["田中太郎", "佐藤花子"]
        assert rosters["staff"] == ["山田花子"]

    def test_missing_sheet(self, tmp_path):
        path = _write_roster(tmp_path / "roster.xlsx", ["田中太郎"], ["山田花子"], sheets=("利用者", "スタッフ"))
        with pytest.raises(ValueError, match="職員"):
            read_roster_file(path)
