"""取込結果レビュー用ブックのテスト"""

import sys
from pathlib import Path

import openpyxl

PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from calc.name_resolution import ResolutionSettings, resolve_name
from calc.visit_grouping import group_visits
from writers.review_writer import GROUP_SHEET, REVIEW_SHEET, write_review_workbook
from conftest import USER_NAMES, make_visit


class TestReviewWorkbook:
    def test_sheets_and_rows(self, tmp_path):
        resolutions = [
            resolve_name("田中太朗", USER_NAMES + ["田中次郎"], []),
            resolve_name("田中太朗", USER_NAMES, []),
            resolve_name("田中次郎", ["田中太朗"], [], ResolutionSettings(match_threshold=0.4)),
            resolve_name("佐藤花子", USER_NAMES, []),
        ]
        groups = group_visits([
            make_visit("1", service_content="入浴"),
            make_visit("2", service_content="入浴", pattern_id="sp-1"),
            make_visit("3", user_name="佐藤花子", start_time="14:00"),
        ])

        path = write_review_workbook(resolutions, groups, tmp_path / "out" / "review.xlsx")
        assert path.exists()

        wb = openpyxl.load_workbook(str(path))
        assert wb.sheetnames == [REVIEW_SHEET, GROUP_SHEET]

        review = wb[REVIEW_SHEET]
        # 同じ名前は1行、信頼度high/mediumの解決済みは出さない
        assert review.max_row == 3
        assert review["A2"].value == "田中太朗"
        assert review["B2"].value is None
        assert review["E2"].value.startswith("田中太郎(0.7")
        assert review["A3"].value == "田中次郎"
        assert review["B3"].value == "田中太朗"
        assert review["C3"].value == "low"

        sheet = wb[GROUP_SHEET]
        assert sheet.max_row == 3
        assert [c.value for c in sheet[2]] == [
            "田中太郎", "09:00", 2, "入浴介助", "田中太郎_09:00_入浴介助", "済",
        ]
        assert sheet["F3"].value is None
        wb.close()

    def test_empty(self, tmp_path):
        path = write_review_workbook([], [], tmp_path / "review.xlsx")
        wb = openpyxl.load_workbook(str(path))
        assert wb[REVIEW_SHEET]["A1"].value == "CSV上の名前"
        assert wb[GROUP_SHEET].max_row == 1
        wb.close()
