"""取込結果レビュー用Excel生成モジュール

CSV取込後に担当者が確認する内容を1つのブックにまとめる。

シート構成:
  名寄せ要確認: 解決できなかった / 信頼度lowの名前と候補
    A:CSV上の名前 B:解決後の名前 C:信頼度 D:スコア E〜:候補(名前(スコア))
  パターン候補: 利用者×開始時刻のグループ（件数の多い順）
    A:利用者名 B:開始時刻 C:件数 D:主サービス E:推奨パターン名 F:パターン作成済
"""

from pathlib import Path

import openpyxl
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter

from calc.name_resolution import NameResolutionResult
from calc.visit_grouping import GroupedVisits

REVIEW_SHEET = "名寄せ要確認"
GROUP_SHEET = "パターン候補"

REVIEW_HEADERS = ["CSV上の名前", "解決後の名前", "信頼度", "スコア"]
GROUP_HEADERS = ["利用者名", "開始時刻", "件数", "主サービス", "推奨パターン名", "パターン作成済"]

_header_font = Font(name="游ゴシック", bold=True, size=10)
_normal_font = Font(name="游ゴシック", size=10)
_header_fill = PatternFill(fill_type="solid", start_color="DDEBF7", end_color="DDEBF7")
_unresolved_fill = PatternFill(fill_type="solid", start_color="FCE4D6", end_color="FCE4D6")
_thin = Side(style="thin")
_border = Border(left=_thin, right=_thin, top=_thin, bottom=_thin)


def _write_header(ws, headers: list[str]) -> None:
    for col, title in enumerate(headers, start=1):
        cell = ws.cell(row=1, column=col, value=title)
        cell.font = _header_font
        cell.fill = _header_fill
        cell.border = _border
        cell.alignment = Alignment(horizontal="center")
    ws.freeze_panes = "A2"


def write_review_sheet(ws, resolutions: list[NameResolutionResult]) -> int:
    """要確認の名前を書き出す。同じ名前は1行にまとめる。

    Returns:
        書き出した行数（ヘッダー除く）
    """
    max_candidates = max(
        (len(r.alternative_candidates) for r in resolutions), default=0
    )
    headers = REVIEW_HEADERS + [f"候補{i}" for i in range(1, max_candidates + 1)]
    _write_header(ws, headers)

    row = 2
    written = set()
    for r in resolutions:
        if not r.requires_manual_review or r.original_name in written:
            continue
        written.add(r.original_name)

        score = r.match_result.score if r.match_result is not None else None
        values = [r.original_name, r.resolved_name, r.confidence, score]
        values += [f"{c.name}({c.score:.2f})" for c in r.alternative_candidates]
        for col, value in enumerate(values, start=1):
            cell = ws.cell(row=row, column=col, value=value)
            cell.font = _normal_font
            cell.border = _border
            if not r.is_resolved:
                cell.fill = _unresolved_fill
        if score is not None:
            ws.cell(row=row, column=4).number_format = "0.000"
        row += 1

    ws.column_dimensions["A"].width = 20
    ws.column_dimensions["B"].width = 20
    ws.column_dimensions["C"].width = 8
    ws.column_dimensions["D"].width = 8
    for col in range(len(REVIEW_HEADERS) + 1, len(headers) + 1):
        ws.column_dimensions[get_column_letter(col)].width = 18

    return row - 2


def write_group_sheet(ws, groups: list[GroupedVisits]) -> int:
    """パターン候補のグループを書き出す。

    Returns:
        書き出した行数（ヘッダー除く）
    """
    _write_header(ws, GROUP_HEADERS)

    for row, g in enumerate(groups, start=2):
        values = [
            g.user_name,
            g.start_time,
            g.count,
            g.main_service_type,
            g.suggested_pattern_name,
            "済" if g.is_pattern_created else None,
        ]
        for col, value in enumerate(values, start=1):
            cell = ws.cell(row=row, column=col, value=value)
            cell.font = _normal_font
            cell.border = _border

    widths = {"A": 16, "B": 10, "C": 8, "D": 12, "E": 32, "F": 12}
    for letter, width in widths.items():
        ws.column_dimensions[letter].width = width

    return len(groups)


def write_review_workbook(
    resolutions: list[NameResolutionResult],
    groups: list[GroupedVisits],
    output_path: Path,
) -> Path:
    """名寄せ要確認・パターン候補の2シートを持つブックを保存する。

    Returns:
        保存先Path
    """
    wb = openpyxl.Workbook()
    review_ws = wb.active
    review_ws.title = REVIEW_SHEET
    write_review_sheet(review_ws, resolutions)

    group_ws = wb.create_sheet(GROUP_SHEET)
    write_group_sheet(group_ws, groups)

    output_path.parent.mkdir(parents=True, exist_ok=True)
    wb.save(str(output_path))
    wb.close()

    return output_path
