"""利用者・職員マスタ読取モジュール

名寄せの照合先となる名簿をExcelファイルから読み取る。

構造:
  シート「利用者」: Row 1 ヘッダー、Row 2+ A列=利用者名
  シート「職員」  : Row 1 ヘッダー、Row 2+ A列=職員名
  空セルはスキップ。同名の重複は最初の1件のみ残す。
"""

from pathlib import Path

import openpyxl

ROSTER_SHEETS = {
    "user": "利用者",
    "staff": "職員",
}

DATA_START_ROW = 2


def read_roster_sheet(ws) -> list[str]:
    """名簿シートのA列から名前を読み取る。"""
    names = []
    seen = set()
    for row in ws.iter_rows(min_row=DATA_START_ROW, max_col=1, values_only=True):
        value = row[0] if row else None
        if value is None:
            continue
        name = str(value).strip()
        if not name or name in seen:
            continue
        seen.add(name)
        names.append(name)
    return names


def read_roster_file(filepath: str | Path) -> dict[str, list[str]]:
    """名簿ファイルから利用者・職員の名前を読み取る。

    Returns:
        {"user": [...], "staff": [...]}

    Raises:
        ValueError: 必要なシートがない場合
    """
    wb = openpyxl.load_workbook(str(filepath), read_only=True, data_only=True)
    try:
        missing = [s for s in ROSTER_SHEETS.values() if s not in wb.sheetnames]
        if missing:
            raise ValueError(
                f"Sheets {missing} not found in {filepath}. "
                f"Available: {wb.sheetnames}"
            )
        return {kind: read_roster_sheet(wb[sheet]) for kind, sheet in ROSTER_SHEETS.items()}
    finally:
        wb.close()
