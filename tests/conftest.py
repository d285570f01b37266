"""テスト共通設定"""

import sys
from datetime import date
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from utils.helpers import load_config
from store.base import VisitRecord
from store.memory import InMemoryRecordStore

CONFIG = load_config(str(PROJECT_ROOT / "config.yaml"))

USER_NAMES = ["田中太郎", "佐藤花子", "鈴木一郎"]
STAFF_NAMES = ["山田花子", "高橋次郎"]


def make_visit(
    id: str,
    user_name: str = "田中太郎",
    start_time: str = "09:00",
    service_content: str = "",
    service_date: date = date(2026, 1, 5),
    end_time: str = "10:00",
    pattern_id: str | None = None,
) -> VisitRecord:
    """テスト用の訪問記録を作る"""
    return VisitRecord(
        id=id,
        user_name=user_name,
        staff_name="山田花子",
        service_date=service_date,
        start_time=start_time,
        end_time=end_time,
        service_content=service_content,
        duration_minutes=60,
        pattern_id=pattern_id,
    )


def make_csv_row(**overrides) -> dict:
    """CSV1行分（ヘッダー名→値）。引数はフィールド名で上書きする"""
    columns = CONFIG["csv_columns"]
    values = {
        "user_name": "田中太郎",
        "staff_name": "山田花子",
        "service_date": "2026-01-05",
        "start_time": "9:00",
        "end_time": "10:00",
        "duration_minutes": "60",
        "service_content": "食事介助",
        "service_type": "身体介護",
        "user_code": "U001",
        "staff_code": "S001",
        "user_name_kana": "タナカタロウ",
    }
    values.update(overrides)
    return {columns[k]: v for k, v in values.items()}


@pytest.fixture
def roster_store():
    """利用者・職員マスタ入りのメモリストア"""
    return InMemoryRecordStore(USER_NAMES, STAFF_NAMES)
