"""パターン詳細（ケア内容のひな形）生成

グループ内の訪問記録のサービス内容からキーワードを拾い、
パターン詳細の該当項目をオンにする。全項目オフのひな形から開始する。
"""

from store.base import VisitRecord


def default_pattern_details() -> dict:
    """全項目オフのパターン詳細"""
    return {
        "pre_check": {
            "health_check": False,
            "environment_setup": False,
            "consultation_record": False,
        },
        "excretion": {
            "toilet_assistance": False,
            "portable_toilet": False,
            "diaper_change": False,
            "pad_change": False,
            "cleaning": False,
            "bowel_movement_count": 0,
            "urination_count": 0,
        },
        "meal": {
            "full_assistance": False,
            "completion_status": "",
            "water_intake": 0,
        },
        "body_care": {
            "body_wipe": "",
            "full_body_bath": False,
            "partial_bath_hand": False,
            "partial_bath_foot": False,
            "hair_wash": False,
            "face_wash": False,
            "grooming": False,
            "oral_care": False,
        },
        "medication": {
            "medication_assistance": False,
            "ointment_eye_drops": False,
            "sputum_suction": False,
        },
        "life_support": {
            "cleaning": {"room_cleaning": False, "toilet_cleaning": False},
            "laundry": {"washing_drying": False, "folding_storage": False},
            "cooking": {"general_cooking": False, "serving": False},
        },
    }


# (キーワード, [(パス, 値), ...])
KEYWORD_RULES = [
    (("トイレ", "排泄"), [(("excretion", "toilet_assistance"), True)]),
    (("おむつ", "オムツ"), [(("excretion", "diaper_change"), True)]),
    (("パッド",), [(("excretion", "pad_change"), True)]),
    (("食事", "食べ"), [
        (("meal", "full_assistance"), True),
        (("meal", "completion_status"), "完食"),
        (("meal", "water_intake"), 200),
    ]),
    (("入浴", "お風呂"), [(("body_care", "full_body_bath"), True)]),
    (("清拭",), [(("body_care", "body_wipe"), "部分")]),
    (("洗髪",), [(("body_care", "hair_wash"), True)]),
    (("口腔", "歯磨き"), [(("body_care", "oral_care"), True)]),
    (("服薬", "薬"), [(("medication", "medication_assistance"), True)]),
    (("掃除", "清掃"), [(("life_support", "cleaning", "room_cleaning"), True)]),
    (("洗濯",), [(("life_support", "laundry", "washing_drying"), True)]),
    (("調理", "料理"), [(("life_support", "cooking", "general_cooking"), True)]),
]


def _set_path(details: dict, path: tuple[str, ...], value) -> None:
    node = details
    for key in path[:-1]:
        node = node[key]
    node[path[-1]] = value


def build_pattern_details(records: list[VisitRecord]) -> dict:
    """訪問記録のサービス内容からパターン詳細を作る。

    1件でもキーワードを含む記録があれば該当項目をオンにする。
    """
    details = default_pattern_details()
    for r in records:
        content = (r.service_content or "").lower()
        for keywords, updates in KEYWORD_RULES:
            if any(k in content for k in keywords):
                for path, value in updates:
                    _set_path(details, path, value)
    return details
