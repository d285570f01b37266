"""名前正規化・類似度・名寄せ・共通ヘルパーのテスト"""

import math
import sys
from datetime import date, datetime, time
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from utils.helpers import (
    chunked,
    combine_date_time,
    is_valid_time_str,
    minutes_to_time_str,
    parse_time_str,
    time_to_minutes,
)
from utils.name_normalizer import (
    clean_name,
    hiragana_to_katakana,
    katakana_to_hiragana,
    normalize_name,
    normalize_name_with_options,
    to_full_width,
    to_half_width,
)
from utils.similarity import (
    jaccard_similarity,
    levenshtein_distance,
    levenshtein_similarity,
    name_similarity,
    phonetic_similarity,
)
from utils.name_match import (
    confidence_for,
    find_best_match,
    match_names,
    rank_name_candidates,
)


# ============================================================
# 名前正規化
# ============================================================

class TestNormalizeName:
    def test_symbol_bracket_and_space(self):
        """先頭記号・括弧書き・全角スペースを除去"""
        result = normalize_name("〇田中　太郎（仮名）")
        assert result.cleaned_name == "田中 太郎"
        assert result.normalized == "田中 太郎"
        assert result.original == "〇田中　太郎（仮名）"

    def test_half_width_bracket(self):
        assert clean_name("田中太郎(仮)") == "田中太郎"

    def test_only_first_bracket_removed(self):
        """括弧書きは最初の1組のみ除去"""
        assert clean_name("田中(仮)(旧姓)") == "田中(旧姓)"

    def test_only_one_leading_symbol_removed(self):
        assert clean_name("※※田中") == "※田中"

    def test_consecutive_spaces_collapsed(self):
        assert clean_name("  田中 　 太郎  ") == "田中 太郎"

    def test_full_width_alnum_to_half(self):
        assert normalize_name("ＡＢＣ１２３").normalized == "ABC123"

    def test_katakana_kept_in_normalized(self):
        """normalizedではカタカナをひらがなにしない"""
        assert normalize_name("タナカ　タロウ").normalized == "タナカ タロウ"

    def test_full_width_symbol_kept_in_normalized(self):
        """全角記号は英数字ではないので半角化しない"""
        assert normalize_name("Ａ－１").normalized == "A－1"

    def test_kana_forms(self):
        result = normalize_name("タナカ")
        assert result.hiragana == "たなか"
        assert result.katakana == "タナカ"
        assert normalize_name("たなか").katakana == "タナカ"

    def test_width_forms(self):
        result = normalize_name("ＡＢ１")
        assert result.half_width == "AB1"
        assert result.full_width == "ＡＢ１"

    @pytest.mark.parametrize("value", [None, ""])
    def test_empty(self, value):
        """None/空文字は全フィールド空"""
        result = normalize_name(value)
        assert result.original == ""
        assert result.cleaned_name == ""
        assert result.normalized == ""
        assert result.hiragana == ""

    @pytest.mark.parametrize("name", ["〇田中　太郎（仮名）", "ＡＢＣ　１２３", "●タナカ タロウ"])
    def test_normalized_is_idempotent(self, name):
        once = normalize_name(name).normalized
        assert normalize_name(once).normalized == once


class TestKanaWidth:
    def test_hiragana_katakana_roundtrip_chars(self):
        assert hiragana_to_katakana("ぁゖ") == "ァヶ"
        assert katakana_to_hiragana("ァヶ") == "ぁゖ"

    def test_long_vowel_untouched(self):
        assert katakana_to_hiragana("ケーキ") == "けーき"

    def test_width(self):
        assert to_half_width("１２３ＡＢＣ") == "123ABC"
        assert to_full_width("123ABC") == "１２３ＡＢＣ"

    def test_kanji_untouched(self):
        assert to_half_width("田中") == "田中"
        assert hiragana_to_katakana("田中") == "田中"


class TestNormalizeWithOptions:
    def test_defaults(self):
        """全括弧除去・半角化・ひらがな化"""
        assert normalize_name_with_options("〇タナカ(仮)(旧)") == "たなか"

    def test_keep_katakana(self):
        assert normalize_name_with_options("タナカ　Ｔ", to_hiragana=False) == "タナカ T"

    def test_empty(self):
        assert normalize_name_with_options(None) == ""


# ============================================================
# 類似度
# ============================================================

class TestSimilarity:
    def test_levenshtein_distance(self):
        assert levenshtein_distance("kitten", "sitting") == 3
        assert levenshtein_distance("", "abc") == 3

    def test_levenshtein_similarity(self):
        assert levenshtein_similarity("abc", "abd") == pytest.approx(2 / 3)
        assert levenshtein_similarity("", "") == 0.0

    def test_jaccard(self):
        """文字集合: {田,中,太,郎} と {田,中,太,朗} → 3/5"""
        assert jaccard_similarity("田中太郎", "田中太朗") == pytest.approx(0.6)
        assert jaccard_similarity("", "") == 0.0

    def test_phonetic_absorbs_kana(self):
        assert phonetic_similarity("タナカ", "たなか") == 1.0

    def test_one_char_difference(self):
        """0.4×0.75 + 0.3×0.6 + 0.3×0.75 = 0.705"""
        assert name_similarity("田中太郎", "田中太朗") == pytest.approx(0.705)

    def test_normalized_equal_is_one(self):
        assert name_similarity("〇田中　太郎（仮）", "田中 太郎") == 1.0

    def test_identity(self):
        assert name_similarity("佐藤花子", "佐藤花子") == 1.0

    @pytest.mark.parametrize("a,b", [("", "田中"), ("田中", None), (None, None)])
    def test_empty_is_zero(self, a, b):
        assert name_similarity(a, b) == 0.0

    @pytest.mark.parametrize("a,b", [
        ("田中太郎", "田中太朗"),
        ("タナカ", "たなか"),
        ("佐藤花子", "田中次郎"),
        ("ＡＢＣ", "abc"),
    ])
    def test_symmetric_and_bounded(self, a, b):
        score = name_similarity(a, b)
        assert score == pytest.approx(name_similarity(b, a))
        assert 0.0 <= score <= 1.0


# ============================================================
# 名寄せ
# ============================================================

class TestMatchNames:
    def test_exact(self):
        result = match_names("田中太郎", "田中太郎")
        assert result.match_type == "exact"
        assert result.score == 1.0
        assert result.is_match
        assert result.confidence == "high"
        assert result.details.exact_match
        assert result.details.levenshtein_distance == 0

    def test_normalized(self):
        result = match_names("〇田中太郎（仮）", "田中太郎")
        assert result.match_type == "normalized"
        assert result.score == 1.0
        assert result.details.normalized_match
        assert not result.details.exact_match

    def test_phonetic(self):
        """カタカナ/ひらがなの違い: 読み類似度のみ一致 → 0.3"""
        result = match_names("タナカ", "たなか")
        assert result.match_type == "phonetic"
        assert result.score == pytest.approx(0.3)
        assert not result.is_match
        assert result.confidence == "low"

    def test_partial(self):
        result = match_names("田中太郎様", "田中太郎")
        assert result.match_type == "partial"
        assert result.details.partial_match

    def test_one_char_difference_below_default_threshold(self):
        result = match_names("田中太朗", "田中太郎")
        assert not result.is_match
        assert result.confidence == "medium"

    def test_threshold_monotonic(self):
        """高い閾値で一致なら低い閾値でも一致"""
        for threshold in (0.9, 0.8, 0.7, 0.5):
            if match_names("田中太朗", "田中太郎", threshold).is_match:
                assert match_names("田中太朗", "田中太郎", threshold - 0.1).is_match

    @pytest.mark.parametrize("a,b", [("", "田中"), (None, "田中"), ("田中", "")])
    def test_empty_input(self, a, b):
        result = match_names(a, b)
        assert result.score == 0.0
        assert not result.is_match
        assert result.confidence == "low"
        assert result.match_type == "partial"
        assert math.isinf(result.details.levenshtein_distance)

    @pytest.mark.parametrize("score,expected", [
        (1.0, "high"), (0.9, "high"), (0.89, "medium"), (0.7, "medium"), (0.69, "low"), (0.0, "low"),
    ])
    def test_confidence(self, score, expected):
        assert confidence_for(score) == expected


class TestFindBestMatch:
    CANDIDATES = ["佐藤花子", "田中太郎", "田中次郎"]

    def test_best_with_lower_threshold(self):
        best = find_best_match("田中太朗", self.CANDIDATES, threshold=0.7)
        assert best.name == "田中太郎"
        assert best.result.score == pytest.approx(0.705)
        assert best.result.confidence == "medium"

    def test_none_above_threshold(self):
        assert find_best_match("田中太朗", self.CANDIDATES) is None

    def test_tie_keeps_first(self):
        best = find_best_match("田中 太郎", ["田中　太郎", "〇田中 太郎"])
        assert best.name == "田中　太郎"
        assert best.result.score == 1.0

    def test_empty(self):
        assert find_best_match("", self.CANDIDATES) is None
        assert find_best_match("田中太郎", []) is None

    def test_rank_candidates(self):
        ranked = rank_name_candidates("田中太朗", self.CANDIDATES, min_threshold=0.4)
        assert [c.name for c in ranked] == ["田中太郎", "田中次郎"]
        assert ranked[0].result.score >= ranked[1].result.score


# ============================================================
# 共通ヘルパー
# ============================================================

class TestHelpers:
    @pytest.mark.parametrize("value", ["9:00", "09:00", "23:59", "0:00"])
    def test_valid_time(self, value):
        assert is_valid_time_str(value)

    @pytest.mark.parametrize("value", ["24:00", "9:60", "9時", "", None, "09:0"])
    def test_invalid_time(self, value):
        assert not is_valid_time_str(value)

    def test_parse_time(self):
        assert parse_time_str("9:05") == time(9, 5)
        with pytest.raises(ValueError):
            parse_time_str("25:00")

    def test_minutes(self):
        assert time_to_minutes("10:30") == 630
        assert minutes_to_time_str(630) == "10:30"
        assert minutes_to_time_str(5) == "00:05"

    def test_combine_date_time(self):
        expected = datetime(2026, 1, 5, 9, 30)
        assert combine_date_time(date(2026, 1, 5), "9:30") == expected
        assert combine_date_time("2026-01-05", "09:30") == expected

    def test_chunked(self):
        assert list(chunked(range(5), 2)) == [[0, 1], [2, 3], [4]]
        assert list(chunked([], 3)) == []
        with pytest.raises(ValueError):
            list(chunked([1], 0))
