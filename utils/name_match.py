"""名寄せユーティリティ: 利用者名・職員名のファジーマッチ

外部の予定管理システムから出力されたCSVでは、名前の表記がマスタと揃っていない
（先頭記号、括弧書き、全角スペース、カタカナ/ひらがな、漢字1文字違い等）。
類似度スコアに閾値を適用して同一人物かどうかを判定する。

マッチ種別の優先順位:
  1. exact     : 元の文字列が完全一致
  2. normalized: 正規化後の完全一致
  3. phonetic  : ひらがな表記 or カタカナ表記が一致
  4. partial   : 上記以外（部分一致の有無はdetailsに記録）

信頼度はスコアのみで決まる（high ≥ 0.9, medium ≥ 0.7, それ以外 low）。
"""

import math
from dataclasses import dataclass, field

from utils.name_normalizer import normalize_name
from utils.similarity import jaccard_similarity, levenshtein_distance, name_similarity

DEFAULT_THRESHOLD = 0.8
HIGH_CONFIDENCE = 0.9
MEDIUM_CONFIDENCE = 0.7


@dataclass(frozen=True)
class NameMatchDetails:
    exact_match: bool = False
    normalized_match: bool = False
    phonetic_match: bool = False
    partial_match: bool = False
    levenshtein_distance: float = math.inf
    jaccard_similarity: float = 0.0


@dataclass(frozen=True)
class NameMatchResult:
    """2つの名前の照合結果"""
    score: float = 0.0
    is_match: bool = False
    confidence: str = "low"      # high / medium / low
    match_type: str = "partial"  # exact / normalized / phonetic / partial
    details: NameMatchDetails = field(default_factory=NameMatchDetails)


@dataclass(frozen=True)
class NameCandidate:
    """候補名とその照合結果"""
    name: str
    result: NameMatchResult


def confidence_for(score: float) -> str:
    if score >= HIGH_CONFIDENCE:
        return "high"
    if score >= MEDIUM_CONFIDENCE:
        return "medium"
    return "low"


def match_names(
    name1: str | None,
    name2: str | None,
    threshold: float = DEFAULT_THRESHOLD,
) -> NameMatchResult:
    """2つの名前を照合する。

    空文字/Noneを含む場合は例外を出さず、スコア0の結果を返す。

    Args:
        name1: 比較する名前（CSV側）
        name2: 比較する名前（マスタ側）
        threshold: is_match判定の閾値

    Returns:
        NameMatchResult
    """
    if not name1 or not name2:
        return NameMatchResult()

    norm1 = normalize_name(name1)
    norm2 = normalize_name(name2)

    exact = name1 == name2
    normalized = norm1.normalized == norm2.normalized
    phonetic = norm1.hiragana == norm2.hiragana or norm1.katakana == norm2.katakana
    partial = norm2.normalized in norm1.normalized or norm1.normalized in norm2.normalized

    score = name_similarity(name1, name2)

    if exact:
        match_type = "exact"
    elif normalized:
        match_type = "normalized"
    elif phonetic:
        match_type = "phonetic"
    else:
        match_type = "partial"

    return NameMatchResult(
        score=score,
        is_match=score >= threshold,
        confidence=confidence_for(score),
        match_type=match_type,
        details=NameMatchDetails(
            exact_match=exact,
            normalized_match=normalized,
            phonetic_match=phonetic,
            partial_match=partial,
            levenshtein_distance=levenshtein_distance(norm1.normalized, norm2.normalized),
            jaccard_similarity=jaccard_similarity(norm1.normalized, norm2.normalized),
        ),
    )


def find_best_match(
    target_name: str | None,
    candidates: list[str],
    threshold: float = DEFAULT_THRESHOLD,
) -> NameCandidate | None:
    """候補リストから閾値を超えた中で最もスコアの高い名前を返す。

    同点の場合は先に出現した候補を優先する。

    Returns:
        NameCandidate。閾値を超える候補がなければNone。
    """
    if not target_name or not candidates:
        return None

    best: NameCandidate | None = None
    best_score = 0.0
    for name in candidates:
        result = match_names(target_name, name, threshold)
        if result.is_match and result.score > best_score:
            best_score = result.score
            best = NameCandidate(name=name, result=result)
    return best


def rank_name_candidates(
    target_name: str | None,
    candidates: list[str],
    min_threshold: float = 0.5,
) -> list[NameCandidate]:
    """スコアがmin_threshold以上の候補をスコア降順で返す（要確認リスト用）。"""
    if not target_name or not candidates:
        return []

    ranked = [
        NameCandidate(name=name, result=match_names(target_name, name, min_threshold))
        for name in candidates
    ]
    ranked = [c for c in ranked if c.result.score >= min_threshold]
    ranked.sort(key=lambda c: c.result.score, reverse=True)
    return ranked
