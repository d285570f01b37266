"""名前の類似度計算

正規化済みの名前同士を比較し、0〜1のスコアを返す。

総合スコア = 0.4 × 編集距離類似度 + 0.3 × ジャッカード類似度 + 0.3 × 読み類似度
正規化後の表記が完全一致する場合は重み付けを計算せず 1.0。
"""

from Levenshtein import distance as _levenshtein

from utils.name_normalizer import normalize_name

SIMILARITY_WEIGHTS = {
    "levenshtein": 0.4,
    "jaccard": 0.3,
    "phonetic": 0.3,
}


def levenshtein_distance(s1: str, s2: str) -> int:
    """挿入・削除・置換をすべてコスト1とした編集距離"""
    return _levenshtein(s1, s2)


def levenshtein_similarity(s1: str, s2: str) -> float:
    """1 - 編集距離 / 長い方の文字数。両方空文字なら0。"""
    max_len = max(len(s1), len(s2))
    if max_len == 0:
        return 0.0
    return 1 - levenshtein_distance(s1, s2) / max_len


def jaccard_similarity(s1: str, s2: str) -> float:
    """文字集合のジャッカード係数（bigramではなく1文字単位）"""
    set1, set2 = set(s1), set(s2)
    union = set1 | set2
    if not union:
        return 0.0
    return len(set1 & set2) / len(union)


def phonetic_similarity(name1: str, name2: str) -> float:
    """ひらがな表記同士の編集距離類似度。

    カタカナ表記とひらがな表記の揺れ（タナカ / たなか）を吸収する。
    """
    return levenshtein_similarity(
        normalize_name(name1).hiragana,
        normalize_name(name2).hiragana,
    )


def name_similarity(name1: str | None, name2: str | None) -> float:
    """2つの名前の総合類似度（0〜1）。どちらかが空なら0。"""
    if not name1 or not name2:
        return 0.0

    norm1 = normalize_name(name1).normalized
    norm2 = normalize_name(name2).normalized
    if norm1 == norm2:
        return 1.0

    return (
        levenshtein_similarity(norm1, norm2) * SIMILARITY_WEIGHTS["levenshtein"]
        + jaccard_similarity(norm1, norm2) * SIMILARITY_WEIGHTS["jaccard"]
        + phonetic_similarity(name1, name2) * SIMILARITY_WEIGHTS["phonetic"]
    )
