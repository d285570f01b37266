"""名前正規化ユーティリティ

CSV取込時に利用者名・職員名の表記ブレを吸収するための正規化処理。

処理内容:
  1. 先頭記号の除去（〇、●、※ など1文字のみ）
  2. 括弧書きの除去（最初の（...）/(...)のみ）
  3. 空白の統一（全角スペース含む連続空白 → 半角スペース1つ）
  4. 全角英数字 → 半角（カタカナ・漢字はそのまま）

括弧書きは最初の1組しか除去しない。
例: "田中(仮)(旧姓)" → "田中(旧姓)"
"""

import re
from dataclasses import dataclass

# 先頭から1文字だけ除去する装飾記号
LEADING_SYMBOLS = "〇●※◯○▲△▼▽■□◆◇★☆"

_LEADING_SYMBOL_RE = re.compile(f"^[{LEADING_SYMBOLS}]")
_BRACKET_RE = re.compile(r"[（(][^）)]*[）)]")
_SPACES_RE = re.compile(r"\s+")  # \s は全角スペース(U+3000)も含む

# 全角ASCII (U+FF01〜U+FF5E) ⇔ 半角ASCII (U+0021〜U+007E)
_WIDTH_OFFSET = 0xFEE0
_TO_HALF = {c: c - _WIDTH_OFFSET for c in range(0xFF01, 0xFF5F)}
_TO_FULL = {c: c + _WIDTH_OFFSET for c in range(0x21, 0x7F)}

# 全角英字・数字のみ（記号は対象外）
_FULL_ALNUM = {
    c: c - _WIDTH_OFFSET
    for start, end in (("Ａ", "Ｚ"), ("ａ", "ｚ"), ("０", "９"))
    for c in range(ord(start), ord(end) + 1)
}

# ひらがな (U+3041〜U+3096) ⇔ カタカナ (U+30A1〜U+30F6)
_KANA_OFFSET = 0x60
_HIRA_TO_KATA = {c: c + _KANA_OFFSET for c in range(0x3041, 0x3097)}
_KATA_TO_HIRA = {c: c - _KANA_OFFSET for c in range(0x30A1, 0x30F7)}


@dataclass(frozen=True)
class NameNormalizationResult:
    """1つの名前の正規化結果（保存はしない派生データ）"""
    original: str
    cleaned_name: str = ""
    normalized: str = ""
    hiragana: str = ""
    katakana: str = ""
    half_width: str = ""
    full_width: str = ""


def to_half_width(text: str) -> str:
    """全角英数字・記号を半角に変換。例: '１２３ＡＢＣ' -> '123ABC'"""
    return text.translate(_TO_HALF)


def to_full_width(text: str) -> str:
    """半角英数字・記号を全角に変換。例: '123ABC' -> '１２３ＡＢＣ'"""
    return text.translate(_TO_FULL)


def hiragana_to_katakana(text: str) -> str:
    return text.translate(_HIRA_TO_KATA)


def katakana_to_hiragana(text: str) -> str:
    return text.translate(_KATA_TO_HIRA)


def clean_name(name: str | None) -> str:
    """不要な記号・括弧書き・余分な空白を除去する。

    例: '〇田中　太郎（仮名）' -> '田中 太郎'
    """
    if not name:
        return ""
    cleaned = _LEADING_SYMBOL_RE.sub("", name)
    cleaned = _BRACKET_RE.sub("", cleaned, count=1)
    cleaned = _SPACES_RE.sub(" ", cleaned)
    return cleaned.strip()


def normalize_name(name: str | None) -> NameNormalizationResult:
    """名前を正規化し、比較用の各種表記をまとめて返す。

    - None/空文字 -> 全フィールド空文字
    - normalized: clean_name後に全角英数字のみ半角化（カタカナは保持）
    - hiragana/katakana/half_width/full_width: clean_name後の文字列から変換
    """
    if not name:
        return NameNormalizationResult(original=name or "")

    cleaned = clean_name(name)
    return NameNormalizationResult(
        original=name,
        cleaned_name=cleaned,
        normalized=cleaned.translate(_FULL_ALNUM),
        hiragana=katakana_to_hiragana(cleaned),
        katakana=hiragana_to_katakana(cleaned),
        half_width=to_half_width(cleaned),
        full_width=to_full_width(cleaned),
    )


def normalize_name_with_options(
    name: str | None,
    remove_symbols: bool = True,
    remove_brackets: bool = True,
    to_hiragana: bool = True,
    half_width: bool = True,
    trim_spaces: bool = True,
) -> str:
    """オプション指定で1種類の正規化文字列を作る。

    名前パターンの照合キーなど、ひらがな・半角に寄せた表記が欲しい場合に使う。
    normalize_name() と違い、括弧書きは全て除去する。
    """
    if not name:
        return ""

    result = name
    if remove_symbols:
        result = _LEADING_SYMBOL_RE.sub("", result)
    if remove_brackets:
        result = _BRACKET_RE.sub("", result)
    if half_width:
        result = to_half_width(result)
    if to_hiragana:
        result = katakana_to_hiragana(result)
    if trim_spaces:
        result = _SPACES_RE.sub(" ", result).strip()
    return result
