"""名前解決・パターン学習

CSVの利用者名・職員名を、学習済みパターン → マスタ名簿 の順で正式名に解決する。
解決できない名前は例外にせず「要確認」として近い候補を添えて返す。

解決の優先順位:
  1. 学習済みパターン（閾値0.9）… 信頼度high、使用回数を加算（呼び出し側）
  2. マスタ名簿のベストマッチ（閾値0.8）… 信頼度lowなら要確認
  3. 未解決 … 要確認、スコア0.5超の候補を最大5件

信頼度highで解決した名前は、同じ表記のパターンがなければ新規パターンとして学習する。
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime

from store.base import NameResolutionPattern
from utils.name_match import NameMatchResult, find_best_match, match_names

logger = logging.getLogger(__name__)

LEARNED_PATTERN_CONFIDENCE = 0.9


@dataclass(frozen=True)
class ResolutionSettings:
    match_threshold: float = 0.8
    pattern_threshold: float = 0.9
    candidate_min_score: float = 0.5
    max_candidates: int = 5

    @classmethod
    def from_config(cls, config: dict) -> "ResolutionSettings":
        conf = config.get("name_matching", {}) or {}
        return cls(
            match_threshold=conf.get("match_threshold", cls.match_threshold),
            pattern_threshold=conf.get("pattern_threshold", cls.pattern_threshold),
            candidate_min_score=conf.get("candidate_min_score", cls.candidate_min_score),
            max_candidates=conf.get("max_candidates", cls.max_candidates),
        )


@dataclass(frozen=True)
class AlternativeCandidate:
    name: str
    score: float
    source: str = "database"  # database / pattern / manual


@dataclass
class NameResolutionResult:
    """1つの名前の解決結果"""
    original_name: str
    resolved_name: str | None = None
    match_result: NameMatchResult | None = None
    is_resolved: bool = False
    confidence: str = "low"
    alternative_candidates: list[AlternativeCandidate] = field(default_factory=list)
    requires_manual_review: bool = True
    pattern_id: str | None = None


def _alternatives(
    name: str, existing_names: list[str], settings: ResolutionSettings
) -> list[AlternativeCandidate]:
    scored = [
        AlternativeCandidate(name=c, score=match_names(name, c).score)
        for c in existing_names
    ]
    scored = [c for c in scored if c.score > settings.candidate_min_score]
    scored.sort(key=lambda c: c.score, reverse=True)
    return scored[: settings.max_candidates]


def resolve_name(
    original_name: str | None,
    existing_names: list[str],
    patterns: list[NameResolutionPattern],
    settings: ResolutionSettings = ResolutionSettings(),
) -> NameResolutionResult:
    """名前を1件解決する。I/Oは行わない。

    Args:
        original_name: CSV上の名前
        existing_names: マスタ名簿（利用者 or 職員）
        patterns: 学習済みパターン（is_active=Falseは無視）
        settings: 閾値設定

    Returns:
        NameResolutionResult（パターンで解決した場合はpattern_idが入る）
    """
    if not original_name:
        return NameResolutionResult(original_name=original_name or "")

    for pattern in patterns:
        if not pattern.is_active:
            continue
        result = match_names(original_name, pattern.original_pattern, settings.pattern_threshold)
        if result.is_match:
            return NameResolutionResult(
                original_name=original_name,
                resolved_name=pattern.resolved_name,
                match_result=result,
                is_resolved=True,
                confidence="high",
                requires_manual_review=False,
                pattern_id=pattern.id,
            )

    best = find_best_match(original_name, existing_names, settings.match_threshold)
    if best is not None:
        if best.result.match_type != "exact":
            logger.info(
                "名寄せ(%s): '%s' → '%s' (score=%.3f)",
                best.result.match_type, original_name, best.name, best.result.score,
            )
        return NameResolutionResult(
            original_name=original_name,
            resolved_name=best.name,
            match_result=best.result,
            is_resolved=True,
            confidence=best.result.confidence,
            requires_manual_review=best.result.confidence == "low",
        )

    alternatives = _alternatives(original_name, existing_names, settings)
    logger.warning(
        "【要確認】名寄せ失敗: '%s' がマスタに見つかりませんでした。候補: %s",
        original_name, [c.name for c in alternatives] or "なし",
    )
    return NameResolutionResult(
        original_name=original_name,
        alternative_candidates=alternatives,
    )


def learn_patterns(
    resolutions: list[NameResolutionResult],
    existing_patterns: list[NameResolutionPattern],
    now: datetime | None = None,
) -> list[NameResolutionPattern]:
    """信頼度highの解決結果から新しい名前パターンを作る（保存は呼び出し側）。

    同じ表記（original_pattern完全一致）の有効なパターンが既にあれば作らない。
    """
    now = now or datetime.now()
    known = {p.original_pattern for p in existing_patterns if p.is_active}
    learned = []
    for r in resolutions:
        if not (r.is_resolved and r.resolved_name and r.confidence == "high"):
            continue
        if r.original_name in known:
            continue
        known.add(r.original_name)
        learned.append(NameResolutionPattern(
            original_pattern=r.original_name,
            resolved_name=r.resolved_name,
            confidence=LEARNED_PATTERN_CONFIDENCE,
            usage_count=1,
            last_used=now,
            source="auto_learned",
        ))
    return learned
