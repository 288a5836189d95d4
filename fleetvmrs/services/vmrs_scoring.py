"""Confidence scoring and ranking for keyword-based VMRS suggestions."""

from __future__ import annotations

from typing import Iterable, Sequence

from fleetvmrs.schemas.vmrs import VmrsSuggestion
from fleetvmrs.services.vmrs_rules import AMBIGUOUS_TERMS


DICTIONARY_BASE_CONFIDENCE = 0.75
MATCH_RATIO_WEIGHT = 0.15
MIN_KEYWORD_DENOMINATOR = 3
MULTI_MATCH_BONUS = 0.05
BROAD_MATCH_BONUS = 0.03
AMBIGUOUS_ONLY_PENALTY = 0.15


def score_confidence(matched_keywords: Sequence[str], total_keywords: int, base_confidence: float) -> float:
    matched = len(matched_keywords)
    confidence = base_confidence
    confidence += (matched / max(total_keywords, MIN_KEYWORD_DENOMINATOR)) * MATCH_RATIO_WEIGHT

    if matched >= 2:
        confidence += MULTI_MATCH_BONUS
    if matched >= 3:
        confidence += BROAD_MATCH_BONUS

    if matched and all(keyword in AMBIGUOUS_TERMS for keyword in matched_keywords):
        confidence -= AMBIGUOUS_ONLY_PENALTY

    return min(1.0, max(0.0, confidence))


def rank_suggestions(suggestions: Iterable[VmrsSuggestion], limit: int | None = None) -> list[VmrsSuggestion]:
    # sorted() is stable, so ties keep matcher order (dictionary before static rules).
    ranked = sorted(suggestions, key=lambda item: item.confidence, reverse=True)
    if limit is not None:
        ranked = ranked[:limit]
    return ranked


def needs_confirmation(top: VmrsSuggestion | None, threshold: float) -> bool:
    return top is None or top.confidence < threshold
