"""Keyword matcher over dictionary entries and the static VMRS rule set."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Literal, Sequence

from fleetvmrs.db.models import VmrsDictionaryEntry
from fleetvmrs.schemas.vmrs import VmrsSuggestion
from fleetvmrs.services.vmrs_rules import STARTER_SYSTEM_RULES, TaxonomyRule, get_safety_system
from fleetvmrs.services.vmrs_scoring import DICTIONARY_BASE_CONFIDENCE, score_confidence
from fleetvmrs.services.vmrs_text import join_tokens, normalize_text


CandidateSource = Literal["dictionary", "static_rule"]


@dataclass(frozen=True, slots=True)
class MatchCandidate:
    source: CandidateSource
    system_code: str
    title: str
    keywords: tuple[str, ...]
    base_confidence: float
    assembly_code: str | None = None
    component_code: str | None = None
    dictionary_entry_id: int | None = None

    @property
    def is_system_level(self) -> bool:
        return self.assembly_code is None and self.component_code is None


def build_keyword_set(keywords: Iterable[str], title: str) -> tuple[str, ...]:
    """Own keywords (lowercased) followed by normalized title tokens, first occurrence wins."""
    merged = [keyword.strip().lower() for keyword in keywords if keyword and keyword.strip()]
    merged.extend(normalize_text(title))
    return tuple(dict.fromkeys(merged))


def candidate_from_entry(entry: VmrsDictionaryEntry) -> MatchCandidate:
    raw_keywords = entry.keywords if isinstance(entry.keywords, list) else []
    return MatchCandidate(
        source="dictionary",
        system_code=entry.system_code,
        title=entry.title,
        keywords=build_keyword_set((str(item) for item in raw_keywords), entry.title),
        base_confidence=DICTIONARY_BASE_CONFIDENCE,
        assembly_code=entry.assembly_code or None,
        component_code=entry.component_code or None,
        dictionary_entry_id=entry.id,
    )


def candidate_from_rule(rule: TaxonomyRule) -> MatchCandidate:
    # Static rules match and score on their own keywords only, never on title words.
    return MatchCandidate(
        source="static_rule",
        system_code=rule.system_code,
        title=rule.title,
        keywords=tuple(keyword.lower() for keyword in rule.keywords),
        base_confidence=rule.base_confidence,
    )


STATIC_RULE_CANDIDATES: tuple[MatchCandidate, ...] = tuple(candidate_from_rule(rule) for rule in STARTER_SYSTEM_RULES)


def match_keywords(tokens: Sequence[str], keywords: Iterable[str]) -> list[str]:
    """Return the keywords present in ``tokens``.

    Single-word keywords need an exact token; phrases must appear as a
    substring of the joined token sequence, so word order and adjacency matter.
    """
    token_set = set(tokens)
    joined = join_tokens(list(tokens))
    matched: list[str] = []
    for keyword in keywords:
        if len(keyword.split()) == 1:
            if keyword in token_set:
                matched.append(keyword)
        elif keyword in joined:
            matched.append(keyword)
    return matched


def _build_suggestion(candidate: MatchCandidate, matched: list[str]) -> VmrsSuggestion:
    label = "dictionary entry" if candidate.source == "dictionary" else "system rule"
    return VmrsSuggestion(
        system_code=candidate.system_code,
        assembly_code=candidate.assembly_code,
        component_code=candidate.component_code,
        title=candidate.title,
        safety_system=get_safety_system(candidate.system_code),
        confidence=score_confidence(matched, len(candidate.keywords), candidate.base_confidence),
        explanation=f'Matched {label} "{candidate.title}" via keywords: {", ".join(matched)}',
        matched_keywords=matched,
        dictionary_entry_id=candidate.dictionary_entry_id,
    )


def match_candidates(
    tokens: Sequence[str],
    dictionary_candidates: Iterable[MatchCandidate] = (),
    rule_candidates: Iterable[MatchCandidate] = STATIC_RULE_CANDIDATES,
) -> list[VmrsSuggestion]:
    """Produce unranked suggestions, dictionary hits first.

    A static rule is dropped when a system-level dictionary hit for the same
    system code already exists.
    """
    if not tokens:
        return []

    suggestions: list[VmrsSuggestion] = []
    covered_systems: set[str] = set()

    for candidate in dictionary_candidates:
        matched = match_keywords(tokens, candidate.keywords)
        if not matched:
            continue
        suggestions.append(_build_suggestion(candidate, matched))
        if candidate.is_system_level:
            covered_systems.add(candidate.system_code)

    for candidate in rule_candidates:
        matched = match_keywords(tokens, candidate.keywords)
        if not matched or candidate.system_code in covered_systems:
            continue
        suggestions.append(_build_suggestion(candidate, matched))

    return suggestions
