"""Pydantic schemas for VMRS suggestion results."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field


SuggestionTier = Literal["keyword", "keyword+ai"]


class VmrsSuggestion(BaseModel):
    system_code: str
    assembly_code: str | None = None
    component_code: str | None = None
    title: str | None = None
    safety_system: str = "OTHER"
    confidence: float = Field(ge=0.0, le=1.0)
    explanation: str
    matched_keywords: list[str] = Field(default_factory=list)
    dictionary_entry_id: int | None = None
    ai_enhanced: bool = False


class PartSuggestionResult(BaseModel):
    part_id: int
    part_number: str
    part_name: str
    suggestions: list[VmrsSuggestion] = Field(default_factory=list)
    top_suggestion: VmrsSuggestion | None = None


class BatchSuggestionResult(BaseModel):
    results: list[PartSuggestionResult] = Field(default_factory=list)
    processed: int = 0
    high_confidence: int = 0
    failed_part_ids: list[int] = Field(default_factory=list)


class TextSuggestionResult(BaseModel):
    text: str
    notes: str | None = None
    suggestions: list[VmrsSuggestion] = Field(default_factory=list)
    top_suggestion: VmrsSuggestion | None = None
    needs_user_confirmation: bool = True
    # "keyword+ai" means escalation was attempted; ai_error names why it failed.
    tier: SuggestionTier = "keyword"
    ai_error: str | None = None
