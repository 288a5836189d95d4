"""Entry points that run the VMRS suggestion pipeline for parts and free text."""

from __future__ import annotations

import logging
from datetime import UTC, datetime

from sqlalchemy import select
from sqlalchemy.orm import Session

from fleetvmrs.core.config import settings
from fleetvmrs.db.models import Part
from fleetvmrs.schemas.vmrs import (
    BatchSuggestionResult,
    PartSuggestionResult,
    TextSuggestionResult,
    VmrsSuggestion,
)
from fleetvmrs.services.gemini_client import JsonGenerator
from fleetvmrs.services.vmrs_ai import VmrsAIError, classify_text_with_ai, merge_ai_suggestion
from fleetvmrs.services.vmrs_dictionary import VmrsDictionaryService
from fleetvmrs.services.vmrs_errors import PartNotFoundError
from fleetvmrs.services.vmrs_matcher import match_candidates
from fleetvmrs.services.vmrs_scoring import needs_confirmation, rank_suggestions
from fleetvmrs.services.vmrs_text import normalize_text


logger = logging.getLogger(__name__)


def build_part_search_text(part: Part) -> str:
    return " ".join([part.name, part.description or "", part.part_number])


class VmrsSuggestionService:
    """Suggests VMRS codes within one organization context.

    ``org_id`` scopes the dictionary lookup and the batch selection; free-text
    suggestions without it use the static rule set only.
    """

    def __init__(self, db: Session, org_id: int | None = None, ai_client: JsonGenerator | None = None):
        self.db = db
        self.org_id = org_id
        self.ai_client = ai_client
        self.dictionary = VmrsDictionaryService(db)

    # ------------------------------------------------------------------ #
    # Parts
    # ------------------------------------------------------------------ #
    def suggest_for_part(self, part_id: int) -> PartSuggestionResult:
        part = self.db.get(Part, part_id)
        if part is None:
            raise PartNotFoundError(part_id)

        org_id = self.org_id if self.org_id is not None else part.org_id
        suggestions = self._keyword_suggestions(
            build_part_search_text(part),
            org_id,
            settings.vmrs_part_suggestion_limit,
        )
        top = suggestions[0] if suggestions else None

        if top is not None:
            part.vmrs_suggestion_last = top.model_dump(mode="json")
            part.vmrs_confidence_last = round(top.confidence, 2)
            part.vmrs_last_suggested_at = datetime.now(UTC).replace(tzinfo=None)
            self.db.commit()

        logger.debug(
            "Part %s: %s VMRS suggestions (top=%s)",
            part_id,
            len(suggestions),
            top.system_code if top else None,
        )
        return PartSuggestionResult(
            part_id=part.id,
            part_number=part.part_number,
            part_name=part.name,
            suggestions=suggestions,
            top_suggestion=top,
        )

    def suggest_for_parts_without_codes(self, limit: int | None = None) -> BatchSuggestionResult:
        if self.org_id is None:
            raise ValueError("Batch suggestion requires an organization context")

        limit = settings.vmrs_batch_default_limit if limit is None else limit
        part_ids = self.db.scalars(
            select(Part.id)
            .where(Part.org_id == self.org_id, Part.vmrs_system_code.is_(None))
            .order_by(Part.id)
            .limit(limit)
        ).all()

        batch = BatchSuggestionResult()
        for part_id in part_ids:
            try:
                result = self.suggest_for_part(part_id)
            except Exception:
                logger.error("Error suggesting VMRS for part %s", part_id, exc_info=True)
                self.db.rollback()
                batch.failed_part_ids.append(part_id)
                continue
            batch.results.append(result)
            if result.top_suggestion and result.top_suggestion.confidence >= settings.vmrs_high_confidence_threshold:
                batch.high_confidence += 1

        batch.processed = len(batch.results)
        logger.info(
            "VMRS batch for org %s: %s processed, %s high confidence, %s skipped",
            self.org_id,
            batch.processed,
            batch.high_confidence,
            len(batch.failed_part_ids),
        )
        return batch

    # ------------------------------------------------------------------ #
    # Free text
    # ------------------------------------------------------------------ #
    def suggest_for_text(self, text: str, notes: str | None = None) -> TextSuggestionResult:
        suggestions = self._keyword_suggestions(
            " ".join([text, notes or ""]),
            self.org_id,
            settings.vmrs_text_suggestion_limit,
        )
        top = suggestions[0] if suggestions else None
        return TextSuggestionResult(
            text=text,
            notes=notes,
            suggestions=suggestions,
            top_suggestion=top,
            needs_user_confirmation=needs_confirmation(top, settings.vmrs_confirmation_threshold),
            tier="keyword",
        )

    def suggest_with_ai(self, text: str, notes: str | None = None) -> TextSuggestionResult:
        keyword_result = self.suggest_for_text(text, notes)
        top = keyword_result.top_suggestion
        if top is not None and top.confidence >= settings.vmrs_ai_escalation_threshold:
            return keyword_result

        try:
            ai_result = classify_text_with_ai(text, notes, client=self.ai_client)
        except VmrsAIError as exc:
            logger.warning("VMRS AI escalation failed (%s): %s", exc.kind, exc)
            return keyword_result.model_copy(update={"tier": "keyword+ai", "ai_error": exc.kind})

        merged = merge_ai_suggestion(keyword_result, ai_result)
        return merged.model_copy(update={"tier": "keyword+ai", "ai_error": None})

    # ------------------------------------------------------------------ #
    # Internal helpers
    # ------------------------------------------------------------------ #
    def _keyword_suggestions(self, search_text: str, org_id: int | None, limit: int) -> list[VmrsSuggestion]:
        tokens = normalize_text(search_text)
        if not tokens:
            return []
        candidates = self.dictionary.get_candidates(org_id)
        return rank_suggestions(match_candidates(tokens, candidates), limit)
