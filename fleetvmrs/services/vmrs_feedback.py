"""Append-only recording of human decisions on VMRS suggestions."""

from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from fleetvmrs.db.models import Part, VmrsMappingFeedback, VmrsTextFeedback
from fleetvmrs.schemas.vmrs import VmrsSuggestion
from fleetvmrs.services.vmrs_errors import PartNotFoundError
from fleetvmrs.services.vmrs_rules import get_rule, get_safety_system


logger = logging.getLogger(__name__)


class VmrsFeedbackService:
    def __init__(self, db: Session):
        self.db = db

    def accept_suggestion(
        self,
        part_id: int,
        user_id: str,
        suggestion: VmrsSuggestion,
        *,
        accepted_system_code: str | None = None,
        accepted_assembly_code: str | None = None,
        accepted_component_code: str | None = None,
        accepted_safety_system: str | None = None,
        notes: str | None = None,
    ) -> VmrsMappingFeedback:
        """Write the final codes onto the part and log an accepted feedback row.

        Overrides fall back to the suggestion's values. When the system code is
        overridden to a different system, the suggestion's assembly and
        component codes no longer apply and the safety system is re-derived.
        """
        part = self._get_part(part_id)

        final_system = accepted_system_code or suggestion.system_code
        same_system = final_system == suggestion.system_code
        final_assembly = accepted_assembly_code or (suggestion.assembly_code if same_system else None)
        final_component = accepted_component_code or (suggestion.component_code if same_system else None)
        final_safety = accepted_safety_system or (
            suggestion.safety_system if same_system else get_safety_system(final_system)
        )

        part.vmrs_system_code = final_system
        part.vmrs_assembly_code = final_assembly
        part.vmrs_component_code = final_component
        part.safety_system = final_safety
        part.vmrs_suggestion_last = suggestion.model_dump(mode="json")
        part.vmrs_confidence_last = round(suggestion.confidence, 2)

        feedback = self._build_feedback(part, user_id, suggestion, accepted=True, notes=notes)
        feedback.accepted_system_code = final_system
        feedback.accepted_assembly_code = final_assembly
        feedback.accepted_component_code = final_component
        feedback.accepted_safety_system = final_safety
        self.db.add(feedback)
        self.db.commit()
        self.db.refresh(feedback)

        logger.info(
            "Part %s: VMRS %s accepted by %s (suggested %s)",
            part_id,
            final_system,
            user_id,
            suggestion.system_code,
        )
        return feedback

    def reject_suggestion(
        self,
        part_id: int,
        user_id: str,
        suggestion: VmrsSuggestion,
        *,
        notes: str | None = None,
    ) -> VmrsMappingFeedback:
        part = self._get_part(part_id)
        feedback = self._build_feedback(part, user_id, suggestion, accepted=False, notes=notes)
        self.db.add(feedback)
        self.db.commit()
        self.db.refresh(feedback)
        logger.info("Part %s: VMRS %s rejected by %s", part_id, suggestion.system_code, user_id)
        return feedback

    def record_text_feedback(
        self,
        source_text: str,
        user_id: str,
        *,
        source_notes: str | None = None,
        suggestion: VmrsSuggestion | None = None,
        selected_system_code: str | None = None,
        selected_title: str | None = None,
        was_auto_applied: bool = False,
        was_skipped: bool = False,
        org_id: int | None = None,
        source_type: str = "checklist_item",
    ) -> VmrsTextFeedback:
        if selected_system_code and not selected_title:
            rule = get_rule(selected_system_code)
            selected_title = rule.title if rule else None

        feedback = VmrsTextFeedback(
            org_id=org_id,
            source_text=source_text,
            source_notes=source_notes or None,
            source_type=source_type,
            suggested_system_code=suggestion.system_code if suggestion else None,
            suggested_title=suggestion.title if suggestion else None,
            suggested_confidence=round(suggestion.confidence, 2) if suggestion else None,
            selected_system_code=selected_system_code or None,
            selected_title=selected_title,
            was_auto_applied=was_auto_applied,
            was_skipped=was_skipped,
            user_id=user_id,
        )
        self.db.add(feedback)
        self.db.commit()
        self.db.refresh(feedback)
        logger.info(
            'Saved VMRS text feedback for "%s" selected: %s',
            source_text[:50],
            selected_system_code or "skipped",
        )
        return feedback

    def _get_part(self, part_id: int) -> Part:
        part = self.db.get(Part, part_id)
        if part is None:
            raise PartNotFoundError(part_id)
        return part

    @staticmethod
    def _build_feedback(
        part: Part,
        user_id: str,
        suggestion: VmrsSuggestion,
        *,
        accepted: bool,
        notes: str | None,
    ) -> VmrsMappingFeedback:
        return VmrsMappingFeedback(
            org_id=part.org_id,
            part_id=part.id,
            suggested_system_code=suggestion.system_code,
            suggested_assembly_code=suggestion.assembly_code,
            suggested_component_code=suggestion.component_code,
            suggested_safety_system=suggestion.safety_system,
            confidence=round(suggestion.confidence, 2),
            accepted=accepted,
            user_id=user_id,
            notes=notes,
            explanation=suggestion.explanation,
        )
