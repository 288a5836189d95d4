"""Organization and global VMRS dictionary access, curation and seeding."""

from __future__ import annotations

import logging
from typing import Iterable

from sqlalchemy import select
from sqlalchemy.orm import Session

from fleetvmrs.db.models import VmrsDictionaryEntry
from fleetvmrs.services.vmrs_errors import DictionaryEntryNotFoundError
from fleetvmrs.services.vmrs_matcher import MatchCandidate, candidate_from_entry
from fleetvmrs.services.vmrs_rules import STARTER_SYSTEM_RULES, TaxonomyRule


logger = logging.getLogger(__name__)


def _scope_clause(org_id: int | None):
    if org_id is None:
        return VmrsDictionaryEntry.org_id.is_(None)
    return VmrsDictionaryEntry.org_id == org_id


class VmrsDictionaryService:
    def __init__(self, db: Session):
        self.db = db

    # ------------------------------------------------------------------ #
    # Reads
    # ------------------------------------------------------------------ #
    def get_active_entries(self, org_id: int) -> list[VmrsDictionaryEntry]:
        """Active entries for ``org_id`` followed by active global entries."""
        org_entries = self.db.scalars(
            select(VmrsDictionaryEntry)
            .where(VmrsDictionaryEntry.is_active.is_(True), VmrsDictionaryEntry.org_id == org_id)
            .order_by(VmrsDictionaryEntry.id)
        ).all()
        global_entries = self.db.scalars(
            select(VmrsDictionaryEntry)
            .where(VmrsDictionaryEntry.is_active.is_(True), VmrsDictionaryEntry.org_id.is_(None))
            .order_by(VmrsDictionaryEntry.id)
        ).all()
        return [*org_entries, *global_entries]

    def get_candidates(self, org_id: int | None) -> list[MatchCandidate]:
        if org_id is None:
            return []
        return [candidate_from_entry(entry) for entry in self.get_active_entries(org_id)]

    # ------------------------------------------------------------------ #
    # Curation
    # ------------------------------------------------------------------ #
    def create_entry(
        self,
        *,
        org_id: int | None,
        system_code: str,
        title: str,
        keywords: Iterable[str],
        assembly_code: str | None = None,
        component_code: str | None = None,
    ) -> VmrsDictionaryEntry:
        entry = VmrsDictionaryEntry(
            org_id=org_id,
            system_code=system_code,
            assembly_code=assembly_code,
            component_code=component_code,
            title=title,
            keywords=[keyword.strip() for keyword in keywords if keyword and keyword.strip()],
            is_active=True,
            source="curated",
        )
        self.db.add(entry)
        self.db.commit()
        self.db.refresh(entry)
        return entry

    def deactivate_entry(self, entry_id: int) -> VmrsDictionaryEntry:
        entry = self.db.get(VmrsDictionaryEntry, entry_id)
        if entry is None:
            raise DictionaryEntryNotFoundError(entry_id)
        entry.is_active = False
        self.db.commit()
        self.db.refresh(entry)
        return entry

    # ------------------------------------------------------------------ #
    # Seeding
    # ------------------------------------------------------------------ #
    def seed_dictionary(self, org_id: int | None = None, rules: Iterable[TaxonomyRule] = STARTER_SYSTEM_RULES) -> int:
        """Insert a system-level starter entry per rule unless one is already active.

        Returns the number of inserted rows; re-running on a seeded scope inserts none.
        """
        inserted = 0
        for rule in rules:
            if self._has_active_system_entry(org_id, rule.system_code):
                continue
            self.db.add(
                VmrsDictionaryEntry(
                    org_id=org_id,
                    system_code=rule.system_code,
                    title=rule.title,
                    keywords=list(rule.keywords),
                    is_active=True,
                    source="starter",
                )
            )
            # Flush so a repeated system code in ``rules`` sees the pending row.
            self.db.flush()
            inserted += 1

        self.db.commit()
        logger.info("Seeded %s VMRS dictionary entries for scope %s", inserted, org_id if org_id is not None else "global")
        return inserted

    def _has_active_system_entry(self, org_id: int | None, system_code: str) -> bool:
        existing = self.db.scalar(
            select(VmrsDictionaryEntry.id)
            .where(
                _scope_clause(org_id),
                VmrsDictionaryEntry.system_code == system_code,
                VmrsDictionaryEntry.assembly_code.is_(None),
                VmrsDictionaryEntry.component_code.is_(None),
                VmrsDictionaryEntry.is_active.is_(True),
            )
            .limit(1)
        )
        return existing is not None
