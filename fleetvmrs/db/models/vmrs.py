from __future__ import annotations

from datetime import datetime

import sqlalchemy as sa
from sqlalchemy import TIMESTAMP, Boolean, Enum, ForeignKey, JSON, Index, Numeric, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from fleetvmrs.db.base import Base
from fleetvmrs.db.types import BIGINT


DictionarySourceEnum = Enum("starter", "curated", name="vmrs_dictionary_source")


class VmrsDictionaryEntry(Base):
    __tablename__ = "vmrs_dictionary"

    id: Mapped[int] = mapped_column(BIGINT, primary_key=True, autoincrement=True)
    # NULL org_id marks a global entry shared by every organization.
    org_id: Mapped[int | None] = mapped_column(BIGINT)
    system_code: Mapped[str] = mapped_column(String(3), nullable=False)
    assembly_code: Mapped[str | None] = mapped_column(String(3))
    component_code: Mapped[str | None] = mapped_column(String(3))
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    keywords: Mapped[list | None] = mapped_column(JSON)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default=sa.true())
    source: Mapped[str] = mapped_column(DictionarySourceEnum, nullable=False, server_default="curated")
    created_at: Mapped[datetime | None] = mapped_column(TIMESTAMP, server_default=func.now())
    updated_at: Mapped[datetime | None] = mapped_column(
        TIMESTAMP,
        server_default=func.now(),
        onupdate=func.now(),
    )

    __table_args__ = (
        Index("ix_vmrs_dictionary_org_active", "org_id", "is_active"),
        Index("ix_vmrs_dictionary_org_system", "org_id", "system_code"),
    )


class VmrsMappingFeedback(Base):
    __tablename__ = "vmrs_mapping_feedback"

    id: Mapped[int] = mapped_column(BIGINT, primary_key=True, autoincrement=True)
    org_id: Mapped[int] = mapped_column(BIGINT, nullable=False)
    part_id: Mapped[int] = mapped_column(BIGINT, ForeignKey("parts.id", ondelete="CASCADE"), nullable=False)

    suggested_system_code: Mapped[str] = mapped_column(String(3), nullable=False)
    suggested_assembly_code: Mapped[str | None] = mapped_column(String(3))
    suggested_component_code: Mapped[str | None] = mapped_column(String(3))
    suggested_safety_system: Mapped[str | None] = mapped_column(String(32))
    confidence: Mapped[float | None] = mapped_column(Numeric(3, 2, asdecimal=False))

    accepted: Mapped[bool] = mapped_column(Boolean, nullable=False)
    accepted_system_code: Mapped[str | None] = mapped_column(String(3))
    accepted_assembly_code: Mapped[str | None] = mapped_column(String(3))
    accepted_component_code: Mapped[str | None] = mapped_column(String(3))
    accepted_safety_system: Mapped[str | None] = mapped_column(String(32))

    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    notes: Mapped[str | None] = mapped_column(Text)
    explanation: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime | None] = mapped_column(TIMESTAMP, server_default=func.now())

    __table_args__ = (
        Index("ix_vmrs_mapping_feedback_part", "part_id", "created_at"),
        Index("ix_vmrs_mapping_feedback_org_accepted", "org_id", "accepted"),
    )


class VmrsTextFeedback(Base):
    __tablename__ = "vmrs_text_feedback"

    id: Mapped[int] = mapped_column(BIGINT, primary_key=True, autoincrement=True)
    org_id: Mapped[int | None] = mapped_column(BIGINT)
    source_text: Mapped[str] = mapped_column(Text, nullable=False)
    source_notes: Mapped[str | None] = mapped_column(Text)
    source_type: Mapped[str] = mapped_column(String(32), nullable=False, server_default="checklist_item")

    suggested_system_code: Mapped[str | None] = mapped_column(String(3))
    suggested_title: Mapped[str | None] = mapped_column(String(255))
    suggested_confidence: Mapped[float | None] = mapped_column(Numeric(3, 2, asdecimal=False))
    selected_system_code: Mapped[str | None] = mapped_column(String(3))
    selected_title: Mapped[str | None] = mapped_column(String(255))

    was_auto_applied: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default=sa.false())
    was_skipped: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default=sa.false())
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    created_at: Mapped[datetime | None] = mapped_column(TIMESTAMP, server_default=func.now())

    __table_args__ = (Index("ix_vmrs_text_feedback_org_created", "org_id", "created_at"),)


__all__ = ["VmrsDictionaryEntry", "VmrsMappingFeedback", "VmrsTextFeedback"]
