from __future__ import annotations

from datetime import datetime

from sqlalchemy import TIMESTAMP, JSON, Index, Numeric, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from fleetvmrs.db.base import Base
from fleetvmrs.db.types import BIGINT


class Part(Base):
    __tablename__ = "parts"

    id: Mapped[int] = mapped_column(BIGINT, primary_key=True, autoincrement=True)
    org_id: Mapped[int] = mapped_column(BIGINT, nullable=False)
    part_number: Mapped[str] = mapped_column(String(128), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)

    vmrs_system_code: Mapped[str | None] = mapped_column(String(3))
    vmrs_assembly_code: Mapped[str | None] = mapped_column(String(3))
    vmrs_component_code: Mapped[str | None] = mapped_column(String(3))
    safety_system: Mapped[str | None] = mapped_column(String(32))

    vmrs_suggestion_last: Mapped[dict | None] = mapped_column(JSON)
    vmrs_confidence_last: Mapped[float | None] = mapped_column(Numeric(3, 2, asdecimal=False))
    vmrs_last_suggested_at: Mapped[datetime | None] = mapped_column(TIMESTAMP)

    created_at: Mapped[datetime | None] = mapped_column(TIMESTAMP, server_default=func.now())
    updated_at: Mapped[datetime | None] = mapped_column(
        TIMESTAMP,
        server_default=func.now(),
        onupdate=func.now(),
    )

    __table_args__ = (
        Index("ix_parts_org_number", "org_id", "part_number"),
        Index("ix_parts_org_vmrs", "org_id", "vmrs_system_code"),
    )


__all__ = ["Part"]
