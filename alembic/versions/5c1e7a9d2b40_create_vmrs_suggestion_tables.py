"""create parts and vmrs suggestion tables

Revision ID: 5c1e7a9d2b40
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "5c1e7a9d2b40"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

DICTIONARY_SOURCE_ENUM = sa.Enum("starter", "curated", name="vmrs_dictionary_source")


def _timestamps(with_update: bool = True) -> list[sa.Column]:
    columns = [sa.Column("created_at", sa.TIMESTAMP(), server_default=sa.text("CURRENT_TIMESTAMP"))]
    if with_update:
        columns.append(
            sa.Column(
                "updated_at",
                sa.TIMESTAMP(),
                server_default=sa.text("CURRENT_TIMESTAMP"),
                server_onupdate=sa.text("CURRENT_TIMESTAMP"),
            )
        )
    return columns


def upgrade() -> None:
    conn = op.get_bind()
    DICTIONARY_SOURCE_ENUM.create(conn, checkfirst=True)

    op.create_table(
        "parts",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("org_id", sa.BigInteger(), nullable=False),
        sa.Column("part_number", sa.String(length=128), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("vmrs_system_code", sa.String(length=3), nullable=True),
        sa.Column("vmrs_assembly_code", sa.String(length=3), nullable=True),
        sa.Column("vmrs_component_code", sa.String(length=3), nullable=True),
        sa.Column("safety_system", sa.String(length=32), nullable=True),
        sa.Column("vmrs_suggestion_last", sa.JSON(), nullable=True),
        sa.Column("vmrs_confidence_last", sa.Numeric(3, 2), nullable=True),
        sa.Column("vmrs_last_suggested_at", sa.TIMESTAMP(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_parts_org_number", "parts", ["org_id", "part_number"])
    op.create_index("ix_parts_org_vmrs", "parts", ["org_id", "vmrs_system_code"])

    op.create_table(
        "vmrs_dictionary",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("org_id", sa.BigInteger(), nullable=True),
        sa.Column("system_code", sa.String(length=3), nullable=False),
        sa.Column("assembly_code", sa.String(length=3), nullable=True),
        sa.Column("component_code", sa.String(length=3), nullable=True),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("keywords", sa.JSON(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("source", DICTIONARY_SOURCE_ENUM, nullable=False, server_default="curated"),
        *_timestamps(),
    )
    op.create_index("ix_vmrs_dictionary_org_active", "vmrs_dictionary", ["org_id", "is_active"])
    op.create_index("ix_vmrs_dictionary_org_system", "vmrs_dictionary", ["org_id", "system_code"])

    op.create_table(
        "vmrs_mapping_feedback",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("org_id", sa.BigInteger(), nullable=False),
        sa.Column(
            "part_id",
            sa.BigInteger(),
            sa.ForeignKey("parts.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("suggested_system_code", sa.String(length=3), nullable=False),
        sa.Column("suggested_assembly_code", sa.String(length=3), nullable=True),
        sa.Column("suggested_component_code", sa.String(length=3), nullable=True),
        sa.Column("suggested_safety_system", sa.String(length=32), nullable=True),
        sa.Column("confidence", sa.Numeric(3, 2), nullable=True),
        sa.Column("accepted", sa.Boolean(), nullable=False),
        sa.Column("accepted_system_code", sa.String(length=3), nullable=True),
        sa.Column("accepted_assembly_code", sa.String(length=3), nullable=True),
        sa.Column("accepted_component_code", sa.String(length=3), nullable=True),
        sa.Column("accepted_safety_system", sa.String(length=32), nullable=True),
        sa.Column("user_id", sa.String(length=64), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("explanation", sa.Text(), nullable=True),
        *_timestamps(with_update=False),
    )
    op.create_index("ix_vmrs_mapping_feedback_part", "vmrs_mapping_feedback", ["part_id", "created_at"])
    op.create_index("ix_vmrs_mapping_feedback_org_accepted", "vmrs_mapping_feedback", ["org_id", "accepted"])

    op.create_table(
        "vmrs_text_feedback",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("org_id", sa.BigInteger(), nullable=True),
        sa.Column("source_text", sa.Text(), nullable=False),
        sa.Column("source_notes", sa.Text(), nullable=True),
        sa.Column("source_type", sa.String(length=32), nullable=False, server_default="checklist_item"),
        sa.Column("suggested_system_code", sa.String(length=3), nullable=True),
        sa.Column("suggested_title", sa.String(length=255), nullable=True),
        sa.Column("suggested_confidence", sa.Numeric(3, 2), nullable=True),
        sa.Column("selected_system_code", sa.String(length=3), nullable=True),
        sa.Column("selected_title", sa.String(length=255), nullable=True),
        sa.Column("was_auto_applied", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("was_skipped", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("user_id", sa.String(length=64), nullable=False),
        *_timestamps(with_update=False),
    )
    op.create_index("ix_vmrs_text_feedback_org_created", "vmrs_text_feedback", ["org_id", "created_at"])


def downgrade() -> None:
    op.drop_index("ix_vmrs_text_feedback_org_created", table_name="vmrs_text_feedback")
    op.drop_table("vmrs_text_feedback")

    op.drop_index("ix_vmrs_mapping_feedback_org_accepted", table_name="vmrs_mapping_feedback")
    op.drop_index("ix_vmrs_mapping_feedback_part", table_name="vmrs_mapping_feedback")
    op.drop_table("vmrs_mapping_feedback")

    op.drop_index("ix_vmrs_dictionary_org_system", table_name="vmrs_dictionary")
    op.drop_index("ix_vmrs_dictionary_org_active", table_name="vmrs_dictionary")
    op.drop_table("vmrs_dictionary")

    op.drop_index("ix_parts_org_vmrs", table_name="parts")
    op.drop_index("ix_parts_org_number", table_name="parts")
    op.drop_table("parts")

    DICTIONARY_SOURCE_ENUM.drop(op.get_bind(), checkfirst=True)
