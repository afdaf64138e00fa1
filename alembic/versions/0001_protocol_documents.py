"""Protocol document table

Revision ID: 0001_protocol_documents
Revises:
Create Date: 2026-10-19

"""

from collections.abc import Sequence

from alembic import op
import sqlalchemy as sa


revision: str = "0001_protocol_documents"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "protocol_documents",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("kind", sa.String(length=64), server_default=sa.text("'protocols'"), nullable=False),
        sa.Column("path", sa.String(length=512), nullable=False),
        sa.Column("doc_id", sa.String(length=256), nullable=False),
        sa.Column("month", sa.String(length=64), nullable=True),
        sa.Column("week", sa.String(length=64), nullable=True),
        sa.Column("data", sa.JSON(), nullable=False),
        sa.Column("version", sa.Integer(), server_default=sa.text("1"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("kind", "path", name="uq_protocol_documents_kind_path"),
    )
    op.create_index("ix_protocol_documents_kind", "protocol_documents", ["kind"])
    op.create_index("ix_protocol_documents_doc_id", "protocol_documents", ["doc_id"])


def downgrade() -> None:
    op.drop_index("ix_protocol_documents_doc_id", table_name="protocol_documents")
    op.drop_index("ix_protocol_documents_kind", table_name="protocol_documents")
    op.drop_table("protocol_documents")
