"""create file_records table

Revision ID: 0001_create_file_records
Revises: 
Create Date: 2026-10-17 00:00:00

"""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa

revision = "0001_create_file_records"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "file_records",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("filename", sa.String(length=255), nullable=False),
        sa.Column("key", sa.String(length=255), nullable=False),
        sa.Column("view_url", sa.String(length=1024), nullable=False),
        sa.Column("download_url", sa.String(length=1024), nullable=False),
        sa.Column("cover_image_url", sa.String(length=1024), nullable=True),
        sa.Column("uploaded_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_file_records_key", "file_records", ["key"], unique=False)
    op.create_index(
        "ix_file_records_uploaded_at", "file_records", ["uploaded_at"], unique=False
    )


def downgrade() -> None:
    op.drop_index("ix_file_records_uploaded_at", table_name="file_records")
    op.drop_index("ix_file_records_key", table_name="file_records")
    op.drop_table("file_records")
