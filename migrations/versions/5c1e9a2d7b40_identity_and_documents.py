"""identity and documents

Revision ID: 5c1e9a2d7b40
Revises:
Create Date: 2026-10-17 09:12:44.318207

"""
from __future__ import annotations

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "5c1e9a2d7b40"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create identity, auth state, login history and document tables."""
    op.create_table(
        "identity",
        sa.Column("address", sa.String(length=42), nullable=False),
        sa.Column("display_name", sa.String(length=50), nullable=True),
        sa.Column("email", sa.Text(), nullable=True),
        sa.Column("email_verified", sa.Boolean(), nullable=False),
        sa.Column("legal_name", sa.Text(), nullable=True),
        sa.Column("date_of_birth", sa.Text(), nullable=True),
        sa.Column("national_uid", sa.Text(), nullable=True),
        sa.Column("photo_cid", sa.Text(), nullable=True),
        sa.Column("kyc_verified", sa.Boolean(), nullable=False),
        sa.Column("roles", sa.JSON(), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("address"),
    )
    op.create_index("ix_identity_email", "identity", ["email"])

    op.create_table(
        "identity_auth_state",
        sa.Column("address", sa.String(length=42), nullable=False),
        sa.Column("current_nonce", sa.Text(), nullable=True),
        sa.Column("last_nonce_generated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("auth_attempts", sa.Integer(), nullable=False),
        sa.Column("locked_until", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_login", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["address"], ["identity.address"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("address"),
    )

    op.create_table(
        "login_event",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("address", sa.String(length=42), nullable=False),
        sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False),
        sa.Column("source_address", sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(["address"], ["identity.address"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_login_event_address", "login_event", ["address"])

    op.create_table(
        "document",
        sa.Column("doc_id", sa.String(length=66), nullable=False),
        sa.Column("doc_code", sa.Text(), nullable=False),
        sa.Column("issuer", sa.String(length=42), nullable=False),
        sa.Column("recipient", sa.String(length=42), nullable=False),
        sa.Column("ipfs_hash", sa.Text(), nullable=False),
        sa.Column("file_name", sa.Text(), nullable=True),
        sa.Column("file_type", sa.Text(), nullable=True),
        sa.Column("file_size", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("doc_id"),
    )
    op.create_index("ix_document_issuer", "document", ["issuer"])
    op.create_index("ix_document_recipient", "document", ["recipient"])


def downgrade() -> None:
    """Drop all registry tables."""
    op.drop_index("ix_document_recipient", table_name="document")
    op.drop_index("ix_document_issuer", table_name="document")
    op.drop_table("document")
    op.drop_index("ix_login_event_address", table_name="login_event")
    op.drop_table("login_event")
    op.drop_table("identity_auth_state")
    op.drop_index("ix_identity_email", table_name="identity")
    op.drop_table("identity")
