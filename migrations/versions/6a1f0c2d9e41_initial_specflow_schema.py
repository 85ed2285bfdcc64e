"""initial_specflow_schema

Create documents, revisions, document_links and audit_logs.

Revision ID: 6a1f0c2d9e41
Revises:
Create Date: 2026-10-19 09:00:00.000000
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect as sa_inspect


# revision identifiers, used by Alembic.
revision = "6a1f0c2d9e41"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    existing_tables = set(sa_inspect(bind).get_table_names())

    if "documents" not in existing_tables:
        op.create_table(
            "documents",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("title", sa.String(length=300), nullable=False),
            sa.Column("body", sa.Text(), nullable=False),
            sa.Column("stage", sa.String(length=20), nullable=False),
            sa.Column("doc_type", sa.String(length=30), nullable=False),
            sa.Column("assignee", sa.String(length=150), nullable=True),
            sa.Column("tags", sa.JSON(), nullable=False),
            sa.Column("current_version", sa.Integer(), nullable=False),
            sa.Column("created_by", sa.String(length=150), nullable=False),
            sa.Column("updated_by", sa.String(length=150), nullable=False),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("idx_documents_stage", "documents", ["stage"])
        op.create_index("idx_documents_type", "documents", ["doc_type"])
        op.create_index("idx_documents_created_by", "documents", ["created_by"])

    if "revisions" not in existing_tables:
        op.create_table(
            "revisions",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("document_id", sa.String(length=36), nullable=False),
            sa.Column("version", sa.Integer(), nullable=False),
            sa.Column("body", sa.Text(), nullable=False),
            sa.Column("metadata_json", sa.JSON(), nullable=False),
            sa.Column("author", sa.String(length=150), nullable=False),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
            sa.ForeignKeyConstraint(["document_id"], ["documents.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("document_id", "version", name="uq_revision_document_version"),
        )
        op.create_index("ix_revisions_document_id", "revisions", ["document_id"])

    if "document_links" not in existing_tables:
        op.create_table(
            "document_links",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("parent_id", sa.String(length=36), nullable=False),
            sa.Column("child_id", sa.String(length=36), nullable=False),
            sa.Column("created_by", sa.String(length=150), nullable=False),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
            sa.ForeignKeyConstraint(["parent_id"], ["documents.id"], ondelete="CASCADE"),
            sa.ForeignKeyConstraint(["child_id"], ["documents.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("parent_id", "child_id", name="uq_document_link"),
            sa.CheckConstraint("parent_id <> child_id", name="ck_document_link_not_self"),
        )
        op.create_index("ix_document_links_parent_id", "document_links", ["parent_id"])
        op.create_index("ix_document_links_child_id", "document_links", ["child_id"])

    if "audit_logs" not in existing_tables:
        op.create_table(
            "audit_logs",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("entity_type", sa.String(length=30), nullable=False),
            sa.Column("entity_id", sa.String(length=80), nullable=False),
            sa.Column("action", sa.String(length=60), nullable=False),
            sa.Column("actor", sa.String(length=150), nullable=False),
            sa.Column("actor_role", sa.String(length=30), nullable=True),
            sa.Column("diff", sa.JSON(), nullable=False),
            sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("idx_audit_entity", "audit_logs", ["entity_type", "entity_id"])
        op.create_index("idx_audit_actor", "audit_logs", ["actor"])
        op.create_index("idx_audit_action", "audit_logs", ["action"])
        op.create_index("idx_audit_ts", "audit_logs", ["timestamp"])


def downgrade():
    op.drop_table("audit_logs")
    op.drop_table("document_links")
    op.drop_table("revisions")
    op.drop_table("documents")
