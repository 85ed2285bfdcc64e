"""
SpecFlow
Document domain models.

Models:
    - Document: a specification document with a workflow stage and a
      monotonically increasing version number
    - Revision: immutable snapshot of a document as it was before a
      content update (append-only, keyed by document_id + version)

Architecture:
    Document ──1:N──▶ Revision
    Document ──N:M──▶ Document  (via DocumentLink, see models/relationship.py)

Lifecycle states:
    Document.stage:  Idea → Draft → Review → Ready → InProgress → Done
                     Review → Draft (reject)
    Legal moves are defined in services/permission.py, not by stage order.
"""

import uuid
from datetime import datetime, timezone
from enum import Enum

from specflow.models import db


def _uuid():
    return str(uuid.uuid4())


def _utcnow():
    return datetime.now(timezone.utc)


# ── Constants ────────────────────────────────────────────────────────────────


class WorkflowStage(str, Enum):
    IDEA = "Idea"
    DRAFT = "Draft"
    REVIEW = "Review"
    READY = "Ready"
    IN_PROGRESS = "InProgress"
    DONE = "Done"


class DocumentType(str, Enum):
    EPIC = "epic"
    USER_STORY = "user-story"
    TECHNICAL_SPEC = "technical-spec"
    TEST_CASE = "test-case"


INITIAL_STAGE = WorkflowStage.IDEA
INITIAL_VERSION = 1


# ═════════════════════════════════════════════════════════════════════════════
# 1. Document
# ═════════════════════════════════════════════════════════════════════════════


class Document(db.Model):
    """
    Live state of a specification document.

    ``current_version`` starts at 1 and is bumped by exactly one on every
    content update, after the pre-update state has been archived as a
    Revision. Stage changes do not bump the version.
    """

    __tablename__ = "documents"
    __table_args__ = (
        db.Index("idx_documents_stage", "stage"),
        db.Index("idx_documents_type", "doc_type"),
        db.Index("idx_documents_created_by", "created_by"),
    )

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    title = db.Column(db.String(300), nullable=False)
    body = db.Column(db.Text, nullable=False, default="")
    stage = db.Column(
        db.String(20), nullable=False, default=INITIAL_STAGE.value,
        comment="Idea | Draft | Review | Ready | InProgress | Done",
    )
    doc_type = db.Column(
        db.String(30), nullable=False, default=DocumentType.USER_STORY.value,
        comment="epic | user-story | technical-spec | test-case",
    )
    assignee = db.Column(db.String(150), nullable=True)
    tags = db.Column(db.JSON, nullable=False, default=list)
    current_version = db.Column(db.Integer, nullable=False, default=INITIAL_VERSION)

    created_by = db.Column(db.String(150), nullable=False)
    updated_by = db.Column(db.String(150), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)

    revisions = db.relationship(
        "Revision",
        back_populates="document",
        lazy="dynamic",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def metadata_snapshot(self) -> dict:
        """Metadata as stored alongside a revision."""
        return {
            "title": self.title,
            "stage": self.stage,
            "type": self.doc_type,
            "assignee": self.assignee,
            "tags": list(self.tags or []),
        }

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "body": self.body,
            "stage": self.stage,
            "type": self.doc_type,
            "assignee": self.assignee,
            "tags": list(self.tags or []),
            "current_version": self.current_version,
            "created_by": self.created_by,
            "updated_by": self.updated_by,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self):
        return f"<Document {self.id}: {self.title!r} [{self.stage}] v{self.current_version}>"


# ═════════════════════════════════════════════════════════════════════════════
# 2. Revision
# ═════════════════════════════════════════════════════════════════════════════


class Revision(db.Model):
    """
    Immutable snapshot of a document's body and metadata.

    ``version`` is the version the document had *before* the save that
    produced this row. Rows are never updated; they go away only when the
    owning document is deleted.
    """

    __tablename__ = "revisions"
    __table_args__ = (
        db.UniqueConstraint("document_id", "version", name="uq_revision_document_version"),
    )

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    document_id = db.Column(
        db.String(36), db.ForeignKey("documents.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    version = db.Column(db.Integer, nullable=False)
    body = db.Column(db.Text, nullable=False, default="")
    metadata_json = db.Column(
        db.JSON, nullable=False, default=dict,
        comment="{title, stage, type, assignee, tags} at this version",
    )
    author = db.Column(db.String(150), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)

    document = db.relationship("Document", back_populates="revisions")

    def to_summary(self) -> dict:
        return {
            "id": self.id,
            "document_id": self.document_id,
            "version": self.version,
            "author": self.author,
            "timestamp": self.created_at.isoformat() if self.created_at else None,
        }

    def to_dict(self) -> dict:
        d = self.to_summary()
        d["body"] = self.body
        d["metadata"] = dict(self.metadata_json or {})
        return d

    def __repr__(self):
        return f"<Revision {self.document_id} v{self.version}>"
