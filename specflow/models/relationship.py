"""
SpecFlow
Relationship (traceability) model.

Models:
    - DocumentLink: directed parent → child edge between two documents
      (epic → story → technical spec → test case, or any other hierarchy)

The set of all links must stay a DAG; cycle checks happen in
services/relationship_service.py before insert. The unique constraint
guarantees at most one edge per ordered pair.
"""

from datetime import datetime, timezone

from specflow.models import db


class DocumentLink(db.Model):
    """Parent → child relationship between documents."""

    __tablename__ = "document_links"

    id = db.Column(db.Integer, primary_key=True)
    parent_id = db.Column(
        db.String(36), db.ForeignKey("documents.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    child_id = db.Column(
        db.String(36), db.ForeignKey("documents.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    created_by = db.Column(db.String(150), nullable=False)
    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    # ── Constraints ──────────────────────────────────────────────────────
    __table_args__ = (
        db.UniqueConstraint("parent_id", "child_id", name="uq_document_link"),
        db.CheckConstraint("parent_id <> child_id", name="ck_document_link_not_self"),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "parent_id": self.parent_id,
            "child_id": self.child_id,
            "created_by": self.created_by,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<DocumentLink {self.parent_id} → {self.child_id}>"
