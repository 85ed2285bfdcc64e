"""
SpecFlow
Audit domain model.

Models:
    - AuditLog: immutable, append-only trail of document lifecycle events.

Stage transitions are not snapshotted as revisions; this table is where a
document's workflow history lives.
"""

from datetime import datetime, timezone

from specflow.models import db

# ── Constants ────────────────────────────────────────────────────────────────

AUDIT_ENTITY_TYPES = {"document", "link"}

AUDIT_ACTIONS = {
    "document.create",
    "document.update",
    "document.transition",
    "document.delete",
    "link.create",
    "link.delete",
}


class AuditLog(db.Model):
    """
    One row per lifecycle event.

    ``diff`` carries old→new values for the fields the event changed,
    e.g. ``{"stage": {"old": "Idea", "new": "Draft"}}``.
    """

    __tablename__ = "audit_logs"
    __table_args__ = (
        db.Index("idx_audit_entity", "entity_type", "entity_id"),
        db.Index("idx_audit_actor", "actor"),
        db.Index("idx_audit_action", "action"),
        db.Index("idx_audit_ts", "timestamp"),
    )

    id = db.Column(db.Integer, primary_key=True)

    # Polymorphic entity reference
    entity_type = db.Column(db.String(30), nullable=False, comment="document | link")
    entity_id = db.Column(
        db.String(80), nullable=False,
        comment="Document id, or 'parent_id->child_id' for links",
    )

    # What happened
    action = db.Column(
        db.String(60), nullable=False,
        comment="document.transition | document.update | link.create | …",
    )
    actor = db.Column(db.String(150), nullable=False, default="system")
    actor_role = db.Column(db.String(30), nullable=True)

    # Change payload
    diff = db.Column(db.JSON, nullable=False, default=dict)

    # Timestamp (immutable)
    timestamp = db.Column(
        db.DateTime(timezone=True), nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "action": self.action,
            "actor": self.actor,
            "actor_role": self.actor_role,
            "diff": dict(self.diff or {}),
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
        }

    def __repr__(self):
        return f"<AuditLog {self.id}: {self.action} on {self.entity_type}/{self.entity_id}>"


# ── Convenience writer ───────────────────────────────────────────────────────

def write_audit(
    *,
    entity_type: str,
    entity_id: str,
    action: str,
    actor: str = "system",
    actor_role: str | None = None,
    diff: dict | None = None,
) -> AuditLog:
    """
    Append a single audit row.  Uses ``flush`` so callers keep
    transaction control.

    Returns the (flushed) AuditLog instance.
    """
    log = AuditLog(
        entity_type=entity_type,
        entity_id=str(entity_id),
        action=action,
        actor=actor,
        actor_role=actor_role,
        diff=diff or {},
    )
    db.session.add(log)
    db.session.flush()
    return log


def history_for(entity_type: str, entity_id: str) -> list[AuditLog]:
    """Return the audit trail of one entity, oldest first."""
    return (
        AuditLog.query
        .filter_by(entity_type=entity_type, entity_id=str(entity_id))
        .order_by(AuditLog.timestamp.asc(), AuditLog.id.asc())
        .all()
    )
