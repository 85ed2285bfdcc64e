"""
Workflow Engine — document stage transitions.

Validates and executes stage changes using the permission table:
  - Transition validation (WORKFLOW_TRANSITIONS), checked before the role
  - Role check (allowed_transitions)
  - Compare-and-swap write on the live stage
  - Audit trail via write_audit ("document.transition")

Stage-only changes never create a revision and never bump
``current_version``; the audit log is the workflow history.

Usage:
    from specflow.services.workflow import execute

    doc = execute(
        document_id="abc",
        target="Review",
        actor=CallerIdentity(user_id="u-1", role=Role.TA),
    )
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum

from specflow.core.exceptions import (
    ForbiddenError,
    InvalidTransitionError,
    StaleWriteError,
)
from specflow.models import db
from specflow.models.audit import AuditLog, history_for, write_audit
from specflow.models.document import Document, WorkflowStage
from specflow.services.permission import (
    CallerIdentity,
    allowed_transitions,
    can_transition,
    is_defined_transition,
)
from specflow.utils.helpers import get_or_raise, storage_operation

logger = logging.getLogger(__name__)


def _value(item) -> str:
    return item.value if isinstance(item, Enum) else str(item)


def validate_transition(current, target, role) -> None:
    """
    Check that ``role`` may move a document from ``current`` to ``target``.

    Raises:
        InvalidTransitionError: (current, target) is not in the transition
            table. Checked first, so an undefined move is reported as such
            whatever the caller's role.
        ForbiddenError: the move exists but ``role`` may not perform it.
    """
    if not is_defined_transition(current, target):
        raise InvalidTransitionError(current=_value(current), target=_value(target))
    if not can_transition(role, current, target):
        raise ForbiddenError(
            role=_value(role), action="transition",
            current=_value(current), target=_value(target),
        )


@dataclass(frozen=True)
class TransitionResult:
    """Outcome of one applied transition.

    ``previous_stage`` is the stage the compare-and-swap matched, so it
    is exactly the stage this transition left.
    """
    document: Document
    previous_stage: str
    new_stage: str


def transition(document_id: str, target, actor: CallerIdentity) -> TransitionResult:
    """
    Move a document to ``target`` on behalf of ``actor``.

    Validation runs against the document's live stage. The write is
    conditional on that stage still being current, so two racing callers
    cannot both apply a transition out of the same stage.

    Returns:
        TransitionResult with the refreshed document and both stages.

    Raises:
        NotFoundError, InvalidTransitionError, ForbiddenError,
        StaleWriteError, StorageError
    """
    doc = get_or_raise(Document, document_id, "Document")
    previous = doc.stage
    validate_transition(previous, target, actor.role)
    new_stage = WorkflowStage(target).value

    with storage_operation("transition document"):
        now = datetime.now(timezone.utc)
        updated = (
            Document.query
            .filter_by(id=document_id, stage=previous)
            .update(
                {"stage": new_stage, "updated_by": actor.user_id, "updated_at": now},
                synchronize_session=False,
            )
        )
        if updated == 0:
            raise StaleWriteError(document_id, "stage", previous)

        write_audit(
            entity_type="document",
            entity_id=document_id,
            action="document.transition",
            actor=actor.user_id,
            actor_role=actor.role.value,
            diff={"stage": {"old": previous, "new": new_stage}},
        )
        db.session.commit()

    db.session.refresh(doc)
    logger.info(
        "Document transitioned id=%s %s -> %s by=%s role=%s",
        document_id, previous, new_stage, actor.user_id, actor.role.value,
    )
    return TransitionResult(document=doc, previous_stage=previous, new_stage=new_stage)


def execute(document_id: str, target, actor: CallerIdentity) -> Document:
    """Apply a transition and return the updated document."""
    return transition(document_id, target, actor).document


def available_transitions(document: Document, role) -> list[str]:
    """Target stages ``role`` may move ``document`` to, sorted by name."""
    return sorted(s.value for s in allowed_transitions(role, document.stage))


def workflow_history(document_id: str) -> list[AuditLog]:
    """Audit trail of a document (creation, edits, transitions), oldest first."""
    get_or_raise(Document, document_id, "Document")
    return history_for("document", document_id)
