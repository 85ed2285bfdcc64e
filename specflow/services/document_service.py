"""
Document Service — create, read, update and delete specification documents.

Every content update follows the same sequence inside one transaction:
  1. snapshot the pre-update state as a Revision (flushed first)
  2. conditional UPDATE on (id, current_version); 0 rows → StaleWriteError
  3. audit row "document.update"
  4. commit

If step 1 fails nothing is mutated. If step 2 loses a race the flushed
revision is rolled back with everything else.

Stage is not editable here; see services/workflow.py.
"""

import logging
from datetime import datetime, timezone

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError

from specflow.core.exceptions import StaleWriteError, ValidationError
from specflow.models import db
from specflow.models.audit import write_audit
from specflow.models.document import (
    INITIAL_STAGE,
    INITIAL_VERSION,
    Document,
    DocumentType,
    WorkflowStage,
)
from specflow.models.relationship import DocumentLink
from specflow.services import revision_service
from specflow.services.metadata import DocumentMetadata, validate_changes
from specflow.services.permission import CallerIdentity
from specflow.utils.helpers import get_or_raise, storage_operation

logger = logging.getLogger(__name__)


def _body(value, *, default=None):
    if value is None:
        return default
    if not isinstance(value, str):
        raise ValidationError("body must be a string", details={"body": type(value).__name__})
    return value


# ═════════════════════════════════════════════════════════════════════════════
# Create / read
# ═════════════════════════════════════════════════════════════════════════════

def create_document(*, metadata: dict, actor: CallerIdentity, body: str | None = None) -> Document:
    """Create a document at stage Idea, version 1."""
    meta = DocumentMetadata.for_create(metadata)
    text = _body(body, default="")

    with storage_operation("create document"):
        doc = Document(
            title=meta.title,
            body=text,
            stage=INITIAL_STAGE.value,
            doc_type=meta.doc_type.value,
            assignee=meta.assignee,
            tags=list(meta.tags),
            current_version=INITIAL_VERSION,
            created_by=actor.user_id,
            updated_by=actor.user_id,
        )
        db.session.add(doc)
        db.session.flush()
        write_audit(
            entity_type="document",
            entity_id=doc.id,
            action="document.create",
            actor=actor.user_id,
            actor_role=actor.role.value,
            diff={k: {"old": None, "new": v} for k, v in meta.to_dict().items()},
        )
        db.session.commit()

    logger.info("Document created id=%s type=%s by=%s", doc.id, doc.doc_type, actor.user_id)
    return doc


def get_document(document_id: str) -> Document:
    return get_or_raise(Document, document_id, "Document")


def query_documents(*, stage=None, doc_type=None, created_by=None):
    """Filtered document query, newest first. Pagination is the caller's job."""
    q = Document.query
    if stage:
        try:
            q = q.filter(Document.stage == WorkflowStage(stage).value)
        except ValueError as exc:
            raise ValidationError(f"Unknown stage: {stage!r}", details={"stage": stage}) from exc
    if doc_type:
        try:
            q = q.filter(Document.doc_type == DocumentType(doc_type).value)
        except ValueError as exc:
            raise ValidationError(f"Unknown document type: {doc_type!r}", details={"type": doc_type}) from exc
    if created_by:
        q = q.filter(Document.created_by == created_by)
    return q.order_by(Document.created_at.desc(), Document.id)


# ═════════════════════════════════════════════════════════════════════════════
# Update
# ═════════════════════════════════════════════════════════════════════════════

def update_document(
    document_id: str,
    *,
    actor: CallerIdentity,
    body: str | None = None,
    metadata: dict | None = None,
    expected_version: int | None = None,
) -> Document:
    """
    Apply a content update (body and/or metadata).

    The pre-update state is archived as revision ``current_version`` and
    the document moves to ``current_version + 1``. Passing
    ``expected_version`` rejects the save when another writer got there
    first.

    Raises:
        NotFoundError, ValidationError, StaleWriteError, StorageError
    """
    doc = get_or_raise(Document, document_id, "Document")
    changes = validate_changes(metadata)
    new_body = _body(body, default=doc.body)

    version = doc.current_version
    if expected_version is not None and expected_version != version:
        raise StaleWriteError(document_id, "current_version", expected_version)

    before = DocumentMetadata.from_document(doc)
    after = before.merged(changes)
    old_body = doc.body

    with storage_operation("update document"):
        try:
            revision_service.snapshot(
                document_id, version, old_body, doc.metadata_snapshot(), actor.user_id,
            )
        except IntegrityError as exc:
            raise StaleWriteError(document_id, "current_version", version) from exc

        updated = (
            Document.query
            .filter_by(id=document_id, current_version=version)
            .update(
                {
                    "body": new_body,
                    "title": after.title,
                    "doc_type": after.doc_type.value,
                    "assignee": after.assignee,
                    "tags": list(after.tags),
                    "current_version": version + 1,
                    "updated_by": actor.user_id,
                    "updated_at": datetime.now(timezone.utc),
                },
                synchronize_session=False,
            )
        )
        if updated == 0:
            raise StaleWriteError(document_id, "current_version", version)

        diff = before.diff(after)
        if new_body != old_body:
            diff["body"] = {"old_length": len(old_body or ""), "new_length": len(new_body)}
        diff["current_version"] = {"old": version, "new": version + 1}
        write_audit(
            entity_type="document",
            entity_id=document_id,
            action="document.update",
            actor=actor.user_id,
            actor_role=actor.role.value,
            diff=diff,
        )
        db.session.commit()

    db.session.refresh(doc)
    logger.info(
        "Document updated id=%s v%s -> v%s by=%s",
        document_id, version, doc.current_version, actor.user_id,
    )
    return doc


# ═════════════════════════════════════════════════════════════════════════════
# Delete
# ═════════════════════════════════════════════════════════════════════════════

def delete_document(document_id: str, actor: CallerIdentity) -> None:
    """Delete a document with its revisions and every link touching it."""
    doc = get_or_raise(Document, document_id, "Document")

    with storage_operation("delete document"):
        links = (
            DocumentLink.query
            .filter(or_(DocumentLink.parent_id == document_id,
                        DocumentLink.child_id == document_id))
            .delete(synchronize_session=False)
        )
        write_audit(
            entity_type="document",
            entity_id=document_id,
            action="document.delete",
            actor=actor.user_id,
            actor_role=actor.role.value,
            diff={
                "title": {"old": doc.title, "new": None},
                "stage": {"old": doc.stage, "new": None},
                "links_removed": links,
            },
        )
        db.session.delete(doc)
        db.session.commit()

    logger.info("Document deleted id=%s links_removed=%s by=%s", document_id, links, actor.user_id)
