"""
Relationship Graph Manager — traceability links between documents.

create_link checks, in order:
  1. self link            → SelfLinkError
  2. unknown document     → NotFoundError
  3. edge already exists  → DuplicateLinkError
  4. child is an ancestor of parent → CircularDependencyError

Traversals load the edges reachable from the start document into a
LinkGraph and walk that, never live ORM relationships.

Usage:
    from specflow.services import relationship_service as rel

    rel.create_link(epic.id, story.id, actor=caller)
    tree = rel.build_tree(epic.id)
"""

import logging

from sqlalchemy.exc import IntegrityError

from specflow.core.exceptions import (
    CircularDependencyError,
    DuplicateLinkError,
    NotFoundError,
    SelfLinkError,
)
from specflow.models import db
from specflow.models.audit import write_audit
from specflow.models.document import Document
from specflow.models.relationship import DocumentLink
from specflow.services.link_graph import LinkGraph
from specflow.services.permission import CallerIdentity
from specflow.utils.helpers import storage_operation

logger = logging.getLogger(__name__)


def _edge_key(parent_id: str, child_id: str) -> str:
    return f"{parent_id}->{child_id}"


# Ids per IN (...) clause; stays under SQLite's bound-parameter limit
_IN_BATCH = 500


def link_exists(parent_id: str, child_id: str) -> bool:
    with storage_operation("check link"):
        return (
            db.session.query(DocumentLink.id)
            .filter_by(parent_id=parent_id, child_id=child_id)
            .first()
        ) is not None


def load_graph(document_id: str, *, upward: bool = False) -> LinkGraph:
    """
    Edges reachable from ``document_id``: its descendants' edges, or its
    ancestors' edges with ``upward=True``.

    One query per BFS level over the frontier, so the cost follows the
    size of the reachable subgraph, not of the whole link table.
    """
    near = DocumentLink.child_id if upward else DocumentLink.parent_id

    graph = LinkGraph()
    seen = {document_id}
    frontier = [document_id]
    with storage_operation("load link graph"):
        while frontier:
            batch, frontier = frontier, []
            for i in range(0, len(batch), _IN_BATCH):
                rows = (
                    db.session.query(DocumentLink.parent_id, DocumentLink.child_id)
                    .filter(near.in_(batch[i:i + _IN_BATCH]))
                    .all()
                )
                for parent_id, child_id in rows:
                    graph.add_edge(parent_id, child_id)
                    nxt = parent_id if upward else child_id
                    if nxt not in seen:
                        seen.add(nxt)
                        frontier.append(nxt)
    return graph


def _documents_by_id(ids) -> dict[str, Document]:
    ids = list(ids)
    if not ids:
        return {}
    docs = {}
    with storage_operation("load documents"):
        for i in range(0, len(ids), _IN_BATCH):
            for doc in Document.query.filter(Document.id.in_(ids[i:i + _IN_BATCH])):
                docs[doc.id] = doc
    return docs


def _require_document(document_id: str) -> None:
    with storage_operation("load document"):
        exists = db.session.get(Document, document_id) is not None
    if not exists:
        raise NotFoundError(resource="Document", resource_id=document_id)


# ═════════════════════════════════════════════════════════════════════════════
# Edges
# ═════════════════════════════════════════════════════════════════════════════

def create_link(parent_id: str, child_id: str, actor: CallerIdentity) -> DocumentLink:
    """
    Add a parent → child edge.

    Raises:
        SelfLinkError, NotFoundError, DuplicateLinkError,
        CircularDependencyError, StorageError
    """
    if parent_id == child_id:
        raise SelfLinkError(parent_id)

    _require_document(parent_id)
    _require_document(child_id)

    if link_exists(parent_id, child_id):
        raise DuplicateLinkError(parent_id, child_id)
    if load_graph(parent_id, upward=True).would_create_cycle(parent_id, child_id):
        logger.warning(
            "Rejected circular link parent=%s child=%s by=%s",
            parent_id, child_id, actor.user_id,
        )
        raise CircularDependencyError(parent_id, child_id)

    with storage_operation("create link"):
        link = DocumentLink(parent_id=parent_id, child_id=child_id, created_by=actor.user_id)
        db.session.add(link)
        try:
            db.session.flush()
        except IntegrityError as exc:
            # Another writer stored the same edge after link_exists()
            raise DuplicateLinkError(parent_id, child_id) from exc
        write_audit(
            entity_type="link",
            entity_id=_edge_key(parent_id, child_id),
            action="link.create",
            actor=actor.user_id,
            actor_role=actor.role.value,
            diff={"parent_id": {"old": None, "new": parent_id},
                  "child_id": {"old": None, "new": child_id}},
        )
        db.session.commit()

    logger.info("Link created %s -> %s by=%s", parent_id, child_id, actor.user_id)
    return link


def delete_link(parent_id: str, child_id: str, actor: CallerIdentity | None = None) -> bool:
    """Remove an edge. Returns False when it did not exist."""
    with storage_operation("delete link"):
        removed = (
            DocumentLink.query
            .filter_by(parent_id=parent_id, child_id=child_id)
            .delete(synchronize_session=False)
        )
        if not removed:
            db.session.rollback()
            return False
        write_audit(
            entity_type="link",
            entity_id=_edge_key(parent_id, child_id),
            action="link.delete",
            actor=actor.user_id if actor else "system",
            actor_role=actor.role.value if actor else None,
            diff={"parent_id": {"old": parent_id, "new": None},
                  "child_id": {"old": child_id, "new": None}},
        )
        db.session.commit()

    logger.info("Link deleted %s -> %s", parent_id, child_id)
    return True


# ═════════════════════════════════════════════════════════════════════════════
# Queries
# ═════════════════════════════════════════════════════════════════════════════

def _ordered_documents(ids) -> list[Document]:
    by_id = _documents_by_id(ids)
    return [by_id[i] for i in ids if i in by_id]


def find_children(document_id: str) -> list[Document]:
    """Direct children, ordered by title."""
    with storage_operation("find children"):
        return (
            Document.query
            .join(DocumentLink, DocumentLink.child_id == Document.id)
            .filter(DocumentLink.parent_id == document_id)
            .order_by(Document.title)
            .all()
        )


def find_parents(document_id: str) -> list[Document]:
    """Direct parents, ordered by title."""
    with storage_operation("find parents"):
        return (
            Document.query
            .join(DocumentLink, DocumentLink.parent_id == Document.id)
            .filter(DocumentLink.child_id == document_id)
            .order_by(Document.title)
            .all()
        )


def get_descendants(document_id: str) -> list[Document]:
    """Every document reachable through child links, BFS order."""
    return _ordered_documents(load_graph(document_id).descendants(document_id))


def get_ancestors(document_id: str) -> list[Document]:
    """Every document reachable through parent links, BFS order."""
    return _ordered_documents(load_graph(document_id, upward=True).ancestors(document_id))


def _tree_payload(doc: Document) -> dict:
    return {
        "document_id": doc.id,
        "title": doc.title,
        "type": doc.doc_type,
        "stage": doc.stage,
    }


def build_tree(root_id: str) -> dict:
    """
    Nested ``{document_id, title, type, stage, children}`` view of the
    subtree under ``root_id``.

    Raises:
        NotFoundError if the root document does not exist.
    """
    _require_document(root_id)
    graph = load_graph(root_id)
    reachable = [root_id] + graph.descendants(root_id)
    docs = _documents_by_id(reachable)

    def describe(node_id):
        doc = docs.get(node_id)
        return _tree_payload(doc) if doc is not None else None

    return graph.build_tree(root_id, describe)
