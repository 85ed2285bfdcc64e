"""
Revision Store — immutable document snapshots.

A revision captures a document exactly as it was *before* a content save:
body, metadata and the version number it had at that moment. Rows are
append-only; (document_id, version) is unique.

``snapshot`` only flushes. The caller owns the transaction so that the
revision and the document update commit (or roll back) together.
"""

import logging

from specflow.core.exceptions import NotFoundError
from specflow.models import db
from specflow.models.document import Revision
from specflow.services.diff_engine import RenderMode, diff_lines, diff_stats
from specflow.utils.helpers import storage_operation

logger = logging.getLogger(__name__)


def snapshot(
    document_id: str,
    version: int,
    body: str,
    metadata: dict,
    author: str,
) -> Revision:
    """Archive the pre-update state of a document. Flushes, does not commit."""
    rev = Revision(
        document_id=document_id,
        version=version,
        body=body or "",
        metadata_json=dict(metadata or {}),
        author=author,
    )
    db.session.add(rev)
    db.session.flush()
    logger.debug("Revision snapshot document=%s version=%s", document_id, version)
    return rev


def get_by_version(document_id: str, version: int) -> Revision:
    with storage_operation("load revision"):
        rev = Revision.query.filter_by(document_id=document_id, version=version).first()
    if rev is None:
        raise NotFoundError(resource="Revision", resource_id=f"{document_id}@v{version}")
    return rev


def list_by_document(document_id: str, limit: int | None = None) -> list[Revision]:
    """Revisions of a document, newest first."""
    q = Revision.query.filter_by(document_id=document_id).order_by(Revision.version.desc())
    if limit is not None:
        q = q.limit(limit)
    with storage_operation("list revisions"):
        return q.all()


def latest(document_id: str) -> Revision:
    revs = list_by_document(document_id, limit=1)
    if not revs:
        raise NotFoundError(resource="Revision", resource_id=f"{document_id}@latest")
    return revs[0]


def count_by_document(document_id: str) -> int:
    with storage_operation("count revisions"):
        return Revision.query.filter_by(document_id=document_id).count()


def compare_revisions(
    document_id: str,
    v1: int,
    v2: int,
    mode: RenderMode | str = RenderMode.INLINE,
) -> dict:
    """
    Diff two stored snapshots of the same document.

    Returns:
        {"document_id", "format", "revision1", "revision2", "diff", "stats"}
        where revision1/revision2 are revision summaries and diff is a list
        of DiffBlock dicts.

    Raises:
        NotFoundError if either version does not exist.
        ValueError if ``mode`` is not a known render mode.
    """
    mode = RenderMode(mode)
    old = get_by_version(document_id, v1)
    new = get_by_version(document_id, v2)
    blocks = diff_lines(old.body, new.body, mode)
    return {
        "document_id": document_id,
        "format": mode.value,
        "revision1": old.to_summary(),
        "revision2": new.to_summary(),
        "diff": [b.to_dict() for b in blocks],
        "stats": diff_stats(blocks),
    }
