"""
Document metadata — typed, strictly validated.

Metadata is the part of a document a content save may change besides the
body: title, type, assignee and tags. ``stage`` is absent;
stage changes go through the workflow engine only.

Usage:
    from specflow.services.metadata import DocumentMetadata, validate_changes

    changes = validate_changes(request_json.get("metadata"))
    meta = DocumentMetadata.from_document(doc).merged(changes)
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace

from specflow.core.exceptions import ValidationError
from specflow.models.document import DocumentType

TITLE_MAX_LENGTH = 300
TAG_MAX_LENGTH = 50
ASSIGNEE_MAX_LENGTH = 150

METADATA_KEYS = frozenset({"title", "type", "assignee", "tags"})


@dataclass(frozen=True)
class DocumentMetadata:
    title: str
    doc_type: DocumentType = DocumentType.USER_STORY
    assignee: str | None = None
    tags: tuple[str, ...] = field(default_factory=tuple)

    @classmethod
    def from_document(cls, doc) -> DocumentMetadata:
        return cls(
            title=doc.title,
            doc_type=DocumentType(doc.doc_type),
            assignee=doc.assignee,
            tags=tuple(doc.tags or ()),
        )

    @classmethod
    def for_create(cls, data: dict | None) -> DocumentMetadata:
        """Validate creation metadata; ``title`` is required."""
        changes = validate_changes(data)
        if "title" not in changes:
            raise ValidationError("title is required", details={"title": "required"})
        return cls(**{_ATTR[k]: v for k, v in changes.items()})

    def merged(self, changes: dict) -> DocumentMetadata:
        """Return a copy with already-validated ``changes`` applied."""
        return replace(self, **{_ATTR[k]: v for k, v in changes.items()})

    def diff(self, other: DocumentMetadata) -> dict:
        """``{key: {old, new}}`` for every field that differs."""
        mine, theirs = self.to_dict(), other.to_dict()
        return {
            k: {"old": mine[k], "new": theirs[k]}
            for k in sorted(METADATA_KEYS) if mine[k] != theirs[k]
        }

    def to_dict(self) -> dict:
        return {
            "title": self.title,
            "type": self.doc_type.value,
            "assignee": self.assignee,
            "tags": list(self.tags),
        }


_ATTR = {"title": "title", "type": "doc_type", "assignee": "assignee", "tags": "tags"}


# ── Validation ───────────────────────────────────────────────────────────────

def _title(value) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError("title must be a non-empty string", details={"title": value})
    value = value.strip()
    if len(value) > TITLE_MAX_LENGTH:
        raise ValidationError(
            f"title must be at most {TITLE_MAX_LENGTH} characters",
            details={"title": "too long"},
        )
    return value


def _doc_type(value) -> DocumentType:
    try:
        return DocumentType(value)
    except ValueError as exc:
        raise ValidationError(
            f"Unknown document type: {value!r}",
            details={"type": value, "allowed": [t.value for t in DocumentType]},
        ) from exc


def _assignee(value) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str) or len(value) > ASSIGNEE_MAX_LENGTH:
        raise ValidationError("assignee must be a string or null", details={"assignee": value})
    return value.strip() or None


def _tags(value) -> tuple[str, ...]:
    if not isinstance(value, list) or not all(isinstance(t, str) for t in value):
        raise ValidationError("tags must be a list of strings", details={"tags": value})
    seen = []
    for tag in (t.strip() for t in value):
        if not tag:
            continue
        if len(tag) > TAG_MAX_LENGTH:
            raise ValidationError(
                f"tags must be at most {TAG_MAX_LENGTH} characters each",
                details={"tags": tag},
            )
        if tag not in seen:
            seen.append(tag)
    return tuple(seen)


_VALIDATORS = {
    "title": _title,
    "type": _doc_type,
    "assignee": _assignee,
    "tags": _tags,
}


def validate_changes(data: dict | None) -> dict:
    """
    Validate a partial metadata mapping.

    Returns the normalized values keyed like the input. Raises
    ValidationError for a non-object payload, unknown keys (``stage``
    included) and wrongly typed values.
    """
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("metadata must be an object")

    if "stage" in data:
        raise ValidationError(
            "stage cannot be changed by a content update; use the transition endpoint",
            details={"stage": "not allowed"},
        )
    unknown = sorted(set(data) - METADATA_KEYS)
    if unknown:
        raise ValidationError(
            f"Unknown metadata field(s): {', '.join(unknown)}",
            details={"unknown": unknown, "allowed": sorted(METADATA_KEYS)},
        )

    return {key: _VALIDATORS[key](value) for key, value in data.items()}
