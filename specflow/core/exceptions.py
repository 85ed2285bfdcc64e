"""
Platform-wide exception hierarchy.

Services raise these types; the application factory registers one error
handler per type so every blueprint gets the same HTTP status codes and
error codes (see ``specflow.utils.errors``).

Usage:
    from specflow.core.exceptions import NotFoundError, InvalidTransitionError

    raise NotFoundError(resource="Document", resource_id=doc_id)
    raise InvalidTransitionError(current="Idea", target="Done")
"""


class NotFoundError(Exception):
    """Raised when a requested document, revision or link does not exist.

    Args:
        resource: Human-readable entity name (e.g. "Document", "Revision").
        resource_id: The key that was looked up. Included in the message.
    """

    def __init__(self, resource: str, resource_id: int | str | None = None) -> None:
        self.resource = resource
        self.resource_id = resource_id
        msg = f"{resource}"
        if resource_id is not None:
            msg += f" id={resource_id}"
        msg += " not found"
        super().__init__(msg)


class ValidationError(Exception):
    """Raised when well-formed input violates a business rule.

    Args:
        message: Human-readable explanation of what failed.
        details: Optional field-level breakdown for structured API responses.
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.details = details or {}
        super().__init__(message)


class ConflictError(Exception):
    """Raised when a write collides with existing state.

    Covers unique-pair violations and lost compare-and-swap races on a
    document's version or stage.
    """

    def __init__(
        self,
        resource: str,
        field: str,
        value: str | None = None,
        *,
        message: str | None = None,
    ) -> None:
        self.resource = resource
        self.field = field
        self.value = value
        msg = message or f"{resource} with {field}={value!r} already exists"
        super().__init__(msg)

    @property
    def details(self) -> dict:
        return {"resource": self.resource, "field": self.field}


class StaleWriteError(ConflictError):
    """Raised when the stored document changed between read and write."""

    def __init__(self, document_id: str, field: str, expected) -> None:
        self.document_id = document_id
        super().__init__(
            "Document", field, str(expected),
            message=(
                f"Document {document_id} was modified concurrently "
                f"({field} is no longer {expected!r}); reload and retry"
            ),
        )


# ── Workflow ─────────────────────────────────────────────────────────────────


class InvalidTransitionError(ValidationError):
    """Raised when (current, target) is not a defined workflow transition."""

    def __init__(self, current: str, target: str) -> None:
        self.current = current
        self.target = target
        super().__init__(
            f"Invalid transition from {current} to {target}",
            details={"current_stage": current, "target_stage": target},
        )


class ForbiddenError(Exception):
    """Raised when the caller's role does not grant the requested action.

    ``current``/``target`` are set for workflow transitions so the boundary
    can name both stages in the rejection.
    """

    def __init__(
        self,
        role: str,
        action: str,
        *,
        current: str | None = None,
        target: str | None = None,
    ) -> None:
        self.role = role
        self.action = action
        self.current = current
        self.target = target
        if current is not None and target is not None:
            msg = f"Role {role} cannot transition from {current} to {target}"
        else:
            msg = f"Role {role} does not have permission for '{action}'"
        super().__init__(msg)

    @property
    def details(self) -> dict:
        details = {"role": self.role, "action": self.action}
        if self.current is not None:
            details["current_stage"] = self.current
            details["target_stage"] = self.target
        return details


class AuthenticationRequired(Exception):
    """Raised when a request carries no usable caller identity."""

    def __init__(self, message: str = "Authentication required") -> None:
        super().__init__(message)


# ── Relationship graph ───────────────────────────────────────────────────────


class SelfLinkError(ValidationError):
    """Raised when a document is linked to itself."""

    def __init__(self, document_id: str) -> None:
        self.document_id = document_id
        super().__init__(
            f"Cannot link document {document_id} to itself",
            details={"parent_id": document_id, "child_id": document_id},
        )


class DuplicateLinkError(ConflictError):
    """Raised when the (parent, child) edge already exists."""

    def __init__(self, parent_id: str, child_id: str) -> None:
        self.parent_id = parent_id
        self.child_id = child_id
        super().__init__(
            "DocumentLink", "parent_id,child_id", f"{parent_id}->{child_id}",
            message=f"Link {parent_id} -> {child_id} already exists",
        )

    @property
    def details(self) -> dict:
        return {"parent_id": self.parent_id, "child_id": self.child_id}


class CircularDependencyError(ValidationError):
    """Raised when a new edge would make a document its own ancestor."""

    def __init__(self, parent_id: str, child_id: str) -> None:
        self.parent_id = parent_id
        self.child_id = child_id
        super().__init__(
            f"Cannot link {parent_id} -> {child_id}: "
            f"{child_id} is already an ancestor of {parent_id} (circular dependency)",
            details={"parent_id": parent_id, "child_id": child_id},
        )


# ── Storage ──────────────────────────────────────────────────────────────────


class StorageError(Exception):
    """Opaque wrapper for a failed persistence call.

    The original driver exception is kept on ``__cause__`` and ``original``.
    """

    def __init__(self, operation: str, original: Exception | None = None) -> None:
        self.operation = operation
        self.original = original
        super().__init__(f"Storage failure during {operation}")
