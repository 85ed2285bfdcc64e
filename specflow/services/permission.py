"""
Role-Based Access Control — static permission table.

Two lookup tables:
  - ROLE_CAPABILITIES: which capabilities each role holds
  - WORKFLOW_TRANSITIONS: which (from, to) stage moves exist and which
    roles may perform each one

Pure lookups, no I/O. Unknown roles or stages never raise; they simply
hold no capabilities and have no transitions.

Usage:
    from specflow.services.permission import Role, Capability, has_permission

    if has_permission(Role.DEV, Capability.UPDATE):
        ...
    allowed_transitions(Role.PM, WorkflowStage.REVIEW)  # {Draft, Ready}
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from specflow.models.document import WorkflowStage


class Role(str, Enum):
    PM = "PM"
    TA = "TA"
    DEV = "Dev"
    QA = "QA"
    STAKEHOLDER = "Stakeholder"


class Capability(str, Enum):
    CREATE = "create"
    READ = "read"
    UPDATE = "update"
    DELETE = "delete"
    TRANSITION = "transition"
    COMMENT = "comment"
    LINK = "link"
    UNLINK = "unlink"
    UPLOAD = "upload"
    USE_AI = "use_ai"


@dataclass(frozen=True)
class CallerIdentity:
    """The authenticated caller: who they are and which role they act as."""
    user_id: str
    role: Role

    def to_dict(self) -> dict:
        return {"user_id": self.user_id, "role": self.role.value}


@dataclass(frozen=True)
class WorkflowTransition:
    """One edge of the workflow graph plus the roles allowed to take it."""
    from_stage: WorkflowStage
    to_stage: WorkflowStage
    allowed_roles: frozenset[Role]

    def to_dict(self) -> dict:
        return {
            "from": self.from_stage.value,
            "to": self.to_stage.value,
            "allowed_roles": sorted(r.value for r in self.allowed_roles),
        }


# ═════════════════════════════════════════════════════════════════════════════
# Tables
# ═════════════════════════════════════════════════════════════════════════════

_C = Capability

ROLE_CAPABILITIES: dict[Role, frozenset[Capability]] = {
    Role.PM: frozenset(Capability),
    Role.TA: frozenset({
        _C.CREATE, _C.READ, _C.UPDATE, _C.TRANSITION,
        _C.COMMENT, _C.LINK, _C.UPLOAD, _C.USE_AI,
    }),
    Role.DEV: frozenset({
        _C.READ, _C.UPDATE, _C.TRANSITION,
        _C.COMMENT, _C.UPLOAD, _C.USE_AI,
    }),
    Role.QA: frozenset({_C.READ, _C.TRANSITION, _C.COMMENT, _C.USE_AI}),
    Role.STAKEHOLDER: frozenset({_C.READ, _C.TRANSITION, _C.COMMENT}),
}

_S = WorkflowStage

WORKFLOW_TRANSITIONS: tuple[WorkflowTransition, ...] = (
    WorkflowTransition(_S.IDEA, _S.DRAFT, frozenset({Role.PM, Role.TA})),
    WorkflowTransition(_S.DRAFT, _S.REVIEW, frozenset({Role.PM, Role.TA})),
    WorkflowTransition(_S.REVIEW, _S.DRAFT, frozenset({Role.PM})),  # reject
    WorkflowTransition(_S.REVIEW, _S.READY, frozenset({Role.PM, Role.STAKEHOLDER})),
    WorkflowTransition(_S.READY, _S.IN_PROGRESS, frozenset({Role.DEV})),
    WorkflowTransition(_S.IN_PROGRESS, _S.DONE, frozenset({Role.QA})),
)


# ── Coercion ─────────────────────────────────────────────────────────────────

def _as_role(value) -> Role | None:
    if isinstance(value, Role):
        return value
    try:
        return Role(value)
    except ValueError:
        return None


def _as_stage(value) -> WorkflowStage | None:
    if isinstance(value, WorkflowStage):
        return value
    try:
        return WorkflowStage(value)
    except ValueError:
        return None


def _as_capability(value) -> Capability | None:
    if isinstance(value, Capability):
        return value
    try:
        return Capability(value)
    except ValueError:
        return None


# ═════════════════════════════════════════════════════════════════════════════
# Capability lookups
# ═════════════════════════════════════════════════════════════════════════════

def capabilities_for(role) -> frozenset[Capability]:
    r = _as_role(role)
    if r is None:
        return frozenset()
    return ROLE_CAPABILITIES.get(r, frozenset())


def has_permission(role, capability) -> bool:
    """True if ``role`` holds ``capability``. Unknown values → False."""
    cap = _as_capability(capability)
    if cap is None:
        return False
    return cap in capabilities_for(role)


def has_all_permissions(role, capabilities) -> bool:
    return all(has_permission(role, c) for c in capabilities)


def has_any_permission(role, capabilities) -> bool:
    return any(has_permission(role, c) for c in capabilities)


# ═════════════════════════════════════════════════════════════════════════════
# Transition lookups
# ═════════════════════════════════════════════════════════════════════════════

def is_defined_transition(from_stage, to_stage) -> bool:
    """True if (from_stage, to_stage) exists in the table, whatever the role."""
    src, dst = _as_stage(from_stage), _as_stage(to_stage)
    if src is None or dst is None:
        return False
    return any(t.from_stage == src and t.to_stage == dst for t in WORKFLOW_TRANSITIONS)


def defined_transitions(from_stage) -> frozenset[WorkflowStage]:
    """All targets reachable from ``from_stage`` in one step, for any role."""
    src = _as_stage(from_stage)
    return frozenset(t.to_stage for t in WORKFLOW_TRANSITIONS if t.from_stage == src)


def allowed_transitions(role, from_stage) -> frozenset[WorkflowStage]:
    """Targets ``role`` may move a document to from ``from_stage``."""
    r, src = _as_role(role), _as_stage(from_stage)
    if r is None or src is None:
        return frozenset()
    return frozenset(
        t.to_stage for t in WORKFLOW_TRANSITIONS
        if t.from_stage == src and r in t.allowed_roles
    )


def can_transition(role, from_stage, to_stage) -> bool:
    dst = _as_stage(to_stage)
    return dst is not None and dst in allowed_transitions(role, from_stage)
