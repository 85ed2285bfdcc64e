"""
tests/test_permission_table.py — static role/capability and transition tables.

Covers:
    1. Capability matrix per role
    2. Unknown roles / capabilities / stages never raise
    3. Transition table lookups (defined vs. allowed)
    4. Done is terminal for every role
"""

import itertools

import pytest

from specflow.models.document import WorkflowStage
from specflow.services.permission import (
    ROLE_CAPABILITIES,
    WORKFLOW_TRANSITIONS,
    Capability,
    Role,
    allowed_transitions,
    can_transition,
    capabilities_for,
    defined_transitions,
    has_all_permissions,
    has_any_permission,
    has_permission,
    is_defined_transition,
)

S = WorkflowStage


# ═════════════════════════════════════════════════════════════════════════════
# Capabilities
# ═════════════════════════════════════════════════════════════════════════════


class TestCapabilities:

    def test_pm_holds_every_capability(self):
        assert capabilities_for(Role.PM) == frozenset(Capability)

    @pytest.mark.parametrize("role, capability, expected", [
        (Role.TA, Capability.CREATE, True),
        (Role.TA, Capability.LINK, True),
        (Role.TA, Capability.DELETE, False),
        (Role.TA, Capability.UNLINK, False),
        (Role.DEV, Capability.UPDATE, True),
        (Role.DEV, Capability.CREATE, False),
        (Role.DEV, Capability.LINK, False),
        (Role.QA, Capability.USE_AI, True),
        (Role.QA, Capability.UPDATE, False),
        (Role.STAKEHOLDER, Capability.TRANSITION, True),
        (Role.STAKEHOLDER, Capability.USE_AI, False),
        (Role.STAKEHOLDER, Capability.UPLOAD, False),
    ])
    def test_matrix(self, role, capability, expected):
        assert has_permission(role, capability) is expected

    def test_every_role_can_read_and_comment(self):
        for role in Role:
            assert has_all_permissions(role, [Capability.READ, Capability.COMMENT])

    def test_plain_strings_are_accepted(self):
        assert has_permission("Dev", "update") is True
        assert has_permission("QA", "delete") is False

    def test_unknown_values_hold_nothing(self):
        assert has_permission("Admin", Capability.READ) is False
        assert has_permission(Role.PM, "launch_rockets") is False
        assert capabilities_for(None) == frozenset()

    def test_any_and_all(self):
        assert has_any_permission(Role.QA, [Capability.DELETE, Capability.COMMENT])
        assert not has_any_permission(Role.QA, [Capability.DELETE, Capability.LINK])
        assert not has_all_permissions(Role.DEV, [Capability.READ, Capability.CREATE])

    def test_table_covers_every_role(self):
        assert set(ROLE_CAPABILITIES) == set(Role)


# ═════════════════════════════════════════════════════════════════════════════
# Transitions
# ═════════════════════════════════════════════════════════════════════════════


class TestTransitionTable:

    def test_defined_pairs(self):
        pairs = {(t.from_stage, t.to_stage) for t in WORKFLOW_TRANSITIONS}
        assert pairs == {
            (S.IDEA, S.DRAFT),
            (S.DRAFT, S.REVIEW),
            (S.REVIEW, S.DRAFT),
            (S.REVIEW, S.READY),
            (S.READY, S.IN_PROGRESS),
            (S.IN_PROGRESS, S.DONE),
        }

    def test_is_defined_ignores_role(self):
        assert is_defined_transition(S.READY, S.IN_PROGRESS)
        assert is_defined_transition("Review", "Draft")
        assert not is_defined_transition(S.IDEA, S.DONE)
        assert not is_defined_transition(S.DRAFT, S.IDEA)

    def test_self_transitions_are_undefined(self):
        for stage in S:
            assert not is_defined_transition(stage, stage)

    def test_done_is_terminal_for_every_role(self):
        assert defined_transitions(S.DONE) == frozenset()
        for role in Role:
            assert allowed_transitions(role, S.DONE) == frozenset()

    def test_review_fans_out_by_role(self):
        assert allowed_transitions(Role.PM, S.REVIEW) == {S.DRAFT, S.READY}
        assert allowed_transitions(Role.STAKEHOLDER, S.REVIEW) == {S.READY}
        assert allowed_transitions(Role.TA, S.REVIEW) == frozenset()

    def test_allowed_roles_match_can_transition(self):
        for t, role in itertools.product(WORKFLOW_TRANSITIONS, Role):
            assert can_transition(role, t.from_stage, t.to_stage) is (role in t.allowed_roles)

    def test_unknown_stage_or_role(self):
        assert allowed_transitions(Role.PM, "Archived") == frozenset()
        assert allowed_transitions("Intern", S.IDEA) == frozenset()
        assert not is_defined_transition("Idea", "Archived")

    def test_to_dict(self):
        d = WORKFLOW_TRANSITIONS[3].to_dict()
        assert d == {"from": "Review", "to": "Ready", "allowed_roles": ["PM", "Stakeholder"]}
