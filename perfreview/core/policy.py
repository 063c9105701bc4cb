"""
Single source of truth for who may do what.

Each action maps every role to the set of relationships (between the actor
and the employee being reviewed) under which the role is allowed to act.
A role missing from an action's row is never permitted.
"""
from __future__ import annotations

import enum
import logging
from dataclasses import dataclass

from perfreview.core.errors import AuthorizationError
from perfreview.models.enums import Role

logger = logging.getLogger(__name__)


class Action(str, enum.Enum):
    CREATE_CYCLE = "create_cycle"
    ACTIVATE_CYCLE = "activate_cycle"
    CLOSE_CYCLE = "close_cycle"
    CLOSE_FEEDBACK_WINDOW = "close_feedback_window"

    CREATE_REVIEW = "create_review"
    VIEW_REVIEW = "view_review"
    SUBMIT_SELF_ASSESSMENT = "submit_self_assessment"
    SUBMIT_FEEDBACK = "submit_feedback"
    ADVANCE_TO_MANAGER_REVIEW = "advance_to_manager_review"
    RECORD_MANAGER_INPUT = "record_manager_input"
    SET_L3_RATING = "set_l3_rating"
    SCHEDULE_MEETING = "schedule_meeting"
    UPDATE_MEETING = "update_meeting"
    FINALIZE_REVIEW = "finalize_review"

    FILE_APPEAL = "file_appeal"
    RESOLVE_APPEAL = "resolve_appeal"
    COMPLETE_APPEAL = "complete_appeal"

    VIEW_ACTIVITY = "view_activity"
    VIEW_ANALYTICS = "view_analytics"


class Relation(str, enum.Enum):
    ANY = "any"
    SELF = "self"
    OTHER = "other"
    DIRECT_MANAGER = "direct_manager"
    CHAIN = "chain"


@dataclass(frozen=True)
class PolicyContext:
    """How the actor relates to the employee whose review is being touched."""

    is_self: bool = False
    is_direct_manager: bool = False
    in_chain: bool = False

    def satisfies(self, relation: Relation) -> bool:
        if relation is Relation.ANY:
            return True
        if relation is Relation.SELF:
            return self.is_self
        if relation is Relation.OTHER:
            return not self.is_self
        if relation is Relation.DIRECT_MANAGER:
            return self.is_direct_manager
        if relation is Relation.CHAIN:
            return self.in_chain
        return False


_ALL_ROLES = tuple(Role)
_MANAGERS = (Role.FOUNDER, Role.L1_MANAGER, Role.L2_MANAGER, Role.L3_MANAGER)
_LINE_MANAGERS = (Role.L1_MANAGER, Role.L2_MANAGER, Role.L3_MANAGER)
_APPROVERS = (Role.L2_MANAGER, Role.FOUNDER)


def _grant(roles, *relations: Relation) -> dict[Role, frozenset[Relation]]:
    return {role: frozenset(relations) for role in roles}


POLICY: dict[Action, dict[Role, frozenset[Relation]]] = {
    Action.CREATE_CYCLE: _grant([Role.FOUNDER], Relation.ANY),
    Action.ACTIVATE_CYCLE: _grant([Role.FOUNDER], Relation.ANY),
    Action.CLOSE_CYCLE: _grant([Role.FOUNDER], Relation.ANY),
    Action.CLOSE_FEEDBACK_WINDOW: _grant([Role.FOUNDER], Relation.ANY),

    Action.CREATE_REVIEW: {
        Role.PEER: frozenset({Relation.SELF}),
        **_grant(_MANAGERS, Relation.SELF, Relation.CHAIN),
    },
    Action.VIEW_REVIEW: {
        Role.PEER: frozenset({Relation.SELF}),
        **_grant(_LINE_MANAGERS, Relation.SELF, Relation.CHAIN),
        Role.FOUNDER: frozenset({Relation.ANY}),
    },
    Action.SUBMIT_SELF_ASSESSMENT: _grant(_ALL_ROLES, Relation.SELF),
    Action.SUBMIT_FEEDBACK: _grant(_ALL_ROLES, Relation.OTHER),
    Action.ADVANCE_TO_MANAGER_REVIEW: _grant(_LINE_MANAGERS, Relation.CHAIN),
    Action.RECORD_MANAGER_INPUT: _grant(_MANAGERS, Relation.CHAIN),
    Action.SET_L3_RATING: _grant([Role.L3_MANAGER], Relation.CHAIN),
    Action.SCHEDULE_MEETING: _grant(_MANAGERS, Relation.DIRECT_MANAGER),
    Action.UPDATE_MEETING: _grant(_MANAGERS, Relation.DIRECT_MANAGER),
    Action.FINALIZE_REVIEW: _grant(_APPROVERS, Relation.OTHER),

    Action.FILE_APPEAL: _grant(_ALL_ROLES, Relation.SELF),
    Action.RESOLVE_APPEAL: _grant(_APPROVERS, Relation.OTHER),
    Action.COMPLETE_APPEAL: _grant(_APPROVERS, Relation.OTHER),

    Action.VIEW_ACTIVITY: _grant([Role.FOUNDER], Relation.ANY),
    Action.VIEW_ANALYTICS: _grant([Role.FOUNDER, Role.L1_MANAGER, Role.L2_MANAGER], Relation.ANY),
}


def permit(role: Role | str, action: Action, context: PolicyContext | None = None) -> bool:
    try:
        role = Role(role)
    except ValueError:
        return False
    allowed = POLICY.get(action, {}).get(role)
    if not allowed:
        return False
    ctx = context or PolicyContext()
    return any(ctx.satisfies(relation) for relation in allowed)


def authorize(role: Role | str, action: Action, context: PolicyContext | None = None) -> None:
    if not permit(role, action, context):
        role_name = role.value if isinstance(role, Role) else str(role)
        logger.warning("Denied %s for role %s (%s)", action.value, role_name, context)
        raise AuthorizationError(
            f"Role '{role_name}' may not {action.value.replace('_', ' ')}",
            details={"action": action.value},
        )
