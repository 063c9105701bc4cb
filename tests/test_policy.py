import pytest

from perfreview.core.errors import AuthorizationError
from perfreview.core.policy import Action, PolicyContext, authorize, permit
from perfreview.models.enums import Role

SELF = PolicyContext(is_self=True)
DIRECT = PolicyContext(is_direct_manager=True, in_chain=True)
CHAIN = PolicyContext(in_chain=True)
STRANGER = PolicyContext()


@pytest.mark.parametrize(
    "role, action, context, allowed",
    [
        (Role.FOUNDER, Action.CREATE_CYCLE, None, True),
        (Role.L1_MANAGER, Action.CREATE_CYCLE, None, False),
        (Role.FOUNDER, Action.CLOSE_FEEDBACK_WINDOW, None, True),
        (Role.L2_MANAGER, Action.CLOSE_FEEDBACK_WINDOW, None, False),
        (Role.PEER, Action.SUBMIT_SELF_ASSESSMENT, SELF, True),
        (Role.L3_MANAGER, Action.SUBMIT_SELF_ASSESSMENT, DIRECT, False),
        (Role.PEER, Action.SUBMIT_FEEDBACK, STRANGER, True),
        (Role.PEER, Action.SUBMIT_FEEDBACK, SELF, False),
        (Role.L3_MANAGER, Action.ADVANCE_TO_MANAGER_REVIEW, DIRECT, True),
        (Role.L1_MANAGER, Action.ADVANCE_TO_MANAGER_REVIEW, CHAIN, True),
        (Role.L1_MANAGER, Action.ADVANCE_TO_MANAGER_REVIEW, STRANGER, False),
        (Role.PEER, Action.ADVANCE_TO_MANAGER_REVIEW, CHAIN, False),
        (Role.FOUNDER, Action.ADVANCE_TO_MANAGER_REVIEW, CHAIN, False),
        (Role.L3_MANAGER, Action.SET_L3_RATING, DIRECT, True),
        (Role.L2_MANAGER, Action.SET_L3_RATING, CHAIN, False),
        (Role.L3_MANAGER, Action.SCHEDULE_MEETING, DIRECT, True),
        (Role.L2_MANAGER, Action.SCHEDULE_MEETING, CHAIN, False),
        (Role.L2_MANAGER, Action.FINALIZE_REVIEW, STRANGER, True),
        (Role.FOUNDER, Action.FINALIZE_REVIEW, CHAIN, True),
        (Role.L3_MANAGER, Action.FINALIZE_REVIEW, DIRECT, False),
        (Role.L2_MANAGER, Action.FINALIZE_REVIEW, SELF, False),
        (Role.FOUNDER, Action.FINALIZE_REVIEW, SELF, False),
        (Role.PEER, Action.FILE_APPEAL, SELF, True),
        (Role.PEER, Action.FILE_APPEAL, STRANGER, False),
        (Role.L2_MANAGER, Action.RESOLVE_APPEAL, CHAIN, True),
        (Role.L1_MANAGER, Action.RESOLVE_APPEAL, CHAIN, False),
        (Role.FOUNDER, Action.RESOLVE_APPEAL, STRANGER, True),
        (Role.FOUNDER, Action.RESOLVE_APPEAL, SELF, False),
        (Role.L2_MANAGER, Action.RESOLVE_APPEAL, SELF, False),
        (Role.L2_MANAGER, Action.COMPLETE_APPEAL, SELF, False),
        (Role.FOUNDER, Action.COMPLETE_APPEAL, CHAIN, True),
        (Role.PEER, Action.VIEW_REVIEW, SELF, True),
        (Role.PEER, Action.VIEW_REVIEW, STRANGER, False),
        (Role.L3_MANAGER, Action.VIEW_REVIEW, STRANGER, False),
        (Role.FOUNDER, Action.VIEW_REVIEW, STRANGER, True),
        (Role.FOUNDER, Action.VIEW_ACTIVITY, None, True),
        (Role.L1_MANAGER, Action.VIEW_ACTIVITY, None, False),
        (Role.L1_MANAGER, Action.VIEW_ANALYTICS, None, True),
        (Role.L3_MANAGER, Action.VIEW_ANALYTICS, None, False),
    ],
)
def test_policy_table(role, action, context, allowed):
    assert permit(role, action, context) is allowed


def test_permit_accepts_role_strings():
    assert permit("founder", Action.CREATE_CYCLE)
    assert not permit("intern", Action.CREATE_CYCLE)


def test_authorize_raises_with_action_detail():
    with pytest.raises(AuthorizationError) as exc:
        authorize(Role.PEER, Action.FINALIZE_REVIEW, SELF)
    assert exc.value.status_code == 403
    assert exc.value.to_detail() == {
        "message": "Role 'peer' may not finalize review",
        "code": "NOT_PERMITTED",
        "action": "finalize_review",
    }
