import enum


class Role(str, enum.Enum):
    FOUNDER = "founder"
    L1_MANAGER = "l1_manager"
    L2_MANAGER = "l2_manager"
    L3_MANAGER = "l3_manager"
    PEER = "peer"


MANAGER_ROLES = frozenset({Role.FOUNDER, Role.L1_MANAGER, Role.L2_MANAGER, Role.L3_MANAGER})


class Category(str, enum.Enum):
    SOFTWARE_DEVELOPER = "software_developer"
    ML_ENGINEER = "ml_engineer"
    QA_ENGINEER = "qa_engineer"
    UI_UX_DEVELOPER = "ui_ux_developer"


class ReviewStatus(str, enum.Enum):
    NOT_STARTED = "not_started"
    SELF_ASSESSMENT = "self_assessment"
    FEEDBACK_COLLECTION = "feedback_collection"
    MANAGER_REVIEW = "manager_review"
    MEETING_SCHEDULED = "meeting_scheduled"
    COMPLETED = "completed"
    APPEAL_REQUESTED = "appeal_requested"
    APPEAL_COMPLETED = "appeal_completed"


# Reviews whose final rating is settled (used by analytics)
FINALIZED_STATUSES = (
    ReviewStatus.COMPLETED.value,
    ReviewStatus.APPEAL_COMPLETED.value,
)


class MeetingStatus(str, enum.Enum):
    SCHEDULED = "scheduled"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class AppealStatus(str, enum.Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    COMPLETED = "completed"


def sql_in(enum_cls: type[enum.Enum]) -> str:
    """Render enum values for a CHECK (... IN (...)) constraint."""
    return ",".join(f"'{m.value}'" for m in enum_cls)
