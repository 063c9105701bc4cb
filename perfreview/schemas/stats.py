from decimal import Decimal
from pydantic import BaseModel


class ReviewStats(BaseModel):
    """Review counts and average final rating for a cycle"""
    cycle_id: str
    total: int = 0
    completed: int = 0  # completed or appeal_completed
    average_final_rating: Decimal | None = None
    by_status: dict[str, int] = {}


class DepartmentPerformance(BaseModel):
    department: str
    employee_count: int
    average_rating: Decimal | None


class PendingActions(BaseModel):
    """What the current user has to do next in the active cycle"""
    cycle_id: str | None
    own_review_id: str | None = None
    own_review_status: str | None = None
    next_action: str | None = None
    pending_approvals: list[str] = []  # review ids of direct reports
    pending_appeals: list[str] = []  # appeal ids awaiting a decision
