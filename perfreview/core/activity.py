import uuid

from sqlalchemy.orm import Session

from perfreview.models.activity_log import ActivityLog
from perfreview.models.employee import Employee


def log_activity(
    *,
    db: Session,
    actor: Employee | None,
    action: str,
    description: str,
    entity_type: str | None = None,
    entity_id: uuid.UUID | None = None,
) -> ActivityLog:
    entry = ActivityLog(
        actor_id=actor.id if actor else None,
        action=action,
        description=description,
        entity_type=entity_type,
        entity_id=entity_id,
    )
    db.add(entry)
    return entry
