from datetime import datetime
from pydantic import BaseModel


class ActivityOut(BaseModel):
    id: str
    actor_id: str | None
    action: str
    description: str | None
    entity_type: str | None
    entity_id: str | None
    created_at: datetime
