from pydantic import BaseModel


class EmployeeOut(BaseModel):
    id: str
    email: str
    first_name: str
    last_name: str
    role: str
    category: str | None
    department: str | None
    manager_id: str | None
    is_active: bool


class MeOut(EmployeeOut):
    full_name: str
