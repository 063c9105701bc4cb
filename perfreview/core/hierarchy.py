from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import Iterable

from sqlalchemy.orm import Session

from perfreview.core.policy import PolicyContext
from perfreview.models.employee import Employee
from perfreview.models.enums import Role


@dataclass(frozen=True)
class OrgNode:
    id: uuid.UUID
    manager_id: uuid.UUID | None
    role: str


class OrgChart:
    """
    Reporting forest built from employee records (founder -> L1 -> L2 -> L3 -> peer).

    Depth is not enforced; roles are only interpreted per hop. Walking upward
    stops at a root or at the first repeated node, so bad data cannot loop.
    """

    def __init__(self, nodes: Iterable[OrgNode]):
        self._nodes: dict[uuid.UUID, OrgNode] = {n.id: n for n in nodes}
        self._children: dict[uuid.UUID, list[uuid.UUID]] = {}
        for n in self._nodes.values():
            if n.manager_id is not None:
                self._children.setdefault(n.manager_id, []).append(n.id)

    @classmethod
    def load(cls, db: Session) -> "OrgChart":
        rows = db.query(Employee.id, Employee.manager_id, Employee.role).all()
        return cls(OrgNode(id=r[0], manager_id=r[1], role=r[2]) for r in rows)

    def __contains__(self, employee_id: uuid.UUID) -> bool:
        return employee_id in self._nodes

    def role_of(self, employee_id: uuid.UUID) -> str | None:
        node = self._nodes.get(employee_id)
        return node.role if node else None

    def manager_of(self, employee_id: uuid.UUID) -> uuid.UUID | None:
        node = self._nodes.get(employee_id)
        return node.manager_id if node else None

    def direct_reports(self, manager_id: uuid.UUID) -> list[uuid.UUID]:
        return list(self._children.get(manager_id, []))

    def chain_to_root(self, employee_id: uuid.UUID) -> list[uuid.UUID]:
        """Managers above the employee, nearest first."""
        chain: list[uuid.UUID] = []
        seen = {employee_id}
        current = self.manager_of(employee_id)
        while current is not None and current not in seen and current in self._nodes:
            chain.append(current)
            seen.add(current)
            current = self.manager_of(current)
        return chain

    def is_direct_manager(self, manager_id: uuid.UUID, employee_id: uuid.UUID) -> bool:
        return self.manager_of(employee_id) == manager_id

    def in_chain(self, manager_id: uuid.UUID, employee_id: uuid.UUID) -> bool:
        return manager_id in self.chain_to_root(employee_id)

    def first_in_chain_with_role(self, employee_id: uuid.UUID, roles: Iterable[Role | str]) -> uuid.UUID | None:
        wanted = {Role(r).value for r in roles}
        for manager_id in self.chain_to_root(employee_id):
            if self.role_of(manager_id) in wanted:
                return manager_id
        return None

    def context_for(self, actor_id: uuid.UUID, subject_id: uuid.UUID) -> PolicyContext:
        return PolicyContext(
            is_self=actor_id == subject_id,
            is_direct_manager=self.is_direct_manager(actor_id, subject_id),
            in_chain=self.in_chain(actor_id, subject_id),
        )
