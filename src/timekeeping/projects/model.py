from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional, Tuple

from ..core.enums import ApproverRole


@dataclass(frozen=True)
class ProjectApprover:
    approver_id: int
    approver_role: ApproverRole
    level: int = 1
    is_required: bool = True


@dataclass(frozen=True)
class Project:
    project_id: int
    tenant_id: int
    name: str
    code: Optional[str] = None
    client_id: Optional[int] = None
    default_rate: Decimal = Decimal("0")
    approvers: Tuple[ProjectApprover, ...] = ()

    def names_approver(self, approver_id: int, role: ApproverRole) -> bool:
        return any(a.approver_id == approver_id and a.approver_role == role for a in self.approvers)
