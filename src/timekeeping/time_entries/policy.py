from __future__ import annotations

from datetime import datetime
from typing import Optional, Tuple

from ..core.enums import ApprovalStatus, ApproverRole, Role
from ..tenants.model import TenantPolicy
from .model import ApprovalRecord

AUTO_APPROVAL_NOTE = "Auto-approved - no approval required"


def resolve_approval_policy(policy: Optional[TenantPolicy], role: Role) -> bool:
    """Whether a completed entry for ``role`` must go through approval.

    Contractors default to requiring approval; other staff follow the
    tenant's manager-approval switch. Missing tenant settings fall back to
    those defaults.
    """
    policy = policy or TenantPolicy(tenant_id=0)
    if role == Role.CONTRACTOR:
        return policy.contractor_approval_required
    return policy.manager_approval_required


def initial_approval(
    *,
    requires_approval: bool,
    user_id: int,
    now: datetime,
) -> Tuple[ApprovalStatus, Tuple[ApprovalRecord, ...]]:
    """Initial approval state: pending, or auto-approved with a self-approval record."""
    if requires_approval:
        return ApprovalStatus.PENDING, ()

    record = ApprovalRecord(
        approver_id=user_id,
        approver_role=ApproverRole.MANAGER,
        decision=ApprovalStatus.AUTO_APPROVED,
        timestamp=now,
        notes=AUTO_APPROVAL_NOTE,
    )
    return ApprovalStatus.AUTO_APPROVED, (record,)
