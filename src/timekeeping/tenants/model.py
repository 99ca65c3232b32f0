from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class TenantPolicy:
    """Approval settings a tenant applies to completed entries."""

    tenant_id: int
    contractor_approval_required: bool = True
    manager_approval_required: bool = False
