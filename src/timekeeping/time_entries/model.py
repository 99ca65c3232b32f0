from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date, datetime
from decimal import Decimal
from typing import Optional, Tuple

from ..core.enums import ApprovalStatus, ApproverRole, EntryStatus, ProcessingMode

ZERO = Decimal("0.00")


@dataclass(frozen=True)
class HoursBreakdown:
    """Tiered hours for one interval.

    ``total`` is always the exact sum of the three tiers.
    """

    regular: Decimal = ZERO
    overtime: Decimal = ZERO
    double_time: Decimal = ZERO
    billable: Decimal = ZERO
    non_billable: Decimal = ZERO

    @property
    def total(self) -> Decimal:
        return self.regular + self.overtime + self.double_time


@dataclass(frozen=True)
class ApprovalRecord:
    approver_id: int
    approver_role: ApproverRole
    decision: ApprovalStatus
    timestamp: datetime
    notes: Optional[str] = None


@dataclass(frozen=True)
class TimeEntry:
    """Domain entity: one interval of work, manual or auto-generated."""

    entry_id: int
    tenant_id: int
    user_id: int
    work_date: date
    clock_in: datetime
    clock_out: Optional[datetime]
    status: EntryStatus
    approval_status: ApprovalStatus
    requires_approval: bool
    break_minutes: int = 0
    project_id: Optional[int] = None
    client_id: Optional[int] = None
    hours: Optional[HoursBreakdown] = None
    approvals: Tuple[ApprovalRecord, ...] = ()
    is_auto_generated: bool = False
    auto_generated_at: Optional[datetime] = None
    generation_mode: Optional[ProcessingMode] = None
    task_description: Optional[str] = None
    notes: Optional[str] = None

    @property
    def total_hours(self) -> Decimal:
        return self.hours.total if self.hours else ZERO

    @property
    def is_open(self) -> bool:
        return self.clock_out is None

    def with_approval(self, record: ApprovalRecord, status: ApprovalStatus) -> "TimeEntry":
        return replace(self, approvals=self.approvals + (record,), approval_status=status)

    def to_dict(self) -> dict:
        hours = self.hours or HoursBreakdown()
        return {
            "id": self.entry_id,
            "tenant_id": self.tenant_id,
            "user_id": self.user_id,
            "project_id": self.project_id,
            "client_id": self.client_id,
            "work_date": self.work_date.isoformat(),
            "clock_in": self.clock_in.isoformat(),
            "clock_out": self.clock_out.isoformat() if self.clock_out else None,
            "break_minutes": self.break_minutes,
            "regular_hours": str(hours.regular),
            "overtime_hours": str(hours.overtime),
            "double_time_hours": str(hours.double_time),
            "billable_hours": str(hours.billable),
            "non_billable_hours": str(hours.non_billable),
            "total_hours": str(self.total_hours),
            "status": self.status.value,
            "approval_status": self.approval_status.value,
            "requires_approval": self.requires_approval,
            "is_auto_generated": self.is_auto_generated,
            "auto_generated_at": self.auto_generated_at.isoformat() if self.auto_generated_at else None,
            "generation_mode": self.generation_mode.value if self.generation_mode else None,
            "task_description": self.task_description,
            "notes": self.notes,
            "approvals": [
                {
                    "approver_id": a.approver_id,
                    "approver_role": a.approver_role.value,
                    "decision": a.decision.value,
                    "timestamp": a.timestamp.isoformat(),
                    "notes": a.notes,
                }
                for a in self.approvals
            ],
        }


@dataclass(frozen=True)
class NewTimeEntry:
    """Entry data before the store assigns an id."""

    tenant_id: int
    user_id: int
    work_date: date
    clock_in: datetime
    clock_out: Optional[datetime]
    status: EntryStatus
    approval_status: ApprovalStatus
    requires_approval: bool
    break_minutes: int = 0
    project_id: Optional[int] = None
    client_id: Optional[int] = None
    hours: Optional[HoursBreakdown] = None
    approvals: Tuple[ApprovalRecord, ...] = ()
    is_auto_generated: bool = False
    auto_generated_at: Optional[datetime] = None
    generation_mode: Optional[ProcessingMode] = None
    task_description: Optional[str] = None
    notes: Optional[str] = None


@dataclass(frozen=True)
class EntryFilters:
    user_id: Optional[int] = None
    project_id: Optional[int] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    approval_status: Optional[ApprovalStatus] = None
    is_auto_generated: Optional[bool] = None
    limit: int = 200
