from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time
from decimal import Decimal
from typing import Optional

from ..core.enums import COVERING_ABSENCE_STATUSES, AbsenceStatus, AbsenceType


@dataclass(frozen=True)
class ContractorAbsence:
    """A claimed absence (sick day, vacation, ...) for one day or a date range."""

    absence_id: int
    tenant_id: int
    contractor_id: int
    start_date: date
    end_date: Optional[date]
    absence_type: AbsenceType
    status: AbsenceStatus
    is_full_day: bool = True
    hours_affected: Optional[Decimal] = None
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    reason: Optional[str] = None
    description: Optional[str] = None
    requires_documentation: bool = False
    auto_approval_rule: Optional[str] = None
    created_by: Optional[int] = None
    decided_by: Optional[int] = None
    decided_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    created_at: Optional[datetime] = None

    @property
    def last_date(self) -> date:
        return self.end_date or self.start_date

    @property
    def is_covering(self) -> bool:
        return self.status in COVERING_ABSENCE_STATUSES

    def covers(self, day: date) -> bool:
        return self.start_date <= day <= self.last_date

    def affected_hours(self, full_day_hours: Decimal = Decimal("8")) -> Decimal:
        if self.is_full_day:
            return full_day_hours
        return self.hours_affected or Decimal("0")

    def to_dict(self) -> dict:
        return {
            "id": self.absence_id,
            "contractor_id": self.contractor_id,
            "exception_type": self.absence_type.value,
            "start_date": self.start_date.isoformat(),
            "end_date": self.last_date.isoformat(),
            "is_full_day": self.is_full_day,
            "hours_affected": str(self.hours_affected) if self.hours_affected is not None else None,
            "start_time": self.start_time.strftime("%H:%M") if self.start_time else None,
            "end_time": self.end_time.strftime("%H:%M") if self.end_time else None,
            "reason": self.reason,
            "description": self.description,
            "status": self.status.value,
            "requires_documentation": self.requires_documentation,
            "auto_approval_rule": self.auto_approval_rule,
            "decided_by": self.decided_by,
            "decided_at": self.decided_at.isoformat() if self.decided_at else None,
            "rejection_reason": self.rejection_reason,
        }


@dataclass(frozen=True)
class NewAbsence:
    tenant_id: int
    contractor_id: int
    start_date: date
    end_date: Optional[date]
    absence_type: AbsenceType
    status: AbsenceStatus
    is_full_day: bool
    hours_affected: Optional[Decimal]
    start_time: Optional[time]
    end_time: Optional[time]
    reason: Optional[str]
    description: Optional[str]
    requires_documentation: bool
    auto_approval_rule: Optional[str]
    created_by: Optional[int]
    created_at: datetime
