from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Dict, Optional, Tuple

from ..core.enums import ProcessingMode, SkipReason


@dataclass(frozen=True)
class GenerationOutcome:
    """Result of one per-contractor-per-date decision."""

    tenant_id: int
    contractor_id: int
    work_date: date
    created: bool
    entry_id: Optional[int] = None
    skip_reason: Optional[SkipReason] = None

    @property
    def message(self) -> str:
        day = self.work_date.isoformat()
        if self.created:
            return f"Auto time entry created for {day}"
        reason = self.skip_reason.value if self.skip_reason else "unknown"
        return f"No auto time entry created for {day} ({reason})"

    def to_dict(self) -> dict:
        return {
            "tenant_id": self.tenant_id,
            "contractor_id": self.contractor_id,
            "work_date": self.work_date.isoformat(),
            "created": self.created,
            "entry_id": self.entry_id,
            "skip_reason": self.skip_reason.value if self.skip_reason else None,
            "message": self.message,
        }


@dataclass(frozen=True)
class ContractorFailure:
    tenant_id: int
    contractor_id: int
    error: str


@dataclass(frozen=True)
class CycleReport:
    mode: ProcessingMode
    dates: Tuple[date, ...]
    started_at: datetime
    finished_at: datetime
    contractors: int = 0
    outcomes: Tuple[GenerationOutcome, ...] = ()
    failures: Tuple[ContractorFailure, ...] = ()

    @property
    def created(self) -> int:
        return sum(1 for o in self.outcomes if o.created)

    @property
    def skipped(self) -> int:
        return sum(1 for o in self.outcomes if not o.created)

    def to_dict(self) -> dict:
        return {
            "mode": self.mode.value,
            "dates": [d.isoformat() for d in self.dates],
            "contractors": self.contractors,
            "created": self.created,
            "skipped": self.skipped,
            "failed": len(self.failures),
            "failures": [
                {"tenant_id": f.tenant_id, "contractor_id": f.contractor_id, "error": f.error} for f in self.failures
            ],
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat(),
        }


@dataclass(frozen=True)
class RegenerationResult:
    contractor_id: int
    start_date: date
    end_date: date
    deleted: int
    processed: int
    skipped: int
    failed_dates: Tuple[date, ...] = ()

    def to_dict(self) -> dict:
        return {
            "contractor_id": self.contractor_id,
            "start_date": self.start_date.isoformat(),
            "end_date": self.end_date.isoformat(),
            "deleted": self.deleted,
            "processed": self.processed,
            "skipped": self.skipped,
            "failed": len(self.failed_dates),
            "failed_dates": [d.isoformat() for d in self.failed_dates],
        }


@dataclass(frozen=True)
class GeneratedCounts:
    total: int = 0
    by_mode: Dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {"total": self.total, "by_mode": dict(self.by_mode)}


@dataclass(frozen=True)
class SchedulerStatistics:
    total_enabled_contractors: int
    contractors_by_mode: Dict[str, int]
    today: GeneratedCounts
    this_week: GeneratedCounts
    this_month: GeneratedCounts

    def to_dict(self) -> dict:
        return {
            "total_enabled_contractors": self.total_enabled_contractors,
            "contractors_by_mode": dict(self.contractors_by_mode),
            "auto_generated_today": self.today.to_dict(),
            "auto_generated_this_week": self.this_week.to_dict(),
            "auto_generated_this_month": self.this_month.to_dict(),
        }


@dataclass(frozen=True)
class TriggerHealth:
    name: str
    active: bool
    next_run_at: Optional[datetime]
    last_run_at: Optional[datetime]
    last_error: Optional[str]

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "active": self.active,
            "next_run_at": self.next_run_at.isoformat() if self.next_run_at else None,
            "last_run_at": self.last_run_at.isoformat() if self.last_run_at else None,
            "last_error": self.last_error,
        }


@dataclass(frozen=True)
class HealthStatus:
    triggers: Tuple[TriggerHealth, ...]

    @property
    def status(self) -> str:
        return "healthy" if self.triggers and all(t.active for t in self.triggers) else "degraded"

    def to_dict(self) -> dict:
        return {"status": self.status, "jobs": [t.to_dict() for t in self.triggers]}
