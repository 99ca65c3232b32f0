from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Iterable, List, Mapping, Optional, Sequence

from ..core.enums import ApprovalStatus
from ..projects.model import Project
from ..time_entries.model import ZERO, TimeEntry

NO_PROJECT_KEY = "no-project"
MONEY = Decimal("0.01")


@dataclass(frozen=True)
class ProjectRollup:
    project_id: Optional[int]
    name: str
    code: Optional[str]
    rate: Decimal
    entries: int
    total_hours: Decimal
    billable_amount: Decimal


@dataclass(frozen=True)
class DateRollup:
    work_date: str
    entries: int
    total_hours: Decimal


@dataclass(frozen=True)
class ContractorRollup:
    user_id: int
    entries: int
    total_hours: Decimal
    regular_hours: Decimal
    overtime_hours: Decimal
    double_time_hours: Decimal


@dataclass(frozen=True)
class TimesheetSummary:
    total_entries: int
    total_hours: Decimal
    regular_hours: Decimal
    overtime_hours: Decimal
    double_time_hours: Decimal
    billable_hours: Decimal
    non_billable_hours: Decimal
    billable_amount: Decimal
    approval_status: Mapping[str, int]
    by_project: List[ProjectRollup] = field(default_factory=list)
    by_date: List[DateRollup] = field(default_factory=list)
    by_contractor: List[ContractorRollup] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "total_entries": self.total_entries,
            "total_hours": str(self.total_hours),
            "regular_hours": str(self.regular_hours),
            "overtime_hours": str(self.overtime_hours),
            "double_time_hours": str(self.double_time_hours),
            "billable_hours": str(self.billable_hours),
            "non_billable_hours": str(self.non_billable_hours),
            "billable_amount": str(self.billable_amount),
            "approval_status": dict(self.approval_status),
            "project_breakdown": [
                {
                    "project_id": p.project_id,
                    "name": p.name,
                    "code": p.code,
                    "rate": str(p.rate),
                    "entries": p.entries,
                    "total_hours": str(p.total_hours),
                    "billable_amount": str(p.billable_amount),
                }
                for p in self.by_project
            ],
            "daily_breakdown": [
                {"date": d.work_date, "entries": d.entries, "total_hours": str(d.total_hours)} for d in self.by_date
            ],
            "contractor_breakdown": [
                {
                    "user_id": c.user_id,
                    "entries": c.entries,
                    "total_hours": str(c.total_hours),
                    "regular_hours": str(c.regular_hours),
                    "overtime_hours": str(c.overtime_hours),
                    "double_time_hours": str(c.double_time_hours),
                }
                for c in self.by_contractor
            ],
        }


class ContractorTimesheetAggregator:
    """Read-side rollups over an already fetched entry set. Never mutates entries."""

    def __init__(
        self,
        projects: Optional[Mapping[int, Project]] = None,
        *,
        default_rates: Optional[Mapping[int, Decimal]] = None,
    ):
        self._projects = dict(projects or {})
        self._default_rates = dict(default_rates or {})

    def rate_for(self, entry: TimeEntry) -> Decimal:
        """Project rate, else the contractor's default rate, else zero."""
        project = self._projects.get(entry.project_id) if entry.project_id is not None else None
        if project and project.default_rate:
            return project.default_rate
        return self._default_rates.get(entry.user_id, ZERO)

    def billable_amount(self, entry: TimeEntry) -> Decimal:
        return (entry.total_hours * self.rate_for(entry)).quantize(MONEY)

    def group_by_project(self, entries: Iterable[TimeEntry]) -> List[ProjectRollup]:
        groups: dict = {}
        for e in entries:
            key = e.project_id if e.project_id is not None else NO_PROJECT_KEY
            g = groups.get(key)
            if not g:
                project = self._projects.get(e.project_id) if e.project_id is not None else None
                g = {
                    "project_id": e.project_id,
                    "name": project.name if project else "No Project",
                    "code": project.code if project else None,
                    "rate": project.default_rate if project else ZERO,
                    "entries": 0,
                    "total_hours": ZERO,
                    "billable_amount": ZERO,
                }
                groups[key] = g
            g["entries"] += 1
            g["total_hours"] += e.total_hours
            g["billable_amount"] += self.billable_amount(e)

        return [ProjectRollup(**g) for g in groups.values()]

    def group_by_date(self, entries: Iterable[TimeEntry]) -> List[DateRollup]:
        groups: dict[str, dict] = {}
        for e in entries:
            key = e.work_date.isoformat()
            g = groups.setdefault(key, {"work_date": key, "entries": 0, "total_hours": ZERO})
            g["entries"] += 1
            g["total_hours"] += e.total_hours

        rows = [DateRollup(**g) for g in groups.values()]
        rows.sort(key=lambda r: r.work_date, reverse=True)
        return rows

    def group_by_contractor(self, entries: Iterable[TimeEntry]) -> List[ContractorRollup]:
        groups: dict[int, dict] = {}
        for e in entries:
            g = groups.get(e.user_id)
            if not g:
                g = {
                    "user_id": e.user_id,
                    "entries": 0,
                    "total_hours": ZERO,
                    "regular_hours": ZERO,
                    "overtime_hours": ZERO,
                    "double_time_hours": ZERO,
                }
                groups[e.user_id] = g
            g["entries"] += 1
            g["total_hours"] += e.total_hours
            if e.hours:
                g["regular_hours"] += e.hours.regular
                g["overtime_hours"] += e.hours.overtime
                g["double_time_hours"] += e.hours.double_time

        rows = [ContractorRollup(**g) for g in groups.values()]
        rows.sort(key=lambda r: r.total_hours, reverse=True)
        return rows

    def summarize(self, entries: Sequence[TimeEntry]) -> TimesheetSummary:
        entries = list(entries)
        hours = [e.hours for e in entries if e.hours]
        statuses = Counter(e.approval_status for e in entries)

        return TimesheetSummary(
            total_entries=len(entries),
            total_hours=sum((e.total_hours for e in entries), ZERO),
            regular_hours=sum((h.regular for h in hours), ZERO),
            overtime_hours=sum((h.overtime for h in hours), ZERO),
            double_time_hours=sum((h.double_time for h in hours), ZERO),
            billable_hours=sum((h.billable for h in hours), ZERO),
            non_billable_hours=sum((h.non_billable for h in hours), ZERO),
            billable_amount=sum((self.billable_amount(e) for e in entries), ZERO),
            approval_status={s.value: statuses.get(s, 0) for s in ApprovalStatus},
            by_project=self.group_by_project(entries),
            by_date=self.group_by_date(entries),
            by_contractor=self.group_by_contractor(entries),
        )
