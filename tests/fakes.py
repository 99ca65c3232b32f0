"""In-memory repositories and a controllable clock for service tests."""
from __future__ import annotations

import threading
from dataclasses import replace
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Tuple

from timekeeping.absences.model import ContractorAbsence, NewAbsence
from timekeeping.contractors.model import AutoClockingProfile, Contractor, WorkSchedule
from timekeeping.core.enums import (
    COVERING_ABSENCE_STATUSES,
    AbsenceStatus,
    ApprovalStatus,
    EntryStatus,
    ProcessingMode,
    Role,
)
from timekeeping.projects.model import Project
from timekeeping.tenants.model import TenantPolicy
from timekeeping.time_entries.model import EntryFilters, NewTimeEntry, TimeEntry

TENANT = 1


class FixedClock:
    def __init__(self, now: datetime):
        self._now = now

    def now(self) -> datetime:
        return self._now

    def set(self, now: datetime) -> None:
        self._now = now

    def advance(self, **kwargs) -> None:
        self._now = self._now + timedelta(**kwargs)


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


def make_contractor(
    contractor_id: int = 10,
    *,
    tenant_id: int = TENANT,
    enabled: bool = True,
    mode: ProcessingMode = ProcessingMode.PROACTIVE,
    requires_approval: bool = False,
    start: time = time(9, 0),
    end: time = time(17, 0),
    hours_per_day: Decimal = Decimal("8"),
    work_days=frozenset({0, 1, 2, 3, 4}),
    timezone_name: str = "America/New_York",
    role: Role = Role.CONTRACTOR,
    is_active: bool = True,
    rate: Decimal = Decimal("0"),
    schedule: Optional[WorkSchedule] = None,
) -> Contractor:
    schedule = schedule or WorkSchedule(
        start_time=start,
        end_time=end,
        hours_per_day=hours_per_day,
        work_days=frozenset(work_days),
        timezone=timezone_name,
    )
    return Contractor(
        contractor_id=contractor_id,
        tenant_id=tenant_id,
        full_name=f"Contractor {contractor_id}",
        email=f"c{contractor_id}@example.com",
        role=role,
        is_active=is_active,
        default_project_rate=rate,
        auto_clocking=AutoClockingProfile(
            enabled=enabled,
            processing_mode=mode,
            schedule=schedule,
            requires_approval=requires_approval,
        ),
    )


class InMemoryContractors:
    def __init__(self, contractors: Iterable[Contractor] = ()):
        self._items: Dict[Tuple[int, int], Contractor] = {}
        for c in contractors:
            self.add(c)

    def add(self, contractor: Contractor) -> None:
        self._items[(contractor.tenant_id, contractor.contractor_id)] = contractor

    def get(self, *, tenant_id: int, contractor_id: int) -> Optional[Contractor]:
        return self._items.get((tenant_id, contractor_id))

    def list_auto_clocking(self, *, mode=None, tenant_id=None) -> List[Contractor]:
        return [
            c
            for c in self._items.values()
            if c.auto_clocking_enabled
            and (mode is None or c.auto_clocking.processing_mode == mode)
            and (tenant_id is None or c.tenant_id == tenant_id)
        ]


class InMemoryTenants:
    def __init__(self, policies: Iterable[TenantPolicy] = ()):
        self._policies = {p.tenant_id: p for p in policies}

    def get_policy(self, tenant_id: int) -> Optional[TenantPolicy]:
        return self._policies.get(tenant_id)


class InMemoryProjects:
    def __init__(self, projects: Iterable[Project] = ()):
        self._items = {(p.tenant_id, p.project_id): p for p in projects}

    def get(self, *, tenant_id: int, project_id: int) -> Optional[Project]:
        return self._items.get((tenant_id, project_id))

    def get_many(self, *, tenant_id: int, project_ids):
        return {pid: self._items[(tenant_id, pid)] for pid in project_ids if (tenant_id, pid) in self._items}


class InMemoryTimeEntries:
    """Thread-safe entry store enforcing one auto-generated entry per (tenant, user, day)."""

    def __init__(self):
        self._lock = threading.Lock()
        self._items: Dict[int, TimeEntry] = {}
        self._next_id = 0
        self.insert_attempts = 0

    def _store(self, entry: NewTimeEntry) -> int:
        self._next_id += 1
        self._items[self._next_id] = TimeEntry(entry_id=self._next_id, **entry.__dict__)
        return self._next_id

    def add(self, entry: NewTimeEntry) -> int:
        return self.create(entry)

    def all(self) -> List[TimeEntry]:
        with self._lock:
            return list(self._items.values())

    def get(self, *, tenant_id: int, entry_id: int) -> Optional[TimeEntry]:
        with self._lock:
            e = self._items.get(entry_id)
            return e if e and e.tenant_id == tenant_id else None

    def list(self, *, tenant_id: int, filters: EntryFilters) -> List[TimeEntry]:
        with self._lock:
            items = [
                e
                for e in self._items.values()
                if e.tenant_id == tenant_id
                and (filters.user_id is None or e.user_id == filters.user_id)
                and (filters.project_id is None or e.project_id == filters.project_id)
                and (filters.start_date is None or e.work_date >= filters.start_date)
                and (filters.end_date is None or e.work_date <= filters.end_date)
                and (filters.approval_status is None or e.approval_status == filters.approval_status)
                and (filters.is_auto_generated is None or e.is_auto_generated == filters.is_auto_generated)
            ]
        items.sort(key=lambda e: (e.work_date, e.clock_in), reverse=True)
        return items[: filters.limit]

    def find_open_for_user(self, *, tenant_id: int, user_id: int) -> Optional[TimeEntry]:
        with self._lock:
            for e in self._items.values():
                if e.tenant_id == tenant_id and e.user_id == user_id and e.is_open:
                    return e
        return None

    def find_auto_generated(self, *, tenant_id: int, user_id: int, work_date: date) -> Optional[TimeEntry]:
        with self._lock:
            return self._find_auto(tenant_id, user_id, work_date)

    def _find_auto(self, tenant_id: int, user_id: int, work_date: date) -> Optional[TimeEntry]:
        for e in self._items.values():
            if e.tenant_id == tenant_id and e.user_id == user_id and e.work_date == work_date and e.is_auto_generated:
                return e
        return None

    def create(self, entry: NewTimeEntry) -> int:
        with self._lock:
            return self._store(entry)

    def insert_auto_generated(self, entry: NewTimeEntry) -> Optional[int]:
        with self._lock:
            self.insert_attempts += 1
            if self._find_auto(entry.tenant_id, entry.user_id, entry.work_date):
                return None
            return self._store(entry)

    def complete(
        self,
        *,
        tenant_id,
        entry_id,
        clock_out,
        break_minutes,
        hours,
        status,
        approval_status,
        requires_approval,
        approvals=(),
    ) -> bool:
        with self._lock:
            e = self._items.get(entry_id)
            if not e or e.tenant_id != tenant_id or not e.is_open:
                return False
            self._items[entry_id] = replace(
                e,
                clock_out=clock_out,
                break_minutes=break_minutes,
                hours=hours,
                status=status,
                approval_status=approval_status,
                requires_approval=requires_approval,
                approvals=e.approvals + tuple(approvals),
            )
            return True

    def append_approval(
        self,
        *,
        tenant_id,
        entry_id,
        record,
        new_status,
        expected_status=ApprovalStatus.PENDING,
    ) -> bool:
        with self._lock:
            e = self._items.get(entry_id)
            if not e or e.tenant_id != tenant_id or e.approval_status != expected_status:
                return False
            self._items[entry_id] = e.with_approval(record, new_status)
            return True

    def delete_auto_generated(self, *, tenant_id: int, user_id: int, work_date: date) -> int:
        with self._lock:
            doomed = [
                i
                for i, e in self._items.items()
                if e.tenant_id == tenant_id and e.user_id == user_id and e.work_date == work_date and e.is_auto_generated
            ]
            for i in doomed:
                del self._items[i]
            return len(doomed)

    def count_auto_generated_by_mode(self, *, since: datetime, tenant_id=None):
        counts: Dict[Optional[ProcessingMode], int] = {}
        with self._lock:
            for e in self._items.values():
                if not e.is_auto_generated or e.auto_generated_at is None or e.auto_generated_at < since:
                    continue
                if tenant_id is not None and e.tenant_id != tenant_id:
                    continue
                counts[e.generation_mode] = counts.get(e.generation_mode, 0) + 1
        return counts


def manual_entry(
    *,
    user_id: int = 10,
    work_date: date = date(2025, 1, 15),
    tenant_id: int = TENANT,
    clock_in: Optional[datetime] = None,
    clock_out: Optional[datetime] = None,
    approval_status: ApprovalStatus = ApprovalStatus.PENDING,
    requires_approval: bool = True,
    project_id: Optional[int] = None,
    client_id: Optional[int] = None,
    hours=None,
    is_auto_generated: bool = False,
) -> NewTimeEntry:
    clock_in = clock_in or datetime.combine(work_date, time(14, 0), tzinfo=timezone.utc)
    if clock_out is None:
        clock_out = clock_in + timedelta(hours=8)
    return NewTimeEntry(
        tenant_id=tenant_id,
        user_id=user_id,
        work_date=work_date,
        clock_in=clock_in,
        clock_out=clock_out,
        status=EntryStatus.COMPLETED,
        approval_status=approval_status,
        requires_approval=requires_approval,
        project_id=project_id,
        client_id=client_id,
        hours=hours,
        is_auto_generated=is_auto_generated,
    )


class InMemoryAbsences:
    def __init__(self):
        self._lock = threading.Lock()
        self._items: Dict[int, ContractorAbsence] = {}
        self._next_id = 0

    def get(self, *, tenant_id: int, absence_id: int) -> Optional[ContractorAbsence]:
        a = self._items.get(absence_id)
        return a if a and a.tenant_id == tenant_id else None

    def _overlapping(self, tenant_id, contractor_id, start, end) -> List[ContractorAbsence]:
        return [
            a
            for a in self._items.values()
            if a.tenant_id == tenant_id
            and a.contractor_id == contractor_id
            and a.status in COVERING_ABSENCE_STATUSES
            and a.start_date <= end
            and a.last_date >= start
        ]

    def create_if_no_overlap(self, absence: NewAbsence) -> Optional[int]:
        with self._lock:
            last = absence.end_date or absence.start_date
            if self._overlapping(absence.tenant_id, absence.contractor_id, absence.start_date, last):
                return None
            self._next_id += 1
            self._items[self._next_id] = ContractorAbsence(absence_id=self._next_id, **absence.__dict__)
            return self._next_id

    def find_covering(self, *, tenant_id, contractor_id, start, end) -> List[ContractorAbsence]:
        with self._lock:
            return self._overlapping(tenant_id, contractor_id, start, end)

    def list(self, *, tenant_id, contractor_id=None, start=None, end=None, status=None, absence_type=None, limit=200):
        items = [
            a
            for a in self._items.values()
            if a.tenant_id == tenant_id
            and (contractor_id is None or a.contractor_id == contractor_id)
            and (start is None or a.last_date >= start)
            and (end is None or a.start_date <= end)
            and (status is None or a.status == status)
            and (absence_type is None or a.absence_type == absence_type)
        ]
        items.sort(key=lambda a: a.start_date, reverse=True)
        return items[:limit]

    def decide(self, *, tenant_id, absence_id, status, decided_by, decided_at, rejection_reason=None) -> bool:
        with self._lock:
            a = self._items.get(absence_id)
            if not a or a.tenant_id != tenant_id or a.status != AbsenceStatus.PENDING:
                return False
            self._items[absence_id] = replace(
                a,
                status=status,
                decided_by=decided_by,
                decided_at=decided_at,
                rejection_reason=rejection_reason,
            )
            return True
