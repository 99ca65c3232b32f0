from __future__ import annotations

from datetime import date, datetime
from typing import Mapping, Optional, Protocol, Sequence

from ..core.enums import ApprovalStatus, EntryStatus, ProcessingMode
from .model import ApprovalRecord, EntryFilters, HoursBreakdown, NewTimeEntry, TimeEntry


class TimeEntryRepository(Protocol):
    """Tenant-scoped entry store; every query carries ``tenant_id``."""

    def get(self, *, tenant_id: int, entry_id: int) -> Optional[TimeEntry]:
        raise NotImplementedError

    def list(self, *, tenant_id: int, filters: EntryFilters) -> Sequence[TimeEntry]:
        raise NotImplementedError

    def find_open_for_user(self, *, tenant_id: int, user_id: int) -> Optional[TimeEntry]:
        raise NotImplementedError

    def find_auto_generated(self, *, tenant_id: int, user_id: int, work_date: date) -> Optional[TimeEntry]:
        raise NotImplementedError

    def create(self, entry: NewTimeEntry) -> int:
        raise NotImplementedError

    def insert_auto_generated(self, entry: NewTimeEntry) -> Optional[int]:
        """Atomic insert-if-absent keyed on (tenant, user, work_date).

        Returns the new id, or None when an auto-generated entry already exists.
        """

        raise NotImplementedError

    def complete(
        self,
        *,
        tenant_id: int,
        entry_id: int,
        clock_out: datetime,
        break_minutes: int,
        hours: HoursBreakdown,
        status: EntryStatus,
        approval_status: ApprovalStatus,
        requires_approval: bool,
        approvals: Sequence[ApprovalRecord] = (),
    ) -> bool:
        """Close an open entry. Returns False if it was already closed."""

        raise NotImplementedError

    def append_approval(
        self,
        *,
        tenant_id: int,
        entry_id: int,
        record: ApprovalRecord,
        new_status: ApprovalStatus,
        expected_status: ApprovalStatus = ApprovalStatus.PENDING,
    ) -> bool:
        """Compare-and-set on approval status plus append of ``record``.

        Returns False when the stored status no longer equals ``expected_status``.
        """

        raise NotImplementedError

    def delete_auto_generated(self, *, tenant_id: int, user_id: int, work_date: date) -> int:
        raise NotImplementedError

    def count_auto_generated_by_mode(
        self,
        *,
        since: datetime,
        tenant_id: Optional[int] = None,
    ) -> Mapping[Optional[ProcessingMode], int]:
        """Auto-generated entries with ``auto_generated_at >= since`` grouped by mode."""

        raise NotImplementedError
