from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional, Sequence

from ..common.datetime_utils import Clock, SystemClock, resolve_zone
from ..common.validators import optional_text
from ..contractors.model import Contractor
from ..contractors.repository import ContractorRepository
from ..core.enums import ApprovalStatus, EntryStatus
from ..core.exceptions import ConflictError, NotFoundError, ValidationError
from ..tenants.repository import TenantRepository
from .calculator import HoursCalculator, TieredHoursCalculator
from .model import EntryFilters, NewTimeEntry, TimeEntry
from .policy import initial_approval, resolve_approval_policy
from .repository import TimeEntryRepository

logger = logging.getLogger(__name__)


class TimeEntryService:
    """Manual clock-in/clock-out and the entry read API."""

    def __init__(
        self,
        entries: TimeEntryRepository,
        contractors: ContractorRepository,
        tenants: TenantRepository,
        *,
        calculator: Optional[HoursCalculator] = None,
        clock: Optional[Clock] = None,
    ):
        self._entries = entries
        self._contractors = contractors
        self._tenants = tenants
        self._calculator = calculator or TieredHoursCalculator()
        self._clock = clock or SystemClock()

    def _get_user(self, tenant_id: int, user_id: int) -> Contractor:
        user = self._contractors.get(tenant_id=tenant_id, contractor_id=user_id)
        if not user or not user.is_active:
            raise NotFoundError(f"User {user_id} not found")
        return user

    @staticmethod
    def _local_date(user: Contractor, at: datetime):
        schedule = user.auto_clocking.schedule if user.auto_clocking else None
        if schedule:
            return at.astimezone(resolve_zone(schedule.timezone)).date()
        return at.astimezone(timezone.utc).date()

    def clock_in(
        self,
        *,
        tenant_id: int,
        user_id: int,
        project_id: Optional[int] = None,
        client_id: Optional[int] = None,
        task_description: Optional[str] = None,
        at: Optional[datetime] = None,
    ) -> TimeEntry:
        user = self._get_user(tenant_id, user_id)
        if self._entries.find_open_for_user(tenant_id=tenant_id, user_id=user_id):
            raise ConflictError("User is already clocked in")

        now = at or self._clock.now()
        entry_id = self._entries.create(
            NewTimeEntry(
                tenant_id=tenant_id,
                user_id=user_id,
                work_date=self._local_date(user, now),
                clock_in=now,
                clock_out=None,
                status=EntryStatus.ACTIVE,
                approval_status=ApprovalStatus.PENDING,
                requires_approval=True,
                project_id=project_id,
                client_id=client_id,
                task_description=optional_text(task_description, max_length=1000),
            )
        )
        logger.info("User %s clocked in (tenant=%s entry=%s)", user_id, tenant_id, entry_id)
        return self.get_entry(tenant_id=tenant_id, entry_id=entry_id)

    def clock_out(
        self,
        *,
        tenant_id: int,
        entry_id: int,
        break_minutes: int = 0,
        at: Optional[datetime] = None,
    ) -> TimeEntry:
        """Close an open entry: compute hours, then resolve the approval policy."""
        entry = self.get_entry(tenant_id=tenant_id, entry_id=entry_id)
        if not entry.is_open:
            raise ConflictError("Entry is already clocked out")

        now = at or self._clock.now()
        if now < entry.clock_in:
            raise ValidationError("Clock-out cannot be before clock-in")

        hours = self._calculator.calculate(
            entry.clock_in, now, int(break_minutes), has_project=entry.project_id is not None
        )
        user = self._get_user(tenant_id, entry.user_id)
        requires_approval = resolve_approval_policy(self._tenants.get_policy(tenant_id), user.role)
        approval_status, approvals = initial_approval(
            requires_approval=requires_approval, user_id=entry.user_id, now=now
        )

        ok = self._entries.complete(
            tenant_id=tenant_id,
            entry_id=entry_id,
            clock_out=now,
            break_minutes=int(break_minutes),
            hours=hours,
            status=EntryStatus.COMPLETED,
            approval_status=approval_status,
            requires_approval=requires_approval,
            approvals=approvals,
        )
        if not ok:
            raise ConflictError("Entry is already clocked out")

        logger.info(
            "Entry %s completed: %s hours, approval=%s", entry_id, hours.total, approval_status.value
        )
        return self.get_entry(tenant_id=tenant_id, entry_id=entry_id)

    def get_entry(self, *, tenant_id: int, entry_id: int) -> TimeEntry:
        entry = self._entries.get(tenant_id=tenant_id, entry_id=entry_id)
        if not entry:
            raise NotFoundError(f"Time entry {entry_id} not found")
        return entry

    def list_entries(self, *, tenant_id: int, filters: Optional[EntryFilters] = None) -> Sequence[TimeEntry]:
        filters = filters or EntryFilters()
        if filters.start_date and filters.end_date and filters.end_date < filters.start_date:
            raise ValidationError("End date must be on or after start date")
        return self._entries.list(tenant_id=tenant_id, filters=filters)
