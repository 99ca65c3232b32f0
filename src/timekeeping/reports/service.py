from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Optional, Sequence

from ..contractors.model import Contractor
from ..contractors.repository import ContractorRepository
from ..core.exceptions import NotFoundError, ValidationError
from ..projects.repository import ProjectRepository
from ..time_entries.model import EntryFilters, TimeEntry
from ..time_entries.repository import TimeEntryRepository
from .aggregator import ContractorTimesheetAggregator, TimesheetSummary


@dataclass(frozen=True)
class ContractorTimesheet:
    contractor: Contractor
    entries: Sequence[TimeEntry]
    summary: TimesheetSummary
    start_date: Optional[date]
    end_date: Optional[date]


class TimesheetReportService:
    """Fetches entries for reporting/export collaborators and rolls them up."""

    def __init__(
        self,
        entries: TimeEntryRepository,
        contractors: ContractorRepository,
        projects: ProjectRepository,
    ):
        self._entries = entries
        self._contractors = contractors
        self._projects = projects

    def aggregator_for(self, tenant_id: int, entries: Sequence[TimeEntry]) -> ContractorTimesheetAggregator:
        project_ids = {e.project_id for e in entries if e.project_id is not None}
        projects = self._projects.get_many(tenant_id=tenant_id, project_ids=project_ids) if project_ids else {}

        rates = {}
        for user_id in {e.user_id for e in entries}:
            contractor = self._contractors.get(tenant_id=tenant_id, contractor_id=user_id)
            if contractor:
                rates[user_id] = contractor.default_project_rate
        return ContractorTimesheetAggregator(projects, default_rates=rates)

    def summarize(self, *, tenant_id: int, entries: Sequence[TimeEntry]) -> TimesheetSummary:
        return self.aggregator_for(tenant_id, entries).summarize(entries)

    def contractor_timesheet(
        self,
        *,
        tenant_id: int,
        contractor_id: int,
        start: Optional[date] = None,
        end: Optional[date] = None,
        project_id: Optional[int] = None,
        limit: int = 1000,
    ) -> ContractorTimesheet:
        if start and end and end < start:
            raise ValidationError("End date must be on or after start date")

        contractor = self._contractors.get(tenant_id=tenant_id, contractor_id=contractor_id)
        if not contractor:
            raise NotFoundError(f"Contractor {contractor_id} not found")

        entries = self._entries.list(
            tenant_id=tenant_id,
            filters=EntryFilters(
                user_id=contractor_id,
                project_id=project_id,
                start_date=start,
                end_date=end,
                limit=int(limit),
            ),
        )
        return ContractorTimesheet(
            contractor=contractor,
            entries=entries,
            summary=self.summarize(tenant_id=tenant_id, entries=entries),
            start_date=start,
            end_date=end,
        )
