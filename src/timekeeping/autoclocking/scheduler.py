from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import date, datetime
from typing import Dict, List, Optional, Sequence, Tuple
from zoneinfo import ZoneInfo

from ..absences.service import ExceptionLedger
from ..common.datetime_utils import (
    Clock,
    SystemClock,
    iter_days,
    local_to_utc,
    month_start,
    resolve_zone,
    week_start,
)
from ..contractors.model import Contractor, WorkSchedule
from ..contractors.repository import ContractorRepository
from ..core.constants import (
    DEFAULT_MAX_WORKERS,
    DEFAULT_PROACTIVE_AT,
    DEFAULT_REACTIVE_AT,
    DEFAULT_TIMEZONE,
    DEFAULT_WEEKLY_AT,
)
from ..core.enums import EntryStatus, ProcessingMode, SkipReason
from ..core.exceptions import NotFoundError, ValidationError
from ..time_entries.calculator import HoursCalculator, TieredHoursCalculator
from ..time_entries.model import NewTimeEntry
from ..time_entries.policy import initial_approval
from ..time_entries.repository import TimeEntryRepository
from .factory import ProcessingStrategyFactory
from .locks import KeyedLocks
from .model import (
    ContractorFailure,
    CycleReport,
    GeneratedCounts,
    GenerationOutcome,
    HealthStatus,
    RegenerationResult,
    SchedulerStatistics,
    TriggerHealth,
)
from .triggers import RecurringTrigger, TriggerTime

logger = logging.getLogger(__name__)

AUTO_TASK_DESCRIPTION = "Auto-generated time entry based on contractor schedule"


@dataclass(frozen=True)
class TriggerSettings:
    proactive_at: str = DEFAULT_PROACTIVE_AT
    reactive_at: str = DEFAULT_REACTIVE_AT
    weekly_at: str = DEFAULT_WEEKLY_AT
    timezone: str = DEFAULT_TIMEZONE


class AutoClockingScheduler:
    """Materializes time entries for contractors who do not clock in manually.

    Every trigger funnels into ``process_contractor_day``, which is idempotent:
    running it any number of times for one contractor and date yields at most
    one auto-generated entry. Calls for the same (tenant, contractor, date) are
    serialized in-process and the store's insert-if-absent covers other
    processes.
    """

    def __init__(
        self,
        contractors: ContractorRepository,
        entries: TimeEntryRepository,
        ledger: ExceptionLedger,
        *,
        calculator: Optional[HoursCalculator] = None,
        clock: Optional[Clock] = None,
        strategy_factory: Optional[ProcessingStrategyFactory] = None,
        triggers: Optional[TriggerSettings] = None,
        max_workers: int = DEFAULT_MAX_WORKERS,
    ):
        self._contractors = contractors
        self._entries = entries
        self._ledger = ledger
        self._calculator = calculator or TieredHoursCalculator()
        self._clock = clock or SystemClock()
        self._factory = strategy_factory or ProcessingStrategyFactory()
        self._max_workers = max(int(max_workers), 1)
        self._locks = KeyedLocks()

        settings = triggers or TriggerSettings()
        self._zone: ZoneInfo = resolve_zone(settings.timezone)
        self._triggers: Dict[str, RecurringTrigger] = {
            "proactive": RecurringTrigger(
                "proactive",
                TriggerTime.parse(settings.proactive_at),
                lambda: self.run_daily_cycle(ProcessingMode.PROACTIVE),
                clock=self._clock,
                zone=self._zone,
            ),
            "reactive": RecurringTrigger(
                "reactive",
                TriggerTime.parse(settings.reactive_at),
                lambda: self.run_daily_cycle(ProcessingMode.REACTIVE),
                clock=self._clock,
                zone=self._zone,
            ),
            "weekly": RecurringTrigger(
                "weekly",
                TriggerTime.parse(settings.weekly_at),
                self.run_weekly_cycle,
                clock=self._clock,
                zone=self._zone,
            ),
        }

    # Lifecycle

    def start(self) -> None:
        for trigger in self._triggers.values():
            trigger.start()

    def stop(self) -> None:
        for trigger in self._triggers.values():
            trigger.stop()

    @property
    def is_running(self) -> bool:
        return any(t.is_active for t in self._triggers.values())

    def today(self) -> date:
        return self._clock.now().astimezone(self._zone).date()

    # Per-contractor decision procedure

    def process_contractor_day(self, contractor: Contractor, day: date) -> GenerationOutcome:
        if not contractor.auto_clocking_enabled:
            return self._skipped(contractor, day, SkipReason.NOT_ENABLED)
        return self._process(contractor, day)

    def _process(self, contractor: Contractor, day: date) -> GenerationOutcome:
        schedule = self._schedule_for(contractor)
        if day.weekday() not in schedule.work_days:
            logger.debug("Skipping contractor %s - %s is not a work day", contractor.contractor_id, day)
            return self._skipped(contractor, day, SkipReason.NOT_WORK_DAY)

        with self._locks.hold((contractor.tenant_id, contractor.contractor_id, day)):
            if self._ledger.has_coverage(
                tenant_id=contractor.tenant_id, contractor_id=contractor.contractor_id, day=day
            ):
                logger.debug("Skipping contractor %s - exception covers %s", contractor.contractor_id, day)
                return self._skipped(contractor, day, SkipReason.EXCEPTION_COVERAGE)

            existing = self._entries.find_auto_generated(
                tenant_id=contractor.tenant_id, user_id=contractor.contractor_id, work_date=day
            )
            if existing:
                logger.debug("Skipping contractor %s - entry already exists for %s", contractor.contractor_id, day)
                return self._skipped(contractor, day, SkipReason.ALREADY_EXISTS)

            entry_id = self._entries.insert_auto_generated(self._build_entry(contractor, schedule, day))
            if entry_id is None:
                return self._skipped(contractor, day, SkipReason.ALREADY_EXISTS)

        logger.info("Created auto time entry %s for contractor %s on %s", entry_id, contractor.contractor_id, day)
        return GenerationOutcome(
            tenant_id=contractor.tenant_id,
            contractor_id=contractor.contractor_id,
            work_date=day,
            created=True,
            entry_id=entry_id,
        )

    @staticmethod
    def _schedule_for(contractor: Contractor) -> WorkSchedule:
        profile = contractor.auto_clocking
        if not profile or not profile.schedule:
            raise ValidationError(f"No work schedule configured for contractor {contractor.contractor_id}")
        return profile.schedule.validate()

    def _build_entry(self, contractor: Contractor, schedule: WorkSchedule, day: date) -> NewTimeEntry:
        profile = contractor.auto_clocking
        zone = resolve_zone(schedule.timezone)
        clock_in = local_to_utc(day, schedule.start_time, zone)
        clock_out = local_to_utc(day, schedule.end_time, zone)
        break_minutes = schedule.break_minutes(clock_in, clock_out)
        hours = self._calculator.calculate(clock_in, clock_out, break_minutes, has_project=False)

        now = self._clock.now()
        approval_status, approvals = initial_approval(
            requires_approval=profile.requires_approval, user_id=contractor.contractor_id, now=now
        )
        return NewTimeEntry(
            tenant_id=contractor.tenant_id,
            user_id=contractor.contractor_id,
            work_date=day,
            clock_in=clock_in,
            clock_out=clock_out,
            status=EntryStatus.COMPLETED,
            approval_status=approval_status,
            requires_approval=profile.requires_approval,
            break_minutes=break_minutes,
            hours=hours,
            approvals=approvals,
            is_auto_generated=True,
            auto_generated_at=now,
            generation_mode=profile.processing_mode,
            task_description=AUTO_TASK_DESCRIPTION,
            notes=f"Automatically generated for {schedule.hours_per_day} hour workday",
        )

    @staticmethod
    def _skipped(contractor: Contractor, day: date, reason: SkipReason) -> GenerationOutcome:
        return GenerationOutcome(
            tenant_id=contractor.tenant_id,
            contractor_id=contractor.contractor_id,
            work_date=day,
            created=False,
            skip_reason=reason,
        )

    # Recurring cycles

    def run_daily_cycle(
        self, mode: ProcessingMode, day: Optional[date] = None, *, tenant_id: Optional[int] = None
    ) -> CycleReport:
        if mode == ProcessingMode.WEEKLY_BATCH:
            raise ValidationError("Weekly batch contractors run in the weekly cycle")
        return self._run_cycle(mode, day or self.today(), tenant_id)

    def run_weekly_cycle(self, day: Optional[date] = None, *, tenant_id: Optional[int] = None) -> CycleReport:
        return self._run_cycle(ProcessingMode.WEEKLY_BATCH, day or self.today(), tenant_id)

    def _run_cycle(self, mode: ProcessingMode, today: date, tenant_id: Optional[int] = None) -> CycleReport:
        started_at = self._clock.now()
        dates = tuple(self._factory.for_mode(mode).target_dates(today=today))
        contractors = list(self._contractors.list_auto_clocking(mode=mode, tenant_id=tenant_id))
        logger.info("Starting %s auto-clocking cycle: %d contractors, dates %s", mode.value, len(contractors), dates)

        outcomes: List[GenerationOutcome] = []
        failures: List[ContractorFailure] = []
        if contractors:
            workers = min(self._max_workers, len(contractors))
            with ThreadPoolExecutor(max_workers=workers, thread_name_prefix=f"autoclock-{mode.value}") as pool:
                results = pool.map(lambda c: self._process_contractor_dates(c, dates), contractors)
                for contractor_outcomes, failure in results:
                    outcomes.extend(contractor_outcomes)
                    if failure:
                        failures.append(failure)

        report = CycleReport(
            mode=mode,
            dates=dates,
            started_at=started_at,
            finished_at=self._clock.now(),
            contractors=len(contractors),
            outcomes=tuple(outcomes),
            failures=tuple(failures),
        )
        logger.info(
            "Completed %s auto-clocking cycle: %d created, %d skipped, %d failed",
            mode.value,
            report.created,
            report.skipped,
            len(report.failures),
        )
        return report

    def _process_contractor_dates(
        self, contractor: Contractor, dates: Sequence[date]
    ) -> Tuple[List[GenerationOutcome], Optional[ContractorFailure]]:
        outcomes: List[GenerationOutcome] = []
        try:
            for day in dates:
                outcomes.append(self.process_contractor_day(contractor, day))
        except Exception as e:
            logger.exception("Auto-clocking failed for contractor %s", contractor.contractor_id)
            return outcomes, ContractorFailure(
                tenant_id=contractor.tenant_id, contractor_id=contractor.contractor_id, error=str(e)
            )
        return outcomes, None

    # Administrative operations

    def _get_contractor(self, tenant_id: int, contractor_id: int) -> Contractor:
        contractor = self._contractors.get(tenant_id=tenant_id, contractor_id=contractor_id)
        if not contractor or not contractor.is_active:
            raise NotFoundError(f"Contractor {contractor_id} not found")
        return contractor

    def trigger_contractor(self, *, tenant_id: int, contractor_id: int, day: Optional[date] = None) -> GenerationOutcome:
        contractor = self._get_contractor(tenant_id, contractor_id)
        if not contractor.auto_clocking_enabled:
            raise ValidationError(f"Auto-clocking is not enabled for contractor {contractor_id}")
        outcome = self.process_contractor_day(contractor, day or self.today())
        logger.info("Manual auto-clocking trigger for contractor %s: %s", contractor_id, outcome.message)
        return outcome

    def regenerate(self, *, tenant_id: int, contractor_id: int, start_date: date, end_date: date) -> RegenerationResult:
        """Delete and recreate auto-generated entries day by day; manual entries are never touched.

        A day that fails is logged and listed in ``failed_dates``; its entry may
        already be deleted, and running the regeneration again restores it.
        """
        if end_date < start_date:
            raise ValidationError("End date must be on or after start date")
        contractor = self._get_contractor(tenant_id, contractor_id)
        self._schedule_for(contractor)

        deleted = processed = skipped = 0
        failed: List[date] = []
        for day in iter_days(start_date, end_date):
            try:
                with self._locks.hold((tenant_id, contractor_id, day)):
                    deleted += self._entries.delete_auto_generated(
                        tenant_id=tenant_id, user_id=contractor_id, work_date=day
                    )
                    outcome = self._process(contractor, day)
            except Exception:
                logger.exception("Regeneration failed for contractor %s on %s", contractor_id, day)
                failed.append(day)
                continue
            if outcome.created:
                processed += 1
            else:
                skipped += 1

        logger.info(
            "Regenerated entries for contractor %s %s..%s: %d deleted, %d created, %d skipped, %d failed",
            contractor_id,
            start_date,
            end_date,
            deleted,
            processed,
            skipped,
            len(failed),
        )
        return RegenerationResult(
            contractor_id=contractor_id,
            start_date=start_date,
            end_date=end_date,
            deleted=deleted,
            processed=processed,
            skipped=skipped,
            failed_dates=tuple(failed),
        )

    # Monitoring

    def statistics(self, *, tenant_id: Optional[int] = None) -> SchedulerStatistics:
        contractors = self._contractors.list_auto_clocking(tenant_id=tenant_id)
        contractors_by_mode = {mode.value: 0 for mode in ProcessingMode}
        for contractor in contractors:
            contractors_by_mode[contractor.auto_clocking.processing_mode.value] += 1

        today = self.today()
        return SchedulerStatistics(
            total_enabled_contractors=len(contractors),
            contractors_by_mode=contractors_by_mode,
            today=self._generated_since(today, tenant_id),
            this_week=self._generated_since(week_start(today), tenant_id),
            this_month=self._generated_since(month_start(today), tenant_id),
        )

    def _generated_since(self, day: date, tenant_id: Optional[int]) -> GeneratedCounts:
        since = datetime.combine(day, datetime.min.time(), tzinfo=self._zone)
        counts = self._entries.count_auto_generated_by_mode(since=since, tenant_id=tenant_id)
        by_mode = {mode.value: 0 for mode in ProcessingMode}
        for mode, count in counts.items():
            if mode is not None:
                by_mode[mode.value] += int(count)
        return GeneratedCounts(total=sum(int(c) for c in counts.values()), by_mode=by_mode)

    def health(self) -> HealthStatus:
        return HealthStatus(
            triggers=tuple(
                TriggerHealth(
                    name=name,
                    active=trigger.is_active,
                    next_run_at=trigger.next_run_at() if trigger.is_active else None,
                    last_run_at=trigger.last_run_at,
                    last_error=trigger.last_error,
                )
                for name, trigger in self._triggers.items()
            )
        )
