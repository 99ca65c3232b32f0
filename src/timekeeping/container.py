from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from .absences.mysql_absence_repository import MySQLAbsenceRepository
from .absences.repository import AbsenceRepository
from .absences.service import ExceptionLedger
from .approvals.service import ApprovalService
from .autoclocking.factory import ProcessingStrategyFactory
from .autoclocking.scheduler import AutoClockingScheduler, TriggerSettings
from .common.datetime_utils import Clock, SystemClock
from .contractors.mysql_contractor_repository import MySQLContractorRepository
from .contractors.repository import ContractorRepository
from .core.constants import DEFAULT_MAX_WORKERS
from .database.connection import DatabaseConnection, DBConfig
from .projects.mysql_project_repository import MySQLProjectRepository
from .projects.repository import ProjectRepository
from .reports.service import TimesheetReportService
from .tenants.mysql_tenant_repository import MySQLTenantRepository
from .tenants.repository import TenantRepository
from .time_entries.calculator import TieredHoursCalculator
from .time_entries.mysql_time_entry_repository import MySQLTimeEntryRepository
from .time_entries.repository import TimeEntryRepository
from .time_entries.service import TimeEntryService


@dataclass(frozen=True)
class Container:
    contractors_repo: ContractorRepository
    tenants_repo: TenantRepository
    projects_repo: ProjectRepository
    entries_repo: TimeEntryRepository
    absences_repo: AbsenceRepository

    time_entry_service: TimeEntryService
    approval_service: ApprovalService
    exception_ledger: ExceptionLedger
    report_service: TimesheetReportService
    scheduler: AutoClockingScheduler

    conn: Optional[DatabaseConnection] = None


def assemble(
    *,
    contractors: ContractorRepository,
    tenants: TenantRepository,
    projects: ProjectRepository,
    entries: TimeEntryRepository,
    absences: AbsenceRepository,
    clock: Optional[Clock] = None,
    triggers: Optional[TriggerSettings] = None,
    max_workers: int = DEFAULT_MAX_WORKERS,
    conn: Optional[DatabaseConnection] = None,
) -> Container:
    """Wire services over any set of repositories."""

    clock = clock or SystemClock()
    calculator = TieredHoursCalculator()

    ledger = ExceptionLedger(absences, contractors, clock=clock)
    scheduler = AutoClockingScheduler(
        contractors,
        entries,
        ledger,
        calculator=calculator,
        clock=clock,
        strategy_factory=ProcessingStrategyFactory(),
        triggers=triggers,
        max_workers=max_workers,
    )

    return Container(
        contractors_repo=contractors,
        tenants_repo=tenants,
        projects_repo=projects,
        entries_repo=entries,
        absences_repo=absences,
        time_entry_service=TimeEntryService(entries, contractors, tenants, calculator=calculator, clock=clock),
        approval_service=ApprovalService(entries, projects, clock=clock),
        exception_ledger=ledger,
        report_service=TimesheetReportService(entries, contractors, projects),
        scheduler=scheduler,
        conn=conn,
    )


def trigger_settings_from(settings: Any) -> TriggerSettings:
    defaults = TriggerSettings()
    return TriggerSettings(
        proactive_at=getattr(settings, "AUTOCLOCK_PROACTIVE_AT", defaults.proactive_at),
        reactive_at=getattr(settings, "AUTOCLOCK_REACTIVE_AT", defaults.reactive_at),
        weekly_at=getattr(settings, "AUTOCLOCK_WEEKLY_AT", defaults.weekly_at),
        timezone=getattr(settings, "AUTOCLOCK_TIMEZONE", defaults.timezone),
    )


def build_container(*, db_config: dict, settings: Any = None) -> Container:
    conn = DatabaseConnection(DBConfig.from_mapping(db_config))

    return assemble(
        contractors=MySQLContractorRepository(conn),
        tenants=MySQLTenantRepository(conn),
        projects=MySQLProjectRepository(conn),
        entries=MySQLTimeEntryRepository(conn),
        absences=MySQLAbsenceRepository(conn),
        triggers=trigger_settings_from(settings),
        max_workers=int(getattr(settings, "AUTOCLOCK_MAX_WORKERS", DEFAULT_MAX_WORKERS)),
        conn=conn,
    )
