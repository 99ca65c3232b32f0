import threading
from datetime import date, datetime, time, timezone
from decimal import Decimal
from zoneinfo import ZoneInfo

import pytest

from fakes import (
    TENANT,
    FixedClock,
    InMemoryAbsences,
    InMemoryContractors,
    InMemoryTimeEntries,
    make_contractor,
    manual_entry,
    utc,
)
from timekeeping.absences.service import ExceptionLedger
from timekeeping.autoclocking.factory import ProcessingStrategyFactory
from timekeeping.autoclocking.scheduler import AutoClockingScheduler
from timekeeping.autoclocking.triggers import RecurringTrigger, TriggerTime
from timekeeping.core.enums import AbsenceType, ApprovalStatus, EntryStatus, ProcessingMode, SkipReason
from timekeeping.core.exceptions import NotFoundError, ValidationError
from timekeeping.time_entries.model import EntryFilters

NY = ZoneInfo("America/New_York")
MON, TUE, WED, THU, FRI, SAT = (date(2025, 1, d) for d in (13, 14, 15, 16, 17, 18))


class Env:
    def __init__(self, *contractors, now=None):
        self.clock = FixedClock(now or utc(2025, 1, 15, 5, 0))  # Wednesday 00:00 in New York
        self.contractors = InMemoryContractors(contractors)
        self.entries = InMemoryTimeEntries()
        self.absences = InMemoryAbsences()
        self.ledger = ExceptionLedger(self.absences, self.contractors, clock=self.clock)
        self.scheduler = self.new_scheduler()

    def new_scheduler(self) -> AutoClockingScheduler:
        return AutoClockingScheduler(self.contractors, self.entries, self.ledger, clock=self.clock, max_workers=4)

    def auto_entries(self, contractor_id=10):
        return [e for e in self.entries.all() if e.user_id == contractor_id and e.is_auto_generated]


def test_wednesday_generates_one_auto_approved_eight_hour_entry():
    env = Env(make_contractor(10))

    outcome = env.scheduler.process_contractor_day(env.contractors.get(tenant_id=TENANT, contractor_id=10), WED)

    assert outcome.created
    [entry] = env.auto_entries()
    assert entry.work_date == WED
    assert entry.clock_in == datetime(2025, 1, 15, 14, 0, tzinfo=timezone.utc)
    assert entry.clock_out == datetime(2025, 1, 15, 22, 0, tzinfo=timezone.utc)
    assert entry.total_hours == Decimal("8.00")
    assert entry.status == EntryStatus.COMPLETED
    assert entry.approval_status == ApprovalStatus.AUTO_APPROVED
    assert entry.approvals[0].approver_id == 10
    assert entry.approvals[0].notes == "Auto-approved - no approval required"
    assert entry.generation_mode == ProcessingMode.PROACTIVE


def test_entry_requiring_approval_starts_pending():
    env = Env(make_contractor(10, requires_approval=True))
    env.scheduler.trigger_contractor(tenant_id=TENANT, contractor_id=10, day=WED)
    [entry] = env.auto_entries()
    assert entry.approval_status == ApprovalStatus.PENDING
    assert entry.approvals == ()


def test_break_is_span_minus_hours_per_day():
    env = Env(make_contractor(10, end=time(17, 30)))
    env.scheduler.trigger_contractor(tenant_id=TENANT, contractor_id=10, day=WED)
    [entry] = env.auto_entries()
    assert entry.break_minutes == 30
    assert entry.total_hours == Decimal("8.00")


@pytest.mark.parametrize(
    "day, clock_in, clock_out, break_minutes",
    [
        # Spring forward: 00:00 EST to 09:00 EDT is 8 elapsed hours.
        (date(2025, 3, 9), utc(2025, 3, 9, 5, 0), utc(2025, 3, 9, 13, 0), 0),
        # Fall back: 00:00 EDT to 09:00 EST is 10 elapsed hours.
        (date(2025, 11, 2), utc(2025, 11, 2, 4, 0), utc(2025, 11, 2, 14, 0), 120),
    ],
)
def test_dst_days_still_yield_hours_per_day(day, clock_in, clock_out, break_minutes):
    env = Env(make_contractor(10, start=time(0, 0), end=time(9, 0), work_days=range(7)))

    env.scheduler.trigger_contractor(tenant_id=TENANT, contractor_id=10, day=day)

    [entry] = env.auto_entries()
    assert (entry.clock_in, entry.clock_out) == (clock_in, clock_out)
    assert entry.break_minutes == break_minutes
    assert entry.total_hours == Decimal("8.00")
    assert entry.hours.overtime == Decimal("0.00")


def test_saturday_is_not_a_work_day():
    env = Env(make_contractor(10))
    outcome = env.scheduler.trigger_contractor(tenant_id=TENANT, contractor_id=10, day=SAT)
    assert not outcome.created
    assert outcome.skip_reason == SkipReason.NOT_WORK_DAY
    assert env.auto_entries() == []


def test_approved_exception_suppresses_generation():
    env = Env(make_contractor(10))
    env.ledger.report_exception(tenant_id=TENANT, contractor_id=10, start_date=THU, absence_type=AbsenceType.SICK)

    outcome = env.scheduler.trigger_contractor(tenant_id=TENANT, contractor_id=10, day=THU)

    assert outcome.skip_reason == SkipReason.EXCEPTION_COVERAGE
    assert env.auto_entries() == []


def test_pending_exception_also_suppresses_generation():
    env = Env(make_contractor(10))
    env.ledger.report_exception(tenant_id=TENANT, contractor_id=10, start_date=THU, absence_type=AbsenceType.VACATION)
    outcome = env.scheduler.trigger_contractor(tenant_id=TENANT, contractor_id=10, day=THU)
    assert outcome.skip_reason == SkipReason.EXCEPTION_COVERAGE


def test_repeated_triggers_create_a_single_entry():
    env = Env(make_contractor(10))
    outcomes = [env.scheduler.trigger_contractor(tenant_id=TENANT, contractor_id=10, day=WED) for _ in range(5)]
    assert sum(o.created for o in outcomes) == 1
    assert {o.skip_reason for o in outcomes[1:]} == {SkipReason.ALREADY_EXISTS}
    assert len(env.auto_entries()) == 1


def test_concurrent_triggers_create_a_single_entry():
    env = Env(make_contractor(10))
    other = env.new_scheduler()  # separate process stand-in: its own locks, same store
    contractor = env.contractors.get(tenant_id=TENANT, contractor_id=10)
    barrier = threading.Barrier(8)
    results = []

    def run(scheduler):
        barrier.wait()
        results.append(scheduler.process_contractor_day(contractor, WED))

    threads = [threading.Thread(target=run, args=(env.scheduler if i % 2 else other,)) for i in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert sum(r.created for r in results) == 1
    assert len(env.auto_entries()) == 1


def test_manual_entry_does_not_block_generation():
    env = Env(make_contractor(10))
    env.entries.add(manual_entry(user_id=10, work_date=WED))
    outcome = env.scheduler.trigger_contractor(tenant_id=TENANT, contractor_id=10, day=WED)
    assert outcome.created
    assert len(env.entries.all()) == 2


def test_disabled_contractor_is_skipped_and_cannot_be_triggered():
    env = Env(make_contractor(10, enabled=False))
    contractor = env.contractors.get(tenant_id=TENANT, contractor_id=10)

    assert env.scheduler.process_contractor_day(contractor, WED).skip_reason == SkipReason.NOT_ENABLED
    with pytest.raises(ValidationError):
        env.scheduler.trigger_contractor(tenant_id=TENANT, contractor_id=10, day=WED)
    with pytest.raises(NotFoundError):
        env.scheduler.trigger_contractor(tenant_id=TENANT, contractor_id=99, day=WED)


def test_malformed_schedule_is_rejected():
    env = Env(make_contractor(10, start=time(17), end=time(9)))
    with pytest.raises(ValidationError):
        env.scheduler.trigger_contractor(tenant_id=TENANT, contractor_id=10, day=WED)


def test_daily_cycle_isolates_failures_per_contractor():
    env = Env(
        make_contractor(10),
        make_contractor(11, hours_per_day=Decimal("10")),  # more hours than the 8h span
        make_contractor(12, mode=ProcessingMode.WEEKLY_BATCH),
    )

    report = env.scheduler.run_daily_cycle(ProcessingMode.PROACTIVE)

    assert report.dates == (WED,)
    assert report.contractors == 2
    assert report.created == 1
    assert [f.contractor_id for f in report.failures] == [11]
    assert env.auto_entries(12) == []


def test_daily_cycle_rejects_weekly_mode():
    env = Env(make_contractor(10))
    with pytest.raises(ValidationError):
        env.scheduler.run_daily_cycle(ProcessingMode.WEEKLY_BATCH)


def test_daily_cycle_can_be_scoped_to_a_tenant():
    env = Env(make_contractor(10), make_contractor(20, tenant_id=2))
    report = env.scheduler.run_daily_cycle(ProcessingMode.PROACTIVE, tenant_id=2)
    assert report.contractors == 1
    assert env.auto_entries(10) == []
    assert len(env.auto_entries(20)) == 1


def test_weekly_batch_fills_monday_to_friday():
    env = Env(make_contractor(10, mode=ProcessingMode.WEEKLY_BATCH), now=utc(2025, 1, 18, 4, 0))  # Fri 23:00 NY

    report = env.scheduler.run_weekly_cycle()

    assert report.dates == (MON, TUE, WED, THU, FRI)
    assert report.created == 5
    assert sorted(e.work_date for e in env.auto_entries()) == [MON, TUE, WED, THU, FRI]
    assert {e.generation_mode for e in env.auto_entries()} == {ProcessingMode.WEEKLY_BATCH}


def test_weekly_batch_respects_exceptions():
    env = Env(make_contractor(10, mode=ProcessingMode.WEEKLY_BATCH))
    env.ledger.report_exception(tenant_id=TENANT, contractor_id=10, start_date=THU, absence_type=AbsenceType.HOLIDAY)

    report = env.scheduler.run_weekly_cycle(day=FRI)

    assert report.created == 4
    assert THU not in {e.work_date for e in env.auto_entries()}


def test_regenerate_recreates_auto_entries_and_keeps_manual_ones():
    env = Env(make_contractor(10))
    for day in (MON, WED):
        env.scheduler.trigger_contractor(tenant_id=TENANT, contractor_id=10, day=day)
    manual_id = env.entries.add(manual_entry(user_id=10, work_date=TUE))
    before = {e.entry_id for e in env.auto_entries()}

    result = env.scheduler.regenerate(tenant_id=TENANT, contractor_id=10, start_date=MON, end_date=WED)

    assert result.deleted == 2
    assert result.processed == 3
    assert result.skipped == 0
    assert env.entries.get(tenant_id=TENANT, entry_id=manual_id) is not None
    after = env.auto_entries()
    assert sorted(e.work_date for e in after) == [MON, TUE, WED]
    assert not before & {e.entry_id for e in after}


def test_regenerate_isolates_a_failing_day():
    env = Env(make_contractor(10))
    for day in (MON, TUE, WED):
        env.scheduler.trigger_contractor(tenant_id=TENANT, contractor_id=10, day=day)

    original = env.entries.insert_auto_generated

    def flaky_insert(entry):
        if entry.work_date == TUE:
            raise RuntimeError("lost connection")
        return original(entry)

    env.entries.insert_auto_generated = flaky_insert
    result = env.scheduler.regenerate(tenant_id=TENANT, contractor_id=10, start_date=MON, end_date=WED)

    assert result.deleted == 3
    assert result.processed == 2
    assert result.failed_dates == (TUE,)
    assert result.to_dict()["failed"] == 1
    assert sorted(e.work_date for e in env.auto_entries()) == [MON, WED]

    env.entries.insert_auto_generated = original
    retry = env.scheduler.regenerate(tenant_id=TENANT, contractor_id=10, start_date=TUE, end_date=TUE)
    assert (retry.processed, retry.failed_dates) == (1, ())
    assert sorted(e.work_date for e in env.auto_entries()) == [MON, TUE, WED]


def test_regenerate_rejects_inverted_range():
    env = Env(make_contractor(10))
    with pytest.raises(ValidationError):
        env.scheduler.regenerate(tenant_id=TENANT, contractor_id=10, start_date=WED, end_date=MON)


def test_statistics_counts_generated_entries():
    env = Env(make_contractor(10), make_contractor(11, mode=ProcessingMode.REACTIVE))
    env.scheduler.run_daily_cycle(ProcessingMode.PROACTIVE)
    env.scheduler.run_daily_cycle(ProcessingMode.REACTIVE)

    stats = env.scheduler.statistics(tenant_id=TENANT).to_dict()

    assert stats["total_enabled_contractors"] == 2
    assert stats["contractors_by_mode"] == {"proactive": 1, "reactive": 1, "weekly_batch": 0}
    assert stats["auto_generated_today"]["total"] == 2
    assert stats["auto_generated_this_week"]["by_mode"]["reactive"] == 1
    assert stats["auto_generated_this_month"]["total"] == 2


def test_health_reflects_trigger_threads():
    env = Env(make_contractor(10))
    assert env.scheduler.health().status == "degraded"

    env.scheduler.start()
    try:
        health = env.scheduler.health().to_dict()
        assert health["status"] == "healthy"
        assert {j["name"] for j in health["jobs"]} == {"proactive", "reactive", "weekly"}
    finally:
        env.scheduler.stop()

    assert not env.scheduler.is_running


def test_trigger_time_parsing_and_next_run():
    daily = TriggerTime.parse("18:00")
    weekly = TriggerTime.parse("fri 23:00")
    wednesday_noon = datetime(2025, 1, 15, 12, 0, tzinfo=NY)

    assert daily.next_after(wednesday_noon, NY) == datetime(2025, 1, 15, 18, 0, tzinfo=NY)
    assert weekly.next_after(wednesday_noon, NY) == datetime(2025, 1, 17, 23, 0, tzinfo=NY)
    assert TriggerTime.parse("00:00").next_after(datetime(2025, 1, 15, 0, 0, tzinfo=NY), NY) == datetime(
        2025, 1, 16, 0, 0, tzinfo=NY
    )
    with pytest.raises(ValidationError):
        TriggerTime.parse("someday 25:00")


def test_trigger_time_on_fall_back_night():
    at_0130 = TriggerTime.parse("01:30")

    # 01:00 EDT: the first 01:30 is still ahead.
    assert at_0130.next_after(utc(2025, 11, 2, 5, 0), NY) == datetime(2025, 11, 2, 1, 30, tzinfo=NY)
    # 01:00 EST, after the first 01:30 already fired: wait for the next day.
    nxt = at_0130.next_after(utc(2025, 11, 2, 6, 0), NY)
    assert nxt == datetime(2025, 11, 3, 1, 30, tzinfo=NY)
    assert nxt.astimezone(timezone.utc) > utc(2025, 11, 2, 6, 0)


def test_trigger_fire_records_errors():
    def boom():
        raise RuntimeError("db down")

    trigger = RecurringTrigger("proactive", TriggerTime.parse("00:00"), boom, clock=FixedClock(utc(2025, 1, 15)), zone=NY)
    trigger.fire()
    assert trigger.last_error == "db down"
    assert trigger.last_run_at == utc(2025, 1, 15)


def test_strategy_factory_target_dates():
    factory = ProcessingStrategyFactory()
    assert factory.for_mode(ProcessingMode.PROACTIVE).target_dates(today=WED) == [WED]
    assert factory.for_mode(ProcessingMode.REACTIVE).target_dates(today=WED) == [WED]
    assert factory.for_mode(ProcessingMode.WEEKLY_BATCH).target_dates(today=SAT) == [MON, TUE, WED, THU, FRI]


def test_entries_listed_by_auto_flag():
    env = Env(make_contractor(10))
    env.scheduler.trigger_contractor(tenant_id=TENANT, contractor_id=10, day=WED)
    env.entries.add(manual_entry(user_id=10, work_date=THU))
    auto = env.entries.list(tenant_id=TENANT, filters=EntryFilters(is_auto_generated=True))
    assert [e.work_date for e in auto] == [WED]
