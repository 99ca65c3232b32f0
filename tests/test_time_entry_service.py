from datetime import date, timedelta
from decimal import Decimal

import pytest

from fakes import TENANT, FixedClock, InMemoryContractors, InMemoryTenants, InMemoryTimeEntries, make_contractor, utc
from timekeeping.core.enums import ApprovalStatus, EntryStatus, Role
from timekeeping.core.exceptions import ConflictError, NotFoundError, ValidationError
from timekeeping.tenants.model import TenantPolicy
from timekeeping.time_entries.model import EntryFilters
from timekeeping.time_entries.policy import resolve_approval_policy
from timekeeping.time_entries.service import TimeEntryService


def _service(policy=None, contractors=None):
    clock = FixedClock(utc(2025, 1, 15, 14, 0))
    entries = InMemoryTimeEntries()
    service = TimeEntryService(
        entries,
        InMemoryContractors(contractors or [make_contractor(10), make_contractor(20, role=Role.STAFF)]),
        InMemoryTenants([policy] if policy else []),
        clock=clock,
    )
    return service, entries, clock


def test_clock_in_then_out_computes_hours_and_stays_pending():
    service, _, clock = _service()
    entry = service.clock_in(tenant_id=TENANT, user_id=10, project_id=3)
    assert entry.status == EntryStatus.ACTIVE
    assert entry.is_open
    assert entry.work_date == date(2025, 1, 15)

    clock.advance(hours=9, minutes=30)
    done = service.clock_out(tenant_id=TENANT, entry_id=entry.entry_id, break_minutes=30)

    assert done.status == EntryStatus.COMPLETED
    assert done.hours.regular == Decimal("8.00")
    assert done.hours.overtime == Decimal("1.00")
    assert done.hours.billable == Decimal("9.00")
    assert done.approval_status == ApprovalStatus.PENDING
    assert done.requires_approval is True


def test_second_clock_in_conflicts():
    service, _, _ = _service()
    service.clock_in(tenant_id=TENANT, user_id=10)
    with pytest.raises(ConflictError):
        service.clock_in(tenant_id=TENANT, user_id=10)


def test_clock_out_twice_conflicts():
    service, _, clock = _service()
    entry = service.clock_in(tenant_id=TENANT, user_id=10)
    clock.advance(hours=1)
    service.clock_out(tenant_id=TENANT, entry_id=entry.entry_id)
    with pytest.raises(ConflictError):
        service.clock_out(tenant_id=TENANT, entry_id=entry.entry_id)


def test_clock_out_before_clock_in_is_rejected():
    service, _, clock = _service()
    entry = service.clock_in(tenant_id=TENANT, user_id=10)
    with pytest.raises(ValidationError):
        service.clock_out(tenant_id=TENANT, entry_id=entry.entry_id, at=clock.now() - timedelta(minutes=5))


def test_staff_without_manager_approval_is_auto_approved():
    service, _, clock = _service(policy=TenantPolicy(tenant_id=TENANT, manager_approval_required=False))
    entry = service.clock_in(tenant_id=TENANT, user_id=20)
    clock.advance(hours=4)
    done = service.clock_out(tenant_id=TENANT, entry_id=entry.entry_id)

    assert done.approval_status == ApprovalStatus.AUTO_APPROVED
    assert done.requires_approval is False
    assert done.approvals[0].approver_id == 20


def test_contractor_approval_can_be_switched_off_per_tenant():
    policy = TenantPolicy(tenant_id=TENANT, contractor_approval_required=False)
    assert resolve_approval_policy(policy, Role.CONTRACTOR) is False
    assert resolve_approval_policy(None, Role.CONTRACTOR) is True
    assert resolve_approval_policy(None, Role.MANAGER) is False


def test_unknown_or_inactive_user_cannot_clock_in():
    service, _, _ = _service(contractors=[make_contractor(10, is_active=False)])
    with pytest.raises(NotFoundError):
        service.clock_in(tenant_id=TENANT, user_id=10)
    with pytest.raises(NotFoundError):
        service.clock_in(tenant_id=2, user_id=10)


def test_list_entries_validates_range():
    service, _, _ = _service()
    with pytest.raises(ValidationError):
        service.list_entries(
            tenant_id=TENANT, filters=EntryFilters(start_date=date(2025, 1, 10), end_date=date(2025, 1, 1))
        )
