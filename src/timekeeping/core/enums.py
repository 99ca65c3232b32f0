from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """Actor roles known to the engine."""

    ADMIN = "admin"
    MANAGER = "manager"
    STAFF = "staff"
    CONTRACTOR = "contractor"
    CLIENT_CONTACT = "client_contact"


class ApproverRole(str, Enum):
    """Role recorded on an approval record."""

    MANAGER = "manager"
    CLIENT = "client"


class ApprovalStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    AUTO_APPROVED = "auto_approved"

    @property
    def is_terminal(self) -> bool:
        return self is not ApprovalStatus.PENDING


class Decision(str, Enum):
    """Decision an approver can submit."""

    APPROVE = "approve"
    REJECT = "reject"

    @property
    def resulting_status(self) -> ApprovalStatus:
        return ApprovalStatus.APPROVED if self is Decision.APPROVE else ApprovalStatus.REJECTED


class EntryStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class AbsenceType(str, Enum):
    SICK = "sick"
    VACATION = "vacation"
    HOLIDAY = "holiday"
    UNPAID_LEAVE = "unpaid_leave"
    PERSONAL = "personal"
    BEREAVEMENT = "bereavement"
    JURY_DUTY = "jury_duty"
    CUSTOM = "custom"


class AbsenceStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    AUTO_APPROVED = "auto_approved"


# Statuses that suppress auto-clocking and block overlapping reports.
COVERING_ABSENCE_STATUSES = frozenset(
    {AbsenceStatus.PENDING, AbsenceStatus.APPROVED, AbsenceStatus.AUTO_APPROVED}
)


class ProcessingMode(str, Enum):
    """When auto-generation runs relative to the work day."""

    PROACTIVE = "proactive"
    REACTIVE = "reactive"
    WEEKLY_BATCH = "weekly_batch"


class SkipReason(str, Enum):
    NOT_ENABLED = "not_enabled"
    NOT_WORK_DAY = "not_work_day"
    EXCEPTION_COVERAGE = "exception_coverage"
    ALREADY_EXISTS = "already_exists"
