from __future__ import annotations

import logging
from datetime import date, time
from decimal import Decimal
from typing import Iterable, Mapping, Optional, Sequence

from ..common.datetime_utils import Clock, SystemClock
from ..common.validators import optional_text, require_date_range, require_non_empty, to_decimal
from ..contractors.repository import ContractorRepository
from ..core.constants import DEFAULT_LIST_LIMIT
from ..core.enums import AbsenceStatus, AbsenceType, Role
from ..core.exceptions import ConflictError, NotFoundError, PolicyError, ValidationError
from .model import ContractorAbsence, NewAbsence
from .repository import AbsenceRepository
from .rules import DEFAULT_RULES, AutoApprovalRule, AutoApprovalRuleTable, rules_for_tenant

logger = logging.getLogger(__name__)

_DECIDING_ROLES = {Role.ADMIN, Role.MANAGER}


class ExceptionLedger:
    """Calendar of claimed absences that suppress auto-clocking.

    Pending absences already suppress generation: a report that is later
    rejected can cost the contractor an auto-entry for that day.
    """

    def __init__(
        self,
        absences: AbsenceRepository,
        contractors: ContractorRepository,
        *,
        rules: AutoApprovalRuleTable = DEFAULT_RULES,
        tenant_rules: Optional[Mapping[int, Iterable[AutoApprovalRule]]] = None,
        clock: Optional[Clock] = None,
    ):
        self._absences = absences
        self._contractors = contractors
        self._rules = rules
        self._tenant_rules = tenant_rules
        self._clock = clock or SystemClock()

    def report_exception(
        self,
        *,
        tenant_id: int,
        contractor_id: int,
        start_date: date,
        absence_type: AbsenceType,
        end_date: Optional[date] = None,
        is_full_day: bool = True,
        hours_affected=None,
        start_time: Optional[time] = None,
        end_time: Optional[time] = None,
        reason: Optional[str] = None,
        description: Optional[str] = None,
        created_by: Optional[int] = None,
    ) -> ContractorAbsence:
        if not self._contractors.get(tenant_id=tenant_id, contractor_id=contractor_id):
            raise NotFoundError(f"Contractor {contractor_id} not found")

        last = require_date_range(start_date, end_date)
        hours: Optional[Decimal] = None
        if not is_full_day:
            if hours_affected is None:
                raise ValidationError("Hours affected is required for partial day exceptions")
            hours = to_decimal(hours_affected, "Hours affected")
            if not Decimal(0) < hours <= Decimal(24):
                raise ValidationError("Hours affected must be between 0 and 24")
            if not start_time or not end_time:
                raise ValidationError("Start and end time are required for partial day exceptions")
            if end_time <= start_time:
                raise ValidationError("End time must be after start time")

        decision = rules_for_tenant(
            tenant_id, default=self._rules, tenant_overrides=self._tenant_rules
        ).evaluate(
            absence_type=absence_type,
            is_single_day=last == start_date,
            is_full_day=is_full_day,
        )
        status = AbsenceStatus.AUTO_APPROVED if decision.auto_approve else AbsenceStatus.PENDING

        absence_id = self._absences.create_if_no_overlap(
            NewAbsence(
                tenant_id=tenant_id,
                contractor_id=contractor_id,
                start_date=start_date,
                end_date=end_date if end_date and end_date != start_date else None,
                absence_type=absence_type,
                status=status,
                is_full_day=is_full_day,
                hours_affected=hours,
                start_time=None if is_full_day else start_time,
                end_time=None if is_full_day else end_time,
                reason=optional_text(reason, max_length=500),
                description=optional_text(description, max_length=1000),
                requires_documentation=decision.requires_documentation,
                auto_approval_rule=decision.rule_name,
                created_by=created_by if created_by is not None else contractor_id,
                created_at=self._clock.now(),
            )
        )
        if absence_id is None:
            raise ConflictError(
                f"An exception already covers part of {start_date.isoformat()}..{last.isoformat()}"
            )

        logger.info(
            "Exception %s reported for contractor %s (%s, %s)",
            absence_id,
            contractor_id,
            absence_type.value,
            status.value,
        )
        return self.get_exception(tenant_id=tenant_id, absence_id=absence_id)

    def has_coverage(self, *, tenant_id: int, contractor_id: int, day: date) -> bool:
        return bool(self._absences.find_covering(tenant_id=tenant_id, contractor_id=contractor_id, start=day, end=day))

    def get_exception(self, *, tenant_id: int, absence_id: int) -> ContractorAbsence:
        absence = self._absences.get(tenant_id=tenant_id, absence_id=absence_id)
        if not absence:
            raise NotFoundError(f"Exception {absence_id} not found")
        return absence

    def list_exceptions(
        self,
        *,
        tenant_id: int,
        contractor_id: Optional[int] = None,
        start: Optional[date] = None,
        end: Optional[date] = None,
        status: Optional[AbsenceStatus] = None,
        absence_type: Optional[AbsenceType] = None,
        limit: int = DEFAULT_LIST_LIMIT,
    ) -> Sequence[ContractorAbsence]:
        if start and end and end < start:
            raise ValidationError("End date must be on or after start date")
        return self._absences.list(
            tenant_id=tenant_id,
            contractor_id=contractor_id,
            start=start,
            end=end,
            status=status,
            absence_type=absence_type,
            limit=int(limit),
        )

    def approve_exception(self, *, tenant_id: int, absence_id: int, current_role: Role, decided_by: int) -> ContractorAbsence:
        return self._decide(
            tenant_id=tenant_id,
            absence_id=absence_id,
            current_role=current_role,
            decided_by=decided_by,
            status=AbsenceStatus.APPROVED,
        )

    def reject_exception(
        self,
        *,
        tenant_id: int,
        absence_id: int,
        current_role: Role,
        decided_by: int,
        reason: str,
    ) -> ContractorAbsence:
        reason = require_non_empty(reason, "Rejection reason")
        return self._decide(
            tenant_id=tenant_id,
            absence_id=absence_id,
            current_role=current_role,
            decided_by=decided_by,
            status=AbsenceStatus.REJECTED,
            rejection_reason=reason,
        )

    def _decide(
        self,
        *,
        tenant_id: int,
        absence_id: int,
        current_role: Role,
        decided_by: int,
        status: AbsenceStatus,
        rejection_reason: Optional[str] = None,
    ) -> ContractorAbsence:
        if current_role not in _DECIDING_ROLES:
            raise PolicyError("Only managers can decide exceptions")

        absence = self.get_exception(tenant_id=tenant_id, absence_id=absence_id)
        if absence.status != AbsenceStatus.PENDING:
            raise ConflictError(f"Exception {absence_id} was already decided ({absence.status.value})")

        ok = self._absences.decide(
            tenant_id=tenant_id,
            absence_id=absence_id,
            status=status,
            decided_by=int(decided_by),
            decided_at=self._clock.now(),
            rejection_reason=rejection_reason,
        )
        if not ok:
            raise ConflictError(f"Exception {absence_id} was already decided")

        logger.info("Exception %s %s by %s", absence_id, status.value, decided_by)
        return self.get_exception(tenant_id=tenant_id, absence_id=absence_id)
