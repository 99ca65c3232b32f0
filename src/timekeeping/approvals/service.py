from __future__ import annotations

import logging
from typing import Iterable, Optional, Sequence

from ..common.datetime_utils import Clock, SystemClock
from ..common.validators import optional_text, require_non_empty
from ..core.constants import DEFAULT_LIST_LIMIT
from ..core.enums import ApprovalStatus, ApproverRole, Decision
from ..core.exceptions import ConflictError, DomainError, NotFoundError, ValidationError
from ..projects.repository import ProjectRepository
from ..time_entries.model import ApprovalRecord, EntryFilters, TimeEntry
from ..time_entries.repository import TimeEntryRepository
from .authorization import authorize_decision, can_decide
from .model import BulkDecisionResult, DecisionOutcome

logger = logging.getLogger(__name__)


def is_fully_approved(entry: TimeEntry) -> bool:
    """One approved/auto-approved record is enough to close an entry.

    Multi-level sign-off is representable (several records, manager and client)
    but is not required.
    """
    if not entry.requires_approval:
        return True
    return any(
        a.decision in (ApprovalStatus.APPROVED, ApprovalStatus.AUTO_APPROVED) for a in entry.approvals
    )


def _entry_id(value) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid time entry id {value!r}")


class ApprovalService:
    """Approval state machine: pending -> approved | rejected, nothing out of terminal states."""

    def __init__(
        self,
        entries: TimeEntryRepository,
        projects: ProjectRepository,
        *,
        clock: Optional[Clock] = None,
    ):
        self._entries = entries
        self._projects = projects
        self._clock = clock or SystemClock()

    @staticmethod
    def _validate_notes(decision: Decision, notes: Optional[str]) -> Optional[str]:
        if decision is Decision.REJECT:
            return require_non_empty(notes, "Rejection reason")
        return optional_text(notes, max_length=500)

    def decide(
        self,
        *,
        tenant_id: int,
        entry_id: int,
        decision: Decision,
        approver_id: int,
        approver_role: ApproverRole,
        notes: Optional[str] = None,
    ) -> TimeEntry:
        notes = self._validate_notes(decision, notes)
        return self._apply(
            tenant_id=tenant_id,
            entry_id=entry_id,
            decision=decision,
            approver_id=approver_id,
            approver_role=approver_role,
            notes=notes,
        )

    def bulk_decide(
        self,
        *,
        tenant_id: int,
        entry_ids: Iterable[int],
        decision: Decision,
        approver_id: int,
        approver_role: ApproverRole,
        notes: Optional[str] = None,
    ) -> BulkDecisionResult:
        """Apply one decision to many entries; each entry succeeds or fails on its own."""
        notes = self._validate_notes(decision, notes)

        outcomes: list[DecisionOutcome] = []
        for raw_id in entry_ids:
            try:
                entry = self._apply(
                    tenant_id=tenant_id,
                    entry_id=_entry_id(raw_id),
                    decision=decision,
                    approver_id=approver_id,
                    approver_role=approver_role,
                    notes=notes,
                )
                outcomes.append(DecisionOutcome(entry_id=entry.entry_id, success=True, status=entry.approval_status))
            except DomainError as e:
                outcomes.append(DecisionOutcome(entry_id=raw_id, success=False, error=str(e), error_code=e.code))
            except Exception as e:
                logger.exception("Unexpected error deciding entry %s", raw_id)
                outcomes.append(
                    DecisionOutcome(entry_id=raw_id, success=False, error=str(e), error_code="internal_error")
                )

        result = BulkDecisionResult(decision=decision, outcomes=tuple(outcomes))
        logger.info("%s (tenant=%s approver=%s)", result.message, tenant_id, approver_id)
        return result

    def list_pending(
        self,
        *,
        tenant_id: int,
        user_id: Optional[int] = None,
        approver_id: Optional[int] = None,
        approver_role: Optional[ApproverRole] = None,
        limit: int = DEFAULT_LIST_LIMIT,
    ) -> Sequence[TimeEntry]:
        """Pending completed entries, narrowed to what ``approver_id`` may decide when given."""
        pending = [
            e
            for e in self._entries.list(
                tenant_id=tenant_id,
                filters=EntryFilters(user_id=user_id, approval_status=ApprovalStatus.PENDING, limit=int(limit)),
            )
            if not e.is_open
        ]
        if approver_id is None or approver_role is None:
            return pending

        project_ids = {e.project_id for e in pending if e.project_id is not None}
        projects = self._projects.get_many(tenant_id=tenant_id, project_ids=project_ids) if project_ids else {}
        return [
            e
            for e in pending
            if can_decide(approver_role, approver_id, e, projects.get(e.project_id) if e.project_id is not None else None)
        ]

    def _apply(
        self,
        *,
        tenant_id: int,
        entry_id: int,
        decision: Decision,
        approver_id: int,
        approver_role: ApproverRole,
        notes: Optional[str],
    ) -> TimeEntry:
        entry = self._entries.get(tenant_id=tenant_id, entry_id=entry_id)
        if not entry:
            raise NotFoundError(f"Time entry {entry_id} not found")

        project = None
        if entry.project_id is not None:
            project = self._projects.get(tenant_id=tenant_id, project_id=entry.project_id)
        authorize_decision(approver_role, approver_id, entry, project)

        if entry.approval_status.is_terminal:
            raise ConflictError(f"Time entry {entry_id} was already decided ({entry.approval_status.value})")
        if entry.is_open:
            raise ValidationError(f"Time entry {entry_id} is still open")

        record = ApprovalRecord(
            approver_id=int(approver_id),
            approver_role=approver_role,
            decision=decision.resulting_status,
            timestamp=self._clock.now(),
            notes=notes,
        )
        updated = entry.with_approval(record, decision.resulting_status)
        if decision is Decision.APPROVE and not is_fully_approved(updated):
            updated = entry.with_approval(record, ApprovalStatus.PENDING)

        ok = self._entries.append_approval(
            tenant_id=tenant_id,
            entry_id=entry_id,
            record=record,
            new_status=updated.approval_status,
            expected_status=ApprovalStatus.PENDING,
        )
        if not ok:
            raise ConflictError(f"Time entry {entry_id} was already decided")

        logger.info(
            "Entry %s %s by %s %s", entry_id, updated.approval_status.value, approver_role.value, approver_id
        )
        return updated
