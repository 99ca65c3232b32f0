from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Protocol, Sequence

from ..core.enums import AbsenceStatus, AbsenceType
from .model import ContractorAbsence, NewAbsence


class AbsenceRepository(Protocol):
    def get(self, *, tenant_id: int, absence_id: int) -> Optional[ContractorAbsence]:
        raise NotImplementedError

    def create_if_no_overlap(self, absence: NewAbsence) -> Optional[int]:
        """Insert unless a covering absence overlaps the range (atomically).

        Returns the new id, or None on overlap.
        """

        raise NotImplementedError

    def find_covering(self, *, tenant_id: int, contractor_id: int, start: date, end: date) -> Sequence[ContractorAbsence]:
        """Pending/approved/auto-approved absences overlapping [start, end]."""

        raise NotImplementedError

    def list(
        self,
        *,
        tenant_id: int,
        contractor_id: Optional[int] = None,
        start: Optional[date] = None,
        end: Optional[date] = None,
        status: Optional[AbsenceStatus] = None,
        absence_type: Optional[AbsenceType] = None,
        limit: int = 200,
    ) -> Sequence[ContractorAbsence]:
        raise NotImplementedError

    def decide(
        self,
        *,
        tenant_id: int,
        absence_id: int,
        status: AbsenceStatus,
        decided_by: int,
        decided_at: datetime,
        rejection_reason: Optional[str] = None,
    ) -> bool:
        """Move a pending absence to ``status``. Returns False if no longer pending."""

        raise NotImplementedError
