from __future__ import annotations

from datetime import date, datetime
from typing import Any, Dict, Optional, Sequence

from ..core.enums import COVERING_ABSENCE_STATUSES, AbsenceStatus, AbsenceType
from ..database.connection import DatabaseConnection
from ..database.mysql_base import (
    db_cursor,
    fetchall,
    fetchone,
    from_db_datetime,
    normalize_mysql_time,
    placeholders,
    to_db_datetime,
    to_decimal_or_none,
)
from .model import ContractorAbsence, NewAbsence
from .repository import AbsenceRepository

_COLUMNS = """
    exception_id, tenant_id, contractor_id, exception_type, start_date, end_date, is_full_day,
    hours_affected, start_time, end_time, reason, description, status, requires_documentation,
    auto_approval_rule, created_by, decided_by, decided_at, rejection_reason, created_at
"""

_COVERING = sorted(s.value for s in COVERING_ABSENCE_STATUSES)

# Range overlap against [start, end] where a NULL end_date means a single day.
_OVERLAP = "start_date <= %s AND COALESCE(end_date, start_date) >= %s"


def _row_to_absence(r: Dict[str, Any]) -> ContractorAbsence:
    return ContractorAbsence(
        absence_id=int(r["exception_id"]),
        tenant_id=int(r["tenant_id"]),
        contractor_id=int(r["contractor_id"]),
        start_date=r["start_date"],
        end_date=r.get("end_date"),
        absence_type=AbsenceType(r["exception_type"]),
        status=AbsenceStatus(r["status"]),
        is_full_day=bool(r["is_full_day"]),
        hours_affected=to_decimal_or_none(r.get("hours_affected")),
        start_time=normalize_mysql_time(r.get("start_time")),
        end_time=normalize_mysql_time(r.get("end_time")),
        reason=r.get("reason"),
        description=r.get("description"),
        requires_documentation=bool(r["requires_documentation"]),
        auto_approval_rule=r.get("auto_approval_rule"),
        created_by=int(r["created_by"]) if r.get("created_by") is not None else None,
        decided_by=int(r["decided_by"]) if r.get("decided_by") is not None else None,
        decided_at=from_db_datetime(r.get("decided_at")),
        rejection_reason=r.get("rejection_reason"),
        created_at=from_db_datetime(r.get("created_at")),
    )


class MySQLAbsenceRepository(AbsenceRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get(self, *, tenant_id: int, absence_id: int) -> Optional[ContractorAbsence]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM contractor_exceptions WHERE tenant_id=%s AND exception_id=%s",
                (int(tenant_id), int(absence_id)),
            )
            r = fetchone(cur)
            return _row_to_absence(r) if r else None

    def create_if_no_overlap(self, absence: NewAbsence) -> Optional[int]:
        last = absence.end_date or absence.start_date

        with db_cursor(self._conn_factory) as (_, cur):
            # Serializes concurrent reports for the same contractor until commit.
            cur.execute(
                "SELECT contractor_id FROM contractors WHERE tenant_id=%s AND contractor_id=%s FOR UPDATE",
                (int(absence.tenant_id), int(absence.contractor_id)),
            )
            fetchall(cur)

            cur.execute(
                f"""
                SELECT exception_id
                FROM contractor_exceptions
                WHERE tenant_id=%s AND contractor_id=%s
                  AND status IN ({placeholders(_COVERING)})
                  AND {_OVERLAP}
                LIMIT 1
                """,
                (int(absence.tenant_id), int(absence.contractor_id), *_COVERING, last, absence.start_date),
            )
            if fetchone(cur):
                return None

            cur.execute(
                """
                INSERT INTO contractor_exceptions(
                    tenant_id, contractor_id, exception_type, start_date, end_date, is_full_day, hours_affected,
                    start_time, end_time, reason, description, status, requires_documentation,
                    auto_approval_rule, created_by, created_at
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    int(absence.tenant_id),
                    int(absence.contractor_id),
                    absence.absence_type.value,
                    absence.start_date,
                    absence.end_date,
                    1 if absence.is_full_day else 0,
                    absence.hours_affected,
                    absence.start_time,
                    absence.end_time,
                    absence.reason,
                    absence.description,
                    absence.status.value,
                    1 if absence.requires_documentation else 0,
                    absence.auto_approval_rule,
                    absence.created_by,
                    to_db_datetime(absence.created_at),
                ),
            )
            return int(cur.lastrowid)

    def find_covering(self, *, tenant_id: int, contractor_id: int, start: date, end: date) -> Sequence[ContractorAbsence]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM contractor_exceptions
                WHERE tenant_id=%s AND contractor_id=%s
                  AND status IN ({placeholders(_COVERING)})
                  AND {_OVERLAP}
                ORDER BY start_date
                """,
                (int(tenant_id), int(contractor_id), *_COVERING, end, start),
            )
            return [_row_to_absence(r) for r in fetchall(cur)]

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
        clauses = ["tenant_id=%s"]
        params: list[object] = [int(tenant_id)]

        if contractor_id is not None:
            clauses.append("contractor_id=%s")
            params.append(int(contractor_id))
        if start is not None:
            clauses.append("COALESCE(end_date, start_date) >= %s")
            params.append(start)
        if end is not None:
            clauses.append("start_date <= %s")
            params.append(end)
        if status is not None:
            clauses.append("status=%s")
            params.append(status.value)
        if absence_type is not None:
            clauses.append("exception_type=%s")
            params.append(absence_type.value)

        params.append(int(limit))
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM contractor_exceptions
                WHERE {' AND '.join(clauses)}
                ORDER BY start_date DESC, exception_id DESC
                LIMIT %s
                """,
                tuple(params),
            )
            return [_row_to_absence(r) for r in fetchall(cur)]

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
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE contractor_exceptions
                SET status=%s, decided_by=%s, decided_at=%s, rejection_reason=%s
                WHERE tenant_id=%s AND exception_id=%s AND status='pending'
                """,
                (
                    status.value,
                    int(decided_by),
                    to_db_datetime(decided_at),
                    rejection_reason,
                    int(tenant_id),
                    int(absence_id),
                ),
            )
            return cur.rowcount > 0
