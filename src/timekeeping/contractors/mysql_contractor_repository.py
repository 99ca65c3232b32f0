from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict, Optional, Sequence

from ..core.enums import ProcessingMode, Role
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, normalize_mysql_time, to_decimal_or_none
from .model import AutoClockingProfile, Contractor, WorkSchedule
from .repository import ContractorRepository

_COLUMNS = """
    contractor_id, tenant_id, full_name, email, role, is_active, default_project_rate,
    auto_clocking_enabled, processing_mode, auto_requires_approval,
    schedule_start_time, schedule_end_time, schedule_hours_per_day, schedule_work_days, schedule_timezone
"""


def _parse_work_days(value: Optional[str]) -> frozenset:
    if not value:
        return frozenset()
    return frozenset(int(p) for p in str(value).split(",") if p.strip())


def _row_to_contractor(r: Dict[str, Any]) -> Contractor:
    start = normalize_mysql_time(r.get("schedule_start_time"))
    end = normalize_mysql_time(r.get("schedule_end_time"))
    schedule = None
    if start is not None and end is not None:
        schedule = WorkSchedule(
            start_time=start,
            end_time=end,
            hours_per_day=to_decimal_or_none(r["schedule_hours_per_day"]),
            work_days=_parse_work_days(r.get("schedule_work_days")),
            timezone=str(r["schedule_timezone"]),
        )

    return Contractor(
        contractor_id=int(r["contractor_id"]),
        tenant_id=int(r["tenant_id"]),
        full_name=str(r["full_name"]),
        email=r.get("email"),
        role=Role(r["role"]),
        is_active=bool(r["is_active"]),
        default_project_rate=to_decimal_or_none(r.get("default_project_rate")) or Decimal("0"),
        auto_clocking=AutoClockingProfile(
            enabled=bool(r["auto_clocking_enabled"]),
            processing_mode=ProcessingMode(r["processing_mode"]),
            schedule=schedule,
            requires_approval=bool(r["auto_requires_approval"]),
        ),
    )


class MySQLContractorRepository(ContractorRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get(self, *, tenant_id: int, contractor_id: int) -> Optional[Contractor]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM contractors WHERE tenant_id=%s AND contractor_id=%s",
                (int(tenant_id), int(contractor_id)),
            )
            r = fetchone(cur)
            return _row_to_contractor(r) if r else None

    def list_auto_clocking(
        self,
        *,
        mode: Optional[ProcessingMode] = None,
        tenant_id: Optional[int] = None,
    ) -> Sequence[Contractor]:
        clauses = ["is_active=1", "auto_clocking_enabled=1"]
        params: list[object] = []
        if mode is not None:
            clauses.append("processing_mode=%s")
            params.append(mode.value)
        if tenant_id is not None:
            clauses.append("tenant_id=%s")
            params.append(int(tenant_id))

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM contractors WHERE {' AND '.join(clauses)} ORDER BY tenant_id, contractor_id",
                tuple(params),
            )
            return [_row_to_contractor(r) for r in fetchall(cur)]
