from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Any, Dict, Mapping, Optional, Sequence

import mysql.connector

from ..core.enums import ApprovalStatus, ApproverRole, EntryStatus, ProcessingMode
from ..database.connection import DatabaseConnection
from ..database.mysql_base import (
    db_cursor,
    fetchall,
    fetchone,
    from_db_datetime,
    is_duplicate_key,
    placeholders,
    to_db_datetime,
    to_decimal_or_none,
)
from .model import ApprovalRecord, EntryFilters, HoursBreakdown, NewTimeEntry, TimeEntry
from .repository import TimeEntryRepository

logger = logging.getLogger(__name__)

_COLUMNS = """
    time_entry_id, tenant_id, user_id, project_id, client_id, work_date, clock_in, clock_out,
    break_minutes, regular_hours, overtime_hours, double_time_hours, billable_hours, non_billable_hours,
    status, approval_status, requires_approval, is_auto_generated, auto_generated_at, generation_mode,
    task_description, notes
"""


def _hours_params(hours: Optional[HoursBreakdown]) -> tuple:
    if hours is None:
        return (None, None, None, None, None, None)
    return (hours.regular, hours.overtime, hours.double_time, hours.billable, hours.non_billable, hours.total)


def _row_to_entry(r: Dict[str, Any], approvals: Sequence[ApprovalRecord] = ()) -> TimeEntry:
    hours = None
    if r.get("regular_hours") is not None:
        hours = HoursBreakdown(
            regular=to_decimal_or_none(r["regular_hours"]),
            overtime=to_decimal_or_none(r["overtime_hours"]),
            double_time=to_decimal_or_none(r["double_time_hours"]),
            billable=to_decimal_or_none(r["billable_hours"]),
            non_billable=to_decimal_or_none(r["non_billable_hours"]),
        )

    return TimeEntry(
        entry_id=int(r["time_entry_id"]),
        tenant_id=int(r["tenant_id"]),
        user_id=int(r["user_id"]),
        work_date=r["work_date"],
        clock_in=from_db_datetime(r["clock_in"]),
        clock_out=from_db_datetime(r.get("clock_out")),
        status=EntryStatus(r["status"]),
        approval_status=ApprovalStatus(r["approval_status"]),
        requires_approval=bool(r["requires_approval"]),
        break_minutes=int(r.get("break_minutes") or 0),
        project_id=int(r["project_id"]) if r.get("project_id") is not None else None,
        client_id=int(r["client_id"]) if r.get("client_id") is not None else None,
        hours=hours,
        approvals=tuple(approvals),
        is_auto_generated=bool(r["is_auto_generated"]),
        auto_generated_at=from_db_datetime(r.get("auto_generated_at")),
        generation_mode=ProcessingMode(r["generation_mode"]) if r.get("generation_mode") else None,
        task_description=r.get("task_description"),
        notes=r.get("notes"),
    )


class MySQLTimeEntryRepository(TimeEntryRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def _load_approvals(self, cur, entry_ids: Sequence[int]) -> dict[int, list[ApprovalRecord]]:
        if not entry_ids:
            return {}
        cur.execute(
            f"""
            SELECT time_entry_id, approver_id, approver_role, decision, notes, decided_at
            FROM time_entry_approvals
            WHERE time_entry_id IN ({placeholders(entry_ids)})
            ORDER BY approval_id
            """,
            tuple(entry_ids),
        )
        out: dict[int, list[ApprovalRecord]] = {}
        for a in fetchall(cur):
            out.setdefault(int(a["time_entry_id"]), []).append(
                ApprovalRecord(
                    approver_id=int(a["approver_id"]),
                    approver_role=ApproverRole(a["approver_role"]),
                    decision=ApprovalStatus(a["decision"]),
                    timestamp=from_db_datetime(a["decided_at"]),
                    notes=a.get("notes"),
                )
            )
        return out

    def _insert_approvals(self, cur, *, tenant_id: int, entry_id: int, approvals: Sequence[ApprovalRecord]) -> None:
        for a in approvals:
            cur.execute(
                """
                INSERT INTO time_entry_approvals(tenant_id, time_entry_id, approver_id, approver_role, decision, notes, decided_at)
                VALUES(%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    int(tenant_id),
                    int(entry_id),
                    int(a.approver_id),
                    a.approver_role.value,
                    a.decision.value,
                    a.notes,
                    to_db_datetime(a.timestamp),
                ),
            )

    def _select_one(self, where: str, params: tuple) -> Optional[TimeEntry]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM time_entries WHERE {where} LIMIT 1", params)
            r = fetchone(cur)
            if not r:
                return None
            entry_id = int(r["time_entry_id"])
            approvals = self._load_approvals(cur, [entry_id])
            return _row_to_entry(r, approvals.get(entry_id, ()))

    def get(self, *, tenant_id: int, entry_id: int) -> Optional[TimeEntry]:
        return self._select_one("tenant_id=%s AND time_entry_id=%s", (int(tenant_id), int(entry_id)))

    def find_open_for_user(self, *, tenant_id: int, user_id: int) -> Optional[TimeEntry]:
        return self._select_one(
            "tenant_id=%s AND user_id=%s AND clock_out IS NULL AND status='active' ORDER BY clock_in DESC",
            (int(tenant_id), int(user_id)),
        )

    def find_auto_generated(self, *, tenant_id: int, user_id: int, work_date: date) -> Optional[TimeEntry]:
        return self._select_one(
            "tenant_id=%s AND user_id=%s AND auto_work_date=%s",
            (int(tenant_id), int(user_id), work_date),
        )

    def list(self, *, tenant_id: int, filters: EntryFilters) -> Sequence[TimeEntry]:
        clauses = ["tenant_id=%s"]
        params: list[object] = [int(tenant_id)]

        if filters.user_id is not None:
            clauses.append("user_id=%s")
            params.append(int(filters.user_id))
        if filters.project_id is not None:
            clauses.append("project_id=%s")
            params.append(int(filters.project_id))
        if filters.start_date is not None:
            clauses.append("work_date >= %s")
            params.append(filters.start_date)
        if filters.end_date is not None:
            clauses.append("work_date <= %s")
            params.append(filters.end_date)
        if filters.approval_status is not None:
            clauses.append("approval_status=%s")
            params.append(filters.approval_status.value)
        if filters.is_auto_generated is not None:
            clauses.append("is_auto_generated=%s")
            params.append(1 if filters.is_auto_generated else 0)

        where = " AND ".join(clauses)
        params.append(int(filters.limit))

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM time_entries
                WHERE {where}
                ORDER BY work_date DESC, clock_in DESC
                LIMIT %s
                """,
                tuple(params),
            )
            rows = fetchall(cur)
            approvals = self._load_approvals(cur, [int(r["time_entry_id"]) for r in rows])
            return [_row_to_entry(r, approvals.get(int(r["time_entry_id"]), ())) for r in rows]

    def _insert(self, cur, entry: NewTimeEntry) -> int:
        cur.execute(
            """
            INSERT INTO time_entries(
                tenant_id, user_id, project_id, client_id, work_date, clock_in, clock_out, break_minutes,
                regular_hours, overtime_hours, double_time_hours, billable_hours, non_billable_hours, total_hours,
                status, approval_status, requires_approval, is_auto_generated, auto_generated_at, generation_mode,
                task_description, notes
            )
            VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
            """,
            (
                int(entry.tenant_id),
                int(entry.user_id),
                entry.project_id,
                entry.client_id,
                entry.work_date,
                to_db_datetime(entry.clock_in),
                to_db_datetime(entry.clock_out),
                int(entry.break_minutes),
                *_hours_params(entry.hours),
                entry.status.value,
                entry.approval_status.value,
                1 if entry.requires_approval else 0,
                1 if entry.is_auto_generated else 0,
                to_db_datetime(entry.auto_generated_at),
                entry.generation_mode.value if entry.generation_mode else None,
                entry.task_description,
                entry.notes,
            ),
        )
        entry_id = int(cur.lastrowid)
        self._insert_approvals(cur, tenant_id=entry.tenant_id, entry_id=entry_id, approvals=entry.approvals)
        return entry_id

    def create(self, entry: NewTimeEntry) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            return self._insert(cur, entry)

    def insert_auto_generated(self, entry: NewTimeEntry) -> Optional[int]:
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                return self._insert(cur, entry)
        except mysql.connector.IntegrityError as exc:
            if not is_duplicate_key(exc):
                raise
            logger.debug(
                "Auto-generated entry already present tenant=%s user=%s date=%s",
                entry.tenant_id,
                entry.user_id,
                entry.work_date,
            )
            return None

    def complete(
        self,
        *,
        tenant_id: int,
        entry_id: int,
        clock_out: datetime,
        break_minutes: int,
        hours: HoursBreakdown,
        status: EntryStatus,
        approval_status: ApprovalStatus,
        requires_approval: bool,
        approvals: Sequence[ApprovalRecord] = (),
    ) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE time_entries
                SET clock_out=%s, break_minutes=%s,
                    regular_hours=%s, overtime_hours=%s, double_time_hours=%s,
                    billable_hours=%s, non_billable_hours=%s, total_hours=%s,
                    status=%s, approval_status=%s, requires_approval=%s
                WHERE tenant_id=%s AND time_entry_id=%s AND clock_out IS NULL
                """,
                (
                    to_db_datetime(clock_out),
                    int(break_minutes),
                    *_hours_params(hours),
                    status.value,
                    approval_status.value,
                    1 if requires_approval else 0,
                    int(tenant_id),
                    int(entry_id),
                ),
            )
            if cur.rowcount == 0:
                return False
            self._insert_approvals(cur, tenant_id=tenant_id, entry_id=entry_id, approvals=approvals)
            return True

    def append_approval(
        self,
        *,
        tenant_id: int,
        entry_id: int,
        record: ApprovalRecord,
        new_status: ApprovalStatus,
        expected_status: ApprovalStatus = ApprovalStatus.PENDING,
    ) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE time_entries
                SET approval_status=%s
                WHERE tenant_id=%s AND time_entry_id=%s AND approval_status=%s
                """,
                (new_status.value, int(tenant_id), int(entry_id), expected_status.value),
            )
            if cur.rowcount == 0:
                return False
            self._insert_approvals(cur, tenant_id=tenant_id, entry_id=entry_id, approvals=[record])
            return True

    def delete_auto_generated(self, *, tenant_id: int, user_id: int, work_date: date) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                DELETE FROM time_entries
                WHERE tenant_id=%s AND user_id=%s AND work_date=%s AND is_auto_generated=1
                """,
                (int(tenant_id), int(user_id), work_date),
            )
            return int(cur.rowcount)

    def count_auto_generated_by_mode(
        self,
        *,
        since: datetime,
        tenant_id: Optional[int] = None,
    ) -> Mapping[Optional[ProcessingMode], int]:
        clauses = ["is_auto_generated=1", "auto_generated_at >= %s"]
        params: list[object] = [to_db_datetime(since)]
        if tenant_id is not None:
            clauses.append("tenant_id=%s")
            params.append(int(tenant_id))

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT generation_mode, COUNT(*) AS n
                FROM time_entries
                WHERE {' AND '.join(clauses)}
                GROUP BY generation_mode
                """,
                tuple(params),
            )
            return {
                (ProcessingMode(r["generation_mode"]) if r.get("generation_mode") else None): int(r["n"])
                for r in fetchall(cur)
            }
