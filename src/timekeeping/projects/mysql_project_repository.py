from __future__ import annotations

from decimal import Decimal
from typing import Iterable, Mapping, Optional

from ..core.enums import ApproverRole
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, placeholders, to_decimal_or_none
from .model import Project, ProjectApprover
from .repository import ProjectRepository


class MySQLProjectRepository(ProjectRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get(self, *, tenant_id: int, project_id: int) -> Optional[Project]:
        return self.get_many(tenant_id=tenant_id, project_ids=[project_id]).get(int(project_id))

    def get_many(self, *, tenant_id: int, project_ids: Iterable[int]) -> Mapping[int, Project]:
        ids = sorted({int(p) for p in project_ids})
        if not ids:
            return {}

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT project_id, tenant_id, name, code, client_id, default_rate
                FROM projects
                WHERE tenant_id=%s AND project_id IN ({placeholders(ids)})
                """,
                (int(tenant_id), *ids),
            )
            rows = fetchall(cur)
            if not rows:
                return {}

            found = [int(r["project_id"]) for r in rows]
            cur.execute(
                f"""
                SELECT project_id, approver_id, approver_role, level, is_required
                FROM project_approvers
                WHERE project_id IN ({placeholders(found)})
                ORDER BY project_id, level
                """,
                tuple(found),
            )
            approvers: dict[int, list[ProjectApprover]] = {}
            for a in fetchall(cur):
                approvers.setdefault(int(a["project_id"]), []).append(
                    ProjectApprover(
                        approver_id=int(a["approver_id"]),
                        approver_role=ApproverRole(a["approver_role"]),
                        level=int(a["level"]),
                        is_required=bool(a["is_required"]),
                    )
                )

        return {
            int(r["project_id"]): Project(
                project_id=int(r["project_id"]),
                tenant_id=int(r["tenant_id"]),
                name=str(r["name"]),
                code=r.get("code"),
                client_id=int(r["client_id"]) if r.get("client_id") is not None else None,
                default_rate=to_decimal_or_none(r.get("default_rate")) or Decimal("0"),
                approvers=tuple(approvers.get(int(r["project_id"]), ())),
            )
            for r in rows
        }
