from __future__ import annotations

from typing import Optional

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchone
from .model import TenantPolicy
from .repository import TenantRepository


class MySQLTenantRepository(TenantRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_policy(self, tenant_id: int) -> Optional[TenantPolicy]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT tenant_id, contractor_approval_required, manager_approval_required
                FROM tenants
                WHERE tenant_id=%s
                """,
                (int(tenant_id),),
            )
            r = fetchone(cur)
            if not r:
                return None
            return TenantPolicy(
                tenant_id=int(r["tenant_id"]),
                contractor_approval_required=bool(r["contractor_approval_required"]),
                manager_approval_required=bool(r["manager_approval_required"]),
            )
