from __future__ import annotations

from typing import Optional, Protocol

from .model import TenantPolicy


class TenantRepository(Protocol):
    def get_policy(self, tenant_id: int) -> Optional[TenantPolicy]:
        raise NotImplementedError
