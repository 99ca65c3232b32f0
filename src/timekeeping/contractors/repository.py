from __future__ import annotations

from typing import Optional, Protocol, Sequence

from ..core.enums import ProcessingMode
from .model import Contractor


class ContractorRepository(Protocol):
    def get(self, *, tenant_id: int, contractor_id: int) -> Optional[Contractor]:
        raise NotImplementedError

    def list_auto_clocking(
        self,
        *,
        mode: Optional[ProcessingMode] = None,
        tenant_id: Optional[int] = None,
    ) -> Sequence[Contractor]:
        """Active contractors with auto-clocking enabled, optionally filtered."""

        raise NotImplementedError
