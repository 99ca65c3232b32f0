from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Union

from ..core.enums import ApprovalStatus, Decision


@dataclass(frozen=True)
class DecisionOutcome:
    entry_id: Union[int, str]
    success: bool
    status: Optional[ApprovalStatus] = None
    error: Optional[str] = None
    error_code: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "entry_id": self.entry_id,
            "success": self.success,
            "status": self.status.value if self.status else None,
            "error": self.error,
            "error_code": self.error_code,
        }


@dataclass(frozen=True)
class BulkDecisionResult:
    """Per-id outcomes of a bulk decision plus aggregate counts."""

    decision: Decision
    outcomes: tuple[DecisionOutcome, ...] = field(default_factory=tuple)

    @property
    def succeeded(self) -> int:
        return sum(1 for o in self.outcomes if o.success)

    @property
    def failed(self) -> int:
        return len(self.outcomes) - self.succeeded

    @property
    def message(self) -> str:
        verb = "approval" if self.decision is Decision.APPROVE else "rejection"
        return f"Bulk {verb} completed: {self.succeeded} successful, {self.failed} failed"

    def to_dict(self) -> dict:
        return {
            "decision": self.decision.value,
            "message": self.message,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "results": [o.to_dict() for o in self.outcomes],
        }
