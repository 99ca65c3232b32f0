"""Single authorization rule shared by single and bulk decisions."""
from __future__ import annotations

from typing import Optional

from ..core.enums import ApproverRole
from ..core.exceptions import PolicyError
from ..projects.model import Project
from ..time_entries.model import TimeEntry


def can_decide(
    actor_role: ApproverRole,
    actor_id: int,
    entry: TimeEntry,
    project: Optional[Project] = None,
) -> bool:
    if actor_role == ApproverRole.MANAGER:
        return True
    if actor_role == ApproverRole.CLIENT:
        if entry.client_id is not None and entry.client_id == actor_id:
            return True
        return bool(project and project.names_approver(actor_id, ApproverRole.CLIENT))
    return False


def authorize_decision(
    actor_role: ApproverRole,
    actor_id: int,
    entry: TimeEntry,
    project: Optional[Project] = None,
) -> None:
    if not can_decide(actor_role, actor_id, entry, project):
        raise PolicyError(f"Approver {actor_id} ({actor_role.value}) may not decide entry {entry.entry_id}")
