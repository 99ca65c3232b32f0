from __future__ import annotations

from typing import Iterable, Mapping, Optional, Protocol

from .model import Project


class ProjectRepository(Protocol):
    def get(self, *, tenant_id: int, project_id: int) -> Optional[Project]:
        raise NotImplementedError

    def get_many(self, *, tenant_id: int, project_ids: Iterable[int]) -> Mapping[int, Project]:
        raise NotImplementedError
