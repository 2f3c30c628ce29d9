from __future__ import annotations

import enum
from typing import Optional

from pydantic import BaseModel, Field

from search_provisioner.models.search import BulkLoadResult, SearchHit


class WorkflowState(str, enum.Enum):
    CREATED = "created"
    READY = "ready"
    CONFIGURED = "configured"
    LOADED = "loaded"
    QUERIED = "queried"
    DELETED = "deleted"
    FAILED = "failed"


class WorkflowResult(BaseModel):
    project_id: Optional[str] = None
    state: Optional[WorkflowState] = None
    history: list[WorkflowState] = Field(default_factory=list)
    bulk: Optional[BulkLoadResult] = None
    hits: list[SearchHit] = Field(default_factory=list)
