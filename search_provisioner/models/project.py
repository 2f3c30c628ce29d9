from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

READY_PHASE = "initialized"


class ProjectEndpoints(BaseModel):
    model_config = ConfigDict(extra="ignore")

    elasticsearch: Optional[str] = None
    kibana: Optional[str] = None


class ProjectCredentials(BaseModel):
    model_config = ConfigDict(extra="ignore")

    username: str
    password: str = Field(..., repr=False)


class ProjectDescriptor(BaseModel):
    """A hosted search project as returned by the create call."""

    model_config = ConfigDict(extra="ignore")

    id: str = Field(..., description="Provider-assigned project id")
    name: str
    region_id: Optional[str] = None
    optimized_for: Optional[str] = None
    cloud_id: Optional[str] = None
    alias: Optional[str] = None
    endpoints: ProjectEndpoints = Field(default_factory=ProjectEndpoints)
    credentials: Optional[ProjectCredentials] = None


class ProjectStatus(BaseModel):
    model_config = ConfigDict(extra="ignore")

    phase: str

    @property
    def is_ready(self) -> bool:
        return self.phase == READY_PHASE
