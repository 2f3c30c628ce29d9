from search_provisioner.models.project import (
    READY_PHASE,
    ProjectCredentials,
    ProjectDescriptor,
    ProjectEndpoints,
    ProjectStatus,
)
from search_provisioner.models.search import BulkLoadResult, DataRecord, DocumentOutcome, SearchHit
from search_provisioner.models.workflow import WorkflowResult, WorkflowState

__all__ = [
    "READY_PHASE",
    "BulkLoadResult",
    "DataRecord",
    "DocumentOutcome",
    "ProjectCredentials",
    "ProjectDescriptor",
    "ProjectEndpoints",
    "ProjectStatus",
    "SearchHit",
    "WorkflowResult",
    "WorkflowState",
]
