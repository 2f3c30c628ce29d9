from __future__ import annotations

from typing import Callable

import aiohttp

from search_provisioner.models.project import ProjectDescriptor
from search_provisioner.services.config import WorkflowConfig
from search_provisioner.services.dataset_service import DatasetService
from search_provisioner.services.project_service import ProjectService
from search_provisioner.services.readiness_service import ReadinessService
from search_provisioner.services.search_service import SearchConfig, SearchService
from search_provisioner.services.workflow_service import WorkflowService


def get_project_service(config: WorkflowConfig, *, session: aiohttp.ClientSession) -> ProjectService:
    return ProjectService(config.control, session=session)


def get_readiness_service(config: WorkflowConfig, *, projects: ProjectService) -> ReadinessService:
    return ReadinessService(projects, config=config.readiness)


def get_search_service_factory(
    config: WorkflowConfig, *, session: aiohttp.ClientSession
) -> Callable[[ProjectDescriptor], SearchService]:
    """Search clients can only be built once a project exists, so hand out a factory."""

    def _factory(project: ProjectDescriptor) -> SearchService:
        search_config = SearchConfig.from_project(project, timeout_seconds=config.control.timeout_seconds)
        return SearchService(search_config, session=session)

    return _factory


def get_dataset_service(config: WorkflowConfig) -> DatasetService:
    return DatasetService(config.input_path)


def get_workflow_service(config: WorkflowConfig, *, session: aiohttp.ClientSession) -> WorkflowService:
    projects = get_project_service(config, session=session)
    return WorkflowService(
        config=config,
        projects=projects,
        readiness=get_readiness_service(config, projects=projects),
        search_factory=get_search_service_factory(config, session=session),
        dataset=get_dataset_service(config),
    )
