from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable, Optional

from search_provisioner.models.project import ProjectDescriptor
from search_provisioner.models.workflow import WorkflowResult, WorkflowState
from search_provisioner.services.config import CleanupPolicy, WorkflowConfig
from search_provisioner.services.dataset_service import DatasetService
from search_provisioner.services.project_service import ProjectService, ProvisioningTimeoutError
from search_provisioner.services.readiness_service import ReadinessOutcome, ReadinessService
from search_provisioner.services.search_service import SearchService
from search_provisioner.services.setup.search_setup_service import SearchSetupService


logger = logging.getLogger(__name__)


class WorkflowService:
    """Runs one provisioning session end to end.

    created -> ready -> configured -> loaded -> queried -> deleted, with
    `failed` reachable from any state. Each step's remote call must finish
    before the next one starts. Errors are never caught here: they propagate
    to the caller unchanged in kind.

    The created project is held by `provisioned_project`. A successful run
    always deletes it. On failure the configured `CleanupPolicy` decides
    whether the project is deleted or left live for inspection.
    """

    def __init__(
        self,
        *,
        config: WorkflowConfig,
        projects: ProjectService,
        readiness: ReadinessService,
        search_factory: Callable[[ProjectDescriptor], SearchService],
        dataset: DatasetService,
    ) -> None:
        self._config = config
        self._projects = projects
        self._readiness = readiness
        self._search_factory = search_factory
        self._dataset = dataset
        self._state: Optional[WorkflowState] = None
        self._history: list[WorkflowState] = []

    @property
    def state(self) -> Optional[WorkflowState]:
        return self._state

    @property
    def history(self) -> list[WorkflowState]:
        return list(self._history)

    def _transition(self, state: WorkflowState) -> None:
        logger.debug("Workflow state: %s -> %s", self._state.value if self._state else None, state.value)
        self._state = state
        self._history.append(state)

    @asynccontextmanager
    async def provisioned_project(self) -> AsyncIterator[ProjectDescriptor]:
        logger.info("***Creating Project***")
        project = await self._projects.create_project(
            name=self._config.project_name,
            region_id=self._config.region_id,
            optimized_for=self._config.optimized_for,
        )
        self._transition(WorkflowState.CREATED)

        try:
            yield project
        except BaseException:
            await self._compensate(project)
            raise

        logger.info("***Deleting project***")
        await self._projects.delete_project(project.id)
        self._transition(WorkflowState.DELETED)

    async def _compensate(self, project: ProjectDescriptor) -> None:
        if self._config.cleanup_on_failure is CleanupPolicy.KEEP:
            logger.warning(
                "Run failed; project %s (%s) is still live and must be deleted manually",
                project.id,
                project.name,
            )
            return

        logger.warning("Run failed; deleting project %s (%s)", project.id, project.name)
        try:
            await self._projects.delete_project(project.id)
        except Exception:
            # The step failure is what the caller needs to see.
            logger.exception("Cleanup delete failed; project %s may still be live", project.id)

    async def run(self, *, cancel: Optional[asyncio.Event] = None) -> WorkflowResult:
        result = WorkflowResult()
        cfg = self._config

        try:
            async with self.provisioned_project() as project:
                result.project_id = project.id

                logger.info("***Awaiting Project to be Ready***")
                outcome = await self._readiness.await_ready(project.id, cancel=cancel)
                if outcome is not ReadinessOutcome.READY:
                    raise ProvisioningTimeoutError(
                        f"Project {project.id} did not become ready ({outcome.value})"
                    )
                self._transition(WorkflowState.READY)

                search = self._search_factory(project)
                setup = SearchSetupService(search=search, inference=cfg.inference)

                logger.info("***Creating Inference Endpoint***")
                await setup.configure_inference()

                logger.info("***Creating Index Mapping***")
                await setup.configure_schema(index_name=cfg.index_name)
                self._transition(WorkflowState.CONFIGURED)

                logger.info("***Loading Data***")
                result.bulk = await search.bulk_load(
                    self._dataset.read_records(),
                    index_name=cfg.index_name,
                    batch_size=cfg.bulk_batch_size,
                )
                for failure in result.bulk.failures:
                    logger.warning("Line %d not indexed: %s", failure.line_number, failure.reason)
                self._transition(WorkflowState.LOADED)

                logger.info('***Semantic Search:"%s"***', cfg.query.text)
                result.hits = await search.search(
                    index_name=cfg.index_name,
                    field=cfg.query.field,
                    text=cfg.query.text,
                    top_k=cfg.query.top_k,
                )
                for hit in result.hits:
                    logger.info("Hit id=%s score=%s source=%s", hit.id, hit.score, hit.source)
                self._transition(WorkflowState.QUERIED)
        except BaseException:
            self._transition(WorkflowState.FAILED)
            raise

        result.state = self._state
        result.history = self.history
        return result
