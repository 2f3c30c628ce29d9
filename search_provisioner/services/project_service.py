from __future__ import annotations

import asyncio
import json
import logging
from http import HTTPStatus
from typing import Any, Optional
from urllib.parse import quote

import aiohttp
from pydantic import ValidationError

from search_provisioner.models.project import ProjectDescriptor, ProjectStatus
from search_provisioner.services.config import ControlApiConfig
from search_provisioner.services.http_errors import ServiceHTTPError, decode_payload


logger = logging.getLogger(__name__)


class ProvisioningError(ServiceHTTPError):
    """The project lifecycle API refused a request or could not be reached."""


class ProvisioningTimeoutError(ProvisioningError):
    pass


class ProjectService:
    """Client for the hosted project lifecycle (control plane) API.

    Every call authenticates with `Authorization: ApiKey <key>` and performs no
    retries: a single failed call is a hard failure for the caller.
    """

    def __init__(self, config: ControlApiConfig, *, session: aiohttp.ClientSession) -> None:
        self._config = config
        self._session = session

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"ApiKey {self._config.api_key}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    async def _request(
        self,
        *,
        method: str,
        path: str = "",
        body: Optional[dict[str, Any]] = None,
    ) -> tuple[int, Any]:
        url = f"{self._config.base_url}{path}"
        data = json.dumps(body).encode("utf-8") if body is not None else None
        timeout = aiohttp.ClientTimeout(total=self._config.timeout_seconds)

        try:
            async with self._session.request(
                method.upper(),
                url,
                data=data,
                headers=self._headers(),
                timeout=timeout,
            ) as resp:
                raw = await resp.read()
                return (resp.status, decode_payload(raw))
        except aiohttp.ClientError as exc:
            raise ProvisioningError(f"Control API request failed ({method} {url})") from exc
        except asyncio.TimeoutError as exc:
            raise ProvisioningError(f"Control API request timed out ({method} {url})") from exc

    async def create_project(self, *, name: str, region_id: str, optimized_for: str) -> ProjectDescriptor:
        """Create a project. Allocates a billable remote resource.

        Raises:
            ProvisioningError: for any status other than 201 Created.
        """

        status, payload = await self._request(
            method="POST",
            body={"name": name, "region_id": region_id, "optimized_for": optimized_for},
        )
        if status != HTTPStatus.CREATED:
            raise ProvisioningError(f"Failed to create project {name!r}", status=status, payload=payload)

        try:
            project = ProjectDescriptor.model_validate(payload)
        except ValidationError as exc:
            raise ProvisioningError(
                f"Unexpected create response for project {name!r}", status=status, payload=payload
            ) from exc
        logger.info("Project created: id=%s name=%s region=%s", project.id, project.name, project.region_id)
        return project

    async def get_status(self, project_id: str) -> ProjectStatus:
        status, payload = await self._request(method="GET", path=f"/{quote(project_id, safe='')}/status")
        if status != HTTPStatus.OK:
            raise ProvisioningError(f"Failed to read status of project {project_id}", status=status, payload=payload)
        try:
            return ProjectStatus.model_validate(payload)
        except ValidationError as exc:
            raise ProvisioningError(
                f"Unexpected status response for project {project_id}", status=status, payload=payload
            ) from exc

    async def delete_project(self, project_id: str) -> None:
        """Irreversibly delete a project and all data within it."""

        status, payload = await self._request(method="DELETE", path=f"/{quote(project_id, safe='')}")
        if status != HTTPStatus.OK:
            raise ProvisioningError(f"Failed to delete project {project_id}", status=status, payload=payload)
        logger.info("Project deleted: id=%s", project_id)
