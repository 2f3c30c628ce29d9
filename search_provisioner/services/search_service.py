from __future__ import annotations

import asyncio
import base64
import json
import logging
from dataclasses import dataclass, field
from http import HTTPStatus
from typing import Any, ClassVar, Iterable, Optional, Union
from urllib.parse import quote

import aiohttp
from tqdm import tqdm

from search_provisioner.models.project import ProjectDescriptor
from search_provisioner.models.search import BulkLoadResult, DataRecord, DocumentOutcome, SearchHit
from search_provisioner.services.http_errors import ServiceHTTPError, decode_payload


logger = logging.getLogger(__name__)


class SearchEngineError(ServiceHTTPError):
    """A search or inference call failed or returned a non-success status."""


@dataclass(frozen=True)
class SearchConfig:
    """Connection details for the data plane of one ready project."""

    endpoint: str
    username: str
    password: str = field(repr=False)
    _DEFAULT_TIMEOUT_SECONDS: ClassVar[float] = 30.0
    timeout_seconds: float = _DEFAULT_TIMEOUT_SECONDS

    @staticmethod
    def from_project(project: ProjectDescriptor, *, timeout_seconds: float = _DEFAULT_TIMEOUT_SECONDS) -> "SearchConfig":
        endpoint = project.endpoints.elasticsearch
        if not endpoint:
            raise SearchEngineError(f"Project {project.id} has no search endpoint")
        if project.credentials is None:
            raise SearchEngineError(f"Project {project.id} has no credentials")

        return SearchConfig(
            endpoint=endpoint.rstrip("/"),
            username=project.credentials.username,
            password=project.credentials.password,
            timeout_seconds=timeout_seconds,
        )

    @property
    def authorization(self) -> str:
        token = base64.b64encode(f"{self.username}:{self.password}".encode("utf-8")).decode("ascii")
        return f"Basic {token}"


class SearchService:
    """Thin data-plane client: inference endpoints, indexes, bulk load and search.

    Pre-existence is never checked. Creating an index or inference endpoint
    that already exists surfaces as a `SearchEngineError`.
    """

    def __init__(self, config: SearchConfig, *, session: aiohttp.ClientSession) -> None:
        self._config = config
        self._session = session

    async def _request(
        self,
        *,
        method: str,
        path: str,
        body: Optional[bytes] = None,
        headers: Optional[dict[str, str]] = None,
    ) -> tuple[int, Any]:
        if not path.startswith("/"):
            path = "/" + path

        url = f"{self._config.endpoint}{path}"

        effective_headers: dict[str, str] = {
            "Accept": "application/json",
            "Authorization": self._config.authorization,
        }
        if headers:
            effective_headers.update(headers)
        if body is not None:
            effective_headers.setdefault("Content-Type", "application/json")

        try:
            async with self._session.request(
                method.upper(),
                url,
                data=body,
                headers=effective_headers,
                timeout=aiohttp.ClientTimeout(total=self._config.timeout_seconds),
            ) as resp:
                raw = await resp.read()
                return (resp.status, decode_payload(raw))
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            raise SearchEngineError(f"Search request failed ({method} {path})") from exc

    async def _json_request(self, *, method: str, path: str, body: Optional[dict[str, Any]] = None) -> Any:
        data = json.dumps(body).encode("utf-8") if body is not None else None
        status, payload = await self._request(method=method, path=path, body=data)
        if not _is_success(status):
            raise SearchEngineError(f"{method} {path} failed", status=status, payload=payload)
        return payload

    @staticmethod
    def _validate_index_name(index_name: str) -> None:
        if not index_name or not index_name.strip():
            raise ValueError("index_name must be provided")

    async def create_inference_endpoint(
        self,
        *,
        task_type: str,
        inference_id: str,
        inference_config: dict[str, Any],
    ) -> Any:
        """Declare a named embedding endpoint (PUT /_inference/{task_type}/{id})."""

        if not inference_id or not inference_id.strip():
            raise ValueError("inference_id must be provided")

        path = f"/_inference/{quote(task_type, safe='')}/{quote(inference_id, safe='')}"
        payload = await self._json_request(method="PUT", path=path, body=inference_config)
        logger.info("Inference endpoint created: %s (%s)", inference_id, task_type)
        return payload

    async def create_index(
        self,
        *,
        index_name: str,
        mappings: dict[str, Any],
        settings: Optional[dict[str, Any]] = None,
    ) -> Any:
        """Create an index with the provided mapping.

        Raises:
            SearchEngineError: if the index already exists or the mapping is rejected.
        """

        self._validate_index_name(index_name)

        body: dict[str, Any] = {"mappings": mappings}
        if settings:
            body["settings"] = settings

        payload = await self._json_request(method="PUT", path=f"/{_index_path(index_name)}", body=body)
        logger.info("Index created: %s", index_name)
        return payload

    async def refresh(self, *, index_name: str) -> None:
        self._validate_index_name(index_name)
        await self._json_request(method="POST", path=f"/{_index_path(index_name)}/_refresh")

    async def bulk_load(
        self,
        records: Iterable[Union[DataRecord, DocumentOutcome]],
        *,
        index_name: str,
        batch_size: int = 500,
        refresh_on_completion: bool = True,
    ) -> BulkLoadResult:
        """Index every record into `index_name` using batched `_bulk` requests.

        Documents the engine rejects are recorded as failed outcomes; they never
        raise. Only a failure of a whole batch request raises `SearchEngineError`.

        Returns:
            A `BulkLoadResult` with aggregate counts and one outcome per input line.
        """

        self._validate_index_name(index_name)
        if batch_size <= 0:
            raise ValueError("batch_size must be greater than zero")

        result = BulkLoadResult(index_name=index_name)
        batch: list[DataRecord] = []

        with tqdm(desc=f"Indexing into {index_name}", unit="doc") as progress:
            for item in records:
                if isinstance(item, DocumentOutcome):
                    result.record(item)
                    continue

                batch.append(item)
                if len(batch) >= batch_size:
                    await self._send_batch(batch, index_name=index_name, result=result)
                    progress.update(len(batch))
                    batch = []

            if batch:
                await self._send_batch(batch, index_name=index_name, result=result)
                progress.update(len(batch))

        if refresh_on_completion:
            await self.refresh(index_name=index_name)
            result.refreshed = True

        logger.info(
            "%d documents indexed (index=%s, total=%d, failed=%d)",
            result.successful,
            index_name,
            result.total,
            result.failed,
        )
        return result

    async def _send_batch(self, batch: list[DataRecord], *, index_name: str, result: BulkLoadResult) -> None:
        action = json.dumps({"index": {"_index": index_name}})
        lines: list[str] = []
        for record in batch:
            lines.append(action)
            lines.append(json.dumps(record.document))
        body = ("\n".join(lines) + "\n").encode("utf-8")

        status, payload = await self._request(
            method="POST",
            path="/_bulk",
            body=body,
            headers={"Content-Type": "application/x-ndjson"},
        )
        if not _is_success(status):
            raise SearchEngineError(f"Bulk request failed (index={index_name})", status=status, payload=payload)

        items = payload.get("items") if isinstance(payload, dict) else None
        items = items if isinstance(items, list) else []

        for i, record in enumerate(batch):
            if i >= len(items):
                result.record(
                    DocumentOutcome(line_number=record.line_number, succeeded=False, reason="no bulk item result")
                )
                continue
            result.record(_outcome_from_item(record, items[i]))

    async def search(self, *, index_name: str, field: str, text: str, top_k: int) -> list[SearchHit]:
        """Semantic query against `field`; hits come back in the engine's ranking order."""

        self._validate_index_name(index_name)

        body = {
            "size": top_k,
            "query": {"semantic": {"field": field, "query": text}},
        }
        payload = await self._json_request(method="POST", path=f"/{_index_path(index_name)}/_search", body=body)
        return SearchHit.from_response(payload if isinstance(payload, dict) else {})


def _outcome_from_item(record: DataRecord, item: Any) -> DocumentOutcome:
    # Each item is keyed by its action, e.g. {"index": {"_id": ..., "status": 201}}
    action = item.get("index") if isinstance(item, dict) else None
    if not isinstance(action, dict) and isinstance(item, dict) and item:
        action = next(iter(item.values()))
    if not isinstance(action, dict):
        return DocumentOutcome(line_number=record.line_number, succeeded=False, reason="malformed bulk item result")

    status = action.get("status")
    error = action.get("error")
    succeeded = error is None and isinstance(status, int) and _is_success(status)

    reason: Optional[str] = None
    if isinstance(error, dict):
        reason = error.get("reason") or error.get("type")
    elif error is not None:
        reason = str(error)

    return DocumentOutcome(
        line_number=record.line_number,
        succeeded=succeeded,
        document_id=action.get("_id"),
        status=status if isinstance(status, int) else None,
        reason=reason,
    )


def _is_success(status: int) -> bool:
    return HTTPStatus.OK <= status < HTTPStatus.MULTIPLE_CHOICES


def _index_path(index_name: str) -> str:
    return quote(index_name, safe="")
