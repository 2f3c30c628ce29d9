"""Shared fixtures: in-process fakes of the control API and the search engine."""

from __future__ import annotations

import base64
import json
import uuid
from pathlib import Path
from typing import Any, Optional

import aiohttp
import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer

from search_provisioner.services.config import (
    ControlApiConfig,
    InferenceConfig,
    ReadinessConfig,
    WorkflowConfig,
)

CONTROL_API_KEY = "test-control-key"
SEARCH_USER = "admin"
SEARCH_PASSWORD = "s3cret"
PROJECTS_PATH = "/api/v1/serverless/projects/elasticsearch"


class FakeControlApi:
    """Project lifecycle API that hands out phases from a script."""

    def __init__(self) -> None:
        self.url = ""
        self.search_url = "http://search.invalid"
        self.phases: list[str] = ["initialized"]
        self.create_status = 201
        self.delete_status = 200
        self.projects: dict[str, dict[str, Any]] = {}
        self.calls: list[tuple[str, str]] = []
        self.create_bodies: list[dict[str, Any]] = []

    @property
    def base_url(self) -> str:
        return f"{self.url}{PROJECTS_PATH}"

    def _authorized(self, request: web.Request) -> bool:
        return request.headers.get("Authorization") == f"ApiKey {CONTROL_API_KEY}"

    async def _create(self, request: web.Request) -> web.Response:
        self.calls.append(("POST", request.path))
        if not self._authorized(request):
            return web.json_response({"errors": [{"code": "root.unauthorized"}]}, status=401)

        body = await request.json()
        self.create_bodies.append(body)
        if self.create_status != 201:
            return web.json_response({"errors": [{"message": "quota exceeded"}]}, status=self.create_status)

        project_id = uuid.uuid4().hex
        project = {
            "id": project_id,
            "name": body["name"],
            "alias": f"{body['name']}-{project_id[:6]}",
            "region_id": body["region_id"],
            "optimized_for": body["optimized_for"],
            "cloud_id": f"{body['name']}:abc123",
            "type": "elasticsearch",
            "endpoints": {"elasticsearch": self.search_url, "kibana": "http://kibana.invalid"},
            "credentials": {"username": SEARCH_USER, "password": SEARCH_PASSWORD},
        }
        self.projects[project_id] = project
        return web.json_response(project, status=201)

    async def _status(self, request: web.Request) -> web.Response:
        self.calls.append(("GET", request.path))
        if not self._authorized(request):
            return web.json_response({"errors": []}, status=401)
        if request.match_info["project_id"] not in self.projects:
            return web.json_response({"errors": [{"code": "project.not_found"}]}, status=404)

        phase = self.phases.pop(0) if len(self.phases) > 1 else self.phases[0]
        return web.json_response({"phase": phase})

    async def _delete(self, request: web.Request) -> web.Response:
        self.calls.append(("DELETE", request.path))
        if not self._authorized(request):
            return web.json_response({"errors": []}, status=401)
        if self.delete_status != 200:
            return web.json_response({"errors": [{"message": "busy"}]}, status=self.delete_status)
        self.projects.pop(request.match_info["project_id"], None)
        return web.json_response({})

    def build_app(self) -> web.Application:
        app = web.Application()
        app.router.add_post(PROJECTS_PATH, self._create)
        app.router.add_get(PROJECTS_PATH + "/{project_id}/status", self._status)
        app.router.add_delete(PROJECTS_PATH + "/{project_id}", self._delete)
        return app


class FakeSearchEngine:
    """Search engine data plane with substring-based "semantic" ranking.

    Indexed documents only become searchable after a refresh. A document
    carrying `"reject": true` is refused by the bulk endpoint. `bulk_status`
    fails whole bulk requests and `bulk_item_limit` truncates their item lists.
    """

    def __init__(self) -> None:
        self.url = ""
        self.indexes: dict[str, dict[str, Any]] = {}
        self.inference: dict[str, dict[str, Any]] = {}
        self.pending: dict[str, list[dict[str, Any]]] = {}
        self.visible: dict[str, list[dict[str, Any]]] = {}
        self.bulk_requests = 0
        self.refreshes: list[str] = []
        self.searches: list[dict[str, Any]] = []
        self.bulk_status = 200
        self.bulk_item_limit: Optional[int] = None
        self.paths: list[str] = []

    def _authorized(self, request: web.Request) -> bool:
        token = base64.b64encode(f"{SEARCH_USER}:{SEARCH_PASSWORD}".encode("utf-8")).decode("ascii")
        expected = f"Basic {token}"
        return request.headers.get("Authorization") == expected

    @web.middleware
    async def _auth(self, request: web.Request, handler: Any) -> web.StreamResponse:
        self.paths.append(request.raw_path)
        if not self._authorized(request):
            return web.json_response({"error": {"type": "security_exception"}}, status=401)
        return await handler(request)

    async def _put_inference(self, request: web.Request) -> web.Response:
        inference_id = request.match_info["inference_id"]
        if inference_id in self.inference:
            return web.json_response(
                {"error": {"type": "resource_already_exists_exception", "reason": inference_id}}, status=400
            )
        body = await request.json()
        self.inference[inference_id] = {"task_type": request.match_info["task_type"], **body}
        return web.json_response({"inference_id": inference_id, "task_type": request.match_info["task_type"]})

    async def _put_index(self, request: web.Request) -> web.Response:
        index = request.match_info["index"]
        if index in self.indexes:
            return web.json_response(
                {"error": {"type": "resource_already_exists_exception", "reason": f"index [{index}] already exists"}},
                status=400,
            )
        self.indexes[index] = await request.json()
        return web.json_response({"acknowledged": True, "shards_acknowledged": True, "index": index})

    async def _bulk(self, request: web.Request) -> web.Response:
        self.bulk_requests += 1
        if self.bulk_status != 200:
            return web.json_response({"error": {"type": "es_rejected_execution_exception"}}, status=self.bulk_status)
        lines = [line for line in (await request.text()).splitlines() if line.strip()]
        items = []
        for action_line, doc_line in zip(lines[0::2], lines[1::2]):
            index = json.loads(action_line)["index"]["_index"]
            doc = json.loads(doc_line)
            doc_id = uuid.uuid4().hex
            if doc.get("reject"):
                items.append(
                    {
                        "index": {
                            "_index": index,
                            "_id": doc_id,
                            "status": 400,
                            "error": {"type": "document_parsing_exception", "reason": "rejected by test"},
                        }
                    }
                )
                continue
            self.pending.setdefault(index, []).append({"_id": doc_id, "_source": doc})
            items.append({"index": {"_index": index, "_id": doc_id, "status": 201, "result": "created"}})

        errors = any("error" in item["index"] for item in items)
        if self.bulk_item_limit is not None:
            items = items[: self.bulk_item_limit]
        return web.json_response({"took": 1, "errors": errors, "items": items})

    async def _refresh(self, request: web.Request) -> web.Response:
        index = request.match_info["index"]
        self.refreshes.append(index)
        self.visible.setdefault(index, []).extend(self.pending.pop(index, []))
        return web.json_response({"_shards": {"total": 1, "successful": 1, "failed": 0}})

    async def _search(self, request: web.Request) -> web.Response:
        index = request.match_info["index"]
        body = await request.json()
        self.searches.append(body)

        semantic = body["query"]["semantic"]
        source_field = semantic["field"].split(".")[0]
        needle = semantic["query"].lower()

        scored = []
        for doc in self.visible.get(index, []):
            value = str(doc["_source"].get(source_field, "")).lower()
            score = 1.0 if needle in value else 0.1
            scored.append((score, doc))
        scored.sort(key=lambda pair: pair[0], reverse=True)

        hits = [
            {"_index": index, "_id": doc["_id"], "_score": score, "_source": doc["_source"]}
            for score, doc in scored[: body.get("size", 10)]
        ]
        return web.json_response({"hits": {"total": {"value": len(scored)}, "hits": hits}})

    def build_app(self) -> web.Application:
        app = web.Application(middlewares=[self._auth])
        app.router.add_put("/_inference/{task_type}/{inference_id}", self._put_inference)
        app.router.add_post("/_bulk", self._bulk)
        app.router.add_post("/{index}/_refresh", self._refresh)
        app.router.add_post("/{index}/_search", self._search)
        app.router.add_put("/{index}", self._put_index)
        return app


async def _start(app: web.Application) -> tuple[TestServer, str]:
    server = TestServer(app)
    await server.start_server()
    return server, str(server.make_url("/")).rstrip("/")


@pytest.fixture
async def search_engine():
    engine = FakeSearchEngine()
    server, engine.url = await _start(engine.build_app())
    yield engine
    await server.close()


@pytest.fixture
async def control_api(search_engine):
    api = FakeControlApi()
    api.search_url = search_engine.url
    server, api.url = await _start(api.build_app())
    yield api
    await server.close()


@pytest.fixture
async def http_session():
    async with aiohttp.ClientSession() as session:
        yield session


@pytest.fixture
def news_file(tmp_path: Path) -> Path:
    path = tmp_path / "news.ndjson"
    path.write_text(
        '{"headline":"A","short_description":"x"}\n{"headline":"B","short_description":"y"}\n',
        encoding="utf-8",
    )
    return path


def make_config(
    *,
    input_path: Path,
    control_url: str = "http://control.invalid",
    readiness: Optional[ReadinessConfig] = None,
    **overrides: Any,
) -> WorkflowConfig:
    values: dict[str, Any] = dict(
        project_name="semantic-demo",
        index_name="news",
        input_path=input_path,
        control=ControlApiConfig(base_url=control_url, api_key=CONTROL_API_KEY, timeout_seconds=5.0),
        inference=InferenceConfig(
            inference_id="azure-embeddings",
            api_key="azure-key",
            resource_name="my-resource",
            deployment_id="text-embedding-3-small",
            api_version="2024-06-01",
        ),
        readiness=readiness or ReadinessConfig(poll_interval_seconds=0.01, timeout_seconds=5.0),
    )
    values.update(overrides)
    return WorkflowConfig(**values)
