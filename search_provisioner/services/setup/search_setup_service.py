from __future__ import annotations

import logging
from typing import Any

from search_provisioner.services.config import InferenceConfig
from search_provisioner.services.search_service import SearchService


logger = logging.getLogger(__name__)


class SearchSetupService:
    """Provisioning helper for the data plane of a ready project.

    Owns the static news-article index mapping and the embedding inference
    endpoint it references. The inference endpoint must exist before the
    mapping that names it, so callers run `configure_inference` first.
    """

    def __init__(self, *, search: SearchService, inference: InferenceConfig) -> None:
        self._search = search
        self._inference = inference

    @staticmethod
    def _semantic_text_field(*, inference_id: str) -> dict[str, object]:
        return {
            "type": "text",
            "fields": {
                "semantic": {"type": "semantic_text", "inference_id": inference_id},
            },
        }

    @staticmethod
    def news_mapping(*, inference_id: str) -> dict[str, object]:
        return {
            "properties": {
                "link": {"type": "text"},
                "headline": SearchSetupService._semantic_text_field(inference_id=inference_id),
                "category": {
                    "type": "text",
                    "fields": {"keyword": {"type": "keyword"}},
                },
                "short_description": SearchSetupService._semantic_text_field(inference_id=inference_id),
                "authors": {"type": "text"},
                "date": {"type": "date"},
            }
        }

    @staticmethod
    def inference_body(inference: InferenceConfig) -> dict[str, Any]:
        return {
            "service": inference.service,
            "service_settings": {
                "api_key": inference.api_key,
                "resource_name": inference.resource_name,
                "deployment_id": inference.deployment_id,
                "api_version": inference.api_version,
            },
        }

    async def configure_inference(self) -> None:
        await self._search.create_inference_endpoint(
            task_type=self._inference.task_type,
            inference_id=self._inference.inference_id,
            inference_config=self.inference_body(self._inference),
        )

    async def configure_schema(self, *, index_name: str) -> None:
        await self._search.create_index(
            index_name=index_name,
            mappings=self.news_mapping(inference_id=self._inference.inference_id),
        )
