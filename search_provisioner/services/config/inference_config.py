from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Mapping, Optional

from search_provisioner.services.config.control_api_config import _required


@dataclass(frozen=True)
class InferenceConfig:
    """Azure OpenAI deployment backing the embedding inference endpoint."""

    inference_id: str
    api_key: str = field(repr=False)
    resource_name: str
    deployment_id: str
    api_version: str
    service: str = "azureopenai"
    task_type: str = "text_embedding"

    @staticmethod
    def from_env(env: Optional[Mapping[str, str]] = None) -> "InferenceConfig":
        env = os.environ if env is None else env

        return InferenceConfig(
            inference_id=_required(env, "INFERENCE_ID"),
            api_key=_required(env, "AZURE_OPENAI_API_KEY"),
            resource_name=_required(env, "AZURE_OPENAI_RESOURCE_NAME"),
            deployment_id=_required(env, "AZURE_OPENAI_DEPLOYMENT_ID"),
            api_version=_required(env, "AZURE_OPENAI_API_VERSION"),
        )
