from __future__ import annotations

import enum
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Optional

from search_provisioner.services.config.control_api_config import (
    ControlApiConfig,
    _float,
    _int,
    _required,
)
from search_provisioner.services.config.errors import ConfigurationError
from search_provisioner.services.config.inference_config import InferenceConfig


class CleanupPolicy(str, enum.Enum):
    """What happens to a created project when a later step fails."""

    KEEP = "keep"
    DELETE = "delete"

    @staticmethod
    def parse(raw: str) -> "CleanupPolicy":
        try:
            return CleanupPolicy(raw.strip().lower())
        except ValueError as exc:
            choices = ", ".join(p.value for p in CleanupPolicy)
            raise ConfigurationError(f"Invalid CLEANUP_ON_FAILURE={raw!r}; expected one of: {choices}") from exc


@dataclass(frozen=True)
class ReadinessConfig:
    poll_interval_seconds: float = 5.0
    timeout_seconds: Optional[float] = 900.0
    max_attempts: Optional[int] = None


@dataclass(frozen=True)
class QueryConfig:
    field: str = "short_description.semantic"
    text: str = "punk rock"
    top_k: int = 1


@dataclass(frozen=True)
class WorkflowConfig:
    """Everything a single provisioning run needs, built once at startup.

    Nothing below the entry point reads process environment; this object is
    passed down instead.
    """

    project_name: str
    index_name: str
    input_path: Path
    control: ControlApiConfig
    inference: InferenceConfig
    region_id: str = "aws-us-east-1"
    optimized_for: str = "vector"
    bulk_batch_size: int = 500
    readiness: ReadinessConfig = field(default_factory=ReadinessConfig)
    query: QueryConfig = field(default_factory=QueryConfig)
    cleanup_on_failure: CleanupPolicy = CleanupPolicy.KEEP

    @staticmethod
    def from_env(env: Optional[Mapping[str, str]] = None) -> "WorkflowConfig":
        env = os.environ if env is None else env

        input_path = Path(_required(env, "FILEPATH")).expanduser()
        if not input_path.is_file():
            raise ConfigurationError(f"Input file not found: {input_path}")

        readiness = ReadinessConfig(
            poll_interval_seconds=_float(env, "READY_POLL_INTERVAL_SECONDS", ReadinessConfig.poll_interval_seconds),
            timeout_seconds=_float(env, "READY_TIMEOUT_SECONDS", 900.0),
            max_attempts=_int(env, "READY_MAX_ATTEMPTS", None),
        )

        query = QueryConfig(
            field=(env.get("QUERY_FIELD") or "").strip() or QueryConfig.field,
            text=(env.get("QUERY_TEXT") or "").strip() or QueryConfig.text,
            top_k=_int(env, "QUERY_TOP_K", QueryConfig.top_k) or QueryConfig.top_k,
        )

        return WorkflowConfig(
            project_name=_required(env, "PROJECT_NAME"),
            index_name=_required(env, "INDEXNAME"),
            input_path=input_path,
            control=ControlApiConfig.from_env(env),
            inference=InferenceConfig.from_env(env),
            region_id=(env.get("PROJECT_REGION") or "").strip() or "aws-us-east-1",
            optimized_for=(env.get("PROJECT_OPTIMIZED_FOR") or "").strip() or "vector",
            bulk_batch_size=_int(env, "BULK_BATCH_SIZE", 500) or 500,
            readiness=readiness,
            query=query,
            cleanup_on_failure=CleanupPolicy.parse(env.get("CLEANUP_ON_FAILURE") or CleanupPolicy.KEEP.value),
        )
