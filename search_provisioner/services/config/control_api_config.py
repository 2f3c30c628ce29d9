from __future__ import annotations

import os
from dataclasses import dataclass
from typing import ClassVar, Mapping, Optional

from search_provisioner.services.config.errors import ConfigurationError


def _required(env: Mapping[str, str], name: str) -> str:
    value = (env.get(name) or "").strip()
    if not value:
        raise ConfigurationError(f"Missing required environment variable: {name}")
    return value


def _float(env: Mapping[str, str], name: str, default: float) -> float:
    raw = (env.get(name) or "").strip()
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError as exc:
        raise ConfigurationError(f"Invalid {name}; must be a number") from exc
    if value <= 0:
        raise ConfigurationError(f"Invalid {name}; must be greater than zero")
    return value


def _int(env: Mapping[str, str], name: str, default: Optional[int]) -> Optional[int]:
    raw = (env.get(name) or "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ConfigurationError(f"Invalid {name}; must be an integer") from exc
    if value <= 0:
        raise ConfigurationError(f"Invalid {name}; must be greater than zero")
    return value


@dataclass(frozen=True)
class ControlApiConfig:
    """Runtime configuration for the project lifecycle (control plane) API.

    `base_url` is the projects collection URL, e.g.
    "https://api.elastic-cloud.com/api/v1/serverless/projects/elasticsearch".
    """

    base_url: str
    api_key: str
    _DEFAULT_TIMEOUT_SECONDS: ClassVar[float] = 30.0
    timeout_seconds: float = _DEFAULT_TIMEOUT_SECONDS

    @staticmethod
    def from_env(env: Optional[Mapping[str, str]] = None) -> "ControlApiConfig":
        env = os.environ if env is None else env

        return ControlApiConfig(
            base_url=_required(env, "ELASTIC_API_URL").rstrip("/"),
            api_key=_required(env, "ELASTIC_API_KEY"),
            timeout_seconds=_float(env, "HTTP_TIMEOUT_SECONDS", ControlApiConfig._DEFAULT_TIMEOUT_SECONDS),
        )
