"""Configuration package (Facade).

Re-exports the public config types so callers import from a single, stable
path instead of the module that happens to define each one:

	from search_provisioner.services.config import WorkflowConfig

Only the entry point builds these from the environment. Everything else
receives an already-built value.
"""

from search_provisioner.services.config.control_api_config import ControlApiConfig
from search_provisioner.services.config.errors import ConfigurationError
from search_provisioner.services.config.inference_config import InferenceConfig
from search_provisioner.services.config.workflow_config import (
	CleanupPolicy,
	QueryConfig,
	ReadinessConfig,
	WorkflowConfig,
)

__all__ = [
	"CleanupPolicy",
	"ConfigurationError",
	"ControlApiConfig",
	"InferenceConfig",
	"QueryConfig",
	"ReadinessConfig",
	"WorkflowConfig",
]
