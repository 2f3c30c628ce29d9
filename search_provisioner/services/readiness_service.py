from __future__ import annotations

import asyncio
import enum
import logging
import time
from typing import Awaitable, Callable, Optional, Protocol

from search_provisioner.models.project import ProjectStatus
from search_provisioner.services.config import ReadinessConfig


logger = logging.getLogger(__name__)


class ReadinessOutcome(str, enum.Enum):
    READY = "ready"
    TIMED_OUT = "timed_out"
    CANCELLED = "cancelled"


class StatusSource(Protocol):
    async def get_status(self, project_id: str) -> ProjectStatus: ...


class ReadinessService:
    """Waits for a freshly created project to reach the ready phase.

    The loop sleeps a constant interval and then issues exactly one status
    check, so the number of checks always equals the number of elapsed
    intervals. It stops on the ready phase, on the optional deadline or attempt
    budget, or when the caller sets the cancellation event.

    Errors from the status call propagate unchanged.
    """

    def __init__(
        self,
        projects: StatusSource,
        *,
        config: ReadinessConfig,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._projects = projects
        self._config = config
        self._sleep = sleep
        self._clock = clock

    async def await_ready(self, project_id: str, *, cancel: Optional[asyncio.Event] = None) -> ReadinessOutcome:
        interval = self._config.poll_interval_seconds
        max_attempts = self._config.max_attempts
        deadline: Optional[float] = None
        if self._config.timeout_seconds is not None:
            deadline = self._clock() + self._config.timeout_seconds

        attempts = 0
        last_phase: Optional[str] = None

        while True:
            if cancel is not None and cancel.is_set():
                logger.warning("Readiness wait cancelled (project=%s, attempts=%d)", project_id, attempts)
                return ReadinessOutcome.CANCELLED
            if deadline is not None and self._clock() >= deadline:
                logger.warning(
                    "Timed out waiting for project to be ready (project=%s, attempts=%d, last_phase=%s)",
                    project_id,
                    attempts,
                    last_phase,
                )
                return ReadinessOutcome.TIMED_OUT
            if max_attempts is not None and attempts >= max_attempts:
                logger.warning(
                    "Gave up waiting for project after %d status checks (project=%s, last_phase=%s)",
                    attempts,
                    project_id,
                    last_phase,
                )
                return ReadinessOutcome.TIMED_OUT

            await self._sleep(interval)

            if cancel is not None and cancel.is_set():
                logger.warning("Readiness wait cancelled (project=%s, attempts=%d)", project_id, attempts)
                return ReadinessOutcome.CANCELLED

            status = await self._projects.get_status(project_id)
            attempts += 1

            if status.phase != last_phase:
                logger.info("Project %s phase: %s", project_id, status.phase)
                last_phase = status.phase

            if status.is_ready:
                return ReadinessOutcome.READY
