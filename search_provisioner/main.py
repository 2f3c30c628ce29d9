from __future__ import annotations

import argparse
import asyncio
import dataclasses
import logging
import sys
from typing import Optional, Sequence

import aiohttp
from dotenv import load_dotenv

from search_provisioner.models.workflow import WorkflowResult
from search_provisioner.services.config import CleanupPolicy, ConfigurationError, WorkflowConfig
from search_provisioner.services.dependencies import get_workflow_service


logger = logging.getLogger(__name__)


def _ensure_logging() -> None:
    formatter = logging.Formatter("%(levelname)s: %(message)s")
    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
    else:
        root.setLevel(logging.INFO)
        for handler in root.handlers:
            handler.setFormatter(formatter)
    logging.getLogger("aiohttp").setLevel(logging.WARNING)


def _parse_args(argv: Optional[Sequence[str]]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="search-provisioner",
        description="Provision a serverless search project, load a dataset, run a semantic query, then delete it.",
    )
    parser.add_argument("--query", help="Query text (overrides QUERY_TEXT)")
    parser.add_argument("--field", help="Semantic field to query (overrides QUERY_FIELD)")
    parser.add_argument("--top-k", type=int, help="Number of hits to return (overrides QUERY_TOP_K)")
    parser.add_argument(
        "--cleanup-on-failure",
        choices=[p.value for p in CleanupPolicy],
        help="Delete or keep the project when a later step fails (overrides CLEANUP_ON_FAILURE)",
    )
    return parser.parse_args(argv)


def _apply_overrides(config: WorkflowConfig, args: argparse.Namespace) -> WorkflowConfig:
    query = config.query
    if args.query:
        query = dataclasses.replace(query, text=args.query)
    if args.field:
        query = dataclasses.replace(query, field=args.field)
    if args.top_k is not None:
        if args.top_k <= 0:
            raise ConfigurationError("--top-k must be greater than zero")
        query = dataclasses.replace(query, top_k=args.top_k)

    cleanup = config.cleanup_on_failure
    if args.cleanup_on_failure:
        cleanup = CleanupPolicy.parse(args.cleanup_on_failure)

    return dataclasses.replace(config, query=query, cleanup_on_failure=cleanup)


async def run(config: WorkflowConfig) -> WorkflowResult:
    async with aiohttp.ClientSession() as session:
        workflow = get_workflow_service(config, session=session)
        return await workflow.run()


def main(argv: Optional[Sequence[str]] = None) -> int:
    _ensure_logging()
    args = _parse_args(argv)

    try:
        load_dotenv(override=True)
        config = _apply_overrides(WorkflowConfig.from_env(), args)
        result = asyncio.run(run(config))
    except Exception:
        logger.exception("Provisioning run failed")
        return 1

    logger.info(
        "Run complete: project=%s state=%s hits=%d",
        result.project_id,
        result.state.value if result.state else None,
        len(result.hits),
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
