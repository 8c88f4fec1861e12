"""Command line entry point: ``hook-rotator`` or ``python -m hook_rotator``."""

import argparse
import asyncio
import logging
import sys
from typing import Any

import aiohttp
import pydantic
from rich.markup import escape

from hook_rotator.buildkite import Buildkite
from hook_rotator.config import Config
from hook_rotator.console import console, setup_logging
from hook_rotator.exceptions import PropagationError, UnrecoverableError
from hook_rotator.github.utils import make_client
from hook_rotator.rotation import Context, PipelineOutcome, PipelineState, Rotator

logger = logging.getLogger(__name__)

# flag destination -> config field
_OVERRIDES = {
    "buildkite_org": "BUILDKITE_ORG",
    "graphql_token": "BUILDKITE_GRAPHQL_TOKEN",
    "github_token": "GITHUB_TOKEN",
    "prompt": "PROMPT",
    "pipeline": "PIPELINE",
    "dry_run": "STERILE",
    "log_level": "OVERRIDE_LOGGING",
}


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="hook-rotator",
        description=(
            "Rotate Buildkite pipeline webhook urls and update the GitHub "
            "repository hooks that deliver to them. Every flag can also be "
            "given through the environment variable in brackets."
        ),
    )
    parser.add_argument(
        "--buildkite-org", help="The Buildkite organization [BUILDKITE_ORG]"
    )
    parser.add_argument(
        "--graphql-token",
        help="A Buildkite GraphQL API token [BUILDKITE_GRAPHQL_TOKEN]",
    )
    parser.add_argument(
        "--github-token",
        help="A GitHub token with the admin:repo_hook scope [GITHUB_TOKEN]",
    )
    parser.add_argument(
        "--prompt",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Whether to prompt before each rotate (default: yes) [PROMPT]",
    )
    parser.add_argument(
        "--pipeline", help="A specific pipeline slug to rotate [PIPELINE]"
    )
    parser.add_argument(
        "--dry-run",
        action="store_const",
        const=True,
        default=None,
        help="Show what would be rotated without changing anything [STERILE]",
    )
    parser.add_argument(
        "--log-level",
        type=str.upper,
        help="Logging level, e.g. DEBUG [OVERRIDE_LOGGING]",
    )
    return parser.parse_args(argv)


def load_config(args: argparse.Namespace) -> Config:
    overrides: dict[str, Any] = {}
    for dest, field in _OVERRIDES.items():
        value = getattr(args, dest)
        if value is not None:
            overrides[field] = value
    return Config(**overrides)


async def rotate(config: Config) -> list[PipelineOutcome]:
    async with aiohttp.ClientSession() as session:
        context = Context(
            gh=make_client(session, config),
            buildkite=Buildkite(session, config),
        )
        return await Rotator(context, config).run()


def report_partial_propagation(error: PropagationError, config: Config):
    console.print(f"[red]🚨 {escape(str(error))}[/red]")
    console.print(
        f"[red]Buildkite now delivers {escape(str(error.pipeline))} webhooks to "
        f"{escape(error.new_webhook_url or '')}, but these GitHub hooks still "
        "point at the old url:[/red]"
    )
    for repository_hook in error.unresolved:
        console.print(f"\t{config.GITHUB_URL}/{repository_hook.settings_path}")
    console.print(
        "Update them by hand, or run again to match them against the new url."
    )


def summarize(outcomes: list[PipelineOutcome]):
    done = sum(1 for o in outcomes if o.state == PipelineState.done)
    skipped = sum(1 for o in outcomes if o.state == PipelineState.skipped)
    logger.info(
        "Processed %d pipelines: %d rotated, %d skipped",
        len(outcomes),
        done,
        skipped,
    )


def main(argv: list[str] | None = None):
    args = parse_args(argv)

    try:
        config = load_config(args)
    except pydantic.ValidationError as e:
        console.print(f"[red]Invalid configuration[/red]\n{escape(str(e))}")
        sys.exit(2)

    setup_logging(config.OVERRIDE_LOGGING)
    if config.OVERRIDE_LOGGING == "DEBUG":
        config.print_config()

    try:
        outcomes = asyncio.run(rotate(config))
    except PropagationError as e:
        report_partial_propagation(e, config)
        sys.exit(1)
    except UnrecoverableError as e:
        console.print(f"[red]🚨 {escape(str(e))}[/red]")
        sys.exit(1)
    except KeyboardInterrupt:
        console.print("[red]Interrupted[/red]")
        sys.exit(130)

    summarize(outcomes)
