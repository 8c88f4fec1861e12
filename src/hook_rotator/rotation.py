import logging
from dataclasses import dataclass
from enum import StrEnum

import aiohttp
import gidgethub
from gidgethub.abc import GitHubAPI
from pydantic import BaseModel
from rich.console import Console
from rich.markup import escape

from hook_rotator import console as default_console
from hook_rotator.buildkite import Buildkite
from hook_rotator.config import Config
from hook_rotator.correspondence import Correspondence, build_correspondence
from hook_rotator.exceptions import (
    BuildkiteAPIError,
    InvalidTransitionError,
    PropagationError,
    RotationError,
    UpdatePermissionError,
)
from hook_rotator.github.utils import update_hook_url
from hook_rotator.models import Pipeline, RepositoryHook

logger = logging.getLogger(__name__)

# failures of a single hook update, including gidgethub timeouts
UPDATE_ERRORS = (gidgethub.GitHubException, aiohttp.ClientError, TimeoutError)


class PipelineState(StrEnum):
    listed = "listed"
    matched = "matched"
    unmatched = "unmatched"
    confirmed = "confirmed"
    skipped = "skipped"
    verified = "verified"
    rotated = "rotated"
    propagated = "propagated"
    done = "done"
    partially_propagated = "partially_propagated"


TRANSITIONS: dict[PipelineState, set[PipelineState]] = {
    PipelineState.listed: {PipelineState.matched, PipelineState.unmatched},
    PipelineState.matched: {PipelineState.confirmed, PipelineState.skipped},
    PipelineState.unmatched: {PipelineState.confirmed, PipelineState.skipped},
    # rotated directly only when there is no hook to verify against
    PipelineState.confirmed: {
        PipelineState.verified,
        PipelineState.rotated,
        PipelineState.skipped,
    },
    PipelineState.verified: {PipelineState.rotated},
    PipelineState.rotated: {
        PipelineState.propagated,
        PipelineState.partially_propagated,
    },
    PipelineState.propagated: {PipelineState.done},
}


class PipelineOutcome(BaseModel):
    pipeline: Pipeline
    state: PipelineState = PipelineState.listed
    matches: list[RepositoryHook] = []
    orphans: list[RepositoryHook] = []
    new_webhook_url: str | None = None
    updated: list[RepositoryHook] = []
    unresolved: list[RepositoryHook] = []

    def transition(self, state: PipelineState):
        if state not in TRANSITIONS.get(self.state, set()):
            raise InvalidTransitionError(
                f"Pipeline {self.pipeline} cannot go from {self.state} to {state}"
            )
        logger.debug("Pipeline %s: %s => %s", self.pipeline, self.state, state)
        self.state = state


@dataclass
class Context:
    gh: GitHubAPI
    buildkite: Buildkite


class Rotator:
    def __init__(
        self,
        context: Context,
        config: Config,
        console: Console = default_console.console,
        confirm: default_console.Confirm = default_console.confirm,
    ):
        self.context = context
        self.config = config
        self.console = console
        self.confirm = confirm

    def github_url(self, path: str) -> str:
        return f"{self.config.GITHUB_URL}/{path}"

    async def run(self) -> list[PipelineOutcome]:
        """
        Rotate the webhook of every GitHub pipeline in the organization.

        All repositories are discovered before the first rotation, so that
        rotating one pipeline cannot change what is matched for the next one.
        Any error aborts the whole run.
        """
        logger.info(
            "Building a map of GitHub repositories with Buildkite webhooks for %s",
            self.config.BUILDKITE_ORG,
        )

        pipelines = await self.context.buildkite.list_pipelines(self.config.PIPELINE)
        correspondence = await build_correspondence(
            self.context.gh, pipelines, self.config.WEBHOOK_HOSTS
        )

        self.console.print()

        outcomes = []
        for pipeline in pipelines:
            outcomes.append(await self.process(pipeline, correspondence))
        return outcomes

    async def process(
        self, pipeline: Pipeline, correspondence: Correspondence
    ) -> PipelineOutcome:
        outcome = PipelineOutcome(
            pipeline=pipeline,
            matches=correspondence.matches_for(pipeline),
            orphans=correspondence.orphans_for(pipeline),
        )
        outcome.transition(
            PipelineState.matched if outcome.matches else PipelineState.unmatched
        )
        self.show(outcome)

        if self.config.PROMPT:
            self.console.print()
            if not await self.confirm("Rotate webhook?", True):
                outcome.transition(PipelineState.skipped)
                return outcome

        outcome.transition(PipelineState.confirmed)

        if self.config.STERILE:
            logger.info(
                "Sterile mode: would rotate %s and update %d hooks",
                pipeline,
                len(outcome.matches),
            )
            outcome.transition(PipelineState.skipped)
            return outcome

        self.console.print()

        if outcome.matches:
            await self.verify(outcome)

        await self.rotate(outcome)
        await self.propagate(outcome)
        outcome.transition(PipelineState.done)

        self.console.print("\n[green]Updated webhook ✅[/green]\n")
        return outcome

    def show(self, outcome: PipelineOutcome):
        pipeline = outcome.pipeline
        out = self.console.print

        out(f"Pipeline: {escape(pipeline.url)}")
        out(f"\tCurrent Webhook: {escape(pipeline.webhook_url)}")

        if outcome.matches:
            out("\tMatching GitHub Repositories:")
        else:
            out("[yellow]\t⚠️  No GitHub repositories with matching hooks[/yellow]")

        for match in outcome.matches:
            out(f"\t\t{self.github_url(match.repository.full_name)}")
            out(f"\t\t\tUpdate {self.github_url(match.settings_path)}")

        if outcome.orphans:
            out("[yellow]\t⚠️  Unknown Buildkite hooks found[/yellow]")
            for orphan in outcome.orphans:
                out(f"\t\t{self.github_url(orphan.repository.full_name)}")
                out(f"\t\t\t{self.github_url(orphan.settings_path)}")
                out(f"\t\t\t\t{escape(orphan.url or '')}")

    async def verify(self, outcome: PipelineOutcome):
        """Rewrite the first matched hook with its current url to check we may edit it."""
        pipeline = outcome.pipeline
        first = outcome.matches[0]
        try:
            await update_hook_url(self.context.gh, first, pipeline.webhook_url)
        except UPDATE_ERRORS as e:
            raise UpdatePermissionError(
                f"Can't update repository webhooks for {pipeline} "
                f"({first}), permissions perhaps? {e}",
                pipeline=pipeline,
                repository_hook=first,
            ) from e

        logger.info("Successfully tested updating GitHub webhook %s", first)
        outcome.transition(PipelineState.verified)

    async def rotate(self, outcome: PipelineOutcome):
        pipeline = outcome.pipeline
        try:
            new_webhook_url = await self.context.buildkite.rotate_webhook(pipeline.id)
        except BuildkiteAPIError as e:
            raise RotationError(
                f"Error rotating Buildkite webhook for {pipeline}: {e}",
                pipeline=pipeline,
            ) from e

        logger.info("New Buildkite webhook is %s", new_webhook_url)
        outcome.new_webhook_url = new_webhook_url
        outcome.transition(PipelineState.rotated)

    async def propagate(self, outcome: PipelineOutcome):
        assert outcome.new_webhook_url is not None
        for index, match in enumerate(outcome.matches):
            logger.info("Updating %s", self.github_url(match.settings_path))
            try:
                await update_hook_url(self.context.gh, match, outcome.new_webhook_url)
            except UPDATE_ERRORS as e:
                outcome.unresolved = outcome.matches[index:]
                outcome.transition(PipelineState.partially_propagated)
                raise PropagationError(
                    f"Error updating GitHub webhook {match} for {outcome.pipeline}: {e}",
                    outcome=outcome,
                ) from e
            outcome.updated.append(match)

        outcome.transition(PipelineState.propagated)
