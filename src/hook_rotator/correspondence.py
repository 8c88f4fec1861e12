import logging
from typing import Iterable

from gidgethub.abc import GitHubAPI

from hook_rotator.github.models import Hook
from hook_rotator.github.utils import get_buildkite_hooks
from hook_rotator.models import Pipeline, Repository, RepositoryHook
from hook_rotator.utils import webhook_token

logger = logging.getLogger(__name__)


class Correspondence:
    """
    Which GitHub hooks deliver to which Buildkite webhook token.

    Built once from the full pipeline list before anything is rotated, and
    only read afterwards.
    """

    def __init__(self):
        self.matches: dict[str, list[RepositoryHook]] = {}
        self.repository_hooks: dict[str, list[Hook]] = {}
        self.orphans: dict[str, list[RepositoryHook]] = {}

    def __eq__(self, other) -> bool:
        if not isinstance(other, Correspondence):
            return NotImplemented
        return (
            self.matches == other.matches
            and self.repository_hooks == other.repository_hooks
            and self.orphans == other.orphans
        )

    def is_discovered(self, repository: Repository) -> bool:
        return repository.full_name in self.repository_hooks

    def add(self, repository: Repository, hooks: list[Hook]):
        for hook in hooks:
            # hooks were filtered on having a delivery url
            assert hook.config.url is not None
            token = webhook_token(hook.config.url)
            self.matches.setdefault(token, []).append(
                RepositoryHook(repository=repository, hook=hook)
            )
        self.repository_hooks[repository.full_name] = hooks

    def find_orphans(self, repository: Repository, known_tokens: set[str]):
        orphans = []
        for hook in self.repository_hooks.get(repository.full_name, []):
            assert hook.config.url is not None
            if webhook_token(hook.config.url) not in known_tokens:
                orphans.append(RepositoryHook(repository=repository, hook=hook))
        self.orphans[repository.full_name] = orphans

    def matches_for(self, pipeline: Pipeline) -> list[RepositoryHook]:
        return list(self.matches.get(pipeline.webhook_token, []))

    def orphans_for(self, pipeline: Pipeline) -> list[RepositoryHook]:
        return list(self.orphans.get(pipeline.repository.full_name, []))


async def build_correspondence(
    gh: GitHubAPI, pipelines: Iterable[Pipeline], hosts: Iterable[str]
) -> Correspondence:
    """
    Discover the Buildkite hooks of every repository behind ``pipelines``.

    Each repository is queried once, however many pipelines build it. Hooks
    whose token matches no pipeline are recorded as orphans of their repository.
    """
    pipelines = list(pipelines)
    hosts = list(hosts)
    correspondence = Correspondence()

    for pipeline in pipelines:
        repository = pipeline.repository
        if correspondence.is_discovered(repository):
            continue

        logger.info("Finding webhooks for %s", repository.full_name)
        hooks = await get_buildkite_hooks(gh, repository, hosts)
        correspondence.add(repository, hooks)

    known_tokens = {pipeline.webhook_token for pipeline in pipelines}
    for pipeline in pipelines:
        correspondence.find_orphans(pipeline.repository, known_tokens)

    logger.debug(
        "Discovered %d webhook tokens across %d repositories",
        len(correspondence.matches),
        len(correspondence.repository_hooks),
    )
    return correspondence
