import logging
from typing import Iterable

import aiohttp
import gidgethub
import pydantic
from gidgethub import aiohttp as gh_aiohttp
from gidgethub.abc import GitHubAPI

from hook_rotator.config import Config
from hook_rotator.exceptions import DiscoveryError
from hook_rotator.github.models import Hook, HookConfigUpdateRequest
from hook_rotator.models import Repository, RepositoryHook
from hook_rotator.utils import is_webhook_host

logger = logging.getLogger(__name__)


def make_client(session: aiohttp.ClientSession, config: Config) -> GitHubAPI:
    # The token needs the admin:repo_hook scope to list and edit hooks
    return gh_aiohttp.GitHubAPI(
        session,
        "hook-rotator",
        oauth_token=config.GITHUB_TOKEN,
        base_url=config.GITHUB_API_URL,
    )


async def list_hooks(gh: GitHubAPI, repository: Repository) -> list[Hook]:
    hooks = []
    async for item in gh.getiter(f"/repos/{repository.full_name}/hooks"):
        hooks.append(Hook.model_validate(item))
    return hooks


async def get_buildkite_hooks(
    gh: GitHubAPI, repository: Repository, hosts: Iterable[str]
) -> list[Hook]:
    """
    List the hooks of a repository that deliver to Buildkite.

    Args:
        gh: Authenticated GitHub API client
        repository: Repository to list the hooks of
        hosts: Webhook delivery hosts that belong to Buildkite

    Returns:
        Hooks whose delivery url points at one of ``hosts``, in API order

    Raises:
        DiscoveryError: If GitHub could not be queried
    """
    hosts = list(hosts)
    try:
        hooks = await list_hooks(gh, repository)
    except (
        gidgethub.GitHubException,
        aiohttp.ClientError,
        TimeoutError,
        pydantic.ValidationError,
    ) as e:
        raise DiscoveryError(
            f"Error getting webhooks for {repository.full_name}: {e}",
            repository=repository,
        ) from e

    logger.debug("Found %d hooks on %s", len(hooks), repository.full_name)

    buildkite_hooks = [
        hook for hook in hooks if is_webhook_host(hook.config.url, hosts)
    ]

    logger.debug(
        "%d of them deliver to Buildkite on %s",
        len(buildkite_hooks),
        repository.full_name,
    )
    return buildkite_hooks


async def update_hook_url(gh: GitHubAPI, repository_hook: RepositoryHook, url: str):
    """Point a hook at a new delivery url, leaving the rest of its config untouched."""
    # https://docs.github.com/en/rest/repos/webhooks#update-a-webhook-configuration-for-a-repository
    logger.debug("Updating hook %s to %s", repository_hook, url)
    await gh.patch(
        f"/repos/{repository_hook.repository.full_name}/hooks/{repository_hook.hook.id}/config",
        data=HookConfigUpdateRequest(url=url).model_dump(),
    )
