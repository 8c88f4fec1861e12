import http
from unittest.mock import AsyncMock, MagicMock

import aiohttp
import gidgethub
import pytest

from hook_rotator.exceptions import DiscoveryError
from hook_rotator.github.models import Hook
import hook_rotator.github.utils as github
from hook_rotator.utils import parse_repository
from tests.utils import AsyncIterator, hook_data, make_repository_hook

HOSTS = ["webhook.buildbox.io", "webhook.buildkite.com"]

test_repository = parse_repository("git@github.com:test_org/test_repo.git")


@pytest.mark.asyncio
async def test_list_hooks():
    gh = AsyncMock()
    gh.getiter = MagicMock(
        return_value=AsyncIterator(
            [
                hook_data(1, "https://webhook.buildkite.com/deliver/abc"),
                hook_data(2, None),
            ]
        )
    )

    hooks = await github.list_hooks(gh, test_repository)

    gh.getiter.assert_called_once_with("/repos/test_org/test_repo/hooks")
    assert [hook.id for hook in hooks] == [1, 2]
    assert isinstance(hooks[0], Hook)
    assert hooks[0].config.url == "https://webhook.buildkite.com/deliver/abc"
    assert hooks[1].config.url is None


@pytest.mark.asyncio
async def test_get_buildkite_hooks_filters_by_host():
    gh = AsyncMock()
    gh.getiter = MagicMock(
        return_value=AsyncIterator(
            [
                hook_data(1, "https://webhook.buildkite.com/deliver/abc"),
                hook_data(2, "https://ci.example.com/hooks/github"),
                hook_data(3, "https://webhook.buildbox.io/github/def"),
                hook_data(4, None),
                hook_data(5, "https://example.com/?next=webhook.buildkite.com"),
                hook_data(6, "https://webhook.buildkite.com/github/ghi"),
            ]
        )
    )

    hooks = await github.get_buildkite_hooks(gh, test_repository, HOSTS)

    assert [hook.id for hook in hooks] == [1, 3, 6]


@pytest.mark.asyncio
async def test_get_buildkite_hooks_custom_hosts():
    gh = AsyncMock()
    gh.getiter = MagicMock(
        return_value=AsyncIterator(
            [
                hook_data(1, "https://webhook.buildkite.com/deliver/abc"),
                hook_data(2, "https://webhook.buildkite.example/deliver/def"),
            ]
        )
    )

    hooks = await github.get_buildkite_hooks(
        gh, test_repository, ["webhook.buildkite.example"]
    )

    assert [hook.id for hook in hooks] == [2]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "error",
    [
        gidgethub.BadRequest(http.HTTPStatus.NOT_FOUND),
        gidgethub.GitHubBroken(http.HTTPStatus.BAD_GATEWAY),
        aiohttp.ClientConnectionError("connection reset"),
        TimeoutError(),
    ],
)
async def test_get_buildkite_hooks_error(error):
    gh = AsyncMock()
    gh.getiter = MagicMock(side_effect=error)

    with pytest.raises(DiscoveryError) as excinfo:
        await github.get_buildkite_hooks(gh, test_repository, HOSTS)

    assert excinfo.value.repository == test_repository
    assert "test_org/test_repo" in str(excinfo.value)
    assert excinfo.value.__cause__ is error


@pytest.mark.asyncio
async def test_get_buildkite_hooks_numeric_config_values():
    hook = hook_data(1, "https://webhook.buildkite.com/deliver/aaa")
    hook["config"]["insecure_ssl"] = 0
    hook["config"]["content_type"] = "json"
    other = hook_data(2, "https://ci.example.com/hooks/github")
    other["config"]["insecure_ssl"] = 1
    gh = AsyncMock()
    gh.getiter = MagicMock(return_value=AsyncIterator([hook, other]))

    hooks = await github.get_buildkite_hooks(gh, test_repository, HOSTS)

    assert [hook.id for hook in hooks] == [1]
    assert hooks[0].config.url == "https://webhook.buildkite.com/deliver/aaa"


@pytest.mark.asyncio
async def test_update_hook_url():
    gh = AsyncMock()
    repository_hook = make_repository_hook(
        42, "https://webhook.buildkite.com/deliver/old"
    )

    await github.update_hook_url(
        gh, repository_hook, "https://webhook.buildkite.com/deliver/new"
    )

    gh.patch.assert_awaited_once_with(
        "/repos/test_org/test_repo/hooks/42/config",
        data={"url": "https://webhook.buildkite.com/deliver/new"},
    )


@pytest.mark.asyncio
async def test_update_hook_url_propagates_errors():
    gh = AsyncMock()
    gh.patch.side_effect = gidgethub.BadRequest(http.HTTPStatus.FORBIDDEN)
    repository_hook = make_repository_hook(
        42, "https://webhook.buildkite.com/deliver/old"
    )

    with pytest.raises(gidgethub.BadRequest):
        await github.update_hook_url(
            gh, repository_hook, "https://webhook.buildkite.com/deliver/new"
        )


@pytest.mark.asyncio
async def test_make_client(config):
    async with aiohttp.ClientSession() as session:
        gh = github.make_client(session, config)

    assert gh.oauth_token == "abc"
    assert gh.requester == "hook-rotator"
