from hook_rotator.github.models import Hook
from hook_rotator.models import Pipeline, Repository, RepositoryHook
from hook_rotator.utils import parse_repository, webhook_token


class AsyncIterator:
    def __init__(self, items):
        self.items = list(items)

    def __aiter__(self):
        return self

    async def __anext__(self):
        if not self.items:
            raise StopAsyncIteration
        return self.items.pop(0)


def make_pipeline(
    slug: str,
    token: str,
    remote: str = "git@github.com:test_org/test_repo.git",
    org: str = "test_org",
) -> Pipeline:
    webhook_url = f"https://webhook.buildkite.com/deliver/{token}"
    return Pipeline(
        id=f"pipeline-{slug}",
        org=org,
        slug=slug,
        url=f"https://buildkite.com/{org}/{slug}",
        webhook_url=webhook_url,
        webhook_token=webhook_token(webhook_url),
        repository=parse_repository(remote),
    )


def hook_data(hook_id: int, url: str | None) -> dict:
    """A hook as returned by the GitHub REST API."""
    config = {"content_type": "json", "insecure_ssl": "0"}
    if url is not None:
        config["url"] = url
    return {
        "id": hook_id,
        "type": "Repository",
        "name": "web",
        "active": True,
        "events": ["push", "pull_request"],
        "config": config,
    }


def make_repository_hook(
    hook_id: int, url: str, full_name: str = "test_org/test_repo"
) -> RepositoryHook:
    org, name = full_name.split("/")
    return RepositoryHook(
        repository=Repository(
            org=org, name=name, remote=f"https://github.com/{full_name}.git"
        ),
        hook=Hook.model_validate(hook_data(hook_id, url)),
    )
