import re
from typing import Iterable

from yarl import URL

from hook_rotator.exceptions import ParseError
from hook_rotator.models import Repository

# scp-like syntax, e.g. git@github.com:org/name.git
_SCP_REMOTE = re.compile(r"^(?:(?P<user>[^@/:]+)@)?(?P<host>[^@/:]+):(?P<path>[^/].*)$")


def _parse_url(raw: str) -> URL:
    try:
        return URL(raw)
    except (ValueError, TypeError) as e:
        raise ParseError(f"Failed to parse url {raw!r}: {e}") from e


def webhook_token(webhook_url: str) -> str:
    """
    Extract the token from a Buildkite webhook delivery URL.

    Only the last path segment is kept, since the delivery host and prefix
    changed over time while the token stayed the same:

        https://webhook.buildbox.io/github/<token>
        https://webhook.buildkite.com/github/<token>
        https://webhook.buildkite.com/deliver/<token>
    """
    url = _parse_url(webhook_url)
    if not url.is_absolute() or not url.host:
        raise ParseError(f"Webhook url {webhook_url!r} is not an absolute url")

    token = url.path.rstrip("/").rsplit("/", 1)[-1]
    if not token:
        raise ParseError(f"Webhook url {webhook_url!r} has no token")
    return token


def is_webhook_host(webhook_url: str | None, hosts: Iterable[str]) -> bool:
    if not webhook_url:
        return False
    try:
        url = URL(webhook_url)
    except (ValueError, TypeError):
        return False
    return url.host is not None and url.host.lower() in {h.lower() for h in hosts}


def normalize_remote(remote: str) -> str:
    if "://" not in remote:
        m = _SCP_REMOTE.match(remote)
        if m is not None:
            user = f"{m.group('user')}@" if m.group("user") else ""
            return f"ssh://{user}{m.group('host')}/{m.group('path')}"
    return remote


def parse_repository(remote: str) -> Repository:
    """Parse an ssh or https git remote into the owning org and repository name."""
    url = _parse_url(normalize_remote(remote))

    path = url.path.strip("/").removesuffix(".git")
    parts = path.split("/", 1)

    if len(parts) < 2 or not all(parts):
        raise ParseError(f"Failed to parse remote {remote!r}")

    return Repository(org=parts[0], name=parts[1], remote=remote)
