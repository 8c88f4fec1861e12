import io

import pytest
from rich.console import Console

from hook_rotator.config import Config


@pytest.fixture
def config():
    return Config(
        BUILDKITE_ORG="test_org",
        BUILDKITE_GRAPHQL_TOKEN="abc",
        GITHUB_TOKEN="abc",
        PROMPT=True,
        PIPELINE=None,
        OVERRIDE_LOGGING="DEBUG",
        STERILE=False,
    )


@pytest.fixture
def console():
    return Console(file=io.StringIO(), width=200, color_system=None, highlight=False)
