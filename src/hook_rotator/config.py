import logging
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class Config(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    BUILDKITE_ORG: str
    BUILDKITE_GRAPHQL_TOKEN: str
    GITHUB_TOKEN: str

    PROMPT: bool = True
    PIPELINE: str | None = None

    BUILDKITE_GRAPHQL_URL: str = "https://graphql.buildkite.com/v1"
    GITHUB_API_URL: str = "https://api.github.com"
    GITHUB_URL: str = "https://github.com"

    # Hosts that have served Buildkite webhook deliveries over the years
    WEBHOOK_HOSTS: list[str] = ["webhook.buildbox.io", "webhook.buildkite.com"]

    OVERRIDE_LOGGING: Literal[
        "CRITICAL",
        "FATAL",
        "ERROR",
        "WARNING",
        "WARN",
        "INFO",
        "DEBUG",
        "NOTSET",
    ] = "INFO"

    STERILE: bool = False

    def print_config(self):
        """Print configuration values with sensitive attributes masked"""
        sensitive_attrs = {
            "BUILDKITE_GRAPHQL_TOKEN",
            "GITHUB_TOKEN",
        }

        logger.info("=== Hook Rotator Configuration ===")
        for field_name, field_value in self.model_dump().items():
            if field_name in sensitive_attrs:
                logger.info(f"{field_name}: ***")
            else:
                logger.info(f"{field_name}: {field_value}")
        logger.info("==================================")
