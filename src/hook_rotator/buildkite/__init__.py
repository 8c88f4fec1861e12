import logging
from typing import Any

import aiohttp
import pydantic

from hook_rotator.buildkite.models import (
    GITHUB_REPOSITORY_PROVIDER,
    ListPipelinesData,
    RotateWebhookData,
)
from hook_rotator.config import Config
from hook_rotator.exceptions import BuildkiteAPIError
from hook_rotator.models import Pipeline
from hook_rotator.utils import parse_repository, webhook_token

logger = logging.getLogger(__name__)

LIST_PIPELINES_QUERY = """
query ListPipelines($org: ID!, $after: String) {
  organization(slug: $org) {
    slug
    pipelines(first: 500, after: $after) {
      pageInfo {
        hasNextPage
        endCursor
      }
      edges {
        node {
          id
          slug
          url
          repository {
            url
            provider {
              __typename
              webhookUrl
            }
          }
        }
      }
    }
  }
}
"""

ROTATE_WEBHOOK_MUTATION = """
mutation RotateWebhook($input: PipelineRotateWebhookURLInput!) {
  pipelineRotateWebhookURL(input: $input) {
    pipeline {
      webhookURL
    }
  }
}
"""


class Buildkite:
    def __init__(self, session: aiohttp.ClientSession, config: Config):
        self.session = session
        self._headers = {"Authorization": f"Bearer {config.BUILDKITE_GRAPHQL_TOKEN}"}
        self.config = config

    async def query(self, query: str, variables: dict[str, Any]) -> dict[str, Any]:
        try:
            async with self.session.post(
                self.config.BUILDKITE_GRAPHQL_URL,
                json={"query": query, "variables": variables},
                headers=self._headers,
            ) as resp:
                if resp.status != 200:
                    body = await resp.text()
                    raise BuildkiteAPIError(f"{resp.status} - {body}")
                result = await resp.json()
        except (aiohttp.ClientError, TimeoutError) as e:
            raise BuildkiteAPIError(f"Request to Buildkite failed: {e}") from e

        errors = result.get("errors")
        if errors:
            messages = "; ".join(error.get("message", str(error)) for error in errors)
            raise BuildkiteAPIError(f"GraphQL error: {messages}")

        return result.get("data") or {}

    async def list_pipelines(self, pipeline_filter: str | None = None) -> list[Pipeline]:
        """
        List the pipelines of the configured organization that build from GitHub.

        Pipelines with any other repository provider are skipped. A remote or
        webhook url that cannot be parsed aborts the listing.
        """
        org = self.config.BUILDKITE_ORG
        pipelines = []
        cursor = None

        while True:
            logger.debug("Listing pipelines for %s after cursor %s", org, cursor)
            data = await self.query(LIST_PIPELINES_QUERY, {"org": org, "after": cursor})
            try:
                parsed = ListPipelinesData.model_validate(data)
            except pydantic.ValidationError as e:
                raise BuildkiteAPIError(f"Failed to parse GraphQL response: {e}") from e

            if parsed.organization is None:
                raise BuildkiteAPIError(f"Organization {org!r} not found")

            connection = parsed.organization.pipelines
            for edge in connection.edges:
                node = edge.node
                if pipeline_filter and node.slug != pipeline_filter:
                    continue
                if (
                    node.repository is None
                    or node.repository.provider.type_name != GITHUB_REPOSITORY_PROVIDER
                    or not node.repository.provider.webhook_url
                ):
                    logger.debug("Skipping %s, it does not build from GitHub", node.slug)
                    continue

                webhook_url = node.repository.provider.webhook_url
                pipelines.append(
                    Pipeline(
                        id=node.id,
                        org=org,
                        slug=node.slug,
                        url=node.url,
                        webhook_url=webhook_url,
                        webhook_token=webhook_token(webhook_url),
                        repository=parse_repository(node.repository.url),
                    )
                )

            if (
                not connection.page_info.has_next_page
                or connection.page_info.end_cursor is None
            ):
                break
            cursor = connection.page_info.end_cursor

        logger.debug("Found %d GitHub pipelines in %s", len(pipelines), org)
        return pipelines

    async def rotate_webhook(self, pipeline_id: str) -> str:
        """Replace the webhook secret of a pipeline and return the new delivery url."""
        data = await self.query(ROTATE_WEBHOOK_MUTATION, {"input": {"id": pipeline_id}})
        try:
            parsed = RotateWebhookData.model_validate(data)
        except pydantic.ValidationError as e:
            raise BuildkiteAPIError(f"Failed to parse GraphQL response: {e}") from e

        payload = parsed.pipeline_rotate_webhook_url
        if payload is None or not payload.pipeline.webhook_url:
            raise BuildkiteAPIError("Rotation did not return a new webhook url")
        return payload.pipeline.webhook_url
