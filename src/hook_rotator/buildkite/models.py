from pydantic import BaseModel, Field

GITHUB_REPOSITORY_PROVIDER = "RepositoryProviderGithub"


class RepositoryProvider(BaseModel):
    type_name: str = Field(alias="__typename")
    webhook_url: str | None = Field(default=None, alias="webhookUrl")


class PipelineRepository(BaseModel):
    url: str
    provider: RepositoryProvider


class PipelineNode(BaseModel):
    id: str
    slug: str
    url: str
    repository: PipelineRepository | None = None


class PipelineEdge(BaseModel):
    node: PipelineNode


class PageInfo(BaseModel):
    has_next_page: bool = Field(alias="hasNextPage")
    end_cursor: str | None = Field(default=None, alias="endCursor")


class PipelineConnection(BaseModel):
    page_info: PageInfo = Field(alias="pageInfo")
    edges: list[PipelineEdge]


class Organization(BaseModel):
    slug: str
    pipelines: PipelineConnection


class ListPipelinesData(BaseModel):
    organization: Organization | None = None


class RotatedPipeline(BaseModel):
    webhook_url: str = Field(alias="webhookURL")


class PipelineRotateWebhookURLPayload(BaseModel):
    pipeline: RotatedPipeline


class RotateWebhookData(BaseModel):
    pipeline_rotate_webhook_url: PipelineRotateWebhookURLPayload | None = Field(
        default=None, alias="pipelineRotateWebhookURL"
    )
