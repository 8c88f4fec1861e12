from pydantic import BaseModel, ConfigDict

from hook_rotator.github.models import Hook


class Repository(BaseModel):
    model_config = ConfigDict(frozen=True)

    org: str
    name: str
    remote: str

    @property
    def full_name(self) -> str:
        return f"{self.org}/{self.name}"

    def __str__(self) -> str:
        return self.full_name


class Pipeline(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    org: str
    slug: str
    url: str
    webhook_url: str
    webhook_token: str
    repository: Repository

    def __str__(self) -> str:
        return f"{self.org}/{self.slug}"


class RepositoryHook(BaseModel):
    repository: Repository
    hook: Hook

    @property
    def url(self) -> str | None:
        return self.hook.config.url

    @property
    def settings_path(self) -> str:
        """Path of the hook settings page, relative to the GitHub web host."""
        return f"{self.repository.full_name}/settings/hooks/{self.hook.id}"

    def __str__(self) -> str:
        return f"{self.repository.full_name}#{self.hook.id}"
