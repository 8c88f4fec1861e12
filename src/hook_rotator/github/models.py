from pydantic import BaseModel


class HookConfig(BaseModel):
    # other config keys vary in type between hooks and are never read
    url: str | None = None


class Hook(BaseModel):
    id: int
    name: str = "web"
    active: bool = True
    events: list[str] = []
    config: HookConfig


class HookConfigUpdateRequest(BaseModel):
    url: str
