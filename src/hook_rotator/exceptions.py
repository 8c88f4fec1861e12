class UnrecoverableError(ValueError):
    """Base class for all errors that abort a rotation run."""

    pass


class ParseError(UnrecoverableError):
    """Raised when a webhook URL or repository remote has an unexpected shape."""

    pass


class BuildkiteAPIError(UnrecoverableError):
    """Raised when the Buildkite GraphQL API returns an error or an unexpected response."""

    pass


class DiscoveryError(UnrecoverableError):
    """Raised when the hooks of a GitHub repository cannot be listed."""

    def __init__(self, message: str, repository):
        super().__init__(message)
        self.repository = repository


class UpdatePermissionError(UnrecoverableError):
    """Raised when the test update of a hook fails before anything was rotated."""

    def __init__(self, message: str, pipeline, repository_hook):
        super().__init__(message)
        self.pipeline = pipeline
        self.repository_hook = repository_hook


class RotationError(UnrecoverableError):
    """Raised when Buildkite refuses to rotate a pipeline webhook."""

    def __init__(self, message: str, pipeline):
        super().__init__(message)
        self.pipeline = pipeline


class PropagationError(UnrecoverableError):
    """
    Raised when a GitHub hook could not be updated after the Buildkite webhook
    was already rotated. The unresolved hooks still deliver to the old URL.
    """

    def __init__(self, message: str, outcome):
        super().__init__(message)
        self.outcome = outcome

    @property
    def pipeline(self):
        return self.outcome.pipeline

    @property
    def new_webhook_url(self) -> str | None:
        return self.outcome.new_webhook_url

    @property
    def unresolved(self):
        return self.outcome.unresolved


class OperatorAbortError(UnrecoverableError):
    """Raised when the operator interrupts a confirmation prompt."""

    pass


class InvalidTransitionError(UnrecoverableError):
    """Raised when a pipeline is moved to a state that cannot follow its current one."""

    pass
