"""Errors raised by providers, the config loader and the sync engine."""


class GitHubError(RuntimeError):
    """Base class for failures talking to GitHub."""


class NotFoundError(GitHubError):
    """A project, team, repository or user does not exist (or is not visible)."""


class RemoteError(GitHubError):
    """GitHub answered a well-formed request with an error."""

    def __init__(self, message: str, status: int | None = None, errors: list[dict] | None = None) -> None:
        super().__init__(message)
        self.status = status
        self.errors = errors or []

    @classmethod
    def from_graphql(cls, errors: list[dict]) -> "RemoteError":
        # Mirrors how GitHub renders them: "TYPE: message", one per line
        lines = []
        for err in errors:
            message = err.get("message", "unknown error")
            lines.append(f"{err['type']}: {message}" if err.get("type") else message)
        return cls("\n".join(lines), errors=errors)


class TransportError(GitHubError):
    """The request could not be completed (DNS, connection, timeout)."""


class SyncCancelled(RuntimeError):
    """The run was cancelled before it finished."""


class ConfigError(ValueError):
    """The sync config file is missing or invalid."""
