"""Sync config file: target project, repositories, author roster and pull-request rules.

The file is YAML (``.yaml``/``.yml``) or TOML (``.toml``)::

    project: my-org/7
    repos: [my-org/api, my-org/web]
    authors:
      include: {teams: [my-org/backend]}
      exclude: {users: [dependabot-preview]}
    pullRequests:
      add: {assignAuthor: true}
      delete: {states: [merged, closed]}
"""

from collections.abc import Mapping
from pathlib import Path
from typing import NamedTuple
from urllib.parse import urlparse

import tomlkit
import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator
from tomlkit.exceptions import TOMLKitError

from prsync.errors import ConfigError
from prsync.models import PullRequestState, RepositoryRef, TeamRef

DEFAULT_CONFIG_PATH = Path("config.yaml")
DEFAULT_GITHUB_URL = "https://api.github.com"


class BoardRef(NamedTuple):
    owner: str  # organization login
    number: int

    def __str__(self) -> str:
        return f"{self.owner}/{self.number}"


def _split_pair(value: object, what: str) -> tuple[str, str]:
    owner, sep, name = str(value).partition("/")
    if not sep or not owner or not name:
        raise ValueError(f"invalid {what}: {value}")
    return owner, name


def _parse_states(value: object, where: str) -> list[PullRequestState]:
    states = []
    for raw in value or []:
        try:
            states.append(PullRequestState(str(raw).upper()))
        except ValueError:
            raise ValueError(f"invalid pullRequests.{where} state: {raw}") from None
    return states


class _Model(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")


class GitHubConfig(_Model):
    url: str = DEFAULT_GITHUB_URL

    @field_validator("url", mode="before")
    @classmethod
    def _check_url(cls, value: object) -> str:
        url = str(value or "").strip().rstrip("/")
        if not url:
            return DEFAULT_GITHUB_URL
        parsed = urlparse(url)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValueError(f"invalid GitHub URL: {value}")
        return url


class AuthorRules(_Model):
    users: list[str] = []
    teams: list[TeamRef] = []
    orgs: list[str] = []

    @field_validator("users", "orgs", mode="before")
    @classmethod
    def _none_is_empty(cls, value: object) -> object:
        return value or []

    @field_validator("teams", mode="before")
    @classmethod
    def _parse_teams(cls, value: object) -> list[TeamRef]:
        return [v if isinstance(v, TeamRef) else TeamRef(*_split_pair(v, "team")) for v in value or []]

    @property
    def empty(self) -> bool:
        return not (self.users or self.teams or self.orgs)


class AuthorsConfig(_Model):
    include: AuthorRules = AuthorRules()
    exclude: AuthorRules = AuthorRules()

    @property
    def empty(self) -> bool:
        return self.include.empty and self.exclude.empty

    @model_validator(mode="after")
    def _no_overlap(self) -> "AuthorsConfig":
        for what, included, excluded in (
            ("user", self.include.users, self.exclude.users),
            ("team", self.include.teams, self.exclude.teams),
            ("organization", self.include.orgs, self.exclude.orgs),
        ):
            for value in included:
                if value in excluded:
                    raise ValueError(f"can't include and exclude the same {what}: {value}")
        return self


class AddRules(_Model):
    states: list[PullRequestState] = [PullRequestState.OPEN]
    assign_author: bool = Field(default=False, alias="assignAuthor")
    drafts: bool = False

    @field_validator("states", mode="before")
    @classmethod
    def _parse(cls, value: object) -> list[PullRequestState]:
        # Only open pull requests are added unless told otherwise
        return _parse_states(value, "add") or [PullRequestState.OPEN]


class DeleteRules(_Model):
    states: list[PullRequestState] = []
    drafts: bool = False
    all_authors: bool = Field(default=False, alias="allAuthors")

    @field_validator("states", mode="before")
    @classmethod
    def _parse(cls, value: object) -> list[PullRequestState]:
        return _parse_states(value, "delete")

    @property
    def enabled(self) -> bool:
        return bool(self.states) or self.drafts


class PullRequestRules(_Model):
    add: AddRules = AddRules()
    delete: DeleteRules = DeleteRules()

    @model_validator(mode="after")
    def _no_overlap(self) -> "PullRequestRules":
        for state in self.delete.states:
            if state in self.add.states:
                raise ValueError(f"can't add and delete pull requests in {state.value} state")
        return self


class SyncConfig(_Model):
    github: GitHubConfig = GitHubConfig()
    project: BoardRef
    repos: list[RepositoryRef]
    authors: AuthorsConfig = AuthorsConfig()
    pull_requests: PullRequestRules = Field(default=PullRequestRules(), alias="pullRequests")

    @field_validator("github", "authors", "pull_requests", mode="before")
    @classmethod
    def _none_is_default(cls, value: object) -> object:
        return {} if value is None else value

    @field_validator("project", mode="before")
    @classmethod
    def _parse_project(cls, value: object) -> BoardRef:
        if isinstance(value, BoardRef):
            return value
        owner, number = _split_pair(value, "project")
        if not number.isdigit() or int(number) == 0:
            raise ValueError(f"invalid project number: {value}")
        return BoardRef(owner, int(number))

    @field_validator("repos", mode="before")
    @classmethod
    def _parse_repos(cls, value: object) -> list[RepositoryRef]:
        repos = []
        for repo in value or []:
            if isinstance(repo, RepositoryRef):
                repos.append(repo)
                continue
            owner, name = _split_pair(repo, "repository")
            repos.append(RepositoryRef(owner=owner, name=name))
        if not repos:
            raise ValueError("no repositories specified")
        return repos


def _format_validation_error(exc: ValidationError) -> str:
    lines = []
    for err in exc.errors():
        where = ".".join(str(part) for part in err["loc"])
        message = err["msg"].removeprefix("Value error, ")
        lines.append(f"{where}: {message}" if where else message)
    return "\n".join(lines)


def _decode(text: str, path: Path) -> object:
    if path.suffix == ".toml":
        try:
            return tomlkit.parse(text).unwrap()
        except TOMLKitError as exc:
            raise ConfigError(f"error parsing config {path}: {exc}") from exc
    try:
        return yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"error parsing config {path}: {exc}") from exc


def parse_config(data: object) -> SyncConfig:
    """Validate an already-decoded config document."""
    if not isinstance(data, Mapping):
        raise ConfigError("config must be a mapping of settings")
    try:
        return SyncConfig.model_validate(dict(data))
    except ValidationError as exc:
        raise ConfigError(_format_validation_error(exc)) from exc


def load_config(path: Path = DEFAULT_CONFIG_PATH) -> SyncConfig:
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"error reading config {path}: {exc}") from exc
    return parse_config(_decode(text, path))
