"""Shared pydantic models: the contract between providers, the engine and main.py."""

from enum import Enum
from typing import NamedTuple

from pydantic import BaseModel, ConfigDict

HUMAN_AUTHOR = "User"


class PullRequestState(str, Enum):
    OPEN = "OPEN"
    CLOSED = "CLOSED"
    MERGED = "MERGED"


class TeamRef(NamedTuple):
    org: str
    name: str  # team slug

    def __str__(self) -> str:
        return f"{self.org}/{self.name}"


class ProjectKey(NamedTuple):
    """Identity used to match a repository pull request against a board item."""

    owner: str
    repo: str
    number: int


class User(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = ""  # GraphQL node ID
    login: str


class Author(BaseModel):
    model_config = ConfigDict(frozen=True)

    login: str
    type: str = HUMAN_AUTHOR  # GraphQL __typename: User, Bot, Mannequin, ...

    @property
    def is_human(self) -> bool:
        return self.type == HUMAN_AUTHOR


class RepositoryRef(BaseModel):
    model_config = ConfigDict(frozen=True)

    owner: str
    name: str

    def __str__(self) -> str:
        return f"{self.owner}/{self.name}"


class ProjectRef(BaseModel):
    """A project a pull request is already linked to."""

    model_config = ConfigDict(frozen=True)

    id: str
    number: int


class Project(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    number: int
    title: str


class PullRequest(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str  # GraphQL node ID
    number: int
    title: str
    url: str = ""
    is_draft: bool = False
    state: PullRequestState = PullRequestState.OPEN
    author: Author
    repository: RepositoryRef
    project_item_id: str | None = None  # set only for pull requests read from a board
    assignees: list[User] = []
    projects: list[ProjectRef] = []

    @property
    def key(self) -> ProjectKey:
        return ProjectKey(self.repository.owner, self.repository.name, self.number)

    @property
    def kind(self) -> str:
        return "DRAFT" if self.is_draft else "PR"

    def is_author_assigned(self) -> bool:
        return any(a.login == self.author.login for a in self.assignees)

    def is_linked_to(self, project: Project) -> bool:
        return any(p.id == project.id for p in self.projects)
