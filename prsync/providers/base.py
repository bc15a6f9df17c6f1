"""Abstract base class for the remote repository service."""

from abc import ABC, abstractmethod
from collections.abc import Iterator, Sequence

from prsync.models import Project, PullRequest, PullRequestState, User


class RepositoryService(ABC):
    @abstractmethod
    def get_project(self, owner: str, number: int) -> Project: ...

    @abstractmethod
    def list_project_pull_requests(self, owner: str, number: int) -> Iterator[PullRequest]: ...

    @abstractmethod
    def list_repository_pull_requests(
        self,
        owner: str,
        name: str,
        states: Sequence[PullRequestState],
    ) -> Iterator[PullRequest]: ...

    @abstractmethod
    def list_team_members(self, org: str, team: str) -> list[User]: ...

    @abstractmethod
    def list_user_organizations(self, login: str) -> list[str]: ...

    @abstractmethod
    def is_organization_member(self, login: str, org: str) -> bool: ...

    @abstractmethod
    def lookup_user(self, login: str) -> User: ...

    @abstractmethod
    def link_pull_request(self, project_id: str, pull_request_id: str) -> str: ...

    @abstractmethod
    def unlink_pull_request(self, project_id: str, item_id: str) -> None: ...

    @abstractmethod
    def assign_author(self, pull_request_id: str, user_id: str) -> None: ...

    def check_endpoint(self) -> None:
        """Fail fast if the API endpoint or credentials are unusable. No-op by default."""
