"""Shared test fixtures."""

import io
from collections.abc import Callable, Iterator, Sequence

import pytest
from rich.console import Console

from prsync.config import SyncConfig, parse_config
from prsync.errors import NotFoundError
from prsync.models import (
    Author,
    Project,
    ProjectRef,
    PullRequest,
    PullRequestState,
    RepositoryRef,
    TeamRef,
    User,
)
from prsync.providers.base import RepositoryService


class FakeService(RepositoryService):
    """In-memory RepositoryService that records every call.

    Put an exception in ``failures[method_name]`` to make the next call to that
    method raise it (once).
    """

    def __init__(self) -> None:
        self.project = Project(id="PVT_board", number=7, title="Team board")
        self.board: list[PullRequest] = []
        self.repos: dict[tuple[str, str], list[PullRequest]] = {}
        self.teams: dict[TeamRef, list[User]] = {}
        self.user_orgs: dict[str, list[str]] = {}
        self.org_members: dict[str, set[str]] = {}
        self.users: dict[str, str] = {}
        self.failures: dict[str, Exception] = {}
        self.calls: list[tuple] = []

    def _record(self, name: str, *args: object) -> None:
        self.calls.append((name, *args))
        if name in self.failures:
            raise self.failures.pop(name)

    def count(self, name: str) -> int:
        return sum(1 for call in self.calls if call[0] == name)

    def mutations(self) -> list[tuple]:
        names = ("link_pull_request", "unlink_pull_request", "assign_author")
        return [call for call in self.calls if call[0] in names]

    def get_project(self, owner: str, number: int) -> Project:
        self._record("get_project", owner, number)
        return self.project

    def list_project_pull_requests(self, owner: str, number: int) -> Iterator[PullRequest]:
        self._record("list_project_pull_requests", owner, number)
        return iter(list(self.board))

    def list_repository_pull_requests(
        self,
        owner: str,
        name: str,
        states: Sequence[PullRequestState],
    ) -> Iterator[PullRequest]:
        self._record("list_repository_pull_requests", owner, name, tuple(states))
        return iter([pr for pr in self.repos.get((owner, name), []) if pr.state in states])

    def list_team_members(self, org: str, team: str) -> list[User]:
        self._record("list_team_members", org, team)
        ref = TeamRef(org, team)
        if ref not in self.teams:
            raise NotFoundError(f"Team {ref} not found")
        return list(self.teams[ref])

    def list_user_organizations(self, login: str) -> list[str]:
        self._record("list_user_organizations", login)
        return list(self.user_orgs.get(login, []))

    def is_organization_member(self, login: str, org: str) -> bool:
        self._record("is_organization_member", login, org)
        return login in self.org_members.get(org, set())

    def lookup_user(self, login: str) -> User:
        self._record("lookup_user", login)
        if login not in self.users:
            raise NotFoundError(f"User {login} not found")
        return User(id=self.users[login], login=login)

    def link_pull_request(self, project_id: str, pull_request_id: str) -> str:
        self._record("link_pull_request", project_id, pull_request_id)
        return f"PVTI_{pull_request_id}"

    def unlink_pull_request(self, project_id: str, item_id: str) -> None:
        self._record("unlink_pull_request", project_id, item_id)

    def assign_author(self, pull_request_id: str, user_id: str) -> None:
        self._record("assign_author", pull_request_id, user_id)


@pytest.fixture
def fake_service() -> FakeService:
    return FakeService()


@pytest.fixture
def console() -> Console:
    return Console(file=io.StringIO(), width=200, highlight=False, emoji=False)


@pytest.fixture
def make_pr() -> Callable[..., PullRequest]:
    def _make(
        number: int,
        *,
        owner: str = "org",
        repo: str = "repoA",
        author: str = "alice",
        author_type: str = "User",
        draft: bool = False,
        state: PullRequestState = PullRequestState.OPEN,
        item_id: str | None = None,
        assignees: Sequence[str] = (),
        projects: Sequence[str] = (),
    ) -> PullRequest:
        return PullRequest(
            id=f"PR_{owner}_{repo}_{number}",
            number=number,
            title=f"Change #{number}",
            url=f"https://github.com/{owner}/{repo}/pull/{number}",
            is_draft=draft,
            state=state,
            author=Author(login=author, type=author_type),
            repository=RepositoryRef(owner=owner, name=repo),
            project_item_id=item_id,
            assignees=[User(id=f"U_{login}", login=login) for login in assignees],
            projects=[ProjectRef(id=project_id, number=1) for project_id in projects],
        )

    return _make


@pytest.fixture
def make_config() -> Callable[..., SyncConfig]:
    def _make(**overrides: object) -> SyncConfig:
        raw: dict = {"project": "org/7", "repos": ["org/repoA"]}
        raw.update(overrides)
        return parse_config(raw)

    return _make
