"""Tests for prsync.models."""

import pytest

from prsync.models import Author, Project, ProjectKey, PullRequestState, TeamRef


def test_pull_request_frozen(make_pr) -> None:
    pr = make_pr(1)
    with pytest.raises(Exception):  # ValidationError or TypeError depending on pydantic version
        pr.title = "changed"  # type: ignore[misc]


def test_key_ignores_state_and_title(make_pr) -> None:
    open_pr = make_pr(3, owner="org", repo="api")
    merged = make_pr(3, owner="org", repo="api", state=PullRequestState.MERGED, item_id="PVTI_1")
    assert open_pr.key == merged.key == ProjectKey("org", "api", 3)


def test_keys_differ_across_repositories(make_pr) -> None:
    assert make_pr(3, repo="api").key != make_pr(3, repo="web").key


def test_kind(make_pr) -> None:
    assert make_pr(1).kind == "PR"
    assert make_pr(1, draft=True).kind == "DRAFT"


def test_author_assigned(make_pr) -> None:
    assert make_pr(1, author="alice", assignees=["bob", "alice"]).is_author_assigned()
    assert not make_pr(1, author="alice", assignees=["bob"]).is_author_assigned()
    assert not make_pr(1, author="alice").is_author_assigned()


def test_linked_to_compares_project_ids(make_pr) -> None:
    board = Project(id="PVT_board", number=7, title="Team board")
    assert make_pr(1, projects=["PVT_other", "PVT_board"]).is_linked_to(board)
    assert not make_pr(1, projects=["PVT_other"]).is_linked_to(board)


def test_author_is_human() -> None:
    assert Author(login="alice").is_human
    assert not Author(login="dependabot", type="Bot").is_human
    assert not Author(login="ghost", type="").is_human


def test_team_ref_str() -> None:
    assert str(TeamRef("my-org", "backend")) == "my-org/backend"
