"""Reconcile a project board with the pull requests of the author roster.

A run reads the board once, then makes two sequential passes over it:

* add: walk every configured repository's pull requests (state-filtered by
  GitHub, then draft, bot and roster filtered here) and link the ones the
  board does not have yet, optionally assigning their author;
* delete: unlink board items whose pull request is a draft or reached one of
  the configured removal states.

Mutations are printed but not sent in dry-run mode. Nothing is retried: the
first remote failure ends the run.
"""

import threading
import time
from collections.abc import Iterator

from pydantic import BaseModel
from rich.console import Console
from rich.markup import escape

from prsync.authors import Authors
from prsync.config import SyncConfig
from prsync.errors import SyncCancelled
from prsync.models import Project, ProjectKey, PullRequest, RepositoryRef
from prsync.providers.base import RepositoryService

default_console = Console(highlight=False, emoji=False)


class Summary(BaseModel):
    """Counts reported at the end of a run. Informational only."""

    board: int = 0  # pull requests on the board when the run started
    inspected: int = 0
    added: int = 0
    deleted: int = 0
    elapsed: float = 0.0


def describe(pr: PullRequest) -> str:
    return escape(f"{pr.url} {pr.author.login} {pr.title} {pr.state.value} {pr.kind}")


class Synchronizer:
    def __init__(
        self,
        service: RepositoryService,
        config: SyncConfig,
        authors: Authors,
        *,
        dry_run: bool = False,
        verbose: bool = False,
        console: Console | None = None,
        cancel: threading.Event | None = None,
    ) -> None:
        self._service = service
        self._config = config
        self._authors = authors
        self._dry_run = dry_run
        self._verbose = verbose
        self._console = console or default_console
        self._cancel = cancel
        self.summary = Summary()

    def _log(self, message: str) -> None:
        if self._verbose:
            self._console.print(message)

    def _checkpoint(self) -> None:
        if self._cancel is not None and self._cancel.is_set():
            raise SyncCancelled("sync cancelled")

    def fetch_project(self) -> Project:
        board = self._config.project
        self._checkpoint()
        return self._service.get_project(board.owner, board.number)

    def fetch_board(self) -> dict[ProjectKey, PullRequest]:
        """Return every pull request on the board, keyed by (owner, repo, number)."""
        self._log("Fetching project info and pull requests")
        board_ref = self._config.project

        self._checkpoint()
        board: dict[ProjectKey, PullRequest] = {}
        for pr in self._service.list_project_pull_requests(board_ref.owner, board_ref.number):
            board[pr.key] = pr
            self._checkpoint()
        self.summary.board = len(board)

        if self._verbose:
            repo = None
            for key in sorted(board):
                if (key.owner, key.repo) != repo:
                    repo = (key.owner, key.repo)
                    self._console.print(f"  - {escape(key.owner)}/{escape(key.repo)}")
                self._console.print(f"    - {describe(board[key])}")

        return board

    def candidates(self, repo: RepositoryRef) -> Iterator[PullRequest]:
        """Yield the repository's pull requests that qualify for the board."""
        rules = self._config.pull_requests.add

        self._checkpoint()
        for pr in self._service.list_repository_pull_requests(repo.owner, repo.name, rules.states):
            self._checkpoint()
            self.summary.inspected += 1

            if pr.is_draft and not rules.drafts:
                continue
            # Bots never qualify, whatever the roster says about their login
            if not pr.author.is_human:
                continue
            if not self._authors.resolve(pr.author.login):
                continue

            yield pr

    def add_new(self, project: Project, board: dict[ProjectKey, PullRequest]) -> int:
        """Link qualifying pull requests missing from the board. Returns how many."""
        rules = self._config.pull_requests.add
        added: set[ProjectKey] = set()

        self._console.print("Checking for pull requests to add:")
        for repo in self._config.repos:
            self._console.print(f"  - {escape(str(repo))}")
            for pr in self.candidates(repo):
                if pr.key in board or pr.key in added:
                    self._log(f"    - {describe(pr)} EXISTS")
                    continue

                self._console.print(f"    - {describe(pr)}" + (" NEW" if self._verbose else ""))

                if rules.assign_author and not pr.is_author_assigned():
                    self._assign_author(pr)

                if pr.is_linked_to(project):
                    self._log("        Already linked to the project")
                    continue

                self._log("        Adding to project")
                added.add(pr.key)
                if not self._dry_run:
                    self._checkpoint()
                    self._service.link_pull_request(project.id, pr.id)

        self.summary.added += len(added)
        if added:
            self._console.print(f"Added {len(added)} pull requests")
        else:
            self._console.print("No pull requests to add")
        return len(added)

    def _assign_author(self, pr: PullRequest) -> None:
        # The ID lookup is a read, so it happens in dry-run mode too
        self._checkpoint()
        user_id = self._authors.get_id(pr.author.login)

        self._log("        Assigning author")
        if user_id and not self._dry_run:
            self._checkpoint()
            self._service.assign_author(pr.id, user_id)

    def _should_delete(self, pr: PullRequest) -> bool:
        rules = self._config.pull_requests.delete
        if pr.is_draft and rules.drafts:
            return True
        return pr.state in rules.states

    def delete_completed(self, project: Project, board: dict[ProjectKey, PullRequest]) -> int:
        """Unlink board items that are drafts or reached a removal state. Returns how many."""
        rules = self._config.pull_requests.delete
        if not rules.enabled:
            return 0

        self._console.print("Checking for pull requests to delete:")
        deleted = 0
        for pr in board.values():
            self._checkpoint()
            self.summary.inspected += 1

            if not rules.all_authors and not self._authors.resolve(pr.author.login):
                self._log(f"  - {describe(pr)} SKIP")
                continue

            if not self._should_delete(pr):
                self._log(f"  - {describe(pr)} KEEP")
                continue

            deleted += 1
            self._console.print(f"  - {describe(pr)}" + (" DELETE" if self._verbose else ""))

            if not self._dry_run:
                self._checkpoint()
                # The board item ID, not the pull request's own ID
                self._service.unlink_pull_request(project.id, pr.project_item_id)

        self.summary.deleted += deleted
        if deleted:
            self._console.print(f"Deleted {deleted} pull requests")
        else:
            self._console.print("No pull requests to delete")
        return deleted

    def run(self) -> Summary:
        started = time.monotonic()

        project = self.fetch_project()
        board = self.fetch_board()
        self._console.print(f"Project: {project.number} {escape(project.title)} ({len(board)} pull requests)")

        self.add_new(project, board)
        self.delete_completed(project, board)

        self.summary.elapsed = time.monotonic() - started
        return self.summary


def run_sync(
    service: RepositoryService,
    config: SyncConfig,
    *,
    dry_run: bool = False,
    verbose: bool = False,
    console: Console | None = None,
    cancel: threading.Event | None = None,
) -> Summary:
    """Run one full reconciliation pass and return its summary."""
    console = console or default_console
    if cancel is not None and cancel.is_set():
        raise SyncCancelled("sync cancelled")

    authors = Authors(service, config.authors, console=console, verbose=verbose)
    synchronizer = Synchronizer(
        service,
        config,
        authors,
        dry_run=dry_run,
        verbose=verbose,
        console=console,
        cancel=cancel,
    )
    return synchronizer.run()
