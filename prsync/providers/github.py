"""GitHub GraphQL (Projects v2) + REST provider."""

import subprocess
from collections.abc import Iterator, Sequence
from urllib.parse import quote

import httpx

from prsync.errors import NotFoundError, RemoteError, TransportError
from prsync.models import Author, Project, ProjectRef, PullRequest, PullRequestState, RepositoryRef, User
from prsync.pagination import Page, Paginator
from prsync.providers.base import RepositoryService
from prsync.settings import PrsyncSettings

BASE_URL = "https://api.github.com"

_PULL_REQUEST_FIELDS = """
fragment PullRequestFields on PullRequest {
  id
  number
  title
  url
  isDraft
  state
  author { __typename login }
  repository { name owner { login } }
  assignees(first: 100) { nodes { id login } }
  projectsV2(first: 100) { nodes { id number } }
}
"""

_GET_PROJECT = """
query GetProject($owner: String!, $number: Int!) {
  organization(login: $owner) {
    projectV2(number: $number) { id number title }
  }
}
"""

_PROJECT_ITEMS = (
    """
query ProjectItems($owner: String!, $number: Int!, $first: Int!, $after: String) {
  organization(login: $owner) {
    projectV2(number: $number) {
      items(first: $first, after: $after) {
        nodes {
          id
          type
          content { ...PullRequestFields }
        }
        pageInfo { endCursor hasNextPage }
      }
    }
  }
}
"""
    + _PULL_REQUEST_FIELDS
)

_REPOSITORY_PULL_REQUESTS = (
    """
query RepositoryPullRequests(
  $owner: String!, $name: String!, $states: [PullRequestState!], $first: Int!, $after: String
) {
  repository(owner: $owner, name: $name) {
    pullRequests(states: $states, first: $first, after: $after) {
      nodes { ...PullRequestFields }
      pageInfo { endCursor hasNextPage }
    }
  }
}
"""
    + _PULL_REQUEST_FIELDS
)

_TEAM_MEMBERS = """
query TeamMembers($org: String!, $team: String!, $first: Int!, $after: String) {
  organization(login: $org) {
    team(slug: $team) {
      members(first: $first, after: $after) {
        nodes { id login }
        pageInfo { endCursor hasNextPage }
      }
    }
  }
}
"""

_USER_ORGANIZATIONS = """
query UserOrganizations($login: String!) {
  user(login: $login) {
    organizations(first: 100) { nodes { login } }
  }
}
"""

_LOOKUP_USER = """
query LookupUser($login: String!) {
  user(login: $login) { id login }
}
"""

_VIEWER = """
query Viewer {
  viewer { login }
}
"""

_ADD_PROJECT_ITEM = """
mutation AddProjectItem($projectId: ID!, $contentId: ID!) {
  addProjectV2ItemById(input: {projectId: $projectId, contentId: $contentId}) {
    item { id }
  }
}
"""

_DELETE_PROJECT_ITEM = """
mutation DeleteProjectItem($projectId: ID!, $itemId: ID!) {
  deleteProjectV2Item(input: {projectId: $projectId, itemId: $itemId}) {
    deletedItemId
  }
}
"""

_ADD_ASSIGNEES = """
mutation AddAssignees($assignableId: ID!, $assigneeIds: [ID!]!) {
  addAssigneesToAssignable(input: {assignableId: $assignableId, assigneeIds: $assigneeIds}) {
    clientMutationId
  }
}
"""


def _error_message(response: httpx.Response) -> str:
    """Return GitHub's error message for a failed response, or the HTTP reason phrase."""
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and body.get("message"):
        return body["message"]
    return response.reason_phrase


def _raise_for_status(response: httpx.Response) -> None:
    if response.is_success:
        return
    raise RemoteError(f"{response.status_code} {_error_message(response)}", status=response.status_code)


def _page(items: list, page_info: dict) -> Page:
    return Page(
        items=items,
        end_cursor=page_info.get("endCursor"),
        has_next_page=page_info.get("hasNextPage", False),
    )


class GitHubProvider(RepositoryService):
    def __init__(self, settings: PrsyncSettings, base_url: str = BASE_URL) -> None:
        self._token = self._resolve_token(settings)
        self._base_url = base_url.rstrip("/")
        self._timeout = settings.http_timeout
        self._headers = {
            "Authorization": f"Bearer {self._token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }

    def _resolve_token(self, settings: PrsyncSettings) -> str:
        if settings.github_auth == "gh-cli":
            result = subprocess.run(
                ["gh", "auth", "token"],
                capture_output=True,
                text=True,
            )
            if result.returncode != 0:
                raise RuntimeError("gh auth token failed. Run: gh auth login")
            return result.stdout.strip()
        if settings.github_token:
            return settings.github_token.get_secret_value()
        raise RuntimeError("No GitHub credentials. Set GITHUB_TOKEN or PRSYNC_GITHUB_AUTH=gh-cli")

    @property
    def graphql_url(self) -> str:
        return f"{self._base_url}/graphql"

    def _request(self, method: str, url: str, **kwargs) -> httpx.Response:
        try:
            response = httpx.request(method, url, headers=self._headers, timeout=self._timeout, **kwargs)
        except httpx.TransportError as exc:
            raise TransportError(f"{method} {url} failed: {exc}") from exc
        if response.status_code == 401:
            raise RemoteError(
                "GitHub API returned 401. Check GITHUB_TOKEN or run: gh auth login",
                status=401,
            )
        return response

    def _gql(self, query: str, variables: dict | None = None) -> dict:
        response = self._request("POST", self.graphql_url, json={"query": query, "variables": variables or {}})
        _raise_for_status(response)
        try:
            payload = response.json()
        except ValueError as exc:
            raise RemoteError(f"{self.graphql_url} did not return JSON", status=response.status_code) from exc
        errors = payload.get("errors")
        if errors:
            if all(err.get("type") == "NOT_FOUND" for err in errors):
                raise NotFoundError("; ".join(err.get("message", "not found") for err in errors))
            raise RemoteError.from_graphql(errors)
        return payload.get("data") or {}

    def _pull_request_from_node(self, node: dict, project_item_id: str | None = None) -> PullRequest:
        # author is null for deleted accounts; GitHub shows those as "ghost"
        author = node.get("author") or {}
        repo = node["repository"]
        assignees = (node.get("assignees") or {}).get("nodes", [])
        projects = (node.get("projectsV2") or {}).get("nodes", [])
        return PullRequest(
            id=node["id"],
            number=node["number"],
            title=node["title"],
            url=node.get("url", ""),
            is_draft=node.get("isDraft", False),
            state=PullRequestState(node.get("state", "OPEN")),
            author=Author(login=author.get("login", "ghost"), type=author.get("__typename", "")),
            repository=RepositoryRef(owner=repo["owner"]["login"], name=repo["name"]),
            project_item_id=project_item_id,
            assignees=[User(id=a["id"], login=a["login"]) for a in assignees if a],
            projects=[ProjectRef(id=p["id"], number=p["number"]) for p in projects if p],
        )

    def get_project(self, owner: str, number: int) -> Project:
        data = self._gql(_GET_PROJECT, {"owner": owner, "number": number})
        node = (data.get("organization") or {}).get("projectV2")
        if not node:
            raise NotFoundError(f"Project {owner}/{number} not found")
        return Project(id=node["id"], number=node["number"], title=node["title"])

    def list_project_pull_requests(self, owner: str, number: int) -> Iterator[PullRequest]:
        def fetch(first: int, after: str | None) -> Page[PullRequest]:
            data = self._gql(_PROJECT_ITEMS, {"owner": owner, "number": number, "first": first, "after": after})
            project = (data.get("organization") or {}).get("projectV2")
            if not project:
                raise NotFoundError(f"Project {owner}/{number} not found")
            items = project["items"]
            # Issues and draft issues share the board; only pull requests are ours.
            # content is null when the token cannot see the linked repository.
            pulls = [
                self._pull_request_from_node(item["content"], project_item_id=item["id"])
                for item in items["nodes"]
                if item.get("type") == "PULL_REQUEST" and item.get("content")
            ]
            return _page(pulls, items["pageInfo"])

        return Paginator(fetch)

    def list_repository_pull_requests(
        self,
        owner: str,
        name: str,
        states: Sequence[PullRequestState],
    ) -> Iterator[PullRequest]:
        state_filter = [PullRequestState(s).value for s in states] or None

        def fetch(first: int, after: str | None) -> Page[PullRequest]:
            data = self._gql(
                _REPOSITORY_PULL_REQUESTS,
                {"owner": owner, "name": name, "states": state_filter, "first": first, "after": after},
            )
            repo = data.get("repository")
            if not repo:
                raise NotFoundError(f"Repository {owner}/{name} not found")
            conn = repo["pullRequests"]
            return _page([self._pull_request_from_node(n) for n in conn["nodes"] if n], conn["pageInfo"])

        return Paginator(fetch)

    def list_team_members(self, org: str, team: str) -> list[User]:
        def fetch(first: int, after: str | None) -> Page[User]:
            data = self._gql(_TEAM_MEMBERS, {"org": org, "team": team, "first": first, "after": after})
            node = (data.get("organization") or {}).get("team")
            if not node:
                raise NotFoundError(f"Team {org}/{team} not found")
            members = node["members"]
            return _page([User(id=m["id"], login=m["login"]) for m in members["nodes"]], members["pageInfo"])

        return list(Paginator(fetch))

    def list_user_organizations(self, login: str) -> list[str]:
        # Only organizations that publicize membership (or that the token can see) are listed
        data = self._gql(_USER_ORGANIZATIONS, {"login": login})
        user = data.get("user")
        if not user:
            raise NotFoundError(f"User {login} not found")
        return [org["login"] for org in user["organizations"]["nodes"]]

    def is_organization_member(self, login: str, org: str) -> bool:
        url = f"{self._base_url}/orgs/{quote(org, safe='')}/members/{quote(login, safe='')}"
        response = self._request("GET", url)
        match response.status_code:
            case 204:
                return True
            case 302 | 404:
                # 302: the requester is not an org member; 404: the user is not
                return False
            case _:
                raise RemoteError(
                    f"{response.status_code} {_error_message(response)}",
                    status=response.status_code,
                )

    def lookup_user(self, login: str) -> User:
        data = self._gql(_LOOKUP_USER, {"login": login})
        node = data.get("user")
        if not node:
            raise NotFoundError(f"User {login} not found")
        return User(id=node["id"], login=node["login"])

    def link_pull_request(self, project_id: str, pull_request_id: str) -> str:
        data = self._gql(_ADD_PROJECT_ITEM, {"projectId": project_id, "contentId": pull_request_id})
        return data["addProjectV2ItemById"]["item"]["id"]

    def unlink_pull_request(self, project_id: str, item_id: str) -> None:
        self._gql(_DELETE_PROJECT_ITEM, {"projectId": project_id, "itemId": item_id})

    def assign_author(self, pull_request_id: str, user_id: str) -> None:
        self._gql(_ADD_ASSIGNEES, {"assignableId": pull_request_id, "assigneeIds": [user_id]})

    def check_endpoint(self) -> None:
        try:
            self._gql(_VIEWER)
        except RemoteError as exc:
            raise RemoteError(f"GraphQL endpoint {self.graphql_url}: {exc}", status=exc.status) from exc

        response = self._request("GET", f"{self._base_url}/user")
        try:
            _raise_for_status(response)
        except RemoteError as exc:
            raise RemoteError(f"REST endpoint {self._base_url}: {exc}", status=exc.status) from exc
