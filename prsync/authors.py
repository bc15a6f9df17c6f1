"""Author roster resolution: decide whose pull requests belong on the board.

Rules are evaluated in a fixed order and the first match wins:

1. no include or exclude rules at all: everyone is included
2. excluded by user name
3. included by user name
4. member of an excluded team
5. member of an included team
6. member of an excluded organization
7. member of an included organization
8. otherwise included only if there are no include rules

Team members are fetched once, up front. Organization memberships are fetched
lazily, at most once per login, and every settled decision is memoized in a
``MembershipCache`` owned by the ``Authors`` instance.
"""

from dataclasses import dataclass, field

from rich.console import Console
from rich.markup import escape

from prsync.config import AuthorsConfig
from prsync.models import TeamRef
from prsync.providers.base import RepositoryService

default_console = Console(highlight=False, emoji=False)


@dataclass
class MembershipCache:
    """Remote lookups and settled rule decisions for a single run."""

    ids: dict[str, str] = field(default_factory=dict)  # login -> node ID
    team_members: dict[TeamRef, set[str]] = field(default_factory=dict)
    orgs: dict[str, set[str]] = field(default_factory=dict)  # login -> organizations it belongs to
    # Logins whose organization listing came back empty (private profile),
    # mapped to the organizations already probed one by one.
    org_probes: dict[str, set[str]] = field(default_factory=dict)
    excluded_by_team: dict[str, bool] = field(default_factory=dict)
    included_by_team: dict[str, bool] = field(default_factory=dict)
    excluded_by_org: dict[str, bool] = field(default_factory=dict)
    included_by_org: dict[str, bool] = field(default_factory=dict)


class Authors:
    def __init__(
        self,
        service: RepositoryService,
        rules: AuthorsConfig,
        *,
        cache: MembershipCache | None = None,
        console: Console | None = None,
        verbose: bool = False,
    ) -> None:
        self._service = service
        self._rules = rules
        self._console = console or default_console
        self._verbose = verbose
        self.cache = cache if cache is not None else MembershipCache()

        self._included = set(rules.include.users)
        self._excluded = set(rules.exclude.users)

        self._load_teams()

    def _log(self, message: str) -> None:
        if self._verbose:
            self._console.print(message)

    def _load_teams(self) -> None:
        # dict.fromkeys keeps declaration order while dropping duplicates
        for team in dict.fromkeys([*self._rules.include.teams, *self._rules.exclude.teams]):
            if team in self.cache.team_members:
                continue

            self._log(f"Fetching team members for {escape(str(team))}:")
            members = self._service.list_team_members(team.org, team.name)

            logins = set()
            for member in members:
                self.cache.ids[member.login] = member.id
                logins.add(member.login)
                self._log(f"  - {escape(member.login)}")
            self.cache.team_members[team] = logins

    def resolve(self, login: str) -> bool:
        """Return True if pull requests by ``login`` should be tracked.

        Remote failures propagate and leave no cached decision behind.
        """
        rules = self._rules
        if rules.empty:
            return True

        if login in self._excluded:
            return False
        if login in self._included:
            return True

        if self._in_teams(login, rules.exclude.teams, self.cache.excluded_by_team):
            return False
        if self._in_teams(login, rules.include.teams, self.cache.included_by_team):
            return True

        if self._in_orgs(login, rules.exclude.orgs, self.cache.excluded_by_org):
            return False
        if self._in_orgs(login, rules.include.orgs, self.cache.included_by_org):
            return True

        # Exclude rules alone don't turn the roster into an allow-list
        return rules.include.empty

    def get_id(self, login: str) -> str:
        """Return the GraphQL node ID for ``login``, looking it up at most once."""
        user_id = self.cache.ids.get(login)
        if user_id is None:
            self._log(f"        Fetching user ID for {escape(login)}")
            user_id = self._service.lookup_user(login).id
            self.cache.ids[login] = user_id
        return user_id

    def _in_teams(self, login: str, teams: list[TeamRef], decisions: dict[str, bool]) -> bool:
        if not teams:
            return False
        if login not in decisions:
            decisions[login] = any(login in self.cache.team_members.get(team, ()) for team in teams)
        return decisions[login]

    def _in_orgs(self, login: str, orgs: list[str], decisions: dict[str, bool]) -> bool:
        if not orgs:
            return False
        if login not in decisions:
            member_of = self._organizations(login, orgs)
            decisions[login] = any(org in member_of for org in orgs)
        return decisions[login]

    def _organizations(self, login: str, candidates: list[str]) -> set[str]:
        cache = self.cache
        if login not in cache.orgs:
            self._log(f"        Fetching organizations for {escape(login)}")
            visible = set(self._service.list_user_organizations(login))
            cache.orgs[login] = visible
            if not visible:
                cache.org_probes[login] = set()

        # The profile may be private; ask each organization directly instead
        probed = cache.org_probes.get(login)
        if probed is not None:
            for org in candidates:
                if org in probed:
                    continue
                self._log(f"        Checking membership in {escape(org)} for {escape(login)}")
                if self._service.is_organization_member(login, org):
                    cache.orgs[login].add(org)
                probed.add(org)

        return cache.orgs[login]
