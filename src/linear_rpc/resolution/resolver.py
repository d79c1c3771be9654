"""Resolution of human-readable Linear identifiers to canonical IDs.

Accepted inputs per kind:
  - team: team key ("OPS")
  - project: project name, optionally scoped to a team
  - user: email address
  - state / label: display name within a team (case-insensitive)
  - issue: "TEAM-123"

Any input already shaped like a canonical ID (UUID) is returned unchanged
before the cache or the API is consulted. The resolver never retries; wrap
callers in execute_with_retry.
"""

import logging
import re
from typing import Any, Dict, List, Optional

from ..connectors.exceptions import InvalidParamsError, NotFoundError
from ..connectors.lookup import RemoteLookup
from ..observability import metrics
from .cache import ResolverCache

logger = logging.getLogger(__name__)

_CANONICAL_ID_RE = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$",
    re.IGNORECASE,
)
_ISSUE_IDENTIFIER_RE = re.compile(r"^([^-\s]+)-(\d+)$", re.ASCII)


def is_canonical_id(value: str) -> bool:
    """True if ``value`` has the fixed hyphenated-hex shape of a Linear ID."""
    return bool(value) and _CANONICAL_ID_RE.fullmatch(value) is not None


def _match_by_name(nodes: List[Dict[str, Any]], name: str) -> Optional[Dict[str, Any]]:
    wanted = name.lower()
    for node in nodes:
        if (node.get("name") or "").lower() == wanted:
            return node
    return None


class IdentifierResolver:
    """Translate names, keys and emails into Linear IDs with a shared cache."""

    def __init__(self, lookup: RemoteLookup, cache: Optional[ResolverCache] = None):
        self.lookup = lookup
        self.cache = cache if cache is not None else ResolverCache()

    def _cached(self, kind: str, name: str, scope: Optional[str] = None) -> Optional[str]:
        value = self.cache.get(kind, name, scope)
        metrics.record_cache_lookup(kind, value is not None)
        if value is not None:
            logger.debug("Cache hit for %s %r (scope=%s)", kind, name, scope)
        else:
            logger.debug("Cache miss for %s %r (scope=%s)", kind, name, scope)
        return value

    async def resolve_team_id(self, team_key_or_id: str) -> str:
        if is_canonical_id(team_key_or_id):
            return team_key_or_id

        cached = self._cached("team", team_key_or_id)
        if cached is not None:
            return cached

        team = await self.lookup.find_team_by_key(team_key_or_id)
        if not team:
            raise NotFoundError(f'Team with key "{team_key_or_id}" not found')

        self.cache.set("team", team_key_or_id, team["id"])
        return team["id"]

    async def resolve_project_id(
        self, project_name_or_id: str, team_id: Optional[str] = None
    ) -> str:
        if is_canonical_id(project_name_or_id):
            return project_name_or_id

        scope = team_id or None
        cached = self._cached("project", project_name_or_id, scope)
        if cached is not None:
            return cached

        projects = await self.lookup.find_projects_by_name_and_team(
            project_name_or_id, scope
        )
        if not projects:
            context = f" in team {scope}" if scope else ""
            raise NotFoundError(f'Project "{project_name_or_id}"{context} not found')

        project_id = projects[0]["id"]
        self.cache.set("project", project_name_or_id, project_id, scope)
        return project_id

    async def resolve_user_id(self, user_email_or_id: str) -> str:
        if is_canonical_id(user_email_or_id):
            return user_email_or_id

        cached = self._cached("user", user_email_or_id)
        if cached is not None:
            return cached

        user = await self.lookup.find_user_by_email(user_email_or_id)
        if not user:
            raise NotFoundError(f'User with email "{user_email_or_id}" not found')

        self.cache.set("user", user_email_or_id, user["id"])
        return user["id"]

    async def resolve_state_id(self, state_name_or_id: str, team_id: Optional[str]) -> str:
        if is_canonical_id(state_name_or_id):
            return state_name_or_id

        if not team_id:
            raise InvalidParamsError("Team ID is required to resolve state names")

        cached = self._cached("state", state_name_or_id, team_id)
        if cached is not None:
            return cached

        states = await self.lookup.fetch_team_states(team_id)
        state = _match_by_name(states, state_name_or_id)
        if state is None:
            raise NotFoundError(f'State "{state_name_or_id}" not found in team {team_id}')

        self.cache.set("state", state_name_or_id, state["id"], team_id)
        return state["id"]

    async def resolve_label_ids(
        self, label_names_or_ids: List[str], team_id: Optional[str]
    ) -> List[str]:
        """Resolve a batch of labels with at most one remote fetch.

        Result order: canonical IDs, then cache hits, then freshly fetched
        names. The first name missing from the team's labels aborts the batch.
        """
        resolved = [v for v in label_names_or_ids if is_canonical_id(v)]
        names = [v for v in label_names_or_ids if not is_canonical_id(v)]
        if not names:
            return resolved

        if not team_id:
            raise InvalidParamsError("Team ID is required to resolve label names")

        uncached: List[str] = []
        for name in names:
            cached = self._cached("label", name, team_id)
            if cached is not None:
                resolved.append(cached)
            else:
                uncached.append(name)

        if not uncached:
            return resolved

        labels = await self.lookup.fetch_team_labels(team_id)
        for name in uncached:
            label = _match_by_name(labels, name)
            if label is None:
                raise NotFoundError(f'Label "{name}" not found in team {team_id}')
            self.cache.set("label", name, label["id"], team_id)
            resolved.append(label["id"])

        return resolved

    async def resolve_issue_id(self, issue_identifier_or_id: str) -> str:
        """Resolve "TEAM-123" to the issue ID.

        Composite identifiers are not cached; both lookups run on every call.
        """
        if is_canonical_id(issue_identifier_or_id):
            return issue_identifier_or_id

        match = _ISSUE_IDENTIFIER_RE.fullmatch(issue_identifier_or_id)
        if match is None:
            raise InvalidParamsError(
                f"Invalid issue identifier format: {issue_identifier_or_id}"
            )
        team_key, number = match.group(1), int(match.group(2))

        team = await self.lookup.find_team_by_key(team_key)
        if not team:
            raise NotFoundError(f'Team with key "{team_key}" not found')

        issue = await self.lookup.find_issue_by_team_and_number(
            team.get("key") or team_key, number
        )
        if not issue:
            raise NotFoundError(f"Issue {issue_identifier_or_id} not found")

        return issue["id"]

    def clear_cache(self) -> None:
        self.cache.clear()
        logger.info("Identifier resolver cache cleared")
