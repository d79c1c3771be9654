"""Remote lookups the identifier resolver depends on.

``RemoteLookup`` is the capability the resolver consumes; ``LinearRemoteLookup``
implements it against the Linear GraphQL API. Lookups never retry and never
cache: failures propagate as the GraphQL client's transport errors.

States and labels are fetched as the team's full collection and filtered by the
resolver, because name matching there is case-insensitive.
"""

import logging
from typing import Any, Dict, List, Optional, Protocol

from .graphql import GraphQLClient

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------

_TEAM_BY_KEY_QUERY = """
query TeamByKey($key: String!) {
  teams(filter: { key: { eq: $key } }, first: 1) {
    nodes {
      id
      key
    }
  }
}
"""

_PROJECTS_BY_NAME_QUERY = """
query ProjectsByName($name: String!) {
  projects(filter: { name: { eq: $name } }, first: 1) {
    nodes {
      id
      name
    }
  }
}
"""

_PROJECTS_BY_NAME_AND_TEAM_QUERY = """
query ProjectsByNameAndTeam($name: String!, $teamId: ID!) {
  projects(
    filter: { name: { eq: $name }, accessibleTeams: { id: { eq: $teamId } } }
    first: 1
  ) {
    nodes {
      id
      name
    }
  }
}
"""

_USER_BY_EMAIL_QUERY = """
query UserByEmail($email: String!) {
  users(filter: { email: { eq: $email } }, first: 1) {
    nodes {
      id
      email
    }
  }
}
"""

_TEAM_STATES_QUERY = """
query TeamStates($teamId: String!, $first: Int!, $after: String) {
  team(id: $teamId) {
    states(first: $first, after: $after) {
      nodes {
        id
        name
      }
      pageInfo { hasNextPage endCursor }
    }
  }
}
"""

_TEAM_LABELS_QUERY = """
query TeamLabels($teamId: String!, $first: Int!, $after: String) {
  team(id: $teamId) {
    labels(first: $first, after: $after) {
      nodes {
        id
        name
      }
      pageInfo { hasNextPage endCursor }
    }
  }
}
"""

_ISSUE_BY_TEAM_AND_NUMBER_QUERY = """
query IssueByTeamAndNumber($teamKey: String!, $number: Float!) {
  issues(
    filter: { team: { key: { eq: $teamKey } }, number: { eq: $number } }
    first: 1
  ) {
    nodes {
      id
      identifier
    }
  }
}
"""


class RemoteLookup(Protocol):
    """Lookup capability consumed by IdentifierResolver."""

    async def find_team_by_key(self, key: str) -> Optional[Dict[str, Any]]: ...

    async def find_projects_by_name_and_team(
        self, name: str, team_id: Optional[str] = None
    ) -> List[Dict[str, Any]]: ...

    async def find_user_by_email(self, email: str) -> Optional[Dict[str, Any]]: ...

    async def fetch_team_states(self, team_id: str) -> List[Dict[str, Any]]: ...

    async def fetch_team_labels(self, team_id: str) -> List[Dict[str, Any]]: ...

    async def find_issue_by_team_and_number(
        self, team_key: str, number: int
    ) -> Optional[Dict[str, Any]]: ...


def _nodes(data: Dict[str, Any], field: str) -> List[Dict[str, Any]]:
    return ((data.get(field) or {}).get("nodes")) or []


class LinearRemoteLookup:
    """RemoteLookup backed by the Linear GraphQL API."""

    def __init__(self, client: GraphQLClient):
        self._client = client

    async def find_team_by_key(self, key: str) -> Optional[Dict[str, Any]]:
        data = await self._client.execute(_TEAM_BY_KEY_QUERY, {"key": key})
        teams = _nodes(data, "teams")
        return teams[0] if teams else None

    async def find_projects_by_name_and_team(
        self, name: str, team_id: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        if team_id:
            data = await self._client.execute(
                _PROJECTS_BY_NAME_AND_TEAM_QUERY, {"name": name, "teamId": team_id}
            )
        else:
            data = await self._client.execute(_PROJECTS_BY_NAME_QUERY, {"name": name})
        return _nodes(data, "projects")

    async def find_user_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        data = await self._client.execute(_USER_BY_EMAIL_QUERY, {"email": email})
        users = _nodes(data, "users")
        return users[0] if users else None

    async def fetch_team_states(self, team_id: str) -> List[Dict[str, Any]]:
        states = await self._client.collect_connection(
            _TEAM_STATES_QUERY, {"teamId": team_id}, connection_path="team.states"
        )
        logger.debug("Fetched %d states for team %s", len(states), team_id)
        return states

    async def fetch_team_labels(self, team_id: str) -> List[Dict[str, Any]]:
        labels = await self._client.collect_connection(
            _TEAM_LABELS_QUERY, {"teamId": team_id}, connection_path="team.labels"
        )
        logger.debug("Fetched %d labels for team %s", len(labels), team_id)
        return labels

    async def find_issue_by_team_and_number(
        self, team_key: str, number: int
    ) -> Optional[Dict[str, Any]]:
        data = await self._client.execute(
            _ISSUE_BY_TEAM_AND_NUMBER_QUERY, {"teamKey": team_key, "number": number}
        )
        issues = _nodes(data, "issues")
        return issues[0] if issues else None
