"""Linear issue operations built on the identifier resolver.

Every operation resolves human-readable inputs (team keys, project names,
emails, state and label names, "TEAM-123" identifiers) and performs its
GraphQL request inside execute_with_retry, so transport failures during
lookups are retried together with the request itself, while resolution
errors reach the caller unchanged.

Linear priority values: 0=No priority, 1=Urgent, 2=High, 3=Medium, 4=Low.
"""

import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional

from ..config import Settings
from ..connectors.exceptions import InvalidParamsError, NotFoundError
from ..connectors.graphql import GraphQLClient
from ..connectors.lookup import LinearRemoteLookup
from ..connectors.retry import execute_with_retry
from ..resolution.cache import ResolverCache
from ..resolution.resolver import IdentifierResolver

logger = logging.getLogger(__name__)

MethodHandler = Callable[..., Awaitable[Any]]

# ---------------------------------------------------------------------------
# Query / mutation documents
# ---------------------------------------------------------------------------

_ISSUE_FIELDS = """
      id
      identifier
      title
      description
      priority
      priorityLabel
      url
      createdAt
      updatedAt
      state { id name }
      assignee { id name email }
      team { id name key }
      project { id name }
      labels { nodes { id name } }
"""

_LIST_ISSUES_QUERY = """
query ListIssues($first: Int!, $after: String, $filter: IssueFilter) {
  issues(first: $first, after: $after, filter: $filter) {
    nodes {%s}
    pageInfo { hasNextPage endCursor }
  }
}
""" % _ISSUE_FIELDS

_GET_ISSUE_QUERY = """
query GetIssue($id: String!) {
  issue(id: $id) {%s}
}
""" % _ISSUE_FIELDS

_CREATE_ISSUE_MUTATION = """
mutation CreateIssue($input: IssueCreateInput!) {
  issueCreate(input: $input) {
    success
    issue {%s}
  }
}
""" % _ISSUE_FIELDS

_UPDATE_ISSUE_MUTATION = """
mutation UpdateIssue($id: String!, $input: IssueUpdateInput!) {
  issueUpdate(id: $id, input: $input) {
    success
    issue {%s}
  }
}
""" % _ISSUE_FIELDS


def _flatten_labels(issue: Dict[str, Any]) -> Dict[str, Any]:
    labels = issue.get("labels")
    if isinstance(labels, dict):
        issue["labels"] = labels.get("nodes", [])
    return issue


class LinearService:
    """Operation layer: resolve identifiers, then call Linear with retry."""

    def __init__(
        self,
        client: GraphQLClient,
        resolver: IdentifierResolver,
        max_retries: int = 3,
        min_delay: float = 1.0,
        max_delay: float = 10.0,
    ):
        self.client = client
        self.resolver = resolver
        self._retry_options = {
            "max_retries": max_retries,
            "min_delay": min_delay,
            "max_delay": max_delay,
        }
        self._method_handlers: Dict[str, MethodHandler] = {
            "linear.issues.list": self.list_issues,
            "linear.issues.get": self.get_issue,
            "linear.issues.create": self.create_issue,
            "linear.issues.update": self.update_issue,
            "linear.cache.clear": self.clear_cache,
        }

    @classmethod
    def from_settings(cls, settings: Settings) -> "LinearService":
        """Wire client, lookup, cache and resolver from configuration."""
        client = GraphQLClient(
            endpoint=settings.linear_api_url,
            auth_value=settings.get_auth_value(),
            timeout=settings.linear_http_timeout,
        )
        cache = ResolverCache(ttl_seconds=settings.resolver_cache_ttl_seconds)
        resolver = IdentifierResolver(LinearRemoteLookup(client), cache)
        return cls(
            client,
            resolver,
            max_retries=settings.retry_max_retries,
            min_delay=settings.retry_min_delay,
            max_delay=settings.retry_max_delay,
        )

    def get_method_handler(self, method: str) -> Optional[MethodHandler]:
        return self._method_handlers.get(method)

    async def _run(self, operation: Callable[[], Awaitable[Any]], name: str) -> Any:
        return await execute_with_retry(operation, name, **self._retry_options)

    # -- Issues ------------------------------------------------------------

    async def list_issues(
        self,
        team: Optional[str] = None,
        project: Optional[str] = None,
        assignee: Optional[str] = None,
        state: Optional[str] = None,
        limit: int = 50,
    ) -> List[Dict[str, Any]]:
        """List issues filtered by any combination of team/project/assignee/state.

        A state name only narrows the list when a team is given, since state
        names are unique per team only.
        """
        if limit < 1:
            raise InvalidParamsError("limit must be a positive integer")

        async def operation():
            issue_filter: Dict[str, Any] = {}
            team_id = await self.resolver.resolve_team_id(team) if team else None
            if team_id:
                issue_filter["team"] = {"id": {"eq": team_id}}
            if project:
                project_id = await self.resolver.resolve_project_id(project, team_id)
                issue_filter["project"] = {"id": {"eq": project_id}}
            if assignee:
                assignee_id = await self.resolver.resolve_user_id(assignee)
                issue_filter["assignee"] = {"id": {"eq": assignee_id}}
            if state and team_id:
                state_id = await self.resolver.resolve_state_id(state, team_id)
                issue_filter["state"] = {"id": {"eq": state_id}}

            variables: Dict[str, Any] = {}
            if issue_filter:
                variables["filter"] = issue_filter
            issues = await self.client.collect_connection(
                _LIST_ISSUES_QUERY,
                variables,
                connection_path="issues",
                page_size=min(limit, 50),
                max_items=limit,
            )
            return [_flatten_labels(issue) for issue in issues]

        return await self._run(operation, "listIssues")

    async def get_issue(self, issue: str) -> Dict[str, Any]:
        """Fetch one issue by ID or "TEAM-123" identifier."""

        async def operation():
            issue_id = await self.resolver.resolve_issue_id(issue)
            data = await self.client.execute(_GET_ISSUE_QUERY, {"id": issue_id})
            if not data.get("issue"):
                raise NotFoundError(f"Issue {issue} not found")
            return _flatten_labels(data["issue"])

        return await self._run(operation, "getIssue")

    async def create_issue(
        self,
        title: str,
        team: str,
        description: Optional[str] = None,
        priority: Optional[int] = None,
        assignee: Optional[str] = None,
        state: Optional[str] = None,
        labels: Optional[List[str]] = None,
        project: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Create an issue in ``team`` (key or ID)."""
        if not title:
            raise InvalidParamsError("title is required")
        if not team:
            raise InvalidParamsError("team is required")

        async def operation():
            team_id = await self.resolver.resolve_team_id(team)
            input_data: Dict[str, Any] = {"title": title, "teamId": team_id}
            if description is not None:
                input_data["description"] = description
            if priority is not None:
                input_data["priority"] = priority
            if assignee:
                input_data["assigneeId"] = await self.resolver.resolve_user_id(assignee)
            if state:
                input_data["stateId"] = await self.resolver.resolve_state_id(state, team_id)
            if labels:
                input_data["labelIds"] = await self.resolver.resolve_label_ids(labels, team_id)
            if project:
                input_data["projectId"] = await self.resolver.resolve_project_id(
                    project, team_id
                )

            data = await self.client.execute(_CREATE_ISSUE_MUTATION, {"input": input_data})
            payload = data.get("issueCreate") or {}
            result = _flatten_labels(payload.get("issue") or {})
            result["success"] = payload.get("success", False)
            return result

        return await self._run(operation, "createIssue")

    async def update_issue(
        self,
        issue: str,
        title: Optional[str] = None,
        description: Optional[str] = None,
        priority: Optional[int] = None,
        assignee: Optional[str] = None,
        state: Optional[str] = None,
        labels: Optional[List[str]] = None,
        team: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Update an issue by ID or "TEAM-123" identifier.

        State and label names resolve against ``team`` when given, otherwise
        against the team the issue currently belongs to.
        """

        async def operation():
            issue_id = await self.resolver.resolve_issue_id(issue)
            input_data: Dict[str, Any] = {}
            if title is not None:
                input_data["title"] = title
            if description is not None:
                input_data["description"] = description
            if priority is not None:
                input_data["priority"] = priority
            if assignee:
                input_data["assigneeId"] = await self.resolver.resolve_user_id(assignee)

            if state or labels:
                team_id = await self._team_for_issue(issue_id, team)
                if state:
                    input_data["stateId"] = await self.resolver.resolve_state_id(
                        state, team_id
                    )
                if labels:
                    input_data["labelIds"] = await self.resolver.resolve_label_ids(
                        labels, team_id
                    )

            data = await self.client.execute(
                _UPDATE_ISSUE_MUTATION, {"id": issue_id, "input": input_data}
            )
            payload = data.get("issueUpdate") or {}
            result = _flatten_labels(payload.get("issue") or {})
            result["success"] = payload.get("success", False)
            return result

        return await self._run(operation, "updateIssue")

    async def _team_for_issue(self, issue_id: str, team: Optional[str]) -> str:
        if team:
            return await self.resolver.resolve_team_id(team)
        data = await self.client.execute(_GET_ISSUE_QUERY, {"id": issue_id})
        current = (data.get("issue") or {}).get("team") or {}
        if not current.get("id"):
            raise NotFoundError(f"Issue {issue_id} not found")
        return current["id"]

    # -- Administration ----------------------------------------------------

    async def clear_cache(self) -> Dict[str, Any]:
        self.resolver.clear_cache()
        return {"cleared": True}
