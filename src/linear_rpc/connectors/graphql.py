"""Lightweight async GraphQL client for the Linear API.

Sends exactly one request per ``execute`` call and translates every failure
into a typed transport error. Retrying is the caller's job (see retry.py).
Handles Relay-style cursor pagination for the team-scoped collections.
"""

import logging
from typing import Any, AsyncIterator, Dict, List, Optional

import httpx

from .exceptions import (
    LinearAPIError,
    LinearAuthError,
    LinearConnectionError,
    LinearRateLimitError,
    LinearTimeoutError,
)
from .http_client import get_http_client

logger = logging.getLogger(__name__)

AUTH_FAILURE_CODES = {401, 403}
RATE_LIMITED_ERROR_CODE = "RATELIMITED"


class GraphQLClient:
    """Async GraphQL client that uses the shared HTTP client."""

    def __init__(
        self,
        endpoint: str,
        auth_header: str = "Authorization",
        auth_value: str = "",
        timeout: Optional[float] = None,
    ):
        self.endpoint = endpoint
        self.auth_header = auth_header
        self.auth_value = auth_value
        self.timeout = timeout

    async def execute(
        self,
        query: str,
        variables: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Execute a single GraphQL query.

        Args:
            query: GraphQL query string.
            variables: Optional query variables.

        Returns:
            The "data" portion of the response.

        Raises:
            LinearRateLimitError: HTTP 429 or a RATELIMITED GraphQL error.
            LinearAuthError: HTTP 401/403.
            LinearAPIError: Any other HTTP error or GraphQL errors.
            LinearTimeoutError / LinearConnectionError: Transport failures.
        """
        payload: Dict[str, Any] = {"query": query}
        if variables:
            payload["variables"] = variables

        client = get_http_client(self.timeout)
        try:
            response = await client.post(
                self.endpoint,
                json=payload,
                headers={
                    self.auth_header: self.auth_value,
                    "Content-Type": "application/json",
                },
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise _map_status_error(exc) from exc
        except httpx.TimeoutException as exc:
            raise LinearTimeoutError(
                f"Request timed out: {type(exc).__name__}"
            ) from exc
        except httpx.ConnectError as exc:
            raise LinearConnectionError(f"Connection failed: {exc}") from exc

        body = response.json()

        if "errors" in body and body["errors"]:
            errors = body["errors"]
            if any(_error_code(e) == RATE_LIMITED_ERROR_CODE for e in errors):
                raise LinearRateLimitError(
                    "Rate limited: RATELIMITED",
                    retry_after=parse_retry_after(response),
                )
            error_messages = "; ".join(
                e.get("message", "Unknown error") for e in errors
            )
            raise LinearAPIError(
                f"GraphQL error: {error_messages}",
                status_code=response.status_code,
                response_body=str(errors)[:500],
            )

        return body.get("data") or {}

    async def paginate_connection(
        self,
        query: str,
        variables: Optional[Dict[str, Any]] = None,
        connection_path: str = "",
        page_size: int = 100,
        max_pages: int = 50,
    ) -> AsyncIterator[Dict[str, Any]]:
        """Paginate a Relay-style GraphQL connection.

        Expects the query to accept $first (Int) and $after (String) variables,
        and the connection to have the shape:
            { nodes: [...], pageInfo: { hasNextPage, endCursor } }

        Args:
            query: GraphQL query with $first and $after variables.
            variables: Base variables (first/after will be injected).
            connection_path: Dot-separated path to the connection in the data,
                             e.g. "team.states".
            page_size: Number of items per page.
            max_pages: Safety limit on total pages fetched.

        Yields:
            Individual node dicts from the connection.
        """
        vars_ = dict(variables or {})
        vars_["first"] = page_size
        cursor: Optional[str] = None

        for _ in range(max_pages):
            if cursor:
                vars_["after"] = cursor
            elif "after" in vars_:
                del vars_["after"]

            data = await self.execute(query, vars_)

            # Navigate to the connection; a missing parent (e.g. unknown team) is empty
            connection: Any = data
            if connection_path:
                for key in connection_path.split("."):
                    connection = (connection or {}).get(key) or {}

            nodes = connection.get("nodes", [])
            for node in nodes:
                yield node

            page_info = connection.get("pageInfo", {})
            if not page_info.get("hasNextPage") or not nodes:
                break

            cursor = page_info.get("endCursor")
            if not cursor:
                break

    async def collect_connection(
        self,
        query: str,
        variables: Optional[Dict[str, Any]] = None,
        connection_path: str = "",
        page_size: int = 100,
        max_items: int = 10_000,
    ) -> List[Dict[str, Any]]:
        """Collect all nodes from a Relay connection into a list."""
        items: List[Dict[str, Any]] = []
        async for node in self.paginate_connection(
            query, variables, connection_path, page_size
        ):
            items.append(node)
            if len(items) >= max_items:
                logger.warning("collect_connection hit max_items=%d", max_items)
                break
        return items


def _error_code(error: Dict[str, Any]) -> Optional[str]:
    extensions = error.get("extensions") or {}
    return extensions.get("code")


def _map_status_error(exc: httpx.HTTPStatusError) -> Exception:
    status = exc.response.status_code
    if status in AUTH_FAILURE_CODES:
        return LinearAuthError(f"Authentication failed: HTTP {status}")
    if status == 429 or _has_rate_limited_error(exc.response):
        return LinearRateLimitError(
            f"Rate limited: HTTP {status}",
            retry_after=parse_retry_after(exc.response),
        )
    return LinearAPIError(
        f"API error: HTTP {status}",
        status_code=status,
        response_body=exc.response.text[:500],
    )


def parse_retry_after(response: httpx.Response) -> Optional[float]:
    """Parse Retry-After header (seconds only, not HTTP-date)."""
    value = response.headers.get("Retry-After") or response.headers.get("retry-after")
    if value is None:
        return None
    try:
        seconds = float(value)
    except (ValueError, TypeError):
        return None
    return seconds if seconds >= 0 else None


def _has_rate_limited_error(response: httpx.Response) -> bool:
    """True if an error response body carries a RATELIMITED GraphQL error."""
    try:
        body = response.json()
    except ValueError:
        return False
    if not isinstance(body, dict):
        return False
    errors = body.get("errors")
    if not isinstance(errors, list):
        return False
    return any(
        isinstance(e, dict) and _error_code(e) == RATE_LIMITED_ERROR_CODE
        for e in errors
    )
