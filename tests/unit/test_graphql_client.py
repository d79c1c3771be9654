"""Tests for GraphQLClient (execute, paginate_connection, collect_connection).

Verifies:
- execute() returns the "data" portion of a successful response.
- Variables are included in the request payload when provided.
- HTTP and transport failures map to typed Linear errors, with no retry.
- RATELIMITED GraphQL errors become LinearRateLimitError.
- paginate_connection yields nodes across single and multiple pages.
- collect_connection respects max_items.
"""

import pytest
from unittest.mock import AsyncMock, MagicMock, patch

import httpx

from linear_rpc.connectors.exceptions import (
    LinearAPIError,
    LinearAuthError,
    LinearConnectionError,
    LinearRateLimitError,
    LinearTimeoutError,
)
from linear_rpc.connectors.graphql import GraphQLClient, parse_retry_after

ENDPOINT = "https://api.linear.app/graphql"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _make_response(json_data, status_code=200, headers=None):
    """Build a mock httpx.Response-like object with a no-op raise_for_status."""
    resp = MagicMock()
    resp.json.return_value = json_data
    resp.status_code = status_code
    resp.headers = headers or {}
    resp.raise_for_status = MagicMock()
    return resp


def _make_error_response(status_code, headers=None, json_data=None):
    """Mock response whose raise_for_status raises httpx.HTTPStatusError."""
    response = MagicMock(spec=httpx.Response)
    if json_data is None:
        response.json.side_effect = ValueError("no JSON body")
    else:
        response.json.return_value = json_data
    response.status_code = status_code
    response.text = f"Error {status_code}"
    response.headers = headers or {}
    request = MagicMock(spec=httpx.Request)
    response.raise_for_status = MagicMock(
        side_effect=httpx.HTTPStatusError(
            f"{status_code}", request=request, response=response
        )
    )
    return response


def _client():
    return GraphQLClient(endpoint=ENDPOINT, auth_value="lin_api_test")


def _mock_http(mock_get_client, *responses, side_effect=None):
    mock_http = AsyncMock()
    if side_effect is not None:
        mock_http.post.side_effect = side_effect
    elif len(responses) == 1:
        mock_http.post.return_value = responses[0]
    else:
        mock_http.post.side_effect = list(responses)
    mock_get_client.return_value = mock_http
    return mock_http


pytestmark = pytest.mark.asyncio


# ---------------------------------------------------------------------------
# execute
# ---------------------------------------------------------------------------

class TestGraphQLClientExecute:
    """Tests for GraphQLClient.execute()."""

    @patch("linear_rpc.connectors.graphql.get_http_client")
    async def test_execute_success(self, mock_get_client):
        """Successful query returns the 'data' portion."""
        mock_http = _mock_http(
            mock_get_client, _make_response({"data": {"viewer": {"id": "u1"}}})
        )

        result = await _client().execute("query { viewer { id } }")

        assert result == {"viewer": {"id": "u1"}}
        mock_http.post.assert_awaited_once()

    @patch("linear_rpc.connectors.graphql.get_http_client")
    async def test_execute_with_variables_and_auth(self, mock_get_client):
        mock_http = _mock_http(
            mock_get_client, _make_response({"data": {"team": {"id": "t1"}}})
        )

        await _client().execute(
            "query($id: String!) { team(id: $id) { id } }", variables={"id": "t1"}
        )

        call_kwargs = mock_http.post.call_args.kwargs
        assert call_kwargs["json"]["variables"] == {"id": "t1"}
        assert call_kwargs["headers"]["Authorization"] == "lin_api_test"

    @patch("linear_rpc.connectors.graphql.get_http_client")
    async def test_no_variables_omitted_from_payload(self, mock_get_client):
        mock_http = _mock_http(mock_get_client, _make_response({"data": {"ok": True}}))

        await _client().execute("query { ok }")

        assert "variables" not in mock_http.post.call_args.kwargs["json"]

    @patch("linear_rpc.connectors.graphql.get_http_client")
    async def test_null_data_returns_empty_dict(self, mock_get_client):
        _mock_http(mock_get_client, _make_response({"data": None}))

        assert await _client().execute("query { ok }") == {}

    @patch("linear_rpc.connectors.graphql.get_http_client")
    async def test_graphql_error(self, mock_get_client):
        """GraphQL errors in response raise LinearAPIError."""
        _mock_http(
            mock_get_client,
            _make_response({
                "data": None,
                "errors": [
                    {"message": "Field 'foo' not found"},
                    {"message": "Syntax error"},
                ],
            }),
        )

        with pytest.raises(LinearAPIError, match="GraphQL error: Field 'foo' not found; Syntax error"):
            await _client().execute("query { foo }")

    @patch("linear_rpc.connectors.graphql.get_http_client")
    async def test_graphql_ratelimited_error(self, mock_get_client):
        _mock_http(
            mock_get_client,
            _make_response(
                {
                    "errors": [
                        {"message": "Rate limit exceeded", "extensions": {"code": "RATELIMITED"}}
                    ]
                },
                status_code=400,
                headers={"Retry-After": "2"},
            ),
        )

        with pytest.raises(LinearRateLimitError) as exc_info:
            await _client().execute("query { ok }")

        assert exc_info.value.retry_after == 2.0

    @patch("linear_rpc.connectors.graphql.get_http_client")
    async def test_http_429_maps_to_rate_limit(self, mock_get_client):
        _mock_http(mock_get_client, _make_error_response(429, {"Retry-After": "5"}))

        with pytest.raises(LinearRateLimitError, match="Rate limited: HTTP 429") as exc_info:
            await _client().execute("query { ok }")

        assert exc_info.value.retry_after == 5.0

    @patch("linear_rpc.connectors.graphql.get_http_client")
    async def test_http_400_with_ratelimited_body(self, mock_get_client):
        body = {"errors": [{"message": "Too many", "extensions": {"code": "RATELIMITED"}}]}
        _mock_http(mock_get_client, _make_error_response(400, json_data=body))

        with pytest.raises(LinearRateLimitError, match="HTTP 400") as exc_info:
            await _client().execute("query { ok }")

        assert exc_info.value.retry_after is None

    @patch("linear_rpc.connectors.graphql.get_http_client")
    async def test_http_400_without_ratelimit_is_api_error(self, mock_get_client):
        body = {"errors": [{"message": "Bad input"}]}
        _mock_http(mock_get_client, _make_error_response(400, json_data=body))

        with pytest.raises(LinearAPIError) as exc_info:
            await _client().execute("query { ok }")

        assert exc_info.value.status_code == 400

    @pytest.mark.parametrize("status", [401, 403])
    @patch("linear_rpc.connectors.graphql.get_http_client")
    async def test_auth_failures(self, mock_get_client, status):
        _mock_http(mock_get_client, _make_error_response(status))

        with pytest.raises(LinearAuthError, match=f"HTTP {status}"):
            await _client().execute("query { ok }")

    @patch("linear_rpc.connectors.graphql.get_http_client")
    async def test_http_500_maps_to_api_error(self, mock_get_client):
        mock_http = _mock_http(mock_get_client, _make_error_response(500))

        with pytest.raises(LinearAPIError) as exc_info:
            await _client().execute("query { ok }")

        assert exc_info.value.status_code == 500
        assert exc_info.value.response_body == "Error 500"
        # No retry inside the client
        assert mock_http.post.await_count == 1

    @patch("linear_rpc.connectors.graphql.get_http_client")
    async def test_timeout(self, mock_get_client):
        _mock_http(mock_get_client, side_effect=httpx.TimeoutException("timed out"))

        with pytest.raises(LinearTimeoutError):
            await _client().execute("query { ok }")

    @patch("linear_rpc.connectors.graphql.get_http_client")
    async def test_connect_error(self, mock_get_client):
        request = MagicMock(spec=httpx.Request)
        _mock_http(
            mock_get_client,
            side_effect=httpx.ConnectError("refused", request=request),
        )

        with pytest.raises(LinearConnectionError, match="refused"):
            await _client().execute("query { ok }")


# ---------------------------------------------------------------------------
# paginate_connection / collect_connection
# ---------------------------------------------------------------------------

class TestGraphQLClientPagination:
    """Tests for Relay-style cursor pagination."""

    @patch("linear_rpc.connectors.graphql.get_http_client")
    async def test_multiple_pages(self, mock_get_client):
        """Two pages with cursor advancement."""
        mock_http = _mock_http(
            mock_get_client,
            _make_response({
                "data": {
                    "team": {
                        "labels": {
                            "nodes": [{"id": "1"}],
                            "pageInfo": {"hasNextPage": True, "endCursor": "c1"},
                        }
                    }
                }
            }),
            _make_response({
                "data": {
                    "team": {
                        "labels": {
                            "nodes": [{"id": "2"}],
                            "pageInfo": {"hasNextPage": False, "endCursor": "c2"},
                        }
                    }
                }
            }),
        )

        nodes = []
        async for node in _client().paginate_connection(
            "query { team { labels { nodes { id } } } }",
            {"teamId": "t1"},
            connection_path="team.labels",
        ):
            nodes.append(node)

        assert nodes == [{"id": "1"}, {"id": "2"}]
        assert mock_http.post.await_count == 2
        second_payload = mock_http.post.call_args_list[1].kwargs["json"]
        assert second_payload["variables"]["after"] == "c1"
        assert second_payload["variables"]["teamId"] == "t1"

    @patch("linear_rpc.connectors.graphql.get_http_client")
    async def test_missing_parent_yields_nothing(self, mock_get_client):
        """An unknown team (team: null) is an empty connection."""
        _mock_http(mock_get_client, _make_response({"data": {"team": None}}))

        items = await _client().collect_connection(
            "query { team { states { nodes { id } } } }",
            connection_path="team.states",
        )

        assert items == []

    @patch("linear_rpc.connectors.graphql.get_http_client")
    async def test_collect_connection_max_items(self, mock_get_client):
        """Stops collecting at max_items."""
        _mock_http(
            mock_get_client,
            _make_response({
                "data": {
                    "issues": {
                        "nodes": [{"id": str(i)} for i in range(5)],
                        "pageInfo": {"hasNextPage": True, "endCursor": "c1"},
                    }
                }
            }),
        )

        items = await _client().collect_connection(
            "query { issues { nodes { id } } }",
            connection_path="issues",
            max_items=2,
        )

        assert items == [{"id": "0"}, {"id": "1"}]


# ---------------------------------------------------------------------------
# parse_retry_after
# ---------------------------------------------------------------------------

class TestParseRetryAfter:
    """Unit tests for parse_retry_after helper."""

    async def test_valid_integer(self):
        response = MagicMock(spec=httpx.Response)
        response.headers = {"Retry-After": "120"}
        assert parse_retry_after(response) == 120.0

    async def test_lowercase_header(self):
        response = MagicMock(spec=httpx.Response)
        response.headers = {"retry-after": "1.5"}
        assert parse_retry_after(response) == 1.5

    async def test_missing_header(self):
        response = MagicMock(spec=httpx.Response)
        response.headers = {}
        assert parse_retry_after(response) is None

    async def test_http_date_not_supported(self):
        response = MagicMock(spec=httpx.Response)
        response.headers = {"Retry-After": "Wed, 21 Oct 2025 07:28:00 GMT"}
        assert parse_retry_after(response) is None

    async def test_negative_ignored(self):
        response = MagicMock(spec=httpx.Response)
        response.headers = {"Retry-After": "-3"}
        assert parse_retry_after(response) is None
