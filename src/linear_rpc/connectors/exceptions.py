"""Linear-specific exception types.

Three kinds reach the operation layer: InvalidParamsError and NotFoundError
(resolution failures, never retried) and UpstreamError (retry budget
exhausted). The transport family below is what the GraphQL client raises and
what execute_with_retry consumes.
"""

from typing import Any, Dict, Optional


class JsonRpcErrorCodes:
    """JSON-RPC 2.0 error codes used in the outward error envelope."""

    PARSE_ERROR = -32700
    INVALID_REQUEST = -32600
    METHOD_NOT_FOUND = -32601
    INVALID_PARAMS = -32602
    INTERNAL_ERROR = -32603
    SERVER_ERROR = -32000


class LinearError(Exception):
    """Base exception for all Linear errors."""

    status_code: int = 500
    code: int = JsonRpcErrorCodes.INTERNAL_ERROR

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        code: Optional[int] = None,
        data: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        if code is not None:
            self.code = code
        self.data = data
        super().__init__(message)

    def to_jsonrpc_error(self) -> Dict[str, Any]:
        """Render the JSON-RPC ``error`` member for this exception."""
        error: Dict[str, Any] = {"code": self.code, "message": self.message}
        if self.data is not None:
            error["data"] = self.data
        return error


# ---------------------------------------------------------------------------
# Resolution errors (deterministic, never retried)
# ---------------------------------------------------------------------------

class ResolutionError(LinearError):
    """An identifier could not be resolved for a caller-side reason."""

    code = JsonRpcErrorCodes.INVALID_PARAMS


class InvalidParamsError(ResolutionError):
    """Malformed input or a missing required scope (e.g. team for a state name)."""

    status_code = 400


class NotFoundError(ResolutionError):
    """A well-formed name did not match any entity."""

    status_code = 404


# ---------------------------------------------------------------------------
# Terminal failure produced by execute_with_retry
# ---------------------------------------------------------------------------

class UpstreamError(LinearError):
    """A remote operation failed after exhausting its retry budget."""

    status_code = 500
    code = JsonRpcErrorCodes.SERVER_ERROR

    def __init__(self, operation: str, original_message: str):
        self.operation = operation
        self.original_message = original_message
        super().__init__(
            f"Linear API error: {original_message}",
            data={"operation": operation, "originalError": original_message},
        )


# ---------------------------------------------------------------------------
# Transport errors (raised by GraphQLClient)
# ---------------------------------------------------------------------------

class LinearTransportError(LinearError):
    """A single request to the Linear API failed."""

    pass


class LinearAuthError(LinearTransportError):
    """Authentication or authorization failure (401/403, revoked key)."""

    status_code = 401


class LinearRateLimitError(LinearTransportError):
    """Rate limit exceeded (429 or RATELIMITED). Includes retry_after hint if available."""

    status_code = 429

    def __init__(self, message: str, retry_after: Optional[float] = None):
        self.retry_after = retry_after
        super().__init__(message)


class LinearAPIError(LinearTransportError):
    """API returned an error response (4xx/5xx or GraphQL errors)."""

    def __init__(
        self,
        message: str,
        status_code: int = 0,
        response_body: str = "",
    ):
        self.response_body = response_body
        super().__init__(message, status_code=status_code or None)


class LinearTimeoutError(LinearTransportError):
    """Request timed out."""

    status_code = 504


class LinearConnectionError(LinearTransportError):
    """Could not connect to the Linear API."""

    status_code = 503
