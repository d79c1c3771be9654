"""Identifier resolution and resilient execution for the Linear GraphQL API."""

from .connectors.exceptions import (
    InvalidParamsError,
    LinearError,
    NotFoundError,
    UpstreamError,
)
from .connectors.retry import execute_with_retry
from .resolution.cache import ResolverCache
from .resolution.resolver import IdentifierResolver, is_canonical_id

__version__ = "0.1.0"

__all__ = [
    "IdentifierResolver",
    "InvalidParamsError",
    "LinearError",
    "NotFoundError",
    "ResolverCache",
    "UpstreamError",
    "execute_with_retry",
    "is_canonical_id",
]
