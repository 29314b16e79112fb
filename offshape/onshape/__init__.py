"""Onshape API access: request signing, rate limiting, and the REST client."""

from .client import OnshapeClient, strip_header_dates
from .rate_limiter import RateLimiter
from .signing import RequestSigner

__all__ = ["OnshapeClient", "RateLimiter", "RequestSigner", "strip_header_dates"]
