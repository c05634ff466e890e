"""
Request guard.

Every inbound call passes four checks before it reaches the dispatcher, in
this order, stopping at the first failure:

1. Transport - the request must declare it arrived over HTTPS/WSS
2. Credential - the API key must be in the allow-list
3. Rate limit - the client must be under its per-window budget
4. Origin - a browser Origin header, when present, must be allowed
"""

import hmac
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Mapping, Optional

from .ratelimit import RateLimitDecision, RateLimiter

logger = logging.getLogger(__name__)

API_KEY_HEADER = "x-api-key"
UNKNOWN_CLIENT = "unknown"
SECURE_SCHEMES = ("https", "wss")


class RejectionKind(str, Enum):
    INSECURE_TRANSPORT = "InsecureTransport"
    UNAUTHORIZED = "Unauthorized"
    RATE_LIMITED = "RateLimited"
    ORIGIN_NOT_ALLOWED = "OriginNotAllowed"


REJECTION_STATUS = {
    RejectionKind.INSECURE_TRANSPORT: 403,
    RejectionKind.UNAUTHORIZED: 401,
    RejectionKind.RATE_LIMITED: 429,
    RejectionKind.ORIGIN_NOT_ALLOWED: 403,
}


class GuardRejection(Exception):
    """Raised when a request fails a guard check."""

    def __init__(self, kind: RejectionKind, message: str, retry_after: Optional[float] = None):
        super().__init__(message)
        self.kind = kind
        self.status = REJECTION_STATUS[kind]
        self.retry_after = retry_after

    def to_dict(self) -> dict:
        return {"error": self.kind.value, "detail": str(self)}


@dataclass
class GuardRequest:
    """The parts of an inbound request the guard looks at."""

    api_key: Optional[str] = None
    client_address: str = UNKNOWN_CLIENT
    origin: Optional[str] = None
    forwarded_proto: Optional[str] = None
    scheme: str = "http"

    @classmethod
    def from_headers(cls, headers: Mapping[str, str], scheme: str = "http") -> "GuardRequest":
        """
        Build from request headers.

        ``headers`` must be case-insensitive or use lowercase keys (Starlette
        header mappings are both).
        """
        forwarded_proto = _first_value(headers.get("x-forwarded-proto"))
        client_address = (
            _first_value(headers.get("x-forwarded-for"))
            or _first_value(headers.get("x-real-ip"))
            or UNKNOWN_CLIENT
        )

        return cls(
            api_key=headers.get(API_KEY_HEADER),
            client_address=client_address,
            origin=headers.get("origin") or None,
            forwarded_proto=forwarded_proto.lower() if forwarded_proto else None,
            scheme=scheme.lower(),
        )

    @property
    def is_secure(self) -> bool:
        # A proxy-declared protocol wins over the local connection scheme
        if self.forwarded_proto:
            return self.forwarded_proto in SECURE_SCHEMES
        return self.scheme in SECURE_SCHEMES


def _first_value(header: Optional[str]) -> Optional[str]:
    if not header:
        return None
    value = header.split(",")[0].strip()
    return value or None


class RequestGuard:
    """
    Authorizes inbound requests.

    Usage:
        guard = RequestGuard(api_keys=["secret"], allowed_origins=[], rate_limiter=limiter)

        try:
            guard.authorize(GuardRequest.from_headers(request.headers, request.url.scheme))
        except GuardRejection as e:
            ...  # respond with e.status
    """

    def __init__(
        self,
        api_keys: Iterable[str],
        allowed_origins: Iterable[str],
        rate_limiter: RateLimiter,
        require_secure_transport: bool = True,
    ):
        self.api_keys = [key for key in api_keys if key]
        self.allowed_origins = set(allowed_origins)
        self.rate_limiter = rate_limiter
        self.require_secure_transport = require_secure_transport

        if not self.api_keys:
            logger.warning("No API keys configured; every request will be rejected")

    def authorize(self, request: GuardRequest) -> RateLimitDecision:
        """
        Run all checks in order.

        Returns the rate-limit decision on success; raises GuardRejection on
        the first failing check.
        """
        self.check_transport(request)
        self.check_credential(request)
        decision = self.check_rate_limit(request)
        self.check_origin(request)
        return decision

    def check_transport(self, request: GuardRequest) -> None:
        if self.require_secure_transport and not request.is_secure:
            raise GuardRejection(RejectionKind.INSECURE_TRANSPORT, "HTTPS is required")

    def check_credential(self, request: GuardRequest) -> None:
        if not self._key_allowed(request.api_key):
            logger.info(f"Rejected request from {request.client_address}: bad or missing API key")
            raise GuardRejection(RejectionKind.UNAUTHORIZED, "Missing or invalid API key")

    def check_rate_limit(self, request: GuardRequest) -> RateLimitDecision:
        decision = self.rate_limiter.check_and_increment(request.client_address)
        if not decision.allowed:
            logger.info(f"Rate limited client {request.client_address}")
            raise GuardRejection(
                RejectionKind.RATE_LIMITED,
                "Too many requests",
                retry_after=decision.retry_after,
            )
        return decision

    def check_origin(self, request: GuardRequest) -> None:
        # Non-browser callers send no Origin and are exempt
        if request.origin is None or "*" in self.allowed_origins:
            return
        if request.origin not in self.allowed_origins:
            raise GuardRejection(
                RejectionKind.ORIGIN_NOT_ALLOWED,
                f"Origin not allowed: {request.origin}",
            )

    def _key_allowed(self, presented: Optional[str]) -> bool:
        if not presented:
            return False
        presented_bytes = presented.encode()
        matched = False
        # Compare against every key so timing does not reveal which one matched
        for key in self.api_keys:
            if hmac.compare_digest(presented_bytes, key.encode()):
                matched = True
        return matched
