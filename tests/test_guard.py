"""
Tests for the request guard.
"""

import pytest

from toolgate.auth import (
    GuardRejection,
    GuardRequest,
    InMemoryRateLimiter,
    RejectionKind,
    RequestGuard,
    UNKNOWN_CLIENT,
)


def make_guard(limit: int = 100, **kwargs) -> RequestGuard:
    options = {
        "api_keys": ["key-one", "key-two"],
        "allowed_origins": ["https://app.example.com"],
        "rate_limiter": InMemoryRateLimiter(limit=limit),
    }
    options.update(kwargs)
    return RequestGuard(**options)


def secure_request(**kwargs) -> GuardRequest:
    options = {
        "api_key": "key-one",
        "client_address": "198.51.100.7",
        "forwarded_proto": "https",
    }
    options.update(kwargs)
    return GuardRequest(**options)


class TestGuardRequest:
    """Tests for building guard requests from headers."""

    def test_from_headers(self):
        request = GuardRequest.from_headers({
            "x-api-key": "abc",
            "x-forwarded-for": "203.0.113.9, 10.0.0.1",
            "x-forwarded-proto": "HTTPS",
            "origin": "https://app.example.com",
        })

        assert request.api_key == "abc"
        assert request.client_address == "203.0.113.9"
        assert request.forwarded_proto == "https"
        assert request.origin == "https://app.example.com"
        assert request.is_secure is True

    def test_missing_address_maps_to_unknown(self):
        request = GuardRequest.from_headers({"x-api-key": "abc"})
        assert request.client_address == UNKNOWN_CLIENT

    def test_real_ip_fallback(self):
        request = GuardRequest.from_headers({"x-real-ip": "192.0.2.44"})
        assert request.client_address == "192.0.2.44"

    def test_scheme_used_without_forwarded_proto(self):
        assert GuardRequest.from_headers({}, scheme="https").is_secure is True
        assert GuardRequest.from_headers({}, scheme="wss").is_secure is True
        assert GuardRequest.from_headers({}, scheme="http").is_secure is False

    def test_forwarded_proto_overrides_scheme(self):
        request = GuardRequest.from_headers({"x-forwarded-proto": "http"}, scheme="https")
        assert request.is_secure is False


class TestChecks:
    """Tests for each guard check."""

    def test_valid_request_passes(self):
        guard = make_guard()
        decision = guard.authorize(secure_request())

        assert decision.allowed is True
        assert decision.count == 1

    def test_insecure_transport_rejected(self):
        guard = make_guard()

        with pytest.raises(GuardRejection) as exc:
            guard.authorize(secure_request(forwarded_proto="http"))

        assert exc.value.kind == RejectionKind.INSECURE_TRANSPORT
        assert exc.value.status == 403

    def test_insecure_transport_checked_first(self):
        """Transport is rejected before credentials or rate limits are looked at."""
        limiter = InMemoryRateLimiter(limit=1)
        guard = make_guard(rate_limiter=limiter)

        with pytest.raises(GuardRejection) as exc:
            guard.authorize(secure_request(api_key=None, forwarded_proto=None))

        assert exc.value.kind == RejectionKind.INSECURE_TRANSPORT
        assert limiter.get_entry("198.51.100.7") is None

    def test_secure_transport_optional(self):
        guard = make_guard(require_secure_transport=False)
        assert guard.authorize(secure_request(forwarded_proto=None)).allowed

    @pytest.mark.parametrize("api_key", [None, "", "key-three", "KEY-ONE", "key-one "])
    def test_bad_credentials_rejected(self, api_key):
        guard = make_guard()

        with pytest.raises(GuardRejection) as exc:
            guard.authorize(secure_request(api_key=api_key, origin="https://app.example.com"))

        assert exc.value.kind == RejectionKind.UNAUTHORIZED
        assert exc.value.status == 401

    def test_any_listed_key_accepted(self):
        guard = make_guard()
        assert guard.authorize(secure_request(api_key="key-two")).allowed

    def test_empty_allow_list_rejects_everyone(self):
        guard = make_guard(api_keys=[])

        with pytest.raises(GuardRejection) as exc:
            guard.authorize(secure_request())

        assert exc.value.kind == RejectionKind.UNAUTHORIZED

    def test_unauthorized_does_not_consume_rate_limit(self):
        limiter = InMemoryRateLimiter(limit=5)
        guard = make_guard(rate_limiter=limiter)

        with pytest.raises(GuardRejection):
            guard.authorize(secure_request(api_key="wrong"))

        assert limiter.get_entry("198.51.100.7") is None

    def test_rate_limited(self):
        guard = make_guard(limit=2)
        guard.authorize(secure_request())
        guard.authorize(secure_request())

        with pytest.raises(GuardRejection) as exc:
            guard.authorize(secure_request())

        assert exc.value.kind == RejectionKind.RATE_LIMITED
        assert exc.value.status == 429
        assert exc.value.retry_after > 0

    def test_unknown_clients_share_a_bucket(self):
        guard = make_guard(limit=2)
        guard.authorize(secure_request(client_address=UNKNOWN_CLIENT))
        guard.authorize(secure_request(client_address=UNKNOWN_CLIENT, api_key="key-two"))

        with pytest.raises(GuardRejection) as exc:
            guard.authorize(secure_request(client_address=UNKNOWN_CLIENT))

        assert exc.value.kind == RejectionKind.RATE_LIMITED

    def test_disallowed_origin_rejected(self):
        guard = make_guard()

        with pytest.raises(GuardRejection) as exc:
            guard.authorize(secure_request(origin="https://evil.example.net"))

        assert exc.value.kind == RejectionKind.ORIGIN_NOT_ALLOWED
        assert exc.value.status == 403

    def test_allowed_origin_passes(self):
        guard = make_guard()
        assert guard.authorize(secure_request(origin="https://app.example.com")).allowed

    def test_missing_origin_passes(self):
        guard = make_guard(allowed_origins=[])
        assert guard.authorize(secure_request(origin=None)).allowed

    def test_wildcard_origin(self):
        guard = make_guard(allowed_origins=["*"])
        assert guard.authorize(secure_request(origin="https://anything.example")).allowed

    def test_rejection_to_dict(self):
        rejection = GuardRejection(RejectionKind.UNAUTHORIZED, "Missing or invalid API key")
        assert rejection.to_dict() == {
            "error": "Unauthorized",
            "detail": "Missing or invalid API key",
        }
