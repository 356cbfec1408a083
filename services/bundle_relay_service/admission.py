"""
Admission pipeline for relay requests.

Every inbound request passes the same ordered gates: per-header rate limit,
API key authentication, global rate limit, JSON-RPC body validation and the
bundle-specific checks. The first failing gate produces a ``Rejected``
outcome; a request that clears all of them is ``Admitted``.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from services.bundle_relay_service.app.metrics import RelayMetrics
from services.bundle_relay_service.app.rate_limiter import RateLimitDecision, RelayRateLimiter
from services.bundle_relay_service.bundle_gas import BundleDecodeError, sum_bundle_gas_limit
from services.bundle_relay_service.logging_utils import create_service_logger
from services.bundle_relay_service.protocols import CredentialStoreProtocol, ErrorReporterProtocol

logger = create_service_logger("bundle_relay.admission")

SEND_BUNDLE_METHOD = "eth_sendBundle"
ALLOWED_METHODS: tuple[str, ...] = (SEND_BUNDLE_METHOD,)

BEARER_PREFIX = "Bearer "


class RejectionKind(str, Enum):
    RATE_LIMITED = "rate_limited"
    UNAUTHORIZED = "unauthorized"
    BAD_REQUEST = "bad_request"
    INTERNAL_ERROR = "internal_error"

    @property
    def status_code(self) -> int:
        return _STATUS_CODES[self]


_STATUS_CODES = {
    RejectionKind.RATE_LIMITED: 429,
    RejectionKind.UNAUTHORIZED: 403,
    RejectionKind.BAD_REQUEST: 400,
    RejectionKind.INTERNAL_ERROR: 500,
}


@dataclass(frozen=True)
class Rejected:
    kind: RejectionKind
    reason: str
    message: str
    headers: dict[str, str] = field(default_factory=dict)

    @property
    def status_code(self) -> int:
        return self.kind.status_code


@dataclass(frozen=True)
class Admitted:
    payload: dict[str, Any]
    gas_limit: int | None = None

    @property
    def request_id(self) -> Any:
        return self.payload.get("id")

    @property
    def method(self) -> str:
        return self.payload["method"]


AdmissionResult = Admitted | Rejected


def extract_token(authorization: str | None) -> str:
    """Strip a leading ``Bearer `` from the Authorization header value."""
    if not authorization:
        return ""
    if authorization.startswith(BEARER_PREFIX):
        return authorization[len(BEARER_PREFIX) :]
    return authorization


def _reject_constant(name: str) -> Any:
    raise ValueError(f"non-standard JSON constant {name}")


def parse_body(body: bytes) -> dict[str, Any] | Rejected:
    """Decode the request body and check the JSON-RPC method against the allow list."""
    try:
        payload = json.loads(body, parse_constant=_reject_constant) if body else None
    except (ValueError, UnicodeDecodeError, RecursionError):
        payload = None
    if not isinstance(payload, dict):
        return Rejected(RejectionKind.BAD_REQUEST, "invalid_body", "invalid json body")

    method = payload.get("method")
    if not method:
        return Rejected(RejectionKind.BAD_REQUEST, "missing_method", "missing method")
    if not isinstance(method, str) or method not in ALLOWED_METHODS:
        return Rejected(
            RejectionKind.BAD_REQUEST,
            "disallowed_method",
            f"invalid method, only {','.join(ALLOWED_METHODS)} supported, "
            f"you provided: {method}",
        )
    return payload


def bundle_from_params(payload: dict[str, Any]) -> Any | Rejected:
    """Return ``params[0]`` of an eth_sendBundle call, or a rejection when absent."""
    params = payload.get("params")
    if not isinstance(params, list) or not params or not params[0]:
        return Rejected(RejectionKind.BAD_REQUEST, "missing_params", "missing params")
    return params[0]


def _rate_limited(reason: str, decision: RateLimitDecision) -> Rejected:
    return Rejected(
        RejectionKind.RATE_LIMITED,
        reason,
        "Too many requests, please try again later.",
        headers={"Retry-After": str(decision.retry_after_seconds)},
    )


class AdmissionPipeline:
    """Ordered admission gates shared by all requests.

    The only state shared across requests lives in the rate limiter and the
    metrics; the pipeline itself keeps nothing between calls.
    """

    def __init__(
        self,
        rate_limiter: RelayRateLimiter,
        credential_store: CredentialStoreProtocol,
        metrics: RelayMetrics,
        error_reporter: ErrorReporterProtocol,
    ) -> None:
        self._rate_limiter = rate_limiter
        self._credential_store = credential_store
        self._metrics = metrics
        self._error_reporter = error_reporter

    async def admit(self, authorization: str | None, body: bytes) -> AdmissionResult:
        decision = await self._rate_limiter.hit_pre_auth(authorization)
        if not decision.allowed:
            return _rate_limited("rate_limited_pre_auth", decision)

        rejection = await self.authenticate(authorization)
        if rejection is not None:
            return rejection

        decision = await self._rate_limiter.hit_global()
        if not decision.allowed:
            return _rate_limited("rate_limited_global", decision)

        payload = parse_body(body)
        if isinstance(payload, Rejected):
            return payload

        return self.check_bundle(payload)

    async def authenticate(self, authorization: str | None) -> Rejected | None:
        token = extract_token(authorization)
        if not token:
            return Rejected(
                RejectionKind.UNAUTHORIZED, "invalid_token", "invalid Authorization token"
            )
        try:
            owners = await self._credential_store.find_owners(token)
        except Exception as e:
            logger.error(f"Error querying credential store: {e}", exc_info=True)
            self._error_reporter.capture_exception(e, stage="authenticate")
            return Rejected(
                RejectionKind.INTERNAL_ERROR, "credential_store_error", "internal server error"
            )

        if len(owners) != 1:
            logger.info(f"Rejected Authorization token matching {len(owners)} accounts")
            return Rejected(
                RejectionKind.UNAUTHORIZED, "invalid_token", "invalid Authorization token"
            )
        return None

    def check_bundle(self, payload: dict[str, Any]) -> AdmissionResult:
        bundle = bundle_from_params(payload)
        if isinstance(bundle, Rejected):
            return bundle

        self._metrics.bundles_total.inc()
        try:
            gas_limit = sum_bundle_gas_limit(bundle)
        except BundleDecodeError as e:
            logger.warning(f"Error decoding bundle: {e}")
            return Rejected(
                RejectionKind.BAD_REQUEST, "undecodable_bundle", "unable to decode txs"
            )
        self._metrics.gas_limit.observe(gas_limit)
        return Admitted(payload=payload, gas_limit=gas_limit)
