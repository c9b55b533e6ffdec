"""Per-request cross-origin access decisions."""

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

from mailgate.access.matcher import OriginMatcher
from mailgate.access.policy import AccessPolicy

logger = logging.getLogger(__name__)

PATTERN_SAMPLE_SIZE = 5


@dataclass(frozen=True, slots=True)
class OriginVerdict:
    """Outcome of checking one request's origin against the policy."""

    allowed: bool
    origin: str | None = None
    reason: str | None = None


@dataclass(frozen=True, slots=True)
class PreflightResponse:
    """Status, headers and optional JSON body answering an OPTIONS request."""

    status_code: int
    headers: dict[str, str] = field(default_factory=dict)
    body: dict[str, Any] | None = None


class AccessGate:
    """Origin-based access control for the HTTP surface.

    An origin is allowed iff it matches at least one pattern of the current
    policy. There is no precedence and no deny list. The policy is replaced
    as a whole; each decision reads the reference once, so concurrent
    requests see either the old policy or the new one, never a mix.
    """

    def __init__(
        self,
        policy: AccessPolicy | None = None,
        matcher: OriginMatcher | None = None,
    ):
        self._policy = policy or AccessPolicy()
        self._matcher = matcher or OriginMatcher()

    @property
    def policy(self) -> AccessPolicy:
        return self._policy

    def replace_policy(self, policy: AccessPolicy) -> AccessPolicy:
        """Atomically install a new policy, returning the previous one."""
        previous, self._policy = self._policy, policy
        logger.info(f"Access policy replaced ({len(policy.origins)} origin patterns)")
        return previous

    def evaluate(self, origin: str | None, method: str | None = None) -> OriginVerdict:
        return self._evaluate(self._policy, origin, method)

    def _evaluate(
        self, policy: AccessPolicy, origin: str | None, method: str | None
    ) -> OriginVerdict:
        if not origin:
            return OriginVerdict(allowed=False, reason="No origin header provided")
        if method and method.upper() not in policy.methods:
            return OriginVerdict(
                allowed=False,
                origin=origin,
                reason=f"Method {method.upper()} not allowed",
            )
        if self._matcher.matches_any(origin, policy.origins):
            return OriginVerdict(allowed=True, origin=origin)
        return OriginVerdict(
            allowed=False,
            origin=origin,
            reason=f"Origin {origin} not in allowed list",
        )

    def cors_headers(
        self, verdict: OriginVerdict, policy: AccessPolicy | None = None
    ) -> dict[str, str]:
        """Access-control headers reflecting a verdict."""
        policy = policy or self._policy
        headers = {
            "Access-Control-Allow-Origin": (
                verdict.origin if verdict.allowed and verdict.origin else "null"
            ),
            "Access-Control-Allow-Methods": ", ".join(policy.methods),
            "Access-Control-Allow-Headers": ", ".join(policy.allowed_headers),
            "Vary": "Origin",
        }
        if policy.credentials:
            headers["Access-Control-Allow-Credentials"] = "true"
        if policy.max_age:
            headers["Access-Control-Max-Age"] = str(policy.max_age)
        return headers

    def handle_preflight(
        self, origin: str | None, request_method: str | None = None
    ) -> PreflightResponse:
        """Answer an OPTIONS request. Always produces a response."""
        policy = self._policy
        verdict = self._evaluate(policy, origin, request_method)
        headers = self.cors_headers(verdict, policy)

        if verdict.allowed:
            logger.info(f"CORS preflight approved for origin: {verdict.origin}")
            return PreflightResponse(status_code=200, headers=headers)

        private = self._matcher.is_private_network(origin)
        logger.warning(
            f"CORS preflight rejected - Origin: {origin}, "
            f"Private Network: {private}, Reason: {verdict.reason}"
        )
        return PreflightResponse(
            status_code=403,
            headers=headers,
            body={
                "error": "CORS policy violation",
                "message": verdict.reason or "Origin not allowed",
                "origin": origin,
                "isPrivateNetwork": private,
                "allowedPatterns": list(policy.origins[:PATTERN_SAMPLE_SIZE]),
            },
        )

    def validate_origins(self, origins: Iterable[str]) -> dict[str, Any]:
        """Check a batch of origins and summarize the results."""
        policy = self._policy
        allowed: list[str] = []
        rejected: list[str] = []
        private_counts = {"allowed": 0, "rejected": 0}
        platform_counts = {"allowed": 0, "rejected": 0}

        for origin in origins:
            verdict = self._evaluate(policy, origin, None)
            bucket = "allowed" if verdict.allowed else "rejected"
            (allowed if verdict.allowed else rejected).append(origin)
            if self._matcher.is_private_network(origin):
                private_counts[bucket] += 1
            if "railway" in origin:
                platform_counts[bucket] += 1

        return {
            "allowed": allowed,
            "rejected": rejected,
            "summary": {
                "total": len(allowed) + len(rejected),
                "allowedCount": len(allowed),
                "rejectedCount": len(rejected),
                "privateNetworkCount": private_counts,
                "platformCount": platform_counts,
            },
        }
