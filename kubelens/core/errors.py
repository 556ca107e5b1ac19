"""Error types raised by the query core and the Kubernetes provider.

Every error carries a stable ``code`` so the tool layer can report failures
without string-matching messages:

Request errors (caller can fix the input):
    - ResourceTypeNotFoundError: alias is not served by the cluster
    - InvalidContinueTokenError: continue token cannot be decoded
    - ContinueTokenKindMismatchError: token was issued for another collection
    - InvalidPatternError: regex filter does not compile
    - InvalidSinceError: since value is neither a duration nor a timestamp

Upstream errors (cluster side):
    - UpstreamUnavailableError: discovery catalog could not be obtained
    - MetricsServerUnavailableError: metrics.k8s.io is not served
"""

from __future__ import annotations

from typing import List, Optional

__all__ = [
    "ContinueTokenKindMismatchError",
    "InvalidContinueTokenError",
    "InvalidPatternError",
    "InvalidSinceError",
    "KubelensError",
    "MetricsServerUnavailableError",
    "ResourceTypeNotFoundError",
    "UpstreamUnavailableError",
]


class KubelensError(Exception):
    """Base class for all kubelens errors."""

    code: str = "error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ResourceTypeNotFoundError(KubelensError):
    """Raised when an alias matches no resource type in the discovery catalog.

    Attributes:
        alias: The alias as supplied by the caller.
        api_version: The version hint ("" when none was given).
        candidates: Up to 10 sorted alias names that do exist.
        omitted: How many further candidates were left out of ``candidates``.
    """

    code = "resource_type_not_found"

    def __init__(self, alias: str, api_version: str, candidates: List[str], omitted: int) -> None:
        self.alias = alias
        self.api_version = api_version
        self.candidates = list(candidates)
        self.omitted = omitted

        msg = f"resource type {alias!r} not found"
        if api_version:
            msg += f" in API version {api_version!r}"
        else:
            msg += " in any available API version"
        if self.candidates:
            msg += f". Available resource types include: {', '.join(self.candidates)}"
            if omitted > 0:
                msg += f" (and {omitted} more)"
        super().__init__(msg)


class UpstreamUnavailableError(KubelensError):
    """Raised when the cluster's API surface cannot be discovered."""

    code = "upstream_unavailable"


class MetricsServerUnavailableError(UpstreamUnavailableError):
    code = "metrics_server_unavailable"

    def __init__(self, cause: str) -> None:
        super().__init__(
            f"Metrics server appears to be unavailable: {cause}\n\n"
            'You might need to install the "metrics-server" in your cluster.'
        )
        self.cause = cause


class InvalidContinueTokenError(KubelensError):
    code = "invalid_continue_token"


class ContinueTokenKindMismatchError(KubelensError):
    code = "continue_token_kind_mismatch"

    def __init__(self, expected: str, actual: str) -> None:
        super().__init__(f"continue token is not valid for {expected} metrics (issued for {actual or 'unknown'!r})")
        self.expected = expected
        self.actual = actual


class InvalidPatternError(KubelensError):
    """Raised when a regex filter pattern fails to compile.

    ``source`` is "include" or "exclude" depending on which list held the pattern.
    """

    code = "invalid_filter"

    def __init__(self, pattern: str, source: str, reason: str) -> None:
        super().__init__(f"invalid {source} regex pattern {pattern!r}: {reason}")
        self.pattern = pattern
        self.source = source
        self.reason = reason


class InvalidSinceError(KubelensError):
    code = "invalid_since"

    def __init__(self, raw: str, reason: Optional[str] = None) -> None:
        super().__init__(f"invalid since time format: {raw}")
        self.raw = raw
        self.reason = reason
