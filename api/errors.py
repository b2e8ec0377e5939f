"""Failure reasons shared by the sync and share layers."""

from enum import Enum


class SyncErrorReason(str, Enum):
    """Machine-distinguishable reasons a remote document operation did not succeed."""

    NOT_CONFIGURED = "not_configured"
    UNAUTHORIZED = "unauthorized"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    RATE_LIMITED = "rate_limited"
    MALFORMED_PAYLOAD = "malformed_payload"
    UNREACHABLE = "unreachable"
    CONFLICT = "conflict"


class TokenInvalidReason(str, Enum):
    """Why a share token failed validation."""

    NOT_FOUND = "not_found"
    REVOKED = "revoked"
    EXPIRED = "expired"


def reason_for_status(status_code: int, *, write: bool = False) -> SyncErrorReason:
    """Map an HTTP status from the remote document store to a failure reason.

    GitHub answers unauthenticated read throttling with 403, so a 403 on a
    read is a rate limit while a 403 on a write means missing scope.
    """
    if status_code == 401:
        return SyncErrorReason.UNAUTHORIZED
    if status_code == 403:
        return SyncErrorReason.FORBIDDEN if write else SyncErrorReason.RATE_LIMITED
    if status_code == 404:
        return SyncErrorReason.NOT_FOUND
    if status_code == 429:
        return SyncErrorReason.RATE_LIMITED
    return SyncErrorReason.UNREACHABLE
