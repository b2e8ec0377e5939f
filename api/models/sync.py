"""Sync payload codec and sync-related models.

Remote documents hold one JSON file per collection. Two shapes exist in the
wild: the versioned envelope ``{schemaVersion, updatedAt, notes: [...]}`` and
the legacy bare array written by early clients. ``decode_payload`` normalizes
both into a :class:`DecodedPayload` so callers never sniff shapes themselves.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Literal

from pydantic import Field

from ..errors import SyncErrorReason
from .common import CamelModel, now_utc

SCHEMA_VERSION = 1

Collection = Literal["notes", "tokens"]


class MalformedPayloadError(ValueError):
    """Raised when a remote file cannot be decoded as a sync payload."""


@dataclass
class DecodedPayload:
    """A payload after normalization at the deserialization boundary."""

    shape: Literal["envelope", "legacy_array"]
    items: list[dict] = field(default_factory=list)
    schema_version: int | None = None


def encode_payload(items: list[dict], collection: Collection) -> str:
    """Serialize a whole collection as a versioned envelope."""
    payload: dict = {
        "schemaVersion": SCHEMA_VERSION,
        "updatedAt": now_utc().isoformat(),
        collection: list(items),
    }
    if collection == "notes":
        payload["folders"] = []
    return json.dumps(payload, indent=2, ensure_ascii=False)


def decode_payload(text: str, collection: Collection) -> DecodedPayload:
    """Decode a remote file into a normalized payload.

    Unknown schema versions are tolerated; a missing collection key decodes
    to an empty collection.
    """
    try:
        raw = json.loads(text)
    except (TypeError, ValueError) as e:
        raise MalformedPayloadError(f"Invalid JSON: {e}") from e

    if isinstance(raw, list):
        return DecodedPayload(
            shape="legacy_array", items=[item for item in raw if isinstance(item, dict)]
        )

    if isinstance(raw, dict):
        items = raw.get(collection)
        if not isinstance(items, list):
            items = []
        version = raw.get("schemaVersion")
        return DecodedPayload(
            shape="envelope",
            items=[item for item in items if isinstance(item, dict)],
            schema_version=version if isinstance(version, int) else None,
        )

    raise MalformedPayloadError(f"Unexpected payload type: {type(raw).__name__}")


class SyncResult(CamelModel):
    """Outcome of a remote document operation.

    ``ok`` with ``fallback`` set means the operation degraded to the local
    cache; ``reason`` then says why the remote path was not used.
    """

    ok: bool
    items: list[dict] = Field(default_factory=list)
    fallback: bool = False
    reason: SyncErrorReason | None = None
    revision: str | None = None
    document_id: str | None = None
    message: str | None = None

    @classmethod
    def failure(cls, reason: SyncErrorReason, message: str | None = None) -> SyncResult:
        return cls(ok=False, reason=reason, message=message)


class SyncConfigRequest(CamelModel):
    document_id: str = Field(..., min_length=1)
    write_credential: str | None = None


class SyncConfigResponse(CamelModel):
    configured: bool
    document_id: str | None = None
    read_only: bool = True


class CreateDocumentRequest(CamelModel):
    write_credential: str = Field(..., min_length=1)


class PullResponse(CamelModel):
    ok: bool
    fallback: bool = False
    reason: SyncErrorReason | None = None
    imported: int = 0
    total: int = 0


class PushResponse(CamelModel):
    ok: bool
    fallback: bool = False
    reason: SyncErrorReason | None = None
    revision: str | None = None
    message: str | None = None
