"""Share token lifecycle: mint, rotate, validate, count views, revoke.

The token collection is read once per manager and held in memory. Every
mutation writes the whole collection back through the tokens adapter, which
shares the notes document's last-writer-wins race: two processes minting or
revoking at the same time can drop each other's changes.
"""

from __future__ import annotations

import hmac
import secrets
from collections.abc import Callable
from datetime import datetime, timedelta

import structlog
from pydantic import ValidationError

from ..errors import TokenInvalidReason
from ..models import ShareToken, TokenValidation, now_utc
from ..models.share import DEFAULT_NOTE_TITLE
from ..observability import get_app_metrics
from .sync_adapter import RemoteSyncAdapter

logger = structlog.get_logger(__name__)

TOKEN_BYTES = 32


def generate_token() -> str:
    """64 hex characters from the OS CSPRNG."""
    return secrets.token_hex(TOKEN_BYTES)


class ShareTokenManager:
    """Single source of truth for which notes are publicly readable."""

    def __init__(self, adapter: RemoteSyncAdapter, clock: Callable[[], datetime] = now_utc):
        self._adapter = adapter
        self._clock = clock
        self._tokens: list[ShareToken] = []
        self._initialized = False
        self._metrics = get_app_metrics()

    @property
    def initialized(self) -> bool:
        return self._initialized

    async def initialize(self) -> None:
        """Load the collection from the remote document, the cache, or nothing."""
        if self._initialized:
            return

        source = "empty"
        items: list[dict] | None = None
        if self._adapter.is_configured:
            result = await self._adapter.fetch()
            if result.ok:
                items = result.items
                source = "cache" if result.fallback else "remote"
            else:
                logger.warning("share_tokens_fetch_failed", reason=result.reason)

        if items is None:
            items = self._adapter.cached_items(max_age=None)
            if items is not None:
                source = "stale_cache"

        self._tokens = self._parse(items or [])
        self._initialized = True
        logger.info("share_tokens_initialized", tokens=len(self._tokens), source=source)

    @staticmethod
    def _parse(items: list[dict]) -> list[ShareToken]:
        tokens = []
        for raw in items:
            try:
                tokens.append(ShareToken.model_validate(raw))
            except ValidationError as e:
                logger.warning("share_token_record_skipped", error=str(e))
        return tokens

    async def _persist(self, operation: str) -> None:
        result = await self._adapter.save([token.to_wire() for token in self._tokens])
        if not result.ok or result.fallback:
            logger.warning(
                "share_tokens_persist_degraded",
                operation=operation,
                ok=result.ok,
                reason=result.reason,
            )

    def _find(self, token: str) -> ShareToken | None:
        # Compare against every record so lookup time does not depend on the match position.
        candidate = token.encode("utf-8")
        match = None
        for record in self._tokens:
            if hmac.compare_digest(record.token.encode("utf-8"), candidate):
                match = record
        return match

    def _is_expired(self, record: ShareToken) -> bool:
        return record.expires_at is not None and record.expires_at <= self._clock()

    # ------------------------------------------------------------ operations

    async def create_token(
        self,
        note_id: str,
        note_title: str | None = None,
        expires_in: timedelta | None = None,
    ) -> ShareToken:
        """Mint a token for a note, rotating any token the note already has."""
        now = self._clock()
        record = ShareToken(
            token=generate_token(),
            note_id=note_id,
            note_title=note_title or DEFAULT_NOTE_TITLE,
            created_at=now,
            expires_at=now + expires_in if expires_in else None,
        )

        for i, existing in enumerate(self._tokens):
            if existing.note_id == note_id:
                self._tokens[i] = record
                rotated = True
                break
        else:
            self._tokens.append(record)
            rotated = False

        self._metrics.share_tokens_created.add(1, {"rotated": rotated})
        logger.info(
            "share_token_created",
            note_id=note_id,
            rotated=rotated,
            expires_at=record.expires_at.isoformat() if record.expires_at else None,
        )
        await self._persist("create")
        return record

    def validate_token(self, token: str) -> TokenValidation:
        """Check a token. Never raises; the result carries the failure reason."""
        record = self._find(token) if token else None

        if record is None:
            reason = TokenInvalidReason.NOT_FOUND
        elif self._is_expired(record):
            reason = TokenInvalidReason.EXPIRED
        elif record.revoked:
            reason = TokenInvalidReason.REVOKED
        else:
            return TokenValidation(
                valid=True,
                note_id=record.note_id,
                note_title=record.note_title,
                created_at=record.created_at,
            )

        self._metrics.share_validation_failures.add(1, {"reason": reason.value})
        logger.info("share_token_invalid", reason=reason.value)
        return TokenValidation(valid=False, reason=reason)

    async def increment_view(self, token: str) -> bool:
        """Count one view. Best effort: a lost increment is acceptable."""
        record = self._find(token)
        if record is None:
            logger.warning("share_view_unknown_token")
            return False

        record.view_count += 1
        self._metrics.share_views.add(1)
        await self._persist("increment_view")
        return True

    async def revoke(self, note_id: str) -> bool:
        """Revoke the note's token. Revoking twice is a successful no-op."""
        record = next((t for t in self._tokens if t.note_id == note_id), None)
        if record is None:
            logger.info("share_revoke_not_found", note_id=note_id)
            return False
        if record.revoked:
            logger.debug("share_revoke_already_revoked", note_id=note_id)
            return True

        record.revoked = True
        self._metrics.share_tokens_revoked.add(1)
        logger.info("share_token_revoked", note_id=note_id)
        await self._persist("revoke")
        return True

    def get_token(self, note_id: str) -> ShareToken | None:
        """The note's token while it is still active."""
        for record in self._tokens:
            if record.note_id == note_id and not record.revoked and not self._is_expired(record):
                return record
        return None

    def list_tokens(self) -> list[ShareToken]:
        return list(self._tokens)
