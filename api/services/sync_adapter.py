"""Whole-document synchronization against the remote Gist store.

The adapter reads and writes one JSON file inside one gist. Writes always
replace the whole file: there is no delta and no server-side version check,
so two processes saving concurrently race and the last write wins, losing the
other writer's changes entirely. Callers that want to detect this can pass the
``revision`` of their last fetch to :meth:`RemoteSyncAdapter.save`; the check
is a read-then-write and narrows the window without closing it.

Failures never raise out of the adapter. Expected remote errors, malformed
payloads, transport failures and timeouts all come back as a
:class:`~api.models.SyncResult` with a :class:`~api.errors.SyncErrorReason`.
"""

from __future__ import annotations

import hashlib
import time
from collections.abc import Callable
from typing import Any

import httpx
import structlog

from connectors.gist import GistAPIError, GistConnector, GistResponseError

from ..errors import SyncErrorReason, reason_for_status
from ..models import SyncResult, decode_payload, encode_payload
from ..models.sync import Collection, MalformedPayloadError
from ..observability import get_app_metrics, get_tracer
from ..storage import LocalStorage

logger = structlog.get_logger(__name__)
tracer = get_tracer(__name__)

DEFAULT_CACHE_TTL_SECONDS = 300.0


def revision_of(content: str | None) -> str | None:
    """Opaque revision token for a remote file's content."""
    if content is None:
        return None
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


class RemoteSyncAdapter:
    """Synchronize one collection with one file in a remote gist.

    A document id without a write credential is a valid, read-only setup.
    A local cache of the most recent payload backs both directions: ``fetch``
    falls back to it while it is fresher than ``cache_ttl_seconds``, and
    ``save`` always writes to it, so local edits survive any remote failure.
    """

    def __init__(
        self,
        connector: GistConnector,
        storage: LocalStorage,
        filename: str = "notes.json",
        collection: Collection = "notes",
        cache_ttl_seconds: float = DEFAULT_CACHE_TTL_SECONDS,
        description: str = "My Notes - synced from gistnotes",
        config_key: str | None = None,
        document_id: str | None = None,
        write_credential: str | None = None,
        clock: Callable[[], float] = time.time,
    ):
        self._connector = connector
        self._storage = storage
        self.filename = filename
        self.collection: Collection = collection
        self.cache_ttl_seconds = cache_ttl_seconds
        self.description = description
        self._config_key = config_key
        self._clock = clock
        self._metrics = get_app_metrics()

        self.document_id: str | None = document_id
        self.write_credential: str | None = write_credential or None
        self.revision: str | None = None

        # A saved runtime configuration takes precedence over the initial one.
        if config_key:
            saved = storage.get(config_key)
            if isinstance(saved, dict) and saved.get("documentId"):
                self.document_id = saved["documentId"]
                self.write_credential = saved.get("writeCredential") or None

    # ---------------------------------------------------------- configuration

    @property
    def is_configured(self) -> bool:
        return bool(self.document_id)

    @property
    def read_only(self) -> bool:
        return not self.write_credential

    @property
    def _cache_key(self) -> str:
        return f"sync-cache-{self.filename}"

    def configure(self, document_id: str, write_credential: str | None = None) -> None:
        """Point the adapter at a document. Without a credential it is read-only."""
        if self.document_id and self.document_id != document_id:
            # The cached payload belongs to the previous document
            self._storage.remove(self._cache_key)
        self.document_id = document_id
        self.write_credential = write_credential or None
        self.revision = None
        self._save_config()
        logger.info(
            "sync_configured",
            file=self.filename,
            document_id=document_id,
            read_only=self.read_only,
        )

    def clear(self) -> None:
        """Forget the document and credential."""
        self.document_id = None
        self.write_credential = None
        self.revision = None
        if self._config_key:
            self._storage.remove(self._config_key)
        logger.info("sync_config_cleared", file=self.filename)

    def _save_config(self) -> None:
        if not self._config_key:
            return
        try:
            self._storage.set(
                self._config_key,
                {"documentId": self.document_id, "writeCredential": self.write_credential},
            )
        except OSError as e:
            logger.error("sync_config_persist_failed", file=self.filename, error=str(e))

    # ------------------------------------------------------------------ cache

    def _write_cache(self, content: str) -> bool:
        try:
            self._storage.set(self._cache_key, {"payload": content, "cachedAt": self._clock()})
        except OSError as e:
            logger.error("sync_cache_write_failed", file=self.filename, error=str(e))
            return False
        return True

    def cached_items(self, max_age: float | None = None) -> list[dict] | None:
        """Items from the local cache, or ``None`` when absent or older than ``max_age``."""
        cached = self._storage.get(self._cache_key)
        if not isinstance(cached, dict) or not isinstance(cached.get("payload"), str):
            return None

        if max_age is not None:
            age = self._clock() - float(cached.get("cachedAt") or 0)
            if age > max_age:
                logger.debug("sync_cache_stale", file=self.filename, age_seconds=round(age, 1))
                return None

        try:
            return decode_payload(cached["payload"], self.collection).items
        except MalformedPayloadError as e:
            logger.warning("sync_cache_corrupt", file=self.filename, error=str(e))
            return None

    def _fetch_fallback(self, reason: SyncErrorReason, message: str) -> SyncResult:
        items = self.cached_items(max_age=self.cache_ttl_seconds)
        if items is None:
            logger.error(
                "sync_fetch_failed", file=self.filename, reason=reason.value, error=message
            )
            return SyncResult.failure(reason, message)

        self._metrics.sync_fallbacks.add(1, {"operation": "fetch", "reason": reason.value})
        logger.warning(
            "sync_fetch_fallback",
            file=self.filename,
            reason=reason.value,
            error=message,
            items=len(items),
        )
        return SyncResult(ok=True, items=items, fallback=True, reason=reason, message=message)

    def _save_fallback(self, content: str, reason: SyncErrorReason, message: str) -> SyncResult:
        if not self._write_cache(content):
            return SyncResult.failure(reason, f"{message}; local cache write failed")

        self._metrics.sync_fallbacks.add(1, {"operation": "save", "reason": reason.value})
        logger.warning("sync_save_fallback", file=self.filename, reason=reason.value, error=message)
        return SyncResult(
            ok=True, fallback=True, reason=reason, message=f"Saved locally: {message}"
        )

    # ----------------------------------------------------------------- remote

    def _file_content(self, gist: dict[str, Any]) -> str | None:
        files = gist.get("files") or {}
        if not isinstance(files, dict):
            raise MalformedPayloadError("Gist files is not an object")
        entry = files.get(self.filename) or {}
        if not isinstance(entry, dict):
            raise MalformedPayloadError(f"Gist entry for {self.filename} is not an object")
        if entry.get("truncated"):
            logger.warning("sync_remote_file_truncated", file=self.filename)
        content = entry.get("content")
        if content is not None and not isinstance(content, str):
            raise MalformedPayloadError(f"Content of {self.filename} is not text")
        return content

    async def fetch(self) -> SyncResult:
        """Read the remote collection, degrading to the local cache on failure."""
        if not self.is_configured:
            return SyncResult.failure(SyncErrorReason.NOT_CONFIGURED, "Document ID not configured")

        with tracer.start_as_current_span("sync.fetch") as span:
            span.set_attribute("sync.file", self.filename)
            self._metrics.sync_fetches.add(1, {"file": self.filename})

            try:
                gist = await self._connector.get_gist(
                    self.document_id, token=self.write_credential
                )
                content = self._file_content(gist)
            except GistAPIError as e:
                reason = reason_for_status(e.status_code)
                span.set_attribute("sync.reason", reason.value)
                if reason is SyncErrorReason.NOT_FOUND:
                    cached = self.cached_items(max_age=self.cache_ttl_seconds)
                    if cached is not None:
                        return self._fetch_fallback(reason, str(e))
                    logger.info("sync_document_not_found", file=self.filename)
                    return SyncResult(
                        ok=True, reason=reason, message="Document not found; nothing synced yet"
                    )
                return self._fetch_fallback(reason, str(e))
            except httpx.HTTPError as e:
                span.set_attribute("sync.reason", SyncErrorReason.UNREACHABLE.value)
                return self._fetch_fallback(SyncErrorReason.UNREACHABLE, str(e) or type(e).__name__)
            except (GistResponseError, MalformedPayloadError) as e:
                span.set_attribute("sync.reason", SyncErrorReason.MALFORMED_PAYLOAD.value)
                return self._fetch_fallback(SyncErrorReason.MALFORMED_PAYLOAD, str(e))

            if not content:
                logger.info("sync_remote_file_empty", file=self.filename)
                self.revision = revision_of(content)
                return SyncResult(ok=True, revision=self.revision)

            try:
                decoded = decode_payload(content, self.collection)
            except MalformedPayloadError as e:
                span.set_attribute("sync.reason", SyncErrorReason.MALFORMED_PAYLOAD.value)
                return self._fetch_fallback(SyncErrorReason.MALFORMED_PAYLOAD, str(e))

            self._write_cache(content)
            self.revision = revision_of(content)
            span.set_attribute("sync.items", len(decoded.items))

            logger.info(
                "sync_fetched",
                file=self.filename,
                items=len(decoded.items),
                shape=decoded.shape,
                schema_version=decoded.schema_version,
            )
            return SyncResult(ok=True, items=decoded.items, revision=self.revision)

    async def save(self, items: list[dict], expected_revision: str | None = None) -> SyncResult:
        """Overwrite the remote file with the whole collection.

        Any failure keeps the payload in the local cache and reports success
        with ``fallback`` set. With ``expected_revision``, a remote file whose
        content changed since that revision is left untouched and the result
        is a ``conflict`` failure.
        """
        content = encode_payload(items, self.collection)

        if not self.is_configured:
            return self._save_fallback(
                content, SyncErrorReason.NOT_CONFIGURED, "Document ID not configured"
            )
        if not self.write_credential:
            return self._save_fallback(
                content, SyncErrorReason.UNAUTHORIZED, "Write credential required for saving"
            )

        with tracer.start_as_current_span("sync.save") as span:
            span.set_attribute("sync.file", self.filename)
            span.set_attribute("sync.items", len(items))
            self._metrics.sync_saves.add(1, {"file": self.filename})

            try:
                if expected_revision is not None:
                    gist = await self._connector.get_gist(
                        self.document_id, token=self.write_credential
                    )
                    current = revision_of(self._file_content(gist))
                    if current != expected_revision:
                        logger.warning(
                            "sync_save_conflict",
                            file=self.filename,
                            expected=expected_revision,
                            current=current,
                        )
                        return SyncResult(
                            ok=False,
                            reason=SyncErrorReason.CONFLICT,
                            revision=current,
                            message="Remote document changed since last fetch",
                        )

                await self._connector.update_gist_file(
                    self.document_id,
                    self.filename,
                    content,
                    token=self.write_credential,
                    description=self.description,
                )
            except GistAPIError as e:
                reason = reason_for_status(e.status_code, write=True)
                span.set_attribute("sync.reason", reason.value)
                return self._save_fallback(content, reason, str(e))
            except httpx.HTTPError as e:
                span.set_attribute("sync.reason", SyncErrorReason.UNREACHABLE.value)
                return self._save_fallback(
                    content, SyncErrorReason.UNREACHABLE, str(e) or type(e).__name__
                )
            except (GistResponseError, MalformedPayloadError) as e:
                span.set_attribute("sync.reason", SyncErrorReason.MALFORMED_PAYLOAD.value)
                return self._save_fallback(content, SyncErrorReason.MALFORMED_PAYLOAD, str(e))

            self._write_cache(content)
            self.revision = revision_of(content)

            logger.info("sync_saved", file=self.filename, items=len(items))
            return SyncResult(ok=True, revision=self.revision)

    async def create_document(self, write_credential: str) -> SyncResult:
        """Provision a new secret gist holding an empty collection and switch to it."""
        with tracer.start_as_current_span("sync.create_document"):
            try:
                gist = await self._connector.create_gist(
                    write_credential,
                    self.filename,
                    encode_payload([], self.collection),
                    description=self.description,
                )
            except GistAPIError as e:
                reason = reason_for_status(e.status_code, write=True)
                logger.error("sync_create_document_failed", reason=reason.value, error=str(e))
                return SyncResult.failure(reason, str(e))
            except httpx.HTTPError as e:
                logger.error("sync_create_document_failed", reason="unreachable", error=str(e))
                return SyncResult.failure(SyncErrorReason.UNREACHABLE, str(e) or type(e).__name__)
            except GistResponseError as e:
                logger.error(
                    "sync_create_document_failed", reason="malformed_payload", error=str(e)
                )
                return SyncResult.failure(SyncErrorReason.MALFORMED_PAYLOAD, str(e))

            document_id = gist.get("id")
            if not isinstance(document_id, str) or not document_id:
                return SyncResult.failure(
                    SyncErrorReason.MALFORMED_PAYLOAD, "Create response carried no id"
                )

            self.configure(document_id, write_credential)
            logger.info("sync_document_created", file=self.filename, document_id=document_id)
            return SyncResult(ok=True, document_id=document_id, message=gist.get("html_url"))

    async def describe(self) -> dict[str, Any]:
        """Diagnostics about the configured document and credential."""
        info: dict[str, Any] = {
            "configured": self.is_configured,
            "documentId": self.document_id,
            "readOnly": self.read_only,
            "file": self.filename,
            "cacheAvailable": self.cached_items() is not None,
        }

        if self.write_credential:
            try:
                user = await self._connector.get_authenticated_user(self.write_credential)
                info["credentialUser"] = user.get("login")
            except GistAPIError as e:
                info["credentialError"] = reason_for_status(e.status_code).value
            except httpx.HTTPError:
                info["credentialError"] = SyncErrorReason.UNREACHABLE.value
            except GistResponseError:
                info["credentialError"] = SyncErrorReason.MALFORMED_PAYLOAD.value

        if self.is_configured:
            try:
                gist = await self._connector.get_gist(
                    self.document_id, token=self.write_credential
                )
                owner = gist.get("owner")
                files = gist.get("files")
                info["owner"] = owner.get("login") if isinstance(owner, dict) else None
                info["updatedAt"] = gist.get("updated_at")
                info["files"] = sorted(files) if isinstance(files, dict) else []
            except GistAPIError as e:
                info["documentError"] = reason_for_status(e.status_code).value
            except httpx.HTTPError:
                info["documentError"] = SyncErrorReason.UNREACHABLE.value
            except GistResponseError:
                info["documentError"] = SyncErrorReason.MALFORMED_PAYLOAD.value

        return info
