"""Per-application service container and FastAPI dependency getters."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field

import httpx
import structlog
from fastapi import Request
from opentelemetry import trace

from connectors.gist import GistConnector

from .config import Settings
from .models import SyncResult
from .services.background_tasks import BackgroundTaskQueue
from .services.debounce import Debouncer
from .services.note_store import NoteStore
from .services.share_retrieval import ShareRetrievalService
from .services.share_tokens import ShareTokenManager
from .services.sync_adapter import RemoteSyncAdapter
from .storage import LocalStorage

logger = structlog.get_logger(__name__)

NOTES_FILENAME = "notes.json"
TOKENS_FILENAME = "share-tokens.json"
SYNC_CONFIG_KEY = "gist-config"


@dataclass
class Services:
    """Everything one running application owns. Built at startup, closed at shutdown."""

    settings: Settings
    connector: GistConnector
    storage: LocalStorage
    notes: NoteStore
    notes_sync: RemoteSyncAdapter
    tokens_sync: RemoteSyncAdapter
    tokens: ShareTokenManager
    task_queue: BackgroundTaskQueue
    retrieval: ShareRetrievalService
    push_debouncer: Debouncer = field(init=False)
    _push_lock: asyncio.Lock = field(init=False, repr=False)

    def __post_init__(self):
        self._push_lock = asyncio.Lock()
        self.push_debouncer = Debouncer(self.settings.sync_debounce_seconds, self.push_notes)
        self.notes.subscribe(self._schedule_push)

    @classmethod
    def build(
        cls, settings: Settings, transport: httpx.AsyncBaseTransport | None = None
    ) -> Services:
        """Wire the services together. Nothing touches the network here."""
        connector = GistConnector(
            base_url=settings.gist_api_url,
            timeout=settings.remote_timeout_seconds,
            transport=transport,
        )
        storage = LocalStorage(settings.data_dir)
        notes = NoteStore(storage)

        notes_sync = RemoteSyncAdapter(
            connector,
            storage,
            filename=NOTES_FILENAME,
            collection="notes",
            cache_ttl_seconds=settings.cache_ttl_seconds,
            config_key=SYNC_CONFIG_KEY,
            document_id=settings.gist_id,
            write_credential=settings.github_token,
        )
        tokens_sync = RemoteSyncAdapter(
            connector,
            storage,
            filename=TOKENS_FILENAME,
            collection="tokens",
            cache_ttl_seconds=settings.cache_ttl_seconds,
            description="Share tokens - gistnotes",
            document_id=settings.share_tokens_gist_id,
            write_credential=settings.github_token,
        )
        tokens = ShareTokenManager(tokens_sync)
        task_queue = BackgroundTaskQueue()

        return cls(
            settings=settings,
            connector=connector,
            storage=storage,
            notes=notes,
            notes_sync=notes_sync,
            tokens_sync=tokens_sync,
            tokens=tokens,
            task_queue=task_queue,
            retrieval=ShareRetrievalService(tokens, notes_sync, task_queue),
        )

    def _schedule_push(self, note_id: str | None) -> None:
        if self.notes_sync.is_configured and not self.notes_sync.read_only:
            self.push_debouncer.trigger(note_id)

    async def push_notes(self) -> SyncResult:
        """Write the whole note collection to the remote document.

        Pushes run one at a time. Each snapshots the collection only after
        acquiring the lock, so the last push to finish carries the newest state.
        """
        async with self._push_lock:
            snapshot = self.notes.snapshot()
            result = await self.notes_sync.save(snapshot)
        logger.info(
            "notes_pushed",
            ok=result.ok,
            fallback=result.fallback,
            reason=result.reason,
            notes=len(snapshot),
        )
        return result

    async def start(self) -> None:
        tracer = trace.get_tracer(__name__)
        with tracer.start_as_current_span("services.start") as span:
            await self.task_queue.start_worker()
            await self.tokens.initialize()
            span.set_attribute("sync.configured", self.notes_sync.is_configured)
            logger.info(
                "services_started",
                data_dir=str(self.settings.data_dir),
                sync_configured=self.notes_sync.is_configured,
                sync_read_only=self.notes_sync.read_only,
                tokens_configured=self.tokens_sync.is_configured,
            )

    async def close(self) -> None:
        """Flush the pending push, drain background work and release the HTTP client."""
        await self.push_debouncer.flush()
        await self.task_queue.stop_worker(drain=True)
        await self.connector.close()
        logger.info("services_closed")


def get_services(request: Request) -> Services:
    return request.app.state.services


def get_note_store(request: Request) -> NoteStore:
    return get_services(request).notes


def get_notes_sync(request: Request) -> RemoteSyncAdapter:
    return get_services(request).notes_sync


def get_token_manager(request: Request) -> ShareTokenManager:
    return get_services(request).tokens


def get_share_retrieval(request: Request) -> ShareRetrievalService:
    return get_services(request).retrieval
