"""Remote sync endpoints: configuration, pull, push and diagnostics."""

import structlog
from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from ..dependencies import Services, get_note_store, get_notes_sync, get_services
from ..errors import SyncErrorReason
from ..models import (
    CreateDocumentRequest,
    PullResponse,
    PushResponse,
    SyncConfigRequest,
    SyncConfigResponse,
)
from ..observability import get_tracer
from ..services.note_store import NoteStore
from ..services.sync_adapter import RemoteSyncAdapter

logger = structlog.get_logger(__name__)
tracer = get_tracer(__name__)

router = APIRouter(prefix="/sync", tags=["sync"])


def _config(adapter: RemoteSyncAdapter) -> SyncConfigResponse:
    # The credential itself is never echoed back.
    return SyncConfigResponse(
        configured=adapter.is_configured,
        document_id=adapter.document_id,
        read_only=adapter.read_only,
    )


@router.get("/config", response_model=SyncConfigResponse)
async def get_config(adapter: RemoteSyncAdapter = Depends(get_notes_sync)):
    return _config(adapter)


@router.put("/config", response_model=SyncConfigResponse)
async def set_config(
    body: SyncConfigRequest, adapter: RemoteSyncAdapter = Depends(get_notes_sync)
):
    """Point sync at a document. Omitting the credential makes sync read-only."""
    adapter.configure(body.document_id.strip(), body.write_credential)
    return _config(adapter)


@router.delete("/config", response_model=SyncConfigResponse)
async def clear_config(services: Services = Depends(get_services)):
    services.push_debouncer.cancel()
    services.notes_sync.clear()
    return _config(services.notes_sync)


@router.post("/pull", response_model=PullResponse)
async def pull(
    merge: bool = Query(default=True, description="Keep local notes missing remotely"),
    adapter: RemoteSyncAdapter = Depends(get_notes_sync),
    store: NoteStore = Depends(get_note_store),
):
    """Fetch the remote collection and import it into the local store."""
    with tracer.start_as_current_span("sync_pull") as span:
        span.set_attribute("sync.merge", merge)

        result = await adapter.fetch()
        if not result.ok:
            logger.warning("sync_pull_failed", reason=result.reason)
            return PullResponse(ok=False, reason=result.reason, total=len(store.list_notes()))

        if result.reason is SyncErrorReason.NOT_FOUND:
            # Nothing has been pushed yet; leave the local collection alone.
            imported = 0
        else:
            imported = store.import_notes(result.items, merge=merge)
        total = len(store.list_notes())
        span.set_attribute("sync.imported", imported)
        logger.info("sync_pulled", imported=imported, total=total, fallback=result.fallback)
        return PullResponse(
            ok=True, fallback=result.fallback, reason=result.reason, imported=imported, total=total
        )


@router.post("/push", response_model=PushResponse)
async def push(services: Services = Depends(get_services)):
    """Save the whole collection now, replacing any pending debounced push."""
    with tracer.start_as_current_span("sync_push"):
        services.push_debouncer.cancel()
        result = await services.push_notes()
        return PushResponse(
            ok=result.ok,
            fallback=result.fallback,
            reason=result.reason,
            revision=result.revision,
            message=result.message,
        )


@router.post("/document", status_code=201)
async def create_document(
    body: CreateDocumentRequest, adapter: RemoteSyncAdapter = Depends(get_notes_sync)
):
    """Provision a new secret gist for the notes and start syncing to it."""
    result = await adapter.create_document(body.write_credential)
    if not result.ok:
        return JSONResponse(
            status_code=502,
            content={"ok": False, "reason": result.reason.value, "message": result.message},
        )
    return {"ok": True, "documentId": result.document_id, "url": result.message}


@router.get("/status")
async def status(adapter: RemoteSyncAdapter = Depends(get_notes_sync)):
    """Diagnostics about the configured document and credential."""
    return await adapter.describe()
