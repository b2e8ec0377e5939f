"""Public share endpoints.

Every response carries permissive CORS headers so shared links can be read
from any origin. Invalid tokens get one generic message; whether the token
was unknown, revoked or expired is only logged.
"""

from datetime import timedelta
from typing import Any

import structlog
from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse, Response
from pydantic import ValidationError

from ..dependencies import Services, get_services
from ..models import ShareCreate, ShareToken
from ..observability import get_tracer

logger = structlog.get_logger(__name__)
tracer = get_tracer(__name__)

router = APIRouter(prefix="/share", tags=["share"])

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, DELETE, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
}

INVALID_LINK_MESSAGE = "This share link is invalid or has expired"


def _json(content: Any, status_code: int = 200) -> JSONResponse:
    return JSONResponse(content=content, status_code=status_code, headers=CORS_HEADERS)


def _share_url(services: Services, record: ShareToken) -> str:
    return f"{services.settings.share_base_url}/share/{record.token}"


@router.options("")
async def preflight():
    return Response(status_code=204, headers=CORS_HEADERS)


@router.post("")
async def create_share(request: Request, services: Services = Depends(get_services)):
    """Mint a share token for a note, replacing any token it already has."""
    try:
        raw = await request.json()
    except ValueError:
        raw = None

    if not isinstance(raw, dict) or not raw.get("noteId"):
        logger.info("share_create_rejected", cause="missing_note_id")
        return _json({"success": False, "error": "noteId required"}, 400)

    try:
        body = ShareCreate.model_validate(raw)
    except ValidationError as e:
        logger.info("share_create_rejected", cause="invalid_body", error=str(e))
        return _json({"success": False, "error": "Invalid share request"}, 400)

    with tracer.start_as_current_span("create_share") as span:
        span.set_attribute("note.id", body.note_id)
        expires_in = timedelta(seconds=body.expires_in) if body.expires_in else None

        record = await services.tokens.create_token(body.note_id, body.note_title, expires_in)
        return _json(
            {"success": True, "data": record.to_wire(), "url": _share_url(services, record)}, 201
        )


@router.get("")
async def validate_share(
    token: str | None = Query(default=None), services: Services = Depends(get_services)
):
    """Check a share token and count the view."""
    if not token:
        return _json({"valid": False, "error": "token required"}, 400)

    validation = services.tokens.validate_token(token)
    if not validation.valid:
        logger.info("share_link_rejected", reason=validation.reason.value)
        return _json({"valid": False, "error": INVALID_LINK_MESSAGE}, 404)

    services.task_queue.enqueue(services.tokens.increment_view, token)
    return _json(validation.model_dump(mode="json", by_alias=True, exclude_none=True))


@router.delete("")
async def revoke_share(
    note_id: str | None = Query(default=None, alias="noteId"),
    services: Services = Depends(get_services),
):
    """Revoke the note's share token. Revoking twice succeeds."""
    if not note_id:
        return _json({"success": False, "error": "noteId required"}, 400)

    if not await services.tokens.revoke(note_id):
        return _json({"success": False, "error": "No share token found for this note"}, 404)
    return _json({"success": True})


@router.get("/content")
async def shared_content(
    token: str | None = Query(default=None), services: Services = Depends(get_services)
):
    """The shared note itself, or a placeholder when its content cannot be loaded."""
    if not token:
        return _json({"valid": False, "error": "token required"}, 400)

    validation, view = await services.retrieval.resolve(token)
    if not validation.valid or view is None:
        logger.info("share_content_rejected", reason=validation.reason.value)
        return _json({"valid": False, "error": INVALID_LINK_MESSAGE}, 404)

    return _json({"valid": True, **view.to_wire()})


@router.get("/note/{note_id}")
async def note_share(note_id: str, services: Services = Depends(get_services)):
    """The active share token for a note, if it has one."""
    record = services.tokens.get_token(note_id)
    if record is None:
        return _json({"success": False, "error": "Note is not shared"}, 404)
    return _json({"success": True, "data": record.to_wire(), "url": _share_url(services, record)})
