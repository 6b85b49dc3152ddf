"""Opportunities API router - public listing, change stream, and admin save/delete endpoints."""

from __future__ import annotations

import asyncio
import logging

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile
from fastapi.responses import JSONResponse, StreamingResponse
from sqlalchemy.orm import Session

from wabnet.config import listing_config
from wabnet.database import get_db
from wabnet.errors import NotFoundError, OpportunityError, ValidationError
from wabnet.models.opportunity import TABLE_NAME
from wabnet.schemas.opportunity import (
    DeleteRequest,
    DeleteResponse,
    Opportunity,
    OpportunityResponse,
)
from wabnet.services.change_feed import ChangeFeed, format_sse, get_change_feed
from wabnet.services.opportunity_repository import OpportunityRepository
from wabnet.services.opportunity_service import (
    ImageUpload,
    OpportunityService,
    OpportunitySubmission,
)
from wabnet.services.storage import ObjectStorage, get_storage

logger = logging.getLogger(__name__)

router = APIRouter()


def _status_for(exc: OpportunityError) -> int:
    """Map a domain error onto its HTTP status code."""
    if isinstance(exc, ValidationError):
        return 400
    if isinstance(exc, NotFoundError):
        return 404
    return 500


def get_opportunity_service(
    db: Session = Depends(get_db),
    storage: ObjectStorage = Depends(get_storage),
    feed: ChangeFeed = Depends(get_change_feed),
) -> OpportunityService:
    """Dependency function wiring the service to the request's session."""
    return OpportunityService(OpportunityRepository(db, feed), storage)


@router.get("/opportunities", response_model=list[Opportunity])
def list_opportunities(db: Session = Depends(get_db)) -> list[Opportunity]:
    """
    List all opportunities.

    Returns:
        Opportunities ordered newest first.
    """
    rows = OpportunityRepository(db).list()
    return [Opportunity.model_validate(row) for row in rows]


@router.get("/opportunities/changes")
async def stream_changes(
    request: Request,
    feed: ChangeFeed = Depends(get_change_feed),
) -> StreamingResponse:
    """
    Stream opportunity change notifications as Server-Sent Events.

    Each insert, update or delete produces one ``event:``/``data:`` message;
    comment lines are sent as keep-alives while the table is quiet.
    """

    async def event_stream():
        subscription = feed.subscribe(TABLE_NAME)
        try:
            yield ": subscribed\n\n"
            while not await request.is_disconnected():
                try:
                    event = await asyncio.wait_for(
                        subscription.get(), timeout=listing_config.keepalive_seconds
                    )
                except asyncio.TimeoutError:
                    yield ": keep-alive\n\n"
                    continue
                except StopAsyncIteration:
                    break
                yield format_sse(event)
        finally:
            subscription.close()

    return StreamingResponse(
        event_stream(),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache"},
    )


@router.post("/admins/opportunities", response_model=OpportunityResponse)
async def save_opportunity(
    position: str | None = Form(None),
    description: str | None = Form(None),
    link: str | None = Form(None),
    is_edit: str | None = Form(None, alias="isEdit"),
    opportunity_id: str | None = Form(None, alias="id"),
    image: UploadFile | None = File(None),
    service: OpportunityService = Depends(get_opportunity_service),
) -> JSONResponse:
    """
    Create or edit an opportunity from a multipart admin form.

    Fields: position, description, link (optional), isEdit ("true"/"false"),
    id (required when editing) and image (file, required when creating).

    Returns:
        ``{success: true, opportunity}`` or ``{success: false, error}`` with
        status 400 (validation), 404 (unknown id) or 500 (upload/database).
    """
    upload: ImageUpload | None = None
    if image is not None and image.filename:
        upload = ImageUpload(
            filename=image.filename,
            content=await image.read(),
            content_type=image.content_type,
        )

    submission = OpportunitySubmission(
        position=position,
        description=description,
        link=link,
        is_edit=is_edit == "true",
        id=opportunity_id or None,
        image=upload,
    )

    try:
        saved = await service.save(submission)
    except OpportunityError as exc:
        return JSONResponse(
            status_code=_status_for(exc),
            content=OpportunityResponse(success=False, error=str(exc)).model_dump(
                mode="json", exclude_none=True
            ),
        )
    except Exception as exc:
        logger.exception("Opportunities save error")
        return JSONResponse(
            status_code=500,
            content=OpportunityResponse(success=False, error=str(exc) or "Unknown error").model_dump(
                mode="json", exclude_none=True
            ),
        )

    body = OpportunityResponse(success=True, opportunity=Opportunity.model_validate(saved))
    return JSONResponse(content=body.model_dump(mode="json", exclude={"error"}))


@router.post("/admins/opportunities-delete", response_model=DeleteResponse)
async def delete_opportunity(
    payload: DeleteRequest,
    service: OpportunityService = Depends(get_opportunity_service),
) -> JSONResponse:
    """
    Delete an opportunity and, best-effort, its image.

    Returns:
        ``{success: true}`` or ``{success: false, error}`` with status 400
        (missing id), 404 (unknown id) or 500 (database failure).
    """
    try:
        await service.delete(payload.id)
    except OpportunityError as exc:
        return JSONResponse(
            status_code=_status_for(exc),
            content=DeleteResponse(success=False, error=str(exc)).model_dump(),
        )
    except Exception as exc:
        logger.exception("Opportunities delete error")
        return JSONResponse(
            status_code=500,
            content=DeleteResponse(success=False, error=str(exc) or "Unknown error").model_dump(),
        )

    return JSONResponse(content=DeleteResponse(success=True).model_dump(exclude={"error"}))
