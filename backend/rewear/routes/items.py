"""
ReWear Backend — Listing Route Handlers
=========================================

What:  Catalog browsing, listing creation with images, availability toggle,
       deletion, and serving of stored listing images.
Who:   Called by the frontend Browse, ItemDetail and AddItem pages.

Request Flow (POST /api/items):
    1. Client sends multipart/form-data: listing fields plus `images` files
    2. Form fields are validated through ItemCreate
    3. Image bytes are read into memory (bounded by MAX_FILE_SIZE)
    4. CatalogService stores the images and inserts the listing
    5. 201 Created with the new listing
"""

import logging
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from fastapi.responses import FileResponse
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from rewear.auth import CurrentPrincipal
from rewear.database import get_db_session
from rewear.exceptions import NotFoundError, ValidationError
from rewear.schemas.common import ErrorResponse, MessageResponse
from rewear.schemas.item import (
    ItemAvailabilityUpdate,
    ItemCreate,
    ItemMutationResponse,
    ItemResponse,
)
from rewear.services.catalog_service import catalog_service, to_item_response
from rewear.services.media_service import media_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Items"])


def _form_validation_error(exc: PydanticValidationError) -> ValidationError:
    """Translate a pydantic error on the multipart form into our 400 envelope."""
    errors = exc.errors(include_url=False, include_context=False, include_input=False)
    first = errors[0]
    field = ".".join(str(part) for part in first["loc"]) or None
    return ValidationError(
        message=f"{field}: {first['msg']}" if field else first["msg"],
        field=field,
        context={"errors": [{"field": ".".join(map(str, e["loc"])), "message": e["msg"]} for e in errors]},
    )


@router.get(
    "/items",
    response_model=List[ItemResponse],
    summary="Browse the catalog",
    description=(
        "Listings in insertion order, oldest first. `search` matches title, "
        "description or any tag, case-insensitively."
    ),
)
async def list_items(
    category: Optional[str] = Query(default=None, description="Exact category match"),
    search: Optional[str] = Query(default=None, description="Free-text search"),
    approved: Optional[bool] = Query(default=None, description="Filter on moderation state"),
    db: AsyncSession = Depends(get_db_session),
) -> List[ItemResponse]:
    items = await catalog_service.list_items(
        db=db,
        category=category,
        search=search,
        approved=approved,
    )
    return [to_item_response(item) for item in items]


@router.get(
    "/items/{item_id}",
    response_model=ItemResponse,
    responses={404: {"description": "Item not found", "model": ErrorResponse}},
    summary="Get a single listing",
)
async def get_item(
    item_id: UUID,
    db: AsyncSession = Depends(get_db_session),
) -> ItemResponse:
    item = await catalog_service.get_item(db, item_id)
    return to_item_response(item)


@router.post(
    "/items",
    status_code=201,
    response_model=ItemMutationResponse,
    responses={
        400: {"description": "Invalid listing fields or images", "model": ErrorResponse},
        401: {"description": "Not logged in", "model": ErrorResponse},
    },
    summary="List an item for swapping",
)
async def create_item(
    principal: CurrentPrincipal,
    title: str = Form(...),
    description: str = Form(...),
    category: str = Form(...),
    item_type: str = Form(default="", alias="type"),
    size: str = Form(...),
    condition: str = Form(...),
    tags: Optional[str] = Form(default=None, description="JSON array or comma-separated"),
    points_value: Optional[int] = Form(default=None),
    images: Optional[List[UploadFile]] = File(default=None, description="Up to 5 images"),
    db: AsyncSession = Depends(get_db_session),
) -> ItemMutationResponse:
    """
    Create a listing owned by the caller.

    New listings are available immediately and wait for admin approval.
    """
    try:
        data = ItemCreate(
            title=title,
            description=description,
            category=category,
            type=item_type,
            size=size,
            condition=condition,
            tags=tags,
            points_value=points_value,
        )
    except PydanticValidationError as e:
        raise _form_validation_error(e)

    uploads = []
    for upload in images or []:
        try:
            content = await upload.read()
            # Browsers send an empty part when no file was chosen
            if not upload.filename and not content:
                continue
            uploads.append((upload.filename or "upload.jpg", content, upload.size))
        finally:
            await upload.close()

    logger.info("Received listing from %s with %d image(s)", principal.id, len(uploads))

    item = await catalog_service.create_item(db, principal, data, uploads)
    return ItemMutationResponse(
        message="Item created successfully",
        item=to_item_response(item),
    )


@router.put(
    "/items/{item_id}",
    response_model=ItemMutationResponse,
    responses={
        403: {"description": "Not the uploader", "model": ErrorResponse},
        404: {"description": "Item not found", "model": ErrorResponse},
    },
    summary="Toggle a listing's availability",
)
async def update_item(
    item_id: UUID,
    changes: ItemAvailabilityUpdate,
    principal: CurrentPrincipal,
    db: AsyncSession = Depends(get_db_session),
) -> ItemMutationResponse:
    item = await catalog_service.set_availability(db, principal, item_id, changes.is_available)
    return ItemMutationResponse(
        message="Item updated successfully",
        item=to_item_response(item),
    )


@router.delete(
    "/items/{item_id}",
    response_model=MessageResponse,
    responses={
        403: {"description": "Not the uploader", "model": ErrorResponse},
        404: {"description": "Item not found", "model": ErrorResponse},
    },
    summary="Delete a listing",
)
async def delete_item(
    item_id: UUID,
    principal: CurrentPrincipal,
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await catalog_service.delete_item(db, principal, item_id)
    return MessageResponse(message="Item deleted successfully")


@router.get(
    "/files/{file_path:path}",
    summary="Serve stored listing images",
    responses={
        200: {"description": "Image file"},
        404: {"description": "File not found", "model": ErrorResponse},
    },
)
async def serve_file(file_path: str) -> FileResponse:
    """Stored images only; paths resolving outside STORAGE_ROOT are rejected."""
    full_path = media_service.resolve(file_path)
    if not full_path.is_file():
        raise NotFoundError(resource="file", resource_id=file_path)

    return FileResponse(
        path=str(full_path),
        headers={"Cache-Control": "public, max-age=86400"},
    )
