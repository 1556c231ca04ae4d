"""
Road Trip Planner Backend — RoadTrip Route Handlers
====================================================

What:  Trip CRUD, feed, search, "my trips", saved trips, like/save toggles.
Why:   The main surface of the app.
How:   Create and update accept either a JSON body or multipart/form-data.
       In multipart requests, structured fields (route, tags, season,
       budget) arrive as JSON strings and images arrive as `images` files;
       read_trip_submission() turns both shapes into (dict, [UploadedImage]).

Request Flow (multipart create):
    1. read_trip_submission(): parse form, decode JSON fields, read files
    2. TripService.create_trip(): validate → upload all → persist
    3. 201 Created with the full trip
"""

import json
import logging
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, Response
from starlette.datastructures import UploadFile
from starlette.exceptions import HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from roadtrip_api.config import settings
from roadtrip_api.database import get_db_session
from roadtrip_api.dependencies import get_current_user, get_optional_user
from roadtrip_api.exceptions import ValidationError
from roadtrip_api.models.user import User
from roadtrip_api.schemas.common import ErrorResponse
from roadtrip_api.schemas.road_trip import (
    LikeToggleResponse,
    SaveToggleResponse,
    TripListResponse,
    TripResponse,
    TripSearchResponse,
)
from roadtrip_api.services.image_storage import ImageStorage, UploadedImage, get_image_storage
from roadtrip_api.services.trip_service import trip_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/roadtrips", tags=["RoadTrips"])

# Form fields that carry JSON-encoded structures
JSON_FORM_FIELDS = ("route", "tags", "season", "budget")
BOOLEAN_FORM_FIELDS = ("isPublic",)

WRITE_ERRORS = {
    400: {"description": "Invalid input or images", "model": ErrorResponse},
    401: {"description": "Not authenticated", "model": ErrorResponse},
    500: {"description": "Image upload failed", "model": ErrorResponse},
}
OWNER_ERRORS = {
    401: {"description": "Not authenticated", "model": ErrorResponse},
    403: {"description": "Not the trip owner", "model": ErrorResponse},
    404: {"description": "Trip not found", "model": ErrorResponse},
}


def _decode_form_field(name: str, raw: str) -> Any:
    try:
        return json.loads(raw)
    except ValueError as e:
        if name == "tags":
            return [tag for tag in raw.split(",") if tag.strip()]
        if name == "season":
            return [raw]
        if name == "route":
            raise ValidationError("Invalid route data format.", field="route") from e
        raise ValidationError(f"Invalid {name} data format.", field=name) from e


def check_upload_size(upload: UploadFile) -> None:
    max_size = settings.max_file_size
    if upload.size is not None and upload.size > max_size:
        raise ValidationError(
            message=f"File '{upload.filename}' exceeds maximum size of {max_size / (1024 * 1024):.0f}MB.",
            field="images",
            context={"size": upload.size, "max_size": max_size},
        )


async def read_trip_submission(request: Request) -> Tuple[Any, List[UploadedImage]]:
    """
    Normalizes a create/update request into (payload, images).

    The multipart parser stops at settings.max_upload_files files, and each
    file's spooled size is checked before its bytes are read into memory,
    so an oversized batch is rejected without buffering it.

    Raises:
        ValidationError: malformed JSON body or JSON form field, too many
            files, or a file over the size limit
    """
    content_type = request.headers.get("content-type", "")
    if not content_type.startswith("multipart/form-data"):
        body = await request.body()
        if not body:
            return {}, []
        try:
            return json.loads(body), []
        except ValueError as e:
            raise ValidationError("Request body must be valid JSON") from e

    try:
        form = await request.form(max_files=settings.max_upload_files)
    except HTTPException as e:
        # Starlette reports multipart limit violations (file count, part size) as a plain 400
        raise ValidationError(message=str(e.detail), field="images") from e

    data: Dict[str, Any] = {}
    images: List[UploadedImage] = []
    for key, value in form.multi_items():
        if isinstance(value, UploadFile):
            if key == "images":
                check_upload_size(value)
                images.append(
                    UploadedImage(
                        filename=value.filename or "upload",
                        content=await value.read(),
                        content_type=value.content_type or "",
                    )
                )
                await value.close()
            continue
        if key in JSON_FORM_FIELDS:
            data[key] = _decode_form_field(key, value)
        elif key in BOOLEAN_FORM_FIELDS:
            data[key] = value.strip().lower() in ("true", "1", "yes", "on")
        else:
            data[key] = value
    return data, images


# ══════════════════════════════════════════════════════════════════════════
# Collection Routes
# ══════════════════════════════════════════════════════════════════════════


@router.get("", response_model=TripListResponse, summary="Public trip feed")
async def list_trips(
    page: Optional[int] = Query(default=None, ge=1),
    limit: Optional[int] = Query(default=None, ge=1),
    db: AsyncSession = Depends(get_db_session),
) -> TripListResponse:
    return await trip_service.list_trips(db, page, limit)


@router.post(
    "",
    status_code=201,
    response_model=TripResponse,
    responses=WRITE_ERRORS,
    summary="Create a trip (JSON or multipart with up to 5 images)",
)
async def create_trip(
    request: Request,
    principal: User = Depends(get_current_user),
    storage: ImageStorage = Depends(get_image_storage),
    db: AsyncSession = Depends(get_db_session),
) -> TripResponse:
    data, images = await read_trip_submission(request)
    return await trip_service.create_trip(db, principal, data, images, storage)


@router.get(
    "/search",
    response_model=TripSearchResponse,
    responses={400: {"description": "Empty query", "model": ErrorResponse}},
    summary="Search public trips by title, description or stop name",
)
async def search_trips(
    q: Optional[str] = Query(default=None),
    db: AsyncSession = Depends(get_db_session),
) -> TripSearchResponse:
    return await trip_service.search_trips(db, q)


@router.get("/user/mytrips", response_model=TripListResponse, summary="Your trips")
async def my_trips(
    page: Optional[int] = Query(default=None, ge=1),
    limit: Optional[int] = Query(default=None, ge=1),
    principal: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> TripListResponse:
    return await trip_service.list_my_trips(db, principal, page, limit)


@router.get("/user/saved", response_model=TripListResponse, summary="Trips you saved")
async def saved_trips(
    page: Optional[int] = Query(default=None, ge=1),
    limit: Optional[int] = Query(default=None, ge=1),
    principal: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> TripListResponse:
    return await trip_service.list_saved_trips(db, principal, page, limit)


# ══════════════════════════════════════════════════════════════════════════
# Item Routes
# ══════════════════════════════════════════════════════════════════════════


@router.get(
    "/{trip_id}",
    response_model=TripResponse,
    responses={404: {"description": "Trip not found", "model": ErrorResponse}},
    summary="Get a trip (counts a view)",
)
async def get_trip(
    trip_id: UUID,
    viewer: Optional[User] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db_session),
) -> TripResponse:
    return await trip_service.get_trip(db, trip_id, viewer.id if viewer else None)


@router.put(
    "/{trip_id}",
    response_model=TripResponse,
    responses={**WRITE_ERRORS, **OWNER_ERRORS},
    summary="Update a trip you own",
)
async def update_trip(
    trip_id: UUID,
    request: Request,
    principal: User = Depends(get_current_user),
    storage: ImageStorage = Depends(get_image_storage),
    db: AsyncSession = Depends(get_db_session),
) -> TripResponse:
    data, images = await read_trip_submission(request)
    return await trip_service.update_trip(db, principal, trip_id, data, images, storage)


@router.delete(
    "/{trip_id}",
    status_code=204,
    response_class=Response,
    responses=OWNER_ERRORS,
    summary="Delete a trip you own",
)
async def delete_trip(
    trip_id: UUID,
    principal: User = Depends(get_current_user),
    storage: ImageStorage = Depends(get_image_storage),
    db: AsyncSession = Depends(get_db_session),
) -> Response:
    await trip_service.delete_trip(db, principal, trip_id, storage)
    return Response(status_code=204)


@router.put("/{trip_id}/like", response_model=LikeToggleResponse, summary="Like or unlike")
async def toggle_like(
    trip_id: UUID,
    principal: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> LikeToggleResponse:
    return await trip_service.toggle_like(db, principal, trip_id)


@router.put("/{trip_id}/save", response_model=SaveToggleResponse, summary="Save or unsave")
async def toggle_save(
    trip_id: UUID,
    principal: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> SaveToggleResponse:
    return await trip_service.toggle_save(db, principal, trip_id)
