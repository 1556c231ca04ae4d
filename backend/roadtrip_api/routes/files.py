"""
Road Trip Planner Backend — Stored Image Route
===============================================

What:  GET /api/files/{path} serves images written by LocalImageStorage.
Who:   <img src> tags for trips created while IMAGE_STORAGE_BACKEND=local.

Security:
    Paths are resolved by LocalImageStorage.resolve(), which refuses
    anything outside STORAGE_ROOT (../ traversal) with a plain 404.
"""

import mimetypes

from fastapi import APIRouter, Depends
from fastapi.responses import FileResponse

from roadtrip_api.exceptions import NotFoundError
from roadtrip_api.schemas.common import ErrorResponse
from roadtrip_api.services.image_storage import (
    ImageStorage,
    LocalImageStorage,
    get_image_storage,
)

router = APIRouter(prefix="/api", tags=["Files"])


@router.get(
    "/files/{file_path:path}",
    responses={
        200: {"description": "Image file"},
        404: {"description": "File not found", "model": ErrorResponse},
    },
    summary="Serve a locally stored trip image",
)
async def serve_file(
    file_path: str,
    storage: ImageStorage = Depends(get_image_storage),
) -> FileResponse:
    path = storage.resolve(file_path) if isinstance(storage, LocalImageStorage) else None
    if path is None:
        raise NotFoundError(resource="file", resource_id=file_path, message="File not found")

    media_type = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
    return FileResponse(
        path=str(path),
        media_type=media_type,
        headers={"Cache-Control": "public, max-age=86400"},
    )
