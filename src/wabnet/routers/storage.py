"""Public object storage router - serves stored images under the public URL template."""

from __future__ import annotations

import mimetypes

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import Response

from wabnet.services.storage import ObjectStorage, StorageError, get_storage

router = APIRouter()


@router.get("/storage/v1/object/public/{bucket}/{path:path}")
async def get_public_object(
    bucket: str,
    path: str,
    storage: ObjectStorage = Depends(get_storage),
) -> Response:
    """
    Serve a stored object.

    Args:
        bucket: Bucket name (must be the configured image bucket)
        path: Object path inside the bucket

    Raises:
        HTTPException 404: If the bucket is unknown or the object is missing.
    """
    if bucket != storage.bucket:
        raise HTTPException(status_code=404, detail="Object not found")
    try:
        content = await storage.download(path)
    except StorageError as exc:
        raise HTTPException(status_code=404, detail="Object not found") from exc

    media_type = mimetypes.guess_type(path)[0] or "application/octet-stream"
    return Response(content=content, media_type=media_type)
