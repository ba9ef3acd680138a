"""
Download endpoint.
Serves stored files to anyone holding the URL, no authentication.
"""
from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import FileResponse

from httpupload.api.uploads import get_store
from httpupload.storage.write_once import ForbiddenPathError, WriteOnceStore

router = APIRouter()


@router.api_route("/{file_path:path}", methods=["GET", "HEAD"])
async def get_file(request: Request, store: WriteOnceStore = Depends(get_store)):
    """Return the stored file, 404 for directories and missing paths."""
    try:
        fullpath = store.resolve(request.scope["path"])
    except ForbiddenPathError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)

    if not fullpath.is_file():
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)

    return FileResponse(fullpath)
