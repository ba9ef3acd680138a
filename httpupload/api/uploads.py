"""
Upload endpoint for pre-signed PUT requests.

Implements the external upload flow of XMPP servers:
1. The XMPP server hands the client a URL signed with the shared secret
2. The client PUTs the file body to that URL
3. The signature is verified, then the file is created exactly once

Security:
- v1/v2 HMAC signatures are checked before storage is touched
- Existing files are never overwritten (409 Conflict)
- Writes are confined to the storage root
"""
import logging
import time

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from starlette.requests import ClientDisconnect

from httpupload.auth.dependencies import verify_upload
from httpupload.auth.signature import Verification
from httpupload.storage.write_once import (
    ForbiddenPathError,
    PathConflictError,
    StorageError,
    WriteOnceStore,
)
from httpupload.utils.logging import (
    log_upload_conflict,
    log_upload_created,
    log_upload_failed,
    log_upload_rejected,
)
from httpupload.utils.metrics import upload_bytes_total, uploads_total

logger = logging.getLogger(__name__)

router = APIRouter()


def get_store(request: Request) -> WriteOnceStore:
    """Store built by create_app for this application."""
    return request.app.state.store


@router.put("/{file_path:path}", status_code=status.HTTP_201_CREATED)
async def put_file(
    request: Request,
    verification: Verification = Depends(verify_upload),
    store: WriteOnceStore = Depends(get_store)
):
    """
    Create a file from the request path and body.

    Returns 201 once the whole body is on disk, 409 if the path was already
    taken, 403 for the storage root and 500 on filesystem errors. A body
    that fails halfway is left on disk truncated.
    """
    path = request.scope["path"]
    start_time = time.time()

    try:
        size = await store.create_if_absent(path, request.stream())
    except PathConflictError:
        uploads_total.labels(outcome="conflict").inc()
        log_upload_conflict(logger, path=path, scheme=verification.scheme)
        raise HTTPException(status_code=status.HTTP_409_CONFLICT)
    except ForbiddenPathError as e:
        uploads_total.labels(outcome="rejected").inc()
        log_upload_rejected(
            logger,
            path=path,
            status_code=e.status_code,
            reason="path",
            scheme=verification.scheme,
        )
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN)
    except StorageError as e:
        uploads_total.labels(outcome="failed").inc()
        log_upload_failed(logger, path=path, error=str(e))
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)
    except ClientDisconnect:
        uploads_total.labels(outcome="failed").inc()
        log_upload_failed(logger, path=path, error="client disconnected", include_traceback=False)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)

    uploads_total.labels(outcome="created").inc()
    upload_bytes_total.inc(size)
    log_upload_created(
        logger,
        path=path,
        size_bytes=size,
        duration_ms=(time.time() - start_time) * 1000,
        scheme=verification.scheme,
    )

    return Response(status_code=status.HTTP_201_CREATED)
