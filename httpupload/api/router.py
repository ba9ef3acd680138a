"""
API router aggregator.
Includes all route modules.
"""
from fastapi import APIRouter, HTTPException, status

from httpupload.api import downloads, uploads

api_router = APIRouter()


# Nothing lives at the root, whatever the method
@api_router.api_route(
    "/",
    methods=["GET", "HEAD", "PUT", "POST", "DELETE", "PATCH", "OPTIONS"],
    include_in_schema=False
)
async def root():
    raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)


# Include route modules
api_router.include_router(downloads.router, tags=["downloads"])
api_router.include_router(uploads.router, tags=["uploads"])
