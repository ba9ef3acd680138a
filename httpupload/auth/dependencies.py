"""
FastAPI dependencies for authentication.
Provides verify_upload, which checks the upload URL signature of a PUT.
"""
import logging

from fastapi import HTTPException, Request

from httpupload.auth.signature import SignedRequest, SignatureVerifier, Verification
from httpupload.utils.logging import log_upload_rejected
from httpupload.utils.metrics import auth_rejections_total, uploads_total

logger = logging.getLogger(__name__)


def get_verifier(request: Request) -> SignatureVerifier:
    """Verifier built by create_app for this application."""
    return request.app.state.verifier


def signed_request_from(request: Request) -> SignedRequest:
    """Extract the signed parts of an incoming request."""
    return SignedRequest(
        method=request.method,
        # Decoded path, as the issuer signed it
        path=request.scope["path"],
        query=request.scope.get("query_string", b"").decode("latin-1"),
        content_length=request.headers.get("content-length"),
        content_type=request.headers.get("content-type"),
    )


async def verify_upload(request: Request) -> Verification:
    """
    FastAPI dependency that authenticates an upload request.

    Flow:
    1. Reject anything but PUT (405)
    2. Parse the query string (400 when malformed)
    3. Pick the v2 token if present, else the v1 token
    4. Check Content-Length and compare the HMAC (403 on any failure)

    The response never tells the client which check failed.

    Raises:
        HTTPException: 405, 400 or 403
    """
    signed = signed_request_from(request)
    verification = get_verifier(request).verify(signed)

    if not verification.accepted:
        status_code = verification.verdict.status_code
        auth_rejections_total.labels(reason=verification.reason or "unknown").inc()
        uploads_total.labels(outcome="rejected").inc()
        log_upload_rejected(
            logger,
            path=signed.path,
            status_code=status_code,
            reason=verification.reason,
            scheme=verification.scheme,
        )
        raise HTTPException(status_code=status_code)

    return verification
