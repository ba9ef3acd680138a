"""
Upload URL signature verification.

Implements both token schemes of Prosody's mod_http_upload_external:

- v1: HMAC-SHA256 over "<path> <content-length>"
- v2: HMAC-SHA256 over "<path>\\0<content-length>\\0<content-type>"

The version is identified before anything is validated, so a request
carrying both tokens is only ever checked against v2. Supplying a good v1
token next to a bad v2 token therefore gets the request rejected.

The verifier performs no I/O and holds no mutable state; one instance is
shared by all requests.
"""
import hashlib
import hmac
import re
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional
from urllib.parse import parse_qsl

V1_ARG = "v"
V2_ARG = "v2"

# Largest value accepted for Content-Length (unsigned 64 bit)
MAX_CONTENT_LENGTH = 2**64 - 1

_CONTENT_LENGTH_RE = re.compile(r"[0-9]+")
_BAD_ESCAPE_RE = re.compile(r"%(?![0-9A-Fa-f]{2})")


class Verdict(Enum):
    """Outcome of a verification, valued with the matching HTTP status."""
    ACCEPTED = 200
    BAD_REQUEST = 400
    FORBIDDEN = 403
    METHOD_NOT_ALLOWED = 405

    @property
    def status_code(self) -> int:
        return self.value


@dataclass(frozen=True)
class SignedRequest:
    """The parts of a PUT request that take part in authentication."""
    method: str
    path: str
    query: str = ""
    content_length: Optional[str] = None
    content_type: Optional[str] = None


@dataclass(frozen=True)
class Verification:
    """
    Result of SignatureVerifier.verify.

    `reason` is meant for server-side logs and metrics only, clients never
    learn which check failed.
    """
    verdict: Verdict
    scheme: Optional[str] = None
    reason: Optional[str] = None

    @property
    def accepted(self) -> bool:
        return self.verdict is Verdict.ACCEPTED


def parse_form(query: str) -> Dict[str, str]:
    """
    Parse a raw query string into a dict keeping the first value of each key.

    Escapes that do not decode as UTF-8 are replaced, not rejected.

    Raises:
        ValueError: On a malformed percent-escape or a ';' separator
    """
    if _BAD_ESCAPE_RE.search(query):
        raise ValueError("invalid percent-escape in query")
    if ";" in query:
        raise ValueError("invalid semicolon separator in query")

    form: Dict[str, str] = {}
    for key, value in parse_qsl(query, keep_blank_values=True, errors="replace"):
        form.setdefault(key, value)
    return form


def parse_content_length(value: Optional[str]) -> Optional[str]:
    """Return the header text if it is a valid unsigned 64 bit integer, else None."""
    if value is None or not _CONTENT_LENGTH_RE.fullmatch(value):
        return None
    if int(value) > MAX_CONTENT_LENGTH:
        return None
    return value


def _hmac_hex(secret: str, payload: str) -> str:
    return hmac.new(
        secret.encode("utf-8"),
        payload.encode("utf-8"),
        hashlib.sha256
    ).hexdigest()


def sign_v1(secret: str, path: str, content_length) -> str:
    """Compute the v1 token an issuer hands out for `path` and a body size."""
    return _hmac_hex(secret, f"{path} {content_length}")


def sign_v2(secret: str, path: str, content_length, content_type: str = "") -> str:
    """Compute the v2 token, which also binds the declared content type."""
    return _hmac_hex(secret, f"{path}\0{content_length}\0{content_type or ''}")


class SignatureVerifier:
    """Checks upload requests against the shared secret."""

    def __init__(self, secret: str):
        self._secret = secret

    def __repr__(self) -> str:
        return f"{type(self).__name__}(secret=***)"

    def verify(self, request: SignedRequest) -> Verification:
        """
        Decide whether a request was signed by the issuer.

        Args:
            request: Method, path, raw query and headers of the request

        Returns:
            Verification carrying the verdict, the scheme that was evaluated
            (if any) and an internal rejection reason
        """
        if request.method.upper() != "PUT":
            return Verification(Verdict.METHOD_NOT_ALLOWED, reason="method")

        try:
            form = parse_form(request.query)
        except ValueError:
            return Verification(Verdict.BAD_REQUEST, reason="form")

        # Identify the version first, then validate only that one
        if form.get(V2_ARG):
            scheme, token = V2_ARG, form[V2_ARG]
        elif form.get(V1_ARG):
            scheme, token = V1_ARG, form[V1_ARG]
        else:
            return Verification(Verdict.FORBIDDEN, reason="missing_token")

        content_length = parse_content_length(request.content_length)
        if content_length is None:
            return Verification(Verdict.FORBIDDEN, scheme=scheme, reason="content_length")

        if scheme == V2_ARG:
            expected = sign_v2(self._secret, request.path, content_length, request.content_type or "")
        else:
            expected = sign_v1(self._secret, request.path, content_length)

        if not hmac.compare_digest(expected.encode("ascii"), token.encode("utf-8")):
            return Verification(Verdict.FORBIDDEN, scheme=scheme, reason="mismatch")

        return Verification(Verdict.ACCEPTED, scheme=scheme)
