"""CSRF protection middleware.

The real token is kept in a cookie signed with the CSRF key. Handlers hand out
masked copies of it, so the value sent to clients changes on every request
while still verifying against the same cookie.
"""

import base64
import binascii
import hmac
import logging
import secrets
from collections.abc import Iterable

from itsdangerous import BadSignature, URLSafeTimedSerializer
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import PlainTextResponse, Response
from starlette.types import ASGIApp

logger = logging.getLogger(__name__)

TOKEN_LENGTH = 32
SAFE_METHODS = frozenset({"GET", "HEAD", "OPTIONS", "TRACE"})
SIGNING_SALT = "corsguard.csrf"

ERROR_NO_COOKIE = "Forbidden - CSRF cookie not found"
ERROR_BAD_TOKEN = "Forbidden - CSRF token invalid"


def generate_token() -> bytes:
    """Generate a new real token."""
    return secrets.token_bytes(TOKEN_LENGTH)


def _xor(a: bytes, b: bytes) -> bytes:
    return bytes(x ^ y for x, y in zip(a, b, strict=True))


def mask_token(token: bytes) -> str:
    """Mask a real token with a one-time pad.

    Returns:
        URL-safe base64 of the pad followed by the padded token
    """
    pad = secrets.token_bytes(len(token))
    return base64.urlsafe_b64encode(pad + _xor(pad, token)).decode("ascii")


def unmask_token(masked: str) -> bytes | None:
    """Recover the real token from a masked one.

    Returns:
        The real token, or None if the value is malformed
    """
    try:
        raw = base64.urlsafe_b64decode(masked.encode("ascii"))
    except (UnicodeEncodeError, binascii.Error, ValueError):
        return None

    if len(raw) != TOKEN_LENGTH * 2:
        return None
    return _xor(raw[:TOKEN_LENGTH], raw[TOKEN_LENGTH:])


def csrf_token(request: Request) -> str | None:
    """Get a masked CSRF token for the current request.

    Returns None when the request did not pass through CSRFMiddleware.
    """
    token = getattr(request.state, "csrf_secret", None)
    if token is None:
        return None
    return mask_token(token)


class CSRFMiddleware(BaseHTTPMiddleware):
    """Reject unsafe requests under the protected paths without a valid token."""

    def __init__(
        self,
        app: ASGIApp,
        *,
        secret_key: str,
        cookie_name: str = "_csrf",
        header_name: str = "X-CSRF-Token",
        secure: bool = True,
        same_site: str = "lax",
        max_age: int = 12 * 60 * 60,
        protected_paths: Iterable[str] = ("/",),
    ):
        super().__init__(app)
        self.serializer = URLSafeTimedSerializer(secret_key, salt=SIGNING_SALT)
        self.cookie_name = cookie_name
        self.header_name = header_name
        self.secure = secure
        self.same_site = same_site
        self.max_age = max_age
        self.protected_paths = tuple(path.rstrip("/") for path in protected_paths)

    def is_protected(self, path: str) -> bool:
        return any(
            path == prefix or path.startswith(prefix + "/")
            for prefix in self.protected_paths
        )

    def load_cookie_token(self, request: Request) -> bytes | None:
        """Verify the signed cookie and return the real token it carries."""
        cookie = request.cookies.get(self.cookie_name)
        if not cookie:
            return None

        try:
            encoded = self.serializer.loads(cookie, max_age=self.max_age)
        except BadSignature as e:
            logger.debug(f"Discarding CSRF cookie: {e}")
            return None

        try:
            token = base64.urlsafe_b64decode(str(encoded).encode("ascii"))
        except (UnicodeEncodeError, binascii.Error, ValueError):
            return None
        return token if len(token) == TOKEN_LENGTH else None

    def set_cookie(self, response: Response, token: bytes) -> None:
        value = self.serializer.dumps(base64.urlsafe_b64encode(token).decode("ascii"))
        response.set_cookie(
            self.cookie_name,
            value,
            max_age=self.max_age,
            path="/",
            secure=self.secure,
            httponly=True,
            samesite=self.same_site,  # type: ignore[arg-type]
        )

    def reject(self, request: Request, reason: str) -> Response:
        client = request.client.host if request.client else "-"
        logger.warning(
            f"CSRF check failed for {request.method} {request.url.path} from {client}: {reason}"
        )
        response = PlainTextResponse(reason, status_code=403)
        response.headers["Vary"] = "Cookie"
        return response

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if not self.is_protected(request.url.path):
            return await call_next(request)

        token = self.load_cookie_token(request)
        issue_cookie = token is None

        if request.method not in SAFE_METHODS:
            if token is None:
                return self.reject(request, ERROR_NO_COOKIE)

            supplied = request.headers.get(self.header_name)
            candidate = unmask_token(supplied) if supplied else None
            if candidate is None or not hmac.compare_digest(candidate, token):
                return self.reject(request, ERROR_BAD_TOKEN)

        if token is None:
            token = generate_token()

        request.state.csrf_secret = token

        response = await call_next(request)
        if issue_cookie:
            self.set_cookie(response, token)
        response.headers.append("Vary", "Cookie")
        return response
