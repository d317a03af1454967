import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

logger = logging.getLogger(__name__)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """
    Security response headers.

    The landing page loads the Facebook Pixel script and shows uploaded logos,
    so the CSP allows connect.facebook.net and facebook.com image beacons.
    """

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)

        csp_policy = (
            "default-src 'self'; "
            "script-src 'self' 'unsafe-inline' https://connect.facebook.net; "
            "style-src 'self' 'unsafe-inline'; "
            "img-src 'self' data: https:; "
            "font-src 'self' data:; "
            "connect-src 'self' https://www.facebook.com https://connect.facebook.net;"
        )

        response.headers["Content-Security-Policy"] = csp_policy
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "SAMEORIGIN"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"

        return response


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Logs `METHOD path status in Nms` for API requests."""

    def __init__(self, app, prefix: str = "/api"):
        super().__init__(app)
        self.prefix = prefix

    async def dispatch(self, request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        path = request.url.path
        if path.startswith(self.prefix):
            duration_ms = (time.perf_counter() - start) * 1000
            logger.info(f"{request.method} {path} {response.status_code} in {duration_ms:.0f}ms")
        return response
