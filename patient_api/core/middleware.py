"""
Custom middleware for the FastAPI application.
"""
import time
import logging
import json
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp
import uuid

from .phi import mask_phi

# Set up logging
logger = logging.getLogger(__name__)

class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Middleware for logging request and response information.

    Only method, path, status and timing are logged. Query strings and
    bodies can carry PHI and are left out.
    """
    def __init__(self, app: ASGIApp):
        super().__init__(app)

    async def dispatch(self, request: Request, call_next):
        """
        Process the request and log information.

        Args:
            request: The incoming request
            call_next: The next middleware or endpoint handler

        Returns:
            Response: The response from the next handler
        """
        request_id = str(uuid.uuid4())
        request.state.request_id = request_id

        logger.info(f"Request {request_id} started: {request.method} {request.url.path}")

        # Record request start time
        start_time = time.time()

        try:
            response = await call_next(request)

            process_time = time.time() - start_time

            response.headers["X-Process-Time"] = str(process_time)
            response.headers["X-Request-ID"] = request_id

            logger.info(
                f"Request {request_id} completed: {request.method} {request.url.path} "
                f"- Status: {response.status_code} - Duration: {process_time:.4f}s"
            )

            return response
        except Exception as e:
            process_time = time.time() - start_time
            logger.error(
                f"Request {request_id} failed: {request.method} {request.url.path} "
                f"- Error: {type(e).__name__} - Duration: {process_time:.4f}s"
            )
            raise


class PHIMaskingMiddleware(BaseHTTPMiddleware):
    """
    Masks PHI in JSON responses served to impersonation sessions.

    The impersonation flag is set on request.state by the authentication
    dependency, so it is read after the handler has run. Requests outside
    an impersonation session pass through untouched.
    """
    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)

        if not getattr(request.state, "impersonating", False):
            return response

        content_type = response.headers.get("content-type", "")
        if not content_type.startswith("application/json"):
            return response

        body = b"".join([chunk async for chunk in response.body_iterator])
        try:
            payload = json.loads(body)
        except ValueError:
            logger.warning(f"PHI masking skipped, response body is not valid JSON: {request.url.path}")
            return self._rebuild(response, body)

        masked = json.dumps(mask_phi(payload)).encode("utf-8")
        return self._rebuild(response, masked)

    @staticmethod
    def _rebuild(original: Response, body: bytes) -> Response:
        rebuilt = Response(content=body, status_code=original.status_code)
        rebuilt.raw_headers = [
            (key, value) for key, value in original.raw_headers
            if key.lower() != b"content-length"
        ] + [(b"content-length", str(len(body)).encode("latin-1"))]
        return rebuilt


def setup_middlewares(app):
    """
    Set up all custom middlewares for the application.

    Masking is added first so it sits inside the logging middleware.

    Args:
        app: FastAPI application instance
    """
    app.add_middleware(PHIMaskingMiddleware)
    app.add_middleware(RequestLoggingMiddleware)
