"""Exception handlers: HTML for browsers, JSON for ajax and API clients."""

import logging

from litestar import Request, Response
from litestar.exceptions import HTTPException
from litestar.status_codes import HTTP_500_INTERNAL_SERVER_ERROR
from markupsafe import escape

from forma import observability

logger = logging.getLogger(__name__)


def _accepts_html(request: Request) -> bool:
    """Check if the request accepts HTML responses (browser request)."""
    accept = request.headers.get("accept", "")
    return "text/html" in accept


def _html_error(status_code: int, message: str) -> Response:
    content = (
        "<!doctype html><html><head><title>Error</title></head><body>"
        f"<h1>{status_code}</h1><p>{escape(message)}</p></body></html>"
    )
    return Response(content=content, status_code=status_code, media_type="text/html")


def http_exception_handler(request: Request, exc: HTTPException) -> Response:
    """Handle HTTP exceptions with HTML for browsers, JSON for APIs."""
    status_code = exc.status_code
    detail = exc.detail if isinstance(exc.detail, str) else str(exc.detail)

    if _accepts_html(request):
        return _html_error(status_code, detail)

    return Response(
        content={"status_code": status_code, "detail": detail},
        status_code=status_code,
        media_type="application/json",
    )


def internal_server_error_handler(request: Request, exc: Exception) -> Response:
    """Handle unexpected exceptions, e.g. raised by a submit handler."""
    status_code = HTTP_500_INTERNAL_SERVER_ERROR
    if not observability.exception(
        "Unhandled exception on {method} {path}",
        method=request.method,
        path=request.url.path,
    ):
        logger.exception("Unhandled exception on %s %s", request.method, request.url.path)

    if _accepts_html(request):
        return _html_error(status_code, "An unexpected error occurred.")

    return Response(
        content={"status_code": status_code, "detail": "Internal Server Error"},
        status_code=status_code,
        media_type="application/json",
    )


EXCEPTION_HANDLERS = {
    HTTPException: http_exception_handler,
    Exception: internal_server_error_handler,
}
