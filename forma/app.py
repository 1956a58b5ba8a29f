"""Litestar application factory wiring sessions, ajax routing and error handling."""

from __future__ import annotations

import hashlib
import logging
from typing import Any, Sequence

from litestar import Litestar
from litestar.middleware.session.client_side import CookieBackendConfig

from forma import observability
from forma.ajax import AjaxRouter
from forma.config import FormaSettings, get_settings
from forma.controllers import ajax_endpoint
from forma.exceptions import EXCEPTION_HANDLERS

logger = logging.getLogger(__name__)


def create_session_config(
    secret_key: str,
    max_age: int = 86400,
    secure: bool = False,
    cookie_name: str = "session",
) -> CookieBackendConfig:
    """Create a cookie-backed session config; nonces are bound to the session."""
    session_secret = hashlib.sha256(secret_key.encode()).digest()
    return CookieBackendConfig(
        secret=session_secret,
        key=cookie_name,
        max_age=max_age,
        httponly=True,
        secure=secure,
        samesite="lax",
    )


def create_app(
    route_handlers: Sequence[Any] = (),
    *,
    settings: FormaSettings | None = None,
    ajax_router: AjaxRouter | None = None,
) -> Litestar:
    """Create a Litestar app serving ``route_handlers`` plus the ajax endpoint."""
    settings = settings or get_settings()
    observability.configure(settings)

    session_config = create_session_config(settings.secret_key, secure=not settings.debug)
    app = Litestar(
        route_handlers=[ajax_endpoint(settings.ajax_path), *route_handlers],
        middleware=[session_config.middleware],
        exception_handlers=EXCEPTION_HANDLERS,
        debug=settings.debug,
    )
    app.state.forma_ajax_path = settings.ajax_path
    if ajax_router is not None:
        app.state.forma_ajax_router = ajax_router

    logger.debug("Forma app created with ajax endpoint at %s", settings.ajax_path)
    return observability.instrument_app(app)
