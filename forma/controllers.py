"""Litestar entry points: the ajax endpoint and a render helper for pages."""

from __future__ import annotations

from typing import TYPE_CHECKING

from litestar import Controller, Request, Router, route
from litestar.exceptions import NotFoundException
from litestar.response import Response
from markupsafe import Markup

from forma.ajax import AjaxRouter, router as default_router
from forma.request import RequestContext

if TYPE_CHECKING:
    from forma.core import Form


def _ajax_router(request: Request) -> AjaxRouter:
    """The router stored on app state, or the process-wide one."""
    return request.app.state.get("forma_ajax_router") or default_router


class AjaxController(Controller):
    """Processes ajax form submissions and answers with JSON only.

    Mounted by ``ajax_endpoint`` under the configured ``ajax_path``.
    """

    path = "/"

    @route("/", http_method=["GET", "POST"], status_code=200)
    async def dispatch(self, request: Request) -> Response:
        ctx = await RequestContext.from_request(request)
        action = ctx.get("action")
        if isinstance(action, list):
            action = action[0] if action else None

        router = _ajax_router(request)
        if not action or action not in router:
            raise NotFoundException(f"No form handles ajax action '{action}'")

        result = await router.dispatch(action, ctx)
        return Response(content=result.as_json(), media_type="application/json")


def ajax_endpoint(path: str) -> Router:
    """Mount the ajax controller at ``path``."""
    return Router(path=path, route_handlers=[AjaxController])


async def render_form(form: Form, request: Request) -> Markup:
    """Render ``form`` for a Litestar request, processing any submission first."""
    ctx = await RequestContext.from_request(request)
    return await form.render(ctx)
