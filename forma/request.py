"""Per-request state threaded through submission processing and notices."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from litestar import Request

    from forma.notices import SubmissionOutcome

_SLASHED = re.compile(r"\\(.?)", re.DOTALL)


def unslash(value: Any) -> Any:
    """Strip backslash escaping from strings, recursing into lists and dicts.

    ``\\'`` becomes ``'`` and ``\\\\`` becomes ``\\``.
    """
    if isinstance(value, str):
        return _SLASHED.sub(r"\1", value)
    if isinstance(value, list):
        return [unslash(v) for v in value]
    if isinstance(value, tuple):
        return tuple(unslash(v) for v in value)
    if isinstance(value, dict):
        return {k: unslash(v) for k, v in value.items()}
    return value


def _collapse(items) -> dict[str, Any]:
    """Turn multi-dict items into ``{name: value}``, repeated names becoming lists."""
    result: dict[str, Any] = {}
    for key, value in items:
        if key in result:
            existing = result[key]
            if isinstance(existing, list):
                existing.append(value)
            else:
                result[key] = [existing, value]
        else:
            result[key] = value
    return result


@dataclass
class RequestContext:
    """Inbound data for one request plus the outcome slot written during it.

    ``data`` holds query parameters merged with the submitted body (body
    wins), ``query`` only the query parameters. ``ajax_path`` is the endpoint
    the serving app mounted for ajax forms, when known.
    """

    data: dict[str, Any] = field(default_factory=dict)
    query: dict[str, Any] = field(default_factory=dict)
    session: dict[str, Any] = field(default_factory=dict)
    path: str = ""
    ajax_path: str = ""
    outcome: SubmissionOutcome | None = None

    def has(self, name: str) -> bool:
        return name in self.data

    def get(self, name: str, default: Any = None) -> Any:
        return self.data.get(name, default)

    def unslashed(self) -> dict[str, Any]:
        """Request data with backslash escaping removed, ready for a handler."""
        return unslash(dict(self.data))

    def set_outcome(self, outcome: SubmissionOutcome) -> None:
        self.outcome = outcome

    def pop_outcome(self) -> SubmissionOutcome | None:
        """Return the recorded outcome and clear it so it is shown only once."""
        outcome, self.outcome = self.outcome, None
        return outcome

    @classmethod
    async def from_request(cls, request: Request) -> RequestContext:
        """Build a context from a Litestar request."""
        query = _collapse(request.query_params.multi_items())
        data = dict(query)
        if request.method not in ("GET", "HEAD"):
            form_data = await request.form()
            data.update(_collapse(form_data.multi_items()))

        session = request.scope.get("session")
        if "session" in request.scope and not isinstance(session, dict):
            request.set_session({})
            session = request.scope["session"]
        if not isinstance(session, dict):
            session = {}

        return cls(
            data=data,
            query=query,
            session=session,
            path=request.url.path,
            ajax_path=request.app.state.get("forma_ajax_path", ""),
        )
