"""Submission outcomes and the inline notice that reports them."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from markupsafe import Markup, escape

from forma.config import NAMESPACE, get_settings

if TYPE_CHECKING:
    from forma.core import Form
    from forma.request import RequestContext


class OutcomeKind(str, Enum):
    """Kinds of outcome, doubling as the notice CSS modifier."""

    SUCCESS = "success"
    ERROR = "error"


@dataclass(frozen=True)
class SubmissionOutcome:
    """Result of processing one submission.

    ``reason`` is a short machine-readable code for failures that happened
    before the handler ran (``"nonce missing"``, ``"invalid nonce"``).
    """

    kind: OutcomeKind
    message: str
    reason: str | None = None

    @property
    def success(self) -> bool:
        return self.kind is OutcomeKind.SUCCESS


def outcome_param(kind: OutcomeKind) -> str:
    return f"{NAMESPACE}/process/{kind.value}"


def outcome_query(outcome: SubmissionOutcome) -> dict[str, str]:
    """Query parameters that carry an outcome across a redirect."""
    return {outcome_param(outcome.kind): outcome.message}


def _outcome_from_query(ctx: RequestContext) -> SubmissionOutcome | None:
    for kind in (OutcomeKind.ERROR, OutcomeKind.SUCCESS):
        value = ctx.query.get(outcome_param(kind))
        if isinstance(value, list):
            value = value[0] if value else None
        if value:
            return SubmissionOutcome(kind=kind, message=Markup(str(value)).striptags())
    return None


def consume_outcome(ctx: RequestContext) -> SubmissionOutcome | None:
    """Take the outcome recorded in this request, falling back to the query string."""
    return ctx.pop_outcome() or _outcome_from_query(ctx)


def render_notice(ctx: RequestContext, form: Form | None = None) -> Markup:
    """Render the pending outcome as an inline notice plus a timed refresh.

    The refresh goes to the form's ``redirect_uri`` when it has one and
    reloads the current page otherwise. Returns empty markup when there is
    nothing to report.
    """
    outcome = consume_outcome(ctx)
    if outcome is None:
        return Markup("")

    delay = get_settings().notice_refresh_delay
    redirect_uri = form.config.redirect_uri if form is not None else ""
    refresh = f"{delay};url={redirect_uri}" if redirect_uri else str(delay)

    return Markup(
        f'<div class="notice notice-{outcome.kind.value} inline">'
        f"<p>{escape(outcome.message)}</p></div>"
        f'<meta http-equiv="refresh" content="{escape(refresh)}">'
    )
