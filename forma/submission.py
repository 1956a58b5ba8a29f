"""Submission processing: detect, authenticate, dispatch, record the outcome."""

from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

from forma.config import get_settings
from forma.fields import NONCE_FIELD_NAME
from forma.hooks import SUBMISSION_DATA, SUBMISSION_PROCESSED
from forma.notices import OutcomeKind, SubmissionOutcome
from forma.observability import span

if TYPE_CHECKING:
    from forma.core import Form
    from forma.request import RequestContext

logger = logging.getLogger(__name__)

NONCE_MISSING = "nonce missing"
NONCE_INVALID = "invalid nonce"


class SubmissionState(str, Enum):
    IDLE = "idle"
    DETECTED = "detected"
    TOKEN_MISSING = "token_missing"
    TOKEN_INVALID = "token_invalid"
    DISPATCHED = "dispatched"


@dataclass(frozen=True)
class SubmissionResult:
    state: SubmissionState
    outcome: SubmissionOutcome | None = None

    @property
    def success(self) -> bool:
        return self.outcome is not None and self.outcome.success

    def as_json(self) -> dict[str, Any]:
        """Structured body sent back to ajax callers."""
        message = self.outcome.message if self.outcome is not None else ""
        return {"success": self.success, "data": {"message": message}}


def _first(value: Any) -> Any:
    if isinstance(value, list):
        return value[0] if value else None
    return value


class SubmissionProcessor:
    """Runs once per call against one request; keeps no state between calls.

    Exceptions raised by the submit handler are not caught.
    """

    def __init__(self, form: Form) -> None:
        self.form = form

    async def run(self, ctx: RequestContext) -> SubmissionResult:
        form = self.form
        if not ctx.has(form.identity.submitted_field):
            return SubmissionResult(SubmissionState.IDLE)

        with span("forma.submission", form=form.slug):
            result = await self._process(ctx)

        ctx.set_outcome(result.outcome)
        await form.hooks.do_action(SUBMISSION_PROCESSED, form, result)
        return result

    async def _process(self, ctx: RequestContext) -> SubmissionResult:
        form = self.form
        messages = get_settings().messages

        if form.csrf_enabled:
            token = _first(ctx.get(NONCE_FIELD_NAME))
            if not token:
                logger.warning("Rejected submission of %s: nonce missing", form.slug)
                return _failed(SubmissionState.TOKEN_MISSING, messages.nonce_missing, NONCE_MISSING)
            if not form.csrf_provider.verify(str(token), form.nonce.action, ctx):
                logger.warning("Rejected submission of %s: invalid nonce", form.slug)
                return _failed(SubmissionState.TOKEN_INVALID, messages.nonce_invalid, NONCE_INVALID)

        data = await form.hooks.apply_filters(SUBMISSION_DATA, ctx.unslashed(), form)

        response: Any = False
        handler = form.config.submit_handler
        if handler is not None:
            response = handler(data)
            if inspect.isawaitable(response):
                response = await response
        else:
            logger.debug("Form %s has no submit handler", form.slug)

        if response:
            outcome = SubmissionOutcome(
                kind=OutcomeKind.SUCCESS,
                message=form.config.success_message or messages.success,
            )
        else:
            outcome = SubmissionOutcome(
                kind=OutcomeKind.ERROR,
                message=form.config.error_message or messages.error,
            )
        return SubmissionResult(SubmissionState.DISPATCHED, outcome)


def _failed(state: SubmissionState, message: str, reason: str) -> SubmissionResult:
    return SubmissionResult(
        state,
        SubmissionOutcome(kind=OutcomeKind.ERROR, message=message, reason=reason),
    )
