"""Routing of ajax submissions to the form that owns the action name."""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING, Awaitable, Callable

if TYPE_CHECKING:
    from forma.request import RequestContext
    from forma.submission import SubmissionResult

AjaxProcessor = Callable[["RequestContext"], Awaitable["SubmissionResult"]]


class AjaxRouter:
    """Maps ajax action names (form slugs) to submission processors."""

    def __init__(self) -> None:
        self._processors: dict[str, AjaxProcessor] = {}
        self._lock = threading.Lock()

    def register(self, action: str, processor: AjaxProcessor) -> None:
        with self._lock:
            processors = dict(self._processors)
            processors[action] = processor
            self._processors = processors

    def unregister(self, action: str) -> bool:
        with self._lock:
            if action not in self._processors:
                return False
            processors = dict(self._processors)
            del processors[action]
            self._processors = processors
            return True

    def __contains__(self, action: object) -> bool:
        return action in self._processors

    def actions(self) -> tuple[str, ...]:
        return tuple(self._processors)

    async def dispatch(self, action: str, ctx: RequestContext) -> SubmissionResult:
        """Run the processor bound to ``action``. Raises LookupError if none is."""
        try:
            processor = self._processors[action]
        except KeyError:
            available = ", ".join(sorted(self._processors)) or "(none)"
            raise LookupError(f"No form handles ajax action '{action}'. Registered: {available}")
        return await processor(ctx)


router = AjaxRouter()
