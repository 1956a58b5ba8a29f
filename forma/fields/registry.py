"""Process-wide mapping of field type tags to renderer functions."""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING, Any, Callable, Mapping

from markupsafe import Markup

from forma.hooks import BUILD_FIELD, FIELD_TYPES, HookRegistry, hooks as global_hooks

if TYPE_CHECKING:
    from forma.core import Form

logger = logging.getLogger(__name__)

FieldDescriptor = Mapping[str, Any]
Renderer = Callable[[FieldDescriptor], str]


def _render_nothing(field: FieldDescriptor) -> Markup:
    return Markup("")


class FieldRegistry:
    """Maps a field ``type`` to the function that renders it.

    Writes swap in a new dict under a lock; reads work on whatever dict is
    current, so concurrent renders never see a half-applied registration.
    """

    def __init__(self, renderers: Mapping[str, Renderer] | None = None) -> None:
        self._renderers: dict[str, Renderer] = dict(renderers or {})
        self._lock = threading.Lock()

    def register(self, tag: str, render: Renderer) -> None:
        """Add a renderer for ``tag``, replacing any existing one."""
        with self._lock:
            renderers = dict(self._renderers)
            renderers[tag] = render
            self._renderers = renderers

    def unregister(self, tag: str) -> bool:
        """Remove the renderer for ``tag``. Returns True if one was registered."""
        with self._lock:
            if tag not in self._renderers:
                return False
            renderers = dict(self._renderers)
            del renderers[tag]
            self._renderers = renderers
            return True

    def get(self, tag: str) -> Renderer:
        """Return the renderer for ``tag``, or a renderer that outputs nothing."""
        return self._renderers.get(tag, _render_nothing)

    def tags(self) -> tuple[str, ...]:
        return tuple(self._renderers)

    def copy(self) -> FieldRegistry:
        return FieldRegistry(self._renderers)

    def __contains__(self, tag: object) -> bool:
        return tag in self._renderers

    async def list_types(self, hooks: HookRegistry | None = None) -> tuple[str, ...]:
        """Supported tags after the ``forma/field/types`` filter has run."""
        hooks = hooks or global_hooks
        types = await hooks.apply_filters(FIELD_TYPES, self.tags())
        return tuple(types)

    async def build(
        self,
        field: FieldDescriptor,
        form: Form | None = None,
        hooks: HookRegistry | None = None,
    ) -> Markup:
        """Render one field descriptor.

        Unknown types render as an empty string. The result always passes
        through the ``forma/build/field`` filter with ``(field, form)``.
        """
        if hooks is None:
            hooks = form.hooks if form is not None else global_hooks

        markup = Markup("")
        field_type = field.get("type")
        if field_type in await self.list_types(hooks):
            markup = Markup(self.get(field_type)(field))
        else:
            logger.debug("Skipping field with unsupported type %r", field_type)

        filtered = await hooks.apply_filters(BUILD_FIELD, markup, field, form)
        return Markup(filtered or "")


registry = FieldRegistry()


def field_type(tag: str) -> Callable[[Renderer], Renderer]:
    """Decorator to register a renderer on the global registry.

    Usage:
        @field_type("color")
        def render_color(field):
            ...
    """

    def decorator(func: Renderer) -> Renderer:
        registry.register(tag, func)
        return func

    return decorator
