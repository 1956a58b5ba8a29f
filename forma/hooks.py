"""WordPress-like hook/filter bus used by Forma for extensibility.

Listeners can be sync or async callables. A form uses the global ``hooks``
registry unless another ``HookRegistry`` is passed to it.

Actions: Execute callbacks without modifying a value (side effects)
Filters: Execute callbacks that can modify a value (transformations)

Usage:
    from forma.hooks import hooks, action, filter, BUILD_FIELD

    @action("forma/after/form", priority=10)
    def add_footer(form, buffer):
        buffer.write("<p>Thanks!</p>")

    @filter(BUILD_FIELD)
    async def wrap_field(markup, field, form):
        return f"<div class='row'>{markup}</div>"

    await hooks.do_action("forma/before/render", form, buffer)
    types = await hooks.apply_filters("forma/field/types", types)
"""

import asyncio
from collections import defaultdict
from dataclasses import dataclass, field
from functools import wraps
from typing import Any, Callable, TypeVar

T = TypeVar("T")


@dataclass(order=True)
class HookHandler:
    """A registered hook handler with priority."""

    priority: int
    callback: Callable = field(compare=False)

    async def call(self, *args: Any, **kwargs: Any) -> Any:
        """Call the handler, handling both sync and async callbacks."""
        result = self.callback(*args, **kwargs)
        if asyncio.iscoroutine(result):
            return await result
        return result


class HookRegistry:
    """Registry of actions and filters keyed by hook name."""

    def __init__(self) -> None:
        self._actions: dict[str, list[HookHandler]] = defaultdict(list)
        self._filters: dict[str, list[HookHandler]] = defaultdict(list)

    def add_action(
        self,
        hook_name: str,
        callback: Callable[..., Any],
        priority: int = 10,
    ) -> None:
        """Register an action callback.

        Args:
            hook_name: Name of the action hook
            callback: Function to call when action is triggered
            priority: Lower numbers execute first (default: 10)
        """
        handler = HookHandler(priority=priority, callback=callback)
        self._actions[hook_name].append(handler)
        self._actions[hook_name].sort()

    def add_filter(
        self,
        hook_name: str,
        callback: Callable[..., T],
        priority: int = 10,
    ) -> None:
        """Register a filter callback.

        Args:
            hook_name: Name of the filter hook
            callback: Function to call to modify value
            priority: Lower numbers execute first (default: 10)
        """
        handler = HookHandler(priority=priority, callback=callback)
        self._filters[hook_name].append(handler)
        self._filters[hook_name].sort()

    def remove_action(self, hook_name: str, callback: Callable[..., Any]) -> bool:
        """Remove an action callback. Returns True if it was registered."""
        return self._remove(self._actions, hook_name, callback)

    def remove_filter(self, hook_name: str, callback: Callable[..., Any]) -> bool:
        """Remove a filter callback. Returns True if it was registered."""
        return self._remove(self._filters, hook_name, callback)

    @staticmethod
    def _remove(
        table: dict[str, list[HookHandler]],
        hook_name: str,
        callback: Callable[..., Any],
    ) -> bool:
        handlers = table.get(hook_name, [])
        for i, handler in enumerate(handlers):
            if handler.callback is callback:
                handlers.pop(i)
                return True
        return False

    def has_action(self, hook_name: str) -> bool:
        """Check if any actions are registered for a hook."""
        return bool(self._actions.get(hook_name))

    def has_filter(self, hook_name: str) -> bool:
        """Check if any filters are registered for a hook."""
        return bool(self._filters.get(hook_name))

    async def do_action(
        self,
        hook_name: str,
        *args: Any,
        **kwargs: Any,
    ) -> None:
        """Execute all registered action callbacks.

        Zero listeners is not an error; the call simply does nothing.
        """
        from forma.observability import span

        with span(f"hook.action:{hook_name}", hook_name=hook_name):
            handlers = list(self._actions.get(hook_name, []))
            for handler in handlers:
                await handler.call(*args, **kwargs)

    async def apply_filters(
        self,
        hook_name: str,
        value: T,
        *args: Any,
        **kwargs: Any,
    ) -> T:
        """Apply all registered filter callbacks to a value.

        Args:
            hook_name: Name of the filter hook
            value: Initial value to filter
            *args: Additional positional arguments to pass to callbacks
            **kwargs: Keyword arguments to pass to callbacks

        Returns:
            The filtered value after all callbacks have been applied
        """
        from forma.observability import span

        with span(f"hook.filter:{hook_name}", hook_name=hook_name):
            handlers = list(self._filters.get(hook_name, []))
            for handler in handlers:
                value = await handler.call(value, *args, **kwargs)
            return value

    def clear(self) -> None:
        """Clear all registered hooks. Useful for testing."""
        self._actions.clear()
        self._filters.clear()


# Global singleton registry
hooks = HookRegistry()


def add_action(hook_name: str, callback: Callable[..., Any], priority: int = 10) -> None:
    """Register an action callback to the global registry."""
    hooks.add_action(hook_name, callback, priority)


def add_filter(hook_name: str, callback: Callable[..., T], priority: int = 10) -> None:
    """Register a filter callback to the global registry."""
    hooks.add_filter(hook_name, callback, priority)


def remove_action(hook_name: str, callback: Callable[..., Any]) -> bool:
    """Remove an action callback from the global registry."""
    return hooks.remove_action(hook_name, callback)


def remove_filter(hook_name: str, callback: Callable[..., Any]) -> bool:
    """Remove a filter callback from the global registry."""
    return hooks.remove_filter(hook_name, callback)


def action(hook_name: str, priority: int = 10) -> Callable[[Callable], Callable]:
    """Decorator to register a function as an action handler on the global registry.

    Usage:
        @action("forma/before/form", priority=5)
        def intro(form, buffer):
            buffer.write("<p>All fields are required.</p>")
    """

    def decorator(func: Callable) -> Callable:
        hooks.add_action(hook_name, func, priority)

        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            return func(*args, **kwargs)

        return wrapper

    return decorator


def filter(hook_name: str, priority: int = 10) -> Callable[[Callable], Callable]:
    """Decorator to register a function as a filter handler on the global registry.

    Usage:
        @filter("forma/field/types")
        def drop_file_inputs(types):
            return tuple(t for t in types if t != "file")
    """

    def decorator(func: Callable) -> Callable:
        hooks.add_filter(hook_name, func, priority)

        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            return func(*args, **kwargs)

        return wrapper

    return decorator


# Hook names. Lifecycle actions receive (form, buffer).
BEFORE_RENDER = "forma/before/render"
BEFORE_FORM = "forma/before/form"
BEFORE_FORM_FIELDS = "forma/before/form/fields"
AFTER_FORM_FIELDS = "forma/after/form/fields"
AFTER_FORM = "forma/after/form"
AFTER_RENDER = "forma/after/render"

# Fired with (form, result) once a submission reaches a terminal state
SUBMISSION_PROCESSED = "forma/submission/processed"

# Filters
FIELD_TYPES = "forma/field/types"
BUILD_FIELD = "forma/build/field"
SUBMISSION_DATA = "forma/submission/data"

