"""Shared markup helpers for field renderers."""

from __future__ import annotations

from typing import Any, Iterable, Mapping

from markupsafe import Markup, escape


def esc_attr(value: Any) -> Markup:
    """Escape a value for use inside a double-quoted attribute."""
    return escape("" if value is None else value)


def esc_html(value: Any) -> Markup:
    """Escape a value for use as a text node."""
    return escape("" if value is None else value)


def is_true(value: Any) -> bool:
    """Boolean attributes are only switched on by an explicit ``True``."""
    return value is True


def render_attrs(attrs: Iterable[tuple[str, Any]]) -> Markup:
    """Render attribute pairs as ``' key="val"'``.

    Empty values are omitted and ``True`` renders a bare boolean attribute,
    so ``("required", True)`` becomes ``required`` and ``("value", "")``
    disappears.
    """
    parts = []
    for name, value in attrs:
        if value is True:
            parts.append(name)
        elif value:
            parts.append(f'{name}="{esc_attr(value)}"')
    if not parts:
        return Markup("")
    return Markup(" " + " ".join(parts))


def label_tag(field: Mapping[str, Any]) -> Markup:
    label = field.get("label")
    if not label:
        return Markup("")
    return Markup(f'<label for="{esc_attr(field["id"])}">{esc_html(label)}</label>')


def description(field: Mapping[str, Any]) -> Markup:
    desc = field.get("desc")
    if not desc:
        return Markup("")
    return Markup(f'<span class="description">{esc_html(desc)}</span>')


def wrap(field: Mapping[str, Any], control: str) -> Markup:
    """Wrap a control with its optional label and description."""
    return Markup(
        f'<div id="{esc_attr(field["id"])}-wrapper" class="field-wrapper">'
        f"{label_tag(field)}{control}{description(field)}</div>"
    )
