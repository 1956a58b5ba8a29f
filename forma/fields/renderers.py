"""Built-in field renderers.

Each renderer takes a field descriptor (a plain mapping) and returns the
markup for exactly one control. Descriptors without their identity key
render as an empty string. Keys a renderer doesn't know are ignored.

    {
        "type": "text",        # required
        "id": "brand",         # required
        "label": "Brand",
        "value": "",
        "style": "",
        "pattern": "",
        "placeholder": "",
        "required": False,
        "desc": "",
    }
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Mapping

from dateutil import parser
from dateutil.parser import ParserError
from markupsafe import Markup

from forma.config import NAMESPACE, get_settings
from forma.fields.base import esc_attr, esc_html, is_true, render_attrs, wrap
from forma.fields.registry import field_type

NONCE_FIELD_NAME = f"{NAMESPACE}/nonce"
REFERER_FIELD_NAME = f"{NAMESPACE}/referer"

HTTPS_PATTERN = "https://.*"

_CHECKED_VALUES = {"on", "1", "true", "yes"}


@field_type("hidden")
def render_hidden(field: Mapping[str, Any]) -> Markup:
    name = field.get("name")
    value = field.get("value")
    if not name or not value:
        return Markup("")
    return Markup(f'<input type="hidden"{render_attrs([("name", name), ("value", value)])}>')


@field_type("nonce")
def render_nonce(field: Mapping[str, Any]) -> Markup:
    """Emit a token issued by the CSRF provider for ``field["action"]``.

    The form issues the token before building and passes it in ``token``.
    """
    if not field.get("action"):
        return Markup("")
    html = (
        f'<input type="hidden" id="{NONCE_FIELD_NAME}" name="{NONCE_FIELD_NAME}" '
        f'value="{esc_attr(field.get("token", ""))}">'
    )
    if field.get("referer"):
        html += (
            f'<input type="hidden" name="{REFERER_FIELD_NAME}" '
            f'value="{esc_attr(field["referer"])}">'
        )
    return Markup(html)


@field_type("submit")
def render_submit(field: Mapping[str, Any]) -> Markup:
    value = field.get("value") or get_settings().default_button_text
    return Markup(
        '<div id="submit-wrapper">'
        f'<input type="submit" id="submit" value="{esc_attr(value)}" class="button button-primary">'
        "</div>"
    )


def checkbox_state(value: Any) -> str:
    """Normalise a checkbox's current value to ``on`` or ``off``."""
    if value is True:
        return "on"
    if isinstance(value, str) and value.strip().lower() in _CHECKED_VALUES:
        return "on"
    return "off"


@field_type("checkbox")
def render_checkbox(field: Mapping[str, Any]) -> Markup:
    """A checkbox preceded by a same-named hidden ``off`` input.

    Browsers leave unchecked boxes out of the submission; the hidden input
    guarantees the name still arrives, as ``off``.
    """
    if not field.get("id"):
        return Markup("")

    current = field.get("current", field.get("value"))
    attrs = render_attrs([
        ("style", field.get("style")),
        ("checked", checkbox_state(current) == "on"),
        ("required", is_true(field.get("required"))),
    ])
    control = (
        f'<input type="hidden" name="{esc_attr(field["id"])}" value="off">'
        f'<input type="checkbox" id="{esc_attr(field["id"])}" '
        f'name="{esc_attr(field["id"])}" value="on"{attrs}>'
    )
    return wrap(field, control)


def _render_input(input_type: str, field: Mapping[str, Any], pattern: Any = None) -> Markup:
    if not field.get("id"):
        return Markup("")
    attrs = render_attrs([
        ("value", field.get("value")),
        ("style", field.get("style")),
        ("placeholder", field.get("placeholder")),
        ("pattern", pattern),
        ("required", is_true(field.get("required"))),
    ])
    control = (
        f'<input type="{input_type}" id="{esc_attr(field["id"])}" '
        f'name="{esc_attr(field["id"])}"{attrs}>'
    )
    return wrap(field, control)


@field_type("tel")
def render_tel(field: Mapping[str, Any]) -> Markup:
    return _render_input("tel", field, field.get("pattern"))


@field_type("number")
def render_number(field: Mapping[str, Any]) -> Markup:
    return _render_input("number", field, field.get("pattern"))


@field_type("email")
def render_email(field: Mapping[str, Any]) -> Markup:
    return _render_input("email", field)


def normalize_date(value: Any) -> str:
    """Return ``value`` as ``YYYY-MM-DD``, or ``""`` when it can't be parsed."""
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if not isinstance(value, str) or not value.strip():
        return ""

    try:
        return parser.parse(value.strip()).date().isoformat()
    except (ParserError, ValueError, OverflowError):
        return ""


@field_type("date")
def render_date(field: Mapping[str, Any]) -> Markup:
    if not field.get("id"):
        return Markup("")
    return _render_input("date", {**field, "value": normalize_date(field.get("value"))})


def resolve_options(options: Any) -> Mapping[Any, Any]:
    """Options may be a mapping or a zero-argument callable returning one."""
    if callable(options):
        options = options()
    if isinstance(options, Mapping):
        return options
    return {}


@field_type("select")
def render_select(field: Mapping[str, Any]) -> Markup:
    if not field.get("id"):
        return Markup("")

    multiple = is_true(field.get("multiple"))
    current = field.get("current")
    if multiple and isinstance(current, (list, tuple, set, frozenset)):
        selected_keys = {str(c) for c in current}
    elif current is None or current == "":
        selected_keys = set()
    else:
        selected_keys = {str(current)}

    attrs = render_attrs([
        ("style", field.get("style")),
        ("required", is_true(field.get("required"))),
        ("multiple", multiple),
    ])
    placeholder = field.get("placeholder") or get_settings().messages.select_placeholder
    html = f'<select id="{esc_attr(field["id"])}" name="{esc_attr(field["id"])}"{attrs}>'
    html += f'<option value="">{esc_html(placeholder)}</option>'
    for key, label in resolve_options(field.get("options")).items():
        selected = " selected" if str(key) in selected_keys else ""
        html += f'<option value="{esc_attr(key)}"{selected}>{esc_html(label)}</option>'
    html += "</select>"
    return wrap(field, html)


@field_type("textarea")
def render_textarea(field: Mapping[str, Any]) -> Markup:
    if not field.get("id"):
        return Markup("")
    attrs = render_attrs([
        ("cols", field.get("cols")),
        ("rows", field.get("rows")),
        ("style", field.get("style")),
        ("placeholder", field.get("placeholder")),
        ("required", is_true(field.get("required"))),
    ])
    control = (
        f'<textarea id="{esc_attr(field["id"])}" name="{esc_attr(field["id"])}"{attrs}>'
        f'{esc_html(field.get("value") or "")}</textarea>'
    )
    return wrap(field, control)


@field_type("url")
def render_url(field: Mapping[str, Any]) -> Markup:
    return _render_input("url", field, field.get("pattern") or HTTPS_PATTERN)


@field_type("text")
def render_text(field: Mapping[str, Any]) -> Markup:
    return _render_input("text", field, field.get("pattern"))


@field_type("file")
def render_file(field: Mapping[str, Any]) -> Markup:
    if not field.get("id"):
        return Markup("")
    attrs = render_attrs([
        ("accept", field.get("accept")),
        ("style", field.get("style")),
        ("required", is_true(field.get("required"))),
        ("multiple", is_true(field.get("multiple"))),
    ])
    control = (
        f'<input type="file" id="{esc_attr(field["id"])}" '
        f'name="{esc_attr(field["id"])}"{attrs}>'
    )
    return wrap(field, control)
