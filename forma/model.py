"""Form configuration, identity and section models."""

from __future__ import annotations

import inspect
import secrets
from dataclasses import dataclass
from typing import Any, Callable, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from forma.config import NAMESPACE, get_settings

SubmitHandler = Callable[[dict[str, Any]], Any]

METHODS = ("post", "get")


def resolve_handler(value: Any) -> SubmitHandler | None:
    """Resolve a submit handler to exactly one bound target, or None.

    Accepts a bound method or an ``(object, "method_name")`` pair whose
    attribute is callable. Plain functions and anything else are rejected.
    """
    if inspect.ismethod(value):
        return value
    if isinstance(value, (tuple, list)) and len(value) == 2:
        target, name = value
        if isinstance(name, str):
            attr = getattr(target, name, None)
            if callable(attr):
                return attr
    return None


class FormConfig(BaseModel):
    """Immutable options a form is created with."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    title: str = ""
    css_classes: str = ""
    action: str = ""
    method: str = "post"
    encoding_type: str = ""
    ajax: bool = False
    submit_handler: Optional[SubmitHandler] = None
    csrf: bool = False
    button_text: str = Field(default_factory=lambda: get_settings().default_button_text)
    redirect_uri: str = ""
    success_message: str = ""
    error_message: str = ""

    @field_validator("method", mode="before")
    @classmethod
    def _normalize_method(cls, value: Any) -> str:
        method = str(value or "").strip().lower()
        return method if method in METHODS else "post"

    @field_validator("ajax", "csrf", mode="before")
    @classmethod
    def _strict_flag(cls, value: Any) -> bool:
        return value is True

    @field_validator("submit_handler", mode="before")
    @classmethod
    def _bindable_handler(cls, value: Any) -> SubmitHandler | None:
        return resolve_handler(value)

    @field_validator("button_text", mode="before")
    @classmethod
    def _default_button_text(cls, value: Any) -> str:
        return str(value) if value else get_settings().default_button_text

    @field_validator("title", "css_classes", "action", "encoding_type", "redirect_uri",
                     "success_message", "error_message", mode="before")
    @classmethod
    def _none_to_empty(cls, value: Any) -> str:
        return "" if value is None else str(value)

    @property
    def self_submitting(self) -> bool:
        return not self.action


@dataclass(frozen=True)
class FormIdentity:
    """Form id and the namespaced slug derived from it."""

    id: str
    slug: str

    @classmethod
    def create(cls, form_id: Any = None) -> FormIdentity:
        """Use the caller's id, or a random one when it is empty."""
        form_id = str(form_id) if form_id else secrets.token_hex(4)
        return cls(id=form_id, slug=f"{NAMESPACE}/{form_id}")

    @property
    def submitted_field(self) -> str:
        """Name of the marker input that flags a submission of this form."""
        return f"{self.slug}/submitted"

    @property
    def ajax_action(self) -> str:
        return self.slug


@dataclass(frozen=True)
class Section:
    id: str
    css_class: str = ""


@dataclass(frozen=True)
class CsrfToken:
    """Action name nonces for this form are issued and verified against."""

    action: str
