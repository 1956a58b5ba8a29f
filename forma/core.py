"""The Form class: declarative fields in, markup and processed submissions out."""

from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping

from markupsafe import Markup

from forma.ajax import AjaxRouter, router as default_router
from forma.config import NAMESPACE, get_settings
from forma.csrf import CsrfProvider, default_provider
from forma.fields import FieldRegistry, registry as default_registry
from forma.fields.base import esc_attr, esc_html, render_attrs
from forma.hooks import (
    AFTER_FORM,
    AFTER_FORM_FIELDS,
    AFTER_RENDER,
    BEFORE_FORM,
    BEFORE_FORM_FIELDS,
    BEFORE_RENDER,
    HookRegistry,
    hooks as global_hooks,
)
from forma.model import CsrfToken, FormConfig, FormIdentity, Section
from forma.notices import render_notice
from forma.request import RequestContext
from forma.submission import SubmissionProcessor, SubmissionResult

logger = logging.getLogger(__name__)

# Bucket key for fields that were added without a section
UNASSIGNED = None


class MarkupBuffer:
    """Collects markup written by lifecycle action listeners.

    Listeners receive ``(form, buffer)`` and may ``buffer.write(...)`` HTML;
    what they write is emitted as-is at that point of the form.
    """

    def __init__(self) -> None:
        self._parts: list[str] = []

    def write(self, markup: Any) -> None:
        self._parts.append(str(markup))

    def getvalue(self) -> Markup:
        return Markup("".join(self._parts))


class Form:
    """A declaratively described form.

    Usage:
        form = Form(
            "add-car",
            title="Add Car",
            submit_handler=(cars, "insert"),
            csrf=True,
        )
        form.add_section("car_fields")
        form.add_fields([{"type": "text", "id": "brand", "required": True}], "car_fields")

        # In a route handler
        ctx = await RequestContext.from_request(request)
        html = await form.render(ctx)

    A form holds no per-request state, so it can be created once at import
    time and rendered for many requests. Ajax forms register themselves on
    the ajax router under their slug when created.
    """

    def __init__(
        self,
        form_id: Any = None,
        config: FormConfig | None = None,
        *,
        hooks: HookRegistry | None = None,
        field_registry: FieldRegistry | None = None,
        csrf_provider: CsrfProvider | None = None,
        ajax_router: AjaxRouter | None = None,
        **options: Any,
    ) -> None:
        self.identity = FormIdentity.create(form_id)
        self.config = config if config is not None else FormConfig(**options)
        self.hooks = hooks or global_hooks
        self.field_registry = field_registry or default_registry
        self.csrf_provider = csrf_provider or default_provider

        self.sections: list[Section] = []
        self.fields: dict[str | None, list[Mapping[str, Any]]] = {}
        self.hidden: list[dict[str, str]] = []
        self.nonce: CsrfToken | None = None

        if self.config.csrf:
            self.add_nonce_field()

        if self.config.ajax:
            (ajax_router or default_router).register(self.identity.ajax_action, self.process)
            logger.debug("Registered ajax action %s", self.identity.ajax_action)

    @property
    def id(self) -> str:
        return self.identity.id

    @property
    def slug(self) -> str:
        return self.identity.slug

    @property
    def csrf_enabled(self) -> bool:
        return self.config.csrf and self.nonce is not None

    # -- Declaration --

    def add_section(self, section_id: str, css_class: str = "") -> None:
        if section_id:
            self.sections.append(Section(id=str(section_id), css_class=css_class or ""))

    def add_field(self, field: Mapping[str, Any], section_id: str | None = None) -> None:
        if field:
            self.fields.setdefault(section_id or UNASSIGNED, []).append(field)

    def add_fields(
        self, fields: Iterable[Mapping[str, Any]], section_id: str | None = None
    ) -> None:
        for field in fields or ():
            self.add_field(field, section_id)

    def add_hidden_field(self, name: str, value: Any) -> None:
        if name and value:
            self.hidden.append({"name": str(name), "value": str(value)})

    def add_nonce_field(self, action: str = "") -> bool:
        """Protect the form with a nonce for ``action`` (defaults to the form id)."""
        self.nonce = CsrfToken(action=action or self.id)
        return True

    def fields_in(self, section_id: str | None) -> list[Mapping[str, Any]]:
        return list(self.fields.get(section_id, ()))

    # -- Processing --

    async def process(self, ctx: RequestContext) -> SubmissionResult:
        """Handle a submission of this form carried by ``ctx``, if there is one."""
        return await SubmissionProcessor(self).run(ctx)

    def notice(self, ctx: RequestContext) -> Markup:
        """Inline notice for the outcome recorded in ``ctx``, if any."""
        return render_notice(ctx, self)

    async def render(self, ctx: RequestContext) -> Markup:
        """Process a pending submission, then return notice plus form markup.

        Ajax forms and forms posting to another ``action`` are processed
        elsewhere, so they only get the notice (from a carried outcome) and
        the markup.
        """
        if not self.config.ajax and self.config.self_submitting:
            await self.process(ctx)
        notice = self.notice(ctx)
        return notice + await self.build(ctx)

    # -- Markup --

    async def build(self, ctx: RequestContext | None = None) -> Markup:
        """Build the full form markup.

        Without a request context, nonces are issued against a throwaway
        session and will not verify later.
        """
        ctx = ctx if ctx is not None else RequestContext()
        buffer = MarkupBuffer()

        await self.hooks.do_action(BEFORE_RENDER, self, buffer)
        buffer.write(f'<div id="{esc_attr(self.slug)}/form" class="{NAMESPACE}/form">')
        if self.config.title:
            buffer.write(f"<h3>{esc_html(self.config.title)}</h3>")
        await self.hooks.do_action(BEFORE_FORM, self, buffer)

        ajax_path = (ctx.ajax_path or get_settings().ajax_path) if self.config.ajax else ""
        attrs = render_attrs([
            ("id", self.slug),
            ("class", self.config.css_classes),
            ("action", self.config.action),
            ("method", self.config.method),
            ("enctype", self.config.encoding_type),
            ("data-forma-ajax", ajax_path),
        ])
        buffer.write(f"<form{attrs}>")
        buffer.write(
            f'<input type="hidden" name="{esc_attr(self.identity.submitted_field)}" value="1">'
        )
        if self.config.ajax:
            buffer.write(
                f'<input type="hidden" name="action" value="{esc_attr(self.identity.ajax_action)}">'
            )

        await self.hooks.do_action(BEFORE_FORM_FIELDS, self, buffer)
        buffer.write(await self._build_sections())
        buffer.write(await self._build_unassigned_fields())
        buffer.write(await self._build_hidden_fields())
        buffer.write(await self._build_nonce_field(ctx))
        buffer.write(await self._build_submit_field())
        await self.hooks.do_action(AFTER_FORM_FIELDS, self, buffer)

        buffer.write("</form>")
        await self.hooks.do_action(AFTER_FORM, self, buffer)
        buffer.write("</div>")
        await self.hooks.do_action(AFTER_RENDER, self, buffer)

        return buffer.getvalue()

    async def build_field(self, field: Mapping[str, Any]) -> Markup:
        return await self.field_registry.build(field, self, self.hooks)

    async def _build_many(self, fields: Iterable[Mapping[str, Any]]) -> Markup:
        html = Markup("")
        for field in fields:
            html += await self.build_field(field)
        return html

    async def _build_sections(self) -> Markup:
        html = Markup("")
        for section in self.sections:
            classes = f"section-wrapper {section.css_class}".strip()
            html += Markup(
                f'<fieldset id="{esc_attr(section.id)}-wrapper" class="{esc_attr(classes)}">'
            )
            html += await self._build_many(self.fields_in(section.id))
            html += Markup("</fieldset>")
        return html

    async def _build_unassigned_fields(self) -> Markup:
        return await self._build_many(self.fields_in(UNASSIGNED))

    async def _build_hidden_fields(self) -> Markup:
        return await self._build_many({**hidden, "type": "hidden"} for hidden in self.hidden)

    async def _build_nonce_field(self, ctx: RequestContext) -> Markup:
        if not self.csrf_enabled:
            return Markup("")
        action = self.nonce.action
        return await self.build_field({
            "type": "nonce",
            "action": action,
            "token": self.csrf_provider.issue(action, ctx),
            "referer": ctx.path,
        })

    async def _build_submit_field(self) -> Markup:
        return await self.build_field({"type": "submit", "value": self.config.button_text})

    def __repr__(self) -> str:
        return f"Form({self.id!r}, sections={len(self.sections)}, ajax={self.config.ajax})"
