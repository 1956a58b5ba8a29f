"""Tests for the Form class: declaration, markup and rendering."""

import re

import pytest
from markupsafe import Markup

from forma.core import UNASSIGNED, Form
from forma.fields import NONCE_FIELD_NAME, FieldRegistry, REFERER_FIELD_NAME
from forma.hooks import (
    AFTER_FORM,
    AFTER_FORM_FIELDS,
    AFTER_RENDER,
    BEFORE_FORM,
    BEFORE_FORM_FIELDS,
    BEFORE_RENDER,
    BUILD_FIELD,
    add_action,
)
from forma.model import FormConfig


class Cars:
    def __init__(self, result=True):
        self.result = result
        self.received = []

    def insert(self, data):
        self.received.append(data)
        return self.result


@pytest.fixture
def make_form(hook_registry, csrf_provider, ajax_router):
    def _make(form_id="add-car", **options):
        return Form(
            form_id,
            hooks=hook_registry,
            csrf_provider=csrf_provider,
            ajax_router=ajax_router,
            **options,
        )

    return _make


def nonce_value(html):
    match = re.search(rf'name="{NONCE_FIELD_NAME}" value="([^"]*)"', str(html))
    return match.group(1) if match else None


class TestDeclaration:
    def test_identity(self, make_form):
        form = make_form()
        assert form.id == "add-car"
        assert form.slug == "forma/add-car"

    def test_add_section_ignores_empty_id(self, make_form):
        form = make_form()
        form.add_section("")
        form.add_section("car_fields", "wide")
        assert [(s.id, s.css_class) for s in form.sections] == [("car_fields", "wide")]

    def test_add_field_buckets(self, make_form):
        form = make_form()
        form.add_field({"type": "text", "id": "brand"}, "car_fields")
        form.add_field({"type": "text", "id": "note"})
        form.add_field({})
        assert form.fields_in("car_fields") == [{"type": "text", "id": "brand"}]
        assert form.fields_in(UNASSIGNED) == [{"type": "text", "id": "note"}]

    def test_add_fields_keeps_order(self, make_form):
        form = make_form()
        form.add_fields([{"type": "text", "id": "a"}, {"type": "text", "id": "b"}], "s")
        assert [f["id"] for f in form.fields_in("s")] == ["a", "b"]

    def test_add_fields_accepts_nothing(self, make_form):
        form = make_form()
        form.add_fields(None)
        assert form.fields == {}

    def test_add_hidden_field_needs_name_and_value(self, make_form):
        form = make_form()
        form.add_hidden_field("ref", "")
        form.add_hidden_field("", "1")
        form.add_hidden_field("ref", 42)
        assert form.hidden == [{"name": "ref", "value": "42"}]

    def test_csrf_option_adds_nonce_for_form_id(self, make_form):
        form = make_form(csrf=True)
        assert form.nonce.action == "add-car"
        assert form.csrf_enabled is True

    def test_nonce_field_without_csrf_option_is_inert(self, make_form):
        form = make_form()
        assert form.add_nonce_field() is True
        assert form.csrf_enabled is False

    def test_config_object(self, ajax_router):
        form = Form("add-car", FormConfig(title="Add Car"), ajax_router=ajax_router)
        assert form.config.title == "Add Car"

    def test_ajax_form_registers_itself(self, make_form, ajax_router):
        form = make_form(ajax=True)
        assert form.identity.ajax_action in ajax_router

    def test_plain_form_does_not_register(self, make_form, ajax_router):
        make_form()
        assert ajax_router.actions() == ()


class TestBuild:
    @pytest.mark.asyncio
    async def test_wrapper_and_form_tag(self, make_form):
        html = str(await make_form().build())
        assert html.startswith('<div id="forma/add-car/form" class="forma/form">')
        assert '<form id="forma/add-car" method="post">' in html
        assert '<input type="hidden" name="forma/add-car/submitted" value="1">' in html
        assert html.endswith("</form></div>")

    @pytest.mark.asyncio
    async def test_form_attributes(self, make_form):
        form = make_form(
            css_classes="cars wide",
            action="/cars",
            method="GET",
            encoding_type="multipart/form-data",
        )
        html = str(await form.build())
        assert (
            '<form id="forma/add-car" class="cars wide" action="/cars" '
            'method="get" enctype="multipart/form-data">'
        ) in html

    @pytest.mark.asyncio
    async def test_empty_action_is_omitted(self, make_form):
        assert "action=" not in str(await make_form().build())

    @pytest.mark.asyncio
    async def test_title_is_escaped(self, make_form):
        html = str(await make_form(title="Cars & <Bikes>").build())
        assert "<h3>Cars &amp; &lt;Bikes&gt;</h3>" in html

    @pytest.mark.asyncio
    async def test_no_title_no_heading(self, make_form):
        assert "<h3>" not in str(await make_form().build())

    @pytest.mark.asyncio
    async def test_build_order(self, make_form, make_ctx):
        form = make_form(csrf=True)
        form.add_section("car_fields")
        form.add_field({"type": "text", "id": "brand"}, "car_fields")
        form.add_field({"type": "text", "id": "note"})
        form.add_hidden_field("ref", "home")

        html = str(await form.build(make_ctx()))

        positions = [
            html.index('id="car_fields-wrapper"'),
            html.index('id="brand"'),
            html.index('id="note"'),
            html.index('name="ref"'),
            html.index(f'name="{NONCE_FIELD_NAME}"'),
            html.index('id="submit-wrapper"'),
        ]
        assert positions == sorted(positions)

    @pytest.mark.asyncio
    async def test_sections_render_in_declaration_order(self, make_form):
        form = make_form()
        form.add_section("second")
        form.add_section("first", "highlight")
        form.add_field({"type": "text", "id": "b"}, "second")
        form.add_field({"type": "text", "id": "a"}, "first")

        html = str(await form.build())

        assert html.index('id="second-wrapper"') < html.index('id="first-wrapper"')
        assert '<fieldset id="first-wrapper" class="section-wrapper highlight">' in html

    @pytest.mark.asyncio
    async def test_empty_section_renders_empty_fieldset(self, make_form):
        form = make_form()
        form.add_section("empty")
        html = str(await form.build())
        assert '<fieldset id="empty-wrapper" class="section-wrapper"></fieldset>' in html

    @pytest.mark.asyncio
    async def test_fields_for_undeclared_sections_are_not_rendered(self, make_form):
        form = make_form()
        form.add_field({"type": "text", "id": "ghost"}, "missing")
        assert 'id="ghost"' not in str(await form.build())

    @pytest.mark.asyncio
    async def test_unknown_field_type_renders_nothing(self, make_form):
        form = make_form()
        form.add_field({"type": "colour", "id": "paint"})
        assert "paint" not in str(await form.build())

    @pytest.mark.asyncio
    async def test_submit_text(self, make_form):
        assert 'value="Add car"' in str(await make_form(button_text="Add car").build())
        assert 'value="Send"' in str(await make_form("other").build())

    @pytest.mark.asyncio
    async def test_nonce_verifies_for_the_same_session(self, make_form, make_ctx, csrf_provider):
        form = make_form(csrf=True)
        ctx = make_ctx(path="/cars/new")

        html = str(await form.build(ctx))
        token = nonce_value(html)

        assert token
        assert csrf_provider.verify(token, "add-car", ctx) is True
        assert f'name="{REFERER_FIELD_NAME}" value="/cars/new"' in html

    @pytest.mark.asyncio
    async def test_no_nonce_without_csrf(self, make_form):
        assert NONCE_FIELD_NAME not in str(await make_form().build())

    @pytest.mark.asyncio
    async def test_ajax_markers(self, make_form):
        html = str(await make_form(ajax=True).build())
        assert 'data-forma-ajax="/forma/ajax"' in html
        assert '<input type="hidden" name="action" value="forma/add-car">' in html

    @pytest.mark.asyncio
    async def test_ajax_path_from_context(self, make_form, make_ctx):
        ctx = make_ctx()
        ctx.ajax_path = "/api/forms"
        assert 'data-forma-ajax="/api/forms"' in str(await make_form(ajax=True).build(ctx))

    @pytest.mark.asyncio
    async def test_custom_field_registry(self, hook_registry, ajax_router):
        field_registry = FieldRegistry()
        field_registry.register("stars", lambda field: Markup(f'<x-stars id="{field["id"]}"></x-stars>'))
        form = Form("review", hooks=hook_registry, field_registry=field_registry, ajax_router=ajax_router)
        form.add_field({"type": "stars", "id": "rating"})

        assert '<x-stars id="rating"></x-stars>' in str(await form.build())


class TestLifecycleHooks:
    @pytest.mark.asyncio
    async def test_hooks_fire_in_order(self, make_form, hook_registry):
        fired = []
        for name in (
            BEFORE_RENDER,
            BEFORE_FORM,
            BEFORE_FORM_FIELDS,
            AFTER_FORM_FIELDS,
            AFTER_FORM,
            AFTER_RENDER,
        ):
            hook_registry.add_action(name, lambda form, buffer, name=name: fired.append(name))

        await make_form().build()

        assert fired == [
            BEFORE_RENDER,
            BEFORE_FORM,
            BEFORE_FORM_FIELDS,
            AFTER_FORM_FIELDS,
            AFTER_FORM,
            AFTER_RENDER,
        ]

    @pytest.mark.asyncio
    async def test_listeners_write_markup(self, make_form, hook_registry):
        hook_registry.add_action(BEFORE_FORM_FIELDS, lambda form, buffer: buffer.write("<p>intro</p>"))
        hook_registry.add_action(AFTER_RENDER, lambda form, buffer: buffer.write("<p>outro</p>"))

        html = str(await make_form().build())

        assert html.index("<p>intro</p>") < html.index('id="submit-wrapper"')
        assert html.endswith("</div><p>outro</p>")

    @pytest.mark.asyncio
    async def test_async_listener(self, make_form, hook_registry):
        async def banner(form, buffer):
            buffer.write(f"<p>{form.id}</p>")

        hook_registry.add_action(BEFORE_FORM, banner)

        assert "<p>add-car</p>" in str(await make_form().build())

    @pytest.mark.asyncio
    async def test_field_markup_filter(self, make_form, hook_registry):
        def tag_required(html, field, form):
            if field.get("required") is True:
                return Markup(html) + Markup('<span class="required">*</span>')
            return html

        hook_registry.add_filter(BUILD_FIELD, tag_required)
        form = make_form()
        form.add_field({"type": "text", "id": "brand", "required": True})

        assert '<span class="required">*</span>' in str(await form.build())


class TestRender:
    @pytest.mark.asyncio
    async def test_successful_submission(self, make_form, make_ctx, csrf_provider):
        cars = Cars()
        form = make_form(csrf=True, submit_handler=(cars, "insert"))
        form.add_section("car_fields")
        form.add_fields([{"type": "text", "id": "brand"}, {"type": "checkbox", "id": "agree"}], "car_fields")

        ctx = make_ctx()
        token = csrf_provider.issue("add-car", ctx)
        ctx.data.update({
            "forma/add-car/submitted": "1",
            NONCE_FIELD_NAME: token,
            "brand": "Fiat",
            "agree": "off",
        })

        html = str(await form.render(ctx))

        assert html.startswith('<div class="notice notice-success inline"><p>Form successfully submitted!</p></div>')
        assert cars.received[0]["brand"] == "Fiat"
        assert cars.received[0]["agree"] == "off"
        assert '<form id="forma/add-car" method="post">' in html

    @pytest.mark.asyncio
    async def test_rejected_submission(self, make_form, make_ctx):
        cars = Cars(result=False)
        form = make_form(submit_handler=(cars, "insert"))
        ctx = make_ctx(data={"forma/add-car/submitted": "1", "brand": "Fiat"})

        html = str(await form.render(ctx))

        assert "notice-error" in html
        assert "An error occurred while processing the form data." in html

    @pytest.mark.asyncio
    async def test_missing_nonce_is_reported(self, make_form, make_ctx):
        cars = Cars()
        form = make_form(csrf=True, submit_handler=(cars, "insert"))

        html = str(await form.render(make_ctx(data={"forma/add-car/submitted": "1"})))

        assert "<p>Nonce is missing!</p>" in html
        assert cars.received == []

    @pytest.mark.asyncio
    async def test_plain_page_view(self, make_form, make_ctx):
        html = str(await make_form().render(make_ctx()))
        assert "notice" not in html
        assert html.startswith('<div id="forma/add-car/form"')

    @pytest.mark.asyncio
    async def test_ajax_form_is_not_processed_on_render(self, make_form, make_ctx):
        cars = Cars()
        form = make_form(ajax=True, submit_handler=(cars, "insert"))

        html = str(await form.render(make_ctx(data={"forma/add-car/submitted": "1"})))

        assert cars.received == []
        assert "notice" not in html

    @pytest.mark.asyncio
    async def test_external_action_is_not_processed_on_render(self, make_form, make_ctx):
        cars = Cars()
        form = make_form(action="/elsewhere", submit_handler=(cars, "insert"))

        await form.render(make_ctx(data={"forma/add-car/submitted": "1"}))

        assert cars.received == []

    @pytest.mark.asyncio
    async def test_carried_outcome_is_shown(self, make_form, make_ctx):
        ctx = make_ctx(query={"forma/process/success": "Car added"})
        html = str(await make_form().render(ctx))
        assert '<div class="notice notice-success inline"><p>Car added</p></div>' in html

    @pytest.mark.asyncio
    async def test_other_forms_submission_is_ignored(self, make_form, make_ctx):
        cars = Cars()
        form = make_form(submit_handler=(cars, "insert"))

        await form.render(make_ctx(data={"forma/other/submitted": "1"}))

        assert cars.received == []

    @pytest.mark.asyncio
    async def test_defaults_to_global_hooks(self, clean_hooks, ajax_router):
        add_action(AFTER_FORM, lambda form, buffer: buffer.write("<p>global</p>"))
        form = Form("newsletter", ajax_router=ajax_router)

        assert "<p>global</p>" in str(await form.build())
