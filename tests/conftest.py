"""Shared pytest fixtures."""

from collections import defaultdict
from unittest.mock import MagicMock

import pytest
import yaml

from forma.ajax import AjaxRouter
from forma.config import get_settings
from forma.csrf import SignedNonceProvider
from forma.hooks import HookRegistry, hooks
from forma.request import RequestContext


@pytest.fixture(autouse=True)
def clear_settings_cache():
    """Settings are cached per process; start every test from a clean load."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def temp_app_yaml(tmp_path, monkeypatch):
    """Write an app.yaml into a temporary working directory."""
    monkeypatch.chdir(tmp_path)

    def _create_config(config: dict):
        config_path = tmp_path / "app.yaml"
        with open(config_path, "w") as f:
            yaml.safe_dump(config, f)
        return config_path

    return _create_config


@pytest.fixture
def clean_hooks():
    """Save and restore global hooks state around a test."""
    original_filters = defaultdict(list, {k: list(v) for k, v in hooks._filters.items()})
    original_actions = defaultdict(list, {k: list(v) for k, v in hooks._actions.items()})
    yield
    hooks._filters = original_filters
    hooks._actions = original_actions


@pytest.fixture
def hook_registry():
    """A fresh, isolated HookRegistry."""
    return HookRegistry()


@pytest.fixture
def ajax_router():
    return AjaxRouter()


@pytest.fixture
def csrf_provider():
    return SignedNonceProvider(secret="test-secret", lifetime=3600)


@pytest.fixture
def make_ctx():
    """Factory for request contexts with optional data, query and session."""

    def _make(data=None, query=None, session=None, path="/"):
        return RequestContext(
            data=dict(data or {}),
            query=dict(query or {}),
            session=session if session is not None else {},
            path=path,
        )

    return _make


@pytest.fixture
def mock_request_factory():
    """Factory fixture that returns mock Litestar requests."""

    def _make(method="POST", query=None, form_data=None, scope=None, path="/", app_state=None):
        request = MagicMock()
        request.method = method
        request.scope = scope if scope is not None else {}
        request.url.path = path
        request.app.state = dict(app_state or {})

        query_params = MagicMock()
        query_params.multi_items.return_value = list((query or {}).items())
        request.query_params = query_params

        body = MagicMock()
        body.multi_items.return_value = list(form_data or [])

        async def _form():
            return body

        request.form = _form

        def _set_session(value):
            request.scope["session"] = value

        request.set_session = _set_session
        return request

    return _make
