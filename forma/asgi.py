"""ASGI entry point used by ``forma serve``."""

from forma.app import create_app

app = create_app()
