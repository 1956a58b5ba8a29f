"""CLI commands for Forma."""

import base64
import re
import secrets
from pathlib import Path

import click


@click.group()
@click.version_option(package_name="forma")
def cli():
    """Forma - declarative forms for Litestar sites."""
    pass


@cli.command()
@click.option("--app", "app_path", default="forma.asgi:app", help="ASGI application path")
@click.option("--host", default="127.0.0.1", help="Host to bind to")
@click.option("--port", default=8080, type=int, help="Port to bind to")
@click.option("--reload", is_flag=True, help="Enable auto-reload for development")
@click.option("--workers", default=1, type=int, help="Number of worker processes")
@click.option(
    "--log-level",
    default="info",
    type=click.Choice(["debug", "info", "warning", "error"]),
    help="Logging level",
)
def serve(app_path, host, port, reload, workers, log_level):
    """Run an app that serves Forma forms."""
    from hypercorn.config import Config
    from hypercorn.run import run

    config = Config()
    config.application_path = app_path
    config.bind = [f"{host}:{port}"]
    config.workers = 1 if reload else workers
    config.loglevel = log_level.upper()
    config.include_server_header = False
    config.use_reloader = reload

    run(config)


@cli.command()
@click.option(
    "--write",
    type=click.Path(),
    default=None,
    help="Write FORMA_SECRET_KEY to a .env file",
)
@click.option(
    "--format",
    "fmt",
    default="urlsafe",
    type=click.Choice(["urlsafe", "hex", "base64"]),
    help="Output format for the secret key",
)
@click.option("--length", default=32, type=int, help="Number of random bytes")
def secret(write, fmt, length):
    """Generate a secret key for signing nonces and sessions."""
    if fmt == "urlsafe":
        key = secrets.token_urlsafe(length)
    elif fmt == "hex":
        key = secrets.token_hex(length)
    else:  # base64
        key = base64.b64encode(secrets.token_bytes(length)).decode("ascii")

    if not write:
        click.echo(key)
        return

    env_path = Path(write)
    env_content = env_path.read_text() if env_path.exists() else ""

    secret_key_pattern = re.compile(r"^FORMA_SECRET_KEY=.*$", re.MULTILINE)
    new_line = f"FORMA_SECRET_KEY={key}"

    if secret_key_pattern.search(env_content):
        env_content = secret_key_pattern.sub(new_line, env_content)
    else:
        if env_content and not env_content.endswith("\n"):
            env_content += "\n"
        env_content += new_line + "\n"

    env_path.write_text(env_content)
    click.echo(f"FORMA_SECRET_KEY written to {env_path}")


if __name__ == "__main__":
    cli()
