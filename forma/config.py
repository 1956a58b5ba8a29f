import os
import re
from functools import lru_cache
from pathlib import Path

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load .env early so env vars are available for YAML interpolation
load_dotenv(Path.cwd() / ".env")

# Package namespace used for hook names, reserved field names and slugs
NAMESPACE = "forma"

# Pattern to match $VAR_NAME environment variable references
ENV_VAR_PATTERN = re.compile(r"\$([A-Z_][A-Z0-9_]*)")


def interpolate_env_vars(value):
    """Recursively replace $VAR_NAME with os.environ values."""
    if isinstance(value, str):

        def replace(match):
            var = match.group(1)
            val = os.environ.get(var)
            if val is None:
                raise ValueError(f"Environment variable ${var} not set")
            return val

        return ENV_VAR_PATTERN.sub(replace, value)
    elif isinstance(value, dict):
        return {k: interpolate_env_vars(v) for k, v in value.items()}
    elif isinstance(value, list):
        return [interpolate_env_vars(item) for item in value]
    return value


def load_app_config() -> dict:
    """Load the ``forma`` block of app.yaml with environment variable interpolation."""
    config_path = Path.cwd() / "app.yaml"

    if not config_path.exists():
        raise FileNotFoundError(f"app.yaml not found at {config_path}")

    with open(config_path, "r") as f:
        config = yaml.safe_load(f) or {}

    return interpolate_env_vars(config.get("forma") or {})


class MessagesConfig(BaseModel):
    """User-facing notice texts."""

    success: str = "Form successfully submitted!"
    error: str = "An error occurred while processing the form data."
    nonce_missing: str = "Nonce is missing!"
    nonce_invalid: str = "Invalid nonce!"
    select_placeholder: str = "Select..."


class LogfireConfig(BaseModel):
    """Optional Logfire tracing."""

    enabled: bool = False
    service_name: str = "forma"
    environment: str | None = None
    sample_rate: float = 1.0
    console: bool = False


class FormaSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="FORMA_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
    )

    debug: bool = False
    secret_key: str = "change-me"

    # Seconds a nonce stays valid after being issued
    nonce_lifetime: int = 86400
    # Seconds before the notice page refreshes or redirects
    notice_refresh_delay: int = 2

    default_button_text: str = "Send"
    ajax_path: str = "/forma/ajax"

    messages: MessagesConfig = MessagesConfig()
    logfire: LogfireConfig = LogfireConfig()


@lru_cache
def get_settings() -> FormaSettings:
    """Load settings from the environment, .env and app.yaml."""
    base_settings = FormaSettings()

    try:
        app_config = load_app_config()
    except FileNotFoundError:
        return base_settings

    updates = {}
    for key, value in app_config.items():
        if key == "messages":
            updates["messages"] = base_settings.messages.model_copy(update=value)
        elif key == "logfire":
            updates["logfire"] = LogfireConfig(**value)
        elif key in FormaSettings.model_fields:
            updates[key] = value

    if updates:
        return base_settings.model_copy(update=updates)

    return base_settings
