"""Configuration system for the inbox targeting service.

Implements the main configuration schema using Pydantic for validation, with
``${VAR}`` environment variable resolution and fail-fast loading that reports
actionable, field-level error messages.
"""

import os
import re
from collections.abc import Mapping
from pathlib import Path
from typing import Annotated, Final

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

# ${VARIABLE_NAME} references inside YAML string values
ENV_VAR_PATTERN: Final[re.Pattern[str]] = re.compile(r"\$\{([A-Z0-9_]+)\}")

DEFAULT_CONFIG_PATH: Final[Path] = Path("config/inbox-targeting.yaml")


class ServerConfig(BaseModel):
    """HTTP listener settings."""

    host: Annotated[str, Field(description="Interface to bind", min_length=1)] = "0.0.0.0"
    port: Annotated[int, Field(description="TCP port to listen on", ge=1, le=65535)] = 3000


class HTTPClientConfig(BaseModel):
    """Outbound HTTP behavior for push providers."""

    timeout_seconds: Annotated[
        float,
        Field(gt=0, description="Per-request timeout in seconds"),
    ] = 10.0
    max_retries: Annotated[
        int,
        Field(ge=0, le=10, description="Retries for transient failures"),
    ] = 3
    max_backoff_seconds: Annotated[
        float,
        Field(gt=0, description="Upper bound for a single backoff delay"),
    ] = 30.0


class PushConfig(BaseModel):
    """Push delivery settings.

    ``providers`` holds provider-specific option blocks keyed by plugin
    identifier; the selected plugin validates its own block.
    """

    provider: Annotated[
        str,
        Field(description="Identifier of the delivery provider plugin"),
    ] = "log"
    dry_run: Annotated[
        bool,
        Field(description="Log pushes and report success without contacting the provider"),
    ] = False
    http: Annotated[
        HTTPClientConfig,
        Field(description="Outbound HTTP client settings"),
    ] = HTTPClientConfig()
    providers: Annotated[
        dict[str, dict[str, object]],
        Field(description="Provider-specific settings keyed by plugin identifier"),
    ] = {}

    @field_validator("provider", mode="after")
    @classmethod
    def validate_provider_identifier(cls, v: str) -> str:
        """Validate the provider identifier against discovered plugins.

        Raises:
            ValueError: If no plugin is registered under ``v``
        """
        # Import here to avoid circular dependency at module level
        from inbox_targeting.plugins.discovery import discover_plugins

        available = {plugin.identifier for plugin in discover_plugins()}
        if v not in available:
            msg = f"Unknown push provider: {v}. Available providers: {', '.join(sorted(available))}"
            raise ValueError(msg)
        return v

    def settings_for(self, identifier: str) -> Mapping[str, object]:
        """Return the option block for a provider, empty when not configured."""
        return self.providers.get(identifier, {})


class InboxConfig(BaseModel):
    """Message source settings."""

    seed_file: Annotated[
        Path | None,
        Field(description="Optional YAML file of messages loaded at startup"),
    ] = None

    @field_validator("seed_file", mode="after")
    @classmethod
    def validate_seed_file_exists(cls, v: Path | None) -> Path | None:
        if v is not None and not v.is_file():
            msg = f"Seed file does not exist: {v}"
            raise ValueError(msg)
        return v


class ApplicationConfig(BaseModel):
    """Application-level settings."""

    log_level: Annotated[
        str,
        Field(
            description="Logging level",
            pattern=r"^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$",
        ),
    ] = "INFO"
    syslog_enabled: Annotated[
        bool,
        Field(description="Enable syslog integration"),
    ] = False


class MainConfig(BaseModel):
    """Main application configuration schema.

    Aggregates the server, push, inbox and application sections. Every
    section has defaults, so an empty file yields a working development
    setup with the logging provider.
    """

    server: Annotated[ServerConfig, Field(description="HTTP listener configuration")] = ServerConfig()
    push: Annotated[PushConfig, Field(description="Push delivery configuration")] = PushConfig()
    inbox: Annotated[InboxConfig, Field(description="Message source configuration")] = InboxConfig()
    application: Annotated[
        ApplicationConfig,
        Field(description="Application-level configuration"),
    ] = ApplicationConfig()


class EnvironmentVariableError(Exception):
    """Raised when a referenced environment variable is not set.

    The message names the variable but never includes any secret value.
    """


class ConfigurationError(Exception):
    """Raised when configuration loading or validation fails."""


def resolve_env_var(value: str) -> str:
    """Replace every ``${NAME}`` reference in ``value`` with its environment value.

    Raises:
        EnvironmentVariableError: If a referenced variable is not set

    Examples:
        >>> os.environ["EXPO_ACCESS_TOKEN"] = "secret_value"
        >>> resolve_env_var("${EXPO_ACCESS_TOKEN}")
        'secret_value'
        >>> resolve_env_var("no variables here")
        'no variables here'
    """

    def replace_match(match: re.Match[str]) -> str:
        var_name = match.group(1)
        env_value = os.environ.get(var_name)
        if env_value is None:
            msg = (
                f"Required environment variable '{var_name}' is not set. "
                f"Please set this variable before starting the application."
            )
            raise EnvironmentVariableError(msg)
        return env_value

    return ENV_VAR_PATTERN.sub(replace_match, value)


def _resolve_env_vars(value: object) -> object:
    if isinstance(value, str):
        return resolve_env_var(value)
    if isinstance(value, dict):
        # YAML data is untyped at load time; validated by Pydantic after resolution
        return resolve_env_vars_in_dict(value)  # pyright: ignore[reportUnknownArgumentType]  # YAML boundary
    if isinstance(value, list):
        return [_resolve_env_vars(item) for item in value]  # pyright: ignore[reportUnknownVariableType]  # YAML list items
    return value


def resolve_env_vars_in_dict(data: Mapping[str, object]) -> dict[str, object]:
    """Recursively resolve environment variables in nested YAML data.

    Examples:
        >>> os.environ["SECRET"] = "my_secret"
        >>> resolve_env_vars_in_dict({"nested": {"key": "${SECRET}"}, "n": 3})
        {'nested': {'key': 'my_secret'}, 'n': 3}
    """
    return {key: _resolve_env_vars(value) for key, value in data.items()}


def format_validation_error(error: ValidationError, config_path: Path) -> str:
    """Render a pydantic ValidationError as field-level diagnostics."""
    error_lines = ["Configuration validation failed:", ""]
    for detail in error.errors():
        field_path = " → ".join(str(loc) for loc in detail["loc"])
        error_lines.append(f"  Field: {field_path}")
        error_lines.append(f"  Error: {detail['msg']}")
        error_lines.append(f"  Type: {detail['type']}")
        error_lines.append("")
    error_lines.append(f"Configuration file: {config_path}")
    error_lines.append("Please fix the above errors and try again.")
    return "\n".join(error_lines)


def load_main_config(config_path: Path) -> MainConfig:
    """Load and validate the main configuration from a YAML file.

    Raises:
        ConfigurationError: If the file is missing, unreadable, malformed,
            references an unset environment variable, or fails validation

    Examples:
        >>> config = load_main_config(Path("config/inbox-targeting.yaml"))
        >>> config.server.port
        3000
    """
    if not config_path.exists():
        msg = (
            f"Configuration file not found: {config_path}\n"
            f"Please create a configuration file at this location.\n"
            f"See config/inbox-targeting.yaml for the format."
        )
        raise ConfigurationError(msg)

    try:
        with config_path.open("r", encoding="utf-8") as f:
            raw_data: object = yaml.safe_load(f)  # pyright: ignore[reportAny]  # YAML boundary
    except yaml.YAMLError as e:
        msg = (
            f"Failed to parse YAML configuration file: {config_path}\n"
            f"YAML parsing error: {e}\n"
            f"Please check the file for syntax errors."
        )
        raise ConfigurationError(msg) from e
    except OSError as e:
        msg = f"Failed to read configuration file: {config_path}\nError: {e}\nPlease check file permissions."
        raise ConfigurationError(msg) from e

    if raw_data is None:
        raw_data = {}
    if not isinstance(raw_data, dict):
        msg = (
            f"Invalid configuration file format: {config_path}\n"
            f"Expected YAML dictionary at root level, got: {type(raw_data).__name__}\n"
            f"Configuration file must contain key-value pairs."
        )
        raise ConfigurationError(msg)

    try:
        resolved_data = resolve_env_vars_in_dict(raw_data)  # pyright: ignore[reportUnknownArgumentType]  # YAML boundary
    except EnvironmentVariableError as e:
        msg = (
            f"Environment variable resolution failed in: {config_path}\n"
            f"{e}\n"
            f"Set the required environment variable before starting the application."
        )
        raise ConfigurationError(msg) from e

    try:
        return MainConfig.model_validate(resolved_data)
    except ValidationError as e:
        raise ConfigurationError(format_validation_error(e, config_path)) from e
