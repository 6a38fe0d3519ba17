"""Configuration resolution for LINE strategies.

This module turns loosely-typed options into the immutable
:class:`~lineauth.models.StrategyConfig` a strategy runs with:

* **Resolution** -- :func:`resolve_strategy_config` applies every default
  and provider quirk exactly once, at construction time, and fails fast on
  missing channel credentials.
* **Credential sources** -- :func:`resolve_credential` reads secrets from
  environment variables or files so they never live in a config file.
* **Config files** -- :func:`load_config_file` and :func:`resolve_config`
  locate and read the JSON/YAML file used by the ``lineauth`` CLI, with
  environment overrides layered on top.
"""

from __future__ import annotations

import json
import logging
import os
import platform
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml

from lineauth.exceptions import ConfigurationError
from lineauth.models import DEFAULT_SCOPE, PKCEMode, StrategyConfig

logger = logging.getLogger(__name__)

_APP_NAME = "lineauth"
_CONFIG_FILENAME = "config.json"
_PROJECT_CONFIG_FILENAME = "lineauth.json"

_BOT_PROMPTS = ("normal", "aggressive")

# Environment variables that override values from config files.
_ENV_OVERRIDES = {
    "LINEAUTH_CHANNEL_ID": "channel_id",
    "LINEAUTH_CHANNEL_SECRET": "channel_secret",
    "LINEAUTH_CALLBACK_URL": "callback_url",
}

_OPTION_KEYS = frozenset(
    {
        "channel_id",
        "channel_secret",
        "callback_url",
        "scope",
        "bot_prompt",
        "ui_locales",
        "prompt",
        "authorization_url",
        "token_url",
        "profile_url",
        "pkce",
        "state_ttl_seconds",
        "use_authorization_header_for_get",
        "timeout",
    }
)


# --- Strategy config resolution ---


def resolve_strategy_config(options: Mapping[str, Any]) -> StrategyConfig:
    """Resolve raw strategy options into a :class:`StrategyConfig`.

    Args:
        options: Option mapping. ``channel_id`` and ``channel_secret`` are
            required. ``scope`` may be a list or a space-separated string.
            ``pkce`` accepts ``True`` (session-backed), ``False``/``None``
            (disabled), a :class:`~lineauth.models.PKCEMode` or its name, or
            a mapping with ``enabled`` and optional ``mode`` keys.

    Returns:
        The fully defaulted, immutable configuration.

    Raises:
        ConfigurationError: If a channel credential is missing, an option
            is unknown, or a value fails validation.
    """
    unknown = set(options) - _OPTION_KEYS
    if unknown:
        raise ConfigurationError(f"Unknown strategy option(s): {', '.join(sorted(unknown))}")

    if not options.get("channel_id"):
        raise ConfigurationError("LINE channel ID must be set (channel_id)")
    if not options.get("channel_secret"):
        raise ConfigurationError("LINE channel secret must be set (channel_secret)")

    values: dict[str, Any] = {
        "channel_id": str(options["channel_id"]),
        "channel_secret": str(options["channel_secret"]),
        "scope": _resolve_scope(options.get("scope")),
        "pkce_mode": _resolve_pkce_mode(options.get("pkce")),
    }

    bot_prompt = options.get("bot_prompt")
    if bot_prompt in _BOT_PROMPTS:
        values["bot_prompt"] = bot_prompt
    elif bot_prompt:
        logger.warning("Ignoring unsupported bot_prompt %r", bot_prompt)

    prompt = options.get("prompt")
    if prompt == "consent":
        values["prompt"] = prompt
    elif prompt:
        logger.warning("Ignoring unsupported prompt %r (only 'consent' is forwarded)", prompt)

    for key in (
        "callback_url",
        "ui_locales",
        "authorization_url",
        "token_url",
        "profile_url",
        "state_ttl_seconds",
        "use_authorization_header_for_get",
        "timeout",
    ):
        value = options.get(key)
        if value is not None and value != "":
            values[key] = value

    return StrategyConfig(**values)


def _resolve_scope(scope: Any) -> tuple[str, ...]:
    if not scope:
        return DEFAULT_SCOPE
    if isinstance(scope, str):
        return tuple(scope.split())
    return tuple(str(s) for s in scope)


def _resolve_pkce_mode(pkce: Any) -> PKCEMode:
    if pkce is None or pkce is False:
        return PKCEMode.DISABLED
    if pkce is True:
        return PKCEMode.SESSION
    if isinstance(pkce, Mapping):
        if not pkce.get("enabled", True):
            return PKCEMode.DISABLED
        return _resolve_pkce_mode(pkce.get("mode") or True)
    try:
        return PKCEMode(pkce)
    except ValueError:
        choices = ", ".join(m.value for m in PKCEMode)
        raise ConfigurationError(f"Invalid pkce mode {pkce!r} (expected one of: {choices})") from None


# --- Credential source resolution ---


def resolve_credential(source: str) -> str:
    """Resolve a credential from its source descriptor.

    Supported formats:
        - ``"env:VAR_NAME"`` -- reads ``os.environ["VAR_NAME"]``
        - ``"file:/path/to/file"`` -- reads file content, stripped of whitespace
        - anything else is returned unchanged as a literal value

    Raises:
        ConfigurationError: If the variable is unset or the file unreadable.
    """
    if source.startswith("env:"):
        var_name = source[4:]
        value = os.environ.get(var_name)
        if value is None:
            raise ConfigurationError(
                f"Environment variable '{var_name}' is not set (source: {source})"
            )
        return value

    if source.startswith("file:"):
        path = Path(source[5:]).expanduser()
        if not path.is_file():
            raise ConfigurationError(f"Credential file not found: {path} (source: {source})")
        try:
            return path.read_text(encoding="utf-8").strip()
        except OSError as exc:
            raise ConfigurationError(f"Cannot read credential file {path}: {exc}") from exc

    return source


# --- Config files ---


def get_config_dir() -> Path:
    """Return the user configuration directory.

    On Linux/BSD: ``$XDG_CONFIG_HOME/lineauth/`` (default
    ``~/.config/lineauth/``). Elsewhere: ``~/.lineauth/``.
    """
    system = platform.system()
    if system == "Linux" or system.endswith("BSD"):
        base = os.environ.get("XDG_CONFIG_HOME", "")
        root = Path(base) if base else Path.home() / ".config"
        return root / _APP_NAME
    return Path.home() / f".{_APP_NAME}"


def load_config_file(path: str | Path) -> dict[str, Any]:
    """Load strategy options from a JSON or YAML file.

    Keys ending in ``_source`` are resolved through :func:`resolve_credential`
    and stored without the suffix, so ``"channel_secret_source":
    "env:LINE_SECRET"`` yields ``channel_secret``.

    Raises:
        ConfigurationError: If the file is missing, unparsable, or not a
            mapping.
    """
    file_path = Path(path).expanduser()
    if not file_path.is_file():
        raise ConfigurationError(f"Config file not found: {file_path}")
    try:
        text = file_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigurationError(f"Cannot read config file {file_path}: {exc}") from exc

    try:
        if file_path.suffix.lower() in (".yaml", ".yml"):
            data = yaml.safe_load(text)
        else:
            data = json.loads(text)
    except (json.JSONDecodeError, yaml.YAMLError) as exc:
        raise ConfigurationError(f"Invalid config file {file_path}: {exc}") from exc

    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file {file_path} must contain an object")

    options: dict[str, Any] = {}
    for key, value in data.items():
        if key.endswith("_source") and isinstance(value, str):
            options[key[: -len("_source")]] = resolve_credential(value)
        else:
            options[key] = value
    return options


def resolve_config(cli_config: Optional[str] = None) -> StrategyConfig:
    """Locate, load and resolve the CLI's strategy configuration.

    Precedence for the file (first match wins):
        1. ``cli_config`` (the ``--config`` flag)
        2. ``LINEAUTH_CONFIG`` environment variable
        3. ``./lineauth.json``
        4. ``<config_dir>/config.json``

    ``LINEAUTH_CHANNEL_ID``, ``LINEAUTH_CHANNEL_SECRET`` and
    ``LINEAUTH_CALLBACK_URL`` override values read from the file. Running
    with only those variables set and no file at all is valid.

    Raises:
        ConfigurationError: If an explicitly named file is missing or the
            resolved options are invalid.
    """
    options: dict[str, Any] = {}

    explicit = cli_config or os.environ.get("LINEAUTH_CONFIG")
    if explicit:
        options = load_config_file(explicit)
    else:
        for candidate in (
            Path.cwd() / _PROJECT_CONFIG_FILENAME,
            get_config_dir() / _CONFIG_FILENAME,
        ):
            if candidate.is_file():
                logger.debug("Using config file %s", candidate)
                options = load_config_file(candidate)
                break

    for env_var, key in _ENV_OVERRIDES.items():
        value = os.environ.get(env_var)
        if value:
            options[key] = value

    return resolve_strategy_config(options)
