from __future__ import annotations

from copy import deepcopy
from pathlib import Path
from typing import Any, Mapping

import yaml
from dotenv import load_dotenv

from .defaults import DEFAULT_CONFIG
from .schema import AppConfig, EnvOverrides

_SECTION_KEYS: set[str] = {"plugins", "http", "logging", "providers"}

# Flat key -> (section, key)
_FLAT_MAP: dict[str, tuple[str, str]] = {
    "plugin_dir": ("plugins", "plugin_dir"),
    "plugins_enabled": ("plugins", "enabled"),
    "each_error_policy": ("plugins", "each_error_policy"),
    "plugin_http_timeout_seconds": ("plugins", "http_timeout_seconds"),
    "plugin_extract_timeout_seconds": ("plugins", "extract_timeout_seconds"),
    "http_timeout_seconds": ("http", "timeout_seconds"),
    "http_user_agent": ("http", "user_agent"),
    "log_level": ("logging", "level"),
    "log_format": ("logging", "format"),
}

# Flat key -> (provider, key) under providers.*
_PROVIDER_FLAT_MAP: dict[str, tuple[str, str]] = {
    "flixhq_enabled": ("flixhq", "enabled"),
    "flixhq_base_url": ("flixhq", "base_url"),
    "sflix_enabled": ("sflix", "enabled"),
    "sflix_base_url": ("sflix", "base_url"),
}


def _deep_merge(base: dict[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    """Merge `override` into `base` in place and return it.

    Nested mappings merge key by key; any other value replaces.
    """
    for key, value in override.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, Mapping):
            _deep_merge(base[key], value)
        else:
            base[key] = value
    return base


def _normalize_layer(data: Mapping[str, Any]) -> dict[str, Any]:
    """
    Bring one layer (defaults, YAML, ENV or CLI) into the sectioned shape.

    Flat keys such as `sflix_base_url` are folded into their section. Result keys:
    - app_name, environment
    - plugins.{plugin_dir, enabled, each_error_policy, http_timeout_seconds,
      extract_timeout_seconds}
    - http.timeout_seconds, http.user_agent
    - logging.level, logging.format
    - providers.<name>.{enabled, base_url, timeout_seconds}
    """
    out: dict[str, Any] = {}

    # Sectioned input is copied as-is
    for section in _SECTION_KEYS:
        if section in data and isinstance(data[section], Mapping):
            out[section] = deepcopy(dict(data[section]))

    for key in ("app_name", "environment"):
        if key in data:
            out[key] = data[key]

    for flat_key, (section, section_key) in _FLAT_MAP.items():
        if flat_key in data:
            out.setdefault(section, {})
            out[section][section_key] = data[flat_key]

    for flat_key, (provider, provider_key) in _PROVIDER_FLAT_MAP.items():
        if flat_key in data:
            providers = out.setdefault("providers", {})
            providers.setdefault(provider, {})[provider_key] = data[flat_key]

    return out


def _read_yaml_config(config_path: Path) -> dict[str, Any]:
    raw = config_path.read_text(encoding="utf-8")
    parsed = yaml.safe_load(raw)
    if parsed is None:
        return {}
    if not isinstance(parsed, dict):
        raise ValueError(f"Config YAML must be a mapping, got: {type(parsed)!r}")
    return parsed


def load_config(
    *,
    config_path: Path | None = None,
    dotenv_path: Path | None = None,
    cli_overrides: dict[str, Any] | None = None,
) -> AppConfig:
    """
    Build the final AppConfig from defaults, then YAML, then MEDIABRIDGE_* env
    vars (a .env file feeds this layer), then CLI overrides; later layers win.

    Reads files only. Missing config or dotenv files raise FileNotFoundError.
    """
    cli_overrides = cli_overrides or {}

    # .env values land in os.environ before EnvOverrides reads it.
    if dotenv_path is not None:
        if not dotenv_path.exists():
            raise FileNotFoundError(dotenv_path)
        load_dotenv(dotenv_path, override=False)

    base = _normalize_layer(deepcopy(DEFAULT_CONFIG))

    if config_path is not None:
        if not config_path.exists():
            raise FileNotFoundError(config_path)
        _deep_merge(base, _normalize_layer(_read_yaml_config(config_path)))

    _deep_merge(base, _normalize_layer(EnvOverrides().to_update_dict()))
    _deep_merge(base, _normalize_layer(cli_overrides))

    return AppConfig.model_validate(base)
