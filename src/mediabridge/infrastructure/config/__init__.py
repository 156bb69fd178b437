from __future__ import annotations

from .load import load_config
from .schema import AppConfig, EnvOverrides, ProviderSettings, ProvidersConfig

__all__ = [
    "AppConfig",
    "EnvOverrides",
    "ProviderSettings",
    "ProvidersConfig",
    "load_config",
]
