"""Configuration - YAML file validated by pydantic models."""

from multicomp.config.loader import load_config, load_multicomp_config, resolve_workspace
from multicomp.config.schema import MulticompConfig, ObserversConfig, PatternObserverConfig

__all__ = [
    "MulticompConfig",
    "ObserversConfig",
    "PatternObserverConfig",
    "load_config",
    "load_multicomp_config",
    "resolve_workspace",
]
