import os
from pathlib import Path
from typing import Optional, Type, TypeVar

import yaml
from loguru import logger
from pydantic import BaseModel

from multicomp.config.schema import MulticompConfig
from multicomp.constants import CONFIG_FILENAME, DEFAULT_WORKSPACE, WORKSPACE_ENV
from multicomp.utils import expand_env_vars

T = TypeVar("T", bound=BaseModel)


def _warn_unknown_keys(model: BaseModel, path: str, config_path: Path) -> None:
    """Recursively warn about unknown keys in a model and its nested models."""
    if hasattr(model, "model_extra") and model.model_extra:
        logger.warning(
            "Unknown config keys", section=path, config_path=str(config_path), keys=list(model.model_extra.keys())
        )

    for field_name, field_value in model.__dict__.items():
        if isinstance(field_value, BaseModel):
            _warn_unknown_keys(field_value, f"{path}.{field_name}", config_path)


def load_config(path: Path, model_class: Type[T]) -> T:
    """Load and validate configuration from a YAML file.

    Args:
        path: Path to the multicomp.yml file.
        model_class: The Pydantic model class to use for validation.

    Returns:
        The validated configuration model.
    """
    if not path.exists():
        return model_class()

    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        logger.warning("Failed to read config file", config_path=str(path), error=str(e))
        return model_class()

    expanded = expand_env_vars(raw)
    model = model_class.model_validate(expanded)
    _warn_unknown_keys(model, "root", path)
    return model


def load_multicomp_config(path: Optional[Path] = None) -> MulticompConfig:
    """Load the plugin configuration, defaulting to ./multicomp.yml."""
    if path is None:
        path = Path.cwd() / CONFIG_FILENAME
    return load_config(path, MulticompConfig)


def resolve_workspace(config: MulticompConfig, host_workspace: Optional[str] = None) -> Path:
    """Pick the storage root: host-provided, configured, env, then default."""
    candidate = host_workspace or config.workspace_path or os.environ.get(WORKSPACE_ENV) or DEFAULT_WORKSPACE
    return Path(candidate).expanduser()
