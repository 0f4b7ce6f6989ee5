from __future__ import annotations

import logging
import os
import shutil
from pathlib import Path
from typing import Any, Dict, List, Mapping, MutableMapping, Optional, Type

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel

from notion_as_mcp.config.models import AppConfig, ConfigLoadRequest

logger = logging.getLogger(__name__)

SAMPLE_CONFIG_PATH = Path("examples/config.yaml")


def _section_model(model: Type[BaseModel], name: str) -> Optional[Type[BaseModel]]:
    annotation = model.model_fields[name].annotation
    if isinstance(annotation, type) and issubclass(annotation, BaseModel):
        return annotation
    return None


def override_path(env_var_name: str, prefix: str) -> List[str]:
    """Split `APP__CACHE__TTL_SECONDS` into `["cache", "ttl_seconds"]`."""
    segments = [part.lower() for part in env_var_name[len(prefix) :].split("__") if part]
    if not segments:
        raise ValueError(f"Invalid environment variable override name: {env_var_name}")
    return segments


def apply_override(config: MutableMapping[str, Any], path: List[str], value: str) -> None:
    """
    Set `value` at `path` inside the raw config mapping.

    Every segment must name a field of AppConfig or of one of its sections. Sections
    missing from the YAML file are created, so a setting can come from the environment
    alone. Values stay strings; pydantic coerces them during validation.
    """
    dotted = ".".join(path)
    model: Optional[Type[BaseModel]] = AppConfig
    target = config
    for depth, segment in enumerate(path):
        if model is None or segment not in model.model_fields:
            raise KeyError(f"Unknown configuration key path: {dotted}")
        if depth == len(path) - 1:
            target[segment] = value
            return
        model = _section_model(model, segment)
        section = target.setdefault(segment, {})
        if model is None or not isinstance(section, dict):
            raise TypeError(f"Configuration key path does not point to a mapping: {dotted}")
        target = section


class YamlConfigLoader:
    """
    Builds AppConfig from three layers, lowest precedence first: the YAML file, the
    `.env` file and the process environment. `.env` never replaces a variable that is
    already set.
    """

    async def load(self, request: ConfigLoadRequest = ConfigLoadRequest()) -> AppConfig:
        config = self._read_yaml(Path(request.yaml_path))
        if request.dotenv_path is not None:
            self._load_dotenv(Path(request.dotenv_path))
        self._apply_environment(config, request.env_prefix, os.environ)
        return AppConfig.model_validate(config)

    def _read_yaml(self, path: Path) -> Dict[str, Any]:
        if not path.exists() and SAMPLE_CONFIG_PATH.exists():
            path.parent.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(SAMPLE_CONFIG_PATH, path)
            logger.info("Created config file from sample. path=%s", path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

        data = yaml.safe_load(path.read_text(encoding="utf-8"))
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ValueError(f"Top-level YAML must be a mapping, got: {type(data).__name__}")
        return data

    def _load_dotenv(self, path: Path) -> None:
        if path.exists():
            load_dotenv(dotenv_path=path, override=False)

    def _apply_environment(
        self,
        config: MutableMapping[str, Any],
        prefix: str,
        environ: Mapping[str, str],
    ) -> None:
        for name, value in environ.items():
            if name.startswith(prefix):
                apply_override(config, override_path(name, prefix), value)
