from __future__ import annotations
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from .errors import ConfigError

_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


class PrefillSettings(BaseModel):
    global_context: Dict[str, Any] = Field(default_factory=dict)
    auto_prefill: bool = False        # default toggle for nodes never toggled explicitly
    max_passes: int = Field(64, gt=0)  # floor; the engine raises it to node count + 1
    log_level: str = "INFO"
    json_logs: bool = False

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, v: str) -> str:
        if v.upper() not in _LEVELS:
            raise ValueError(f"Unknown log level '{v}'. Use one of: {', '.join(sorted(_LEVELS))}")
        return v.upper()

    def frozen_context(self) -> Mapping[str, Any]:
        return MappingProxyType(dict(self.global_context))


def load_settings(path: Optional[Path] = None) -> PrefillSettings:
    if path is None:
        return PrefillSettings()
    path = Path(path)
    if not path.exists():
        raise ConfigError(f"Settings file '{path}' does not exist.")
    try:
        data = yaml.safe_load(path.read_text()) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Could not parse settings file '{path}': {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"Settings file '{path}' must contain a mapping.")
    try:
        return PrefillSettings(**data)
    except ValidationError as e:
        raise ConfigError(f"Invalid settings in '{path}': {e}") from e
