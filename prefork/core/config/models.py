from __future__ import annotations

import os
from typing import List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError as PydanticValidationError, field_validator

from prefork.core.config.io import load_config
from prefork.core.errors import ConfigError

CONFIG_ENV_VAR = "PREFORK_CONFIG"


class PreforkConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    # Any of these set to a non-empty value means the host process forks.
    forking_env_vars: List[str] = Field(default_factory=lambda: ["MOD_PERL"])
    enable_token: str = Field(default=":enable", min_length=1)
    strict_pragma_args: bool = True
    log_dir: Optional[str] = None
    event_log_path: Optional[str] = None

    @field_validator("forking_env_vars")
    @classmethod
    def _names_non_empty(cls, v: List[str]) -> List[str]:
        for name in v:
            if not str(name).strip():
                raise ValueError("environment variable names must be non-empty")
        return v

    def detect_forking(self, environ: Optional[Mapping[str, str]] = None) -> bool:
        env = os.environ if environ is None else environ
        return any(bool(env.get(name)) for name in self.forking_env_vars)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "PreforkConfig":
        """
        Defaults, overlaid by the JSON object named by $PREFORK_CONFIG.

        A missing file is not an error; a corrupt or invalid one is.
        """
        env = os.environ if environ is None else environ
        path = env.get(CONFIG_ENV_VAR) or ""
        if not path:
            return cls()
        rr = load_config(path)
        if not rr.ok:
            if rr.error == "missing":
                return cls()
            raise ConfigError(f"Could not read prefork config: {rr.error}", path=path, error=rr.error)
        try:
            return cls.model_validate(rr.data)
        except PydanticValidationError as e:
            raise ConfigError("Invalid prefork config.", path=path, error=str(e)) from e
