from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict


class Severity(str, Enum):
    INFO = "INFO"
    WARN = "WARN"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


@dataclass
class PreforkError(Exception):
    code: str
    user_message: str
    severity: Severity = Severity.ERROR
    recoverable: bool = False
    context: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        super().__init__(self.user_message)

    def __str__(self) -> str:
        return self.user_message

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "user_message": self.user_message,
            "severity": self.severity.value,
            "recoverable": bool(self.recoverable),
            "context": {k: _jsonable(v) for k, v in (self.context or {}).items()},
        }


def _jsonable(value: Any) -> Any:
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    return repr(value)


class ValidationError(PreforkError):
    def __init__(self, user_message: str = "Invalid request.", **ctx: Any):
        super().__init__("validation_error", user_message, severity=Severity.WARN, recoverable=False, context=ctx)


class LoadError(PreforkError):
    def __init__(self, user_message: str = "Module failed to load.", **ctx: Any):
        super().__init__("load_error", user_message, severity=Severity.ERROR, recoverable=False, context=ctx)

    @property
    def module(self) -> str:
        return str(self.context.get("module") or "")


class CallbackError(PreforkError):
    def __init__(self, user_message: str = "Forking callback failed.", **ctx: Any):
        super().__init__("callback_error", user_message, severity=Severity.ERROR, recoverable=False, context=ctx)

    @property
    def callback(self) -> str:
        return str(self.context.get("callback") or "")


class DuplicateError(PreforkError):
    def __init__(self, user_message: str = "Callback already registered.", **ctx: Any):
        super().__init__("duplicate_error", user_message, severity=Severity.WARN, recoverable=False, context=ctx)


class ConfigError(PreforkError):
    def __init__(self, user_message: str = "Configuration error.", **ctx: Any):
        super().__init__("config_error", user_message, severity=Severity.CRITICAL, recoverable=False, context=ctx)
