from __future__ import annotations

import importlib
import re
import sys
from typing import Any, List, MutableMapping, Optional, Protocol

from prefork.core.errors import ValidationError

_SEGMENT = r"[A-Za-z_][A-Za-z0-9_]*"
# "::" and "." are the usual separators; "'" is the legacy one.
_SEPARATOR = r"(?:::|\.|')"
_IDENTIFIER_RE = re.compile(rf"{_SEGMENT}(?:{_SEPARATOR}{_SEGMENT})*")
_SPLIT_RE = re.compile(_SEPARATOR)


def validate_identifier(value: Any) -> str:
    if value is None or (isinstance(value, str) and not value):
        raise ValidationError("You did not pass a module name to prefork.", value=value)
    if not isinstance(value, str):
        raise ValidationError("Module name must be a string.", value=value, type=type(value).__name__)
    if not _IDENTIFIER_RE.fullmatch(value):
        raise ValidationError(f"'{value}' is not a module name.", value=value)
    return value


def split_identifier(identifier: str) -> List[str]:
    return _SPLIT_RE.split(validate_identifier(identifier))


class ModuleResolver(Protocol):
    def resolve(self, identifier: str) -> str: ...


class ModuleLoader(Protocol):
    def is_loaded(self, locator: str) -> bool: ...

    def load(self, locator: str) -> Any: ...


class DottedNameResolver:
    """
    Maps `Foo::Bar`, `Foo'Bar` and `Foo.Bar` onto the importable name `Foo.Bar`.
    """

    def resolve(self, identifier: str) -> str:
        return ".".join(split_identifier(identifier))


class ImportlibLoader:
    """
    Imports with importlib. The loaded set is `sys.modules` unless another
    mapping is supplied, in which case successful imports are recorded there too.
    """

    def __init__(self, modules: Optional[MutableMapping[str, Any]] = None) -> None:
        self._modules = modules

    @property
    def modules(self) -> MutableMapping[str, Any]:
        return sys.modules if self._modules is None else self._modules

    def is_loaded(self, locator: str) -> bool:
        return self.modules.get(locator) is not None

    def load(self, locator: str) -> Any:
        mod = importlib.import_module(locator)
        if self._modules is not None:
            self._modules[locator] = mod
        return mod
