from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional, Sequence, Union

from prefork.core.errors import ValidationError
from prefork.core.logger import get_logger

DEFAULT_ENABLE_TOKEN = ":enable"


@dataclass(frozen=True)
class RegisterRequest:
    identifier: str


@dataclass(frozen=True)
class EnableForkingRequest:
    pass


@dataclass(frozen=True)
class NoopRequest:
    pass


PragmaRequest = Union[RegisterRequest, EnableForkingRequest, NoopRequest]


def parse_pragma(
    args: Sequence[Any],
    *,
    enable_token: str = DEFAULT_ENABLE_TOKEN,
    strict: bool = True,
    logger: Optional[logging.Logger] = None,
) -> PragmaRequest:
    """
    Turn pragma-style arguments into a request.

    No argument (or a single empty one, or "0") is a no-op, the enable token enables
    forking mode, and any other value names a module to register. More than one
    argument is rejected when `strict`; otherwise the extras are dropped.
    """
    args = tuple(args)
    if len(args) > 1:
        if strict:
            raise ValidationError("prefork accepts a single argument.", args=repr(args))
        (logger or get_logger()).warning("prefork: ignoring extra pragma arguments %r", args[1:])
    # "0" counts as empty
    if not args or not args[0] or args[0] == "0":
        return NoopRequest()
    value = args[0]
    if value == enable_token:
        return EnableForkingRequest()
    return RegisterRequest(identifier=value)


def dispatch(request: PragmaRequest, coordinator: Any) -> bool:
    if isinstance(request, EnableForkingRequest):
        return coordinator.declare_forking()
    if isinstance(request, RegisterRequest):
        return coordinator.register(request.identifier)
    if isinstance(request, NoopRequest):
        return True
    raise ValidationError("Unknown pragma request.", request=repr(request))
