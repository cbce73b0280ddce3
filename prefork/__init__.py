"""
prefork: defer module loading until the process is about to fork.

Loaders call `prefork("Some::Module")` (or `use("Some::Module")`) to ask for a
module to be loaded before forking. Forkers call `enable()` (or
`use(":enable")`) once they know they will fork, which loads everything queued
so far. Setting MOD_PERL in the environment starts the process in forking mode.

All module-level functions act on one process-wide `LoadCoordinator`, built on
first use from `PreforkConfig.from_env()`. Composers that build their own
coordinator install it with `set_coordinator()`.
"""

from __future__ import annotations

import threading
from typing import Any, Callable, Optional

from prefork.core.config import PreforkConfig
from prefork.core.coordinator import LoadCoordinator
from prefork.core.errors import CallbackError, ConfigError, DuplicateError, LoadError, PreforkError, ValidationError
from prefork.core.logger import setup_logging
from prefork.core.pragma import dispatch, parse_pragma

__version__ = "0.1.0"

_lock = threading.Lock()
_coordinator: Optional[LoadCoordinator] = None


def get_coordinator() -> LoadCoordinator:
    global _coordinator
    with _lock:
        if _coordinator is None:
            cfg = PreforkConfig.from_env()
            if cfg.log_dir:
                setup_logging(cfg.log_dir)
            _coordinator = LoadCoordinator(cfg)
        return _coordinator


def set_coordinator(coordinator: Optional[LoadCoordinator]) -> Optional[LoadCoordinator]:
    """Install the process-wide coordinator; returns the previous one. None resets it."""
    global _coordinator
    with _lock:
        previous, _coordinator = _coordinator, coordinator
    return previous


def prefork(identifier: Any) -> bool:
    return get_coordinator().register(identifier)


def enable() -> bool:
    return get_coordinator().declare_forking()


def subscribe(callback: Callable[[], Any]) -> bool:
    return get_coordinator().subscribe_callback(callback)


def is_forking() -> bool:
    return get_coordinator().forking


def use(*args: Any) -> bool:
    coordinator = get_coordinator()
    request = parse_pragma(
        args,
        enable_token=coordinator.cfg.enable_token,
        strict=coordinator.cfg.strict_pragma_args,
        logger=coordinator.logger,
    )
    return dispatch(request, coordinator)


__all__ = [
    "CallbackError",
    "ConfigError",
    "DuplicateError",
    "LoadCoordinator",
    "LoadError",
    "PreforkConfig",
    "PreforkError",
    "ValidationError",
    "enable",
    "get_coordinator",
    "is_forking",
    "prefork",
    "set_coordinator",
    "subscribe",
    "use",
]
