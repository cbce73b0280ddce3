from __future__ import annotations

import inspect
import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from prefork.core.config.models import PreforkConfig
from prefork.core.errors import CallbackError, DuplicateError, LoadError, ValidationError
from prefork.core.events import EventLogger
from prefork.core.identifiers import DottedNameResolver, ImportlibLoader, ModuleLoader, ModuleResolver, validate_identifier
from prefork.core.logger import get_logger


@dataclass
class _Callback:
    fn: Callable[[], Any]
    fired: bool = False

    @property
    def name(self) -> str:
        return callable_name(self.fn)


def callable_name(fn: Any) -> str:
    name = getattr(fn, "__qualname__", None) or getattr(fn, "__name__", None)
    if name:
        module = getattr(fn, "__module__", None)
        return f"{module}.{name}" if module else str(name)
    return repr(fn)


class LoadCoordinator:
    """
    Defers module loading until the process declares that it is about to fork.

    - register() queues a module, or loads it at once when already forking
    - declare_forking() flips the flag, drains the queue in sorted order, then
      fires every callback that has not fired yet, in registration order
    - subscribe_callback() queues a callback, or fires it at once when forking

    Each operation holds one reentrant lock for its whole read-modify-write, so
    modules imported during the drain may register further modules.
    """

    def __init__(
        self,
        cfg: Optional[PreforkConfig] = None,
        *,
        resolver: Optional[ModuleResolver] = None,
        loader: Optional[ModuleLoader] = None,
        forking: Optional[bool] = None,
        logger: Optional[logging.Logger] = None,
        event_logger: Optional[EventLogger] = None,
    ):
        self.cfg = cfg or PreforkConfig()
        self.resolver = resolver or DottedNameResolver()
        self.loader = loader or ImportlibLoader()
        self.logger = logger or get_logger()
        if event_logger is None and self.cfg.event_log_path:
            event_logger = EventLogger(self.cfg.event_log_path)
        self.event_logger = event_logger

        self._lock = threading.RLock()
        self._forking = self.cfg.detect_forking() if forking is None else bool(forking)
        self._pending: Dict[str, str] = {}
        self._callbacks: List[_Callback] = []

    @property
    def forking(self) -> bool:
        with self._lock:
            return self._forking

    def pending(self) -> Dict[str, str]:
        with self._lock:
            return dict(self._pending)

    def snapshot(self) -> Dict[str, object]:
        with self._lock:
            return {
                "forking": self._forking,
                "pending": sorted(self._pending),
                "callbacks_total": len(self._callbacks),
                "callbacks_fired": sum(1 for c in self._callbacks if c.fired),
            }

    def register(self, identifier: Any) -> bool:
        identifier = validate_identifier(identifier)
        locator = self.resolver.resolve(identifier)
        with self._lock:
            if self.loader.is_loaded(locator) or identifier in self._pending:
                return True
            if self._forking:
                self._load_locked(identifier, locator)
            else:
                self._pending[identifier] = locator
                self.logger.debug("prefork: queued %s (%s)", identifier, locator)
                self._emit("prefork.queued", {"module": identifier, "locator": locator})
        return True

    def declare_forking(self) -> bool:
        with self._lock:
            if not self._forking:
                # Set before draining so registrations made by the modules being
                # loaded are satisfied immediately.
                self._forking = True
                self.logger.info("prefork: forking mode enabled")
                self._emit("prefork.enabled", {"pending": len(self._pending)})

            queued = sorted(self._pending.items())
            if queued:
                self.logger.info("prefork: loading %d queued module(s)", len(queued))
            try:
                for identifier, locator in queued:
                    if self.loader.is_loaded(locator):
                        self.logger.debug("prefork: %s already loaded, skipping", identifier)
                        self._emit("prefork.skipped", {"module": identifier, "locator": locator})
                        continue
                    self._load_locked(identifier, locator)
            finally:
                self._pending.clear()

            for entry in list(self._callbacks):
                if not entry.fired:
                    self._fire_locked(entry)
        return True

    def subscribe_callback(self, callback: Any) -> bool:
        if callback is None or not callable(callback):
            raise ValidationError("Callback must be callable.", callback=callback)
        if not _accepts_no_args(callback):
            raise ValidationError("Callback must be callable without arguments.", callback=callable_name(callback))
        with self._lock:
            if any(_same_callable(entry.fn, callback) for entry in self._callbacks):
                raise DuplicateError(f"Callback {callable_name(callback)} is already registered.", callback=callable_name(callback))
            entry = _Callback(fn=callback)
            self._callbacks.append(entry)
            if self._forking:
                self._fire_locked(entry)
        return True

    # ---- internals ----
    def _load_locked(self, identifier: str, locator: str) -> None:
        try:
            self.loader.load(locator)
        except Exception as e:  # noqa: BLE001
            self.logger.error("prefork: failed to load %s (%s): %s", identifier, locator, e)
            self._emit("prefork.load_failed", {"module": identifier, "locator": locator, "cause": repr(e)})
            raise LoadError(f"Failed to load {identifier}: {e}", module=identifier, locator=locator, cause=repr(e)) from e
        self.logger.debug("prefork: loaded %s", identifier)
        self._emit("prefork.loaded", {"module": identifier, "locator": locator})

    def _fire_locked(self, entry: _Callback) -> None:
        # Marked first: a callback that raises is never retried.
        entry.fired = True
        try:
            entry.fn()
        except Exception as e:  # noqa: BLE001
            self.logger.error("prefork: callback %s failed: %s", entry.name, e)
            self._emit("prefork.callback_failed", {"callback": entry.name, "cause": repr(e)})
            raise CallbackError(f"Callback {entry.name} failed: {e}", callback=entry.name, cause=repr(e)) from e
        self._emit("prefork.callback_fired", {"callback": entry.name})

    def _emit(self, event_type: str, details: Dict[str, Any]) -> None:
        if self.event_logger is None:
            return
        try:
            self.event_logger.log(event_type, details)
        except OSError as e:
            # the event trail never interrupts a transition
            self.logger.warning("prefork: could not record %s to %s: %s", event_type, self.event_logger.path, e)


def _accepts_no_args(fn: Callable[..., Any]) -> bool:
    try:
        sig = inspect.signature(fn)
    except (TypeError, ValueError):
        # builtins without an introspectable signature
        return True
    try:
        sig.bind()
    except TypeError:
        return False
    return True


def _same_callable(a: Any, b: Any) -> bool:
    if a is b:
        return True
    # obj.method builds a new bound method on every access
    a_self, a_func = getattr(a, "__self__", None), getattr(a, "__func__", None)
    b_self, b_func = getattr(b, "__self__", None), getattr(b, "__func__", None)
    return a_func is not None and a_func is b_func and a_self is b_self
