"""Replace an emitter type's register/unregister primitives with tracking wrappers."""

from __future__ import annotations

import functools
import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from earshot.core.registry import ListenerRecord, ListenerRegistry
from earshot.errors import InstrumentationError
from earshot.models.runtime import RegistrationIdentity

logger = logging.getLogger("earshot.interceptor")

_MISSING = object()


@dataclass(frozen=True, slots=True)
class Primitives:
    """The emitter base type and the names of its two registration primitives."""

    owner: type
    add: str = "add_event_listener"
    remove: str = "remove_event_listener"

    def describe(self) -> str:
        return f"{self.owner.__qualname__}.{self.add}/{self.remove}"


def registration_options(args: tuple[Any, ...], kwargs: dict[str, Any]) -> Any:
    """Pick the options value out of whatever followed the handler in the call.

    The first extra positional argument wins, then an ``options`` keyword,
    then a bare ``capture`` keyword. Primitives that take neither yield None.
    """
    if args:
        return args[0]
    if "options" in kwargs:
        return kwargs["options"]
    if "capture" in kwargs:
        return {"capture": kwargs["capture"]}
    return None


class Interceptor:
    """Owns the patched primitives. install/uninstall are idempotent."""

    def __init__(
        self,
        primitives: Primitives,
        registry: ListenerRegistry,
        on_tracked: Callable[[ListenerRecord, bool], None] | None = None,
        on_untracked: Callable[[ListenerRecord], None] | None = None,
        lock: threading.RLock | None = None,
    ):
        self.primitives = primitives
        self._registry = registry
        self._on_tracked = on_tracked
        self._on_untracked = on_untracked
        self._lock = lock or threading.RLock()
        self._installed = False
        # attribute name -> (original function, whether owner defined it itself)
        self._saved: dict[str, tuple[Any, bool]] = {}

    @property
    def installed(self) -> bool:
        return self._installed

    def install(self) -> Callable[[], None]:
        """Patch the primitives. Returns a disposer equivalent to uninstall()."""
        if self._installed:
            logger.debug("Interceptor already installed on %s", self.primitives.describe())
            return self.uninstall

        owner = self.primitives.owner
        saved: dict[str, tuple[Any, bool]] = {}
        delegates: dict[str, Callable[..., Any]] = {}
        for name in (self.primitives.add, self.primitives.remove):
            original = getattr(owner, name, _MISSING)
            if original is _MISSING or not callable(original):
                raise InstrumentationError(
                    f"{owner.__qualname__} has no callable primitive '{name}'"
                )
            delegates[name] = original
            owned = name in vars(owner)
            # keep the raw descriptor so staticmethod/classmethod survive restore
            saved[name] = (vars(owner)[name] if owned else original, owned)

        wrappers = {
            self.primitives.add: self._wrap_add(delegates[self.primitives.add]),
            self.primitives.remove: self._wrap_remove(delegates[self.primitives.remove]),
        }
        patched: list[str] = []
        try:
            for name, wrapper in wrappers.items():
                setattr(owner, name, wrapper)
                patched.append(name)
        except (TypeError, AttributeError) as exc:
            for name in patched:
                _restore(owner, name, *saved[name])
            raise InstrumentationError(
                f"Cannot patch {self.primitives.describe()}: {exc}"
            ) from exc

        self._saved = saved
        self._installed = True
        logger.debug("Installed interceptor on %s", self.primitives.describe())
        return self.uninstall

    def uninstall(self) -> None:
        if not self._installed:
            return
        owner = self.primitives.owner
        try:
            for name, (original, owned) in self._saved.items():
                _restore(owner, name, original, owned)
        except (TypeError, AttributeError) as exc:
            raise InstrumentationError(
                f"Cannot restore {self.primitives.describe()}: {exc}"
            ) from exc
        self._saved = {}
        self._installed = False
        logger.debug("Uninstalled interceptor from %s", self.primitives.describe())

    def _wrap_add(self, original: Callable[..., Any]) -> Callable[..., Any]:
        interceptor = self

        @functools.wraps(original)
        def tracked_add(target, event_type, handler, *args, **kwargs):
            if not callable(handler):
                return original(target, event_type, handler, *args, **kwargs)
            options = registration_options(args, kwargs)
            identity = RegistrationIdentity.from_call(target, event_type, handler, options)
            with interceptor._lock:
                try:
                    record, created = interceptor._registry.track_record(identity, options)
                except TypeError:
                    logger.debug("Unhashable handler %r left untracked", handler)
                    return original(target, event_type, handler, *args, **kwargs)
            try:
                result = original(target, event_type, record.wrapped, *args, **kwargs)
            except BaseException:
                if created:
                    with interceptor._lock:
                        interceptor._registry.untrack(identity)
                raise
            if interceptor._on_tracked is not None:
                interceptor._on_tracked(record, created)
            return result

        return tracked_add

    def _wrap_remove(self, original: Callable[..., Any]) -> Callable[..., Any]:
        interceptor = self

        @functools.wraps(original)
        def tracked_remove(target, event_type, handler, *args, **kwargs):
            if not callable(handler):
                return original(target, event_type, handler, *args, **kwargs)
            identity = RegistrationIdentity.from_call(
                target, event_type, handler, registration_options(args, kwargs)
            )
            with interceptor._lock:
                try:
                    record = interceptor._registry.get(identity)
                except TypeError:
                    record = None
            if record is None:
                return original(target, event_type, handler, *args, **kwargs)

            result = original(target, event_type, record.wrapped, *args, **kwargs)
            with interceptor._lock:
                removed = interceptor._registry.untrack(identity)
            if removed and interceptor._on_untracked is not None:
                interceptor._on_untracked(record)
            return result

        return tracked_remove


def _restore(owner: type, name: str, original: Any, owned: bool) -> None:
    if owned:
        setattr(owner, name, original)
    else:
        delattr(owner, name)
