"""Named module-level singletons that tests rebuild between cases."""

from __future__ import annotations

from collections.abc import Callable

_resetters: dict[str, Callable[[], None]] = {}


def register_singleton(name: str, reset_fn: Callable[[], None]) -> None:
    """Register *reset_fn* under *name*; re-registering a name replaces it."""
    _resetters[name] = reset_fn


def registered_singletons() -> list[str]:
    return list(_resetters)


def reset_all_singletons() -> None:
    for fn in list(_resetters.values()):
        fn()
