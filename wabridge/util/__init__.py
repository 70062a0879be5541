"""Shared utilities."""

from .async_helpers import run_sync, sleep_jitter
from .env_file import EnvFile
from .result import Result
from .singletons import register_singleton, registered_singletons, reset_all_singletons

__all__ = [
    "EnvFile",
    "Result",
    "register_singleton",
    "registered_singletons",
    "reset_all_singletons",
    "run_sync",
    "sleep_jitter",
]
