"""Diagnostics and debugging utilities for contactqp."""

from .debug_mode import (
    DEBUG_ENV_VAR,
    check_storage,
    debug_context,
    is_debug_enabled,
    reload_from_environment,
    set_debug_enabled,
)

__all__ = [
    "DEBUG_ENV_VAR",
    "is_debug_enabled",
    "set_debug_enabled",
    "reload_from_environment",
    "debug_context",
    "check_storage",
]
