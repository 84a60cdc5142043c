"""Command subsystem — contract, registry, loader, and the built-ins.

Re-exports public symbols so callers can write::

    from py_sh.commands import CommandLoader, default_registry
"""

from py_sh.commands import files, session
from py_sh.commands.base import (
    EXIT_FAILURE,
    EXIT_NOT_FOUND,
    EXIT_SUCCESS,
    EXIT_USAGE,
    UNIT_HEADER,
    UNIT_SUFFIX,
    Command,
    CommandContext,
    CommandLoader,
    CommandNotFoundError,
    CommandRegistry,
    PermissionDeniedError,
    install,
    parse_options,
    unit_path,
    unit_source,
)


def default_registry() -> CommandRegistry:
    """Return a fresh registry holding every built-in command."""
    registry = CommandRegistry()
    registry.update(files.registry)
    registry.update(session.registry)
    return registry


__all__ = [
    "EXIT_FAILURE",
    "EXIT_NOT_FOUND",
    "EXIT_SUCCESS",
    "EXIT_USAGE",
    "UNIT_HEADER",
    "UNIT_SUFFIX",
    "Command",
    "CommandContext",
    "CommandLoader",
    "CommandNotFoundError",
    "CommandRegistry",
    "PermissionDeniedError",
    "default_registry",
    "install",
    "parse_options",
    "unit_path",
    "unit_source",
]
