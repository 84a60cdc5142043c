"""Commands — the execution contract, the registry, and the unit loader.

A command is anything with ``execute(context) -> int``.  The shell never
imports commands directly; instead it resolves a name through the
virtual filesystem, the way a real shell searches ``$PATH``:

1. The **registry** maps an entry name (``"ls"``) to a ``Command``
   object holding the Python behaviour.  Registration happens at import
   time with the ``@registry.command(...)`` decorator.
2. The **unit file** ``<PATH>/<name>.cmd`` in the virtual filesystem
   says which entry to run.  Its first line is a header::

       #!py-sh ls

   so the command is only callable while its unit file exists.  Delete
   ``~/.local/bin/ls.cmd`` and ``ls`` stops working, just like removing
   a binary.
3. The **loader** ties the two together: read the unit, parse the
   header, look up the entry.  Any failure along the way is reported as
   ``CommandNotFoundError`` and logged.

Exit codes follow the shell convention: 0 success, 1 failure, 2 usage
error, 127 command not found.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, TypeAlias

from py_sh.fs.filesystem import format_path, resolve_path
from py_sh.logging import LogLevel, LogSource

if TYPE_CHECKING:
    from py_sh.fs.filesystem import FileSystem
    from py_sh.logging import Logger
    from py_sh.shell import Shell
    from py_sh.stream import Stream

EXIT_SUCCESS = 0
EXIT_FAILURE = 1
EXIT_USAGE = 2
EXIT_NOT_FOUND = 127

UNIT_SUFFIX = ".cmd"
UNIT_HEADER = "#!py-sh "

Options: TypeAlias = dict[str, str | bool]
Handler: TypeAlias = "Callable[[CommandContext], int]"


class CommandNotFoundError(LookupError):
    """Raised when a command name cannot be resolved to a runnable unit."""


class PermissionDeniedError(Exception):
    """Raised when a directory change would leave the home directory."""


@dataclass
class CommandContext:
    """Everything a command may touch while it runs.

    Attributes:
        shell: The running shell (for ``cd``, ``alias`` and friends).
        fs: The virtual filesystem.
        env: A snapshot of the environment; changes are not kept.
        cwd: The working directory when the stage started.
        args: Positional arguments (options removed).
        options: Parsed ``-x`` / ``--name[=value]`` flags.
        raw_args: The arguments exactly as typed, options included.
        stdin: Input: piped text, a ``<`` file, or empty.
        stdout: Output: the next stage, a file, or the display.
        stderr: Error output: the display unless redirected.

    """

    shell: Shell
    fs: FileSystem
    env: dict[str, str]
    cwd: str
    args: list[str]
    options: Options
    raw_args: list[str]
    stdin: Stream
    stdout: Stream
    stderr: Stream

    def flag(self, *names: str) -> bool:
        """Return True if any of the given options was passed."""
        return any(self.options.get(name) for name in names)

    def error(self, message: str) -> None:
        """Write one line to stderr."""
        self.stderr.write(f"{message}\n")


@dataclass(frozen=True)
class Command:
    """A named command with a one-line description."""

    name: str
    description: str
    handler: Handler = field(repr=False)

    def execute(self, context: CommandContext) -> int:
        """Run the command and return its exit code."""
        return self.handler(context)


def parse_options(raw_args: list[str] | tuple[str, ...]) -> tuple[list[str], Options]:
    """Split raw arguments into positional arguments and options.

    - ``--flag``       → ``{"flag": True}``
    - ``--key=value``  → ``{"key": "value"}``
    - ``-la``          → ``{"l": True, "a": True}``
    - ``--``           → everything after it is positional
    - ``-``            → positional (conventionally "stdin")

    Returns:
        A ``(args, options)`` tuple.

    """
    args: list[str] = []
    options: Options = {}
    parsing = True
    for arg in raw_args:
        if not parsing or arg == "-" or not arg.startswith("-"):
            args.append(arg)
        elif arg == "--":
            parsing = False
        elif arg.startswith("--"):
            key, sep, value = arg[2:].partition("=")
            options[key] = value if sep else True
        else:
            for ch in arg[1:]:
                options[ch] = True
    return args, options


class CommandRegistry:
    """Maps entry names to ``Command`` objects."""

    def __init__(self) -> None:
        """Create an empty registry."""
        self._commands: dict[str, Command] = {}

    def add(self, command: Command) -> None:
        """Register *command* under its name, replacing any previous one."""
        self._commands[command.name] = command

    def command(self, name: str, description: str) -> Callable[[Handler], Handler]:
        """Register the decorated function as command *name*."""

        def decorator(handler: Handler) -> Handler:
            self.add(Command(name=name, description=description, handler=handler))
            return handler

        return decorator

    def update(self, other: CommandRegistry) -> None:
        """Copy every command from *other* into this registry."""
        self._commands.update(other._commands)

    def get(self, name: str) -> Command | None:
        """Return the command registered as *name*, or None."""
        return self._commands.get(name)

    def names(self) -> list[str]:
        """Return all registered names, sorted."""
        return sorted(self._commands)

    def __contains__(self, name: object) -> bool:
        """Return True if *name* is registered."""
        return name in self._commands

    def __iter__(self) -> Iterator[Command]:
        """Iterate over the commands in name order."""
        return iter(self._commands[name] for name in self.names())

    def __len__(self) -> int:
        """Return the number of registered commands."""
        return len(self._commands)


def unit_source(command: Command) -> str:
    """Return the unit file text that binds a name to *command*."""
    return f"{UNIT_HEADER}{command.name}\n# {command.description}\n"


def unit_path(name: str, bin_path: str) -> str:
    """Return the absolute path of *name*'s unit file under *bin_path*."""
    return format_path((*resolve_path(bin_path), f"{name}{UNIT_SUFFIX}"))


class CommandLoader:
    """Resolves command names through unit files in the virtual filesystem."""

    def __init__(
        self,
        fs: FileSystem,
        registry: CommandRegistry,
        *,
        logger: Logger | None = None,
    ) -> None:
        """Create a loader.

        Args:
            fs: Filesystem holding the unit files.
            registry: Where unit entries are looked up.
            logger: Receives a warning for every failed load.

        """
        self._fs = fs
        self._registry = registry
        self._logger = logger

    @property
    def registry(self) -> CommandRegistry:
        """Return the registry entries are resolved in."""
        return self._registry

    def load(self, name: str, bin_path: str) -> Command:
        """Resolve *name* to a runnable command.

        Args:
            name: The command name as typed.
            bin_path: The directory searched for unit files (``$PATH``).

        Raises:
            CommandNotFoundError: If the unit is missing, is a
                directory, has a malformed header, or names an entry
                that is not registered.

        """
        try:
            return self._load(name, bin_path)
        except CommandNotFoundError as e:
            if self._logger is not None:
                self._logger.log(LogLevel.WARNING, str(e), source=LogSource.LOADER)
            raise

    def _load(self, name: str, bin_path: str) -> Command:
        if not name or "/" in name:
            msg = f"{name}: not a valid command name"
            raise CommandNotFoundError(msg)
        path = unit_path(name, bin_path)
        try:
            source = self._fs.read_file(path)
        except OSError as e:
            msg = f"{name}: cannot read unit: {e}"
            raise CommandNotFoundError(msg) from e

        header = source.split("\n", 1)[0]
        if not header.startswith(UNIT_HEADER):
            msg = f"{name}: {path}: missing '{UNIT_HEADER.strip()}' header"
            raise CommandNotFoundError(msg)
        entry = header.removeprefix(UNIT_HEADER).strip()
        command = self._registry.get(entry)
        if command is None:
            msg = f"{name}: unknown entry {entry!r}"
            raise CommandNotFoundError(msg)
        return command

    def available(self, bin_path: str) -> list[str]:
        """Return the names of every unit file under *bin_path*, sorted."""
        try:
            entries = self._fs.read_dir(bin_path)
        except OSError:
            return []
        return sorted(
            entry.removesuffix(UNIT_SUFFIX)
            for entry in entries
            if entry.endswith(UNIT_SUFFIX) and self._fs.is_file(f"{bin_path}/{entry}")
        )


def install(fs: FileSystem, bin_path: str, registry: CommandRegistry) -> list[str]:
    """Write unit files for every registered command that lacks one.

    Existing units are left alone, so a user's edits survive a reboot.

    Returns:
        The names that were installed.

    """
    fs.make_dirs(bin_path)
    installed: list[str] = []
    for command in registry:
        path = unit_path(command.name, bin_path)
        if not fs.exists(path):
            fs.write_file(path, unit_source(command))
            installed.append(command.name)
    return installed

