"""Bootloader — from a config to a ready shell prompt.

Booting the shell is a short chain, each step building on the last:

    Storage → Filesystem → Command units → Shell

1. **Storage** — pick where the tree lives: a JSON file on the host,
   or memory only.
2. **Filesystem** — load the saved tree.  On a first boot there is
   nothing saved, so the tree comes from the seed (a ``filesystem.json``
   or a host directory) or, failing that, a minimal default home.
3. **Command units** — write a ``<name>.cmd`` unit into ``$PATH`` for
   every built-in that does not have one yet.  Units the user deleted
   come back on the next boot; units the user edited are left alone.
4. **Shell** — wire the filesystem, environment, and registry together.

Each finished step adds an ``[OK]`` line to the boot log.
"""

from __future__ import annotations

from enum import StrEnum
from typing import TYPE_CHECKING

from py_sh.commands import default_registry, install
from py_sh.config import ShellConfig
from py_sh.env import Environment
from py_sh.fs.filesystem import FileSystem
from py_sh.fs.persistence import JsonFileStorage, MemoryStorage, record_from_host
from py_sh.logging import Logger, LogLevel, LogSource
from py_sh.shell import Shell

if TYPE_CHECKING:
    from py_sh.commands import CommandRegistry
    from py_sh.fs.persistence import Record, Storage
    from py_sh.stream import Destination

WELCOME = """\
# Welcome to py-sh

A small shell over a virtual filesystem.

- `help` lists the commands.
- `ls -la`, `cat`, `mkdir -p`, `mv`, `rm -r` work on this tree.
- Pipes and redirections work too: `ls | grep md > found.txt`.
- Press Tab to complete commands and paths.
"""


class BootStage(StrEnum):
    """The step the boot chain has reached."""

    STORAGE = "storage"
    FILESYSTEM = "filesystem"
    COMMANDS = "commands"
    SHELL = "shell"


class BootError(RuntimeError):
    """Raised when the boot chain cannot continue (e.g. corrupt storage)."""


class Bootloader:
    """Build a running shell from a ``ShellConfig``.

    Usage::

        bootloader = Bootloader(ShellConfig(user="ada"))
        shell = bootloader.boot()

    """

    def __init__(
        self,
        config: ShellConfig | None = None,
        *,
        storage: Storage | None = None,
        registry: CommandRegistry | None = None,
        logger: Logger | None = None,
    ) -> None:
        """Create a bootloader.

        Args:
            config: Session settings (defaults to ``ShellConfig()``).
            storage: Overrides the storage chosen from the config.
            registry: Command behaviour (defaults to the built-ins).
            logger: Shared log for boot, filesystem, and shell events.

        """
        self._config = config if config is not None else ShellConfig()
        if storage is None:
            path = self._config.storage_path
            storage = JsonFileStorage(path) if path is not None else MemoryStorage()
        self._storage = storage
        self._registry = registry if registry is not None else default_registry()
        self._logger = logger if logger is not None else Logger()
        self._stage = BootStage.STORAGE
        self._boot_log: list[str] = []
        self._shell: Shell | None = None

    @property
    def config(self) -> ShellConfig:
        """Return the session config."""
        return self._config

    @property
    def storage(self) -> Storage:
        """Return the storage the tree is persisted to."""
        return self._storage

    @property
    def logger(self) -> Logger:
        """Return the shared log."""
        return self._logger

    @property
    def stage(self) -> BootStage:
        """Return the current boot stage."""
        return self._stage

    @property
    def boot_log(self) -> list[str]:
        """Return the accumulated boot log messages."""
        return list(self._boot_log)

    @property
    def shell(self) -> Shell | None:
        """Return the booted shell, or None before ``boot()``."""
        return self._shell

    def boot(self, *, on_clear: Destination = None) -> Shell:
        """Run the boot chain and return a ready shell.

        Args:
            on_clear: Display hook passed on to ``Shell``.

        Raises:
            BootError: If saved storage or the seed cannot be read.

        """
        self._stage = BootStage.FILESYSTEM
        fs = self._load_filesystem()

        self._stage = BootStage.COMMANDS
        installed = install(fs, self._config.bin_path, self._registry)
        self._ok(f"Installed {len(installed)} command units in {self._config.bin_path}")

        self._stage = BootStage.SHELL
        shell = Shell(
            fs=fs,
            env=Environment(self._config.environment()),
            registry=self._registry,
            logger=self._logger,
            on_clear=on_clear,
        )
        self._ok(f"Shell ready for {self._config.user}@{self._config.hostname}")
        self._shell = shell
        return shell

    def reset(self) -> None:
        """Forget the saved tree; the next boot starts from the seed."""
        self._storage.clear()
        self._logger.log(LogLevel.INFO, "storage cleared", source=LogSource.BOOT)

    def _ok(self, message: str) -> None:
        self._boot_log.append(f"[OK] {message}")
        self._logger.log(LogLevel.INFO, message, source=LogSource.BOOT)

    def _load_filesystem(self) -> FileSystem:
        """Load the tree from storage, the seed, or the default layout."""
        try:
            record = self._storage.load()
        except (OSError, ValueError) as e:
            msg = f"Cannot load filesystem from storage: {e}"
            raise BootError(msg) from e

        origin = "storage"
        if record is None:
            record = self._seed_record()
            origin = f"seed {self._config.seed_path}"

        if record is None:
            fs = FileSystem(storage=self._storage, logger=self._logger)
            self._populate_default(fs)
            self._ok("Created default filesystem")
            return fs

        try:
            fs = FileSystem.from_record(record, storage=self._storage, logger=self._logger)
        except (KeyError, TypeError, ValueError) as e:
            msg = f"Corrupt filesystem record from {origin}: {e}"
            raise BootError(msg) from e
        fs.make_dirs(self._config.home)
        if origin != "storage":
            fs.save()
        self._ok(f"Loaded filesystem from {origin}")
        return fs

    def _seed_record(self) -> Record | None:
        seed = self._config.seed_path
        if seed is None:
            return None
        try:
            if seed.is_dir():
                return record_from_host(seed)
            return JsonFileStorage(seed).load()
        except (OSError, ValueError) as e:
            msg = f"Cannot read seed {seed}: {e}"
            raise BootError(msg) from e

    def _populate_default(self, fs: FileSystem) -> None:
        home = self._config.home
        fs.make_dirs(home)
        fs.make_dirs("/tmp")
        fs.write_file(f"{home.rstrip('/')}/README.md", WELCOME)
