"""The shell — pipeline orchestrator for the virtual filesystem.

The shell reads a command line, splits it into stages on ``|``, and
runs the stages one after another.  Each stage goes through the same
steps:

1. **Streams.**  stdin is whatever the previous stage wrote (empty for
   the first stage).  stdout is a fresh buffer, except for the last
   stage, which writes straight to the display.  stderr always goes to
   the display; errors are never piped.
2. **Redirections.**  ``resolve()`` rebinds those streams left to right
   (``> file``, ``2>&1``, ``< file``).  A bad redirection aborts the
   whole line.
3. **Load.**  The command name is looked up through its unit file in
   ``$PATH``.  Missing → ``name: command not found``, exit 127.
4. **Execute.**  The command gets a ``CommandContext``.  An exception
   escaping the command becomes exit code 1 with the message on stderr.

Design choices:
    - **A failing stage halts the pipeline.**  POSIX shells run every
      stage and report the last exit status; this shell stops at the
      first non-zero exit, so ``ls /nope | wc`` never runs ``wc``.
    - **Stages are fully buffered.**  A stage runs to completion before
      the next one starts; there is no concurrency between stages.
    - **The working directory is ``$PWD``.**  ``cd`` is the only way to
      change it, and it cannot leave ``$HOME``.
"""

import sys
from dataclasses import dataclass

from py_sh.commands.base import (
    EXIT_FAILURE,
    EXIT_NOT_FOUND,
    EXIT_SUCCESS,
    EXIT_USAGE,
    CommandContext,
    CommandLoader,
    CommandNotFoundError,
    CommandRegistry,
    PermissionDeniedError,
    parse_options,
)
from py_sh.env import Environment
from py_sh.fs.filesystem import FileSystem, format_path, resolve_path
from py_sh.logging import Logger, LogLevel, LogSource
from py_sh.parser import ParseError, split_pipeline
from py_sh.redirection import RedirectionError, StandardStreams, resolve
from py_sh.stream import Destination, Stream

DEFAULT_ALIASES = {"aboutme": "whoami", "intro": "whoami", "cls": "clear"}


@dataclass(frozen=True)
class RunResult:
    """Captured outcome of one command line."""

    exit_code: int
    stdout: str
    stderr: str


class Shell:
    """Command-line interpreter over a virtual filesystem.

    The shell owns the environment, aliases, and history; the filesystem
    and command registry are handed in so the bootloader (or a test) can
    decide what they contain.
    """

    def __init__(
        self,
        *,
        fs: FileSystem,
        env: Environment,
        registry: CommandRegistry,
        logger: Logger | None = None,
        aliases: dict[str, str] | None = None,
        on_clear: Destination = None,
    ) -> None:
        """Create a shell.

        Args:
            fs: The filesystem commands operate on.
            env: Shell variables; ``PWD``, ``HOME`` and ``PATH`` are used.
            registry: Command behaviour that unit files point at.
            logger: Shared log; a private one is created if omitted.
            aliases: Initial aliases (defaults to ``DEFAULT_ALIASES``).
            on_clear: Called with ``""`` when ``clear`` runs.

        """
        self._fs = fs
        self._env = env
        self._logger = logger if logger is not None else Logger()
        self._loader = CommandLoader(fs, registry, logger=self._logger)
        self._aliases: dict[str, str] = dict(DEFAULT_ALIASES if aliases is None else aliases)
        self._history: list[str] = []
        self._on_clear = on_clear

    # -- state -----------------------------------------------------------

    @property
    def fs(self) -> FileSystem:
        """Return the filesystem."""
        return self._fs

    @property
    def env(self) -> Environment:
        """Return the live environment."""
        return self._env

    @property
    def logger(self) -> Logger:
        """Return the shell log."""
        return self._logger

    @property
    def loader(self) -> CommandLoader:
        """Return the command loader."""
        return self._loader

    @property
    def history(self) -> list[str]:
        """Return every non-blank line executed so far."""
        return list(self._history)

    @property
    def aliases(self) -> dict[str, str]:
        """Return a copy of the alias table."""
        return dict(self._aliases)

    @property
    def cwd(self) -> str:
        """Return the working directory (``$PWD``)."""
        return self._env.get("PWD") or "/"

    @property
    def home(self) -> str:
        """Return the home directory (``$HOME``)."""
        return self._env.get("HOME") or "/"

    @property
    def prompt(self) -> str:
        """Return the prompt, e.g. ``guest@py-sh:~/docs$ ``."""
        user = self._env.get("USER", "")
        host = self._env.get("HOSTNAME", "")
        return f"{user}@{host}:{self.display_path(self.cwd)}$ "

    def display_path(self, path: str) -> str:
        """Abbreviate *path* with ``~`` when it lies inside HOME."""
        home = self.home
        if path == home:
            return "~"
        if home != "/" and path.startswith(f"{home}/"):
            return "~" + path.removeprefix(home)
        return path

    def set_alias(self, name: str, expansion: str) -> None:
        """Define or replace an alias."""
        self._aliases[name] = expansion

    def remove_alias(self, name: str) -> bool:
        """Remove an alias; return False if it did not exist."""
        return self._aliases.pop(name, None) is not None

    def available_commands(self) -> list[str]:
        """Return the names of every command with a unit file in ``$PATH``."""
        return self._loader.available(self._env.get("PATH") or "")

    def clear(self) -> None:
        """Ask the display to clear the screen, if it knows how."""
        if isinstance(self._on_clear, Stream):
            self._on_clear.write("")
        elif self._on_clear is not None:
            self._on_clear("")

    def change_directory(self, path: str) -> str:
        """Change ``$PWD``, staying inside HOME.

        ``~`` and ``~/...`` are expanded to HOME.

        Returns:
            The new absolute working directory.

        Raises:
            FileNotFoundError: If the path does not exist.
            NotADirectoryError: If the path is a file.
            PermissionDeniedError: If the path lies outside HOME.

        """
        expanded = self.home + path[1:] if path == "~" or path.startswith("~/") else path
        target = format_path(resolve_path(expanded, self.cwd))
        if not self._fs.exists(target):
            msg = f"{path}: No such file or directory"
            raise FileNotFoundError(msg)
        if not self._fs.is_dir(target):
            msg = f"{path}: Not a directory"
            raise NotADirectoryError(msg)
        if not self._inside_home(target):
            msg = f"{path}: outside of {self.home}"
            raise PermissionDeniedError(msg)
        self._env.set("PWD", target)
        return target

    def _inside_home(self, path: str) -> bool:
        home = self.home.rstrip("/")
        return path == (home or "/") or path.startswith(f"{home}/")

    # -- execution -------------------------------------------------------

    def execute(
        self,
        line: str,
        *,
        stdout: Destination = None,
        stderr: Destination = None,
    ) -> int:
        """Run one command line and return the last stage's exit code.

        Args:
            line: The raw line, e.g. ``"cat notes.txt | grep todo > out"``.
            stdout: Final output destination (defaults to ``sys.stdout``).
            stderr: Final error destination (defaults to ``sys.stderr``).

        """
        stripped = line.strip()
        if stripped:
            self._history.append(stripped)

        out = Stream(stdout if stdout is not None else sys.stdout.write)
        err = Stream(stderr if stderr is not None else sys.stderr.write)
        stages = split_pipeline(stripped)

        exit_code = EXIT_SUCCESS
        piped = ""
        for index, command in enumerate(stages):
            last = index == len(stages) - 1
            defaults = StandardStreams(
                stdin=Stream.of(piped),
                stdout=out if last else Stream(),
                stderr=err,
            )
            exit_code, redirected = self._run_stage(self._expand_alias(command), defaults)
            if exit_code != EXIT_SUCCESS:
                if not last:
                    self._logger.log(
                        LogLevel.DEBUG,
                        f"pipeline halted at stage {index + 1} ({command!r}), exit {exit_code}",
                        source=LogSource.SHELL,
                    )
                break
            piped = "" if last or redirected else defaults.stdout.read()
        return exit_code

    def run(self, line: str) -> RunResult:
        """Run *line* and capture what it wrote to stdout and stderr."""
        out = Stream()
        err = Stream()
        exit_code = self.execute(line, stdout=out, stderr=err)
        return RunResult(exit_code=exit_code, stdout=out.read(), stderr=err.read())

    def _expand_alias(self, command: str) -> str:
        """Replace the first word of *command* if it is an alias."""
        parts = command.split(maxsplit=1)
        if not parts or parts[0] not in self._aliases:
            return command
        expansion = self._aliases[parts[0]]
        return f"{expansion} {parts[1]}" if len(parts) > 1 else expansion

    def _run_stage(self, command: str, defaults: StandardStreams) -> tuple[int, bool]:
        """Resolve, load, and execute one stage.

        Returns:
            The exit code, and whether the stage's stdout was redirected
            (its output then never reaches the next stage).

        """
        cwd = self.cwd
        try:
            stage = resolve(command, defaults, self._fs, cwd)
        except ParseError as e:
            defaults.stderr.write(f"py-sh: {e}\n")
            return EXIT_USAGE, False
        except RedirectionError as e:
            defaults.stderr.write(f"py-sh: {e}\n")
            return EXIT_FAILURE, False

        if stage.name is None:
            return EXIT_SUCCESS, stage.stdout_redirected

        try:
            unit = self._loader.load(stage.name, self._env.get("PATH") or "")
        except CommandNotFoundError:
            _report(stage.stderr, defaults.stderr, f"{stage.name}: command not found\n")
            return EXIT_NOT_FOUND, stage.stdout_redirected

        args, options = parse_options(stage.args)
        context = CommandContext(
            shell=self,
            fs=self._fs,
            env=self._env.as_dict(),
            cwd=cwd,
            args=args,
            options=options,
            raw_args=list(stage.args),
            stdin=stage.stdin,
            stdout=stage.stdout,
            stderr=stage.stderr,
        )
        try:
            exit_code = unit.execute(context)
        except Exception as e:  # noqa: BLE001
            self._logger.log(LogLevel.ERROR, f"{stage.name}: {e}", source=LogSource.SHELL)
            _report(stage.stderr, defaults.stderr, f"{stage.name}: {e}\n")
            exit_code = EXIT_FAILURE
        return exit_code, stage.stdout_redirected


def _report(stderr: Stream, fallback: Stream, message: str) -> None:
    """Write *message* to *stderr*, or to *fallback* if that write fails.

    A redirected stderr can break mid-command, e.g. when the command
    removes the directory holding its ``2>`` target.
    """
    try:
        stderr.write(message)
    except OSError:
        fallback.write(message)
