"""Interactive REPL (Read-Eval-Print Loop) for the shell.

The REPL is the terminal display surface.  It boots the shell via the
bootloader and enters the classic loop:

    1. **Read** — show ``shell.prompt`` and read a line.
    2. **Eval** — hand the line to ``shell.execute()``.
    3. **Print** — commands write to the terminal as they run.
    4. **Loop** — until ``exit``, Ctrl+D, or Ctrl+C.

Tab completion comes from ``Completer`` through ``readline``.  The
helper functions (``format_boot_log``, ``parse_args``) are pure and
testable; ``run()`` is the I/O entrypoint.
"""

import argparse
import readline
import sys
from collections.abc import Sequence

from py_sh import __version__
from py_sh.bootloader import Bootloader
from py_sh.completer import Completer
from py_sh.config import ShellConfig

_BANNER_WIDTH = 38
_CLEAR_SCREEN = "\033[2J\033[H"
# "/" is part of a path, so readline must not split words on it.
_COMPLETER_DELIMS = " \t\n|<>"
EXIT_COMMANDS = frozenset({"exit", "logout"})


def format_boot_log(boot_log: list[str]) -> str:
    """Format the boot log into a displayable banner string.

    Args:
        boot_log: Messages collected by the bootloader.

    Returns:
        A formatted string suitable for printing to the console.

    """
    border = "=" * _BANNER_WIDTH
    header = f"\n  {border}\n              py-sh v{__version__}\n  {border}\n\n"
    body = "\n".join(f"  {msg}" for msg in boot_log)
    footer = "\nType 'help' for commands, 'exit' to quit.\n"
    return header + body + footer


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    """Parse the ``py-sh`` command line."""
    parser = argparse.ArgumentParser(prog="py-sh", description="A shell over a virtual filesystem.")
    parser.add_argument("--reset", action="store_true", help="forget the saved filesystem first")
    parser.add_argument("-c", dest="command", help="run one command line and exit")
    return parser.parse_args(argv)


def _clear_screen(_data: str) -> None:
    sys.stdout.write(_CLEAR_SCREEN)
    sys.stdout.flush()


def _install_completer(completer: Completer) -> None:
    """Wire *completer* into readline."""

    def complete(text: str, state: int) -> str | None:
        line = readline.get_line_buffer()[: readline.get_endidx()]
        candidates = completer.candidates(text, line)
        return candidates[state] if state < len(candidates) else None

    readline.set_completer(complete)
    readline.set_completer_delims(_COMPLETER_DELIMS)
    readline.parse_and_bind("tab: complete")


def run(argv: Sequence[str] | None = None) -> int:
    """Boot the shell and run the interactive REPL.

    This is the ``py-sh`` console entry point.  It handles:
    - Booting from ``PY_SH_*`` settings (``--reset`` clears storage first).
    - One-shot execution with ``-c``.
    - The read-eval-print loop with tab completion.
    - Graceful handling of Ctrl+C and Ctrl+D.

    Returns:
        The exit code of the last command line.

    """
    args = parse_args(argv)
    bootloader = Bootloader(ShellConfig.from_environ())
    if args.reset:
        bootloader.reset()
    shell = bootloader.boot(on_clear=_clear_screen)

    if args.command is not None:
        return shell.execute(args.command)

    _install_completer(Completer(shell))
    print(format_boot_log(bootloader.boot_log))  # noqa: T201

    exit_code = 0
    try:
        while True:
            try:
                line = input(shell.prompt)
            except EOFError:
                # Ctrl+D — graceful exit
                print()  # noqa: T201
                break
            if line.strip() in EXIT_COMMANDS:
                break
            exit_code = shell.execute(line)
    except KeyboardInterrupt:
        print("\nInterrupted.")  # noqa: T201
    return exit_code


def main() -> None:
    """Run the REPL and exit with its status."""
    sys.exit(run())
