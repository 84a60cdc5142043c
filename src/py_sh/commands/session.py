"""Session commands — the ones that read or change shell state.

``cd``, ``export``, ``alias`` and ``unalias`` act on the running shell
through ``ctx.shell``; the ``ctx.env`` snapshot is read-only as far as
the shell is concerned.  The text filters (``echo``, ``wc``, ``grep``)
live here too: they only touch streams, never the filesystem tree.
"""

import re

from py_sh.commands.base import (
    EXIT_FAILURE,
    EXIT_SUCCESS,
    EXIT_USAGE,
    CommandContext,
    CommandNotFoundError,
    CommandRegistry,
    PermissionDeniedError,
)
from py_sh.logging import LogLevel

registry = CommandRegistry()

_ESCAPES = {"n": "\n", "t": "\t", "r": "\r", "\\": "\\", '"': '"', "'": "'"}
_ESCAPE_RE = re.compile(r"\\(.)")


def _inputs(ctx: CommandContext, name: str, paths: list[str]) -> list[tuple[str, str]] | None:
    """Return ``(label, text)`` for each file argument, or stdin if none.

    Writes an error and returns None if a file cannot be read.
    """
    if not paths:
        return [("", ctx.stdin.read())]
    inputs: list[tuple[str, str]] = []
    for path in paths:
        try:
            inputs.append((path, ctx.fs.read_file(path, ctx.cwd)))
        except OSError as e:
            ctx.error(f"{name}: {e}")
            return None
    return inputs


@registry.command("cd", "Change the working directory")
def cd(ctx: CommandContext) -> int:
    """Change directory; no argument or ``~`` means HOME."""
    target = ctx.args[0] if ctx.args else "~"
    try:
        ctx.shell.change_directory(target)
    except PermissionDeniedError:
        ctx.error(f"cd: permission denied: {target} (restricted to home directory)")
        return EXIT_FAILURE
    except OSError as e:
        ctx.error(f"cd: {e}")
        return EXIT_FAILURE
    return EXIT_SUCCESS


@registry.command("pwd", "Print the working directory")
def pwd(ctx: CommandContext) -> int:
    """Print the working directory."""
    ctx.stdout.write(f"{ctx.cwd}\n")
    return EXIT_SUCCESS


@registry.command("echo", "Display a line of text")
def echo(ctx: CommandContext) -> int:
    """Print the arguments (``-n`` no newline, ``-e`` backslash escapes)."""
    text = " ".join(ctx.args)
    if ctx.flag("e"):
        text = _ESCAPE_RE.sub(lambda m: _ESCAPES.get(m[1], m[0]), text)
    ctx.stdout.write(text if ctx.flag("n") else f"{text}\n")
    return EXIT_SUCCESS


@registry.command("whoami", "Print the current user name")
def whoami(ctx: CommandContext) -> int:
    """Print USER."""
    ctx.stdout.write(f"{ctx.env.get('USER', '')}\n")
    return EXIT_SUCCESS


@registry.command("help", "List available commands")
def help_(ctx: CommandContext) -> int:
    """List every command that has a unit file, with its description."""
    ctx.stdout.write("Available commands:\n\n")
    for name in ctx.shell.available_commands():
        try:
            command = ctx.shell.loader.load(name, ctx.env.get("PATH", ""))
        except CommandNotFoundError:
            continue
        ctx.stdout.write(f"  {name:<15} {command.description}\n")
    ctx.stdout.write("\nType 'help' to see this list again.\n")
    return EXIT_SUCCESS


@registry.command("clear", "Clear the terminal screen")
def clear(ctx: CommandContext) -> int:
    """Ask the display to clear itself."""
    ctx.shell.clear()
    return EXIT_SUCCESS


@registry.command("wc", "Count lines, words, and characters")
def wc(ctx: CommandContext) -> int:
    """Count input (``-l`` lines, ``-w`` words, ``-c`` characters)."""
    inputs = _inputs(ctx, "wc", ctx.args)
    if inputs is None:
        return EXIT_FAILURE
    selected = [flag for flag in ("l", "w", "c") if ctx.flag(flag)] or ["l", "w", "c"]
    for label, text in inputs:
        counts = {"l": text.count("\n"), "w": len(text.split()), "c": len(text)}
        line = " ".join(str(counts[flag]) for flag in selected)
        ctx.stdout.write(f"{line} {label}\n" if label else f"{line}\n")
    return EXIT_SUCCESS


@registry.command("grep", "Print lines that contain a pattern")
def grep(ctx: CommandContext) -> int:
    """Filter lines by substring (``-i`` ignore case, ``-v`` invert).

    Exits 1 when nothing matched, like grep.
    """
    if not ctx.args:
        ctx.error("Usage: grep [-iv] PATTERN [FILE...]")
        return EXIT_USAGE
    pattern, *paths = ctx.args
    inputs = _inputs(ctx, "grep", paths)
    if inputs is None:
        return EXIT_USAGE

    ignore_case = ctx.flag("i")
    invert = ctx.flag("v")
    needle = pattern.lower() if ignore_case else pattern
    matched = False
    for label, text in inputs:
        for line in text.splitlines():
            haystack = line.lower() if ignore_case else line
            if (needle in haystack) != invert:
                matched = True
                prefix = f"{label}:" if len(inputs) > 1 else ""
                ctx.stdout.write(f"{prefix}{line}\n")
    return EXIT_SUCCESS if matched else EXIT_FAILURE


@registry.command("env", "Print the environment")
def env(ctx: CommandContext) -> int:
    """Print every variable as ``KEY=VALUE``, sorted."""
    for key, value in sorted(ctx.env.items()):
        ctx.stdout.write(f"{key}={value}\n")
    return EXIT_SUCCESS


@registry.command("export", "Set environment variables")
def export(ctx: CommandContext) -> int:
    """Set one or more ``KEY=VALUE`` pairs in the shell environment."""
    if not ctx.raw_args:
        return env(ctx)
    for pair in ctx.raw_args:
        key, sep, value = pair.partition("=")
        if not sep:
            ctx.error("Usage: export KEY=VALUE")
            return EXIT_FAILURE
        try:
            ctx.shell.env.set(key, value)
        except ValueError as e:
            ctx.error(f"export: {e}")
            return EXIT_FAILURE
    return EXIT_SUCCESS


@registry.command("alias", "Define or list command aliases")
def alias(ctx: CommandContext) -> int:
    """With no arguments list aliases, otherwise define ``NAME=COMMAND``."""
    if not ctx.raw_args:
        for name, expansion in sorted(ctx.shell.aliases.items()):
            ctx.stdout.write(f"{name}='{expansion}'\n")
        return EXIT_SUCCESS
    name, sep, expansion = " ".join(ctx.raw_args).partition("=")
    if not sep or not name.strip():
        ctx.error("Usage: alias NAME=COMMAND")
        return EXIT_FAILURE
    ctx.shell.set_alias(name.strip(), expansion.strip())
    return EXIT_SUCCESS


@registry.command("unalias", "Remove command aliases")
def unalias(ctx: CommandContext) -> int:
    """Remove each named alias."""
    if not ctx.args:
        ctx.error("Usage: unalias NAME...")
        return EXIT_FAILURE
    exit_code = EXIT_SUCCESS
    for name in ctx.args:
        if not ctx.shell.remove_alias(name):
            ctx.error(f"unalias: {name}: not found")
            exit_code = EXIT_FAILURE
    return exit_code


@registry.command("history", "Show command history")
def history(ctx: CommandContext) -> int:
    """Print every line run so far, numbered from 1."""
    for number, line in enumerate(ctx.shell.history, start=1):
        ctx.stdout.write(f"{number:>5}  {line}\n")
    return EXIT_SUCCESS


@registry.command("dmesg", "Print the shell log")
def dmesg(ctx: CommandContext) -> int:
    """Print log entries (``-l LEVEL`` / ``--level=LEVEL`` minimum level)."""
    level_name = ctx.options.get("level")
    if ctx.flag("l"):
        if not ctx.args:
            ctx.error("Usage: dmesg [-l LEVEL]")
            return EXIT_USAGE
        level_name = ctx.args[0]
    min_level = None
    if isinstance(level_name, str):
        try:
            min_level = LogLevel.parse(level_name)
        except ValueError as e:
            ctx.error(f"dmesg: {e}")
            return EXIT_USAGE
    for entry in ctx.shell.logger.filter(min_level=min_level):
        ctx.stdout.write(f"{entry}\n")
    return EXIT_SUCCESS
