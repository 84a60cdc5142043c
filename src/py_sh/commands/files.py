"""File commands — ls, cat, cp, mv, rm, mkdir, touch, stat.

Each handler follows the same shape: read paths from ``ctx.args``,
call the filesystem, and turn any ``OSError`` into a one-line message
on stderr plus exit code 1.  A command keeps going after a failed
argument (``rm a missing b`` still removes ``a`` and ``b``) and reports
failure at the end, like coreutils.
"""

from datetime import datetime

from py_sh.commands.base import (
    EXIT_FAILURE,
    EXIT_SUCCESS,
    CommandContext,
    CommandRegistry,
)
from py_sh.fs.filesystem import NodeStat, format_path, resolve_path

registry = CommandRegistry()


def _short_time(ms: int) -> str:
    """Format a timestamp the way ``ls -l`` does (``Mar  4 09:15``)."""
    moment = datetime.fromtimestamp(ms / 1000)  # noqa: DTZ006
    return f"{moment:%b} {moment.day:>2} {moment:%H:%M}"


def _long_time(ms: int) -> str:
    moment = datetime.fromtimestamp(ms / 1000)  # noqa: DTZ006
    return f"{moment:%Y-%m-%d %H:%M:%S}"


def _long_line(info: NodeStat, name: str, owner: str) -> str:
    """Render one ``ls -l`` line."""
    suffix = "/" if info.is_dir else ""
    return (
        f"{info.permissions} 1 {owner} {owner} {info.size:>8} "
        f"{_short_time(info.modified_at)} {name}{suffix}"
    )


def _target(dest: str, source: str, *, into_dir: bool) -> str:
    """Return where *source* lands when copied or moved to *dest*."""
    if not into_dir:
        return dest
    name = resolve_path(source)[-1:] or ("",)
    return f"{dest.rstrip('/')}/{name[0]}"


@registry.command("ls", "List directory contents")
def ls(ctx: CommandContext) -> int:
    """List one or more directories (``-a`` all, ``-l`` long format)."""
    targets = ctx.args or [ctx.cwd]
    owner = ctx.env.get("USER", "user")
    exit_code = EXIT_SUCCESS
    for index, target in enumerate(targets):
        try:
            info = ctx.fs.stat(target, ctx.cwd)
        except FileNotFoundError:
            ctx.error(f"ls: cannot access '{target}': No such file or directory")
            exit_code = EXIT_FAILURE
            continue

        if not info.is_dir:
            line = _long_line(info, target, owner) if ctx.flag("l") else target
            ctx.stdout.write(f"{line}\n")
            continue

        if len(targets) > 1:
            if index > 0:
                ctx.stdout.write("\n")
            ctx.stdout.write(f"{target}:\n")
        names = ctx.fs.read_dir(target, ctx.cwd)
        if ctx.flag("a"):
            names = [".", "..", *names]
        else:
            names = [name for name in names if not name.startswith(".")]

        directory = format_path(resolve_path(target, ctx.cwd))
        for name in names:
            entry = ctx.fs.stat(name, directory)
            if ctx.flag("l"):
                ctx.stdout.write(f"{_long_line(entry, name, owner)}\n")
            else:
                ctx.stdout.write(f"{name}/\n" if entry.is_dir else f"{name}\n")
    return exit_code


@registry.command("cat", "Concatenate files and print on the standard output")
def cat(ctx: CommandContext) -> int:
    """Print each file in turn; with no files (or ``-``), copy stdin.

    ``--raw`` / ``-r`` is accepted for compatibility; output is always raw.
    """
    if not ctx.args:
        ctx.stdout.write(ctx.stdin.read())
        return EXIT_SUCCESS
    exit_code = EXIT_SUCCESS
    for path in ctx.args:
        if path == "-":
            ctx.stdout.write(ctx.stdin.read())
            continue
        try:
            ctx.stdout.write(ctx.fs.read_file(path, ctx.cwd))
        except OSError as e:
            ctx.error(f"cat: {e}")
            exit_code = EXIT_FAILURE
    return exit_code


@registry.command("cp", "Copy files")
def cp(ctx: CommandContext) -> int:
    """Copy SOURCE to DEST, or several SOURCEs into DIRECTORY."""
    if ctx.flag("help"):
        ctx.stdout.write("Usage: cp SOURCE DEST\n   or: cp SOURCE... DIRECTORY\n")
        return EXIT_SUCCESS
    if len(ctx.args) < 2:  # noqa: PLR2004
        ctx.error("cp: missing file operand")
        return EXIT_FAILURE

    *sources, dest = ctx.args
    into_dir = ctx.fs.is_dir(dest, ctx.cwd)
    if len(sources) > 1 and not into_dir:
        ctx.error(f"cp: target '{dest}' is not a directory")
        return EXIT_FAILURE

    exit_code = EXIT_SUCCESS
    for source in sources:
        try:
            content = ctx.fs.read_file(source, ctx.cwd)
            ctx.fs.write_file(_target(dest, source, into_dir=into_dir), content, ctx.cwd)
        except OSError as e:
            ctx.error(f"cp: {e}")
            exit_code = EXIT_FAILURE
    return exit_code


@registry.command("mv", "Move or rename files")
def mv(ctx: CommandContext) -> int:
    """Rename SOURCE to DEST, or move several SOURCEs into DIRECTORY."""
    if ctx.flag("help"):
        ctx.stdout.write("Usage: mv SOURCE DEST\n   or: mv SOURCE... DIRECTORY\n")
        return EXIT_SUCCESS
    if len(ctx.args) < 2:  # noqa: PLR2004
        ctx.error("mv: missing file operand")
        return EXIT_FAILURE

    *sources, dest = ctx.args
    if len(sources) > 1 and not ctx.fs.is_dir(dest, ctx.cwd):
        ctx.error(f"mv: target '{dest}' is not a directory")
        return EXIT_FAILURE

    exit_code = EXIT_SUCCESS
    for source in sources:
        try:
            ctx.fs.move(source, dest, ctx.cwd)
        except OSError as e:
            ctx.error(f"mv: {e}")
            exit_code = EXIT_FAILURE
    return exit_code


@registry.command("rm", "Remove files or directories")
def rm(ctx: CommandContext) -> int:
    """Remove paths (``-r``/``-R`` recursive, ``-f`` ignore missing)."""
    if ctx.flag("help") or not ctx.args:
        ctx.stdout.write(
            "Usage: rm [-rf] FILE...\n"
            "  -r, -R    remove directories and their contents recursively\n"
            "  -f        ignore nonexistent files\n"
        )
        return EXIT_SUCCESS

    recursive = ctx.flag("r", "R", "recursive")
    force = ctx.flag("f", "force")
    exit_code = EXIT_SUCCESS
    for path in ctx.args:
        if path in ("/", ".", ".."):
            ctx.error(f"rm: cannot remove '{path}': Is a special file")
            exit_code = EXIT_FAILURE
            continue
        try:
            ctx.fs.delete(path, recursive, ctx.cwd)
        except FileNotFoundError as e:
            if not force:
                ctx.error(f"rm: {e}")
                exit_code = EXIT_FAILURE
        except OSError as e:
            ctx.error(f"rm: {e}")
            exit_code = EXIT_FAILURE
    return exit_code


@registry.command("mkdir", "Make directories")
def mkdir(ctx: CommandContext) -> int:
    """Create directories (``-p`` creates parents and tolerates existing)."""
    if not ctx.args:
        ctx.error("mkdir: missing operand")
        return EXIT_FAILURE
    exit_code = EXIT_SUCCESS
    for path in ctx.args:
        try:
            if ctx.flag("p", "parents"):
                ctx.fs.make_dirs(path, ctx.cwd)
            else:
                ctx.fs.create_directory(path, ctx.cwd)
        except OSError as e:
            ctx.error(f"mkdir: cannot create directory '{path}': {_reason(e)}")
            exit_code = EXIT_FAILURE
    return exit_code


@registry.command("touch", "Create empty files or update their timestamps")
def touch(ctx: CommandContext) -> int:
    """Create each file, or bump its modification time if it exists."""
    if not ctx.args:
        ctx.error("touch: missing file operand")
        return EXIT_FAILURE
    exit_code = EXIT_SUCCESS
    for path in ctx.args:
        try:
            ctx.fs.touch(path, ctx.cwd)
        except OSError as e:
            ctx.error(f"touch: cannot touch '{path}': {_reason(e)}")
            exit_code = EXIT_FAILURE
    return exit_code


@registry.command("stat", "Display file or directory metadata")
def stat(ctx: CommandContext) -> int:
    """Show name, type, size, permissions, and timestamps."""
    if not ctx.args:
        ctx.error("stat: missing operand")
        return EXIT_FAILURE
    exit_code = EXIT_SUCCESS
    for path in ctx.args:
        try:
            info = ctx.fs.stat(path, ctx.cwd)
        except OSError as e:
            ctx.error(f"stat: cannot stat '{path}': {_reason(e)}")
            exit_code = EXIT_FAILURE
            continue
        ctx.stdout.write(
            f"  File: {info.name}\n"
            f"  Type: {info.file_type}\n"
            f"  Size: {info.size}\n"
            f"Access: {info.permissions}\n"
            f" Birth: {_long_time(info.created_at)}\n"
            f"Modify: {_long_time(info.modified_at)}\n"
        )
    return exit_code


def _reason(error: OSError) -> str:
    """Return the part of a filesystem error message after the path."""
    return str(error).rpartition(": ")[2]
