"""I/O redirection — turning ``2>&1 > out.txt`` into concrete streams.

Each command string is handled in two steps:

1. ``extract()`` separates the command name and arguments from its
   redirections, keeping the redirections in the order they were written.
2. ``resolve()`` seeds a descriptor table with the stage's default
   streams (0 = stdin, 1 = stdout, 2 = stderr) and applies the
   redirections strictly left to right:

   - ``N> path`` / ``N>> path`` — fd N writes into a file.  The file is
     opened (created or truncated) right away, so a bad target fails
     before the command runs.
   - ``N< path`` — fd N reads the file's current content, read now.
   - ``N>&M`` — fd N shares whatever fd M is bound to *at this point*.
     M must already be in the table.

Order matters just as in a POSIX shell: ``cmd > f 2>&1`` sends both
streams to ``f``, while ``cmd 2>&1 > f`` leaves stderr on the terminal.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING

from py_sh.parser import Operator, ParseError, Word, tokenize
from py_sh.stream import Stream

if TYPE_CHECKING:
    from py_sh.fs.filesystem import FileSystem

STDIN = 0
STDOUT = 1
STDERR = 2


class RedirectKind(StrEnum):
    """What a redirection points its fd at."""

    TO_FILE = "file"
    DUP_FD = "dup"


class RedirectionError(Exception):
    """Raised when a stage's redirections cannot be applied."""


class BadFileDescriptorError(RedirectionError):
    """Raised by ``N>&M`` when fd M has no binding yet."""


class UnsupportedRedirectionError(RedirectionError):
    """Raised for operators the shell recognises but does not implement (``<>``)."""


@dataclass(frozen=True)
class Redirection:
    """One parsed redirection: ``fd operator target``."""

    fd: int
    kind: RedirectKind
    operator: str
    target: str | int

    def __str__(self) -> str:
        """Render the redirection the way it was written."""
        target = f"&{self.target}" if self.kind is RedirectKind.DUP_FD else self.target
        return f"{self.fd}{self.operator}{target}"


@dataclass(frozen=True)
class ParsedCommand:
    """A command string split into name, arguments, and redirections."""

    name: str | None
    args: tuple[str, ...]
    redirections: tuple[Redirection, ...]


@dataclass(frozen=True)
class StandardStreams:
    """The streams a stage starts with before any redirection."""

    stdin: Stream
    stdout: Stream
    stderr: Stream


@dataclass(frozen=True)
class ResolvedStage:
    """A stage ready to run: command, arguments, and its final streams."""

    name: str | None
    args: tuple[str, ...]
    stdin: Stream
    stdout: Stream
    stderr: Stream
    redirected: frozenset[int] = frozenset()

    @property
    def stdout_redirected(self) -> bool:
        """Return True if fd 1 was rebound by a redirection."""
        return STDOUT in self.redirected


def extract(command: str) -> ParsedCommand:
    """Separate the words of *command* from its redirections.

    The first word is the command name (None if there are no words, as
    in ``> file``); the rest are arguments.

    Raises:
        ParseError: On an unterminated quote, a redirection without a
            target, or a ``&`` target that is not a number.

    """
    words: list[str] = []
    redirections: list[Redirection] = []
    tokens = iter(tokenize(command))
    for token in tokens:
        if isinstance(token, Word):
            words.append(token.text)
            continue
        target = next(tokens, None)
        if not isinstance(target, Word):
            shown = target.op if isinstance(target, Operator) else "newline"
            msg = f"syntax error near unexpected token `{shown}'"
            raise ParseError(msg)
        redirections.append(_redirection(token, target))

    name = words[0] if words else None
    return ParsedCommand(name=name, args=tuple(words[1:]), redirections=tuple(redirections))


def _redirection(operator: Operator, target: Word) -> Redirection:
    """Build a Redirection, applying the default fd for the operator."""
    default_fd = STDIN if operator.op.startswith("<") else STDOUT
    fd = operator.fd if operator.fd is not None else default_fd
    if target.text.startswith("&") and not target.quoted:
        number = target.text[1:]
        if not number.isdigit():
            msg = f"{target.text}: ambiguous redirect"
            raise ParseError(msg)
        return Redirection(fd, RedirectKind.DUP_FD, operator.op, int(number))
    return Redirection(fd, RedirectKind.TO_FILE, operator.op, target.text)


def resolve(
    command: str,
    defaults: StandardStreams,
    fs: FileSystem,
    cwd: str,
) -> ResolvedStage:
    """Apply *command*'s redirections over *defaults*, left to right.

    Args:
        command: One command string from the pipeline.
        defaults: The stage's streams before redirection.
        fs: Filesystem that file targets are opened in.
        cwd: Directory relative targets are resolved against.

    Returns:
        The stage's name, arguments, and final stdin/stdout/stderr.

    Raises:
        ParseError: If the command string is malformed.
        BadFileDescriptorError: If ``N>&M`` names an unbound fd M.
        UnsupportedRedirectionError: For the ``<>`` operator.
        RedirectionError: If a file target cannot be opened or read.

    """
    parsed = extract(command)
    table: dict[int, Stream] = {
        STDIN: defaults.stdin,
        STDOUT: defaults.stdout,
        STDERR: defaults.stderr,
    }
    redirected: set[int] = set()

    for redirection in parsed.redirections:
        table[redirection.fd] = _bind(redirection, table, fs, cwd)
        redirected.add(redirection.fd)

    return ResolvedStage(
        name=parsed.name,
        args=parsed.args,
        stdin=table[STDIN],
        stdout=table[STDOUT],
        stderr=table[STDERR],
        redirected=frozenset(redirected),
    )


def _bind(redirection: Redirection, table: dict[int, Stream], fs: FileSystem, cwd: str) -> Stream:
    """Return the stream *redirection* binds its fd to."""
    if redirection.operator == "<>":
        msg = f"{redirection}: read-write redirection is not supported"
        raise UnsupportedRedirectionError(msg)

    if redirection.kind is RedirectKind.DUP_FD:
        source = table.get(int(redirection.target))
        if source is None:
            msg = f"{redirection}: Bad file descriptor"
            raise BadFileDescriptorError(msg)
        return source

    path = str(redirection.target)
    try:
        if redirection.operator == "<":
            return Stream.of(fs.read_file(path, cwd))
        return _open_for_write(fs, path, cwd, append=redirection.operator == ">>")
    except OSError as e:
        raise RedirectionError(str(e)) from e


def _open_for_write(fs: FileSystem, path: str, cwd: str, *, append: bool) -> Stream:
    """Create or truncate *path* now; later writes append to it."""
    fs.write_file(path, "", cwd, append=append)
    return Stream(lambda data: fs.write_file(path, data, cwd, append=True))
