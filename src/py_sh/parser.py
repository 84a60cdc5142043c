"""Command-line parsing — pipeline splitting and quote-aware tokenizing.

Parsing happens in two phases:

1. ``split_pipeline()`` cuts the raw line on every ``|`` that is not
   inside quotes.  Redirections stay inside each command string.
2. ``tokenize()`` turns one command string into ``Word`` and
   ``Operator`` tokens.  Quote characters are stripped and whatever sat
   between them is literal, so ``echo "a | b > c"`` is one word.

A run of digits written directly against a redirection operator
(``2>``, ``0<``) is that operator's file descriptor, not a word.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TypeAlias

QUOTES = "'\""
REDIRECT_CHARS = "<>"
# Longest first, so ">>" is not read as two ">".
OPERATORS = (">>", "<>", ">", "<")


class ParseError(ValueError):
    """Raised when a command line is malformed (e.g. an unterminated quote)."""


@dataclass(frozen=True)
class Word:
    """A plain token; *quoted* is True if any part of it was quoted."""

    text: str
    quoted: bool = False


@dataclass(frozen=True)
class Operator:
    """A redirection operator with its explicit fd, if one was written."""

    op: str
    fd: int | None = None


Token: TypeAlias = Word | Operator


def split_pipeline(line: str) -> list[str]:
    """Split *line* into command strings on unquoted ``|``.

    Each command string is trimmed and empty ones are dropped, so
    ``"ls |  | wc"`` gives ``["ls", "wc"]``.
    """
    commands: list[str] = []
    current: list[str] = []
    quote: str | None = None
    for ch in line:
        if quote is not None:
            if ch == quote:
                quote = None
        elif ch in QUOTES:
            quote = ch
        elif ch == "|":
            commands.append("".join(current))
            current = []
            continue
        current.append(ch)
    commands.append("".join(current))
    return [cmd.strip() for cmd in commands if cmd.strip()]


def tokenize(command: str) -> list[Token]:
    """Break one command string into words and redirection operators.

    Raises:
        ParseError: If a quote is never closed.

    """
    tokens: list[Token] = []
    parts: list[str] | None = None
    quoted = False
    i = 0

    def flush() -> None:
        nonlocal parts, quoted
        if parts is not None:
            tokens.append(Word("".join(parts), quoted))
        parts = None
        quoted = False

    while i < len(command):
        ch = command[i]
        if ch in QUOTES:
            end = command.find(ch, i + 1)
            if end == -1:
                msg = f"unterminated quote: {ch}"
                raise ParseError(msg)
            parts = [*(parts or []), command[i + 1 : end]]
            quoted = True
            i = end + 1
        elif ch.isspace():
            flush()
            i += 1
        elif ch in REDIRECT_CHARS:
            fd = None
            if parts is not None and not quoted and "".join(parts).isdigit():
                fd = int("".join(parts))
                parts = None
            else:
                flush()
            op = next(o for o in OPERATORS if command.startswith(o, i))
            tokens.append(Operator(op, fd))
            i += len(op)
        else:
            parts = [*(parts or []), ch]
            i += 1
    flush()
    return tokens
