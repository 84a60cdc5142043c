"""Tab completion for command names and filesystem paths.

The completer separates **what to complete** (pure logic, fully
testable) from **how to wire it** (readline in the REPL, a JSON
endpoint in the web UI).

Only the text after the last ``|`` matters, so every pipeline stage
completes on its own.  Within that stage:

- **Command context** — still typing the first word (or nothing typed
  yet).  Candidates are the unit files in ``$PATH``.
- **Path context** — anything else.  The last word is split at its last
  ``/`` into a directory and a name prefix; the directory is listed and
  filtered by the prefix.

One candidate gives a ``Complete`` holding the whole new input line.
Several give ``Suggestions`` with bare names (directories end in ``/``)
and the directory part they were found under.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, TypeAlias

from py_sh.fs.filesystem import format_path, resolve_path

if TYPE_CHECKING:
    from py_sh.shell import Shell


@dataclass(frozen=True)
class Complete:
    """A single candidate: *value* replaces the whole input line."""

    value: str


@dataclass(frozen=True)
class Suggestions:
    """Several candidates.

    Attributes:
        names: Matching names, sorted; directories end in ``/``.
        base: The directory part of the word being completed (``docs/``),
            so a caller can rebuild full candidates as ``base + name``.

    """

    names: tuple[str, ...]
    base: str = ""


Completion: TypeAlias = Complete | Suggestions | None


class Completer:
    """Context-aware completer over a shell's commands and filesystem."""

    def __init__(self, shell: Shell) -> None:
        """Create a completer attached to a shell instance."""
        self._shell = shell

    def complete(self, line: str) -> Completion:
        """Complete the end of *line*.

        Args:
            line: The input typed so far (up to the cursor).

        Returns:
            ``Complete``, ``Suggestions``, or None if nothing matches.

        """
        stage = line.rpartition("|")[2]
        words = stage.split()
        new_word = not words or stage[-1].isspace()
        token = "" if new_word else words[-1]
        prefix = line[: len(line) - len(token)]

        if not words or (len(words) == 1 and not new_word):
            return self._complete_command(prefix, token)
        return self._complete_path(prefix, token)

    def candidates(self, word: str, line: str) -> list[str]:
        """Return full replacement candidates for *word* (readline style).

        Args:
            word: The word under the cursor, as readline splits it.
            line: The input up to the cursor; it ends with *word*.

        """
        result = self.complete(line)
        if isinstance(result, Complete):
            start = len(line) - len(word)
            return [result.value[start:].rstrip(" ")]
        if isinstance(result, Suggestions):
            return [result.base + name for name in result.names]
        return []

    def _complete_command(self, prefix: str, token: str) -> Completion:
        matches = [name for name in self._shell.available_commands() if name.startswith(token)]
        if not matches:
            return None
        if len(matches) == 1:
            return Complete(f"{prefix}{matches[0]} ")
        return Suggestions(tuple(sorted(matches)))

    def _complete_path(self, prefix: str, token: str) -> Completion:
        slash = token.rfind("/")
        dir_part = token[: slash + 1]
        name_prefix = token[slash + 1 :]
        directory = (token[:slash] or "/") if slash >= 0 else "."
        if directory == "~" or directory.startswith("~/"):
            directory = self._shell.home + directory[1:]

        fs = self._shell.fs
        base = format_path(resolve_path(directory, self._shell.cwd))
        try:
            entries = fs.read_dir(base)
        except OSError:
            return None

        matches = [name for name in entries if name.startswith(name_prefix)]
        if not matches:
            return None
        if len(matches) == 1:
            name = matches[0]
            suffix = "/" if fs.is_dir(name, base) else " "
            return Complete(f"{prefix}{dir_part}{name}{suffix}")
        names = tuple(f"{name}/" if fs.is_dir(name, base) else name for name in matches)
        return Suggestions(names, base=dir_part)
