"""Environment variables — the shell's ``KEY=VALUE`` settings.

Commands read ``HOME``, ``USER``, ``PWD``, ``PATH`` and ``HOSTNAME``
from here, and ``PWD`` doubles as the working directory.  The shell
keeps one ``Environment``; each pipeline stage gets a plain ``dict``
snapshot, so a command scribbling on its copy never changes the shell.

``Environment`` is a ``MutableMapping``, so ``env["HOME"]``, ``in``,
iteration and ``get`` behave like a dict.  Names are checked on the way
in: an empty name, or one containing ``=`` or whitespace, could never be
written back as ``KEY=VALUE`` and is rejected.
"""

from collections.abc import Iterator, Mapping, MutableMapping


def _check_name(key: str) -> None:
    if not key or "=" in key or any(ch.isspace() for ch in key):
        msg = f"invalid variable name: {key!r}"
        raise ValueError(msg)


class Environment(MutableMapping[str, str]):
    """A string-to-string variable store with validated names."""

    def __init__(self, initial: Mapping[str, str] | None = None) -> None:
        """Create an environment, copying *initial* if given.

        Raises:
            ValueError: If a name in *initial* is invalid.

        """
        self._vars: dict[str, str] = {}
        if initial:
            self.update(initial)

    def __getitem__(self, key: str) -> str:
        """Return the value of *key*."""
        return self._vars[key]

    def __setitem__(self, key: str, value: str) -> None:
        """Set *key*, rejecting names that cannot be exported."""
        _check_name(key)
        self._vars[key] = value

    def __delitem__(self, key: str) -> None:
        """Remove *key*."""
        del self._vars[key]

    def __iter__(self) -> Iterator[str]:
        """Iterate over variable names."""
        return iter(self._vars)

    def __len__(self) -> int:
        """Return the number of variables."""
        return len(self._vars)

    def set(self, key: str, value: str) -> None:
        """Set *key* to *value*.

        Raises:
            ValueError: If *key* is not a valid name.

        """
        self[key] = value

    def delete(self, key: str) -> None:
        """Remove *key*.

        Raises:
            KeyError: If *key* is not set.

        """
        del self[key]

    def as_dict(self) -> dict[str, str]:
        """Return a snapshot of every variable as a plain dict."""
        return dict(self._vars)

    def copy(self) -> "Environment":
        """Return an independent copy."""
        return Environment(self._vars)
