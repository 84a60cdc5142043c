"""Shell configuration — who the user is and where the tree lives.

A ``ShellConfig`` is to the shell what a kernel image is to a kernel:
the frozen set of values the bootloader needs to bring everything up.
It can be built directly, or from ``PY_SH_*`` environment variables::

    PY_SH_USER=ada PY_SH_STORAGE=~/.py-sh/fs.json py-sh
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

DEFAULT_USER = "guest"
DEFAULT_HOSTNAME = "py-sh"
SHELL_PATH = "/bin/py-sh"


@dataclass(frozen=True)
class ShellConfig:
    """Boot-time settings for a shell session.

    Attributes:
        user: Login name (``$USER``).
        hostname: Host shown in the prompt (``$HOSTNAME``).
        home: Home directory; ``cd`` cannot leave it.  Defaults to
            ``/home/<user>``.
        bin_path: Directory searched for command units (``$PATH``).
            Defaults to ``<home>/.local/bin``.
        storage_path: JSON file the tree is saved to after every change.
            None keeps the tree in memory only.
        seed_path: A ``filesystem.json`` file or a host directory to
            build the first tree from when storage is empty.

    """

    user: str = DEFAULT_USER
    hostname: str = DEFAULT_HOSTNAME
    home: str = ""
    bin_path: str = ""
    storage_path: Path | None = None
    seed_path: Path | None = None

    def __post_init__(self) -> None:
        if not self.home:
            object.__setattr__(self, "home", f"/home/{self.user}")
        if not self.bin_path:
            object.__setattr__(self, "bin_path", f"{self.home.rstrip('/')}/.local/bin")

    @classmethod
    def from_environ(cls, environ: Mapping[str, str] | None = None) -> ShellConfig:
        """Build a config from ``PY_SH_*`` variables (default: ``os.environ``)."""
        source = os.environ if environ is None else environ
        storage = source.get("PY_SH_STORAGE")
        seed = source.get("PY_SH_SEED")
        return cls(
            user=source.get("PY_SH_USER") or DEFAULT_USER,
            hostname=source.get("PY_SH_HOSTNAME") or DEFAULT_HOSTNAME,
            home=source.get("PY_SH_HOME", ""),
            storage_path=Path(storage).expanduser() if storage else None,
            seed_path=Path(seed).expanduser() if seed else None,
        )

    def environment(self) -> dict[str, str]:
        """Return the initial shell variables for this config."""
        return {
            "HOME": self.home,
            "USER": self.user,
            "SHELL": SHELL_PATH,
            "PWD": self.home,
            "PATH": self.bin_path,
            "HOSTNAME": self.hostname,
        }
