"""Tests for the environment variable store.

The shell keeps one Environment; commands only ever see a snapshot.
"""

import pytest

from py_sh.bootloader import Bootloader
from py_sh.config import ShellConfig
from py_sh.env import Environment


class TestEnvironment:
    """Verify the Environment key-value store."""

    def test_get_and_set(self) -> None:
        """Setting a variable should make it retrievable."""
        env = Environment()
        env.set("HOME", "/home/ada")
        assert env.get("HOME") == "/home/ada"

    def test_get_missing_returns_none(self) -> None:
        """Getting a missing key should return None."""
        assert Environment().get("MISSING") is None

    def test_get_missing_with_default(self) -> None:
        """Getting a missing key with a default should return the default."""
        assert Environment().get("MISSING", "fallback") == "fallback"

    def test_initial_is_copied(self) -> None:
        """The initial dict is not referenced."""
        initial = {"A": "1"}
        env = Environment(initial)
        initial["A"] = "2"
        assert env.get("A") == "1"

    def test_delete(self) -> None:
        """Deleting a variable should remove it."""
        env = Environment({"X": "val"})
        env.delete("X")
        assert env.get("X") is None

    def test_delete_missing_raises(self) -> None:
        """Deleting a non-existent key should raise KeyError."""
        with pytest.raises(KeyError):
            Environment().delete("NOPE")

    def test_as_dict_is_snapshot(self) -> None:
        """Changing the snapshot leaves the environment alone."""
        env = Environment({"A": "1"})
        snapshot = env.as_dict()
        snapshot["A"] = "changed"
        assert env.get("A") == "1"

    def test_copy_is_independent(self) -> None:
        """A copied environment should be independent of the original."""
        env = Environment({"X": "original"})
        child = env.copy()
        child.set("X", "modified")
        assert env.get("X") == "original"
        assert len(child) == 1

    def test_behaves_like_a_mapping(self) -> None:
        """Item access, ``in`` and iteration work as on a dict."""
        env = Environment({"B": "2", "A": "1"})
        env["C"] = "3"
        assert env["A"] == "1"
        assert "C" in env
        assert sorted(env) == ["A", "B", "C"]

    @pytest.mark.parametrize("name", ["", "A=B", "MY VAR"])
    def test_invalid_names_rejected(self, name: str) -> None:
        """Names that cannot be written as KEY=VALUE are refused."""
        with pytest.raises(ValueError, match="invalid variable name"):
            Environment().set(name, "x")


class TestShellEnvironment:
    """Verify the variables a booted shell starts with."""

    def test_defaults(self) -> None:
        """HOME, USER, PWD and PATH come from the config."""
        shell = Bootloader(ShellConfig(user="ada")).boot()
        assert dict(shell.env.items()) == {
            "HOME": "/home/ada",
            "USER": "ada",
            "SHELL": "/bin/py-sh",
            "PWD": "/home/ada",
            "PATH": "/home/ada/.local/bin",
            "HOSTNAME": "py-sh",
        }

    def test_export_rejects_bad_name(self) -> None:
        """export reports a name with whitespace."""
        shell = Bootloader(ShellConfig()).boot()
        result = shell.run("export 'MY VAR=1'")
        assert result.exit_code == 1
        assert "invalid variable name" in result.stderr
