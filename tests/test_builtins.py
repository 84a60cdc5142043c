"""Tests for the built-in commands.

Every command runs through a booted shell, exactly as a user would
type it, so these tests also cover unit loading and option parsing.
"""

from py_sh.bootloader import Bootloader
from py_sh.config import ShellConfig
from py_sh.logging import LogLevel
from py_sh.shell import Shell

HOME = "/home/guest"


def _booted_shell() -> Shell:
    """Boot an in-memory shell for the default guest user."""
    return Bootloader(ShellConfig()).boot()


def _with_fruits() -> Shell:
    """Boot a shell with ~/fruits.txt holding three lines."""
    shell = _booted_shell()
    shell.fs.write_file(f"{HOME}/fruits.txt", "apple\nBanana\ncherry\n")
    return shell


# ---------------------------------------------------------------------------
# Cycle 1 — listing and reading
# ---------------------------------------------------------------------------


class TestLs:
    """Verify ls."""

    def test_lists_cwd_without_hidden(self) -> None:
        """Dotfiles are hidden by default."""
        result = _booted_shell().run("ls")
        assert result.exit_code == 0
        assert result.stdout == "README.md\n"

    def test_all_shows_hidden_and_dots(self) -> None:
        """``-a`` adds dotfiles and the . and .. entries."""
        result = _booted_shell().run("ls -a")
        assert result.stdout == "./\n../\n.local/\nREADME.md\n"

    def test_directories_marked(self) -> None:
        """Directories end in ``/``."""
        shell = _booted_shell()
        shell.run("mkdir docs")
        assert "docs/\n" in shell.run("ls").stdout

    def test_long_format(self) -> None:
        """``-l`` shows permissions, owner and size."""
        result = _booted_shell().run("ls -l")
        assert result.stdout.startswith("-rw-r--r-- 1 guest guest")
        assert result.stdout.rstrip().endswith("README.md")

    def test_file_argument(self) -> None:
        """Listing a file prints its path."""
        assert _booted_shell().run("ls README.md").stdout == "README.md\n"

    def test_missing_path(self) -> None:
        """A missing path fails with a message on stderr."""
        result = _booted_shell().run("ls /nope")
        assert result.exit_code == 1
        assert result.stderr == "ls: cannot access '/nope': No such file or directory\n"

    def test_several_directories_get_headers(self) -> None:
        """Listing two directories labels each."""
        result = _booted_shell().run("ls / /tmp")
        assert "/:\n" in result.stdout
        assert "/tmp:\n" in result.stdout


class TestCat:
    """Verify cat."""

    def test_prints_file(self) -> None:
        """cat prints the file content unchanged."""
        result = _with_fruits().run("cat fruits.txt")
        assert result.stdout == "apple\nBanana\ncherry\n"

    def test_concatenates(self) -> None:
        """Several files are printed in order."""
        shell = _with_fruits()
        shell.fs.write_file(f"{HOME}/more.txt", "date\n")
        assert shell.run("cat fruits.txt more.txt").stdout.endswith("cherry\ndate\n")

    def test_reads_stdin_without_arguments(self) -> None:
        """With no files cat copies stdin."""
        assert _booted_shell().run("echo piped | cat").stdout == "piped\n"

    def test_missing_file(self) -> None:
        """A missing file is reported and the exit code is 1."""
        result = _booted_shell().run("cat nope.txt")
        assert result.exit_code == 1
        assert result.stderr == "cat: nope.txt: No such file or directory\n"

    def test_directory(self) -> None:
        """A directory cannot be cat'ed."""
        assert "Is a directory" in _booted_shell().run("cat /tmp").stderr

    def test_raw_flag_accepted(self) -> None:
        """``--raw`` is accepted and output stays raw."""
        result = _with_fruits().run("cat --raw fruits.txt")
        assert result.stdout.startswith("apple")


class TestStat:
    """Verify stat."""

    def test_file(self) -> None:
        """stat shows type, size and permissions."""
        result = _with_fruits().run("stat fruits.txt")
        assert "  File: fruits.txt\n" in result.stdout
        assert "  Type: file\n" in result.stdout
        assert "  Size: 20\n" in result.stdout
        assert "Access: -rw-r--r--\n" in result.stdout

    def test_missing(self) -> None:
        """stat on a missing path fails."""
        result = _booted_shell().run("stat ghost")
        assert result.exit_code == 1
        assert "cannot stat 'ghost'" in result.stderr


# ---------------------------------------------------------------------------
# Cycle 2 — changing the tree
# ---------------------------------------------------------------------------


class TestMkdirTouch:
    """Verify mkdir and touch."""

    def test_mkdir(self) -> None:
        """mkdir creates a directory."""
        shell = _booted_shell()
        assert shell.run("mkdir docs").exit_code == 0
        assert shell.fs.is_dir(f"{HOME}/docs")

    def test_mkdir_existing(self) -> None:
        """mkdir on an existing path fails."""
        shell = _booted_shell()
        shell.run("mkdir docs")
        result = shell.run("mkdir docs")
        assert result.exit_code == 1
        assert result.stderr == "mkdir: cannot create directory 'docs': File exists\n"

    def test_mkdir_parents(self) -> None:
        """``-p`` creates missing parents."""
        shell = _booted_shell()
        assert shell.run("mkdir -p a/b/c").exit_code == 0
        assert shell.fs.is_dir(f"{HOME}/a/b/c")

    def test_mkdir_without_parent_fails(self) -> None:
        """Without ``-p`` the parent must exist."""
        assert _booted_shell().run("mkdir a/b").exit_code == 1

    def test_touch_creates_file(self) -> None:
        """touch creates an empty file."""
        shell = _booted_shell()
        shell.run("touch new.txt")
        assert shell.fs.read_file(f"{HOME}/new.txt") == ""

    def test_touch_keeps_content(self) -> None:
        """touch leaves existing content alone."""
        shell = _with_fruits()
        shell.run("touch fruits.txt")
        assert shell.fs.read_file(f"{HOME}/fruits.txt").startswith("apple")


class TestCpMv:
    """Verify cp and mv."""

    def test_cp_to_new_name(self) -> None:
        """cp duplicates a file."""
        shell = _with_fruits()
        assert shell.run("cp fruits.txt copy.txt").exit_code == 0
        assert shell.fs.read_file(f"{HOME}/copy.txt") == shell.fs.read_file(f"{HOME}/fruits.txt")

    def test_cp_into_directory(self) -> None:
        """A directory target receives the file under its own name."""
        shell = _with_fruits()
        shell.run("mkdir box")
        shell.run("cp fruits.txt box")
        assert shell.fs.is_file(f"{HOME}/box/fruits.txt")

    def test_cp_many_into_file_fails(self) -> None:
        """Several sources need a directory target."""
        shell = _with_fruits()
        result = shell.run("cp fruits.txt README.md nothere")
        assert result.exit_code == 1
        assert "is not a directory" in result.stderr

    def test_cp_missing_operand(self) -> None:
        """cp needs a source and a destination."""
        assert _booted_shell().run("cp only").exit_code == 1

    def test_mv_renames(self) -> None:
        """mv removes the source and creates the target."""
        shell = _with_fruits()
        assert shell.run("mv fruits.txt food.txt").exit_code == 0
        assert not shell.fs.exists(f"{HOME}/fruits.txt")
        assert shell.fs.read_file(f"{HOME}/food.txt").startswith("apple")

    def test_mv_directory(self) -> None:
        """mv moves whole directories."""
        shell = _with_fruits()
        shell.run("mkdir -p src/inner")
        shell.run("mv src dst")
        assert shell.fs.is_dir(f"{HOME}/dst/inner")

    def test_mv_directory_onto_file_refused(self) -> None:
        """mv will not let a directory replace a file."""
        shell = _with_fruits()
        shell.run("mkdir d")
        result = shell.run("mv d fruits.txt")
        assert result.exit_code == 1
        assert "cannot overwrite non-directory" in result.stderr
        assert shell.fs.read_file(f"{HOME}/fruits.txt").startswith("apple")

    def test_mv_missing_source(self) -> None:
        """A missing source is reported."""
        result = _booted_shell().run("mv ghost there")
        assert result.exit_code == 1
        assert result.stderr.startswith("mv: ")


class TestRm:
    """Verify rm."""

    def test_removes_file(self) -> None:
        """rm deletes a file."""
        shell = _with_fruits()
        assert shell.run("rm fruits.txt").exit_code == 0
        assert not shell.fs.exists(f"{HOME}/fruits.txt")

    def test_non_empty_directory_needs_recursive(self) -> None:
        """A non-empty directory needs ``-r``."""
        shell = _booted_shell()
        shell.run("mkdir -p d/e")
        result = shell.run("rm d")
        assert result.exit_code == 1
        assert "Directory not empty" in result.stderr
        assert shell.run("rm -r d").exit_code == 0
        assert not shell.fs.exists(f"{HOME}/d")

    def test_force_ignores_missing(self) -> None:
        """``-f`` is quiet about missing files."""
        result = _booted_shell().run("rm -f ghost")
        assert result.exit_code == 0
        assert result.stderr == ""

    def test_missing_without_force(self) -> None:
        """Without ``-f`` a missing file is an error."""
        assert _booted_shell().run("rm ghost").exit_code == 1

    def test_special_paths_refused(self) -> None:
        """``/`` and ``.`` are never removed."""
        shell = _booted_shell()
        result = shell.run("rm -rf /")
        assert result.exit_code == 1
        assert "Is a special file" in result.stderr
        assert shell.fs.exists("/home")

    def test_removing_unit_disables_command(self) -> None:
        """Deleting a unit file makes the command unavailable."""
        shell = _booted_shell()
        shell.run("rm .local/bin/whoami.cmd")
        assert shell.run("whoami").exit_code == 127


# ---------------------------------------------------------------------------
# Cycle 3 — session state
# ---------------------------------------------------------------------------


class TestCdPwd:
    """Verify cd and pwd, including the home jail."""

    def test_pwd_starts_at_home(self) -> None:
        """The first directory is HOME."""
        assert _booted_shell().run("pwd").stdout == f"{HOME}\n"

    def test_cd_into_subdirectory(self) -> None:
        """cd changes PWD for later commands."""
        shell = _booted_shell()
        shell.run("mkdir docs")
        assert shell.run("cd docs").exit_code == 0
        assert shell.run("pwd").stdout == f"{HOME}/docs\n"
        assert shell.env.get("PWD") == f"{HOME}/docs"

    def test_cd_without_argument_goes_home(self) -> None:
        """cd with no argument returns to HOME."""
        shell = _booted_shell()
        shell.run("cd .local/bin")
        shell.run("cd")
        assert shell.cwd == HOME

    def test_cd_tilde_path(self) -> None:
        """``~/x`` expands to HOME/x."""
        shell = _booted_shell()
        shell.run("cd ~/.local")
        assert shell.cwd == f"{HOME}/.local"

    def test_cd_outside_home_denied(self) -> None:
        """Leaving HOME is a permission error and PWD is unchanged."""
        shell = _booted_shell()
        result = shell.run("cd /tmp")
        assert result.exit_code == 1
        assert "permission denied" in result.stderr
        assert shell.cwd == HOME

    def test_cd_to_sibling_with_home_prefix_denied(self) -> None:
        """``/home/guest2`` is not inside ``/home/guest``."""
        shell = _booted_shell()
        shell.fs.make_dirs("/home/guest2")
        assert shell.run("cd /home/guest2").exit_code == 1

    def test_cd_missing(self) -> None:
        """A missing directory is reported."""
        result = _booted_shell().run("cd nowhere")
        assert result.exit_code == 1
        assert "No such file or directory" in result.stderr

    def test_cd_into_file(self) -> None:
        """A file is not a directory."""
        result = _booted_shell().run("cd README.md")
        assert "Not a directory" in result.stderr


class TestEchoWhoami:
    """Verify echo and whoami."""

    def test_echo_joins_arguments(self) -> None:
        """echo prints its arguments and a newline."""
        assert _booted_shell().run("echo hello   world").stdout == "hello world\n"

    def test_echo_no_newline(self) -> None:
        """``-n`` drops the newline."""
        assert _booted_shell().run("echo -n hi").stdout == "hi"

    def test_echo_escapes(self) -> None:
        """``-e`` interprets backslash escapes."""
        assert _booted_shell().run(r"echo -e 'a\tb\nc'").stdout == "a\tb\nc\n"

    def test_echo_without_escapes_is_literal(self) -> None:
        """Without ``-e`` backslashes stay."""
        assert _booted_shell().run(r"echo 'a\nb'").stdout == "a\\nb\n"

    def test_echo_empty(self) -> None:
        """echo alone prints an empty line."""
        assert _booted_shell().run("echo").stdout == "\n"

    def test_whoami(self) -> None:
        """whoami prints USER."""
        assert _booted_shell().run("whoami").stdout == "guest\n"

    def test_default_aliases(self) -> None:
        """aboutme and intro are aliases of whoami."""
        shell = _booted_shell()
        assert shell.run("aboutme").stdout == "guest\n"
        assert shell.run("intro").stdout == "guest\n"


class TestTextFilters:
    """Verify wc and grep."""

    def test_wc_counts(self) -> None:
        """wc prints lines, words and characters."""
        assert _booted_shell().run("echo hello world | wc").stdout == "1 2 12\n"

    def test_wc_lines_only(self) -> None:
        """``-l`` prints only the line count."""
        assert _with_fruits().run("cat fruits.txt | wc -l").stdout == "3\n"

    def test_wc_file_labelled(self) -> None:
        """Counting a file names it."""
        assert _with_fruits().run("wc -w fruits.txt").stdout == "3 fruits.txt\n"

    def test_grep_filters(self) -> None:
        """grep keeps matching lines."""
        assert _with_fruits().run("cat fruits.txt | grep an").stdout == "Banana\n"

    def test_grep_ignore_case(self) -> None:
        """``-i`` matches regardless of case."""
        assert _with_fruits().run("grep -i b fruits.txt").stdout == "Banana\n"

    def test_grep_invert(self) -> None:
        """``-v`` keeps non-matching lines."""
        assert _with_fruits().run("grep -v an fruits.txt").stdout == "apple\ncherry\n"

    def test_grep_no_match_exits_one(self) -> None:
        """No match means exit code 1."""
        assert _with_fruits().run("grep kiwi fruits.txt").exit_code == 1

    def test_grep_without_pattern(self) -> None:
        """A pattern is required."""
        assert _booted_shell().run("grep").exit_code == 2


class TestEnvAndAliases:
    """Verify env, export, alias, unalias and history."""

    def test_env_lists_variables(self) -> None:
        """env prints sorted KEY=VALUE lines."""
        out = _booted_shell().run("env").stdout
        assert f"HOME={HOME}\n" in out
        assert "USER=guest\n" in out
        assert out.splitlines() == sorted(out.splitlines())

    def test_export_sets_shell_variable(self) -> None:
        """export changes the live environment."""
        shell = _booted_shell()
        assert shell.run("export EDITOR=vim").exit_code == 0
        assert "EDITOR=vim\n" in shell.run("env").stdout

    def test_export_without_equals(self) -> None:
        """export needs KEY=VALUE."""
        assert _booted_shell().run("export NOPE").exit_code == 1

    def test_alias_defines_and_expands(self) -> None:
        """A new alias expands on the first word."""
        shell = _booted_shell()
        shell.run("alias ll='ls -a'")
        assert shell.run("ll").stdout == shell.run("ls -a").stdout

    def test_alias_lists(self) -> None:
        """alias alone lists every alias."""
        assert "cls='clear'\n" in _booted_shell().run("alias").stdout

    def test_unalias(self) -> None:
        """unalias removes an alias."""
        shell = _booted_shell()
        assert shell.run("unalias intro").exit_code == 0
        assert shell.run("intro").exit_code == 127
        assert shell.run("unalias intro").exit_code == 1

    def test_history(self) -> None:
        """history numbers previous lines."""
        shell = _booted_shell()
        shell.run("pwd")
        assert shell.run("history").stdout == "    1  pwd\n    2  history\n"


class TestHelpClearDmesg:
    """Verify help, clear and dmesg."""

    def test_help_lists_installed_commands(self) -> None:
        """help shows each command with its description."""
        out = _booted_shell().run("help").stdout
        assert "ls" in out
        assert "List directory contents" in out

    def test_clear_calls_display_hook(self) -> None:
        """clear asks the display to clear itself."""
        cleared: list[str] = []
        shell = Bootloader(ShellConfig()).boot(on_clear=cleared.append)
        assert shell.run("cls").exit_code == 0
        assert cleared == [""]

    def test_dmesg_shows_boot_log(self) -> None:
        """dmesg prints boot messages."""
        assert "[INFO] boot:" in _booted_shell().run("dmesg").stdout

    def test_dmesg_level_filter(self) -> None:
        """``-l WARNING`` hides info messages."""
        shell = _booted_shell()
        shell.run("nosuchcommand")
        out = shell.run("dmesg -l WARNING").stdout
        assert "[INFO]" not in out
        assert "[WARNING] loader:" in out

    def test_dmesg_unknown_level(self) -> None:
        """An unknown level is a usage error."""
        assert _booted_shell().run("dmesg --level=LOUD").exit_code == 2

    def test_logger_levels_exposed(self) -> None:
        """The shell log is shared with the bootloader."""
        shell = _booted_shell()
        assert shell.logger.filter(min_level=LogLevel.INFO, source="boot")
