"""Tests for the Configuration Block Manager (clcs.blocks)."""

from __future__ import annotations

import os
import sys

import pytest

from clcs.blocks import ConfigurationBlockManager
from clcs.exceptions import ConfigFileUnreadableError, ConfigFileUnwritableError
from clcs.shells import SHELL_DRIVERS, get_shell_driver

BLOCK = 'eval "$(mytool completion provider bash)"'


@pytest.fixture
def rc_file(isolated_config):
    return isolated_config / "home" / ".bashrc"


@pytest.fixture
def manager(block_options, rc_file):
    return ConfigurationBlockManager(get_shell_driver("bash"), block_options, config_file=rc_file)


class TestInstall:
    def test_block_text(self, manager):
        assert manager.block == BLOCK

    def test_creates_missing_file(self, manager, rc_file):
        assert manager.install() is True
        assert rc_file.read_text() == BLOCK + "\n"

    def test_creates_parent_directories(self, block_options, isolated_config):
        target = isolated_config / "deep" / "nested" / "rc"
        manager = ConfigurationBlockManager(get_shell_driver("bash"), block_options, config_file=target)
        manager.install()
        assert target.read_text() == BLOCK + "\n"

    def test_appends_after_existing_content(self, manager, rc_file):
        rc_file.write_text("alias ll='ls -l'\n")
        manager.install()
        assert rc_file.read_text() == f"alias ll='ls -l'\n{BLOCK}\n"

    def test_adds_missing_trailing_newline(self, manager, rc_file):
        rc_file.write_text("export A=1")
        manager.install()
        assert rc_file.read_text() == f"export A=1\n{BLOCK}\n"

    def test_idempotent(self, manager, rc_file):
        rc_file.write_text("export A=1\n")
        assert manager.install() is True
        after_first = rc_file.read_bytes()
        assert manager.install() is False
        assert rc_file.read_bytes() == after_first
        assert rc_file.read_text().count(BLOCK) == 1

    def test_detected_after_install(self, manager):
        assert manager.is_installed() is False
        manager.install()
        assert manager.is_installed() is True

    def test_preserves_crlf_content(self, manager, rc_file):
        rc_file.write_bytes(b"set a\r\nset b\r\n")
        manager.install()
        assert rc_file.read_bytes() == b"set a\r\nset b\r\n" + BLOCK.encode() + b"\n"

    def test_preserves_file_mode(self, manager, rc_file):
        rc_file.write_text("x\n")
        os.chmod(rc_file, 0o600)
        manager.install()
        assert rc_file.stat().st_mode & 0o777 == 0o600

    def test_default_config_file_comes_from_driver(self, block_options, isolated_config):
        manager = ConfigurationBlockManager(get_shell_driver("bash"), block_options)
        manager.install()
        assert (isolated_config / "home" / ".bashrc").read_text() == BLOCK + "\n"


class TestUninstall:
    def test_restores_original_content(self, manager, rc_file):
        original = "export A=1\nalias ll='ls -l'\n"
        rc_file.write_text(original)
        manager.install()
        assert manager.uninstall() is True
        assert rc_file.read_text() == original
        assert manager.is_installed() is False

    def test_separator_newline_is_kept(self, manager, rc_file):
        rc_file.write_text("alias ll='ls -l'")
        manager.install()
        assert manager.uninstall() is True
        assert rc_file.read_text() == "alias ll='ls -l'\n"

    def test_block_in_the_middle(self, manager, rc_file):
        rc_file.write_text(f"before\n{BLOCK}\nafter\n")
        manager.uninstall()
        assert rc_file.read_text() == "before\nafter\n"

    def test_crlf_terminator_is_removed(self, manager, rc_file):
        rc_file.write_bytes(f"before\r\n{BLOCK}\r\nafter\r\n".encode())
        manager.uninstall()
        assert rc_file.read_bytes() == b"before\r\nafter\r\n"

    def test_block_without_terminator(self, manager, rc_file):
        rc_file.write_text(f"before\n{BLOCK}")
        manager.uninstall()
        assert rc_file.read_text() == "before\n"

    def test_every_occurrence_is_removed(self, manager, rc_file):
        rc_file.write_text(f"{BLOCK}\nmiddle\n{BLOCK}\n")
        manager.uninstall()
        assert rc_file.read_text() == "middle\n"

    def test_missing_file_is_noop(self, manager, rc_file):
        assert manager.uninstall() is False
        assert not rc_file.exists()

    def test_unrelated_file_is_untouched(self, manager, rc_file):
        rc_file.write_text("export A=1\n")
        mtime = rc_file.stat().st_mtime_ns
        assert manager.uninstall() is False
        assert rc_file.read_text() == "export A=1\n"
        assert rc_file.stat().st_mtime_ns == mtime

    def test_similar_lines_are_kept(self, manager, rc_file):
        similar = 'eval "$(othertool completion provider bash)"\n'
        rc_file.write_text(similar)
        manager.install()
        manager.uninstall()
        assert rc_file.read_text() == similar

    def test_empty_file_kept_by_default(self, manager, rc_file):
        manager.install()
        manager.uninstall()
        assert rc_file.exists()
        assert rc_file.read_text() == ""

    def test_empty_file_removed_when_configured(self, block_options, rc_file):
        manager = ConfigurationBlockManager(
            get_shell_driver("bash"), block_options, config_file=rc_file, remove_empty_file=True
        )
        manager.install()
        assert manager.uninstall() is True
        assert not rc_file.exists()

    def test_non_empty_file_not_removed_when_configured(self, block_options, rc_file):
        rc_file.write_text("keep\n")
        manager = ConfigurationBlockManager(
            get_shell_driver("bash"), block_options, config_file=rc_file, remove_empty_file=True
        )
        manager.install()
        manager.uninstall()
        assert rc_file.read_text() == "keep\n"


class TestPerShell:
    @pytest.mark.parametrize("driver", SHELL_DRIVERS, ids=lambda d: d.shell_name)
    def test_round_trip(self, driver, block_options, isolated_config):
        target = isolated_config / f"rc.{driver.shell_name}"
        target.write_text("# existing\n")
        manager = ConfigurationBlockManager(driver, block_options, config_file=target)
        manager.install()
        assert manager.is_installed()
        manager.uninstall()
        assert target.read_text() == "# existing\n"

    def test_shells_do_not_see_each_other(self, block_options, rc_file):
        ConfigurationBlockManager(get_shell_driver("bash"), block_options, config_file=rc_file).install()
        fish = ConfigurationBlockManager(get_shell_driver("fish"), block_options, config_file=rc_file)
        assert fish.is_installed() is False


@pytest.mark.skipif(sys.platform == "win32", reason="POSIX permissions and symlinks")
class TestFileErrors:
    @pytest.fixture
    def as_regular_user(self):
        if hasattr(os, "geteuid") and os.geteuid() == 0:
            pytest.skip("root ignores file permissions")

    def test_unreadable_file(self, manager, rc_file, as_regular_user):
        rc_file.write_text("x\n")
        os.chmod(rc_file, 0o000)
        try:
            with pytest.raises(ConfigFileUnreadableError) as exc_info:
                manager.is_installed()
            assert exc_info.value.exit_code == 8
        finally:
            os.chmod(rc_file, 0o644)

    def test_undecodable_file(self, manager, rc_file):
        rc_file.write_bytes(b"\xff\xfe\x00bad")
        with pytest.raises(ConfigFileUnreadableError):
            manager.install()
        assert rc_file.read_bytes() == b"\xff\xfe\x00bad"

    def test_unwritable_directory(self, block_options, isolated_config, as_regular_user):
        locked = isolated_config / "locked"
        locked.mkdir()
        os.chmod(locked, 0o500)
        manager = ConfigurationBlockManager(
            get_shell_driver("bash"), block_options, config_file=locked / ".bashrc"
        )
        try:
            with pytest.raises(ConfigFileUnwritableError) as exc_info:
                manager.install()
            assert exc_info.value.exit_code == 9
        finally:
            os.chmod(locked, 0o700)

    def test_symlink_is_followed(self, manager, rc_file, isolated_config):
        real = isolated_config / "dotfiles" / "bashrc"
        real.parent.mkdir()
        real.write_text("export A=1\n")
        rc_file.symlink_to(real)

        manager.install()
        assert rc_file.is_symlink()
        assert real.read_text() == f"export A=1\n{BLOCK}\n"

        manager.uninstall()
        assert rc_file.is_symlink()
        assert real.read_text() == "export A=1\n"
