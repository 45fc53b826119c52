"""Configuration block management -- install, detect and remove the completion block.

The block is the single line returned by a driver's
:meth:`~clcs.shells.base.ShellDriver.get_completion_block`. Because that
line is deterministic, the exact same text is used to detect and remove a
block installed earlier; nothing here uses patterns or fuzzy matching.

Each operation reads the whole file, transforms the text in memory, and
writes it back atomically (:func:`clcs.config.atomic_write`). The file is
never held open between those steps. Two installers running at the same
time are not coordinated: the last writer wins.

The file is treated as opaque text. Line endings and encoding of the
surrounding content are preserved byte for byte; a symlinked startup file
(as kept by dotfile managers) is updated through the link rather than
replaced by a regular file.

A file whose last line lacks a newline gets one before the block is
appended. Uninstall removes only the block and its own terminator, so that
separator stays: install then uninstall of ``alias ll='ls -l'`` leaves
that line followed by a newline. Files that already end in a newline
round-trip exactly.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from clcs.config import atomic_write
from clcs.exceptions import ConfigFileUnreadableError, ConfigFileUnwritableError
from clcs.models import GetCompletionBlockOptions
from clcs.shells.base import ShellDriver

logger = logging.getLogger(__name__)


class ConfigurationBlockManager:
    """Manages the completion block of one driver inside one configuration file.

    Args:
        driver: The shell driver producing the block text.
        options: Options passed to ``driver.get_completion_block``.
        config_file: Startup file to edit. Defaults to
            ``driver.get_shell_configuration_file()``.
        remove_empty_file: Delete the file when uninstalling leaves it
            empty instead of keeping an empty file.

    Example::

        manager = ConfigurationBlockManager(
            get_shell_driver("bash"),
            GetCompletionBlockOptions(
                get_completion_provider_command="mytool completion provider bash"
            ),
        )
        manager.install()
        assert manager.is_installed()
    """

    def __init__(
        self,
        driver: ShellDriver,
        options: GetCompletionBlockOptions,
        config_file: Optional[Path] = None,
        remove_empty_file: bool = False,
    ) -> None:
        self._driver = driver
        self._options = options
        self._config_file = config_file
        self._remove_empty_file = remove_empty_file

    @property
    def driver(self) -> ShellDriver:
        """The shell driver this manager was built on."""
        return self._driver

    @property
    def block(self) -> str:
        """The exact block text for the configured options."""
        return self._driver.get_completion_block(self._options)

    @property
    def config_file(self) -> Path:
        """Absolute path of the startup file being managed."""
        if self._config_file is not None:
            return self._config_file
        return self._driver.get_shell_configuration_file()

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def is_installed(self) -> bool:
        """Report whether the exact block text is present in the file.

        A missing file counts as "not installed".

        Raises:
            ConfigFileUnreadableError: If the file exists but cannot be read.
        """
        content = self._read()
        return content is not None and self.block in content

    def install(self) -> bool:
        """Append the block to the file unless it is already present.

        The file (and its parent directories) are created when missing. A
        newline is inserted first if the existing content does not end
        with one, so the block always occupies a line of its own.

        Returns:
            ``True`` if the file was changed, ``False`` if the block was
            already installed.

        Raises:
            ConfigFileUnreadableError: If the existing file cannot be read.
            ConfigFileUnwritableError: If the file cannot be written.
        """
        block = self.block
        content = self._read() or ""
        if block in content:
            logger.debug("Block already present in %s", self.config_file)
            return False

        if content and not content.endswith("\n"):
            content += "\n"
        self._write(content + block + "\n")
        logger.info("Installed %s completion block in %s", self._driver.shell_name, self.config_file)
        return True

    def uninstall(self) -> bool:
        """Remove every exact occurrence of the block from the file.

        The line terminator following an occurrence is removed together
        with it. A newline that :meth:`install` added after unterminated
        content is not part of the block and is kept. A file that does not
        contain the block (or does not exist) is left untouched.

        Returns:
            ``True`` if the file was changed or deleted, ``False`` otherwise.

        Raises:
            ConfigFileUnreadableError: If the existing file cannot be read.
            ConfigFileUnwritableError: If the file cannot be written or deleted.
        """
        block = self.block
        content = self._read()
        if content is None or block not in content:
            logger.debug("No block to remove from %s", self.config_file)
            return False

        updated = content.replace(block + "\r\n", "").replace(block + "\n", "").replace(block, "")
        if not updated and self._remove_empty_file:
            self._delete()
        else:
            self._write(updated)
        logger.info("Removed %s completion block from %s", self._driver.shell_name, self.config_file)
        return True

    # ------------------------------------------------------------------
    # File access
    # ------------------------------------------------------------------

    def _target(self) -> Path:
        # Follow symlinks so the link itself is never replaced.
        return self.config_file.resolve()

    def _read(self) -> Optional[str]:
        path = self.config_file
        if not path.exists():
            return None
        try:
            with open(path, encoding="utf-8", newline="") as f:
                return f.read()
        except (OSError, UnicodeDecodeError) as exc:
            raise ConfigFileUnreadableError(f"Cannot read {path}: {exc}") from exc

    def _write(self, content: str) -> None:
        path = self._target()
        try:
            atomic_write(path, content)
        except OSError as exc:
            raise ConfigFileUnwritableError(f"Cannot write {path}: {exc}") from exc

    def _delete(self) -> None:
        path = self._target()
        try:
            path.unlink()
        except OSError as exc:
            raise ConfigFileUnwritableError(f"Cannot delete {path}: {exc}") from exc
