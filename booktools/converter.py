"""
Wrapper around the external ``epub2md`` converter.

The converter is a Node.js tool. An ``Epub2md`` instance is passed to the
pipeline and to the interactive session; it remembers whether the tool was
found so the check runs once per instance.
"""

import logging
import subprocess
from collections.abc import Callable
from pathlib import Path
from typing import Optional

from .exceptions import ConversionError

logger = logging.getLogger(__name__)

DEFAULT_EXECUTABLE = "epub2md"
CHECK_TIMEOUT = 10
INSTALL_TIMEOUT = 300
INSTALL_COMMAND = ["npm", "install", "-g", "epub2md"]


class Epub2md:
    """
    Check for, install and run the epub2md converter.

    Args:
        executable: Name or path of the epub2md executable
        use_npx: Also try running the converter through ``npx``
        timeout: Timeout in seconds for a conversion, None for no limit
    """

    def __init__(
        self,
        executable: str = DEFAULT_EXECUTABLE,
        use_npx: bool = True,
        timeout: Optional[float] = None,
    ):
        self.executable = executable
        self.use_npx = use_npx
        self.timeout = timeout
        self._available: Optional[bool] = None

    def _prefixes(self) -> list[list[str]]:
        prefixes = [[self.executable]]
        if self.use_npx:
            prefixes.append(["npx", self.executable])
        return prefixes

    def _run(self, cmd: list[str], timeout: Optional[float]) -> bool:
        logger.debug(f"Running: {' '.join(cmd)}")
        try:
            subprocess.run(
                cmd,
                check=True,
                capture_output=True,
                text=True,
                timeout=timeout,
            )
            return True
        except FileNotFoundError:
            logger.debug(f"Command not found: {cmd[0]}")
        except subprocess.TimeoutExpired:
            logger.warning(f"Command timed out after {timeout}s: {' '.join(cmd)}")
        except subprocess.CalledProcessError as e:
            details = (e.stderr or "").strip()[:200]
            logger.warning(f"Command failed ({e.returncode}): {' '.join(cmd)} {details}")
        return False

    def is_available(self, refresh: bool = False) -> bool:
        """Return True if one of the epub2md invocations works."""
        if self._available is None or refresh:
            self._available = any(
                self._run(prefix + ["--help"], CHECK_TIMEOUT)
                for prefix in self._prefixes()
            )
            logger.info(f"epub2md available: {self._available}")
        return self._available

    def install(self) -> bool:
        """
        Install epub2md globally with npm.

        Returns:
            True if the install command succeeded
        """
        logger.info("Installing epub2md with npm...")
        self._available = None
        if not self._run(INSTALL_COMMAND, INSTALL_TIMEOUT):
            logger.error("Automatic installation of epub2md failed")
            return False
        if not self.is_available():
            # The binary may only be on PATH in a new shell
            logger.warning("epub2md installed but not yet found on PATH")
        return True

    def ensure(
        self,
        auto_install: bool = True,
        confirm: Optional[Callable[[], bool]] = None,
    ) -> bool:
        """
        Make sure epub2md can be used, installing it if allowed.

        Args:
            auto_install: Try to install the converter when it is missing
            confirm: Asked before installing; installation is skipped when it
                returns False

        Returns:
            True if the converter is (or was just made) available
        """
        if self.is_available():
            return True
        if not auto_install:
            return False
        if confirm is not None and not confirm():
            logger.info("Skipping automatic installation of epub2md")
            return False
        return self.install()

    def convert(self, epub_path: Path, output_dir: Path) -> None:
        """
        Convert an EPUB into a directory of Markdown chapters.

        epub2md creates ``<output_dir>/<book name>/``.

        Raises:
            ConversionError: If every invocation of the converter fails
        """
        for prefix in self._prefixes():
            cmd = prefix + ["-c", str(epub_path), str(output_dir)]
            if self._run(cmd, self.timeout):
                logger.info(f"Converted {epub_path.name} with {' '.join(prefix)}")
                return
        raise ConversionError(f"epub2md failed to convert {epub_path.name}")
