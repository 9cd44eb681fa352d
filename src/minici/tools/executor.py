"""Run plan commands against the tracked repository."""

from __future__ import annotations

import logging
import shlex
import subprocess
from pathlib import Path

LOGGER = logging.getLogger(__name__)


class CommandExecutor:
    """Launch one shell-style command at a time with inherited stdio."""

    def __init__(self, cwd: Path | str) -> None:
        self.cwd = Path(cwd)
        self._process: subprocess.Popen[bytes] | None = None

    def execute(self, command: str) -> bool:
        """Run ``command`` to completion; ``True`` only on exit status zero."""
        try:
            argv = shlex.split(command)
        except ValueError as error:
            LOGGER.error("Unable to parse command %r: %s", command, error)
            return False
        if not argv:
            LOGGER.error("Refusing to run an empty command")
            return False

        try:
            process = subprocess.Popen(argv, cwd=self.cwd)  # noqa: S603  # commands come from the area table
        except FileNotFoundError:
            LOGGER.error("Executable not available: %s", argv[0])
            return False
        except OSError as error:
            LOGGER.error("Failed to launch %s: %s", argv[0], error)
            return False

        self._process = process
        try:
            returncode = process.wait()
        except BaseException:
            process.kill()
            process.wait()
            raise
        finally:
            self._process = None

        if returncode != 0:
            LOGGER.info("%s exited with %s", command, returncode)
        else:
            LOGGER.debug("%s exited with %s", command, returncode)
        return returncode == 0

    def cancel(self) -> None:
        """Ask the running command, if any, to terminate."""
        process = self._process
        if process is not None and process.poll() is None:
            LOGGER.debug("Terminating pid %s", process.pid)
            process.terminate()


__all__ = ["CommandExecutor"]
