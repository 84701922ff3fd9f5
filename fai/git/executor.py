"""Command Executor - run external processes and capture their output."""

import logging
import subprocess
from typing import Sequence

from fai.errors import ExternalCommandFailure


class CommandExecutor:
    """Runs a command, returning combined stdout/stderr with whitespace trimmed."""

    def __init__(self, cwd: str | None = None, logger: logging.Logger | None = None):
        self.cwd = cwd
        self.logger = logger or logging.getLogger(__name__)

    def run(self, argv: Sequence[str]) -> str:
        command = ' '.join(argv)
        self.logger.debug("Running: %s", command)
        try:
            result = subprocess.run(
                list(argv),
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                cwd=self.cwd,
                text=True,
                encoding='utf-8',
                errors='replace',
            )
        except FileNotFoundError:
            self.logger.error("Command not found: %s", argv[0])
            raise ExternalCommandFailure(command, f"{argv[0]} is not installed or not in PATH")
        except OSError as e:
            self.logger.error("Command failed to start: %s", command)
            raise ExternalCommandFailure(command, str(e)) from e

        output = (result.stdout or "").strip()
        if result.returncode != 0:
            self.logger.error("Command failed: %s", command)
            raise ExternalCommandFailure(command, output, result.returncode)
        return output
