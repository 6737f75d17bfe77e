"""
Exceptions for the deployment tool.
"""

from __future__ import annotations

from collections.abc import Sequence


class DeployError(Exception):
    """Base class for deployment errors."""

    pass


class ConfigurationError(DeployError):
    """Invalid or unreadable deployment configuration."""

    pass


class UsageError(DeployError):
    """Bad command-line arguments."""

    pass


class CommandError(DeployError):
    """An external command exited with a non-zero status."""

    def __init__(self, command: Sequence[str], returncode: int, stderr: str | None = None) -> None:
        self.command = list(command)
        self.returncode = returncode
        self.stderr = stderr or ""
        message = f"Command failed ({returncode}): {' '.join(self.command)}"
        if self.stderr:
            message += f"\n{self.stderr.strip()}"
        super().__init__(message)


class RemoteError(DeployError):
    """A command run over a paramiko session failed."""

    pass


class ArchiveMissingError(DeployError):
    """A local image archive is missing before transfer."""

    pass


class HealthCheckError(DeployError):
    """The service did not answer after the reload."""

    pass


__all__ = [
    "ArchiveMissingError",
    "CommandError",
    "ConfigurationError",
    "DeployError",
    "HealthCheckError",
    "RemoteError",
    "UsageError",
]
