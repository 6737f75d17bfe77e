"""
Remote transports: how archives are copied and the reload script is run.

``OpenSSHTransport`` shells out to the ``scp``/``ssh`` clients and relies on
key-based access being set up. ``ParamikoTransport`` does the same through a
paramiko session, for hosts without the OpenSSH binaries.
"""

from __future__ import annotations

import logging
import posixpath
import subprocess
from pathlib import Path

import paramiko

from .commands import Runner, build_scp_command, build_ssh_command, run_command
from .config import DeployConfig
from .exceptions import ConfigurationError, RemoteError

logger = logging.getLogger(__name__)


class OpenSSHTransport:
    """Copy with ``scp`` and execute with a single ``ssh`` invocation."""

    def __init__(self, config: DeployConfig, runner: Runner = subprocess.run) -> None:
        self.config = config
        self.runner = runner

    def upload(self, local_path: Path, remote_dir: str) -> None:
        run_command(build_scp_command(self.config, local_path, remote_dir), self.runner)

    def execute(self, script: str) -> None:
        run_command(build_ssh_command(self.config, script), self.runner)

    def close(self) -> None:
        pass

    def __enter__(self) -> OpenSSHTransport:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


def _split_host(remote_host: str) -> tuple[str | None, str]:
    if "@" in remote_host:
        user, host = remote_host.rsplit("@", 1)
        return user, host
    return None, remote_host


def _sftp_path(remote_path: str) -> str:
    # SFTP paths are relative to the login directory, with no ~ expansion
    if remote_path == "~":
        return "."
    if remote_path.startswith("~/"):
        return remote_path[2:]
    return remote_path


class ParamikoTransport:
    """Copy over SFTP and execute through ``exec_command`` on one SSH client."""

    def __init__(self, config: DeployConfig, client: paramiko.SSHClient | None = None) -> None:
        self.config = config
        self._client = client

    def _connect(self) -> paramiko.SSHClient:
        if self._client is not None:
            return self._client
        user, host = _split_host(self.config.remote_host)
        client = paramiko.SSHClient()
        client.load_system_host_keys()
        client.set_missing_host_key_policy(paramiko.AutoAddPolicy())
        try:
            client.connect(
                hostname=host,
                port=self.config.ssh_port,
                username=user,
                key_filename=str(self.config.ssh_key) if self.config.ssh_key else None,
                timeout=10,
            )
        except (paramiko.SSHException, OSError) as exc:
            client.close()
            raise RemoteError(f"SSH connection to {self.config.remote_host} failed: {exc}") from exc
        self._client = client
        return client

    def upload(self, local_path: Path, remote_dir: str) -> None:
        remote_file = posixpath.join(_sftp_path(remote_dir), local_path.name)
        logger.debug("SFTP put %s -> %s", local_path, remote_file)
        client = self._connect()
        try:
            sftp = client.open_sftp()
        except (paramiko.SSHException, OSError) as exc:
            raise RemoteError(f"Could not open SFTP session: {exc}") from exc
        try:
            sftp.put(str(local_path), remote_file)
        except (paramiko.SSHException, OSError) as exc:
            raise RemoteError(f"Upload of {local_path.name} failed: {exc}") from exc
        finally:
            sftp.close()

    def execute(self, script: str) -> None:
        logger.debug("Remote script:\n%s", script)
        client = self._connect()
        try:
            stdin, stdout, stderr = client.exec_command(script)
            exit_code = stdout.channel.recv_exit_status()
            output = stdout.read().decode("utf-8", errors="replace")
            error = stderr.read().decode("utf-8", errors="replace") if exit_code != 0 else ""
        except (paramiko.SSHException, OSError) as exc:
            raise RemoteError(f"Remote command failed: {exc}") from exc
        if output:
            logger.info(output.rstrip())
        if exit_code != 0:
            raise RemoteError(f"Remote command failed ({exit_code}):\n{error}")

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None

    def __enter__(self) -> ParamikoTransport:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


def open_transport(config: DeployConfig, runner: Runner = subprocess.run):
    if config.transport not in ("openssh", "paramiko"):
        raise ConfigurationError(f"Unknown transport: {config.transport}")
    # dry-run never opens a real session; the runner only logs
    if config.transport == "openssh" or config.dry_run:
        return OpenSSHTransport(config, runner)
    return ParamikoTransport(config)


__all__ = ["OpenSSHTransport", "ParamikoTransport", "open_transport"]
