"""External command execution and ssh/scp argv builders."""

from __future__ import annotations

import logging
import shlex
import subprocess
from collections.abc import Callable, Sequence
from pathlib import Path

from .config import DeployConfig
from .exceptions import CommandError

logger = logging.getLogger(__name__)

Runner = Callable[..., subprocess.CompletedProcess]


def format_command(args: Sequence[str]) -> str:
    return " ".join(shlex.quote(str(part)) for part in args)


def run_command(
    args: Sequence[str],
    runner: Runner = subprocess.run,
    *,
    check: bool = True,
    capture_output: bool = False,
) -> subprocess.CompletedProcess:
    command = [str(arg) for arg in args]
    logger.debug("Running command: %s", format_command(command))
    result = runner(command, check=False, text=True, capture_output=capture_output)
    if check and result.returncode != 0:
        raise CommandError(command, result.returncode, result.stderr)
    return result


def dry_run_runner(args: Sequence[str], **kwargs) -> subprocess.CompletedProcess:
    logger.info("Dry-run: %s", format_command(args))
    return subprocess.CompletedProcess(list(args), 0, stdout="", stderr="")


def quote_remote_path(path: str) -> str:
    """Shell-quote a remote path while leaving a leading ``~/`` for the remote shell."""
    if path == "~":
        return path
    if path.startswith("~/"):
        return "~/" + shlex.quote(path[2:])
    return shlex.quote(path)


def _base_ssh_options(config: DeployConfig) -> list[str]:
    options = [
        "-o",
        "BatchMode=yes",
        "-o",
        "ConnectTimeout=10",
    ]
    if config.ssh_key:
        options.extend(["-i", str(config.ssh_key)])
    return options


def build_ssh_command(config: DeployConfig, remote_command: str) -> list[str]:
    return [
        "ssh",
        "-p",
        str(config.ssh_port),
        *_base_ssh_options(config),
        config.remote_host,
        remote_command,
    ]


def build_scp_command(config: DeployConfig, local_path: Path, remote_dir: str) -> list[str]:
    # scp expands ~ on the remote side itself, so the target is passed unquoted
    target = remote_dir if remote_dir.endswith("/") else f"{remote_dir}/"
    return [
        "scp",
        "-P",
        str(config.ssh_port),
        *_base_ssh_options(config),
        str(local_path),
        f"{config.remote_host}:{target}",
    ]


__all__ = [
    "Runner",
    "build_scp_command",
    "build_ssh_command",
    "dry_run_runner",
    "format_command",
    "quote_remote_path",
    "run_command",
]
