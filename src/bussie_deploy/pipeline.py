"""Build, save, transfer and remote reload flow for the mijn_bussie services."""

from __future__ import annotations

import enum
import logging
import subprocess
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

from .commands import Runner, dry_run_runner, quote_remote_path, run_command
from .config import DeployConfig, ServiceTarget
from .decorators import log_step
from .exceptions import ArchiveMissingError, DeployError
from .health import check_health
from .transport import open_transport

logger = logging.getLogger(__name__)


class Selection(enum.Enum):
    MAIN = "main"
    AUTH = "auth"
    BOTH = "both"

    @property
    def service_keys(self) -> tuple[str, ...]:
        if self is Selection.BOTH:
            return ("main", "auth")
        return (self.value,)


@dataclass
class Step:
    name: str
    kind: str
    service: str | None = None


@dataclass
class DeployReport:
    selection: Selection
    completed: list[str] = field(default_factory=list)
    failures: dict[str, DeployError] = field(default_factory=dict)
    archives: dict[str, Path] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failures


def build_image(
    config: DeployConfig, service: ServiceTarget, runner: Runner = subprocess.run
) -> None:
    logger.info("Building %s...", service.image)
    command = ["docker", "build", "-t", service.image]
    if service.dockerfile is not None:
        command.extend(["-f", str(service.dockerfile)])
    command.append(str(service.context))
    run_command(command, runner)


def save_image(
    config: DeployConfig, service: ServiceTarget, runner: Runner = subprocess.run
) -> Path:
    config.local_images_dir.mkdir(parents=True, exist_ok=True)
    tar_path = config.local_archive(service)
    run_command(["docker", "save", service.image, "-o", str(tar_path)], runner)
    return tar_path


@log_step("build-and-save")
def build_and_save(
    config: DeployConfig, service: ServiceTarget, runner: Runner = subprocess.run
) -> Path:
    build_image(config, service, runner)
    return save_image(config, service, runner)


@log_step("transfer")
def transfer_archive(config: DeployConfig, service: ServiceTarget, transport) -> None:
    tar_path = config.local_archive(service)
    if not config.dry_run and not tar_path.exists():
        raise ArchiveMissingError(f"Image archive not found: {tar_path}")
    logger.info("Transferring %s...", tar_path.name)
    transport.upload(tar_path, config.remote_images_dir)


def render_reload_script(config: DeployConfig) -> str:
    """
    Remote script run in one session by ``remote_reload``.

    Every configured archive is loaded, whatever was transferred, and a load
    failure (typically a missing archive) is ignored. The compose stack is
    then stopped and started again.
    """
    compose = "sudo docker compose" if config.compose_sudo else "docker compose"
    ordered = [config.services[key] for key in ("auth", "main") if key in config.services]
    lines = [
        f"docker load -i {quote_remote_path(config.remote_archive(service))} 2>/dev/null || true"
        for service in ordered
    ]
    lines.extend(
        [
            f"cd {quote_remote_path(config.remote_service_dir)}",
            f"{compose} down",
            f"{compose} up -d",
        ]
    )
    return "\n".join(lines) + "\n"


@log_step("remote-reload")
def remote_reload(config: DeployConfig, transport) -> None:
    logger.info("Reloading containers on remote machine...")
    transport.execute(render_reload_script(config))


@log_step("health-check")
def run_health_check(config: DeployConfig, sleep: Callable[[float], None] | None = None) -> int:
    kwargs = {"sleep": sleep} if sleep is not None else {}
    return check_health(
        config.health_url,
        attempts=config.health_attempts,
        delay=config.health_delay,
        verify_tls=config.verify_tls,
        **kwargs,
    )


def plan_steps(selection: Selection, config: DeployConfig) -> list[Step]:
    """All builds, then all transfers, then one reload (and the health check if configured)."""
    keys = selection.service_keys
    steps = [Step(f"build:{key}", "build", key) for key in keys]
    steps.extend(Step(f"transfer:{key}", "transfer", key) for key in keys)
    steps.append(Step("reload", "reload"))
    if config.health_url:
        steps.append(Step("health", "health"))
    return steps


def deploy(
    selection: Selection,
    config: DeployConfig,
    runner: Runner | None = None,
    transport=None,
    sleep: Callable[[float], None] | None = None,
) -> DeployReport:
    """
    Run the plan for ``selection``.

    The first failing step aborts the run and its error propagates, unless
    ``config.keep_going`` is set: then every step runs and failures are
    collected in the returned report.
    """
    if runner is None:
        runner = dry_run_runner if config.dry_run else subprocess.run
    report = DeployReport(selection=selection)
    owns_transport = transport is None
    if owns_transport:
        transport = open_transport(config, runner)

    try:
        for step in plan_steps(selection, config):
            try:
                if step.kind == "build":
                    service = config.service(step.service)
                    report.archives[step.service] = build_and_save(config, service, runner)
                elif step.kind == "transfer":
                    transfer_archive(config, config.service(step.service), transport)
                elif step.kind == "reload":
                    remote_reload(config, transport)
                elif step.kind == "health":
                    run_health_check(config, sleep)
            except DeployError as exc:
                if not config.keep_going:
                    raise
                logger.error("Step %s failed, continuing: %s", step.name, exc)
                report.failures[step.name] = exc
                continue
            report.completed.append(step.name)
    finally:
        if owns_transport:
            transport.close()
    return report


__all__ = [
    "DeployReport",
    "Selection",
    "Step",
    "build_and_save",
    "build_image",
    "deploy",
    "plan_steps",
    "remote_reload",
    "render_reload_script",
    "save_image",
    "transfer_archive",
]
