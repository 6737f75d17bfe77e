"""Deployment configuration: defaults, YAML loading and overrides."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)

HOST_ENV_VAR = "BUSSIE_DEPLOY_HOST"

DEFAULT_REMOTE_HOST = "emma@babette"
DEFAULT_REMOTE_IMAGES_DIR = "~/Images"
DEFAULT_REMOTE_SERVICE_DIR = "~/Services/MijnBussie"
DEFAULT_LOCAL_IMAGES_DIR = Path("docker_images")

SERVICE_KEYS = ("main", "auth")
TRANSPORTS = ("openssh", "paramiko")
LOG_FORMATS = ("text", "json")


@dataclass
class ServiceTarget:
    key: str
    image: str
    context: Path = Path(".")
    dockerfile: Path | None = None
    archive_name: str | None = None

    def __post_init__(self) -> None:
        if not self.archive_name:
            safe_name = self.image.replace("/", "_").replace(":", "_")
            self.archive_name = f"{safe_name}.tar"


def default_services() -> dict[str, ServiceTarget]:
    return {
        "main": ServiceTarget(key="main", image="mijn_bussie"),
        "auth": ServiceTarget(
            key="auth",
            image="mijn_bussie_auth",
            context=Path("auth/repo"),
            dockerfile=Path("auth/Dockerfile"),
        ),
    }


@dataclass
class DeployConfig:
    remote_host: str = DEFAULT_REMOTE_HOST
    remote_images_dir: str = DEFAULT_REMOTE_IMAGES_DIR
    remote_service_dir: str = DEFAULT_REMOTE_SERVICE_DIR
    local_images_dir: Path = DEFAULT_LOCAL_IMAGES_DIR
    services: dict[str, ServiceTarget] = field(default_factory=default_services)
    ssh_port: int = 22
    ssh_key: Path | None = None
    transport: str = "openssh"
    compose_sudo: bool = True
    health_url: str | None = None
    health_attempts: int = 10
    health_delay: float = 3.0
    verify_tls: bool = False
    keep_going: bool = False
    dry_run: bool = False
    verbose: bool = False
    log_format: str = "text"

    def service(self, key: str) -> ServiceTarget:
        try:
            return self.services[key]
        except KeyError:
            raise ConfigurationError(f"Unknown service: {key}") from None

    def local_archive(self, service: ServiceTarget) -> Path:
        return self.local_images_dir / service.archive_name

    def remote_archive(self, service: ServiceTarget) -> str:
        return f"{self.remote_images_dir.rstrip('/')}/{service.archive_name}"


def load_yaml_config(config_path: Path) -> dict:
    if not config_path.exists():
        raise ConfigurationError(f"Config file not found: {config_path}")
    try:
        with config_path.open("r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle)
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Invalid YAML in {config_path}: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"{config_path} must contain a mapping at the top level.")
    return data


def _section(data: dict, name: str) -> dict:
    value = data.get(name) or {}
    if not isinstance(value, dict):
        raise ConfigurationError(f"Section '{name}' must be a mapping.")
    return value


def _number(section: dict, key: str, default, cast):
    value = section.get(key, default)
    try:
        return cast(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"'{key}' must be a number, got {value!r}.") from None


def _optional_path(value: object) -> Path | None:
    return Path(str(value)).expanduser() if value else None


def _apply_services(config: DeployConfig, services_data: dict) -> None:
    for key, entry in services_data.items():
        if key not in SERVICE_KEYS:
            raise ConfigurationError(
                f"Unknown service '{key}' (expected one of: {', '.join(SERVICE_KEYS)})."
            )
        if not isinstance(entry, dict):
            raise ConfigurationError(f"Service '{key}' must be a mapping.")
        current = config.services[key]
        config.services[key] = ServiceTarget(
            key=key,
            image=str(entry.get("image", current.image)),
            context=Path(str(entry.get("context", current.context))),
            dockerfile=_optional_path(entry["dockerfile"])
            if "dockerfile" in entry
            else current.dockerfile,
            archive_name=entry.get("archive") or None,
        )


def config_from_mapping(data: dict) -> DeployConfig:
    config = DeployConfig()

    remote = _section(data, "remote")
    config.remote_host = str(remote.get("host", config.remote_host))
    config.remote_images_dir = str(remote.get("images_dir", config.remote_images_dir))
    config.remote_service_dir = str(remote.get("service_dir", config.remote_service_dir))
    config.ssh_port = _number(remote, "port", config.ssh_port, int)
    config.ssh_key = _optional_path(remote.get("ssh_key"))
    config.transport = str(remote.get("transport", config.transport))
    config.compose_sudo = bool(remote.get("compose_sudo", config.compose_sudo))

    local = _section(data, "local")
    config.local_images_dir = Path(str(local.get("images_dir", config.local_images_dir)))

    _apply_services(config, _section(data, "services"))

    health = _section(data, "health")
    config.health_url = health.get("url") or None
    config.health_attempts = _number(health, "attempts", config.health_attempts, int)
    config.health_delay = _number(health, "delay", config.health_delay, float)
    config.verify_tls = bool(health.get("verify_tls", config.verify_tls))
    return config


def validate_config(config: DeployConfig) -> None:
    if not config.remote_host:
        raise ConfigurationError("remote host is required.")
    if config.transport not in TRANSPORTS:
        raise ConfigurationError(
            f"Unknown transport '{config.transport}' (expected one of: {', '.join(TRANSPORTS)})."
        )
    if config.log_format not in LOG_FORMATS:
        raise ConfigurationError(f"Unknown log format '{config.log_format}'.")
    if config.health_attempts < 1:
        raise ConfigurationError("health attempts must be at least 1.")


def load_deploy_config(config_path: Path | None = None, **overrides: object) -> DeployConfig:
    """
    Build the deployment configuration.

    Precedence, lowest first: built-in defaults, the YAML file, the
    ``BUSSIE_DEPLOY_HOST`` environment variable, then keyword overrides.
    Overrides set to ``None`` are ignored.
    """
    if config_path is not None:
        config = config_from_mapping(load_yaml_config(config_path))
        logger.debug("Loaded deploy config from %s", config_path)
    else:
        config = DeployConfig()

    env_host = os.environ.get(HOST_ENV_VAR)
    if env_host:
        config.remote_host = env_host

    for key, value in overrides.items():
        if value is None:
            continue
        if not hasattr(config, key):
            raise ConfigurationError(f"Unknown config option: {key}")
        setattr(config, key, value)

    validate_config(config)
    return config


__all__ = [
    "DeployConfig",
    "HOST_ENV_VAR",
    "ServiceTarget",
    "config_from_mapping",
    "load_deploy_config",
    "load_yaml_config",
]
