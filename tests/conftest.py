"""
conftest.py - shared fixtures for the deployment tests.
"""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path

import pytest

from bussie_deploy.config import DeployConfig, HOST_ENV_VAR


class FakeRunner:
    """Records argv lists instead of running them; ``docker save`` writes the archive."""

    def __init__(self, fail_on: str | None = None, returncode: int = 1) -> None:
        self.calls: list[list[str]] = []
        self.kwargs: list[dict] = []
        self.fail_on = fail_on
        self.returncode = returncode

    def __call__(self, args, **kwargs):
        self.calls.append(list(args))
        self.kwargs.append(kwargs)
        joined = " ".join(args)
        if self.fail_on and self.fail_on in joined:
            return subprocess.CompletedProcess(args, self.returncode, stdout="", stderr="boom")
        if args[:2] == ["docker", "save"] and "-o" in args:
            archive = Path(args[args.index("-o") + 1])
            archive.parent.mkdir(parents=True, exist_ok=True)
            archive.write_bytes(b"tar")
        return subprocess.CompletedProcess(args, 0, stdout="", stderr="")

    @property
    def joined(self) -> list[str]:
        return [" ".join(cmd) for cmd in self.calls]


@pytest.fixture
def runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def deploy_config(tmp_path: Path) -> DeployConfig:
    return DeployConfig(local_images_dir=tmp_path / "docker_images")


@pytest.fixture(autouse=True)
def clear_host_env(monkeypatch):
    monkeypatch.delenv(HOST_ENV_VAR, raising=False)


@pytest.fixture(autouse=True)
def reset_logging():
    """The CLI replaces root handlers; restore them after each test."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def make_runner():
    return FakeRunner
