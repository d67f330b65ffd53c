"""Shared test fixtures."""

from __future__ import annotations

import shutil

import pytest

from kubebuilder_e2e.config import (
    DockerConfig,
    E2EConfig,
    ExecConfig,
    KubebuilderConfig,
    KubectlConfig,
    LoggingConfig,
    reset_config,
    set_config,
)

SH = shutil.which("sh") or "/bin/sh"
CAT = shutil.which("cat") or "/bin/cat"


@pytest.fixture(autouse=True)
def _isolated_config():
    """Never let a developer's ~/.kubebuilder-e2e leak into unit tests."""
    set_config(E2EConfig())
    yield
    reset_config()


@pytest.fixture
def shell_config(tmp_path):
    """Every command kind runs a local shell tool instead of the real CLI."""
    project_dir = tmp_path / "project"
    project_dir.mkdir()
    return E2EConfig(
        kubectl=KubectlConfig(path=SH),
        kubebuilder=KubebuilderConfig(path=SH, project_dir=str(project_dir)),
        docker=DockerConfig(path=CAT),
        exec=ExecConfig(timeout=0, probe_delay=0),
        logging=LoggingConfig(level="DEBUG", file=str(tmp_path / "test.log")),
    )


ENV_NAMES = (
    "KUBECTL_PATH",
    "SERVER",
    "KUBECONFIG",
    "KUBE_CONTEXT",
    "CERT_DIR",
    "KUBEBUILDER_PATH",
    "PROJECT_DIR",
    "DOCKER_PATH",
    "TIMEOUT",
    "PROBE_DELAY",
    "LOG_LEVEL",
)


@pytest.fixture
def config_file(tmp_path, monkeypatch):
    """Point the config module at a temporary TOML file with no env overrides."""
    import kubebuilder_e2e.config as cfg_module

    config_file = tmp_path / "config.toml"
    monkeypatch.setattr(cfg_module, "CONFIG_FILE", config_file)
    monkeypatch.setattr(cfg_module, "CONFIG_DIR", tmp_path)
    for name in ENV_NAMES:
        monkeypatch.delenv(cfg_module.ENV_PREFIX + name, raising=False)
    return config_file
