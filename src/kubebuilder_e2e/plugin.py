"""pytest plugin: command-line options and fixtures for e2e runs."""

from __future__ import annotations

import logging
from typing import Any

import pytest

from kubebuilder_e2e.config import E2EConfig, get_config, load_config, set_config

logger = logging.getLogger(__name__)

# option dest -> (section, attribute)
OPTION_MAP: dict[str, tuple[str, str]] = {
    "kubectl_path": ("kubectl", "path"),
    "kube_server": ("kubectl", "server"),
    "kubeconfig": ("kubectl", "kubeconfig"),
    "kube_context": ("kubectl", "context"),
    "cert_dir": ("kubectl", "cert_dir"),
    "kubebuilder_path": ("kubebuilder", "path"),
    "project_dir": ("kubebuilder", "project_dir"),
    "docker_path": ("docker", "path"),
    "command_timeout": ("exec", "timeout"),
}


def pytest_addoption(parser: pytest.Parser) -> None:
    group = parser.getgroup("kubebuilder-e2e", "kubebuilder end-to-end harness")
    group.addoption("--kubectl-path", dest="kubectl_path", help="kubectl executable to run")
    group.addoption("--kube-server", dest="kube_server", help="API server address passed as --server")
    group.addoption("--kubeconfig", dest="kubeconfig", help="kubeconfig file passed to kubectl")
    group.addoption("--kube-context", dest="kube_context", help="kubeconfig context (requires --kubeconfig)")
    group.addoption("--cert-dir", dest="cert_dir", help="directory holding ca.crt, kubecfg.crt and kubecfg.key")
    group.addoption("--kubebuilder-path", dest="kubebuilder_path", help="kubebuilder executable to run")
    group.addoption("--project-dir", dest="project_dir", help="working directory for kubebuilder")
    group.addoption("--docker-path", dest="docker_path", help="docker executable to run")
    group.addoption(
        "--command-timeout",
        dest="command_timeout",
        type=float,
        help="default per-command timeout in seconds (0 disables)",
    )


def apply_options(config: E2EConfig, options: Any) -> E2EConfig:
    """Overlay command-line options that were actually given onto ``config``."""
    sections = config.sections()
    for dest, (section, attr) in OPTION_MAP.items():
        value = getattr(options, dest, None)
        if value is None:
            continue
        setattr(sections[section], attr, value)
    return config


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line("markers", "e2e: needs the real kubectl, kubebuilder and docker tools")
    e2e_config = apply_options(load_config(), config.option)
    set_config(e2e_config)
    logger.debug("e2e config: %s", e2e_config)


@pytest.fixture
def e2e_config() -> E2EConfig:
    """The active harness configuration."""
    return get_config()
