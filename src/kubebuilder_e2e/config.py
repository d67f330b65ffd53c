"""Configuration management using TOML + environment variables."""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field
from pathlib import Path

if sys.version_info >= (3, 11):
    import tomllib
else:
    try:
        import tomllib
    except ModuleNotFoundError:
        import tomli as tomllib  # type: ignore[no-redef]

import tomli_w

CONFIG_DIR = Path.home() / ".kubebuilder-e2e"
CONFIG_FILE = CONFIG_DIR / "config.toml"

ENV_PREFIX = "KUBEBUILDER_E2E_"


@dataclass
class KubectlConfig:
    path: str = "kubectl"
    server: str = ""
    kubeconfig: str = ""
    context: str = ""
    cert_dir: str = ""


@dataclass
class KubebuilderConfig:
    path: str = "kubebuilder"
    project_dir: str = ""


@dataclass
class DockerConfig:
    path: str = "docker"


@dataclass
class ExecConfig:
    # Seconds; 0 disables the default timeout.
    timeout: float = 0
    probe_delay: float = 2.0


@dataclass
class LoggingConfig:
    level: str = "INFO"
    file: str = ""


@dataclass
class E2EConfig:
    kubectl: KubectlConfig = field(default_factory=KubectlConfig)
    kubebuilder: KubebuilderConfig = field(default_factory=KubebuilderConfig)
    docker: DockerConfig = field(default_factory=DockerConfig)
    exec: ExecConfig = field(default_factory=ExecConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def sections(self) -> dict[str, object]:
        return {
            "kubectl": self.kubectl,
            "kubebuilder": self.kubebuilder,
            "docker": self.docker,
            "exec": self.exec,
            "logging": self.logging,
        }


def ensure_config_dir() -> None:
    """Create config directory with secure permissions."""
    CONFIG_DIR.mkdir(parents=True, exist_ok=True)
    os.chmod(CONFIG_DIR, 0o700)


def load_config() -> E2EConfig:
    """Load configuration from TOML file with env var overrides."""
    config = E2EConfig()

    if CONFIG_FILE.exists():
        with open(CONFIG_FILE, "rb") as f:
            data = tomllib.load(f)

        kubectl = data.get("kubectl", {})
        config.kubectl.path = kubectl.get("path", config.kubectl.path)
        config.kubectl.server = kubectl.get("server", config.kubectl.server)
        config.kubectl.kubeconfig = kubectl.get("kubeconfig", config.kubectl.kubeconfig)
        config.kubectl.context = kubectl.get("context", config.kubectl.context)
        config.kubectl.cert_dir = kubectl.get("cert_dir", config.kubectl.cert_dir)

        kubebuilder = data.get("kubebuilder", {})
        config.kubebuilder.path = kubebuilder.get("path", config.kubebuilder.path)
        config.kubebuilder.project_dir = kubebuilder.get("project_dir", config.kubebuilder.project_dir)

        docker = data.get("docker", {})
        config.docker.path = docker.get("path", config.docker.path)

        exec_cfg = data.get("exec", {})
        config.exec.timeout = float(exec_cfg.get("timeout", config.exec.timeout))
        config.exec.probe_delay = float(exec_cfg.get("probe_delay", config.exec.probe_delay))

        logging_cfg = data.get("logging", {})
        config.logging.level = logging_cfg.get("level", config.logging.level)
        config.logging.file = logging_cfg.get("file", config.logging.file)

    # Environment variable overrides
    if env_kubectl := os.environ.get(ENV_PREFIX + "KUBECTL_PATH"):
        config.kubectl.path = env_kubectl
    if env_server := os.environ.get(ENV_PREFIX + "SERVER"):
        config.kubectl.server = env_server
    if env_kubeconfig := os.environ.get(ENV_PREFIX + "KUBECONFIG"):
        config.kubectl.kubeconfig = env_kubeconfig
    if env_context := os.environ.get(ENV_PREFIX + "KUBE_CONTEXT"):
        config.kubectl.context = env_context
    if env_cert_dir := os.environ.get(ENV_PREFIX + "CERT_DIR"):
        config.kubectl.cert_dir = env_cert_dir
    if env_kubebuilder := os.environ.get(ENV_PREFIX + "KUBEBUILDER_PATH"):
        config.kubebuilder.path = env_kubebuilder
    if env_project := os.environ.get(ENV_PREFIX + "PROJECT_DIR"):
        config.kubebuilder.project_dir = env_project
    if env_docker := os.environ.get(ENV_PREFIX + "DOCKER_PATH"):
        config.docker.path = env_docker
    if env_timeout := os.environ.get(ENV_PREFIX + "TIMEOUT"):
        config.exec.timeout = float(env_timeout)
    if env_probe_delay := os.environ.get(ENV_PREFIX + "PROBE_DELAY"):
        config.exec.probe_delay = float(env_probe_delay)
    if env_log_level := os.environ.get(ENV_PREFIX + "LOG_LEVEL"):
        config.logging.level = env_log_level

    return config


def save_config(config: E2EConfig) -> None:
    """Save configuration to TOML file."""
    ensure_config_dir()

    data = {
        "kubectl": {
            "path": config.kubectl.path,
            "server": config.kubectl.server,
            "kubeconfig": config.kubectl.kubeconfig,
            "context": config.kubectl.context,
            "cert_dir": config.kubectl.cert_dir,
        },
        "kubebuilder": {
            "path": config.kubebuilder.path,
            "project_dir": config.kubebuilder.project_dir,
        },
        "docker": {
            "path": config.docker.path,
        },
        "exec": {
            "timeout": config.exec.timeout,
            "probe_delay": config.exec.probe_delay,
        },
        "logging": {
            "level": config.logging.level,
            "file": config.logging.file,
        },
    }

    with open(CONFIG_FILE, "wb") as f:
        tomli_w.dump(data, f)

    os.chmod(CONFIG_FILE, 0o600)


# Global singleton
_config: E2EConfig | None = None


def get_config() -> E2EConfig:
    """Get or load the global config singleton."""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def set_config(config: E2EConfig) -> None:
    """Install an explicit config, e.g. one built from pytest options."""
    global _config
    _config = config


def reset_config() -> None:
    """Reset the global config (for testing)."""
    global _config
    _config = None
