"""Tests for the command builder."""

from __future__ import annotations

import asyncio
import io
import logging

import pytest

from kubebuilder_e2e.config import E2EConfig, ExecConfig, KubebuilderConfig, KubectlConfig
from kubebuilder_e2e.framework.commands import (
    CommandBuilder,
    CommandKind,
    kubectl_default_args,
    new_command,
)
from kubebuilder_e2e.framework.log import StampedLogger


class TestKubectlDefaultArgs:
    def test_no_context_configured(self):
        assert kubectl_default_args(E2EConfig()) == []

    def test_server_only(self):
        config = E2EConfig(kubectl=KubectlConfig(server="https://10.0.0.1:6443"))
        assert kubectl_default_args(config) == ["--server=https://10.0.0.1:6443"]

    def test_kubeconfig_and_context(self):
        config = E2EConfig(kubectl=KubectlConfig(kubeconfig="/tmp/kc", context="kind-e2e"))
        assert kubectl_default_args(config) == ["--kubeconfig=/tmp/kc", "--context=kind-e2e"]

    def test_context_ignored_without_kubeconfig(self):
        config = E2EConfig(kubectl=KubectlConfig(context="kind-e2e"))
        assert kubectl_default_args(config) == []

    def test_cert_dir(self):
        config = E2EConfig(kubectl=KubectlConfig(cert_dir="/certs"))
        assert kubectl_default_args(config) == [
            "--certificate-authority=/certs/ca.crt",
            "--client-certificate=/certs/kubecfg.crt",
            "--client-key=/certs/kubecfg.key",
        ]

    def test_kubeconfig_wins_over_cert_dir(self):
        config = E2EConfig(kubectl=KubectlConfig(server="h", kubeconfig="/kc", cert_dir="/certs"))
        assert kubectl_default_args(config) == ["--server=h", "--kubeconfig=/kc"]


class TestNewCommand:
    def test_kubectl_without_context_has_only_caller_args(self):
        command = new_command(CommandKind.KUBECTL, "get", "pods", config=E2EConfig())
        assert command.program == "kubectl"
        assert command.args == ("get", "pods")
        assert command.cwd is None

    def test_kubectl_prepends_default_flags(self):
        config = E2EConfig(kubectl=KubectlConfig(path="/usr/local/bin/kubectl", server="h"))
        command = new_command(CommandKind.KUBECTL, "apply", "-f", "x.yaml", config=config)
        assert command.program == "/usr/local/bin/kubectl"
        assert command.args == ("--server=h", "apply", "-f", "x.yaml")

    def test_kubebuilder_runs_in_project_dir(self, tmp_path):
        config = E2EConfig(kubebuilder=KubebuilderConfig(project_dir=str(tmp_path)))
        command = new_command(CommandKind.KUBEBUILDER, "init", "--domain", "example.com", config=config)
        assert command.program == "kubebuilder"
        assert command.args == ("init", "--domain", "example.com")
        assert command.cwd == str(tmp_path)

    def test_docker(self):
        command = new_command(CommandKind.DOCKER, "rmi", "-f", "img", config=E2EConfig())
        assert command.program == "docker"
        assert command.args == ("rmi", "-f", "img")

    def test_kind_by_value(self):
        command = new_command("docker-command", "ps", config=E2EConfig())
        assert command.kind is CommandKind.DOCKER

    def test_invalid_kind_fails_test(self):
        with pytest.raises(pytest.fail.Exception, match="Invalid command type: helm-command"):
            new_command("helm-command", "install")

    def test_uses_global_config_by_default(self):
        command = new_command(CommandKind.DOCKER)
        assert command.config.docker.path == "docker"

    def test_default_timeout_from_config(self):
        config = E2EConfig(exec=ExecConfig(timeout=30))
        assert new_command(CommandKind.DOCKER, config=config).timeout == 30

    def test_zero_timeout_means_none(self):
        assert new_command(CommandKind.DOCKER, config=E2EConfig()).timeout is None

    def test_logger_is_stamped(self):
        command = new_command(CommandKind.DOCKER, config=E2EConfig(), logger=logging.getLogger("custom"))
        assert isinstance(command.logger, StampedLogger)
        assert command.logger.logger.name == "custom"

    def test_command_line_quotes_arguments(self):
        command = new_command(CommandKind.DOCKER, "build", "-t", "my image", config=E2EConfig())
        assert command.command_line == "docker build -t 'my image'"


class TestBuilderOptions:
    @pytest.fixture
    def base(self):
        return new_command(CommandKind.DOCKER, "ps", config=E2EConfig())

    def test_with_env_returns_new_builder(self, base):
        env = {"A": "1"}
        updated = base.with_env(env)
        assert updated is not base
        assert base.env is None
        assert updated.env == {"A": "1"}
        env["B"] = "2"
        assert updated.env == {"A": "1"}

    def test_with_timeout(self, base):
        assert base.with_timeout(1.5).timeout == 1.5
        assert base.timeout is None

    @pytest.mark.asyncio
    async def test_with_timeout_event(self, base):
        event = asyncio.Event()
        assert base.with_timeout(event).timeout is event

    def test_with_stdin_data(self, base):
        assert base.with_stdin_data("payload").stdin == "payload"
        assert base.stdin is None

    def test_with_stdin_reader(self, base):
        reader = io.StringIO("payload")
        assert base.with_stdin_reader(reader).stdin is reader

    def test_chaining_keeps_everything(self, base):
        command = base.with_env({"X": "y"}).with_timeout(2).with_stdin_data("in")
        assert (command.env, command.timeout, command.stdin) == ({"X": "y"}, 2, "in")
        assert command.args == ("ps",)

    def test_builder_is_frozen(self, base):
        with pytest.raises(AttributeError):
            base.args = ("other",)  # type: ignore[misc]

    def test_equal_builders(self):
        a = CommandBuilder(kind=CommandKind.DOCKER, program="docker", args=("ps",), config=E2EConfig())
        b = CommandBuilder(kind=CommandKind.DOCKER, program="docker", args=("ps",), config=E2EConfig())
        assert a == b
