"""Command execution framework used by the e2e scenarios."""

from kubebuilder_e2e.framework.commands import (
    CommandBuilder,
    CommandKind,
    new_command,
    run_command,
    run_command_or_die,
    run_command_or_die_input,
)
from kubebuilder_e2e.framework.errors import (
    CommandError,
    CommandExitError,
    CommandIOError,
    CommandStartError,
    CommandTimeoutError,
    is_timeout,
)
from kubebuilder_e2e.framework.log import failf, now_stamp, skipf

KUBECTL = CommandKind.KUBECTL
KUBEBUILDER = CommandKind.KUBEBUILDER
DOCKER = CommandKind.DOCKER

__all__ = [
    "DOCKER",
    "KUBEBUILDER",
    "KUBECTL",
    "CommandBuilder",
    "CommandError",
    "CommandExitError",
    "CommandIOError",
    "CommandKind",
    "CommandStartError",
    "CommandTimeoutError",
    "failf",
    "is_timeout",
    "new_command",
    "now_stamp",
    "run_command",
    "run_command_or_die",
    "run_command_or_die_input",
    "skipf",
]
