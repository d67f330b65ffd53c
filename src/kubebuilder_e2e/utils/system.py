"""System utility checks."""

from __future__ import annotations

import asyncio
import shutil
from pathlib import Path

from kubebuilder_e2e.config import E2EConfig
from kubebuilder_e2e.framework.commands import CommandBuilder, CommandKind
from kubebuilder_e2e.framework.errors import CommandError

VERSION_ARGS: dict[CommandKind, tuple[str, ...]] = {
    CommandKind.KUBECTL: ("version", "--client"),
    CommandKind.KUBEBUILDER: ("version",),
    CommandKind.DOCKER: ("--version",),
}

VERSION_TIMEOUT = 10.0


def tool_path(kind: CommandKind, config: E2EConfig) -> str:
    """The configured executable for a command kind."""
    if kind is CommandKind.KUBECTL:
        return config.kubectl.path
    if kind is CommandKind.KUBEBUILDER:
        return config.kubebuilder.path
    return config.docker.path


def check_tool(kind: CommandKind, config: E2EConfig) -> tuple[bool, str]:
    """Check if a tool is installed and return its version line."""
    path = tool_path(kind, config)
    if not shutil.which(path):
        return False, f"{path} not found on PATH"

    # Plain version probe: no cluster flags, no project directory.
    command = CommandBuilder(
        kind=kind,
        program=path,
        args=VERSION_ARGS[kind],
        timeout=VERSION_TIMEOUT,
        config=config,
    )
    try:
        output = asyncio.run(command.execute())
    except CommandError as e:
        return False, str(e).strip().splitlines()[0]
    return True, output.strip().splitlines()[0] if output.strip() else "(no version output)"


def check_project_dir(path: str) -> tuple[bool, str]:
    """Validate a project directory path."""
    resolved = Path(path).expanduser().resolve()
    if not resolved.exists():
        return False, f"Directory not found: {resolved}"
    if not resolved.is_dir():
        return False, f"Not a directory: {resolved}"
    return True, str(resolved)
