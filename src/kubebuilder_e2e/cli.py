"""CLI entry point using typer."""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.table import Table

from kubebuilder_e2e import __version__
from kubebuilder_e2e.config import (
    CONFIG_FILE,
    DockerConfig,
    E2EConfig,
    ExecConfig,
    KubebuilderConfig,
    KubectlConfig,
    LoggingConfig,
    load_config,
    save_config,
)
from kubebuilder_e2e.framework.commands import CommandKind, new_command
from kubebuilder_e2e.framework.errors import CommandError
from kubebuilder_e2e.framework.log import setup_logging
from kubebuilder_e2e.utils.formatting import truncate
from kubebuilder_e2e.utils.system import check_project_dir, check_tool, tool_path

app = typer.Typer(
    name="kubebuilder-e2e",
    help="Run and inspect the kubebuilder end-to-end harness.",
    add_completion=False,
)
console = Console()

KIND_ALIASES: dict[str, CommandKind] = {
    "kubectl": CommandKind.KUBECTL,
    "kubebuilder": CommandKind.KUBEBUILDER,
    "docker": CommandKind.DOCKER,
}


@app.command()
def init() -> None:
    """Interactive setup wizard."""
    console.print(f"\n[bold]kubebuilder-e2e v{__version__}[/bold]")
    console.print("Interactive Setup\n")

    # 1. Tool paths
    console.print("[bold]Step 1:[/bold] Tool executables")
    kubectl_path = typer.prompt("  kubectl", default="kubectl")
    kubebuilder_path = typer.prompt("  kubebuilder", default="kubebuilder")
    docker_path = typer.prompt("  docker", default="docker")

    # 2. Cluster access
    console.print("\n[bold]Step 2:[/bold] Cluster access")
    console.print("  Leave empty to let kubectl use its own defaults.")
    server = typer.prompt("  API server", default="", show_default=False)
    kubeconfig = typer.prompt("  kubeconfig", default="", show_default=False)
    context = ""
    cert_dir = ""
    if kubeconfig:
        context = typer.prompt("  Context", default="", show_default=False)
    else:
        cert_dir = typer.prompt("  Cert directory", default="", show_default=False)

    # 3. Project directory
    console.print("\n[bold]Step 3:[/bold] Project directory")
    project_dir = typer.prompt("  Project path", default="", show_default=False)
    if project_dir:
        valid, resolved = check_project_dir(project_dir)
        if not valid:
            console.print(f"  [yellow]Warning: {resolved}[/yellow]")
            create = typer.confirm("  Create this directory?", default=True)
            if create:
                Path(project_dir).expanduser().resolve().mkdir(parents=True, exist_ok=True)
                console.print("  [green]Directory created.[/green]")

    # 4. Timeout
    console.print("\n[bold]Step 4:[/bold] Default command timeout")
    timeout = typer.prompt("  Seconds (0 disables)", default=0.0, type=float)

    config = E2EConfig(
        kubectl=KubectlConfig(
            path=kubectl_path,
            server=server,
            kubeconfig=kubeconfig,
            context=context,
            cert_dir=cert_dir,
        ),
        kubebuilder=KubebuilderConfig(path=kubebuilder_path, project_dir=project_dir),
        docker=DockerConfig(path=docker_path),
        exec=ExecConfig(timeout=timeout),
        logging=LoggingConfig(),
    )
    save_config(config)

    console.print(f"\n[green]Configuration saved to {CONFIG_FILE}[/green]")
    console.print("\nNext steps:")
    console.print("  [bold]kubebuilder-e2e check[/bold]   Verify the tools are reachable")
    console.print("  [bold]pytest tests/e2e[/bold]        Run the workflow scenario\n")


@app.command()
def config(
    key: str = typer.Argument(None, help="Config key (e.g., kubectl.path)"),
    value: str = typer.Argument(None, help="New value"),
) -> None:
    """View or modify configuration."""
    if not CONFIG_FILE.exists():
        console.print("[red]Not configured. Run 'kubebuilder-e2e init'.[/red]")
        raise typer.Exit(1)

    cfg = load_config()
    section_map = cfg.sections()

    if key is None:
        table = Table(title="Configuration")
        table.add_column("Key", style="cyan")
        table.add_column("Value", style="green")

        for section, obj in section_map.items():
            for attr, current in vars(obj).items():
                table.add_row(f"{section}.{attr}", str(current) if current != "" else "(not set)")

        console.print(table)
        return

    if value is None:
        console.print("[red]Usage: kubebuilder-e2e config <key> <value>[/red]")
        raise typer.Exit(1)

    parts = key.split(".")
    if len(parts) != 2:
        console.print("[red]Key format: section.key (e.g., kubectl.path)[/red]")
        raise typer.Exit(1)

    section, attr = parts
    if section not in section_map:
        console.print(f"[red]Unknown section: {section}[/red]")
        raise typer.Exit(1)

    obj = section_map[section]
    if not hasattr(obj, attr):
        console.print(f"[red]Unknown key: {key}[/red]")
        raise typer.Exit(1)

    # Type coercion
    current = getattr(obj, attr)
    try:
        if isinstance(current, float):
            typed_value: object = float(value)
        else:
            typed_value = value
    except ValueError:
        console.print(f"[red]Invalid value type for {key}[/red]")
        raise typer.Exit(1)

    setattr(obj, attr, typed_value)
    save_config(cfg)
    console.print(f"[green]{key} = {typed_value}[/green]")


@app.command()
def check() -> None:
    """Check that every configured tool can be run."""
    cfg = load_config()

    table = Table(title="Tools")
    table.add_column("Kind", style="cyan")
    table.add_column("Executable")
    table.add_column("Status")

    all_ok = True
    for name, kind in KIND_ALIASES.items():
        ok, info = check_tool(kind, cfg)
        all_ok = all_ok and ok
        status = f"[green]{info}[/green]" if ok else f"[yellow]{info}[/yellow]"
        table.add_row(name, tool_path(kind, cfg), status)

    console.print(table)

    if cfg.kubebuilder.project_dir:
        valid, resolved = check_project_dir(cfg.kubebuilder.project_dir)
        colour = "green" if valid else "yellow"
        console.print(f"Project: [{colour}]{resolved}[/{colour}]")
    else:
        console.print("Project: [dim](not set)[/dim]")

    if not all_ok:
        raise typer.Exit(1)


@app.command("exec", context_settings={"ignore_unknown_options": True})
def exec_command(
    kind: str = typer.Argument(..., help="kubectl, kubebuilder or docker"),
    args: Optional[List[str]] = typer.Argument(None, help="Arguments passed to the tool"),
    timeout: float = typer.Option(0, "--timeout", "-t", help="Seconds before the command is killed (0: config default)"),
    stdin: Optional[Path] = typer.Option(None, "--stdin", help="File whose contents are written to stdin"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log the command and its output"),
) -> None:
    """Run one tool through the harness, exactly as a scenario step would."""
    resolved = KIND_ALIASES.get(kind)
    if resolved is None:
        console.print(f"[red]Unknown command kind: {kind}[/red]")
        raise typer.Exit(1)

    cfg = load_config()
    if verbose:
        cfg.logging.level = "DEBUG"
    if verbose or cfg.logging.file:
        setup_logging(cfg, console=verbose)

    command = new_command(resolved, *(args or []), config=cfg)
    if timeout > 0:
        command = command.with_timeout(timeout)

    try:
        if stdin is not None:
            with open(stdin, "rb") as f:
                output = asyncio.run(command.with_stdin_reader(f).execute())
        else:
            output = asyncio.run(command.execute())
    except CommandError as e:
        console.print(truncate(str(e)), style="red", markup=False, highlight=False)
        raise typer.Exit(1)

    sys.stdout.write(output)


@app.command()
def version() -> None:
    """Show version information."""
    console.print(f"kubebuilder-e2e v{__version__}")
    console.print(f"Python: {sys.version.split()[0]}")
    console.print(f"Config: {CONFIG_FILE}")


if __name__ == "__main__":
    app()
