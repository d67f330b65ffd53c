"""Build, run and assert on external CLI commands."""

from __future__ import annotations

import asyncio
import dataclasses
import enum
import logging
import os
import time
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import IO, Union

from kubebuilder_e2e.config import E2EConfig, get_config
from kubebuilder_e2e.framework.errors import (
    CommandError,
    CommandExitError,
    CommandIOError,
    CommandStartError,
    CommandTimeoutError,
    is_timeout,
)
from kubebuilder_e2e.framework.log import failf, get_logger
from kubebuilder_e2e.utils.formatting import format_command_line, format_duration

CHUNK_SIZE = 64 * 1024
# Upper bound on reaping a killed process whose pipes are held by descendants.
REAP_TIMEOUT = 5.0

Timeout = Union[float, asyncio.Event, None]
StdinSource = Union[str, bytes, IO[str], IO[bytes], None]


class CommandKind(str, enum.Enum):
    KUBECTL = "kubectl-command"
    KUBEBUILDER = "kubebuilder-command"
    DOCKER = "docker-command"


def kubectl_default_args(config: E2EConfig) -> list[str]:
    """Server and credential flags derived from the kubectl config section."""
    kubectl = config.kubectl
    args: list[str] = []

    # Reference a --server option so tests can run anywhere.
    if kubectl.server:
        args.append(f"--server={kubectl.server}")
    if kubectl.kubeconfig:
        args.append(f"--kubeconfig={kubectl.kubeconfig}")
        if kubectl.context:
            args.append(f"--context={kubectl.context}")
    elif kubectl.cert_dir:
        args.extend(
            [
                f"--certificate-authority={os.path.join(kubectl.cert_dir, 'ca.crt')}",
                f"--client-certificate={os.path.join(kubectl.cert_dir, 'kubecfg.crt')}",
                f"--client-key={os.path.join(kubectl.cert_dir, 'kubecfg.key')}",
            ]
        )
    return args


@dataclass(frozen=True)
class CommandBuilder:
    """An immutable description of one external command invocation.

    Every ``with_*`` method returns a new builder, so a partially configured
    builder can be shared and specialised without aliasing.
    """

    kind: CommandKind
    program: str
    args: tuple[str, ...] = ()
    cwd: str | None = None
    env: Mapping[str, str] | None = None
    stdin: StdinSource = None
    timeout: Timeout = None
    logger: logging.LoggerAdapter = field(default_factory=get_logger, compare=False, repr=False)
    config: E2EConfig = field(default_factory=get_config, compare=False, repr=False)

    @property
    def command_line(self) -> str:
        return format_command_line(self.program, self.args)

    def with_env(self, env: Mapping[str, str]) -> CommandBuilder:
        """Replace (not merge) the child environment."""
        return dataclasses.replace(self, env=dict(env))

    def with_timeout(self, timeout: Timeout) -> CommandBuilder:
        """Attach a timeout in seconds, or an event that signals it."""
        return dataclasses.replace(self, timeout=timeout)

    def with_stdin_data(self, data: str | bytes) -> CommandBuilder:
        return dataclasses.replace(self, stdin=data)

    def with_stdin_reader(self, reader: IO[str] | IO[bytes]) -> CommandBuilder:
        return dataclasses.replace(self, stdin=reader)

    def with_logger(self, logger: logging.Logger | logging.LoggerAdapter) -> CommandBuilder:
        return dataclasses.replace(self, logger=get_logger(logger))

    async def execute(self) -> str:
        """Run the command and return its stdout.

        Raises:
            CommandStartError: If the process could not be started.
            CommandExitError: If the process exited with a non-zero code.
            CommandTimeoutError: If the timeout fired first; the process is killed.
            CommandIOError: If reading or writing stdin failed; the process is killed.
        """
        log = self.logger
        log.info("Running '%s'", self.command_line)

        start = time.monotonic()
        try:
            proc = await asyncio.create_subprocess_exec(
                self.program,
                *self.args,
                stdin=asyncio.subprocess.PIPE if self.stdin is not None else asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=self.cwd,
                env=dict(self.env) if self.env is not None else None,
            )
        except OSError as e:
            raise CommandStartError(self.command_line, e) from e

        stdout_buf = bytearray()
        stderr_buf = bytearray()
        io_tasks = [
            asyncio.create_task(_pump(proc.stdout, stdout_buf)),
            asyncio.create_task(_pump(proc.stderr, stderr_buf)),
        ]
        if self.stdin is not None:
            io_tasks.append(asyncio.create_task(_feed(proc.stdin, self.stdin, log)))

        completion = asyncio.create_task(_complete(proc, io_tasks))
        timer = self._start_timer()
        waiting = {completion} if timer is None else {completion, timer}

        try:
            done, _ = await asyncio.wait(waiting, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            _kill(proc)
            completion.cancel()
            if timer is not None:
                timer.cancel()
            raise

        elapsed_ms = int((time.monotonic() - start) * 1000)

        if completion not in done:
            returncode = await _reap(proc, [completion, *io_tasks])
            stdout, stderr = _decode(stdout_buf), _decode(stderr_buf)
            log.info("Timed out after %s, killed process (rc: %s)", format_duration(elapsed_ms), returncode)
            log.info("stderr: %r", stderr)
            log.info("stdout: %r", stdout)
            raise CommandTimeoutError(self.command_line, stdout, stderr, returncode=returncode)

        if timer is not None:
            timer.cancel()

        try:
            returncode = completion.result()
        except (OSError, ValueError) as e:
            # Stdin source failed; the child may still be waiting for input.
            returncode = await _reap(proc, io_tasks)
            stdout, stderr = _decode(stdout_buf), _decode(stderr_buf)
            log.info("Feeding stdin failed, killed process (rc: %s): %s", returncode, e)
            log.info("stderr: %r", stderr)
            log.info("stdout: %r", stdout)
            raise CommandIOError(self.command_line, e, stdout, stderr, returncode=returncode) from e

        stdout, stderr = _decode(stdout_buf), _decode(stderr_buf)
        log.debug("Finished in %s", format_duration(elapsed_ms))
        if returncode != 0:
            log.info("rc: %d", returncode)
        log.info("stderr: %r", stderr)
        log.info("stdout: %r", stdout)
        if returncode != 0:
            raise CommandExitError(self.command_line, returncode, stdout, stderr)
        return stdout

    async def exec_or_die(self) -> str:
        """Run the command; any error fails the running test."""
        try:
            return await self.execute()
        except CommandError as err:
            if is_timeout(err):
                self.logger.info("Hit i/o timeout error.")
                if self.kind is CommandKind.KUBECTL:
                    await self._probe_server()
            failf(str(err), log=self.logger)

    async def _probe_server(self) -> None:
        # Diagnostic only: the original failure is reported regardless.
        delay = self.config.exec.probe_delay
        self.logger.info("Talking to the server %ss later to see if it's temporary.", delay)
        await asyncio.sleep(delay)
        probe = new_command(CommandKind.KUBECTL, "version", config=self.config, logger=self.logger)
        try:
            retry_out = await probe.execute()
            retry_err: CommandError | None = None
        except CommandError as e:
            retry_out, retry_err = "", e
        self.logger.info("stdout: %r", retry_out)
        self.logger.info("err: %s", retry_err)

    def _start_timer(self) -> asyncio.Task | None:
        if self.timeout is None:
            return None
        if isinstance(self.timeout, asyncio.Event):
            return asyncio.create_task(self.timeout.wait())
        return asyncio.create_task(asyncio.sleep(self.timeout))


async def _pump(stream: asyncio.StreamReader | None, buf: bytearray) -> None:
    if stream is None:
        return
    while chunk := await stream.read(CHUNK_SIZE):
        buf.extend(chunk)


async def _feed(writer: asyncio.StreamWriter | None, source: StdinSource, log: logging.LoggerAdapter) -> None:
    if writer is None:
        return
    try:
        if isinstance(source, (str, bytes)):
            writer.write(_encode(source))
            await writer.drain()
        else:
            # Pipes and sockets may block, so read off the event loop.
            while chunk := await asyncio.to_thread(source.read, CHUNK_SIZE):
                writer.write(_encode(chunk))
                await writer.drain()
    except (BrokenPipeError, ConnectionResetError):
        # The child exited or closed stdin before reading everything.
        log.debug("stdin closed by child process")
    finally:
        writer.close()


async def _complete(proc: asyncio.subprocess.Process, io_tasks: list[asyncio.Task]) -> int:
    try:
        await asyncio.gather(*io_tasks)
    except asyncio.CancelledError:
        for task in io_tasks:
            task.cancel()
        raise
    return await proc.wait()


def _kill(proc: asyncio.subprocess.Process) -> None:
    try:
        proc.kill()
    except ProcessLookupError:
        pass


async def _reap(proc: asyncio.subprocess.Process, tasks: list[asyncio.Task]) -> int | None:
    """Kill the process, drop its pending I/O and wait briefly for the exit code."""
    _kill(proc)
    for task in tasks:
        task.cancel()
    await asyncio.gather(*tasks, return_exceptions=True)
    try:
        return await asyncio.wait_for(proc.wait(), REAP_TIMEOUT)
    except asyncio.TimeoutError:
        return proc.returncode


def _encode(data: str | bytes) -> bytes:
    return data.encode("utf-8") if isinstance(data, str) else data


def _decode(data: bytes | bytearray) -> str:
    return bytes(data).decode("utf-8", errors="replace")


def new_command(
    kind: CommandKind | str,
    *args: str,
    config: E2EConfig | None = None,
    logger: logging.Logger | logging.LoggerAdapter | None = None,
) -> CommandBuilder:
    """Resolve a command kind to a runnable builder.

    An unrecognised kind fails the running test immediately.
    """
    config = config or get_config()
    log = get_logger(logger)
    try:
        kind = CommandKind(kind)
    except ValueError:
        failf("Invalid command type: %s", kind, log=log)

    cwd: str | None = None
    if kind is CommandKind.KUBECTL:
        program = config.kubectl.path
        argv = [*kubectl_default_args(config), *args]
    elif kind is CommandKind.KUBEBUILDER:
        program = config.kubebuilder.path
        argv = list(args)
        cwd = config.kubebuilder.project_dir or None
    else:
        program = config.docker.path
        argv = list(args)

    return CommandBuilder(
        kind=kind,
        program=program,
        args=tuple(argv),
        cwd=cwd,
        timeout=config.exec.timeout or None,
        logger=log,
        config=config,
    )


def run_command(kind: CommandKind | str, *args: str) -> str:
    """Run a command, raising :class:`CommandError` on failure."""
    return asyncio.run(new_command(kind, *args).execute())


def run_command_or_die(kind: CommandKind | str, *args: str) -> str:
    """Run a command, failing the running test on any error."""
    return asyncio.run(new_command(kind, *args).exec_or_die())


def run_command_or_die_input(kind: CommandKind | str, data: str, *args: str) -> str:
    """Like :func:`run_command_or_die`, with ``data`` written to stdin."""
    return asyncio.run(new_command(kind, *args).with_stdin_data(data).exec_or_die())
