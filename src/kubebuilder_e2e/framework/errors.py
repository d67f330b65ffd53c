"""Errors raised while running external commands."""

from __future__ import annotations


class CommandError(Exception):
    """Base class for command execution failures.

    Carries the attempted command line together with whatever stdout and
    stderr were captured before the failure.
    """

    def __init__(self, command: str, stdout: str = "", stderr: str = "") -> None:
        self.command = command
        self.stdout = stdout
        self.stderr = stderr
        super().__init__(self.describe())

    def describe(self) -> str:
        return f"error running {self.command}:\n{self._streams()}"

    def _streams(self) -> str:
        return f"Command stdout:\n{self.stdout}\nstderr:\n{self.stderr}\n"


class CommandStartError(CommandError):
    """The process could not be started (missing executable, permissions...)."""

    def __init__(self, command: str, cause: OSError) -> None:
        self.cause = cause
        super().__init__(command)

    def describe(self) -> str:
        return f"error starting {self.command}:\n{self._streams()}error:\n{self.cause}\n"


class CommandExitError(CommandError):
    """The process ran to completion with a non-zero exit code."""

    def __init__(self, command: str, exit_code: int, stdout: str = "", stderr: str = "") -> None:
        self.exit_code = exit_code
        super().__init__(command, stdout, stderr)

    def describe(self) -> str:
        if self.exit_code < 0:
            status = f"signal: {-self.exit_code}"
        else:
            status = f"exit status {self.exit_code}"
        return f"error running {self.command}:\n{self._streams()}error:\n{status}\ncode: {self.exit_code}"


class CommandIOError(CommandError):
    """Feeding stdin failed mid-run; the process was killed."""

    def __init__(
        self,
        command: str,
        cause: Exception,
        stdout: str = "",
        stderr: str = "",
        returncode: int | None = None,
    ) -> None:
        self.cause = cause
        self.returncode = returncode
        super().__init__(command, stdout, stderr)

    def describe(self) -> str:
        return f"i/o error running {self.command}:\n{self._streams()}error:\n{self.cause}\n"


class CommandTimeoutError(CommandError, TimeoutError):
    """The timeout fired before the process exited; the process was killed."""

    def __init__(
        self,
        command: str,
        stdout: str = "",
        stderr: str = "",
        returncode: int | None = None,
    ) -> None:
        self.returncode = returncode
        super().__init__(command, stdout, stderr)

    def describe(self) -> str:
        return f"timed out waiting for command {self.command}:\n{self._streams()}"


def is_timeout(err: BaseException | None) -> bool:
    """Return True for network-style timeouts, directly or one level wrapped."""
    if err is None:
        return False
    if isinstance(err, TimeoutError):
        return True
    wrapped = err.__cause__ or err.__context__
    return isinstance(wrapped, TimeoutError)
