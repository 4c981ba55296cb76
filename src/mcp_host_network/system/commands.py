"""Run external programs.

``run_command`` covers the common case of a command with no input.
``run_duplex`` feeds a payload to the child's stdin from a dedicated
writer thread while the caller drains stdout, so neither side can block
on a full pipe buffer.
"""
import logging
import subprocess
import threading
from dataclasses import dataclass
from typing import IO, Optional, Sequence

logger = logging.getLogger(__name__)


class CommandError(Exception):
    """An external command could not be started or exited non-zero."""

    def __init__(
        self,
        program: str,
        args: Sequence[str],
        returncode: Optional[int] = None,
        stderr: str = "",
    ):
        self.program = program
        self.args = list(args)
        self.returncode = returncode
        self.stderr = stderr
        cmd = " ".join([program, *self.args])
        if returncode is None:
            message = f"failed to execute {cmd}"
        else:
            message = f"{cmd} exited with status {returncode}"
        if stderr:
            message += f": {stderr.strip()}"
        super().__init__(message)


@dataclass
class CommandResult:
    """Outcome of an external command."""
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def success(self) -> bool:
        return self.returncode == 0


def run_command(
    program: str,
    args: Sequence[str] = (),
    check: bool = True,
    env: Optional[dict[str, str]] = None,
) -> CommandResult:
    """
    Run ``program`` with ``args`` and wait for it to finish.

    Args:
        program: Executable name or path
        args: Command arguments
        check: Raise CommandError on a non-zero exit status
        env: Replacement environment for the child

    Raises:
        CommandError: If the program cannot be started, or exits
            non-zero while ``check`` is set
    """
    cmd = [program, *args]
    logger.debug(f"Running: {' '.join(cmd)}")

    try:
        proc = subprocess.run(
            cmd,
            stdin=subprocess.DEVNULL,
            capture_output=True,
            text=True,
            env=env,
            check=False,  # We'll handle errors ourselves
        )
    except OSError as e:
        raise CommandError(program, args, stderr=str(e)) from e

    result = CommandResult(proc.returncode, proc.stdout, proc.stderr)
    if check and not result.success:
        logger.error(f"Command failed: {' '.join(cmd)}: {proc.stderr.strip()}")
        raise CommandError(program, args, proc.returncode, proc.stderr)
    return result


def run_command_output(program: str, args: Sequence[str] = ()) -> Optional[str]:
    """Run a command and return its stripped stdout, or None on failure."""
    try:
        result = run_command(program, args)
    except CommandError as e:
        logger.debug(f"Ignoring command failure: {e}")
        return None
    return result.stdout.strip()


class _PipeWriter(threading.Thread):
    """Write a payload to a pipe, then close it."""

    def __init__(self, pipe: IO[bytes], payload: bytes):
        super().__init__(name="pipe-writer", daemon=True)
        self.pipe = pipe
        self.payload = payload
        self.error: Optional[OSError] = None

    def run(self) -> None:
        try:
            self.pipe.write(self.payload)
            self.pipe.flush()
        except OSError as e:
            # Child exited before reading everything
            self.error = e
        finally:
            try:
                self.pipe.close()
            except OSError:
                pass


def run_duplex(
    program: str,
    args: Sequence[str],
    payload: bytes,
    env: Optional[dict[str, str]] = None,
) -> CommandResult:
    """
    Send ``payload`` to a child's stdin and collect its stdout.

    The payload is written on a separate thread; this thread reads
    stdout to EOF. Both are joined before returning. stderr is inherited.

    Raises:
        CommandError: If the program cannot be started
    """
    cmd = [program, *args]
    logger.debug(f"Running (duplex): {' '.join(cmd)}")

    try:
        proc = subprocess.Popen(
            cmd,
            stdin=subprocess.PIPE,
            stdout=subprocess.PIPE,
            env=env,
        )
    except OSError as e:
        raise CommandError(program, args, stderr=str(e)) from e

    writer = _PipeWriter(proc.stdin, payload)
    writer.start()
    try:
        stdout = proc.stdout.read()
    finally:
        proc.stdout.close()
        returncode = proc.wait()
        writer.join()

    if writer.error is not None:
        logger.warning(f"{program} closed its input early: {writer.error}")

    return CommandResult(returncode, stdout.decode("utf-8", errors="replace"))
