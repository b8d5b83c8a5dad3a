"""
Async subprocess helpers for the external command-line tools (yt-dlp, ffmpeg).

Every call carries an explicit timeout. On timeout, or when the awaiting
request task is cancelled, the child process is killed and reaped before the
exception propagates, so no orphaned downloads keep running.
"""

import asyncio
from dataclasses import dataclass
from typing import Optional, Sequence


@dataclass(frozen=True)
class CommandResult:
    returncode: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0


class CommandTimeout(Exception):
    """Raised when a command exceeds its timeout."""


class CommandNotFound(Exception):
    """Raised when the executable does not exist."""


async def _kill(process: asyncio.subprocess.Process) -> None:
    if process.returncode is None:
        try:
            process.kill()
        except ProcessLookupError:
            pass
        await process.wait()


async def run_command(args: Sequence[str], timeout: Optional[float] = None) -> CommandResult:
    """
    Run a command and capture its output.

    Args:
        args: Executable followed by its arguments
        timeout: Seconds before the process is killed (None waits forever)

    Returns:
        CommandResult with return code and decoded stdout/stderr

    Raises:
        CommandNotFound: If the executable cannot be started
        CommandTimeout: If the process does not finish within timeout
        asyncio.CancelledError: If the awaiting task is cancelled
    """
    try:
        process = await asyncio.create_subprocess_exec(
            *args,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except FileNotFoundError as e:
        raise CommandNotFound(f"Executable not found: {args[0]}") from e

    try:
        stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=timeout)
    except asyncio.TimeoutError:
        await _kill(process)
        raise CommandTimeout(f"{args[0]} timed out after {timeout}s")
    except asyncio.CancelledError:
        await _kill(process)
        raise

    return CommandResult(
        returncode=process.returncode,
        stdout=stdout.decode(errors="replace"),
        stderr=stderr.decode(errors="replace"),
    )
