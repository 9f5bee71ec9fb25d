"""
Mixer Gateway - system volume through an external utility.

Runs ``pactl set-sink-volume <sink> <+N%|-N%>`` (or a compatible command) as
a subprocess. Stateless; each call is independent.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging

from media_controller.errors import MixerError

logger = logging.getLogger(__name__)

# How long to wait for the process to exit after SIGTERM before SIGKILL
TERMINATE_TIMEOUT_SECONDS = 1.0


def format_percent(delta: int) -> str:
    """Format a signed relative percentage for the mixer (``+5%``/``-5%``)."""
    return f"{delta:+d}%"


async def _terminate(proc: asyncio.subprocess.Process) -> None:
    """Terminate a hung process, escalating to kill."""
    if proc.returncode is not None:
        return
    with contextlib.suppress(ProcessLookupError):
        proc.terminate()
    try:
        await asyncio.wait_for(proc.wait(), timeout=TERMINATE_TIMEOUT_SECONDS)
    except asyncio.TimeoutError:
        with contextlib.suppress(ProcessLookupError):
            proc.kill()
        await proc.wait()


class MixerGateway:
    """Adjust the system volume by running the mixer utility."""

    def __init__(
        self,
        command: str = "pactl",
        sink: str = "@DEFAULT_SINK@",
        *,
        timeout: float = 5.0,
    ) -> None:
        self.command = command
        self.sink = sink
        self.timeout = timeout

    def build_args(self, delta: int) -> list[str]:
        return [self.command, "set-sink-volume", self.sink, format_percent(delta)]

    async def change_volume(self, delta: int) -> str:
        """
        Change the sink volume by a signed percentage.

        Args:
            delta: Relative change in percent, e.g. 5 or -5.

        Returns:
            The percentage argument passed to the mixer (e.g. "+5%").

        Raises:
            MixerError: If the utility is missing, times out or exits non-zero.
        """
        args = self.build_args(delta)
        logger.debug("Running mixer: %s", " ".join(args))

        try:
            proc = await asyncio.create_subprocess_exec(
                *args,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError as e:
            raise MixerError(f"failed to launch {self.command}: not found") from e
        except OSError as e:
            raise MixerError(f"failed to launch {self.command}: {e}") from e

        try:
            _, stderr = await asyncio.wait_for(proc.communicate(), timeout=self.timeout)
        except asyncio.TimeoutError as e:
            await _terminate(proc)
            raise MixerError(f"{self.command} timed out after {self.timeout:g}s") from e

        if proc.returncode != 0:
            detail = (stderr or b"").decode("utf-8", errors="replace").strip()
            message = f"{self.command} exited with {proc.returncode}"
            if detail:
                message = f"{message}: {detail}"
            raise MixerError(message)

        return args[-1]
