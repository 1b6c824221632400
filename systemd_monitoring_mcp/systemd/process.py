"""Bounded async execution of host commands."""
import asyncio
import logging
from typing import Sequence

from ..utils.errors import AdapterError

logger = logging.getLogger(__name__)


async def run_command(argv: Sequence[str], timeout: float) -> str:
    """Run ``argv`` without a shell and return its decoded stdout.

    Raises:
        AdapterError: if the command cannot start, times out or exits non-zero.
    """
    logger.debug(f"Running command: {' '.join(argv)}")
    try:
        process = await asyncio.create_subprocess_exec(
            *argv,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as e:
        raise AdapterError(f"failed to start {argv[0]}: {e}") from e

    try:
        stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=timeout)
    except asyncio.TimeoutError:
        process.kill()
        await process.wait()
        raise AdapterError(f"{argv[0]} timed out after {timeout} seconds")
    except asyncio.CancelledError:
        if process.returncode is None:
            process.kill()
        await process.wait()
        raise

    if process.returncode != 0:
        stderr_text = stderr.decode("utf-8", errors="replace").strip()
        raise AdapterError(f"{argv[0]} exited with {process.returncode}: {stderr_text}")

    return stdout.decode("utf-8", errors="replace")
