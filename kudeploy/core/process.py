"""Cancellable subprocess execution.

Both the kustomize loader and the kubectl wrapper run external tools through
:func:`run_command`, which waits for the child while watching the caller's
:class:`RunContext` and kills the child as soon as the context is cancelled.
"""

import logging
import subprocess
from typing import Optional, Sequence

from kudeploy.core.context import RunContext
from kudeploy.core.errors import CommandCancelledError

logger = logging.getLogger(__name__)

# Seconds between cancellation checks while a child is running
POLL_INTERVAL = 0.1


def run_command(
    ctx: RunContext, cmd: Sequence[str], input_text: Optional[str] = None
) -> subprocess.CompletedProcess:
    """Run a command to completion, capturing stdout and stderr as text.

    Args:
        ctx: Run context; cancelling it kills the child
        cmd: Command line
        input_text: Text written to the child's stdin (optional)

    Returns:
        CompletedProcess with returncode, stdout and stderr. A non-zero exit
        status is not an error here; callers decide what it means.

    Raises:
        CommandCancelledError: If the context was cancelled before or during the run
        OSError: If the command cannot be started (e.g. binary not on PATH)
        UnicodeDecodeError: If the output is not valid UTF-8
    """
    cmd = list(cmd)
    if ctx.cancelled:
        raise CommandCancelledError(f"{cmd[0]} not started: {ctx.reason}", cmd)

    logger.debug(f"Running: {' '.join(cmd)}")
    proc = subprocess.Popen(
        cmd,
        stdin=subprocess.PIPE if input_text is not None else subprocess.DEVNULL,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        text=True,
        encoding="utf-8",
    )

    pending_input = input_text
    while True:
        try:
            stdout, stderr = proc.communicate(input=pending_input, timeout=POLL_INTERVAL)
            break
        except subprocess.TimeoutExpired:
            # stdin is already being fed; later calls must not pass it again
            pending_input = None
            if ctx.cancelled:
                proc.kill()
                proc.communicate()
                logger.info(f"Killed {cmd[0]}: {ctx.reason}")
                raise CommandCancelledError(f"{cmd[0]} killed: {ctx.reason}", cmd)

    return subprocess.CompletedProcess(cmd, proc.returncode, stdout, stderr)
