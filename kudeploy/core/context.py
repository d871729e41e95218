"""Run context carrying the caller's cancellation signal."""

import threading
import time
from dataclasses import dataclass, field
from typing import Optional


@dataclass
class RunContext:
    """Cancellation signal and optional deadline for one deploy or cleanup call.

    A RunContext is created by the caller and may be cancelled from another
    thread. Blocking operations (the kustomize subprocess, kubectl calls)
    poll it and abort promptly once it is cancelled or its deadline passes.

    Attributes:
        timeout: Seconds from creation after which the run counts as
                 cancelled (None for no deadline)

    Example:
        >>> ctx = RunContext(timeout=120)
        >>> deployer.deploy(ctx, builds, labellers)
    """
    timeout: Optional[float] = None
    _event: threading.Event = field(default_factory=threading.Event, repr=False)
    _started: float = field(default_factory=time.monotonic, repr=False)

    def cancel(self) -> None:
        """Signal every blocking operation using this context to stop."""
        self._event.set()

    @property
    def deadline_exceeded(self) -> bool:
        if self.timeout is None:
            return False
        return time.monotonic() - self._started >= self.timeout

    @property
    def cancelled(self) -> bool:
        return self._event.is_set() or self.deadline_exceeded

    @property
    def reason(self) -> str:
        if self._event.is_set():
            return "cancelled"
        if self.deadline_exceeded:
            return f"deadline of {self.timeout}s exceeded"
        return ""


def background() -> RunContext:
    """Return a context that is never cancelled and has no deadline."""
    return RunContext()
