"""
Run Coordination

Prevents two reconciliation runs from writing the same outputs at once.
"""
import asyncio
import logging
from typing import Awaitable, Callable, TypeVar


logger = logging.getLogger(__name__)

T = TypeVar("T")


class RunCoordinator:
    """
    Coordinates reconciliation runs to prevent concurrent executions.

    Uses an internal asyncio.Lock so a manual run and a scheduled run never
    interleave their output writes.
    """

    def __init__(self) -> None:
        self._run_lock = asyncio.Lock()

    async def execute(self, run_func: Callable[[], Awaitable[T]]) -> T | None:
        """
        Execute a run with concurrency protection.

        Args:
            run_func: Async function to execute

        Returns:
            Result of run_func, or None if a run is already in progress

        Raises:
            Any exception raised by run_func
        """
        if self._run_lock.locked():
            logger.warning("Reconciliation already in progress, skipping this request")
            return None

        async with self._run_lock:
            return await run_func()

    def is_running(self) -> bool:
        """Check if a run is currently in progress."""
        return self._run_lock.locked()
