"""Async orchestration helpers for icalkit.

Collects the patterns used when talking to slow collaborators:
- per-call timeouts with ``asyncio.wait_for``
- semaphore-bounded fan-out whose results keep submission order
- a simple operation counter for diagnostics

Usage Example:
    ```python
    orchestrator = AsyncOrchestrator(max_concurrency=4, default_timeout=10.0)

    results = await orchestrator.bounded_gather(
        [lambda: geocoder.geocode("Rome"), lambda: geocoder.geocode("Paris")],
        timeout=5.0,
    )
    ```
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from typing import Any, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class AsyncOrchestrator:
    """Bounded, time-limited execution of independent coroutines."""

    def __init__(self, max_concurrency: int = 4, default_timeout: float = 10.0):
        """Initialize async orchestrator.

        Args:
            max_concurrency: Maximum number of operations in flight at once
            default_timeout: Default per-operation timeout in seconds
        """
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be >= 1")
        self.max_concurrency = max_concurrency
        self.default_timeout = default_timeout

        self._operation_count = 0
        self._error_count = 0
        self._timeout_count = 0

        logger.debug(
            "AsyncOrchestrator initialized: max_concurrency=%d, default_timeout=%.1fs",
            max_concurrency,
            default_timeout,
        )

    def _record_operation(self, success: bool = True, timeout: bool = False) -> None:
        self._operation_count += 1
        if not success:
            self._error_count += 1
        if timeout:
            self._timeout_count += 1

    async def run_with_timeout(
        self,
        coro: Awaitable[T],
        timeout: Optional[float] = None,
    ) -> Optional[T]:
        """Run async coroutine with timeout.

        Args:
            coro: Coroutine to execute
            timeout: Timeout in seconds (uses default if None)

        Returns:
            Coroutine result, or None if the timeout expired
        """
        effective_timeout = timeout if timeout is not None else self.default_timeout

        try:
            result = await asyncio.wait_for(coro, timeout=effective_timeout)
        except asyncio.TimeoutError:
            self._record_operation(success=False, timeout=True)
            logger.warning("Operation timed out after %.1fs", effective_timeout)
            return None
        self._record_operation(success=True)
        return result

    async def bounded_gather(
        self,
        factories: Sequence[Callable[[], Awaitable[T]]],
        timeout: Optional[float] = None,
    ) -> list[Optional[T]]:
        """Run coroutine factories with bounded concurrency and per-call timeouts.

        Each factory is invoked only once a semaphore slot is free, so at most
        ``max_concurrency`` calls are outstanding. Result ``i`` belongs to
        factory ``i`` regardless of completion order. A call that times out
        or raises yields None in its slot; nothing is retried.

        Args:
            factories: Zero-argument callables returning awaitables
            timeout: Per-call timeout in seconds (uses default if None)

        Returns:
            List of results aligned with ``factories``
        """
        if not factories:
            return []

        semaphore = asyncio.Semaphore(self.max_concurrency)
        results: list[Optional[T]] = [None] * len(factories)

        async def _run(index: int, factory: Callable[[], Awaitable[T]]) -> None:
            async with semaphore:
                try:
                    results[index] = await self.run_with_timeout(factory(), timeout=timeout)
                except Exception as e:
                    self._record_operation(success=False)
                    logger.warning("Operation %d failed: %s", index, e)

        await asyncio.gather(*(_run(i, factory) for i, factory in enumerate(factories)))
        return results

    def get_stats(self) -> dict[str, Any]:
        """Return operation counters."""
        return {
            "operations": self._operation_count,
            "errors": self._error_count,
            "timeouts": self._timeout_count,
            "max_concurrency": self.max_concurrency,
            "default_timeout": self.default_timeout,
        }
