"""
Per-call time and memory budgets for plugin execution.

With the sandbox enabled each call runs on its own event loop in a worker
thread, so a plugin that blocks synchronously cannot stall the dispatcher's
loop or the other plugins. Time is bounded with ``asyncio.timeout`` around
the worker; on expiry the plugin's task is cancelled on its own loop, and a
plugin that never yields is abandoned to finish in the background. A call
that returns after ``max_execution_time`` has elapsed is rejected as a
timeout either way, so over-budget output is never accepted.

Memory is measured with ``tracemalloc``: the bytes newly held by allocations
made from the plugin's own source files during the call are compared against
the plugin's ``max_memory_usage``. Tracing runs only while at least one
sandboxed call is in flight.
"""

import asyncio
import inspect
import logging
import threading
import time
import tracemalloc

from collections.abc import Awaitable, Callable
from typing import Generic, TypeVar

from screentrail.plugins.errors import PluginExecutionError
from screentrail.plugins.protocol import PluginConfiguration

logger = logging.getLogger(__name__)

T = TypeVar("T")

_active_measurements = 0


def plugin_source_files(plugin: object) -> list[str]:
    """Source files whose allocations are charged to ``plugin``."""
    files: list[str] = []
    for cls in type(plugin).__mro__:
        if cls is object:
            continue
        try:
            source = inspect.getsourcefile(cls)
        except TypeError:
            continue
        if source and source not in files:
            files.append(source)
    return files


class MemoryBudget:
    """Measures memory retained by allocations from a set of source files."""

    def __init__(self, source_files: list[str], limit: int) -> None:
        self._filters = [tracemalloc.Filter(True, f) for f in source_files]
        self.limit = limit
        self._baseline = 0

    def _traced_bytes(self) -> int:
        if not self._filters:
            return 0
        snapshot = tracemalloc.take_snapshot().filter_traces(self._filters)
        return sum(stat.size for stat in snapshot.statistics("filename"))

    def __enter__(self) -> "MemoryBudget":
        global _active_measurements
        if _active_measurements == 0 and not tracemalloc.is_tracing():
            tracemalloc.start()
        _active_measurements += 1
        self._baseline = self._traced_bytes()
        return self

    def used(self) -> int:
        return max(0, self._traced_bytes() - self._baseline)

    def __exit__(self, *exc_info: object) -> None:
        global _active_measurements
        _active_measurements -= 1
        if _active_measurements == 0 and tracemalloc.is_tracing():
            tracemalloc.stop()


class WorkerCall(Generic[T]):
    """
    One plugin call running on a private event loop in a worker thread.

    ``cancel()`` may be called from any thread at any time: before the call
    starts it prevents the plugin from running, while it runs it cancels the
    plugin's task at its next ``await``, and afterwards it does nothing.
    """

    def __init__(self, call: Callable[[], Awaitable[T]]) -> None:
        self._call = call
        self._lock = threading.Lock()
        self._loop: asyncio.AbstractEventLoop | None = None
        self._task: asyncio.Task | None = None
        self._cancel_requested = False
        self._finished = False

    async def _main(self) -> T | None:
        with self._lock:
            if self._cancel_requested:
                return None
            self._loop = asyncio.get_running_loop()
            self._task = asyncio.current_task()
        try:
            return await self._call()
        finally:
            with self._lock:
                self._finished = True

    def run(self) -> T | None:
        return asyncio.run(self._main())

    def cancel(self) -> None:
        with self._lock:
            self._cancel_requested = True
            if self._finished or self._loop is None or self._task is None:
                return
            self._loop.call_soon_threadsafe(self._task.cancel)


async def _run_in_worker(call: Callable[[], Awaitable[T]], timeout: float) -> T:
    worker: WorkerCall[T] = WorkerCall(call)
    try:
        async with asyncio.timeout(timeout):
            return await asyncio.to_thread(worker.run)  # type: ignore[return-value]
    finally:
        worker.cancel()


async def run_sandboxed(
    plugin_id: str,
    operation: str,
    call: Callable[[], Awaitable[T]],
    configuration: PluginConfiguration,
    source_files: list[str],
) -> T:
    """
    Await ``call()`` within the plugin's time and memory budgets.

    Args:
        plugin_id: Plugin identifier for errors and logs
        operation: Name of the plugin method being called
        call: Zero-argument coroutine factory
        configuration: Plugin configuration holding the budgets
        source_files: Files whose allocations count against the budget

    Returns:
        The call's result

    Raises:
        PluginExecutionError: On timeout, budget overrun or any exception
            raised by the plugin
    """
    timeout = configuration.max_execution_time
    used = 0
    started = time.monotonic()

    try:
        if not configuration.sandbox_enabled:
            async with asyncio.timeout(timeout):
                result = await call()
        else:
            with MemoryBudget(source_files, configuration.max_memory_usage) as budget:
                result = await _run_in_worker(call, timeout)
                used = budget.used()

    except TimeoutError as e:
        raise PluginExecutionError(
            f"{plugin_id}.{operation} exceeded {timeout}s",
            plugin_id=plugin_id,
            reason="timeout",
        ) from e
    except PluginExecutionError:
        raise
    except Exception as e:
        raise PluginExecutionError(
            f"{plugin_id}.{operation} raised {type(e).__name__}: {e}",
            plugin_id=plugin_id,
            reason="exception",
        ) from e

    elapsed = time.monotonic() - started
    if elapsed > timeout:
        raise PluginExecutionError(
            f"{plugin_id}.{operation} took {elapsed:.3f}s (budget {timeout}s)",
            plugin_id=plugin_id,
            reason="timeout",
        )

    if used > configuration.max_memory_usage:
        raise PluginExecutionError(
            f"{plugin_id}.{operation} retained {used} bytes "
            f"(budget {configuration.max_memory_usage})",
            plugin_id=plugin_id,
            reason="memory_budget",
        )

    logger.debug(f"{plugin_id}.{operation} retained {used} bytes")
    return result
