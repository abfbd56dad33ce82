"""Bounded worker pool for blocking device sequences."""

from __future__ import annotations

import logging
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, TypeVar

from droidctl.core.errors import DroidctlError
from droidctl.core.model import CommandResult

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")


class DeviceTaskRunner:
    """Runs blocking transport sequences off the caller's thread.

    `cancel` only prevents a task that has not started yet; a task that is
    already talking to a device runs to completion and its result is still
    delivered through the future.
    """

    def __init__(self, max_workers: int = 4) -> None:
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="droidctl")

    def submit(self, fn: Callable[..., T], *args: Any, **kwargs: Any) -> Future[CommandResult[T]]:
        return self._executor.submit(_run, fn, *args, **kwargs)

    @staticmethod
    def cancel(future: Future[Any]) -> bool:
        cancelled = future.cancel()
        if not cancelled:
            LOGGER.debug("Task already running; it will complete in the background")
        return cancelled

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)

    def __enter__(self) -> DeviceTaskRunner:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.shutdown()


def _run(fn: Callable[..., T], *args: Any, **kwargs: Any) -> CommandResult[T]:
    try:
        return CommandResult(value=fn(*args, **kwargs))
    except DroidctlError as exc:
        return CommandResult(error=str(exc))
