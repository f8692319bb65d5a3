"""
Base Service.

Base class for all services providing common patterns for business logic.
Services orchestrate repositories and the parser, and push blocking file
work onto the shared I/O thread pool.

Usage:
    from kbnotes.services.base import BaseService

    class TagService(BaseService):
        async def count(self, path: Path) -> int:
            note = await self._run_blocking(load_note, path)
            return len(note.tags)
"""

import asyncio
import functools
from collections.abc import Callable
from typing import Any, TypeVar

from kbnotes.core.concurrency import get_io_pool
from kbnotes.core.logging import get_logger

T = TypeVar("T")


class BaseService:
    """
    Base class for all services.

    Provides:
    - Logging context
    - Offloading of blocking calls to the I/O pool
    """

    def __init__(self) -> None:
        self._logger = get_logger(self.__class__.__module__)

    async def _run_blocking(self, fn: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        """
        Run a blocking callable on the I/O thread pool.

        Args:
            fn: Callable to run
            *args: Positional arguments for fn
            **kwargs: Keyword arguments for fn

        Returns:
            Result of fn
        """
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(get_io_pool(), functools.partial(fn, *args, **kwargs))

    def _log_operation(
        self,
        operation: str,
        **context: Any,
    ) -> None:
        """
        Log a service operation with context.

        Args:
            operation: Description of the operation
            **context: Additional context to include in log
        """
        self._logger.info(
            operation,
            extra={"service": self.__class__.__name__, **context},
        )

    def _log_debug(
        self,
        message: str,
        **context: Any,
    ) -> None:
        """
        Log debug information.

        Args:
            message: Debug message
            **context: Additional context to include in log
        """
        self._logger.debug(
            message,
            extra={"service": self.__class__.__name__, **context},
        )
