"""Exception boundaries around Playwright calls and the process entry point.

Two layers:

    Library boundary:
        Playwright raises its own ``Error``/``TimeoutError`` hierarchy (and the
        occasional builtin). Calls into a ``Page`` or ``Browser`` run inside
        ``LibraryBoundary(ActionFailed)`` so the harness only ever sees the tool
        error taxonomy, with the original chained as ``__cause__``::

            playwright_calls = LibraryBoundary(ActionFailed)

            async with playwright_calls:
                await page.go_back()

    Process boundary:
        ``with ErrorBoundary():`` around the CLI entry point. Unexpected failures
        print a traceback to stderr and exit with status 1. System exceptions
        (KeyboardInterrupt, SystemExit, CancelledError) always pass through.
"""

from __future__ import annotations

__all__ = [
    'ErrorBoundary',
    'LibraryBoundary',
]

import sys
import traceback
from types import TracebackType
from typing import Self

# Iterator protocol signals, never library failures
_PASSTHROUGH = (StopIteration, StopAsyncIteration)


class LibraryBoundary:
    """Translate any application exception into ``target``.

    Exceptions that already are ``target`` (or a subclass) pass through
    unchanged so nested boundaries never double-wrap.
    """

    def __init__(self, target: type[Exception]) -> None:
        self._target = target

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        if not isinstance(exc_value, Exception) or isinstance(exc_value, (self._target, *_PASSTHROUGH)):
            return  # Nothing raised, system or control-flow exception, or already translated
        raise self._target(str(exc_value)).with_traceback(exc_value.__traceback__) from exc_value


class ErrorBoundary:
    """Process boundary: print unexpected exceptions to stderr and exit 1."""

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        if not isinstance(exc_value, Exception):
            return
        traceback.print_exception(type(exc_value), exc_value, exc_tb, file=sys.stderr)
        sys.exit(1)
