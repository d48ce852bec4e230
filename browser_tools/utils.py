"""Shared utilities: loggers, timing, and file-name sanitizing."""

from __future__ import annotations

__all__ = [
    'DualLogger',
    'LoggerProtocol',
    'StderrLogger',
    'Timer',
    'sanitize_for_file_path',
]

import re
import sys
import time
import typing
from datetime import datetime

from mcp.server.session import ServerSession
from mcp.types import LoggingLevel

LOGGER_NAME = 'browser-tools'

_UNSAFE_CHARS = re.compile(r'[^\w-]+')


class LoggerProtocol(typing.Protocol):
    """Protocol for logger - allows components to be MCP-agnostic."""

    async def info(self, message: str) -> None: ...
    async def debug(self, message: str) -> None: ...
    async def warning(self, message: str) -> None: ...
    async def error(self, message: str) -> None: ...


class StderrLogger:
    """Logs to stderr (MCP servers must not write to stdout)."""

    def _emit(self, level: str, msg: str) -> None:
        timestamp = datetime.now().strftime('%Y-%m-%d %H:%M:%S')
        print(f'[{timestamp}] [{level}] {msg}', file=sys.stderr)

    async def info(self, message: str) -> None:
        self._emit('INFO', message)

    async def debug(self, message: str) -> None:
        self._emit('DEBUG', message)

    async def warning(self, message: str) -> None:
        self._emit('WARNING', message)

    async def error(self, message: str) -> None:
        self._emit('ERROR', message)


class DualLogger(StderrLogger):
    """Logs messages to both stderr and the MCP client session."""

    def __init__(self, session: ServerSession) -> None:
        self.session = session

    async def _send(self, level: LoggingLevel, msg: str) -> None:
        await self.session.send_log_message(level=level, data=msg, logger=LOGGER_NAME)

    async def info(self, message: str) -> None:
        await super().info(message)
        await self._send('info', message)

    async def debug(self, message: str) -> None:
        await super().debug(message)
        await self._send('debug', message)

    async def warning(self, message: str) -> None:
        await super().warning(message)
        await self._send('warning', message)

    async def error(self, message: str) -> None:
        await super().error(message)
        await self._send('error', message)


class Timer:
    """Simple stopwatch-style timer for measuring elapsed time."""

    def __init__(self) -> None:
        self._start = time.perf_counter()

    def elapsed(self) -> float:
        """Return elapsed time in seconds."""
        return time.perf_counter() - self._start

    def elapsed_ms(self) -> int:
        """Return elapsed time in milliseconds."""
        return int(self.elapsed() * 1000)


def sanitize_for_file_path(name: str) -> str:
    """Make ``name`` safe to join onto an output directory.

    Runs of anything other than word characters (Unicode letters and digits,
    ``_``) and ``-`` collapse to a single ``-`` in both the stem and the
    extension, so separators, ``..`` and drive letters cannot escape the
    directory while non-Latin names stay distinct. The last ``.`` is kept as
    the extension separator.

        >>> sanitize_for_file_path('../../etc/passwd.pdf')
        '-etc-passwd.pdf'
        >>> sanitize_for_file_path('page-2025-01-08T14:30:22.123Z.pdf')
        'page-2025-01-08T14-30-22-123Z.pdf'
    """
    stem, dot, extension = name.rpartition('.')
    if not dot:
        return _UNSAFE_CHARS.sub('-', name)
    return f'{_UNSAFE_CHARS.sub("-", stem)}.{_UNSAFE_CHARS.sub("-", extension)}'
