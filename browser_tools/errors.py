"""Error taxonomy for browser tools.

Every failure a tool can report carries a ``kind`` tag so callers can tell
validation problems (fix the request) from browser problems (retry, navigate
first, install the browser).

    invalid_params  - request rejected before any browser interaction
    unknown_tool    - no tool registered under the requested name
    no_active_tab   - a current-tab action was requested with nothing open
    action_failed   - the underlying browser operation rejected the action
    install_failed  - browser engine download/installation failed
"""

from __future__ import annotations

__all__ = [
    'ActionFailed',
    'BrowserToolError',
    'ErrorKind',
    'FieldError',
    'InstallFailed',
    'InvalidParams',
    'NoActiveTab',
    'UnknownTool',
]

import typing
from collections.abc import Sequence

import fastmcp.exceptions

type ErrorKind = typing.Literal[
    'invalid_params',
    'unknown_tool',
    'no_active_tab',
    'action_failed',
    'install_failed',
]


class FieldError(typing.NamedTuple):
    """One rejected field: dotted path into the request and the reason."""

    path: str
    reason: str


class BrowserToolError(fastmcp.exceptions.ToolError):
    """Base class for all caller-visible tool failures."""

    kind: typing.ClassVar[ErrorKind]
    retryable: typing.ClassVar[bool] = False


class InvalidParams(BrowserToolError, fastmcp.exceptions.ValidationError):
    """Request parameters did not match the tool's declared shape."""

    kind = 'invalid_params'

    def __init__(self, tool: str, fields: Sequence[FieldError]) -> None:
        self.tool = tool
        self.fields = tuple(fields)
        lines = [f'Invalid parameters for {tool}:']
        lines.extend(f'  - {field.path}: {field.reason}' for field in self.fields)
        super().__init__('\n'.join(lines))


class UnknownTool(BrowserToolError):
    kind = 'unknown_tool'

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f'Unknown tool: {name}')


class NoActiveTab(BrowserToolError):
    """Raised by ``BrowserContext.current_tab`` when no page is open."""

    kind = 'no_active_tab'
    retryable = True

    def __init__(self) -> None:
        super().__init__('No open pages available. Use the "browser_navigate" tool to navigate to a page first.')


class ActionFailed(BrowserToolError):
    kind = 'action_failed'
    retryable = True


class InstallFailed(BrowserToolError):
    kind = 'install_failed'
    retryable = True
