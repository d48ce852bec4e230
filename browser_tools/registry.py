"""Tool registry: name-indexed catalog and serialized dispatch."""

from __future__ import annotations

__all__ = [
    'ToolRegistry',
]

import asyncio
import typing
from collections.abc import Iterable, Mapping

from browser_tools.context import BrowserContext
from browser_tools.errors import BrowserToolError, UnknownTool
from browser_tools.models import ToolDescriptor, ToolResponse
from browser_tools.tools import Tool
from browser_tools.utils import LoggerProtocol, Timer


class ToolRegistry:
    """Maps tool names to tools and runs them one at a time against a BrowserContext."""

    def __init__(self, context: BrowserContext, tools: Iterable[Tool]) -> None:
        self.context = context
        self._tools: dict[str, Tool] = {}
        for tool in tools:
            name = tool.descriptor.name
            if name in self._tools:
                raise ValueError(f'Duplicate tool name: {name}')
            self._tools[name] = tool
        self._lock = asyncio.Lock()

    def descriptors(self) -> list[ToolDescriptor]:
        return [tool.descriptor for tool in self._tools.values()]

    def get(self, name: str) -> Tool:
        try:
            return self._tools[name]
        except KeyError:
            raise UnknownTool(name) from None

    async def invoke(
        self,
        name: str,
        raw: Mapping[str, typing.Any] | None,
        logger: LoggerProtocol,
    ) -> ToolResponse:
        """Run one tool. Typed failures propagate as ``BrowserToolError`` subclasses."""
        tool = self.get(name)
        async with self._lock:
            timer = Timer()
            await logger.info(f'{name} started')
            try:
                response = await tool.handle(self.context, raw, logger)
            except BrowserToolError as e:
                await logger.warning(f'{name} failed ({e.kind}) after {timer.elapsed_ms()}ms')
                raise
            await logger.info(f'{name} completed in {timer.elapsed_ms()}ms')
            return response

    async def call(
        self,
        name: str,
        raw: Mapping[str, typing.Any] | None,
        logger: LoggerProtocol,
    ) -> ToolResponse:
        """Run one tool, folding typed failures into an error envelope."""
        try:
            return await self.invoke(name, raw, logger)
        except BrowserToolError as e:
            return ToolResponse.from_error(e)
