"""MCP server wiring and command-line entry point.

Tools are published through the MCP SDK's low-level server: each tool
declares its input schema up front (generated from its pydantic model) and
validates its own arguments, so the server never second-guesses them.
"""

from __future__ import annotations

__all__ = [
    'app',
    'create_server',
    'main',
    'serve',
]

import asyncio
import contextlib
import enum
import pathlib
import sys
import tempfile
import typing
from collections.abc import AsyncIterator

import mcp.types
import typer
from mcp.server.lowlevel import Server
from mcp.server.stdio import stdio_server

from browser_tools import __version__
from browser_tools.boundaries import ErrorBoundary
from browser_tools.context import BrowserContext, Launcher, launch_browser
from browser_tools.models import BrowserConfig, ToolDescriptor, ToolResponse
from browser_tools.registry import ToolRegistry
from browser_tools.tools import build_tools
from browser_tools.utils import DualLogger, StderrLogger

SERVER_NAME = 'browser-tools'


def _to_mcp_tool(descriptor: ToolDescriptor) -> mcp.types.Tool:
    return mcp.types.Tool(
        name=descriptor.name,
        title=descriptor.title,
        description=descriptor.description,
        inputSchema=descriptor.input_schema,
        annotations=mcp.types.ToolAnnotations(
            title=descriptor.title,
            readOnlyHint=descriptor.read_only,
            destructiveHint=descriptor.destructive,
            openWorldHint=True,
        ),
    )


def _to_call_result(response: ToolResponse) -> mcp.types.CallToolResult:
    return mcp.types.CallToolResult(
        content=[mcp.types.TextContent(type='text', text=item.text) for item in response.content],
        isError=response.is_error,
    )


def create_server(config: BrowserConfig, launcher: Launcher = launch_browser) -> Server:
    """Build the MCP server for ``config``. The browser launches on first use."""
    context = BrowserContext(config, launcher)
    registry = ToolRegistry(context, build_tools(config.capture_snapshot))

    @contextlib.asynccontextmanager
    async def lifespan(server: Server) -> AsyncIterator[ToolRegistry]:
        logger = StderrLogger()
        await logger.info(f'{len(registry.descriptors())} tools registered')
        await logger.info(f'PDF output directory: {config.output_dir}')
        try:
            yield registry
        finally:
            # Shutdown: runs after the last request completes
            await context.close(logger)

    server = Server(SERVER_NAME, version=__version__, lifespan=lifespan)

    @server.list_tools()
    async def list_tools() -> list[mcp.types.Tool]:
        return [_to_mcp_tool(descriptor) for descriptor in registry.descriptors()]

    # Tools validate their own arguments and report field-level errors
    @server.call_tool(validate_input=False)
    async def call_tool(name: str, arguments: dict[str, typing.Any]) -> mcp.types.CallToolResult:
        logger = DualLogger(server.request_context.session)
        return _to_call_result(await registry.call(name, arguments, logger))

    return server


async def serve(config: BrowserConfig) -> None:
    """Run the server over stdio until the client disconnects."""
    server = create_server(config)
    async with stdio_server() as (read_stream, write_stream):
        await server.run(read_stream, write_stream, server.create_initialization_options())


# -- CLI --


class BrowserEngine(str, enum.Enum):
    chromium = 'chromium'
    firefox = 'firefox'
    webkit = 'webkit'


def _parse_viewport_size(value: str) -> tuple[int, int]:
    width, sep, height = value.lower().partition('x')
    if not sep or not width.isdigit() or not height.isdigit() or int(width) == 0 or int(height) == 0:
        raise typer.BadParameter(f'expected WIDTHxHEIGHT in pixels (e.g. 1280x720), got {value!r}')
    return int(width), int(height)


app = typer.Typer(help='MCP server exposing browser automation tools over stdio.', add_completion=False)


@app.command()
def run(
    browser: BrowserEngine = typer.Option(BrowserEngine.chromium, '--browser', help='Browser engine to drive'),
    channel: str | None = typer.Option(
        None, '--channel', help='Chromium distribution channel (chrome, msedge, ...)'
    ),
    headless: bool = typer.Option(False, '--headless/--headed', help='Run the browser without a window'),
    user_data_dir: pathlib.Path | None = typer.Option(
        None, '--user-data-dir', help='Persistent profile directory (default: ephemeral)'
    ),
    cdp_endpoint: str | None = typer.Option(
        None, '--cdp-endpoint', help='Connect to a running Chromium over CDP instead of launching'
    ),
    output_dir: pathlib.Path | None = typer.Option(
        None, '--output-dir', help='Directory for saved PDFs (default: a temporary directory)'
    ),
    snapshot: bool = typer.Option(
        True, '--snapshot/--no-snapshot', help='Attach an accessibility snapshot to action results'
    ),
    snapshot_urls: bool = typer.Option(False, '--snapshot-urls', help='Keep link URLs in snapshots'),
    settle_timeout: int = typer.Option(
        5000, '--settle-timeout', min=0, help='Max milliseconds to wait for the page to settle after an action'
    ),
    viewport_size: str = typer.Option('1280x720', '--viewport-size', help='Viewport as WIDTHxHEIGHT'),
    stealth: bool = typer.Option(False, '--stealth', help='Apply playwright-stealth evasions to new pages'),
) -> None:
    """Serve browser tools to an MCP client on stdin/stdout."""
    viewport_width, viewport_height = _parse_viewport_size(viewport_size)

    with contextlib.ExitStack() as stack:
        if output_dir is None:
            output_dir = pathlib.Path(stack.enter_context(tempfile.TemporaryDirectory(prefix='browser-tools-')))

        config = BrowserConfig(
            browser=browser.value,
            channel=channel,
            headless=headless,
            user_data_dir=user_data_dir,
            cdp_endpoint=cdp_endpoint,
            output_dir=output_dir,
            capture_snapshot=snapshot,
            snapshot_include_urls=snapshot_urls,
            settle_timeout_ms=settle_timeout,
            viewport_width=viewport_width,
            viewport_height=viewport_height,
            stealth=stealth,
        )

        print(f'Starting {SERVER_NAME} MCP server ({config.install_channel})', file=sys.stderr)
        asyncio.run(serve(config))


def main() -> None:
    """Console-script entry point."""
    with ErrorBoundary():
        app()


if __name__ == '__main__':
    main()
