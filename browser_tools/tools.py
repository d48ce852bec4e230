"""Tool catalog: descriptors plus handlers built on the execution harness.

Tools whose result can carry a page snapshot are factories taking
``capture_snapshot``; the server instantiates the catalog once, in snapshot or
no-snapshot mode. Every handler validates first, then obtains a tab, then
delegates to the context's ActionRunner.
"""

from __future__ import annotations

__all__ = [
    'DEFAULT_PDF_WIDTH',
    'MAX_WAIT_SECONDS',
    'Tool',
    'build_tools',
]

import asyncio
import dataclasses
import datetime
import typing
from collections.abc import Awaitable, Callable, Mapping

from browser_tools.context import BrowserContext
from browser_tools.errors import ActionFailed, NoActiveTab
from browser_tools.models import (
    ChooseFileParams,
    NavigateParams,
    NoParams,
    PressKeyParams,
    RunOptions,
    SaveAsPdfParams,
    TabCloseParams,
    TabNewParams,
    TabSelectParams,
    ToolDescriptor,
    ToolResponse,
    WaitParams,
)
from browser_tools.tab import TabHandle
from browser_tools.utils import LoggerProtocol, sanitize_for_file_path
from browser_tools.validation import validate_params

MAX_WAIT_SECONDS = 10
DEFAULT_PDF_WIDTH = 1400

type RawParams = Mapping[str, typing.Any] | None
type Handler = Callable[[BrowserContext, RawParams, LoggerProtocol], Awaitable[ToolResponse]]


@dataclasses.dataclass(frozen=True)
class Tool:
    descriptor: ToolDescriptor
    handle: Handler


async def _noop(tab: TabHandle) -> None:
    pass


# -- Navigation --


def navigate(capture_snapshot: bool) -> Tool:
    descriptor = ToolDescriptor(
        name='browser_navigate',
        title='Navigate to URL',
        description='Navigate to a URL',
        input_model=NavigateParams,
    )

    async def handle(context: BrowserContext, raw: RawParams, logger: LoggerProtocol) -> ToolResponse:
        params = validate_params(descriptor.name, NavigateParams, raw)
        tab = await context.ensure_tab(logger)
        outcome = await context.runner.run(
            tab,
            lambda tab: tab.navigate(params.url),
            RunOptions(status=f'Navigated to {params.url}', capture_snapshot=capture_snapshot),
            logger,
        )
        return ToolResponse.from_outcome(outcome)

    return Tool(descriptor, handle)


def go_back(capture_snapshot: bool) -> Tool:
    descriptor = ToolDescriptor(
        name='browser_go_back',
        title='Go Back',
        description='Go back to the previous page',
        input_model=NoParams,
    )

    async def handle(context: BrowserContext, raw: RawParams, logger: LoggerProtocol) -> ToolResponse:
        validate_params(descriptor.name, NoParams, raw)
        outcome = await context.runner.run_and_wait(
            context.current_tab(),
            lambda tab: tab.go_back(),
            RunOptions(status='Navigated back', capture_snapshot=capture_snapshot),
            logger,
        )
        return ToolResponse.from_outcome(outcome)

    return Tool(descriptor, handle)


def go_forward(capture_snapshot: bool) -> Tool:
    descriptor = ToolDescriptor(
        name='browser_go_forward',
        title='Go Forward',
        description='Go forward to the next page',
        input_model=NoParams,
    )

    async def handle(context: BrowserContext, raw: RawParams, logger: LoggerProtocol) -> ToolResponse:
        validate_params(descriptor.name, NoParams, raw)
        outcome = await context.runner.run_and_wait(
            context.current_tab(),
            lambda tab: tab.go_forward(),
            RunOptions(status='Navigated forward', capture_snapshot=capture_snapshot),
            logger,
        )
        return ToolResponse.from_outcome(outcome)

    return Tool(descriptor, handle)


# -- Input --


def press_key(capture_snapshot: bool) -> Tool:
    descriptor = ToolDescriptor(
        name='browser_press_key',
        title='Press Keyboard Key',
        description='Press a key on the keyboard',
        input_model=PressKeyParams,
    )

    async def handle(context: BrowserContext, raw: RawParams, logger: LoggerProtocol) -> ToolResponse:
        params = validate_params(descriptor.name, PressKeyParams, raw)
        outcome = await context.runner.run_and_wait(
            context.current_tab(),
            lambda tab: tab.press_key(params.key),
            RunOptions(status=f'Pressed key {params.key}', capture_snapshot=capture_snapshot),
            logger,
        )
        return ToolResponse.from_outcome(outcome)

    return Tool(descriptor, handle)


def choose_file(capture_snapshot: bool) -> Tool:
    descriptor = ToolDescriptor(
        name='browser_choose_file',
        title='Choose Files',
        description='Choose one or multiple files to upload',
        input_model=ChooseFileParams,
    )

    async def handle(context: BrowserContext, raw: RawParams, logger: LoggerProtocol) -> ToolResponse:
        params = validate_params(descriptor.name, ChooseFileParams, raw)
        outcome = await context.runner.run_and_wait(
            context.current_tab(),
            lambda tab: tab.submit_file_chooser(params.paths),
            RunOptions(
                status=f'Chose files {", ".join(params.paths)}',
                capture_snapshot=capture_snapshot,
                no_clear_file_chooser=True,
            ),
            logger,
        )
        return ToolResponse.from_outcome(outcome)

    return Tool(descriptor, handle)


# -- Fixed tools --


async def _wait(context: BrowserContext, raw: RawParams, logger: LoggerProtocol) -> ToolResponse:
    params = validate_params('browser_wait', WaitParams, raw)
    await asyncio.sleep(min(params.time, MAX_WAIT_SECONDS))
    return ToolResponse.from_text(f'Waited for {params.time:g} seconds')


async def _save_as_pdf(context: BrowserContext, raw: RawParams, logger: LoggerProtocol) -> ToolResponse:
    params = validate_params('browser_save_as_pdf', SaveAsPdfParams, raw)
    tab = context.current_tab()

    width = params.width or DEFAULT_PDF_WIDTH
    timestamp = datetime.datetime.now(datetime.UTC).isoformat(timespec='milliseconds').replace('+00:00', 'Z')
    file_name = params.file_name or f'page-{timestamp}'

    output_dir = context.config.output_dir
    try:
        output_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise ActionFailed(f'Cannot create PDF output directory {output_dir}: {e}') from e
    file_path = output_dir / sanitize_for_file_path(f'{file_name}.pdf')

    outcome = await context.runner.run(
        tab,
        lambda tab: tab.save_as_pdf(file_path, width),
        RunOptions(status=f'Saved as {file_path} with width set to {width}px.', capture_snapshot=False),
        logger,
    )
    return ToolResponse.from_outcome(outcome)


async def _close(context: BrowserContext, raw: RawParams, logger: LoggerProtocol) -> ToolResponse:
    validate_params('browser_close', NoParams, raw)
    await context.close(logger)
    return ToolResponse.from_text('Page closed')


async def _install(context: BrowserContext, raw: RawParams, logger: LoggerProtocol) -> ToolResponse:
    validate_params('browser_install', NoParams, raw)
    channel = await context.install(logger)
    return ToolResponse.from_text(f'Browser {channel} installed')


WAIT = Tool(
    ToolDescriptor(
        name='browser_wait',
        title='Wait',
        description=f'Wait for a specified time in seconds (at most {MAX_WAIT_SECONDS})',
        input_model=WaitParams,
        read_only=True,
    ),
    _wait,
)

SAVE_AS_PDF = Tool(
    ToolDescriptor(
        name='browser_save_as_pdf',
        title='Save as PDF',
        description='Save page as PDF',
        input_model=SaveAsPdfParams,
    ),
    _save_as_pdf,
)

CLOSE = Tool(
    ToolDescriptor(
        name='browser_close',
        title='Close Browser',
        description='Close the page',
        input_model=NoParams,
        destructive=True,
    ),
    _close,
)

INSTALL = Tool(
    ToolDescriptor(
        name='browser_install',
        title='Install Browser',
        description=(
            'Install the browser specified in the config. '
            'Call this if you get an error about the browser not being installed.'
        ),
        input_model=NoParams,
    ),
    _install,
)


# -- Snapshot and tabs --


async def _snapshot(context: BrowserContext, raw: RawParams, logger: LoggerProtocol) -> ToolResponse:
    validate_params('browser_snapshot', NoParams, raw)
    outcome = await context.runner.run(
        context.current_tab(),
        _noop,
        RunOptions(status='', capture_snapshot=True),
        logger,
    )
    return ToolResponse.from_outcome(outcome)


SNAPSHOT = Tool(
    ToolDescriptor(
        name='browser_snapshot',
        title='Page Snapshot',
        description='Capture accessibility snapshot of the current page, this is better than screenshot',
        input_model=NoParams,
        read_only=True,
    ),
    _snapshot,
)


async def _tab_list(context: BrowserContext, raw: RawParams, logger: LoggerProtocol) -> ToolResponse:
    validate_params('browser_tab_list', NoParams, raw)
    tabs = context.tabs()
    if not tabs:
        return ToolResponse.from_text('No open tabs. Use the "browser_navigate" tool to navigate to a page first.')

    lines = ['### Open tabs']
    for index, tab in enumerate(tabs, start=1):
        current = ' (current)' if context.is_current(tab) else ''
        lines.append(f'- {index}:{current} [{await tab.title()}] ({tab.page.url})')
    return ToolResponse.from_text('\n'.join(lines))


TAB_LIST = Tool(
    ToolDescriptor(
        name='browser_tab_list',
        title='List Tabs',
        description='List browser tabs',
        input_model=NoParams,
        read_only=True,
    ),
    _tab_list,
)


def tab_new(capture_snapshot: bool) -> Tool:
    descriptor = ToolDescriptor(
        name='browser_tab_new',
        title='Open New Tab',
        description='Open a new tab',
        input_model=TabNewParams,
    )

    async def handle(context: BrowserContext, raw: RawParams, logger: LoggerProtocol) -> ToolResponse:
        params = validate_params(descriptor.name, TabNewParams, raw)
        tab = await context.new_tab(logger)
        url = params.url
        outcome = await context.runner.run(
            tab,
            (lambda tab: tab.navigate(url)) if url else _noop,
            RunOptions(
                status='Opened new tab',
                capture_snapshot=capture_snapshot,
            ),
            logger,
        )
        return ToolResponse.from_outcome(outcome)

    return Tool(descriptor, handle)


def tab_select(capture_snapshot: bool) -> Tool:
    descriptor = ToolDescriptor(
        name='browser_tab_select',
        title='Select Tab',
        description='Select a tab by index',
        input_model=TabSelectParams,
    )

    async def handle(context: BrowserContext, raw: RawParams, logger: LoggerProtocol) -> ToolResponse:
        params = validate_params(descriptor.name, TabSelectParams, raw)
        tab = await context.select_tab(params.index)
        outcome = await context.runner.run(
            tab,
            _noop,
            RunOptions(status=f'Selected tab {params.index}', capture_snapshot=capture_snapshot),
            logger,
        )
        return ToolResponse.from_outcome(outcome)

    return Tool(descriptor, handle)


def tab_close(capture_snapshot: bool) -> Tool:
    descriptor = ToolDescriptor(
        name='browser_tab_close',
        title='Close Tab',
        description='Close a tab',
        input_model=TabCloseParams,
        destructive=True,
    )

    async def handle(context: BrowserContext, raw: RawParams, logger: LoggerProtocol) -> ToolResponse:
        params = validate_params(descriptor.name, TabCloseParams, raw)
        await context.close_tab(params.index)
        status = f'Closed tab {params.index}' if params.index is not None else 'Closed current tab'
        try:
            tab = context.current_tab()
        except NoActiveTab:
            return ToolResponse.from_text(status)
        outcome = await context.runner.run(
            tab,
            _noop,
            RunOptions(status=status, capture_snapshot=capture_snapshot),
            logger,
        )
        return ToolResponse.from_outcome(outcome)

    return Tool(descriptor, handle)


def build_tools(capture_snapshot: bool) -> list[Tool]:
    """The full catalog for one snapshot mode."""
    tools = [
        navigate(capture_snapshot),
        go_back(capture_snapshot),
        go_forward(capture_snapshot),
        WAIT,
        press_key(capture_snapshot),
        SAVE_AS_PDF,
        CLOSE,
        choose_file(capture_snapshot),
        INSTALL,
        TAB_LIST,
        tab_new(capture_snapshot),
        tab_select(capture_snapshot),
        tab_close(capture_snapshot),
    ]
    if capture_snapshot:
        tools.insert(0, SNAPSHOT)
    return tools
