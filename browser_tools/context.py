"""BrowserContext: process-wide owner of the browser, its tabs, and the current tab.

The browser is launched lazily by the first tab request and torn down by
``close()``. The current-tab pointer is a single field written only here:
``ensure_tab``/``new_tab``/``select_tab`` assign it, ``close``/``close_tab``
(and pages closing themselves) clear or move it.
"""

from __future__ import annotations

__all__ = [
    'BrowserContext',
    'LaunchedBrowser',
    'Launcher',
    'launch_browser',
]

import asyncio
import sys
import typing
from collections.abc import Awaitable, Callable

from playwright.async_api import Browser, Page, Playwright, async_playwright
from playwright.async_api import BrowserContext as PlaywrightContext
from playwright.async_api import Error as PlaywrightError

from browser_tools.errors import ActionFailed, InstallFailed, NoActiveTab
from browser_tools.models import BrowserConfig
from browser_tools.runner import ActionRunner
from browser_tools.tab import TabHandle, playwright_calls
from browser_tools.utils import LoggerProtocol


class LaunchedBrowser:
    """Playwright driver, browser, and browsing context started together."""

    def __init__(self, playwright: Playwright | None, browser: Browser | None, context: PlaywrightContext) -> None:
        self.playwright = playwright
        self.browser = browser  # None for persistent contexts
        self.context = context

    async def close(self) -> None:
        try:
            # Closing the browser closes its contexts (or disconnects, over CDP)
            if self.browser is not None:
                await self.browser.close()
            else:
                await self.context.close()
        finally:
            if self.playwright is not None:
                await self.playwright.stop()


type Launcher = Callable[[BrowserConfig], Awaitable[LaunchedBrowser]]


async def launch_browser(config: BrowserConfig) -> LaunchedBrowser:
    """Start Playwright and open a browsing context per ``config``.

    Connects over CDP when ``cdp_endpoint`` is set, launches a persistent
    context when ``user_data_dir`` is set, otherwise launches a fresh browser
    with an ephemeral context.
    """
    playwright = await async_playwright().start()
    browser_type = getattr(playwright, config.browser)
    viewport = {'width': config.viewport_width, 'height': config.viewport_height}
    launch_options: dict[str, typing.Any] = {'headless': config.headless}
    if config.launch_channel:
        launch_options['channel'] = config.launch_channel

    try:
        if config.cdp_endpoint:
            browser = await playwright.chromium.connect_over_cdp(config.cdp_endpoint)
            context = browser.contexts[0] if browser.contexts else await browser.new_context(viewport=viewport)
            return LaunchedBrowser(playwright, browser, context)

        if config.user_data_dir:
            context = await browser_type.launch_persistent_context(
                str(config.user_data_dir),
                viewport=viewport,
                **launch_options,
            )
            return LaunchedBrowser(playwright, None, context)

        browser = await browser_type.launch(**launch_options)
        context = await browser.new_context(viewport=viewport)
        return LaunchedBrowser(playwright, browser, context)
    except BaseException:
        await playwright.stop()
        raise


class BrowserContext:
    """Tracks open tabs and the current tab. Single command at a time."""

    def __init__(
        self,
        config: BrowserConfig,
        launcher: Launcher = launch_browser,
        runner: ActionRunner | None = None,
    ) -> None:
        self.config = config
        self.runner = runner or ActionRunner(config.settle_timeout_ms, config.snapshot_include_urls)
        self._launcher = launcher
        self._browser: LaunchedBrowser | None = None
        self._tabs: list[TabHandle] = []
        self._current: TabHandle | None = None

    # -- Tabs --

    def tabs(self) -> list[TabHandle]:
        return list(self._tabs)

    def is_current(self, tab: TabHandle) -> bool:
        return tab is self._current

    async def ensure_tab(self, logger: LoggerProtocol) -> TabHandle:
        """Return the current tab, opening one (and the browser) if needed."""
        if self._current is not None and not self._current.is_closed:
            return self._current
        await self._ensure_browser(logger)
        if self._tabs:
            # Pages that came with the browser (persistent profile, CDP)
            self._current = self._tabs[-1]
            return self._current
        return await self.new_tab(logger)

    def current_tab(self) -> TabHandle:
        if self._current is None or self._current.is_closed:
            raise NoActiveTab()
        return self._current

    async def new_tab(self, logger: LoggerProtocol) -> TabHandle:
        """Open a new page and make it current."""
        launched = await self._ensure_browser(logger)
        async with playwright_calls:
            page = await launched.context.new_page()
        tab = await self._adopt(page)
        self._current = tab
        await logger.info(f'Opened tab {len(self._tabs)}')
        return tab

    async def select_tab(self, index: int) -> TabHandle:
        tab = self._tab_at(index)
        async with playwright_calls:
            await tab.page.bring_to_front()
        self._current = tab
        return tab

    async def close_tab(self, index: int | None = None) -> None:
        """Close the tab at 1-based ``index``, or the current tab."""
        tab = self.current_tab() if index is None else self._tab_at(index)
        await tab.close()

    def _tab_at(self, index: int) -> TabHandle:
        if not 1 <= index <= len(self._tabs):
            raise ActionFailed(f'Tab {index} not found ({len(self._tabs)} tabs open)')
        return self._tabs[index - 1]

    async def _adopt(self, page: Page) -> TabHandle:
        if self.config.stealth:
            from playwright_stealth.stealth import Stealth

            async with playwright_calls:
                await Stealth().apply_stealth_async(page)
        tab = TabHandle(page, on_close=self._forget_tab, load_timeout_ms=self.config.settle_timeout_ms)
        self._tabs.append(tab)
        return tab

    def _forget_tab(self, tab: TabHandle) -> None:
        if tab in self._tabs:
            self._tabs.remove(tab)
        if self._current is tab:
            self._current = self._tabs[-1] if self._tabs else None

    # -- Browser lifecycle --

    async def _ensure_browser(self, logger: LoggerProtocol) -> LaunchedBrowser:
        if self._browser is not None:
            return self._browser

        channel = self.config.install_channel
        await logger.info(f'Launching {channel}' + (' (headless)' if self.config.headless else ''))
        try:
            launched = await self._launcher(self.config)
        except PlaywrightError as e:
            if "Executable doesn't exist" in str(e):
                raise ActionFailed(
                    f'Browser "{channel}" is not installed. Call the "browser_install" tool to install it.'
                ) from e
            raise ActionFailed(f'Browser launch failed: {e}') from e

        self._browser = launched
        launched.context.on('close', lambda _: self._forget_browser(launched))
        for page in launched.context.pages:
            await self._adopt(page)
        return launched

    def _forget_browser(self, launched: LaunchedBrowser) -> None:
        # User closed the window; next ensure_tab relaunches
        if self._browser is launched:
            self._browser = None
            self._tabs = []
            self._current = None

    async def close(self, logger: LoggerProtocol) -> None:
        """Close every tab and the browser. Closing a closed context is a no-op."""
        launched, self._browser = self._browser, None
        self._tabs = []
        self._current = None
        if launched is None:
            return

        try:
            async with playwright_calls:
                await launched.close()
        except ActionFailed as e:
            await logger.warning(f'Browser teardown incomplete: {e}')
        else:
            await logger.info('Browser closed')

    async def install(self, logger: LoggerProtocol) -> str:
        """Install the configured browser via ``playwright install``. Returns the channel."""
        channel = self.config.install_channel
        await logger.info(f'Installing browser {channel}')
        try:
            process = await asyncio.create_subprocess_exec(
                sys.executable,
                '-m',
                'playwright',
                'install',
                channel,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,
            )
            output, _ = await process.communicate()
        except OSError as e:
            raise InstallFailed(f'Failed to run the Playwright installer: {e}') from e

        if process.returncode != 0:
            details = output.decode(errors='replace').strip()
            raise InstallFailed(f'Failed to install browser "{channel}" (exit code {process.returncode}):\n{details}')

        await logger.info(f'Browser {channel} installed')
        return channel
