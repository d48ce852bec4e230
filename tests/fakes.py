"""A fake Playwright surface for exercising the harness without a browser.

Shaped like the parts of ``playwright.async_api`` the package touches: pages
with event emitters, a keyboard, a body locator, file choosers and a browsing
context. Every call is recorded so tests can assert on what reached the
"browser".

Usage in tests::

    from tests import fakes

    launcher = fakes.FakeLauncher()
    context = BrowserContext(config, launcher)
    tab = await context.ensure_tab(logger)
    assert launcher.context.pages[0].calls == [...]
"""

from __future__ import annotations

import typing
from collections import defaultdict
from collections.abc import Callable

from browser_tools.context import LaunchedBrowser
from browser_tools.models import BrowserConfig

EXAMPLE_ARIA = """\
- heading "Example Domain" [level=1]
- paragraph: This domain is for use in illustrative examples in documents.
- paragraph:
  - link "More information...":
    - /url: https://www.iana.org/domains/example
"""


class EventEmitter:
    def __init__(self) -> None:
        self._listeners: defaultdict[str, list[Callable[..., typing.Any]]] = defaultdict(list)

    def on(self, event: str, handler: Callable[..., typing.Any]) -> None:
        self._listeners[event].append(handler)

    def remove_listener(self, event: str, handler: Callable[..., typing.Any]) -> None:
        self._listeners[event].remove(handler)

    def listener_count(self, event: str) -> int:
        return len(self._listeners[event])

    def emit(self, event: str, payload: typing.Any) -> None:
        for handler in list(self._listeners[event]):
            handler(payload)


class FakeFrame:
    def __init__(self, parent_frame: FakeFrame | None = None) -> None:
        self.parent_frame = parent_frame


class FakeRequest:
    def __init__(self, url: str) -> None:
        self.url = url


class FakeFileChooser:
    def __init__(self) -> None:
        self.files: list[str] | None = None

    async def set_files(self, files: list[str]) -> None:
        self.files = files


class FakeKeyboard:
    def __init__(self, page: FakePage) -> None:
        self._page = page

    async def press(self, key: str) -> None:
        self._page.record('keyboard.press', key)


class FakeLocator:
    def __init__(self, page: FakePage, selector: str) -> None:
        self._page = page
        self.selector = selector

    async def aria_snapshot(self) -> str:
        self._page.record('aria_snapshot', self.selector)
        self._page.raise_if_failing('aria_snapshot')
        return self._page.aria


class FakePage(EventEmitter):
    """A page that records calls and can be told to fail specific ones."""

    def __init__(self, url: str = 'about:blank', title: str = '', aria: str = EXAMPLE_ARIA) -> None:
        super().__init__()
        self.url = url
        self.page_title = title
        self.aria = aria
        self.scroll_height = 2400
        self.main_frame = FakeFrame()
        self.keyboard = FakeKeyboard(self)
        self.calls: list[tuple[str, typing.Any]] = []
        self.failures: dict[str, Exception] = {}
        self.on_go_back: Callable[[FakePage], None] | None = None
        self._closed = False

    # -- Test controls --

    def record(self, name: str, args: typing.Any = None) -> None:
        self.calls.append((name, args))

    def raise_if_failing(self, name: str) -> None:
        if name in self.failures:
            raise self.failures[name]

    def call_names(self) -> list[str]:
        return [name for name, _ in self.calls]

    def open_file_chooser(self) -> FakeFileChooser:
        chooser = FakeFileChooser()
        self.emit('filechooser', chooser)
        return chooser

    def start_request(self, url: str) -> FakeRequest:
        request = FakeRequest(url)
        self.emit('request', request)
        return request

    def finish_request(self, request: FakeRequest) -> None:
        self.emit('requestfinished', request)

    def navigate_main_frame(self, url: str) -> None:
        self.url = url
        self.emit('framenavigated', self.main_frame)

    # -- Page API --

    def is_closed(self) -> bool:
        return self._closed

    async def close(self) -> None:
        self.record('close')
        if not self._closed:
            self._closed = True
            self.emit('close', self)

    async def goto(self, url: str, wait_until: str | None = None) -> None:
        self.record('goto', (url, wait_until))
        self.raise_if_failing('goto')
        self.url = url

    async def wait_for_load_state(self, state: str = 'load', timeout: float | None = None) -> None:
        self.record('wait_for_load_state', (state, timeout))

    async def go_back(self) -> None:
        self.record('go_back')
        self.raise_if_failing('go_back')
        if self.on_go_back is not None:
            self.on_go_back(self)

    async def go_forward(self) -> None:
        self.record('go_forward')

    async def set_viewport_size(self, viewport_size: dict[str, int]) -> None:
        self.record('set_viewport_size', viewport_size)

    async def evaluate(self, expression: str) -> typing.Any:
        self.record('evaluate', expression)
        return self.scroll_height

    async def pdf(self, **kwargs: typing.Any) -> bytes:
        self.record('pdf', kwargs)
        return b'%PDF-1.7'

    def locator(self, selector: str) -> FakeLocator:
        return FakeLocator(self, selector)

    async def title(self) -> str:
        return self.page_title

    async def bring_to_front(self) -> None:
        self.record('bring_to_front')


class FakeBrowserContext(EventEmitter):
    def __init__(self, pages: list[FakePage] | None = None) -> None:
        super().__init__()
        self.pages: list[FakePage] = list(pages or [])
        self.closed = False

    async def new_page(self) -> FakePage:
        page = FakePage()
        self.pages.append(page)
        return page

    async def close(self) -> None:
        self.closed = True
        for page in self.pages:
            await page.close()
        self.emit('close', self)


class FakeLauncher:
    """Stands in for ``launch_browser``; counts launches and keeps the last context."""

    def __init__(self, pages: list[FakePage] | None = None, error: Exception | None = None) -> None:
        self._initial_pages = pages
        self.error = error
        self.launches = 0
        self.context: FakeBrowserContext | None = None

    async def __call__(self, config: BrowserConfig) -> LaunchedBrowser:
        self.launches += 1
        if self.error is not None:
            raise self.error
        self.context = FakeBrowserContext(self._initial_pages)
        return LaunchedBrowser(None, None, self.context)  # type: ignore[arg-type]


class RecordingLogger:
    """LoggerProtocol implementation that keeps (level, message) pairs."""

    def __init__(self) -> None:
        self.records: list[tuple[str, str]] = []

    async def info(self, message: str) -> None:
        self.records.append(('info', message))

    async def debug(self, message: str) -> None:
        self.records.append(('debug', message))

    async def warning(self, message: str) -> None:
        self.records.append(('warning', message))

    async def error(self, message: str) -> None:
        self.records.append(('error', message))

    def messages(self, level: str) -> list[str]:
        return [message for record_level, message in self.records if record_level == level]
