"""TabHandle: one controllable Playwright page.

Owns the page's pending file chooser and its closed/open lifecycle. Every
Playwright call runs inside a library boundary so failures surface as
``ActionFailed``.
"""

from __future__ import annotations

__all__ = [
    'TabHandle',
]

import contextlib
import pathlib
import typing
from collections.abc import Callable, Sequence

import yaml
from playwright.async_api import FileChooser, Page
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from browser_tools.boundaries import LibraryBoundary
from browser_tools.errors import ActionFailed
from browser_tools.models import SnapshotData

playwright_calls = LibraryBoundary(ActionFailed)

SCROLL_HEIGHT_SCRIPT = """() => Math.max(
    document.body ? document.body.scrollHeight : 0,
    document.documentElement.scrollHeight
)"""


def _remove_url_fields(node: typing.Any) -> typing.Any:
    """Recursively remove /url entries from parsed ARIA YAML.

    A node whose only children were /url entries collapses to its bare name,
    so ``link "Docs": [/url: ...]`` becomes ``link "Docs"``.
    """
    if isinstance(node, dict):
        filtered = {k: _remove_url_fields(v) for k, v in node.items() if k != '/url'}
        if not filtered:
            return None
        if len(filtered) == 1:
            ((key, value),) = filtered.items()
            if value in (None, [], {}):
                return key
        return filtered
    elif isinstance(node, list):
        filtered_items = [_remove_url_fields(item) for item in node]
        return [item for item in filtered_items if item is not None]
    else:
        return node


class TabHandle:
    """A single browser page and its interaction surface.

    Once closed (by ``close()`` or by the page itself), every action raises
    ``ActionFailed``.
    """

    def __init__(
        self,
        page: Page,
        on_close: Callable[[TabHandle], None] | None = None,
        load_timeout_ms: float = 5000,
    ) -> None:
        self.page = page
        self.load_timeout_ms = load_timeout_ms
        self._file_chooser: FileChooser | None = None
        self._closed = False
        self._on_close = on_close
        page.on('filechooser', self._on_file_chooser)
        page.on('close', self._on_page_close)

    # -- Lifecycle --

    @property
    def is_closed(self) -> bool:
        return self._closed or self.page.is_closed()

    async def close(self) -> None:
        """Close the page. Closing a closed tab is a no-op."""
        if self.is_closed:
            self._mark_closed()
            return
        async with playwright_calls:
            await self.page.close()
        self._mark_closed()

    def _on_page_close(self, page: Page) -> None:
        self._mark_closed()

    def _mark_closed(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._file_chooser = None
        if self._on_close is not None:
            self._on_close(self)

    def _ensure_open(self) -> None:
        if self.is_closed:
            raise ActionFailed('Tab is closed. Use the "browser_navigate" tool to open a new page.')

    # -- File chooser --

    def _on_file_chooser(self, chooser: FileChooser) -> None:
        self._file_chooser = chooser

    @property
    def has_file_chooser(self) -> bool:
        return self._file_chooser is not None

    def clear_file_chooser(self) -> None:
        self._file_chooser = None

    async def submit_file_chooser(self, paths: Sequence[str]) -> None:
        self._ensure_open()
        if self._file_chooser is None:
            raise ActionFailed('No file chooser visible')
        async with playwright_calls:
            await self._file_chooser.set_files(list(paths))
        self._file_chooser = None

    # -- Primitive actions --

    async def navigate(self, url: str) -> None:
        self._ensure_open()
        async with playwright_calls:
            await self.page.goto(url, wait_until='domcontentloaded')
            # Cap load wait; some pages never fire 'load' (long-polling, streaming)
            with contextlib.suppress(PlaywrightTimeoutError):
                await self.page.wait_for_load_state('load', timeout=self.load_timeout_ms)

    async def go_back(self) -> None:
        self._ensure_open()
        async with playwright_calls:
            await self.page.go_back()

    async def go_forward(self) -> None:
        self._ensure_open()
        async with playwright_calls:
            await self.page.go_forward()

    async def press_key(self, key: str) -> None:
        self._ensure_open()
        async with playwright_calls:
            await self.page.keyboard.press(key)

    async def save_as_pdf(self, path: pathlib.Path, width: int) -> int:
        """Export the whole page as one PDF page ``width`` pixels wide.

        The viewport is resized to ``width`` first so the measured scroll height
        matches the layout being printed. Returns the measured height.
        """
        self._ensure_open()
        async with playwright_calls:
            await self.page.set_viewport_size({'width': width, 'height': 800})
            scroll_height: int = await self.page.evaluate(SCROLL_HEIGHT_SCRIPT)
            await self.page.pdf(
                path=path,
                print_background=True,
                width=f'{width}px',
                height=f'{scroll_height}px',
            )
        return scroll_height

    # -- Queries --

    async def title(self) -> str:
        self._ensure_open()
        async with playwright_calls:
            return await self.page.title()

    async def snapshot(self, include_urls: bool = False) -> SnapshotData:
        """Capture the page's ARIA tree as YAML (``/url`` entries stripped unless requested)."""
        self._ensure_open()
        async with playwright_calls:
            aria = await self.page.locator('body').aria_snapshot()
            title = await self.page.title()

        if not include_urls:
            filtered = _remove_url_fields(yaml.safe_load(aria))
            if filtered:
                aria = yaml.dump(filtered, default_flow_style=False, sort_keys=False, allow_unicode=True)
            else:
                aria = ''

        return SnapshotData(url=self.page.url, title=title, aria=aria)
