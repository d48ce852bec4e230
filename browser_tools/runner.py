"""ActionRunner: the pre/post protocol shared by every tab action.

    1. Drop a stale file chooser (unless the action is the one consuming it).
    2. Run the action; failures propagate unchanged.
    3. run_and_wait only: wait for requests started by the action to finish and,
       if the main frame navigated, for its 'load' event. Bounded by the settle
       timeout; expiry is logged and the command proceeds.
    4. Optionally capture a snapshot; capture failure means no snapshot.
"""

from __future__ import annotations

__all__ = [
    'ActionRunner',
    'TabAction',
]

import asyncio
from collections.abc import Awaitable, Callable

import yaml
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Frame, Page, Request

from browser_tools.errors import ActionFailed
from browser_tools.models import ActionOutcome, RunOptions, SnapshotData
from browser_tools.tab import TabHandle
from browser_tools.utils import LoggerProtocol

type TabAction = Callable[[TabHandle], Awaitable[object]]


class _SettleTracker:
    """Records network and main-frame navigation activity on one page."""

    def __init__(self, page: Page) -> None:
        self.page = page
        self.pending: set[Request] = set()
        self.navigated = False

    def on_request(self, request: Request) -> None:
        self.pending.add(request)

    def on_request_done(self, request: Request) -> None:
        self.pending.discard(request)

    def on_frame_navigated(self, frame: Frame) -> None:
        if frame.parent_frame is None:
            self.navigated = True

    def attach(self) -> None:
        self.page.on('request', self.on_request)
        self.page.on('requestfinished', self.on_request_done)
        self.page.on('requestfailed', self.on_request_done)
        self.page.on('framenavigated', self.on_frame_navigated)

    def detach(self) -> None:
        self.page.remove_listener('request', self.on_request)
        self.page.remove_listener('requestfinished', self.on_request_done)
        self.page.remove_listener('requestfailed', self.on_request_done)
        self.page.remove_listener('framenavigated', self.on_frame_navigated)


class ActionRunner:
    """Executes tab actions under the uniform wait/snapshot protocol.

    Args:
        settle_timeout_ms: Upper bound on the post-action settle wait.
        snapshot_include_urls: Keep ``/url`` entries in captured snapshots.
        grace_ms: Extra pause after settling, for scripts reacting to the
            final network responses.
    """

    def __init__(
        self,
        settle_timeout_ms: int,
        snapshot_include_urls: bool = False,
        grace_ms: int = 1000,
    ) -> None:
        self.settle_timeout_ms = settle_timeout_ms
        self.snapshot_include_urls = snapshot_include_urls
        self.grace_ms = grace_ms

    async def run(
        self,
        tab: TabHandle,
        action: TabAction,
        options: RunOptions,
        logger: LoggerProtocol,
    ) -> ActionOutcome:
        """Run ``action`` without waiting for the page to settle."""
        return await self._execute(tab, action, options, logger, wait=False)

    async def run_and_wait(
        self,
        tab: TabHandle,
        action: TabAction,
        options: RunOptions,
        logger: LoggerProtocol,
    ) -> ActionOutcome:
        """Run ``action`` and wait for network/navigation quiescence before returning."""
        return await self._execute(tab, action, options, logger, wait=True)

    async def _execute(
        self,
        tab: TabHandle,
        action: TabAction,
        options: RunOptions,
        logger: LoggerProtocol,
        wait: bool,
    ) -> ActionOutcome:
        if not options.no_clear_file_chooser:
            if tab.has_file_chooser:
                await logger.debug('Dropping stale file chooser')
            tab.clear_file_chooser()

        if wait:
            await self._run_until_settled(tab, action, logger)
        else:
            await action(tab)

        snapshot = await self._capture_snapshot(tab, logger) if options.capture_snapshot else None
        return ActionOutcome(status=options.status, snapshot=snapshot)

    async def _run_until_settled(self, tab: TabHandle, action: TabAction, logger: LoggerProtocol) -> None:
        tracker = _SettleTracker(tab.page)
        tracker.attach()
        try:
            await action(tab)
            await self._settle(tracker, logger)
        finally:
            tracker.detach()

    async def _settle(self, tracker: _SettleTracker, logger: LoggerProtocol) -> None:
        page = tracker.page
        try:
            async with asyncio.timeout(self.settle_timeout_ms / 1000):
                while tracker.pending and not page.is_closed():
                    await asyncio.sleep(0.05)
                if tracker.navigated and not page.is_closed():
                    await page.wait_for_load_state('load')
        except TimeoutError:
            await logger.warning(
                f'Page did not settle within {self.settle_timeout_ms}ms '
                f'({len(tracker.pending)} requests pending), continuing'
            )
            return
        except PlaywrightError as e:
            await logger.warning(f'Settle wait interrupted: {e}')
            return

        if self.grace_ms and not page.is_closed():
            await asyncio.sleep(self.grace_ms / 1000)

    async def _capture_snapshot(self, tab: TabHandle, logger: LoggerProtocol) -> SnapshotData | None:
        try:
            return await tab.snapshot(include_urls=self.snapshot_include_urls)
        except (ActionFailed, yaml.YAMLError) as e:
            await logger.warning(f'Snapshot capture failed: {e}')
            return None
