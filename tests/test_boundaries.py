"""Tests for LibraryBoundary and ErrorBoundary.

LibraryBoundary is exercised against Playwright's real exception types, the
way ``TabHandle`` and ``BrowserContext`` use it.
"""

from __future__ import annotations

import asyncio

import pytest
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from browser_tools.boundaries import ErrorBoundary, LibraryBoundary
from browser_tools.errors import ActionFailed, NoActiveTab


class TestLibraryBoundary:
    @pytest.mark.parametrize(
        'exception, message',
        [
            (PlaywrightError, 'Target page, context or browser has been closed'),
            (PlaywrightTimeoutError, 'Timeout 30000ms exceeded.'),
            (ValueError, 'not a valid key'),
        ],
    )
    async def test_translates_exception(self, exception: type[Exception], message: str) -> None:
        with pytest.raises(ActionFailed) as exc_info:
            async with LibraryBoundary(ActionFailed):
                raise exception(message)
        assert exc_info.value.args == (message,)
        assert isinstance(exc_info.value.__cause__, exception)

    async def test_double_wrap_guard(self) -> None:
        original = ActionFailed('already translated')
        with pytest.raises(ActionFailed) as exc_info:
            async with LibraryBoundary(ActionFailed):
                raise original
        assert exc_info.value is original

    async def test_other_tool_errors_are_translated(self) -> None:
        with pytest.raises(ActionFailed) as exc_info:
            async with LibraryBoundary(ActionFailed):
                raise NoActiveTab()
        assert isinstance(exc_info.value.__cause__, NoActiveTab)

    @pytest.mark.parametrize(
        'exception',
        [KeyboardInterrupt, SystemExit, asyncio.CancelledError, StopIteration, StopAsyncIteration],
    )
    async def test_system_and_control_flow_pass_through(self, exception: type[BaseException]) -> None:
        with pytest.raises(exception):
            async with LibraryBoundary(ActionFailed):
                raise exception

    async def test_preserves_traceback(self) -> None:
        async def page_goto() -> None:
            raise PlaywrightError('net::ERR_CONNECTION_REFUSED')

        with pytest.raises(ActionFailed) as exc_info:
            async with LibraryBoundary(ActionFailed):
                await page_goto()

        tb = exc_info.value.__traceback__
        assert tb is not None
        while tb.tb_next:
            tb = tb.tb_next
        assert tb.tb_frame.f_code.co_name == 'page_goto'

    async def test_shared_instance_is_reusable(self) -> None:
        boundary = LibraryBoundary(ActionFailed)
        async with boundary:
            pass
        with pytest.raises(ActionFailed, match='Execution context was destroyed'):
            async with boundary:
                raise PlaywrightError('Execution context was destroyed')


class TestErrorBoundary:
    def test_reports_traceback_and_exits_1(self, capsys: pytest.CaptureFixture[str]) -> None:
        with pytest.raises(SystemExit) as exc_info, ErrorBoundary():
            raise RuntimeError('server crashed')
        assert exc_info.value.code == 1
        err = capsys.readouterr().err
        assert 'Traceback' in err
        assert 'RuntimeError: server crashed' in err

    def test_clean_exit_is_untouched(self, capsys: pytest.CaptureFixture[str]) -> None:
        with ErrorBoundary():
            pass
        assert capsys.readouterr().err == ''

    @pytest.mark.parametrize('exception', [KeyboardInterrupt, SystemExit])
    def test_system_exceptions_pass_through(self, exception: type[BaseException]) -> None:
        with pytest.raises(exception), ErrorBoundary():
            raise exception
