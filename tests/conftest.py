"""Shared fixtures: a browser context wired to the fake Playwright surface."""

from __future__ import annotations

from pathlib import Path

import pytest

from browser_tools.context import BrowserContext
from browser_tools.models import BrowserConfig
from browser_tools.runner import ActionRunner
from tests import fakes


@pytest.fixture
def config(tmp_path: Path) -> BrowserConfig:
    return BrowserConfig(output_dir=tmp_path / 'output', settle_timeout_ms=200)


@pytest.fixture
def logger() -> fakes.RecordingLogger:
    return fakes.RecordingLogger()


@pytest.fixture
def launcher() -> fakes.FakeLauncher:
    return fakes.FakeLauncher()


@pytest.fixture
def runner() -> ActionRunner:
    return ActionRunner(settle_timeout_ms=200, grace_ms=0)


@pytest.fixture
def context(config: BrowserConfig, launcher: fakes.FakeLauncher, runner: ActionRunner) -> BrowserContext:
    return BrowserContext(config, launcher, runner)
