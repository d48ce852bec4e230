"""Pydantic models for the browser tools MCP server."""

from __future__ import annotations

import os
import pathlib
import typing
import urllib.parse

import pydantic

__all__ = [
    'StrictModel',
    'BrowserName',
    'BrowserConfig',
    'NavigateParams',
    'NoParams',
    'WaitParams',
    'PressKeyParams',
    'SaveAsPdfParams',
    'ChooseFileParams',
    'TabNewParams',
    'TabSelectParams',
    'TabCloseParams',
    'ToolDescriptor',
    'RunOptions',
    'SnapshotData',
    'ActionOutcome',
    'TextContent',
    'ToolResponse',
]

type BrowserName = typing.Literal['chromium', 'firefox', 'webkit']

URL_PREFIXES = ('http://', 'https://', 'file://', 'about:', 'data:')


def _check_url(url: str) -> str:
    if not url.startswith(URL_PREFIXES):
        raise ValueError('URL must start with http://, https://, file://, about:, or data:')
    if url.startswith(('http://', 'https://')) and not urllib.parse.urlsplit(url).netloc:
        raise ValueError('URL has no host')
    return url


class StrictModel(pydantic.BaseModel):
    """Base model with strict validation - no extra fields, all fields required unless Optional."""

    model_config = pydantic.ConfigDict(
        extra='forbid',
        strict=True,
        frozen=True,
    )


# -- Configuration --


class BrowserConfig(StrictModel):
    """Process-wide browser settings, built once by the CLI."""

    browser: BrowserName = 'chromium'
    channel: str | None = None  # 'chrome', 'msedge', ... (chromium only)
    headless: bool = False
    user_data_dir: pathlib.Path | None = None  # None = ephemeral context
    cdp_endpoint: str | None = None  # Connect instead of launching
    output_dir: pathlib.Path
    capture_snapshot: bool = True
    snapshot_include_urls: bool = False
    settle_timeout_ms: int = pydantic.Field(5000, ge=0)
    viewport_width: int = pydantic.Field(1280, gt=0)
    viewport_height: int = pydantic.Field(720, gt=0)
    stealth: bool = False

    @property
    def launch_channel(self) -> str | None:
        """Distribution channel actually launched. Only chromium has channels."""
        return self.channel if self.browser == 'chromium' else None

    @property
    def install_channel(self) -> str:
        """Name passed to ``playwright install``: the browser that launches."""
        return self.launch_channel or self.browser


# -- Tool input shapes --


class NavigateParams(StrictModel):
    url: str = pydantic.Field(description='The URL to navigate to')

    @pydantic.field_validator('url')
    @classmethod
    def _plausible_url(cls, url: str) -> str:
        return _check_url(url)


class NoParams(StrictModel):
    """Input shape for tools that take no arguments."""


class WaitParams(StrictModel):
    time: float = pydantic.Field(ge=0, description='The time to wait in seconds')


class PressKeyParams(StrictModel):
    key: str = pydantic.Field(
        min_length=1,
        description='Name of the key to press or a character to generate, such as `ArrowLeft` or `a`',
    )


class SaveAsPdfParams(StrictModel):
    model_config = pydantic.ConfigDict(populate_by_name=True)

    width: int | None = pydantic.Field(
        None,
        gt=0,
        description='The width of the PDF in pixels. Defaults to 1400 if not set (e.g. 800).',
    )
    file_name: str | None = pydantic.Field(
        None,
        alias='fileName',
        min_length=1,
        description='The desired filename for the PDF output. If not provided, it defaults to "page-<timestamp>".',
    )


class ChooseFileParams(StrictModel):
    paths: list[str] = pydantic.Field(
        min_length=1,
        description='The absolute paths to the files to upload. Can be a single file or multiple files.',
    )

    @pydantic.field_validator('paths')
    @classmethod
    def _absolute_paths(cls, paths: list[str]) -> list[str]:
        relative = [path for path in paths if not os.path.isabs(path)]
        if relative:
            raise ValueError(f'Paths must be absolute: {", ".join(relative)}')
        return paths


class TabNewParams(StrictModel):
    url: str | None = pydantic.Field(
        None,
        description='The URL to navigate to in the new tab. If omitted, the tab stays blank.',
    )

    @pydantic.field_validator('url')
    @classmethod
    def _plausible_url(cls, url: str | None) -> str | None:
        return url if url is None else _check_url(url)


class TabSelectParams(StrictModel):
    index: int = pydantic.Field(ge=1, description='The index of the tab to select (1-based)')


class TabCloseParams(StrictModel):
    index: int | None = pydantic.Field(
        None,
        ge=1,
        description='The index of the tab to close (1-based). Closes the current tab if not provided.',
    )


# -- Registry and runner --


class ToolDescriptor(StrictModel):
    """Immutable tool declaration. Identity is ``name``."""

    name: str
    title: str
    description: str
    input_model: type[StrictModel]
    read_only: bool = False
    destructive: bool = False

    @property
    def input_schema(self) -> dict[str, typing.Any]:
        return self.input_model.model_json_schema()


class RunOptions(StrictModel):
    status: str
    capture_snapshot: bool
    no_clear_file_chooser: bool = False


class SnapshotData(StrictModel):
    """Point-in-time page state captured after an action."""

    url: str
    title: str
    aria: str  # YAML accessibility tree

    def to_text(self) -> str:
        return '\n'.join(
            [
                f'- Page URL: {self.url}',
                f'- Page Title: {self.title}',
                '- Page Snapshot',
                '```yaml',
                self.aria.rstrip('\n'),
                '```',
            ]
        )


class ActionOutcome(StrictModel):
    status: str
    snapshot: SnapshotData | None = None


# -- Response envelope --


class TextContent(StrictModel):
    type: typing.Literal['text'] = 'text'
    text: str


class ToolResponse(StrictModel):
    """Caller-visible envelope: ordered text content."""

    content: tuple[TextContent, ...]
    is_error: bool = False

    @classmethod
    def from_text(cls, text: str, *, is_error: bool = False) -> ToolResponse:
        return cls(content=(TextContent(text=text),), is_error=is_error)

    @classmethod
    def from_outcome(cls, outcome: ActionOutcome) -> ToolResponse:
        parts = [outcome.status] if outcome.status else []
        if outcome.snapshot is not None:
            parts.append(outcome.snapshot.to_text())
        return cls.from_text('\n\n'.join(parts))

    @classmethod
    def from_error(cls, error: Exception) -> ToolResponse:
        return cls.from_text(str(error), is_error=True)

    def render(self) -> str:
        """All text content joined, as a caller would read it."""
        return '\n'.join(item.text for item in self.content)
