"""Parameter validation against a tool's declared input model."""

from __future__ import annotations

__all__ = [
    'validate_params',
]

import typing
from collections.abc import Mapping

import pydantic
from pydantic_core import ErrorDetails

from browser_tools.errors import FieldError, InvalidParams
from browser_tools.models import StrictModel

_M = typing.TypeVar('_M', bound=StrictModel)


def validate_params(tool: str, model: type[_M], raw: Mapping[str, typing.Any] | None) -> _M:
    """Validate ``raw`` against ``model`` or raise ``InvalidParams``.

    Strict: extra fields, missing required fields, wrong primitive kinds and
    out-of-range values are all rejected. ``None`` means no arguments.
    """
    if raw is None:
        raw = {}
    if not isinstance(raw, Mapping):
        raise InvalidParams(tool, [FieldError('(root)', f'expected an object, got {type(raw).__name__}')])

    try:
        return model.model_validate(dict(raw))
    except pydantic.ValidationError as e:
        raise InvalidParams(tool, [_field_error(error) for error in e.errors()]) from e


def _field_error(error: ErrorDetails) -> FieldError:
    path = '.'.join(str(part) for part in error['loc']) or '(root)'
    message = error['msg']
    # "Value error, URL must start with ..." -> "URL must start with ..."
    return FieldError(path, message.removeprefix('Value error, '))
