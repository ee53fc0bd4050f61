"""
Utility functions for the stepweave runtime.
"""

from __future__ import annotations

import os
import sys
from typing import Any


_PACKAGE_DIR = os.path.dirname(os.path.abspath(__file__))


def _is_stepweave_internal(path: str) -> bool:
    return os.path.abspath(path).startswith(_PACKAGE_DIR + os.sep)


# STEPWEAVE_DEBUG=1 records where each step was declared.
DEBUG_STEPS = os.environ.get("STEPWEAVE_DEBUG", "").lower() in ("1", "true", "yes")


def describe_callable(fn: Any) -> str:
    """Return ``module.qualname`` for ``fn``, falling back to its repr."""

    if not callable(fn):
        return repr(fn)
    qualname = getattr(fn, "__qualname__", None) or getattr(fn, "__name__", None)
    if qualname is None:
        return type(fn).__name__
    module = getattr(fn, "__module__", None)
    if not module or module == "builtins":
        return qualname
    return f"{module}.{qualname}"


def capture_definition_site(skip_frames: int = 2) -> str | None:
    """
    Return ``filename:line`` of the first caller frame outside stepweave.

    Only active when ``STEPWEAVE_DEBUG`` is set; otherwise returns ``None`` so
    building step specs stays cheap.

    ``skip_frames`` is where the search starts: 2 is the frame that called
    the function calling this one.
    """

    if not DEBUG_STEPS:
        return None
    try:
        frame = sys._getframe(skip_frames)
    except ValueError:
        return None

    while frame is not None and _is_stepweave_internal(frame.f_code.co_filename):
        frame = frame.f_back
    if frame is None:
        return None
    return f"{frame.f_code.co_filename}:{frame.f_lineno}"


__all__ = [
    "DEBUG_STEPS",
    "capture_definition_site",
    "describe_callable",
]
