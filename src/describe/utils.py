from __future__ import annotations

import pydoc
import warnings
from typing import Any

cram = pydoc.cram

#: Longest error message we copy into a description.
MAX_ERROR_LENGTH = 120


class DescribeWarning(UserWarning):
    """Warning category for errors that were contained inside a description.

    These are emitted when a custom hook or the whole description fails and
    the failure is replaced by a placeholder in the output. Use the standard
    warning filters to silence them or to turn them into errors.
    """


def format_error(e: BaseException) -> str:
    """One line summary of an exception

    >>> format_error(ValueError("boom"))
    'ValueError: boom'
    """
    msg = cram(str(e).replace("\n", " "), MAX_ERROR_LENGTH)
    if not msg:
        return type(e).__name__
    return f"{type(e).__name__}: {msg}"


def warn(message: str) -> None:
    # stacklevel=3 points at the caller of the public function that contained
    # the error.
    warnings.warn(message, DescribeWarning, stacklevel=3)


def default_text(v: Any) -> str:
    """The default textual form of a value.

    This is :func:`repr`, except that a failing ``__repr__`` is replaced by a
    placeholder instead of aborting the description.

    >>> default_text(1.5)
    '1.5'
    """
    try:
        return repr(v)
    except Exception as e:
        return (
            f"<describe: repr of {type(v).__name__} failed: "
            f"{format_error(e)}>"
        )
