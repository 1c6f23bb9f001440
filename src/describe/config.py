"""``describe.config``: Process wide switches
==========================================

The switches are plain module attributes; they are read every time
:func:`describe.describe` is called so they can be flipped at any point::

    >>> from describe import config
    >>> config.PANIC_ON_ERROR
    False
"""

from __future__ import annotations

from typing import Final

#: Re-raise errors instead of returning an error string. This is only useful
#: when debugging this library or a custom hook.
PANIC_ON_ERROR: bool = False

#: Allow :mod:`describe.capability` to look at values that aren't reachable
#: via the public API of their type (e.g.: the mapping behind a
#: :class:`types.MappingProxyType`). This switch does nothing on interpreters
#: where the capability isn't supported.
ENABLE_UNSAFE_OPERATIONS: bool = True

#: Largest accepted indentation step.
MAX_INDENT: Final = 32
