"""Describe arbitrary values, including their types and shared references"""
from __future__ import annotations

from importlib import metadata

from . import config
from .hooks import REGISTRY, Registry, register, set_hook
from .nodes import Kind, Node
from .render import describe
from .tokens import CLASSIC, DEFAULT, Tokens
from .utils import DescribeWarning

# https://packaging.python.org/en/latest/guides/single-sourcing-package-version/
__version__ = metadata.version(__name__)

__all__ = (
    "describe",
    "config",
    "register",
    "set_hook",
    "Registry",
    "REGISTRY",
    "Kind",
    "Node",
    "Tokens",
    "DEFAULT",
    "CLASSIC",
    "DescribeWarning",
)
