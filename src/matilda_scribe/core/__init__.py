"""Core package exports."""

from importlib import import_module
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .cancellation import CancellationToken
    from .config import ConfigLoader, get_config

__all__ = ["CancellationToken", "ConfigLoader", "get_config"]

_LAZY_EXPORTS = {
    "CancellationToken": (".cancellation", "CancellationToken"),
    "ConfigLoader": (".config", "ConfigLoader"),
    "get_config": (".config", "get_config"),
}


def __getattr__(name):
    if name not in _LAZY_EXPORTS:
        raise AttributeError(f"module {__name__!r} has no attribute {name!r}")

    module_name, attr_name = _LAZY_EXPORTS[name]
    module = import_module(module_name, __name__)
    value = getattr(module, attr_name)
    globals()[name] = value
    return value
