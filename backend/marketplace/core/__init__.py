# Core package initialization
# Cross-cutting concerns: configuration, logging, errors and API helpers

from . import config, exceptions

__all__ = [
    "config",
    "exceptions",
]
