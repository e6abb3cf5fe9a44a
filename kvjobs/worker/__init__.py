"""
Worker module.
Contains the handler registry and the polling worker.
"""

from kvjobs.worker.handlers import HandlerRegistry, register_builtin_handlers
from kvjobs.worker.main import Worker

__all__ = [
    "HandlerRegistry",
    "Worker",
    "register_builtin_handlers",
]
