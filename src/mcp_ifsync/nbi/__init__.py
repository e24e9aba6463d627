"""Controller north-bound interface: intent execution and interface discovery."""
from .base import (
    ControllerConfig,
    ExecutionError,
    IntentExecutor,
    InterfaceSource,
    LoadError,
)
from .client import NBIClient

__all__ = [
    "ControllerConfig",
    "ExecutionError",
    "IntentExecutor",
    "InterfaceSource",
    "LoadError",
    "NBIClient",
]
