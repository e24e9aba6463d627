"""Base abstractions for the controller north-bound interface (NBI)."""
import os
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Optional

if TYPE_CHECKING:
    from ..reconcile.schema import InterfaceObservedState

logger = logging.getLogger(__name__)


class ExecutionError(Exception):
    """The executor rejected or failed an intent."""

    def __init__(
        self,
        message: str,
        intent: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.intent = intent
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class LoadError(Exception):
    """Fetching the observed interface state failed."""
    pass


@dataclass
class ControllerConfig:
    """Connection settings for an NBI controller."""
    base_url: str
    token: Optional[str] = None
    token_env: str = "IFSYNC_NBI_TOKEN"
    timeout: float = 30
    verify_ssl: bool = True
    discovery_retries: int = 3
    headers: dict[str, str] = field(default_factory=dict)

    def get_token(self) -> str:
        """Get bearer token from config or environment variable."""
        if self.token:
            return self.token
        return os.environ.get(self.token_env, "")


class IntentExecutor(ABC):
    """Executes one intent on one node."""

    @abstractmethod
    async def execute(
        self,
        intent: str,
        node_id: str,
        params: dict[str, Any]
    ) -> Any:
        """Execute an intent.

        Returns:
            Executor-specific result payload

        Raises:
            ExecutionError: If the intent was rejected or failed
        """
        pass


class InterfaceSource(ABC):
    """Supplies observed interface state."""

    @abstractmethod
    async def discover_interfaces(self, node_id: str) -> list["InterfaceObservedState"]:
        """Discover all interfaces of a node.

        Raises:
            LoadError: If discovery failed
        """
        pass

    async def get_interface(self, node_id: str, name: str) -> "InterfaceObservedState":
        """Get one interface by name.

        Raises:
            LoadError: If discovery failed or the interface does not exist
        """
        for interface in await self.discover_interfaces(node_id):
            if interface.name == name:
                return interface
        raise LoadError(f"Interface {name} not found on {node_id}")
