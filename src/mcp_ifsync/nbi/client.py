"""HTTP client for the controller north-bound interface.

Implements both the intent executor and the interface discovery source:

    POST /api/v1/nbi/intent
    GET  /api/v1/nbi/intents
    GET  /api/v1/nbi/devices/{node_id}/interfaces/discover
"""
import logging
from typing import Any, Optional

import httpx

from ..reconcile.parser import ParseError, parse_discovery
from ..reconcile.schema import InterfaceObservedState
from ..utils.connection import with_retry
from ..utils.logging_config import timed
from .base import (
    ControllerConfig,
    ExecutionError,
    IntentExecutor,
    InterfaceSource,
    LoadError,
)

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1/nbi"


def _error_message(response: httpx.Response, default: str) -> str:
    """Extract the controller's error message from a failed response."""
    try:
        data = response.json()
    except ValueError:
        return f"{default} (HTTP {response.status_code})"
    if isinstance(data, dict):
        message = data.get("detail") or data.get("message")
        if message:
            return str(message)
    return f"{default} (HTTP {response.status_code})"


class NBIClient(IntentExecutor, InterfaceSource):
    """Async client for the controller NBI.

    Usage:
        async with NBIClient(ControllerConfig(base_url="http://ctl:8000")) as nbi:
            interfaces = await nbi.discover_interfaces("R1")
            await nbi.execute("interface.enable", "R1", {"interface": "Gi1"})
    """

    def __init__(
        self,
        config: ControllerConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.config = config
        self._transport = transport
        self._http: Optional[httpx.AsyncClient] = None

    @property
    def is_connected(self) -> bool:
        return self._http is not None

    async def connect(self) -> None:
        """Open the HTTP session."""
        if self._http is not None:
            return

        headers = {"Content-Type": "application/json", **self.config.headers}
        token = self.config.get_token()
        if token:
            headers["Authorization"] = f"Bearer {token}"

        self._http = httpx.AsyncClient(
            base_url=self.config.base_url.rstrip("/"),
            headers=headers,
            timeout=httpx.Timeout(self.config.timeout),
            verify=self.config.verify_ssl,
            transport=self._transport,
        )
        logger.debug(f"NBI session opened to {self.config.base_url}")

    async def close(self) -> None:
        """Close the HTTP session."""
        if self._http:
            await self._http.aclose()
            self._http = None
            logger.debug(f"NBI session to {self.config.base_url} closed")

    async def __aenter__(self):
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
        return False

    def _client(self) -> httpx.AsyncClient:
        if self._http is None:
            raise ConnectionError("NBI session not established")
        return self._http

    # Intent execution

    async def execute(
        self,
        intent: str,
        node_id: str,
        params: dict[str, Any]
    ) -> Any:
        """
        Execute an intent on a node.

        Never retried: intents are not guaranteed idempotent on the device.

        Returns:
            The "result" payload of the controller response

        Raises:
            ExecutionError: On HTTP errors, transport errors or success=false
        """
        payload = {"intent": intent, "node_id": node_id, "params": params}
        logger.info(f"Executing {intent} on {node_id}: {params}")

        try:
            response = await self._client().post(f"{API_PREFIX}/intent", json=payload)
        except httpx.HTTPError as e:
            raise ExecutionError(f"Transport error: {e}", intent=intent) from e

        if response.is_error:
            raise ExecutionError(
                _error_message(response, "Failed to execute intent"),
                intent=intent,
                details={"status_code": response.status_code},
            )

        try:
            data = response.json()
        except ValueError as e:
            raise ExecutionError("Invalid response from controller", intent=intent) from e

        if not data.get("success", False):
            error = data.get("error") or {}
            message = error.get("message") if isinstance(error, dict) else str(error)
            raise ExecutionError(
                message or "Intent rejected by controller",
                intent=intent,
                details=error if isinstance(error, dict) else {},
            )

        logger.debug(
            f"{intent} on {node_id} done "
            f"(strategy={data.get('strategy_used')}, driver={data.get('driver_used')})"
        )
        return data.get("result")

    # Discovery

    @timed("discover_interfaces")
    async def discover_interfaces(self, node_id: str) -> list[InterfaceObservedState]:
        """
        Discover the interfaces of a node.

        Transport errors are retried; HTTP errors are not.

        Raises:
            LoadError: If discovery failed or returned malformed data
        """
        fetch = with_retry(
            max_attempts=self.config.discovery_retries,
            min_wait=0.5,
            max_wait=5,
        )(self._fetch_discovery)

        try:
            response = await fetch(node_id)
        except httpx.HTTPError as e:
            raise LoadError(f"Interface discovery on {node_id} failed: {e}") from e

        if response.is_error:
            raise LoadError(
                f"Interface discovery on {node_id} failed: "
                f"{_error_message(response, 'HTTP error')}"
            )

        try:
            interfaces = parse_discovery(response.json())
        except (ValueError, ParseError) as e:
            raise LoadError(f"Invalid discovery response for {node_id}: {e}") from e

        logger.info(f"Discovered {len(interfaces)} interfaces on {node_id}")
        return interfaces

    async def _fetch_discovery(self, node_id: str) -> httpx.Response:
        return await self._client().get(
            f"{API_PREFIX}/devices/{node_id}/interfaces/discover"
        )

    # Intent catalog

    async def list_intents(self) -> dict[str, list[str]]:
        """Get supported intents grouped by category."""
        response = await self._client().get(f"{API_PREFIX}/intents")
        if response.is_error:
            raise LoadError(_error_message(response, "Failed to fetch intents"))
        return response.json().get("intents", {})
