"""Runtime settings loaded from the environment.

Environment variables:
- IFSYNC_NBI_URL: Controller base URL (default: http://localhost:8000)
- IFSYNC_NBI_TOKEN: Bearer token for the controller API
- IFSYNC_INTENT_TIMEOUT: Seconds to wait for each intent (default: 30, 0 = no limit)
- IFSYNC_HTTP_TIMEOUT: HTTP timeout in seconds (default: 30)
- IFSYNC_DISCOVERY_RETRIES: Attempts for interface discovery (default: 3)
- IFSYNC_USER: User recorded in the audit log (default: system)
"""
import os
import logging
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger(__name__)

DEFAULT_NBI_URL = "http://localhost:8000"


def _env_float(name: str, default: float) -> float:
    value = os.environ.get(name)
    if value is None or value == "":
        return default
    try:
        return float(value)
    except ValueError:
        logger.warning(f"Ignoring invalid {name}={value!r}, using {default}")
        return default


@dataclass
class ReconcilerSettings:
    """Settings for the controller connection and reconciliation runs."""
    nbi_url: str = DEFAULT_NBI_URL
    nbi_token: Optional[str] = None
    intent_timeout: Optional[float] = 30.0
    http_timeout: float = 30.0
    discovery_retries: int = 3
    user: str = "system"

    @classmethod
    def from_env(cls) -> "ReconcilerSettings":
        """Load settings from environment variables."""
        intent_timeout: Optional[float] = _env_float("IFSYNC_INTENT_TIMEOUT", 30.0)
        if not intent_timeout or intent_timeout <= 0:
            intent_timeout = None

        return cls(
            nbi_url=os.environ.get("IFSYNC_NBI_URL", DEFAULT_NBI_URL),
            nbi_token=os.environ.get("IFSYNC_NBI_TOKEN") or None,
            intent_timeout=intent_timeout,
            http_timeout=_env_float("IFSYNC_HTTP_TIMEOUT", 30.0),
            discovery_retries=max(1, int(_env_float("IFSYNC_DISCOVERY_RETRIES", 3))),
            user=os.environ.get("IFSYNC_USER", "system"),
        )
