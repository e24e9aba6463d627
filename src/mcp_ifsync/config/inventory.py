"""Device inventory management from YAML configuration."""
import logging
import os
from pathlib import Path
from typing import Optional

import yaml

from ..nbi.base import ControllerConfig
from .settings import ReconcilerSettings

logger = logging.getLogger(__name__)


class DeviceInventory:
    """Maps inventory device ids to controller node ids.

    ```yaml
    controller:
      base_url: http://controller:8000
      token_env: IFSYNC_NBI_TOKEN

    defaults:
      vendor: CISCO

    devices:
      core-r1:
        node_id: R1
        name: "Core Router 1"

    groups:
      core:
        - core-r1
    ```

    A device may carry its own `controller:` block to override the
    top-level one.
    """

    def __init__(
        self,
        config_path: Optional[str] = None,
        settings: Optional[ReconcilerSettings] = None,
    ):
        self.settings = settings or ReconcilerSettings.from_env()
        self.config_path = config_path or os.environ.get("IFSYNC_CONFIG") or self._find_config()
        self._config: dict = {}
        self._load_config()

    def _find_config(self) -> str:
        """Find the devices.yaml config file."""
        search_paths = [
            Path.cwd() / "configs" / "devices.yaml",
            Path.cwd() / "devices.yaml",
            Path.home() / ".config" / "ifsync" / "devices.yaml",
            Path("/etc/ifsync/devices.yaml"),
        ]

        for path in search_paths:
            if path.exists():
                return str(path)

        raise FileNotFoundError(
            "Could not find devices.yaml. Create one in ./configs/devices.yaml"
        )

    def _load_config(self) -> None:
        """Load the YAML configuration."""
        with open(self.config_path, encoding="utf-8") as f:
            self._config = yaml.safe_load(f) or {}

        defaults = self._config.get("defaults", {})
        devices = self._config.get("devices") or {}
        for device_id, device_config in devices.items():
            if device_config is None:
                device_config = devices[device_id] = {}
            for key, value in defaults.items():
                if key not in device_config:
                    device_config[key] = value
            # node_id defaults to the inventory id
            device_config.setdefault("node_id", device_id)
        self._config["devices"] = devices

        self._validate_groups()
        logger.debug(f"Loaded {len(devices)} devices from {self.config_path}")

    def get_device_ids(self) -> list[str]:
        """Get all device IDs."""
        return list(self._config.get("devices", {}).keys())

    def get_device_config(self, device_id: str) -> dict:
        """Get raw config for a device."""
        devices = self._config.get("devices", {})
        if device_id not in devices:
            raise KeyError(f"Unknown device: {device_id}")
        return devices[device_id]

    def get_node_id(self, device_id: str) -> str:
        """Get the controller node id of a device."""
        return str(self.get_device_config(device_id)["node_id"])

    def get_controller_config(self, device_id: Optional[str] = None) -> ControllerConfig:
        """
        Build controller settings for a device.

        Precedence: device `controller:` block, top-level `controller:`
        block, then environment settings.
        """
        merged = dict(self._config.get("controller") or {})
        if device_id is not None:
            merged.update(self.get_device_config(device_id).get("controller") or {})

        return ControllerConfig(
            base_url=merged.get("base_url", self.settings.nbi_url),
            token=merged.get("token", self.settings.nbi_token),
            token_env=merged.get("token_env", "IFSYNC_NBI_TOKEN"),
            timeout=float(merged.get("timeout", self.settings.http_timeout)),
            verify_ssl=bool(merged.get("verify_ssl", True)),
            discovery_retries=int(merged.get("discovery_retries", self.settings.discovery_retries)),
            headers=dict(merged.get("headers") or {}),
        )

    # === Group Management ===

    def _validate_groups(self) -> None:
        """Validate that all group members reference valid devices."""
        groups = self._config.get("groups", {})
        devices = self._config.get("devices", {})

        for group_name, members in groups.items():
            if not isinstance(members, list):
                logger.warning(f"Group '{group_name}' should be a list of device IDs")
                continue
            for device_id in members:
                if device_id not in devices:
                    logger.warning(
                        f"Group '{group_name}' references unknown device: {device_id}"
                    )

    def get_group_members(self, group_name: str) -> list[str]:
        """Get device IDs in a group.

        Raises:
            KeyError: If group doesn't exist
        """
        groups = self._config.get("groups", {})
        if group_name not in groups:
            raise KeyError(f"Unknown group: {group_name}")
        return list(groups[group_name])

    def get_device_groups(self, device_id: str) -> list[str]:
        """Get all groups a device belongs to."""
        groups = []
        for group_name, members in self._config.get("groups", {}).items():
            if device_id in members:
                groups.append(group_name)
        return groups
