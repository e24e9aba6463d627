"""Device inventory and runtime settings."""
from .inventory import DeviceInventory
from .settings import ReconcilerSettings

__all__ = ["DeviceInventory", "ReconcilerSettings"]
