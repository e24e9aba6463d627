"""Tests for device inventory and settings."""
import pytest

from mcp_ifsync.config.inventory import DeviceInventory
from mcp_ifsync.config.settings import ReconcilerSettings


CONFIG = """
controller:
  base_url: http://controller:8000
  token_env: TEST_NBI_TOKEN
  timeout: 15

defaults:
  vendor: CISCO

devices:
  core-r1:
    node_id: R1
    name: "Core Router 1"

  lab-r2:
    vendor: JUNIPER
    controller:
      base_url: http://lab-controller:8000
      verify_ssl: false

  edge-r3:

groups:
  core:
    - core-r1
  lab:
    - lab-r2
    - ghost
"""


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "devices.yaml"
    path.write_text(CONFIG)
    return str(path)


@pytest.fixture
def settings():
    return ReconcilerSettings(nbi_url="http://env-controller:9000", discovery_retries=5)


class TestDeviceInventory:
    """Tests for DeviceInventory class."""

    def test_load_config(self, config_file, settings):
        inv = DeviceInventory(config_file, settings)
        assert inv.get_device_ids() == ["core-r1", "lab-r2", "edge-r3"]

    def test_defaults_merged(self, config_file, settings):
        inv = DeviceInventory(config_file, settings)
        assert inv.get_device_config("core-r1")["vendor"] == "CISCO"
        # Device value wins over defaults
        assert inv.get_device_config("lab-r2")["vendor"] == "JUNIPER"

    def test_node_id(self, config_file, settings):
        inv = DeviceInventory(config_file, settings)
        assert inv.get_node_id("core-r1") == "R1"
        # Falls back to the inventory id
        assert inv.get_node_id("lab-r2") == "lab-r2"
        assert inv.get_node_id("edge-r3") == "edge-r3"

    def test_unknown_device(self, config_file, settings):
        inv = DeviceInventory(config_file, settings)
        with pytest.raises(KeyError):
            inv.get_device_config("nope")

    def test_controller_config_top_level(self, config_file, settings):
        config = DeviceInventory(config_file, settings).get_controller_config("core-r1")
        assert config.base_url == "http://controller:8000"
        assert config.token_env == "TEST_NBI_TOKEN"
        assert config.timeout == 15
        assert config.verify_ssl is True
        assert config.discovery_retries == 5

    def test_controller_config_device_override(self, config_file, settings):
        config = DeviceInventory(config_file, settings).get_controller_config("lab-r2")
        assert config.base_url == "http://lab-controller:8000"
        assert config.verify_ssl is False
        assert config.timeout == 15

    def test_controller_config_from_settings(self, tmp_path, settings):
        path = tmp_path / "devices.yaml"
        path.write_text("devices:\n  r1: {}\n")
        config = DeviceInventory(str(path), settings).get_controller_config("r1")
        assert config.base_url == "http://env-controller:9000"

    def test_config_from_env(self, config_file, settings, monkeypatch):
        monkeypatch.setenv("IFSYNC_CONFIG", config_file)
        assert "core-r1" in DeviceInventory(settings=settings).get_device_ids()

    def test_groups(self, config_file, settings):
        inv = DeviceInventory(config_file, settings)
        assert inv.get_group_members("core") == ["core-r1"]
        assert inv.get_device_groups("lab-r2") == ["lab"]
        with pytest.raises(KeyError):
            inv.get_group_members("missing")


class TestReconcilerSettings:
    """Tests for ReconcilerSettings.from_env."""

    def test_defaults(self, monkeypatch):
        for name in (
            "IFSYNC_NBI_URL",
            "IFSYNC_NBI_TOKEN",
            "IFSYNC_INTENT_TIMEOUT",
            "IFSYNC_HTTP_TIMEOUT",
            "IFSYNC_DISCOVERY_RETRIES",
            "IFSYNC_USER",
        ):
            monkeypatch.delenv(name, raising=False)
        settings = ReconcilerSettings.from_env()
        assert settings.nbi_url == "http://localhost:8000"
        assert settings.nbi_token is None
        assert settings.intent_timeout == 30.0
        assert settings.discovery_retries == 3
        assert settings.user == "system"

    def test_overrides(self, monkeypatch):
        monkeypatch.setenv("IFSYNC_NBI_URL", "http://ctl:8080")
        monkeypatch.setenv("IFSYNC_INTENT_TIMEOUT", "5")
        monkeypatch.setenv("IFSYNC_DISCOVERY_RETRIES", "0")
        monkeypatch.setenv("IFSYNC_USER", "alice")
        settings = ReconcilerSettings.from_env()
        assert settings.nbi_url == "http://ctl:8080"
        assert settings.intent_timeout == 5.0
        assert settings.discovery_retries == 1
        assert settings.user == "alice"

    def test_zero_timeout_disables_limit(self, monkeypatch):
        monkeypatch.setenv("IFSYNC_INTENT_TIMEOUT", "0")
        assert ReconcilerSettings.from_env().intent_timeout is None

    def test_invalid_number_uses_default(self, monkeypatch):
        monkeypatch.setenv("IFSYNC_HTTP_TIMEOUT", "soon")
        assert ReconcilerSettings.from_env().http_timeout == 30.0
