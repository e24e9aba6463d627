"""Parsers for interface state.

Converts discovery payloads to InterfaceObservedState and dict/YAML
operator input to InterfaceDesiredState.
"""
import ipaddress
from typing import Any, Optional

from .schema import (
    AdminStatus,
    InterfaceDesiredState,
    InterfaceObservedState,
    OspfMembership,
)


class ParseError(Exception):
    """Error parsing interface state."""
    pass


# Desired-state keys that refer to read-only fields
READ_ONLY_FIELDS = {"oper_status", "mac_address", "last_change"}


def _text(value: Any) -> Optional[str]:
    if value is None:
        return None
    return str(value)


def _parse_int(value: Any, field_name: str) -> Optional[int]:
    """Parse an optional integer; None and "" mean unset."""
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ParseError(f"Invalid {field_name}: {value!r}")
    try:
        return int(str(value).strip())
    except ValueError:
        raise ParseError(f"Invalid {field_name}: {value!r}")


_TRUE_VALUES = {"true", "yes", "on", "1"}
_FALSE_VALUES = {"false", "no", "off", "0"}


def _parse_bool(value: Any, field_name: str) -> bool:
    """Parse a flag; strings such as "false" or "off" are false."""
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    text = str(value).strip().lower() if value is not None else ""
    if text in _TRUE_VALUES:
        return True
    if text in _FALSE_VALUES:
        return False
    raise ParseError(f"Invalid {field_name}: {value!r}. Expected true or false")


def normalize_area(value: Any) -> str:
    """
    Normalize an OSPF area to its decimal string form.

    Examples:
        0 -> "0"
        "0.0.0.1" -> "1"
        "" -> ""
    """
    text = str(value).strip() if value is not None else ""
    if text.count(".") == 3:
        try:
            return str(int(ipaddress.IPv4Address(text)))
        except ipaddress.AddressValueError:
            return text
    return text


def parse_observed(data: dict[str, Any]) -> InterfaceObservedState:
    """
    Parse one interface entry of a discovery response.

    Missing fields take their natural empty default. OSPF membership
    only counts when has_ospf is set.

    Raises:
        ParseError: If the entry has no name or malformed numbers
    """
    name = data.get("name")
    if not name:
        raise ParseError("Interface entry without name")

    ospf = None
    ospf_data = data.get("ospf")
    if data.get("has_ospf") and isinstance(ospf_data, dict):
        process_id = _parse_int(ospf_data.get("process_id"), "OSPF process id")
        area = _parse_int(normalize_area(ospf_data.get("area")), "OSPF area")
        if process_id is not None and area is not None:
            ospf = OspfMembership(process_id=process_id, area=area)

    return InterfaceObservedState(
        name=str(name),
        admin_status=AdminStatus.parse(data.get("admin_status")),
        oper_status=AdminStatus.parse(data.get("oper_status")),
        description=_text(data.get("description")),
        mac_address=data.get("mac_address") or "",
        duplex=data.get("duplex") or "",
        auto_negotiate=bool(data.get("auto_negotiate", False)),
        ipv4_address=_text(data.get("ipv4_address")),
        subnet_mask=_text(data.get("subnet_mask")),
        ipv6_address=_text(data.get("ipv6")),
        mtu=_parse_int(data.get("mtu"), "MTU") or None,
        ospf=ospf,
        last_change=_text(data.get("last_change")),
        type=data.get("type") or "",
        number=_text(data.get("number")) or "",
        speed=data.get("speed") or "",
        media_type=data.get("media_type") or "",
    )


def parse_discovery(response: dict[str, Any]) -> list[InterfaceObservedState]:
    """Parse a full discovery response into observed states."""
    interfaces = response.get("interfaces")
    if not isinstance(interfaces, list):
        raise ParseError("Discovery response has no interfaces list")
    return [parse_observed(entry) for entry in interfaces]


class DesiredStateParser:
    """Parse operator edits on top of an observed state."""

    def parse(
        self,
        observed: InterfaceObservedState,
        config: Optional[dict[str, Any]]
    ) -> InterfaceDesiredState:
        """
        Apply a dict of edits to a copy of the observed state.

        Only keys present in config are changed. Accepted keys:
        admin_status (or enabled), description, duplex, auto_negotiate,
        ipv4_address, subnet_mask, ipv6 (or ipv6_address), mtu,
        ospf ({process_id, area} or null), ospf_process_id, ospf_area.

        Args:
            observed: Baseline state of the interface
            config: Operator edits

        Returns:
            InterfaceDesiredState

        Raises:
            ParseError: If config is invalid
        """
        desired = InterfaceDesiredState.from_observed(observed)
        if not config:
            return desired

        name = config.get("name") or config.get("interface")
        if name and name != observed.name:
            raise ParseError(
                f"Desired state names {name}, observed state is {observed.name}"
            )

        read_only = READ_ONLY_FIELDS & set(config)
        if read_only:
            raise ParseError(f"Read-only fields cannot be set: {', '.join(sorted(read_only))}")

        changes: dict[str, Any] = {}

        if "admin_status" in config:
            changes["admin_status"] = self._parse_status(config["admin_status"])
        elif "enabled" in config:
            changes["admin_status"] = AdminStatus.parse(_parse_bool(config["enabled"], "enabled"))

        for key in ("description", "duplex", "ipv4_address", "subnet_mask"):
            if key in config:
                changes[key] = _text(config[key]) or ""

        if "auto_negotiate" in config:
            changes["auto_negotiate"] = _parse_bool(config["auto_negotiate"], "auto_negotiate")

        for key in ("ipv6", "ipv6_address"):
            if key in config:
                changes["ipv6_address"] = _text(config[key]) or ""

        if "mtu" in config:
            changes["mtu"] = _parse_int(config["mtu"], "MTU")

        changes.update(self._parse_ospf(config))

        return desired.copy(**changes)

    def _parse_status(self, value: Any) -> AdminStatus:
        if isinstance(value, (bool, AdminStatus)):
            return AdminStatus.parse(value)
        text = str(value).strip().lower()
        if text not in ("up", "down"):
            raise ParseError(f"Invalid admin_status: {value!r}. Must be 'up' or 'down'")
        return AdminStatus(text)

    def _parse_ospf(self, config: dict[str, Any]) -> dict[str, str]:
        """Parse OSPF edits into the raw process id / area pair."""
        changes: dict[str, str] = {}

        if "ospf" in config:
            ospf = config["ospf"]
            if ospf is None:
                return {"ospf_process_id": "", "ospf_area": ""}
            if not isinstance(ospf, dict):
                raise ParseError(f"Invalid ospf: {ospf!r}. Expected mapping or null")
            changes["ospf_process_id"] = self._field_text(ospf.get("process_id"))
            changes["ospf_area"] = normalize_area(ospf.get("area"))

        if "ospf_process_id" in config:
            changes["ospf_process_id"] = self._field_text(config["ospf_process_id"])
        if "ospf_area" in config:
            changes["ospf_area"] = normalize_area(config["ospf_area"])

        return changes

    def _field_text(self, value: Any) -> str:
        return "" if value is None else str(value).strip()
