"""Field change rules.

One pure function per field group. Each compares observed and desired
state and returns the FieldChange to apply, or None when the group is
unchanged or its precondition is not met.
"""
import logging
from typing import Callable, Optional

from .schema import (
    AdminStatus,
    FieldChange,
    FieldGroup,
    InterfaceDesiredState,
    InterfaceObservedState,
    INTENT_DISABLE,
    INTENT_ENABLE,
    INTENT_OSPF_ADD,
    INTENT_OSPF_REMOVE,
    INTENT_SET_DESCRIPTION,
    INTENT_SET_IPV4,
    INTENT_SET_IPV6,
    INTENT_SET_MTU,
)

logger = logging.getLogger(__name__)

DEFAULT_IPV6_PREFIX = "64"

FieldRule = Callable[[InterfaceObservedState, InterfaceDesiredState], Optional[FieldChange]]


def admin_status_rule(
    observed: InterfaceObservedState,
    desired: InterfaceDesiredState
) -> Optional[FieldChange]:
    """Enable or disable the interface when the admin status differs."""
    if desired.admin_status == observed.admin_status:
        return None

    intent = INTENT_ENABLE if desired.admin_status == AdminStatus.UP else INTENT_DISABLE
    return FieldChange(
        group=FieldGroup.ADMIN_STATUS,
        intent=intent,
        params={"interface": observed.name},
    )


def ipv4_rule(
    observed: InterfaceObservedState,
    desired: InterfaceDesiredState
) -> Optional[FieldChange]:
    """Set the IPv4 address. Address and mask are only ever sent together."""
    current = (observed.ipv4_address or "", observed.subnet_mask or "")
    wanted = (desired.ipv4_address or "", desired.subnet_mask or "")
    if wanted == current:
        return None

    if not (wanted[0] and wanted[1]):
        logger.debug(
            f"{observed.name}: IPv4 changed but address or mask is empty, skipping"
        )
        return None

    return FieldChange(
        group=FieldGroup.IPV4,
        intent=INTENT_SET_IPV4,
        params={"interface": observed.name, "ip": wanted[0], "mask": wanted[1]},
    )


def description_rule(
    observed: InterfaceObservedState,
    desired: InterfaceDesiredState
) -> Optional[FieldChange]:
    """Set the description. Clearing it is a change too."""
    wanted = desired.description or ""
    if wanted == (observed.description or ""):
        return None

    return FieldChange(
        group=FieldGroup.DESCRIPTION,
        intent=INTENT_SET_DESCRIPTION,
        params={"interface": observed.name, "description": wanted},
    )


def mtu_rule(
    observed: InterfaceObservedState,
    desired: InterfaceDesiredState
) -> Optional[FieldChange]:
    """Set the MTU. An empty or zero MTU never resets the device value."""
    if desired.mtu == observed.mtu:
        return None

    if not desired.mtu:
        logger.debug(f"{observed.name}: MTU cleared, skipping")
        return None

    return FieldChange(
        group=FieldGroup.MTU,
        intent=INTENT_SET_MTU,
        params={"interface": observed.name, "mtu": int(desired.mtu)},
    )


def split_ipv6(value: str) -> tuple[str, str]:
    """Split "addr/prefix" into its parts; the prefix defaults to 64."""
    ip, sep, prefix = value.partition("/")
    if not sep:
        return value, DEFAULT_IPV6_PREFIX
    return ip, prefix


def ipv6_rule(
    observed: InterfaceObservedState,
    desired: InterfaceDesiredState
) -> Optional[FieldChange]:
    """Set the IPv6 address. Clearing it emits nothing."""
    wanted = desired.ipv6_address or ""
    if wanted == (observed.ipv6_address or ""):
        return None

    if not wanted:
        logger.debug(f"{observed.name}: IPv6 cleared, skipping")
        return None

    ip, prefix = split_ipv6(wanted)
    return FieldChange(
        group=FieldGroup.IPV6,
        intent=INTENT_SET_IPV6,
        params={"interface": observed.name, "ip": ip, "prefix": prefix},
    )


def ospf_rule(
    observed: InterfaceObservedState,
    desired: InterfaceDesiredState
) -> Optional[FieldChange]:
    """Attach the interface to an OSPF area or detach it.

    Pairs are compared as strings. A new complete pair is added even when
    the interface already belongs to another process/area; the old
    membership is not removed first. Detaching needs both new values empty
    and a complete old pair.
    """
    old_pid = str(observed.ospf.process_id) if observed.ospf else ""
    old_area = str(observed.ospf.area) if observed.ospf else ""
    new_pid = (desired.ospf_process_id or "").strip()
    new_area = (desired.ospf_area or "").strip()

    if (new_pid, new_area) == (old_pid, old_area):
        return None

    if new_pid and new_area:
        return FieldChange(
            group=FieldGroup.OSPF,
            intent=INTENT_OSPF_ADD,
            params={
                "process_id": int(new_pid),
                "interface": observed.name,
                "area": int(new_area),
            },
        )

    if not new_pid and not new_area and old_pid and old_area:
        return FieldChange(
            group=FieldGroup.OSPF,
            intent=INTENT_OSPF_REMOVE,
            params={
                "process_id": int(old_pid),
                "interface": observed.name,
                "area": int(old_area),
            },
        )

    logger.debug(
        f"{observed.name}: OSPF process id and area must be set together, skipping"
    )
    return None


# Rule per field group
FIELD_RULES: dict[FieldGroup, FieldRule] = {
    FieldGroup.ADMIN_STATUS: admin_status_rule,
    FieldGroup.IPV4: ipv4_rule,
    FieldGroup.DESCRIPTION: description_rule,
    FieldGroup.MTU: mtu_rule,
    FieldGroup.IPV6: ipv6_rule,
    FieldGroup.OSPF: ospf_rule,
}
