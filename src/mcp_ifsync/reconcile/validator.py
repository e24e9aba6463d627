"""Pre-flight validation for desired interface state.

Catches values that cannot become intent parameters before any
controller communication. Only edited fields are checked; values copied
unchanged from the device are trusted.
"""
import ipaddress

from .rules import split_ipv6
from .schema import (
    InterfaceDesiredState,
    InterfaceObservedState,
    ValidationResult,
)

# MTU limits accepted by the controller
MIN_MTU = 68
MAX_MTU = 65535

MAX_OSPF_PROCESS_ID = 65535


class InterfaceValidator:
    """Validate desired interface state for logical errors."""

    def validate(
        self,
        observed: InterfaceObservedState,
        desired: InterfaceDesiredState
    ) -> ValidationResult:
        """
        Validate a desired state against its observed baseline.

        Errors block the run. Warnings describe edits that will be
        skipped or silently defaulted and never block it.

        Args:
            observed: State captured from the device
            desired: The desired state to validate

        Returns:
            ValidationResult with valid flag, errors, and warnings
        """
        errors: list[str] = []
        warnings: list[str] = []

        self._validate_ipv4(observed, desired, errors, warnings)
        self._validate_mtu(observed, desired, errors, warnings)
        self._validate_ipv6(observed, desired, errors, warnings)
        self._validate_ospf(observed, desired, errors, warnings)

        return ValidationResult(
            valid=len(errors) == 0,
            errors=errors,
            warnings=warnings,
        )

    def _validate_ipv4(
        self,
        observed: InterfaceObservedState,
        desired: InterfaceDesiredState,
        errors: list[str],
        warnings: list[str]
    ) -> None:
        address = desired.ipv4_address or ""
        mask = desired.subnet_mask or ""
        if (address, mask) == (observed.ipv4_address or "", observed.subnet_mask or ""):
            return

        if not (address and mask):
            warnings.append(
                f"IPv4 on {observed.name} not changed: address and mask must both be set"
            )

        if address:
            try:
                ipaddress.IPv4Address(address)
            except ipaddress.AddressValueError:
                errors.append(f"Invalid IPv4 address '{address}' on {observed.name}")

        if mask:
            try:
                ipaddress.IPv4Network(f"0.0.0.0/{mask}")
            except ValueError:
                errors.append(f"Invalid subnet mask '{mask}' on {observed.name}")

    def _validate_mtu(
        self,
        observed: InterfaceObservedState,
        desired: InterfaceDesiredState,
        errors: list[str],
        warnings: list[str]
    ) -> None:
        if desired.mtu == observed.mtu:
            return

        if not desired.mtu:
            warnings.append(f"MTU on {observed.name} not changed: no value given")
            return

        if not MIN_MTU <= desired.mtu <= MAX_MTU:
            errors.append(
                f"Invalid MTU {desired.mtu} on {observed.name}: "
                f"must be between {MIN_MTU} and {MAX_MTU}"
            )

    def _validate_ipv6(
        self,
        observed: InterfaceObservedState,
        desired: InterfaceDesiredState,
        errors: list[str],
        warnings: list[str]
    ) -> None:
        value = desired.ipv6_address or ""
        if value == (observed.ipv6_address or ""):
            return

        if not value:
            warnings.append(f"IPv6 on {observed.name} not changed: clearing is not supported")
            return

        ip, prefix = split_ipv6(value)
        if "/" not in value:
            warnings.append(f"IPv6 on {observed.name} has no prefix, using /{prefix}")

        try:
            ipaddress.IPv6Address(ip)
        except ipaddress.AddressValueError:
            errors.append(f"Invalid IPv6 address '{ip}' on {observed.name}")

        if not prefix.isdecimal() or int(prefix) > 128:
            errors.append(f"Invalid IPv6 prefix '{prefix}' on {observed.name}")

    def _validate_ospf(
        self,
        observed: InterfaceObservedState,
        desired: InterfaceDesiredState,
        errors: list[str],
        warnings: list[str]
    ) -> None:
        old_pid = str(observed.ospf.process_id) if observed.ospf else ""
        old_area = str(observed.ospf.area) if observed.ospf else ""
        new_pid = (desired.ospf_process_id or "").strip()
        new_area = (desired.ospf_area or "").strip()

        if (new_pid, new_area) == (old_pid, old_area):
            return

        if bool(new_pid) != bool(new_area):
            warnings.append(
                f"OSPF on {observed.name} not changed: process id and area must be set together"
            )

        if new_pid and (not new_pid.isdecimal() or not 1 <= int(new_pid) <= MAX_OSPF_PROCESS_ID):
            errors.append(
                f"Invalid OSPF process id '{new_pid}' on {observed.name}: "
                f"must be between 1 and {MAX_OSPF_PROCESS_ID}"
            )

        if new_area and not new_area.isdecimal():
            errors.append(f"Invalid OSPF area '{new_area}' on {observed.name}")

        if new_pid and new_area and observed.ospf:
            warnings.append(
                f"{observed.name} is already in OSPF process {old_pid} area {old_area}; "
                f"the existing membership is kept"
            )
