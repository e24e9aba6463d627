"""Schema definitions for the interface reconciler.

Defines observed/desired interface state, change sets, intents and
reconciliation results.
"""
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Optional


class AdminStatus(str, Enum):
    """Administrative or operational status of an interface."""
    UP = "up"
    DOWN = "down"

    @classmethod
    def parse(cls, value: Any) -> "AdminStatus":
        """Anything other than "up" (case-insensitive) counts as down."""
        if isinstance(value, AdminStatus):
            return value
        if isinstance(value, bool):
            return cls.UP if value else cls.DOWN
        return cls.UP if str(value or "").strip().lower() == "up" else cls.DOWN


class FieldGroup(str, Enum):
    """Logical field group of an interface, one intent at most per group."""
    ADMIN_STATUS = "admin_status"
    IPV4 = "ipv4"
    DESCRIPTION = "description"
    MTU = "mtu"
    IPV6 = "ipv6"
    OSPF = "ospf"


# Execution order of field groups
GROUP_ORDER: tuple[FieldGroup, ...] = (
    FieldGroup.ADMIN_STATUS,
    FieldGroup.IPV4,
    FieldGroup.DESCRIPTION,
    FieldGroup.MTU,
    FieldGroup.IPV6,
    FieldGroup.OSPF,
)


class RunState(str, Enum):
    """State of a single reconciliation run."""
    IDLE = "idle"
    DIFFING = "diffing"
    EXECUTING = "executing"
    COMPLETED = "completed"
    FAILED = "failed"


# Intent names understood by the executor
INTENT_ENABLE = "interface.enable"
INTENT_DISABLE = "interface.disable"
INTENT_SET_IPV4 = "interface.set_ipv4"
INTENT_SET_DESCRIPTION = "interface.set_description"
INTENT_SET_MTU = "interface.set_mtu"
INTENT_SET_IPV6 = "interface.set_ipv6"
INTENT_OSPF_ADD = "routing.ospf.add_network_interface"
INTENT_OSPF_REMOVE = "routing.ospf.remove_network_interface"


@dataclass(frozen=True)
class OspfMembership:
    """Membership of an interface in an OSPF process/area."""
    process_id: int
    area: int


@dataclass(frozen=True)
class InterfaceObservedState:
    """Interface state as discovered on the device."""
    name: str
    admin_status: AdminStatus = AdminStatus.DOWN
    oper_status: AdminStatus = AdminStatus.DOWN  # read-only
    description: Optional[str] = None
    mac_address: str = ""  # read-only
    duplex: str = ""
    auto_negotiate: bool = False
    ipv4_address: Optional[str] = None
    subnet_mask: Optional[str] = None
    ipv6_address: Optional[str] = None  # may carry "/prefix"
    mtu: Optional[int] = None
    ospf: Optional[OspfMembership] = None
    last_change: Optional[str] = None  # read-only
    # Informational discovery fields, never diffed
    type: str = ""
    number: str = ""
    speed: str = ""
    media_type: str = ""

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "name": self.name,
            "admin_status": self.admin_status.value,
            "oper_status": self.oper_status.value,
            "description": self.description,
            "mac_address": self.mac_address,
            "duplex": self.duplex,
            "auto_negotiate": self.auto_negotiate,
            "ipv4_address": self.ipv4_address,
            "subnet_mask": self.subnet_mask,
            "ipv6": self.ipv6_address,
            "mtu": self.mtu,
            "ospf": (
                {"process_id": self.ospf.process_id, "area": self.ospf.area}
                if self.ospf else None
            ),
            "last_change": self.last_change,
            "type": self.type,
            "number": self.number,
            "speed": self.speed,
            "media_type": self.media_type,
        }


@dataclass
class InterfaceDesiredState:
    """Operator-edited target state for one interface.

    OSPF membership is carried as the two raw operator inputs; an empty
    string means "not set".
    """
    name: str
    admin_status: AdminStatus = AdminStatus.DOWN
    description: str = ""
    duplex: str = ""
    auto_negotiate: bool = False
    ipv4_address: str = ""
    subnet_mask: str = ""
    ipv6_address: str = ""
    mtu: Optional[int] = None
    ospf_process_id: str = ""
    ospf_area: str = ""

    @classmethod
    def from_observed(cls, observed: InterfaceObservedState) -> "InterfaceDesiredState":
        """Start an edit session from a copy of the observed state."""
        return cls(
            name=observed.name,
            admin_status=observed.admin_status,
            description=observed.description or "",
            duplex=observed.duplex or "",
            auto_negotiate=observed.auto_negotiate,
            ipv4_address=observed.ipv4_address or "",
            subnet_mask=observed.subnet_mask or "",
            ipv6_address=observed.ipv6_address or "",
            mtu=observed.mtu,
            ospf_process_id=str(observed.ospf.process_id) if observed.ospf else "",
            ospf_area=str(observed.ospf.area) if observed.ospf else "",
        )

    def copy(self, **changes: Any) -> "InterfaceDesiredState":
        """Return a copy with the given fields replaced."""
        return replace(self, **changes)


# --- Change Sets ---

@dataclass(frozen=True)
class FieldChange:
    """A detected change for one field group and the intent it implies."""
    group: FieldGroup
    intent: str
    params: dict[str, Any] = field(default_factory=dict)


@dataclass
class ChangeSet:
    """Changes detected between observed and desired state."""
    interface: str
    changes: list[FieldChange] = field(default_factory=list)

    @property
    def no_change(self) -> bool:
        """Check if there are any changes."""
        return len(self.changes) == 0

    @property
    def total_changes(self) -> int:
        """Total number of changes."""
        return len(self.changes)

    @property
    def groups(self) -> list[FieldGroup]:
        """Groups with a detected change, in detection order."""
        return [change.group for change in self.changes]


# --- Intents ---

@dataclass(frozen=True)
class Intent:
    """Atomic configuration operation sent to the intent executor."""
    name: str
    node_id: str
    params: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "intent": self.name,
            "node_id": self.node_id,
            "params": dict(self.params),
        }

    def __str__(self) -> str:
        params = ", ".join(f"{k}={v}" for k, v in self.params.items())
        return f"{self.name}({params})"


# --- Validation Results ---

@dataclass
class ValidationResult:
    """Result of desired state validation."""
    valid: bool
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


# --- Reconciliation Results ---

@dataclass
class ReconciliationResult:
    """Outcome of one reconciliation run.

    applied_intents holds every intent the executor accepted, in order.
    When a run fails part way, those intents stay applied on the device.
    """
    node_id: str = ""
    interface: str = ""
    state: RunState = RunState.IDLE
    dry_run: bool = False
    applied_intents: list[Intent] = field(default_factory=list)
    planned_intents: list[Intent] = field(default_factory=list)
    failed_intent: Optional[Intent] = None
    error: Optional[str] = None
    warnings: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.state == RunState.COMPLETED

    @property
    def no_change(self) -> bool:
        """True for a successful run that had nothing to apply."""
        return self.success and not self.planned_intents

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "success": self.success,
            "state": self.state.value,
            "dry_run": self.dry_run,
            "node_id": self.node_id,
            "interface": self.interface,
            "applied_intents": [i.to_dict() for i in self.applied_intents],
            "planned_intents": [i.to_dict() for i in self.planned_intents],
            "failed_intent": self.failed_intent.to_dict() if self.failed_intent else None,
            "error": self.error,
            "warnings": self.warnings,
        }
