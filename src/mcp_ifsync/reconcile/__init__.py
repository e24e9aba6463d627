"""Interface reconciler - push the minimal ordered set of intents to a device.

The reconciler turns an operator's edits of one interface into intents:
- Diff observed against desired state, one rule per field group
- Fixed execution order (status, IPv4, description, MTU, IPv6, OSPF)
- Sequential execution, stopping at the first failure
- No rollback: intents applied before a failure stay applied

Usage:
    from mcp_ifsync.reconcile import ReconciliationController, InterfaceDesiredState

    desired = InterfaceDesiredState.from_observed(observed)
    desired.admin_status = AdminStatus.UP
    desired.description = "uplink"

    controller = ReconciliationController()
    result = await controller.reconcile(observed, desired, "R1", nbi_client)
"""

from .engine import ReconciliationController, reconcile
from .schema import (
    AdminStatus,
    ChangeSet,
    FieldChange,
    FieldGroup,
    GROUP_ORDER,
    Intent,
    InterfaceDesiredState,
    InterfaceObservedState,
    OspfMembership,
    ReconciliationResult,
    RunState,
    ValidationResult,
)
from .parser import (
    DesiredStateParser,
    ParseError,
    parse_discovery,
    parse_observed,
)
from .validator import InterfaceValidator
from .diff import DiffEngine, diff, summarize_diff
from .sequencer import IntentSequencer, sequence
from .executor import IntentRunner
from .locks import InterfaceLockRegistry

__all__ = [
    # Main controller
    "ReconciliationController",
    "reconcile",
    # Schema classes
    "AdminStatus",
    "ChangeSet",
    "FieldChange",
    "FieldGroup",
    "GROUP_ORDER",
    "Intent",
    "InterfaceDesiredState",
    "InterfaceObservedState",
    "OspfMembership",
    "ReconciliationResult",
    "RunState",
    "ValidationResult",
    # Parser
    "DesiredStateParser",
    "ParseError",
    "parse_discovery",
    "parse_observed",
    # Components (for advanced use)
    "InterfaceValidator",
    "DiffEngine",
    "diff",
    "summarize_diff",
    "IntentSequencer",
    "sequence",
    "IntentRunner",
    "InterfaceLockRegistry",
]
