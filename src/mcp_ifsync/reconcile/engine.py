"""Reconciliation controller - orchestrates one interface reconciliation run.

Provides a single entry point for:
1. Loading observed state (optional, via a discovery source)
2. Validating the desired state
3. Calculating the change set
4. Ordering it into intents
5. Executing them one by one, stopping at the first failure
"""
import logging
from typing import Any, Optional, Union

from ..nbi.base import InterfaceSource
from ..utils.audit_log import AuditTrail
from .diff import DiffEngine, summarize_diff
from .executor import DEFAULT_INTENT_TIMEOUT, Executor, IntentRunner
from .locks import InterfaceLockRegistry, default_registry
from .parser import DesiredStateParser, ParseError
from .schema import (
    ChangeSet,
    Intent,
    InterfaceDesiredState,
    InterfaceObservedState,
    ReconciliationResult,
    RunState,
    ValidationResult,
)
from .sequencer import IntentSequencer
from .validator import InterfaceValidator

logger = logging.getLogger(__name__)

DesiredInput = Union[InterfaceDesiredState, dict[str, Any], None]


class ReconciliationController:
    """
    Reconcile one interface from observed to desired state.

    Runs on the same (device, interface) are serialized; a failed run
    leaves earlier intents applied and is never retried. Retrying means
    starting a new run against freshly discovered state.

    Usage:
        controller = ReconciliationController()
        result = await controller.reconcile(observed, desired, "R1", nbi_client)
    """

    def __init__(
        self,
        intent_timeout: Optional[float] = DEFAULT_INTENT_TIMEOUT,
        locks: Optional[InterfaceLockRegistry] = None,
    ):
        """
        Initialize the controller.

        Args:
            intent_timeout: Seconds to wait for each intent (None = no limit)
            locks: Lock registry (defaults to the process-wide registry)
        """
        self.locks = locks if locks is not None else default_registry
        self.validator = InterfaceValidator()
        self.diff_engine = DiffEngine()
        self.sequencer = IntentSequencer()
        self.runner = IntentRunner(intent_timeout)
        self.parser = DesiredStateParser()

    async def reconcile(
        self,
        observed: InterfaceObservedState,
        desired: InterfaceDesiredState,
        node_id: str,
        executor: Executor,
        device_id: Optional[str] = None,
        dry_run: bool = False,
        user: Optional[str] = None,
        audit_context: str = "",
    ) -> ReconciliationResult:
        """
        Apply a desired interface state.

        Args:
            observed: State captured from the device
            desired: Operator-edited target state
            node_id: Controller node the intents target
            executor: Executor object or callable(intent, node_id, params)
            device_id: Inventory id used for locking and audit (defaults to node_id)
            dry_run: If True, plan only and make no executor calls
            user: User identifier for audit log
            audit_context: Description for audit log

        Returns:
            ReconciliationResult
        """
        device_id = device_id or node_id
        async with self.locks.hold(device_id, observed.name):
            return await self._run(
                observed, desired, node_id, executor,
                device_id=device_id,
                dry_run=dry_run,
                audit=AuditTrail(device_id, observed.name, user, audit_context),
            )

    async def reconcile_interface(
        self,
        node_id: str,
        interface: str,
        desired: DesiredInput,
        executor: Executor,
        source: InterfaceSource,
        device_id: Optional[str] = None,
        dry_run: bool = False,
        user: Optional[str] = None,
        audit_context: str = "",
    ) -> ReconciliationResult:
        """
        Fetch the observed state, then apply the desired state.

        Args:
            desired: Desired state, or a dict of edits applied on top of
                the freshly observed state

        Returns:
            ReconciliationResult; a discovery failure ends in FAILED with
            zero intents attempted
        """
        device_id = device_id or node_id
        result = ReconciliationResult(node_id=node_id, interface=interface, dry_run=dry_run)

        async with self.locks.hold(device_id, interface):
            logger.info(f"Loading observed state of {interface} on {node_id}")
            try:
                observed = await source.get_interface(node_id, interface)
            except Exception as e:
                result.state = RunState.FAILED
                result.error = f"load failed: {e}"
                logger.error(f"{device_id}/{interface}: {result.error}")
                return result

            if not isinstance(desired, InterfaceDesiredState):
                try:
                    desired = self.parser.parse(observed, desired)
                except ParseError as e:
                    result.state = RunState.FAILED
                    result.error = f"Parse error: {e}"
                    return result

            return await self._run(
                observed, desired, node_id, executor,
                device_id=device_id,
                dry_run=dry_run,
                audit=AuditTrail(device_id, interface, user, audit_context),
            )

    async def _run(
        self,
        observed: InterfaceObservedState,
        desired: InterfaceDesiredState,
        node_id: str,
        executor: Executor,
        device_id: str,
        dry_run: bool,
        audit: AuditTrail,
    ) -> ReconciliationResult:
        """Validate, diff, sequence and execute. Caller holds the lock."""
        result = ReconciliationResult(
            node_id=node_id,
            interface=observed.name,
            dry_run=dry_run,
        )

        # Step 1: Validate
        validation = self.validator.validate(observed, desired)
        result.warnings = list(validation.warnings)
        if not validation.valid:
            result.state = RunState.FAILED
            result.error = f"Validation failed: {'; '.join(validation.errors)}"
            logger.warning(f"{device_id}/{observed.name}: {result.error}")
            return result

        # Step 2: Diff and order
        result.state = RunState.DIFFING
        try:
            intents = self.plan(observed, desired, node_id)
        except ValueError as e:
            result.state = RunState.FAILED
            result.error = f"Diff failed: {e}"
            return result

        if not intents:
            logger.info(f"{device_id}/{observed.name}: no changes needed")
            result.state = RunState.COMPLETED
            return result

        logger.info(
            f"{device_id}/{observed.name}: {len(intents)} intent(s) to apply"
            f"{' (dry run)' if dry_run else ''}"
        )

        # Step 3: Execute (or preview)
        if dry_run:
            result.planned_intents = intents
            for intent in intents:
                audit.log_intent(intent, success=True, dry_run=True)
            result.state = RunState.COMPLETED
            return result

        return await self.runner.run(intents, executor, result, audit)

    def diff(
        self,
        observed: InterfaceObservedState,
        desired: InterfaceDesiredState
    ) -> ChangeSet:
        """Calculate the change set (for external use)."""
        return self.diff_engine.calculate(observed, desired)

    def plan(
        self,
        observed: InterfaceObservedState,
        desired: InterfaceDesiredState,
        node_id: str
    ) -> list[Intent]:
        """Calculate the ordered intents without executing them."""
        return self.sequencer.sequence(self.diff(observed, desired), node_id)

    def validate(
        self,
        observed: InterfaceObservedState,
        desired: InterfaceDesiredState
    ) -> ValidationResult:
        """Validate a desired state (for external use)."""
        return self.validator.validate(observed, desired)

    def preview(
        self,
        observed: InterfaceObservedState,
        desired: InterfaceDesiredState
    ) -> str:
        """
        Preview changes without applying.

        Returns human-readable diff summary.
        """
        validation = self.validator.validate(observed, desired)
        if not validation.valid:
            return "Validation failed:\n" + "\n".join(validation.errors)

        summary = summarize_diff(self.diff(observed, desired))

        if validation.warnings:
            summary += "\n\nWarnings:\n" + "\n".join(
                f"  - {w}" for w in validation.warnings
            )

        return summary


async def reconcile(
    observed: InterfaceObservedState,
    desired: InterfaceDesiredState,
    node_id: str,
    executor: Executor,
    **options: Any,
) -> ReconciliationResult:
    """Reconcile one interface with a default controller."""
    return await ReconciliationController().reconcile(
        observed, desired, node_id, executor, **options
    )
