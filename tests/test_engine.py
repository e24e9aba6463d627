"""Tests for the reconciliation controller and intent runner."""
import asyncio

import pytest

from mcp_ifsync.nbi.base import ExecutionError, InterfaceSource, LoadError
from mcp_ifsync.reconcile.engine import ReconciliationController
from mcp_ifsync.reconcile.executor import IntentRunner, resolve_executor
from mcp_ifsync.reconcile.locks import InterfaceLockRegistry
from mcp_ifsync.reconcile.schema import (
    AdminStatus,
    Intent,
    InterfaceDesiredState,
    InterfaceObservedState,
    OspfMembership,
    ReconciliationResult,
    RunState,
)


class FakeExecutor:
    """Records intents; fails or stalls on request."""

    def __init__(self, fail_on=None, stall_on=None):
        self.calls: list[tuple[str, str, dict]] = []
        self.fail_on = fail_on
        self.stall_on = stall_on

    async def execute(self, intent, node_id, params):
        self.calls.append((intent, node_id, params))
        if self.stall_on == intent:
            await asyncio.sleep(10)
        if self.fail_on == intent:
            raise ExecutionError("device rejected", intent=intent)
        return {"ok": True}

    @property
    def names(self) -> list[str]:
        return [call[0] for call in self.calls]


class FakeSource(InterfaceSource):
    """Serves a fixed interface list, or fails."""

    def __init__(self, interfaces=None, error=None):
        self.interfaces = interfaces or []
        self.error = error

    async def discover_interfaces(self, node_id):
        if self.error:
            raise self.error
        return list(self.interfaces)


@pytest.fixture
def controller():
    return ReconciliationController(intent_timeout=5, locks=InterfaceLockRegistry())


@pytest.fixture
def observed():
    return InterfaceObservedState(
        name="Gi0/1",
        admin_status=AdminStatus.DOWN,
        description="old",
    )


@pytest.fixture
def desired(observed):
    return InterfaceDesiredState.from_observed(observed).copy(
        admin_status=AdminStatus.UP,
        description="uplink",
        ipv4_address="10.0.0.1",
        subnet_mask="255.255.255.0",
        mtu=1500,
        ospf_process_id="1",
        ospf_area="0",
    )


class TestReconcile:
    """Tests for ReconciliationController.reconcile."""

    @pytest.mark.asyncio
    async def test_end_to_end_order(self, controller, observed, desired):
        """A full edit produces the five intents in fixed order."""
        executor = FakeExecutor()
        result = await controller.reconcile(observed, desired, "R1", executor)

        assert result.success
        assert result.state == RunState.COMPLETED
        assert executor.calls == [
            ("interface.enable", "R1", {"interface": "Gi0/1"}),
            ("interface.set_ipv4", "R1", {"interface": "Gi0/1", "ip": "10.0.0.1", "mask": "255.255.255.0"}),
            ("interface.set_description", "R1", {"interface": "Gi0/1", "description": "uplink"}),
            ("interface.set_mtu", "R1", {"interface": "Gi0/1", "mtu": 1500}),
            ("routing.ospf.add_network_interface", "R1", {"process_id": 1, "interface": "Gi0/1", "area": 0}),
        ]
        assert len(result.applied_intents) == 5
        assert result.failed_intent is None

    @pytest.mark.asyncio
    async def test_no_change_makes_no_calls(self, controller, observed):
        executor = FakeExecutor()
        result = await controller.reconcile(
            observed, InterfaceDesiredState.from_observed(observed), "R1", executor
        )
        assert result.success
        assert result.no_change
        assert executor.calls == []

    @pytest.mark.asyncio
    async def test_stops_at_first_failure(self, controller, observed, desired):
        """Intents before the failure stay applied; later ones never run."""
        executor = FakeExecutor(fail_on="interface.set_ipv4")
        result = await controller.reconcile(observed, desired, "R1", executor)

        assert not result.success
        assert result.state == RunState.FAILED
        assert executor.names == ["interface.enable", "interface.set_ipv4"]
        assert [i.name for i in result.applied_intents] == ["interface.enable"]
        assert result.failed_intent.name == "interface.set_ipv4"
        assert result.error == "interface.set_ipv4 failed: device rejected"
        assert len(result.planned_intents) == 5

    @pytest.mark.asyncio
    async def test_intent_timeout(self, observed, desired):
        controller = ReconciliationController(intent_timeout=0.05, locks=InterfaceLockRegistry())
        executor = FakeExecutor(stall_on="interface.set_description")
        result = await controller.reconcile(observed, desired, "R1", executor)

        assert result.state == RunState.FAILED
        assert result.failed_intent.name == "interface.set_description"
        assert "timed out" in result.error
        assert [i.name for i in result.applied_intents] == [
            "interface.enable",
            "interface.set_ipv4",
        ]

    @pytest.mark.asyncio
    async def test_dry_run_makes_no_calls(self, controller, observed, desired):
        executor = FakeExecutor()
        result = await controller.reconcile(observed, desired, "R1", executor, dry_run=True)

        assert result.success
        assert result.dry_run
        assert executor.calls == []
        assert result.applied_intents == []
        assert len(result.planned_intents) == 5

    @pytest.mark.asyncio
    async def test_validation_failure_blocks_run(self, controller, observed, desired):
        executor = FakeExecutor()
        result = await controller.reconcile(observed, desired.copy(mtu=10), "R1", executor)

        assert result.state == RunState.FAILED
        assert result.error.startswith("Validation failed")
        assert executor.calls == []

    @pytest.mark.asyncio
    async def test_warnings_reported(self, controller, observed):
        desired = InterfaceDesiredState.from_observed(observed).copy(ipv6_address="2001:db8::1")
        executor = FakeExecutor()
        result = await controller.reconcile(observed, desired, "R1", executor)

        assert result.success
        assert executor.calls == [
            ("interface.set_ipv6", "R1", {"interface": "Gi0/1", "ip": "2001:db8::1", "prefix": "64"}),
        ]
        assert any("/64" in w for w in result.warnings)

    @pytest.mark.asyncio
    async def test_plain_callable_executor(self, controller, observed):
        calls = []

        def executor(intent, node_id, params):
            calls.append(intent)

        desired = InterfaceDesiredState.from_observed(observed).copy(admin_status=AdminStatus.UP)
        result = await controller.reconcile(observed, desired, "R1", executor)
        assert result.success
        assert calls == ["interface.enable"]

    @pytest.mark.asyncio
    async def test_ospf_remove(self, controller):
        observed = InterfaceObservedState(name="Gi2", ospf=OspfMembership(process_id=5, area=1))
        desired = InterfaceDesiredState.from_observed(observed).copy(
            ospf_process_id="", ospf_area=""
        )
        executor = FakeExecutor()
        await controller.reconcile(observed, desired, "R1", executor)
        assert executor.calls == [
            ("routing.ospf.remove_network_interface", "R1", {"process_id": 5, "interface": "Gi2", "area": 1}),
        ]

    @pytest.mark.asyncio
    async def test_same_interface_runs_are_serialized(self, observed, desired):
        """Two runs on one interface never interleave their intents."""
        controller = ReconciliationController(locks=InterfaceLockRegistry())
        events: list[str] = []

        async def executor(intent, node_id, params):
            events.append(f"start {node_id}")
            await asyncio.sleep(0.01)
            events.append(f"end {node_id}")

        desired_one = desired.copy(ospf_process_id="", ospf_area="")
        await asyncio.gather(
            controller.reconcile(observed, desired_one, "A", executor, device_id="dev"),
            controller.reconcile(observed, desired_one, "B", executor, device_id="dev"),
        )

        first = events[0].split()[1]
        first_run = events[:8]
        assert all(e.endswith(first) for e in first_run)
        assert len(events) == 16

    @pytest.mark.asyncio
    async def test_superscript_digit_fails_validation(self, controller, observed, desired):
        executor = FakeExecutor()
        result = await controller.reconcile(
            observed, desired.copy(ospf_process_id="²", ospf_area="0"), "R1", executor
        )
        assert result.state == RunState.FAILED
        assert result.error.startswith("Validation failed")
        assert executor.calls == []

    @pytest.mark.asyncio
    async def test_executor_timeout_is_not_a_runner_timeout(self, controller, observed):
        """A timeout raised by the executor itself is reported as its failure."""
        async def executor(intent, node_id, params):
            raise TimeoutError("controller busy")

        desired = InterfaceDesiredState.from_observed(observed).copy(admin_status=AdminStatus.UP)
        result = await controller.reconcile(observed, desired, "R1", executor)

        assert result.state == RunState.FAILED
        assert result.failed_intent.name == "interface.enable"
        assert result.error == "interface.enable failed: controller busy"
        assert "timed out after" not in result.error

    @pytest.mark.asyncio
    async def test_runner_timeout_names_the_deadline(self, observed):
        controller = ReconciliationController(intent_timeout=0.05, locks=InterfaceLockRegistry())
        desired = InterfaceDesiredState.from_observed(observed).copy(admin_status=AdminStatus.UP)
        executor = FakeExecutor(stall_on="interface.enable")
        result = await controller.reconcile(observed, desired, "R1", executor)
        assert "timed out after 0.05s" in result.error

    @pytest.mark.asyncio
    async def test_lock_released_after_runs(self, observed, desired):
        locks = InterfaceLockRegistry()
        controller = ReconciliationController(locks=locks)
        desired_one = desired.copy(ospf_process_id="", ospf_area="")

        await controller.reconcile(observed, desired_one, "R1", FakeExecutor(), device_id="dev")
        assert locks._locks == {}

        await asyncio.gather(
            controller.reconcile(observed, desired_one, "R1", FakeExecutor(), device_id="dev"),
            controller.reconcile(observed, desired_one, "R1", FakeExecutor(), device_id="dev"),
        )
        assert locks._locks == {}

        await controller.reconcile(
            observed, desired_one, "R1", FakeExecutor(fail_on="interface.enable"), device_id="dev"
        )
        assert locks._locks == {}


class TestReconcileInterface:
    """Tests for ReconciliationController.reconcile_interface."""

    @pytest.mark.asyncio
    async def test_applies_edits_on_fresh_state(self, controller, observed):
        source = FakeSource([observed])
        executor = FakeExecutor()
        result = await controller.reconcile_interface(
            "R1", "Gi0/1", {"description": "new"}, executor=executor, source=source
        )
        assert result.success
        assert executor.calls == [
            ("interface.set_description", "R1", {"interface": "Gi0/1", "description": "new"}),
        ]

    @pytest.mark.asyncio
    async def test_load_error(self, controller):
        source = FakeSource(error=LoadError("controller unreachable"))
        executor = FakeExecutor()
        result = await controller.reconcile_interface(
            "R1", "Gi0/1", {"description": "new"}, executor=executor, source=source
        )
        assert result.state == RunState.FAILED
        assert "load failed" in result.error
        assert executor.calls == []

    @pytest.mark.asyncio
    async def test_unknown_interface(self, controller, observed):
        result = await controller.reconcile_interface(
            "R1", "Gi9/9", {}, executor=FakeExecutor(), source=FakeSource([observed])
        )
        assert result.state == RunState.FAILED
        assert "not found" in result.error

    @pytest.mark.asyncio
    async def test_parse_error(self, controller, observed):
        executor = FakeExecutor()
        result = await controller.reconcile_interface(
            "R1", "Gi0/1", {"mac_address": "aa:bb"}, executor=executor, source=FakeSource([observed])
        )
        assert result.state == RunState.FAILED
        assert result.error.startswith("Parse error")
        assert executor.calls == []

    @pytest.mark.asyncio
    async def test_accepts_desired_state(self, controller, observed, desired):
        executor = FakeExecutor()
        result = await controller.reconcile_interface(
            "R1", "Gi0/1", desired, executor=executor, source=FakeSource([observed])
        )
        assert result.success
        assert len(executor.calls) == 5


class TestIntentRunner:
    """Tests for IntentRunner."""

    @pytest.mark.asyncio
    async def test_generic_exception_fails_run(self):
        async def executor(intent, node_id, params):
            raise RuntimeError("boom")

        result = await IntentRunner().run(
            [Intent("interface.enable", "R1", {"interface": "Gi1"})],
            executor,
            ReconciliationResult(node_id="R1", interface="Gi1"),
        )
        assert result.state == RunState.FAILED
        assert result.error == "interface.enable failed: boom"

    @pytest.mark.asyncio
    async def test_empty_list_completes(self):
        result = await IntentRunner().run([], FakeExecutor(), ReconciliationResult())
        assert result.state == RunState.COMPLETED

    def test_resolve_rejects_non_callable(self):
        with pytest.raises(TypeError):
            resolve_executor(42)


class TestPreview:
    """Tests for preview helpers."""

    def test_plan(self, controller, observed, desired):
        intents = controller.plan(observed, desired, "R1")
        assert [i.name for i in intents][0] == "interface.enable"
        assert all(i.node_id == "R1" for i in intents)

    def test_preview_text(self, controller, observed, desired):
        text = controller.preview(observed, desired)
        assert "5 total" in text

    def test_preview_validation_failure(self, controller, observed, desired):
        text = controller.preview(observed, desired.copy(ipv4_address="bad"))
        assert text.startswith("Validation failed")
