"""Runner for ordered intent lists.

Executes intents one at a time, awaiting each before issuing the next,
and stops at the first failure. Nothing is rolled back or retried.
"""
import asyncio
import inspect
import logging
from typing import Any, Awaitable, Callable, Optional, Union

from ..nbi.base import ExecutionError, IntentExecutor
from ..utils.audit_log import AuditTrail
from ..utils.logging_config import timed_section
from .schema import Intent, ReconciliationResult, RunState

logger = logging.getLogger(__name__)

ExecutorCallable = Callable[[str, str, dict[str, Any]], Union[Awaitable[Any], Any]]
Executor = Union[IntentExecutor, ExecutorCallable]

DEFAULT_INTENT_TIMEOUT = 30.0


def resolve_executor(executor: Executor) -> Callable[[str, str, dict[str, Any]], Awaitable[Any]]:
    """Turn an executor object or plain callable into one async call."""
    call = getattr(executor, "execute", executor)
    if not callable(call):
        raise TypeError(f"Not an intent executor: {executor!r}")

    async def invoke(intent: str, node_id: str, params: dict[str, Any]) -> Any:
        try:
            outcome = call(intent, node_id, params)
            if inspect.isawaitable(outcome):
                outcome = await outcome
        except (asyncio.TimeoutError, TimeoutError) as e:
            # Keep executor timeouts apart from the runner's own deadline
            raise ExecutionError(str(e) or type(e).__name__, intent=intent) from e
        return outcome

    return invoke


class IntentRunner:
    """Execute ordered intents against an intent executor."""

    def __init__(self, intent_timeout: Optional[float] = DEFAULT_INTENT_TIMEOUT):
        """
        Initialize runner.

        Args:
            intent_timeout: Seconds to wait for each intent (None = no limit)
        """
        self.intent_timeout = intent_timeout

    async def run(
        self,
        intents: list[Intent],
        executor: Executor,
        result: ReconciliationResult,
        audit: Optional[AuditTrail] = None,
    ) -> ReconciliationResult:
        """
        Execute intents in order, stopping at the first failure.

        Args:
            intents: Intents in execution order
            executor: Executor object or callable(intent, node_id, params)
            result: Result to fill in
            audit: Audit trail for the run (optional)

        Returns:
            The result, in state COMPLETED or FAILED
        """
        invoke = resolve_executor(executor)
        result.planned_intents = list(intents)

        for step, intent in enumerate(intents, start=1):
            result.state = RunState.EXECUTING
            logger.info(f"[{step}/{len(intents)}] {intent} on {intent.node_id}")

            try:
                async with timed_section("intent", device_id=intent.node_id, intent=intent.name):
                    await asyncio.wait_for(
                        invoke(intent.name, intent.node_id, dict(intent.params)),
                        timeout=self.intent_timeout,
                    )
            except asyncio.TimeoutError:
                self._fail(result, intent, f"timed out after {self.intent_timeout}s", audit)
                return result
            except asyncio.CancelledError:
                self._fail(result, intent, "cancelled", audit)
                raise
            except Exception as e:
                self._fail(result, intent, str(e) or type(e).__name__, audit)
                return result

            result.applied_intents.append(intent)
            if audit:
                audit.log_intent(intent, success=True)

        result.state = RunState.COMPLETED
        return result

    def _fail(
        self,
        result: ReconciliationResult,
        intent: Intent,
        reason: str,
        audit: Optional[AuditTrail],
    ) -> None:
        """Record the failing intent; earlier intents stay applied."""
        result.state = RunState.FAILED
        result.failed_intent = intent
        result.error = f"{intent.name} failed: {reason}"
        logger.error(
            f"{result.error} (params={intent.params}); "
            f"{len(result.applied_intents)} intent(s) already applied, not rolled back"
        )
        if audit:
            audit.log_intent(intent, success=False, error=reason)
