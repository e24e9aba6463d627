"""Diff engine for calculating changes between desired and observed state.

Computes the minimal set of intents needed to reach the desired state of
one interface.
"""
from typing import Optional

from .rules import FIELD_RULES, FieldRule
from .schema import (
    ChangeSet,
    FieldGroup,
    GROUP_ORDER,
    InterfaceDesiredState,
    InterfaceObservedState,
)


class DiffEngine:
    """Calculate differences between desired and observed interface state."""

    def __init__(self, rules: Optional[dict[FieldGroup, FieldRule]] = None):
        """
        Initialize diff engine.

        Args:
            rules: Field rules by group (defaults to FIELD_RULES)
        """
        self.rules = rules if rules is not None else FIELD_RULES

    def calculate(
        self,
        observed: InterfaceObservedState,
        desired: InterfaceDesiredState
    ) -> ChangeSet:
        """
        Calculate the change set for one interface.

        Args:
            observed: State captured from the device
            desired: Operator-edited target state

        Returns:
            ChangeSet with one entry per changed field group

        Raises:
            ValueError: If the states describe different interfaces
        """
        if desired.name and desired.name != observed.name:
            raise ValueError(
                f"Desired state for {desired.name} cannot be diffed "
                f"against observed state of {observed.name}"
            )

        result = ChangeSet(interface=observed.name)

        for group in GROUP_ORDER:
            rule = self.rules.get(group)
            if rule is None:
                continue
            change = rule(observed, desired)
            if change:
                result.changes.append(change)

        return result


def diff(
    observed: InterfaceObservedState,
    desired: InterfaceDesiredState
) -> ChangeSet:
    """Calculate the change set between observed and desired state."""
    return DiffEngine().calculate(observed, desired)


def summarize_diff(change_set: ChangeSet) -> str:
    """
    Create a human-readable summary of a change set.

    Useful for dry-run output and logging.
    """
    if change_set.no_change:
        return (
            f"No changes needed - {change_set.interface} "
            f"already matches desired state"
        )

    lines = [
        f"Changes to apply on {change_set.interface} "
        f"({change_set.total_changes} total):",
        "",
    ]

    for change in change_set.changes:
        details = ", ".join(
            f"{key}={value!r}"
            for key, value in change.params.items()
            if key != "interface"
        )
        lines.append(f"  [~] {change.group.value}: {change.intent}")
        if details:
            lines.append(f"      {details}")

    return "\n".join(lines)
