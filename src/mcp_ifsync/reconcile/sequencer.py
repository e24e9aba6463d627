"""Intent sequencer.

Puts a change set into execution order: admin status first, then L3
addressing, then description/MTU/IPv6, and routing protocol attachment
last.
"""
from .schema import ChangeSet, GROUP_ORDER, Intent

_GROUP_RANK = {group: rank for rank, group in enumerate(GROUP_ORDER)}


class IntentSequencer:
    """Order field changes and bind them to a target node."""

    def sequence(self, change_set: ChangeSet, node_id: str) -> list[Intent]:
        """
        Build the ordered intent list for a change set.

        Detection order is ignored; groups without a change are simply
        absent from the result.

        Args:
            change_set: Changes from the diff engine
            node_id: Controller node the intents target

        Returns:
            Intents in execution order
        """
        ordered = sorted(
            change_set.changes,
            key=lambda change: _GROUP_RANK[change.group],
        )
        return [
            Intent(name=change.intent, node_id=node_id, params=dict(change.params))
            for change in ordered
        ]


def sequence(change_set: ChangeSet, node_id: str) -> list[Intent]:
    """Order a change set into executable intents."""
    return IntentSequencer().sequence(change_set, node_id)
