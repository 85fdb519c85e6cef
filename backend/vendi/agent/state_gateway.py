"""
State Gateway - storage port used by the pipeline.

The engine knows nothing about the storage technology. Implementations must
raise `StateGatewayError` on any storage failure instead of returning
partial data; the pipeline lets it propagate.

A processed turn is written through `commit_turn` so its state, audit rows
and transcript land together or not at all.

Callers must serialize pipeline runs per conversation: `load` and `save`
form a read-modify-write cycle with no conflict detection.
"""
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence

from vendi.agent.domain import ActionHistoryRecord, ConversationState, HistoryTurn, Product


class StateGateway(ABC):

    @abstractmethod
    def load(self, conversation_id: str) -> ConversationState:
        """Return the stored state, creating and persisting a default one on first access."""

    @abstractmethod
    def save(self, conversation_id: str, changes: Dict[str, Any]) -> None:
        """Persist a partial update of the conversation state."""

    @abstractmethod
    def load_products(self, tenant_id: str) -> List[Product]:
        """Active catalog products for a tenant."""

    @abstractmethod
    def load_recent_history(self, conversation_id: str, limit: int) -> List[HistoryTurn]:
        """Last `limit` turns, oldest first."""

    @abstractmethod
    def append_action_history(self, records: List[ActionHistoryRecord]) -> None:
        """Append audit records. Never updates existing rows."""

    @abstractmethod
    def commit_turn(
        self,
        conversation_id: str,
        changes: Optional[Dict[str, Any]] = None,
        records: Sequence[ActionHistoryRecord] = (),
        messages: Sequence[HistoryTurn] = (),
    ) -> None:
        """Persist state changes, audit records and transcript turns atomically.

        All or nothing: a failure raises StateGatewayError and leaves storage
        exactly as it was before the call.
        """
