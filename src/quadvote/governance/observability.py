"""
Governance events and audit trail.

Every committed mutation appends one event. Events are chained by SHA-256
(each hash covers the previous one), so ``verify_integrity`` detects any
after-the-fact edit, reordering or deletion.
"""

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from ..crypto.hashing import Hash, SHA256Hasher
from ..logging import get_logger

logger = get_logger(__name__)

EventListener = Callable[["GovernanceEvent"], None]


class EventType(Enum):
    """Types of governance events."""

    VOTING_INITIALIZED = "voting-initialized"
    VOTE_CAST = "vote-cast"
    VOTE_DELEGATED = "vote-delegated"
    DELEGATED_VOTE_CAST = "delegated-vote-cast"
    VOTING_TALLIED = "voting-tallied"
    DELEGATION_REVOKED = "delegation-revoked"


@dataclass
class GovernanceEvent:
    """A governance event for the audit trail."""

    sequence: int
    event_type: EventType
    block_height: int
    proposal_id: int

    # Identities involved
    voter: Optional[str] = None
    delegator: Optional[str] = None
    delegatee: Optional[str] = None

    metadata: Dict[str, Any] = field(default_factory=dict)

    # Hash chain
    previous_hash: str = field(default_factory=lambda: Hash.zero().to_hex())
    event_hash: Optional[str] = None

    def __post_init__(self):
        """Calculate event hash after initialization."""
        self.event_hash = self.calculate_hash()

    def calculate_hash(self) -> str:
        """Hash every field except ``event_hash`` itself."""
        event_data = {
            "sequence": self.sequence,
            "event_type": self.event_type.value,
            "block_height": self.block_height,
            "proposal_id": self.proposal_id,
            "voter": self.voter,
            "delegator": self.delegator,
            "delegatee": self.delegatee,
            "metadata": self.metadata,
            "previous_hash": self.previous_hash,
        }
        event_json = json.dumps(event_data, sort_keys=True, default=str)
        return SHA256Hasher.hash(event_json).to_hex()

    @property
    def identities(self) -> List[str]:
        return [i for i in (self.voter, self.delegator, self.delegatee) if i is not None]

    def to_dict(self) -> Dict[str, Any]:
        """Convert event to dictionary."""
        return {
            "sequence": self.sequence,
            "event": self.event_type.value,
            "block_height": self.block_height,
            "proposal_id": self.proposal_id,
            "voter": self.voter,
            "delegator": self.delegator,
            "delegatee": self.delegatee,
            "metadata": dict(self.metadata),
            "event_hash": self.event_hash,
            "previous_hash": self.previous_hash,
        }


class EventLog:
    """Append-only, hash-chained log of governance events."""

    def __init__(self):
        """Initialize event log."""
        self.events: List[GovernanceEvent] = []
        self.proposal_events: Dict[int, List[GovernanceEvent]] = {}
        self.identity_events: Dict[str, List[GovernanceEvent]] = {}
        self.listeners: Dict[Optional[EventType], List[EventListener]] = {}

    def __len__(self) -> int:
        return len(self.events)

    @property
    def head_hash(self) -> str:
        """Hash of the latest event, or the zero hash for an empty log."""
        if self.events:
            return self.events[-1].event_hash
        return Hash.zero().to_hex()

    def add_listener(
        self, listener: EventListener, event_type: Optional[EventType] = None
    ) -> None:
        """Subscribe to one event type, or to every event when ``event_type`` is None."""
        self.listeners.setdefault(event_type, []).append(listener)

    def emit(
        self,
        event_type: EventType,
        proposal_id: int,
        block_height: int,
        voter: Optional[str] = None,
        delegator: Optional[str] = None,
        delegatee: Optional[str] = None,
        **metadata: Any,
    ) -> GovernanceEvent:
        """Append a new event and notify listeners."""
        event = GovernanceEvent(
            sequence=len(self.events),
            event_type=event_type,
            block_height=block_height,
            proposal_id=proposal_id,
            voter=voter,
            delegator=delegator,
            delegatee=delegatee,
            metadata=metadata,
            previous_hash=self.head_hash,
        )

        self.events.append(event)
        self.proposal_events.setdefault(proposal_id, []).append(event)
        for identity in set(event.identities):
            self.identity_events.setdefault(identity, []).append(event)

        logger.debug(f"Event #{event.sequence} {event_type.value} for proposal #{proposal_id}")
        self._notify(event)
        return event

    def _notify(self, event: GovernanceEvent) -> None:
        listeners = self.listeners.get(event.event_type, []) + self.listeners.get(None, [])
        for listener in listeners:
            try:
                listener(event)
            except Exception as e:
                logger.error(
                    f"Error in event listener for {event.event_type.value}: {e}",
                    exception=e,
                )

    def get_events(
        self,
        proposal_id: Optional[int] = None,
        event_type: Optional[EventType] = None,
    ) -> List[GovernanceEvent]:
        """Events in emission order, optionally filtered."""
        if proposal_id is not None:
            events = self.proposal_events.get(proposal_id, [])
        else:
            events = self.events
        if event_type is not None:
            events = [e for e in events if e.event_type is event_type]
        return list(events)

    def get_proposal_events(self, proposal_id: int) -> List[GovernanceEvent]:
        """Get all events for a proposal."""
        return list(self.proposal_events.get(proposal_id, []))

    def get_identity_events(self, identity: str) -> List[GovernanceEvent]:
        """Get all events naming ``identity`` as voter, delegator or delegatee."""
        return list(self.identity_events.get(identity, []))

    def verify_integrity(self) -> bool:
        """Verify every event hash and every link of the chain."""
        previous = Hash.zero().to_hex()
        for index, event in enumerate(self.events):
            if event.sequence != index:
                return False
            if event.previous_hash != previous:
                return False
            if event.event_hash != event.calculate_hash():
                return False
            previous = event.event_hash
        return True

    def get_summary(self) -> Dict[str, Any]:
        """Get event log summary."""
        event_counts: Dict[str, int] = {}
        for event in self.events:
            name = event.event_type.value
            event_counts[name] = event_counts.get(name, 0) + 1

        return {
            "total_events": len(self.events),
            "event_counts": event_counts,
            "unique_proposals": len(self.proposal_events),
            "unique_identities": len(self.identity_events),
            "head_hash": self.head_hash,
        }
