"""
Core governance types and data structures.

This module defines the records the voting engine keeps per proposal,
per ballot and per delegation, plus the result object every mutating
operation returns.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union

from ..errors.exceptions import (
    ArithmeticFault,
    DelegationError,
    ErrorCode,
    GovernanceError,
    StateConflictError,
    create_input_error,
)


class VoteType(Enum):
    """Ballot choices."""

    YES = "yes"
    NO = "no"
    ABSTAIN = "abstain"

    @classmethod
    def parse(cls, value: Union["VoteType", str]) -> "VoteType":
        """Accept a VoteType or its string tag; anything else is an input error."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value)
            except ValueError:
                pass
        raise create_input_error(
            "vote_type",
            value,
            [member.value for member in cls],
            ErrorCode.INVALID_VOTE_TYPE,
        )


class ProposalStatus(Enum):
    """Status tags exchanged with the proposal registry."""

    PENDING = "pending"
    ACTIVE = "active"
    PAUSED = "paused"
    CANCELLED = "cancelled"
    PASSED = "passed"
    FAILED = "failed"
    QUORUM_FAILED = "quorum-failed"

    @property
    def is_terminal(self) -> bool:
        return self in (
            ProposalStatus.PASSED,
            ProposalStatus.FAILED,
            ProposalStatus.QUORUM_FAILED,
        )


class VotingWindow(Enum):
    """Where the logical clock sits relative to ``[start_block, end_block)``."""

    NOT_STARTED = "not_started"
    OPEN = "open"
    ENDED = "ended"


class VotingPhase(Enum):
    """Per-proposal state inside the voting engine."""

    UNINITIALIZED = "uninitialized"
    OPEN = "open"
    FINALIZED = "finalized"


@dataclass(frozen=True)
class ProposalDetails:
    """Timing and status of a proposal as reported by the registry."""

    start_block: int
    end_block: int
    quorum: int
    status: Union[ProposalStatus, str]

    @property
    def status_tag(self) -> str:
        if isinstance(self.status, ProposalStatus):
            return self.status.value
        return str(self.status)

    def window_at(self, current_block: int) -> VotingWindow:
        """Classify ``current_block`` against the half-open voting interval."""
        if current_block < self.start_block:
            return VotingWindow.NOT_STARTED
        if current_block >= self.end_block:
            return VotingWindow.ENDED
        return VotingWindow.OPEN


@dataclass
class ProposalTally:
    """Accumulated weight per outcome for one proposal."""

    proposal_id: int
    total_stake_at_start: int
    end_block: int
    yes: int = 0
    no: int = 0
    abstain: int = 0
    total_voted: int = 0
    finalized: bool = False
    outcome: Optional[ProposalStatus] = None

    def __post_init__(self):
        """Reject tallies that already break the bucket invariant."""
        for name in ("yes", "no", "abstain", "total_voted", "total_stake_at_start"):
            value = getattr(self, name)
            if not isinstance(value, int) or isinstance(value, bool) or value < 0:
                raise ArithmeticFault(
                    f"Tally field '{name}' must be a non-negative integer",
                    operand=value,
                )
        if not self.is_consistent():
            raise ArithmeticFault(
                f"Tally for proposal #{self.proposal_id} is inconsistent: "
                f"{self.total_voted} != {self.yes} + {self.no} + {self.abstain}",
                operand=self.total_voted,
            )

    @property
    def phase(self) -> VotingPhase:
        return VotingPhase.FINALIZED if self.finalized else VotingPhase.OPEN

    def is_consistent(self) -> bool:
        """``total_voted`` equals the sum of the three buckets."""
        return self.total_voted == self.yes + self.no + self.abstain

    def weight_for(self, vote_type: VoteType) -> int:
        """Get the accumulated weight of one bucket."""
        return {
            VoteType.YES: self.yes,
            VoteType.NO: self.no,
            VoteType.ABSTAIN: self.abstain,
        }[vote_type]

    def add_weight(self, vote_type: VoteType, weight: int) -> None:
        """Add ``weight`` to one bucket and to ``total_voted``."""
        if self.finalized:
            raise StateConflictError(
                f"Proposal #{self.proposal_id} is already finalized",
                error_code=ErrorCode.PROPOSAL_ALREADY_FINALIZED,
            )
        if weight <= 0:
            raise ArithmeticFault("Ballot weight must be positive", operand=weight)

        if vote_type is VoteType.YES:
            self.yes += weight
        elif vote_type is VoteType.NO:
            self.no += weight
        else:
            self.abstain += weight
        self.total_voted += weight

    def finalize(self, outcome: ProposalStatus) -> None:
        """Mark the tally final; there is no way back."""
        if self.finalized:
            raise StateConflictError(
                f"Proposal #{self.proposal_id} is already finalized",
                error_code=ErrorCode.PROPOSAL_ALREADY_FINALIZED,
            )
        self.finalized = True
        self.outcome = outcome

    def to_dict(self) -> Dict[str, Any]:
        """Convert tally to dictionary."""
        return {
            "proposal_id": self.proposal_id,
            "yes": self.yes,
            "no": self.no,
            "abstain": self.abstain,
            "total_voted": self.total_voted,
            "total_stake_at_start": self.total_stake_at_start,
            "end_block": self.end_block,
            "finalized": self.finalized,
            "outcome": self.outcome.value if self.outcome else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProposalTally":
        """Create tally from dictionary."""
        outcome = data.get("outcome")
        return cls(
            proposal_id=data["proposal_id"],
            yes=data["yes"],
            no=data["no"],
            abstain=data["abstain"],
            total_voted=data["total_voted"],
            total_stake_at_start=data["total_stake_at_start"],
            end_block=data["end_block"],
            finalized=data.get("finalized", False),
            outcome=ProposalStatus(outcome) if outcome else None,
        )


@dataclass(frozen=True)
class UserVote:
    """A ballot. Its presence is the only "has voted" flag."""

    proposal_id: int
    voter: str
    vote_type: VoteType
    weight: int
    delegated_to: Optional[str] = None
    block_height: Optional[int] = None

    @property
    def is_delegated(self) -> bool:
        return self.delegated_to is not None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "proposal_id": self.proposal_id,
            "voter": self.voter,
            "vote_type": self.vote_type.value,
            "weight": self.weight,
            "delegated_to": self.delegated_to,
            "block_height": self.block_height,
        }


@dataclass(frozen=True)
class Delegation:
    """Casting rights granted by ``delegator`` to ``delegatee`` for one proposal."""

    delegator: str
    delegatee: str
    proposal_id: int
    expiry_block: int
    granted_at_block: int = 0

    def __post_init__(self):
        if self.delegator == self.delegatee:
            raise DelegationError(
                "Cannot delegate to self", error_code=ErrorCode.DELEGATE_SELF
            )

    def is_expired(self, current_block: int) -> bool:
        """Expired once the clock reaches ``expiry_block``."""
        return current_block >= self.expiry_block

    def covers(self, proposal_id: int) -> bool:
        return self.proposal_id == proposal_id

    def is_valid_for(self, proposal_id: int, current_block: int) -> bool:
        return self.covers(proposal_id) and not self.is_expired(current_block)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "delegator": self.delegator,
            "delegatee": self.delegatee,
            "proposal_id": self.proposal_id,
            "expiry_block": self.expiry_block,
            "granted_at_block": self.granted_at_block,
        }


@dataclass
class OperationResult:
    """Outcome of a mutating governance operation.

    ``ok`` and ``value`` mirror a ledger call result: on success ``value`` is
    the payload (``True`` or a ProposalStatus), on failure it is the numeric
    ErrorCode. ``status`` is set by ``tally_votes`` whenever the proposal was
    finalized, including the quorum-failed branch that reports ``ok=False``.
    """

    ok: bool
    value: Any
    operation: Optional[str] = None
    error: Optional[GovernanceError] = None
    status: Optional[ProposalStatus] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def success(
        cls,
        value: Any = True,
        operation: Optional[str] = None,
        status: Optional[ProposalStatus] = None,
        **metadata: Any,
    ) -> "OperationResult":
        return cls(ok=True, value=value, operation=operation, status=status, metadata=metadata)

    @classmethod
    def failure(
        cls,
        error: GovernanceError,
        operation: Optional[str] = None,
        status: Optional[ProposalStatus] = None,
        **metadata: Any,
    ) -> "OperationResult":
        return cls(
            ok=False,
            value=error.error_code,
            operation=operation,
            error=error,
            status=status,
            metadata=metadata,
        )

    @property
    def error_code(self) -> Optional[ErrorCode]:
        return None if self.ok else self.value

    def is_successful(self) -> bool:
        """Check if the operation succeeded."""
        return self.ok

    def unwrap(self) -> Any:
        """Return the payload, raising the stored error on failure."""
        if not self.ok:
            raise self.error
        return self.value

    def to_dict(self) -> Dict[str, Any]:
        value = self.value
        if isinstance(value, ProposalStatus):
            value = value.value
        elif isinstance(value, ErrorCode):
            value = int(value)
        return {
            "ok": self.ok,
            "value": value,
            "operation": self.operation,
            "error": self.error.to_dict() if self.error else None,
            "status": self.status.value if self.status else None,
            "metadata": self.metadata,
        }


@dataclass
class VotingState:
    """Per-proposal tallies and per-(proposal, voter) ballots."""

    tallies: Dict[int, ProposalTally] = field(default_factory=dict)
    votes: Dict[Tuple[int, str], UserVote] = field(default_factory=dict)

    def get_tally(self, proposal_id: int) -> Optional[ProposalTally]:
        """Get a tally by proposal ID."""
        return self.tallies.get(proposal_id)

    def get_vote(self, proposal_id: int, voter: str) -> Optional[UserVote]:
        return self.votes.get((proposal_id, voter))

    def has_vote(self, proposal_id: int, voter: str) -> bool:
        return (proposal_id, voter) in self.votes

    def record_vote(self, vote: UserVote) -> None:
        """Store a ballot; a second ballot for the same key is refused."""
        key = (vote.proposal_id, vote.voter)
        if key in self.votes:
            raise StateConflictError(
                f"{vote.voter} has already voted on proposal #{vote.proposal_id}",
                error_code=ErrorCode.ALREADY_VOTED,
            )
        self.votes[key] = vote

    def votes_for_proposal(self, proposal_id: int) -> List[UserVote]:
        return [vote for (pid, _), vote in self.votes.items() if pid == proposal_id]
