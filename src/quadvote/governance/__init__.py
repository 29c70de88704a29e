"""
Quadratic token-weighted governance voting for quadvote.

This module provides:
- Quadratic vote weighting from staked balances
- Direct and delegated vote casting, one ballot per identity per proposal
- Time-boxed, single-proposal delegations with lazy expiry
- Quorum evaluation and one-shot finalization
- Pluggable staking and proposal-registry services
- A hash-chained audit trail of governance events
"""

from .config import DEFAULT_AGGREGATE_STAKE_IDENTITY, VotingConfig
from .delegation import DelegationManager
from .eligibility import EligibilityGuard
from .engine import VotingEngine
from .observability import EventLog, EventType, GovernanceEvent
from .services import (
    InMemoryProposalRegistry,
    InMemoryStakingService,
    ProposalRegistry,
    StakingService,
)
from .tally import TallyDecision, compute_participation, decide_outcome
from .types import (
    Delegation,
    OperationResult,
    ProposalDetails,
    ProposalStatus,
    ProposalTally,
    UserVote,
    VoteType,
    VotingPhase,
    VotingState,
    VotingWindow,
)
from .weights import MAX_STAKE, QuadraticWeightStrategy, integer_sqrt, validate_stake

__all__ = [
    # Engine
    "VotingEngine",
    "VotingConfig",
    "DEFAULT_AGGREGATE_STAKE_IDENTITY",

    # Types
    "VoteType",
    "ProposalStatus",
    "VotingPhase",
    "VotingWindow",
    "ProposalDetails",
    "ProposalTally",
    "UserVote",
    "Delegation",
    "OperationResult",
    "VotingState",

    # Services
    "StakingService",
    "ProposalRegistry",
    "InMemoryStakingService",
    "InMemoryProposalRegistry",

    # Components
    "EligibilityGuard",
    "DelegationManager",
    "QuadraticWeightStrategy",
    "integer_sqrt",
    "validate_stake",
    "MAX_STAKE",
    "TallyDecision",
    "compute_participation",
    "decide_outcome",

    # Observability
    "EventType",
    "GovernanceEvent",
    "EventLog",
]
