"""
quadvote: quadratic, token-weighted governance voting.

Staked balances become voting power through an integer square root, each
identity votes at most once per proposal (directly or through a delegate),
and a proposal is finalized against a participation quorum measured on the
stake snapshot taken when voting opened.
"""

from .errors import ErrorCode, GovernanceError, QuadVoteError
from .governance import (
    InMemoryProposalRegistry,
    InMemoryStakingService,
    OperationResult,
    ProposalStatus,
    VoteType,
    VotingConfig,
    VotingEngine,
)

__version__ = "0.1.0"

__all__ = [
    "VotingEngine",
    "VotingConfig",
    "VoteType",
    "ProposalStatus",
    "OperationResult",
    "InMemoryStakingService",
    "InMemoryProposalRegistry",
    "ErrorCode",
    "GovernanceError",
    "QuadVoteError",
    "__version__",
]
