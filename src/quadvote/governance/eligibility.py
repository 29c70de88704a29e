"""
Voting window and eligibility checks.

Every vote-casting operation runs these checks left to right and stops at
the first failure. The ``check_*``/``has_*``/``is_*`` methods classify;
the ``require_*`` methods raise the matching GovernanceError.
"""

from typing import Optional

from ..errors.exceptions import ErrorCode, StateConflictError, TimingViolationError
from ..logging import get_logger
from .config import VotingConfig
from .services import call_collaborator
from .types import ProposalDetails, ProposalStatus, ProposalTally, VotingState, VotingWindow

logger = get_logger(__name__)


class EligibilityGuard:
    """Checks consulted by every mutating vote operation."""

    def __init__(self, config: VotingConfig, state: VotingState):
        """Initialize the guard over the engine's configuration and state."""
        self.config = config
        self.state = state

    def get_proposal_details(self, proposal_id: int) -> ProposalDetails:
        """Fetch timing and status from the registry; unknown ids are PROPOSAL_NOT_FOUND."""
        registry = self.config.require_registry()
        details = call_collaborator(
            "registry", registry.get_proposal_details, proposal_id
        )
        if details is None:
            raise StateConflictError(
                f"Proposal #{proposal_id} is unknown to the registry",
                error_code=ErrorCode.PROPOSAL_NOT_FOUND,
            )
        return details

    def check_voting_period(self, proposal_id: int, current_block: int) -> VotingWindow:
        """Classify ``current_block`` as not started, open or ended."""
        return self.get_proposal_details(proposal_id).window_at(current_block)

    def require_voting_open(self, proposal_id: int, current_block: int) -> ProposalDetails:
        """Return the proposal details if the window is open, else raise."""
        details = self.get_proposal_details(proposal_id)
        window = details.window_at(current_block)

        if window is VotingWindow.NOT_STARTED:
            raise TimingViolationError(
                f"Voting on proposal #{proposal_id} starts at block {details.start_block}",
                current_block=current_block,
                error_code=ErrorCode.VOTING_NOT_STARTED,
            )
        if window is VotingWindow.ENDED:
            raise TimingViolationError(
                f"Voting on proposal #{proposal_id} ended at block {details.end_block}",
                current_block=current_block,
                error_code=ErrorCode.VOTING_ENDED,
            )
        return details

    def has_not_voted(self, proposal_id: int, identity: str) -> bool:
        return not self.state.has_vote(proposal_id, identity)

    def require_not_voted(self, proposal_id: int, identity: str) -> None:
        if not self.has_not_voted(proposal_id, identity):
            raise StateConflictError(
                f"{identity} has already voted on proposal #{proposal_id}",
                error_code=ErrorCode.ALREADY_VOTED,
            )

    def is_proposal_active(
        self, proposal_id: int, details: Optional[ProposalDetails] = None
    ) -> bool:
        """Registry status is "active". A window can be open on a paused proposal."""
        if details is None:
            details = self.get_proposal_details(proposal_id)
        return details.status_tag == ProposalStatus.ACTIVE.value

    def require_proposal_active(
        self, proposal_id: int, details: Optional[ProposalDetails] = None
    ) -> None:
        if not self.is_proposal_active(proposal_id, details):
            raise StateConflictError(
                f"Proposal #{proposal_id} is not active",
                error_code=ErrorCode.PROPOSAL_NOT_FOUND,
            )

    def require_open_tally(self, proposal_id: int) -> ProposalTally:
        """Return the live tally; a missing one is 201, a finalized one 212."""
        tally = self.state.get_tally(proposal_id)
        if tally is None:
            raise StateConflictError(
                f"Voting was never initialized for proposal #{proposal_id}",
                error_code=ErrorCode.PROPOSAL_NOT_FOUND,
            )
        if tally.finalized:
            raise StateConflictError(
                f"Proposal #{proposal_id} is already finalized",
                error_code=ErrorCode.PROPOSAL_ALREADY_FINALIZED,
            )
        return tally

    def require_eligible(self, proposal_id: int, identity: str, current_block: int) -> ProposalTally:
        """Window open, identity has not voted, proposal active, tally open."""
        details = self.require_voting_open(proposal_id, current_block)
        self.require_not_voted(proposal_id, identity)
        self.require_proposal_active(proposal_id, details)
        tally = self.require_open_tally(proposal_id)
        logger.debug(
            f"{identity} is eligible to vote on proposal #{proposal_id} at block {current_block}"
        )
        return tally
