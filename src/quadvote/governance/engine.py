"""
Quadratic voting engine.

``VotingEngine`` exposes the nine mutating governance operations and the
read-only queries over per-proposal tallies, ballots and delegations.

Every mutating operation takes the caller identity and the current block
explicitly and returns an ``OperationResult``. Rule violations fail the
operation before anything is written; collaborator failures and arithmetic
faults are raised to the caller, also before anything is written.
"""

from dataclasses import replace
from typing import Any, Callable, Dict, List, Optional, Union

from ..errors.exceptions import (
    AuthorizationError,
    CollaboratorError,
    DelegationError,
    ErrorCode,
    ErrorContext,
    GovernanceError,
    QuadVoteError,
    QuorumNotMetError,
    StateConflictError,
    TimingViolationError,
    WeightError,
    create_input_error,
)
from ..logging import LogContext, get_logger
from .config import VotingConfig
from .delegation import DelegationManager
from .eligibility import EligibilityGuard
from .observability import EventLog, EventType, GovernanceEvent
from .services import ProposalRegistry, StakingService, call_collaborator
from .tally import decide_outcome
from .types import (
    Delegation,
    OperationResult,
    ProposalTally,
    UserVote,
    VoteType,
    VotingState,
    VotingWindow,
)
from .weights import QuadraticWeightStrategy, fetch_stake, validate_stake

logger = get_logger(__name__)


def _is_positive_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


class VotingEngine:
    """Main voting engine for quadvote."""

    def __init__(self, config: VotingConfig, events: Optional[EventLog] = None):
        """Initialize voting engine."""
        config.validate()
        self.config = config
        self.state = VotingState()
        self.weights = QuadraticWeightStrategy(config.min_vote_weight)
        self.guard = EligibilityGuard(config, self.state)
        self.delegations = DelegationManager(config)
        self.events = events if events is not None else EventLog()

    # Operation plumbing

    def _execute(
        self,
        operation: str,
        caller: str,
        current_block: Optional[int],
        proposal_id: Optional[int],
        func: Callable[..., OperationResult],
        *args: Any,
    ) -> OperationResult:
        """Run ``func`` and turn a GovernanceError into a failed result."""
        log_context = LogContext(
            component="voting_engine",
            operation=operation,
            caller=caller,
            proposal_id=proposal_id,
            block_height=current_block,
        )
        try:
            return func(*args)
        except GovernanceError as e:
            e.context = ErrorContext(
                component="voting_engine",
                operation=operation,
                caller=caller,
                proposal_id=proposal_id,
                block_height=current_block,
            )
            code = int(e.error_code) if e.error_code is not None else None
            logger.warning(
                f"{operation} rejected with code {code}: {e.message}",
                context=log_context,
                extra={"error_code": code},
            )
            return OperationResult.failure(e, operation=operation)
        except QuadVoteError as e:
            logger.error(f"{operation} aborted: {e}", context=log_context, exception=e)
            raise

    @staticmethod
    def _require_proposal_id(proposal_id: Any) -> None:
        if not _is_positive_int(proposal_id):
            raise create_input_error(
                "proposal_id",
                proposal_id,
                "positive integer",
                ErrorCode.INVALID_PROPOSAL_ID,
            )

    def _require_weight(self, identity: str, staking: StakingService) -> int:
        weight = self.weights.effective_weight(identity, staking)
        if weight == 0:
            raise WeightError(f"{identity} has no voting weight")
        return weight

    # Configuration

    def set_staking_service(
        self,
        caller: str,
        service: Optional[StakingService],
        current_block: Optional[int] = None,
    ) -> OperationResult:
        """Admin only: point the engine at a staking service."""
        return self._execute(
            "set_staking_service", caller, current_block, None,
            self._set_staking_service, caller, service,
        )

    def _set_staking_service(self, caller: str, service: Optional[StakingService]) -> OperationResult:
        self.config.set_staking_service(caller, service)
        return OperationResult.success(operation="set_staking_service")

    def set_proposal_registry(
        self,
        caller: str,
        registry: Optional[ProposalRegistry],
        current_block: Optional[int] = None,
    ) -> OperationResult:
        """Admin only: point the engine at a proposal registry."""
        return self._execute(
            "set_proposal_registry", caller, current_block, None,
            self._set_proposal_registry, caller, registry,
        )

    def _set_proposal_registry(
        self, caller: str, registry: Optional[ProposalRegistry]
    ) -> OperationResult:
        self.config.set_proposal_registry(caller, registry)
        return OperationResult.success(operation="set_proposal_registry")

    def set_default_quorum(
        self, caller: str, quorum: int, current_block: Optional[int] = None
    ) -> OperationResult:
        """Admin only: set the participation percentage required at tally."""
        return self._execute(
            "set_default_quorum", caller, current_block, None,
            self._set_default_quorum, caller, quorum,
        )

    def _set_default_quorum(self, caller: str, quorum: int) -> OperationResult:
        self.config.set_default_quorum(caller, quorum)
        return OperationResult.success(operation="set_default_quorum")

    # Voting lifecycle

    def initialize_voting(
        self, caller: str, proposal_id: int, duration: int, current_block: int
    ) -> OperationResult:
        """Registry only: open a tally and snapshot the aggregate stake."""
        return self._execute(
            "initialize_voting", caller, current_block, proposal_id,
            self._initialize_voting, caller, proposal_id, duration, current_block,
        )

    def _initialize_voting(
        self, caller: str, proposal_id: int, duration: int, current_block: int
    ) -> OperationResult:
        self.config.require_registry()
        if not self.config.is_registry(caller):
            raise AuthorizationError(
                f"Only the proposal registry may initialize voting, not {caller}",
                caller=caller,
            )
        self._require_proposal_id(proposal_id)
        if not _is_positive_int(duration):
            raise create_input_error(
                "duration", duration, "positive integer", ErrorCode.INVALID_DURATION
            )
        staking = self.config.require_staking()

        total_stake = validate_stake(
            fetch_stake(staking, self.config.aggregate_stake_identity)
        )
        if total_stake == 0:
            raise WeightError(
                "Aggregate stake is zero; quorum could never be evaluated",
                error_code=ErrorCode.ZERO_TOTAL_STAKE,
            )

        if proposal_id in self.state.tallies:
            logger.warning(f"Re-initializing voting for proposal #{proposal_id}")

        tally = ProposalTally(
            proposal_id=proposal_id,
            total_stake_at_start=total_stake,
            end_block=current_block + duration,
        )
        self.state.tallies[proposal_id] = tally

        logger.info(
            f"Voting opened for proposal #{proposal_id} until block {tally.end_block}",
            context=LogContext(
                operation="initialize_voting",
                caller=caller,
                proposal_id=proposal_id,
                block_height=current_block,
            ),
        )
        self.events.emit(
            EventType.VOTING_INITIALIZED,
            proposal_id=proposal_id,
            block_height=current_block,
            end_block=tally.end_block,
            total_stake_at_start=total_stake,
        )
        return OperationResult.success(operation="initialize_voting")

    def cast_vote(
        self,
        caller: str,
        proposal_id: int,
        vote_type: Union[VoteType, str],
        current_block: int,
    ) -> OperationResult:
        """Cast the caller's own ballot with their quadratic weight."""
        return self._execute(
            "cast_vote", caller, current_block, proposal_id,
            self._cast_vote, caller, proposal_id, vote_type, current_block,
        )

    def _cast_vote(
        self,
        caller: str,
        proposal_id: int,
        vote_type: Union[VoteType, str],
        current_block: int,
    ) -> OperationResult:
        staking = self.config.require_staking()
        self._require_proposal_id(proposal_id)
        choice = VoteType.parse(vote_type)
        tally = self.guard.require_eligible(proposal_id, caller, current_block)
        weight = self._require_weight(caller, staking)

        vote = UserVote(
            proposal_id=proposal_id,
            voter=caller,
            vote_type=choice,
            weight=weight,
            block_height=current_block,
        )
        self.state.record_vote(vote)
        tally.add_weight(choice, weight)

        logger.info(
            f"{caller} voted {choice.value} on proposal #{proposal_id} with weight {weight}",
            context=LogContext(
                operation="cast_vote",
                caller=caller,
                proposal_id=proposal_id,
                block_height=current_block,
            ),
        )
        self.events.emit(
            EventType.VOTE_CAST,
            proposal_id=proposal_id,
            block_height=current_block,
            voter=caller,
            vote_type=choice.value,
            weight=weight,
        )
        return OperationResult.success(operation="cast_vote", weight=weight)

    def delegate_vote(
        self, caller: str, proposal_id: int, delegatee: str, current_block: int
    ) -> OperationResult:
        """Grant ``delegatee`` the right to cast the caller's ballot on one proposal."""
        return self._execute(
            "delegate_vote", caller, current_block, proposal_id,
            self._delegate_vote, caller, proposal_id, delegatee, current_block,
        )

    def _delegate_vote(
        self, caller: str, proposal_id: int, delegatee: str, current_block: int
    ) -> OperationResult:
        self._require_proposal_id(proposal_id)
        self.guard.require_voting_open(proposal_id, current_block)
        self.guard.require_not_voted(proposal_id, caller)
        if caller == delegatee:
            raise DelegationError(
                "Cannot delegate to self", error_code=ErrorCode.DELEGATE_SELF
            )

        delegation = self.delegations.grant(caller, delegatee, proposal_id, current_block)

        logger.info(
            f"{caller} delegated proposal #{proposal_id} to {delegatee} "
            f"until block {delegation.expiry_block}",
            context=LogContext(
                operation="delegate_vote",
                caller=caller,
                proposal_id=proposal_id,
                block_height=current_block,
            ),
        )
        self.events.emit(
            EventType.VOTE_DELEGATED,
            proposal_id=proposal_id,
            block_height=current_block,
            delegator=caller,
            delegatee=delegatee,
            expiry_block=delegation.expiry_block,
        )
        return OperationResult.success(
            operation="delegate_vote", expiry_block=delegation.expiry_block
        )

    def cast_delegated_vote(
        self,
        caller: str,
        proposal_id: int,
        vote_type: Union[VoteType, str],
        delegator: str,
        current_block: int,
    ) -> OperationResult:
        """Cast ``delegator``'s ballot, with the delegator's own weight."""
        return self._execute(
            "cast_delegated_vote", caller, current_block, proposal_id,
            self._cast_delegated_vote, caller, proposal_id, vote_type, delegator, current_block,
        )

    def _cast_delegated_vote(
        self,
        caller: str,
        proposal_id: int,
        vote_type: Union[VoteType, str],
        delegator: str,
        current_block: int,
    ) -> OperationResult:
        self._require_proposal_id(proposal_id)
        choice = VoteType.parse(vote_type)
        details = self.guard.require_voting_open(proposal_id, current_block)
        self.delegations.validate_for_cast(delegator, caller, proposal_id, current_block)
        self.guard.require_not_voted(proposal_id, delegator)
        self.guard.require_proposal_active(proposal_id, details)
        tally = self.guard.require_open_tally(proposal_id)
        staking = self.config.require_staking()
        weight = self._require_weight(delegator, staking)

        vote = UserVote(
            proposal_id=proposal_id,
            voter=delegator,
            vote_type=choice,
            weight=weight,
            delegated_to=caller,
            block_height=current_block,
        )
        self.state.record_vote(vote)
        tally.add_weight(choice, weight)

        logger.info(
            f"{caller} voted {choice.value} on proposal #{proposal_id} for {delegator} "
            f"with weight {weight}",
            context=LogContext(
                operation="cast_delegated_vote",
                caller=caller,
                proposal_id=proposal_id,
                block_height=current_block,
            ),
        )
        self.events.emit(
            EventType.DELEGATED_VOTE_CAST,
            proposal_id=proposal_id,
            block_height=current_block,
            delegator=delegator,
            delegatee=caller,
            vote_type=choice.value,
            weight=weight,
        )
        return OperationResult.success(operation="cast_delegated_vote", weight=weight)

    def revoke_delegation(
        self, caller: str, proposal_id: int, delegatee: str, current_block: int
    ) -> OperationResult:
        """Withdraw a live delegation. Ballots already cast through it stand."""
        return self._execute(
            "revoke_delegation", caller, current_block, proposal_id,
            self._revoke_delegation, caller, proposal_id, delegatee, current_block,
        )

    def _revoke_delegation(
        self, caller: str, proposal_id: int, delegatee: str, current_block: int
    ) -> OperationResult:
        self.delegations.revoke(caller, delegatee, proposal_id, current_block)

        logger.info(
            f"{caller} revoked delegation to {delegatee} for proposal #{proposal_id}",
            context=LogContext(
                operation="revoke_delegation",
                caller=caller,
                proposal_id=proposal_id,
                block_height=current_block,
            ),
        )
        self.events.emit(
            EventType.DELEGATION_REVOKED,
            proposal_id=proposal_id,
            block_height=current_block,
            delegator=caller,
            delegatee=delegatee,
        )
        return OperationResult.success(operation="revoke_delegation")

    def tally_votes(
        self, caller: str, proposal_id: int, current_block: int
    ) -> OperationResult:
        """Finalize a closed proposal and push its status to the registry.

        Below quorum the proposal is still finalized, but the result reports
        QUORUM_NOT_MET with ``status`` set to QUORUM_FAILED.
        """
        return self._execute(
            "tally_votes", caller, current_block, proposal_id,
            self._tally_votes, caller, proposal_id, current_block,
        )

    def _tally_votes(
        self, caller: str, proposal_id: int, current_block: int
    ) -> OperationResult:
        registry = self.config.require_registry()
        self._require_proposal_id(proposal_id)
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
        if current_block < tally.end_block:
            raise TimingViolationError(
                f"Voting on proposal #{proposal_id} is open until block {tally.end_block}",
                current_block=current_block,
                error_code=ErrorCode.VOTING_STILL_OPEN,
            )

        decision = decide_outcome(tally, self.config.default_quorum)

        updated = call_collaborator(
            "registry", registry.update_proposal_status, proposal_id, decision.status
        )
        if not updated:
            raise CollaboratorError(
                f"Registry refused status {decision.status.value} for proposal #{proposal_id}",
                service="registry",
            )
        tally.finalize(decision.status)

        log_context = LogContext(
            operation="tally_votes",
            caller=caller,
            proposal_id=proposal_id,
            block_height=current_block,
        )
        self.events.emit(
            EventType.VOTING_TALLIED,
            proposal_id=proposal_id,
            block_height=current_block,
            status=decision.status.value,
            participation=decision.participation,
            quorum=decision.quorum,
            yes=tally.yes,
            no=tally.no,
            abstain=tally.abstain,
        )

        if not decision.quorum_met:
            logger.warning(
                f"Proposal #{proposal_id} finalized without quorum: "
                f"{decision.participation}% < {decision.quorum}%",
                context=log_context,
                extra={"error_code": int(ErrorCode.QUORUM_NOT_MET)},
            )
            error = QuorumNotMetError(
                f"Participation {decision.participation}% is below quorum {decision.quorum}%",
                participation=decision.participation,
                quorum=decision.quorum,
            )
            return OperationResult.failure(
                error,
                operation="tally_votes",
                status=decision.status,
                participation=decision.participation,
            )

        logger.info(
            f"Proposal #{proposal_id} finalized as {decision.status.value} "
            f"({decision.participation}% participation)",
            context=log_context,
        )
        return OperationResult.success(
            value=decision.status,
            operation="tally_votes",
            status=decision.status,
            participation=decision.participation,
        )

    # Queries

    @property
    def staking_address(self) -> Optional[str]:
        return self.config.staking_address

    @property
    def registry_address(self) -> Optional[str]:
        return self.config.registry_address

    @property
    def default_quorum(self) -> int:
        return self.config.default_quorum

    def get_tally(self, proposal_id: int) -> Optional[ProposalTally]:
        """Get a copy of a proposal's tally."""
        tally = self.state.get_tally(proposal_id)
        return replace(tally) if tally is not None else None

    def get_vote(self, proposal_id: int, voter: str) -> Optional[UserVote]:
        """Get the ballot recorded for ``voter`` on a proposal."""
        return self.state.get_vote(proposal_id, voter)

    def get_votes(self, proposal_id: int) -> List[UserVote]:
        """Get every ballot recorded on a proposal."""
        return self.state.votes_for_proposal(proposal_id)

    def get_delegation(self, delegator: str, delegatee: str) -> Optional[Delegation]:
        """Get the delegation for an ordered pair, expired or not."""
        return self.delegations.get(delegator, delegatee)

    def get_delegations_from(self, delegator: str) -> List[Delegation]:
        """Delegations granted by ``delegator``, expired or not."""
        return self.delegations.get_delegations_from(delegator)

    def get_delegations_to(self, delegatee: str) -> List[Delegation]:
        return self.delegations.get_delegations_to(delegatee)

    def get_delegation_statistics(self, current_block: int) -> Dict[str, Any]:
        return self.delegations.get_delegation_statistics(current_block)

    def effective_weight(self, identity: str) -> int:
        """Current quadratic weight of ``identity``; 0 below the minimum."""
        return self.weights.effective_weight(identity, self.config.require_staking())

    def check_voting_period(self, proposal_id: int, current_block: int) -> VotingWindow:
        return self.guard.check_voting_period(proposal_id, current_block)

    def has_not_voted(self, proposal_id: int, identity: str) -> bool:
        return self.guard.has_not_voted(proposal_id, identity)

    def is_proposal_active(self, proposal_id: int) -> bool:
        return self.guard.is_proposal_active(proposal_id)

    def get_events(
        self,
        proposal_id: Optional[int] = None,
        event_type: Optional[EventType] = None,
    ) -> List[GovernanceEvent]:
        return self.events.get_events(proposal_id=proposal_id, event_type=event_type)

    def to_dict(self) -> Dict[str, Any]:
        """Export configuration and voting state."""
        return {
            "config": self.config.to_dict(),
            "tallies": {
                pid: tally.to_dict() for pid, tally in sorted(self.state.tallies.items())
            },
            "votes": [vote.to_dict() for vote in self.state.votes.values()],
            "delegations": [d.to_dict() for d in self.delegations.delegations.values()],
            "event_count": len(self.events),
            "event_head": self.events.head_hash,
        }
