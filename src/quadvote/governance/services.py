"""
Collaborator service ports.

The voting engine talks to exactly two external services: a staking
service that reports staked balances and a proposal registry that owns
proposal timing and status. Both are injected as implementations of the
abstract ports below; the in-memory implementations back tests, demos
and single-process deployments.
"""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional, Tuple, Union

from ..errors.exceptions import CollaboratorError, QuadVoteError
from ..logging import get_logger
from .types import OperationResult, ProposalDetails, ProposalStatus

if TYPE_CHECKING:
    from .engine import VotingEngine

logger = get_logger(__name__)


def call_collaborator(service: str, func: Callable[..., Any], *args: Any) -> Any:
    """Invoke a port method; any foreign exception fails the operation as a CollaboratorError."""
    try:
        return func(*args)
    except QuadVoteError:
        raise
    except Exception as e:
        name = getattr(func, "__name__", repr(func))
        raise CollaboratorError(
            f"{service} call {name} failed: {e}", service=service, cause=e
        ) from e


class StakingService(ABC):
    """Port to the staking/lockup service."""

    address: str

    @abstractmethod
    def get_staked_balance(self, identity: str) -> int:
        """Return the staked balance of ``identity``.

        Unknown identities may return 0 or raise StakeNotFoundError.
        """
        pass


class ProposalRegistry(ABC):
    """Port to the proposal registry."""

    address: str

    @abstractmethod
    def get_proposal_details(self, proposal_id: int) -> Optional[ProposalDetails]:
        """Return timing and status for a proposal, or None if unknown."""
        pass

    @abstractmethod
    def update_proposal_status(
        self, proposal_id: int, status: ProposalStatus
    ) -> bool:
        """Record a terminal status pushed by the voting engine."""
        pass


class InMemoryStakingService(StakingService):
    """Staking service backed by a dictionary of balances."""

    def __init__(self, address: str, balances: Optional[Dict[str, int]] = None):
        self.address = address
        self._balances: Dict[str, int] = {}
        for identity, amount in (balances or {}).items():
            self.set_balance(identity, amount)

    def set_balance(self, identity: str, amount: int) -> None:
        if not isinstance(amount, int) or isinstance(amount, bool) or amount < 0:
            raise ValueError(f"Staked balance must be a non-negative integer, got {amount!r}")
        self._balances[identity] = amount

    def get_staked_balance(self, identity: str) -> int:
        return self._balances.get(identity, 0)

    def __repr__(self) -> str:
        return f"<InMemoryStakingService {self.address} accounts={len(self._balances)}>"


class InMemoryProposalRegistry(ProposalRegistry):
    """Proposal registry backed by a dictionary of ProposalDetails."""

    def __init__(self, address: str):
        self.address = address
        self._proposals: Dict[int, ProposalDetails] = {}
        self.status_history: List[Tuple[int, str]] = []

    def register(
        self,
        proposal_id: int,
        start_block: int,
        end_block: int,
        quorum: int = 5,
        status: Union[ProposalStatus, str] = ProposalStatus.ACTIVE,
    ) -> ProposalDetails:
        """Add or replace a proposal's timing and status."""
        details = ProposalDetails(
            start_block=start_block,
            end_block=end_block,
            quorum=quorum,
            status=status,
        )
        self._proposals[proposal_id] = details
        return details

    def set_status(self, proposal_id: int, status: Union[ProposalStatus, str]) -> None:
        """Change status without touching the voting window (pause, cancel)."""
        details = self._proposals[proposal_id]
        self._proposals[proposal_id] = ProposalDetails(
            start_block=details.start_block,
            end_block=details.end_block,
            quorum=details.quorum,
            status=status,
        )

    def get_proposal_details(self, proposal_id: int) -> Optional[ProposalDetails]:
        return self._proposals.get(proposal_id)

    def update_proposal_status(
        self, proposal_id: int, status: ProposalStatus
    ) -> bool:
        if proposal_id not in self._proposals:
            logger.warning(f"Status update for unknown proposal #{proposal_id}")
            return False
        self.set_status(proposal_id, status)
        self.status_history.append((proposal_id, status.value))
        return True

    def open_voting(
        self,
        engine: "VotingEngine",
        proposal_id: int,
        duration: int,
        current_block: int,
        quorum: int = 5,
    ) -> OperationResult:
        """Register an active proposal and ask the engine to start its tally.

        The voting window is ``[current_block, current_block + duration)``,
        matching the engine's ``end_block``.
        """
        self.register(
            proposal_id,
            start_block=current_block,
            end_block=current_block + duration,
            quorum=quorum,
            status=ProposalStatus.ACTIVE,
        )
        return engine.initialize_voting(
            caller=self.address,
            proposal_id=proposal_id,
            duration=duration,
            current_block=current_block,
        )

    def __repr__(self) -> str:
        return f"<InMemoryProposalRegistry {self.address} proposals={len(self._proposals)}>"
