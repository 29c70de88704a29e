"""
Vote delegation for governance.

A delegation hands casting rights (never stake) for one proposal from a
delegator to a delegatee until an absolute expiry block. Records are keyed
by the ordered pair (delegator, delegatee); a new grant for the same pair
replaces the old one. Expired records are kept and simply refused.
"""

from typing import Any, Dict, List, Optional, Tuple

from ..errors.exceptions import DelegationError, ErrorCode
from ..logging import LogContext, get_logger
from .config import VotingConfig
from .types import Delegation

logger = get_logger(__name__)


class DelegationManager:
    """Manages vote delegations."""

    def __init__(self, config: VotingConfig):
        """Initialize delegation manager."""
        self.config = config
        self.delegations: Dict[Tuple[str, str], Delegation] = {}

    def grant(
        self,
        delegator: str,
        delegatee: str,
        proposal_id: int,
        current_block: int,
    ) -> Delegation:
        """Create or overwrite the delegation for (delegator, delegatee)."""
        if delegator == delegatee:
            raise DelegationError(
                "Cannot delegate to self", error_code=ErrorCode.DELEGATE_SELF
            )

        delegation = Delegation(
            delegator=delegator,
            delegatee=delegatee,
            proposal_id=proposal_id,
            expiry_block=current_block + self.config.max_delegation_duration,
            granted_at_block=current_block,
        )
        previous = self.delegations.get((delegator, delegatee))
        self.delegations[(delegator, delegatee)] = delegation

        if previous is not None:
            logger.debug(
                f"Delegation {delegator} -> {delegatee} for proposal "
                f"#{previous.proposal_id} superseded",
                context=LogContext(proposal_id=proposal_id, block_height=current_block),
            )
        return delegation

    def get(self, delegator: str, delegatee: str) -> Optional[Delegation]:
        """Get the delegation for an ordered pair, expired or not."""
        return self.delegations.get((delegator, delegatee))

    def validate_for_cast(
        self,
        delegator: str,
        delegatee: str,
        proposal_id: int,
        current_block: int,
    ) -> Delegation:
        """Return the delegation if it lets ``delegatee`` cast for ``delegator`` now."""
        delegation = self.get(delegator, delegatee)
        if delegation is None:
            raise DelegationError(f"No delegation from {delegator} to {delegatee}")

        if not delegation.covers(proposal_id):
            raise DelegationError(
                f"Delegation from {delegator} to {delegatee} is for proposal "
                f"#{delegation.proposal_id}, not #{proposal_id}"
            )

        if delegation.is_expired(current_block):
            raise DelegationError(
                f"Delegation from {delegator} to {delegatee} expired at block "
                f"{delegation.expiry_block}",
                error_code=ErrorCode.DELEGATION_EXPIRED,
            )
        return delegation

    def revoke(
        self,
        delegator: str,
        delegatee: str,
        proposal_id: int,
        current_block: int,
    ) -> Delegation:
        """Delete a matching, unexpired delegation and return it."""
        delegation = self.get(delegator, delegatee)
        if delegation is None or not delegation.is_valid_for(proposal_id, current_block):
            raise DelegationError(
                f"No active delegation from {delegator} to {delegatee} "
                f"for proposal #{proposal_id}"
            )

        del self.delegations[(delegator, delegatee)]
        return delegation

    def get_delegations_from(self, delegator: str) -> List[Delegation]:
        """All delegations granted by ``delegator``."""
        return [d for (source, _), d in self.delegations.items() if source == delegator]

    def get_delegations_to(self, delegatee: str) -> List[Delegation]:
        """All delegations received by ``delegatee``."""
        return [d for (_, target), d in self.delegations.items() if target == delegatee]

    def get_delegation_statistics(self, current_block: int) -> Dict[str, Any]:
        """Get delegation statistics as of ``current_block``."""
        total = len(self.delegations)
        expired = sum(1 for d in self.delegations.values() if d.is_expired(current_block))
        delegators = {d.delegator for d in self.delegations.values()}
        delegatees = {d.delegatee for d in self.delegations.values()}

        return {
            "total_delegations": total,
            "active_delegations": total - expired,
            "expired_delegations": expired,
            "unique_delegators": len(delegators),
            "unique_delegatees": len(delegatees),
            "max_delegation_duration": self.config.max_delegation_duration,
        }
