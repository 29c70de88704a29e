"""
Vote weight derivation.

Raw stake is converted to voting power with an exact integer square root,
so doubling a holding does not double its influence. Weights below the
configured floor count as zero.
"""

import math
from typing import Any, Dict

from ..errors.exceptions import ArithmeticFault, StakeNotFoundError
from .services import StakingService, call_collaborator

# Staked balances are unsigned 128-bit quantities.
MAX_STAKE = 2**128 - 1


def validate_stake(value: int) -> int:
    """Return ``value`` if it is a stake in ``[0, MAX_STAKE]``, else raise ArithmeticFault."""
    if not isinstance(value, int) or isinstance(value, bool):
        raise ArithmeticFault(
            f"Stake must be an integer, got {type(value).__name__}", operand=value
        )
    if value < 0:
        raise ArithmeticFault("Stake cannot be negative", operand=value)
    if value > MAX_STAKE:
        raise ArithmeticFault("Stake overflows 128 bits", operand=value)
    return value


def fetch_stake(staking: StakingService, identity: str) -> int:
    """Staked balance of ``identity``; an identity the service does not know has 0."""
    try:
        return call_collaborator("staking", staking.get_staked_balance, identity)
    except StakeNotFoundError:
        return 0


def integer_sqrt(value: int) -> int:
    """Exact ``floor(sqrt(value))`` for a stake in ``[0, MAX_STAKE]``."""
    return math.isqrt(validate_stake(value))


class QuadraticWeightStrategy:
    """Quadratic weighting (weight = floor(sqrt(stake))) with a minimum floor."""

    name = "quadratic"

    def __init__(self, min_vote_weight: int = 1):
        """Initialize quadratic weighting."""
        if min_vote_weight < 0:
            raise ArithmeticFault(
                "Minimum vote weight cannot be negative", operand=min_vote_weight
            )
        self.min_vote_weight = min_vote_weight

    def calculate_weight(self, stake: int) -> int:
        """Weight for a raw stake; 0 when the root falls under the floor."""
        weight = integer_sqrt(stake)
        if weight < self.min_vote_weight:
            return 0
        return weight

    def effective_weight(self, identity: str, staking: StakingService) -> int:
        """Look up ``identity``'s stake and convert it to voting weight."""
        stake = fetch_stake(staking, identity)
        return self.calculate_weight(stake)

    def get_strategy_info(self) -> Dict[str, Any]:
        """Get information about this weighting."""
        return {
            "name": self.name,
            "min_vote_weight": self.min_vote_weight,
            "max_stake": MAX_STAKE,
            "description": self.__doc__,
        }
