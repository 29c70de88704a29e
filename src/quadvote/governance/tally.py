"""
Tally arithmetic.

Participation is an integer percentage of the stake snapshot taken when
voting opened. Below quorum the proposal is quorum-failed; otherwise it
passes on a strict yes > no majority.
"""

from dataclasses import dataclass
from typing import Any, Dict

from ..errors.exceptions import ArithmeticFault
from .types import ProposalStatus, ProposalTally


def compute_participation(total_voted: int, total_stake_at_start: int) -> int:
    """``floor(total_voted * 100 / total_stake_at_start)``."""
    if total_stake_at_start <= 0:
        raise ArithmeticFault(
            "Cannot compute participation against a zero stake snapshot",
            operand=total_stake_at_start,
        )
    if total_voted < 0:
        raise ArithmeticFault("Voted weight cannot be negative", operand=total_voted)
    return total_voted * 100 // total_stake_at_start


@dataclass(frozen=True)
class TallyDecision:
    """Result of evaluating a closed tally against quorum."""

    participation: int
    quorum: int
    status: ProposalStatus

    @property
    def quorum_met(self) -> bool:
        return self.status is not ProposalStatus.QUORUM_FAILED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "participation": self.participation,
            "quorum": self.quorum,
            "status": self.status.value,
            "quorum_met": self.quorum_met,
        }


def decide_outcome(tally: ProposalTally, quorum: int) -> TallyDecision:
    """Evaluate ``tally`` against ``quorum`` (a percentage)."""
    participation = compute_participation(tally.total_voted, tally.total_stake_at_start)

    if participation < quorum:
        status = ProposalStatus.QUORUM_FAILED
    elif tally.yes > tally.no:
        status = ProposalStatus.PASSED
    else:
        status = ProposalStatus.FAILED

    return TallyDecision(participation=participation, quorum=quorum, status=status)
