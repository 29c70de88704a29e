"""
Quadratic voting demonstration.

This script walks through a proposal lifecycle: opening a vote, direct and
delegated ballots, delegation expiry and revocation, tally with quorum,
and the hash-chained audit trail.
"""

import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from quadvote import (
    InMemoryProposalRegistry,
    InMemoryStakingService,
    VoteType,
    VotingConfig,
    VotingEngine,
)
from quadvote.governance import DEFAULT_AGGREGATE_STAKE_IDENTITY
from quadvote.logging import LogConfig, LogLevel, get_logger, setup_logging

logger = get_logger(__name__)

ADMIN = "SP-ADMIN"


def print_section(title: str):
    """Print a section header."""
    logger.info("=" * 60)
    logger.info(f"🎯 {title}")
    logger.info("=" * 60)


def build_engine(aggregate_stake: int, balances: dict):
    """Wire an engine to in-memory staking and registry services."""
    staking = InMemoryStakingService(
        "SP-STAKING", {DEFAULT_AGGREGATE_STAKE_IDENTITY: aggregate_stake, **balances}
    )
    registry = InMemoryProposalRegistry("SP-REGISTRY")
    engine = VotingEngine(VotingConfig(admin=ADMIN))
    engine.set_staking_service(ADMIN, staking)
    engine.set_proposal_registry(ADMIN, registry)
    return engine, registry


def demo_end_to_end():
    """A whale votes alone against a large pool and quorum fails."""
    print_section("End-to-end: quorum failure")
    engine, registry = build_engine(1000000, {"whale": 10000})

    registry.open_voting(engine, proposal_id=1, duration=100, current_block=0)
    tally = engine.get_tally(1)
    logger.info(f"Voting open until block {tally.end_block}, snapshot {tally.total_stake_at_start}")

    result = engine.cast_vote("whale", 1, VoteType.YES, current_block=42)
    logger.info(f"Stake 10000 voted with weight {result.metadata['weight']}")

    result = engine.tally_votes("keeper", 1, current_block=100)
    logger.info(
        f"Tally: ok={result.ok} code={int(result.value)} status={result.status.value} "
        f"participation={result.metadata['participation']}%"
    )

    again = engine.tally_votes("keeper", 1, current_block=101)
    logger.info(f"Second tally rejected with code {int(again.value)}")


def demo_passing_vote():
    """Broad participation passes a proposal."""
    print_section("Passing proposal")
    engine, registry = build_engine(1000, {"alice": 900, "bob": 400, "carol": 100})
    registry.open_voting(engine, 2, 20, 0)

    for voter, choice in (("alice", "yes"), ("bob", "no"), ("carol", "abstain")):
        result = engine.cast_vote(voter, 2, choice, 5)
        logger.info(f"{voter} voted {choice} with weight {result.metadata['weight']}")

    result = engine.tally_votes("keeper", 2, 20)
    logger.info(f"Proposal 2 {result.value.value} with {result.metadata['participation']}% participation")


def demo_delegation():
    """Delegated ballot, expiry and revocation."""
    print_section("Delegation")
    engine, registry = build_engine(1000000, {"delegator": 2500})
    registry.open_voting(engine, 1, 20000, 0)

    result = engine.delegate_vote("delegator", 1, "delegatee", 0)
    logger.info(f"Delegation granted until block {result.metadata['expiry_block']}")

    engine.cast_delegated_vote("delegatee", 1, VoteType.NO, "delegator", 500)
    vote = engine.get_vote(1, "delegator")
    logger.info(f"Ballot for delegator cast by {vote.delegated_to} with weight {vote.weight}")

    registry.open_voting(engine, 2, 20000, 0)
    engine.delegate_vote("delegator", 2, "delegatee", 0)
    result = engine.cast_delegated_vote("delegatee", 2, VoteType.NO, "delegator", 10080)
    logger.info(f"Cast after expiry rejected with code {int(result.value)}")

    registry.open_voting(engine, 3, 100, 0)
    engine.delegate_vote("delegator", 3, "delegatee", 1)
    engine.revoke_delegation("delegator", 3, "delegatee", 2)
    result = engine.cast_delegated_vote("delegatee", 3, VoteType.YES, "delegator", 3)
    logger.info(f"Cast after revocation rejected with code {int(result.value)}")

    stats = engine.get_delegation_statistics(20000)
    logger.info(f"Delegation statistics: {stats}")

    summary = engine.events.get_summary()
    logger.info(
        f"Audit trail: {summary['total_events']} events, "
        f"intact={engine.events.verify_integrity()}"
    )


def main():
    """Run all demonstrations."""
    setup_logging(LogConfig(level=LogLevel.INFO, format_type="text"))

    demo_end_to_end()
    demo_passing_vote()
    demo_delegation()

    print_section("Demonstration Complete")
    return 0


if __name__ == "__main__":
    sys.exit(main())
