"""
Adversarial tests for the voting system.

This module runs the engine against attack vectors: double voting,
self-delegation, Sybil stake splitting, quorum manipulation, stale or
foreign delegations, unauthorized configuration and forged registry calls.
"""

import math
from typing import Any, Dict

import pytest

from quadvote import (
    ErrorCode,
    InMemoryProposalRegistry,
    InMemoryStakingService,
    ProposalStatus,
    VotingConfig,
    VotingEngine,
)
from quadvote.governance import DEFAULT_AGGREGATE_STAKE_IDENTITY

pytestmark = pytest.mark.adversarial

ADMIN = "SP-ADMIN"
REGISTRY = "SP-REGISTRY"


class AdversarialAttacker:
    """Base class for adversarial attackers."""

    def __init__(self, name: str, goal: str):
        self.name = name
        self.goal = goal
        self.attacks_attempted = 0
        self.successful_attacks = 0
        self.rejections: Dict[int, int] = {}

    def attempt_attack(self, engine: VotingEngine) -> bool:
        """Attempt an attack on the voting engine."""
        raise NotImplementedError

    def record(self, result) -> bool:
        """Count one attempt; returns True if the engine accepted it."""
        self.attacks_attempted += 1
        if result.ok:
            self.successful_attacks += 1
        else:
            code = int(result.value)
            self.rejections[code] = self.rejections.get(code, 0) + 1
        return result.ok

    def get_attack_statistics(self) -> Dict[str, Any]:
        """Get attack statistics."""
        return {
            "name": self.name,
            "goal": self.goal,
            "attacks_attempted": self.attacks_attempted,
            "successful_attacks": self.successful_attacks,
            "rejections": dict(self.rejections),
            "success_rate": self.successful_attacks / max(self.attacks_attempted, 1),
        }


class DoubleVoteAttacker(AdversarialAttacker):
    """Tries to count the same stake more than once on one proposal."""

    def __init__(self, identity: str, accomplice: str):
        super().__init__(identity, "Vote twice on the same proposal")
        self.accomplice = accomplice

    def attempt_attack(self, engine: VotingEngine) -> bool:
        engine.delegate_vote(self.name, 1, self.accomplice, 1)
        engine.cast_vote(self.name, 1, "yes", 2)

        # Direct recast, then through the accomplice's delegation
        accepted = self.record(engine.cast_vote(self.name, 1, "yes", 3))
        accepted |= self.record(
            engine.cast_delegated_vote(self.accomplice, 1, "yes", self.name, 4)
        )
        return accepted


class DelegateFirstAttacker(AdversarialAttacker):
    """Lets a delegate vote, then tries to vote directly as well."""

    def __init__(self, identity: str, delegatee: str):
        super().__init__(identity, "Cast a direct ballot after a delegated one")
        self.delegatee = delegatee

    def attempt_attack(self, engine: VotingEngine) -> bool:
        engine.delegate_vote(self.name, 1, self.delegatee, 1)
        engine.cast_delegated_vote(self.delegatee, 1, "yes", self.name, 2)
        return self.record(engine.cast_vote(self.name, 1, "yes", 3))


class SelfDelegationAttacker(AdversarialAttacker):
    """Tries to delegate to itself to cast through the delegated path."""

    def attempt_attack(self, engine: VotingEngine) -> bool:
        accepted = self.record(engine.delegate_vote(self.name, 1, self.name, 1))
        accepted |= self.record(
            engine.cast_delegated_vote(self.name, 1, "yes", self.name, 2)
        )
        return accepted


class SybilAttacker(AdversarialAttacker):
    """Splits one stake over many identities to beat the square root."""

    def __init__(self, stake: int, num_accounts: int):
        super().__init__("sybil", "Amplify weight by splitting stake")
        self.stake = stake
        self.num_accounts = num_accounts
        self.total_weight = 0

    def attempt_attack(self, engine: VotingEngine, staking: InMemoryStakingService) -> bool:
        share = self.stake // self.num_accounts
        for i in range(self.num_accounts):
            identity = f"sybil-{i}"
            staking.set_balance(identity, share)
            result = engine.cast_vote(identity, 1, "yes", 1)
            if self.record(result):
                self.total_weight += result.metadata["weight"]
        return self.total_weight > math.isqrt(self.stake)


class QuorumManipulator(AdversarialAttacker):
    """Shrinks the aggregate stake or the quorum to pass a thin vote."""

    def attempt_attack(
        self, engine: VotingEngine, staking: InMemoryStakingService
    ) -> bool:
        engine.cast_vote(self.name, 1, "yes", 1)
        staking.set_balance(DEFAULT_AGGREGATE_STAKE_IDENTITY, 1)
        self.record(engine.set_default_quorum(self.name, 1))

        result = engine.tally_votes(self.name, 1, 100)
        return result.status is ProposalStatus.PASSED


class StaleDelegationAttacker(AdversarialAttacker):
    """Uses delegations that are expired, revoked or scoped elsewhere."""

    def __init__(self, identity: str, victim: str):
        super().__init__(identity, "Cast a victim's ballot without live rights")
        self.victim = victim

    def attempt_attack(self, engine: VotingEngine) -> bool:
        accepted = False

        # Granted on proposal 2, replayed on proposal 1
        engine.delegate_vote(self.victim, 2, self.name, 1)
        accepted |= self.record(
            engine.cast_delegated_vote(self.name, 1, "yes", self.victim, 2)
        )

        # Expired grant
        engine.delegate_vote(self.victim, 1, self.name, 3)
        expiry = engine.get_delegation(self.victim, self.name).expiry_block
        accepted |= self.record(
            engine.cast_delegated_vote(self.name, 1, "yes", self.victim, expiry)
        )

        # Delegatee revoking on the victim's behalf, then a revoked grant
        accepted |= self.record(
            engine.revoke_delegation(self.name, 1, self.victim, expiry + 1)
        )
        engine.delegate_vote(self.victim, 1, self.name, expiry + 2)
        engine.revoke_delegation(self.victim, 1, self.name, expiry + 3)
        accepted |= self.record(
            engine.cast_delegated_vote(self.name, 1, "yes", self.victim, expiry + 4)
        )
        return accepted


class ConfigHijacker(AdversarialAttacker):
    """Tries to point the engine at services the attacker controls."""

    def attempt_attack(self, engine: VotingEngine) -> bool:
        forged_staking = InMemoryStakingService("SP-EVIL", {self.name: 10 ** 12})
        forged_registry = InMemoryProposalRegistry("SP-EVIL")

        accepted = self.record(engine.set_staking_service(self.name, forged_staking))
        accepted |= self.record(engine.set_proposal_registry(self.name, forged_registry))
        accepted |= self.record(engine.set_default_quorum(self.name, 100))
        return accepted


class ForgedRegistryAttacker(AdversarialAttacker):
    """Re-initializes a live proposal to wipe its tally."""

    def attempt_attack(self, engine: VotingEngine) -> bool:
        return self.record(engine.initialize_voting(self.name, 1, 1000, 50))


class TestAdversarialAttacks:
    """Test the engine against adversarial behaviour."""

    @pytest.fixture
    def system(self):
        """Engine with proposal 1 open on [0, 100) and proposal 2 on [0, 500)."""
        staking = InMemoryStakingService(
            "SP-STAKING",
            {
                DEFAULT_AGGREGATE_STAKE_IDENTITY: 1000000,
                "attacker": 10000,
                "accomplice": 100,
                "victim": 2500,
                "honest": 40000,
            },
        )
        registry = InMemoryProposalRegistry(REGISTRY)
        engine = VotingEngine(
            VotingConfig(
                admin=ADMIN,
                max_delegation_duration=30,
                staking_service=staking,
                proposal_registry=registry,
            )
        )
        registry.open_voting(engine, 1, 100, 0)
        registry.open_voting(engine, 2, 500, 0)
        return engine, staking, registry

    def test_double_vote_prevention(self, system):
        """A second ballot never lands, direct or delegated."""
        engine, _, _ = system
        attacker = DoubleVoteAttacker("attacker", "accomplice")

        assert not attacker.attempt_attack(engine)
        assert attacker.rejections == {int(ErrorCode.ALREADY_VOTED): 2}
        tally = engine.get_tally(1)
        assert tally.yes == tally.total_voted == 100
        assert len(engine.get_votes(1)) == 1

    def test_direct_vote_after_delegated_vote(self, system):
        """The delegated ballot is the delegator's only ballot."""
        engine, _, _ = system
        attacker = DelegateFirstAttacker("victim", "accomplice")

        assert not attacker.attempt_attack(engine)
        assert attacker.rejections == {int(ErrorCode.ALREADY_VOTED): 1}
        assert engine.get_tally(1).total_voted == 50

    def test_self_delegation_prevention(self, system):
        """Self-delegation is refused and leaves no record."""
        engine, _, _ = system
        attacker = SelfDelegationAttacker("attacker", "Delegate to self")
        events_before = len(engine.get_events())

        assert not attacker.attempt_attack(engine)
        assert attacker.rejections == {
            int(ErrorCode.DELEGATE_SELF): 1,
            int(ErrorCode.INVALID_DELEGATE): 1,
        }
        assert engine.get_delegation("attacker", "attacker") is None
        assert len(engine.get_events()) == events_before

    def test_sybil_split_is_not_detected(self, system):
        """Identity is outside the engine: splitting stake does raise weight."""
        engine, staking, _ = system
        attacker = SybilAttacker(stake=10000, num_accounts=4)

        assert attacker.attempt_attack(engine, staking)
        assert attacker.total_weight == 4 * math.isqrt(2500) == 200
        assert engine.get_tally(1).total_voted == attacker.total_weight
        assert len(engine.get_votes(1)) == 4

    def test_dust_sybils_get_nothing(self, system):
        """With a weight floor, tiny shares are worthless."""
        _, staking, registry = system
        engine = VotingEngine(
            VotingConfig(
                admin=ADMIN,
                min_vote_weight=10,
                staking_service=staking,
                proposal_registry=registry,
            )
        )
        registry.open_voting(engine, 1, 100, 0)
        attacker = SybilAttacker(stake=10000, num_accounts=200)

        assert not attacker.attempt_attack(engine, staking)
        assert attacker.rejections == {int(ErrorCode.VOTE_WEIGHT_ZERO): 200}

    def test_quorum_manipulation(self, system):
        """Stake moved after the snapshot and a forged quorum change both fail."""
        engine, staking, _ = system
        attacker = QuorumManipulator("attacker", "Pass with thin participation")

        assert not attacker.attempt_attack(engine, staking)
        assert attacker.rejections == {int(ErrorCode.NOT_AUTHORIZED): 1}
        assert engine.default_quorum == 5
        assert engine.get_tally(1).total_stake_at_start == 1000000
        assert engine.get_tally(1).outcome is ProposalStatus.QUORUM_FAILED

    def test_stale_delegation(self, system):
        """No path lets a delegate cast without a live, matching grant."""
        engine, _, _ = system
        attacker = StaleDelegationAttacker("attacker", "victim")

        assert not attacker.attempt_attack(engine)
        assert attacker.rejections == {
            int(ErrorCode.INVALID_DELEGATE): 3,
            int(ErrorCode.DELEGATION_EXPIRED): 1,
        }
        assert engine.get_vote(1, "victim") is None
        assert engine.has_not_voted(1, "victim")

    def test_unauthorized_config(self, system):
        """Only the admin can touch configuration."""
        engine, _, _ = system
        attacker = ConfigHijacker("attacker", "Hijack services")

        assert not attacker.attempt_attack(engine)
        assert attacker.rejections == {int(ErrorCode.NOT_AUTHORIZED): 3}
        assert engine.staking_address == "SP-STAKING"
        assert engine.registry_address == REGISTRY
        assert engine.effective_weight("attacker") == 100

    def test_admin_is_not_registry(self, system):
        """Admin rights do not include opening votes."""
        engine, _, _ = system
        engine.cast_vote("honest", 1, "no", 1)

        for caller in ("attacker", ADMIN):
            attacker = ForgedRegistryAttacker(caller, "Reset a live tally")
            assert not attacker.attempt_attack(engine)
            assert attacker.rejections == {int(ErrorCode.NOT_AUTHORIZED): 1}

        tally = engine.get_tally(1)
        assert tally.no == 200
        assert tally.end_block == 100

    def test_early_tally_and_late_votes(self, system):
        """Tally cannot be front-run and votes cannot follow it."""
        engine, _, _ = system
        engine.cast_vote("honest", 1, "no", 1)

        assert engine.tally_votes("attacker", 1, 99).value == ErrorCode.VOTING_STILL_OPEN
        assert engine.cast_vote("attacker", 1, "yes", 99).ok
        assert engine.cast_vote("victim", 1, "yes", 100).value == ErrorCode.VOTING_ENDED

        result = engine.tally_votes("attacker", 1, 100)
        assert result.status is ProposalStatus.QUORUM_FAILED
        assert engine.tally_votes("attacker", 1, 101).value == ErrorCode.PROPOSAL_ALREADY_FINALIZED

    @pytest.mark.parametrize(
        "vote_type", ["YES", " yes", "", None, 1, "approve"]
    )
    def test_malformed_vote_types(self, system, vote_type):
        """Anything but the three tags is rejected before state is read."""
        engine, _, _ = system
        result = engine.cast_vote("attacker", 1, vote_type, 1)

        assert result.value == ErrorCode.INVALID_VOTE_TYPE
        assert engine.has_not_voted(1, "attacker")

    def test_attack_statistics(self, system):
        """Attack bookkeeping summarises attempts."""
        engine, _, _ = system
        attacker = ConfigHijacker("attacker", "Hijack services")
        attacker.attempt_attack(engine)

        stats = attacker.get_attack_statistics()
        assert stats["attacks_attempted"] == 3
        assert stats["successful_attacks"] == 0
        assert stats["success_rate"] == 0.0
