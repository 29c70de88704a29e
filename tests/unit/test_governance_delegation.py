"""
Unit tests for governance delegation.

This module tests delegation grants, overwrite semantics, validation for
delegated casts, lazy expiry and revocation.
"""

import pytest

from quadvote.errors import DelegationError, ErrorCode
from quadvote.governance.config import VotingConfig
from quadvote.governance.delegation import DelegationManager


@pytest.fixture
def manager():
    return DelegationManager(VotingConfig(admin="admin", max_delegation_duration=100))


class TestGrant:
    """Test delegation grants."""

    def test_grant(self, manager):
        """Test creating a delegation."""
        delegation = manager.grant("alice", "bob", proposal_id=1, current_block=5)

        assert delegation.delegator == "alice"
        assert delegation.delegatee == "bob"
        assert delegation.proposal_id == 1
        assert delegation.expiry_block == 105
        assert delegation.granted_at_block == 5
        assert manager.get("alice", "bob") == delegation

    def test_self_delegation(self, manager):
        """Test that self-delegation is rejected without storing anything."""
        with pytest.raises(DelegationError) as exc_info:
            manager.grant("alice", "alice", proposal_id=1, current_block=0)

        assert exc_info.value.error_code == ErrorCode.DELEGATE_SELF
        assert manager.delegations == {}

    def test_regrant_overwrites_pair(self, manager):
        """Latest grant for a pair wins."""
        manager.grant("alice", "bob", proposal_id=1, current_block=0)
        manager.grant("alice", "bob", proposal_id=2, current_block=10)

        delegation = manager.get("alice", "bob")
        assert delegation.proposal_id == 2
        assert delegation.expiry_block == 110
        assert len(manager.delegations) == 1

    def test_pairs_are_ordered(self, manager):
        """Grants to different delegatees are independent."""
        manager.grant("alice", "bob", proposal_id=1, current_block=0)
        manager.grant("alice", "carol", proposal_id=2, current_block=0)
        manager.grant("bob", "alice", proposal_id=1, current_block=0)

        assert len(manager.delegations) == 3
        assert {d.delegatee for d in manager.get_delegations_from("alice")} == {"bob", "carol"}
        assert [d.delegator for d in manager.get_delegations_to("alice")] == ["bob"]


class TestValidateForCast:
    """Test validation for delegated casts."""

    def test_valid(self, manager):
        """Test a live delegation."""
        granted = manager.grant("alice", "bob", proposal_id=1, current_block=0)
        assert manager.validate_for_cast("alice", "bob", 1, 99) == granted

    def test_missing(self, manager):
        """Test a pair with no delegation."""
        with pytest.raises(DelegationError) as exc_info:
            manager.validate_for_cast("alice", "bob", 1, 0)
        assert exc_info.value.error_code == ErrorCode.INVALID_DELEGATE

    def test_reversed_pair(self, manager):
        """A delegation does not work in the other direction."""
        manager.grant("alice", "bob", proposal_id=1, current_block=0)

        with pytest.raises(DelegationError) as exc_info:
            manager.validate_for_cast("bob", "alice", 1, 0)
        assert exc_info.value.error_code == ErrorCode.INVALID_DELEGATE

    def test_wrong_proposal(self, manager):
        """Test a delegation scoped to another proposal."""
        manager.grant("alice", "bob", proposal_id=1, current_block=0)

        with pytest.raises(DelegationError) as exc_info:
            manager.validate_for_cast("alice", "bob", 2, 0)
        assert exc_info.value.error_code == ErrorCode.INVALID_DELEGATE

    def test_expired(self, manager):
        """Test lazy expiry at the expiry block."""
        manager.grant("alice", "bob", proposal_id=1, current_block=0)

        with pytest.raises(DelegationError) as exc_info:
            manager.validate_for_cast("alice", "bob", 1, 100)
        assert exc_info.value.error_code == ErrorCode.DELEGATION_EXPIRED
        assert manager.get("alice", "bob") is not None

    def test_wrong_proposal_reported_before_expiry(self, manager):
        """Proposal mismatch wins over expiry."""
        manager.grant("alice", "bob", proposal_id=1, current_block=0)

        with pytest.raises(DelegationError) as exc_info:
            manager.validate_for_cast("alice", "bob", 2, 500)
        assert exc_info.value.error_code == ErrorCode.INVALID_DELEGATE


class TestRevoke:
    """Test revocation."""

    def test_revoke(self, manager):
        """Test revoking a live delegation."""
        manager.grant("alice", "bob", proposal_id=1, current_block=0)
        revoked = manager.revoke("alice", "bob", 1, 50)

        assert revoked.delegatee == "bob"
        assert manager.get("alice", "bob") is None

    @pytest.mark.parametrize("proposal_id, block", [(2, 50), (1, 100), (1, 1000)])
    def test_revoke_invalid(self, manager, proposal_id, block):
        """Mismatched or expired delegations cannot be revoked."""
        manager.grant("alice", "bob", proposal_id=1, current_block=0)

        with pytest.raises(DelegationError) as exc_info:
            manager.revoke("alice", "bob", proposal_id, block)
        assert exc_info.value.error_code == ErrorCode.INVALID_DELEGATE
        assert manager.get("alice", "bob") is not None

    def test_revoke_missing(self, manager):
        """Test revoking nothing."""
        with pytest.raises(DelegationError) as exc_info:
            manager.revoke("alice", "bob", 1, 0)
        assert exc_info.value.error_code == ErrorCode.INVALID_DELEGATE


class TestStatistics:
    """Test delegation statistics."""

    def test_statistics(self, manager):
        """Test counts as of a block."""
        manager.grant("alice", "bob", proposal_id=1, current_block=0)
        manager.grant("carol", "bob", proposal_id=1, current_block=50)

        stats = manager.get_delegation_statistics(current_block=120)
        assert stats["total_delegations"] == 2
        assert stats["expired_delegations"] == 1
        assert stats["active_delegations"] == 1
        assert stats["unique_delegators"] == 2
        assert stats["unique_delegatees"] == 1
        assert stats["max_delegation_duration"] == 100
