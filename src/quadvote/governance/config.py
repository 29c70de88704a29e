"""
Voting engine configuration.

A single ``VotingConfig`` is built by the host and passed to the engine.
Only the administrator may change the collaborator services and the
default quorum after construction.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional

from ..errors.exceptions import (
    AuthorizationError,
    ConfigurationError,
    ErrorCode,
    NotConfiguredError,
    create_input_error,
)
from ..logging import LogContext, get_logger
from .services import ProposalRegistry, StakingService

logger = get_logger(__name__)

# Identity whose staked balance is the aggregate of all stake.
DEFAULT_AGGREGATE_STAKE_IDENTITY = "SP000000000000000000002Q6VF78"

MIN_QUORUM = 1
MAX_QUORUM = 100


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


@dataclass
class VotingConfig:
    """Configuration for the voting engine."""

    admin: str
    default_quorum: int = 5  # percent of stake-at-start
    min_vote_weight: int = 1
    max_delegation_duration: int = 10080  # blocks
    aggregate_stake_identity: str = DEFAULT_AGGREGATE_STAKE_IDENTITY
    staking_service: Optional[StakingService] = None
    proposal_registry: Optional[ProposalRegistry] = None

    def __post_init__(self):
        """Validate configuration after initialization."""
        self.validate()

    def validate(self) -> None:
        """Validate configuration."""
        if not self.admin or not isinstance(self.admin, str):
            raise ConfigurationError(
                "Administrator identity is required", config_key="admin"
            )

        if not _is_int(self.default_quorum) or not (
            MIN_QUORUM <= self.default_quorum <= MAX_QUORUM
        ):
            raise ConfigurationError(
                f"Default quorum must be between {MIN_QUORUM} and {MAX_QUORUM}",
                config_key="default_quorum",
                config_value=self.default_quorum,
            )

        if not _is_int(self.min_vote_weight) or self.min_vote_weight < 0:
            raise ConfigurationError(
                "Minimum vote weight must be a non-negative integer",
                config_key="min_vote_weight",
                config_value=self.min_vote_weight,
            )

        if not _is_int(self.max_delegation_duration) or self.max_delegation_duration <= 0:
            raise ConfigurationError(
                "Max delegation duration must be positive",
                config_key="max_delegation_duration",
                config_value=self.max_delegation_duration,
            )

        if not self.aggregate_stake_identity:
            raise ConfigurationError(
                "Aggregate stake identity is required",
                config_key="aggregate_stake_identity",
            )

    # Accessors

    @property
    def staking_address(self) -> Optional[str]:
        return self.staking_service.address if self.staking_service else None

    @property
    def registry_address(self) -> Optional[str]:
        return self.proposal_registry.address if self.proposal_registry else None

    def is_admin(self, caller: str) -> bool:
        return caller == self.admin

    def is_registry(self, caller: str) -> bool:
        return self.proposal_registry is not None and caller == self.registry_address

    def require_staking(self) -> StakingService:
        """Get the staking service or fail with STAKING_SERVICE_NOT_SET."""
        if self.staking_service is None:
            raise NotConfiguredError(
                "Staking service is not set",
                service="staking",
                error_code=ErrorCode.STAKING_SERVICE_NOT_SET,
            )
        return self.staking_service

    def require_registry(self) -> ProposalRegistry:
        """Get the proposal registry or fail with PROPOSAL_REGISTRY_NOT_SET."""
        if self.proposal_registry is None:
            raise NotConfiguredError(
                "Proposal registry is not set",
                service="registry",
                error_code=ErrorCode.PROPOSAL_REGISTRY_NOT_SET,
            )
        return self.proposal_registry

    # Admin-only mutators

    def _require_admin(self, caller: str, operation: str) -> None:
        if not self.is_admin(caller):
            raise AuthorizationError(
                f"{caller} is not allowed to {operation}", caller=caller
            )

    def set_staking_service(self, caller: str, service: Optional[StakingService]) -> None:
        """Point the engine at a staking service (or unset it with None)."""
        self._require_admin(caller, "set the staking service")
        self.staking_service = service
        logger.info(
            f"Staking service set to {self.staking_address}",
            context=LogContext(operation="set_staking_service", caller=caller),
        )

    def set_proposal_registry(
        self, caller: str, registry: Optional[ProposalRegistry]
    ) -> None:
        """Point the engine at a proposal registry (or unset it with None)."""
        self._require_admin(caller, "set the proposal registry")
        self.proposal_registry = registry
        logger.info(
            f"Proposal registry set to {self.registry_address}",
            context=LogContext(operation="set_proposal_registry", caller=caller),
        )

    def set_default_quorum(self, caller: str, quorum: int) -> None:
        """Change the participation percentage required at tally time."""
        self._require_admin(caller, "set the default quorum")
        if not _is_int(quorum) or not (MIN_QUORUM <= quorum <= MAX_QUORUM):
            raise create_input_error(
                "quorum",
                quorum,
                f"integer in [{MIN_QUORUM}, {MAX_QUORUM}]",
                ErrorCode.INVALID_VOTING_THRESHOLD,
            )
        self.default_quorum = quorum
        logger.info(
            f"Default quorum set to {quorum}%",
            context=LogContext(operation="set_default_quorum", caller=caller),
        )

    # Serialization

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary. Services are reported by address."""
        return {
            "admin": self.admin,
            "default_quorum": self.default_quorum,
            "min_vote_weight": self.min_vote_weight,
            "max_delegation_duration": self.max_delegation_duration,
            "aggregate_stake_identity": self.aggregate_stake_identity,
            "staking_address": self.staking_address,
            "registry_address": self.registry_address,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "VotingConfig":
        """Create configuration from dictionary. Services are attached separately."""
        return cls(
            admin=data["admin"],
            default_quorum=data.get("default_quorum", 5),
            min_vote_weight=data.get("min_vote_weight", 1),
            max_delegation_duration=data.get("max_delegation_duration", 10080),
            aggregate_stake_identity=data.get(
                "aggregate_stake_identity", DEFAULT_AGGREGATE_STAKE_IDENTITY
            ),
        )
