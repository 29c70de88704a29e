"""Exception hierarchy for quadvote.

This module defines the error taxonomy of the voting engine. Every error
carries a numeric code from ``ErrorCode`` so callers can react to failures
without parsing messages.
"""

import time
import traceback
from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Any, Dict, Optional


class ErrorCode(IntEnum):
    """Machine-checkable failure codes reported by governance operations."""

    INVALID_VOTING_THRESHOLD = 105
    NOT_AUTHORIZED = 200
    PROPOSAL_NOT_FOUND = 201
    VOTING_NOT_STARTED = 202
    VOTING_ENDED = 203
    ALREADY_VOTED = 204
    INVALID_VOTE_TYPE = 205
    VOTING_STILL_OPEN = 206
    INVALID_PROPOSAL_ID = 207
    QUORUM_NOT_MET = 208
    INVALID_DELEGATE = 209
    DELEGATION_EXPIRED = 210
    PROPOSAL_ALREADY_FINALIZED = 212
    STAKING_SERVICE_NOT_SET = 214
    PROPOSAL_REGISTRY_NOT_SET = 215
    VOTE_WEIGHT_ZERO = 216
    DELEGATE_SELF = 217
    INVALID_DURATION = 220
    ZERO_TOTAL_STAKE = 221
    ARITHMETIC_FAULT = 900
    COLLABORATOR_FAILURE = 901


class ErrorSeverity(Enum):
    """Error severity levels."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorCategory(Enum):
    """Error categories."""

    AUTHORIZATION = "authorization"
    NOT_CONFIGURED = "not_configured"
    INVALID_INPUT = "invalid_input"
    TIMING = "timing"
    STATE_CONFLICT = "state_conflict"
    DELEGATION = "delegation"
    WEIGHT = "weight"
    QUORUM = "quorum"
    ARITHMETIC = "arithmetic"
    COLLABORATOR = "collaborator"
    CONFIGURATION = "configuration"
    SYSTEM = "system"


@dataclass
class ErrorContext:
    """Context information for an error."""

    timestamp: float = field(default_factory=time.time)
    component: Optional[str] = None
    operation: Optional[str] = None
    caller: Optional[str] = None
    proposal_id: Optional[int] = None
    block_height: Optional[int] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert context to dictionary."""
        return {
            "timestamp": self.timestamp,
            "component": self.component,
            "operation": self.operation,
            "caller": self.caller,
            "proposal_id": self.proposal_id,
            "block_height": self.block_height,
            "metadata": self.metadata,
        }


class QuadVoteError(Exception):
    """Base exception for all quadvote errors."""

    default_code: Optional[ErrorCode] = None

    def __init__(
        self,
        message: str,
        error_code: Optional[ErrorCode] = None,
        severity: ErrorSeverity = ErrorSeverity.MEDIUM,
        category: ErrorCategory = ErrorCategory.SYSTEM,
        context: Optional[ErrorContext] = None,
        cause: Optional[Exception] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code if error_code is not None else self.default_code
        self.severity = severity
        self.category = category
        self.context = context or ErrorContext()
        self.cause = cause
        self.metadata = metadata or {}
        self.timestamp = time.time()
        self.traceback = traceback.format_exc()

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary."""
        return {
            "type": self.__class__.__name__,
            "message": self.message,
            "error_code": int(self.error_code) if self.error_code is not None else None,
            "severity": self.severity.value,
            "category": self.category.value,
            "context": self.context.to_dict(),
            "cause": str(self.cause) if self.cause else None,
            "metadata": self.metadata,
            "timestamp": self.timestamp,
        }

    def __str__(self) -> str:
        """String representation of the error."""
        parts = [f"{self.__class__.__name__}: {self.message}"]

        if self.error_code is not None:
            parts.append(f"Code: {int(self.error_code)} ({self.error_code.name})")

        if self.severity != ErrorSeverity.MEDIUM:
            parts.append(f"Severity: {self.severity.value}")

        return " | ".join(parts)


class GovernanceError(QuadVoteError):
    """A governance rule rejected the operation before any state changed."""

    category_default = ErrorCategory.SYSTEM

    def __init__(self, message: str, error_code: Optional[ErrorCode] = None, **kwargs):
        kwargs.setdefault("category", self.category_default)
        super().__init__(message, error_code=error_code, **kwargs)


class AuthorizationError(GovernanceError):
    """Caller is not allowed to perform the operation."""

    default_code = ErrorCode.NOT_AUTHORIZED
    category_default = ErrorCategory.AUTHORIZATION

    def __init__(self, message: str, caller: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.caller = caller

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update({"caller": self.caller})
        return data


class NotConfiguredError(GovernanceError):
    """A collaborator service address has not been set."""

    category_default = ErrorCategory.NOT_CONFIGURED

    def __init__(self, message: str, service: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.service = service


class InvalidInputError(GovernanceError):
    """An argument is out of its accepted domain."""

    category_default = ErrorCategory.INVALID_INPUT

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        value: Optional[Any] = None,
        expected: Optional[Any] = None,
        **kwargs,
    ):
        super().__init__(message, **kwargs)
        self.field = field
        self.value = value
        self.expected = expected

    def to_dict(self) -> Dict[str, Any]:
        """Convert input error to dictionary."""
        data = super().to_dict()
        data.update(
            {
                "field": self.field,
                "value": str(self.value) if self.value is not None else None,
                "expected": str(self.expected) if self.expected is not None else None,
            }
        )
        return data


class TimingViolationError(GovernanceError):
    """The logical clock is outside the window the operation requires."""

    category_default = ErrorCategory.TIMING

    def __init__(self, message: str, current_block: Optional[int] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.current_block = current_block


class StateConflictError(GovernanceError):
    """Recorded state forbids the operation (already voted, finalized, inactive)."""

    category_default = ErrorCategory.STATE_CONFLICT


class DelegationError(GovernanceError):
    """Delegation is missing, expired, mismatched or targets the caller."""

    default_code = ErrorCode.INVALID_DELEGATE
    category_default = ErrorCategory.DELEGATION


class WeightError(GovernanceError):
    """Effective voting weight is zero."""

    default_code = ErrorCode.VOTE_WEIGHT_ZERO
    category_default = ErrorCategory.WEIGHT


class QuorumNotMetError(GovernanceError):
    """Participation fell below quorum; the proposal was still finalized."""

    default_code = ErrorCode.QUORUM_NOT_MET
    category_default = ErrorCategory.QUORUM

    def __init__(
        self,
        message: str,
        participation: Optional[int] = None,
        quorum: Optional[int] = None,
        **kwargs,
    ):
        super().__init__(message, **kwargs)
        self.participation = participation
        self.quorum = quorum

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update({"participation": self.participation, "quorum": self.quorum})
        return data


class ConfigurationError(QuadVoteError):
    """Configuration error."""

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        config_value: Optional[Any] = None,
        **kwargs,
    ):
        super().__init__(
            message,
            category=ErrorCategory.CONFIGURATION,
            severity=ErrorSeverity.MEDIUM,
            **kwargs,
        )
        self.config_key = config_key
        self.config_value = config_value

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration error to dictionary."""
        data = super().to_dict()
        data.update(
            {
                "config_key": self.config_key,
                "config_value": str(self.config_value)
                if self.config_value is not None
                else None,
            }
        )
        return data


class CollaboratorError(QuadVoteError):
    """A call to the staking service or proposal registry failed."""

    default_code = ErrorCode.COLLABORATOR_FAILURE

    def __init__(self, message: str, service: Optional[str] = None, **kwargs):
        super().__init__(
            message,
            category=ErrorCategory.COLLABORATOR,
            severity=ErrorSeverity.HIGH,
            **kwargs,
        )
        self.service = service

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update({"service": self.service})
        return data


class StakeNotFoundError(QuadVoteError):
    """Raised by a staking service that has no record of an identity; read as stake 0."""

    def __init__(self, message: str, identity: Optional[str] = None, **kwargs):
        kwargs.setdefault("category", ErrorCategory.COLLABORATOR)
        super().__init__(message, **kwargs)
        self.identity = identity


class FatalError(QuadVoteError):
    """Fatal error that cannot be recovered from."""

    def __init__(self, message: str, **kwargs):
        kwargs.setdefault("severity", ErrorSeverity.CRITICAL)
        super().__init__(message, **kwargs)


class ArithmeticFault(FatalError):
    """Square-root or division precondition violated; an invariant was already broken."""

    default_code = ErrorCode.ARITHMETIC_FAULT

    def __init__(self, message: str, operand: Optional[Any] = None, **kwargs):
        super().__init__(message, category=ErrorCategory.ARITHMETIC, **kwargs)
        self.operand = operand

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update({"operand": str(self.operand) if self.operand is not None else None})
        return data


def create_input_error(
    field: str,
    value: Any,
    expected: Any,
    error_code: ErrorCode,
    message: Optional[str] = None,
) -> InvalidInputError:
    """Create an input error."""
    if message is None:
        message = f"Invalid value for field '{field}': expected {expected}, got {value!r}"

    return InvalidInputError(
        message=message,
        field=field,
        value=value,
        expected=expected,
        error_code=error_code,
    )
