"""quadvote error handling.

Exception hierarchy and the numeric error-code table shared by every
governance operation.
"""

from .exceptions import (
    ArithmeticFault,
    AuthorizationError,
    CollaboratorError,
    ConfigurationError,
    DelegationError,
    ErrorCategory,
    ErrorCode,
    ErrorContext,
    ErrorSeverity,
    FatalError,
    GovernanceError,
    InvalidInputError,
    NotConfiguredError,
    QuadVoteError,
    QuorumNotMetError,
    StakeNotFoundError,
    StateConflictError,
    TimingViolationError,
    WeightError,
    create_input_error,
)

__all__ = [
    "ErrorCode",
    "ErrorSeverity",
    "ErrorCategory",
    "ErrorContext",
    "QuadVoteError",
    "GovernanceError",
    "AuthorizationError",
    "NotConfiguredError",
    "InvalidInputError",
    "TimingViolationError",
    "StateConflictError",
    "DelegationError",
    "WeightError",
    "QuorumNotMetError",
    "ConfigurationError",
    "CollaboratorError",
    "StakeNotFoundError",
    "FatalError",
    "ArithmeticFault",
    "create_input_error",
]
