class EquationRecoveryError(Exception):
    """Raised when equation recovery fails."""


class EquationRecoveryValidationError(EquationRecoveryError):
    """Raised when the recovered equations fail validation."""


class EquationRecoveryNetworkError(EquationRecoveryError):
    """Raised when the model provider call fails due to network/infrastructure issues."""
