class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class AuthenticationError(DomainError):
    """Raised when login credentials are invalid."""


class AuthorizationError(DomainError):
    """Raised when a user lacks permission for an action."""


class EmployeeNotFound(DomainError):
    """Raised when an identity does not resolve to an active employee."""


class PolicyMissing(DomainError):
    """Raised when no attendance policy has been configured.

    Needs an operator to save a policy; retrying does not help.
    """


class AlreadyDisbursed(DomainError):
    """Raised when a payroll history entry already exists for the period."""

    def __init__(self, period_label: str):
        super().__init__(f"Payroll for {period_label} has already been disbursed")
        self.period_label = period_label


class ConcurrentWriteConflict(DomainError):
    """Raised when a conditional attendance write lost a race.

    Retryable: re-read the record and evaluate again.
    """

    retryable = True


class NarrativeServiceError(DomainError):
    """Raised when the narrative payroll service call fails."""
