"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class InvalidDebtError(DomainException):
    """Debt data is malformed or violates ledger rules"""

    pass


class DebtNotFoundError(DomainException):
    """No debt record with the requested id"""

    pass


class StaleDebtError(DomainException):
    """Debt changed status between read and conditional write"""

    pass


class InvalidScoreRulesError(DomainException):
    """Score rule set is missing fields or holds inconsistent values"""

    pass


class UserDirectoryError(DomainException):
    """User directory returned an error or is unavailable"""

    pass
